"""Integration tests for the records layer on a database file."""

import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from sqlalchemy import inspect

from registrar.records import CapacityExceededError, RecordStore
from registrar.records.database import Database


@pytest.fixture
def temp_db_path():
    """Create a temporary database path; WAL side files go with the directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "records.db")


@pytest.fixture
def store(temp_db_path: str):
    """File-backed RecordStore shared by the factory fixtures."""
    s = RecordStore(temp_db_path, write_retries=10)
    yield s
    s.close()


@pytest.mark.integration
class TestDatabaseSetup:
    """Tests for database setup."""

    def test_creates_file(self, temp_db_path: str) -> None:
        db = Database(temp_db_path)
        db.create_tables()
        assert Path(temp_db_path).exists()
        db.close()

    def test_creates_tables(self, store: RecordStore) -> None:
        tables = inspect(store.database.engine).get_table_names()

        assert {"departments", "classes", "courses", "students"} <= set(tables)
        assert "student_courses" in tables
        assert "course_prerequisites" in tables

    def test_wal_mode(self, store: RecordStore) -> None:
        assert store.database.is_wal_mode()

    def test_foreign_keys_not_enforced(self, store: RecordStore) -> None:
        assert not store.database.foreign_keys_enforced()

    def test_close_rebuilds_engine(self, temp_db_path: str) -> None:
        db = Database(temp_db_path)
        db.create_tables()
        first = db.engine
        db.close()

        assert db.engine is not first
        assert db.is_wal_mode()
        assert "students" in inspect(db.engine).get_table_names()
        db.close()

    def test_nested_directory_created(self, temp_db_path: str) -> None:
        nested = str(Path(temp_db_path).parent / "a" / "b" / "records.db")
        db = Database(nested)
        db.create_tables()

        assert Path(nested).exists()
        db.close()


@pytest.mark.integration
class TestPersistence:
    """Records and counters survive reopening the file."""

    def test_reopen(self, temp_db_path: str, store: RecordStore, make_student, make_course) -> None:
        course = make_course("CS201")
        student = make_student(course_ids=[course.id])
        store.close()

        reopened = RecordStore(temp_db_path)
        try:
            loaded = reopened.get_student(student.id)
            assert [c.course_code for c in loaded.courses] == ["CS201"]
            assert reopened.get_course(course.id).enrolled_students == 1
            assert reopened.get_class(student.class_id).current_strength == 1
            assert reopened.check_counters().consistent
        finally:
            reopened.close()


@pytest.mark.integration
class TestConcurrentEnrollment:
    """Racing writers never push a counter past its limit."""

    def test_course_seats(self, store: RecordStore, make_student, make_course) -> None:
        course = make_course("CS201", max_students=3)
        students = [make_student() for _ in range(8)]

        def enroll(student_id: str) -> bool:
            try:
                store.enroll_student(course.id, student_id)
            except CapacityExceededError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=4) as pool:
            outcomes = list(pool.map(enroll, [s.id for s in students]))

        assert outcomes.count(True) == 3
        assert store.get_course(course.id).enrolled_students == 3
        assert store.check_counters().consistent

    def test_class_seats(self, store: RecordStore, department, make_student) -> None:
        """Twenty simultaneous creations compete for five seats in one class."""
        small = store.create_class(
            class_name="CS150",
            section="A",
            academic_year="2024-2025",
            capacity=5,
            department_id=department.id,
        )
        drafts = [
            {"class_id": small.id, "roll_number": f"RACE{i:03d}", "email": f"race{i}@uni.edu"}
            for i in range(20)
        ]

        def create(overrides: dict) -> str:
            try:
                make_student(**overrides)
            except CapacityExceededError:
                return "full"
            return "created"

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(create, drafts))

        assert outcomes.count("created") == 5
        assert outcomes.count("full") == 15
        assert store.get_class(small.id).current_strength == 5
        assert store.get_department(department.id).total_students == 5
        assert store.check_counters().consistent
