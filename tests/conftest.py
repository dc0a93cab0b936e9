"""Shared pytest fixtures and configuration."""

from datetime import date

import pytest

from registrar.records import RecordStore


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def store():
    """In-memory RecordStore."""
    s = RecordStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def department(store):
    return store.create_department(
        department_name="Computer Science",
        department_code="CS",
        head_of_department={"name": "Dr. Smith", "email": "smith@uni.edu", "phone": "1234567890"},
        establishment_year=2000,
    )


@pytest.fixture
def school_class(store, department):
    return store.create_class(
        class_name="CS101",
        section="A",
        academic_year="2024-2025",
        capacity=10,
        department_id=department.id,
    )


@pytest.fixture
def make_student(store, school_class, department):
    """Factory creating students in the default class and department."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "name": f"Student {n}",
            "roll_number": f"CS{2023000 + n}",
            "email": f"student{n}@uni.edu",
            "phone": f"98765{n:05d}",
            "date_of_birth": date(2003, 5, 1),
            "gender": "Male",
            "address": {"street": "1 Main St", "city": "Pune", "state": "MH", "zipCode": "411001"},
            "academic_year": "2023-2024",
            "guardian_info": {"name": f"Guardian {n}", "relationship": "Father", "phone": "9000000000"},
            "class_id": school_class.id,
            "department_id": department.id,
        }
        fields.update(overrides)
        return store.create_student(**fields)

    return _make


@pytest.fixture
def make_course(store, department):
    """Factory creating courses in the default department."""

    def _make(code, max_students=60, prerequisite_ids=None, **overrides):
        fields = {
            "course_name": f"Course {code}",
            "course_code": code,
            "credit_hours": 3,
            "department_id": department.id,
            "semester": "Fall",
            "year": 1,
            "max_students": max_students,
        }
        fields.update(overrides)
        return store.create_course(prerequisite_ids=prerequisite_ids, **fields)

    return _make
