"""Unit tests for filtering, sorting and pagination."""

from datetime import date

import pytest

from registrar.records import (
    ClassFilter,
    CourseFilter,
    DepartmentFilter,
    PageRequest,
    RecordValidationError,
    StudentFilter,
)
from registrar.records.queries import Page, years_ago


@pytest.mark.unit
class TestPage:
    """Tests for Page metadata."""

    def test_metadata(self) -> None:
        page = Page(items=[1, 2], total=12, page=2, limit=5)

        assert page.count == 2
        assert page.total_pages == 3
        assert page.has_next_page
        assert page.has_prev_page

    def test_empty(self) -> None:
        page = Page(items=[], total=0, page=1, limit=10)

        assert page.total_pages == 0
        assert not page.has_next_page
        assert not page.has_prev_page


@pytest.mark.unit
class TestPageRequest:
    """Tests for PageRequest validation."""

    def test_invalid_values(self) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            PageRequest(page=0, limit=500, sort_order="up").validate()

        assert set(exc_info.value.errors) == {"page", "limit", "sortOrder"}

    def test_unknown_sort_field(self, store) -> None:
        with pytest.raises(RecordValidationError) as exc_info:
            store.list_students(request=PageRequest(sort_by="password"))
        assert "sortBy" in exc_info.value.errors


@pytest.mark.unit
class TestYearsAgo:
    def test_leap_day(self) -> None:
        assert years_ago(date(2024, 2, 29), 1) == date(2023, 2, 28)
        assert years_ago(date(2024, 3, 1), 20) == date(2004, 3, 1)


@pytest.mark.unit
class TestStudentListing:
    """Tests for student list queries."""

    def test_paging(self, store, make_student) -> None:
        for _ in range(7):
            make_student()

        by_roll = {"limit": 3, "sort_by": "rollNumber", "sort_order": "asc"}
        first = store.list_students(request=PageRequest(page=1, **by_roll))
        last = store.list_students(request=PageRequest(page=3, **by_roll))

        assert first.total == 7
        assert first.count == 3
        assert first.total_pages == 3
        assert last.count == 1
        assert not last.has_next_page
        assert [s.roll_number for s in first.items] == ["CS2023001", "CS2023002", "CS2023003"]

    def test_sort_descending_snake_case_key(self, store, make_student) -> None:
        make_student(name="Alice Adams")
        make_student(name="Zed Zimmer")

        page = store.list_students(request=PageRequest(sort_by="name", sort_order="desc"))

        assert [s.name for s in page.items] == ["Zed Zimmer", "Alice Adams"]
        page = store.list_students(request=PageRequest(sort_by="roll_number", sort_order="asc"))
        assert page.items[0].roll_number == "CS2023001"

    def test_free_text_search(self, store, make_student) -> None:
        make_student(name="Priya Sharma")
        make_student(name="Rahul Verma", email="rahul@uni.edu")

        assert store.list_students(StudentFilter(q="sharma")).total == 1
        assert store.list_students(StudentFilter(q="RAHUL@")).total == 1
        assert store.list_students(StudentFilter(q="pune")).total == 2

    def test_wildcards_are_literal(self, store, make_student) -> None:
        make_student(name="Percent Person")

        assert store.list_students(StudentFilter(name="%")).total == 0

    def test_exact_filters(self, store, make_student, make_course) -> None:
        course = make_course("CS201")
        make_student(course_ids=[course.id], gender="Female")
        make_student(status="Graduated")

        assert store.list_students(StudentFilter(course_id=course.id)).total == 1
        assert store.list_students(StudentFilter(gender="Female")).total == 1
        assert store.list_students(StudentFilter(status="Graduated")).total == 1
        assert store.list_students(StudentFilter(academic_year="2023-2024")).total == 2

    def test_address_filters(self, store, make_student) -> None:
        make_student(
            address={"street": "5 Lake Rd", "city": "Mumbai", "state": "MH", "zipCode": "400001"}
        )
        make_student()

        assert store.list_students(StudentFilter(city="mum")).total == 1
        assert store.list_students(StudentFilter(state="mh")).total == 2

    def test_age_bounds(self, store, make_student) -> None:
        today = date(2024, 6, 1)
        make_student(date_of_birth=date(2004, 6, 1))  # 20
        make_student(date_of_birth=date(2004, 6, 2))  # 19
        make_student(date_of_birth=date(1999, 1, 1))  # 25

        assert store.list_students(StudentFilter(min_age=20, today=today)).total == 2
        assert store.list_students(StudentFilter(max_age=19, today=today)).total == 1
        assert store.list_students(StudentFilter(min_age=20, max_age=20, today=today)).total == 1

    def test_enrollment_date_range(self, store, make_student) -> None:
        make_student(enrollment_date=date(2023, 8, 1))
        make_student(enrollment_date=date(2024, 1, 15))

        filters = StudentFilter(
            enrollment_date_from=date(2023, 12, 1), enrollment_date_to=date(2024, 2, 1)
        )
        assert store.list_students(filters).total == 1


@pytest.mark.unit
class TestOtherListings:
    """Tests for class, department and course listings."""

    def test_class_filters(self, store, department, school_class) -> None:
        store.create_class(
            class_name="CS201",
            section="A",
            academic_year="2025-2026",
            capacity=20,
            department_id=department.id,
            status="Inactive",
        )

        assert store.list_classes().total == 2
        assert store.list_classes(ClassFilter(academic_year="2025-2026")).total == 1
        assert store.list_classes(ClassFilter(status="Active")).items[0].id == school_class.id
        assert store.list_classes(ClassFilter(department_id="other")).total == 0

    def test_department_status_filter(self, store, department) -> None:
        assert store.list_departments(DepartmentFilter(status="Active")).total == 1
        assert store.list_departments(DepartmentFilter(status="Inactive")).total == 0

    def test_course_filters(self, store, make_course) -> None:
        make_course("CS201", semester="Fall", year=2)
        make_course("CS301", semester="Spring", year=3, course_type="Elective")

        assert store.list_courses().total == 2
        assert store.list_courses(CourseFilter(semester="Spring")).total == 1
        assert store.list_courses(CourseFilter(year=2)).items[0].course_code == "CS201"
        assert store.list_courses(CourseFilter(course_type="Elective")).total == 1

    def test_course_sort(self, store, make_course) -> None:
        make_course("CS201", max_students=10)
        make_course("CS301", max_students=50)

        page = store.list_courses(request=PageRequest(sort_by="maxStudents", sort_order="desc"))
        assert [c.course_code for c in page.items] == ["CS301", "CS201"]
