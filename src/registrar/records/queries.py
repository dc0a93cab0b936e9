"""Filtering, sorting and pagination for list queries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func, or_, select
from sqlalchemy.orm import Session

from registrar.records.exceptions import RecordValidationError
from registrar.records.models import Course, Department, SchoolClass, Student

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class Page(Generic[T]):
    """One page of a list query."""

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


@dataclass
class PageRequest:
    """Paging and ordering requested by a caller."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort_by: str | None = None
    sort_order: str | None = None

    def validate(self) -> None:
        errors: dict[str, list[str]] = {}
        if self.page < 1:
            errors["page"] = ["Page must be a positive integer"]
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            errors["limit"] = [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]
        if self.sort_order is not None and self.sort_order not in ("asc", "desc"):
            errors["sortOrder"] = ["Sort order must be 'asc' or 'desc'"]
        if errors:
            raise RecordValidationError(errors)


# Wire name -> sortable attribute, with each entity's default ordering
STUDENT_SORTS: dict[str, Any] = {
    "createdAt": Student.created_at,
    "updatedAt": Student.updated_at,
    "name": Student.name,
    "rollNumber": Student.roll_number,
    "email": Student.email,
    "enrollmentDate": Student.enrollment_date,
    "dateOfBirth": Student.date_of_birth,
    "status": Student.status,
    "academicYear": Student.academic_year,
}
CLASS_SORTS: dict[str, Any] = {
    "className": SchoolClass.class_name,
    "section": SchoolClass.section,
    "academicYear": SchoolClass.academic_year,
    "capacity": SchoolClass.capacity,
    "currentStrength": SchoolClass.current_strength,
    "status": SchoolClass.status,
    "createdAt": SchoolClass.created_at,
}
DEPARTMENT_SORTS: dict[str, Any] = {
    "departmentName": Department.department_name,
    "departmentCode": Department.department_code,
    "establishmentYear": Department.establishment_year,
    "totalStudents": Department.total_students,
    "totalFaculty": Department.total_faculty,
    "status": Department.status,
    "createdAt": Department.created_at,
}
COURSE_SORTS: dict[str, Any] = {
    "courseCode": Course.course_code,
    "courseName": Course.course_name,
    "creditHours": Course.credit_hours,
    "semester": Course.semester,
    "year": Course.year,
    "maxStudents": Course.max_students,
    "enrolledStudents": Course.enrolled_students,
    "status": Course.status,
    "createdAt": Course.created_at,
}


def _sort_column(sorts: dict[str, Any], sort_by: str) -> Any:
    if sort_by in sorts:
        return sorts[sort_by]
    for column in sorts.values():
        if column.key == sort_by:
            return column
    allowed = ", ".join(sorts)
    raise RecordValidationError.for_field("sortBy", f"Cannot sort by '{sort_by}'. Use one of: {allowed}")


def paginate(
    session: Session,
    stmt: Select[Any],
    request: PageRequest,
    sorts: dict[str, Any],
    default_sort: tuple[str, str],
    tiebreak: list[Any],
) -> Page[Any]:
    """Count, order and slice a select of ORM entities.

    Args:
        session: Open session.
        stmt: Filtered select of one entity.
        request: Requested page, size and ordering.
        sorts: Sort whitelist for the entity.
        default_sort: (wire name, order) used when the caller gives none.
        tiebreak: Columns appended to the ordering so pages are stable.
    """
    request.validate()
    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0

    sort_by = request.sort_by or default_sort[0]
    sort_order = request.sort_order or default_sort[1]
    column = _sort_column(sorts, sort_by)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    offset = (request.page - 1) * request.limit
    stmt = stmt.order_by(ordering, *tiebreak).offset(offset).limit(request.limit)
    items = list(session.execute(stmt).unique().scalars().all())
    return Page(items=items, total=total, page=request.page, limit=request.limit)


def years_ago(today: date, years: int) -> date:
    """The same calendar day ``years`` years before ``today``."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


@dataclass
class StudentFilter:
    """Field filters for student list and search queries.

    Text filters are case-insensitive substring matches; id, enum and year
    filters are exact.
    """

    q: str | None = None
    name: str | None = None
    roll_number: str | None = None
    email: str | None = None
    phone: str | None = None
    class_id: str | None = None
    department_id: str | None = None
    course_id: str | None = None
    status: str | None = None
    gender: str | None = None
    academic_year: str | None = None
    city: str | None = None
    state: str | None = None
    min_age: int | None = None
    max_age: int | None = None
    enrollment_date_from: date | None = None
    enrollment_date_to: date | None = None
    today: date = field(default_factory=date.today)

    def conditions(self) -> list[ColumnElement[bool]]:
        city = Student.address["city"].as_string()
        state = Student.address["state"].as_string()
        conds: list[ColumnElement[bool]] = []

        if self.q:
            conds.append(
                or_(
                    Student.name.icontains(self.q, autoescape=True),
                    Student.roll_number.icontains(self.q, autoescape=True),
                    Student.email.icontains(self.q, autoescape=True),
                    Student.phone.icontains(self.q, autoescape=True),
                    Student.guardian_info["name"].as_string().icontains(self.q, autoescape=True),
                    city.icontains(self.q, autoescape=True),
                )
            )
        if self.name:
            conds.append(Student.name.icontains(self.name, autoescape=True))
        if self.roll_number:
            conds.append(Student.roll_number.icontains(self.roll_number, autoescape=True))
        if self.email:
            conds.append(Student.email.icontains(self.email, autoescape=True))
        if self.phone:
            conds.append(Student.phone.icontains(self.phone, autoescape=True))
        if self.class_id:
            conds.append(Student.class_id == self.class_id)
        if self.department_id:
            conds.append(Student.department_id == self.department_id)
        if self.course_id:
            conds.append(Student.courses.any(Course.id == self.course_id))
        if self.status:
            conds.append(Student.status == self.status)
        if self.gender:
            conds.append(Student.gender == self.gender)
        if self.academic_year:
            conds.append(Student.academic_year == self.academic_year)
        if self.city:
            conds.append(city.icontains(self.city, autoescape=True))
        if self.state:
            conds.append(state.icontains(self.state, autoescape=True))
        if self.enrollment_date_from:
            conds.append(Student.enrollment_date >= self.enrollment_date_from)
        if self.enrollment_date_to:
            conds.append(Student.enrollment_date <= self.enrollment_date_to)
        if self.min_age is not None:
            conds.append(Student.date_of_birth <= years_ago(self.today, self.min_age))
        if self.max_age is not None:
            conds.append(Student.date_of_birth > years_ago(self.today, self.max_age + 1))
        return conds


@dataclass
class ClassFilter:
    status: str | None = None
    department_id: str | None = None
    academic_year: str | None = None

    def conditions(self) -> list[ColumnElement[bool]]:
        conds: list[ColumnElement[bool]] = []
        if self.status:
            conds.append(SchoolClass.status == self.status)
        if self.department_id:
            conds.append(SchoolClass.department_id == self.department_id)
        if self.academic_year:
            conds.append(SchoolClass.academic_year == self.academic_year)
        return conds


@dataclass
class DepartmentFilter:
    status: str | None = None

    def conditions(self) -> list[ColumnElement[bool]]:
        return [Department.status == self.status] if self.status else []


@dataclass
class CourseFilter:
    department_id: str | None = None
    semester: str | None = None
    year: int | None = None
    course_type: str | None = None
    status: str | None = None

    def conditions(self) -> list[ColumnElement[bool]]:
        conds: list[ColumnElement[bool]] = []
        if self.department_id:
            conds.append(Course.department_id == self.department_id)
        if self.semester:
            conds.append(Course.semester == self.semester)
        if self.year is not None:
            conds.append(Course.year == self.year)
        if self.course_type:
            conds.append(Course.course_type == self.course_type)
        if self.status:
            conds.append(Course.status == self.status)
        return conds
