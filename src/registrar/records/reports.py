"""Read-only aggregate reports.

Each report is a plain function of the current table contents. Aggregation is
pushed down to SQL; empty tables produce zeroed reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.orm import Session

from registrar.records.models import (
    Course,
    Department,
    DepartmentStatus,
    SchoolClass,
    Student,
    StudentStatus,
    age_on,
    utilization,
)


def _avg(value: Any) -> float:
    return round(float(value), 2) if value is not None else 0.0


def _distribution(session: Session, column: Any) -> dict[str, int]:
    rows = session.execute(select(column, func.count()).group_by(column).order_by(column))
    return {key: count for key, count in rows}


# --- Students ---


@dataclass
class DepartmentHeadcount:
    department_id: str
    department_name: str
    department_code: str
    students: int


@dataclass
class ClassHeadcount:
    class_id: str
    class_code: str
    academic_year: str
    students: int
    capacity: int
    percentage_full: float


@dataclass
class StudentReport:
    total_students: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_gender: dict[str, int] = field(default_factory=dict)
    by_department: list[DepartmentHeadcount] = field(default_factory=list)
    by_class: list[ClassHeadcount] = field(default_factory=list)


def student_report(session: Session) -> StudentReport:
    """Student totals with status, gender, department and class breakdowns."""
    report = StudentReport(
        total_students=session.scalar(select(func.count()).select_from(Student)) or 0,
        by_status=_distribution(session, Student.status),
        by_gender=_distribution(session, Student.gender),
    )

    dept_rows = session.execute(
        select(
            Department.id,
            Department.department_name,
            Department.department_code,
            func.count(Student.id),
        )
        .join(Student, Student.department_id == Department.id)
        .group_by(Department.id)
        .order_by(func.count(Student.id).desc(), Department.department_code)
    )
    report.by_department = [DepartmentHeadcount(*row) for row in dept_rows]

    class_rows = session.execute(
        select(
            SchoolClass.id,
            SchoolClass.class_name,
            SchoolClass.section,
            SchoolClass.academic_year,
            func.count(Student.id),
            SchoolClass.capacity,
        )
        .join(Student, Student.class_id == SchoolClass.id)
        .group_by(SchoolClass.id)
        .order_by(SchoolClass.class_name, SchoolClass.section)
    )
    report.by_class = [
        ClassHeadcount(
            class_id=class_id,
            class_code=f"{name}-{section}",
            academic_year=year,
            students=count,
            capacity=capacity,
            percentage_full=utilization(count, capacity),
        )
        for class_id, name, section, year, count, capacity in class_rows
    ]
    return report


# --- Classes ---


@dataclass
class ClassDepartmentRollup:
    department_id: str
    department_name: str
    classes: int
    capacity: int
    students: int
    utilization: float


@dataclass
class ClassReport:
    total_classes: int = 0
    total_capacity: int = 0
    total_students: int = 0
    available_seats: int = 0
    average_class_size: float = 0.0
    min_class_size: int = 0
    max_class_size: int = 0
    utilization: float = 0.0
    by_department: list[ClassDepartmentRollup] = field(default_factory=list)
    by_status: dict[str, int] = field(default_factory=dict)


def class_report(session: Session) -> ClassReport:
    """Capacity and utilization over every class."""
    total, capacity, students, average, smallest, largest = session.execute(
        select(
            func.count(SchoolClass.id),
            func.coalesce(func.sum(SchoolClass.capacity), 0),
            func.coalesce(func.sum(SchoolClass.current_strength), 0),
            func.avg(SchoolClass.current_strength),
            func.coalesce(func.min(SchoolClass.current_strength), 0),
            func.coalesce(func.max(SchoolClass.current_strength), 0),
        )
    ).one()
    report = ClassReport(
        total_classes=total,
        total_capacity=capacity,
        total_students=students,
        available_seats=capacity - students,
        average_class_size=_avg(average),
        min_class_size=smallest,
        max_class_size=largest,
        utilization=utilization(students, capacity),
        by_status=_distribution(session, SchoolClass.status),
    )

    rows = session.execute(
        select(
            Department.id,
            Department.department_name,
            func.count(SchoolClass.id),
            func.sum(SchoolClass.capacity),
            func.sum(SchoolClass.current_strength),
        )
        .join(SchoolClass, SchoolClass.department_id == Department.id)
        .group_by(Department.id)
        .order_by(Department.department_name)
    )
    report.by_department = [
        ClassDepartmentRollup(
            department_id=dept_id,
            department_name=name,
            classes=count,
            capacity=cap,
            students=used,
            utilization=utilization(used, cap),
        )
        for dept_id, name, count, cap, used in rows
    ]
    return report


# --- Departments ---


@dataclass
class DepartmentRow:
    department_id: str
    department_name: str
    department_code: str
    status: str
    total_students: int
    total_faculty: int
    classes: int
    courses: int
    age: int


@dataclass
class DepartmentReport:
    total_departments: int = 0
    active_departments: int = 0
    inactive_departments: int = 0
    total_faculty: int = 0
    total_students: int = 0
    oldest_establishment_year: int | None = None
    newest_establishment_year: int | None = None
    average_faculty: float = 0.0
    average_students: float = 0.0
    student_faculty_ratio: float = 0.0
    departments: list[DepartmentRow] = field(default_factory=list)
    by_status: dict[str, int] = field(default_factory=dict)


def department_report(session: Session, today: date | None = None) -> DepartmentReport:
    """Department totals plus one row per department with its class and course counts."""
    today = today or date.today()
    total, faculty, students, oldest, newest, avg_faculty, avg_students = session.execute(
        select(
            func.count(Department.id),
            func.coalesce(func.sum(Department.total_faculty), 0),
            func.coalesce(func.sum(Department.total_students), 0),
            func.min(Department.establishment_year),
            func.max(Department.establishment_year),
            func.avg(Department.total_faculty),
            func.avg(Department.total_students),
        )
    ).one()
    by_status = _distribution(session, Department.status)
    active = by_status.get(DepartmentStatus.ACTIVE.value, 0)

    report = DepartmentReport(
        total_departments=total,
        active_departments=active,
        inactive_departments=total - active,
        total_faculty=faculty,
        total_students=students,
        oldest_establishment_year=oldest,
        newest_establishment_year=newest,
        average_faculty=_avg(avg_faculty),
        average_students=_avg(avg_students),
        student_faculty_ratio=round(students / faculty, 2) if faculty else 0.0,
        by_status=by_status,
    )

    class_counts = (
        select(SchoolClass.department_id.label("dept_id"), func.count().label("n"))
        .group_by(SchoolClass.department_id)
        .subquery()
    )
    course_counts = (
        select(Course.department_id.label("dept_id"), func.count().label("n"))
        .group_by(Course.department_id)
        .subquery()
    )
    rows = session.execute(
        select(
            Department,
            func.coalesce(class_counts.c.n, 0),
            func.coalesce(course_counts.c.n, 0),
        )
        .outerjoin(class_counts, class_counts.c.dept_id == Department.id)
        .outerjoin(course_counts, course_counts.c.dept_id == Department.id)
        .order_by(Department.department_name)
    )
    report.departments = [
        DepartmentRow(
            department_id=dept.id,
            department_name=dept.department_name,
            department_code=dept.department_code,
            status=dept.status,
            total_students=dept.total_students,
            total_faculty=dept.total_faculty,
            classes=classes,
            courses=courses,
            age=today.year - dept.establishment_year,
        )
        for dept, classes, courses in rows
    ]
    return report


# --- Courses ---


@dataclass
class CourseDepartmentRollup:
    department_id: str
    department_name: str
    courses: int
    capacity: int
    enrolled: int
    enrollment_rate: float


@dataclass
class SemesterStat:
    semester: str
    courses: int
    capacity: int
    enrolled: int
    enrollment_rate: float


@dataclass
class CourseReport:
    total_courses: int = 0
    total_capacity: int = 0
    total_enrolled: int = 0
    available_seats: int = 0
    enrollment_rate: float = 0.0
    average_credit_hours: float = 0.0
    min_credit_hours: float = 0.0
    max_credit_hours: float = 0.0
    by_department: list[CourseDepartmentRollup] = field(default_factory=list)
    by_type: dict[str, int] = field(default_factory=dict)
    by_semester: list[SemesterStat] = field(default_factory=list)


def course_report(session: Session) -> CourseReport:
    """Enrollment against capacity per department, type and semester."""
    total, capacity, enrolled, avg_credits, min_credits, max_credits = session.execute(
        select(
            func.count(Course.id),
            func.coalesce(func.sum(Course.max_students), 0),
            func.coalesce(func.sum(Course.enrolled_students), 0),
            func.avg(Course.credit_hours),
            func.coalesce(func.min(Course.credit_hours), 0),
            func.coalesce(func.max(Course.credit_hours), 0),
        )
    ).one()
    report = CourseReport(
        total_courses=total,
        total_capacity=capacity,
        total_enrolled=enrolled,
        available_seats=capacity - enrolled,
        enrollment_rate=utilization(enrolled, capacity),
        average_credit_hours=_avg(avg_credits),
        min_credit_hours=float(min_credits),
        max_credit_hours=float(max_credits),
        by_type=_distribution(session, Course.course_type),
    )

    dept_rows = session.execute(
        select(
            Department.id,
            Department.department_name,
            func.count(Course.id),
            func.sum(Course.max_students),
            func.sum(Course.enrolled_students),
        )
        .join(Course, Course.department_id == Department.id)
        .group_by(Department.id)
        .order_by(Department.department_name)
    )
    report.by_department = [
        CourseDepartmentRollup(
            department_id=dept_id,
            department_name=name,
            courses=count,
            capacity=cap,
            enrolled=used,
            enrollment_rate=utilization(used, cap),
        )
        for dept_id, name, count, cap, used in dept_rows
    ]

    semester_rows = session.execute(
        select(
            Course.semester,
            func.count(Course.id),
            func.sum(Course.max_students),
            func.sum(Course.enrolled_students),
        )
        .group_by(Course.semester)
        .order_by(Course.semester)
    )
    report.by_semester = [
        SemesterStat(
            semester=semester,
            courses=count,
            capacity=cap,
            enrolled=used,
            enrollment_rate=utilization(used, cap),
        )
        for semester, count, cap, used in semester_rows
    ]
    return report


# --- Search ---


@dataclass
class SearchStatistics:
    total_students: int = 0
    active_students: int = 0
    average_age: float = 0.0


def search_statistics(
    session: Session,
    conditions: list[ColumnElement[bool]],
    today: date | None = None,
) -> SearchStatistics:
    """Headcount, active count and mean age over the students matching ``conditions``."""
    today = today or date.today()
    rows = session.execute(select(Student.date_of_birth, Student.status).where(*conditions)).all()
    if not rows:
        return SearchStatistics()
    ages = [age_on(born, today) for born, _ in rows]
    return SearchStatistics(
        total_students=len(rows),
        active_students=sum(1 for _, status in rows if status == StudentStatus.ACTIVE.value),
        average_age=round(sum(ages) / len(ages), 2),
    )
