"""SQLAlchemy models for the records layer."""

from __future__ import annotations

import uuid
from datetime import date, datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class DepartmentStatus(StrEnum):
    """Department status enum."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    UNDER_MAINTENANCE = "Under Maintenance"


class ClassStatus(StrEnum):
    """Class status enum."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    COMPLETED = "Completed"


class CourseStatus(StrEnum):
    """Course status enum."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class StudentStatus(StrEnum):
    """Student status enum."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    GRADUATED = "Graduated"
    SUSPENDED = "Suspended"


class Gender(StrEnum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Semester(StrEnum):
    FALL = "Fall"
    SPRING = "Spring"
    SUMMER = "Summer"
    WINTER = "Winter"


class CourseType(StrEnum):
    CORE = "Core"
    ELECTIVE = "Elective"
    LAB = "Lab"
    PROJECT = "Project"
    THESIS = "Thesis"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def age_on(born: date, today: date | None = None) -> int:
    """Whole years between a birth date and today."""
    today = today or date.today()
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return years


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# Student.courses set
student_courses = Table(
    "student_courses",
    Base.metadata,
    Column("student_id", String(36), ForeignKey("students.id"), primary_key=True),
    Column("course_id", String(36), ForeignKey("courses.id"), primary_key=True, index=True),
)

# Course.prerequisites list
course_prerequisites = Table(
    "course_prerequisites",
    Base.metadata,
    Column("course_id", String(36), ForeignKey("courses.id"), primary_key=True),
    Column("prerequisite_id", String(36), ForeignKey("courses.id"), primary_key=True, index=True),
)


class Department(Base):
    """Department model - owns classes, courses and students."""

    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    department_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    department_code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)
    head_of_department: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    establishment_year: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_faculty: Mapped[int] = mapped_column(Integer, nullable=False)
    total_students: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    facilities: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        department_name: str,
        department_code: str,
        head_of_department: dict[str, Any],
        establishment_year: int,
        id: str | None = None,
        total_faculty: int = 0,
        total_students: int = 0,
        facilities: list[str] | None = None,
        status: str = DepartmentStatus.ACTIVE.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.department_name = department_name
        self.department_code = department_code
        self.head_of_department = head_of_department
        self.establishment_year = establishment_year
        self.total_faculty = total_faculty
        self.total_students = total_students
        self.facilities = facilities if facilities is not None else []
        self.status = status

    @property
    def age(self) -> int:
        """Years since establishment."""
        return date.today().year - self.establishment_year

    def __repr__(self) -> str:
        return f"<Department(id={self.id!r}, code={self.department_code!r})>"


class SchoolClass(Base):
    """Class model - a section of students within an academic year."""

    __tablename__ = "classes"
    __table_args__ = (UniqueConstraint("class_name", "section", "academic_year"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    class_name: Mapped[str] = mapped_column(String(50), nullable=False)
    section: Mapped[str] = mapped_column(String(5), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_strength: Mapped[int] = mapped_column(Integer, nullable=False)
    department_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("departments.id"), nullable=False, index=True
    )
    class_teacher: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    schedule: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    department: Mapped[Department] = relationship("Department", lazy="joined")

    def __init__(
        self,
        class_name: str,
        section: str,
        academic_year: str,
        capacity: int,
        department_id: str,
        id: str | None = None,
        current_strength: int = 0,
        status: str = ClassStatus.ACTIVE.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.class_name = class_name
        self.section = section
        self.academic_year = academic_year
        self.capacity = capacity
        self.department_id = department_id
        self.current_strength = current_strength
        self.status = status

    @property
    def class_code(self) -> str:
        return f"{self.class_name}-{self.section}"

    @property
    def available_seats(self) -> int:
        return self.capacity - self.current_strength

    @property
    def is_full(self) -> bool:
        return self.current_strength >= self.capacity

    def __repr__(self) -> str:
        return f"<SchoolClass(id={self.id!r}, code={self.class_code!r})>"


class Course(Base):
    """Course model - a unit students enroll in, possibly gated by prerequisites."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    credit_hours: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    department_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("departments.id"), nullable=False, index=True
    )
    instructor: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    semester: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    schedule: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_students: Mapped[int] = mapped_column(Integer, nullable=False)
    course_type: Mapped[str] = mapped_column(String(20), nullable=False)
    grading_policy: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    resources: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    department: Mapped[Department] = relationship("Department", lazy="joined")
    prerequisites: Mapped[list[Course]] = relationship(
        "Course",
        secondary=course_prerequisites,
        primaryjoin=id == course_prerequisites.c.course_id,
        secondaryjoin=id == course_prerequisites.c.prerequisite_id,
        order_by="Course.course_code",
    )

    def __init__(
        self,
        course_name: str,
        course_code: str,
        credit_hours: float,
        department_id: str,
        semester: str,
        year: int,
        id: str | None = None,
        max_students: int = 60,
        enrolled_students: int = 0,
        course_type: str = CourseType.CORE.value,
        status: str = CourseStatus.ACTIVE.value,
        resources: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.course_name = course_name
        self.course_code = course_code
        self.credit_hours = credit_hours
        self.department_id = department_id
        self.semester = semester
        self.year = year
        self.max_students = max_students
        self.enrolled_students = enrolled_students
        self.course_type = course_type
        self.status = status
        self.resources = resources if resources is not None else []

    @property
    def prerequisite_ids(self) -> list[str]:
        return [p.id for p in self.prerequisites]

    @property
    def available_seats(self) -> int:
        return self.max_students - self.enrolled_students

    @property
    def is_full(self) -> bool:
        return self.enrolled_students >= self.max_students

    @property
    def enrollment_rate(self) -> float:
        return utilization(self.enrolled_students, self.max_students)

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.course_code!r})>"


class Student(Base):
    """Student model - the source of truth for every reference counter."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    roll_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id"), nullable=False, index=True
    )
    department_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("departments.id"), nullable=False, index=True
    )
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    guardian_info: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    photo: Mapped[str] = mapped_column(String(255), nullable=False)
    documents: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    school_class: Mapped[SchoolClass] = relationship("SchoolClass", lazy="joined")
    department: Mapped[Department] = relationship("Department", lazy="joined")
    courses: Mapped[list[Course]] = relationship(
        "Course",
        secondary=student_courses,
        lazy="selectin",
        order_by="Course.course_code",
    )

    def __init__(
        self,
        name: str,
        roll_number: str,
        email: str,
        phone: str,
        address: dict[str, Any],
        date_of_birth: date,
        gender: str,
        class_id: str,
        department_id: str,
        academic_year: str,
        guardian_info: dict[str, Any],
        id: str | None = None,
        enrollment_date: date | None = None,
        status: str = StudentStatus.ACTIVE.value,
        photo: str = "default-avatar.png",
        documents: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.roll_number = roll_number
        self.email = email
        self.phone = phone
        self.address = address
        self.date_of_birth = date_of_birth
        self.gender = gender
        self.class_id = class_id
        self.department_id = department_id
        self.academic_year = academic_year
        self.guardian_info = guardian_info
        self.enrollment_date = enrollment_date if enrollment_date is not None else date.today()
        self.status = status
        self.photo = photo
        self.documents = documents if documents is not None else []

    @property
    def course_ids(self) -> list[str]:
        return [c.id for c in self.courses]

    @property
    def age(self) -> int:
        return age_on(self.date_of_birth)

    @property
    def full_address(self) -> str:
        a = self.address or {}
        return (
            f"{a.get('street', '')}, {a.get('city', '')}, {a.get('state', '')} "
            f"{a.get('zipCode', '')}, {a.get('country', 'India')}"
        )

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, roll_number={self.roll_number!r})>"


def utilization(used: float, capacity: float) -> float:
    """Percentage of capacity in use, 0 when there is no capacity."""
    if not capacity:
        return 0.0
    return round(used / capacity * 100, 2)
