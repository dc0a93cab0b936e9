"""Pydantic models for REST API.

Field names are snake_case in Python and camelCase on the wire; input accepts
either. Student references use the short wire names ``class``, ``department``
and ``courses``.
"""

from collections.abc import Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from registrar.records.models import (
    ClassStatus,
    CourseStatus,
    CourseType,
    DepartmentStatus,
    Gender,
    Semester,
    StudentStatus,
    age_on,
)

T = TypeVar("T")

EMAIL_PATTERN = r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$"
PHONE_PATTERN = r"^[0-9]{10,11}$"
ACADEMIC_YEAR_PATTERN = r"^\d{4}-\d{4}$"

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
ResourceType = Literal["Syllabus", "Notes", "Assignment", "Reference", "Video"]


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_fields(self, *, partial: bool = False) -> dict[str, Any]:
        """Model attributes for the records layer.

        Nested records become JSON-ready dicts with camelCase keys. With
        ``partial`` only fields the caller sent (and that are not null) are kept.
        """
        names = self.model_fields_set if partial else type(self).model_fields.keys()
        fields: dict[str, Any] = {}
        for name in names:
            value = getattr(self, name)
            if partial and value is None:
                continue
            fields[name] = _plain(value)
        return fields


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def field_errors(errors: Sequence[Any]) -> dict[str, list[str]]:
    """Group pydantic errors by dotted field path, dropping the request location prefix.

    A malformed JSON body is reported at ``("body", <offset>)``; the offset is
    not a field, so such errors land under ``request``.
    """
    grouped: dict[str, list[str]] = {}
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
            while loc and isinstance(loc[0], int):
                loc = loc[1:]
        key = ".".join(str(part) for part in loc) or "request"
        grouped.setdefault(key, []).append(err.get("msg", "Invalid value"))
    return grouped


def _upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class APIResponse(CamelModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class ErrorResponse(CamelModel):
    """Error envelope returned by every exception handler."""

    success: bool = False
    error: str
    errors: dict[str, list[str]] | None = None
    details: dict[str, Any] | None = None


class Pagination(CamelModel):
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class PaginatedResponse(CamelModel, Generic[T]):
    """List envelope: one page of items plus paging metadata."""

    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: list[T]


def paginated(page: Any, item_model: type[BaseModel]) -> dict[str, Any]:
    """Envelope fields for a records ``Page`` converted with ``item_model``."""
    return {
        "count": page.count,
        "total": page.total,
        "pagination": Pagination(
            page=page.page,
            limit=page.limit,
            total_pages=page.total_pages,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        ),
        "data": [item_model.model_validate(item) for item in page.items],
    }


# Nested records


class Contact(CamelModel):
    name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)


class HeadOfDepartment(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., min_length=1)
    qualification: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)


class Location(CamelModel):
    building: str | None = None
    floor: str | None = None
    room: str | None = None


class TimeSlot(CamelModel):
    start: str | None = None
    end: str | None = None


class ClassSchedule(CamelModel):
    days: list[Weekday] = Field(default_factory=list)
    time: TimeSlot | None = None
    room_number: str | None = None


class CourseSchedule(CamelModel):
    days: list[Weekday] = Field(default_factory=list)
    time: TimeSlot | None = None
    room: str | None = None


class GradingPolicy(CamelModel):
    assignments: float | None = Field(default=None, ge=0, le=100)
    midterm: float | None = Field(default=None, ge=0, le=100)
    final: float | None = Field(default=None, ge=0, le=100)
    projects: float | None = Field(default=None, ge=0, le=100)
    attendance: float | None = Field(default=None, ge=0, le=100)


class Resource(CamelModel):
    type: ResourceType
    title: str
    url: str
    uploaded_at: datetime | None = None


class Address(CamelModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = "India"


class GuardianInfo(CamelModel):
    name: str = Field(..., min_length=1)
    relationship: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)


class Document(CamelModel):
    name: str
    url: str
    uploaded_at: datetime | None = None


# Short references embedded in other responses


class DepartmentRef(CamelModel):
    id: str
    department_name: str
    department_code: str


class ClassRef(CamelModel):
    id: str
    class_name: str
    section: str
    class_code: str
    academic_year: str


class CourseRef(CamelModel):
    id: str
    course_code: str
    course_name: str
    credit_hours: float


class StudentRef(CamelModel):
    id: str
    name: str
    roll_number: str
    email: str
    status: str


# Department models


def _not_future_year(value: int | None) -> int | None:
    if value is not None and value > date.today().year:
        raise ValueError("Establishment year cannot be in the future")
    return value


class DepartmentCreate(CamelModel):
    """Request model for creating a department."""

    department_name: str = Field(..., min_length=1, max_length=100)
    department_code: str = Field(..., pattern=r"^[A-Z]{2,6}$")
    head_of_department: HeadOfDepartment
    contact_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: str | None = None
    establishment_year: int = Field(..., ge=1900)
    description: str | None = Field(default=None, max_length=1000)
    total_faculty: int = Field(default=0, ge=0)
    location: Location | None = None
    facilities: list[str] = Field(default_factory=list)
    status: DepartmentStatus = DepartmentStatus.ACTIVE

    @field_validator("department_code", mode="before")
    @classmethod
    def upper_code(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator("contact_email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("establishment_year")
    @classmethod
    def check_year(cls, value: Any) -> Any:
        return _not_future_year(value)


class DepartmentUpdate(CamelModel):
    """Request model for updating a department (partial update)."""

    department_name: str | None = Field(default=None, min_length=1, max_length=100)
    department_code: str | None = Field(default=None, pattern=r"^[A-Z]{2,6}$")
    head_of_department: HeadOfDepartment | None = None
    contact_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: str | None = None
    establishment_year: int | None = Field(default=None, ge=1900)
    description: str | None = Field(default=None, max_length=1000)
    total_faculty: int | None = Field(default=None, ge=0)
    location: Location | None = None
    facilities: list[str] | None = None
    status: DepartmentStatus | None = None

    @field_validator("department_code", mode="before")
    @classmethod
    def upper_code(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator("contact_email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("establishment_year")
    @classmethod
    def check_year(cls, value: Any) -> Any:
        return _not_future_year(value)


class DepartmentResponse(CamelModel):
    """Response model for a department."""

    id: str
    department_name: str
    department_code: str
    head_of_department: dict[str, Any]
    contact_email: str | None
    contact_phone: str | None
    establishment_year: int
    description: str | None
    total_faculty: int
    total_students: int
    location: dict[str, Any] | None
    facilities: list[str]
    status: str
    age: int
    created_at: datetime
    updated_at: datetime


class DepartmentDetailResponse(CamelModel):
    department: DepartmentResponse
    classes: list[ClassRef]
    courses: list[CourseRef]
    students: list[StudentRef]
    student_count: int


# Class models


class ClassCreate(CamelModel):
    """Request model for creating a class."""

    class_name: str = Field(..., pattern=r"^[A-Z0-9]+$", max_length=50)
    section: str = Field(..., pattern=r"^[A-Z]$")
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    capacity: int = Field(..., ge=1, le=100)
    department_id: str = Field(..., alias="department", min_length=1)
    class_teacher: Contact | None = None
    schedule: ClassSchedule | None = None
    description: str | None = Field(default=None, max_length=500)
    status: ClassStatus = ClassStatus.ACTIVE

    @field_validator("class_name", "section", mode="before")
    @classmethod
    def upper_names(cls, value: Any) -> Any:
        return _upper(value)


class ClassUpdate(CamelModel):
    """Request model for updating a class (partial update)."""

    class_name: str | None = Field(default=None, pattern=r"^[A-Z0-9]+$", max_length=50)
    section: str | None = Field(default=None, pattern=r"^[A-Z]$")
    academic_year: str | None = Field(default=None, pattern=ACADEMIC_YEAR_PATTERN)
    capacity: int | None = Field(default=None, ge=1, le=100)
    department_id: str | None = Field(default=None, alias="department", min_length=1)
    class_teacher: Contact | None = None
    schedule: ClassSchedule | None = None
    description: str | None = Field(default=None, max_length=500)
    status: ClassStatus | None = None

    @field_validator("class_name", "section", mode="before")
    @classmethod
    def upper_names(cls, value: Any) -> Any:
        return _upper(value)


class ClassResponse(CamelModel):
    """Response model for a class."""

    id: str
    class_name: str
    section: str
    class_code: str
    academic_year: str
    capacity: int
    current_strength: int
    available_seats: int
    is_full: bool
    department: DepartmentRef
    class_teacher: dict[str, Any] | None
    schedule: dict[str, Any] | None
    description: str | None
    status: str
    created_at: datetime
    updated_at: datetime


class ClassDetailResponse(CamelModel):
    school_class: ClassResponse = Field(..., alias="class")
    students: list[StudentRef]


# Course models


class CourseCreate(CamelModel):
    """Request model for creating a course."""

    course_name: str = Field(..., min_length=1, max_length=255)
    course_code: str = Field(..., pattern=r"^[A-Z]{2,4}\d{3,4}$")
    credit_hours: float = Field(..., ge=1, le=6)
    description: str | None = Field(default=None, max_length=1000)
    department_id: str = Field(..., alias="department", min_length=1)
    instructor: Contact | None = None
    prerequisite_ids: list[str] = Field(default_factory=list, alias="prerequisites")
    semester: Semester
    year: int = Field(..., ge=1, le=4)
    schedule: CourseSchedule | None = None
    max_students: int = Field(default=60, ge=1, le=100)
    course_type: CourseType = CourseType.CORE
    grading_policy: GradingPolicy | None = None
    status: CourseStatus = CourseStatus.ACTIVE
    resources: list[Resource] = Field(default_factory=list)

    @field_validator("course_code", mode="before")
    @classmethod
    def upper_code(cls, value: Any) -> Any:
        return _upper(value)


class CourseUpdate(CamelModel):
    """Request model for updating a course (partial update)."""

    course_name: str | None = Field(default=None, min_length=1, max_length=255)
    course_code: str | None = Field(default=None, pattern=r"^[A-Z]{2,4}\d{3,4}$")
    credit_hours: float | None = Field(default=None, ge=1, le=6)
    description: str | None = Field(default=None, max_length=1000)
    department_id: str | None = Field(default=None, alias="department", min_length=1)
    instructor: Contact | None = None
    prerequisite_ids: list[str] | None = Field(default=None, alias="prerequisites")
    semester: Semester | None = None
    year: int | None = Field(default=None, ge=1, le=4)
    schedule: CourseSchedule | None = None
    max_students: int | None = Field(default=None, ge=1, le=100)
    course_type: CourseType | None = None
    grading_policy: GradingPolicy | None = None
    status: CourseStatus | None = None
    resources: list[Resource] | None = None

    @field_validator("course_code", mode="before")
    @classmethod
    def upper_code(cls, value: Any) -> Any:
        return _upper(value)


class CourseResponse(CamelModel):
    """Response model for a course."""

    id: str
    course_name: str
    course_code: str
    credit_hours: float
    description: str | None
    department: DepartmentRef
    instructor: dict[str, Any] | None
    prerequisites: list[CourseRef]
    semester: str
    year: int
    schedule: dict[str, Any] | None
    max_students: int
    enrolled_students: int
    available_seats: int
    is_full: bool
    enrollment_rate: float
    course_type: str
    grading_policy: dict[str, Any] | None
    status: str
    resources: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(CamelModel):
    course: CourseResponse
    students: list[StudentRef]


class EnrollmentRequest(CamelModel):
    """Request body for enroll and withdraw."""

    student_id: str = Field(..., min_length=1)


# Student models


def _age_in_range(value: date | None) -> date | None:
    if value is not None and not 5 <= age_on(value) <= 100:
        raise ValueError("Student age must be between 5 and 100 years")
    return value


class StudentCreate(CamelModel):
    """Request model for creating a student."""

    name: str = Field(..., min_length=3, max_length=100)
    roll_number: str = Field(..., pattern=r"^[A-Z0-9]+$", max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    address: Address
    date_of_birth: date
    gender: Gender
    class_id: str = Field(..., alias="class", min_length=1)
    department_id: str = Field(..., alias="department", min_length=1)
    course_ids: list[str] = Field(default_factory=list, alias="courses")
    enrollment_date: date | None = None
    status: StudentStatus = StudentStatus.ACTIVE
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    guardian_info: GuardianInfo
    photo: str = "default-avatar.png"
    documents: list[Document] = Field(default_factory=list)

    @field_validator("roll_number", mode="before")
    @classmethod
    def upper_roll(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("date_of_birth")
    @classmethod
    def check_age(cls, value: Any) -> Any:
        return _age_in_range(value)

    def to_fields(self, *, partial: bool = False) -> dict[str, Any]:
        fields = super().to_fields(partial=partial)
        if fields.get("enrollment_date") is None:
            fields.pop("enrollment_date", None)
        return fields


class StudentUpdate(CamelModel):
    """Request model for updating a student (partial update)."""

    name: str | None = Field(default=None, min_length=3, max_length=100)
    roll_number: str | None = Field(default=None, pattern=r"^[A-Z0-9]+$", max_length=50)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    address: Address | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    class_id: str | None = Field(default=None, alias="class", min_length=1)
    department_id: str | None = Field(default=None, alias="department", min_length=1)
    course_ids: list[str] | None = Field(default=None, alias="courses")
    enrollment_date: date | None = None
    status: StudentStatus | None = None
    academic_year: str | None = Field(default=None, pattern=ACADEMIC_YEAR_PATTERN)
    guardian_info: GuardianInfo | None = None
    photo: str | None = None
    documents: list[Document] | None = None

    @field_validator("roll_number", mode="before")
    @classmethod
    def upper_roll(cls, value: Any) -> Any:
        return _upper(value)

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("date_of_birth")
    @classmethod
    def check_age(cls, value: Any) -> Any:
        return _age_in_range(value)


class StudentResponse(CamelModel):
    """Response model for a student."""

    id: str
    name: str
    roll_number: str
    email: str
    phone: str
    address: dict[str, Any]
    full_address: str
    date_of_birth: date
    age: int
    gender: str
    school_class: ClassRef = Field(..., alias="class")
    department: DepartmentRef
    courses: list[CourseRef]
    enrollment_date: date
    status: str
    academic_year: str
    guardian_info: dict[str, Any]
    photo: str
    documents: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class BulkCreateRequest(CamelModel):
    """Raw drafts; each one is validated on its own."""

    students: list[Any]


class BulkItemResponse(CamelModel):
    index: int
    success: bool
    data: StudentResponse | None = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None


class BulkCreateResponse(CamelModel):
    success: bool = True
    created: int
    failed: int
    results: list[BulkItemResponse]


class SearchStatisticsResponse(CamelModel):
    total_students: int
    active_students: int
    average_age: float


class StudentSearchResponse(PaginatedResponse[StudentResponse]):
    statistics: SearchStatisticsResponse


class StudentExportResponse(CamelModel):
    success: bool = True
    count: int
    data: list[StudentResponse]


# Report models


class DepartmentHeadcountResponse(CamelModel):
    department_id: str
    department_name: str
    department_code: str
    students: int


class ClassHeadcountResponse(CamelModel):
    class_id: str
    class_code: str
    academic_year: str
    students: int
    capacity: int
    percentage_full: float


class StudentReportResponse(CamelModel):
    total_students: int
    by_status: dict[str, int]
    by_gender: dict[str, int]
    by_department: list[DepartmentHeadcountResponse]
    by_class: list[ClassHeadcountResponse]


class ClassDepartmentRollupResponse(CamelModel):
    department_id: str
    department_name: str
    classes: int
    capacity: int
    students: int
    utilization: float


class ClassReportResponse(CamelModel):
    total_classes: int
    total_capacity: int
    total_students: int
    available_seats: int
    average_class_size: float
    min_class_size: int
    max_class_size: int
    utilization: float
    by_department: list[ClassDepartmentRollupResponse]
    by_status: dict[str, int]


class DepartmentRowResponse(CamelModel):
    department_id: str
    department_name: str
    department_code: str
    status: str
    total_students: int
    total_faculty: int
    classes: int
    courses: int
    age: int


class DepartmentReportResponse(CamelModel):
    total_departments: int
    active_departments: int
    inactive_departments: int
    total_faculty: int
    total_students: int
    oldest_establishment_year: int | None
    newest_establishment_year: int | None
    average_faculty: float
    average_students: float
    student_faculty_ratio: float
    departments: list[DepartmentRowResponse]
    by_status: dict[str, int]


class CourseDepartmentRollupResponse(CamelModel):
    department_id: str
    department_name: str
    courses: int
    capacity: int
    enrolled: int
    enrollment_rate: float


class SemesterStatResponse(CamelModel):
    semester: str
    courses: int
    capacity: int
    enrolled: int
    enrollment_rate: float


class CourseReportResponse(CamelModel):
    total_courses: int
    total_capacity: int
    total_enrolled: int
    available_seats: int
    enrollment_rate: float
    average_credit_hours: float
    min_credit_hours: float
    max_credit_hours: float
    by_department: list[CourseDepartmentRollupResponse]
    by_type: dict[str, int]
    by_semester: list[SemesterStatResponse]


# Maintenance models


class CounterDriftResponse(CamelModel):
    entity: str
    entity_id: str
    field: str
    stored: int
    actual: int


class CounterReportResponse(CamelModel):
    """Response model for a counter check or repair."""

    checked: int
    consistent: bool
    applied: bool
    drifts: list[CounterDriftResponse]
