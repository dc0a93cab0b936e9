"""Records - persistent storage for departments, classes, courses and students."""

from registrar.records.exceptions import (
    AlreadyEnrolledError,
    CapacityExceededError,
    ClassNotFoundError,
    CourseNotFoundError,
    DepartmentNotFoundError,
    DuplicateRecordError,
    NotEnrolledError,
    PrerequisiteUnmetError,
    RecordConflictError,
    RecordInUseError,
    RecordNotFoundError,
    RecordsError,
    RecordValidationError,
    StorageError,
    StudentNotFoundError,
)
from registrar.records.integrity import IntegrityMaintainer
from registrar.records.models import (
    ClassStatus,
    Course,
    CourseStatus,
    CourseType,
    Department,
    DepartmentStatus,
    Gender,
    SchoolClass,
    Semester,
    Student,
    StudentStatus,
)
from registrar.records.queries import (
    ClassFilter,
    CourseFilter,
    DepartmentFilter,
    Page,
    PageRequest,
    StudentFilter,
)
from registrar.records.store import RecordStore

__all__ = [
    "AlreadyEnrolledError",
    "CapacityExceededError",
    "ClassFilter",
    "ClassNotFoundError",
    "ClassStatus",
    "Course",
    "CourseFilter",
    "CourseNotFoundError",
    "CourseStatus",
    "CourseType",
    "Department",
    "DepartmentFilter",
    "DepartmentNotFoundError",
    "DepartmentStatus",
    "DuplicateRecordError",
    "Gender",
    "IntegrityMaintainer",
    "NotEnrolledError",
    "Page",
    "PageRequest",
    "PrerequisiteUnmetError",
    "RecordConflictError",
    "RecordInUseError",
    "RecordNotFoundError",
    "RecordStore",
    "RecordValidationError",
    "RecordsError",
    "SchoolClass",
    "Semester",
    "StorageError",
    "Student",
    "StudentFilter",
    "StudentStatus",
]
