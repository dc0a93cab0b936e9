"""Custom exceptions for the records layer."""

from __future__ import annotations

from typing import Any


class RecordsError(Exception):
    """Base exception for records errors."""


class StorageError(RecordsError):
    """The database rejected or failed an operation."""


class RecordValidationError(RecordsError):
    """Input is malformed or breaks a field rule.

    Attributes:
        errors: Field name -> list of messages.
    """

    def __init__(self, errors: dict[str, list[str]], message: str = "Validation Error") -> None:
        super().__init__(message)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> RecordValidationError:
        return cls({field: [message]})


class RecordNotFoundError(RecordsError):
    """A referenced id does not resolve."""

    entity = "Record"

    def __init__(self, entity_id: str, message: str | None = None) -> None:
        super().__init__(message or f"{self.entity} with id '{entity_id}' not found")
        self.entity_id = entity_id


class DepartmentNotFoundError(RecordNotFoundError):
    """Department with given ID does not exist."""

    entity = "Department"


class ClassNotFoundError(RecordNotFoundError):
    """Class with given ID does not exist."""

    entity = "Class"


class CourseNotFoundError(RecordNotFoundError):
    """Course with given ID does not exist."""

    entity = "Course"


class StudentNotFoundError(RecordNotFoundError):
    """Student with given ID does not exist."""

    entity = "Student"


class RecordConflictError(RecordsError):
    """The operation collides with existing state."""


class DuplicateRecordError(RecordConflictError):
    """A unique key (code, roll number, email, ...) is already taken."""

    def __init__(self, field: str, value: Any, message: str | None = None) -> None:
        super().__init__(message or f"{field} '{value}' already exists")
        self.field = field
        self.value = value


class AlreadyEnrolledError(RecordConflictError):
    """Student already holds the course."""


class NotEnrolledError(RecordConflictError):
    """Student does not hold the course."""


class RecordInUseError(RecordConflictError):
    """Entity cannot be deleted while other records reference it.

    Attributes:
        blocking: Referencing collection -> number of referencing records.
    """

    def __init__(self, message: str, blocking: dict[str, int]) -> None:
        super().__init__(message)
        self.blocking = blocking


class CapacityExceededError(RecordsError):
    """Class or course has no free seat left."""

    def __init__(
        self,
        entity: str,
        entity_id: str,
        label: str,
        current: int,
        maximum: int,
    ) -> None:
        super().__init__(f"{entity} {label} is full ({current}/{maximum})")
        self.entity = entity
        self.entity_id = entity_id
        self.label = label
        self.current = current
        self.maximum = maximum


class PrerequisiteUnmetError(RecordsError):
    """Student lacks one or more prerequisites of a course."""

    def __init__(self, course_code: str, missing: list[str]) -> None:
        super().__init__(
            f"Student does not meet prerequisites for {course_code}: missing {', '.join(missing)}"
        )
        self.course_code = course_code
        self.missing = missing
