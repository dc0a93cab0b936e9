"""Integrity Maintainer - cross-collection rules for Student and Course changes.

Every method works inside the caller's session and never commits. The caller
owns the transaction, so a failure at any step rolls back the Student row and
every counter touched before it.

Counters are always touched in the same order: Class, then Department, then
Courses sorted by id.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from registrar.records.counters import (
    CLASS_STRENGTH,
    COURSE_ENROLLMENT,
    DEPARTMENT_STUDENTS,
    Counter,
    decrement,
    increment,
)
from registrar.records.exceptions import (
    AlreadyEnrolledError,
    CapacityExceededError,
    ClassNotFoundError,
    CourseNotFoundError,
    DepartmentNotFoundError,
    DuplicateRecordError,
    NotEnrolledError,
    PrerequisiteUnmetError,
    RecordInUseError,
    RecordNotFoundError,
    RecordValidationError,
    StudentNotFoundError,
)
from registrar.records.models import (
    Course,
    Department,
    SchoolClass,
    Student,
    course_prerequisites,
    student_courses,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", Department, SchoolClass, Course, Student)

_NOT_FOUND: dict[type[Any], type[RecordNotFoundError]] = {
    Department: DepartmentNotFoundError,
    SchoolClass: ClassNotFoundError,
    Course: CourseNotFoundError,
    Student: StudentNotFoundError,
}

# Patch keys that move a student between referenced entities
REFERENCE_FIELDS = ("class_id", "department_id", "course_ids")


def normalize_student_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Upper-case the roll number and lower-case the email, leaving the rest as is."""
    normalized = dict(fields)
    if normalized.get("roll_number"):
        normalized["roll_number"] = normalized["roll_number"].strip().upper()
    if normalized.get("email"):
        normalized["email"] = normalized["email"].strip().lower()
    return normalized


def _unique_ids(ids: list[str] | None) -> list[str]:
    return list(dict.fromkeys(ids or []))


def _check_seat(counter: Counter, entity: Any) -> None:
    limit = getattr(entity, counter.limit_field)  # type: ignore[arg-type]
    current = getattr(entity, counter.field)
    if current >= limit:
        raise CapacityExceededError(
            entity=counter.entity,
            entity_id=entity.id,
            label=counter.label(entity),
            current=current,
            maximum=limit,
        )


class IntegrityMaintainer:
    """Keeps denormalized counters and membership rules consistent.

    Args:
        session: Session whose transaction holds the whole logical change.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # --- Resolution ---

    def resolve(self, model: type[M], entity_id: str) -> M:
        """Load an entity by id or raise the entity's NotFound error."""
        entity = self.session.get(model, entity_id)
        if entity is None:
            raise _NOT_FOUND[model](entity_id)
        return entity

    def resolve_courses(self, course_ids: list[str]) -> list[Course]:
        """Load courses in the requested order, failing on the first unknown id."""
        ids = _unique_ids(course_ids)
        if not ids:
            return []
        found = {
            c.id: c for c in self.session.scalars(select(Course).where(Course.id.in_(ids)))
        }
        for course_id in ids:
            if course_id not in found:
                raise CourseNotFoundError(course_id)
        return [found[course_id] for course_id in ids]

    def _check_prerequisites(self, courses: list[Course], held_ids: set[str]) -> None:
        for course in courses:
            missing = [p.course_code for p in course.prerequisites if p.id not in held_ids]
            if missing:
                raise PrerequisiteUnmetError(course.course_code, missing)

    def _check_unique(self, fields: dict[str, Any], exclude_id: str | None = None) -> None:
        for attr, label in (("roll_number", "Roll number"), ("email", "Email")):
            value = fields.get(attr)
            if value is None:
                continue
            stmt = select(Student.id).where(getattr(Student, attr) == value)
            if exclude_id is not None:
                stmt = stmt.where(Student.id != exclude_id)
            if self.session.scalar(stmt.limit(1)) is not None:
                raise DuplicateRecordError(attr, value, f"{label} '{value}' is already in use")

    # --- Student lifecycle ---

    def on_student_create(self, draft: dict[str, Any]) -> Student:
        """Validate references, persist a student and bump its counters.

        Args:
            draft: Student fields keyed by model attribute, with the course set
                under ``course_ids``.

        Raises:
            ClassNotFoundError, DepartmentNotFoundError, CourseNotFoundError:
                A reference does not resolve.
            CapacityExceededError: The class or a course has no free seat.
            PrerequisiteUnmetError: A course's prerequisites are not in the set.
            DuplicateRecordError: Roll number or email already in use.
        """
        fields = normalize_student_fields(draft)
        course_ids = _unique_ids(fields.pop("course_ids", None))

        school_class = self.resolve(SchoolClass, fields["class_id"])
        _check_seat(CLASS_STRENGTH, school_class)
        self.resolve(Department, fields["department_id"])
        courses = self.resolve_courses(course_ids)
        for course in courses:
            _check_seat(COURSE_ENROLLMENT, course)
        self._check_prerequisites(courses, set(course_ids))
        self._check_unique(fields)

        student = Student(**fields)
        student.courses = courses
        self.session.add(student)
        self.session.flush()

        increment(self.session, CLASS_STRENGTH, student.class_id)
        increment(self.session, DEPARTMENT_STUDENTS, student.department_id)
        for course_id in sorted(course_ids):
            increment(self.session, COURSE_ENROLLMENT, course_id)

        logger.info("Created student %s (%s)", student.id, student.roll_number)
        return student

    def on_student_update(self, student_id: str, patch: dict[str, Any]) -> Student:
        """Apply a partial update, moving counters for changed references.

        Old references are decremented before new ones are incremented. A
        destination's capacity is judged on its own counter, so a transfer
        between two nearly full classes succeeds.

        Raises:
            StudentNotFoundError: If the student does not exist.
            plus every error ``on_student_create`` raises for the new values.
        """
        student = self.resolve(Student, student_id)
        fields = normalize_student_fields(patch)
        new_course_ids = fields.pop("course_ids", None)
        new_class_id = fields.pop("class_id", None)
        new_department_id = fields.pop("department_id", None)

        self._check_unique(fields, exclude_id=student.id)

        # Resolve and check every new reference before touching a counter
        class_change = new_class_id is not None and new_class_id != student.class_id
        if class_change:
            _check_seat(CLASS_STRENGTH, self.resolve(SchoolClass, new_class_id))
        department_change = (
            new_department_id is not None and new_department_id != student.department_id
        )
        if department_change:
            self.resolve(Department, new_department_id)

        added: list[Course] = []
        removed_ids: list[str] = []
        kept: list[Course] = list(student.courses)
        if new_course_ids is not None:
            wanted = _unique_ids(new_course_ids)
            current_ids = set(student.course_ids)
            added = self.resolve_courses([cid for cid in wanted if cid not in current_ids])
            for course in added:
                _check_seat(COURSE_ENROLLMENT, course)
            self._check_prerequisites(added, set(wanted))
            removed_ids = sorted(current_ids - set(wanted))
            kept = [c for c in student.courses if c.id in set(wanted)]

        for attr, value in fields.items():
            setattr(student, attr, value)
        old_class_id, old_department_id = student.class_id, student.department_id
        if class_change:
            student.class_id = new_class_id
        if department_change:
            student.department_id = new_department_id
        if new_course_ids is not None:
            student.courses = kept + added
        self.session.flush()

        if class_change:
            decrement(self.session, CLASS_STRENGTH, old_class_id)
            increment(self.session, CLASS_STRENGTH, new_class_id)
        if department_change:
            decrement(self.session, DEPARTMENT_STUDENTS, old_department_id)
            increment(self.session, DEPARTMENT_STUDENTS, new_department_id)
        for course_id in removed_ids:
            decrement(self.session, COURSE_ENROLLMENT, course_id)
        for course_id in sorted(c.id for c in added):
            increment(self.session, COURSE_ENROLLMENT, course_id)

        # Reload so relationship attributes follow the moved references
        self.session.refresh(student)
        logger.info("Updated student %s", student.id)
        return student

    def on_student_delete(self, student_id: str) -> Student:
        """Delete a student and release its class, department and course seats."""
        student = self.resolve(Student, student_id)
        course_ids = sorted(student.course_ids)

        self.session.delete(student)
        self.session.flush()

        decrement(self.session, CLASS_STRENGTH, student.class_id)
        decrement(self.session, DEPARTMENT_STUDENTS, student.department_id)
        for course_id in course_ids:
            decrement(self.session, COURSE_ENROLLMENT, course_id)

        logger.info("Deleted student %s (%s)", student.id, student.roll_number)
        return student

    # --- Course membership ---

    def on_course_enroll(self, course_id: str, student_id: str) -> tuple[Course, Student]:
        """Add a course to a student's set.

        Raises:
            CourseNotFoundError, StudentNotFoundError: An id does not resolve.
            AlreadyEnrolledError: The student already holds the course.
            CapacityExceededError: The course is full.
            PrerequisiteUnmetError: A prerequisite is missing from the student's set.
        """
        course = self.resolve(Course, course_id)
        student = self.resolve(Student, student_id)
        held = set(student.course_ids)
        if course.id in held:
            raise AlreadyEnrolledError(
                f"Student {student.roll_number} is already enrolled in {course.course_code}"
            )
        _check_seat(COURSE_ENROLLMENT, course)
        self._check_prerequisites([course], held)

        student.courses.append(course)
        self.session.flush()
        increment(self.session, COURSE_ENROLLMENT, course.id)

        logger.info("Enrolled student %s in course %s", student.id, course.course_code)
        return course, student

    def on_course_withdraw(self, course_id: str, student_id: str) -> tuple[Course, Student]:
        """Remove a course from a student's set.

        Raises:
            CourseNotFoundError, StudentNotFoundError: An id does not resolve.
            NotEnrolledError: The student does not hold the course.
        """
        course = self.resolve(Course, course_id)
        student = self.resolve(Student, student_id)
        if course.id not in set(student.course_ids):
            raise NotEnrolledError(
                f"Student {student.roll_number} is not enrolled in {course.course_code}"
            )

        student.courses = [c for c in student.courses if c.id != course.id]
        self.session.flush()
        decrement(self.session, COURSE_ENROLLMENT, course.id)

        logger.info("Withdrew student %s from course %s", student.id, course.course_code)
        return course, student

    # --- Course definition rules ---

    def set_prerequisites(self, course: Course, prerequisite_ids: list[str]) -> None:
        """Replace a course's prerequisite list.

        Raises:
            RecordValidationError: The list names the course itself or closes a cycle.
            CourseNotFoundError: A prerequisite id does not resolve.
        """
        ids = _unique_ids(prerequisite_ids)
        if course.id in ids:
            raise RecordValidationError.for_field(
                "prerequisites", "Course cannot be a prerequisite of itself"
            )
        prerequisites = self.resolve_courses(ids)

        graph: dict[str, set[str]] = {}
        for owner, prereq in self.session.execute(
            select(course_prerequisites.c.course_id, course_prerequisites.c.prerequisite_id)
        ):
            if owner != course.id:
                graph.setdefault(owner, set()).add(prereq)
        stack = list(ids)
        seen: set[str] = set()
        while stack:
            node = stack.pop()
            if node == course.id:
                raise RecordValidationError.for_field(
                    "prerequisites", "Prerequisites would form a cycle"
                )
            if node in seen:
                continue
            seen.add(node)
            stack.extend(graph.get(node, ()))

        course.prerequisites = prerequisites

    @staticmethod
    def check_limit(counter: Counter, entity: Any, new_limit: int, field: str) -> None:
        """Refuse a capacity below the number of seats already taken."""
        current = getattr(entity, counter.field)
        if new_limit < current:
            raise RecordValidationError.for_field(
                field, f"Cannot be lower than the current count ({current})"
            )

    # --- Deletion guards ---

    def _count(self, stmt: Any) -> int:
        return self.session.scalar(stmt) or 0

    def on_course_delete(self, course_id: str) -> Course:
        """Delete a course no student holds and no course requires."""
        course = self.resolve(Course, course_id)
        students = self._count(
            select(func.count()).select_from(student_courses).where(
                student_courses.c.course_id == course.id
            )
        )
        dependents = self._count(
            select(func.count()).select_from(course_prerequisites).where(
                course_prerequisites.c.prerequisite_id == course.id
            )
        )
        if students or dependents:
            raise RecordInUseError(
                f"Cannot delete course {course.course_code}: {students} enrolled student(s), "
                f"prerequisite of {dependents} course(s)",
                {"students": students, "dependentCourses": dependents},
            )
        course.prerequisites = []
        self.session.delete(course)
        self.session.flush()
        logger.info("Deleted course %s", course.course_code)
        return course

    def on_class_delete(self, class_id: str) -> SchoolClass:
        """Delete a class no student references."""
        school_class = self.resolve(SchoolClass, class_id)
        students = self._count(
            select(func.count()).select_from(Student).where(Student.class_id == school_class.id)
        )
        if students:
            raise RecordInUseError(
                f"Cannot delete class {school_class.class_code}: {students} student(s) assigned",
                {"students": students},
            )
        self.session.delete(school_class)
        self.session.flush()
        logger.info("Deleted class %s", school_class.class_code)
        return school_class

    def on_department_delete(self, department_id: str) -> Department:
        """Delete a department no class, course or student references."""
        department = self.resolve(Department, department_id)
        blocking = {
            "students": self._count(
                select(func.count()).select_from(Student).where(
                    Student.department_id == department.id
                )
            ),
            "classes": self._count(
                select(func.count()).select_from(SchoolClass).where(
                    SchoolClass.department_id == department.id
                )
            ),
            "courses": self._count(
                select(func.count()).select_from(Course).where(
                    Course.department_id == department.id
                )
            ),
        }
        if any(blocking.values()):
            raise RecordInUseError(
                f"Cannot delete department {department.department_code}: "
                f"{blocking['students']} student(s), {blocking['classes']} class(es), "
                f"{blocking['courses']} course(s) still reference it",
                blocking,
            )
        self.session.delete(department)
        self.session.flush()
        logger.info("Deleted department %s", department.department_code)
        return department
