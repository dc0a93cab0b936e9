"""RecordStore - Main API for academic record operations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from registrar.logging import sanitize_for_log
from registrar.records import reports
from registrar.records.counters import (
    CLASS_STRENGTH,
    COURSE_ENROLLMENT,
    CounterReport,
    reconcile_counters,
)
from registrar.records.database import Database
from registrar.records.exceptions import (
    ClassNotFoundError,
    CourseNotFoundError,
    DuplicateRecordError,
    RecordsError,
    RecordValidationError,
    StorageError,
    StudentNotFoundError,
)
from registrar.records.integrity import IntegrityMaintainer
from registrar.records.models import Course, Department, SchoolClass, Student
from registrar.records.queries import (
    CLASS_SORTS,
    COURSE_SORTS,
    DEPARTMENT_SORTS,
    STUDENT_SORTS,
    ClassFilter,
    CourseFilter,
    DepartmentFilter,
    Page,
    PageRequest,
    StudentFilter,
    paginate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# "<table>.<column>" in SQLite's UNIQUE failure text -> (field, label)
_UNIQUE_COLUMNS = {
    "departments.department_name": ("departmentName", "Department name"),
    "departments.department_code": ("departmentCode", "Department code"),
    "classes.class_name": ("className", "Class with this name, section and academic year"),
    "courses.course_code": ("courseCode", "Course code"),
    "students.roll_number": ("rollNumber", "Roll number"),
    "students.email": ("email", "Email"),
}

DEPARTMENT_PREVIEW_STUDENTS = 10


def _duplicate_error(exc: IntegrityError) -> DuplicateRecordError:
    text = str(exc.orig)
    for column, (field_name, label) in _UNIQUE_COLUMNS.items():
        if column in text:
            return DuplicateRecordError(field_name, None, f"{label} already exists")
    return DuplicateRecordError("record", None, "Record already exists")


@dataclass
class DepartmentDetail:
    department: Department
    classes: list[SchoolClass]
    courses: list[Course]
    students: list[Student]
    student_count: int


@dataclass
class ClassDetail:
    school_class: SchoolClass
    students: list[Student]


@dataclass
class CourseDetail:
    course: Course
    students: list[Student]


@dataclass
class BulkOutcome:
    """Result for one draft of a bulk create."""

    index: int
    student: Student | None = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None

    @property
    def success(self) -> bool:
        return self.student is not None


@dataclass
class BulkResult:
    outcomes: list[BulkOutcome] = field(default_factory=list)

    @property
    def created(self) -> list[Student]:
        return [o.student for o in self.outcomes if o.student is not None]

    @property
    def failed(self) -> list[BulkOutcome]:
        return [o for o in self.outcomes if not o.success]


class RecordStore:
    """Main API for academic record operations.

    Provides CRUD for Departments, Classes, Courses and Students, routing every
    Student and Course membership change through the Integrity Maintainer.
    """

    def __init__(self, db_path: str = "registrar.db", write_retries: int = 3) -> None:
        """Initialize the store and create tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
            write_retries: Extra attempts for a write that hits a transient
                storage failure (e.g. a locked database)
        """
        self._db = Database(db_path)
        self._db.create_tables()
        self.write_retries = write_retries

    @property
    def database(self) -> Database:
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- Session helpers ---

    def _read(self, work: Callable[[Session], T]) -> T:
        session = self._db.get_session()
        try:
            return work(session)
        except SQLAlchemyError as e:
            logger.exception("Read failed")
            raise StorageError("Storage read failed") from e
        finally:
            session.close()

    def _write(self, action: str, work: Callable[[Session], T]) -> T:
        """Run ``work`` in one transaction, retrying transient storage failures.

        The whole unit is replayed on retry, so the Student row and its
        counters either all land or none do.
        """
        attempt = 0
        while True:
            attempt += 1
            session = self._db.get_session()
            try:
                result = work(session)
                session.commit()
                return result
            except RecordsError:
                session.rollback()
                raise
            except IntegrityError as e:
                session.rollback()
                raise _duplicate_error(e) from e
            except OperationalError as e:
                session.rollback()
                if attempt > self.write_retries:
                    logger.error("%s failed after %d attempts: %s", action, attempt, e)
                    raise StorageError(f"Could not {action}") from e
                logger.warning("%s hit a transient storage failure (attempt %d), retrying", action, attempt)
            except SQLAlchemyError as e:
                session.rollback()
                logger.exception("%s failed", action)
                raise StorageError(f"Could not {action}") from e
            finally:
                session.close()

    @staticmethod
    def _load_course(session: Session, course_id: str) -> Course:
        course = session.get(
            Course,
            course_id,
            options=[selectinload(Course.prerequisites)],
            populate_existing=True,
        )
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    @staticmethod
    def _load_student(session: Session, student_id: str) -> Student:
        student = session.get(Student, student_id, populate_existing=True)
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    @staticmethod
    def _load_class(session: Session, class_id: str) -> SchoolClass:
        school_class = session.get(SchoolClass, class_id, populate_existing=True)
        if school_class is None:
            raise ClassNotFoundError(class_id)
        return school_class

    # --- Department Operations ---

    def create_department(self, **fields: Any) -> Department:
        """Create a new department.

        Raises:
            DuplicateRecordError: If name or code is already taken
        """

        def work(session: Session) -> Department:
            department = Department(**fields)
            session.add(department)
            session.flush()
            session.refresh(department)
            logger.info("Created department %s", department.department_code)
            return department

        return self._write("create department", work)

    def get_department(self, department_id: str) -> Department:
        """Get department by ID.

        Raises:
            DepartmentNotFoundError: If department doesn't exist
        """
        return self._read(lambda s: IntegrityMaintainer(s).resolve(Department, department_id))

    def get_department_detail(self, department_id: str) -> DepartmentDetail:
        """Department with its classes, courses and a preview of its students."""

        def work(session: Session) -> DepartmentDetail:
            department = IntegrityMaintainer(session).resolve(Department, department_id)
            classes = session.scalars(
                select(SchoolClass)
                .where(SchoolClass.department_id == department.id)
                .order_by(SchoolClass.class_name, SchoolClass.section)
            ).all()
            courses = session.scalars(
                select(Course)
                .options(selectinload(Course.prerequisites))
                .where(Course.department_id == department.id)
                .order_by(Course.course_code)
            ).all()
            student_stmt = select(Student).where(Student.department_id == department.id)
            students = session.scalars(
                student_stmt.order_by(Student.name).limit(DEPARTMENT_PREVIEW_STUDENTS)
            ).unique().all()
            count = session.scalar(
                select(func.count()).select_from(Student).where(Student.department_id == department.id)
            ) or 0
            return DepartmentDetail(
                department=department,
                classes=list(classes),
                courses=list(courses),
                students=list(students),
                student_count=count,
            )

        return self._read(work)

    def list_departments(
        self, filters: DepartmentFilter | None = None, request: PageRequest | None = None
    ) -> Page[Department]:
        filters = filters or DepartmentFilter()
        stmt = select(Department).where(*filters.conditions())
        return self._read(
            lambda s: paginate(
                s,
                stmt,
                request or PageRequest(),
                DEPARTMENT_SORTS,
                ("departmentName", "asc"),
                [Department.id],
            )
        )

    def update_department(self, department_id: str, **fields: Any) -> Department:
        """Update department fields.

        Raises:
            DepartmentNotFoundError: If department doesn't exist
            DuplicateRecordError: If the new name or code is taken
        """

        def work(session: Session) -> Department:
            department = IntegrityMaintainer(session).resolve(Department, department_id)
            for key, value in fields.items():
                setattr(department, key, value)
            session.flush()
            session.refresh(department)
            return department

        return self._write("update department", work)

    def delete_department(self, department_id: str) -> Department:
        """Delete a department with no classes, courses or students.

        Raises:
            DepartmentNotFoundError: If department doesn't exist
            RecordInUseError: If anything still references it
        """
        return self._write(
            "delete department",
            lambda s: IntegrityMaintainer(s).on_department_delete(department_id),
        )

    def department_report(self) -> reports.DepartmentReport:
        return self._read(reports.department_report)

    # --- Class Operations ---

    def create_class(self, **fields: Any) -> SchoolClass:
        """Create a class in an existing department.

        Raises:
            DepartmentNotFoundError: If the department doesn't exist
            DuplicateRecordError: If name, section and academic year are taken
        """

        def work(session: Session) -> SchoolClass:
            IntegrityMaintainer(session).resolve(Department, fields["department_id"])
            school_class = SchoolClass(**fields)
            session.add(school_class)
            session.flush()
            logger.info("Created class %s (%s)", school_class.class_code, school_class.academic_year)
            return self._load_class(session, school_class.id)

        return self._write("create class", work)

    def get_class(self, class_id: str) -> SchoolClass:
        """Get class by ID.

        Raises:
            ClassNotFoundError: If class doesn't exist
        """
        return self._read(lambda s: IntegrityMaintainer(s).resolve(SchoolClass, class_id))

    def get_class_detail(self, class_id: str) -> ClassDetail:
        """Class with its enrolled students."""

        def work(session: Session) -> ClassDetail:
            school_class = IntegrityMaintainer(session).resolve(SchoolClass, class_id)
            students = session.scalars(
                select(Student)
                .where(Student.class_id == school_class.id)
                .order_by(Student.roll_number)
            ).unique().all()
            return ClassDetail(school_class=school_class, students=list(students))

        return self._read(work)

    def list_classes(
        self, filters: ClassFilter | None = None, request: PageRequest | None = None
    ) -> Page[SchoolClass]:
        filters = filters or ClassFilter()
        stmt = select(SchoolClass).where(*filters.conditions())
        return self._read(
            lambda s: paginate(
                s,
                stmt,
                request or PageRequest(),
                CLASS_SORTS,
                ("className", "asc"),
                [SchoolClass.section, SchoolClass.id],
            )
        )

    def update_class(self, class_id: str, **fields: Any) -> SchoolClass:
        """Update class fields.

        Raises:
            ClassNotFoundError: If class doesn't exist
            DepartmentNotFoundError: If moved to an unknown department
            RecordValidationError: If capacity drops below current strength
        """

        def work(session: Session) -> SchoolClass:
            maintainer = IntegrityMaintainer(session)
            school_class = maintainer.resolve(SchoolClass, class_id)
            if "capacity" in fields:
                maintainer.check_limit(CLASS_STRENGTH, school_class, fields["capacity"], "capacity")
            if "department_id" in fields:
                maintainer.resolve(Department, fields["department_id"])
            for key, value in fields.items():
                setattr(school_class, key, value)
            session.flush()
            return self._load_class(session, school_class.id)

        return self._write("update class", work)

    def delete_class(self, class_id: str) -> SchoolClass:
        """Delete a class with no students.

        Raises:
            ClassNotFoundError: If class doesn't exist
            RecordInUseError: If students are still assigned
        """
        return self._write("delete class", lambda s: IntegrityMaintainer(s).on_class_delete(class_id))

    def class_report(self) -> reports.ClassReport:
        return self._read(reports.class_report)

    # --- Course Operations ---

    def create_course(self, prerequisite_ids: list[str] | None = None, **fields: Any) -> Course:
        """Create a course in an existing department.

        Raises:
            DepartmentNotFoundError: If the department doesn't exist
            CourseNotFoundError: If a prerequisite doesn't exist
            DuplicateRecordError: If the course code is taken
        """

        def work(session: Session) -> Course:
            maintainer = IntegrityMaintainer(session)
            maintainer.resolve(Department, fields["department_id"])
            course = Course(**fields)
            session.add(course)
            session.flush()
            maintainer.set_prerequisites(course, prerequisite_ids or [])
            session.flush()
            logger.info("Created course %s", course.course_code)
            return self._load_course(session, course.id)

        return self._write("create course", work)

    def get_course(self, course_id: str) -> Course:
        """Get course by ID, with its prerequisites loaded.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """

        def work(session: Session) -> Course:
            IntegrityMaintainer(session).resolve(Course, course_id)
            return self._load_course(session, course_id)

        return self._read(work)

    def get_course_detail(self, course_id: str) -> CourseDetail:
        """Course with its enrolled students."""

        def work(session: Session) -> CourseDetail:
            IntegrityMaintainer(session).resolve(Course, course_id)
            course = self._load_course(session, course_id)
            students = session.scalars(
                select(Student)
                .where(Student.courses.any(Course.id == course.id))
                .order_by(Student.roll_number)
            ).unique().all()
            return CourseDetail(course=course, students=list(students))

        return self._read(work)

    def list_courses(
        self, filters: CourseFilter | None = None, request: PageRequest | None = None
    ) -> Page[Course]:
        filters = filters or CourseFilter()
        stmt = (
            select(Course)
            .options(selectinload(Course.prerequisites))
            .where(*filters.conditions())
        )
        return self._read(
            lambda s: paginate(
                s,
                stmt,
                request or PageRequest(),
                COURSE_SORTS,
                ("courseCode", "asc"),
                [Course.id],
            )
        )

    def update_course(
        self, course_id: str, prerequisite_ids: list[str] | None = None, **fields: Any
    ) -> Course:
        """Update course fields and optionally replace its prerequisites.

        Raises:
            CourseNotFoundError: If course or a prerequisite doesn't exist
            DepartmentNotFoundError: If moved to an unknown department
            RecordValidationError: If max students drops below enrollment, or
                prerequisites include the course or form a cycle
        """

        def work(session: Session) -> Course:
            maintainer = IntegrityMaintainer(session)
            course = maintainer.resolve(Course, course_id)
            if "max_students" in fields:
                maintainer.check_limit(
                    COURSE_ENROLLMENT, course, fields["max_students"], "maxStudents"
                )
            if "department_id" in fields:
                maintainer.resolve(Department, fields["department_id"])
            if prerequisite_ids is not None:
                maintainer.set_prerequisites(course, prerequisite_ids)
            for key, value in fields.items():
                setattr(course, key, value)
            session.flush()
            return self._load_course(session, course.id)

        return self._write("update course", work)

    def delete_course(self, course_id: str) -> Course:
        """Delete a course nobody holds or requires.

        Raises:
            CourseNotFoundError: If course doesn't exist
            RecordInUseError: If students hold it or courses require it
        """
        return self._write("delete course", lambda s: IntegrityMaintainer(s).on_course_delete(course_id))

    def enroll_student(self, course_id: str, student_id: str) -> Course:
        """Enroll a student in a course, returning the updated course."""

        def work(session: Session) -> Course:
            IntegrityMaintainer(session).on_course_enroll(course_id, student_id)
            return self._load_course(session, course_id)

        return self._write("enroll student", work)

    def withdraw_student(self, course_id: str, student_id: str) -> Course:
        """Withdraw a student from a course, returning the updated course."""

        def work(session: Session) -> Course:
            IntegrityMaintainer(session).on_course_withdraw(course_id, student_id)
            return self._load_course(session, course_id)

        return self._write("withdraw student", work)

    def course_report(self) -> reports.CourseReport:
        return self._read(reports.course_report)

    # --- Student Operations ---

    def create_student(self, **fields: Any) -> Student:
        """Create a student and take a seat in its class, department and courses.

        Raises:
            ClassNotFoundError, DepartmentNotFoundError, CourseNotFoundError:
                If a reference doesn't exist
            CapacityExceededError: If the class or a course is full
            PrerequisiteUnmetError: If a course's prerequisites are not in the set
            DuplicateRecordError: If roll number or email is taken
        """

        def work(session: Session) -> Student:
            student = IntegrityMaintainer(session).on_student_create(fields)
            return self._load_student(session, student.id)

        return self._write("create student", work)

    def get_student(self, student_id: str) -> Student:
        """Get student by ID with class, department and courses loaded.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        return self._read(lambda s: IntegrityMaintainer(s).resolve(Student, student_id))

    def list_students(
        self, filters: StudentFilter | None = None, request: PageRequest | None = None
    ) -> Page[Student]:
        filters = filters or StudentFilter()
        stmt = select(Student).where(*filters.conditions())
        return self._read(
            lambda s: paginate(
                s,
                stmt,
                request or PageRequest(),
                STUDENT_SORTS,
                ("createdAt", "desc"),
                [Student.id],
            )
        )

    def search_students(
        self, filters: StudentFilter, request: PageRequest | None = None
    ) -> tuple[Page[Student], reports.SearchStatistics]:
        """Filtered page of students plus statistics over every match."""
        conditions = filters.conditions()

        def work(session: Session) -> tuple[Page[Student], reports.SearchStatistics]:
            page = paginate(
                session,
                select(Student).where(*conditions),
                request or PageRequest(),
                STUDENT_SORTS,
                ("name", "asc"),
                [Student.id],
            )
            return page, reports.search_statistics(session, conditions, filters.today)

        return self._read(work)

    def update_student(self, student_id: str, **fields: Any) -> Student:
        """Apply a partial update; class, department and course changes move counters.

        Raises:
            StudentNotFoundError: If student doesn't exist
            plus the reference, capacity, prerequisite and uniqueness errors
            of ``create_student``
        """

        def work(session: Session) -> Student:
            IntegrityMaintainer(session).on_student_update(student_id, fields)
            return self._load_student(session, student_id)

        return self._write("update student", work)

    def delete_student(self, student_id: str) -> Student:
        """Delete a student and free its seats.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        return self._write(
            "delete student", lambda s: IntegrityMaintainer(s).on_student_delete(student_id)
        )

    def bulk_create_students(
        self,
        drafts: list[Any],
        validate: Callable[[Any], dict[str, Any]] | None = None,
        limit: int = 100,
    ) -> BulkResult:
        """Create students one by one; a bad draft never fails the batch.

        Args:
            drafts: Raw student drafts
            validate: Optional hook turning a raw draft into model fields,
                raising RecordValidationError for a malformed one
            limit: Maximum batch size

        Raises:
            RecordValidationError: If the batch is empty or larger than ``limit``
        """
        if not drafts or len(drafts) > limit:
            raise RecordValidationError.for_field(
                "students", f"Provide between 1 and {limit} students"
            )

        result = BulkResult()
        for index, draft in enumerate(drafts):
            try:
                fields = validate(draft) if validate is not None else draft
                if not isinstance(fields, dict):
                    raise RecordValidationError.for_field(
                        "request", "Student draft must be an object"
                    )
                student = self.create_student(**fields)
            except RecordValidationError as e:
                result.outcomes.append(BulkOutcome(index=index, error=str(e), errors=e.errors))
            except RecordsError as e:
                logger.warning("Bulk draft %d rejected: %s", index, sanitize_for_log(str(e)))
                result.outcomes.append(BulkOutcome(index=index, error=str(e)))
            else:
                result.outcomes.append(BulkOutcome(index=index, student=student))

        logger.info(
            "Bulk create: %d created, %d failed", len(result.created), len(result.failed)
        )
        return result

    def export_students(self, filters: StudentFilter | None = None) -> list[Student]:
        """Every matching student ordered by roll number."""
        filters = filters or StudentFilter()
        stmt = select(Student).where(*filters.conditions()).order_by(Student.roll_number)
        return self._read(lambda s: list(s.scalars(stmt).unique().all()))

    def student_report(self) -> reports.StudentReport:
        return self._read(reports.student_report)

    # --- Counter maintenance ---

    def check_counters(self) -> CounterReport:
        """Compare every counter with its live reference count without changing it."""
        return self._read(reconcile_counters)

    def repair_counters(self) -> CounterReport:
        """Overwrite drifted counters with live reference counts."""
        report = self._write("repair counters", lambda s: reconcile_counters(s, apply=True))
        logger.info("Counter repair: %d checked, %d fixed", report.checked, len(report.drifts))
        return report
