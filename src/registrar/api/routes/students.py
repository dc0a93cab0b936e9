"""Student endpoints: CRUD, search, statistics, bulk create and export."""

import csv
import io
from datetime import date
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from registrar.api.dependencies import PageRequestDep, RecordStoreDep, SettingsDep
from registrar.api.models import (
    ACADEMIC_YEAR_PATTERN,
    APIResponse,
    BulkCreateRequest,
    BulkCreateResponse,
    BulkItemResponse,
    PaginatedResponse,
    SearchStatisticsResponse,
    StudentCreate,
    StudentExportResponse,
    StudentReportResponse,
    StudentResponse,
    StudentSearchResponse,
    StudentUpdate,
    field_errors,
    paginated,
)
from registrar.records import (
    Gender,
    RecordValidationError,
    Student,
    StudentFilter,
    StudentStatus,
)

router = APIRouter(prefix="/students", tags=["students"])

CSV_COLUMNS = [
    "Roll Number",
    "Name",
    "Email",
    "Phone",
    "Gender",
    "Date of Birth",
    "Age",
    "Class",
    "Department",
    "Courses",
    "Status",
    "Academic Year",
    "Enrollment Date",
    "City",
    "State",
]


def student_filter(
    q: str | None = Query(default=None, description="Free text over name, roll, email, phone, guardian, city"),
    name: str | None = Query(default=None),
    roll_number: str | None = Query(default=None, alias="rollNumber"),
    email: str | None = Query(default=None),
    phone: str | None = Query(default=None),
    class_id: str | None = Query(default=None, alias="class"),
    department_id: str | None = Query(default=None, alias="department"),
    course_id: str | None = Query(default=None, alias="course"),
    status_filter: StudentStatus | None = Query(default=None, alias="status"),
    gender: Gender | None = Query(default=None),
    academic_year: str | None = Query(default=None, alias="academicYear", pattern=ACADEMIC_YEAR_PATTERN),
    city: str | None = Query(default=None),
    state: str | None = Query(default=None),
    min_age: int | None = Query(default=None, alias="minAge", ge=0, le=150),
    max_age: int | None = Query(default=None, alias="maxAge", ge=0, le=150),
    enrollment_date_from: date | None = Query(default=None, alias="enrollmentDateFrom"),
    enrollment_date_to: date | None = Query(default=None, alias="enrollmentDateTo"),
) -> StudentFilter:
    """Dependency that reads student filters from the query string."""
    return StudentFilter(
        q=q,
        name=name,
        roll_number=roll_number,
        email=email,
        phone=phone,
        class_id=class_id,
        department_id=department_id,
        course_id=course_id,
        status=status_filter,
        gender=gender,
        academic_year=academic_year,
        city=city,
        state=state,
        min_age=min_age,
        max_age=max_age,
        enrollment_date_from=enrollment_date_from,
        enrollment_date_to=enrollment_date_to,
    )


StudentFilterDep = Annotated[StudentFilter, Depends(student_filter)]


@router.get("", response_model=PaginatedResponse[StudentResponse])
def list_students(
    store: RecordStoreDep, page_request: PageRequestDep, filters: StudentFilterDep
) -> PaginatedResponse[StudentResponse]:
    """List students with optional filters, newest first by default."""
    page = store.list_students(filters, page_request)
    return PaginatedResponse(**paginated(page, StudentResponse))


@router.post(
    "",
    response_model=APIResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_student(student: StudentCreate, store: RecordStoreDep) -> APIResponse[StudentResponse]:
    """Create a student in a class, department and optional courses."""
    created = store.create_student(**student.to_fields())
    return APIResponse(
        message="Student created successfully",
        data=StudentResponse.model_validate(created),
    )


@router.get("/search", response_model=StudentSearchResponse)
def search_students(
    store: RecordStoreDep, page_request: PageRequestDep, filters: StudentFilterDep
) -> StudentSearchResponse:
    """Search students; statistics cover every match, not just the page."""
    page, statistics = store.search_students(filters, page_request)
    return StudentSearchResponse(
        **paginated(page, StudentResponse),
        statistics=SearchStatisticsResponse.model_validate(statistics),
    )


@router.get("/stats", response_model=APIResponse[StudentReportResponse])
def student_stats(store: RecordStoreDep) -> APIResponse[StudentReportResponse]:
    """Status, gender, department and class breakdowns."""
    return APIResponse(data=StudentReportResponse.model_validate(store.student_report()))


def _validate_draft(draft: Any) -> dict[str, Any]:
    try:
        return StudentCreate.model_validate(draft).to_fields()
    except ValidationError as e:
        raise RecordValidationError(field_errors(e.errors())) from e


@router.post("/bulk", response_model=BulkCreateResponse)
def bulk_create_students(
    request: BulkCreateRequest, store: RecordStoreDep, settings: SettingsDep
) -> BulkCreateResponse:
    """Create many students; each draft succeeds or fails on its own."""
    result = store.bulk_create_students(
        request.students, validate=_validate_draft, limit=settings.bulk_limit
    )
    return BulkCreateResponse(
        created=len(result.created),
        failed=len(result.failed),
        results=[
            BulkItemResponse(
                index=outcome.index,
                success=outcome.success,
                data=StudentResponse.model_validate(outcome.student) if outcome.student else None,
                error=outcome.error,
                errors=outcome.errors,
            )
            for outcome in result.outcomes
        ],
    )


def _csv_row(student: Student) -> list[Any]:
    address = student.address or {}
    return [
        student.roll_number,
        student.name,
        student.email,
        student.phone,
        student.gender,
        student.date_of_birth.isoformat(),
        student.age,
        student.school_class.class_code,
        student.department.department_name,
        "; ".join(c.course_code for c in student.courses),
        student.status,
        student.academic_year,
        student.enrollment_date.isoformat(),
        address.get("city", ""),
        address.get("state", ""),
    ]


@router.get("/export", response_model=None)
def export_students(
    store: RecordStoreDep,
    filters: StudentFilterDep,
    export_format: Literal["json", "csv"] = Query(default="json", alias="format"),
) -> StudentExportResponse | StreamingResponse:
    """Export every matching student as JSON or as a CSV attachment."""
    students = store.export_students(filters)
    if export_format == "json":
        return StudentExportResponse(
            count=len(students),
            data=[StudentResponse.model_validate(s) for s in students],
        )

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for student in students:
        writer.writerow(_csv_row(student))
    output.seek(0)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=students.csv"},
    )


@router.get("/{student_id}", response_model=APIResponse[StudentResponse])
def get_student(student_id: str, store: RecordStoreDep) -> APIResponse[StudentResponse]:
    """Get a student with class, department and courses expanded."""
    return APIResponse(data=StudentResponse.model_validate(store.get_student(student_id)))


@router.put("/{student_id}", response_model=APIResponse[StudentResponse])
def update_student(
    student_id: str, student: StudentUpdate, store: RecordStoreDep
) -> APIResponse[StudentResponse]:
    """Update a student (partial update); reference changes move counters."""
    updated = store.update_student(student_id, **student.to_fields(partial=True))
    return APIResponse(
        message="Student updated successfully",
        data=StudentResponse.model_validate(updated),
    )


@router.delete("/{student_id}", response_model=APIResponse[StudentResponse])
def delete_student(student_id: str, store: RecordStoreDep) -> APIResponse[StudentResponse]:
    """Delete a student and free its seats."""
    deleted = store.delete_student(student_id)
    return APIResponse(
        message="Student deleted successfully",
        data=StudentResponse.model_validate(deleted),
    )
