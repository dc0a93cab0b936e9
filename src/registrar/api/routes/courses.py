"""Course CRUD and enrollment endpoints."""

from fastapi import APIRouter, Query, status

from registrar.api.dependencies import PageRequestDep, RecordStoreDep
from registrar.api.models import (
    APIResponse,
    CourseCreate,
    CourseDetailResponse,
    CourseReportResponse,
    CourseResponse,
    CourseUpdate,
    EnrollmentRequest,
    PaginatedResponse,
    paginated,
)
from registrar.records import CourseFilter, CourseStatus, CourseType, Semester

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=PaginatedResponse[CourseResponse])
def list_courses(
    store: RecordStoreDep,
    page_request: PageRequestDep,
    department: str | None = Query(default=None, description="Filter by department ID"),
    semester: Semester | None = Query(default=None),
    year: int | None = Query(default=None, ge=1, le=4),
    course_type: CourseType | None = Query(default=None, alias="courseType"),
    status_filter: CourseStatus | None = Query(default=None, alias="status"),
) -> PaginatedResponse[CourseResponse]:
    """List courses with optional filters."""
    filters = CourseFilter(
        department_id=department,
        semester=semester,
        year=year,
        course_type=course_type,
        status=status_filter,
    )
    page = store.list_courses(filters, page_request)
    return PaginatedResponse(**paginated(page, CourseResponse))


@router.post(
    "",
    response_model=APIResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_course(course: CourseCreate, store: RecordStoreDep) -> APIResponse[CourseResponse]:
    """Create a new course."""
    created = store.create_course(**course.to_fields())
    return APIResponse(
        message="Course created successfully",
        data=CourseResponse.model_validate(created),
    )


@router.get("/stats", response_model=APIResponse[CourseReportResponse])
def course_stats(store: RecordStoreDep) -> APIResponse[CourseReportResponse]:
    """Enrollment against capacity by department, type and semester."""
    return APIResponse(data=CourseReportResponse.model_validate(store.course_report()))


@router.get("/{course_id}", response_model=APIResponse[CourseDetailResponse])
def get_course(course_id: str, store: RecordStoreDep) -> APIResponse[CourseDetailResponse]:
    """Get a course with its enrolled students."""
    return APIResponse(data=CourseDetailResponse.model_validate(store.get_course_detail(course_id)))


@router.put("/{course_id}", response_model=APIResponse[CourseResponse])
def update_course(
    course_id: str, course: CourseUpdate, store: RecordStoreDep
) -> APIResponse[CourseResponse]:
    """Update a course (partial update)."""
    updated = store.update_course(course_id, **course.to_fields(partial=True))
    return APIResponse(
        message="Course updated successfully",
        data=CourseResponse.model_validate(updated),
    )


@router.delete("/{course_id}", response_model=APIResponse[CourseResponse])
def delete_course(course_id: str, store: RecordStoreDep) -> APIResponse[CourseResponse]:
    """Delete a course nobody holds or requires."""
    deleted = store.delete_course(course_id)
    return APIResponse(
        message="Course deleted successfully",
        data=CourseResponse.model_validate(deleted),
    )


@router.post("/{course_id}/enroll", response_model=APIResponse[CourseResponse])
def enroll_student(
    course_id: str, enrollment: EnrollmentRequest, store: RecordStoreDep
) -> APIResponse[CourseResponse]:
    """Enroll a student in a course."""
    course = store.enroll_student(course_id, enrollment.student_id)
    return APIResponse(
        message="Student enrolled successfully",
        data=CourseResponse.model_validate(course),
    )


@router.post("/{course_id}/withdraw", response_model=APIResponse[CourseResponse])
def withdraw_student(
    course_id: str, enrollment: EnrollmentRequest, store: RecordStoreDep
) -> APIResponse[CourseResponse]:
    """Withdraw a student from a course."""
    course = store.withdraw_student(course_id, enrollment.student_id)
    return APIResponse(
        message="Student withdrawn successfully",
        data=CourseResponse.model_validate(course),
    )
