"""Class CRUD endpoints."""

from fastapi import APIRouter, Query, status

from registrar.api.dependencies import PageRequestDep, RecordStoreDep
from registrar.api.models import (
    ACADEMIC_YEAR_PATTERN,
    APIResponse,
    ClassCreate,
    ClassDetailResponse,
    ClassReportResponse,
    ClassResponse,
    ClassUpdate,
    PaginatedResponse,
    paginated,
)
from registrar.records import ClassFilter, ClassStatus

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("", response_model=PaginatedResponse[ClassResponse])
def list_classes(
    store: RecordStoreDep,
    page_request: PageRequestDep,
    status_filter: ClassStatus | None = Query(default=None, alias="status"),
    department: str | None = Query(default=None, description="Filter by department ID"),
    academic_year: str | None = Query(
        default=None, alias="academicYear", pattern=ACADEMIC_YEAR_PATTERN
    ),
) -> PaginatedResponse[ClassResponse]:
    """List classes with optional filters."""
    filters = ClassFilter(status=status_filter, department_id=department, academic_year=academic_year)
    page = store.list_classes(filters, page_request)
    return PaginatedResponse(**paginated(page, ClassResponse))


@router.post(
    "",
    response_model=APIResponse[ClassResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_class(school_class: ClassCreate, store: RecordStoreDep) -> APIResponse[ClassResponse]:
    """Create a new class."""
    created = store.create_class(**school_class.to_fields())
    return APIResponse(
        message="Class created successfully",
        data=ClassResponse.model_validate(created),
    )


@router.get("/stats", response_model=APIResponse[ClassReportResponse])
def class_stats(store: RecordStoreDep) -> APIResponse[ClassReportResponse]:
    """Capacity and utilization across classes."""
    return APIResponse(data=ClassReportResponse.model_validate(store.class_report()))


@router.get("/{class_id}", response_model=APIResponse[ClassDetailResponse])
def get_class(class_id: str, store: RecordStoreDep) -> APIResponse[ClassDetailResponse]:
    """Get a class with its students."""
    return APIResponse(data=ClassDetailResponse.model_validate(store.get_class_detail(class_id)))


@router.put("/{class_id}", response_model=APIResponse[ClassResponse])
def update_class(
    class_id: str, school_class: ClassUpdate, store: RecordStoreDep
) -> APIResponse[ClassResponse]:
    """Update a class (partial update)."""
    updated = store.update_class(class_id, **school_class.to_fields(partial=True))
    return APIResponse(
        message="Class updated successfully",
        data=ClassResponse.model_validate(updated),
    )


@router.delete("/{class_id}", response_model=APIResponse[ClassResponse])
def delete_class(class_id: str, store: RecordStoreDep) -> APIResponse[ClassResponse]:
    """Delete a class with no students."""
    deleted = store.delete_class(class_id)
    return APIResponse(
        message="Class deleted successfully",
        data=ClassResponse.model_validate(deleted),
    )
