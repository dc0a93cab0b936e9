"""Department CRUD endpoints."""

from fastapi import APIRouter, Query, status

from registrar.api.dependencies import PageRequestDep, RecordStoreDep
from registrar.api.models import (
    APIResponse,
    DepartmentCreate,
    DepartmentDetailResponse,
    DepartmentReportResponse,
    DepartmentResponse,
    DepartmentUpdate,
    PaginatedResponse,
    paginated,
)
from registrar.records import DepartmentFilter, DepartmentStatus

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("", response_model=PaginatedResponse[DepartmentResponse])
def list_departments(
    store: RecordStoreDep,
    page_request: PageRequestDep,
    status_filter: DepartmentStatus | None = Query(default=None, alias="status"),
) -> PaginatedResponse[DepartmentResponse]:
    """List departments with optional status filter."""
    page = store.list_departments(DepartmentFilter(status=status_filter), page_request)
    return PaginatedResponse(**paginated(page, DepartmentResponse))


@router.post(
    "",
    response_model=APIResponse[DepartmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_department(
    department: DepartmentCreate, store: RecordStoreDep
) -> APIResponse[DepartmentResponse]:
    """Create a new department."""
    created = store.create_department(**department.to_fields())
    return APIResponse(
        message="Department created successfully",
        data=DepartmentResponse.model_validate(created),
    )


@router.get("/stats", response_model=APIResponse[DepartmentReportResponse])
def department_stats(store: RecordStoreDep) -> APIResponse[DepartmentReportResponse]:
    """Department totals, per-department counts and status distribution."""
    return APIResponse(data=DepartmentReportResponse.model_validate(store.department_report()))


@router.get("/{department_id}", response_model=APIResponse[DepartmentDetailResponse])
def get_department(
    department_id: str, store: RecordStoreDep
) -> APIResponse[DepartmentDetailResponse]:
    """Get a department with its classes, courses and first students."""
    detail = store.get_department_detail(department_id)
    return APIResponse(data=DepartmentDetailResponse.model_validate(detail))


@router.put("/{department_id}", response_model=APIResponse[DepartmentResponse])
def update_department(
    department_id: str, department: DepartmentUpdate, store: RecordStoreDep
) -> APIResponse[DepartmentResponse]:
    """Update a department (partial update)."""
    updated = store.update_department(department_id, **department.to_fields(partial=True))
    return APIResponse(
        message="Department updated successfully",
        data=DepartmentResponse.model_validate(updated),
    )


@router.delete("/{department_id}", response_model=APIResponse[DepartmentResponse])
def delete_department(
    department_id: str, store: RecordStoreDep
) -> APIResponse[DepartmentResponse]:
    """Delete a department nothing references."""
    deleted = store.delete_department(department_id)
    return APIResponse(
        message="Department deleted successfully",
        data=DepartmentResponse.model_validate(deleted),
    )
