"""Counter maintenance endpoints."""

from fastapi import APIRouter

from registrar.api.dependencies import RecordStoreDep
from registrar.api.models import APIResponse, CounterReportResponse

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("/counters", response_model=APIResponse[CounterReportResponse])
def check_counters(store: RecordStoreDep) -> APIResponse[CounterReportResponse]:
    """Compare every counter with its live reference count."""
    report = store.check_counters()
    return APIResponse(
        message="Counters consistent" if report.consistent else "Counter drift detected",
        data=CounterReportResponse.model_validate(report),
    )


@router.post("/counters/repair", response_model=APIResponse[CounterReportResponse])
def repair_counters(store: RecordStoreDep) -> APIResponse[CounterReportResponse]:
    """Recompute drifted counters from live references."""
    report = store.repair_counters()
    return APIResponse(
        message=f"Repaired {len(report.drifts)} counter(s)",
        data=CounterReportResponse.model_validate(report),
    )
