"""Summary endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from audit_trail.core.roles import Caller
from audit_trail.core.security import get_current_caller
from audit_trail.db.session import get_db
from audit_trail.schemas.summary import AggregateRequest, AggregateResponse, SummaryRead, SummaryStats
from audit_trail.services import aggregation_service
from audit_trail.services.aggregation_service import SummaryFilters
from audit_trail.services.security_guards import require_department_admin, require_super_admin

router: APIRouter = APIRouter()


@router.get("", response_model=list[SummaryRead])
def list_summaries(
    date_from: date | None = None,
    date_to: date | None = None,
    service: str | None = None,
    module_name: str | None = None,
    action: str | None = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_department_admin),
) -> list[SummaryRead]:
    filters = SummaryFilters(
        date_from=date_from,
        date_to=date_to,
        service=service,
        module_name=module_name,
        action=action,
    )
    return [SummaryRead.model_validate(row) for row in aggregation_service.list_summaries(db, filters, caller)]


@router.get("/stats", response_model=SummaryStats)
def summary_stats(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_department_admin),
) -> SummaryStats:
    return SummaryStats(**aggregation_service.summary_stats(db, caller))


@router.get("/recent", response_model=list[SummaryRead])
def recent_activity(
    days: int = Query(default=7, ge=1, le=366),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> list[SummaryRead]:
    return [SummaryRead.model_validate(row) for row in aggregation_service.recent_summaries(db, days, caller)]


@router.post("/aggregate", response_model=AggregateResponse)
def trigger_aggregation(
    payload: AggregateRequest,
    db: Session = Depends(get_db),
    _: Caller = Depends(require_super_admin),
) -> AggregateResponse:
    processed = aggregation_service.aggregate_range(db, payload.date_from, payload.date_to)
    return AggregateResponse(dates_processed=processed, message=f"Aggregation completed for {processed} days")
