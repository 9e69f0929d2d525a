"""Audit record endpoints: service write path and scoped caller reads."""

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from audit_trail.core.errors import NotFoundError
from audit_trail.core.roles import Caller
from audit_trail.core.security import get_current_caller, get_service_credential
from audit_trail.db.session import get_db
from audit_trail.models import ServiceCredential
from audit_trail.schemas.audit_record import (
    AuditRecordBrief,
    AuditRecordCreate,
    AuditRecordDeleted,
    AuditRecordPage,
    AuditRecordRead,
    AuditRecordSearchPage,
    AuditRecordStats,
)
from audit_trail.services import audit_record_service, dedup_service, query_service
from audit_trail.services.credential_service import require_write
from audit_trail.services.query_service import RecordFilters
from audit_trail.services.security_guards import require_super_admin

router: APIRouter = APIRouter()

SortField = Literal["action_at", "created_at", "version", "id", "entity_type", "entity_id", "action_by"]


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit


def _record_filters(
    entity_type: str | None = None,
    entity_id: str | None = None,
    action_by: str | None = None,
    action_type_code: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: SortField = "action_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> RecordFilters:
    return RecordFilters(
        entity_type=entity_type,
        entity_id=entity_id,
        action_by=action_by,
        action_type_code=action_type_code,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("", response_model=AuditRecordRead, status_code=status.HTTP_201_CREATED)
def submit_record(
    payload: AuditRecordCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    credential: ServiceCredential = Depends(get_service_credential),
) -> AuditRecordRead:
    """Append a record on behalf of an upstream service.

    A repeated ``event_id`` returns the record created the first time.
    """
    module_name = payload.module_name or payload.entity_type
    require_write(credential, module_name)

    existing = dedup_service.find_duplicate(db, payload.event_id)
    if existing is not None:
        response.status_code = status.HTTP_200_OK
        return AuditRecordRead.model_validate(existing)

    record = audit_record_service.append(
        db,
        entity_type=payload.entity_type,
        entity_id=payload.entity_id,
        action_type_code=payload.action_type_code,
        action_by=payload.action_by,
        previous_data=payload.previous_data,
        new_data=payload.new_data,
        ip_address=payload.ip_address or _client_ip(request),
        source_service=credential.service_name,
        module_name=module_name,
        processing_time_ms=payload.processing_time_ms,
    )
    dedup_service.mark_processed(db, payload.event_id, credential.service_name, record)
    return AuditRecordRead.model_validate(record)


@router.get("", response_model=AuditRecordPage)
def list_records(
    filters: RecordFilters = Depends(_record_filters),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> AuditRecordPage:
    records, total = query_service.list_records(db, filters, caller)
    return AuditRecordPage(
        items=[AuditRecordBrief.model_validate(record) for record in records],
        total=total,
        page=filters.page,
        limit=filters.limit,
        total_pages=_total_pages(total, filters.limit),
    )


@router.get("/search", response_model=AuditRecordSearchPage)
def search_records(
    q: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> AuditRecordSearchPage:
    records, total = query_service.search_records(db, q, caller, page=page, limit=limit)
    return AuditRecordSearchPage(
        items=[AuditRecordRead.model_validate(record) for record in records],
        total=total,
        page=page,
        limit=limit,
        total_pages=_total_pages(total, limit),
    )


@router.get("/stats", response_model=AuditRecordStats)
def record_stats(
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> AuditRecordStats:
    return AuditRecordStats(**query_service.record_stats(db, caller))


@router.get("/export.csv", response_class=PlainTextResponse)
def export_records(
    filters: RecordFilters = Depends(_record_filters),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> PlainTextResponse:
    content = query_service.export_records_csv(db, filters, caller)
    return PlainTextResponse(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="audit_records.csv"'},
    )


@router.get("/history/{entity_type}/{entity_id}", response_model=list[AuditRecordRead])
def entity_history(
    entity_type: str,
    entity_id: str,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> list[AuditRecordRead]:
    records = query_service.entity_history(db, entity_type, entity_id, caller)
    return [AuditRecordRead.model_validate(record) for record in records]


@router.get("/{record_id}", response_model=AuditRecordRead)
def get_record(
    record_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> AuditRecordRead:
    record = query_service.get_record_for_caller(db, record_id, caller)
    if record is None:
        raise NotFoundError("Audit record not found")
    return AuditRecordRead.model_validate(record)


@router.delete("/{record_id}", response_model=AuditRecordDeleted)
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_super_admin),
) -> AuditRecordDeleted:
    tombstone = audit_record_service.remove_record(db, record_id, removed_by=caller.id)
    return AuditRecordDeleted(
        message="Audit record deleted",
        tombstone_id=tombstone.id if tombstone is not None else None,
    )
