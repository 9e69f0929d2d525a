"""Scoped read paths over audit records: list, lookup, history, search, stats, export."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from datetime import date, timedelta
from io import StringIO
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.core.errors import ValidationError
from audit_trail.core.roles import Caller
from audit_trail.models import ActionType, AuditRecord
from audit_trail.services import access_scope
from audit_trail.services.action_type_service import find_action_type
from audit_trail.utils.time import day_start, utc_now

SORTABLE_FIELDS: dict[str, Any] = {
    "action_at": AuditRecord.action_at,
    "created_at": AuditRecord.created_at,
    "version": AuditRecord.version,
    "id": AuditRecord.id,
    "entity_type": AuditRecord.entity_type,
    "entity_id": AuditRecord.entity_id,
    "action_by": AuditRecord.action_by,
}
MAX_PAGE_SIZE: int = 100

EXPORT_COLUMNS: list[str] = [
    "id",
    "entity_type",
    "entity_id",
    "action_type",
    "action_by",
    "action_at",
    "version",
    "ip_address",
    "source_service",
    "module_name",
    "previous_data",
    "new_data",
]


@dataclass
class RecordFilters:
    entity_type: str | None = None
    entity_id: str | None = None
    action_by: str | None = None
    action_type_code: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10
    sort_by: str = "action_at"
    sort_order: str = "desc"

    def validate(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")
        if self.sort_order not in {"asc", "desc"}:
            raise ValidationError("sort_order must be 'asc' or 'desc'")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from must not be after date_to")
        if self.date_to and self.date_to >= date.max:
            raise ValidationError("date_to is out of range")


def _count(db: Session, where: ColumnElement[bool]) -> int:
    return int(db.scalar(select(func.count(AuditRecord.id)).where(where)) or 0)


def _filter_conditions(db: Session, filters: RecordFilters) -> list[ColumnElement[bool]] | None:
    """Translate filters into conditions; ``None`` means nothing can match."""
    conditions: list[ColumnElement[bool]] = []
    if filters.entity_type:
        conditions.append(AuditRecord.entity_type == filters.entity_type)
    if filters.entity_id:
        conditions.append(AuditRecord.entity_id == filters.entity_id)
    if filters.action_by:
        conditions.append(AuditRecord.action_by == filters.action_by)
    if filters.date_from:
        conditions.append(AuditRecord.action_at >= day_start(filters.date_from))
    if filters.date_to:
        conditions.append(AuditRecord.action_at < day_start(filters.date_to) + timedelta(days=1))
    if filters.action_type_code:
        action_type = find_action_type(db, filters.action_type_code)
        if action_type is None:
            return None
        conditions.append(AuditRecord.action_type_id == action_type.id)
    return conditions


def _ordered(statement: Select, filters: RecordFilters) -> Select:
    column = SORTABLE_FIELDS[filters.sort_by]
    primary = column.asc() if filters.sort_order == "asc" else column.desc()
    return statement.order_by(primary, AuditRecord.id.asc())


def list_records(db: Session, filters: RecordFilters, caller: Caller) -> tuple[list[AuditRecord], int]:
    """Return one page of records visible to the caller plus the total match count."""
    filters.validate()
    conditions = _filter_conditions(db, filters)
    if conditions is None:
        return [], 0

    where = and_(access_scope.scope_for(caller).record_clause(), *conditions)
    total = _count(db, where)
    records = db.scalars(
        _ordered(select(AuditRecord).where(where), filters)
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
    ).all()
    return list(records), total


def get_record_for_caller(db: Session, record_id: int, caller: Caller) -> AuditRecord | None:
    """Missing and out-of-scope records both come back as ``None``."""
    return db.scalar(
        select(AuditRecord)
        .where(AuditRecord.id == record_id, access_scope.scope_for(caller).record_clause())
        .limit(1)
    )


def entity_history(db: Session, entity_type: str, entity_id: str, caller: Caller) -> list[AuditRecord]:
    return list(
        db.scalars(
            select(AuditRecord)
            .where(
                AuditRecord.entity_type == entity_type,
                AuditRecord.entity_id == entity_id,
                access_scope.scope_for(caller).record_clause(),
            )
            .order_by(AuditRecord.version.asc())
        ).all()
    )


def search_records(
    db: Session,
    term: str,
    caller: Caller,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[AuditRecord], int]:
    """Case-insensitive substring match over entity type, entity id and actor."""
    term = (term or "").strip()
    if not term:
        raise ValidationError("Search term is required")
    RecordFilters(page=page, limit=limit).validate()

    where = and_(
        access_scope.scope_for(caller).record_clause(),
        or_(
            AuditRecord.entity_type.icontains(term, autoescape=True),
            AuditRecord.entity_id.icontains(term, autoescape=True),
            AuditRecord.action_by.icontains(term, autoescape=True),
        ),
    )
    total = _count(db, where)
    records = db.scalars(
        select(AuditRecord)
        .where(where)
        .order_by(AuditRecord.action_at.desc(), AuditRecord.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(records), total


def record_stats(db: Session, caller: Caller) -> dict[str, Any]:
    scope_clause = access_scope.scope_for(caller).record_clause()
    since = utc_now() - timedelta(hours=24)

    action_rows = db.execute(
        select(ActionType.code, ActionType.description, func.count(AuditRecord.id).label("count"))
        .join(ActionType, ActionType.id == AuditRecord.action_type_id)
        .where(scope_clause)
        .group_by(ActionType.code, ActionType.description)
        .order_by(func.count(AuditRecord.id).desc(), ActionType.code.asc())
    ).all()
    entity_rows = db.execute(
        select(AuditRecord.entity_type, func.count(AuditRecord.id).label("count"))
        .where(scope_clause)
        .group_by(AuditRecord.entity_type)
        .order_by(func.count(AuditRecord.id).desc(), AuditRecord.entity_type.asc())
    ).all()

    return {
        "total_logs": _count(db, scope_clause),
        "recent_activity": _count(db, and_(scope_clause, AuditRecord.action_at >= since)),
        "action_breakdown": [
            {"action_type": row.code, "description": row.description, "count": row.count}
            for row in action_rows
        ],
        "entity_breakdown": [
            {"entity_type": row.entity_type, "count": row.count}
            for row in entity_rows
        ],
    }


def _json_cell(value: Any) -> str:
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True, default=str)


def export_records_csv(db: Session, filters: RecordFilters, caller: Caller) -> str:
    """Render every record matching the filters (up to ``export_max_rows``) as CSV."""
    filters.validate()
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)

    conditions = _filter_conditions(db, filters)
    if conditions is None:
        return buffer.getvalue()

    records = db.scalars(
        _ordered(select(AuditRecord).where(access_scope.scope_for(caller).record_clause(), *conditions), filters)
        .limit(settings.export_max_rows)
    ).all()
    for record in records:
        writer.writerow(
            [
                record.id,
                record.entity_type,
                record.entity_id,
                record.action_type_code,
                record.action_by or "",
                record.action_at.isoformat(),
                record.version,
                record.ip_address or "",
                record.source_service,
                record.module_name,
                _json_cell(record.previous_data),
                _json_cell(record.new_data),
            ]
        )
    return buffer.getvalue()
