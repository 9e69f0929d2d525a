"""Daily aggregation of audit records into summary rows, and scoped summary reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from audit_trail.core.config import settings
from audit_trail.core.errors import ValidationError
from audit_trail.core.roles import Caller
from audit_trail.models import ActionType, AuditRecord, Summary
from audit_trail.services import access_scope
from audit_trail.utils.time import day_window, iter_days, utc_now

logger = logging.getLogger(__name__)

SYSTEM_ACTOR: str = "system"

GroupKey = tuple[str, str, str]


@dataclass
class _Group:
    total_count: int = 0
    actors: set[str] = field(default_factory=set)
    processing_times: list[float] = field(default_factory=list)

    @property
    def avg_processing_time(self) -> float | None:
        if not self.processing_times:
            return None
        return sum(self.processing_times) / len(self.processing_times)


@dataclass
class SummaryFilters:
    date_from: date | None = None
    date_to: date | None = None
    service: str | None = None
    module_name: str | None = None
    action: str | None = None


def _collect_groups(db: Session, day: date) -> dict[GroupKey, _Group]:
    start, end = day_window(day)
    rows = db.execute(
        select(
            AuditRecord.source_service,
            AuditRecord.module_name,
            ActionType.code,
            AuditRecord.action_by,
            AuditRecord.processing_time_ms,
        )
        .join(ActionType, ActionType.id == AuditRecord.action_type_id)
        .where(AuditRecord.action_at >= start, AuditRecord.action_at < end)
        .order_by(AuditRecord.id.asc())
    ).all()

    groups: dict[GroupKey, _Group] = {}
    for source_service, module_name, action, action_by, processing_time_ms in rows:
        group = groups.setdefault((source_service, module_name, action), _Group())
        group.total_count += 1
        group.actors.add(action_by or SYSTEM_ACTOR)
        if processing_time_ms is not None:
            group.processing_times.append(processing_time_ms)
    return groups


def _write_day(db: Session, bucket: date) -> int:
    groups = _collect_groups(db, bucket)
    existing: dict[GroupKey, Summary] = {
        (row.source_service, row.module_name, row.action): row
        for row in db.scalars(select(Summary).where(Summary.date == bucket)).all()
    }
    now = utc_now()

    for key, group in groups.items():
        values = {
            "total_count": group.total_count,
            "unique_users": len(group.actors),
            "avg_processing_time": group.avg_processing_time,
        }
        summary = existing.pop(key, None)
        if summary is None:
            source_service, module_name, action = key
            db.add(
                Summary(
                    date=bucket,
                    source_service=source_service,
                    module_name=module_name,
                    action=action,
                    last_aggregated_at=now,
                    **values,
                )
            )
            continue
        if any(getattr(summary, name) != value for name, value in values.items()):
            for name, value in values.items():
                setattr(summary, name, value)
            summary.last_aggregated_at = now

    # Groups whose records were all deleted since the last run.
    for stale in existing.values():
        db.delete(stale)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    return len(groups)


def aggregate_day(db: Session, day: date) -> int:
    """Recompute the summary rows of one UTC day; returns the number of groups.

    Re-running with unchanged records leaves the rows exactly as they were.
    """
    if day >= date.max:
        raise ValidationError("day is out of range")
    bucket, _ = day_window(day)
    for attempt in Retrying(
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(IntegrityError),
        reraise=True,
    ):
        with attempt:
            written = _write_day(db, bucket.date())
    logger.info("[AGGREGATE] %s: %s summary groups", bucket.date().isoformat(), written)
    return written


def aggregate_range(db: Session, date_from: date, date_to: date) -> int:
    """Aggregate whole days from ``date_from`` to ``date_to`` inclusive.

    Days are committed one by one; the first failure propagates and leaves the
    earlier days in place.
    """
    if date_from > date_to:
        raise ValidationError("dateFrom must not be after dateTo")
    if date_to >= date.max:
        raise ValidationError("dateTo is out of range")
    span = (date_to - date_from).days + 1
    if span > settings.max_aggregation_days:
        raise ValidationError(f"Aggregation range is limited to {settings.max_aggregation_days} days")
    processed = 0
    for day in iter_days(date_from, date_to):
        aggregate_day(db, day)
        processed += 1
    return processed


def list_summaries(db: Session, filters: SummaryFilters, caller: Caller) -> list[Summary]:
    conditions = [access_scope.scope_for(caller).summary_clause()]
    if filters.date_from:
        conditions.append(Summary.date >= filters.date_from)
    if filters.date_to:
        conditions.append(Summary.date <= filters.date_to)
    if filters.service:
        conditions.append(Summary.source_service == filters.service)
    if filters.module_name:
        conditions.append(Summary.module_name == filters.module_name)
    if filters.action:
        conditions.append(Summary.action == filters.action.upper())
    return list(
        db.scalars(
            select(Summary)
            .where(and_(*conditions))
            .order_by(Summary.date.desc(), Summary.source_service, Summary.module_name, Summary.action)
        ).all()
    )


def summary_stats(db: Session, caller: Caller) -> dict[str, Any]:
    scope_clause = access_scope.scope_for(caller).summary_clause()
    total_summaries = db.scalar(select(func.count(Summary.id)).where(scope_clause)) or 0
    total_logs = db.scalar(select(func.sum(Summary.total_count)).where(scope_clause)) or 0
    service_rows = db.execute(
        select(Summary.source_service, func.sum(Summary.total_count).label("total"))
        .where(scope_clause)
        .group_by(Summary.source_service)
        .order_by(func.sum(Summary.total_count).desc(), Summary.source_service.asc())
    ).all()
    return {
        "total_summaries": int(total_summaries),
        "total_logs_aggregated": int(total_logs),
        "service_breakdown": [
            {"service": row.source_service, "total_logs": int(row.total or 0)} for row in service_rows
        ],
    }


def recent_summaries(db: Session, days: int, caller: Caller) -> list[Summary]:
    if days < 1:
        raise ValidationError("days must be >= 1")
    since = utc_now().date() - timedelta(days=days)
    return list_summaries(db, SummaryFilters(date_from=since), caller)
