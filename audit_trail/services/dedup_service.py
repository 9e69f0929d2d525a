"""Duplicate event detection for the write path.

Every helper here fails open: a dedup problem is logged and the primary
write goes ahead.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.models import AuditRecord, EventDedup
from audit_trail.utils.time import utc_now

logger = logging.getLogger(__name__)


def find_duplicate(db: Session, event_id: str | None) -> AuditRecord | None:
    """Return the record created for ``event_id`` if it was already processed."""
    if not event_id:
        return None
    try:
        entry = db.scalar(select(EventDedup).where(EventDedup.event_id == event_id).limit(1))
        if entry is None or entry.audit_record_id is None:
            return None
        record = db.get(AuditRecord, entry.audit_record_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[DEDUP] Duplicate check failed for event_id=%s; accepting event", event_id)
        return None
    if record is not None:
        logger.info("[DEDUP] Duplicate event detected: %s", event_id)
    return record


def mark_processed(db: Session, event_id: str | None, source_service: str, record: AuditRecord) -> None:
    if not event_id:
        return
    try:
        db.add(
            EventDedup(
                event_id=event_id,
                source_service=source_service,
                audit_record_id=record.id,
                expires_at=utc_now() + timedelta(days=settings.dedup_retention_days),
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[DEDUP] Could not mark event_id=%s as processed", event_id)


def cleanup_expired(db: Session) -> int:
    try:
        result = db.execute(delete(EventDedup).where(EventDedup.expires_at < utc_now()))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[DEDUP] Cleanup of expired entries failed")
        return 0
    removed = result.rowcount or 0
    if removed:
        logger.info("[DEDUP] Cleaned up %s expired dedup records", removed)
    return removed
