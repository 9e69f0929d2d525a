"""Audit record store: append with per-entity versioning, lookup, removal."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_random

from audit_trail.core.config import settings
from audit_trail.core.errors import ConflictError, NotFoundError, ValidationError
from audit_trail.models import AuditRecord
from audit_trail.services.action_type_service import resolve_action_type_id

logger = logging.getLogger(__name__)

SYSTEM_SOURCE: str = "system"
TOMBSTONE_ENTITY_TYPE: str = "audit_record"


def _next_version(db: Session, entity_type: str, entity_id: str) -> int:
    current = db.scalar(
        select(func.max(AuditRecord.version)).where(
            AuditRecord.entity_type == entity_type,
            AuditRecord.entity_id == entity_id,
        )
    )
    return (current or 0) + 1


def _insert_next_version(db: Session, values: dict[str, Any]) -> AuditRecord:
    """Read the current max version and insert the successor in one commit.

    A concurrent writer that committed the same version first makes the unique
    constraint fail here; the session is rolled back so the caller can retry
    against fresh state.
    """
    version = _next_version(db, values["entity_type"], values["entity_id"])
    record = AuditRecord(**values, version=version)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "[AUDIT] Version %s already taken for %s/%s; retrying",
            version,
            values["entity_type"],
            values["entity_id"],
        )
        raise
    db.refresh(record)
    return record


def append(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action_type_code: str,
    action_by: str | None = None,
    previous_data: dict[str, Any] | None = None,
    new_data: dict[str, Any] | None = None,
    ip_address: str | None = None,
    source_service: str = SYSTEM_SOURCE,
    module_name: str | None = None,
    processing_time_ms: float | None = None,
) -> AuditRecord:
    """Append a record for an entity; the store assigns the version."""
    if not entity_type or not entity_id:
        raise ValidationError("entity_type and entity_id are required")
    action_type_id = resolve_action_type_id(db, action_type_code)

    values: dict[str, Any] = {
        "entity_type": entity_type,
        "entity_id": entity_id,
        "action_type_id": action_type_id,
        "action_by": action_by or None,
        "previous_data": previous_data,
        "new_data": new_data,
        "ip_address": ip_address or None,
        "source_service": source_service,
        "module_name": module_name or entity_type,
        "processing_time_ms": processing_time_ms,
    }
    retrying = Retrying(
        stop=stop_after_attempt(settings.version_conflict_retries),
        wait=wait_random(0, 0.05),
        retry=retry_if_exception_type(IntegrityError),
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                record = _insert_next_version(db, values)
    except IntegrityError as exc:
        logger.warning("[AUDIT] Version assignment lost for %s/%s after retries", entity_type, entity_id)
        raise ConflictError(
            f"Could not assign a version for {entity_type}/{entity_id}; retry the submission"
        ) from exc

    logger.info(
        "[AUDIT] Recorded %s %s/%s v%s by %s",
        record.action_type_code,
        record.entity_type,
        record.entity_id,
        record.version,
        record.action_by or SYSTEM_SOURCE,
    )
    return record


def get_record(db: Session, record_id: int) -> AuditRecord | None:
    """Unscoped lookup; read paths layer caller scope on top."""
    return db.get(AuditRecord, record_id)


def list_entity_records(db: Session, entity_type: str, entity_id: str) -> list[AuditRecord]:
    return list(
        db.scalars(
            select(AuditRecord)
            .where(AuditRecord.entity_type == entity_type, AuditRecord.entity_id == entity_id)
            .order_by(AuditRecord.version.asc())
        ).all()
    )


def snapshot(record: AuditRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "entity_type": record.entity_type,
        "entity_id": record.entity_id,
        "action_type_code": record.action_type_code,
        "action_by": record.action_by,
        "action_at": record.action_at.isoformat(),
        "version": record.version,
        "previous_data": record.previous_data,
        "new_data": record.new_data,
        "ip_address": record.ip_address,
        "source_service": record.source_service,
        "module_name": record.module_name,
    }


def remove_record(db: Session, record_id: int, *, removed_by: str | None = None) -> AuditRecord | None:
    """Hard-delete a record.

    When tombstones are enabled the tombstone is inserted in the same commit as
    the delete, so either both land or neither does. Returns the tombstone.
    Versions of the remaining records are left as they are.
    """
    record = db.get(AuditRecord, record_id)
    if record is None:
        raise NotFoundError("Audit record not found")

    removed = snapshot(record)
    tombstone: AuditRecord | None = None
    if settings.tombstone_on_delete:
        tombstone = AuditRecord(
            entity_type=TOMBSTONE_ENTITY_TYPE,
            entity_id=str(record_id),
            action_type_id=resolve_action_type_id(db, "DELETE"),
            action_by=removed_by or None,
            previous_data=removed,
            new_data=None,
            source_service=SYSTEM_SOURCE,
            module_name=TOMBSTONE_ENTITY_TYPE,
            version=_next_version(db, TOMBSTONE_ENTITY_TYPE, str(record_id)),
        )
        db.add(tombstone)

    db.delete(record)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("[AUDIT] Delete of record %s rolled back; tombstone version was taken", record_id)
        raise ConflictError(f"Could not delete audit record {record_id}; retry the request") from exc

    logger.warning(
        "[AUDIT] Record %s (%s/%s v%s) deleted by %s",
        record_id,
        removed["entity_type"],
        removed["entity_id"],
        removed["version"],
        removed_by,
    )
    if tombstone is None:
        return None
    db.refresh(tombstone)
    return tombstone
