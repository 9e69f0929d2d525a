"""Service credential issuance, validation and revocation."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from audit_trail.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from audit_trail.core.roles import parse_service_name
from audit_trail.models import ServiceCredential
from audit_trail.utils.time import as_utc, utc_now

logger = logging.getLogger(__name__)


def hash_api_key(raw_key: str) -> str:
    """Deterministic one-way hash; raw keys are high-entropy so no salt is used."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key(prefix: str | None = None) -> str:
    token = secrets.token_hex(32)
    return f"{prefix}_{token}" if prefix else token


def create_credential(
    db: Session,
    *,
    service_name: str,
    description: str | None = None,
    can_write: bool = True,
    can_read: bool = False,
    allowed_modules: list[str] | None = None,
    expires_at: datetime | None = None,
    created_by: str | None = None,
) -> tuple[ServiceCredential, str]:
    """Issue a credential; the raw key is returned once and never stored."""
    try:
        department = parse_service_name(service_name)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    raw_key = generate_api_key(department.service_name)
    credential = ServiceCredential(
        key_hash=hash_api_key(raw_key),
        service_name=department.service_name,
        description=description,
        can_write=can_write,
        can_read=can_read,
        allowed_modules=list(allowed_modules) if allowed_modules else None,
        expires_at=as_utc(expires_at) if expires_at is not None else None,
        created_by=created_by,
        is_active=True,
    )
    db.add(credential)
    db.commit()
    db.refresh(credential)
    logger.info("[CREDENTIALS] Issued key id=%s for service=%s by %s", credential.id, credential.service_name, created_by)
    return credential, raw_key


def validate_credential(db: Session, raw_key: str | None) -> ServiceCredential:
    """Return the active credential for ``raw_key`` and stamp ``last_used_at``."""
    if not raw_key:
        raise UnauthorizedError("API key is required")

    credential = db.scalar(
        select(ServiceCredential).where(ServiceCredential.key_hash == hash_api_key(raw_key)).limit(1)
    )
    if credential is None:
        raise UnauthorizedError("API key not found")
    if not credential.is_active:
        logger.warning("[AUTH] Revoked API key used (id=%s, service=%s)", credential.id, credential.service_name)
        raise UnauthorizedError("API key has been revoked")
    now = utc_now()
    if credential.expires_at is not None and as_utc(credential.expires_at) <= now:
        raise UnauthorizedError("API key has expired")

    credential.last_used_at = now
    db.commit()
    db.refresh(credential)
    return credential


def require_write(credential: ServiceCredential, module_name: str) -> None:
    if not credential.can_write:
        raise UnauthorizedError("API key does not have write permission")
    if credential.allowed_modules and module_name not in credential.allowed_modules:
        raise ForbiddenError(f"API key is not allowed to write module '{module_name}'")


def list_credentials(db: Session) -> list[ServiceCredential]:
    return list(
        db.scalars(
            select(ServiceCredential).order_by(ServiceCredential.created_at.desc(), ServiceCredential.id.desc())
        ).all()
    )


def get_credential(db: Session, credential_id: int) -> ServiceCredential:
    credential = db.get(ServiceCredential, credential_id)
    if credential is None:
        raise NotFoundError("API key not found")
    return credential


def revoke_credential(db: Session, credential_id: int, *, revoked_by: str | None = None) -> ServiceCredential:
    credential = get_credential(db, credential_id)
    credential.is_active = False
    credential.revoked_at = utc_now()
    credential.revoked_by = revoked_by
    db.commit()
    db.refresh(credential)
    logger.warning("[CREDENTIALS] Revoked key id=%s (service=%s) by %s", credential.id, credential.service_name, revoked_by)
    return credential


def delete_credential(db: Session, credential_id: int) -> None:
    credential = get_credential(db, credential_id)
    db.delete(credential)
    db.commit()
    logger.warning("[CREDENTIALS] Deleted key id=%s", credential_id)
