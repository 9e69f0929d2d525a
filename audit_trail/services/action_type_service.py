"""Action type registry lookups."""

from __future__ import annotations

import logging
import threading

from cachetools import TTLCache
from sqlalchemy import select
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.core.errors import UnknownActionType
from audit_trail.models import ActionType

logger = logging.getLogger(__name__)

DEFAULT_ACTION_TYPES: tuple[tuple[str, str], ...] = (
    ("CREATE", "Record created"),
    ("UPDATE", "Record updated"),
    ("DELETE", "Record deleted"),
    ("EXPORT", "Data exported"),
    ("IMPORT", "Data imported"),
    ("LOGIN", "User logged in"),
    ("LOGOUT", "User logged out"),
)

# Keyed by (store url, code); the vocabulary is tiny and rarely changes.
_action_type_cache: TTLCache = TTLCache(maxsize=256, ttl=settings.action_type_cache_ttl_seconds)
_cache_lock = threading.Lock()


def clear_action_type_cache() -> None:
    with _cache_lock:
        _action_type_cache.clear()


def normalize_action_code(code: str) -> str:
    return str(code or "").strip().upper()


def find_action_type(db: Session, code: str) -> ActionType | None:
    """Return the active action type for ``code`` or ``None``."""
    return db.scalar(
        select(ActionType)
        .where(ActionType.code == normalize_action_code(code), ActionType.is_active.is_(True))
        .limit(1)
    )


def resolve_action_type_id(db: Session, code: str) -> int:
    """Resolve an action code to its id, raising ``UnknownActionType``."""
    normalized = normalize_action_code(code)
    cache_key = (str(db.get_bind().url), normalized)
    with _cache_lock:
        cached: int | None = _action_type_cache.get(cache_key)
    if cached is not None:
        return cached

    action_type = find_action_type(db, normalized)
    if action_type is None:
        raise UnknownActionType(code)
    with _cache_lock:
        _action_type_cache[cache_key] = action_type.id
    return action_type.id


def list_action_types(db: Session) -> list[ActionType]:
    return list(db.scalars(select(ActionType).order_by(ActionType.id)).all())


def ensure_action_types(db: Session) -> int:
    """Seed the default vocabulary; existing codes only get their description refreshed."""
    created = 0
    for code, description in DEFAULT_ACTION_TYPES:
        action_type = db.scalar(select(ActionType).where(ActionType.code == code).limit(1))
        if action_type is None:
            db.add(ActionType(code=code, description=description, is_active=True))
            created += 1
        else:
            action_type.description = description
    db.commit()
    clear_action_type_cache()
    if created:
        logger.info("[BOOTSTRAP] Seeded %s action types", created)
    return created


def set_action_type_active(db: Session, code: str, is_active: bool) -> ActionType:
    """Toggle a code; the write-path cache is dropped so both paths agree at once."""
    normalized = normalize_action_code(code)
    action_type = db.scalar(select(ActionType).where(ActionType.code == normalized).limit(1))
    if action_type is None:
        raise UnknownActionType(code)
    action_type.is_active = is_active
    db.commit()
    clear_action_type_cache()
    logger.info("[AUDIT] Action type %s is_active=%s", normalized, is_active)
    return action_type
