"""Database seeding helpers."""

import logging

from sqlalchemy.orm import Session

from audit_trail.services.action_type_service import ensure_action_types
from audit_trail.services.dedup_service import cleanup_expired

logger = logging.getLogger(__name__)


def ensure_seed_data(session: Session) -> None:
    """Seed the action type vocabulary and drop expired dedup entries."""
    ensure_action_types(session)
    removed = cleanup_expired(session)
    logger.info("[BOOTSTRAP] Seed complete (expired dedup entries removed: %s)", removed)
