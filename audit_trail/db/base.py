"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from audit_trail.models import action_type as _action_type  # noqa: E402,F401
from audit_trail.models import audit_record as _audit_record  # noqa: E402,F401
from audit_trail.models import event_dedup as _event_dedup  # noqa: E402,F401
from audit_trail.models import service_credential as _service_credential  # noqa: E402,F401
from audit_trail.models import summary as _summary  # noqa: E402,F401
