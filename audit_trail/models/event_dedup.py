"""Processed event ids used to drop duplicate submissions."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.db.base import Base


class EventDedup(Base):
    __tablename__ = "event_dedup"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    source_service: Mapped[str] = mapped_column(String(64), nullable=False)
    audit_record_id: Mapped[int | None] = mapped_column(
        ForeignKey("audit_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
