"""Audit record model."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from audit_trail.db.base import Base


class AuditRecord(Base):
    """One immutable entry in an entity's action history.

    ``version`` is assigned by the store: for a fixed ``(entity_type, entity_id)``
    it starts at 1 and grows by exactly one per appended record. The unique
    constraint is what serializes concurrent writers.
    """

    __tablename__ = "audit_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    action_type_id: Mapped[int] = mapped_column(ForeignKey("action_types.id"), nullable=False)
    action_by: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    action_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    previous_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source_service: Mapped[str] = mapped_column(String(64), nullable=False, default="system")
    module_name: Mapped[str] = mapped_column(String(100), nullable=False)
    processing_time_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    action_type: Mapped["ActionType"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "version", name="uq_audit_records_entity_version"),
        Index("ix_audit_records_entity", "entity_type", "entity_id"),
        # Deleted ids must never be handed out again.
        {"sqlite_autoincrement": True},
    )

    @property
    def action_type_code(self) -> str:
        return self.action_type.code
