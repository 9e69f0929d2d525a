"""Daily aggregation summary model."""

from datetime import date as dt_date, datetime, timezone

from sqlalchemy import Date, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.db.base import Base


class Summary(Base):
    """Per-day rollup of audit records for one (service, module, action) group."""

    __tablename__ = "audit_summaries"

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[dt_date] = mapped_column(Date, nullable=False, index=True)
    source_service: Mapped[str] = mapped_column(String(64), nullable=False)
    module_name: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unique_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_processing_time: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_aggregated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("date", "source_service", "module_name", "action", name="uq_audit_summaries_bucket"),
    )
