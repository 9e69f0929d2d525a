"""Action type vocabulary model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.db.base import Base


class ActionType(Base):
    """Closed vocabulary of action codes referenced by audit records."""

    __tablename__ = "action_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
