"""
Module: purchase_ledger.models.activity_log
Responsibility: ORM persistence for activity events written by the
    database activity sink.

Activity rows are informational.  Nothing in the ledger core reads them,
and their absence never affects a finalization outcome.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from purchase_ledger.db.base import Base


class ActivityType(str, Enum):
    """Kinds of activity the ledger reports."""

    QUOTE_FINALIZED = "quote_finalized"


class ActivityLog(Base):
    """One activity event."""

    __tablename__ = "activity_logs"

    __table_args__ = (
        Index("idx_activity_entity", "entity_type", "entity_id"),
        Index("idx_activity_scope", "scope_key"),
    )

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scope_key: Mapped[str | None] = mapped_column(String(200), nullable=True)
    activity_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.activity_type} {self.entity_type}:{self.entity_id}>"
