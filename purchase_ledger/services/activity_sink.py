"""
Best-effort activity sinks.

Responsibility:
    Deliver informational activity events (e.g. "quote finalized") to an
    audit/activity store.  Delivery is never a dependency of correctness.

Architecture position:
    Services -- outbound port.  The finalization service emits through
    ``emit_best_effort`` after its transaction commits.

Failure modes:
    - A sink may raise anything.  ``emit_best_effort`` logs the failure
      and swallows it; the caller's result is unaffected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from purchase_ledger.logging_config import get_logger
from purchase_ledger.models.activity_log import ActivityLog, ActivityType

if TYPE_CHECKING:
    from purchase_ledger.db.engine import LedgerDatabase

logger = get_logger("services.activity_sink")


@dataclass(frozen=True)
class ActivityEvent:
    """One informational event about a ledger entity."""

    activity_type: ActivityType
    entity_type: str
    entity_id: str
    scope_key: str | None
    occurred_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ActivitySink(Protocol):
    """Destination for activity events.  Implementations may raise."""

    def record(self, event: ActivityEvent) -> None:
        ...


class NullActivitySink:
    """Discards every event."""

    def record(self, event: ActivityEvent) -> None:
        return None


class LoggingActivitySink:
    """Writes each event to the structured log."""

    def record(self, event: ActivityEvent) -> None:
        logger.info(
            "activity_recorded",
            extra={
                "activity_type": event.activity_type.value,
                "entity_type": event.entity_type,
                "entity_id": event.entity_id,
                "scope_key": event.scope_key,
                "occurred_at": event.occurred_at,
                "activity_metadata": event.metadata,
            },
        )


class DatabaseActivitySink:
    """Persists each event as an ActivityLog row in its own transaction."""

    def __init__(self, database: LedgerDatabase):
        self._database = database

    def record(self, event: ActivityEvent) -> None:
        with self._database.session() as session, session.begin():
            session.add(
                ActivityLog(
                    activity_type=event.activity_type.value,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    scope_key=event.scope_key,
                    activity_metadata=dict(event.metadata),
                    occurred_at=event.occurred_at,
                )
            )


def emit_best_effort(sink: ActivitySink, event: ActivityEvent) -> bool:
    """
    Record an event, swallowing any sink failure.

    Returns:
        True if the sink accepted the event, False if it raised.
    """
    try:
        sink.record(event)
    except Exception as exc:
        logger.warning(
            "activity_sink_failed",
            extra={
                "activity_type": event.activity_type.value,
                "entity_type": event.entity_type,
                "entity_id": event.entity_id,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        return False
    return True
