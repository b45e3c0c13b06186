"""Write-side services: finalization, activity sinks and retry."""

from purchase_ledger.services.activity_sink import (
    ActivityEvent,
    ActivitySink,
    DatabaseActivitySink,
    LoggingActivitySink,
    NullActivitySink,
    emit_best_effort,
)
from purchase_ledger.services.finalization_service import FinalizationService
from purchase_ledger.services.retry import RetryPolicy, finalize_with_retry

__all__ = [
    "ActivityEvent",
    "ActivitySink",
    "DatabaseActivitySink",
    "FinalizationService",
    "LoggingActivitySink",
    "NullActivitySink",
    "RetryPolicy",
    "emit_best_effort",
    "finalize_with_retry",
]
