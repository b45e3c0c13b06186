"""
Caller-side retry for transient finalize failures.

FinalizationService never retries internally.  Callers that want automatic
recovery from a lost serialization race or a lock timeout wrap the call in
``finalize_with_retry``.  Retrying is safe: a retry that runs after a
competing transaction committed observes its rows and returns
``already_finalized=True``.

Only ConcurrencyError subclasses are retried.  QuoteNotFoundError,
EmptyQuoteError and anything else propagate on the first attempt.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from purchase_ledger.domain.dtos import FinalizeResult
from purchase_ledger.exceptions import ConcurrencyError
from purchase_ledger.logging_config import get_logger

logger = get_logger("services.retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with jitter."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.05
    max_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
            max_delay_seconds=settings.retry_max_delay_seconds,
        )

    def delay_for(self, attempt: int, rng: random.Random) -> float:
        """Sleep before retry number ``attempt`` (1-based), jittered to 50-100%."""
        ceiling = min(
            self.max_delay_seconds,
            self.base_delay_seconds * (2 ** (attempt - 1)),
        )
        return ceiling * rng.uniform(0.5, 1.0)


def finalize_with_retry(
    service,
    quote_id: UUID,
    scope_key: str,
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
) -> FinalizeResult:
    """
    Call ``service.finalize`` retrying ConcurrencyError up to the policy limit.

    Raises:
        ConcurrencyError: The last transient failure when every attempt failed.
    """
    policy = policy or RetryPolicy()
    rng = rng or random.Random()

    attempt = 1
    while True:
        try:
            return service.finalize(quote_id, scope_key)
        except ConcurrencyError as exc:
            if attempt >= policy.max_attempts:
                logger.error(
                    "finalize_retries_exhausted",
                    extra={
                        "quote_id": str(quote_id),
                        "attempts": attempt,
                        "error_code": exc.code,
                    },
                )
                raise
            delay = policy.delay_for(attempt, rng)
            logger.warning(
                "finalize_retrying",
                extra={
                    "quote_id": str(quote_id),
                    "attempt": attempt,
                    "error_code": exc.code,
                    "delay_seconds": round(delay, 4),
                },
            )
            sleep(delay)
            attempt += 1
