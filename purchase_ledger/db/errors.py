"""
Module: purchase_ledger.db.errors
Responsibility: Translate driver-level database errors into the typed
    concurrency and timeout exceptions of purchase_ledger.exceptions.
Architecture position: DB.  Used by the transaction scopes in db/engine.py.

Classification:
    PostgreSQL, by SQLSTATE:
        40001 serialization_failure     -> SerializationConflictError
        40P01 deadlock_detected         -> SerializationConflictError
        57014 query_canceled            -> timeout
        55P03 lock_not_available        -> timeout
        25P03 idle_in_transaction_timeout -> timeout
    SQLite, by message:
        "database is locked" / "database table is locked" -> timeout
        "interrupted" (progress-handler deadline)         -> timeout

    "timeout" means TransactionTimeoutError for write scopes and
    QueryTimeoutError for read scopes.  Anything else is not translated.
"""

from sqlalchemy.exc import DBAPIError

from purchase_ledger.exceptions import (
    PurchaseLedgerError,
    QueryTimeoutError,
    SerializationConflictError,
    TransactionTimeoutError,
)

SERIALIZATION_SQLSTATES = frozenset({"40001", "40P01"})
TIMEOUT_SQLSTATES = frozenset({"57014", "55P03", "25P03"})

_SQLITE_TIMEOUT_MESSAGES = (
    "database is locked",
    "database table is locked",
    "interrupted",
)


def sqlstate_of(exc: DBAPIError) -> str | None:
    """SQLSTATE of the wrapped driver exception, if the driver exposes one."""
    orig = exc.orig
    if orig is None:
        return None
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return str(code) if code else None


def _is_sqlite_timeout(exc: DBAPIError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(fragment in message for fragment in _SQLITE_TIMEOUT_MESSAGES)


def translate_db_error(
    exc: DBAPIError,
    operation: str,
    timeout_seconds: float,
    *,
    read_only: bool = False,
) -> PurchaseLedgerError | None:
    """
    Map a DBAPIError to a typed ledger exception.

    Args:
        exc: The SQLAlchemy-wrapped driver error.
        operation: Name of the operation for the error message.
        timeout_seconds: Budget of the scope the error occurred in.
        read_only: True for read scopes (timeouts become QueryTimeoutError).

    Returns:
        The typed exception to raise, or None when the error is not a
        transient concurrency/timeout failure.
    """
    state = sqlstate_of(exc)
    if state in SERIALIZATION_SQLSTATES:
        if read_only:
            return None
        return SerializationConflictError(operation, detail=f"SQLSTATE {state}")

    if state in TIMEOUT_SQLSTATES or (state is None and _is_sqlite_timeout(exc)):
        if read_only:
            return QueryTimeoutError(operation, timeout_seconds)
        return TransactionTimeoutError(operation, timeout_seconds)

    return None
