"""
Typed Exception Hierarchy for the Purchase Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger must tell a permanent failure (the quote does not
exist) from a transient one (another transaction won a race) without reading
message strings.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. A RETRYABLE flag (whether repeating the whole call can succeed)
  4. Structured DATA attributes (quote_id, timeout, ...)

Example - WRONG way to handle errors:
    try:
        service.finalize(quote_id, scope_key)
    except Exception as e:
        if "could not serialize" in str(e):  # FRAGILE
            retry()

Example - RIGHT way:
    try:
        service.finalize(quote_id, scope_key)
    except ConcurrencyError:
        retry()
    except QuoteError as e:
        api_response(code=e.code, quote_id=e.quote_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PurchaseLedgerError (base)
    |
    +-- QuoteError
    |   +-- QuoteNotFoundError
    |   +-- EmptyQuoteError
    |
    +-- ConcurrencyError              (retryable)
    |   +-- SerializationConflictError
    |   +-- TransactionTimeoutError
    |
    +-- QueryTimeoutError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |
    +-- InvalidDateRangeError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|------------------------------------
Quote           | QUOTE_NOT_FOUND           | Quote id does not exist
                | QUOTE_HAS_NO_ITEMS        | Quote exists but has no line items
----------------|---------------------------|------------------------------------
Concurrency     | SERIALIZATION_CONFLICT    | Database aborted a conflicting txn
                | TRANSACTION_TIMEOUT       | Finalize exceeded its time budget
----------------|---------------------------|------------------------------------
Query           | QUERY_TIMEOUT             | Summary read exceeded its budget
----------------|---------------------------|------------------------------------
Immutability    | IMMUTABILITY_VIOLATION    | Update/delete of a ledger entry
----------------|---------------------------|------------------------------------
Currency        | INVALID_CURRENCY          | Not a known ISO 4217 code
----------------|---------------------------|------------------------------------
Range           | INVALID_DATE_RANGE        | date_from is after date_to

An already-finalized quote and a line item without a vendor reference are
NOT errors: the first is an idempotent no-op result, the second resolves to
the "Unknown Vendor" label.
"""


class PurchaseLedgerError(Exception):
    """
    Base exception for all purchase ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PURCHASE_LEDGER_ERROR"
    retryable: bool = False


# Quote-related exceptions


class QuoteError(PurchaseLedgerError):
    """Base exception for quotes that cannot be finalized."""

    code: str = "QUOTE_ERROR"


class QuoteNotFoundError(QuoteError):
    """Quote with given ID was not found."""

    code: str = "QUOTE_NOT_FOUND"

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Quote not found: {quote_id}")


class EmptyQuoteError(QuoteError):
    """Quote exists but carries no line items to finalize."""

    code: str = "QUOTE_HAS_NO_ITEMS"

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} has no line items")


# Concurrency exceptions


class ConcurrencyError(PurchaseLedgerError):
    """
    Base exception for transient transaction failures.

    The whole operation may be retried.  For finalize, the existence check
    makes a retry safe: it observes the winner's rows and returns a no-op.
    """

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class SerializationConflictError(ConcurrencyError):
    """The database aborted the transaction due to a concurrent write."""

    code: str = "SERIALIZATION_CONFLICT"

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        self.detail = detail
        message = f"Serialization conflict during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TransactionTimeoutError(ConcurrencyError):
    """The transaction exceeded its time budget and was rolled back."""

    code: str = "TRANSACTION_TIMEOUT"

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Transaction for {operation} exceeded {timeout_seconds}s"
        )


# Read-side exceptions


class QueryTimeoutError(PurchaseLedgerError):
    """A read-only query exceeded its time budget."""

    code: str = "QUERY_TIMEOUT"
    retryable: bool = True

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Query for {operation} exceeded {timeout_seconds}s")


# Immutability exceptions


class ImmutabilityError(PurchaseLedgerError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Currency exceptions


class CurrencyError(PurchaseLedgerError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a known ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class InvalidDateRangeError(PurchaseLedgerError):
    """Reporting range is inverted."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, date_from: object, date_to: object):
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(f"Invalid date range: {date_from} is after {date_to}")
