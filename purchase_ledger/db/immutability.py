"""
ORM-level immutability enforcement for the ledger.

Ledger entries are append-only.  Once a row is written by finalization it
may not be edited or deleted through the ORM, with one exception: a
downstream remap tool may attach ``product_id`` to an entry whose item was
later matched to a catalog product.

SQLAlchemy fires mapper events before UPDATE/DELETE reach the database:

    session.flush()
         |
         v
    [before_update] --> _check_ledger_entry_update() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_ledger_entry_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Bulk ``insert()`` statements bypass mapper events; that is the only write
path finalization uses.

Usage:

    from purchase_ledger.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # LedgerDatabase.create_tables() calls this

To temporarily disable (tests only):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from purchase_ledger.exceptions import ImmutabilityViolationError
from purchase_ledger.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_ledger_entry_update(mapper, connection, target):
    """Block changes to any ledger entry column other than product_id."""
    from purchase_ledger.models.ledger_entry import REMAPPABLE_FIELDS

    insp = inspect(target)
    for attr in insp.mapper.column_attrs:
        if attr.key in REMAPPABLE_FIELDS:
            continue
        if insp.attrs[attr.key].history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "LedgerEntry",
                    "entity_id": str(target.id),
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise ImmutabilityViolationError(
                entity_type="LedgerEntry",
                entity_id=str(target.id),
                reason=f"Cannot modify field '{attr.key}' on a ledger entry",
            )


def _check_ledger_entry_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason="Ledger entries cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.

    Idempotent: registering twice does not install duplicate listeners.
    """
    from purchase_ledger.models.ledger_entry import LedgerEntry

    if not event.contains(LedgerEntry, "before_update", _check_ledger_entry_update):
        event.listen(LedgerEntry, "before_update", _check_ledger_entry_update)
    if not event.contains(LedgerEntry, "before_delete", _check_ledger_entry_delete):
        event.listen(LedgerEntry, "before_delete", _check_ledger_entry_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests that need to violate immutability on
    purpose.
    """
    from purchase_ledger.models.ledger_entry import LedgerEntry

    _safe_remove_listener(LedgerEntry, "before_update", _check_ledger_entry_update)
    _safe_remove_listener(LedgerEntry, "before_delete", _check_ledger_entry_delete)
