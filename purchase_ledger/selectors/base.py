"""
Module: purchase_ledger.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Selectors.  May import from db/, models/ and domain/.
    MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      call session.add(), session.delete(), session.commit() or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses from
      purchase_ledger.domain.dtos, not ORM instances.
    - Session ownership: the caller owns the session and its transaction
      scope (LedgerDatabase.write_scope or read_scope).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
