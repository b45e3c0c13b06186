"""
Module: purchase_ledger.db.engine
Responsibility: Database handle owning the SQLAlchemy engine and session
    factory, plus the two transaction scopes the ledger uses: a serializable,
    time-bounded write scope and a time-bounded read scope.
Architecture position: DB.  May import from db/base.py, db/errors.py and
    (for create_tables) models/.  MUST NOT import from services/ or
    selectors/.

Invariants enforced:
    - No module-level engine.  Callers construct a LedgerDatabase and inject
      it wherever a transaction is needed.
    - Write scopes run at SERIALIZABLE isolation.  PostgreSQL gets
      ``isolation_level=SERIALIZABLE``; SQLite opens the transaction with
      ``BEGIN IMMEDIATE``, which takes the database write lock up front.
    - Write scopes are bounded by ``write_timeout_seconds``: a server-side
      statement timeout (PostgreSQL), the busy timeout (SQLite) and a
      wall-clock deadline checked before commit.  Exceeding it rolls back.
    - Read scopes are bounded by ``read_timeout_seconds`` and never commit.

Failure modes:
    - SerializationConflictError when PostgreSQL aborts a serializable
      transaction (SQLSTATE 40001 / 40P01).
    - TransactionTimeoutError when a write scope exceeds its budget.
    - QueryTimeoutError when a read scope exceeds its budget.
    - Other exceptions propagate unchanged after rollback.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from purchase_ledger.db.base import Base
from purchase_ledger.db.errors import translate_db_error
from purchase_ledger.exceptions import QueryTimeoutError, TransactionTimeoutError
from purchase_ledger.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Execution option read by the SQLite "begin" listener.
SQLITE_BEGIN_OPTION = "ledger_sqlite_begin"

# SQLite progress handler granularity (VM instructions between checks).
_SQLITE_PROGRESS_STEPS = 1000


def _install_sqlite_transaction_control(engine: Engine) -> None:
    """
    Take transaction control away from the sqlite3 module.

    pysqlite defers BEGIN until the first DML statement, which would let two
    writers both pass the existence check.  Emitting BEGIN ourselves lets
    write scopes use BEGIN IMMEDIATE.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")


class LedgerDatabase:
    """
    Engine, session factory and transaction scopes for one database.

    Guarantees:
        - write_scope() commits on success and rolls back on any failure.
        - read_scope() never commits.
        - Transient driver errors surface as typed ledger exceptions.
    """

    def __init__(
        self,
        database_url: str,
        *,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        write_timeout_seconds: float = 5.0,
        read_timeout_seconds: float = 10.0,
    ):
        self.database_url = database_url
        self.write_timeout_seconds = write_timeout_seconds
        self.read_timeout_seconds = read_timeout_seconds

        if database_url.startswith("sqlite"):
            self._engine = create_engine(
                database_url,
                echo=echo,
                connect_args={
                    "timeout": write_timeout_seconds,
                    "check_same_thread": False,
                },
            )
            _install_sqlite_transaction_control(self._engine)
        else:
            self._engine = create_engine(
                database_url,
                echo=echo,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                isolation_level="READ COMMITTED",
            )

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

        configure_logging()
        logger.info(
            "engine_initialized",
            extra={
                "dialect": self.dialect_name,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "write_timeout_seconds": write_timeout_seconds,
                "read_timeout_seconds": read_timeout_seconds,
                "echo": echo,
            },
        )

    @classmethod
    def from_settings(cls, settings) -> "LedgerDatabase":
        """Build a handle from a ledger_config.LedgerSettings."""
        return cls(
            settings.database_url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            write_timeout_seconds=settings.write_timeout_seconds,
            read_timeout_seconds=settings.read_timeout_seconds,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def is_sqlite(self) -> bool:
        return self.dialect_name == "sqlite"

    def session(self) -> Session:
        """A plain session with no scope management.  The caller closes it."""
        return self._session_factory()

    # -----------------------------------------------------------------
    # Schema
    # -----------------------------------------------------------------

    def create_tables(self) -> None:
        """Create all tables and register ORM immutability listeners."""
        import purchase_ledger.models  # noqa: F401
        from purchase_ledger.db.immutability import register_immutability_listeners

        Base.metadata.create_all(self._engine)
        register_immutability_listeners()
        logger.info("tables_created", extra={"dialect": self.dialect_name})

    def drop_tables(self) -> None:
        import purchase_ledger.models  # noqa: F401

        Base.metadata.drop_all(self._engine)
        logger.info("tables_dropped", extra={"dialect": self.dialect_name})

    def dispose(self) -> None:
        self._engine.dispose()
        logger.info("engine_disposed", extra={"dialect": self.dialect_name})

    # -----------------------------------------------------------------
    # Transaction scopes
    # -----------------------------------------------------------------

    def _set_statement_timeout(self, session: Session, seconds: float) -> None:
        # SET does not accept bind parameters.
        session.execute(text(f"SET LOCAL statement_timeout = {int(seconds * 1000)}"))

    @contextmanager
    def write_scope(self, operation: str) -> Iterator[Session]:
        """
        Serializable, time-bounded transaction.

        Commits when the block exits normally; rolls back otherwise.

        Raises:
            SerializationConflictError: Concurrent write conflict.
            TransactionTimeoutError: Budget exceeded (nothing committed).
        """
        timeout = self.write_timeout_seconds
        deadline = time.monotonic() + timeout
        session = self._session_factory()
        try:
            if self.is_sqlite:
                session.connection(execution_options={SQLITE_BEGIN_OPTION: "IMMEDIATE"})
            else:
                session.connection(execution_options={"isolation_level": "SERIALIZABLE"})
                self._set_statement_timeout(session, timeout)

            yield session

            session.flush()
            if time.monotonic() > deadline:
                raise TransactionTimeoutError(operation, timeout)
            session.commit()
        except DBAPIError as exc:
            session.rollback()
            translated = translate_db_error(exc, operation, timeout)
            if translated is None:
                raise
            logger.warning(
                "write_scope_aborted",
                extra={
                    "operation": operation,
                    "error_code": translated.code,
                    "dialect": self.dialect_name,
                },
            )
            raise translated from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read_scope(self, operation: str) -> Iterator[Session]:
        """
        Read-only, time-bounded session.  Never commits.

        Raises:
            QueryTimeoutError: Budget exceeded.
        """
        timeout = self.read_timeout_seconds
        deadline = time.monotonic() + timeout
        session = self._session_factory()
        raw_connection = None
        try:
            connection = session.connection()
            if self.is_sqlite:
                raw_connection = connection.connection.driver_connection
                raw_connection.set_progress_handler(
                    lambda: 1 if time.monotonic() > deadline else 0,
                    _SQLITE_PROGRESS_STEPS,
                )
            else:
                self._set_statement_timeout(session, timeout)

            yield session

            if time.monotonic() > deadline:
                raise QueryTimeoutError(operation, timeout)
        except DBAPIError as exc:
            translated = translate_db_error(exc, operation, timeout, read_only=True)
            if translated is None:
                raise
            logger.warning(
                "read_scope_aborted",
                extra={
                    "operation": operation,
                    "error_code": translated.code,
                    "dialect": self.dialect_name,
                },
            )
            raise translated from exc
        finally:
            if raw_connection is not None:
                raw_connection.set_progress_handler(None, 0)
            session.rollback()
            session.close()
