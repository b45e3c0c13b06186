"""
LedgerDatabase transaction scopes: commit/rollback, time bounds, and
driver error translation on a live database.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from purchase_ledger.db.engine import LedgerDatabase
from purchase_ledger.exceptions import TransactionTimeoutError
from purchase_ledger.models.catalog import Vendor
from purchase_ledger.models.ledger_entry import LedgerEntry
from purchase_ledger.services.finalization_service import FinalizationService
from tests.conftest import TEST_SCOPE


def _vendor_count(database):
    with database.session() as session:
        return session.execute(select(func.count()).select_from(Vendor)).scalar_one()


class TestWriteScope:

    def test_commits_on_success(self, database):
        with database.write_scope("test") as session:
            session.add(Vendor(name="Committed"))
        assert _vendor_count(database) == 1

    def test_rolls_back_on_exception(self, database):
        with pytest.raises(RuntimeError):
            with database.write_scope("test") as session:
                session.add(Vendor(name="Rolled back"))
                session.flush()
                raise RuntimeError("boom")
        assert _vendor_count(database) == 0

    def test_non_transient_db_error_propagates_untranslated(self, database):
        from sqlalchemy.exc import IntegrityError

        with database.write_scope("seed") as session:
            session.add(Vendor(name="Dup"))

        with pytest.raises(IntegrityError):
            with database.write_scope("test") as session:
                session.add(Vendor(name="Dup"))

        assert _vendor_count(database) == 1

    def test_deadline_exceeded_rolls_back_finalize(self, database, deterministic_clock, seed):
        quote_id = seed.quote(lines=[{"quantity": 1, "unit_price": Decimal("100")}])
        impatient = LedgerDatabase(database.database_url, write_timeout_seconds=1e-9)
        try:
            service = FinalizationService(impatient, clock=deterministic_clock)
            with pytest.raises(TransactionTimeoutError) as exc_info:
                service.finalize(quote_id, TEST_SCOPE)
        finally:
            impatient.dispose()

        assert exc_info.value.retryable is True
        with database.session() as session:
            count = session.execute(
                select(func.count()).select_from(LedgerEntry).where(LedgerEntry.quote_id == quote_id)
            ).scalar_one()
        assert count == 0

    @pytest.mark.slow_locks
    def test_sqlite_lock_wait_becomes_timeout(self, database, deterministic_clock, seed):
        if not database.is_sqlite:
            pytest.skip("SQLite busy-timeout behaviour")
        quote_id = seed.quote(lines=[{"quantity": 1}])
        impatient = LedgerDatabase(database.database_url, write_timeout_seconds=0.2)
        try:
            service = FinalizationService(impatient, clock=deterministic_clock)
            with database.write_scope("hold_lock") as holder:
                holder.add(Vendor(name="Holding the write lock"))
                holder.flush()
                with pytest.raises(TransactionTimeoutError):
                    service.finalize(quote_id, TEST_SCOPE)
        finally:
            impatient.dispose()

        # The blocked finalize left nothing behind and can run now.
        result = FinalizationService(database, clock=deterministic_clock).finalize(quote_id, TEST_SCOPE)
        assert result.created_count == 1


class TestReadScope:

    def test_never_commits(self, database):
        with database.read_scope("test") as session:
            session.add(Vendor(name="Never committed"))
            session.flush()
        assert _vendor_count(database) == 0

    def test_reads_committed_data(self, database, seed):
        seed.vendor("Visible")
        with database.read_scope("test") as session:
            names = session.scalars(select(Vendor.name)).all()
        assert names == ["Visible"]


class TestDatabaseHandle:

    def test_dialect(self, database):
        assert database.dialect_name in ("sqlite", "postgresql")

    def test_from_settings(self, tmp_path):
        from ledger_config import LedgerSettings

        settings = LedgerSettings(
            database_url=f"sqlite:///{tmp_path / 'settings.db'}",
            write_timeout_seconds=2.5,
            read_timeout_seconds=7.0,
        )
        db = LedgerDatabase.from_settings(settings)
        try:
            assert db.is_sqlite
            assert db.write_timeout_seconds == 2.5
            assert db.read_timeout_seconds == 7.0
        finally:
            db.dispose()

    def test_create_tables_is_repeatable(self, database):
        database.create_tables()
        assert _vendor_count(database) == 0


@pytest.mark.postgres
class TestPostgresIsolation:

    def test_write_scope_is_serializable(self, database):
        from sqlalchemy import text

        with database.write_scope("test") as session:
            level = session.execute(text("SHOW transaction_isolation")).scalar_one()
        assert level == "serializable"

    def test_statement_timeout_applied(self, database):
        from sqlalchemy import text

        with database.write_scope("test") as session:
            timeout = session.execute(text("SHOW statement_timeout")).scalar_one()
        assert timeout == "5s"
