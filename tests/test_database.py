"""Tests for the SQLAlchemy storage layer."""

from datetime import datetime, timedelta, UTC
from decimal import Decimal

import pytest

from conftest import make_entry, make_legacy
from finledger.database.factories import (
    create_database,
    create_memory_database,
    create_sqlite_database,
    resolve_database_location,
)
from finledger.domain.entities import Account, AccountType, MigrationBackup


@pytest.fixture
def memory_db():
    """Create an in-memory database."""
    db = create_memory_database()
    db.connect()
    db.initialize_schema()
    yield db
    db.disconnect()


def test_accounts_sorted_numerically(memory_db):
    """Accounts come back in numeric ID order."""
    memory_db.add_accounts(
        [
            Account("5000", "Groceries", AccountType.EXPENSE),
            Account("1100", "Checking Account", AccountType.ASSET),
            Account("2000", "Credit Card Debt", AccountType.LIABILITY, is_active=False),
        ]
    )

    assert [a.id for a in memory_db.list_accounts()] == ["1100", "2000", "5000"]
    assert [a.id for a in memory_db.list_accounts(active_only=True)] == ["1100", "5000"]
    assert [a.id for a in memory_db.list_accounts(account_type=AccountType.ASSET)] == ["1100"]
    assert memory_db.get_account("9999") is None


def test_journal_lines_keep_their_order(memory_db):
    """Lines are stored with their position."""
    memory_db.add_accounts(
        [Account("1100", "Checking Account", AccountType.ASSET), Account("5000", "Groceries", AccountType.EXPENSE)]
    )
    entry = make_entry("5000", "1100", "12.34", entry_id="je_1")
    memory_db.put_journal_entry(entry)

    loaded = memory_db.get_journal_entry("je_1")
    assert [line.account_id for line in loaded.lines] == ["5000", "1100"]
    assert loaded.lines[0].debit == Decimal("12.34")
    assert loaded.notes == "test"

    assert memory_db.delete_journal_entry("je_1") is True
    assert memory_db.delete_journal_entry("je_1") is False


def test_month_prefix_is_matched_literally(memory_db):
    """Wildcard characters in a month prefix match nothing."""
    memory_db.add_accounts(
        [Account("1100", "Checking Account", AccountType.ASSET), Account("5000", "Groceries", AccountType.EXPENSE)]
    )
    memory_db.put_journal_entry(make_entry("5000", "1100", "10", on="2025-03-01", entry_id="je_1"))

    assert [e.id for e in memory_db.list_journal_entries(month_prefix="2025-03")] == ["je_1"]
    assert memory_db.list_journal_entries(month_prefix="2025_03") == []
    assert memory_db.list_journal_entries(month_prefix="2025%") == []


def test_legacy_transactions_skip_existing_ids(memory_db):
    """Adding a known legacy id again is ignored."""
    assert memory_db.add_legacy_transactions([make_legacy(1), make_legacy(2)]) == 2
    assert memory_db.add_legacy_transactions([make_legacy(2), make_legacy(3)]) == 1

    stored = memory_db.list_legacy_transactions()
    assert sorted(t.id for t in stored) == ["1", "2", "3"]
    assert stored[0].amount == "50"


def test_settings(memory_db):
    """Settings are plain key/value strings."""
    assert memory_db.get_setting("migration.completed_at") is None
    memory_db.set_setting("migration.completed_at", "2025-03-01T00:00:00")
    memory_db.set_setting("migration.completed_at", "2025-03-02T00:00:00")
    assert memory_db.get_setting("migration.completed_at") == "2025-03-02T00:00:00"


def test_backups_listed_newest_first(memory_db):
    """Backup listings skip the data and start with the most recent."""
    now = datetime.now(UTC)
    for offset, backup_id in enumerate(["older", "newer"]):
        memory_db.put_backup(
            MigrationBackup(
                id=backup_id,
                label=backup_id,
                created_at=now + timedelta(seconds=offset),
                count=1,
                transactions=(make_legacy(offset),),
            )
        )

    listed = memory_db.list_backups()
    assert [b.id for b in listed] == ["newer", "older"]
    assert listed[0].transactions == ()
    assert memory_db.get_backup("older").transactions == (make_legacy(0),)


def test_sqlite_path_from_environment(tmp_path, monkeypatch):
    """The database path falls back to FINLEDGER_DB_PATH."""
    db_path = tmp_path / "env.db"
    monkeypatch.setenv("FINLEDGER_DB_PATH", str(db_path))

    db = create_sqlite_database()
    assert db.database_url == f"sqlite:///{db_path}"
    db.set_setting("check", "1")
    db.disconnect()
    assert db_path.exists()


def test_create_database_accepts_urls(tmp_path):
    """Full SQLAlchemy URLs are used as given; paths become SQLite URLs."""
    url = f"sqlite:///{tmp_path / 'url.db'}"
    assert create_database(url).database_url == url
    assert create_database(str(tmp_path / "plain.db")).database_url == f"sqlite:///{tmp_path / 'plain.db'}"


def test_resolve_database_location_expands_home(monkeypatch):
    """A '~' in an explicit path is expanded."""
    monkeypatch.delenv("FINLEDGER_DB_PATH", raising=False)
    resolved = resolve_database_location("~/ledger.db")
    assert not resolved.startswith("~")
    assert resolved.endswith("ledger.db")
