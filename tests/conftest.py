"""Shared pytest fixtures for finledger tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from finledger.database.factories import create_sqlite_database
from finledger.domain.account import AccountService
from finledger.domain.aggregation import AggregationService
from finledger.domain.entities import JournalEntry, LegacyTransaction, LineItem
from finledger.domain.journal import JournalService
from finledger.domain.migration import MigrationService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def journal_service(temp_db):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db)


@pytest.fixture
def aggregation_service(temp_db):
    """Create an AggregationService with a temporary database."""
    return AggregationService(temp_db)


@pytest.fixture
def migration_service(temp_db):
    """Create a MigrationService with a temporary database."""
    return MigrationService(temp_db)


@pytest.fixture
def seeded_accounts(account_service):
    """Seed the default chart of accounts and return it."""
    account_service.seed_default_accounts()
    return account_service.list_accounts()


def make_entry(debit_account, credit_account, amount, on="2025-03-01", entry_id=None, notes="test"):
    """Build a two-line journal entry."""
    value = Decimal(str(amount))
    return JournalEntry(
        id=entry_id,
        date=date.fromisoformat(on),
        lines=(
            LineItem(debit_account, debit=value, credit=Decimal("0")),
            LineItem(credit_account, debit=Decimal("0"), credit=value),
        ),
        notes=notes,
    )


def make_legacy(txn_id, txn_type="expense", amount="50", category="groceries", on="2025-01-10", notes=""):
    """Build a legacy single-entry transaction."""
    return LegacyTransaction(
        id=str(txn_id),
        txn_type=txn_type,
        amount=amount,
        category=category,
        date=on,
        notes=notes,
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
