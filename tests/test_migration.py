"""Tests for the legacy migration pipeline."""

import json
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from conftest import make_legacy
from finledger.cli.main import cli
from finledger.domain.aggregation import AggregationService
from finledger.domain.entities import EntryType, FlowType, LineItem
from finledger.domain.errors import NotFoundError
from finledger.domain.migration import (
    MIGRATED_TAG,
    MigrationPhase,
    convert_many,
    convert_one,
    normalize_category,
)


@pytest.fixture
def mixed_ledger():
    """Ten legacy records, two of them with non-numeric amounts."""
    txns = [make_legacy(i, amount=str(10 * i)) for i in range(1, 9)]
    txns.append(make_legacy(9, amount="ten"))
    txns.append(make_legacy(10, amount="n/a"))
    return txns


def test_salary_converts_to_bank_debit():
    """Income debits the bank account and credits the income account."""
    txn = make_legacy("t1", txn_type="income", amount="500", category="salary", on="2025-03-01")
    entry = convert_one(txn)

    assert entry.id == "migrated_t1"
    assert entry.date == date(2025, 3, 1)
    assert entry.lines == (
        LineItem("1100", debit=Decimal("500.00"), credit=Decimal("0")),
        LineItem("4000", debit=Decimal("0"), credit=Decimal("500.00")),
    )
    assert entry.entry_type == EntryType.MIGRATION
    assert entry.flow_type == FlowType.INCOME
    assert entry.tags == frozenset({MIGRATED_TAG, "income"})
    assert entry.source_id == "t1"
    assert entry.notes == "Migrated from v3: salary"


def test_expense_converts_to_category_debit():
    """Expenses debit the category account and credit the bank account."""
    txn = make_legacy("t2", amount="42.50", category="Groceries", notes="weekly shop")
    entry = convert_one(txn, bank_account="1000")

    assert entry.lines[0] == LineItem("5000", debit=Decimal("42.50"), credit=Decimal("0"))
    assert entry.lines[1] == LineItem("1000", debit=Decimal("0"), credit=Decimal("42.50"))
    assert entry.notes == "weekly shop"


def test_unknown_category_falls_back_to_other_expense():
    """Unmapped categories land on the other-expense account."""
    entry = convert_one(make_legacy("t3", category="Pet Supplies"))
    assert entry.lines[0].account_id == "5900"


def test_normalize_category():
    """Categories are matched case-insensitively with underscores."""
    assert normalize_category("  Other   Income ") == "other_income"


@pytest.mark.parametrize(
    "txn",
    [
        None,
        make_legacy("x", txn_type="refund"),
        make_legacy("x", amount="abc"),
        make_legacy("x", amount="-10"),
        make_legacy("x", amount="10.005"),
        make_legacy("x", on="31/02/2025"),
        make_legacy("x", category=""),
    ],
)
def test_convert_one_rejects_bad_records(txn):
    """Invalid or incomplete records are not converted."""
    assert convert_one(txn) is None


def test_convert_one_keeps_created_at():
    """The legacy creation time is carried over."""
    txn = make_legacy("t4")
    txn = replace(txn, created_at="2025-01-10T08:30:00")
    entry = convert_one(txn)
    assert entry.created_at.isoformat() == "2025-01-10T08:30:00"


def test_convert_many_counts_failures(mixed_ledger):
    """Failures are collected instead of raised."""
    result = convert_many(mixed_ledger)

    assert result.success is False
    assert result.stats["total"] == 10
    assert result.stats["converted"] == 8
    assert result.stats["failed"] == 2
    assert result.stats["success_rate"] == 80.0
    assert sorted(f.transaction.id for f in result.failed) == ["10", "9"]
    assert all("Invalid amount" in f.reason for f in result.failed)


def test_convert_many_none():
    """A missing batch is a failed conversion."""
    result = convert_many(None)
    assert result.success is False
    assert result.stats["total"] == 0


def test_dry_run_stops_at_validation(migration_service, mixed_ledger):
    """Source validation rejects non-numeric amounts before conversion."""
    result = migration_service.dry_run(mixed_ledger)

    assert result.success is False
    assert result.phase == MigrationPhase.VALIDATION
    assert result.stats == {"total": 10, "valid": 8, "invalid": 2}
    assert len(result.issues) == 2


def test_dry_run_without_source_validation(migration_service, mixed_ledger):
    """Without source validation the same records fail in conversion."""
    result = migration_service.dry_run(mixed_ledger, validate_source=False)

    assert result.success is False
    assert result.phase == MigrationPhase.CONVERSION
    assert result.stats["converted"] == 8
    assert result.stats["failed"] == 2


def test_dry_run_writes_nothing(migration_service, journal_service):
    """A successful dry run does not store entries."""
    txns = [make_legacy(1, txn_type="income", amount="500", category="salary"), make_legacy(2)]
    result = migration_service.dry_run(txns)

    assert result.success is True
    assert result.phase == MigrationPhase.COMPLETE
    assert result.trial_balance.total_debits == Decimal("550.00")
    assert journal_service.get_all_entries() == []


def test_execute_migrates_everything(temp_db, migration_service, journal_service):
    """Salary income raises net worth by its amount."""
    temp_db.add_legacy_transactions(
        [
            make_legacy("s1", txn_type="income", amount="500", category="salary", on="2025-03-01"),
            make_legacy("g1", amount="120.25", category="groceries", on="2025-03-02"),
        ]
    )

    result = migration_service.execute()

    assert result.success is True
    assert result.phase == MigrationPhase.COMPLETE
    assert result.stats["legacy_transactions"] == 2
    assert result.stats["accounts_seeded"] == 21
    assert result.stats["entries_saved"] == 2
    assert result.backup_id.startswith("legacy_backup_")
    assert result.trial_balance.is_balanced

    salary = journal_service.get_entry("migrated_s1")
    assert salary.lines[0] == LineItem("1100", debit=Decimal("500"), credit=Decimal("0"))
    assert salary.lines[1] == LineItem("4000", debit=Decimal("0"), credit=Decimal("500"))
    assert AggregationService(temp_db).net_worth() == Decimal("379.75")

    status = migration_service.get_status()
    assert status.is_migrated is True
    assert status.backup_id == result.backup_id


def test_execute_twice_does_not_duplicate(temp_db, migration_service, journal_service):
    """Entry ids follow legacy ids, so a rerun overwrites."""
    temp_db.add_legacy_transactions([make_legacy(1), make_legacy(2)])

    assert migration_service.execute(create_backup=False).success
    second = migration_service.execute(create_backup=False)

    assert second.success
    assert second.stats["accounts_seeded"] == 0
    assert len(journal_service.get_all_entries()) == 2
    assert migration_service.get_status().backup_id is None


def test_execute_fails_on_dry_run(temp_db, migration_service, journal_service, mixed_ledger):
    """A failed rehearsal stops before anything is written."""
    temp_db.add_legacy_transactions(mixed_ledger)

    result = migration_service.execute()

    assert result.success is False
    assert result.phase == MigrationPhase.VALIDATION
    assert result.backup_id is not None
    assert journal_service.get_all_entries() == []
    assert migration_service.get_status().is_migrated is False


def test_execute_without_dry_run_fails_in_conversion(temp_db, migration_service, journal_service, mixed_ledger):
    """Skipping the rehearsal still refuses to save a partial migration."""
    temp_db.add_legacy_transactions(mixed_ledger)

    result = migration_service.execute(create_backup=False, dry_run=False)

    assert result.success is False
    assert result.phase == MigrationPhase.CONVERSION
    assert result.stats["converted"] == 8
    assert result.stats["failed"] == 2
    assert journal_service.get_all_entries() == []


def test_execute_rejects_unknown_bank_account(temp_db, migration_service, journal_service):
    """Entries posting to an account outside the chart are not saved."""
    temp_db.add_legacy_transactions([make_legacy(1, txn_type="income", amount="500", category="salary")])

    result = migration_service.execute(create_backup=False, bank_account="1150")

    assert result.success is False
    assert result.phase == MigrationPhase.V4_VALIDATION
    assert "Account not found: 1150" in " ".join(result.issues)
    assert journal_service.get_all_entries() == []
    assert migration_service.get_status().is_migrated is False


def test_execute_without_dry_run_checks_accounts_after_seeding(temp_db, migration_service, journal_service):
    """Skipping the rehearsal still checks lines against the seeded chart."""
    temp_db.add_legacy_transactions([make_legacy(1, txn_type="income", amount="500", category="salary")])

    result = migration_service.execute(create_backup=False, dry_run=False, bank_account="1150")

    assert result.success is False
    assert result.phase == MigrationPhase.V4_VALIDATION
    assert result.stats["accounts_seeded"] == 21
    assert journal_service.get_all_entries() == []
    assert AggregationService(temp_db).net_worth() == Decimal("0")


def test_backups(temp_db, migration_service):
    """Backups keep a copy of the legacy records."""
    originals = [make_legacy(1), make_legacy(2, txn_type="income", category="salary")]
    temp_db.add_legacy_transactions(originals)

    backup = migration_service.create_backup(label="manual")
    assert backup.count == 2

    listed = migration_service.list_backups()
    assert [b.id for b in listed] == [backup.id]
    assert listed[0].label == "manual"
    assert listed[0].transactions == ()

    restored = migration_service.restore_from_backup(backup.id)
    assert sorted(restored, key=lambda t: t.id) == originals


def test_restore_missing_backup(migration_service):
    """Unknown backup ids raise NotFoundError."""
    with pytest.raises(NotFoundError, match="legacy_backup_nope"):
        migration_service.restore_from_backup("legacy_backup_nope")


# CLI


def test_cli_migrate_run_and_status(cli_runner, temp_db):
    """The run command migrates and status reports it."""
    temp_db.add_legacy_transactions([make_legacy(1, txn_type="income", amount="500", category="salary")])
    db_args = ["--db-path", temp_db.database_path]

    result = cli_runner.invoke(cli, db_args + ["migrate", "status"])
    assert "Migration not completed" in result.output

    result = cli_runner.invoke(cli, db_args + ["migrate", "dry-run"])
    assert result.exit_code == 0
    assert "OK (complete)" in result.output

    result = cli_runner.invoke(cli, db_args + ["migrate", "run"])
    assert result.exit_code == 0
    assert "OK (complete): Migration successful" in result.output

    result = cli_runner.invoke(cli, db_args + ["migrate", "status"])
    assert "Migration completed at" in result.output

    result = cli_runner.invoke(cli, db_args + ["migrate", "backups"])
    assert "legacy_backup_" in result.output


def test_cli_migrate_category_map(cli_runner, temp_db, tmp_path):
    """A category map file overrides the default mapping."""
    temp_db.add_legacy_transactions([make_legacy(1, category="Coffee")])
    mapping = tmp_path / "categories.json"
    mapping.write_text(json.dumps({"Coffee": "5100"}))

    result = cli_runner.invoke(
        cli,
        ["--db-path", temp_db.database_path, "migrate", "run", "--no-backup", "--category-map", str(mapping)],
    )
    assert result.exit_code == 0
    assert AggregationService(temp_db).account_balance("5100") == Decimal("50")


def test_cli_migrate_category_map_unknown_account(cli_runner, temp_db, tmp_path):
    """A category mapped to a missing account fails the dry run."""
    temp_db.add_legacy_transactions([make_legacy(1, category="Coffee")])
    mapping = tmp_path / "categories.json"
    mapping.write_text(json.dumps({"Coffee": "5999"}))

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "migrate", "dry-run", "--category-map", str(mapping)]
    )
    assert result.exit_code == 1
    assert "FAILED (v4_validation)" in result.output
    assert "Account not found: 5999" in result.output


def test_cli_migrate_failure_exit_code(cli_runner, temp_db, mixed_ledger):
    """A failed migration exits with status 1 and lists issues."""
    temp_db.add_legacy_transactions(mixed_ledger)

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "migrate", "dry-run"])
    assert result.exit_code == 1
    assert "FAILED (validation)" in result.output
    assert "Invalid amount" in result.output


def test_cli_migrate_restore(cli_runner, temp_db, migration_service, tmp_path):
    """Restoring writes the backed up records to CSV."""
    temp_db.add_legacy_transactions([make_legacy(1), make_legacy(2)])
    backup = migration_service.create_backup()
    output = tmp_path / "restored.csv"

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "migrate", "restore", backup.id, "--output", str(output)]
    )
    assert result.exit_code == 0
    assert "holds 2 legacy transactions" in result.output
    assert output.exists()

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "migrate", "restore", "missing"])
    assert result.exit_code == 1
