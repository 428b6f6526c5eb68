"""Tests for legacy CSV backup export and restore."""

import csv
from datetime import date

import pytest

from conftest import make_legacy
from finledger.cli.main import cli
from finledger.domain.csv_backup import (
    LegacyBackupService,
    is_duplicate,
    parse_backup_rows,
    parse_backup_text,
    parse_import_rows,
)
from finledger.domain.errors import ValidationError


@pytest.fixture
def backup_service(temp_db):
    """Create a LegacyBackupService with a temporary database."""
    return LegacyBackupService(temp_db)


def test_parse_backup_file(fixtures_dir):
    """Metadata is read and unusable rows are skipped."""
    text = (fixtures_dir / "legacy_backup.csv").read_text(encoding="utf-8")
    backup = parse_backup_text(text)

    assert backup.metadata["Currency"] == "THB"
    assert backup.metadata["Version"] == "1.0"
    assert [t.id for t in backup.transactions] == ["101", "102", "103", "106"]

    by_id = {t.id: t for t in backup.transactions}
    assert by_id["102"].amount == "1250.50"
    assert by_id["103"].amount == "80"
    assert by_id["106"].txn_type == "expense"
    assert by_id["101"].created_at == "2025-01-10T09:00:00"
    assert by_id["101"].notes == "January pay"
    assert backup.skipped == 2


def test_parse_generates_missing_ids():
    """Rows without an ID column get a generated one."""
    backup = parse_backup_rows([["Date", "Type", "Category", "Amount"], ["2025-01-01", "expense", "food", "5"]])
    assert backup.transactions[0].id.startswith("restored_")
    assert backup.metadata == {}


@pytest.mark.parametrize(
    "text,message",
    [
        ("Date,Amount\n2025-01-01,5\n", "Missing required columns"),
        ("Date,Type,Category,Amount\n", "No transaction data found"),
        ("Date,Type,Category,Amount\n,expense,food,5\n", "No valid transactions found"),
    ],
)
def test_parse_rejects_bad_backups(text, message):
    """Incomplete backups are rejected with a reason."""
    with pytest.raises(ValidationError, match=message):
        parse_backup_text(text)


def test_is_duplicate():
    """Duplicates match on content, not on ID."""
    existing = [make_legacy(1, amount="50.00", notes="lunch")]
    assert is_duplicate(make_legacy(99, amount="50", notes="lunch"), existing)
    assert not is_duplicate(make_legacy(1, amount="51", notes="lunch"), existing)


def test_restore_file_skips_duplicates(backup_service, temp_db, fixtures_dir):
    """Restoring the same file twice adds nothing the second time."""
    path = str(fixtures_dir / "legacy_backup.csv")

    first = backup_service.restore_file(path)
    assert first.backup_total == 4
    assert first.added == 4
    assert first.duplicates == 0
    assert first.current_total == 4
    assert first.skipped == 2

    second = backup_service.restore_file(path)
    assert second.added == 0
    assert second.duplicates == 4
    assert len(temp_db.list_legacy_transactions()) == 4


def test_restore_renames_colliding_ids(backup_service, temp_db, fixtures_dir):
    """A new record whose ID is taken gets a fresh ID."""
    temp_db.add_legacy_transactions([make_legacy("101", amount="1", category="other")])

    report = backup_service.restore_file(str(fixtures_dir / "legacy_backup.csv"))

    assert report.added == 4
    ids = {t.id for t in temp_db.list_legacy_transactions()}
    assert "101" in ids
    assert len([i for i in ids if i.startswith("restored_")]) == 1


def test_restore_reports_unusable_rows(backup_service, tmp_path):
    """Rows with non-numeric amounts are counted as skipped."""
    rows = ['"Date","Type","Category","Amount","ID"']
    rows += [f'"2025-01-{day:02d}","expense","food","{day}","{day}"' for day in range(1, 9)]
    rows += ['"2025-01-09","expense","food","ten","9"', '"2025-01-10","expense","food","n/a","10"']
    path = tmp_path / "backup.csv"
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")

    report = backup_service.restore_file(str(path))

    assert report.backup_total == 8
    assert report.added == 8
    assert report.skipped == 2


def test_parse_import_rows(fixtures_dir):
    """Valid rows are normalized and invalid rows are skipped with reasons."""
    with open(fixtures_dir / "statement.csv", encoding="utf-8", newline="") as f:
        data = parse_import_rows(list(csv.reader(f)), today=date(2025, 6, 15))

    assert data.skipped == 4
    assert [(t.date, t.txn_type, t.category, t.amount) for t in data.transactions] == [
        ("2025-03-01", "income", "Salary", "30000.00"),
        ("2025-03-01", "expense", "groceries", "120.50"),
        ("2025-02-05", "expense", "dining", "80.00"),
    ]
    assert data.transactions[0].notes == "March payroll"
    assert all(t.id.startswith("imported_") for t in data.transactions)
    assert data.errors == (
        "Row 5: Invalid amount (must be a number)",
        "Row 6: Invalid date format. Use YYYY-MM-DD, DD/MM/YYYY, or DD-MMM",
        "Row 7: Type must be 'income' or 'expense'",
        "Row 8: Category required",
    )


def test_parse_import_rows_headers():
    """Missing columns are rejected and a file without rows imports nothing."""
    with pytest.raises(ValidationError, match="Missing required column: amount"):
        parse_import_rows([["Date", "Category"], ["2025-01-01", "food"]])

    empty = parse_import_rows([["Date", "Category", "Amount"]])
    assert empty.transactions == ()
    assert empty.skipped == 0


def test_import_file(backup_service, temp_db, fixtures_dir):
    """Imported rows are stored as legacy transactions."""
    report = backup_service.import_file(str(fixtures_dir / "statement.csv"), today=date(2025, 6, 15))

    assert report.added == 3
    assert report.skipped == 4
    assert len(report.errors) == 4
    assert len(temp_db.list_legacy_transactions()) == 3


def test_restore_missing_file(backup_service, tmp_path):
    """A missing file is reported as such."""
    with pytest.raises(FileNotFoundError):
        backup_service.restore_file(str(tmp_path / "nope.csv"))


def test_export_round_trip(backup_service, temp_db):
    """Exported text parses back into the same records."""
    txns = [
        make_legacy("a", amount="12.50", notes='said "hi", left'),
        make_legacy("b", txn_type="income", amount="900", category="salary", on="2025-02-01"),
    ]
    temp_db.add_legacy_transactions(txns)

    text = backup_service.export_text(currency="EUR")
    assert text.startswith("# FinLedger Backup\n")
    assert "# Transaction Count: 2" in text
    assert "# Date Range: 2025-01-10 to 2025-02-01" in text
    assert '"Amount (EUR)"' in text

    parsed = parse_backup_text(text)
    assert parsed.metadata["Currency"] == "EUR"
    by_id = {t.id: t for t in parsed.transactions}
    assert by_id["a"].notes == 'said "hi", left'
    assert by_id["a"].amount == "12.50"
    assert by_id["b"].txn_type == "income"


def test_export_empty_ledger(backup_service):
    """There is nothing to export from an empty ledger."""
    with pytest.raises(ValidationError, match="No transactions to back up"):
        backup_service.export_text()


# CLI


def test_cli_legacy_import_list_export(cli_runner, temp_db, fixtures_dir, tmp_path):
    """Import, list and export legacy records from the command line."""
    db_args = ["--db-path", temp_db.database_path]

    result = cli_runner.invoke(cli, db_args + ["legacy", "import", str(fixtures_dir / "legacy_backup.csv")])
    assert result.exit_code == 0
    assert "Import complete:" in result.output
    assert "Added:      4" in result.output
    assert "Skipped:    2" in result.output

    result = cli_runner.invoke(cli, db_args + ["legacy", "list"])
    assert result.exit_code == 0
    assert "groceries" in result.output
    assert "1250.50" in result.output

    output = tmp_path / "export.csv"
    result = cli_runner.invoke(cli, db_args + ["legacy", "export", str(output), "--currency", "THB"])
    assert result.exit_code == 0
    assert "Exported 4 transactions" in result.output
    assert "# Currency: THB" in output.read_text(encoding="utf-8")


def test_cli_legacy_export_empty(cli_runner, temp_db, tmp_path):
    """Exporting an empty ledger fails."""
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "legacy", "export", str(tmp_path / "out.csv")]
    )
    assert result.exit_code == 1
    assert "No transactions to back up" in result.output


def test_cli_legacy_import_csv(cli_runner, temp_db, fixtures_dir, tmp_path):
    """Plain CSV import reports added and skipped rows."""
    db_args = ["--db-path", temp_db.database_path]

    result = cli_runner.invoke(cli, db_args + ["legacy", "import-csv", str(fixtures_dir / "statement.csv")])
    assert result.exit_code == 0
    assert "Imported 3 transaction(s), skipped 4" in result.output
    assert "Row 5: Invalid amount" in result.output

    bad = tmp_path / "bad.csv"
    bad.write_text("Date,Category,Amount\n2025-01-01,food,zero\n", encoding="utf-8")
    result = cli_runner.invoke(cli, db_args + ["legacy", "import-csv", str(bad)])
    assert result.exit_code == 1
    assert "No valid rows to import (1 skipped)" in result.output
