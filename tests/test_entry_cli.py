"""Integration tests for the journal entry commands."""

from decimal import Decimal

from finledger.cli.main import cli


def _run(cli_runner, temp_db, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], **kwargs)


def test_add_and_list_entry(cli_runner, temp_db, seeded_accounts, journal_service):
    """An entry added by account name shows up in the listing."""
    result = _run(
        cli_runner, temp_db,
        "entry", "add", "--debit", "Groceries", "--credit", "1100",
        "--amount", "45.50", "--date", "2025-03-01", "--notes", "Market", "--tag", "food",
    )
    assert result.exit_code == 0
    assert "Created journal entry je_" in result.output
    assert "Debit 5000 / Credit 1100: 45.50" in result.output

    entries = journal_service.get_all_entries()
    assert len(entries) == 1
    assert entries[0].flow_type.value == "expense"
    assert entries[0].tags == frozenset({"food"})

    result = _run(cli_runner, temp_db, "entry", "list", "--month", "2025-03")
    assert result.exit_code == 0
    assert "Market" in result.output
    assert "45.50" in result.output

    result = _run(cli_runner, temp_db, "entry", "list", "--month", "2025-04")
    assert "No journal entries found" in result.output


def test_add_entry_rejects_bad_amount(cli_runner, temp_db, seeded_accounts):
    """Invalid amounts are refused before anything is stored."""
    result = _run(cli_runner, temp_db, "entry", "add", "--debit", "5000", "--credit", "1100", "--amount", "abc")
    assert result.exit_code == 1
    assert "Invalid amount" in result.output

    result = _run(cli_runner, temp_db, "entry", "add", "--debit", "5000", "--credit", "1100", "--amount", "1.005")
    assert result.exit_code == 1
    assert "Too many decimal places" in result.output


def test_add_entry_unknown_account(cli_runner, temp_db, seeded_accounts):
    """Unknown accounts are reported."""
    result = _run(cli_runner, temp_db, "entry", "add", "--debit", "Yacht", "--credit", "1100", "--amount", "10")
    assert result.exit_code == 1
    assert "Account 'Yacht' not found" in result.output


def test_opening_balance(cli_runner, temp_db, seeded_accounts, aggregation_service):
    """Opening balances credit the equity account."""
    result = _run(cli_runner, temp_db, "entry", "opening-balance", "1100", "2500", "--date", "2025-01-01")
    assert result.exit_code == 0
    assert "2,500.00" in result.output

    assert aggregation_service.account_balance("1100") == Decimal("2500")
    assert aggregation_service.account_balance("3000") == Decimal("2500")


def test_show_and_delete(cli_runner, temp_db, seeded_accounts, journal_service):
    """Entries can be shown and deleted by ID."""
    _run(cli_runner, temp_db, "entry", "add", "--debit", "5100", "--credit", "1100",
         "--amount", "30", "--date", "2025-03-02", "--notes", "Lunch")
    entry_id = journal_service.get_all_entries()[0].id

    result = _run(cli_runner, temp_db, "entry", "show", entry_id)
    assert result.exit_code == 0
    assert "Dining Out" in result.output
    assert "Checking Account" in result.output
    assert "Notes:  Lunch" in result.output

    result = _run(cli_runner, temp_db, "entry", "delete", entry_id, input="n\n")
    assert "Deletion cancelled" in result.output

    result = _run(cli_runner, temp_db, "entry", "delete", entry_id, "--yes")
    assert result.exit_code == 0
    assert f"Deleted journal entry {entry_id}" in result.output

    result = _run(cli_runner, temp_db, "entry", "show", entry_id)
    assert result.exit_code == 1
    assert "not found" in result.output


def test_delete_missing_entry(cli_runner, temp_db):
    """Deleting an unknown entry fails."""
    result = _run(cli_runner, temp_db, "entry", "delete", "je_missing", "--yes")
    assert result.exit_code == 1
    assert "Journal entry je_missing not found" in result.output


def test_trial_balance(cli_runner, temp_db, seeded_accounts):
    """The trial balance of a balanced journal is OK."""
    _run(cli_runner, temp_db, "entry", "add", "--debit", "1100", "--credit", "Salary",
         "--amount", "3000", "--date", "2025-03-01")

    result = _run(cli_runner, temp_db, "entry", "trial-balance")
    assert result.exit_code == 0
    assert "Total debits:  3,000.00" in result.output
    assert "Trial balance OK" in result.output
