"""Journal entry commands."""

from datetime import date

import click
from finledger.cli.error_handling import fail, handle_domain_error, resolve_account_or_exit
from finledger.cli.formatting import money
from finledger.domain.account import AccountService
from finledger.domain.entities import (
    AccountType,
    EntryType,
    FlowType,
    JournalEntry,
    LineItem,
)
from finledger.domain.journal import JournalService
from finledger.domain.validation import validate_amount, validate_date
from finledger.utils.amount_parser import ZERO
from finledger.utils.date_parser import parse_month

OPENING_BALANCE_ACCOUNT = "3000"


def _parse_date_or_exit(ctx, value: str | None) -> date:
    if value is None:
        return date.today()
    check = validate_date(value)
    if not check.is_valid:
        fail(ctx, check.error)
    if check.warning:
        click.echo(f"Warning: {check.warning}", err=True)
    return check.value


def _parse_amount_or_exit(ctx, value: str):
    check = validate_amount(value)
    if not check.is_valid:
        fail(ctx, check.error)
    return check.value


def _flow_type(debit_account, credit_account) -> FlowType | None:
    if AccountType(credit_account.account_type) == AccountType.INCOME:
        return FlowType.INCOME
    if AccountType(debit_account.account_type) == AccountType.EXPENSE:
        return FlowType.EXPENSE
    return None


@click.group()
def entry_group():
    """Record and inspect journal entries."""
    pass


@entry_group.command("add")
@click.option("--debit", "debit_account", required=True, help="Account to debit (name or ID)")
@click.option("--credit", "credit_account", required=True, help="Account to credit (name or ID)")
@click.option("--amount", required=True, help="Amount (e.g. 45.50)")
@click.option("--date", "entry_date", help="Entry date (YYYY-MM-DD, DD/MM/YYYY or DD-MMM; default today)")
@click.option("--notes", default="", help="Description")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_context
def add_entry(
    ctx,
    debit_account: str,
    credit_account: str,
    amount: str,
    entry_date: str | None,
    notes: str,
    tags: tuple[str, ...],
):
    """Add a two-line journal entry.

    Examples:
        finledger entry add --debit Groceries --credit 1100 --amount 45.50 --notes "Market"
        finledger entry add --debit 1100 --credit Salary --amount 3000 --date 2025-03-01
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = JournalService(db)

    debit_id = resolve_account_or_exit(ctx, account_service, debit_account)
    credit_id = resolve_account_or_exit(ctx, account_service, credit_account)
    value = _parse_amount_or_exit(ctx, amount)
    parsed_date = _parse_date_or_exit(ctx, entry_date)

    new_entry = JournalEntry(
        id=None,
        date=parsed_date,
        lines=(
            LineItem(debit_id, debit=value, credit=ZERO),
            LineItem(credit_id, debit=ZERO, credit=value),
        ),
        notes=notes,
        tags=frozenset(tags),
        flow_type=_flow_type(
            account_service.get_account(debit_id), account_service.get_account(credit_id)
        ),
    )

    try:
        stored = service.post_entry(new_entry)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created journal entry {stored.id}")
    click.echo(f"  Date: {stored.date}")
    click.echo(f"  Debit {debit_id} / Credit {credit_id}: {money(value)}")


@entry_group.command("opening-balance")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount", metavar="AMOUNT")
@click.option("--date", "entry_date", help="Entry date (default today)")
@click.option("--notes", default="Opening balance", help="Description")
@click.pass_context
def opening_balance(ctx, account: str, amount: str, entry_date: str | None, notes: str):
    """Record the starting balance of an asset account.

    The balancing line goes to the Opening Balance equity account (3000).

    Examples:
        finledger entry opening-balance 1100 2500 --date 2025-01-01
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = JournalService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    value = _parse_amount_or_exit(ctx, amount)
    parsed_date = _parse_date_or_exit(ctx, entry_date)

    new_entry = JournalEntry(
        id=None,
        date=parsed_date,
        lines=(
            LineItem(account_id, debit=value, credit=ZERO),
            LineItem(OPENING_BALANCE_ACCOUNT, debit=ZERO, credit=value),
        ),
        notes=notes,
        entry_type=EntryType.OPENING_BALANCE,
    )

    try:
        stored = service.post_entry(new_entry)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created opening balance {stored.id}: {account_id} {money(value)}")


@entry_group.command("list")
@click.option("--month", help="Month (YYYY-MM, 'this month', 'last month')")
@click.pass_context
def list_entries(ctx, month: str | None):
    """List journal entries, newest first."""
    db = ctx.obj["db"]
    service = JournalService(db)

    if month:
        try:
            entries = service.get_entries_for_month(parse_month(month))
        except ValueError as e:
            handle_domain_error(ctx, e)
            return
    else:
        entries = service.get_all_entries()

    if not entries:
        click.echo("No journal entries found.")
        return

    for item in entries:
        total = sum((line.debit for line in item.lines), ZERO)
        click.echo(f"{item.date} | {item.id:38s} | {money(total):>12s} | {item.notes}")


@entry_group.command("show")
@click.argument("entry_id", metavar="ENTRY_ID")
@click.pass_context
def show_entry(ctx, entry_id: str):
    """Show one journal entry with its lines."""
    db = ctx.obj["db"]
    service = JournalService(db)
    account_service = AccountService(db)

    item = service.get_entry(entry_id)
    if item is None:
        fail(ctx, f"Journal entry {entry_id} not found")

    click.echo(f"Entry:  {item.id}")
    click.echo(f"Date:   {item.date}")
    click.echo(f"Type:   {item.entry_type.value}")
    if item.flow_type:
        click.echo(f"Flow:   {item.flow_type.value}")
    if item.notes:
        click.echo(f"Notes:  {item.notes}")
    if item.tags:
        click.echo(f"Tags:   {', '.join(sorted(item.tags))}")
    if item.modified_reason:
        click.echo(f"Edited: {item.modified_reason}")
    click.echo("-" * 60)
    for line in item.lines:
        acc = account_service.get_account(line.account_id)
        name = acc.name if acc else "(unknown account)"
        debit = money(line.debit) if line.debit else ""
        credit = money(line.credit) if line.credit else ""
        click.echo(f"{line.account_id} {name:25s} {debit:>12s} {credit:>12s}")


@entry_group.command("delete")
@click.argument("entry_id", metavar="ENTRY_ID")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_entry(ctx, entry_id: str, yes: bool):
    """Delete a journal entry permanently."""
    db = ctx.obj["db"]
    service = JournalService(db)

    if not yes and not click.confirm(
        f"Delete journal entry {entry_id}? This cannot be undone"
    ):
        click.echo("Deletion cancelled.")
        return

    if not service.delete_entry(entry_id):
        fail(ctx, f"Journal entry {entry_id} not found")
    click.echo(f"Deleted journal entry {entry_id}")


@entry_group.command("trial-balance")
@click.pass_context
def trial_balance(ctx):
    """Check that total debits equal total credits."""
    db = ctx.obj["db"]
    result = JournalService(db).verify_trial_balance()

    click.echo(f"Entries:       {result.entries_count}")
    click.echo(f"Total debits:  {money(result.total_debits)}")
    click.echo(f"Total credits: {money(result.total_credits)}")
    if result.is_balanced:
        click.echo("Trial balance OK")
    else:
        click.echo(f"Trial balance FAILED: difference {money(result.difference)}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
