"""Account management commands."""

import click
from finledger.cli.error_handling import handle_domain_error, resolve_account_or_exit
from finledger.cli.formatting import money
from finledger.domain.account import AccountService
from finledger.domain.aggregation import AggregationService
from finledger.domain.entities import AccountType

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("list")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), help="Only this account type")
@click.option("--active-only", is_flag=True, help="Hide deactivated accounts")
@click.pass_context
def list_accounts(ctx, account_type: str | None, active_only: bool):
    """List accounts sorted by ID."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_by_type(
        account_type=AccountType(account_type) if account_type else None,
        active_only=active_only,
    )
    if not accounts:
        click.echo("No accounts found. Run 'finledger init' to create the default accounts.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(f"{acc.id} | {acc.name:25s} | {acc.account_type.value:9s}{status}")


@account_group.command("create")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.argument("name", metavar="NAME")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), required=True, help="Account type")
@click.option("--subtype", default="", help="Subtype label (e.g. bank, food)")
@click.pass_context
def create_account(ctx, account_id: str, name: str, account_type: str, subtype: str):
    """Create a new account.

    Examples:
        finledger account create 1300 "Brokerage Cash" --type asset --subtype bank
        finledger account create 5950 "Gifts" --type expense
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        acc = service.create_account(account_id, name, AccountType(account_type), subtype)
        click.echo(f"Created account '{acc.name}' (ID: {acc.id}, type: {acc.account_type.value})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.pass_context
def rename_account(ctx, account: str, new_name: str):
    """Rename an account.

    ACCOUNT can be an account name or ID.

    Examples:
        finledger account rename 5100 "Restaurants"
        finledger account rename "Dining Out" "Restaurants"
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        acc = service.rename_account(account_id, new_name)
        click.echo(f"Renamed account {acc.id} to '{acc.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _set_active(ctx, account: str, is_active: bool) -> None:
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        acc = service.set_active(account_id, is_active)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    state = "Activated" if acc.is_active else "Deactivated"
    click.echo(f"{state} account {acc.id} ({acc.name})")


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str):
    """Activate an account."""
    _set_active(ctx, account, True)


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account. Its entries are kept."""
    _set_active(ctx, account, False)


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def account_balance(ctx, account: str):
    """Show the balance of an account."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account)
    acc = account_service.get_account(account_id)

    balance = AggregationService(db).account_balance(account_id)
    click.echo(f"{acc.id} {acc.name}: {money(balance)}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
