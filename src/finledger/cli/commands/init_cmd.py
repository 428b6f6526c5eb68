"""Initialize the default chart of accounts."""

import click
from finledger.domain.account import AccountService


@click.command("init")
@click.pass_context
def init(ctx):
    """Create the default chart of accounts.

    Safe to run more than once: nothing happens when the accounts exist.

    Examples:
        finledger init
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    count = service.seed_default_accounts()
    if count == 0:
        click.echo("Default accounts already present.")
    else:
        click.echo(f"Created {count} default accounts.")


def register_commands(cli):
    """Register init command with main CLI."""
    cli.add_command(init)
