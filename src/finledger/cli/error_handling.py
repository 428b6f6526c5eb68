"""Error reporting for CLI commands.

Every failure is printed to stderr as "Error: ..." and ends the command with
exit status 1.
"""

import click

from finledger.domain.account import AccountService
from finledger.domain.errors import BalanceError, DomainError
from finledger.utils.account_resolver import resolve_account


def fail(ctx: click.Context, message: str) -> None:
    """Print an error message and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    Validation messages that collect several problems ("a; b") are printed
    one per line.
    """
    first, *rest = str(error).split("; ")
    click.echo(f"Error: {first}", err=True)
    for message in rest:
        click.echo(f"  - {message}", err=True)
    if isinstance(error, BalanceError):
        click.echo(
            f"  debits {error.total_debits}, credits {error.total_credits}", err=True
        )
    ctx.exit(1)


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str
) -> str:
    """Resolve an account name or ID, exiting when it does not exist."""
    try:
        return resolve_account(account_service, account)
    except ValueError as e:
        handle_domain_error(ctx, e)
