"""Main CLI entry point."""

import logging

import click
from finledger.database.factories import create_database

# Import and register all commands at module level
from finledger.cli.commands import (
    account,
    entry,
    init_cmd,
    legacy,
    migrate,
    report,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Database file path or SQLAlchemy URL (overrides FINLEDGER_DB_PATH environment variable)",
    envvar="FINLEDGER_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level (overrides FINLEDGER_LOG_LEVEL environment variable)",
    envvar="FINLEDGER_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """FinLedger - Double-entry personal finance ledger.

    Record income and expenses as balanced journal entries, report balances
    and net worth, and migrate records from the old single-entry ledger.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_database(db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
init_cmd.register_commands(cli)
account.register_commands(cli)
entry.register_commands(cli)
report.register_commands(cli)
legacy.register_commands(cli)
migrate.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
