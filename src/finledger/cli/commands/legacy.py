"""Legacy (single-entry) ledger commands: CSV import, export and listing."""

import click
from finledger.cli.error_handling import fail, handle_domain_error
from finledger.domain.csv_backup import DEFAULT_CURRENCY, LegacyBackupService
from finledger.domain.validation import MAX_REPORTED_ISSUES


@click.group()
def legacy_group():
    """Manage legacy single-entry transactions (migration input)."""
    pass


@legacy_group.command("import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.pass_context
def import_backup(ctx, csv_file: str):
    """Merge a legacy CSV backup into the legacy ledger.

    Transactions already present are skipped.

    Examples:
        finledger legacy import finchronicle-backup-2025-03-01.csv
    """
    db = ctx.obj["db"]
    service = LegacyBackupService(db)

    try:
        report = service.restore_file(csv_file)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("Import complete:")
    click.echo(f"  In backup:  {report.backup_total}")
    click.echo(f"  Added:      {report.added}")
    click.echo(f"  Duplicates: {report.duplicates}")
    click.echo(f"  Skipped:    {report.skipped}")
    click.echo(f"  Total now:  {report.current_total}")


@legacy_group.command("import-csv")
@click.argument("csv_file", type=click.Path(exists=True))
@click.pass_context
def import_csv(ctx, csv_file: str):
    """Add rows of a plain CSV export to the legacy ledger.

    The file needs Date, Category and Amount columns; Type and Notes are
    optional. Rows that fail validation are skipped and listed.

    Examples:
        finledger legacy import-csv statement.csv
    """
    db = ctx.obj["db"]
    service = LegacyBackupService(db)

    try:
        report = service.import_file(csv_file)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if report.added > 0:
        message = f"Imported {report.added} transaction(s)"
        if report.skipped:
            message += f", skipped {report.skipped}"
        click.echo(message)
    for error in report.errors[:MAX_REPORTED_ISSUES]:
        click.echo(f"  - {error}", err=True)
    if report.added == 0:
        fail(ctx, f"No valid rows to import ({report.skipped} skipped)")


@legacy_group.command("export")
@click.argument("csv_file", type=click.Path())
@click.option("--currency", default=DEFAULT_CURRENCY, show_default=True, help="Currency code for the header")
@click.pass_context
def export_backup(ctx, csv_file: str, currency: str):
    """Write the legacy ledger to a CSV backup file."""
    db = ctx.obj["db"]
    service = LegacyBackupService(db)

    try:
        count = service.export_file(csv_file, currency=currency)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Exported {count} transactions to {csv_file}")


@legacy_group.command("list")
@click.pass_context
def list_legacy(ctx):
    """List legacy transactions, newest first."""
    db = ctx.obj["db"]
    transactions = db.list_legacy_transactions()
    if not transactions:
        click.echo("No legacy transactions found.")
        return

    for txn in transactions:
        click.echo(
            f"{txn.date} | {txn.txn_type or '?':7s} | {txn.category or '':15s} | "
            f"{str(txn.amount):>12s} | {txn.notes}"
        )


def register_commands(cli):
    """Register legacy commands with main CLI."""
    cli.add_command(legacy_group, name="legacy")
