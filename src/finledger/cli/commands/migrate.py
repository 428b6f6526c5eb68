"""Migration commands: move legacy transactions into the journal."""

import json
from pathlib import Path

import click
from finledger.cli.error_handling import handle_domain_error
from finledger.domain.chart import DEFAULT_BANK_ACCOUNT, DEFAULT_CATEGORY_TO_ACCOUNT
from finledger.domain.csv_backup import LegacyBackupService
from finledger.domain.errors import ValidationError
from finledger.domain.migration import MigrationResult, MigrationService, normalize_category


def load_category_map(path: str | None) -> dict[str, str]:
    """Load a category map override from a JSON object file.

    Entries in the file are added to (or replace) the default table.

    Raises:
        ValidationError: If the file is not a JSON object of strings
    """
    category_map = dict(DEFAULT_CATEGORY_TO_ACCOUNT)
    if path is None:
        return category_map

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid category map {path}: {e}")
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid category map {path}: expected a JSON object")

    for category, account_id in data.items():
        if not isinstance(account_id, (str, int)):
            raise ValidationError(f"Invalid account for category '{category}': {account_id!r}")
        category_map[normalize_category(str(category))] = str(account_id)
    return category_map


def _print_result(result: MigrationResult) -> None:
    status = "OK" if result.success else "FAILED"
    click.echo(f"{status} ({result.phase.value}): {result.message}")
    for key, value in result.stats.items():
        click.echo(f"  {key}: {value}")
    if result.backup_id:
        click.echo(f"  backup: {result.backup_id}")
    if result.trial_balance is not None:
        tb = result.trial_balance
        click.echo(f"  trial balance: debits {tb.total_debits}, credits {tb.total_credits}")
    for issue in result.issues:
        click.echo(f"  - {issue}")


category_map_option = click.option(
    "--category-map",
    type=click.Path(exists=True),
    help="JSON file mapping legacy categories to account IDs",
)
bank_account_option = click.option(
    "--bank-account",
    default=DEFAULT_BANK_ACCOUNT,
    show_default=True,
    help="Account on the other side of every migrated entry",
)


@click.group()
def migrate_group():
    """Migrate legacy transactions into double-entry journal entries."""
    pass


@migrate_group.command("dry-run")
@category_map_option
@bank_account_option
@click.option("--skip-source-validation", is_flag=True, help="Do not validate legacy records first")
@click.pass_context
def dry_run(ctx, category_map: str | None, bank_account: str, skip_source_validation: bool):
    """Check the migration without writing anything."""
    db = ctx.obj["db"]
    service = MigrationService(db)

    try:
        mapping = load_category_map(category_map)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    result = service.dry_run(
        db.list_legacy_transactions(),
        category_map=mapping,
        bank_account=bank_account,
        validate_source=not skip_source_validation,
        accounts=service.account_service.chart_after_seeding(),
    )
    _print_result(result)
    if not result.success:
        ctx.exit(1)


@migrate_group.command("run")
@category_map_option
@bank_account_option
@click.option("--no-backup", is_flag=True, help="Do not snapshot legacy transactions first")
@click.option("--no-dry-run", is_flag=True, help="Skip the dry run before migrating")
@click.pass_context
def run(ctx, category_map: str | None, bank_account: str, no_backup: bool, no_dry_run: bool):
    """Migrate all legacy transactions.

    Examples:
        finledger migrate run
        finledger migrate run --category-map categories.json --bank-account 1000
    """
    db = ctx.obj["db"]
    service = MigrationService(db)

    try:
        mapping = load_category_map(category_map)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    result = service.execute(
        create_backup=not no_backup,
        dry_run=not no_dry_run,
        category_map=mapping,
        bank_account=bank_account,
    )
    _print_result(result)
    if not result.success:
        ctx.exit(1)


@migrate_group.command("status")
@click.pass_context
def status(ctx):
    """Show whether the migration has completed."""
    db = ctx.obj["db"]
    result = MigrationService(db).get_status()
    if not result.is_migrated:
        click.echo("Migration not completed.")
        return
    click.echo(f"Migration completed at {result.completed_at}")
    if result.backup_id:
        click.echo(f"Backup: {result.backup_id}")


@migrate_group.command("backups")
@click.pass_context
def backups(ctx):
    """List migration backups, most recent first."""
    db = ctx.obj["db"]
    items = MigrationService(db).list_backups()
    if not items:
        click.echo("No backups found.")
        return
    for backup in items:
        click.echo(f"{backup.id} | {backup.created_at:%Y-%m-%d %H:%M:%S} | {backup.count:5d} | {backup.label}")


@migrate_group.command("restore")
@click.argument("backup_id")
@click.option("--output", type=click.Path(), help="Write the backup to this CSV file")
@click.pass_context
def restore(ctx, backup_id: str, output: str | None):
    """Retrieve the legacy transactions saved in a backup.

    This does not undo the migration; journal entries stay as they are.
    """
    db = ctx.obj["db"]
    service = MigrationService(db)

    try:
        transactions = service.restore_from_backup(backup_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Backup {backup_id} holds {len(transactions)} legacy transactions.")
    if output and transactions:
        LegacyBackupService(db).export_file(output, transactions)
        click.echo(f"Written to {output}")
    click.echo("Journal entries were not changed; reinstate the records manually if needed.")


def register_commands(cli):
    """Register migrate commands with main CLI."""
    cli.add_command(migrate_group, name="migrate")
