"""Migration of legacy single-entry transactions into journal entries.

A legacy record is a flat {type, amount, category, date, notes} row. Each
one becomes a two-line journal entry against the bank account:

    income:   debit bank account, credit income account
    expense:  debit expense account, credit bank account

The pipeline runs through phases (load, backup, validate, convert, check
the converted entries against the chart of accounts, check the trial
balance, seed accounts, save). Any failure stops it and is reported as a
MigrationResult naming the phase; nothing here raises for bad data. Entry
ids are derived from the legacy id, so running the migration again after a
partial failure overwrites instead of duplicating.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from finledger.database.base import Database
from finledger.domain.account import AccountService
from finledger.domain.chart import (
    DEFAULT_BANK_ACCOUNT,
    DEFAULT_CATEGORY_TO_ACCOUNT,
    FALLBACK_CATEGORY,
)
from finledger.domain.entities import (
    Account,
    EntryType,
    FlowType,
    JournalEntry,
    LegacyTransaction,
    LineItem,
    MigrationBackup,
    MigrationStatus,
)
from finledger.domain.errors import NotFoundError, backup_not_found
from finledger.domain.journal import JournalService
from finledger.domain.validation import (
    MAX_REPORTED_ISSUES,
    BatchValidation,
    TrialBalance,
    validate_legacy_ledger,
    validate_multiple_entries,
    validate_trial_balance,
)
from finledger.utils.amount_parser import ZERO, CENT, has_sub_cent_digits, to_decimal
from finledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

MIGRATED_TAG = "migrated_v3"
MIGRATED_ID_PREFIX = "migrated_"
BACKUP_ID_PREFIX = "legacy_backup_"

SETTING_COMPLETED_AT = "migration.completed_at"
SETTING_BACKUP_ID = "migration.backup_id"


class MigrationPhase(str, Enum):
    """Steps of the migration pipeline, in order."""

    NOT_STARTED = "not_started"
    LOADING = "loading"
    BACKUP = "backup"
    VALIDATION = "validation"
    CONVERSION = "conversion"
    V4_VALIDATION = "v4_validation"
    TRIAL_BALANCE = "trial_balance"
    SEEDING = "seeding"
    SAVING = "saving"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ConversionFailure:
    """A legacy record that could not be converted."""

    transaction: Any
    reason: str


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting a batch of legacy records."""

    success: bool
    entries: tuple[JournalEntry, ...]
    failed: tuple[ConversionFailure, ...]
    stats: dict = field(default_factory=dict)


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of a dry run or a migration.

    On failure, phase is the step that failed.
    """

    success: bool
    phase: MigrationPhase
    message: str
    stats: dict = field(default_factory=dict)
    backup_id: Optional[str] = None
    trial_balance: Optional[TrialBalance] = None
    issues: tuple[str, ...] = ()


def normalize_category(category: str) -> str:
    """Lower-case a category name and replace whitespace runs with underscores."""
    return re.sub(r"\s+", "_", category.strip().lower())


def _parse_created_at(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _conversion_error(txn: Optional[LegacyTransaction], category_map: Mapping[str, str]) -> Optional[str]:
    """Return why a legacy record cannot be converted, or None if it can."""
    if txn is None:
        return "Missing transaction"
    if not txn.txn_type or txn.amount in (None, "") or not txn.date or not txn.category:
        return "Missing required field (type, amount, date or category)"
    if txn.txn_type not in (FlowType.INCOME.value, FlowType.EXPENSE.value):
        return f"Unknown transaction type: {txn.txn_type}"

    try:
        amount = to_decimal(txn.amount)
    except ValueError:
        return f"Invalid amount: {txn.amount}"
    if not amount.is_finite() or amount <= 0:
        return f"Invalid amount: {txn.amount}"
    if has_sub_cent_digits(amount):
        return f"Amount has more than 2 decimal places: {txn.amount}"

    try:
        parse_date(str(txn.date))
    except ValueError:
        return f"Invalid date: {txn.date}"

    category = normalize_category(str(txn.category))
    if category not in category_map and FALLBACK_CATEGORY not in category_map:
        return f"Cannot map category: {txn.category}"
    return None


def _convert(
    txn: LegacyTransaction, category_map: Mapping[str, str], bank_account: str
) -> JournalEntry:
    amount = to_decimal(txn.amount).quantize(CENT)
    category = normalize_category(str(txn.category))
    target_account = category_map.get(category) or category_map[FALLBACK_CATEGORY]
    flow_type = FlowType(txn.txn_type)

    if flow_type == FlowType.INCOME:
        lines = (
            LineItem(bank_account, debit=amount, credit=ZERO),
            LineItem(target_account, debit=ZERO, credit=amount),
        )
    else:
        lines = (
            LineItem(target_account, debit=amount, credit=ZERO),
            LineItem(bank_account, debit=ZERO, credit=amount),
        )

    return JournalEntry(
        id=f"{MIGRATED_ID_PREFIX}{txn.id}",
        date=parse_date(str(txn.date)),
        lines=lines,
        notes=txn.notes or f"Migrated from v3: {txn.category}",
        tags=frozenset({MIGRATED_TAG, flow_type.value}),
        entry_type=EntryType.MIGRATION,
        flow_type=flow_type,
        balance_check=True,
        created_at=_parse_created_at(txn.created_at),
        source_id=str(txn.id),
    )


def convert_one(
    txn: Optional[LegacyTransaction],
    category_map: Optional[Mapping[str, str]] = None,
    bank_account: str = DEFAULT_BANK_ACCOUNT,
) -> Optional[JournalEntry]:
    """Convert one legacy record into a balanced two-line journal entry.

    Unknown categories fall back to the other-expense account.

    Args:
        txn: Legacy transaction
        category_map: Category name to account ID table (defaults to the built-in table)
        bank_account: Account ID on the other side of every entry

    Returns:
        Journal entry, or None if the record is incomplete or invalid
    """
    category_map = category_map or DEFAULT_CATEGORY_TO_ACCOUNT
    reason = _conversion_error(txn, category_map)
    if reason is not None:
        logger.warning(f"Cannot convert legacy transaction {getattr(txn, 'id', None)}: {reason}")
        return None
    return _convert(txn, category_map, bank_account)


def convert_many(
    txns: Optional[Sequence[LegacyTransaction]],
    category_map: Optional[Mapping[str, str]] = None,
    bank_account: str = DEFAULT_BANK_ACCOUNT,
) -> ConversionResult:
    """Convert a batch of legacy records, collecting failures instead of raising.

    success is True only when every record converted.
    """
    if txns is None:
        return ConversionResult(
            success=False,
            entries=(),
            failed=(),
            stats={"total": 0, "converted": 0, "failed": 0, "error": "No transactions given"},
        )

    category_map = category_map or DEFAULT_CATEGORY_TO_ACCOUNT
    entries = []
    failed = []
    for txn in txns:
        reason = _conversion_error(txn, category_map)
        if reason is None:
            entries.append(_convert(txn, category_map, bank_account))
        else:
            logger.warning(f"Cannot convert legacy transaction {getattr(txn, 'id', None)}: {reason}")
            failed.append(ConversionFailure(txn, reason))

    total = len(txns)
    return ConversionResult(
        success=not failed,
        entries=tuple(entries),
        failed=tuple(failed),
        stats={
            "total": total,
            "converted": len(entries),
            "failed": len(failed),
            "success_rate": round(len(entries) / total * 100, 2) if total else 0.0,
        },
    )


def _entry_issues(batch: BatchValidation) -> tuple[str, ...]:
    issues = [
        f"Entry {detail.entry_id}: {', '.join(detail.errors)}"
        for detail in batch.details
        if not detail.is_valid
    ]
    return tuple(issues[:MAX_REPORTED_ISSUES])


class MigrationService:
    """Service running the legacy-to-journal migration."""

    def __init__(self, db: Database):
        """Initialize migration service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.journal_service = JournalService(db)

    # Conversion
    def convert_one(
        self,
        txn: Optional[LegacyTransaction],
        category_map: Optional[Mapping[str, str]] = None,
        bank_account: str = DEFAULT_BANK_ACCOUNT,
    ) -> Optional[JournalEntry]:
        return convert_one(txn, category_map, bank_account)

    def convert_many(
        self,
        txns: Optional[Sequence[LegacyTransaction]],
        category_map: Optional[Mapping[str, str]] = None,
        bank_account: str = DEFAULT_BANK_ACCOUNT,
    ) -> ConversionResult:
        return convert_many(txns, category_map, bank_account)

    # Dry run
    def dry_run(
        self,
        txns: Sequence[LegacyTransaction],
        category_map: Optional[Mapping[str, str]] = None,
        bank_account: str = DEFAULT_BANK_ACCOUNT,
        validate_source: bool = True,
        accounts: Optional[Sequence[Account]] = None,
    ) -> MigrationResult:
        """Run every check of the migration without writing anything.

        Args:
            txns: Legacy transactions
            category_map: Optional category table override
            bank_account: Bank account ID
            validate_source: Validate the legacy records before converting them
            accounts: Chart the converted entries must post to; existence is
                not checked when omitted

        Returns:
            MigrationResult; phase is the first failing step, or COMPLETE
        """
        logger.info(f"Dry run over {len(txns)} legacy transactions")

        if validate_source:
            ledger = validate_legacy_ledger(txns)
            if not ledger.is_valid:
                return MigrationResult(
                    success=False,
                    phase=MigrationPhase.VALIDATION,
                    message="Legacy data validation failed",
                    stats={"total": ledger.total, "valid": ledger.valid, "invalid": ledger.invalid},
                    issues=ledger.issues,
                )
            logger.info(f"Legacy data validated: {ledger.valid}/{ledger.total}")

        conversion = convert_many(txns, category_map, bank_account)
        if not conversion.success:
            return MigrationResult(
                success=False,
                phase=MigrationPhase.CONVERSION,
                message="Legacy to journal conversion failed",
                stats=conversion.stats,
                issues=tuple(
                    f"Transaction {getattr(f.transaction, 'id', None)}: {f.reason}"
                    for f in conversion.failed[:MAX_REPORTED_ISSUES]
                ),
            )

        batch = validate_multiple_entries(conversion.entries, accounts or ())
        if batch.invalid:
            return MigrationResult(
                success=False,
                phase=MigrationPhase.V4_VALIDATION,
                message="Converted entry validation failed",
                stats=conversion.stats,
                issues=_entry_issues(batch),
            )

        trial_balance = validate_trial_balance(conversion.entries)
        if not trial_balance.is_balanced:
            return MigrationResult(
                success=False,
                phase=MigrationPhase.TRIAL_BALANCE,
                message="Trial balance check failed",
                stats=conversion.stats,
                trial_balance=trial_balance,
            )

        return MigrationResult(
            success=True,
            phase=MigrationPhase.COMPLETE,
            message="Dry run successful, ready for migration",
            stats=conversion.stats,
            trial_balance=trial_balance,
        )

    # Execution
    def execute(
        self,
        create_backup: bool = True,
        dry_run: bool = True,
        category_map: Optional[Mapping[str, str]] = None,
        bank_account: str = DEFAULT_BANK_ACCOUNT,
    ) -> MigrationResult:
        """Migrate all stored legacy transactions into journal entries.

        Steps: load, optional backup, optional dry run, seed the default
        chart, convert, check every line against the stored chart, save all
        entries in one transaction, verify the global trial balance, record
        completion.

        Accounts seeded and backups taken before a failure are kept.

        Returns:
            MigrationResult describing success or the failing phase
        """
        phase = MigrationPhase.LOADING
        backup_id = None
        stats: dict = {}
        try:
            txns = self.db.list_legacy_transactions()
            stats["legacy_transactions"] = len(txns)
            logger.info(f"Loaded {len(txns)} legacy transactions")

            if create_backup:
                phase = MigrationPhase.BACKUP
                backup_id = self.create_backup(txns, "Backup before legacy migration").id

            if dry_run:
                phase = MigrationPhase.VALIDATION
                rehearsal = self.dry_run(
                    txns, category_map, bank_account, accounts=self.account_service.chart_after_seeding()
                )
                if not rehearsal.success:
                    logger.error(f"Dry run failed at {rehearsal.phase.value}: {rehearsal.message}")
                    return MigrationResult(
                        success=False,
                        phase=rehearsal.phase,
                        message=f"Dry run failed at {rehearsal.phase.value}: {rehearsal.message}",
                        stats={**stats, **rehearsal.stats},
                        backup_id=backup_id,
                        trial_balance=rehearsal.trial_balance,
                        issues=rehearsal.issues,
                    )

            phase = MigrationPhase.SEEDING
            stats["accounts_seeded"] = self.account_service.seed_default_accounts()

            phase = MigrationPhase.CONVERSION
            conversion = convert_many(txns, category_map, bank_account)
            stats.update(converted=conversion.stats["converted"], failed=conversion.stats["failed"])
            if not conversion.success:
                return MigrationResult(
                    success=False,
                    phase=phase,
                    message=f"Conversion failed: {len(conversion.failed)} transactions failed",
                    stats=stats,
                    backup_id=backup_id,
                    issues=tuple(
                        f"Transaction {getattr(f.transaction, 'id', None)}: {f.reason}"
                        for f in conversion.failed[:MAX_REPORTED_ISSUES]
                    ),
                )

            phase = MigrationPhase.V4_VALIDATION
            batch = validate_multiple_entries(conversion.entries, self.db.list_accounts())
            if batch.invalid:
                logger.error(f"{batch.invalid} converted entries failed validation")
                return MigrationResult(
                    success=False,
                    phase=phase,
                    message=f"Converted entry validation failed: {batch.invalid} invalid entries",
                    stats=stats,
                    backup_id=backup_id,
                    issues=_entry_issues(batch),
                )

            phase = MigrationPhase.SAVING
            saved = self.journal_service.save_entries(conversion.entries)
            stats["entries_saved"] = len(saved)

            phase = MigrationPhase.TRIAL_BALANCE
            trial_balance = self.journal_service.verify_trial_balance()
            if not trial_balance.is_balanced:
                return MigrationResult(
                    success=False,
                    phase=phase,
                    message=f"Trial balance failed after migration: {trial_balance.difference} difference",
                    stats=stats,
                    backup_id=backup_id,
                    trial_balance=trial_balance,
                )

            self.db.set_setting(SETTING_COMPLETED_AT, datetime.now(UTC).isoformat())
            self.db.set_setting(SETTING_BACKUP_ID, backup_id or "none")
        except Exception as e:
            logger.exception(f"Migration failed during {phase.value}")
            return MigrationResult(
                success=False,
                phase=phase,
                message=str(e),
                stats=stats,
                backup_id=backup_id,
            )

        logger.info(f"Migration complete: {stats.get('entries_saved', 0)} entries saved")
        return MigrationResult(
            success=True,
            phase=MigrationPhase.COMPLETE,
            message="Migration successful",
            stats=stats,
            backup_id=backup_id,
            trial_balance=trial_balance,
        )

    def get_status(self) -> MigrationStatus:
        """Return whether the migration has completed, and when."""
        completed_at = self.db.get_setting(SETTING_COMPLETED_AT)
        backup_id = self.db.get_setting(SETTING_BACKUP_ID)
        return MigrationStatus(
            is_migrated=completed_at is not None,
            completed_at=completed_at,
            backup_id=None if backup_id in (None, "none") else backup_id,
        )

    # Backups
    def create_backup(
        self, txns: Optional[Sequence[LegacyTransaction]] = None, label: str = ""
    ) -> MigrationBackup:
        """Snapshot legacy transactions (all stored ones when txns is None)."""
        if txns is None:
            txns = self.db.list_legacy_transactions()
        now = datetime.now(UTC)
        backup = MigrationBackup(
            id=f"{BACKUP_ID_PREFIX}{now:%Y%m%d%H%M%S%f}",
            label=label or f"Backup {now.isoformat()}",
            created_at=now,
            count=len(txns),
            transactions=tuple(txns),
        )
        self.db.put_backup(backup)
        logger.info(f"Created backup {backup.id} with {backup.count} transactions")
        return backup

    def get_backup(self, backup_id: str) -> Optional[MigrationBackup]:
        """Get a backup with its transactions, or None if not found."""
        return self.db.get_backup(backup_id)

    def list_backups(self) -> list[MigrationBackup]:
        """List backups, most recent first (without their transactions)."""
        return self.db.list_backups()

    def restore_from_backup(self, backup_id: str) -> tuple[LegacyTransaction, ...]:
        """Return the legacy transactions saved in a backup.

        This does not undo a migration. The returned records have to be
        reinstated manually, for example by exporting them to CSV.

        Raises:
            NotFoundError: If the backup does not exist
        """
        backup = self.db.get_backup(backup_id)
        if backup is None:
            raise NotFoundError(backup_not_found(backup_id))
        logger.warning(
            f"Restoring backup {backup_id}: {backup.count} legacy transactions "
            "returned for manual reinstatement; journal entries are not reverted"
        )
        return backup.transactions
