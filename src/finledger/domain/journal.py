"""Journal entry domain service."""

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, UTC
from typing import Optional, Sequence

from finledger.database.base import Database
from finledger.domain.entities import (
    EntryType,
    JournalEntry as JournalEntryEntity,
    LineItem,
)
from finledger.domain.errors import (
    BalanceError,
    NotFoundError,
    StructuralError,
    ValidationError,
    journal_entry_not_found,
    unbalanced_entry,
)
from finledger.domain.validation import (
    TrialBalance,
    validate_journal_entry,
    validate_opening_balance,
    validate_trial_balance,
)
from finledger.utils.amount_parser import ZERO, CENT, has_sub_cent_digits, to_decimal

logger = logging.getLogger(__name__)


def new_entry_id() -> str:
    """Generate a unique journal entry ID."""
    return f"je_{uuid.uuid4().hex}"


def _normalize_line(line: LineItem, position: int) -> LineItem:
    if not line.account_id:
        raise StructuralError(f"Line {position}: Missing accountId")
    try:
        debit = to_decimal(line.debit)
        credit = to_decimal(line.credit)
    except ValueError:
        raise StructuralError(f"Line {position}: Debit/Credit is not a number")
    if not debit.is_finite() or not credit.is_finite():
        raise StructuralError(f"Line {position}: Debit/Credit is not a number")
    if debit < 0 or credit < 0:
        raise StructuralError(f"Line {position}: Debit/Credit cannot be negative")
    if has_sub_cent_digits(debit) or has_sub_cent_digits(credit):
        raise ValidationError(f"Line {position}: Amounts must be rounded to 2 decimal places")
    if (debit > 0) == (credit > 0):
        raise StructuralError(f"Line {position}: Line must have either a debit or a credit")
    return LineItem(
        account_id=str(line.account_id),
        debit=debit.quantize(CENT),
        credit=credit.quantize(CENT),
    )


def check_entry(entry: JournalEntryEntity) -> JournalEntryEntity:
    """Verify structure and balance of an entry right before it is stored.

    Returns the entry with amounts normalized to cents.

    Raises:
        StructuralError: If the entry is missing lines, a date or has malformed lines
        ValidationError: If an amount has more than 2 decimal places
        BalanceError: If total debits differ from total credits
    """
    if not entry.lines or len(entry.lines) < 2:
        raise StructuralError("Entry must have at least 2 line items (debit + credit)")
    if not isinstance(entry.date, date):
        raise StructuralError("Entry must have a date")
    if entry.entry_type == EntryType.MIGRATION and entry.flow_type is None:
        raise StructuralError("Migration entry must declare a flow type (income or expense)")

    lines = tuple(_normalize_line(line, idx) for idx, line in enumerate(entry.lines, start=1))
    total_debits = sum((line.debit for line in lines), ZERO)
    total_credits = sum((line.credit for line in lines), ZERO)
    if total_debits != total_credits:
        raise BalanceError(unbalanced_entry(total_debits, total_credits), total_debits, total_credits)

    entry_date = entry.date.date() if isinstance(entry.date, datetime) else entry.date
    return replace(entry, date=entry_date, lines=lines, tags=frozenset(entry.tags or ()))


class JournalService:
    """Service for reading and writing journal entries."""

    def __init__(self, db: Database):
        """Initialize journal service.

        Args:
            db: Database instance
        """
        self.db = db

    def _stage(self, entry: JournalEntryEntity, now: datetime) -> JournalEntryEntity:
        entry = check_entry(entry)
        if not entry.id:
            return replace(entry, id=new_entry_id(), created_at=entry.created_at or now, modified_at=None)

        existing = self.db.get_journal_entry(entry.id)
        if existing is None:
            return replace(entry, created_at=entry.created_at or now)
        return replace(entry, created_at=existing.created_at, modified_at=now)

    def save_entry(self, entry: JournalEntryEntity) -> JournalEntryEntity:
        """Store a journal entry.

        The trial balance of the entry is verified again here even if the
        caller already validated it. An entry with an existing ID replaces the
        stored one completely; its creation time is kept.

        Args:
            entry: Entry to store (ID is generated when empty)

        Returns:
            Stored entry with ID and timestamps

        Raises:
            StructuralError: If the entry is malformed
            BalanceError: If debits and credits differ
        """
        staged = self._stage(entry, datetime.now(UTC))
        stored = self.db.put_journal_entry(staged)
        logger.info(f"Saved journal entry {stored.id}")
        return stored

    def save_entries(self, entries: Sequence[JournalEntryEntity]) -> list[JournalEntryEntity]:
        """Store several entries atomically.

        Every entry is checked and stamped first; if any fails nothing is written.
        The whole batch is then committed in one storage transaction.

        Returns:
            Staged entries as written
        """
        now = datetime.now(UTC)
        staged = [self._stage(entry, now) for entry in entries]
        self.db.put_journal_entries(staged)
        logger.info(f"Saved {len(staged)} journal entries")
        return staged

    def post_entry(
        self, entry: JournalEntryEntity, today: Optional[date] = None
    ) -> JournalEntryEntity:
        """Validate an entry against the chart of accounts, then save it.

        Opening balance entries additionally need an asset and an equity line.

        Raises:
            ValidationError: If validation reports errors
        """
        accounts = self.db.list_accounts()
        if entry.entry_type == EntryType.OPENING_BALANCE:
            result = validate_opening_balance(entry, accounts, today=today)
        else:
            result = validate_journal_entry(entry, accounts, today=today)

        if not result.is_valid:
            raise ValidationError("; ".join(result.errors))
        for warning in result.warnings:
            logger.warning(f"Journal entry {entry.id or '(new)'}: {warning}")

        return self.save_entry(entry)

    def update_entry(
        self, entry: JournalEntryEntity, reason: str, today: Optional[date] = None
    ) -> JournalEntryEntity:
        """Replace an existing entry, recording why it changed.

        Raises:
            NotFoundError: If no entry with this ID exists
            ValidationError: If the new version is invalid
        """
        if not entry.id or self.db.get_journal_entry(entry.id) is None:
            raise NotFoundError(journal_entry_not_found(entry.id))
        return self.post_entry(replace(entry, modified_reason=reason), today=today)

    def get_entry(self, entry_id: str) -> Optional[JournalEntryEntity]:
        """Get journal entry by ID, or None if not found."""
        return self.db.get_journal_entry(entry_id)

    def get_entries_for_month(self, month_prefix: str) -> list[JournalEntryEntity]:
        """Get entries whose ISO date starts with the prefix, newest first."""
        return self.db.list_journal_entries(month_prefix=month_prefix)

    def get_all_entries(self) -> list[JournalEntryEntity]:
        """Get every entry, newest first."""
        return self.db.list_journal_entries()

    def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry permanently.

        Returns:
            True if deleted, False if the entry did not exist
        """
        deleted = self.db.delete_journal_entry(entry_id)
        if deleted:
            logger.warning(f"Deleted journal entry {entry_id}; audit trail is broken")
        return deleted

    def verify_trial_balance(self) -> TrialBalance:
        """Check that debits equal credits across all stored entries."""
        return validate_trial_balance(self.db.list_journal_entries())
