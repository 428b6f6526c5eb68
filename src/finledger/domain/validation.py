"""Validation of amounts, dates, accounts and journal entries.

Every check is a plain function returning a frozen result object. Nothing
here touches storage; callers pass in the accounts to validate against.
Errors block an operation, warnings are reported and logged but never block.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from finledger.domain.entities import (
    Account,
    AccountType,
    EntryType,
    JournalEntry,
    LegacyTransaction,
)
from finledger.utils.amount_parser import (
    ZERO,
    CENT,
    has_sub_cent_digits,
    round_cents,
    to_decimal,
)
from finledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("1000000000")
LARGE_AMOUNT_WARNING = Decimal("1000000")
MIN_ACCOUNT_ID = 1000
MAX_ACCOUNT_ID = 5999
MAX_REPORTED_ISSUES = 10

ACCOUNT_NAME_PATTERN = re.compile(r"^[\w\s\-/.()&']+$")
LEGACY_TYPES = ("income", "expense")


@dataclass(frozen=True)
class FieldValidation:
    """Outcome of validating a single input value."""

    is_valid: bool
    value: Any = None
    error: Optional[str] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class AccountValidation:
    """Outcome of validating an account reference."""

    is_valid: bool
    account: Optional[Account] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    """Errors and warnings collected while validating a record."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrialBalance:
    """Aggregate debit/credit totals over a set of entries."""

    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    entries_count: int = 0
    lines_count: int = 0


@dataclass(frozen=True)
class EntryReport:
    """Per-entry outcome inside a batch validation."""

    index: int
    entry_id: str
    is_valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class BatchValidation:
    """Per-entry results plus the aggregate trial balance of the batch."""

    is_valid: bool
    total: int
    valid: int
    invalid: int
    trial_balance: TrialBalance
    details: tuple[EntryReport, ...]


@dataclass(frozen=True)
class LedgerValidation:
    """Summary of validating legacy transactions."""

    is_valid: bool
    total: int
    valid: int
    invalid: int
    issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class CSVHeaderValidation:
    """Outcome of checking a CSV header row."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    has_type: bool = False
    has_notes: bool = False


# Amounts & dates


def validate_amount(amount: Any) -> FieldValidation:
    """Validate a user-entered amount.

    Accepts positive numbers up to 1 billion with at most 2 decimal places.
    The returned value is a Decimal quantized to cents.
    """
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        return FieldValidation(False, ZERO, "Amount required")

    try:
        parsed = to_decimal(amount)
    except ValueError:
        return FieldValidation(False, ZERO, "Invalid amount (must be a number)")

    if not parsed.is_finite():
        return FieldValidation(False, ZERO, "Invalid amount (must be a number)")
    if parsed == 0:
        return FieldValidation(False, ZERO, "Amount must be greater than 0")
    if parsed < 0:
        return FieldValidation(
            False, ZERO, "Amount cannot be negative (use proper debit/credit)"
        )
    if parsed > MAX_AMOUNT:
        return FieldValidation(False, ZERO, "Amount too large (max 1 billion)")
    if has_sub_cent_digits(parsed):
        return FieldValidation(False, ZERO, "Too many decimal places (max 2)")

    return FieldValidation(True, parsed.quantize(CENT))


def validate_date(value: Any, today: Optional[date] = None) -> FieldValidation:
    """Validate and normalize a date.

    Accepts date objects and strings in YYYY-MM-DD, DD/MM/YYYY or DD-MMM
    (current year). Future dates are valid but carry a warning.
    """
    today = today or date.today()

    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif not value or not isinstance(value, str):
        return FieldValidation(False, None, "Date required")
    else:
        try:
            parsed = parse_date(value, today=today)
        except ValueError:
            return FieldValidation(
                False,
                None,
                "Invalid date format. Use YYYY-MM-DD, DD/MM/YYYY, or DD-MMM",
            )

    if parsed > today:
        logger.warning(f"Future-dated entry: {parsed.isoformat()}")
        return FieldValidation(True, parsed, warning="Future-dated entry")

    return FieldValidation(True, parsed)


def validate_account_id(
    account_id: Optional[str],
    expected_type: Optional[AccountType] = None,
    accounts: Iterable[Account] = (),
) -> AccountValidation:
    """Check that an account exists and optionally has the expected type."""
    if not account_id or not isinstance(account_id, str):
        return AccountValidation(False, None, "Account ID required")

    account = next((a for a in accounts if a.id == account_id), None)
    if account is None:
        return AccountValidation(False, None, f"Account not found: {account_id}")

    if expected_type is not None and AccountType(account.account_type) != AccountType(expected_type):
        return AccountValidation(
            False,
            None,
            f"Account must be type {AccountType(expected_type).value}, "
            f"got {AccountType(account.account_type).value}",
        )

    return AccountValidation(True, account)


# Journal entries


def _read_amount(value: Any) -> Optional[Decimal]:
    """Return a line amount as Decimal, or None if it is not numeric."""
    try:
        amount = to_decimal(value)
    except ValueError:
        return None
    return amount if amount.is_finite() else None


def _entry_totals(entries: Iterable[JournalEntry]) -> tuple[Decimal, Decimal, int, int]:
    total_debits = ZERO
    total_credits = ZERO
    entries_count = 0
    lines_count = 0
    for entry in entries:
        entries_count += 1
        for line in entry.lines or ():
            lines_count += 1
            total_debits += _read_amount(line.debit) or ZERO
            total_credits += _read_amount(line.credit) or ZERO
    return total_debits, total_credits, entries_count, lines_count


def validate_journal_entry(
    entry: Optional[JournalEntry],
    accounts: Sequence[Account] = (),
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate a complete journal entry before saving.

    Structural problems (fewer than two lines, no date) stop validation
    early. Otherwise every line is checked and the entry must balance
    exactly: any difference between debits and credits is an error.

    Args:
        entry: Journal entry to validate
        accounts: Chart of accounts; account existence is only checked when given
        today: Reference date for the future-date warning

    Returns:
        ValidationResult with errors and warnings
    """
    if entry is None:
        return ValidationResult(False, ("Entry is missing",))

    errors: list[str] = []
    warnings: list[str] = []

    if entry.lines is None:
        errors.append('Entry must have "lines"')
    elif len(entry.lines) < 2:
        errors.append("Entry must have at least 2 line items (debit + credit)")

    if entry.date is None:
        errors.append("Entry must have a date")
    else:
        date_check = validate_date(entry.date, today=today)
        if not date_check.is_valid:
            errors.append(date_check.error)
        elif date_check.warning:
            warnings.append(date_check.warning)

    if errors:
        return ValidationResult(False, tuple(errors), tuple(warnings))

    accounts_by_id = {a.id: a for a in accounts}
    total_debits = ZERO
    total_credits = ZERO

    for idx, line in enumerate(entry.lines, start=1):
        if not line.account_id:
            errors.append(f"Line {idx}: Missing accountId")
        elif accounts_by_id and line.account_id not in accounts_by_id:
            errors.append(f"Line {idx}: Account not found: {line.account_id}")

        debit = _read_amount(line.debit)
        credit = _read_amount(line.credit)
        if debit is None:
            errors.append(f"Line {idx}: Debit is not a number")
            continue
        if credit is None:
            errors.append(f"Line {idx}: Credit is not a number")
            continue

        if debit < 0:
            errors.append(f"Line {idx}: Debit cannot be negative")
        if credit < 0:
            errors.append(f"Line {idx}: Credit cannot be negative")
        if has_sub_cent_digits(debit) or has_sub_cent_digits(credit):
            errors.append(f"Line {idx}: Amounts must be rounded to 2 decimal places")
        if debit > 0 and credit > 0:
            errors.append(f"Line {idx}: Cannot have both debit and credit")
        if debit == 0 and credit == 0:
            errors.append(f"Line {idx}: Must have either debit or credit")

        total_debits += debit
        total_credits += credit

    if total_debits != total_credits:
        errors.append(
            f"Trial balance failed: Debits ({total_debits}) != Credits ({total_credits})"
        )

    if entry.entry_type == EntryType.MIGRATION and entry.flow_type is None:
        errors.append("Migration entry must declare a flow type (income or expense)")

    if abs(total_debits) > LARGE_AMOUNT_WARNING:
        warnings.append("Large transaction amount")

    if not entry.notes or not entry.notes.strip():
        warnings.append("No notes/description provided")

    return ValidationResult(not errors, tuple(errors), tuple(warnings))


def validate_opening_balance(
    entry: Optional[JournalEntry],
    accounts: Sequence[Account] = (),
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate an opening balance entry.

    On top of the regular checks it must post to at least one asset account
    and be balanced against at least one equity account. Those two checks
    need the chart of accounts and are skipped without it.
    """
    base = validate_journal_entry(entry, accounts, today=today)
    if not base.is_valid or not accounts:
        return base

    accounts_by_id = {a.id: a for a in accounts}
    line_types = {
        AccountType(accounts_by_id[line.account_id].account_type)
        for line in entry.lines
        if line.account_id in accounts_by_id
    }

    errors = []
    if AccountType.ASSET not in line_types:
        errors.append("Opening balance must include at least one asset account")
    if AccountType.EQUITY not in line_types:
        errors.append("Opening balance must include equity account to balance")

    return ValidationResult(not errors, base.errors + tuple(errors), base.warnings)


def validate_trial_balance(entries: Iterable[JournalEntry]) -> TrialBalance:
    """Check that total debits equal total credits across entries."""
    total_debits, total_credits, entries_count, lines_count = _entry_totals(entries)
    return TrialBalance(
        is_balanced=total_debits == total_credits,
        total_debits=round_cents(total_debits),
        total_credits=round_cents(total_credits),
        difference=round_cents(abs(total_debits - total_credits)),
        entries_count=entries_count,
        lines_count=lines_count,
    )


def validate_multiple_entries(
    entries: Sequence[JournalEntry],
    accounts: Sequence[Account] = (),
    today: Optional[date] = None,
) -> BatchValidation:
    """Validate each entry and the aggregate trial balance of the batch.

    Both levels are reported independently; the batch is valid only when
    every entry is valid and the aggregate balances.
    """
    details = []
    for idx, entry in enumerate(entries):
        result = validate_journal_entry(entry, accounts, today=today)
        details.append(
            EntryReport(
                index=idx,
                entry_id=(entry.id if entry is not None and entry.id else "unknown"),
                is_valid=result.is_valid,
                errors=result.errors,
                warnings=result.warnings,
            )
        )

    valid = sum(1 for d in details if d.is_valid)
    invalid = len(details) - valid
    trial_balance = validate_trial_balance(e for e in entries if e is not None)

    return BatchValidation(
        is_valid=invalid == 0 and trial_balance.is_balanced,
        total=len(details),
        valid=valid,
        invalid=invalid,
        trial_balance=trial_balance,
        details=tuple(details),
    )


# Accounts


def validate_account_name(name: Any) -> FieldValidation:
    """Validate an account name; the returned value is the trimmed name."""
    if not name or not isinstance(name, str):
        return FieldValidation(False, None, "Account name required")

    trimmed = name.strip()
    if len(trimmed) < 2:
        return FieldValidation(False, None, "Account name too short (min 2 characters)")
    if len(trimmed) > 50:
        return FieldValidation(False, None, "Account name too long (max 50 characters)")
    if not ACCOUNT_NAME_PATTERN.match(trimmed):
        return FieldValidation(False, None, "Account name contains invalid characters")

    return FieldValidation(True, trimmed)


def validate_account(account: Account) -> ValidationResult:
    """Validate a new account's id, name and type."""
    errors = []

    if not account.id:
        errors.append("Account ID required")
    elif not account.id.isdigit():
        errors.append("Account ID must be numeric")
    elif not MIN_ACCOUNT_ID <= int(account.id) <= MAX_ACCOUNT_ID:
        errors.append(f"Account ID must be between {MIN_ACCOUNT_ID}-{MAX_ACCOUNT_ID}")

    if not account.account_type:
        errors.append("Account type required")
    else:
        try:
            AccountType(account.account_type)
        except ValueError:
            valid_types = ", ".join(t.value for t in AccountType)
            errors.append(
                f"Invalid type: {account.account_type}. Must be one of: {valid_types}"
            )

    name_check = validate_account_name(account.name)
    if not name_check.is_valid:
        errors.append(name_check.error)

    return ValidationResult(not errors, tuple(errors))


def validate_account_balances(
    balances: Mapping[str, Decimal], accounts: Sequence[Account]
) -> tuple[str, ...]:
    """Report balances that usually indicate a posting mistake."""
    accounts_by_id = {a.id: a for a in accounts}
    issues = []
    for account_id, balance in balances.items():
        account = accounts_by_id.get(account_id)
        if account is None or balance >= 0:
            continue
        account_type = AccountType(account.account_type)
        if account_type in (AccountType.ASSET, AccountType.EXPENSE, AccountType.INCOME):
            issues.append(
                f'{account_type.value.capitalize()} account "{account.name}" '
                f"has negative balance: {balance}"
            )
    return tuple(issues)


# Legacy ledger


def validate_legacy_transaction(
    txn: Optional[LegacyTransaction], today: Optional[date] = None
) -> ValidationResult:
    """Validate a legacy single-entry transaction before migration."""
    if txn is None:
        return ValidationResult(False, ("Transaction is null",))

    errors = []

    if txn.txn_type not in LEGACY_TYPES:
        errors.append('Type must be "income" or "expense"')

    amount = _read_amount(txn.amount)
    if amount is None or amount <= 0:
        errors.append("Invalid amount")

    if not txn.date:
        errors.append("Date is required")
    else:
        date_check = validate_date(txn.date, today=today)
        if not date_check.is_valid:
            errors.append(date_check.error)

    if not txn.category:
        errors.append("Category is required")

    return ValidationResult(not errors, tuple(errors))


def validate_legacy_ledger(
    transactions: Sequence[LegacyTransaction], today: Optional[date] = None
) -> LedgerValidation:
    """Validate a list of legacy transactions; only the first issues are kept."""
    valid = 0
    issues = []
    for idx, txn in enumerate(transactions, start=1):
        result = validate_legacy_transaction(txn, today=today)
        if result.is_valid:
            valid += 1
        else:
            issues.append(f"Transaction {idx}: {', '.join(result.errors)}")

    invalid = len(transactions) - valid
    return LedgerValidation(
        is_valid=invalid == 0,
        total=len(transactions),
        valid=valid,
        invalid=invalid,
        issues=tuple(issues[:MAX_REPORTED_ISSUES]),
    )


# CSV import


def validate_csv_headers(headers: Sequence[str]) -> CSVHeaderValidation:
    """Check that an import header row has Date, Category and Amount columns."""
    normalized = [h.strip().lower() for h in headers]
    errors = []
    for column in ("date", "category"):
        if column not in normalized:
            errors.append(f"Missing required column: {column}")
    if not any(h.startswith("amount") for h in normalized):
        errors.append("Missing required column: amount")

    return CSVHeaderValidation(
        is_valid=not errors,
        errors=tuple(errors),
        has_type="type" in normalized,
        has_notes="notes" in normalized,
    )


def validate_csv_row(
    row: Mapping[str, Any], row_number: int, today: Optional[date] = None
) -> ValidationResult:
    """Validate one parsed CSV row keyed by lower-case column name."""
    errors = []

    date_check = validate_date(row.get("date"), today=today)
    if not date_check.is_valid:
        errors.append(f"Row {row_number}: {date_check.error}")

    amount_check = validate_amount(row.get("amount"))
    if not amount_check.is_valid:
        errors.append(f"Row {row_number}: {amount_check.error}")

    category = row.get("category")
    if not category or not str(category).strip():
        errors.append(f"Row {row_number}: Category required")

    row_type = row.get("type")
    if row_type and str(row_type).strip().lower() not in LEGACY_TYPES:
        errors.append(f"Row {row_number}: Type must be 'income' or 'expense'")

    return ValidationResult(not errors, tuple(errors))
