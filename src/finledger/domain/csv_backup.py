"""Legacy transaction CSV backup, restore and plain CSV import.

Backup files start with '# Key: Value' metadata lines, followed by a header
row and one row per legacy transaction:

    # FinLedger Backup
    # Version: 1.0
    # Backup Date: 2025-03-01T10:00:00+00:00
    # Transaction Count: 2
    # Date Range: 2025-01-10 to 2025-02-03
    # Currency: USD
    "Date","Type","Category","Amount (USD)","Notes","ID","CreatedAt"
    ...
"""

import csv
import io
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

from finledger.database.base import Database
from finledger.domain.entities import LegacyTransaction
from finledger.domain.errors import ValidationError
from finledger.domain.validation import (
    validate_amount,
    validate_csv_headers,
    validate_csv_row,
    validate_date,
)
from finledger.utils.amount_parser import to_decimal
from finledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

BACKUP_TITLE = "FinLedger Backup"
BACKUP_FORMAT_VERSION = "1.0"
DEFAULT_CURRENCY = "USD"

METADATA_PATTERN = re.compile(r"^#\s*([^:]+):\s*(.+)$")
REQUIRED_COLUMNS = ("date", "type", "category", "amount")


@dataclass(frozen=True)
class BackupData:
    """Parsed content of a backup file."""

    metadata: dict = field(default_factory=dict)
    transactions: tuple[LegacyTransaction, ...] = ()
    skipped: int = 0


@dataclass(frozen=True)
class RestoreReport:
    """Counts reported after merging a backup into the legacy ledger."""

    backup_total: int
    added: int
    duplicates: int
    current_total: int
    skipped: int = 0


@dataclass(frozen=True)
class ImportData:
    """Rows of a plain CSV export read as legacy transactions."""

    transactions: tuple[LegacyTransaction, ...] = ()
    skipped: int = 0
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportReport:
    """Counts reported after importing a plain CSV file."""

    added: int
    skipped: int
    errors: tuple[str, ...] = ()


def _column(headers: list[str], name: str) -> int:
    if name == "amount":
        return next((i for i, h in enumerate(headers) if "amount" in h), -1)
    return headers.index(name) if name in headers else -1


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return (row[index] or "").strip()


def parse_backup_rows(
    rows: Sequence[Sequence[str]], metadata: Optional[dict] = None
) -> BackupData:
    """Build legacy transactions from tokenized backup rows.

    The first non-empty row is the header. Rows without a date or with a
    non-numeric amount are skipped. Amounts are stored as absolute values and
    unknown types become expenses.

    Raises:
        ValidationError: If the header is incomplete or no row is usable
    """
    rows = [row for row in rows if any((cell or "").strip() for cell in row)]
    if len(rows) < 2:
        raise ValidationError("No transaction data found")

    headers = [h.strip().lower() for h in rows[0]]
    indices = {name: _column(headers, name) for name in REQUIRED_COLUMNS}
    missing = [name for name, index in indices.items() if index < 0]
    if missing:
        raise ValidationError("Missing required columns (Date, Type, Category, Amount)")
    notes_index = _column(headers, "notes")
    id_index = _column(headers, "id")
    created_at_index = _column(headers, "createdat")

    transactions = []
    skipped = 0
    for row_number, row in enumerate(rows[1:], start=2):
        raw_date = _cell(row, indices["date"])
        raw_amount = _cell(row, indices["amount"]).replace(",", "")
        try:
            amount = to_decimal(raw_amount) if raw_amount else None
        except ValueError:
            amount = None
        if not raw_date or amount is None:
            logger.debug(f"Skipping backup row {row_number}: missing date or amount")
            skipped += 1
            continue

        txn_type = _cell(row, indices["type"]).lower()
        if txn_type not in ("income", "expense"):
            txn_type = "expense"

        transactions.append(
            LegacyTransaction(
                id=_cell(row, id_index) or f"restored_{uuid.uuid4().hex[:12]}",
                txn_type=txn_type,
                amount=str(abs(amount)),
                category=_cell(row, indices["category"]) or "Other Expense",
                date=raw_date,
                notes=_cell(row, notes_index),
                created_at=_cell(row, created_at_index) or datetime.now(UTC).isoformat(),
            )
        )

    if not transactions:
        raise ValidationError("No valid transactions found in backup")
    if skipped:
        logger.warning(f"Skipped {skipped} backup rows without a usable date or amount")

    return BackupData(metadata=dict(metadata or {}), transactions=tuple(transactions), skipped=skipped)


def parse_backup_text(text: str) -> BackupData:
    """Parse the full text of a backup file, metadata lines included."""
    lines = text.splitlines()
    metadata = {}
    data_start = len(lines)
    for idx, line in enumerate(lines):
        stripped = line.strip()
        if not stripped.startswith("#"):
            data_start = idx
            break
        match = METADATA_PATTERN.match(stripped)
        if match:
            metadata[match.group(1).strip()] = match.group(2).strip()

    reader = csv.reader(io.StringIO("\n".join(lines[data_start:])))
    return parse_backup_rows(list(reader), metadata)


def parse_import_rows(rows: Sequence[Sequence[str]], today: Optional[date] = None) -> ImportData:
    """Read a plain CSV export (Date, Category, Amount, optional Type and Notes).

    Each row is validated on its own; rows that fail are counted as skipped
    with their errors. Dates are normalized to YYYY-MM-DD, negative amounts
    are taken as absolute values and a missing type means expense.

    Raises:
        ValidationError: If a required column is missing
    """
    rows = [row for row in rows if any((cell or "").strip() for cell in row)]
    if len(rows) < 2:
        return ImportData()

    headers = [h.strip().lower() for h in rows[0]]
    header_check = validate_csv_headers(headers)
    if not header_check.is_valid:
        raise ValidationError("; ".join(header_check.errors))

    date_index = headers.index("date")
    category_index = headers.index("category")
    amount_index = next(i for i, h in enumerate(headers) if h.startswith("amount"))
    type_index = headers.index("type") if header_check.has_type else -1
    notes_index = _column(headers, "notes")
    if notes_index < 0:
        notes_index = _column(headers, "description")

    transactions = []
    errors: list[str] = []
    skipped = 0
    now = datetime.now(UTC).isoformat()
    for row_number, row in enumerate(rows[1:], start=2):
        record = {
            "date": _cell(row, date_index),
            "category": _cell(row, category_index),
            "amount": _cell(row, amount_index).replace(",", "").lstrip("-"),
            "type": _cell(row, type_index).lower() or "expense",
        }
        result = validate_csv_row(record, row_number, today=today)
        if not result.is_valid:
            skipped += 1
            errors.extend(result.errors)
            continue

        transactions.append(
            LegacyTransaction(
                id=f"imported_{uuid.uuid4().hex[:12]}",
                txn_type=record["type"],
                amount=str(validate_amount(record["amount"]).value),
                category=record["category"],
                date=validate_date(record["date"], today=today).value.isoformat(),
                notes=_cell(row, notes_index),
                created_at=now,
            )
        )

    return ImportData(transactions=tuple(transactions), skipped=skipped, errors=tuple(errors))


def _same_amount(a, b) -> bool:
    try:
        return to_decimal(a) == to_decimal(b)
    except ValueError:
        return str(a) == str(b)


def is_duplicate(txn: LegacyTransaction, existing: Sequence[LegacyTransaction]) -> bool:
    """Return True if a transaction with the same date, type, category, amount and notes exists."""
    return any(
        other.date == txn.date
        and other.txn_type == txn.txn_type
        and other.category == txn.category
        and _same_amount(other.amount, txn.amount)
        and (other.notes or "") == (txn.notes or "")
        for other in existing
    )


def _date_range(transactions: Sequence[LegacyTransaction]) -> str:
    dates = []
    for txn in transactions:
        try:
            dates.append(parse_date(str(txn.date)))
        except ValueError:
            continue
    if not dates:
        return "No transactions"
    return f"{min(dates).isoformat()} to {max(dates).isoformat()}"


class LegacyBackupService:
    """Service for importing, exporting and restoring legacy transactions as CSV."""

    def __init__(self, db: Database):
        """Initialize backup service.

        Args:
            db: Database instance
        """
        self.db = db

    def restore_file(self, file_path: str) -> RestoreReport:
        """Merge a backup file into the legacy ledger.

        Transactions that already exist (same date, type, category, amount
        and notes) are skipped.

        Args:
            file_path: Path to backup CSV file

        Returns:
            RestoreReport with counts

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the file is not a valid backup
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Backup file not found: {file_path}")

        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            backup = parse_backup_text(f.read())
        return self.restore(backup)

    def restore(self, backup: BackupData) -> RestoreReport:
        """Merge parsed backup data into the legacy ledger."""
        existing = self.db.list_legacy_transactions()
        taken_ids = {str(txn.id) for txn in existing}

        new_transactions = []
        duplicates = 0
        for txn in backup.transactions:
            if is_duplicate(txn, existing):
                duplicates += 1
                continue
            if str(txn.id) in taken_ids:
                txn = LegacyTransaction(
                    id=f"restored_{uuid.uuid4().hex[:12]}",
                    txn_type=txn.txn_type,
                    amount=txn.amount,
                    category=txn.category,
                    date=txn.date,
                    notes=txn.notes,
                    created_at=txn.created_at,
                )
            taken_ids.add(str(txn.id))
            new_transactions.append(txn)

        added = self.db.add_legacy_transactions(new_transactions) if new_transactions else 0
        report = RestoreReport(
            backup_total=len(backup.transactions),
            added=added,
            duplicates=duplicates,
            current_total=len(existing) + added,
            skipped=backup.skipped,
        )
        logger.info(
            f"Restored backup: {report.added} added, {report.duplicates} duplicates, "
            f"{report.skipped} unusable rows skipped"
        )
        return report

    def import_file(self, file_path: str, today: Optional[date] = None) -> ImportReport:
        """Add the rows of a plain CSV export to the legacy ledger.

        Args:
            file_path: Path to CSV file with Date, Category and Amount columns
            today: Reference date for relative dates

        Returns:
            ImportReport with added and skipped counts

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If a required column is missing
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"CSV file not found: {file_path}")

        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            data = parse_import_rows(list(csv.reader(f)), today=today)

        added = self.db.add_legacy_transactions(data.transactions) if data.transactions else 0
        logger.info(f"Imported {file_path}: {added} added, {data.skipped} skipped")
        return ImportReport(added=added, skipped=data.skipped, errors=data.errors)

    def export_text(
        self,
        transactions: Optional[Sequence[LegacyTransaction]] = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> str:
        """Render legacy transactions in the backup format.

        Raises:
            ValidationError: If there is nothing to back up
        """
        if transactions is None:
            transactions = self.db.list_legacy_transactions()
        if not transactions:
            raise ValidationError("No transactions to back up")

        out = io.StringIO()
        for line in (
            f"# {BACKUP_TITLE}",
            f"# Version: {BACKUP_FORMAT_VERSION}",
            f"# Backup Date: {datetime.now(UTC).isoformat()}",
            f"# Transaction Count: {len(transactions)}",
            f"# Date Range: {_date_range(transactions)}",
            f"# Currency: {currency}",
        ):
            out.write(line + "\n")

        writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(["Date", "Type", "Category", f"Amount ({currency})", "Notes", "ID", "CreatedAt"])
        for txn in transactions:
            amount = txn.amount if not isinstance(txn.amount, Decimal) else str(txn.amount)
            writer.writerow(
                [
                    txn.date or "",
                    txn.txn_type or "",
                    txn.category or "",
                    "" if amount is None else amount,
                    txn.notes or "",
                    txn.id,
                    txn.created_at or "",
                ]
            )
        return out.getvalue()

    def export_file(
        self,
        file_path: str,
        transactions: Optional[Sequence[LegacyTransaction]] = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> int:
        """Write a backup file. Returns the number of transactions written."""
        if transactions is None:
            transactions = self.db.list_legacy_transactions()
        text = self.export_text(transactions, currency)
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        logger.info(f"Exported {len(transactions)} legacy transactions to {file_path}")
        return len(transactions)
