"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the domain entities stay plain
frozen dataclasses while the ORM rows stay mutable.
"""

from decimal import Decimal

from finledger.domain import entities as domain
from finledger.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    LegacyTransaction as ORMLegacyTransaction,
    MigrationBackup as ORMMigrationBackup,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        subtype=orm_account.subtype or "",
        is_active=orm_account.is_active,
        is_system=orm_account.is_system,
        created_at=orm_account.created_at,
        modified_at=orm_account.modified_at,
    )


def apply_account(orm_account: ORMAccount, account: domain.Account) -> ORMAccount:
    """Copy domain Account fields onto a SQLAlchemy Account row."""
    orm_account.id = account.id
    orm_account.name = account.name
    orm_account.account_type = domain.AccountType(account.account_type).value
    orm_account.subtype = account.subtype or ""
    orm_account.is_active = account.is_active
    orm_account.is_system = account.is_system
    if account.created_at is not None:
        orm_account.created_at = account.created_at
    orm_account.modified_at = account.modified_at
    return orm_account


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with lines) to domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        lines=tuple(
            domain.LineItem(
                account_id=line.account_id,
                debit=Decimal(line.debit),
                credit=Decimal(line.credit),
            )
            for line in orm_entry.lines
        ),
        notes=orm_entry.notes or "",
        tags=frozenset(orm_entry.tags or ()),
        entry_type=domain.EntryType(orm_entry.entry_type),
        flow_type=domain.FlowType(orm_entry.flow_type) if orm_entry.flow_type else None,
        balance_check=orm_entry.balance_check,
        created_at=orm_entry.created_at,
        modified_at=orm_entry.modified_at,
        modified_reason=orm_entry.modified_reason,
        source_id=orm_entry.source_id,
    )


def apply_journal_entry(
    orm_entry: ORMJournalEntry, entry: domain.JournalEntry
) -> ORMJournalEntry:
    """Copy a domain JournalEntry onto a SQLAlchemy row, replacing all lines."""
    orm_entry.id = entry.id
    orm_entry.date = entry.date
    orm_entry.notes = entry.notes or ""
    orm_entry.tags = sorted(entry.tags)
    orm_entry.entry_type = domain.EntryType(entry.entry_type).value
    orm_entry.flow_type = domain.FlowType(entry.flow_type).value if entry.flow_type else None
    orm_entry.balance_check = entry.balance_check
    if entry.created_at is not None:
        orm_entry.created_at = entry.created_at
    orm_entry.modified_at = entry.modified_at
    orm_entry.modified_reason = entry.modified_reason
    orm_entry.source_id = entry.source_id
    orm_entry.lines = [
        ORMJournalLine(
            position=position,
            account_id=line.account_id,
            debit=line.debit,
            credit=line.credit,
        )
        for position, line in enumerate(entry.lines)
    ]
    return orm_entry


def legacy_transaction_to_domain(
    orm_txn: ORMLegacyTransaction,
) -> domain.LegacyTransaction:
    """Convert SQLAlchemy LegacyTransaction model to domain entity."""
    return domain.LegacyTransaction(
        id=orm_txn.id,
        txn_type=orm_txn.txn_type,
        amount=orm_txn.amount,
        category=orm_txn.category,
        date=orm_txn.date,
        notes=orm_txn.notes or "",
        created_at=orm_txn.created_at,
    )


def legacy_transaction_to_orm(txn: domain.LegacyTransaction) -> ORMLegacyTransaction:
    """Convert domain LegacyTransaction to a new SQLAlchemy row."""
    return ORMLegacyTransaction(
        id=str(txn.id),
        txn_type=txn.txn_type,
        amount=None if txn.amount is None else str(txn.amount),
        category=txn.category,
        date=txn.date,
        notes=txn.notes or "",
        created_at=txn.created_at,
    )


def legacy_transaction_to_dict(txn: domain.LegacyTransaction) -> dict:
    """Serialize a legacy transaction for JSON backup storage."""
    return {
        "id": str(txn.id),
        "type": txn.txn_type,
        "amount": None if txn.amount is None else str(txn.amount),
        "category": txn.category,
        "date": txn.date,
        "notes": txn.notes or "",
        "createdAt": txn.created_at,
    }


def legacy_transaction_from_dict(data: dict) -> domain.LegacyTransaction:
    """Deserialize a legacy transaction from JSON backup storage."""
    return domain.LegacyTransaction(
        id=str(data.get("id")),
        txn_type=data.get("type"),
        amount=data.get("amount"),
        category=data.get("category"),
        date=data.get("date"),
        notes=data.get("notes") or "",
        created_at=data.get("createdAt"),
    )


def migration_backup_to_domain(
    orm_backup: ORMMigrationBackup, include_data: bool = True
) -> domain.MigrationBackup:
    """Convert SQLAlchemy MigrationBackup model to domain entity."""
    transactions: tuple[domain.LegacyTransaction, ...] = ()
    if include_data:
        transactions = tuple(
            legacy_transaction_from_dict(item) for item in orm_backup.data or ()
        )
    return domain.MigrationBackup(
        id=orm_backup.id,
        label=orm_backup.label,
        created_at=orm_backup.created_at,
        count=orm_backup.count,
        transactions=transactions,
    )
