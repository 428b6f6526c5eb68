"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from finledger.domain.entities import (
    Account,
    AccountType,
    JournalEntry,
    LegacyTransaction,
    MigrationBackup,
)


class Database(ABC):
    """Abstract durable store for finledger.

    Holds the chart of accounts, journal entries, the read-only legacy
    transactions used as migration input, migration backups and settings.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def put_account(self, account: Account) -> Account:
        """Insert or fully replace an account. Returns the stored account."""
        pass

    @abstractmethod
    def add_accounts(self, accounts: Sequence[Account]) -> int:
        """Insert several accounts in one transaction. Returns count added."""
        pass

    @abstractmethod
    def list_accounts(
        self, account_type: Optional[AccountType] = None, active_only: bool = False
    ) -> list[Account]:
        """List accounts, optionally filtered by type and active flag.

        Results are sorted by numeric account ID.
        """
        pass

    # Journal entry operations
    @abstractmethod
    def get_journal_entry(self, entry_id: str) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def put_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        """Insert or fully replace a journal entry."""
        pass

    @abstractmethod
    def put_journal_entries(self, entries: Sequence[JournalEntry]) -> int:
        """Insert or replace several journal entries atomically.

        Either every entry is committed or none is.
        """
        pass

    @abstractmethod
    def delete_journal_entry(self, entry_id: str) -> bool:
        """Delete a journal entry. Returns False if it did not exist."""
        pass

    @abstractmethod
    def list_journal_entries(self, month_prefix: Optional[str] = None) -> list[JournalEntry]:
        """List journal entries, newest date first.

        Args:
            month_prefix: Optional prefix of the ISO date (e.g. '2025-03' or '2025')
        """
        pass

    # Legacy transaction operations
    @abstractmethod
    def list_legacy_transactions(self) -> list[LegacyTransaction]:
        """List legacy single-entry transactions, newest date first."""
        pass

    @abstractmethod
    def add_legacy_transactions(self, transactions: Sequence[LegacyTransaction]) -> int:
        """Add legacy transactions (import/restore only). Returns count added."""
        pass

    # Backup operations
    @abstractmethod
    def put_backup(self, backup: MigrationBackup) -> None:
        """Store an immutable migration backup."""
        pass

    @abstractmethod
    def get_backup(self, backup_id: str) -> Optional[MigrationBackup]:
        """Get backup with its data by ID."""
        pass

    @abstractmethod
    def list_backups(self) -> list[MigrationBackup]:
        """List backup metadata (without data), most recent first."""
        pass

    # Settings
    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]:
        """Get a setting value."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Optional[str]) -> None:
        """Set a setting value."""
        pass
