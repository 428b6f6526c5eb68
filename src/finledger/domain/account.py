"""Account domain service (chart of accounts registry)."""

import logging
from dataclasses import replace
from datetime import datetime, UTC
from typing import Any, Optional

from finledger.database.base import Database
from finledger.domain.chart import DEFAULT_ACCOUNTS, SEED_SENTINEL_ACCOUNT, expected_type_for_id
from finledger.domain.entities import Account as AccountEntity, AccountType
from finledger.domain.errors import (
    ConflictError,
    InvalidUpdateError,
    NotFoundError,
    ValidationError,
    account_field_immutable,
    account_not_found,
    duplicate_account_id,
)
from finledger.domain.validation import validate_account, validate_account_name

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "subtype", "is_active"})
IMMUTABLE_FIELDS = frozenset({"id", "account_type", "is_system"})


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_account(self, account_id: str) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_by_type(
        self, account_type: Optional[AccountType] = None, active_only: bool = True
    ) -> list[AccountEntity]:
        """List accounts of one type, sorted by numeric ID.

        Args:
            account_type: Type filter, or None for all types
            active_only: Skip deactivated accounts

        Returns:
            List of account entities
        """
        return self.db.list_accounts(account_type=account_type, active_only=active_only)

    def list_accounts(self, active_only: bool = False) -> list[AccountEntity]:
        """List all accounts, including inactive ones unless asked otherwise."""
        return self.db.list_accounts(active_only=active_only)

    def create_account(
        self,
        account_id: str,
        name: str,
        account_type: AccountType,
        subtype: str = "",
    ) -> AccountEntity:
        """Create a user-defined account.

        Args:
            account_id: Numeric account ID between 1000 and 5999
            name: Account name
            account_type: Account type
            subtype: Free-form subtype label

        Returns:
            Created account

        Raises:
            ValidationError: If id, name or type are invalid
            ConflictError: If an account with the same ID exists
        """
        account = AccountEntity(
            id=str(account_id).strip(),
            name=name.strip() if isinstance(name, str) else name,
            account_type=account_type,
            subtype=subtype or "",
            created_at=datetime.now(UTC),
        )
        result = validate_account(account)
        if not result.is_valid:
            raise ValidationError("; ".join(result.errors))

        account = replace(account, account_type=AccountType(account_type))
        if self.db.get_account(account.id) is not None:
            raise ConflictError(duplicate_account_id(account.id))

        expected = expected_type_for_id(account.id)
        if expected is not None and expected != account.account_type:
            logger.warning(
                f"Account {account.id} is {account.account_type.value} "
                f"but its id is in the {expected.value} range"
            )

        logger.info(f"Creating account {account.id} ({account.name})")
        return self.db.put_account(account)

    def update_account(self, account_id: str, **fields: Any) -> AccountEntity:
        """Update mutable fields of an account.

        Only name, subtype and is_active can change. Passing the current value
        of an immutable field is accepted as a no-op.

        Args:
            account_id: Account ID
            **fields: Field values to change

        Returns:
            Updated account

        Raises:
            NotFoundError: If account does not exist
            InvalidUpdateError: If an immutable field would change
            ValidationError: If a field is unknown or the new name is invalid
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        changes = {}
        for field, value in fields.items():
            if field in IMMUTABLE_FIELDS:
                current = getattr(account, field)
                if field == "account_type":
                    try:
                        value = AccountType(value)
                    except ValueError:
                        raise InvalidUpdateError(account_field_immutable(account_id, field))
                if value != current:
                    raise InvalidUpdateError(account_field_immutable(account_id, field))
            elif field in UPDATABLE_FIELDS:
                changes[field] = value
            else:
                raise ValidationError(f"Unknown account field '{field}'")

        if "name" in changes:
            name_check = validate_account_name(changes["name"])
            if not name_check.is_valid:
                raise ValidationError(name_check.error)
            changes["name"] = name_check.value
        if "is_active" in changes:
            changes["is_active"] = bool(changes["is_active"])
        if "subtype" in changes:
            changes["subtype"] = changes["subtype"] or ""

        if not changes:
            return account

        updated = replace(account, modified_at=datetime.now(UTC), **changes)
        return self.db.put_account(updated)

    def rename_account(self, account_id: str, new_name: str) -> AccountEntity:
        """Rename an account (2 to 50 characters after trimming)."""
        return self.update_account(account_id, name=new_name)

    def set_active(self, account_id: str, is_active: bool) -> AccountEntity:
        """Activate or deactivate an account. Its history is kept either way."""
        return self.update_account(account_id, is_active=is_active)

    def seed_default_accounts(self) -> int:
        """Create the default chart of accounts.

        Does nothing when the chart is already present (detected through the
        Salary account).

        Returns:
            Number of accounts created
        """
        if self.db.get_account(SEED_SENTINEL_ACCOUNT) is not None:
            logger.debug("Default accounts already seeded")
            return 0

        now = datetime.now(UTC)
        missing = [
            replace(account, created_at=now)
            for account in DEFAULT_ACCOUNTS
            if self.db.get_account(account.id) is None
        ]
        count = self.db.add_accounts(missing)
        logger.info(f"Seeded {count} default accounts")
        return count

    def chart_after_seeding(self) -> list[AccountEntity]:
        """Return the accounts that will exist once the default chart is seeded."""
        accounts = self.db.list_accounts()
        if self.db.get_account(SEED_SENTINEL_ACCOUNT) is not None:
            return accounts
        known = {account.id for account in accounts}
        return accounts + [account for account in DEFAULT_ACCOUNTS if account.id not in known]
