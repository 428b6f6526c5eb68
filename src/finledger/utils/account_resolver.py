"""Utility for resolving account names to IDs."""

from finledger.domain.account import AccountService


def resolve_account(account_service: AccountService, account: str) -> str:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account ID (e.g. "1100") or account name (case-insensitive)

    Returns:
        Account ID

    Raises:
        ValueError: If account is not found
    """
    account = account.strip()

    if account.isdigit():
        if account_service.get_account(account) is None:
            raise ValueError(f"Account ID {account} not found")
        return account

    for acc in account_service.list_accounts():
        if acc.name.lower() == account.lower():
            return acc.id

    raise ValueError(f"Account '{account}' not found")
