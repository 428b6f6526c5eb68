"""Default chart of accounts and the legacy category mapping."""

from typing import Optional

from finledger.domain.entities import Account, AccountType

# Presence of this account means the default chart has been seeded
SEED_SENTINEL_ACCOUNT = "4000"

DEFAULT_BANK_ACCOUNT = "1100"

# Advisory id ranges per account type
ACCOUNT_ID_RANGES = {
    AccountType.ASSET: (1000, 1999),
    AccountType.LIABILITY: (2000, 2999),
    AccountType.EQUITY: (3000, 3999),
    AccountType.INCOME: (4000, 4999),
    AccountType.EXPENSE: (5000, 5999),
}


def _system(account_id: str, name: str, account_type: AccountType, subtype: str, is_active: bool = True) -> Account:
    return Account(
        id=account_id,
        name=name,
        account_type=account_type,
        subtype=subtype,
        is_active=is_active,
        is_system=True,
    )


DEFAULT_ACCOUNTS: tuple[Account, ...] = (
    # Assets
    _system("1000", "Cash", AccountType.ASSET, "cash"),
    _system("1100", "Checking Account", AccountType.ASSET, "bank"),
    _system("1200", "Savings Account", AccountType.ASSET, "bank"),
    # Liabilities
    _system("2000", "Credit Card Debt", AccountType.LIABILITY, "credit_card"),
    _system("2100", "Loans", AccountType.LIABILITY, "loan"),
    # Equity
    _system("3000", "Opening Balance", AccountType.EQUITY, "opening"),
    # Income
    _system("4000", "Salary", AccountType.INCOME, "salary"),
    _system("4100", "Freelance Income", AccountType.INCOME, "business"),
    _system("4200", "Investment Returns", AccountType.INCOME, "investment", is_active=False),
    _system("4300", "Bonus", AccountType.INCOME, "bonus", is_active=False),
    _system("4900", "Other Income", AccountType.INCOME, "other"),
    # Expenses
    _system("5000", "Groceries", AccountType.EXPENSE, "food"),
    _system("5100", "Dining Out", AccountType.EXPENSE, "food"),
    _system("5200", "Transportation", AccountType.EXPENSE, "transport"),
    _system("5300", "Utilities/Internet", AccountType.EXPENSE, "bills"),
    _system("5400", "Rent", AccountType.EXPENSE, "housing"),
    _system("5500", "Entertainment", AccountType.EXPENSE, "entertainment"),
    _system("5600", "Healthcare", AccountType.EXPENSE, "health"),
    _system("5700", "Shopping", AccountType.EXPENSE, "personal"),
    _system("5800", "Subscriptions", AccountType.EXPENSE, "subscriptions"),
    _system("5900", "Other Expenses", AccountType.EXPENSE, "other"),
)

# Legacy category name (lower-case, underscores) -> account id
DEFAULT_CATEGORY_TO_ACCOUNT: dict[str, str] = {
    # Income
    "salary": "4000",
    "freelance": "4100",
    "bonus": "4300",
    "investment": "4200",
    "other_income": "4900",
    # Expenses
    "groceries": "5000",
    "food": "5000",
    "dining": "5100",
    "transport": "5200",
    "utilities": "5300",
    "rent": "5400",
    "entertainment": "5500",
    "health": "5600",
    "shopping": "5700",
    "subscriptions": "5800",
    "other_expense": "5900",
}

FALLBACK_CATEGORY = "other_expense"


def expected_type_for_id(account_id: str) -> Optional[AccountType]:
    """Return the account type whose advisory range contains the id."""
    if not account_id.isdigit():
        return None
    number = int(account_id)
    for account_type, (low, high) in ACCOUNT_ID_RANGES.items():
        if low <= number <= high:
            return account_type
    return None
