"""Domain model entities for finledger.

These are pure data classes representing business concepts, independent of
database schema. Amounts are always Decimal; dates of journal entries are
datetime.date objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class AccountType(str, Enum):
    """Account classification in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class EntryType(str, Enum):
    """Kind of journal entry."""

    TRANSACTION = "transaction"
    OPENING_BALANCE = "opening-balance"
    MIGRATION = "migration"


class FlowType(str, Enum):
    """Direction of money for income/expense style entries."""

    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Account:
    """Chart of accounts entry."""

    id: str
    name: str
    account_type: AccountType
    subtype: str = ""
    is_active: bool = True
    is_system: bool = False
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class LineItem:
    """One debit-or-credit amount posted to a single account."""

    account_id: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")


@dataclass(frozen=True)
class JournalEntry:
    """Balanced double-entry record made of two or more line items."""

    id: Optional[str]
    date: Optional[date]
    lines: tuple[LineItem, ...]
    notes: str = ""
    tags: frozenset[str] = frozenset()
    entry_type: EntryType = EntryType.TRANSACTION
    flow_type: Optional[FlowType] = None
    balance_check: bool = True
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    modified_reason: Optional[str] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class LegacyTransaction:
    """Flat single-entry record from the legacy (v3) ledger.

    Fields hold raw values as they were stored; nothing is validated here.
    """

    id: str
    txn_type: Optional[str]
    amount: Any
    category: Optional[str]
    date: Optional[str]
    notes: str = ""
    created_at: Optional[str] = None


@dataclass(frozen=True)
class MigrationBackup:
    """Immutable snapshot of legacy transactions taken before a migration."""

    id: str
    label: str
    created_at: datetime
    count: int
    transactions: tuple[LegacyTransaction, ...] = ()


@dataclass(frozen=True)
class MigrationStatus:
    """Completion marker of the legacy migration."""

    is_migrated: bool
    completed_at: Optional[str] = None
    backup_id: Optional[str] = None


@dataclass(frozen=True)
class BalanceLine:
    """Named account balance used in net worth breakdowns."""

    account_id: str
    name: str
    balance: Decimal


@dataclass(frozen=True)
class NetWorthBreakdown:
    """Itemized assets and liabilities (liabilities as positive magnitudes)."""

    assets: tuple[BalanceLine, ...]
    total_assets: Decimal
    liabilities: tuple[BalanceLine, ...]
    total_liabilities: Decimal
    net_worth: Decimal


@dataclass(frozen=True)
class MonthlySummary:
    """Income and expense totals for one month."""

    month: str
    income: Decimal
    expenses: Decimal
    net: Decimal
    count: int


@dataclass(frozen=True)
class MonthOverMonthChange:
    """Expense change between a month and the previous calendar month."""

    current_month: str
    previous_month: str
    current_expenses: Decimal
    previous_expenses: Decimal
    change: Decimal
    percent_change: Decimal
    direction: str


@dataclass(frozen=True)
class SpendingAnalysis:
    """Expense statistics over the most recent months."""

    average: Decimal
    highest: Decimal
    lowest: Decimal
    range: Decimal
    months_analyzed: int


@dataclass(frozen=True)
class CategorySpending:
    """Spending of one expense account with its share of the total."""

    category: str
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class SavingsRate:
    """Savings for a month as an amount and as a share of income."""

    month: str
    income: Decimal
    expenses: Decimal
    savings: Decimal
    savings_rate: Decimal


@dataclass(frozen=True)
class FinancialSummary:
    """Dashboard snapshot combining month and all-time figures."""

    period: str
    month: MonthlySummary
    net_worth: Decimal
    total_income: Decimal
    total_expenses: Decimal
    transaction_count: int
    top_expenses: tuple[CategorySpending, ...]
    trial_balance_ok: bool
    warnings: tuple[str, ...] = field(default_factory=tuple)
