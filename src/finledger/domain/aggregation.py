"""Derived figures computed from journal entries.

All functions are pure reads over a list of entries and the chart of
accounts. Nothing is cached: every call replays the entries it is given,
which is fine for a personal ledger of a few thousand entries.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from finledger.database.base import Database
from finledger.domain.balance_rules import line_balance
from finledger.domain.entities import (
    Account,
    AccountType,
    BalanceLine,
    CategorySpending,
    FinancialSummary,
    JournalEntry,
    MonthlySummary,
    MonthOverMonthChange,
    NetWorthBreakdown,
    SavingsRate,
    SpendingAnalysis,
)
from finledger.domain.errors import ValidationError
from finledger.domain.validation import validate_trial_balance
from finledger.utils.amount_parser import ZERO, round_cents, to_decimal
from finledger.utils.date_parser import previous_month

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _in_month(entry: JournalEntry, month: Optional[str]) -> bool:
    if not month:
        return True
    return entry.date.isoformat().startswith(month)


def _filter(entries: Iterable[JournalEntry], month: Optional[str]) -> list[JournalEntry]:
    return [entry for entry in entries if _in_month(entry, month)]


def _active_of_type(accounts: Sequence[Account], account_type: AccountType) -> dict[str, Account]:
    return {
        a.id: a
        for a in accounts
        if a.is_active and AccountType(a.account_type) == account_type
    }


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return round_cents(part / whole * HUNDRED)


# Balances


def account_balance(
    account_id: str, entries: Iterable[JournalEntry], accounts: Sequence[Account]
) -> Decimal:
    """Balance of one account across every line that references it."""
    account = next((a for a in accounts if a.id == account_id), None)
    if account is None:
        logger.warning(f"Account {account_id} not found, balance is 0")
        return ZERO

    balance = ZERO
    for entry in entries:
        for line in entry.lines:
            if line.account_id == account_id:
                balance += line_balance(line, account)
    return balance


def all_account_balances(
    entries: Iterable[JournalEntry], accounts: Sequence[Account]
) -> dict[str, Decimal]:
    """Balance of every account in the chart, zero for unused accounts."""
    accounts_by_id = {a.id: a for a in accounts}
    balances = {a.id: ZERO for a in accounts}
    for entry in entries:
        for line in entry.lines:
            account = accounts_by_id.get(line.account_id)
            amount = line_balance(line, account)
            if account is not None:
                balances[account.id] += amount
    return balances


# Income & expenses


def _side_total(
    entries: Iterable[JournalEntry],
    accounts: dict[str, Account],
    side: str,
    month: Optional[str],
) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in _filter(entries, month):
        for line in entry.lines:
            if line.account_id in accounts:
                try:
                    totals[line.account_id] += to_decimal(getattr(line, side))
                except ValueError as e:
                    logger.warning(f"Unreadable {side} on account {line.account_id}: {e}")
    return totals


def income_total(
    entries: Iterable[JournalEntry], accounts: Sequence[Account], month: Optional[str] = None
) -> Decimal:
    """Sum of credits to active income accounts."""
    income_accounts = _active_of_type(accounts, AccountType.INCOME)
    return sum(_side_total(entries, income_accounts, "credit", month).values(), ZERO)


def expense_total(
    entries: Iterable[JournalEntry], accounts: Sequence[Account], month: Optional[str] = None
) -> Decimal:
    """Sum of debits to active expense accounts."""
    expense_accounts = _active_of_type(accounts, AccountType.EXPENSE)
    return sum(_side_total(entries, expense_accounts, "debit", month).values(), ZERO)


def _by_name(totals: dict[str, Decimal], accounts: dict[str, Account]) -> dict[str, Decimal]:
    breakdown: dict[str, Decimal] = {}
    for account_id, total in totals.items():
        if total != 0:
            name = accounts[account_id].name
            breakdown[name] = breakdown.get(name, ZERO) + total
    return breakdown


def income_by_category(
    entries: Iterable[JournalEntry], accounts: Sequence[Account], month: Optional[str] = None
) -> dict[str, Decimal]:
    """Income credits bucketed by account name; empty buckets are left out."""
    income_accounts = _active_of_type(accounts, AccountType.INCOME)
    return _by_name(_side_total(entries, income_accounts, "credit", month), income_accounts)


def expense_by_category(
    entries: Iterable[JournalEntry], accounts: Sequence[Account], month: Optional[str] = None
) -> dict[str, Decimal]:
    """Expense debits bucketed by account name; empty buckets are left out."""
    expense_accounts = _active_of_type(accounts, AccountType.EXPENSE)
    return _by_name(_side_total(entries, expense_accounts, "debit", month), expense_accounts)


# Net worth


def net_worth_breakdown(
    entries: Iterable[JournalEntry], accounts: Sequence[Account]
) -> NetWorthBreakdown:
    """Itemized active assets and liabilities.

    Liabilities are listed as positive magnitudes.
    """
    balances = all_account_balances(entries, accounts)
    assets = []
    liabilities = []
    for account in accounts:
        if not account.is_active:
            continue
        balance = balances.get(account.id, ZERO)
        account_type = AccountType(account.account_type)
        if account_type == AccountType.ASSET:
            assets.append(BalanceLine(account.id, account.name, balance))
        elif account_type == AccountType.LIABILITY:
            liabilities.append(BalanceLine(account.id, account.name, abs(balance)))

    total_assets = sum((a.balance for a in assets), ZERO)
    total_liabilities = sum((l.balance for l in liabilities), ZERO)
    return NetWorthBreakdown(
        assets=tuple(assets),
        total_assets=total_assets,
        liabilities=tuple(liabilities),
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
    )


def net_worth(entries: Iterable[JournalEntry], accounts: Sequence[Account]) -> Decimal:
    """Active asset balances minus active liability balances."""
    balances = all_account_balances(entries, accounts)
    total = ZERO
    for account in accounts:
        if not account.is_active:
            continue
        account_type = AccountType(account.account_type)
        if account_type == AccountType.ASSET:
            total += balances[account.id]
        elif account_type == AccountType.LIABILITY:
            total -= balances[account.id]
    return total


# Monthly figures


def monthly_summary(
    entries: Sequence[JournalEntry], accounts: Sequence[Account], month: str
) -> MonthlySummary:
    """Income, expenses, net and entry count for a 'YYYY-MM' month."""
    income = income_total(entries, accounts, month)
    expenses = expense_total(entries, accounts, month)
    return MonthlySummary(
        month=month,
        income=income,
        expenses=expenses,
        net=income - expenses,
        count=len(_filter(entries, month)),
    )


def all_monthly_summaries(
    entries: Sequence[JournalEntry], accounts: Sequence[Account]
) -> list[MonthlySummary]:
    """One summary per month that has entries, most recent month first."""
    months = sorted({entry.date.strftime("%Y-%m") for entry in entries}, reverse=True)
    return [monthly_summary(entries, accounts, month) for month in months]


def month_over_month_change(
    entries: Sequence[JournalEntry], accounts: Sequence[Account], current_month: str
) -> MonthOverMonthChange:
    """Expense change of a month against the previous calendar month.

    When the previous month has no expenses the percent change is 100 if
    there is spending this month, and 0 otherwise.
    """
    prior_month = previous_month(current_month)
    current = expense_total(entries, accounts, current_month)
    previous = expense_total(entries, accounts, prior_month)
    change = current - previous

    if previous == 0:
        percent_change = HUNDRED if current > 0 else ZERO
    else:
        percent_change = _percent(change, previous)

    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "flat"

    return MonthOverMonthChange(
        current_month=current_month,
        previous_month=prior_month,
        current_expenses=current,
        previous_expenses=previous,
        change=change,
        percent_change=percent_change,
        direction=direction,
    )


def monthly_savings_rate(
    entries: Sequence[JournalEntry], accounts: Sequence[Account], month: str
) -> SavingsRate:
    """Savings of a month and their share of income in percent."""
    income = income_total(entries, accounts, month)
    expenses = expense_total(entries, accounts, month)
    savings = income - expenses
    rate = _percent(savings, income) if income > 0 else ZERO
    return SavingsRate(month, income, expenses, savings, rate)


def spending_analysis(
    entries: Sequence[JournalEntry], accounts: Sequence[Account], months_window: int = 3
) -> SpendingAnalysis:
    """Average, highest and lowest monthly expenses over the most recent months."""
    if months_window < 1:
        raise ValidationError(f"Months window must be at least 1, got {months_window}")
    summaries = all_monthly_summaries(entries, accounts)[:months_window]
    if not summaries:
        return SpendingAnalysis(ZERO, ZERO, ZERO, ZERO, 0)

    expenses = [s.expenses for s in summaries]
    highest = max(expenses)
    lowest = min(expenses)
    return SpendingAnalysis(
        average=round_cents(sum(expenses, ZERO) / len(expenses)),
        highest=highest,
        lowest=lowest,
        range=highest - lowest,
        months_analyzed=len(summaries),
    )


# Categories


def spending_by_category(
    entries: Iterable[JournalEntry], accounts: Sequence[Account], month: Optional[str] = None
) -> list[CategorySpending]:
    """Expense categories with their share of total spending, largest first."""
    breakdown = expense_by_category(entries, accounts, month)
    total = sum(breakdown.values(), ZERO)
    result = [
        CategorySpending(category, amount, _percent(amount, total))
        for category, amount in breakdown.items()
    ]
    return sorted(result, key=lambda c: (-c.amount, c.category))


def top_expense_categories(
    entries: Iterable[JournalEntry],
    accounts: Sequence[Account],
    limit: int = 5,
    month: Optional[str] = None,
) -> list[CategorySpending]:
    """The largest expense categories."""
    if limit < 1:
        raise ValidationError(f"Limit must be at least 1, got {limit}")
    return spending_by_category(entries, accounts, month)[:limit]


def financial_summary(
    entries: Sequence[JournalEntry], accounts: Sequence[Account], current_month: str
) -> FinancialSummary:
    """Month totals, all-time totals, top expenses and trial balance state."""
    trial_balance = validate_trial_balance(entries)
    warnings = ()
    if not trial_balance.is_balanced:
        warnings = (f"Trial balance failed: {trial_balance.difference} diff",)
        logger.warning(warnings[0])

    return FinancialSummary(
        period=current_month,
        month=monthly_summary(entries, accounts, current_month),
        net_worth=net_worth(entries, accounts),
        total_income=income_total(entries, accounts),
        total_expenses=expense_total(entries, accounts),
        transaction_count=len(entries),
        top_expenses=tuple(top_expense_categories(entries, accounts, 5, current_month)),
        trial_balance_ok=trial_balance.is_balanced,
        warnings=warnings,
    )


class AggregationService:
    """Service exposing the aggregation functions over stored data."""

    def __init__(self, db: Database):
        """Initialize aggregation service.

        Args:
            db: Database instance
        """
        self.db = db

    def _load(self) -> tuple[list[JournalEntry], list[Account]]:
        return self.db.list_journal_entries(), self.db.list_accounts()

    def account_balance(self, account_id: str) -> Decimal:
        entries, accounts = self._load()
        return account_balance(account_id, entries, accounts)

    def all_account_balances(self) -> dict[str, Decimal]:
        entries, accounts = self._load()
        return all_account_balances(entries, accounts)

    def income_total(self, month: Optional[str] = None) -> Decimal:
        entries, accounts = self._load()
        return income_total(entries, accounts, month)

    def expense_total(self, month: Optional[str] = None) -> Decimal:
        entries, accounts = self._load()
        return expense_total(entries, accounts, month)

    def income_by_category(self, month: Optional[str] = None) -> dict[str, Decimal]:
        entries, accounts = self._load()
        return income_by_category(entries, accounts, month)

    def expense_by_category(self, month: Optional[str] = None) -> dict[str, Decimal]:
        entries, accounts = self._load()
        return expense_by_category(entries, accounts, month)

    def net_worth(self) -> Decimal:
        entries, accounts = self._load()
        return net_worth(entries, accounts)

    def net_worth_breakdown(self) -> NetWorthBreakdown:
        entries, accounts = self._load()
        return net_worth_breakdown(entries, accounts)

    def monthly_summary(self, month: str) -> MonthlySummary:
        entries, accounts = self._load()
        return monthly_summary(entries, accounts, month)

    def all_monthly_summaries(self) -> list[MonthlySummary]:
        entries, accounts = self._load()
        return all_monthly_summaries(entries, accounts)

    def month_over_month_change(self, current_month: str) -> MonthOverMonthChange:
        entries, accounts = self._load()
        return month_over_month_change(entries, accounts, current_month)

    def monthly_savings_rate(self, month: str) -> SavingsRate:
        entries, accounts = self._load()
        return monthly_savings_rate(entries, accounts, month)

    def spending_analysis(self, months_window: int = 3) -> SpendingAnalysis:
        entries, accounts = self._load()
        return spending_analysis(entries, accounts, months_window)

    def spending_by_category(self, month: Optional[str] = None) -> list[CategorySpending]:
        entries, accounts = self._load()
        return spending_by_category(entries, accounts, month)

    def top_expense_categories(
        self, limit: int = 5, month: Optional[str] = None
    ) -> list[CategorySpending]:
        entries, accounts = self._load()
        return top_expense_categories(entries, accounts, limit, month)

    def financial_summary(self, current_month: str) -> FinancialSummary:
        entries, accounts = self._load()
        return financial_summary(entries, accounts, current_month)
