"""Debit/credit sign conventions.

Every place that turns a line item into a signed quantity goes through
line_balance so the convention is applied the same way everywhere:

    asset, expense               debit increases, credit decreases
    liability, income, equity    credit increases, debit decreases
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Optional

from finledger.domain.entities import Account, AccountType, LineItem
from finledger.utils.amount_parser import ZERO, to_decimal

logger = logging.getLogger(__name__)

DEBIT_INCREASING_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})


class RuleType(str, Enum):
    """Which side of a line item raises an account's balance."""

    DEBIT = "debit"
    CREDIT = "credit"


def rule_type(account: Account) -> RuleType:
    """Return whether the account is debit- or credit-increasing."""
    if AccountType(account.account_type) in DEBIT_INCREASING_TYPES:
        return RuleType.DEBIT
    return RuleType.CREDIT


def line_balance(line: LineItem, account: Optional[Account]) -> Decimal:
    """Return the signed contribution of a line item to an account balance.

    Unknown accounts and unreadable amounts contribute zero.
    """
    if account is None:
        logger.warning(f"Account {line.account_id} not found, line ignored in balance")
        return ZERO

    try:
        debit = to_decimal(line.debit)
        credit = to_decimal(line.credit)
    except ValueError as e:
        logger.warning(f"Unreadable amount on account {line.account_id}: {e}")
        return ZERO

    try:
        rule = rule_type(account)
    except ValueError:
        logger.warning(
            f"Account {line.account_id} has unknown type {account.account_type!r}, line ignored in balance"
        )
        return ZERO

    if rule == RuleType.DEBIT:
        return debit - credit
    return credit - debit
