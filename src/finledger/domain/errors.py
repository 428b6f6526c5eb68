"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class StructuralError(ValidationError):
    """Required field missing or record has the wrong shape."""


class InvalidUpdateError(ValidationError):
    """Attempt to change an immutable account field."""


class BalanceError(DomainError):
    """Total debits and total credits of an entry (or entry set) differ."""

    def __init__(self, message: str, total_debits: Decimal, total_credits: Decimal):
        super().__init__(message)
        self.total_debits = total_debits
        self.total_credits = total_credits


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def journal_entry_not_found(entry_id: str) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def backup_not_found(backup_id: str) -> str:
    """Return message for missing migration backup."""
    return f"Backup not found: {backup_id}"


def duplicate_account_id(account_id: str) -> str:
    """Return message for duplicate account ID."""
    return f"Account with ID '{account_id}' already exists"


def account_field_immutable(account_id: str, field: str) -> str:
    """Return message when an update touches an immutable account field."""
    return f"Cannot change '{field}' of account {account_id}: field is immutable"


def unbalanced_entry(total_debits: Decimal, total_credits: Decimal) -> str:
    """Return message for an entry whose debits and credits differ."""
    return f"Unbalanced entry: Debits {total_debits} != Credits {total_credits}"
