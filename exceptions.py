"""
Unified exception hierarchy for the budget ledger.

This module defines the exception hierarchy with BudgetLedgerError as the
base exception. Read-only calculators degrade to zero/None for unknown ids;
mutating services raise one of these errors naming the invalid reference.
"""

from typing import Optional


class BudgetLedgerError(Exception):
    """
    Base exception class for all budget ledger errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize BudgetLedgerError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(BudgetLedgerError):
    """Raised when configuration loading or validation fails."""
    pass


class DatabaseError(BudgetLedgerError):
    """Raised when ledger store operations fail."""
    pass


class ImportDataError(BudgetLedgerError):
    """Raised when an exported ledger cannot be imported."""
    pass


class TransactionError(BudgetLedgerError):
    """Raised when a transaction or transfer references unknown entities."""
    pass


class AssignmentError(BudgetLedgerError):
    """Raised when an assignment references an unknown category."""
    pass


class BudgetError(BudgetLedgerError):
    """Raised when budget lookups required by a mutation fail."""
    pass


class ReportError(BudgetLedgerError):
    """Raised when report generation fails."""
    pass


class TargetError(BudgetLedgerError):
    """Raised when a category target is invalid or references an unknown category."""
    pass
