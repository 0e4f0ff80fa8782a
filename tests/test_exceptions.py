"""
Unit tests for the unified exception hierarchy.

Tests exception creation, attributes, string representations, and error context.
"""

import pytest
from exceptions import (
    AssignmentError,
    BudgetError,
    BudgetLedgerError,
    ConfigError,
    DatabaseError,
    ImportDataError,
    ReportError,
    TargetError,
    TransactionError,
)


class TestBudgetLedgerError:
    """Test base BudgetLedgerError class."""

    def test_basic_exception_creation(self):
        """Test creating a basic BudgetLedgerError."""
        error = BudgetLedgerError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.original_error is None

    def test_exception_with_details(self):
        """Test creating exception with details dictionary."""
        error = BudgetLedgerError("Unknown account", details={"account_id": "a1", "amount": 500})
        assert str(error) == "Unknown account (account_id=a1, amount=500)"

    def test_exception_with_original_error(self):
        """Test creating exception with original error chaining."""
        original = ValueError("Original error")
        error = BudgetLedgerError("Wrapped error", original_error=original)
        assert error.original_error is original


class TestExceptionHierarchy:
    """Every service error is catchable as BudgetLedgerError."""

    @pytest.mark.parametrize("error_cls", [
        ConfigError,
        DatabaseError,
        ImportDataError,
        TransactionError,
        AssignmentError,
        BudgetError,
        ReportError,
        TargetError,
    ])
    def test_subclasses_base(self, error_cls):
        with pytest.raises(BudgetLedgerError) as exc_info:
            raise error_cls("failure", details={"id": "x"})
        assert exc_info.value.details == {"id": "x"}

    def test_service_errors_are_distinct(self):
        assert not issubclass(TransactionError, AssignmentError)
        assert not issubclass(AssignmentError, TransactionError)
