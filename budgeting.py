"""
Budgeting module for envelope-style assignments.

This module assigns money to categories per month and moves money between
categories. Assignments hold the amount for one month only; carryover is
computed by the balance calculator and the month summary cache.
"""

import logging
from typing import Iterable, Optional, Tuple

from exceptions import AssignmentError
from ledger_store import LedgerStore
from models import Assignment
from month_summary import MonthSummaryCache
from months import validate_month

# Configure logging
logger = logging.getLogger(__name__)


class AssignmentManager:
    """
    Manages category assignments (the "Assigned" column of the budget).

    Every write refreshes cached month summaries at or after the month it
    touched.
    """

    def __init__(self, store: LedgerStore, summary_cache: Optional[MonthSummaryCache] = None):
        """
        Initialize the assignment manager.

        Args:
            store: LedgerStore instance
            summary_cache: Month summary cache to refresh after writes
        """
        self.store = store
        self.summary_cache = summary_cache or MonthSummaryCache(store)
        logger.info("Assignment manager initialized")

    def _require_budget(self, category_id: str) -> str:
        budget_id = self.store.budget_id_for_category(category_id)
        if budget_id is None:
            raise AssignmentError(
                f"Category '{category_id}' does not exist",
                details={"category_id": category_id}
            )
        return budget_id

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise AssignmentError(
                "Assignment amounts must be integer cents",
                details={"amount": amount}
            )

    def get_assigned(self, category_id: str, month: str) -> int:
        """Amount assigned to a category for a month, 0 when nothing is assigned."""
        assignment = self.store.get_assignment(category_id, month)
        return assignment.amount if assignment else 0

    def assign_to_category(self, category_id: str, month: str, amount: int) -> Assignment:
        """
        Set the assignment for a category and month to exactly `amount`.

        Args:
            category_id: Category ID
            month: Month in YYYY-MM format
            amount: New assigned amount in cents (not a delta); may be negative

        Returns:
            The saved Assignment

        Raises:
            AssignmentError: If the category does not exist or amount is not an int
            ValueError: If month is not YYYY-MM
        """
        validate_month(month)
        self._check_amount(amount)
        budget_id = self._require_budget(category_id)

        assignment = self.store.get_assignment(category_id, month)
        if assignment is not None:
            assignment.amount = amount
        else:
            assignment = Assignment(category_id=category_id, month=month, amount=amount)

        self.store.save_assignment(assignment)
        self.summary_cache.invalidate(budget_id, month)

        logger.info(f"Assigned {amount} to category {category_id} for {month}")
        return assignment

    def move_between_categories(
        self,
        from_category_id: str,
        to_category_id: str,
        month: str,
        amount: int
    ) -> Tuple[Assignment, Assignment]:
        """
        Move money from one category to another within a month.

        The source assignment drops by `amount` and the destination grows by
        it, so their total is unchanged. The source may go negative. Both
        writes run inside store.atomic(); on a store without rollback support
        a failure between them leaves the source updated and the destination
        not.

        Args:
            from_category_id: Category giving money
            to_category_id: Category receiving money
            month: Month in YYYY-MM format
            amount: Cents to move

        Returns:
            Tuple of (from_assignment, to_assignment)

        Raises:
            AssignmentError: If either category does not exist
        """
        validate_month(month)
        self._check_amount(amount)
        self._require_budget(from_category_id)
        self._require_budget(to_category_id)

        with self.store.atomic():
            new_from = self.get_assigned(from_category_id, month) - amount
            new_to = self.get_assigned(to_category_id, month) + amount
            from_assignment = self.assign_to_category(from_category_id, month, new_from)
            to_assignment = self.assign_to_category(to_category_id, month, new_to)

        logger.info(
            f"Moved {amount} from category {from_category_id} to {to_category_id} for {month}"
        )
        return from_assignment, to_assignment

    def clear_category_assignments(self, category_id: str, months: Iterable[str]) -> int:
        """
        Delete a category's assignments for the given months.

        Used before deleting a category.

        Returns:
            Number of months processed
        """
        months = sorted(validate_month(m) for m in months)
        if not months:
            return 0

        budget_id = self.store.budget_id_for_category(category_id)
        for month in months:
            self.store.delete_assignment(category_id, month)

        if budget_id is not None:
            self.summary_cache.invalidate(budget_id, months[0])

        logger.info(f"Cleared {len(months)} assignment month(s) for category {category_id}")
        return len(months)
