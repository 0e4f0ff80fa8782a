"""
Account and category balance calculations.

Pure reads over the ledger store: nothing here persists derived data.
Unknown ids degrade to zero balances because the UI asks for figures of
categories that may have just been deleted.
"""

import logging
from dataclasses import dataclass

from ledger_store import LedgerStore
from months import month_end, month_start, validate_month

logger = logging.getLogger(__name__)


@dataclass
class AccountBalances:
    """
    Account balance breakdown.

    Attributes:
        cleared: Sum of cleared transactions
        uncleared: Sum of uncleared transactions
        working: cleared + uncleared
    """
    cleared: int = 0
    uncleared: int = 0
    working: int = 0


@dataclass
class CategoryBalances:
    """
    Category figures for one month.

    Attributes:
        assigned: Assigned for this month only
        activity: Transactions tagged with the category this month (spending is negative)
        available: Cumulative balance through the month, including carryover
    """
    assigned: int = 0
    activity: int = 0
    available: int = 0


class BalanceCalculator:
    """Computes account balances and per-month category balances."""

    def __init__(self, store: LedgerStore):
        """
        Initialize the calculator.

        Args:
            store: LedgerStore to read from
        """
        self.store = store

    def get_account_balances(self, account_id: str) -> AccountBalances:
        """
        Split an account's transactions into cleared and uncleared totals.

        Args:
            account_id: Account ID

        Returns:
            AccountBalances; all zeros for an account without transactions
        """
        cleared = 0
        uncleared = 0
        for txn in self.store.list_transactions(account_id):
            if txn.cleared:
                cleared += txn.amount
            else:
                uncleared += txn.amount
        return AccountBalances(cleared=cleared, uncleared=uncleared, working=cleared + uncleared)

    def get_category_balances(self, category_id: str, month: str) -> CategoryBalances:
        """
        Calculate assigned, activity and available for a category in a month.

        `available` is not assigned + activity: it carries every prior month's
        unspent (or overspent) balance forward.

        Args:
            category_id: Category ID
            month: Month in YYYY-MM format

        Returns:
            CategoryBalances; all zeros if the category or its group is unknown
        """
        validate_month(month)
        budget_id = self.store.budget_id_for_category(category_id)
        if budget_id is None:
            logger.debug("Category %s not found; returning zero balances", category_id)
            return CategoryBalances()

        assignment = self.store.get_assignment(category_id, month)
        assigned = assignment.amount if assignment else 0

        transactions = self.store.list_all_transactions(budget_id, month_start(month), month_end(month))
        activity = sum(t.amount for t in transactions if t.category_id == category_id)

        available = self._cumulative_available(budget_id, category_id, month)
        return CategoryBalances(assigned=assigned, activity=activity, available=available)

    def get_cumulative_category_available(self, category_id: str, through_month: str) -> int:
        """
        Available balance of a category at the end of a month.

        Sums every assignment of the category up to and including the month
        plus all of its activity through the month's last day.
        """
        validate_month(through_month)
        budget_id = self.store.budget_id_for_category(category_id)
        if budget_id is None:
            return 0
        return self._cumulative_available(budget_id, category_id, through_month)

    def _cumulative_available(self, budget_id: str, category_id: str, through_month: str) -> int:
        transactions = self.store.list_all_transactions(budget_id, date_to=month_end(through_month))
        total_activity = sum(t.amount for t in transactions if t.category_id == category_id)

        total_assigned = sum(
            a.amount for a in self.store.list_all_assignments(budget_id)
            if a.category_id == category_id and a.month <= through_month
        )
        return total_assigned + total_activity
