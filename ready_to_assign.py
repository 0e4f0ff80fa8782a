"""
Ready to Assign calculation.

Ready to Assign is the budget-wide pool of income not yet given to a
category:

    inflows into on-budget accounts through the month
    - every assignment of every category through the month

Categorized expenses never enter this formula; they reduce a category's
available balance instead. This is a full historical re-scan with no
caching; MonthSummaryCache.get_month_ready_to_assign is the cached
equivalent used for month navigation.
"""

import logging
from typing import Set

from ledger_store import LedgerStore
from models import Transaction
from months import month_end, validate_month

logger = logging.getLogger(__name__)


def is_budget_inflow(transaction: Transaction, on_budget_ids: Set[str]) -> bool:
    """
    Whether a transaction counts as an inflow for Ready to Assign.

    Every positive amount on an on-budget account counts, the receiving leg
    of a transfer included.
    """
    return transaction.amount > 0 and transaction.account_id in on_budget_ids


def sum_on_budget_inflows(store: LedgerStore, budget_id: str, through_month: str) -> int:
    """Total of positive amounts on on-budget accounts up to the month's last day."""
    end = month_end(through_month)
    on_budget_ids = {a.id for a in store.list_accounts(budget_id) if a.on_budget}
    total = 0
    for account_id in on_budget_ids:
        total += sum(
            t.amount for t in store.list_transactions(account_id, date_to=end)
            if is_budget_inflow(t, on_budget_ids)
        )
    return total


def sum_assignments(store: LedgerStore, budget_id: str, through_month: str) -> int:
    """Total assigned across all categories for every month up to and including through_month."""
    return sum(
        a.amount for a in store.list_all_assignments(budget_id)
        if a.month <= through_month
    )


def get_ready_to_assign(store: LedgerStore, budget_id: str, through_month: str) -> int:
    """
    Calculate Ready to Assign for a budget as of the end of a month.

    Args:
        store: Ledger store
        budget_id: Budget ID
        through_month: Month in YYYY-MM format (inclusive)

    Returns:
        Unassigned amount in cents; negative when over-assigned
    """
    validate_month(through_month)
    inflows = sum_on_budget_inflows(store, budget_id, through_month)
    assigned = sum_assignments(store, budget_id, through_month)
    logger.debug(
        "Ready to Assign for %s through %s: inflows=%d assigned=%d",
        budget_id, through_month, inflows, assigned
    )
    return inflows - assigned
