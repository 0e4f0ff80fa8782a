"""
Month summary cache.

Memoizes, per (budget, month), the closing Ready to Assign and every
category's closing available balance so navigating months does not re-scan
the whole transaction and assignment history.

A summary is either absent (computed on demand) or cached (trusted until a
mutation at or before it triggers recalculate_from_month). Backfill walks
months in an explicit loop; history can span many years, so nothing here
recurses month by month.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ledger_store import LedgerStore
from models import Assignment, MonthSummary
from months import month_end, month_range, month_start, next_month, previous_month
from ready_to_assign import is_budget_inflow

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class CategoryMonthData:
    """Opening, movement and closing figures for one category in one month."""
    opening_balance: int
    assigned: int
    activity: int
    closing_balance: int


@dataclass
class MonthData:
    """Everything the budget view needs for one month."""
    month: str
    opening_rta: int
    closing_rta: int
    category_data: Dict[str, CategoryMonthData] = field(default_factory=dict)


@dataclass
class _MonthFigures:
    inflows: int
    assigned: Dict[str, int]
    activity: Dict[str, int]
    category_ids: List[str]


class MonthSummaryCache:
    """
    Computes and caches month summaries for budgets in a ledger store.

    This is the only component that persists derived data. Absence of a
    summary is never an error; it is resolved by computing it.
    """

    def __init__(self, store: LedgerStore):
        """
        Initialize the cache.

        Args:
            store: LedgerStore the summaries are read from and written to
        """
        self.store = store

    def _month_figures(self, budget_id: str, month: str) -> _MonthFigures:
        """Collect one month's raw movements: on-budget inflows, assignments and activity."""
        on_budget_ids = {a.id for a in self.store.list_accounts(budget_id) if a.on_budget}
        transactions = self.store.list_all_transactions(
            budget_id, month_start(month), month_end(month)
        )

        inflows = 0
        activity: Dict[str, int] = {}
        for txn in transactions:
            if is_budget_inflow(txn, on_budget_ids):
                inflows += txn.amount
            if txn.category_id:
                activity[txn.category_id] = activity.get(txn.category_id, 0) + txn.amount

        assigned = {a.category_id: a.amount for a in self.store.list_assignments(budget_id, month)}
        category_ids = [c.id for c in self.store.list_categories(budget_id)]
        return _MonthFigures(inflows, assigned, activity, category_ids)

    def calculate_month_summary(
        self,
        budget_id: str,
        month: str,
        previous_summary: Optional[MonthSummary]
    ) -> MonthSummary:
        """
        Compute the closing figures of a month from the previous month's summary.

        Opening values come from previous_summary, or zero when it is None
        (beginning of time). Never reads or writes the cache.

        Args:
            budget_id: Budget ID
            month: Month in YYYY-MM format
            previous_summary: Summary of the month before, or None

        Returns:
            Unsaved MonthSummary
        """
        figures = self._month_figures(budget_id, month)
        opening_rta = previous_summary.closing_rta if previous_summary else 0
        opening_balances = previous_summary.category_balances if previous_summary else {}

        closing_rta = opening_rta + figures.inflows - sum(figures.assigned.values())

        category_balances = {
            category_id: (
                opening_balances.get(category_id, 0)
                + figures.assigned.get(category_id, 0)
                + figures.activity.get(category_id, 0)
            )
            for category_id in figures.category_ids
        }

        return MonthSummary(
            budget_id=budget_id,
            month=month,
            closing_rta=closing_rta,
            category_balances=category_balances,
        )

    def find_earliest_data_month(self, budget_id: str) -> Optional[str]:
        """
        Earliest month holding any transaction, assignment or stored summary.

        Returns:
            YYYY-MM string, or None for an empty budget
        """
        candidates: List[str] = []

        transactions = self.store.list_all_transactions(budget_id)
        if transactions:
            candidates.append(transactions[0].date[:7])

        assignments = self.store.list_all_assignments(budget_id)
        if assignments:
            candidates.append(min(a.month for a in assignments))

        summaries = self.store.list_month_summaries(budget_id)
        if summaries:
            candidates.append(summaries[0].month)

        return min(candidates) if candidates else None

    def _find_resume_point(
        self,
        budget_id: str,
        month: str,
        earliest_month: str
    ) -> Tuple[str, Optional[MonthSummary]]:
        """
        Walk backward from the month before `month` to the nearest cached summary.

        Returns:
            (first month to compute, summary to start from or None)
        """
        cached = {s.month: s for s in self.store.list_month_summaries(budget_id)}
        check_month = previous_month(month)
        while check_month >= earliest_month:
            summary = cached.get(check_month)
            if summary is not None:
                return next_month(check_month), summary
            check_month = previous_month(check_month)
        return earliest_month, None

    def get_or_calculate_month_summary(self, budget_id: str, month: str) -> MonthSummary:
        """
        Return the cached summary for a month, computing and caching it if absent.

        When the month precedes all data, a zero-based summary is cached
        directly. Otherwise every missing month from the nearest cached
        summary (or the earliest data month) up to `month` is computed in
        order and cached as it is produced.

        Args:
            budget_id: Budget ID
            month: Month in YYYY-MM format

        Returns:
            MonthSummary for the month
        """
        cached = self.store.get_month_summary(budget_id, month)
        if cached is not None:
            return cached

        earliest_month = self.find_earliest_data_month(budget_id)
        if earliest_month is None or month < earliest_month:
            summary = self.calculate_month_summary(budget_id, month, None)
            self.store.save_month_summary(summary)
            logger.debug("Cached zero-based summary for %s/%s", budget_id, month)
            return summary

        start_month, previous = self._find_resume_point(budget_id, month, earliest_month)
        months = month_range(start_month, month)
        logger.debug(
            "Backfilling %d month summaries for budget %s (%s..%s)",
            len(months), budget_id, start_month, month
        )

        for current in months:
            previous = self.calculate_month_summary(budget_id, current, previous)
            self.store.save_month_summary(previous)

        return previous

    def recalculate_from_month(self, budget_id: str, start_month: str) -> int:
        """
        Recompute and overwrite cached summaries from start_month onward.

        Walks forward from the predecessor's cached-or-computed summary
        through the latest month that currently has a stored summary.
        Months before start_month are left untouched.

        Args:
            budget_id: Budget ID
            start_month: First month whose data changed

        Returns:
            Number of summaries rewritten
        """
        summaries = self.store.list_month_summaries(budget_id)
        last_month = summaries[-1].month if summaries else start_month

        prev = previous_month(start_month)
        previous = self.store.get_month_summary(budget_id, prev)
        if previous is None:
            earliest_month = self.find_earliest_data_month(budget_id)
            if earliest_month is not None and earliest_month <= prev:
                previous = self.get_or_calculate_month_summary(budget_id, prev)

        count = 0
        for current in month_range(start_month, last_month):
            previous = self.calculate_month_summary(budget_id, current, previous)
            self.store.save_month_summary(previous)
            count += 1

        logger.info("Recalculated %d month summaries for budget %s from %s", count, budget_id, start_month)
        return count

    def invalidate(self, budget_id: str, month: str) -> bool:
        """
        Bring the cache up to date after data in `month` changed.

        Recalculation only runs when `month` is at or before the latest cached
        month; later months will be computed fresh when requested.

        Returns:
            True if cached summaries were recalculated
        """
        summaries = self.store.list_month_summaries(budget_id)
        if not summaries or month > summaries[-1].month:
            return False
        self.recalculate_from_month(budget_id, month)
        return True

    def rebuild(self, budget_id: str) -> int:
        """Drop every cached summary of the budget; they are recomputed on demand."""
        removed = self.store.clear_month_summaries(budget_id)
        logger.info("Cleared %d cached month summaries for budget %s", removed, budget_id)
        return removed

    def get_month_ready_to_assign(self, budget_id: str, month: str) -> int:
        """Closing Ready to Assign of a month, served from the cache."""
        return self.get_or_calculate_month_summary(budget_id, month).closing_rta

    def get_category_available_for_month(self, budget_id: str, category_id: str, month: str) -> int:
        """Cumulative available balance of a category at the end of a month."""
        summary = self.get_or_calculate_month_summary(budget_id, month)
        return summary.category_balances.get(category_id, 0)

    def get_month_data(self, budget_id: str, month: str) -> MonthData:
        """
        Opening values, this month's movements and closing values for a month.

        Opening values come from the (cached) summary of the previous month so
        carryover is included.
        """
        previous = self.get_or_calculate_month_summary(budget_id, previous_month(month))
        figures = self._month_figures(budget_id, month)

        category_data: Dict[str, CategoryMonthData] = {}
        for category_id in figures.category_ids:
            opening = previous.category_balances.get(category_id, 0)
            assigned = figures.assigned.get(category_id, 0)
            activity = figures.activity.get(category_id, 0)
            category_data[category_id] = CategoryMonthData(
                opening_balance=opening,
                assigned=assigned,
                activity=activity,
                closing_balance=opening + assigned + activity,
            )

        return MonthData(
            month=month,
            opening_rta=previous.closing_rta,
            closing_rta=previous.closing_rta + figures.inflows - sum(figures.assigned.values()),
            category_data=category_data,
        )

    def get_last_assignments_before_month(self, budget_id: str, before_month: str) -> Dict[str, Assignment]:
        """
        Most recent assignment per category strictly before a month.

        Used to show an inherited placeholder for categories without an
        assignment in the month being viewed. Gaps in history are fine;
        assignments in before_month itself are excluded.

        Returns:
            Mapping of category_id to its latest earlier Assignment
        """
        latest: Dict[str, Assignment] = {}
        for assignment in self.store.list_all_assignments(budget_id):
            if assignment.month >= before_month:
                continue
            existing = latest.get(assignment.category_id)
            if existing is None or assignment.month > existing.month:
                latest[assignment.category_id] = assignment
        return latest
