"""
Report generator module for budget views.

Builds pandas DataFrames for the month budget table and account registers
so CLI and UI callers can render or export them. Amounts stay in cents;
formatting is left to the caller.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from exceptions import ReportError
from ledger_store import LedgerStore
from month_summary import MonthSummaryCache
from months import validate_month

logger = logging.getLogger(__name__)

MONTH_COLUMNS = ["group", "category", "category_id", "assigned", "activity", "available", "inherited"]
REGISTER_COLUMNS = ["date", "payee", "category", "memo", "amount", "cleared", "running_balance"]


class ReportGenerator:
    """
    Generate tabular reports from ledger data.

    Month figures come from the month summary cache so opening balances
    include carryover.
    """

    def __init__(self, store: LedgerStore, summary_cache: Optional[MonthSummaryCache] = None):
        """
        Initialize the report generator.

        Args:
            store: LedgerStore to read from
            summary_cache: Shared month summary cache (created if omitted)
        """
        self.store = store
        self.summary_cache = summary_cache or MonthSummaryCache(store)
        logger.info("Report generator initialized")

    def month_overview_frame(self, budget_id: str, month: str) -> pd.DataFrame:
        """
        One row per category with assigned, activity and available for a month.

        `inherited` holds the category's latest assignment before the month,
        used as a placeholder where nothing is assigned yet.

        Returns:
            DataFrame ordered by group then category sort order
        """
        validate_month(month)
        month_data = self.summary_cache.get_month_data(budget_id, month)
        inherited = self.summary_cache.get_last_assignments_before_month(budget_id, month)

        rows = []
        for group in self.store.list_category_groups(budget_id):
            categories = [c for c in self.store.list_categories(budget_id) if c.group_id == group.id]
            for category in categories:
                data = month_data.category_data.get(category.id)
                if data is None:
                    continue
                previous = inherited.get(category.id)
                rows.append({
                    "group": group.name,
                    "category": category.name,
                    "category_id": category.id,
                    "assigned": data.assigned,
                    "activity": data.activity,
                    "available": data.closing_balance,
                    "inherited": previous.amount if previous else None,
                })

        frame = pd.DataFrame(rows, columns=MONTH_COLUMNS)
        logger.debug(f"Built month overview for {budget_id} {month}: {len(frame)} categories")
        return frame

    def account_register_frame(self, account_id: str) -> pd.DataFrame:
        """
        An account's transactions in date order with a running balance.

        Raises:
            ReportError: If the account does not exist
        """
        account = self.store.get_account(account_id)
        if account is None:
            raise ReportError(f"Account '{account_id}' does not exist", details={"account_id": account_id})

        payees = {p.id: p.name for p in self.store.list_payees(account.budget_id)}
        categories = {c.id: c.name for c in self.store.list_categories(account.budget_id)}

        rows = [
            {
                "date": txn.date,
                "payee": payees.get(txn.payee_id),
                "category": categories.get(txn.category_id),
                "memo": txn.memo,
                "amount": txn.amount,
                "cleared": txn.cleared,
            }
            for txn in self.store.list_transactions(account_id)
        ]
        frame = pd.DataFrame(rows, columns=REGISTER_COLUMNS[:-1])
        frame["running_balance"] = frame["amount"].cumsum()
        logger.debug(f"Register for {account_id}: {len(frame)} rows")
        return frame

    @staticmethod
    def to_csv(frame: pd.DataFrame, path: Union[str, Path]) -> Path:
        """Write a report frame to CSV and return the path."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(path, index=False)
        except OSError as e:
            logger.error(f"Failed to write report to {path}: {e}")
            raise ReportError("Failed to write report", details={"path": str(path)}, original_error=e) from e
        logger.info(f"Report written to {path}")
        return path
