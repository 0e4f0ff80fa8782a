"""
Category targets and progress toward them.

A target is an optional goal on one category: a spending limit for the
month, a savings balance to build up, or a fixed monthly contribution.
Progress is derived from the balance calculator and never stored.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from balances import BalanceCalculator
from exceptions import TargetError
from ledger_store import LedgerStore
from models import Target, TargetType, utc_now

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class TargetProgress:
    """
    Progress of a category toward its target in one month.

    Attributes:
        target: The category's target
        current: Amount counted toward the target, in cents
        remaining: target.amount - current; negative once exceeded
        percent: current as a share of the target, clamped to 0-100
    """
    target: Target
    current: int
    remaining: int
    percent: float


class TargetManager:
    """Creates, clears and evaluates category targets."""

    def __init__(self, store: LedgerStore, balances: Optional[BalanceCalculator] = None):
        """
        Initialize the target manager.

        Args:
            store: LedgerStore instance
            balances: Balance calculator used for progress
        """
        self.store = store
        self.balances = balances or BalanceCalculator(store)
        logger.info("Target manager initialized")

    @staticmethod
    def _normalize_target_date(value: Union[date, str, None]) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, date):
            return value.isoformat()
        try:
            return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
        except (TypeError, ValueError) as e:
            raise TargetError(
                "Target dates must be YYYY-MM-DD",
                details={"target_date": value},
                original_error=e
            ) from e

    def set_target(
        self,
        category_id: str,
        amount: int,
        target_type: Union[TargetType, str] = TargetType.SPENDING_LIMIT,
        target_date: Union[date, str, None] = None
    ) -> Target:
        """
        Create or replace the target of a category.

        Args:
            category_id: Category ID
            amount: Goal in cents, greater than zero
            target_type: TargetType or its string value
            target_date: Optional deadline

        Returns:
            The saved Target; an existing target keeps its id and created_at

        Raises:
            TargetError: If the category is unknown or the amount, type or date is invalid
        """
        if self.store.budget_id_for_category(category_id) is None:
            raise TargetError(
                f"Category '{category_id}' does not exist",
                details={"category_id": category_id}
            )
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise TargetError(
                "Target amounts must be positive integer cents",
                details={"amount": amount}
            )
        try:
            target_type = TargetType(target_type)
        except ValueError as e:
            raise TargetError(
                f"Unknown target type '{target_type}'",
                details={"target_type": target_type},
                original_error=e
            ) from e
        target_date = self._normalize_target_date(target_date)

        target = self.store.get_target(category_id)
        if target is not None:
            target.type = target_type
            target.amount = amount
            target.target_date = target_date
            target.updated_at = utc_now()
        else:
            target = Target(
                category_id=category_id, type=target_type, amount=amount, target_date=target_date
            )

        self.store.save_target(target)
        logger.info(f"Set {target_type.value} target of {amount} on category {category_id}")
        return target

    def get_target(self, category_id: str) -> Optional[Target]:
        return self.store.get_target(category_id)

    def clear_target(self, category_id: str) -> bool:
        """Remove a category's target. Returns False when it had none."""
        if self.store.get_target(category_id) is None:
            return False
        self.store.delete_target(category_id)
        logger.info(f"Cleared target on category {category_id}")
        return True

    def get_progress(self, category_id: str, month: str) -> Optional[TargetProgress]:
        """
        Measure a category against its target for a month.

        Spending limits count the month's outflow activity, savings balances
        count the cumulative available balance and monthly contributions
        count the month's assignment.

        Args:
            category_id: Category ID
            month: Month in YYYY-MM format

        Returns:
            TargetProgress, or None when the category has no target
        """
        target = self.store.get_target(category_id)
        if target is None:
            return None

        figures = self.balances.get_category_balances(category_id, month)
        if target.type is TargetType.SPENDING_LIMIT:
            current = abs(figures.activity)
        elif target.type is TargetType.SAVINGS_BALANCE:
            current = figures.available
        else:
            current = figures.assigned

        percent = min(max(current / target.amount * 100, 0.0), 100.0)
        return TargetProgress(
            target=target,
            current=current,
            remaining=target.amount - current,
            percent=percent
        )
