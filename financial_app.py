"""
Application wiring for the budget ledger.

Configures logging, opens the configured ledger store and bundles the
managers around one shared MonthSummaryCache. Callers (CLI commands, UI
actions) hold a BudgetLedger instance; there is no process-wide current
store.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

from balances import AccountBalances, BalanceCalculator, CategoryBalances
from budgeting import AssignmentManager
from config_manager import load_config
from database_ops import SQLStore
from exceptions import BudgetError, ConfigError
from ledger_store import LedgerStore, MemoryStore
from models import (
    Account,
    AccountType,
    Budget,
    Category,
    CategoryGroup,
    Payee,
    create_account,
)
from month_summary import MonthData, MonthSummaryCache
from ready_to_assign import get_ready_to_assign
from targets import TargetManager
from transaction_management import TransactionManager
from utils import resolve_connection_string, resolve_log_path

# Configure module-level logger
logger = logging.getLogger(__name__)


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging", {}) or {}
    level_name = str(log_config.get("level") or "INFO").upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        logger.warning(f"Invalid log level '{level_name}', defaulting to INFO")
        log_level = logging.INFO
    log_format = log_config.get("format") or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file = log_config.get("file")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_path = resolve_log_path(log_file)
        except OSError as exc:
            raise ConfigError(f"Unable to prepare log file path '{log_file}'", original_error=exc) from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True
    )


def open_store(config: Optional[Dict[str, Any]] = None) -> LedgerStore:
    """
    Open the ledger store selected by config['store'].

    Args:
        config: Configuration dictionary (defaults are used when None)

    Returns:
        MemoryStore or SQLStore
    """
    config = config if config is not None else load_config()
    backend = config.get("store", "sqlite")
    if backend == "memory":
        logger.info("Using in-memory ledger store")
        return MemoryStore()
    if backend == "sqlite":
        return SQLStore.from_connection_string(resolve_connection_string(config))
    raise ConfigError(f"Unknown store backend '{backend}'")


class BudgetLedger:
    """
    Facade over one ledger store.

    Owns the managers and calculators so they all share the same store and
    month summary cache.
    """

    def __init__(self, store: LedgerStore):
        """
        Initialize the ledger.

        Args:
            store: LedgerStore instance
        """
        self.store = store
        self.summaries = MonthSummaryCache(store)
        self.transactions = TransactionManager(store, self.summaries)
        self.assignments = AssignmentManager(store, self.summaries)
        self.balances = BalanceCalculator(store)
        self.targets = TargetManager(store, self.balances)
        logger.info("Budget ledger initialized")

    # Entity creation
    def create_budget(self, name: str, currency: str = "USD") -> Budget:
        budget = Budget(name=name, currency=currency)
        self.store.save_budget(budget)
        logger.info(f"Created budget '{name}' ({budget.id})")
        return budget

    def _require_budget(self, budget_id: str) -> Budget:
        budget = self.store.get_budget(budget_id)
        if budget is None:
            raise BudgetError(f"Budget '{budget_id}' does not exist", details={"budget_id": budget_id})
        return budget

    def create_account(
        self,
        budget_id: str,
        name: str,
        account_type: AccountType = AccountType.CHECKING,
        on_budget: Optional[bool] = None
    ) -> Account:
        self._require_budget(budget_id)
        account = create_account(budget_id, name, account_type, on_budget)
        self.store.save_account(account)
        logger.info(f"Created account '{name}' ({account.type.value}, on_budget={account.on_budget})")
        return account

    def create_category_group(self, budget_id: str, name: str, sort_order: int = 0) -> CategoryGroup:
        self._require_budget(budget_id)
        group = CategoryGroup(budget_id=budget_id, name=name, sort_order=sort_order)
        self.store.save_category_group(group)
        return group

    def create_category(self, group_id: str, name: str, sort_order: int = 0) -> Category:
        if self.store.get_category_group(group_id) is None:
            raise BudgetError(f"Category group '{group_id}' does not exist", details={"group_id": group_id})
        category = Category(group_id=group_id, name=name, sort_order=sort_order)
        self.store.save_category(category)
        return category

    def create_payee(self, budget_id: str, name: str) -> Payee:
        self._require_budget(budget_id)
        payee = Payee(budget_id=budget_id, name=name)
        self.store.save_payee(payee)
        return payee

    def delete_category(self, category_id: str) -> bool:
        """
        Delete a category after clearing its assignments and target.

        Cached summaries of its budget are dropped since they hold the
        category's balance.
        """
        budget_id = self.store.budget_id_for_category(category_id)
        if budget_id is None:
            return False
        months = sorted({a.month for a in self.store.list_all_assignments(budget_id) if a.category_id == category_id})
        self.assignments.clear_category_assignments(category_id, months)
        self.targets.clear_target(category_id)
        self.store.delete_category(category_id)
        self.summaries.rebuild(budget_id)
        logger.info(f"Deleted category {category_id}")
        return True

    # Figures
    def ready_to_assign(self, budget_id: str, month: str) -> int:
        """Ready to Assign through `month` from a full history re-scan."""
        return get_ready_to_assign(self.store, budget_id, month)

    def account_balances(self, account_id: str) -> AccountBalances:
        return self.balances.get_account_balances(account_id)

    def category_balances(self, category_id: str, month: str) -> CategoryBalances:
        return self.balances.get_category_balances(category_id, month)

    def month_data(self, budget_id: str, month: str) -> MonthData:
        return self.summaries.get_month_data(budget_id, month)


def create_ledger(config: Optional[Dict[str, Any]] = None) -> BudgetLedger:
    """Load config, configure logging and return a ledger over the configured store."""
    config = config if config is not None else load_config()
    setup_logging(config)
    return BudgetLedger(open_store(config))
