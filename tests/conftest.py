from dataclasses import dataclass

import pytest

from database_ops import SQLStore
from financial_app import BudgetLedger
from ledger_store import MemoryStore
from models import AccountType


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Provide each ledger store backend in turn."""
    if request.param == "memory":
        yield MemoryStore()
        return
    sql_store = SQLStore.from_connection_string(f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}")
    try:
        yield sql_store
    finally:
        sql_store.close()


@pytest.fixture
def ledger(store):
    """BudgetLedger wired to the parametrized store."""
    return BudgetLedger(store)


@dataclass
class SeededBudget:
    budget_id: str
    checking_id: str
    savings_id: str
    brokerage_id: str
    groceries_id: str
    utilities_id: str
    rent_id: str


@pytest.fixture
def seeded(ledger):
    """A budget with two on-budget accounts, one tracking account and three categories."""
    budget = ledger.create_budget("Household")
    checking = ledger.create_account(budget.id, "Checking", AccountType.CHECKING)
    savings = ledger.create_account(budget.id, "Savings", AccountType.SAVINGS)
    brokerage = ledger.create_account(budget.id, "Brokerage", AccountType.TRACKING)
    bills = ledger.create_category_group(budget.id, "Bills", sort_order=1)
    everyday = ledger.create_category_group(budget.id, "Everyday", sort_order=0)
    groceries = ledger.create_category(everyday.id, "Groceries", sort_order=0)
    utilities = ledger.create_category(bills.id, "Utilities", sort_order=0)
    rent = ledger.create_category(bills.id, "Rent", sort_order=1)
    return SeededBudget(
        budget_id=budget.id,
        checking_id=checking.id,
        savings_id=savings.id,
        brokerage_id=brokerage.id,
        groceries_id=groceries.id,
        utilities_id=utilities.id,
        rent_id=rent.id,
    )
