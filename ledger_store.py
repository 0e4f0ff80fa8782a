"""
Ledger store contract and the in-memory backend.

LedgerStore is the read/write contract every service in the ledger relies on.
Services never reach for a global store: each manager receives one in its
constructor. MemoryStore keeps everything in dictionaries for the lifetime of
the process and is used for tests and throwaway sessions; the SQLite backend
lives in database_ops.SQLStore.

The module also provides the portable export/import format shared by both
backends.
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from exceptions import ImportDataError
from models import (
    Account,
    Assignment,
    Budget,
    Category,
    CategoryGroup,
    MonthSummary,
    Payee,
    Target,
    Transaction,
)

# Configure logging
logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
SCHEMA_VERSION = 1


def _in_range(txn_date: str, date_from: Optional[str], date_to: Optional[str]) -> bool:
    if date_from and txn_date < date_from:
        return False
    if date_to and txn_date > date_to:
        return False
    return True


class LedgerStore(ABC):
    """
    Abstract persistence layer for budgets and their entities.

    Transaction listings take optional inclusive date_from/date_to bounds
    ("YYYY-MM-DD") and are returned ascending by date. Categories and groups
    are returned by sort_order. Month summaries are returned ascending by
    month. Lookups for unknown ids return None rather than raising.
    """

    def get_schema_version(self) -> int:
        return SCHEMA_VERSION

    @contextmanager
    def atomic(self) -> Iterator["LedgerStore"]:
        """
        Group several writes into one unit.

        The base implementation provides no rollback: a failure midway leaves
        the writes that already happened in place.
        """
        yield self

    # Budget
    @abstractmethod
    def get_budget(self, budget_id: str) -> Optional[Budget]: ...

    @abstractmethod
    def list_budgets(self) -> List[Budget]: ...

    @abstractmethod
    def save_budget(self, budget: Budget) -> None: ...

    @abstractmethod
    def delete_budget(self, budget_id: str) -> None: ...

    # Account
    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]: ...

    @abstractmethod
    def list_accounts(self, budget_id: str) -> List[Account]: ...

    @abstractmethod
    def save_account(self, account: Account) -> None: ...

    @abstractmethod
    def delete_account(self, account_id: str) -> None: ...

    # Transaction
    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    @abstractmethod
    def list_transactions(
        self,
        account_id: str,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None
    ) -> List[Transaction]: ...

    @abstractmethod
    def list_all_transactions(
        self,
        budget_id: str,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None
    ) -> List[Transaction]: ...

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> None: ...

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None: ...

    # Category
    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    def list_categories(self, budget_id: str) -> List[Category]: ...

    @abstractmethod
    def save_category(self, category: Category) -> None: ...

    @abstractmethod
    def delete_category(self, category_id: str) -> None: ...

    # CategoryGroup
    @abstractmethod
    def get_category_group(self, group_id: str) -> Optional[CategoryGroup]: ...

    @abstractmethod
    def list_category_groups(self, budget_id: str) -> List[CategoryGroup]: ...

    @abstractmethod
    def save_category_group(self, group: CategoryGroup) -> None: ...

    @abstractmethod
    def delete_category_group(self, group_id: str) -> None: ...

    # Payee
    @abstractmethod
    def get_payee(self, payee_id: str) -> Optional[Payee]: ...

    @abstractmethod
    def list_payees(self, budget_id: str) -> List[Payee]: ...

    @abstractmethod
    def save_payee(self, payee: Payee) -> None: ...

    @abstractmethod
    def delete_payee(self, payee_id: str) -> None: ...

    # Assignment
    @abstractmethod
    def get_assignment(self, category_id: str, month: str) -> Optional[Assignment]: ...

    @abstractmethod
    def list_assignments(self, budget_id: str, month: str) -> List[Assignment]: ...

    @abstractmethod
    def list_all_assignments(self, budget_id: str) -> List[Assignment]: ...

    @abstractmethod
    def save_assignment(self, assignment: Assignment) -> None:
        """Upsert on (category_id, month)."""

    @abstractmethod
    def delete_assignment(self, category_id: str, month: str) -> None: ...

    # MonthSummary
    @abstractmethod
    def get_month_summary(self, budget_id: str, month: str) -> Optional[MonthSummary]: ...

    @abstractmethod
    def list_month_summaries(self, budget_id: str) -> List[MonthSummary]: ...

    @abstractmethod
    def save_month_summary(self, summary: MonthSummary) -> None:
        """Upsert on (budget_id, month)."""

    @abstractmethod
    def delete_month_summary(self, budget_id: str, month: str) -> None: ...

    # Target
    @abstractmethod
    def get_target(self, category_id: str) -> Optional[Target]: ...

    @abstractmethod
    def list_targets(self, budget_id: str) -> List[Target]: ...

    @abstractmethod
    def save_target(self, target: Target) -> None:
        """Upsert on category_id."""

    @abstractmethod
    def delete_target(self, category_id: str) -> None: ...

    def budget_id_for_category(self, category_id: str) -> Optional[str]:
        """Resolve a category's budget through its group, or None if either is unknown."""
        category = self.get_category(category_id)
        if category is None:
            return None
        group = self.get_category_group(category.group_id)
        return group.budget_id if group is not None else None

    def budget_id_for_account(self, account_id: str) -> Optional[str]:
        account = self.get_account(account_id)
        return account.budget_id if account is not None else None

    def clear_month_summaries(self, budget_id: str) -> int:
        """Drop every cached summary of a budget. Returns how many were removed."""
        summaries = self.list_month_summaries(budget_id)
        for summary in summaries:
            self.delete_month_summary(budget_id, summary.month)
        return len(summaries)

    def clear(self) -> None:
        """Remove every budget and everything it owns."""
        for budget in self.list_budgets():
            self._delete_budget_tree(budget.id)

    def _delete_budget_tree(self, budget_id: str) -> None:
        self.clear_month_summaries(budget_id)
        for target in self.list_targets(budget_id):
            self.delete_target(target.category_id)
        for assignment in self.list_all_assignments(budget_id):
            self.delete_assignment(assignment.category_id, assignment.month)
        for transaction in self.list_all_transactions(budget_id):
            self.delete_transaction(transaction.id)
        for category in self.list_categories(budget_id):
            self.delete_category(category.id)
        for group in self.list_category_groups(budget_id):
            self.delete_category_group(group.id)
        for payee in self.list_payees(budget_id):
            self.delete_payee(payee.id)
        for account in self.list_accounts(budget_id):
            self.delete_account(account.id)
        self.delete_budget(budget_id)


class MemoryStore(LedgerStore):
    """
    In-memory ledger store.

    Entities are copied on the way in and out so callers never alias stored
    state, matching the behavior of a real database.
    """

    def __init__(self) -> None:
        self._budgets: Dict[str, Budget] = {}
        self._accounts: Dict[str, Account] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._categories: Dict[str, Category] = {}
        self._groups: Dict[str, CategoryGroup] = {}
        self._payees: Dict[str, Payee] = {}
        self._assignments: Dict[Tuple[str, str], Assignment] = {}
        self._summaries: Dict[Tuple[str, str], MonthSummary] = {}
        self._targets: Dict[str, Target] = {}
        logger.debug("Memory store initialized")

    _TABLES = (
        "_budgets", "_accounts", "_transactions", "_categories",
        "_groups", "_payees", "_assignments", "_summaries", "_targets",
    )

    @contextmanager
    def atomic(self) -> Iterator["MemoryStore"]:
        """Snapshot every table and restore it if the block raises."""
        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._TABLES}
        try:
            yield self
        except Exception:
            for name, table in snapshot.items():
                setattr(self, name, table)
            logger.warning("Rolled back in-memory writes after failure")
            raise

    @staticmethod
    def _get(table: Dict, key) -> Optional[Any]:
        value = table.get(key)
        return copy.deepcopy(value) if value is not None else None

    # Budget
    def get_budget(self, budget_id: str) -> Optional[Budget]:
        return self._get(self._budgets, budget_id)

    def list_budgets(self) -> List[Budget]:
        return [copy.deepcopy(b) for b in self._budgets.values()]

    def save_budget(self, budget: Budget) -> None:
        self._budgets[budget.id] = copy.deepcopy(budget)

    def delete_budget(self, budget_id: str) -> None:
        self._budgets.pop(budget_id, None)

    # Account
    def get_account(self, account_id: str) -> Optional[Account]:
        return self._get(self._accounts, account_id)

    def list_accounts(self, budget_id: str) -> List[Account]:
        return [copy.deepcopy(a) for a in self._accounts.values() if a.budget_id == budget_id]

    def save_account(self, account: Account) -> None:
        self._accounts[account.id] = copy.deepcopy(account)

    def delete_account(self, account_id: str) -> None:
        self._accounts.pop(account_id, None)

    # Transaction
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._get(self._transactions, transaction_id)

    def list_transactions(self, account_id, date_from=None, date_to=None):
        txns = [
            copy.deepcopy(t) for t in self._transactions.values()
            if t.account_id == account_id and _in_range(t.date, date_from, date_to)
        ]
        return sorted(txns, key=lambda t: t.date)

    def list_all_transactions(self, budget_id, date_from=None, date_to=None):
        account_ids = {a.id for a in self._accounts.values() if a.budget_id == budget_id}
        txns = [
            copy.deepcopy(t) for t in self._transactions.values()
            if t.account_id in account_ids and _in_range(t.date, date_from, date_to)
        ]
        return sorted(txns, key=lambda t: t.date)

    def save_transaction(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = copy.deepcopy(transaction)

    def delete_transaction(self, transaction_id: str) -> None:
        self._transactions.pop(transaction_id, None)

    # Category
    def get_category(self, category_id: str) -> Optional[Category]:
        return self._get(self._categories, category_id)

    def list_categories(self, budget_id: str) -> List[Category]:
        group_ids = {g.id for g in self._groups.values() if g.budget_id == budget_id}
        categories = [copy.deepcopy(c) for c in self._categories.values() if c.group_id in group_ids]
        return sorted(categories, key=lambda c: (c.sort_order, c.name))

    def save_category(self, category: Category) -> None:
        self._categories[category.id] = copy.deepcopy(category)

    def delete_category(self, category_id: str) -> None:
        self._categories.pop(category_id, None)

    # CategoryGroup
    def get_category_group(self, group_id: str) -> Optional[CategoryGroup]:
        return self._get(self._groups, group_id)

    def list_category_groups(self, budget_id: str) -> List[CategoryGroup]:
        groups = [copy.deepcopy(g) for g in self._groups.values() if g.budget_id == budget_id]
        return sorted(groups, key=lambda g: (g.sort_order, g.name))

    def save_category_group(self, group: CategoryGroup) -> None:
        self._groups[group.id] = copy.deepcopy(group)

    def delete_category_group(self, group_id: str) -> None:
        self._groups.pop(group_id, None)

    # Payee
    def get_payee(self, payee_id: str) -> Optional[Payee]:
        return self._get(self._payees, payee_id)

    def list_payees(self, budget_id: str) -> List[Payee]:
        payees = [copy.deepcopy(p) for p in self._payees.values() if p.budget_id == budget_id]
        return sorted(payees, key=lambda p: p.name)

    def save_payee(self, payee: Payee) -> None:
        self._payees[payee.id] = copy.deepcopy(payee)

    def delete_payee(self, payee_id: str) -> None:
        self._payees.pop(payee_id, None)

    # Assignment
    def get_assignment(self, category_id: str, month: str) -> Optional[Assignment]:
        return self._get(self._assignments, (category_id, month))

    def _budget_category_ids(self, budget_id: str) -> set:
        group_ids = {g.id for g in self._groups.values() if g.budget_id == budget_id}
        return {c.id for c in self._categories.values() if c.group_id in group_ids}

    def list_assignments(self, budget_id: str, month: str) -> List[Assignment]:
        category_ids = self._budget_category_ids(budget_id)
        return [
            copy.deepcopy(a) for a in self._assignments.values()
            if a.category_id in category_ids and a.month == month
        ]

    def list_all_assignments(self, budget_id: str) -> List[Assignment]:
        category_ids = self._budget_category_ids(budget_id)
        assignments = [
            copy.deepcopy(a) for a in self._assignments.values()
            if a.category_id in category_ids
        ]
        return sorted(assignments, key=lambda a: a.month)

    def save_assignment(self, assignment: Assignment) -> None:
        self._assignments[(assignment.category_id, assignment.month)] = copy.deepcopy(assignment)

    def delete_assignment(self, category_id: str, month: str) -> None:
        self._assignments.pop((category_id, month), None)

    # MonthSummary
    def get_month_summary(self, budget_id: str, month: str) -> Optional[MonthSummary]:
        return self._get(self._summaries, (budget_id, month))

    def list_month_summaries(self, budget_id: str) -> List[MonthSummary]:
        summaries = [copy.deepcopy(s) for s in self._summaries.values() if s.budget_id == budget_id]
        return sorted(summaries, key=lambda s: s.month)

    def save_month_summary(self, summary: MonthSummary) -> None:
        self._summaries[(summary.budget_id, summary.month)] = copy.deepcopy(summary)

    def delete_month_summary(self, budget_id: str, month: str) -> None:
        self._summaries.pop((budget_id, month), None)

    # Target
    def get_target(self, category_id: str) -> Optional[Target]:
        return self._get(self._targets, category_id)

    def list_targets(self, budget_id: str) -> List[Target]:
        category_ids = self._budget_category_ids(budget_id)
        return [copy.deepcopy(t) for t in self._targets.values() if t.category_id in category_ids]

    def save_target(self, target: Target) -> None:
        self._targets[target.category_id] = copy.deepcopy(target)

    def delete_target(self, category_id: str) -> None:
        self._targets.pop(category_id, None)


def export_store(store: LedgerStore) -> Dict[str, Any]:
    """
    Export every budget in the store to the portable dict format.

    Returns:
        {version, schema_version, exported_at, budgets: [...]}
    """
    budgets = []
    for budget in store.list_budgets():
        budgets.append({
            "budget": budget.to_dict(),
            "accounts": [a.to_dict() for a in store.list_accounts(budget.id)],
            "category_groups": [g.to_dict() for g in store.list_category_groups(budget.id)],
            "categories": [c.to_dict() for c in store.list_categories(budget.id)],
            "payees": [p.to_dict() for p in store.list_payees(budget.id)],
            "transactions": [t.to_dict() for t in store.list_all_transactions(budget.id)],
            "assignments": [a.to_dict() for a in store.list_all_assignments(budget.id)],
            "month_summaries": [s.to_dict() for s in store.list_month_summaries(budget.id)],
            "targets": [t.to_dict() for t in store.list_targets(budget.id)],
        })
    logger.info("Exported %d budget(s)", len(budgets))
    return {
        "version": EXPORT_VERSION,
        "schema_version": store.get_schema_version(),
        "exported_at": datetime.now(UTC).isoformat(),
        "budgets": budgets,
    }


def import_store(store: LedgerStore, data: Dict[str, Any]) -> None:
    """
    Replace the store's contents with previously exported data.

    Raises:
        ImportDataError: If the data is malformed or from another schema version
    """
    schema_version = data.get("schema_version")
    current = store.get_schema_version()
    if schema_version != current:
        raise ImportDataError(
            "Cannot import data from a different schema version; migrate it first",
            details={"schema_version": schema_version, "store_version": current}
        )
    if not isinstance(data.get("budgets"), list):
        raise ImportDataError("Export data is missing the 'budgets' list")

    try:
        with store.atomic():
            store.clear()
            for entry in data["budgets"]:
                store.save_budget(Budget.from_dict(entry["budget"]))
                for raw in entry.get("accounts", []):
                    store.save_account(Account.from_dict(raw))
                for raw in entry.get("category_groups", []):
                    store.save_category_group(CategoryGroup.from_dict(raw))
                for raw in entry.get("categories", []):
                    store.save_category(Category.from_dict(raw))
                for raw in entry.get("payees", []):
                    store.save_payee(Payee.from_dict(raw))
                for raw in entry.get("transactions", []):
                    store.save_transaction(Transaction.from_dict(raw))
                for raw in entry.get("assignments", []):
                    store.save_assignment(Assignment.from_dict(raw))
                for raw in entry.get("month_summaries", []):
                    store.save_month_summary(MonthSummary.from_dict(raw))
                for raw in entry.get("targets", []):
                    store.save_target(Target.from_dict(raw))
    except (KeyError, TypeError, ValueError) as exc:
        raise ImportDataError("Malformed export data", original_error=exc) from exc

    logger.info("Imported %d budget(s)", len(data["budgets"]))


def save_export(store: LedgerStore, path: Union[str, Path]) -> Path:
    """Write the store export as JSON and return the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(export_store(store), f, indent=2)
    logger.info("Saved export to %s", path)
    return path


def load_export(store: LedgerStore, path: Union[str, Path]) -> None:
    """Read a JSON export from disk and import it into the store."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ImportDataError(f"Unable to read export file '{path}'", original_error=exc) from exc
    import_store(store, data)
