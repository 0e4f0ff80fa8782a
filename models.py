"""
Domain entities for the budget ledger.

Plain dataclasses exchanged between the ledger store and the services.
Amounts are integer cents, dates are "YYYY-MM-DD" strings and months are
"YYYY-MM" strings. Category balances are never stored on a Category; they
are always computed per (category, month).
"""

import enum
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from typing import Any, Dict, Optional, Type, TypeVar

T = TypeVar("T")


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    """Generate a unique entity identifier."""
    return str(uuid.uuid4())


class AccountType(enum.Enum):
    """Enumeration of account types."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    CASH = "cash"
    TRACKING = "tracking"


class _Entity:
    """Shared dict conversion for the dataclasses below."""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, enum.Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Budget(_Entity):
    """Root container for accounts, categories and assignments."""
    name: str
    currency: str = "USD"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Account(_Entity):
    """
    A financial account holding actual money.

    Attributes:
        budget_id: Parent budget
        name: Display name
        type: AccountType
        on_budget: Whether inflows count toward Ready to Assign
    """
    budget_id: str
    name: str
    type: AccountType = AccountType.CHECKING
    on_budget: bool = True
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if not isinstance(self.type, AccountType):
            self.type = AccountType(self.type)


def create_account(
    budget_id: str,
    name: str,
    account_type: AccountType = AccountType.CHECKING,
    on_budget: Optional[bool] = None
) -> Account:
    """Create an Account; tracking accounts default to off-budget."""
    account_type = AccountType(account_type)
    if on_budget is None:
        on_budget = account_type is not AccountType.TRACKING
    return Account(budget_id=budget_id, name=name, type=account_type, on_budget=on_budget)


@dataclass
class CategoryGroup(_Entity):
    """Organizational container for related categories."""
    budget_id: str
    name: str
    sort_order: int = 0
    id: str = field(default_factory=new_id)


@dataclass
class Category(_Entity):
    """A spending envelope. Holds no balance itself."""
    group_id: str
    name: str
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Payee(_Entity):
    """Counterparty of a transaction."""
    budget_id: str
    name: str
    id: str = field(default_factory=new_id)


@dataclass
class Transaction(_Entity):
    """
    A single ledger entry on one account.

    Attributes:
        account_id: Owning account
        date: YYYY-MM-DD
        amount: Signed cents, negative for outflows
        category_id: Optional envelope the amount counts against
        payee_id: Optional payee
        memo: Free text
        cleared: Whether the bank has cleared it
        transfer_account_id: Other account when this is one leg of a transfer
        transfer_id: Identifier shared by both legs of a transfer
    """
    account_id: str
    date: str
    amount: int
    category_id: Optional[str] = None
    payee_id: Optional[str] = None
    memo: Optional[str] = None
    cleared: bool = False
    transfer_account_id: Optional[str] = None
    transfer_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def is_transfer(self) -> bool:
        return self.transfer_account_id is not None


@dataclass
class Assignment(_Entity):
    """Money assigned to one category for one month (not cumulative)."""
    category_id: str
    month: str
    amount: int
    id: str = field(default_factory=new_id)


@dataclass
class MonthSummary(_Entity):
    """
    Cached closing figures for one (budget, month).

    Attributes:
        closing_rta: Ready to Assign at the end of the month
        category_balances: category_id -> cumulative available at month end
    """
    budget_id: str
    month: str
    closing_rta: int = 0
    category_balances: Dict[str, int] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    updated_at: str = field(default_factory=utc_now)


class TargetType(enum.Enum):
    """Enumeration of category target types."""
    SPENDING_LIMIT = "spending_limit"
    SAVINGS_BALANCE = "savings_balance"
    MONTHLY_CONTRIBUTION = "monthly_contribution"


@dataclass
class Target(_Entity):
    """
    A goal attached to one category. A category has at most one target.

    Attributes:
        category_id: Category the target belongs to
        type: TargetType
        amount: Goal in cents, always positive
        target_date: Optional YYYY-MM-DD deadline
    """
    category_id: str
    type: TargetType = TargetType.SPENDING_LIMIT
    amount: int = 0
    target_date: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.type, TargetType):
            self.type = TargetType(self.type)
