"""
SQLite/SQLAlchemy ledger store.

This module defines the ORM schema for budgets, accounts, categories,
transactions, assignments, category targets and cached month summaries, the
DatabaseManager that owns the engine and sessions, and SQLStore, the
LedgerStore backend built on top of them. Supports SQLite by default; any
SQLAlchemy URL with JSON support works.
"""

import logging
from contextlib import contextmanager
from dataclasses import fields
from typing import Iterator, List, Optional, Type, TypeVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from exceptions import DatabaseError
from ledger_store import LedgerStore
from models import (
    Account,
    AccountType,
    Assignment,
    Budget,
    Category,
    CategoryGroup,
    MonthSummary,
    Payee,
    Target,
    TargetType,
    Transaction,
)

# Configure logging
logger = logging.getLogger(__name__)

E = TypeVar("E")

# Base class for declarative models
Base = declarative_base()


class BudgetRow(Base):
    """Budget table."""

    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)


class AccountRow(Base):
    """Account table. Only on_budget accounts feed Ready to Assign."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)
    budget_id = Column(String(36), ForeignKey("budgets.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(Enum(AccountType), nullable=False)
    on_budget = Column(Boolean, nullable=False, default=True)


class CategoryGroupRow(Base):
    """Category group table."""

    __tablename__ = "category_groups"

    id = Column(String(36), primary_key=True)
    budget_id = Column(String(36), ForeignKey("budgets.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)


class CategoryRow(Base):
    """Category table."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    group_id = Column(String(36), ForeignKey("category_groups.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)


class PayeeRow(Base):
    """Payee table."""

    __tablename__ = "payees"

    id = Column(String(36), primary_key=True)
    budget_id = Column(String(36), ForeignKey("budgets.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)


class TransactionRow(Base):
    """
    Transaction table.

    Dates are stored as YYYY-MM-DD strings so range filters compare
    lexicographically. Amounts are integer cents.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    date = Column(String(10), nullable=False)
    amount = Column(Integer, nullable=False)
    category_id = Column(String(36), nullable=True, index=True)
    payee_id = Column(String(36), nullable=True)
    memo = Column(String(500), nullable=True)
    cleared = Column(Boolean, nullable=False, default=False)
    transfer_account_id = Column(String(36), nullable=True)
    transfer_id = Column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index("idx_transactions_account_date", "account_id", "date"),
    )


class AssignmentRow(Base):
    """Assignment table, unique per (category, month)."""

    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    month = Column(String(7), nullable=False)
    amount = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("category_id", "month", name="uq_assignment_category_month"),
    )


class MonthSummaryRow(Base):
    """Cached month summary table, unique per (budget, month)."""

    __tablename__ = "month_summaries"

    id = Column(String(36), primary_key=True)
    budget_id = Column(String(36), ForeignKey("budgets.id"), nullable=False)
    month = Column(String(7), nullable=False)
    closing_rta = Column(Integer, nullable=False)
    category_balances = Column(JSON, nullable=False)
    updated_at = Column(String(40), nullable=False)

    __table_args__ = (
        UniqueConstraint("budget_id", "month", name="uq_month_summary_budget_month"),
    )


class TargetRow(Base):
    """Category target table, at most one row per category."""

    __tablename__ = "targets"

    id = Column(String(36), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, unique=True)
    type = Column(Enum(TargetType), nullable=False)
    amount = Column(Integer, nullable=False)
    target_date = Column(String(10), nullable=True)
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False)


class DatabaseManager:
    """
    Manages database connections and sessions.

    Owns the SQLAlchemy engine and session factory; SQLStore borrows
    sessions from it.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the database manager.

        Args:
            connection_string: SQLAlchemy connection string (e.g., 'sqlite:///data/budget.db')

        Raises:
            DatabaseError: If the engine cannot be created
        """
        try:
            self.engine = create_engine(connection_string, echo=False)
            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
            logger.info(f"Database manager initialized with connection: {connection_string}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError("Failed to initialize database", original_error=e) from e

    def create_tables(self) -> None:
        """
        Create all database tables if they don't exist.

        Raises:
            DatabaseError: If table creation fails
        """
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created/verified successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise DatabaseError("Failed to create database tables", original_error=e) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")


def _to_entity(row, entity_cls: Type[E]) -> E:
    return entity_cls(**{f.name: getattr(row, f.name) for f in fields(entity_cls)})


def _to_values(entity) -> dict:
    return {f.name: getattr(entity, f.name) for f in fields(entity)}


class SQLStore(LedgerStore):
    """
    LedgerStore backed by a SQLAlchemy database.

    Every call runs in its own session unless it happens inside atomic(),
    in which case all calls share one session that commits once at the end.
    """

    def __init__(self, db_manager: DatabaseManager, create_tables: bool = True):
        """
        Initialize the store.

        Args:
            db_manager: DatabaseManager instance
            create_tables: Create missing tables on startup
        """
        self.db_manager = db_manager
        self._active_session: Optional[Session] = None
        if create_tables:
            self.db_manager.create_tables()
        logger.info("SQL ledger store initialized")

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "SQLStore":
        return cls(DatabaseManager(connection_string))

    def close(self) -> None:
        self.db_manager.close()

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        if self._active_session is not None:
            yield self._active_session
            return

        session = self.db_manager.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Ledger store operation failed: {e}")
            raise DatabaseError("Ledger store operation failed", original_error=e) from e
        finally:
            session.close()

    @contextmanager
    def atomic(self) -> Iterator["SQLStore"]:
        """Share one session across the block; commit once or roll back everything."""
        if self._active_session is not None:
            yield self
            return

        session = self.db_manager.get_session()
        self._active_session = session
        try:
            yield self
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Atomic ledger update failed: {e}")
            raise DatabaseError("Atomic ledger update failed", original_error=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            self._active_session = None
            session.close()

    # Generic helpers
    def _get(self, row_cls, entity_cls, key) -> Optional[E]:
        with self._session_scope() as session:
            row = session.get(row_cls, key)
            return _to_entity(row, entity_cls) if row is not None else None

    def _merge(self, row_cls, entity) -> None:
        with self._session_scope() as session:
            session.merge(row_cls(**_to_values(entity)))
            session.flush()

    def _delete(self, row_cls, key) -> None:
        with self._session_scope() as session:
            row = session.get(row_cls, key)
            if row is not None:
                session.delete(row)
                session.flush()

    def _list(self, entity_cls, query) -> List[E]:
        return [_to_entity(row, entity_cls) for row in query.all()]

    # Budget
    def get_budget(self, budget_id: str) -> Optional[Budget]:
        return self._get(BudgetRow, Budget, budget_id)

    def list_budgets(self) -> List[Budget]:
        with self._session_scope() as session:
            return self._list(Budget, session.query(BudgetRow).order_by(BudgetRow.created_at))

    def save_budget(self, budget: Budget) -> None:
        self._merge(BudgetRow, budget)

    def delete_budget(self, budget_id: str) -> None:
        self._delete(BudgetRow, budget_id)

    # Account
    def get_account(self, account_id: str) -> Optional[Account]:
        return self._get(AccountRow, Account, account_id)

    def list_accounts(self, budget_id: str) -> List[Account]:
        with self._session_scope() as session:
            query = session.query(AccountRow).filter(AccountRow.budget_id == budget_id)
            return self._list(Account, query.order_by(AccountRow.name))

    def save_account(self, account: Account) -> None:
        self._merge(AccountRow, account)

    def delete_account(self, account_id: str) -> None:
        self._delete(AccountRow, account_id)

    # Transaction
    @staticmethod
    def _date_filter(query, date_from: Optional[str], date_to: Optional[str]):
        if date_from:
            query = query.filter(TransactionRow.date >= date_from)
        if date_to:
            query = query.filter(TransactionRow.date <= date_to)
        return query.order_by(TransactionRow.date.asc())

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._get(TransactionRow, Transaction, transaction_id)

    def list_transactions(self, account_id, date_from=None, date_to=None):
        with self._session_scope() as session:
            query = session.query(TransactionRow).filter(TransactionRow.account_id == account_id)
            return self._list(Transaction, self._date_filter(query, date_from, date_to))

    def list_all_transactions(self, budget_id, date_from=None, date_to=None):
        with self._session_scope() as session:
            query = (
                session.query(TransactionRow)
                .join(AccountRow, TransactionRow.account_id == AccountRow.id)
                .filter(AccountRow.budget_id == budget_id)
            )
            return self._list(Transaction, self._date_filter(query, date_from, date_to))

    def save_transaction(self, transaction: Transaction) -> None:
        self._merge(TransactionRow, transaction)

    def delete_transaction(self, transaction_id: str) -> None:
        self._delete(TransactionRow, transaction_id)

    # Category
    def get_category(self, category_id: str) -> Optional[Category]:
        return self._get(CategoryRow, Category, category_id)

    def list_categories(self, budget_id: str) -> List[Category]:
        with self._session_scope() as session:
            query = (
                session.query(CategoryRow)
                .join(CategoryGroupRow, CategoryRow.group_id == CategoryGroupRow.id)
                .filter(CategoryGroupRow.budget_id == budget_id)
                .order_by(CategoryRow.sort_order, CategoryRow.name)
            )
            return self._list(Category, query)

    def save_category(self, category: Category) -> None:
        self._merge(CategoryRow, category)

    def delete_category(self, category_id: str) -> None:
        self._delete(CategoryRow, category_id)

    # CategoryGroup
    def get_category_group(self, group_id: str) -> Optional[CategoryGroup]:
        return self._get(CategoryGroupRow, CategoryGroup, group_id)

    def list_category_groups(self, budget_id: str) -> List[CategoryGroup]:
        with self._session_scope() as session:
            query = (
                session.query(CategoryGroupRow)
                .filter(CategoryGroupRow.budget_id == budget_id)
                .order_by(CategoryGroupRow.sort_order, CategoryGroupRow.name)
            )
            return self._list(CategoryGroup, query)

    def save_category_group(self, group: CategoryGroup) -> None:
        self._merge(CategoryGroupRow, group)

    def delete_category_group(self, group_id: str) -> None:
        self._delete(CategoryGroupRow, group_id)

    # Payee
    def get_payee(self, payee_id: str) -> Optional[Payee]:
        return self._get(PayeeRow, Payee, payee_id)

    def list_payees(self, budget_id: str) -> List[Payee]:
        with self._session_scope() as session:
            query = session.query(PayeeRow).filter(PayeeRow.budget_id == budget_id)
            return self._list(Payee, query.order_by(PayeeRow.name))

    def save_payee(self, payee: Payee) -> None:
        self._merge(PayeeRow, payee)

    def delete_payee(self, payee_id: str) -> None:
        self._delete(PayeeRow, payee_id)

    # Assignment
    def _budget_assignments(self, session: Session, budget_id: str):
        return (
            session.query(AssignmentRow)
            .join(CategoryRow, AssignmentRow.category_id == CategoryRow.id)
            .join(CategoryGroupRow, CategoryRow.group_id == CategoryGroupRow.id)
            .filter(CategoryGroupRow.budget_id == budget_id)
        )

    def get_assignment(self, category_id: str, month: str) -> Optional[Assignment]:
        with self._session_scope() as session:
            row = session.query(AssignmentRow).filter(
                AssignmentRow.category_id == category_id,
                AssignmentRow.month == month
            ).first()
            return _to_entity(row, Assignment) if row is not None else None

    def list_assignments(self, budget_id: str, month: str) -> List[Assignment]:
        with self._session_scope() as session:
            query = self._budget_assignments(session, budget_id).filter(AssignmentRow.month == month)
            return self._list(Assignment, query)

    def list_all_assignments(self, budget_id: str) -> List[Assignment]:
        with self._session_scope() as session:
            query = self._budget_assignments(session, budget_id).order_by(AssignmentRow.month)
            return self._list(Assignment, query)

    def save_assignment(self, assignment: Assignment) -> None:
        with self._session_scope() as session:
            existing = session.query(AssignmentRow).filter(
                AssignmentRow.category_id == assignment.category_id,
                AssignmentRow.month == assignment.month
            ).first()
            if existing is not None and existing.id == assignment.id:
                existing.amount = assignment.amount
            else:
                if existing is not None:
                    session.delete(existing)
                    session.flush()
                session.add(AssignmentRow(**_to_values(assignment)))
            session.flush()

    def delete_assignment(self, category_id: str, month: str) -> None:
        with self._session_scope() as session:
            session.query(AssignmentRow).filter(
                AssignmentRow.category_id == category_id,
                AssignmentRow.month == month
            ).delete()

    # MonthSummary
    def get_month_summary(self, budget_id: str, month: str) -> Optional[MonthSummary]:
        with self._session_scope() as session:
            row = session.query(MonthSummaryRow).filter(
                MonthSummaryRow.budget_id == budget_id,
                MonthSummaryRow.month == month
            ).first()
            return _to_entity(row, MonthSummary) if row is not None else None

    def list_month_summaries(self, budget_id: str) -> List[MonthSummary]:
        with self._session_scope() as session:
            query = (
                session.query(MonthSummaryRow)
                .filter(MonthSummaryRow.budget_id == budget_id)
                .order_by(MonthSummaryRow.month.asc())
            )
            return self._list(MonthSummary, query)

    def save_month_summary(self, summary: MonthSummary) -> None:
        with self._session_scope() as session:
            existing = session.query(MonthSummaryRow).filter(
                MonthSummaryRow.budget_id == summary.budget_id,
                MonthSummaryRow.month == summary.month
            ).first()
            if existing is not None:
                existing.closing_rta = summary.closing_rta
                existing.category_balances = dict(summary.category_balances)
                existing.updated_at = summary.updated_at
            else:
                session.add(MonthSummaryRow(**_to_values(summary)))
            session.flush()

    def delete_month_summary(self, budget_id: str, month: str) -> None:
        with self._session_scope() as session:
            session.query(MonthSummaryRow).filter(
                MonthSummaryRow.budget_id == budget_id,
                MonthSummaryRow.month == month
            ).delete()

    # Target
    def get_target(self, category_id: str) -> Optional[Target]:
        with self._session_scope() as session:
            row = session.query(TargetRow).filter(TargetRow.category_id == category_id).first()
            return _to_entity(row, Target) if row is not None else None

    def list_targets(self, budget_id: str) -> List[Target]:
        with self._session_scope() as session:
            query = (
                session.query(TargetRow)
                .join(CategoryRow, TargetRow.category_id == CategoryRow.id)
                .join(CategoryGroupRow, CategoryRow.group_id == CategoryGroupRow.id)
                .filter(CategoryGroupRow.budget_id == budget_id)
            )
            return self._list(Target, query)

    def save_target(self, target: Target) -> None:
        with self._session_scope() as session:
            existing = session.query(TargetRow).filter(
                TargetRow.category_id == target.category_id
            ).first()
            if existing is not None:
                existing.type = target.type
                existing.amount = target.amount
                existing.target_date = target.target_date
                existing.updated_at = target.updated_at
            else:
                session.add(TargetRow(**_to_values(target)))
            session.flush()

    def delete_target(self, category_id: str) -> None:
        with self._session_scope() as session:
            session.query(TargetRow).filter(TargetRow.category_id == category_id).delete()
