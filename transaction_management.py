"""
Transaction management module.

Creates, edits and deletes transactions and two-legged transfers between
accounts. Mutations refresh the month summary cache from the month they
affect.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from exceptions import TransactionError
from ledger_store import LedgerStore
from models import Account, Transaction, new_id
from month_summary import MonthSummaryCache
from months import month_of

# Configure logging
logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime]

_EDITABLE_FIELDS = {"amount", "date", "category_id", "payee_id", "memo", "cleared"}


def normalize_date(value: DateLike) -> str:
    """
    Convert a date, datetime or YYYY-MM-DD string to YYYY-MM-DD.

    Raises:
        TransactionError: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date().isoformat()
    except ValueError as exc:
        raise TransactionError(
            f"Invalid transaction date '{value}', expected YYYY-MM-DD",
            details={"date": value},
            original_error=exc
        ) from exc


class TransactionManager:
    """
    Manages transactions and transfers.

    Transfers are two transactions sharing a transfer_id: an outflow on the
    source account and an equal inflow on the destination, same date, each
    pointing at the other's account.
    """

    def __init__(self, store: LedgerStore, summary_cache: Optional[MonthSummaryCache] = None):
        """
        Initialize the transaction manager.

        Args:
            store: LedgerStore instance
            summary_cache: Month summary cache to refresh after writes
        """
        self.store = store
        self.summary_cache = summary_cache or MonthSummaryCache(store)
        logger.info("Transaction manager initialized")

    # Validation helpers
    def _require_account(self, account_id: str, role: str = "account_id") -> Account:
        account = self.store.get_account(account_id)
        if account is None:
            raise TransactionError(
                f"Account '{account_id}' does not exist",
                details={role: account_id}
            )
        return account

    def _check_category(self, category_id: Optional[str], budget_id: str) -> None:
        if category_id is None:
            return
        if self.store.budget_id_for_category(category_id) != budget_id:
            raise TransactionError(
                f"Category '{category_id}' does not exist in this budget",
                details={"category_id": category_id, "budget_id": budget_id}
            )

    def _check_payee(self, payee_id: Optional[str], budget_id: str) -> None:
        if payee_id is None:
            return
        payee = self.store.get_payee(payee_id)
        if payee is None or payee.budget_id != budget_id:
            raise TransactionError(
                f"Payee '{payee_id}' does not exist in this budget",
                details={"payee_id": payee_id, "budget_id": budget_id}
            )

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TransactionError(
                "Transaction amounts must be integer cents",
                details={"amount": amount}
            )

    def _refresh(self, changes: Iterable[Tuple[str, str]]) -> None:
        """Invalidate each affected budget once, from its earliest changed month."""
        earliest: Dict[str, str] = {}
        for account_id, txn_date in changes:
            budget_id = self.store.budget_id_for_account(account_id)
            if budget_id is None:
                continue
            month = month_of(txn_date)
            if budget_id not in earliest or month < earliest[budget_id]:
                earliest[budget_id] = month
        for budget_id, month in earliest.items():
            self.summary_cache.invalidate(budget_id, month)

    # Operations
    def add_transaction(
        self,
        account_id: str,
        amount: int,
        date: DateLike,
        category_id: Optional[str] = None,
        payee_id: Optional[str] = None,
        memo: Optional[str] = None,
        cleared: bool = False
    ) -> Transaction:
        """
        Record a new transaction.

        Args:
            account_id: Account the money moves in
            amount: Signed cents, negative for outflows
            date: Transaction date
            category_id: Optional category of the account's budget
            payee_id: Optional payee of the account's budget
            memo: Optional note
            cleared: Whether the bank has cleared it

        Returns:
            The saved Transaction

        Raises:
            TransactionError: If a referenced entity does not exist or input is invalid
        """
        self._check_amount(amount)
        account = self._require_account(account_id)
        txn_date = normalize_date(date)
        self._check_category(category_id, account.budget_id)
        self._check_payee(payee_id, account.budget_id)

        transaction = Transaction(
            account_id=account_id,
            date=txn_date,
            amount=amount,
            category_id=category_id,
            payee_id=payee_id,
            memo=memo,
            cleared=cleared,
        )
        self.store.save_transaction(transaction)
        self.summary_cache.invalidate(account.budget_id, month_of(txn_date))

        logger.info(f"Added transaction {transaction.id}: {amount} on {txn_date} to account {account_id}")
        return transaction

    def find_transfer_partner(self, transaction: Transaction) -> Optional[Transaction]:
        """
        Locate the other leg of a transfer.

        Legs sharing a transfer_id are matched on it. Older rows without one
        fall back to the first transaction on the other account that points
        back at this account on the same date.
        """
        if not transaction.is_transfer:
            return None

        candidates = self.store.list_transactions(transaction.transfer_account_id)
        if transaction.transfer_id:
            for candidate in candidates:
                if candidate.transfer_id == transaction.transfer_id and candidate.id != transaction.id:
                    return candidate
            return None

        for candidate in candidates:
            if (
                candidate.id != transaction.id
                and candidate.transfer_account_id == transaction.account_id
                and candidate.date == transaction.date
            ):
                return candidate
        return None

    def create_transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: int,
        date: DateLike,
        memo: Optional[str] = None,
        cleared: bool = False
    ) -> Tuple[Transaction, Transaction]:
        """
        Move money between two accounts.

        Creates an outflow of -abs(amount) on the source and an inflow of
        abs(amount) on the destination. Neither leg is categorized.

        Returns:
            Tuple of (outflow, inflow)

        Raises:
            TransactionError: If either account is unknown or both are the same
        """
        self._check_amount(amount)
        self._require_account(from_account_id, "from_account_id")
        self._require_account(to_account_id, "to_account_id")
        if from_account_id == to_account_id:
            raise TransactionError(
                "Cannot transfer an account to itself",
                details={"account_id": from_account_id}
            )
        txn_date = normalize_date(date)
        transfer_id = new_id()

        outflow = Transaction(
            account_id=from_account_id,
            date=txn_date,
            amount=-abs(amount),
            memo=memo,
            cleared=cleared,
            transfer_account_id=to_account_id,
            transfer_id=transfer_id,
        )
        inflow = Transaction(
            account_id=to_account_id,
            date=txn_date,
            amount=abs(amount),
            memo=memo,
            cleared=cleared,
            transfer_account_id=from_account_id,
            transfer_id=transfer_id,
        )

        with self.store.atomic():
            self.store.save_transaction(outflow)
            self.store.save_transaction(inflow)

        self._refresh([(from_account_id, txn_date), (to_account_id, txn_date)])

        logger.info(f"Created transfer {transfer_id}: {abs(amount)} from {from_account_id} to {to_account_id}")
        return outflow, inflow

    def update_transaction(self, transaction_id: str, **changes: Any) -> Optional[Transaction]:
        """
        Edit fields of an existing transaction.

        Editable fields: amount, date, category_id, payee_id, memo, cleared.
        On a transfer leg, amount and date changes are mirrored onto the
        other leg (amount negated).

        Returns:
            The updated Transaction, or None if the id is unknown

        Raises:
            TransactionError: On unknown fields or invalid references
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise TransactionError(
                "Cannot edit transaction fields",
                details={"fields": ", ".join(sorted(unknown))}
            )

        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            return None

        account = self._require_account(transaction.account_id)
        updates: Dict[str, Any] = dict(changes)
        if "amount" in updates:
            self._check_amount(updates["amount"])
        if "date" in updates:
            updates["date"] = normalize_date(updates["date"])
        if "category_id" in updates:
            self._check_category(updates["category_id"], account.budget_id)
        if "payee_id" in updates:
            self._check_payee(updates["payee_id"], account.budget_id)

        old_date = transaction.date
        partner = self.find_transfer_partner(transaction)
        for key, value in updates.items():
            setattr(transaction, key, value)

        with self.store.atomic():
            self.store.save_transaction(transaction)
            if partner is not None and ("amount" in updates or "date" in updates):
                partner_old_date = partner.date
                partner.amount = -transaction.amount
                partner.date = transaction.date
                self.store.save_transaction(partner)
            else:
                partner = None

        changed = [(transaction.account_id, old_date), (transaction.account_id, transaction.date)]
        if partner is not None:
            changed += [(partner.account_id, partner_old_date), (partner.account_id, partner.date)]
        self._refresh(changed)

        logger.info(f"Updated transaction {transaction_id}: {', '.join(sorted(updates))}")
        return transaction

    def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction, and its other leg when it is part of a transfer.

        Returns:
            True if something was deleted, False for an unknown id
        """
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            return False

        partner = self.find_transfer_partner(transaction)
        with self.store.atomic():
            if partner is not None:
                self.store.delete_transaction(partner.id)
            self.store.delete_transaction(transaction_id)

        changed = [(transaction.account_id, transaction.date)]
        if partner is not None:
            changed.append((partner.account_id, partner.date))
        self._refresh(changed)

        logger.info(f"Deleted transaction {transaction_id}" + (f" and transfer leg {partner.id}" if partner else ""))
        return True

    def set_transaction_cleared(self, transaction_id: str, cleared: bool) -> Optional[Transaction]:
        """
        Update a transaction's cleared flag.

        Returns:
            The updated Transaction, or None if the id is unknown
        """
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            return None
        transaction.cleared = cleared
        self.store.save_transaction(transaction)
        logger.debug(f"Transaction {transaction_id} cleared={cleared}")
        return transaction

    def reassign_transaction(self, transaction_id: str, category_id: Optional[str]) -> Optional[Transaction]:
        """
        Move a transaction to another category (or uncategorize it with None).

        Returns:
            The updated Transaction, or None if the id is unknown

        Raises:
            TransactionError: If the category is not part of the account's budget
        """
        return self.update_transaction(transaction_id, category_id=category_id)
