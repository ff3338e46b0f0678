"""Framework-agnostic business services for the personal finance manager."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from .exceptions import (
    InsufficientFundsError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from .models import ZERO, Budget, Transaction, TransactionType, Wallet
from .repositories import WalletRepository
from .validators import parse_amount, unique_categories, validate_description

logger = logging.getLogger(__name__)

TRANSFER_CATEGORY = "Transfer"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _new_id() -> str:
    return str(uuid4())


def _get_wallet_or_raise(repository: WalletRepository, user_id: str) -> Wallet:
    wallet = repository.find(user_id)
    if wallet is None:
        raise RecordNotFoundError(f"Wallet not found for user: {user_id}")
    return wallet


class LedgerService:
    """Records income, expenses and transfers against wallets in a repository."""

    def __init__(
        self,
        wallets: WalletRepository,
        *,
        clock: Clock = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._wallets = wallets
        self._clock = clock
        self._id_factory = id_factory

    # Wallet lifecycle -----------------------------------------------------
    def create_wallet(self, user_id: str) -> Wallet:
        if self._wallets.exists(user_id):
            raise ValidationError(f"Wallet already exists for user: {user_id}")
        wallet = Wallet(user_id)
        self._wallets.save(wallet)
        logger.info("Created wallet for %s", wallet.user_id)
        return wallet

    def get_wallet(self, user_id: str) -> Wallet:
        return _get_wallet_or_raise(self._wallets, user_id)

    def reset_wallet(self, user_id: str) -> None:
        """Drop every transaction and budget of the wallet. Irreversible."""
        wallet = self.get_wallet(user_id)
        wallet.clear()
        self._wallets.save(wallet)
        logger.info("Reset wallet for %s", user_id)

    def delete_wallet(self, user_id: str) -> None:
        self.get_wallet(user_id)
        self._wallets.delete(user_id)

    # Mutations ------------------------------------------------------------
    def add_income(
        self, user_id: str, category: str, amount: object, description: Optional[str] = None
    ) -> Transaction:
        return self._record(user_id, TransactionType.INCOME, category, amount, description)

    def add_expense(
        self, user_id: str, category: str, amount: object, description: Optional[str] = None
    ) -> Transaction:
        return self._record(user_id, TransactionType.EXPENSE, category, amount, description)

    def transfer(
        self,
        from_user_id: str,
        to_user_id: str,
        amount: object,
        description: Optional[str] = None,
    ) -> Tuple[Transaction, Transaction]:
        """Move ``amount`` from one wallet to another.

        The sender is debited with an expense and saved, then the receiver is
        credited with an income and saved. These are two separate writes: if
        the receiver cannot be saved, the sender is credited back with a
        reversal entry and the storage error is re-raised. Should that
        reversal fail as well, the sender keeps the debit and the error is
        logged before propagating.
        """
        value = parse_amount(amount)
        note = validate_description(description)
        if from_user_id == to_user_id:
            raise ValidationError("Cannot transfer to the same wallet")

        sender = self.get_wallet(from_user_id)
        receiver = self.get_wallet(to_user_id)
        if sender.balance() < value:
            raise InsufficientFundsError(
                f"Insufficient balance for transfer: {sender.balance():.2f} available, "
                f"{value:.2f} requested"
            )

        suffix = f": {note}" if note else ""
        debit = self._new_transaction(
            TransactionType.EXPENSE, TRANSFER_CATEGORY, value, f"Transfer to {to_user_id}{suffix}"
        )
        credit = self._new_transaction(
            TransactionType.INCOME, TRANSFER_CATEGORY, value, f"Transfer from {from_user_id}{suffix}"
        )

        sender.add_transaction(debit)
        self._wallets.save(sender)
        receiver.add_transaction(credit)
        try:
            self._wallets.save(receiver)
        except PersistenceError:
            logger.error(
                "Crediting %s failed; reversing transfer of %.2f from %s",
                to_user_id,
                value,
                from_user_id,
            )
            self._compensate(sender, value, to_user_id)
            raise

        logger.info("Transferred %.2f from %s to %s", value, from_user_id, to_user_id)
        return debit, credit

    # Read-only queries ----------------------------------------------------
    def transactions(self, user_id: str) -> Tuple[Transaction, ...]:
        return self.get_wallet(user_id).transactions

    def total_income(self, user_id: str) -> Decimal:
        return self.get_wallet(user_id).total_income()

    def total_expense(self, user_id: str) -> Decimal:
        return self.get_wallet(user_id).total_expense()

    def balance(self, user_id: str) -> Decimal:
        return self.get_wallet(user_id).balance()

    def income_by_category(self, user_id: str) -> Dict[str, Decimal]:
        return self.get_wallet(user_id).income_by_category()

    def expense_by_category(self, user_id: str) -> Dict[str, Decimal]:
        return self.get_wallet(user_id).expense_by_category()

    def income_for_categories(self, user_id: str, categories: Iterable[str]) -> Decimal:
        totals = self.income_by_category(user_id)
        return sum((totals.get(c, ZERO) for c in unique_categories(categories)), start=ZERO)

    def expense_for_categories(self, user_id: str, categories: Iterable[str]) -> Decimal:
        totals = self.expense_by_category(user_id)
        return sum((totals.get(c, ZERO) for c in unique_categories(categories)), start=ZERO)

    def transactions_for_categories(
        self, user_id: str, categories: Iterable[str]
    ) -> List[Transaction]:
        return self.get_wallet(user_id).transactions_for_categories(categories)

    def unknown_categories(self, user_id: str, categories: Iterable[str]) -> List[str]:
        """Requested categories that no transaction of the wallet uses."""
        known = {t.category for t in self.transactions(user_id)}
        return [c for c in unique_categories(categories) if c not in known]

    # Internal helpers -----------------------------------------------------
    def _record(
        self,
        user_id: str,
        kind: TransactionType,
        category: str,
        amount: object,
        description: Optional[str],
    ) -> Transaction:
        wallet = self.get_wallet(user_id)
        transaction = self._new_transaction(kind, category, amount, description)
        wallet.add_transaction(transaction)
        self._wallets.save(wallet)
        logger.info(
            "Recorded %s of %.2f in %r for %s",
            kind.value,
            transaction.amount,
            transaction.category,
            user_id,
        )
        return transaction

    def _new_transaction(
        self, kind: TransactionType, category: str, amount: object, description: Optional[str]
    ) -> Transaction:
        return Transaction(
            id=self._id_factory(),
            type=kind,
            category=category,
            amount=amount,
            timestamp=self._clock(),
            description=description,
        )

    def _compensate(self, sender: Wallet, value: Decimal, to_user_id: str) -> None:
        reversal = self._new_transaction(
            TransactionType.INCOME,
            TRANSFER_CATEGORY,
            value,
            f"Reversal of transfer to {to_user_id}",
        )
        sender.add_transaction(reversal)
        try:
            self._wallets.save(sender)
        except PersistenceError:
            logger.exception(
                "Could not reverse transfer for %s; wallet keeps the %.2f debit",
                sender.user_id,
                value,
            )
            raise


@dataclass(frozen=True)
class BudgetStatus:
    category: str
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: Decimal

    @property
    def exceeded(self) -> bool:
        return self.remaining < 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "category": self.category,
            "limit": f"{self.limit:.2f}",
            "spent": f"{self.spent:.2f}",
            "remaining": f"{self.remaining:.2f}",
            "percentage": f"{self.percentage:.2f}",
            "exceeded": self.exceeded,
        }


class BudgetService:
    """Manages per-category budgets and evaluates spending against them."""

    def __init__(self, wallets: WalletRepository) -> None:
        self._wallets = wallets

    def set_budget(self, user_id: str, category: str, limit: object) -> Budget:
        wallet = _get_wallet_or_raise(self._wallets, user_id)
        budget = wallet.set_budget(category, limit)
        self._wallets.save(wallet)
        logger.info("Budget for %r set to %.2f for %s", budget.category, budget.limit, user_id)
        return budget

    def get_budget(self, user_id: str, category: str) -> Optional[Budget]:
        return _get_wallet_or_raise(self._wallets, user_id).get_budget(category)

    def all_budgets(self, user_id: str) -> Dict[str, Budget]:
        return dict(_get_wallet_or_raise(self._wallets, user_id).budgets)

    def remove_budget(self, user_id: str, category: str) -> None:
        wallet = _get_wallet_or_raise(self._wallets, user_id)
        wallet.remove_budget(category)
        self._wallets.save(wallet)
        logger.info("Budget for %r removed for %s", category, user_id)

    def remaining_budget(self, user_id: str, category: str) -> Decimal:
        return _get_wallet_or_raise(self._wallets, user_id).remaining_budget(category)

    def is_exceeded(self, user_id: str, category: str) -> bool:
        return self.remaining_budget(user_id, category) < 0

    def usage_percentage(self, user_id: str, category: str) -> Decimal:
        """Spent-to-limit ratio times 100; not capped, so overspending reads above 100."""
        return _usage(_get_wallet_or_raise(self._wallets, user_id), category)

    def budget_status(self, user_id: str) -> List[BudgetStatus]:
        wallet = _get_wallet_or_raise(self._wallets, user_id)
        statuses = []
        for category, budget in wallet.budgets.items():
            spent = wallet.expense_for_category(category)
            statuses.append(
                BudgetStatus(
                    category=category,
                    limit=budget.limit,
                    spent=spent,
                    remaining=budget.limit - spent,
                    percentage=_usage(wallet, category),
                )
            )
        return statuses


def _usage(wallet: Wallet, category: str) -> Decimal:
    budget = wallet.get_budget(category)
    if budget is None or budget.limit == 0:
        return Decimal("0")
    return wallet.expense_for_category(category) / budget.limit * 100
