"""Data models for the personal finance domain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .exceptions import ValidationError
from .validators import (
    parse_amount,
    parse_limit,
    validate_category,
    validate_description,
    validate_required_str,
    validate_timestamp,
    validate_user_id,
)

__all__ = [
    "Budget",
    "Transaction",
    "User",
    "TransactionType",
    "Wallet",
    "ZERO",
    "isoformat_utc",
    "parse_datetime",
]

ZERO = Decimal("0.00")


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO 8601 string with trailing Z for UTC-aware datetimes."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    iso = dt.isoformat(timespec="seconds")
    # datetime.isoformat renders +00:00 for UTC; replace with the shorter Z form.
    return iso.replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse ISO 8601 datetime strings with optional trailing Z into UTC-aware datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid ISO 8601 datetime: {value!r}") from exc
    if dt.tzinfo is None:
        # Treat naive datetimes as UTC to avoid accidental timezone drift.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class TransactionType(str, Enum):
    """Whether a transaction adds to or draws from the wallet."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def from_str(cls, value: str) -> "TransactionType":
        """Coerce arbitrary casing into a valid transaction type."""
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as exc:
            raise ValidationError(f"Unsupported transaction type: {value}") from exc


@dataclass(frozen=True, eq=False)
class Transaction:
    """An immutable income or expense event.

    Two transactions compare equal when their ids match, whatever the other
    fields hold.
    """

    id: str
    type: TransactionType
    category: str
    amount: Decimal
    timestamp: datetime
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.type, TransactionType):
            raise ValidationError("type must be a TransactionType")
        # Frozen dataclass: normalised values are written through object.__setattr__.
        object.__setattr__(self, "id", validate_required_str(self.id, "id", 64))
        object.__setattr__(self, "category", validate_category(self.category))
        object.__setattr__(self, "amount", parse_amount(self.amount))
        object.__setattr__(self, "timestamp", validate_timestamp(self.timestamp))
        object.__setattr__(self, "description", validate_description(self.description))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the transaction to JSON-friendly natives."""
        return {
            "id": self.id,
            "type": self.type.value,
            "category": self.category,
            "amount": f"{self.amount:.2f}",
            "timestamp": isoformat_utc(self.timestamp),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Hydrate a Transaction from JSON-native data."""
        try:
            return cls(
                id=data["id"],
                type=TransactionType.from_str(data["type"]),
                category=data["category"],
                amount=Decimal(str(data["amount"])),
                timestamp=parse_datetime(data["timestamp"]),
                description=data.get("description") or "",
            )
        except KeyError as exc:
            raise ValidationError(f"Transaction record is missing {exc.args[0]!r}") from exc

    def __str__(self) -> str:
        return (
            f"{self.type.value}: {self.category} - {self.amount:.2f} "
            f"({self.timestamp.date().isoformat()}) [{self.description}]"
        )


class Budget:
    """A spending cap for one expense category.

    The category is fixed; the limit can be changed through the ``limit``
    property, which re-validates. Budgets compare equal by category.
    """

    __slots__ = ("_category", "_limit")

    def __init__(self, category: str, limit: object) -> None:
        self._category = validate_category(category)
        self._limit = parse_limit(limit)

    @property
    def category(self) -> str:
        return self._category

    @property
    def limit(self) -> Decimal:
        return self._limit

    @limit.setter
    def limit(self, value: object) -> None:
        self._limit = parse_limit(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Budget):
            return NotImplemented
        return self._category == other._category

    def __hash__(self) -> int:
        return hash(self._category)

    def __repr__(self) -> str:
        return f"Budget(category={self._category!r}, limit={self._limit!r})"

    def __str__(self) -> str:
        return f"{self._category}: {self._limit:.2f}"


class Wallet:
    """A user's transactions and budgets, with every total derived on demand."""

    def __init__(self, user_id: str) -> None:
        self._user_id = validate_user_id(user_id)
        self._transactions: List[Transaction] = []
        self._budgets: Dict[str, Budget] = {}

    @property
    def user_id(self) -> str:
        return self._user_id

    # Transactions ---------------------------------------------------------
    def add_transaction(self, transaction: Transaction) -> None:
        if transaction is None:
            raise ValidationError("transaction cannot be None")
        if not isinstance(transaction, Transaction):
            raise ValidationError("transaction must be a Transaction instance")
        self._transactions.append(transaction)

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    def transactions_for_categories(self, categories: Iterable[str]) -> List[Transaction]:
        wanted = set(categories)
        return [t for t in self._transactions if t.category in wanted]

    # Budgets --------------------------------------------------------------
    def set_budget(self, category: str, limit: object) -> Budget:
        """Create or overwrite the budget for ``category``."""
        category = validate_category(category)
        existing = self._budgets.get(category)
        if existing is not None:
            existing.limit = limit
            return existing
        budget = Budget(category, limit)
        self._budgets[category] = budget
        return budget

    def get_budget(self, category: str) -> Optional[Budget]:
        return self._budgets.get(category)

    @property
    def budgets(self) -> Mapping[str, Budget]:
        return MappingProxyType(self._budgets)

    def remove_budget(self, category: str) -> None:
        self._budgets.pop(category, None)

    # Derived values -------------------------------------------------------
    def _sum(self, kind: TransactionType, category: Optional[str] = None) -> Decimal:
        return sum(
            (
                t.amount
                for t in self._transactions
                if t.type is kind and (category is None or t.category == category)
            ),
            start=ZERO,
        )

    def _group(self, kind: TransactionType) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = {}
        for t in self._transactions:
            if t.type is kind:
                totals[t.category] = totals.get(t.category, ZERO) + t.amount
        return totals

    def total_income(self) -> Decimal:
        return self._sum(TransactionType.INCOME)

    def total_expense(self) -> Decimal:
        return self._sum(TransactionType.EXPENSE)

    def balance(self) -> Decimal:
        return self.total_income() - self.total_expense()

    def income_by_category(self) -> Dict[str, Decimal]:
        return self._group(TransactionType.INCOME)

    def expense_by_category(self) -> Dict[str, Decimal]:
        return self._group(TransactionType.EXPENSE)

    def income_for_category(self, category: str) -> Decimal:
        return self._sum(TransactionType.INCOME, category)

    def expense_for_category(self, category: str) -> Decimal:
        return self._sum(TransactionType.EXPENSE, category)

    def remaining_budget(self, category: str) -> Decimal:
        """Limit minus spending; zero when no budget is set for the category."""
        budget = self._budgets.get(category)
        if budget is None:
            return ZERO
        return budget.limit - self.expense_for_category(category)

    def clear(self) -> None:
        self._transactions.clear()
        self._budgets.clear()

    # Serialisation --------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Serialise the wallet; totals are informational and ignored on load."""
        return {
            "user_id": self._user_id,
            "balance": f"{self.balance():.2f}",
            "total_income": f"{self.total_income():.2f}",
            "total_expense": f"{self.total_expense():.2f}",
            "transactions": [t.to_dict() for t in self._transactions],
            "budgets": {
                category: f"{budget.limit:.2f}" for category, budget in self._budgets.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Wallet":
        """Hydrate a Wallet from JSON-native data."""
        try:
            wallet = cls(data["user_id"])
        except KeyError as exc:
            raise ValidationError("Wallet record is missing 'user_id'") from exc
        for payload in data.get("transactions", []):
            wallet.add_transaction(Transaction.from_dict(payload))
        for category, limit in (data.get("budgets") or {}).items():
            wallet.set_budget(category, limit)
        return wallet

    def __repr__(self) -> str:
        return (
            f"Wallet(user_id={self._user_id!r}, transactions={len(self._transactions)}, "
            f"budgets={len(self._budgets)})"
        )


@dataclass(frozen=True, eq=False)
class User:
    username: str
    password_hash: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "username", validate_user_id(self.username, "username"))
        if not isinstance(self.password_hash, str) or not self.password_hash.strip():
            raise ValidationError("password_hash cannot be empty")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.username == other.username

    def __hash__(self) -> int:
        return hash(self.username)

    def __repr__(self) -> str:
        return f"User(username={self.username!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "password_hash": self.password_hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(username=data["username"], password_hash=data["password_hash"])
