"""Core business logic package for the personal finance manager."""

from .auth import AuthService
from .exceptions import (
    AuthenticationError,
    FinanceError,
    InsufficientFundsError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from .models import Budget, Transaction, TransactionType, User, Wallet
from .notifications import Notification, NotificationKind, NotificationService
from .repositories import (
    InMemoryUserRepository,
    InMemoryWalletRepository,
    JSONUserRepository,
    JSONWalletRepository,
)
from .services import BudgetService, BudgetStatus, LedgerService
from .storage import JSONStorage

__all__ = [
    "AuthService",
    "AuthenticationError",
    "Budget",
    "BudgetService",
    "BudgetStatus",
    "FinanceError",
    "InMemoryUserRepository",
    "InMemoryWalletRepository",
    "InsufficientFundsError",
    "JSONStorage",
    "JSONUserRepository",
    "JSONWalletRepository",
    "LedgerService",
    "Notification",
    "NotificationKind",
    "NotificationService",
    "PersistenceError",
    "RecordNotFoundError",
    "Transaction",
    "TransactionType",
    "User",
    "ValidationError",
    "Wallet",
]
