"""Budget and solvency notifications derived from a user's current wallet."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from .services import BudgetService, LedgerService

WARNING_THRESHOLD = Decimal("80")


class NotificationKind(str, Enum):
    BUDGET_EXCEEDED = "budget_exceeded"
    BUDGET_WARNING = "budget_warning"
    EXPENSE_DEFICIT = "expense_deficit"
    NON_POSITIVE_BALANCE = "non_positive_balance"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str
    amount: Decimal
    category: Optional[str] = None
    percentage: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "amount": f"{self.amount:.2f}",
            "category": self.category,
            "percentage": None if self.percentage is None else f"{self.percentage:.2f}",
        }

    def __str__(self) -> str:
        return self.message


class NotificationService:
    """Builds notification records fresh on every call; nothing is stored."""

    def __init__(self, budget_service: BudgetService, ledger_service: LedgerService) -> None:
        self._budgets = budget_service
        self._ledger = ledger_service

    def notifications(self, user_id: str) -> List[Notification]:
        """Budget notifications first, then the deficit and balance warnings."""
        notifications = self.budget_notifications(user_id)

        wallet = self._ledger.get_wallet(user_id)
        income = wallet.total_income()
        expense = wallet.total_expense()
        if expense > income:
            deficit = expense - income
            notifications.append(
                Notification(
                    kind=NotificationKind.EXPENSE_DEFICIT,
                    message=(
                        f"Warning: expenses ({expense:.2f}) exceed income "
                        f"({income:.2f}) by {deficit:.2f}"
                    ),
                    amount=deficit,
                )
            )

        balance = wallet.balance()
        if balance <= 0:
            notifications.append(
                Notification(
                    kind=NotificationKind.NON_POSITIVE_BALANCE,
                    message=f"Warning: balance is not positive: {balance:.2f}",
                    amount=balance,
                )
            )
        return notifications

    def budget_notifications(self, user_id: str) -> List[Notification]:
        notifications = []
        for category in self._budgets.all_budgets(user_id):
            notification = self._classify(user_id, category)
            if notification is not None:
                notifications.append(notification)
        return notifications

    def check_after_transaction(self, user_id: str, category: str) -> Optional[Notification]:
        """Budget status of a single category, ``None`` if it has no budget or is fine."""
        if self._budgets.get_budget(user_id, category) is None:
            return None
        return self._classify(user_id, category)

    def _classify(self, user_id: str, category: str) -> Optional[Notification]:
        remaining = self._budgets.remaining_budget(user_id, category)
        percentage = self._budgets.usage_percentage(user_id, category)
        if remaining < 0:
            overage = abs(remaining)
            return Notification(
                kind=NotificationKind.BUDGET_EXCEEDED,
                message=(
                    f"Budget exceeded: category '{category}' is over by "
                    f"{overage:.2f} ({percentage:.0f}%)"
                ),
                amount=overage,
                category=category,
                percentage=percentage,
            )
        if percentage >= WARNING_THRESHOLD:
            return Notification(
                kind=NotificationKind.BUDGET_WARNING,
                message=(
                    f"Budget warning: category '{category}' is {percentage:.0f}% used "
                    f"(remaining: {remaining:.2f})"
                ),
                amount=remaining,
                category=category,
                percentage=percentage,
            )
        return None
