"""Tests for budget and solvency notifications."""

from __future__ import annotations

from decimal import Decimal

import pytest

from finance_core.exceptions import RecordNotFoundError
from finance_core.notifications import NotificationKind, NotificationService
from finance_core.services import BudgetService, LedgerService


def _kinds(items):
    return [item.kind for item in items]


def test_no_notifications_below_warning_threshold(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    ledger.add_expense("alice", "Food", "300")
    budgets.set_budget("alice", "Food", "1000")

    assert notifications.notifications("alice") == []


def test_exceeded_budget_reports_overage(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    ledger.add_expense("alice", "Food", "300")
    budgets.set_budget("alice", "Food", "1000")
    ledger.add_expense("alice", "Food", "850")

    items = notifications.notifications("alice")
    exceeded = [n for n in items if n.kind is NotificationKind.BUDGET_EXCEEDED]

    assert len(exceeded) == 1
    assert exceeded[0].category == "Food"
    assert exceeded[0].amount == Decimal("150")
    assert exceeded[0].percentage == Decimal("115")
    assert "150.00" in exceeded[0].message
    assert "115%" in exceeded[0].message
    # 1150 spent against 1000 earned also trips both solvency warnings.
    assert _kinds(items) == [
        NotificationKind.BUDGET_EXCEEDED,
        NotificationKind.EXPENSE_DEFICIT,
        NotificationKind.NON_POSITIVE_BALANCE,
    ]


def test_warning_at_eighty_percent(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    ledger.add_expense("alice", "Food", "80")
    budgets.set_budget("alice", "Food", "100")

    (warning,) = notifications.notifications("alice")

    assert warning.kind is NotificationKind.BUDGET_WARNING
    assert warning.percentage == Decimal("80")
    assert warning.amount == Decimal("20")
    assert "80%" in warning.message
    assert "20.00" in warning.message


def test_fully_spent_budget_is_a_warning_not_exceeded(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    ledger.add_expense("alice", "Food", "100")
    budgets.set_budget("alice", "Food", "100")

    assert _kinds(notifications.budget_notifications("alice")) == [NotificationKind.BUDGET_WARNING]


def test_deficit_and_negative_balance_appear_together(
    ledger: LedgerService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "100")
    ledger.add_expense("alice", "Rent", "150")

    deficit, balance = notifications.notifications("alice")

    assert deficit.kind is NotificationKind.EXPENSE_DEFICIT
    assert deficit.amount == Decimal("50")
    assert balance.kind is NotificationKind.NON_POSITIVE_BALANCE
    assert balance.amount == Decimal("-50")
    assert "-50.00" in balance.message


def test_empty_wallet_warns_about_zero_balance(notifications: NotificationService) -> None:
    (only,) = notifications.notifications("bob")

    assert only.kind is NotificationKind.NON_POSITIVE_BALANCE
    assert only.amount == 0


def test_budget_notifications_follow_budget_insertion_order(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "10000")
    ledger.add_expense("alice", "Rent", "900")
    ledger.add_expense("alice", "Food", "500")
    ledger.add_expense("alice", "Fun", "10")
    budgets.set_budget("alice", "Rent", "1000")
    budgets.set_budget("alice", "Fun", "100")
    budgets.set_budget("alice", "Food", "400")

    items = notifications.notifications("alice")

    assert [(n.kind, n.category) for n in items] == [
        (NotificationKind.BUDGET_WARNING, "Rent"),
        (NotificationKind.BUDGET_EXCEEDED, "Food"),
    ]


def test_notifications_are_recomputed_each_call(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    budgets.set_budget("alice", "Food", "100")
    assert notifications.notifications("alice") == []

    ledger.add_expense("alice", "Food", "120")
    first = notifications.notifications("alice")
    second = notifications.notifications("alice")

    assert first == second
    assert _kinds(first) == [NotificationKind.BUDGET_EXCEEDED]

    budgets.remove_budget("alice", "Food")
    assert notifications.notifications("alice") == []


def test_check_after_transaction(
    ledger: LedgerService, budgets: BudgetService, notifications: NotificationService
) -> None:
    ledger.add_income("alice", "Salary", "1000")
    ledger.add_expense("alice", "Food", "50")

    assert notifications.check_after_transaction("alice", "Food") is None

    budgets.set_budget("alice", "Food", "100")
    assert notifications.check_after_transaction("alice", "Food") is None

    ledger.add_expense("alice", "Food", "40")
    alert = notifications.check_after_transaction("alice", "Food")
    assert alert is not None and alert.kind is NotificationKind.BUDGET_WARNING

    ledger.add_expense("alice", "Food", "40")
    alert = notifications.check_after_transaction("alice", "Food")
    assert alert.kind is NotificationKind.BUDGET_EXCEEDED
    assert alert.to_dict()["amount"] == "30.00"


def test_notifications_for_unknown_user(notifications: NotificationService) -> None:
    with pytest.raises(RecordNotFoundError):
        notifications.notifications("carol")
