"""Shared fixtures: in-memory services wired the way the front ends wire them."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from finance_core.models import Wallet
from finance_core.notifications import NotificationService
from finance_core.repositories import InMemoryWalletRepository
from finance_core.services import BudgetService, LedgerService

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 15, tzinfo=timezone.utc)


@pytest.fixture
def wallets() -> InMemoryWalletRepository:
    repository = InMemoryWalletRepository()
    repository.save(Wallet("alice"))
    repository.save(Wallet("bob"))
    return repository


@pytest.fixture
def ledger(wallets: InMemoryWalletRepository) -> LedgerService:
    counter = itertools.count(1)
    return LedgerService(
        wallets,
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"txn-{next(counter):04d}",
    )


@pytest.fixture
def budgets(wallets: InMemoryWalletRepository) -> BudgetService:
    return BudgetService(wallets)


@pytest.fixture
def notifications(budgets: BudgetService, ledger: LedgerService) -> NotificationService:
    return NotificationService(budgets, ledger)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
