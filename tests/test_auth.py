"""Tests for registration and authentication."""

from __future__ import annotations

import pytest

from finance_core.auth import AuthService
from finance_core.exceptions import (
    AuthenticationError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from finance_core.models import User
from finance_core.repositories import InMemoryUserRepository, InMemoryWalletRepository
from finance_core.services import LedgerService


@pytest.fixture
def auth_setup():
    wallets = InMemoryWalletRepository()
    ledger = LedgerService(wallets)
    return AuthService(InMemoryUserRepository(), ledger), ledger


def test_register_creates_user_and_empty_wallet(auth_setup) -> None:
    auth, ledger = auth_setup

    user = auth.register(" alice ", "s3cret")

    assert user.username == "alice"
    assert user.password_hash != "s3cret"
    assert ledger.get_wallet("alice").transactions == ()


def test_register_rejects_duplicates_and_blank_input(auth_setup) -> None:
    auth, _ = auth_setup
    auth.register("alice", "s3cret")

    with pytest.raises(ValidationError):
        auth.register("alice", "other")
    with pytest.raises(ValidationError):
        auth.register("", "pw")
    with pytest.raises(ValidationError):
        auth.register("bob", "")
    with pytest.raises(ValidationError):
        auth.register("../bob", "pw")


def test_authenticate(auth_setup) -> None:
    auth, _ = auth_setup
    auth.register("alice", "s3cret")

    assert auth.authenticate("alice", "s3cret").username == "alice"
    with pytest.raises(AuthenticationError):
        auth.authenticate("alice", "wrong")
    with pytest.raises(AuthenticationError):
        auth.authenticate("nobody", "s3cret")


def test_delete_user_removes_wallet(auth_setup) -> None:
    auth, ledger = auth_setup
    auth.register("alice", "s3cret")

    auth.delete_user("alice")

    with pytest.raises(AuthenticationError):
        auth.authenticate("alice", "s3cret")
    with pytest.raises(RecordNotFoundError):
        ledger.get_wallet("alice")
    with pytest.raises(RecordNotFoundError):
        auth.delete_user("alice")


class FlakyUserRepository(InMemoryUserRepository):
    """Rejects the first ``failures`` writes and deletes with a storage error."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures

    def _maybe_fail(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError("users.json is read-only")

    def save(self, user: User) -> None:
        self._maybe_fail()
        super().save(user)

    def delete(self, username: str) -> None:
        self._maybe_fail()
        super().delete(username)


def test_failed_user_save_leaves_no_wallet_behind() -> None:
    ledger = LedgerService(InMemoryWalletRepository())
    auth = AuthService(FlakyUserRepository(failures=1), ledger)

    with pytest.raises(PersistenceError):
        auth.register("alice", "s3cret")
    with pytest.raises(RecordNotFoundError):
        ledger.get_wallet("alice")

    assert auth.register("alice", "s3cret").username == "alice"
    assert auth.authenticate("alice", "s3cret").username == "alice"
    assert ledger.get_wallet("alice").transactions == ()


def test_failed_user_delete_can_be_retried() -> None:
    users = FlakyUserRepository(failures=0)
    ledger = LedgerService(InMemoryWalletRepository())
    auth = AuthService(users, ledger)
    auth.register("alice", "s3cret")
    users.failures = 1

    with pytest.raises(PersistenceError):
        auth.delete_user("alice")

    auth.delete_user("alice")
    assert not users.exists("alice")
    assert auth.register("alice", "again").username == "alice"
