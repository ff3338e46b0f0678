"""Wallet and user repositories backing the core services."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from .exceptions import PersistenceError, ValidationError
from .models import User, Wallet
from .storage import JSONStorage
from .validators import validate_user_id

logger = logging.getLogger(__name__)

WALLET_SUFFIX = ".wallet.json"


class WalletRepository(Protocol):
    def save(self, wallet: Wallet) -> None: ...

    def find(self, user_id: str) -> Optional[Wallet]: ...

    def delete(self, user_id: str) -> None: ...

    def exists(self, user_id: str) -> bool: ...


class UserRepository(Protocol):
    def save(self, user: User) -> None: ...

    def find(self, username: str) -> Optional[User]: ...

    def delete(self, username: str) -> None: ...

    def exists(self, username: str) -> bool: ...


class InMemoryWalletRepository:
    """Keeps live Wallet objects in a dict; ``find`` hands back the stored instance."""

    def __init__(self) -> None:
        self._wallets: Dict[str, Wallet] = {}

    def save(self, wallet: Wallet) -> None:
        self._wallets[wallet.user_id] = wallet

    def find(self, user_id: str) -> Optional[Wallet]:
        return self._wallets.get(user_id)

    def delete(self, user_id: str) -> None:
        self._wallets.pop(user_id, None)

    def exists(self, user_id: str) -> bool:
        return user_id in self._wallets


class JSONWalletRepository:
    """Stores each wallet as ``<user_id>.wallet.json`` under the storage root.

    Every ``find`` hydrates a fresh Wallet from disk, so changes only become
    durable once ``save`` is called.
    """

    def __init__(self, storage: JSONStorage) -> None:
        self._storage = storage

    def save(self, wallet: Wallet) -> None:
        self._storage.save(self._resource(wallet.user_id), wallet.to_dict())

    def find(self, user_id: str) -> Optional[Wallet]:
        try:
            resource = self._resource(user_id)
        except ValidationError:
            return None
        payload = self._storage.load(resource)
        if payload is None:
            return None
        try:
            wallet = Wallet.from_dict(payload)
        except (ValueError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"Wallet data for {user_id} is invalid: {exc}") from exc
        if wallet.user_id != user_id:
            raise PersistenceError(f"Wallet file for {user_id} belongs to {wallet.user_id}")
        return wallet

    def delete(self, user_id: str) -> None:
        if self._storage.delete(self._resource(user_id)):
            logger.info("Deleted wallet for %s", user_id)

    def exists(self, user_id: str) -> bool:
        try:
            return self._storage.exists(self._resource(user_id))
        except ValidationError:
            return False

    def user_ids(self) -> List[str]:
        return sorted(
            path.name[: -len(WALLET_SUFFIX)]
            for path in self._storage.base_path.glob(f"*{WALLET_SUFFIX}")
        )

    @staticmethod
    def _resource(user_id: str) -> str:
        return validate_user_id(user_id) + WALLET_SUFFIX


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    def save(self, user: User) -> None:
        self._users[user.username] = user

    def find(self, username: str) -> Optional[User]:
        return self._users.get(username)

    def delete(self, username: str) -> None:
        self._users.pop(username, None)

    def exists(self, username: str) -> bool:
        return username in self._users


class JSONUserRepository:
    """All users in a single ``users.json`` document keyed by username."""

    def __init__(self, storage: JSONStorage, resource: str = "users.json") -> None:
        self._storage = storage
        self._resource = resource

    def save(self, user: User) -> None:
        users = self._load()
        users[user.username] = user.to_dict()
        self._storage.save(self._resource, {"users": users})

    def find(self, username: str) -> Optional[User]:
        payload = self._load().get(username)
        if payload is None:
            return None
        try:
            return User.from_dict(payload)
        except (KeyError, ValidationError) as exc:
            raise PersistenceError(f"User record for {username} is invalid") from exc

    def delete(self, username: str) -> None:
        users = self._load()
        if users.pop(username, None) is not None:
            self._storage.save(self._resource, {"users": users})

    def exists(self, username: str) -> bool:
        return username in self._load()

    def _load(self) -> Dict[str, Dict[str, str]]:
        document = self._storage.load(self._resource) or {}
        users = document.get("users", {})
        if not isinstance(users, dict):
            raise PersistenceError(f"Expected a 'users' object in {self._resource}")
        return users
