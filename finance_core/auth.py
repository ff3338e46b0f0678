"""User registration and credential checks.

No session state lives here: callers receive the authenticated ``User`` and
pass its username to the core services themselves.
"""

from __future__ import annotations

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from .exceptions import (
    AuthenticationError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from .models import User
from .repositories import UserRepository
from .services import LedgerService
from .validators import validate_user_id

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserRepository, ledger: LedgerService) -> None:
        self._users = users
        self._ledger = ledger

    def register(self, username: str, password: str) -> User:
        """Create the user and an empty wallet for them."""
        username = validate_user_id(username, "username")
        if not isinstance(password, str) or not password:
            raise ValidationError("password cannot be empty")
        if self._users.exists(username):
            raise ValidationError(f"User {username} already exists")

        user = User(username=username, password_hash=generate_password_hash(password))
        self._ledger.create_wallet(username)
        try:
            self._users.save(user)
        except PersistenceError:
            logger.error("Saving user %s failed; removing the new wallet", username)
            self._ledger.delete_wallet(username)
            raise
        logger.info("Registered user %s", username)
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self._users.find(username.strip()) if isinstance(username, str) else None
        if user is None or not isinstance(password, str):
            logger.warning("Failed login for unknown user %r", username)
            raise AuthenticationError("Invalid username or password")
        if not check_password_hash(user.password_hash, password):
            logger.warning("Failed login for %s", user.username)
            raise AuthenticationError("Invalid username or password")
        return user

    def delete_user(self, username: str) -> None:
        """Remove the user together with their wallet; the wallet goes first."""
        if not self._users.exists(username):
            raise RecordNotFoundError(f"User {username} not found")
        try:
            self._ledger.delete_wallet(username)
        except RecordNotFoundError:
            logger.warning("User %s had no wallet to delete", username)
        self._users.delete(username)
        logger.info("Deleted user %s", username)
