"""Domain-specific exceptions for the personal finance core services."""


class FinanceError(Exception):
    """Base class for domain failures that are not input or storage problems."""


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class RecordNotFoundError(LookupError):
    """Raised when a wallet or user cannot be located."""


class InsufficientFundsError(FinanceError):
    """Raised when a transfer exceeds the sender's balance."""


class AuthenticationError(FinanceError):
    """Raised when a username/password pair cannot be verified."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""
