"""Exception hierarchy for the household budget service."""
from typing import Optional


class BudgetError(Exception):
    """Base class for all household budget errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional context
        original_error: Optional exception that caused this one
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(BudgetError):
    """Raised when environment configuration is missing or invalid."""
    pass


class DatabaseError(BudgetError):
    """Raised when a store operation fails."""
    pass


class AuthenticationError(BudgetError):
    """Raised when an operation requires a signed-in user and there is none."""

    def __init__(self, message: str = "You don't have permission to do that.", **kwargs) -> None:
        super().__init__(message, **kwargs)


class ForbiddenError(BudgetError):
    """Raised when the signed-in user lacks a required role."""

    def __init__(self, message: str = "You don't have access to do that.", **kwargs) -> None:
        super().__init__(message, **kwargs)


class EmailDeliveryError(BudgetError):
    """Raised when the email provider rejects or fails a send."""
    pass
