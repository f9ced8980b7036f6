"""
Domain errors raised by the CRUD layer.

Each error carries the HTTP status the endpoints answer with and, optionally,
structured context that is returned next to the message.
"""
from typing import Any, Dict, Union


class SnookerError(ValueError):
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def detail(self) -> Union[str, Dict[str, Any]]:
        if self.context:
            return {"message": self.message, **self.context}
        return self.message


class NotFoundError(SnookerError):
    status_code = 404


class ForbiddenError(SnookerError):
    status_code = 403


class InvalidStateError(SnookerError):
    status_code = 400


class ValidationFailedError(SnookerError):
    status_code = 400


class InsufficientStockError(SnookerError):
    status_code = 400


class PaymentConfirmationRequired(InvalidStateError):
    """Ending a session whose payment is still pending."""


class AuthenticationError(SnookerError):
    status_code = 401


class AccountLockedError(SnookerError):
    status_code = 423


class RateLimitedError(SnookerError):
    status_code = 429
