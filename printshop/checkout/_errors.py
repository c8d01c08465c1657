"""
Checkout errors.

Raised by session operations; the wizard turns them into banner text.
"""

from __future__ import annotations


class CheckoutError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class InvalidCartError(CheckoutError):
    def __init__(self, message: str = "Cannot check out an empty cart") -> None:
        super().__init__("INVALID_CART", message)


class SessionNotFoundError(CheckoutError):
    def __init__(self, session_id: str | None = None) -> None:
        message = (
            f"Checkout session {session_id} not found"
            if session_id
            else "No active checkout session"
        )
        super().__init__("SESSION_NOT_FOUND", message)
        self.session_id = session_id


class SessionExpiredError(CheckoutError):
    def __init__(self, session_id: str) -> None:
        super().__init__("SESSION_EXPIRED", f"Checkout session {session_id} has expired")
        self.session_id = session_id


class PersistenceError(CheckoutError):
    """Gateway write failed. Message is the gateway's, unmodified."""

    def __init__(self, message: str) -> None:
        super().__init__("PERSISTENCE_FAILED", message)


class IncompleteSessionError(CheckoutError):
    def __init__(self, missing: tuple[str, ...]) -> None:
        super().__init__(
            "INCOMPLETE_SESSION",
            f"Incomplete checkout session: missing {', '.join(missing)}",
        )
        self.missing = missing


class StepConfigurationError(CheckoutError):
    def __init__(self, message: str) -> None:
        super().__init__("INVALID_STEPS", message)


__all__ = (
    "CheckoutError",
    "InvalidCartError",
    "SessionNotFoundError",
    "SessionExpiredError",
    "PersistenceError",
    "IncompleteSessionError",
    "StepConfigurationError",
)
