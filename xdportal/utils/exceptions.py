"""
Exception hierarchy and error classification for xdportal.

Provides:
- Custom exception classes with error codes
- Error categorization (declined, transport, protocol, fatal)
- Safe error message formatting (no token leak in logs)
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    DECLINED = "declined"
    TIMEOUT = "timeout"
    FATAL = "fatal"


class PortalError(Exception):
    """Base exception for all xdportal errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(PortalError):
    """Invalid arguments supplied by the caller."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class TransportError(PortalError):
    """The bus failed to carry a call, or the broker answered with a D-Bus error."""

    def __init__(
        self,
        message: str,
        error_name: str | None = None,
        code: str = "TRANSPORT_ERROR",
    ):
        details = {"error_name": error_name} if error_name else {}
        super().__init__(message, code=code, category=ErrorCategory.TRANSPORT, details=details)

    @property
    def error_name(self) -> str | None:
        return self.details.get("error_name")


class ConnectionLostWhilePending(TransportError):
    """The bus connection dropped while a request was awaiting its Response."""

    def __init__(self, handle: str, reason: str | None = None):
        message = f"Connection lost while waiting on {handle}"
        if reason:
            message += f": {reason}"
        super().__init__(message, code="CONNECTION_LOST")
        self.details["handle"] = handle


class DecodeError(PortalError):
    """A wire value does not have the shape the caller expected."""

    kind = "DECODE_ERROR"

    def __init__(self, message: str, expected: str | None = None, actual: str | None = None):
        super().__init__(
            message,
            code=self.kind,
            category=ErrorCategory.PROTOCOL,
            details={"expected": expected, "actual": actual},
        )


class SignatureMismatch(DecodeError):
    kind = "SIGNATURE_MISMATCH"


class UnknownVariant(DecodeError):
    kind = "UNKNOWN_VARIANT"


class Truncated(DecodeError):
    kind = "TRUNCATED"


class RequestDeclined(PortalError):
    """The broker completed a request with a non-success status."""

    def __init__(self, handle: str, status: int):
        from xdportal.portal.request import ResponseStatus

        try:
            resolved: ResponseStatus | int = ResponseStatus(status)
        except ValueError:
            resolved = status
        label = resolved.name.lower() if isinstance(resolved, ResponseStatus) else str(status)
        super().__init__(
            f"Request {handle} ended with status {label}",
            code="REQUEST_DECLINED",
            category=ErrorCategory.DECLINED,
            details={"handle": handle, "status": int(status)},
        )
        self.handle = handle
        self.status = resolved

    @property
    def user_cancelled(self) -> bool:
        from xdportal.portal.request import ResponseStatus

        return self.status == ResponseStatus.CANCELLED


class DuplicateWaiterError(PortalError):
    """A second waiter was registered for a handle that already has one."""

    def __init__(self, handle: str):
        super().__init__(
            f"A waiter is already registered for {handle}",
            code="DUPLICATE_WAITER",
            category=ErrorCategory.FATAL,
            details={"handle": handle},
        )


class RequestTimeoutError(PortalError):
    """Waiting for a Response signal took longer than the configured timeout."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class RequestCancelledError(PortalError):
    """The caller withdrew the request before its Response arrived."""

    def __init__(self, handle: str):
        super().__init__(
            f"Request {handle} was cancelled by the caller",
            code="REQUEST_CANCELLED",
            category=ErrorCategory.DECLINED,
            details={"handle": handle},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(token|secret|password)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove install tokens and similar secrets from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Portal dialogs are not safe to resend blindly, so nothing raised by an
    interactive request is ever reported as retryable.

    Returns:
        Tuple of (error_code, category, should_retry)
    """
    if isinstance(exc, ConnectionLostWhilePending):
        return exc.code, exc.category, False

    if isinstance(exc, TransportError):
        # A broker-side error reply means the call was delivered.
        return exc.code, exc.category, exc.error_name is None

    if isinstance(exc, PortalError):
        return exc.code, exc.category, False

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, False

    if isinstance(exc, (ConnectionError, EOFError)):
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT, True

    if isinstance(exc, (ValueError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
