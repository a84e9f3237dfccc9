"""Utility functions for xdportal."""

from xdportal.utils.exceptions import (
    PortalError,
    ValidationError,
    TransportError,
    ConnectionLostWhilePending,
    DecodeError,
    SignatureMismatch,
    UnknownVariant,
    Truncated,
    RequestDeclined,
    DuplicateWaiterError,
    RequestTimeoutError,
    RequestCancelledError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "PortalError",
    "ValidationError",
    "TransportError",
    "ConnectionLostWhilePending",
    "DecodeError",
    "SignatureMismatch",
    "UnknownVariant",
    "Truncated",
    "RequestDeclined",
    "DuplicateWaiterError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
]
