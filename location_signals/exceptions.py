"""
Error types raised by the signal gateway and its collaborators.

The estimators never raise; every failure surfaces from provider or
store I/O, or from validation at the boundary.
"""

from typing import Optional


class SignalError(Exception):
    """Base exception for all location signal errors."""
    pass


class SignalUnavailable(SignalError):
    """Raised when an upstream provider fails or returns no usable data."""

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"{kind} signal unavailable: {reason}")


class InvalidInput(SignalError, ValueError):
    """
    Raised for malformed location keys, coordinates or search radius.

    Subclasses ValueError so pydantic validators report it as a
    regular validation error.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class PersistenceFailure(SignalError):
    """Raised when the cache store cannot write an entry."""
    pass
