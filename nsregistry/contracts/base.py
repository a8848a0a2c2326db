"""
Base Contracts and Shared Types

Foundational types used by every registry component: explicit error
codes, immutable error records, a Result wrapper, and the exceptions
raised for the few conditions that must stop the caller.

ERROR MODEL:
============
- Recoverable failures (a remote unit answering 404) are DATA: they
  travel as Error records inside Result objects and event payloads.
- Fatal failures (no transport can be constructed) and strict-mode
  violations are EXCEPTIONS that wrap the same Error record.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for registry operations.
    Every failure the registry can report is enumerated here.
    """
    # Identifier / graph errors
    INVALID_IDENTIFIER = auto()
    INVALID_ATTACHMENT = auto()
    PATH_CONFLICT = auto()

    # Loading errors
    TRANSPORT_UNAVAILABLE = auto()
    HTTP_FAILURE = auto()

    # Import errors
    MISSING_BINDING = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data - they can be attached to events and inspected.
    """
    code: ErrorCode
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )

    def context_value(self, key: str) -> Optional[str]:
        """Look up a context entry by key."""
        for entry_key, value in self.context:
            if entry_key == key:
                return value
        return None


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# EXCEPTIONS (fatal and strict-mode conditions only)
# =============================================================================

class NamespaceError(Exception):
    """Base exception for registry failures. Carries an Error record."""

    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> ErrorCode:
        return self.error.code


class TransportUnavailable(NamespaceError):
    """Raised when no transport strategy can be constructed. Never retried."""
    pass


class MissingBindingError(NamespaceError):
    """Raised by `use` in strict mode when a target cannot be resolved."""
    pass


class InvalidIdentifierError(NamespaceError, ValueError):
    """Raised for identifiers that do not follow the segment grammar."""
    pass


class InvalidAttachmentError(NamespaceError, TypeError):
    """Raised when a namespace attachment is neither callable nor a mapping."""
    pass
