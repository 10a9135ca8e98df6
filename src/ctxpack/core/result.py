"""
Result types and error hierarchy for ctxpack.

This module provides:
1. Result[T, E] type for failures that are recovered locally
2. Domain-specific exception hierarchy

Usage:
    from ctxpack.core.result import Ok, Err, Result, ScanError

    async def walk(root: str) -> Result[list[str], ScanError]:
        try:
            entries = await lister.list(root)
        except OSError as exc:
            return Err(ScanError("Listing failed", context={"root": root}))
        return Ok([entry.location for entry in entries])
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)
F = TypeVar("F", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (ignores default for Ok)."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value."""
        return Ok(fn(self.value))


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default value."""
        return default

    def map(self, fn: Callable[[T], U]) -> Err[E]:
        """No-op for Err - returns self unchanged."""
        return self


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class CtxpackError(Exception):
    """Base exception for all ctxpack errors.

    Carries an optional context mapping that is rendered into the message
    so that log lines show which collaborator or path was involved.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationError(CtxpackError):
    """Raised for configuration issues.

    Examples:
    - Config file parse errors
    - Config root that is not a mapping
    """


class ScanError(CtxpackError):
    """Raised when the project structure walk cannot list a directory."""


class WorkspaceError(CtxpackError):
    """Raised for workspace-related issues.

    Examples:
    - Workspace root does not exist
    - Root is not a directory
    """


__all__ = [
    "ConfigurationError",
    "CtxpackError",
    "Err",
    "Ok",
    "Result",
    "ScanError",
    "WorkspaceError",
]
