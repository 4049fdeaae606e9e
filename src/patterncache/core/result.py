"""
Unified Result types and error hierarchy for patterncache.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy

Usage:
    from patterncache.core.result import Ok, Err, Result, OracleUnavailable

    async def consult() -> Result[MetaAnalysis, OracleUnavailable]:
        if oracle_down:
            return Err(OracleUnavailable("oracle call failed"))
        return Ok(analysis)

    match await consult():
        case Ok(analysis):
            ...
        case Err(err):
            logger.debug("Continuing without enrichment: %s", err)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


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


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class PatternCacheError(Exception):
    """Base exception for all patterncache errors.

    All custom exceptions should inherit from this class to enable
    consistent error handling across the codebase.
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


class ConfigurationError(PatternCacheError):
    """Raised for configuration issues.

    Examples:
    - Invalid config values
    - Event log file unreadable
    - Oracle provider cannot be built
    """

    pass


class ExtractionSkipped(PatternCacheError):
    """Input text produced an empty signature.

    Not a failure: the caller stores nothing and moves on.
    """

    pass


class OracleUnavailable(PatternCacheError):
    """The oracle call failed, timed out or returned nothing.

    Learning proceeds with heuristic-only confidence.
    """

    pass


class MalformedOracleResponse(PatternCacheError):
    """Oracle output could not be decoded into a structured payload.

    Parsers fall back to free-text handling and default scores.
    """

    pass


class IngestionRecordError(PatternCacheError):
    """A single historical interaction could not be learned from.

    Logged and counted; the batch continues.
    """

    pass


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "PatternCacheError",
    "ConfigurationError",
    "ExtractionSkipped",
    "OracleUnavailable",
    "MalformedOracleResponse",
    "IngestionRecordError",
]
