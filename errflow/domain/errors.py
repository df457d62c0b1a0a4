"""Exception types raised by the handler core and sample application errors.

The core itself only raises ``ErrflowError`` subclasses. ``AppError`` and
``DomainError`` model the kind of failures an application hands to a
handler; they are used by the sample composition and by tests.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrflowError(Exception):
    """Base class for failures raised by errflow itself."""


class InvalidPolicyError(ErrflowError, TypeError):
    """An action returned something other than a ``MatchingPolicy``."""

    def __init__(self, action: Any, returned: Any) -> None:
        name = getattr(action, "__qualname__", None) or repr(action)
        super().__init__(
            f"Action {name} returned {returned!r}; expected a MatchingPolicy member"
        )
        self.action = action
        self.returned = returned


class RulesFileError(ErrflowError, ValueError):
    """A declarative rule document is malformed or references unknown names."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        text = f"{source}: {message}" if source else message
        super().__init__(text)
        self.source = source


class AppErrorKind(str, Enum):
    UNKNOWN = "unknown"
    PARSING = "parsing"


class AppError(Exception):
    """Application error identified by its kind; equal when kinds are equal."""

    def __init__(self, kind: AppErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppError):
            return NotImplemented
        return self.kind == other.kind

    def __hash__(self) -> int:
        return hash((AppError, self.kind))

    @property
    def loggable_description(self) -> str:
        if self.detail:
            return f"AppError.{self.kind.value}: {self.detail}"
        return f"AppError.{self.kind.value}"


class DomainError(Exception):
    """Error tagged with a string domain and an optional integer code."""

    def __init__(self, message: str, *, domain: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.domain = domain
        self.code = code

    @property
    def loggable_description(self) -> str:
        suffix = f" ({self.domain}:{self.code})" if self.code is not None else f" ({self.domain})"
        return f"{self}{suffix}"


__all__ = [
    "AppError",
    "AppErrorKind",
    "DomainError",
    "ErrflowError",
    "InvalidPolicyError",
    "RulesFileError",
]
