"""Error matchers: predicates that decide whether a rule applies to an error.

A matcher answers one question, ``matches(error) -> bool``, and holds no
mutable state. Matchers derived from ``ErrorMatcher`` compose with ``&`` and
``|``::

    offline = ErrorTypeMatcher(ApiTimeoutError) | ErrorDomainMatcher(ERRNO_DOMAIN, errno.ENETUNREACH)

Anything else exposing a ``matches`` method is accepted by the handler as
well, so collaborator packages do not have to inherit from ``ErrorMatcher``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol, Type, runtime_checkable

ERRNO_DOMAIN = "errno"


@runtime_checkable
class SupportsMatches(Protocol):
    def matches(self, error: BaseException) -> bool: ...


class ErrorMatcher(ABC):
    """Base class for matchers; adds the ``&`` / ``|`` combinators."""

    @abstractmethod
    def matches(self, error: BaseException) -> bool:
        """Return True if ``error`` satisfies this matcher."""

    def __and__(self, other: SupportsMatches) -> "AllOfMatcher":
        return AllOfMatcher(self, other)

    def __rand__(self, other: SupportsMatches) -> "AllOfMatcher":
        return AllOfMatcher(other, self)

    def __or__(self, other: SupportsMatches) -> "AnyOfMatcher":
        return AnyOfMatcher(self, other)

    def __ror__(self, other: SupportsMatches) -> "AnyOfMatcher":
        return AnyOfMatcher(other, self)


class ErrorTypeMatcher(ErrorMatcher):
    """Matches errors that are instances of ``error_type`` (subclasses included)."""

    def __init__(self, error_type: Type[BaseException]) -> None:
        self.error_type = error_type

    def matches(self, error: BaseException) -> bool:
        return isinstance(error, self.error_type)

    def __repr__(self) -> str:
        return f"ErrorTypeMatcher({self.error_type.__name__})"


class ClosureErrorMatcher(ErrorMatcher):
    """Wraps a plain ``(error) -> bool`` predicate."""

    def __init__(self, predicate: Callable[[BaseException], Any]) -> None:
        self.predicate = predicate

    def matches(self, error: BaseException) -> bool:
        return bool(self.predicate(error))

    def __repr__(self) -> str:
        name = getattr(self.predicate, "__qualname__", None) or repr(self.predicate)
        return f"ClosureErrorMatcher({name})"


class EqualityErrorMatcher(ErrorMatcher):
    """Matches errors of the same kind as ``expected`` that compare equal to it.

    Python exceptions compare by identity unless they define ``__eq__``, so
    this is mostly useful for value-like errors such as ``AppError``.
    """

    def __init__(self, expected: BaseException) -> None:
        self.expected = expected

    def matches(self, error: BaseException) -> bool:
        if not isinstance(error, type(self.expected)):
            return False
        return error == self.expected

    def __repr__(self) -> str:
        return f"EqualityErrorMatcher({self.expected!r})"


def error_domain(error: BaseException) -> Optional[str]:
    """Return the error's domain: its ``domain`` attribute, else ``"errno"`` for OS errors."""
    domain = getattr(error, "domain", None)
    if isinstance(domain, str):
        return domain
    if isinstance(error, OSError) and error.errno is not None:
        return ERRNO_DOMAIN
    return None


def error_code(error: BaseException) -> Optional[int]:
    if isinstance(getattr(error, "domain", None), str):
        code = getattr(error, "code", None)
        return code if isinstance(code, int) else None
    if isinstance(error, OSError):
        return error.errno
    return None


class ErrorDomainMatcher(ErrorMatcher):
    """Matches on ``domain`` and, when given, on ``code`` too."""

    def __init__(self, domain: str, code: Optional[int] = None) -> None:
        self.domain = domain
        self.code = code

    def matches(self, error: BaseException) -> bool:
        if error_domain(error) != self.domain:
            return False
        if self.code is None:
            return True
        return error_code(error) == self.code

    def __repr__(self) -> str:
        return f"ErrorDomainMatcher({self.domain!r}, code={self.code!r})"


class AllOfMatcher(ErrorMatcher):
    def __init__(self, left: SupportsMatches, right: SupportsMatches) -> None:
        self.left = left
        self.right = right

    def matches(self, error: BaseException) -> bool:
        return self.left.matches(error) and self.right.matches(error)

    def __repr__(self) -> str:
        return f"({self.left!r} & {self.right!r})"


class AnyOfMatcher(ErrorMatcher):
    def __init__(self, left: SupportsMatches, right: SupportsMatches) -> None:
        self.left = left
        self.right = right

    def matches(self, error: BaseException) -> bool:
        return self.left.matches(error) or self.right.matches(error)

    def __repr__(self) -> str:
        return f"({self.left!r} | {self.right!r})"


__all__ = [
    "AllOfMatcher",
    "AnyOfMatcher",
    "ClosureErrorMatcher",
    "ERRNO_DOMAIN",
    "EqualityErrorMatcher",
    "ErrorDomainMatcher",
    "ErrorMatcher",
    "ErrorTypeMatcher",
    "SupportsMatches",
    "error_code",
    "error_domain",
]
