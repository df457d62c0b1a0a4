"""Declarative error classification and dispatch.

Register ordered ``matcher -> action`` rules on an ``ErrorHandlerBuilder``,
seal it with ``build()`` and hand failures to ``ErrorHandler.handle``.
"""

from .domain import (
    CONTINUE_MATCHING,
    STOP_MATCHING,
    AllOfMatcher,
    AnyOfMatcher,
    ClosureErrorMatcher,
    EqualityErrorMatcher,
    ErrorAction,
    ErrorDomainMatcher,
    ErrorHandler,
    ErrorHandlerBuilder,
    ErrorMatcher,
    ErrorTypeMatcher,
    InvalidPolicyError,
    MatchingPolicy,
    try_with,
)

__version__ = "0.3.0"

__all__ = [
    "AllOfMatcher",
    "AnyOfMatcher",
    "CONTINUE_MATCHING",
    "ClosureErrorMatcher",
    "EqualityErrorMatcher",
    "ErrorAction",
    "ErrorDomainMatcher",
    "ErrorHandler",
    "ErrorHandlerBuilder",
    "ErrorMatcher",
    "ErrorTypeMatcher",
    "InvalidPolicyError",
    "MatchingPolicy",
    "STOP_MATCHING",
    "try_with",
]
