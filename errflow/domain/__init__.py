"""Domain package exports: matchers, policies and the handler core."""

from .errors import (
    AppError,
    AppErrorKind,
    DomainError,
    ErrflowError,
    InvalidPolicyError,
    RulesFileError,
)
from .handler import ErrorHandler, ErrorHandlerBuilder, try_with
from .matchers import (
    ERRNO_DOMAIN,
    AllOfMatcher,
    AnyOfMatcher,
    ClosureErrorMatcher,
    EqualityErrorMatcher,
    ErrorDomainMatcher,
    ErrorMatcher,
    ErrorTypeMatcher,
)
from .policy import CONTINUE_MATCHING, STOP_MATCHING, ErrorAction, MatchingPolicy, Tag
from .ports import NotifierPort

__all__ = [
    "AllOfMatcher",
    "AnyOfMatcher",
    "AppError",
    "AppErrorKind",
    "CONTINUE_MATCHING",
    "ClosureErrorMatcher",
    "DomainError",
    "ERRNO_DOMAIN",
    "EqualityErrorMatcher",
    "ErrflowError",
    "ErrorAction",
    "ErrorDomainMatcher",
    "ErrorHandler",
    "ErrorHandlerBuilder",
    "ErrorMatcher",
    "ErrorTypeMatcher",
    "InvalidPolicyError",
    "MatchingPolicy",
    "NotifierPort",
    "RulesFileError",
    "STOP_MATCHING",
    "Tag",
    "try_with",
]
