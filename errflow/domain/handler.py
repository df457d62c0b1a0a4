"""Rule registration and dispatch for error handling.

Configuration happens on an ``ErrorHandlerBuilder``; every registration
method returns the builder so rules can be chained::

    handler = (
        ErrorHandlerBuilder()
        .on_error(ApiTimeoutError, show_offline)
        .on_value(AppError(AppErrorKind.PARSING), show_parsing)
        .on_no_match(show_unknown)
        .always(log_error)
        .build()
    )
    handler.handle(error)

``build()`` returns a sealed ``ErrorHandler`` backed by tuples, so it can be
shared and dispatched from several threads. Call sites that need a local
override derive a new builder with ``ErrorHandler.to_builder()``.

Dispatch order is last-in-first-out within each list: the most recent
registration is the most specific customization and is consulted first.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from .errors import InvalidPolicyError
from .matchers import (
    ClosureErrorMatcher,
    EqualityErrorMatcher,
    ErrorDomainMatcher,
    ErrorTypeMatcher,
    SupportsMatches,
)
from .policy import ErrorAction, MatchingPolicy, Tag

_log = logging.getLogger(__name__)

Registration = Tuple[SupportsMatches, ErrorAction]
Predicate = Callable[[BaseException], bool]
T = TypeVar("T")


class ErrorHandlerBuilder:
    """Collects rules, fallback actions, always actions and tags."""

    def __init__(self) -> None:
        self._registrations: List[Registration] = []
        self._no_match_actions: List[ErrorAction] = []
        self._always_actions: List[ErrorAction] = []
        self._tags: Dict[Tag, List[SupportsMatches]] = {}

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    def on(self, matcher: SupportsMatches, action: ErrorAction) -> "ErrorHandlerBuilder":
        """Run ``action`` for errors that ``matcher`` matches.

        If the action returns ``STOP_MATCHING`` no rule registered before this
        one is consulted for the same error. ``always`` actions still run.
        """
        self._registrations.append((matcher, action))
        return self

    def on_matches(self, predicate: Predicate, action: ErrorAction) -> "ErrorHandlerBuilder":
        return self.on(ClosureErrorMatcher(predicate), action)

    def on_error(
        self, error_type: Type[BaseException], action: ErrorAction
    ) -> "ErrorHandlerBuilder":
        """Run ``action`` for any error that is an instance of ``error_type``."""
        return self.on(ErrorTypeMatcher(error_type), action)

    def on_value(self, error: BaseException, action: ErrorAction) -> "ErrorHandlerBuilder":
        """Run ``action`` for errors of the same kind that compare equal to ``error``."""
        return self.on(EqualityErrorMatcher(error), action)

    def on_error_domain(
        self, domain: str, action: ErrorAction, *, code: Optional[int] = None
    ) -> "ErrorHandlerBuilder":
        """Run ``action`` for errors in ``domain``; with ``code`` only for that code."""
        return self.on(ErrorDomainMatcher(domain, code), action)

    def on_no_match(self, action: ErrorAction) -> "ErrorHandlerBuilder":
        """Add a fallback that runs only when no rule matched.

        Fallbacks run newest first until one returns ``STOP_MATCHING``, which
        lets a later fallback replace the earlier ones.
        """
        self._no_match_actions.append(action)
        return self

    def always(self, action: ErrorAction) -> "ErrorHandlerBuilder":
        """Add an action that runs after every dispatch, matched or not."""
        self._always_actions.append(action)
        return self

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def tag(self, matcher: SupportsMatches, tag: Tag) -> "ErrorHandlerBuilder":
        """Group ``matcher`` under ``tag`` for a later ``on_tag`` call."""
        self._tags.setdefault(tag, []).append(matcher)
        return self

    def tag_matches(self, predicate: Predicate, tag: Tag) -> "ErrorHandlerBuilder":
        return self.tag(ClosureErrorMatcher(predicate), tag)

    def on_tag(self, tag: Tag, action: ErrorAction) -> "ErrorHandlerBuilder":
        """Register ``action`` once for every matcher currently tagged ``tag``.

        Matchers tagged after this call are not bound. An unknown tag is
        ignored.
        """
        matchers = self._tags.get(tag)
        if matchers is None:
            _log.debug("on_tag(%r): no matchers carry this tag, nothing registered", tag)
            return self
        self._registrations.extend((matcher, action) for matcher in matchers)
        return self

    # ------------------------------------------------------------------
    def build(self) -> "ErrorHandler":
        """Snapshot the current configuration into a sealed handler."""
        return ErrorHandler(
            registrations=tuple(self._registrations),
            no_match_actions=tuple(self._no_match_actions),
            always_actions=tuple(self._always_actions),
            tags={tag: tuple(matchers) for tag, matchers in self._tags.items()},
        )


class ErrorHandler:
    """Immutable rule set that dispatches errors to matching actions."""

    __slots__ = ("_registrations", "_no_match_actions", "_always_actions", "_tags")

    def __init__(
        self,
        *,
        registrations: Sequence[Registration] = (),
        no_match_actions: Sequence[ErrorAction] = (),
        always_actions: Sequence[ErrorAction] = (),
        tags: Optional[Mapping[Tag, Sequence[SupportsMatches]]] = None,
    ) -> None:
        self._registrations: Tuple[Registration, ...] = tuple(registrations)
        self._no_match_actions: Tuple[ErrorAction, ...] = tuple(no_match_actions)
        self._always_actions: Tuple[ErrorAction, ...] = tuple(always_actions)
        self._tags: Mapping[Tag, Tuple[SupportsMatches, ...]] = MappingProxyType(
            {tag: tuple(matchers) for tag, matchers in (tags or {}).items()}
        )

    @property
    def registrations(self) -> Tuple[Registration, ...]:
        return self._registrations

    @property
    def no_match_actions(self) -> Tuple[ErrorAction, ...]:
        return self._no_match_actions

    @property
    def always_actions(self) -> Tuple[ErrorAction, ...]:
        return self._always_actions

    @property
    def tags(self) -> Mapping[Tag, Tuple[SupportsMatches, ...]]:
        return self._tags

    def to_builder(self) -> ErrorHandlerBuilder:
        """Return a new builder pre-filled with this handler's configuration."""
        builder = ErrorHandlerBuilder()
        builder._registrations.extend(self._registrations)
        builder._no_match_actions.extend(self._no_match_actions)
        builder._always_actions.extend(self._always_actions)
        for tag, matchers in self._tags.items():
            builder._tags[tag] = list(matchers)
        return builder

    def handle(self, error: BaseException) -> None:
        """Run the actions matching ``error``, the fallbacks if none did, then ``always``.

        Exceptions raised by actions are not caught: ``always`` actions still
        run and the exception then propagates to the caller.
        """
        try:
            matched = False
            for matcher, action in reversed(self._registrations):
                if not matcher.matches(error):
                    continue
                matched = True
                _log.debug("Rule %r matched %r", matcher, error)
                if _run(action, error) is MatchingPolicy.STOP_MATCHING:
                    _log.debug("Matching stopped after rule %r", matcher)
                    break

            if not matched:
                _log.debug(
                    "No rule matched %r; running %d fallback action(s)",
                    error,
                    len(self._no_match_actions),
                )
                _run_until_stop(self._no_match_actions, error)
        finally:
            _run_until_stop(self._always_actions, error)

    def __repr__(self) -> str:
        return (
            f"ErrorHandler(rules={len(self._registrations)}, "
            f"no_match={len(self._no_match_actions)}, "
            f"always={len(self._always_actions)}, tags={sorted(self._tags)})"
        )


def _run(action: ErrorAction, error: BaseException) -> MatchingPolicy:
    policy = action(error)
    if not isinstance(policy, MatchingPolicy):
        raise InvalidPolicyError(action, policy)
    return policy


def _run_until_stop(actions: Sequence[ErrorAction], error: BaseException) -> None:
    for action in reversed(actions):
        if _run(action, error) is MatchingPolicy.STOP_MATCHING:
            break


def try_with(handler: ErrorHandler, call: Callable[[], T]) -> Optional[T]:
    """Invoke ``call``; on failure pass the exception to ``handler``.

    Returns ``call()``'s result, or ``None`` when it raised and the error was
    handled.
    """
    try:
        return call()
    except Exception as exc:
        handler.handle(exc)
        return None


__all__ = ["ErrorHandler", "ErrorHandlerBuilder", "Registration", "try_with"]
