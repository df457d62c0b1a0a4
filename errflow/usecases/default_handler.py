"""Compose the application's standard error handler.

The handler is built once at startup and passed to whoever needs it; call
sites that want a local override derive a builder from it::

    handler = build_default_handler(notifier)
    local = (
        handler.to_builder()
        .on_tag(HTTP_TAG, track_http_failure)
        .build()
    )
"""

from __future__ import annotations

import errno
import logging
from typing import Dict, Optional

from errflow.adapters.api_errors import ApiError, ApiTimeoutError, extract_error_hint
from errflow.adapters.status_matchers import on_status, tag_status
from errflow.domain.errors import AppError, AppErrorKind
from errflow.domain.handler import ErrorHandler, ErrorHandlerBuilder
from errflow.domain.matchers import ERRNO_DOMAIN, AnyOfMatcher, ErrorDomainMatcher, ErrorTypeMatcher
from errflow.domain.policy import ErrorAction, MatchingPolicy
from errflow.domain.ports import NotifierPort

HTTP_TAG = "http"

CLIENT_ERRORS = range(400, 451)
SERVER_ERRORS = range(500, 512)
UNAUTHORIZED = 401

_log = logging.getLogger(__name__)


def compose_error_message(base: str, hint: Optional[str]) -> str:
    """Compose a user-facing message with optional hint text.

    ``base`` is returned unchanged when there is no hint.
    """
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    return base


def error_hint(error: BaseException) -> Optional[str]:
    if isinstance(error, ApiError):
        return error.hint or extract_error_hint(error.payload)
    return None


def describe_error(error: BaseException) -> str:
    """Return the error's ``loggable_description`` if it has one, else ``str(error)``."""
    description = getattr(error, "loggable_description", None)
    if isinstance(description, str) and description:
        return description
    return str(error) or type(error).__name__


def alert_action(
    notifier: NotifierPort,
    title: str,
    message: str = "",
    *,
    policy: MatchingPolicy = MatchingPolicy.CONTINUE_MATCHING,
    with_hint: bool = False,
) -> ErrorAction:
    """Return an action that shows a fixed alert and answers ``policy``."""

    def _action(error: BaseException) -> MatchingPolicy:
        text = compose_error_message(message, error_hint(error)) if with_hint else message
        notifier.show_alert(title, text)
        return policy

    _action.__qualname__ = f"alert_action[{title}]"
    return _action


def log_error(error: BaseException) -> MatchingPolicy:
    _log.warning("Handled error: %s", describe_error(error))
    return MatchingPolicy.CONTINUE_MATCHING


def default_actions(notifier: NotifierPort) -> Dict[str, ErrorAction]:
    """Named actions used by the default handler, also usable from rule files."""
    return {
        "client_error": alert_action(notifier, "Client error", "Request rejected", with_hint=True),
        "server_error": alert_action(notifier, "Server error"),
        "unauthorized": alert_action(
            notifier,
            "Unauthorized error",
            "You are not authorized for this action.",
            policy=MatchingPolicy.STOP_MATCHING,
        ),
        "offline": alert_action(
            notifier, "You seem to be offline", "Check your connection and try again."
        ),
        "parsing": alert_action(notifier, "Parsing error"),
        "unknown": alert_action(notifier, "Unknown error", "Oops.. Something went wrong."),
        "log": log_error,
    }


def offline_matcher() -> AnyOfMatcher:
    return ErrorTypeMatcher(ApiTimeoutError) | ErrorDomainMatcher(ERRNO_DOMAIN, errno.ENETUNREACH)


def default_builder(notifier: NotifierPort) -> ErrorHandlerBuilder:
    actions = default_actions(notifier)
    builder = ErrorHandlerBuilder()
    on_status(builder, CLIENT_ERRORS, actions["client_error"])
    on_status(builder, SERVER_ERRORS, actions["server_error"])
    on_status(builder, UNAUTHORIZED, actions["unauthorized"])
    builder.on(offline_matcher(), actions["offline"]).on_value(
        AppError(AppErrorKind.PARSING), actions["parsing"]
    )
    tag_status(builder, range(CLIENT_ERRORS.start, SERVER_ERRORS.stop), HTTP_TAG)
    return builder.on_no_match(actions["unknown"]).always(actions["log"])


def build_default_handler(notifier: NotifierPort) -> ErrorHandler:
    """Return the sealed default handler reporting to ``notifier``."""
    return default_builder(notifier).build()


__all__ = [
    "CLIENT_ERRORS",
    "HTTP_TAG",
    "SERVER_ERRORS",
    "UNAUTHORIZED",
    "alert_action",
    "build_default_handler",
    "compose_error_message",
    "default_actions",
    "default_builder",
    "describe_error",
    "error_hint",
    "log_error",
]
