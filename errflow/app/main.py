# errflow/app/main.py
from __future__ import annotations

import argparse
import errno
import logging
import sys
from typing import List, Optional, Sequence, TextIO, Tuple

from ..adapters.api_errors import ApiClientError, ApiServerError, ApiTimeoutError
from ..adapters.console_notifier import ConsoleNotifier
from ..adapters.http_client import HttpConfig, RetryingSession, fetch_json
from ..adapters.rules_file import apply_rules, load_rules
from ..domain.errors import AppError, AppErrorKind, DomainError, ErrflowError
from ..domain.handler import ErrorHandler, try_with
from ..usecases.default_handler import default_actions, default_builder
from ..utils import logging as logging_utils
from .settings import AppSettings, load_settings


def sample_errors() -> List[Tuple[BaseException, str]]:
    """Errors exercised by the demo, paired with a short label."""
    return [
        (ApiClientError("GET /me: HTTP 401", status=401, context="GET /me"), "401 Unauthorized error"),
        (
            OSError(errno.ENETUNREACH, "Network is unreachable"),
            "Offline error",
        ),
        (ApiTimeoutError("Timeout contacting /jobs", context="GET /jobs"), "Timeout"),
        (
            ApiClientError("POST /users: HTTP 400", status=400, hint="email: invalid address"),
            "400 (4xx client errors)",
        ),
        (ApiClientError("GET /billing: HTTP 402", status=402), "402 (4xx client errors)"),
        (ApiServerError("GET /jobs: HTTP 500", status=500), "500"),
        (AppError(AppErrorKind.PARSING, "unexpected token"), "Parsing error"),
        (DomainError("Quota exceeded", domain="billing", code=7), "Unmatched domain error"),
    ]


def build_handler(settings: AppSettings, notifier: ConsoleNotifier) -> ErrorHandler:
    """Compose the default handler and layer the configured rule file on top."""
    builder = default_builder(notifier)
    if settings.rules_path:
        document = load_rules(settings.rules_path)
        apply_rules(builder, document, default_actions(notifier))
    return builder.build()


def run_samples(handler: ErrorHandler, out: TextIO) -> int:
    for error, label in sample_errors():
        print(f"--- {label}", file=out)
        handler.handle(error)
    return 0


def probe_url(handler: ErrorHandler, settings: AppSettings, url: str, out: TextIO) -> int:
    session = RetryingSession(
        settings.api_key or None,
        HttpConfig(request_timeout_s=settings.request_timeout_s, retries=settings.retries),
    )
    target = url if "://" in url else f"{settings.base_url.rstrip('/')}/{url.lstrip('/')}"
    # wrapped in a tuple so a JSON null body still counts as success
    result = try_with(handler, lambda: (fetch_json(session, target),))
    if result is None:
        return 1
    print(f"{target}: OK", file=out)
    return 0


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="errflow-demo",
        description="Run sample errors (or a live request) through the default error handler.",
    )
    parser.add_argument("--settings", help="JSON settings file")
    parser.add_argument("--rules", help="JSON rule file applied on top of the default rules")
    parser.add_argument("--url", help="GET this URL (or path under base_url) and handle failures")
    parser.add_argument("--log-level", help="Override the log level (e.g. DEBUG)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None, out: Optional[TextIO] = None) -> int:
    """CLI entrypoint for ``errflow-demo``.

    Returns ``2`` when the settings or rule file cannot be loaded.
    """
    args = _parse_args(argv)
    out = out or sys.stdout
    log = logging.getLogger(__name__)
    try:
        settings = load_settings(args.settings)
    except (OSError, ValueError) as exc:
        logging_utils.configure_root(args.log_level or logging.INFO)
        log.error("Cannot load settings: %s", exc)
        return 2
    logging_utils.configure_root(args.log_level or settings.log_level)
    notifier = ConsoleNotifier(out)
    try:
        if args.rules:
            settings = AppSettings.from_dict({**settings.to_dict(), "rules_path": args.rules})
        handler = build_handler(settings, notifier)
    except (ErrflowError, OSError, ValueError) as exc:
        log.error("Cannot load rules: %s", exc)
        return 2

    log.debug("Using %r", handler)
    if args.url:
        return probe_url(handler, settings, args.url, out)
    return run_samples(handler, out)


if __name__ == "__main__":
    sys.exit(main())
