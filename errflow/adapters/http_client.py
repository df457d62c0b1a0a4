"""HTTP transport that turns failed calls into typed ``ApiError`` instances.

This module provides a thin wrapper around ``requests.Session`` so call
sites share timeout policy, retry behavior and API-key header construction,
and so every failure reaching an ``ErrorHandler`` is one of the
``api_errors`` types rather than a ``requests`` exception.

Dependencies:
    - ``requests`` for network I/O.
    - ``errflow.adapters.api_errors`` for typed failures.

Call context:
    - Used by ``errflow.app.main`` to probe a URL inside ``try_with``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests import exceptions as req_exc

from errflow.adapters.api_errors import (
    ApiError,
    ApiTimeoutError,
    error_for_status,
    parse_error_payload,
)


@dataclass
class HttpConfig:
    """Timeout and retry configuration for HTTP calls.

    Attributes:
        request_timeout_s: Default timeout in seconds for JSON API calls.
        retries: Number of retry attempts after the initial request.
    """
    request_timeout_s: int = 10
    retries: int = 2


class RetryingSession:
    """Shared requests wrapper with API-key headers and retry loops.

    Only timeouts and connection failures are retried. Responses are returned
    as-is; call ``ensure_ok`` to map non-2xx responses to typed errors.
    """

    def __init__(self, api_key: Optional[str], cfg: HttpConfig) -> None:
        """Create a retry-enabled session.

        Args:
            api_key: API key value to place in ``X-API-Key`` headers, or ``None``.
            cfg: Shared timeout and retry settings.
        """
        self.session = requests.Session()
        self.api_key = api_key
        self.cfg = cfg

    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/json",
        timeout: Optional[int] = None,
    ) -> requests.Response:
        """Send a GET request with retries on timeout/connectivity failures.

        Raises:
            ApiTimeoutError: If all attempts fail with timeout/connection errors.
            ApiError: For any other ``requests`` failure.
        """
        context = f"GET {url}"
        last_err: ApiTimeoutError | None = None
        for _ in range(self.cfg.retries + 1):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers=self._headers(accept=accept),
                    timeout=timeout or self.cfg.request_timeout_s,
                )
            except (req_exc.Timeout, req_exc.ConnectionError):
                last_err = ApiTimeoutError(f"Timeout contacting {url}", context=context)
            except req_exc.RequestException as exc:
                raise ApiError(str(exc), context=context) from exc
        raise last_err


def ensure_ok(resp: Any, context: str) -> Any:
    """Return ``resp`` for 2xx/3xx; raise ``ApiClientError``/``ApiServerError`` otherwise."""
    status = int(getattr(resp, "status_code", 0) or 0)
    err = error_for_status(status, parse_error_payload(resp) if status >= 400 else None, context=context)
    if err is not None:
        raise err
    return resp


def fetch_json(session: RetryingSession, url: str) -> Any:
    """GET ``url`` and decode its JSON body, raising typed errors on failure."""
    resp = ensure_ok(session.get(url), f"GET {url}")
    try:
        return resp.json()
    except ValueError as exc:
        raise ApiError(f"GET {url}: response is not JSON", context=f"GET {url}") from exc


__all__ = ["HttpConfig", "RetryingSession", "ensure_ok", "fetch_json"]
