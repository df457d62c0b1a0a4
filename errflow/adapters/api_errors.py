"""Typed HTTP API failures and payload helpers.

Transport code raises these instead of ``requests`` exceptions so that
matchers (see ``status_matchers``) only depend on this module's shape.
"""
from __future__ import annotations

from typing import Any, Optional


class ApiError(RuntimeError):
    """Base class for HTTP API failures."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.hint = hint
        self.payload = payload
        self.context = context

    @property
    def loggable_description(self) -> str:
        where = f" [{self.context}]" if self.context else ""
        if self.status is not None:
            return f"{type(self).__name__} HTTP {self.status}{where}: {self}"
        return f"{type(self).__name__}{where}: {self}"


class ApiClientError(ApiError):
    """HTTP 4xx response."""


class ApiServerError(ApiError):
    """HTTP 5xx response."""


class ApiTimeoutError(ApiError):
    """Timeout or connectivity failure before any response arrived."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message, context=context)


def error_for_status(status: int, payload: Any, *, context: str) -> Optional[ApiError]:
    """Return the typed error for a 4xx/5xx ``status``, or None below 400."""
    if status < 400:
        return None
    message = build_error_message(context, status, payload)
    if 400 <= status < 500:
        return ApiClientError(
            message,
            status=status,
            code=extract_error_code(payload),
            hint=extract_error_hint(payload),
            payload=payload,
            context=context,
        )
    return ApiServerError(message, status=status, payload=payload, context=context)


def parse_error_payload(resp: Any) -> Any:
    """Best-effort extraction of an error body; never raises."""
    try:
        return resp.json()
    except ValueError:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:400]


def build_error_message(ctx: str, status: int, payload: Any) -> str:
    detail = first_string(payload)
    if detail:
        return f"{ctx}: {detail} (HTTP {status})"
    return f"{ctx}: HTTP {status}"


def extract_error_code(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("code", "error_code"):
            value = payload.get(key)
            if value is not None:
                return str(value)
    return None


def extract_error_hint(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("hint", "details", "errors"):
            if key in payload:
                text = stringify(payload[key])
                if text:
                    return text
    return None


def first_string(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        return payload.strip() or None
    if isinstance(payload, dict):
        for key in ("detail", "message", "error", "title"):
            candidate = first_string(payload.get(key))
            if candidate:
                return candidate
    if isinstance(payload, list):
        for item in payload:
            candidate = first_string(item)
            if candidate:
                return candidate
    return None


def stringify(data: Any, *, limit: int = 200) -> Optional[str]:
    if data is None:
        return None
    if isinstance(data, list):
        parts = [text for text in (stringify(item, limit=limit) for item in data[:3]) if text]
        return "; ".join(parts)[:limit] or None
    if isinstance(data, dict):
        pairs = []
        for key, value in list(data.items())[:4]:
            value_text = stringify(value, limit=limit)
            if value_text:
                pairs.append(f"{key}={value_text}")
        return ", ".join(pairs)[:limit] or None
    text = str(data).strip()
    return text[:limit] if text else None


__all__ = [
    "ApiClientError",
    "ApiError",
    "ApiServerError",
    "ApiTimeoutError",
    "build_error_message",
    "error_for_status",
    "extract_error_code",
    "extract_error_hint",
    "first_string",
    "parse_error_payload",
    "stringify",
]
