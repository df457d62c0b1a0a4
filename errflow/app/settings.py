from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

_log = logging.getLogger(__name__)

ENV_PREFIX = "ERRFLOW_"


@dataclass(frozen=True)
class AppSettings:
    """Typed runtime settings for the demo app and its HTTP transport."""

    base_url: str = ""
    api_key: str = ""
    request_timeout_s: int = 10
    retries: int = 2
    rules_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppSettings":
        """Build settings from a decoded JSON object, ignoring unknown keys.

        Raises:
            ValueError: If a numeric field is not a non-negative integer.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            _log.debug("Ignoring unknown settings keys: %s", ", ".join(unknown))
        values: Dict[str, Any] = {}
        for key in ("base_url", "api_key", "log_level"):
            if key in data and data[key] is not None:
                values[key] = str(data[key]).strip()
        for key in ("request_timeout_s", "retries"):
            if key in data:
                values[key] = _coerce_int(key, data[key])
        if "rules_path" in data:
            rules_path = str(data["rules_path"] or "").strip()
            values["rules_path"] = rules_path or None
        settings = cls(**values)
        if settings.request_timeout_s == 0:
            raise ValueError("request_timeout_s must be positive")
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_env(self, env: Mapping[str, str]) -> "AppSettings":
        """Return a copy with ``ERRFLOW_*`` environment overrides applied."""
        overrides: Dict[str, Any] = {}
        for f in fields(self):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            overrides[f.name] = raw
        if not overrides:
            return self
        merged = self.to_dict()
        merged.update(overrides)
        return AppSettings.from_dict(merged)


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if number < 0:
        raise ValueError(f"{name} must be >= 0, got {number}")
    return number


def load_settings(
    path: Union[str, Path, None] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AppSettings:
    """Load settings from ``path`` (if it exists) and apply environment overrides."""
    env = os.environ if env is None else env
    settings = AppSettings()
    if path is not None and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: settings file must contain a JSON object")
        settings = AppSettings.from_dict(data)
    elif path is not None:
        _log.info("Settings file %s not found; using defaults", path)
    return settings.with_env(env)


def save_settings(settings: AppSettings, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, ensure_ascii=False, indent=2)


__all__ = ["AppSettings", "ENV_PREFIX", "load_settings", "save_settings"]
