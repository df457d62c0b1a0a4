from __future__ import annotations

from typing import Protocol


# ---- Ports (Hexagonal boundaries) ----
class NotifierPort(Protocol):
    """User-facing alert sink that error actions report to."""

    def show_alert(self, title: str, message: str = "") -> None: ...
