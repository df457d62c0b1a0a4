from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO, Tuple

from errflow.domain.ports import NotifierPort


class ConsoleNotifier(NotifierPort):
    """Writes alerts as ``title: message`` lines and keeps a history of them."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self._log = logging.getLogger(__name__)
        self.history: List[Tuple[str, str]] = []

    def show_alert(self, title: str, message: str = "") -> None:
        self.history.append((title, message))
        self._log.info("Alert shown: %s", title)
        line = f"{title}: {message}" if message else title
        stream = self._stream or sys.stdout
        print(line, file=stream)
