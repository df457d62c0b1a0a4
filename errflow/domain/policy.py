"""Matching policy and action signature shared by the handler and its callers."""

from __future__ import annotations

from enum import Enum
from typing import Callable


class MatchingPolicy(Enum):
    """Returned by every action to tell the handler whether to keep going."""

    CONTINUE_MATCHING = "continue"
    STOP_MATCHING = "stop"


ErrorAction = Callable[[BaseException], MatchingPolicy]
Tag = str

CONTINUE_MATCHING = MatchingPolicy.CONTINUE_MATCHING
STOP_MATCHING = MatchingPolicy.STOP_MATCHING


__all__ = [
    "CONTINUE_MATCHING",
    "ErrorAction",
    "MatchingPolicy",
    "STOP_MATCHING",
    "Tag",
]
