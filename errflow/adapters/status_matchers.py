"""HTTP status matchers over ``ApiError`` and builder helpers that use them."""

from __future__ import annotations

from typing import Union

from errflow.adapters.api_errors import ApiError
from errflow.domain.handler import ErrorHandlerBuilder
from errflow.domain.matchers import ErrorMatcher
from errflow.domain.policy import ErrorAction, Tag

StatusSpec = Union[int, range]


class StatusCodeMatcher(ErrorMatcher):
    """Matches ``ApiError`` instances whose HTTP status equals or falls in ``statuses``."""

    def __init__(self, statuses: StatusSpec) -> None:
        if isinstance(statuses, bool) or not isinstance(statuses, (int, range)):
            raise TypeError(f"statuses must be an int or a range, got {statuses!r}")
        self.statuses = range(statuses, statuses + 1) if isinstance(statuses, int) else statuses

    def matches(self, error: BaseException) -> bool:
        if not isinstance(error, ApiError):
            return False
        status = error.status
        if status is None:
            return False
        return status in self.statuses

    def __repr__(self) -> str:
        if len(self.statuses) == 1:
            return f"StatusCodeMatcher({self.statuses.start})"
        return f"StatusCodeMatcher({self.statuses.start}..<{self.statuses.stop})"


def on_status(
    builder: ErrorHandlerBuilder, statuses: StatusSpec, action: ErrorAction
) -> ErrorHandlerBuilder:
    return builder.on(StatusCodeMatcher(statuses), action)


def tag_status(builder: ErrorHandlerBuilder, statuses: StatusSpec, tag: Tag) -> ErrorHandlerBuilder:
    return builder.tag(StatusCodeMatcher(statuses), tag)


__all__ = ["StatusCodeMatcher", "StatusSpec", "on_status", "tag_status"]
