from __future__ import annotations

import threading
from typing import Callable, List

import pytest

from errflow.domain.errors import AppError, AppErrorKind, InvalidPolicyError
from errflow.domain.handler import ErrorHandler, ErrorHandlerBuilder, try_with
from errflow.domain.matchers import ClosureErrorMatcher
from errflow.domain.policy import CONTINUE_MATCHING, STOP_MATCHING, MatchingPolicy


class AnError(Exception):
    pass


class OtherError(Exception):
    pass


class _CallRecorder:
    def __init__(self) -> None:
        self.calls: List[str] = []

    def action(
        self, name: str, policy: MatchingPolicy = CONTINUE_MATCHING
    ) -> Callable[[BaseException], MatchingPolicy]:
        def _act(error: BaseException) -> MatchingPolicy:
            self.calls.append(name)
            return policy

        return _act


def _always_true(_: BaseException) -> bool:
    return True


def _always_false(_: BaseException) -> bool:
    return False


def test_action_receives_the_handled_error() -> None:
    seen: List[BaseException] = []
    error = AnError()

    def act(err: BaseException) -> MatchingPolicy:
        seen.append(err)
        return CONTINUE_MATCHING

    ErrorHandlerBuilder().on_matches(_always_true, act).build().handle(error)

    assert seen == [error]


def test_no_match_runs_fallbacks_and_always_but_no_rule() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_false, rec.action("rule"))
        .on_no_match(rec.action("fallback1"))
        .on_no_match(rec.action("fallback2"))
        .always(rec.action("always"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["fallback2", "fallback1", "always"]


def test_match_skips_fallbacks_but_runs_always() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("rule"))
        .on_no_match(rec.action("fallback"))
        .always(rec.action("always"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["rule", "always"]


def test_later_registration_fires_first() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("r1"))
        .on_matches(_always_true, rec.action("r2"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["r2", "r1"]


def test_stop_matching_suppresses_earlier_rules_not_always() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("r1"))
        .on_matches(_always_true, rec.action("r2", STOP_MATCHING))
        .always(rec.action("always"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["r2", "always"]


def test_fallbacks_stop_on_stop_matching() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_no_match(rec.action("fallback1"))
        .on_no_match(rec.action("fallback2", STOP_MATCHING))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["fallback2"]


def test_full_dispatch_order() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("action1"))
        .on_matches(_always_true, rec.action("action2", STOP_MATCHING))
        .on_matches(_always_true, rec.action("action3"))
        .on_matches(_always_false, rec.action("action4", STOP_MATCHING))
        .on_no_match(rec.action("no_match"))
        .always(rec.action("always1", STOP_MATCHING))
        .always(rec.action("always2", STOP_MATCHING))
        .always(rec.action("always3"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["action3", "action2", "always3", "always2"]


def test_handle_is_stateless_between_calls() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_error(AnError, rec.action("an"))
        .on_no_match(rec.action("fallback"))
        .build()
    )

    handler.handle(AnError())
    handler.handle(OtherError())
    handler.handle(AnError())

    assert rec.calls == ["an", "fallback", "an"]


def test_tag_expansion_fires_once_per_tagged_matcher() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .tag_matches(_always_true, "t")
        .tag(ClosureErrorMatcher(_always_true), "t")
        .on_tag("t", rec.action("tagged"))
        .on_matches(_always_true, rec.action("later"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["later", "tagged", "tagged"]


def test_tag_expansion_keeps_position_relative_to_other_rules() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("before"))
        .tag_matches(_always_true, "t")
        .on_tag("t", rec.action("tagged"))
        .on_matches(_always_true, rec.action("after"))
        .build()
    )

    handler.handle(AnError())

    assert rec.calls == ["after", "tagged", "before"]


def test_tag_binding_is_a_snapshot() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .tag_matches(lambda e: isinstance(e, AnError), "t")
        .on_tag("t", rec.action("tagged"))
        .tag_matches(lambda e: isinstance(e, OtherError), "t")
        .on_no_match(rec.action("fallback"))
        .build()
    )

    handler.handle(OtherError())

    assert rec.calls == ["fallback"]
    assert len(handler.tags["t"]) == 2


def test_unknown_tag_is_a_silent_no_op() -> None:
    rec = _CallRecorder()
    builder = ErrorHandlerBuilder()

    returned = builder.on_tag("unknown-tag", rec.action("tagged"))
    handler = returned.on_no_match(rec.action("fallback")).build()
    handler.handle(AnError())

    assert returned is builder
    assert handler.registrations == ()
    assert rec.calls == ["fallback"]


def test_on_value_matches_only_equal_errors_of_the_same_kind() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_value(AppError(AppErrorKind.PARSING), rec.action("parsing"))
        .on_no_match(rec.action("fallback"))
        .build()
    )

    handler.handle(AppError(AppErrorKind.PARSING, "bad token"))
    handler.handle(AppError(AppErrorKind.UNKNOWN))
    handler.handle(AnError("parsing"))

    assert rec.calls == ["parsing", "fallback", "fallback"]


def test_on_error_matches_subclasses() -> None:
    class SubError(AnError):
        pass

    rec = _CallRecorder()
    handler = ErrorHandlerBuilder().on_error(AnError, rec.action("an")).build()

    handler.handle(SubError())
    handler.handle(OtherError())

    assert rec.calls == ["an"]


def test_on_error_domain_with_and_without_code() -> None:
    class CodedError(Exception):
        def __init__(self, domain: str, code: int) -> None:
            super().__init__(domain)
            self.domain = domain
            self.code = code

    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_error_domain("net", rec.action("any-net"))
        .on_error_domain("net", rec.action("net-7"), code=7)
        .build()
    )

    handler.handle(CodedError("net", 7))
    handler.handle(CodedError("net", 3))
    handler.handle(CodedError("disk", 7))

    assert rec.calls == ["net-7", "any-net", "any-net"]


def test_always_runs_when_an_action_raises_and_error_propagates() -> None:
    rec = _CallRecorder()

    def boom(_: BaseException) -> MatchingPolicy:
        raise RuntimeError("action failed")

    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, rec.action("earlier"))
        .on_matches(_always_true, boom)
        .always(rec.action("always"))
        .build()
    )

    with pytest.raises(RuntimeError, match="action failed"):
        handler.handle(AnError())

    assert rec.calls == ["always"]


def test_action_returning_none_is_rejected() -> None:
    rec = _CallRecorder()
    handler = (
        ErrorHandlerBuilder()
        .on_matches(_always_true, lambda _: None)  # type: ignore[arg-type, return-value]
        .always(rec.action("always"))
        .build()
    )

    with pytest.raises(InvalidPolicyError):
        handler.handle(AnError())

    assert rec.calls == ["always"]


def test_built_handler_ignores_later_builder_changes() -> None:
    rec = _CallRecorder()
    builder = ErrorHandlerBuilder().on_no_match(rec.action("fallback"))
    handler = builder.build()

    builder.on_matches(_always_true, rec.action("late"))
    handler.handle(AnError())

    assert rec.calls == ["fallback"]
    assert isinstance(handler, ErrorHandler)


def test_to_builder_allows_local_override() -> None:
    rec = _CallRecorder()
    shared = (
        ErrorHandlerBuilder()
        .on_error(AnError, rec.action("shared"))
        .tag_matches(_always_true, "all")
        .always(rec.action("always"))
        .build()
    )

    local = (
        shared.to_builder()
        .on_error(AnError, rec.action("local", STOP_MATCHING))
        .on_tag("all", rec.action("tagged"))
        .build()
    )
    local.handle(AnError())
    rec.calls.append("|")
    shared.handle(AnError())

    assert rec.calls == ["tagged", "local", "always", "|", "shared", "always"]


def test_concurrent_handle_on_sealed_handler() -> None:
    counts: List[int] = []
    lock = threading.Lock()

    def count(_: BaseException) -> MatchingPolicy:
        with lock:
            counts.append(1)
        return CONTINUE_MATCHING

    handler = ErrorHandlerBuilder().on_error(AnError, count).always(count).build()
    threads = [
        threading.Thread(target=lambda: [handler.handle(AnError()) for _ in range(50)])
        for _ in range(4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(counts) == 4 * 50 * 2


def test_try_with_returns_result_on_success() -> None:
    rec = _CallRecorder()
    handler = ErrorHandlerBuilder().always(rec.action("always")).build()

    assert try_with(handler, lambda: 42) == 42
    assert rec.calls == []


def test_try_with_forwards_failure_to_handler() -> None:
    seen: List[BaseException] = []

    def record(err: BaseException) -> MatchingPolicy:
        seen.append(err)
        return CONTINUE_MATCHING

    handler = ErrorHandlerBuilder().on_error(AnError, record).build()

    def failing() -> int:
        raise AnError("nope")

    assert try_with(handler, failing) is None
    assert len(seen) == 1 and str(seen[0]) == "nope"


def test_try_with_does_not_capture_keyboard_interrupt() -> None:
    handler = ErrorHandlerBuilder().build()

    def interrupted() -> None:
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        try_with(handler, interrupted)
