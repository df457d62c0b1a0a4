from __future__ import annotations

import errno
import json
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from errflow.adapters.api_errors import ApiClientError, ApiServerError, ApiTimeoutError
from errflow.adapters.rules_file import (
    RulesDocument,
    apply_rules,
    build_matcher,
    load_rules,
    parse_rules,
    resolve_error_type,
)
from errflow.adapters.status_matchers import StatusCodeMatcher
from errflow.domain.errors import RulesFileError
from errflow.domain.handler import ErrorHandlerBuilder
from errflow.domain.policy import CONTINUE_MATCHING, STOP_MATCHING, MatchingPolicy

RULES = {
    "tags": {"http": [{"status": [400, 512]}]},
    "rules": [
        {"match": {"status": [400, 451]}, "action": "client"},
        {"match": {"status": 401}, "action": "unauthorized"},
        {
            "match": {
                "any_of": [
                    {"type": "errflow.adapters.api_errors.ApiTimeoutError"},
                    {"domain": "errno", "code": errno.ENETUNREACH},
                ]
            },
            "action": "offline",
        },
        {"tag": "http", "action": "http"},
    ],
    "no_match": ["unknown"],
    "always": ["log"],
}


class _Actions:
    def __init__(self) -> None:
        self.calls: List[str] = []

    def mapping(self) -> Dict[str, Callable[[BaseException], MatchingPolicy]]:
        def make(name: str, policy: MatchingPolicy = CONTINUE_MATCHING):
            def _act(_: BaseException) -> MatchingPolicy:
                self.calls.append(name)
                return policy

            return _act

        return {
            "client": make("client"),
            "unauthorized": make("unauthorized", STOP_MATCHING),
            "offline": make("offline"),
            "http": make("http"),
            "unknown": make("unknown"),
            "log": make("log"),
        }


def _handler_from(document: RulesDocument, actions: _Actions):
    return apply_rules(ErrorHandlerBuilder(), document, actions.mapping()).build()


def test_load_rules_and_dispatch(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(RULES), encoding="utf-8")
    actions = _Actions()

    handler = _handler_from(load_rules(path), actions)
    handler.handle(ApiClientError("x", status=404))
    handler.handle(ApiClientError("x", status=401))
    handler.handle(OSError(errno.ENETUNREACH, "unreachable"))
    handler.handle(ValueError("other"))

    assert actions.calls == [
        "http", "client", "log",
        "http", "unauthorized", "log",
        "offline", "log",
        "unknown", "log",
    ]


def test_file_entries_behave_like_fluent_calls() -> None:
    actions = _Actions()
    handler = _handler_from(parse_rules(RULES), actions)

    handler.handle(ApiTimeoutError("slow"))
    handler.handle(ApiServerError("down", status=503))

    assert actions.calls == ["offline", "log", "http", "log"]
    assert len(handler.registrations) == 4
    assert list(handler.tags) == ["http"]


def test_unknown_action_names_are_rejected_before_registering() -> None:
    builder = ErrorHandlerBuilder()
    document = parse_rules({"rules": [{"match": {"status": 500}, "action": "missing"}]})

    with pytest.raises(RulesFileError, match="missing"):
        apply_rules(builder, document, {})

    assert builder.build().registrations == ()


@pytest.mark.parametrize(
    "match",
    [
        {},
        {"status": 500, "domain": "net"},
        {"code": 3},
        {"status": [451, 400]},
        {"any_of": []},
        {"regex": "x"},
        {"status": True},
        {"status": [True, 404]},
        {"domain": "d", "code": True},
    ],
)
def test_invalid_match_specs(match: dict) -> None:
    with pytest.raises(RulesFileError):
        parse_rules({"rules": [{"match": match, "action": "a"}]}, source="inline")


def test_rule_needs_match_or_tag_but_not_both() -> None:
    with pytest.raises(RulesFileError):
        parse_rules({"rules": [{"action": "a"}]})
    with pytest.raises(RulesFileError):
        parse_rules({"rules": [{"match": {"status": 500}, "tag": "t", "action": "a"}]})


def test_invalid_json_reports_source(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RulesFileError) as excinfo:
        load_rules(path)

    assert excinfo.value.source == str(path)


def test_resolve_error_type_handles_builtins_and_dotted_paths() -> None:
    assert resolve_error_type("TimeoutError") is TimeoutError
    assert resolve_error_type("errflow.adapters.api_errors.ApiClientError") is ApiClientError
    with pytest.raises(RulesFileError):
        resolve_error_type("len")
    with pytest.raises(RulesFileError):
        resolve_error_type("no_such_module_xyz.Error")


def test_build_matcher_status_range() -> None:
    document = parse_rules({"tags": {"t": [{"status": [500, 512]}]}})

    matcher = build_matcher(document.tags["t"][0])

    assert isinstance(matcher, StatusCodeMatcher)
    assert matcher.statuses == range(500, 512)


def test_all_of_combines_matchers() -> None:
    document = parse_rules(
        {"tags": {"t": [{"all_of": [{"type": "OSError"}, {"domain": "errno", "code": errno.ENOENT}]}]}}
    )
    matcher = build_matcher(document.tags["t"][0])

    assert matcher.matches(FileNotFoundError(errno.ENOENT, "missing"))
    assert not matcher.matches(OSError(errno.EACCES, "denied"))
