"""Declarative rule documents (JSON) applied to an ``ErrorHandlerBuilder``.

A document names its actions; the callables are supplied by the caller, so
the file only describes *which* errors map to *which* named action::

    {
      "tags": {"http": [{"status": [400, 512]}]},
      "rules": [
        {"match": {"status": [400, 451]}, "action": "client_error"},
        {"match": {"status": 401}, "action": "unauthorized"},
        {"match": {"type": "errflow.adapters.api_errors.ApiTimeoutError"}, "action": "offline"},
        {"match": {"any_of": [{"domain": "errno", "code": 101}, {"type": "TimeoutError"}]},
         "action": "offline"},
        {"tag": "http", "action": "track_http"}
      ],
      "no_match": ["unknown"],
      "always": ["log"]
    }

Tags are registered first, then rules, fallbacks and always actions in file
order, so later entries take precedence at dispatch time exactly as with the
fluent API.
"""

from __future__ import annotations

import builtins
import importlib
import json
import logging
from functools import reduce
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, model_validator

from errflow.adapters.status_matchers import StatusCodeMatcher
from errflow.domain.errors import RulesFileError
from errflow.domain.handler import ErrorHandlerBuilder
from errflow.domain.matchers import ErrorDomainMatcher, ErrorMatcher, ErrorTypeMatcher
from errflow.domain.policy import ErrorAction

_log = logging.getLogger(__name__)


class MatchSpec(BaseModel):
    """One matcher; exactly one of the kinds below must be set."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: Optional[Union[StrictInt, Tuple[StrictInt, StrictInt]]] = Field(
        default=None, description="HTTP status, or [lo, hi) range"
    )
    type_: Optional[str] = Field(
        default=None, alias="type", description="Exception class, dotted path or builtin name"
    )
    domain: Optional[str] = None
    code: Optional[StrictInt] = None
    any_of: Optional[List[MatchSpec]] = None
    all_of: Optional[List[MatchSpec]] = None

    @model_validator(mode="after")
    def _check_kind(self) -> "MatchSpec":
        kinds = [
            name
            for name, value in (
                ("status", self.status),
                ("type", self.type_),
                ("domain", self.domain),
                ("any_of", self.any_of),
                ("all_of", self.all_of),
            )
            if value is not None
        ]
        if len(kinds) != 1:
            raise ValueError(
                f"match needs exactly one of status/type/domain/any_of/all_of, got {kinds or 'none'}"
            )
        if self.code is not None and self.domain is None:
            raise ValueError("'code' is only valid together with 'domain'")
        if isinstance(self.status, tuple) and self.status[0] >= self.status[1]:
            raise ValueError(f"status range {list(self.status)} is empty")
        for group in (self.any_of, self.all_of):
            if group is not None and not group:
                raise ValueError("any_of/all_of need at least one entry")
        return self


class RuleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    match: Optional[MatchSpec] = None
    tag: Optional[str] = None
    action: str

    @model_validator(mode="after")
    def _match_or_tag(self) -> "RuleSpec":
        if (self.match is None) == (self.tag is None):
            raise ValueError("rule needs exactly one of 'match' or 'tag'")
        return self


class RulesDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tags: Dict[str, List[MatchSpec]] = Field(default_factory=dict)
    rules: List[RuleSpec] = Field(default_factory=list)
    no_match: List[str] = Field(default_factory=list)
    always: List[str] = Field(default_factory=list)

    def action_names(self) -> List[str]:
        names = [rule.action for rule in self.rules] + self.no_match + self.always
        return list(dict.fromkeys(names))


MatchSpec.model_rebuild()


def parse_rules(data: Any, *, source: Optional[str] = None) -> RulesDocument:
    """Validate a decoded JSON value into a ``RulesDocument``."""
    try:
        return RulesDocument.model_validate(data)
    except ValidationError as exc:
        raise RulesFileError(str(exc), source=source) from exc


def load_rules(path: Union[str, Path]) -> RulesDocument:
    """Read and validate a JSON rule file. Missing files raise ``FileNotFoundError``."""
    source = str(path)
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise RulesFileError(f"invalid JSON ({exc})", source=source) from exc
    return parse_rules(data, source=source)


def resolve_error_type(name: str) -> type:
    """Resolve ``name`` to an exception class; bare names are looked up in builtins."""
    if "." in name:
        module_name, _, attr = name.rpartition(".")
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise RulesFileError(f"cannot import module {module_name!r} for type {name!r}") from exc
        candidate = getattr(module, attr, None)
    else:
        candidate = getattr(builtins, name, None)
    if not (isinstance(candidate, type) and issubclass(candidate, BaseException)):
        raise RulesFileError(f"{name!r} does not name an exception class")
    return candidate


def build_matcher(spec: MatchSpec) -> ErrorMatcher:
    if spec.status is not None:
        if isinstance(spec.status, tuple):
            return StatusCodeMatcher(range(spec.status[0], spec.status[1]))
        return StatusCodeMatcher(spec.status)
    if spec.type_ is not None:
        return ErrorTypeMatcher(resolve_error_type(spec.type_))
    if spec.domain is not None:
        return ErrorDomainMatcher(spec.domain, spec.code)
    if spec.any_of is not None:
        return reduce(lambda left, right: left | right, (build_matcher(s) for s in spec.any_of))
    return reduce(lambda left, right: left & right, (build_matcher(s) for s in spec.all_of or []))


def apply_rules(
    builder: ErrorHandlerBuilder,
    document: RulesDocument,
    actions: Mapping[str, ErrorAction],
) -> ErrorHandlerBuilder:
    """Register everything in ``document`` on ``builder`` and return it.

    Raises:
        RulesFileError: If an action name is missing from ``actions`` or a
            type cannot be resolved. Nothing is registered in that case.
    """
    missing = [name for name in document.action_names() if name not in actions]
    if missing:
        raise RulesFileError(f"unknown action name(s): {', '.join(missing)}")

    tags = [(tag, [build_matcher(spec) for spec in specs]) for tag, specs in document.tags.items()]
    rules = [
        (build_matcher(rule.match) if rule.match is not None else rule.tag, actions[rule.action])
        for rule in document.rules
    ]

    for tag, matchers in tags:
        for matcher in matchers:
            builder.tag(matcher, tag)
    for target, action in rules:
        if isinstance(target, str):
            builder.on_tag(target, action)
        else:
            builder.on(target, action)
    for name in document.no_match:
        builder.on_no_match(actions[name])
    for name in document.always:
        builder.always(actions[name])

    _log.debug(
        "Applied %d tag(s), %d rule(s), %d fallback(s), %d always action(s)",
        len(tags),
        len(rules),
        len(document.no_match),
        len(document.always),
    )
    return builder


__all__ = [
    "MatchSpec",
    "RuleSpec",
    "RulesDocument",
    "apply_rules",
    "build_matcher",
    "load_rules",
    "parse_rules",
    "resolve_error_type",
]
