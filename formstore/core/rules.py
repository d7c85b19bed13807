# formstore/core/rules.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from formstore.core.errors import ConfigurationError

_NUMBER_TYPES = ("number", "integer", "float")
_STRING_TYPES = ("string", "url", "hex", "email", "date", "pattern")
_KNOWN_TYPES = _NUMBER_TYPES + (
    "string",
    "boolean",
    "method",
    "regexp",
    "array",
    "object",
    "enum",
    "date",
    "url",
    "hex",
    "email",
    "pattern",
    "any",
)

_EMAIL = re.compile(r"^[^\s@<>()\[\],;:\\\"]+@([A-Za-z0-9-]+\.)+[A-Za-z]{2,}$")
_URL = re.compile(r"^(?:(?:https?|ftp)://|//)(?:\S+(?::\S*)?@)?(?:localhost|[^\s/?#:]+)(?::\d{2,5})?(?:[/?#]\S*)?$", re.I)
_HEX = re.compile(r"^#?([a-f0-9]{6}|[a-f0-9]{3})$", re.I)

Validator = Callable[..., Any]


class RuleFailure(Exception):
    """
    Raised by user validators to report that the value is invalid. The exception
    text becomes the rule's error message.
    """


@dataclass
class Rule:
    """
    A single declarative validation unit.

    Either a static descriptor (``required``, ``type``, ``pattern``, ``enum``,
    ``length``/``min``/``max``, ``whitespace``, ``default_field`` for array items)
    or a user ``validator``. ``warning_only`` routes failures to warnings and
    ``validate_trigger`` restricts which UI events arm the rule.
    """

    type: Optional[str] = None
    required: bool = False
    pattern: Optional[Union[str, "re.Pattern[str]"]] = None
    enum: Optional[Sequence[Any]] = None
    length: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    whitespace: bool = False
    message: Optional[str] = None
    validator: Optional[Validator] = None
    transform: Optional[Callable[[Any], Any]] = None
    default_field: Optional["Rule"] = None
    warning_only: bool = False
    validate_trigger: Optional[Union[str, Sequence[str]]] = None
    rule_index: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.type is not None and self.validator is None and self.type not in _KNOWN_TYPES:
            raise ConfigurationError(f"Unknown rule type {self.type!r}")
        if isinstance(self.pattern, str):
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ConfigurationError(f"Invalid rule pattern {self.pattern!r}: {exc}") from exc
        if isinstance(self.default_field, Mapping):
            self.default_field = Rule.from_dict(self.default_field)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """
        Build a rule from a plain mapping. camelCase keys (``warningOnly``,
        ``validateTrigger``, ``defaultField``) and ``len`` are accepted as aliases.
        """
        aliases = {
            "len": "length",
            "warningOnly": "warning_only",
            "validateTrigger": "validate_trigger",
            "defaultField": "default_field",
            "ruleIndex": "rule_index",
        }
        kwargs = {aliases.get(key, key): value for key, value in data.items()}
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid rule definition {dict(data)!r}: {exc}") from exc

    @property
    def effective_type(self) -> str:
        if self.type is None and self.pattern is not None:
            return "pattern"
        return self.type or "string"

    def message_fields(self) -> Dict[str, Any]:
        """Declared fields available to message templates."""
        pattern = self.pattern.pattern if isinstance(self.pattern, re.Pattern) else self.pattern
        candidates = {
            "type": self.type,
            "required": self.required,
            "pattern": pattern,
            "len": self.length,
            "min": self.min,
            "max": self.max,
            "whitespace": self.whitespace,
            "message": self.message,
            "warningOnly": self.warning_only,
        }
        return {key: value for key, value in candidates.items() if value is not None}


@dataclass
class RuleError:
    """The messages one rule reported for a value."""

    rule: Rule
    errors: List[str] = field(default_factory=list)


RuleLike = Union[Rule, Mapping[str, Any]]


def to_rule(rule: RuleLike) -> Rule:
    if isinstance(rule, Rule):
        return rule
    if isinstance(rule, Mapping):
        return Rule.from_dict(rule)
    raise ConfigurationError(f"Unsupported rule {rule!r}")


def is_empty_value(value: Any, rule_type: str) -> bool:
    if value is None:
        return True
    if rule_type == "array" and isinstance(value, (list, tuple)) and not value:
        return True
    if rule_type in _STRING_TYPES and isinstance(value, str) and not value:
        return True
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _is_integer(value: Any) -> bool:
    if not _is_number(value):
        return False
    return isinstance(value, int) or float(value).is_integer()


def _is_regexp(value: Any) -> bool:
    if isinstance(value, re.Pattern):
        return True
    if not isinstance(value, str):
        return False
    try:
        re.compile(value)
    except re.error:
        return False
    return True


_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "integer": _is_integer,
    "float": lambda value: _is_number(value) and not _is_integer(value),
    "boolean": lambda value: isinstance(value, bool),
    "method": callable,
    "regexp": _is_regexp,
    "array": lambda value: isinstance(value, (list, tuple)),
    "object": lambda value: isinstance(value, Mapping),
    "date": lambda value: isinstance(value, (datetime.date, datetime.datetime)),
    "email": lambda value: isinstance(value, str) and len(value) <= 320 and bool(_EMAIL.match(value)),
    "url": lambda value: isinstance(value, str) and len(value) <= 2048 and bool(_URL.match(value)),
    "hex": lambda value: isinstance(value, str) and bool(_HEX.match(value)),
}


def _range_kind(value: Any) -> Optional[str]:
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return None


def _check_range(rule: Rule, value: Any) -> Optional[str]:
    kind = _range_kind(value)
    if kind is None:
        return None
    measured = value if kind == "number" else len(value)
    if rule.length is not None:
        return f"{kind}.len" if measured != rule.length else None
    if rule.min is not None and rule.max is None and measured < rule.min:
        return f"{kind}.min"
    if rule.max is not None and rule.min is None and measured > rule.max:
        return f"{kind}.max"
    if rule.min is not None and rule.max is not None and (measured < rule.min or measured > rule.max):
        return f"{kind}.range"
    return None


def _check_pattern(rule: Rule, value: Any) -> Optional[str]:
    if rule.pattern is None or not isinstance(value, str):
        return None
    pattern = rule.pattern if isinstance(rule.pattern, re.Pattern) else re.compile(rule.pattern)
    return None if pattern.search(value) else "pattern.mismatch"


def check_rule(rule: Rule, value: Any) -> List[str]:
    """
    Evaluate a static rule descriptor against a value.

    :param rule: Rule without a custom validator.
    :param value: Value after ``transform`` has been applied.
    :return: Message-table keys of the failed checks, empty when the value passes.
    """
    rule_type = rule.effective_type
    if is_empty_value(value, rule_type):
        return ["required"] if rule.required else []

    # Only an explicitly declared type is enforced
    if rule.type is not None and rule_type not in ("pattern", "enum", "any"):
        type_check = _TYPE_CHECKS.get(rule_type)
        if type_check is not None and not type_check(value):
            return [f"types.{rule_type}"]

    failed: List[str] = []
    if rule.whitespace and isinstance(value, str) and not value.strip():
        failed.append("whitespace")
    range_key = _check_range(rule, value)
    if range_key:
        failed.append(range_key)
    pattern_key = _check_pattern(rule, value)
    if pattern_key:
        failed.append(pattern_key)
    if rule.enum is not None and value not in list(rule.enum):
        failed.append("enum")
    return failed
