# tests/unit/test_rules.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import re

import pytest

from formstore.core.errors import ConfigurationError
from formstore.core.rules import Rule, check_rule, to_rule

# -----------------------------------------------------------------------------
# CONSTRUCTION
# -----------------------------------------------------------------------------


def test_rule_from_dict_accepts_aliases():
    rule = Rule.from_dict({"len": 3, "warningOnly": True, "validateTrigger": "onBlur", "defaultField": {"type": "string"}})

    assert rule.length == 3
    assert rule.warning_only is True
    assert rule.validate_trigger == "onBlur"
    assert rule.default_field == Rule(type="string")


def test_rule_rejects_unknown_type_and_keys():
    with pytest.raises(ConfigurationError):
        Rule(type="colour")
    with pytest.raises(ConfigurationError):
        Rule.from_dict({"colour": "red"})
    with pytest.raises(ConfigurationError):
        to_rule(42)


def test_message_fields_skip_unset_values():
    fields = Rule(min=2, pattern=re.compile("^a")).message_fields()
    assert fields["min"] == 2
    assert fields["pattern"] == "^a"
    assert "max" not in fields


# -----------------------------------------------------------------------------
# STATIC CHECKS
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    "rule,value,expected",
    [
        (Rule(required=True), None, ["required"]),
        (Rule(required=True), "", ["required"]),
        (Rule(required=True), "x", []),
        (Rule(required=True, type="array"), [], ["required"]),
        (Rule(min=3), None, []),
        (Rule(type="number"), "12", ["types.number"]),
        (Rule(type="integer"), 1.5, ["types.integer"]),
        (Rule(type="integer"), 2, []),
        (Rule(type="boolean"), True, []),
        (Rule(type="email"), "someone@example.com", []),
        (Rule(type="email"), "not-an-email", ["types.email"]),
        (Rule(type="url"), "https://example.com/path", []),
        (Rule(type="hex"), "#fff", []),
        (Rule(type="string", min=3), "ab", ["string.min"]),
        (Rule(type="string", max=3), "abcd", ["string.max"]),
        (Rule(min=1, max=3), 5, ["number.range"]),
        (Rule(length=2), [1, 2, 3], ["array.len"]),
        (Rule(whitespace=True), "   ", ["whitespace"]),
        (Rule(pattern=r"^\d+$"), "12a", ["pattern.mismatch"]),
        (Rule(pattern=r"^\d+$"), "123", []),
        (Rule(enum=["a", "b"]), "c", ["enum"]),
        (Rule(type="enum", enum=["a", "b"]), "a", []),
    ],
)
def test_check_rule(rule, value, expected):
    assert check_rule(rule, value) == expected


def test_type_failure_stops_further_checks():
    assert check_rule(Rule(type="string", min=5, enum=["x"]), 3) == ["types.string"]


def test_required_is_not_type_checked_without_declared_type():
    assert check_rule(Rule(required=True), 0) == []
    assert check_rule(Rule(required=True), ["x"]) == []


def test_rule_rejects_uncompilable_pattern():
    with pytest.raises(ConfigurationError):
        Rule(pattern="(")
    with pytest.raises(ConfigurationError):
        Rule.from_dict({"pattern": "[a-"})
    assert Rule(pattern="^a+$").pattern == "^a+$"
