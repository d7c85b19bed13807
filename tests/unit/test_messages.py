# tests/unit/test_messages.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from formstore.core.messages import DEFAULT_VALIDATE_MESSAGES, lookup_message, merge_messages, replace_message


def test_replace_message_substitutes_known_placeholders():
    assert replace_message("I'm ${name}, ${age}", {"name": "bamboo", "age": 3}) == "I'm bamboo, 3"


def test_replace_message_leaves_unknown_placeholders():
    assert replace_message("'${name}' must be ${max}", {"name": "age"}) == "'age' must be ${max}"
    assert replace_message("${name}", {"name": None}) == "${name}"


def test_lookup_message_by_dotted_key():
    assert lookup_message(DEFAULT_VALIDATE_MESSAGES, "string.min") == "'${name}' must be at least ${min} characters"
    assert lookup_message(DEFAULT_VALIDATE_MESSAGES, "required") == "'${name}' is required"
    assert lookup_message(DEFAULT_VALIDATE_MESSAGES, "string") is None
    assert lookup_message(DEFAULT_VALIDATE_MESSAGES, "nope.nothing") is None


def test_merge_messages_overrides_nested_keys_only():
    merged = merge_messages(DEFAULT_VALIDATE_MESSAGES, {"string": {"min": "too short"}}, None)

    assert merged["string"]["min"] == "too short"
    assert merged["string"]["max"] == DEFAULT_VALIDATE_MESSAGES["string"]["max"]
    assert DEFAULT_VALIDATE_MESSAGES["string"]["min"] != "too short"
