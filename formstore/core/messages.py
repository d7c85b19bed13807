# formstore/core/messages.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from formstore.core.values import set_values

_TYPE_TEMPLATE = "'${name}' is not a valid ${type}"

DEFAULT_VALIDATE_MESSAGES: Dict[str, Any] = {
    "default": "Validation error on field '${name}'",
    "required": "'${name}' is required",
    "enum": "'${name}' must be one of [${enum}]",
    "whitespace": "'${name}' cannot be empty",
    "date": {
        "format": "'${name}' is invalid for format date",
        "parse": "'${name}' could not be parsed as date",
        "invalid": "'${name}' is invalid date",
    },
    "types": {
        "string": _TYPE_TEMPLATE,
        "method": _TYPE_TEMPLATE,
        "array": _TYPE_TEMPLATE,
        "object": _TYPE_TEMPLATE,
        "number": _TYPE_TEMPLATE,
        "date": _TYPE_TEMPLATE,
        "boolean": _TYPE_TEMPLATE,
        "integer": _TYPE_TEMPLATE,
        "float": _TYPE_TEMPLATE,
        "regexp": _TYPE_TEMPLATE,
        "email": _TYPE_TEMPLATE,
        "url": _TYPE_TEMPLATE,
        "hex": _TYPE_TEMPLATE,
    },
    "string": {
        "len": "'${name}' must be exactly ${len} characters",
        "min": "'${name}' must be at least ${min} characters",
        "max": "'${name}' cannot be longer than ${max} characters",
        "range": "'${name}' must be between ${min} and ${max} characters",
    },
    "number": {
        "len": "'${name}' must equal ${len}",
        "min": "'${name}' cannot be less than ${min}",
        "max": "'${name}' cannot be greater than ${max}",
        "range": "'${name}' must be between ${min} and ${max}",
    },
    "array": {
        "len": "'${name}' must be exactly ${len} in length",
        "min": "'${name}' cannot be less than ${min} in length",
        "max": "'${name}' cannot be greater than ${max} in length",
        "range": "'${name}' must be between ${min} and ${max} in length",
    },
    "pattern": {
        "mismatch": "'${name}' does not match pattern ${pattern}",
    },
}

_PLACEHOLDER = re.compile(r"\$\{(\w+)\}")


def merge_messages(*tables: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge message tables; later tables override earlier ones key by key, nested
    tables are merged rather than replaced.
    """
    return set_values({}, *[dict(table) for table in tables if table])


def lookup_message(table: Mapping[str, Any], key: str) -> Optional[str]:
    """
    Find a template by dotted key, e.g. ``"string.min"``. Returns None when the
    key does not name a template.
    """
    node: Any = table
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def replace_message(template: str, kv: Mapping[str, Any]) -> str:
    """
    Substitute ``${var}`` placeholders from ``kv``. Unknown placeholders are left as written.

        replace_message("I'm ${name}", {"name": "bamboo"}) == "I'm bamboo"
    """

    def _fill(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in kv or kv[key] is None:
            return match.group(0)
        return str(kv[key])

    return _PLACEHOLDER.sub(_fill, template)
