# formstore/core/hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Host callbacks and the internal hook surface of a form store.

The internal hooks are only handed out to callers presenting ``HOOK_MARK``; fields,
watchers and the form controller use them, application code uses the public
``FormStore`` methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from formstore.interfaces.types import FieldsChangeCallback, FinishCallback, FinishFailedCallback, ValuesChangeCallback

HOOK_MARK = "FORMSTORE_INTERNAL_HOOKS"


@dataclass
class Callbacks:
    """
    Callbacks supplied by the host.

    :param on_values_change: ``(changed_values, all_values)`` after a field changed its value.
    :param on_fields_change: ``(changed_fields, all_fields)`` after field values or meta changed.
    :param on_finish: Called with the values when ``submit`` validated successfully.
    :param on_finish_failed: Called with the ``ValidateFieldsError`` when ``submit`` failed.
    """

    on_values_change: Optional[ValuesChangeCallback] = None
    on_fields_change: Optional[FieldsChangeCallback] = None
    on_finish: Optional[FinishCallback] = None
    on_finish_failed: Optional[FinishFailedCallback] = None


@dataclass(frozen=True)
class InternalHooks:
    """Bound store operations reserved for fields, watchers and the form controller."""

    dispatch: Callable[[Any], None]
    init_entity_value: Callable[[Any], None]
    register_field: Callable[[Any], Callable[..., None]]
    use_subscribe: Callable[[bool], None]
    set_initial_values: Callable[[Any, bool], None]
    destroy_form: Callable[[], None]
    set_callbacks: Callable[[Callbacks], None]
    set_validate_messages: Callable[[Any], None]
    get_fields: Callable[[], Any]
    set_preserve: Callable[[Optional[bool]], None]
    get_initial_value: Callable[[Any], Any]
    register_watch: Callable[[Any], Callable[[], None]]
