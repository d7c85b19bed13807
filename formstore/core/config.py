# formstore/core/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from formstore.core.errors import ConfigurationError
from formstore.core.events import FieldData
from formstore.core.hooks import Callbacks
from formstore.interfaces.types import (
    FieldsChangeCallback,
    FinishCallback,
    FinishFailedCallback,
    Store,
    ValuesChangeCallback,
)

ValidateTrigger = Union[str, Sequence[str], bool, None]


def to_trigger_list(trigger: ValidateTrigger) -> List[str]:
    """Normalize a validate trigger setting; False and None arm nothing."""
    if trigger is None or trigger is False:
        return []
    if trigger is True:
        raise ConfigurationError("validate_trigger must be an event name, a list of names or False")
    if isinstance(trigger, str):
        return [trigger]
    return list(trigger)


@dataclass
class FormConfig:
    """
    Settings of a form controller.

    :param initial_values: Values the store starts with and resets to.
    :param preserve: Form-wide default for keeping a field's value after it unmounts.
    :param validate_messages: Overrides for the validate message table.
    :param validate_trigger: Event name(s) that arm validation on fields that do not
        set their own trigger.
    :param fields: Controlled field records pushed into the store whenever they change.
    :param render_props: The host re-renders the whole form on every change instead of
        letting each field subscribe.
    """

    initial_values: Optional[Store] = None
    preserve: Optional[bool] = None
    validate_messages: Optional[Dict[str, Any]] = None
    validate_trigger: ValidateTrigger = "onChange"
    fields: Optional[List[Union[FieldData, Dict[str, Any]]]] = None
    render_props: bool = False
    on_values_change: Optional[ValuesChangeCallback] = None
    on_fields_change: Optional[FieldsChangeCallback] = None
    on_finish: Optional[FinishCallback] = None
    on_finish_failed: Optional[FinishFailedCallback] = None

    def __post_init__(self) -> None:
        to_trigger_list(self.validate_trigger)

    def callbacks(self) -> Callbacks:
        return Callbacks(
            on_values_change=self.on_values_change,
            on_fields_change=self.on_fields_change,
            on_finish=self.on_finish,
            on_finish_failed=self.on_finish_failed,
        )

    def field_records(self) -> Optional[List[FieldData]]:
        """Controlled fields as ``FieldData`` records, None when not controlled."""
        if self.fields is None:
            return None
        return [item if isinstance(item, FieldData) else FieldData.from_dict(item) for item in self.fields]
