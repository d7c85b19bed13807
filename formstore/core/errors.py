# formstore/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from formstore.core.events import FieldError
    from formstore.core.rules import RuleError


class FormStoreError(Exception):
    """
    Base exception class for errors within the form store library.
    """


class ConfigurationError(FormStoreError):
    """
    Raised when a rule, field or form is configured with values the engine cannot use.
    """


class EventLoopError(FormStoreError):
    """
    Raised when asynchronous validation is requested while no event loop is running.
    """


class RuleValidationError(FormStoreError):
    """
    Raised by the rule engine when one or more rules report messages for a value.
    The failing rules travel on the exception, each with its own message list.
    """

    def __init__(self, rule_errors: List["RuleError"]) -> None:
        self.rule_errors = list(rule_errors)
        messages = [message for rule_error in self.rule_errors for message in rule_error.errors]
        super().__init__("; ".join(messages) or "rule validation failed")


class ValidateFieldsError(FormStoreError):
    """
    Raised by ``FormStore.validate_fields`` when at least one field has errors, or when
    a newer validation superseded this one.

    :param values: Values of the validated paths at the time of failure.
    :param error_fields: Fields whose error list is not empty.
    :param out_of_date: True when a later ``validate_fields`` call started before this one ended.
    """

    def __init__(self, values: Dict[str, Any], error_fields: List["FieldError"], out_of_date: bool) -> None:
        self.values = values
        self.error_fields = error_fields
        self.out_of_date = out_of_date
        super().__init__(f"{len(error_fields)} field(s) failed validation" + (" (out of date)" if out_of_date else ""))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict form of the failure."""
        return {
            "values": self.values,
            "error_fields": self.error_fields,
            "out_of_date": self.out_of_date,
        }
