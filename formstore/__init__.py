# formstore/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""formstore: headless form-state engine

Tracks the values of a hierarchically named set of fields, validates them against
declarative rules and notifies observers of every change, without any rendering.

Responsibilities:
    - Name-path addressing and immutable nested value store
    - Rule engine with serial, parallel and first-failure scheduling
    - Field registry and store-change notification protocol
    - Dependency cascade between fields
    - Watch subscriptions independent of fields

Cross-cutting Concerns:
    Concurrency:
        - Single-threaded; validation runs as asyncio tasks
        - Superseded validations finish but never publish results

    Error Handling:
        - Structured error hierarchy rooted at FormStoreError
        - Validation failures are data, never fatal

    Logging:
        - Standard library logging, one logger per module
        - Misuse is reported as warnings
"""

import logging

from formstore.core.config import FormConfig
from formstore.core.errors import (
    ConfigurationError,
    EventLoopError,
    FormStoreError,
    RuleValidationError,
    ValidateFieldsError,
)
from formstore.core.events import FieldData, FieldError, Meta
from formstore.core.field import Field, FieldProps
from formstore.core.form import Form
from formstore.core.form_store import FormStore
from formstore.core.hooks import HOOK_MARK, Callbacks
from formstore.core.rules import Rule, RuleError, RuleFailure
from formstore.runtime.validation import ValidateOptions, validate_rules
from formstore.runtime.watch import Watcher

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Callbacks",
    "ConfigurationError",
    "EventLoopError",
    "Field",
    "FieldData",
    "FieldError",
    "FieldProps",
    "Form",
    "FormConfig",
    "FormStore",
    "FormStoreError",
    "HOOK_MARK",
    "Meta",
    "Rule",
    "RuleError",
    "RuleFailure",
    "RuleValidationError",
    "ValidateFieldsError",
    "ValidateOptions",
    "Watcher",
    "validate_rules",
]
