# formstore/runtime/validation.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Rule engine: evaluates the rules of one field against one value.

Every rule is evaluated as a coroutine, whatever the shape of the user validator,
and the engine schedules them serially, in parallel until the first failure, or in
parallel collecting everything. Success returns an empty list; failure raises
``RuleValidationError`` carrying the failing ``RuleError`` objects.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from formstore.core.errors import RuleValidationError
from formstore.core.messages import DEFAULT_VALIDATE_MESSAGES, lookup_message, merge_messages, replace_message
from formstore.core.name_path import join_name_path
from formstore.core.rules import Rule, RuleError, RuleFailure, RuleLike, check_rule, to_rule
from formstore.interfaces.types import MessageVariables, NamePath, StoreValue, ValidateFirst
from formstore.runtime.async_support import finish_on_all, finish_on_first_failed

logger = logging.getLogger(__name__)

CODE_LOGIC_ERROR = "CODE_LOGIC_ERROR"


@dataclass
class ValidateOptions:
    """
    Options for one validation run.

    :param trigger_name: Only rules armed for this UI event run; None runs all rules.
    :param validate_messages: Message table overrides merged over the defaults.
    :param recursive: For ``validate_fields``, also validate fields below the given paths.
    """

    trigger_name: Optional[str] = None
    validate_messages: Optional[Dict[str, Any]] = None
    recursive: bool = False


def _accepts_callback(validator: Any) -> bool:
    try:
        parameters = inspect.signature(validator).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        parameter
        for parameter in parameters
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 3


def _failure_message(rule: Rule, error: Any) -> str:
    if rule.message is not None:
        return rule.message
    text = str(error) if error not in (None, True) else ""
    return text or CODE_LOGIC_ERROR


async def _run_validator(rule: Rule, value: StoreValue) -> List[str]:
    """
    Call a user validator and turn whatever it does into a list of messages.

    Supported shapes: return an awaitable (rejection is a failure), return
    None/True/False synchronously, raise ``RuleFailure``, or legacy callback style
    ``validator(rule, value, callback)``.
    """
    loop = asyncio.get_running_loop()
    reported: "asyncio.Future[Any]" = loop.create_future()
    state = {"has_awaitable": False}

    def callback(error: Any = None) -> None:
        def _settle() -> None:
            if state["has_awaitable"]:
                logger.warning("Your validator function has already returned an awaitable. `callback` will be ignored.")
                return
            if not reported.done():
                reported.set_result(error)

        # Settle on the next loop turn so the return value is known first
        loop.call_soon(_settle)

    uses_callback = _accepts_callback(rule.validator)
    try:
        outcome = rule.validator(rule, value, callback) if uses_callback else rule.validator(rule, value)
    except RuleFailure as failure:
        return [_failure_message(rule, failure)]
    except Exception:
        logger.exception("Validator of rule #%s raised; reporting a logic error", rule.rule_index)
        return [CODE_LOGIC_ERROR]

    if inspect.isawaitable(outcome):
        state["has_awaitable"] = True
        try:
            result = await outcome
        except Exception as exc:  # a rejected validator is an ordinary failure
            return [_failure_message(rule, exc)]
        return [_failure_message(rule, None)] if result is False else []

    if uses_callback and outcome is None:
        logger.warning("`callback` is deprecated. Please return an awaitable instead.")
        error = await reported
        return [_failure_message(rule, error)] if error else []

    return [_failure_message(rule, None)] if outcome is False else []


async def validate_rule(
    name: str,
    value: StoreValue,
    rule: Rule,
    messages: Dict[str, Any],
    message_variables: MessageVariables = None,
) -> List[str]:
    """
    Evaluate a single rule.

    :param name: Dotted display name of the value.
    :param value: The value to check.
    :param rule: Rule to apply.
    :param messages: Fully merged message table.
    :param message_variables: Extra template variables; they win over rule fields.
    :return: Rendered error messages, empty when the rule passes.
    """
    # Always yield once so synchronous and asynchronous rules resolve on the same schedule
    await asyncio.sleep(0)

    try:
        checked_value = rule.transform(value) if rule.transform is not None else value
    except Exception:
        logger.exception("Transform of rule #%s raised; reporting a logic error", rule.rule_index)
        checked_value, errors = value, [CODE_LOGIC_ERROR]
    else:
        if rule.validator is not None:
            errors = await _run_validator(rule, checked_value)
        else:
            errors = [lookup_message(messages, key) or messages["default"] for key in check_rule(rule, checked_value)]
            if errors and rule.message is not None:
                errors = [rule.message]

    errors = [messages["default"] if error == CODE_LOGIC_ERROR else error for error in errors]

    sub_rule = rule.default_field
    if not errors and sub_rule is not None and rule.type == "array" and isinstance(checked_value, (list, tuple)):
        sub_results = await finish_on_all(
            validate_rule(f"{name}.{index}", item, sub_rule, messages, message_variables)
            for index, item in enumerate(checked_value)
        )
        return [message for sub_errors in sub_results for message in sub_errors]

    kv: Dict[str, Any] = {
        **rule.message_fields(),
        "name": name,
        "enum": ", ".join(str(item) for item in (rule.enum or [])),
        **(message_variables or {}),
    }
    return [replace_message(error, kv) if isinstance(error, str) else error for error in errors]


def fill_rules(rules: Sequence[RuleLike]) -> List[Rule]:
    """
    Tag each rule with its original position, then move warning-only rules after
    error rules while keeping the relative order inside both groups.
    """
    filled = [dataclasses.replace(to_rule(rule), rule_index=index) for index, rule in enumerate(rules)]
    return sorted(filled, key=lambda rule: (bool(rule.warning_only), rule.rule_index))


async def validate_rules(
    name_path: NamePath,
    value: StoreValue,
    rules: Sequence[RuleLike],
    options: Optional[ValidateOptions] = None,
    validate_first: ValidateFirst = False,
    message_variables: MessageVariables = None,
) -> List[RuleError]:
    """
    Validate ``value`` against ``rules``.

    :param name_path: Path of the value, used for its display name.
    :param value: Value to check.
    :param rules: Rules of the field, in declaration order.
    :param options: Messages and trigger options.
    :param validate_first: True for serial stop-on-first-failure, ``"parallel"`` for
        concurrent stop-on-first-failure, False to run everything and collect all messages.
    :param message_variables: Extra template variables.
    :return: An empty list when every rule passes.
    :raises RuleValidationError: With the failing rules when any rule reports messages.
    """
    options = options or ValidateOptions()
    name = join_name_path(name_path)
    messages = merge_messages(DEFAULT_VALIDATE_MESSAGES, options.validate_messages)
    filled_rules = fill_rules(rules)

    async def evaluate(rule: Rule) -> RuleError:
        return RuleError(rule=rule, errors=await validate_rule(name, value, rule, messages, message_variables))

    if validate_first is True:
        for rule in filled_rules:
            rule_error = await evaluate(rule)
            if rule_error.errors:
                raise RuleValidationError([rule_error])
        return []

    if validate_first:
        results = await finish_on_first_failed(
            [evaluate(rule) for rule in filled_rules],
            lambda rule_error: bool(rule_error.errors),
        )
    else:
        results = await finish_on_all(evaluate(rule) for rule in filled_rules)

    failed = [rule_error for rule_error in results if rule_error.errors]
    if failed:
        raise RuleValidationError(failed)
    return []
