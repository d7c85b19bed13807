# formstore/core/field.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Headless field entity.

A ``Field`` binds one store path to interaction state (touched, dirty, validating,
errors, warnings) without rendering anything. Where a UI field would re-render, it
calls ``on_render``; where a UI field would be remounted, it bumps ``reset_count``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from formstore.core.config import ValidateTrigger, to_trigger_list
from formstore.core.errors import EventLoopError, RuleValidationError
from formstore.core.events import Meta, UpdateAction, ValidateAction, ValuedNotifyInfo
from formstore.core.hooks import HOOK_MARK
from formstore.core.name_path import contains_name_path, get_name_path
from formstore.core.rules import Rule, RuleError, to_rule
from formstore.core.values import get_value
from formstore.interfaces.types import (
    MessageVariables,
    NamePath,
    NamePathLike,
    ShouldUpdate,
    Store,
    StoreValue,
    ValidateFirst,
)
from formstore.runtime.async_support import detach, schedule
from formstore.runtime.validation import ValidateOptions, validate_rules

if TYPE_CHECKING:
    from formstore.core.form_store import FormStore

logger = logging.getLogger(__name__)

# Stands in for a validation task when ``set_fields`` marks a field as validating
_EXTERNALLY_VALIDATING = object()


@dataclass
class FieldProps:
    """
    Declared configuration of a field.

    :param name: Store path; None binds the field to no value (layout-only fields).
    :param rules: Rules, plain rule mappings, or callables ``rule(form) -> rule``.
    :param dependencies: Paths whose changes revalidate and refresh this field.
    :param should_update: True, or ``predicate(prev_values, next_values, info)``.
    :param initial_value: Value installed at registration if the store has none.
    :param validate_trigger: Event name(s) arming validation; None uses the form's,
        False disables trigger-driven validation.
    :param validate_first: Scheduling mode passed to the rule engine.
    :param message_variables: Extra message template variables.
    :param normalize: ``normalize(value, prev_value, all_values)`` applied on change.
    :param trigger: Event name emitted by ``trigger_change``.
    :param preserve: Keep the value after unmount; None defers to the form.
    :param is_list_field: The field is an item of a list field.
    :param on_reset: Called when a reset reaches this field.
    :param on_meta_change: Called with a ``Meta`` whenever interaction state changes.
    """

    name: NamePathLike = None
    rules: Optional[Sequence[Any]] = None
    dependencies: Optional[Sequence[NamePathLike]] = None
    should_update: ShouldUpdate = None
    initial_value: StoreValue = None
    validate_trigger: ValidateTrigger = None
    validate_first: ValidateFirst = False
    message_variables: MessageVariables = None
    normalize: Optional[Callable[[StoreValue, StoreValue, Store], StoreValue]] = None
    trigger: str = "onChange"
    preserve: Optional[bool] = None
    is_list_field: Optional[bool] = None
    on_reset: Optional[Callable[[], None]] = None
    on_meta_change: Optional[Callable[[Meta], None]] = None


_SCALARS = (str, int, float, bool, bytes, type(None))


def value_changed(prev_value: StoreValue, next_value: StoreValue) -> bool:
    """Scalars compare by value, containers and other objects by identity."""
    if isinstance(prev_value, _SCALARS) and isinstance(next_value, _SCALARS):
        return type(prev_value) is not type(next_value) or prev_value != next_value
    return prev_value is not next_value


def require_update(
    should_update: ShouldUpdate,
    prev: Store,
    next_store: Store,
    prev_value: StoreValue,
    next_value: StoreValue,
    info: ValuedNotifyInfo,
) -> bool:
    if callable(should_update):
        extra = {"source": info.source} if info.source is not None else {}
        return bool(should_update(prev, next_store, extra))
    return value_changed(prev_value, next_value)


class Field:
    """
    Reference implementation of ``FieldEntity`` for a single store path.

    Lifecycle: constructing the field installs its initial value, ``mount()``
    registers it with the store and ``unmount()`` unregisters it, applying the
    preserve policy.
    """

    def __init__(
        self,
        form: "FormStore",
        props: Optional[FieldProps] = None,
        on_render: Optional[Callable[["Field"], None]] = None,
        context_validate_trigger: ValidateTrigger = "onChange",
        **kwargs: Any,
    ) -> None:
        """
        :param form: Store the field belongs to.
        :param props: Field configuration; keyword arguments build one when omitted.
        :param on_render: Called each time the field would re-render.
        :param context_validate_trigger: The form's validate trigger.
        """
        self.form = form
        self.props = props if props is not None else FieldProps(**kwargs)
        self.on_render = on_render
        self.context_validate_trigger = context_validate_trigger
        self.render_count = 0
        self.reset_count = 0

        self._hooks = form.get_internal_hooks(HOOK_MARK)
        self._cancel_register: Optional[Callable[..., None]] = None
        self._mounted = False
        self._touched = False
        # Touched or validated; initial values are accounted for by is_field_dirty
        self._dirty = False
        self._validate_task: Any = None
        self._errors: List[str] = []
        self._warnings: List[str] = []

        name_path = get_name_path(self.props.name)
        if self.props.preserve is False and self.props.is_list_field and len(name_path) <= 1:
            logger.warning("`preserve` should not apply on list fields.")

        self._hooks.init_entity_value(self)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self) -> "Field":
        self._mounted = True
        self._cancel_register = self._hooks.register_field(self)
        if self.props.should_update is True:
            self.re_render()
        return self

    def unmount(self) -> None:
        self.cancel_register()
        self.trigger_meta_event(destroy=True)
        self._mounted = False

    def cancel_register(self) -> None:
        if self._cancel_register is not None:
            self._cancel_register(self.props.is_list_field, self.props.preserve, get_name_path(self.props.name))
        self._cancel_register = None

    def re_render(self) -> None:
        if not self._mounted:
            return
        self.render_count += 1
        if self.on_render is not None:
            self.on_render(self)

    def refresh(self) -> None:
        """Discard the rendered control and start from scratch."""
        if not self._mounted:
            return
        self.reset_count += 1
        self.re_render()

    def trigger_meta_event(self, destroy: bool = False) -> None:
        if self.props.on_meta_change is not None:
            meta = self.get_meta()
            meta.destroy = destroy
            self.props.on_meta_change(meta)

    # -------------------------------------------------------------------------
    # FieldEntity
    # -------------------------------------------------------------------------

    def get_name_path(self) -> NamePath:
        return get_name_path(self.props.name) if self.props.name is not None else ()

    def get_rules(self) -> List[Rule]:
        return [to_rule(rule(self.form) if callable(rule) else rule) for rule in self.props.rules or []]

    def get_value(self, store: Optional[Store] = None) -> StoreValue:
        source = store if store is not None else self.form.get_fields_value(True)
        return get_value(source, self.get_name_path())

    def get_errors(self) -> List[str]:
        return self._errors

    def get_warnings(self) -> List[str]:
        return self._warnings

    def is_field_touched(self) -> bool:
        return self._touched

    def is_field_validating(self) -> bool:
        return self._validate_task is not None

    def is_field_dirty(self) -> bool:
        if self._dirty or self.props.initial_value is not None:
            return True
        return self._hooks.get_initial_value(self.get_name_path()) is not None

    def is_list_field(self) -> Optional[bool]:
        return self.props.is_list_field

    def is_preserve(self) -> Optional[bool]:
        return self.props.preserve

    def get_meta(self) -> Meta:
        return Meta(
            name=self.get_name_path(),
            touched=self.is_field_touched(),
            validating=self.is_field_validating(),
            errors=self._errors,
            warnings=self._warnings,
        )

    def _reset_state(self, touched: bool) -> None:
        self._touched = touched
        self._dirty = touched
        self._validate_task = None
        self._errors = []
        self._warnings = []
        self.trigger_meta_event()

    def on_store_change(
        self,
        prev_store: Store,
        name_path_list: Optional[List[NamePath]],
        info: ValuedNotifyInfo,
    ) -> None:
        should_update = self.props.should_update
        dependencies = self.props.dependencies or []
        name_path = self.get_name_path()
        prev_value = self.get_value(prev_store)
        cur_value = self.get_value(info.store)
        name_path_match = bool(name_path_list) and contains_name_path(name_path_list, name_path)

        # Values written by set_fields_value count as settled input
        if info.type == "valueUpdate" and info.source == "external" and value_changed(prev_value, cur_value):
            self._reset_state(touched=True)

        if info.type == "reset":
            if name_path_list is None or name_path_match:
                self._reset_state(touched=False)
                if self.props.on_reset is not None:
                    self.props.on_reset()
                self.refresh()
                return

        elif info.type == "remove":
            if should_update:
                self.re_render()
                return

        elif info.type == "setField":
            if name_path_match:
                data = info.data
                if data.has("touched"):
                    self._touched = data.touched
                if data.has("validating") and not data.from_store:
                    self._validate_task = _EXTERNALLY_VALIDATING if data.validating else None
                if data.has("errors"):
                    self._errors = list(data.errors or [])
                if data.has("warnings"):
                    self._warnings = list(data.warnings or [])
                self._dirty = True
                self.trigger_meta_event()
                self.re_render()
                return
            if (
                should_update
                and not name_path
                and require_update(should_update, prev_store, info.store, prev_value, cur_value, info)
            ):
                self.re_render()
                return

        elif info.type == "dependenciesUpdate":
            dependency_list = [get_name_path(dependency) for dependency in dependencies]
            if any(contains_name_path(info.related_fields, dependency) for dependency in dependency_list):
                self.re_render()
                return

        else:
            if name_path_match or (
                (not dependencies or name_path or should_update)
                and require_update(should_update, prev_store, info.store, prev_value, cur_value, info)
            ):
                self.re_render()
                return

        if should_update is True:
            self.re_render()

    def validate_rules(self, options: Optional[ValidateOptions] = None) -> "asyncio.Task[List[RuleError]]":
        """
        Validate the current value in a new task.

        The path and value are captured now. Only the most recently started task
        writes its errors and warnings back to the field; earlier ones still
        resolve for whoever awaits them.

        :raises EventLoopError: When no event loop is running.
        """
        name_path = self.get_name_path()
        current_value = self.get_value()

        task = detach(schedule(self._run_rules(name_path, current_value, options)))

        self._validate_task = task
        self._dirty = True
        self._errors = []
        self._warnings = []
        self.trigger_meta_event()
        self.re_render()
        return task

    def _rules_for(self, options: Optional[ValidateOptions]) -> List[Rule]:
        """Resolved rules armed for ``options.trigger_name`` (all rules when unset)."""
        rules = self.get_rules()
        trigger_name = options.trigger_name if options is not None else None
        if not trigger_name:
            return rules
        return [
            rule for rule in rules if not rule.validate_trigger or trigger_name in to_trigger_list(rule.validate_trigger)
        ]

    async def _run_rules(
        self, name_path: NamePath, value: StoreValue, options: Optional[ValidateOptions]
    ) -> List[RuleError]:
        if not self._mounted:
            return []

        failure: Optional[RuleValidationError] = None
        try:
            rules = self._rules_for(options)
            await validate_rules(
                name_path,
                value,
                rules,
                options,
                self.props.validate_first,
                self.props.message_variables,
            )
            rule_errors: List[RuleError] = []
        except RuleValidationError as exc:
            failure = exc
            rule_errors = exc.rule_errors
        except Exception:
            # A broken rule definition ends validation without publishing messages
            if self._validate_task is asyncio.current_task():
                self._validate_task = None
                self.trigger_meta_event()
                self.re_render()
            raise

        if self._validate_task is asyncio.current_task():
            self._validate_task = None
            next_errors: List[str] = []
            next_warnings: List[str] = []
            for rule_error in rule_errors:
                (next_warnings if rule_error.rule.warning_only else next_errors).extend(rule_error.errors)
            self._errors = next_errors
            self._warnings = next_warnings
            self.trigger_meta_event()
            self.re_render()
        else:
            logger.debug("Discarding superseded validation of %r", name_path)

        if failure is not None:
            raise failure
        return []

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def merged_validate_trigger(self) -> List[str]:
        trigger = self.props.validate_trigger
        return to_trigger_list(trigger if trigger is not None else self.context_validate_trigger)

    def trigger_change(self, value: StoreValue) -> None:
        """Handle user input: mark the field touched, write the value, then fire ``props.trigger``."""
        self._touched = True
        self._dirty = True
        self.trigger_meta_event()

        new_value = value
        if self.props.normalize is not None:
            new_value = self.props.normalize(value, self.get_value(), self.form.get_fields_value(True))

        self._hooks.dispatch(UpdateAction(name_path=self.get_name_path(), value=new_value))
        self.trigger_event(self.props.trigger)

    def trigger_event(self, event_name: str) -> None:
        """Validate through the store if ``event_name`` is one of the field's validate triggers."""
        if event_name not in self.merged_validate_trigger():
            return
        if self.props.rules:
            try:
                self._hooks.dispatch(ValidateAction(name_path=self.get_name_path(), trigger_name=event_name))
            except EventLoopError:
                logger.warning("No running event loop; %r was not validated on %s", self.get_name_path(), event_name)

    def __repr__(self) -> str:
        return f"Field(name={self.get_name_path()!r}, touched={self._touched}, errors={self._errors!r})"
