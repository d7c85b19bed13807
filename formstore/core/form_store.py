# formstore/core/form_store.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
The form store: owner of the value store, the field registry, initial values and
host configuration.

Every mutation replaces the store with a new root, then notifies all registered
fields in registry order, then runs the dependency cascade and the watch
callbacks. Validation runs in asyncio tasks; only the latest task of a field, and
the latest ``validate_fields`` call, may publish results.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from formstore.core.errors import EventLoopError, RuleValidationError, ValidateFieldsError
from formstore.core.events import (
    DependenciesUpdate,
    FieldData,
    FieldError,
    Meta,
    NotifyInfo,
    ReducerAction,
    Remove,
    Reset,
    SetField,
    UpdateAction,
    ValidateAction,
    ValidateFinish,
    ValuedNotifyInfo,
    ValueUpdate,
)
from formstore.core.hooks import HOOK_MARK, Callbacks, InternalHooks
from formstore.core.messages import DEFAULT_VALIDATE_MESSAGES, merge_messages
from formstore.core.name_path import NameMap, contains_name_path, get_name_path, is_prefix, match_name_path
from formstore.core.values import clone_by_name_path_list, clone_deep, get_value, set_value, set_values
from formstore.interfaces.protocols import FieldEntity
from formstore.interfaces.types import NamePath, NamePathLike, Store, StoreValue, WatchCallback
from formstore.runtime.async_support import detach, finish_on_all, schedule
from formstore.runtime.dependencies import DependencyCascade
from formstore.runtime.validation import ValidateOptions
from formstore.runtime.watch import WatchList

logger = logging.getLogger(__name__)

NameList = Optional[Sequence[NamePathLike]]


class _InvalidateField:
    """Placeholder for a requested path no registered field is bound to."""

    __slots__ = ("name_path",)

    def __init__(self, name_path: NamePath) -> None:
        self.name_path = name_path


class FormStore:
    """
    State container of one form.

    Public operations read and write values, errors and interaction flags, reset
    the form, and validate or submit it. Fields, watchers and the form controller
    talk to the store through ``get_internal_hooks(HOOK_MARK)``.

    Runtime Invariants:
    - The store is never mutated in place; snapshots handed out stay valid.
    - Each mutation is broadcast to all fields before its dependency cascade starts.
    - Results of superseded validations are never published.

    Error Handling:
    - Failed validation surfaces as ``ValidateFieldsError`` on the returned task.
    - Exceptions raised by ``on_finish``/``on_finish_failed`` are logged, not re-raised.
    """

    def __init__(self, force_root_update: Optional[Callable[[], None]] = None) -> None:
        """
        :param force_root_update: Called instead of notifying fields when the store
            is not subscribable (the host re-renders everything itself).
        """
        self._force_root_update = force_root_update or (lambda: None)
        self._form_hooked = False
        self._warned_unhooked = False
        self._subscribable = True
        self._store: Store = {}
        self._field_entities: List[FieldEntity] = []
        self._initial_values: Store = {}
        self._callbacks = Callbacks()
        self._validate_messages: Optional[Dict[str, Any]] = None
        self._preserve: Optional[bool] = None
        self._last_validate_task: Optional["asyncio.Task[Any]"] = None
        self._watch_list = WatchList()
        # Paths of non-preserved fields when the form was destroyed
        self._prev_without_preserves: Optional[NameMap[bool]] = None

    # -------------------------------------------------------------------------
    # Internal hooks
    # -------------------------------------------------------------------------

    def get_internal_hooks(self, key: Optional[str] = None) -> Optional[InternalHooks]:
        """
        Return the internal hooks when called with ``HOOK_MARK``; marks the store
        as attached to a form or field.
        """
        if key == HOOK_MARK:
            self._form_hooked = True
            return InternalHooks(
                dispatch=self.dispatch,
                init_entity_value=self._init_entity_value,
                register_field=self._register_field,
                use_subscribe=self._use_subscribe,
                set_initial_values=self._set_initial_values,
                destroy_form=self._destroy_form,
                set_callbacks=self._set_callbacks,
                set_validate_messages=self._set_validate_messages,
                get_fields=self._get_fields,
                set_preserve=self._set_preserve,
                get_initial_value=self._get_initial_value,
                register_watch=self._register_watch,
            )

        logger.warning("`get_internal_hooks` is internal usage. Should not call directly.")
        return None

    def _use_subscribe(self, subscribable: bool) -> None:
        self._subscribable = subscribable

    def _set_initial_values(self, initial_values: Optional[Store], init: bool) -> None:
        """
        Replace the initial values. On the first call (``init``) they are also
        merged under the current store, and paths of fields that were not
        preserved by a previous destroy are refilled from them.
        """
        self._initial_values = initial_values or {}
        if init:
            next_store = set_values({}, initial_values, self._store)
            if self._prev_without_preserves is not None:
                for name_path in self._prev_without_preserves.keys():
                    next_store = set_value(next_store, name_path, get_value(initial_values, name_path))
            self._prev_without_preserves = None
            self._update_store(next_store)

    def _destroy_form(self) -> None:
        prev_without_preserves: NameMap[bool] = NameMap()
        for entity in self._get_field_entities(pure=True):
            if not self._is_merged_preserve(entity.is_preserve()):
                prev_without_preserves.set(entity.get_name_path(), True)
        self._prev_without_preserves = prev_without_preserves

    def _get_initial_value(self, name_path: NamePathLike) -> StoreValue:
        name_path = get_name_path(name_path)
        init_value = get_value(self._initial_values, name_path)
        return clone_deep(init_value) if name_path else init_value

    def _set_callbacks(self, callbacks: Optional[Callbacks]) -> None:
        self._callbacks = callbacks or Callbacks()

    def _set_validate_messages(self, validate_messages: Optional[Dict[str, Any]]) -> None:
        self._validate_messages = validate_messages

    def _set_preserve(self, preserve: Optional[bool]) -> None:
        self._preserve = preserve

    # -------------------------------------------------------------------------
    # Watch
    # -------------------------------------------------------------------------

    def _register_watch(self, callback: WatchCallback) -> Callable[[], None]:
        return self._watch_list.register(callback)

    def _notify_watch(self, name_path_list: Optional[List[NamePath]] = None) -> None:
        self._watch_list.notify(lambda: self._store, name_path_list)

    # -------------------------------------------------------------------------
    # Store & registry
    # -------------------------------------------------------------------------

    def _warning_unhooked(self) -> None:
        if not self._form_hooked and not self._warned_unhooked:
            self._warned_unhooked = True
            logger.warning("FormStore is not connected to any form or field. Forget to pass the store?")

    def _update_store(self, next_store: Store) -> None:
        self._store = next_store

    def _get_field_entities(self, pure: bool = False) -> List[FieldEntity]:
        """Registered fields; with ``pure`` only those bound to a non-empty path."""
        if not pure:
            return list(self._field_entities)
        return [entity for entity in self._field_entities if entity.get_name_path()]

    def _get_fields_map(self, pure: bool = False) -> NameMap[FieldEntity]:
        cache: NameMap[FieldEntity] = NameMap()
        for entity in self._get_field_entities(pure):
            cache.set(entity.get_name_path(), entity)
        return cache

    def _get_field_entities_for_name_path_list(
        self, name_list: NameList = None
    ) -> List[Union[FieldEntity, _InvalidateField]]:
        if name_list is None:
            return list(self._get_field_entities(pure=True))
        cache = self._get_fields_map(pure=True)
        result: List[Union[FieldEntity, _InvalidateField]] = []
        for name in name_list:
            name_path = get_name_path(name)
            result.append(cache.get(name_path) or _InvalidateField(name_path))
        return result

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def get_fields_value(
        self,
        name_list: Union[NameList, bool] = None,
        filter_func: Optional[Callable[[Optional[Meta]], bool]] = None,
    ) -> Store:
        """
        Read the values of several fields as a minimal sub-store.

        :param name_list: True for the whole store, a list of paths, or None for
            every registered field (list items are skipped, their list field counts).
        :param filter_func: Receives each field's meta (None for unknown paths) and
            keeps the field when it returns True.
        :return: A store containing only the selected paths.
        """
        self._warning_unhooked()

        if name_list is True and filter_func is None:
            return self._store

        requested = name_list if isinstance(name_list, (list, tuple)) else None
        entities = self._get_field_entities_for_name_path_list(requested)

        filtered_name_list: List[NamePath] = []
        for entity in entities:
            if isinstance(entity, _InvalidateField):
                name_path = entity.name_path
            else:
                name_path = entity.get_name_path()
                if not name_list and entity.is_list_field():
                    continue

            if filter_func is None:
                filtered_name_list.append(name_path)
            else:
                meta = None if isinstance(entity, _InvalidateField) else entity.get_meta()
                if filter_func(meta):
                    filtered_name_list.append(name_path)

        return clone_by_name_path_list(self._store, filtered_name_list)

    def get_field_value(self, name: NamePathLike) -> StoreValue:
        self._warning_unhooked()
        return get_value(self._store, get_name_path(name))

    def get_fields_error(self, name_list: NameList = None) -> List[FieldError]:
        self._warning_unhooked()
        result = []
        for entity in self._get_field_entities_for_name_path_list(name_list):
            if isinstance(entity, _InvalidateField):
                result.append(FieldError(name=entity.name_path))
            else:
                result.append(
                    FieldError(name=entity.get_name_path(), errors=entity.get_errors(), warnings=entity.get_warnings())
                )
        return result

    def get_field_error(self, name: NamePathLike) -> List[str]:
        self._warning_unhooked()
        return self.get_fields_error([get_name_path(name)])[0].errors

    def get_field_warning(self, name: NamePathLike) -> List[str]:
        self._warning_unhooked()
        return self.get_fields_error([get_name_path(name)])[0].warnings

    def is_fields_touched(self, name_list: Union[NameList, bool] = None, all_touched: bool = False) -> bool:
        """
        Check whether fields were touched.

        Accepts ``()``, ``(all_touched)``, ``(name_list)`` and
        ``(name_list, all_touched)``. A requested path matches every field below it,
        so a list's base path covers all of its item fields.

        :param name_list: Paths to check; None checks every named field.
        :param all_touched: Require every path (or field) to be touched instead of any.
        """
        self._warning_unhooked()

        if isinstance(name_list, bool):
            name_path_list: Optional[List[NamePath]] = None
            all_touched = name_list
        elif name_list is None:
            name_path_list = None
        else:
            name_path_list = [get_name_path(name) for name in name_list]

        entities = self._get_field_entities(pure=True)

        if name_path_list is None:
            touched = (entity.is_field_touched() for entity in entities)
            return all(touched) if all_touched else any(touched)

        matched: NameMap[List[FieldEntity]] = NameMap()
        for short_name_path in name_path_list:
            matched.set(short_name_path, [])
        for entity in entities:
            field_name_path = entity.get_name_path()
            for short_name_path in name_path_list:
                if is_prefix(short_name_path, field_name_path):
                    matched.update(short_name_path, lambda found, entity=entity: [*(found or []), entity])

        groups_touched = (
            any(entity.is_field_touched() for entity in group) for group in matched.map(lambda _, group: group)
        )
        return all(groups_touched) if all_touched else any(groups_touched)

    def is_field_touched(self, name: NamePathLike) -> bool:
        self._warning_unhooked()
        return self.is_fields_touched([name])

    def is_fields_validating(self, name_list: NameList = None) -> bool:
        self._warning_unhooked()
        entities = self._get_field_entities()
        if name_list is None:
            return any(entity.is_field_validating() for entity in entities)

        name_path_list = [get_name_path(name) for name in name_list]
        return any(
            contains_name_path(name_path_list, entity.get_name_path()) and entity.is_field_validating()
            for entity in entities
        )

    def is_field_validating(self, name: NamePathLike) -> bool:
        self._warning_unhooked()
        return self.is_fields_validating([name])

    def _get_fields(self) -> List[FieldData]:
        fields = []
        for entity in self._get_field_entities(pure=True):
            name_path = entity.get_name_path()
            meta = entity.get_meta()
            fields.append(
                FieldData(
                    name=name_path,
                    value=self.get_field_value(name_path),
                    touched=meta.touched,
                    validating=meta.validating,
                    errors=meta.errors,
                    warnings=meta.warnings,
                    from_store=True,
                )
            )
        return fields

    # -------------------------------------------------------------------------
    # Initial values
    # -------------------------------------------------------------------------

    def _reset_with_field_initial_value(
        self,
        entities: Optional[List[FieldEntity]] = None,
        name_path_list: Optional[List[NamePath]] = None,
        skip_exist: bool = False,
    ) -> None:
        """
        Write field-declared initial values back into the store.

        Form-level initial values win, and a path claimed by several fields is left
        alone; both cases are only reported.

        :param entities: Fields to reset; by default every field with an initial value.
        :param name_path_list: Reset the fields bound to these paths instead.
        :param skip_exist: Keep values already present in the store.
        """
        field_entities = self._get_field_entities(pure=True)
        cache: NameMap[List[FieldEntity]] = NameMap()
        for entity in field_entities:
            if entity.props.initial_value is not None:
                cache.update(entity.get_name_path(), lambda records, entity=entity: [*(records or []), entity])

        if entities is not None:
            required_entities = entities
        elif name_path_list is not None:
            required_entities = []
            for name_path in name_path_list:
                required_entities.extend(cache.get(name_path) or [])
        else:
            required_entities = field_entities

        for entity in required_entities:
            initial_value = entity.props.initial_value
            if initial_value is None:
                continue
            name_path = entity.get_name_path()
            display = ".".join(str(segment) for segment in name_path)

            if self._get_initial_value(name_path) is not None:
                logger.warning(
                    "Form already set 'initial_values' with path '%s'. Field can not overwrite it.", display
                )
                continue

            records = cache.get(name_path)
            if records and len(records) > 1:
                logger.warning(
                    "Multiple fields with path '%s' set 'initial_value'. Can not decide which one to pick.", display
                )
            elif records:
                origin_value = self.get_field_value(name_path)
                if not skip_exist or origin_value is None:
                    self._update_store(set_value(self._store, name_path, records[0].props.initial_value))

    def _init_entity_value(self, entity: FieldEntity) -> None:
        """Install a field's initial value before registration, without notifying anyone."""
        initial_value = entity.props.initial_value
        if initial_value is not None:
            name_path = entity.get_name_path()
            if get_value(self._store, name_path) is None:
                self._update_store(set_value(self._store, name_path, initial_value))

    def _is_merged_preserve(self, field_preserve: Optional[bool] = None) -> bool:
        merged = field_preserve if field_preserve is not None else self._preserve
        return True if merged is None else merged

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def _register_field(self, entity: FieldEntity) -> Callable[..., None]:
        """
        Add ``entity`` to the registry.

        :return: ``unregister(is_list_field=None, preserve=None, sub_name_path=())``.
        """
        self._field_entities.append(entity)
        name_path = entity.get_name_path()
        logger.debug("Registered field %r", name_path)
        self._notify_watch([name_path])

        if entity.props.initial_value is not None:
            prev_store = self._store
            self._reset_with_field_initial_value(entities=[entity], skip_exist=True)
            self._notify_observers(prev_store, [name_path], ValueUpdate(source="internal"))

        def unregister(
            is_list_field: Optional[bool] = None,
            preserve: Optional[bool] = None,
            sub_name_path: NamePath = (),
        ) -> None:
            self._field_entities = [item for item in self._field_entities if item is not entity]
            logger.debug("Unregistered field %r", name_path)

            if not self._is_merged_preserve(preserve) and (not is_list_field or len(sub_name_path) > 1):
                default_value = None if is_list_field else self._get_initial_value(name_path)
                if (
                    name_path
                    and self.get_field_value(name_path) != default_value
                    and all(not match_name_path(item.get_name_path(), name_path) for item in self._field_entities)
                ):
                    prev_store = self._store
                    self._update_store(set_value(prev_store, name_path, default_value, delete_if_none=True))
                    self._notify_observers(prev_store, [name_path], Remove())
                    self._trigger_dependencies_update(prev_store, name_path)

            self._notify_watch([name_path])

        return unregister

    def dispatch(self, action: ReducerAction) -> None:
        if isinstance(action, UpdateAction):
            self._update_value(action.name_path, action.value)
        elif isinstance(action, ValidateAction):
            self.validate_fields([action.name_path], ValidateOptions(trigger_name=action.trigger_name))

    # -------------------------------------------------------------------------
    # Notification
    # -------------------------------------------------------------------------

    def _notify_observers(
        self, prev_store: Store, name_path_list: Optional[List[NamePath]], info: NotifyInfo
    ) -> None:
        if self._subscribable:
            merged_info = ValuedNotifyInfo(info=info, store=self.get_fields_value(True))
            for entity in self._get_field_entities():
                entity.on_store_change(prev_store, name_path_list, merged_info)
        else:
            self._force_root_update()

    def _trigger_dependencies_update(self, prev_store: Store, name_path: NamePath) -> List[NamePath]:
        children_fields = DependencyCascade(self._get_field_entities()).children_of(name_path)
        if children_fields:
            try:
                self.validate_fields(children_fields)
            except EventLoopError:
                logger.warning("No running event loop; dependent fields %r were not revalidated", children_fields)

        self._notify_observers(
            prev_store,
            children_fields,
            DependenciesUpdate(related_fields=[name_path, *children_fields]),
        )
        return children_fields

    def _trigger_on_fields_change(
        self, name_path_list: List[NamePath], field_errors: Optional[List[FieldError]] = None
    ) -> None:
        on_fields_change = self._callbacks.on_fields_change
        if on_fields_change is None:
            return

        fields = self._get_fields()
        if field_errors:
            cache: NameMap[List[str]] = NameMap()
            for field_error in field_errors:
                cache.set(field_error.name, field_error.errors)
            for field_data in fields:
                field_data.errors = cache.get(field_data.name_path, field_data.errors)

        changed_fields = [
            field_data for field_data in fields if contains_name_path(name_path_list, field_data.name_path)
        ]
        on_fields_change(changed_fields, fields)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def _update_value(self, name: NamePathLike, value: StoreValue) -> None:
        name_path = get_name_path(name)
        prev_store = self._store
        self._update_store(set_value(self._store, name_path, value))

        self._notify_observers(prev_store, [name_path], ValueUpdate(source="internal"))
        self._notify_watch([name_path])

        children_fields = self._trigger_dependencies_update(prev_store, name_path)

        on_values_change = self._callbacks.on_values_change
        if on_values_change is not None:
            changed_values = clone_by_name_path_list(self._store, [name_path])
            on_values_change(changed_values, self.get_fields_value())

        self._trigger_on_fields_change([name_path, *children_fields])

    def set_fields_value(self, store: Optional[Store]) -> None:
        """Deep merge ``store`` into the current values."""
        self._warning_unhooked()
        prev_store = self._store
        if store:
            self._update_store(set_values(self._store, store))

        self._notify_observers(prev_store, None, ValueUpdate(source="external"))
        self._notify_watch()

    def set_field_value(self, name: NamePathLike, value: StoreValue) -> None:
        self.set_fields([FieldData(name=name, value=value)])

    def set_fields(self, fields: Sequence[Union[FieldData, Dict[str, Any]]]) -> None:
        """
        Apply field records. Each record may carry a value and any of touched,
        validating, errors and warnings; only what is present is applied.
        """
        self._warning_unhooked()
        prev_store = self._store
        name_path_list: List[NamePath] = []

        for item in fields:
            field_data = item if isinstance(item, FieldData) else FieldData.from_dict(item)
            name_path = field_data.name_path
            name_path_list.append(name_path)

            if field_data.has("value"):
                self._update_store(set_value(self._store, name_path, field_data.value))

            self._notify_observers(prev_store, [name_path], SetField(data=field_data))

        self._notify_watch(name_path_list)

    def reset_fields(self, name_list: NameList = None) -> None:
        """
        Restore initial values, for the whole form or only ``name_list``. Field
        initial values are written again where the form does not define one.
        """
        self._warning_unhooked()
        prev_store = self._store

        if name_list is None:
            self._update_store(set_values({}, self._initial_values))
            self._reset_with_field_initial_value()
            self._notify_observers(prev_store, None, Reset())
            self._notify_watch()
            return

        name_path_list = [get_name_path(name) for name in name_list]
        for name_path in name_path_list:
            self._update_store(set_value(self._store, name_path, self._get_initial_value(name_path)))
        self._reset_with_field_initial_value(name_path_list=name_path_list)
        self._notify_observers(prev_store, name_path_list, Reset())
        self._notify_watch(name_path_list)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_fields(
        self, name_list: NameList = None, options: Optional[ValidateOptions] = None
    ) -> "asyncio.Task[Store]":
        """
        Validate fields and return a task resolving to their values.

        Validation of each selected field starts immediately. The returned task
        raises ``ValidateFieldsError`` when a field has errors, or when another
        ``validate_fields`` call started before this one finished.

        :param name_list: Paths to validate; None validates every field with rules.
        :param options: Trigger filter, message overrides and ``recursive``.
        :raises EventLoopError: When no event loop is running.
        """
        self._warning_unhooked()
        options = options or ValidateOptions()

        provide_name_list = name_list is not None
        name_path_list: List[NamePath] = [get_name_path(name) for name in name_list] if provide_name_list else []
        requested = list(name_path_list)

        field_options = ValidateOptions(
            trigger_name=options.trigger_name,
            validate_messages=merge_messages(
                DEFAULT_VALIDATE_MESSAGES, self._validate_messages, options.validate_messages
            ),
            recursive=options.recursive,
        )

        pending = []
        for entity in self._get_field_entities(pure=True):
            field_name_path = entity.get_name_path()
            if not provide_name_list:
                name_path_list.append(field_name_path)

            if options.recursive and provide_name_list:
                if any(is_prefix(prefix, field_name_path) for prefix in requested):
                    name_path_list.append(field_name_path)

            if not entity.props.rules:
                continue

            if not provide_name_list or contains_name_path(name_path_list, field_name_path):
                pending.append((field_name_path, entity.validate_rules(field_options)))

        task = schedule(self._collect_validation(pending, name_path_list))
        self._last_validate_task = task
        return detach(task)

    async def _field_result(self, name_path: NamePath, awaitable: Any) -> FieldError:
        try:
            await awaitable
        except RuleValidationError as exc:
            errors: List[str] = []
            warnings: List[str] = []
            for rule_error in exc.rule_errors:
                (warnings if rule_error.rule.warning_only else errors).extend(rule_error.errors)
            return FieldError(name=name_path, errors=errors, warnings=warnings)
        return FieldError(name=name_path)

    async def _collect_validation(self, pending: List[Any], name_path_list: List[NamePath]) -> Store:
        results = await finish_on_all(self._field_result(name_path, awaitable) for name_path, awaitable in pending)

        result_name_path_list = [result.name for result in results]
        self._notify_observers(self._store, result_name_path_list, ValidateFinish())
        self._trigger_on_fields_change(result_name_path_list, results)

        current = asyncio.current_task()
        error_list = [result for result in results if result.errors]
        if not error_list and self._last_validate_task is current:
            return self.get_fields_value(name_path_list)

        out_of_date = self._last_validate_task is not current
        if out_of_date:
            logger.debug("Validation of %r superseded by a newer call", name_path_list)
        raise ValidateFieldsError(
            values=self.get_fields_value(name_path_list),
            error_fields=error_list,
            out_of_date=out_of_date,
        )

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    def submit(self) -> "asyncio.Task[None]":
        """
        Validate every field, then call ``on_finish`` with the values or
        ``on_finish_failed`` with the ``ValidateFieldsError``.

        :raises EventLoopError: When no event loop is running.
        """
        self._warning_unhooked()
        validation = self.validate_fields()
        return detach(schedule(self._finish(validation)))

    async def _finish(self, validation: "asyncio.Task[Store]") -> None:
        try:
            values = await validation
        except ValidateFieldsError as exc:
            on_finish_failed = self._callbacks.on_finish_failed
            if on_finish_failed is not None:
                try:
                    on_finish_failed(exc)
                except Exception:
                    logger.exception("on_finish_failed callback raised")
            return

        on_finish = self._callbacks.on_finish
        if on_finish is not None:
            try:
                on_finish(values)
            except Exception:
                logger.exception("on_finish callback raised")
