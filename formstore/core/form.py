# formstore/core/form.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from formstore.core.config import FormConfig
from formstore.core.events import FieldData
from formstore.core.field import Field, FieldProps
from formstore.core.form_store import FormStore
from formstore.core.hooks import HOOK_MARK
from formstore.core.values import is_similar
from formstore.runtime.watch import Watcher

logger = logging.getLogger(__name__)


class Form:
    """
    Headless form controller.

    Pushes its configuration into a ``FormStore`` the way a form component does
    on every render: callbacks, validate messages and the preserve default each
    time, initial values into the store only on the first pass, and controlled
    ``fields`` whenever they differ from the previous ones.
    """

    def __init__(
        self,
        store: Optional[FormStore] = None,
        config: Optional[FormConfig] = None,
        on_render: Optional[Callable[["Form"], None]] = None,
    ) -> None:
        """
        :param store: Store to drive; a new one is created when omitted.
        :param config: Form settings.
        :param on_render: Called when the whole form must re-render (render-props mode).
        """
        self.on_render = on_render
        self.render_count = 0
        self.store = store if store is not None else FormStore(self._force_root_update)
        self.config = config or FormConfig()
        self._hooks = self.store.get_internal_hooks(HOOK_MARK)
        self._mounted = False
        self._prev_fields: Optional[List[FieldData]] = None
        self._fields: List[Field] = []

    def _force_root_update(self) -> None:
        self.render_count += 1
        if self.on_render is not None:
            self.on_render(self)

    @property
    def mounted(self) -> bool:
        return self._mounted

    def _apply_config(self) -> None:
        config = self.config
        self._hooks.set_validate_messages(config.validate_messages)
        self._hooks.set_callbacks(config.callbacks())
        self._hooks.set_preserve(config.preserve)
        self._hooks.set_initial_values(config.initial_values, not self._mounted)
        self._hooks.use_subscribe(not config.render_props)

    def _sync_fields(self) -> None:
        fields = self.config.field_records()
        if not is_similar(self._prev_fields or [], fields or []):
            self.store.set_fields(fields or [])
        self._prev_fields = fields

    def mount(self) -> "Form":
        """First render: configure the store and seed it with the initial values."""
        self._apply_config()
        self._mounted = True
        self._sync_fields()
        return self

    def update(self, config: Optional[FormConfig] = None) -> None:
        """Re-render with a new configuration. Initial values no longer touch the store."""
        if config is not None:
            self.config = config
        self._apply_config()
        self._sync_fields()

    def unmount(self) -> None:
        """Record non-preserved fields on the store, then unmount every field."""
        self._hooks.destroy_form()
        for field in list(self._fields):
            if field.mounted:
                field.unmount()
        logger.debug("Form unmounted with %d field(s)", len(self._fields))
        self._fields = []
        self._mounted = False

    def field(self, name: Any = None, on_render: Optional[Callable[[Field], None]] = None, **props: Any) -> Field:
        """
        Create and mount a field in this form, inheriting the form's validate trigger.
        """
        field = Field(
            self.store,
            props=FieldProps(name=name, **props),
            on_render=on_render,
            context_validate_trigger=self.config.validate_trigger,
        )
        field.mount()
        self._fields.append(field)
        return field

    def remove_field(self, field: Field) -> None:
        """Unmount a field created through ``field()``."""
        field.unmount()
        self._fields = [item for item in self._fields if item is not field]

    def watch(self, name_path: Any = None, on_change: Optional[Callable[[Any], None]] = None) -> Watcher:
        return Watcher(self.store, name_path, on_change)

    def render_values(self) -> Any:
        """Values handed to a render-props host."""
        return self.store.get_fields_value(True)

    def submit(self) -> "asyncio.Task[None]":
        return self.store.submit()

    def reset(self) -> None:
        self.store.reset_fields()
