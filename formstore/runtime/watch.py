# formstore/runtime/watch.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from formstore.core.hooks import HOOK_MARK
from formstore.core.name_path import get_name_path
from formstore.core.values import get_value
from formstore.interfaces.types import NamePath, NamePathLike, Store, WatchCallback

if TYPE_CHECKING:
    from formstore.core.form_store import FormStore

logger = logging.getLogger(__name__)


class WatchList:
    """
    Ordered set of watch callbacks. Each callback receives the whole value store and
    the list of paths that changed; an empty list means anything may have changed.
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[object, WatchCallback]] = []

    def register(self, callback: WatchCallback) -> Callable[[], None]:
        """
        Add a callback.

        :return: A function removing exactly this registration, even when
            the same callable was registered more than once.
        """
        token = object()
        self._entries.append((token, callback))

        def unregister() -> None:
            self._entries = [entry for entry in self._entries if entry[0] is not token]

        return unregister

    def notify(self, values_getter: Callable[[], Store], name_path_list: Optional[List[NamePath]] = None) -> None:
        """
        Call every callback with the current values. ``values_getter`` is only
        evaluated when somebody is watching.
        """
        if not self._entries:
            return
        values = values_getter()
        changed = list(name_path_list or [])
        for _, callback in list(self._entries):
            try:
                callback(values, changed)
            except Exception:
                logger.exception("Watch callback %r failed", callback)

    def __len__(self) -> int:
        return len(self._entries)


def stringify(value: Any) -> str:
    """Serialization used to compare watched values across notifications."""
    try:
        return json.dumps(value, sort_keys=True, default=repr)
    except ValueError:
        # Circular structures always count as changed
        return f"<unserializable {id(value)}:{object()!r}>"


class Watcher:
    """
    Observes the value at one path of a form store, independently of any field.

    ``value`` always holds the latest value; ``on_change`` fires only when the
    serialized value differs from the previous one.
    """

    def __init__(
        self,
        form: "FormStore",
        name_path: NamePathLike = None,
        on_change: Optional[Callable[[Any], None]] = None,
    ) -> None:
        """
        :param form: Store to observe.
        :param name_path: Path to watch; None watches the whole store.
        :param on_change: Called with the new value whenever it changes.
        """
        self._name_path = get_name_path(name_path)
        self._on_change = on_change
        hooks = form.get_internal_hooks(HOOK_MARK)
        self._cancel = hooks.register_watch(self._on_store_values)
        self.value = get_value(form.get_fields_value(True), self._name_path)
        self._value_str = stringify(self.value)

    @property
    def name_path(self) -> NamePath:
        return self._name_path

    def _on_store_values(self, values: Store, _changed: List[NamePath]) -> None:
        new_value = get_value(values, self._name_path)
        next_value_str = stringify(new_value)
        if next_value_str != self._value_str:
            self._value_str = next_value_str
            self.value = new_value
            if self._on_change is not None:
                self._on_change(new_value)

    def close(self) -> None:
        """Stop watching."""
        if self._cancel is not None:
            self._cancel()
            self._cancel = None
