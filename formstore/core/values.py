# formstore/core/values.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Immutable operations over the nested value store.

Every write copies only the containers on the written path, so snapshots taken
before a write keep their contents and untouched subtrees are shared by reference.
"""

from __future__ import annotations

from functools import reduce
from typing import Any, Iterable, Optional

from formstore.core.errors import ConfigurationError
from formstore.interfaces.types import NamePath, Store, StoreValue


def _is_index(segment: Any) -> bool:
    return isinstance(segment, int) and not isinstance(segment, bool)


def _child(container: Any, segment: Any) -> Any:
    if isinstance(container, dict):
        return container.get(segment)
    if isinstance(container, (list, tuple)) and _is_index(segment) and 0 <= segment < len(container):
        return container[segment]
    return None


def get_value(store: Any, name_path: NamePath) -> StoreValue:
    """
    Read the value at ``name_path``.

    :param store: Root of the nested structure.
    :param name_path: Path to read; the empty path returns ``store`` itself.
    :return: The value, or None when any segment is missing.
    """
    current = store
    for segment in name_path:
        if isinstance(current, dict):
            if segment not in current:
                return None
        elif not (isinstance(current, (list, tuple)) and _is_index(segment) and 0 <= segment < len(current)):
            return None
        current = _child(current, segment)
    return current


def _shallow_copy(entity: Any, segment: Any) -> Any:
    if isinstance(entity, (list, tuple)) and _is_index(segment):
        # Tuples are written back as lists
        return list(entity)
    if isinstance(entity, dict):
        return dict(entity)
    # Missing or incompatible containers are replaced by a fresh one fitting the segment
    return [] if _is_index(segment) else {}


def _assign(container: Any, segment: Any, value: Any) -> None:
    if isinstance(container, list):
        if segment < 0:
            raise ConfigurationError(f"Negative list index {segment} is not addressable")
        if segment >= len(container):
            container.extend([None] * (segment + 1 - len(container)))
        container[segment] = value
    else:
        container[segment] = value


def _remove(container: Any, segment: Any) -> None:
    if isinstance(container, list):
        # Removing would shift sibling indexes, so the slot is emptied instead
        if 0 <= segment < len(container):
            container[segment] = None
    else:
        container.pop(segment, None)


def _set(entity: Any, name_path: NamePath, value: Any, delete_if_none: bool) -> Any:
    segment, rest = name_path[0], name_path[1:]
    clone = _shallow_copy(entity, segment)

    if rest:
        _assign(clone, segment, _set(_child(clone, segment), rest, value, delete_if_none))
    elif delete_if_none and value is None:
        _remove(clone, segment)
    else:
        _assign(clone, segment, value)
    return clone


def set_value(store: Any, name_path: NamePath, value: StoreValue, delete_if_none: bool = False) -> Any:
    """
    Return a new store with ``value`` installed at ``name_path``.

    Intermediate containers are created as needed: a list when the missing segment
    is an integer, a dict otherwise.

    :param store: The current store; it is not modified.
    :param name_path: Where to write. The empty path replaces the whole store.
    :param value: Value to install.
    :param delete_if_none: Remove the leaf instead of storing None.
    """
    if not name_path:
        return value
    return _set(store, tuple(name_path), value, delete_if_none)


def is_plain_object(value: Any) -> bool:
    return type(value) is dict


def clone_deep(value: Any) -> Any:
    """Deep copy of dict and list graphs; any other object is shared."""
    if isinstance(value, list):
        return [clone_deep(item) for item in value]
    if is_plain_object(value):
        return {key: clone_deep(item) for key, item in value.items()}
    return value


def _internal_set_values(store: Any, values: Any) -> Any:
    clone = list(store) if isinstance(store, list) else dict(store or {})
    if not values:
        return clone

    entries = enumerate(values) if isinstance(values, list) else values.items()
    for key, value in entries:
        prev_value = _child(clone, key)
        recursive = is_plain_object(prev_value) and is_plain_object(value)
        merged = _internal_set_values(prev_value, value or {}) if recursive else clone_deep(value)
        _assign(clone, key, merged)
    return clone


def set_values(store: Any, *rest_values: Optional[Store]) -> Store:
    """
    Deep merge each of ``rest_values`` into ``store`` in order and return the result.
    Plain dicts merge key by key; lists and other values replace what was there.
    """
    return reduce(
        lambda current, new_store: _internal_set_values(current, new_store) if new_store else current,
        rest_values,
        store,
    )


def clone_by_name_path_list(store: Store, name_path_list: Iterable[NamePath]) -> Store:
    """
    Build the smallest store that holds only the values at the given paths.
    """
    new_store: Store = {}
    for name_path in name_path_list:
        new_store = set_value(new_store, name_path, get_value(store, name_path))
    return new_store


def is_similar(source: Any, target: Any) -> bool:
    """
    Shallow comparison of two records or lists of records. Callables on both sides
    are considered equal, everything else is compared with ``==``.
    """
    if source is target:
        return True
    if not source or not target:
        return not source and not target
    if isinstance(source, list) and isinstance(target, list):
        if len(source) != len(target):
            return False
        return all(is_similar(a, b) for a, b in zip(source, target))
    if callable(source) and callable(target):
        return True
    if isinstance(source, dict) and isinstance(target, dict):
        keys = set(source) | set(target)
        return all(
            (callable(source.get(key)) and callable(target.get(key))) or source.get(key) == target.get(key)
            for key in keys
        )
    return source == target

