# formstore/core/name_path.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from formstore.interfaces.types import NamePath, NamePathLike

T = TypeVar("T")
R = TypeVar("R")


def get_name_path(path: NamePathLike) -> NamePath:
    """
    Normalize a user supplied key into a name path tuple.

    ``None`` is the whole store, a list or tuple is taken segment by segment and any
    other value is a single segment.
    """
    if path is None:
        return ()
    if isinstance(path, (list, tuple)):
        return tuple(path)
    return (path,)


def _same_segment(a: Any, b: Any) -> bool:
    # 1 and "1" are different segments, and so are 1 and True
    return type(a) is type(b) and a == b


def match_name_path(name_path: Optional[NamePath], changed_name_path: Optional[NamePath]) -> bool:
    """
    Check whether two name paths address the same location.

    :param name_path: First path.
    :param changed_name_path: Second path.
    :return: True if both have the same length and pairwise equal segments.
    """
    if name_path is None or changed_name_path is None:
        return False
    if len(name_path) != len(changed_name_path):
        return False
    return all(_same_segment(a, b) for a, b in zip(name_path, changed_name_path))


def contains_name_path(name_path_list: Optional[Iterable[NamePath]], name_path: NamePath) -> bool:
    """
    Check whether ``name_path`` equals any member of ``name_path_list``.
    """
    if not name_path_list:
        return False
    return any(match_name_path(candidate, name_path) for candidate in name_path_list)


def is_prefix(prefix: NamePath, name_path: NamePath) -> bool:
    """
    Check whether ``prefix`` is a leading part of (or equal to) ``name_path``.
    """
    if len(prefix) > len(name_path):
        return False
    return all(_same_segment(a, b) for a, b in zip(prefix, name_path))


def join_name_path(name_path: NamePath) -> str:
    """Dotted display name, e.g. ``list.0.name``."""
    return ".".join(str(segment) for segment in name_path)


def _key(name_path: NamePath) -> Tuple[Tuple[str, Any], ...]:
    return tuple((type(segment).__name__, segment) for segment in name_path)


class NameMap(Generic[T]):
    """
    A mapping keyed by name paths. Segment types are part of the key so that a
    list index and a string key with the same text never collide.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[Tuple[str, Any], ...], Tuple[NamePath, T]] = {}

    def set(self, name_path: NamePath, value: T) -> None:
        self._entries[_key(name_path)] = (tuple(name_path), value)

    def get(self, name_path: NamePath, default: Optional[T] = None) -> Optional[T]:
        entry = self._entries.get(_key(name_path))
        return entry[1] if entry is not None else default

    def update(self, name_path: NamePath, updater: Callable[[Optional[T]], Optional[T]]) -> None:
        """
        Replace the value at ``name_path`` with ``updater(previous)``. Returning None
        from the updater removes the entry.
        """
        next_value = updater(self.get(name_path))
        if next_value is None:
            self.delete(name_path)
        else:
            self.set(name_path, next_value)

    def delete(self, name_path: NamePath) -> None:
        self._entries.pop(_key(name_path), None)

    def items(self) -> List[Tuple[NamePath, T]]:
        return list(self._entries.values())

    def keys(self) -> List[NamePath]:
        return [name_path for name_path, _ in self._entries.values()]

    def map(self, fn: Callable[[NamePath, T], R]) -> List[R]:
        return [fn(name_path, value) for name_path, value in self._entries.values()]

    def to_json(self) -> Dict[str, Any]:
        """Nested plain dict of the entries, mostly useful for debugging."""
        result: Dict[str, Any] = {}
        for name_path, value in self._entries.values():
            node = result
            for segment in name_path[:-1]:
                node = node.setdefault(str(segment), {})
            if name_path:
                node[str(name_path[-1])] = value
        return result

    def __contains__(self, name_path: object) -> bool:
        if not isinstance(name_path, tuple):
            return False
        return _key(name_path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NamePath]:
        return iter(self.keys())
