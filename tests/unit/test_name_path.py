# tests/unit/test_name_path.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from formstore.core.name_path import (
    NameMap,
    contains_name_path,
    get_name_path,
    is_prefix,
    join_name_path,
    match_name_path,
)

# -----------------------------------------------------------------------------
# NORMALIZATION
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, ()),
        ("name", ("name",)),
        (0, (0,)),
        (["user", "name"], ("user", "name")),
        (("list", 1), ("list", 1)),
        ([], ()),
    ],
)
def test_get_name_path(raw, expected):
    assert get_name_path(raw) == expected


def test_join_name_path():
    assert join_name_path(("list", 0, "name")) == "list.0.name"
    assert join_name_path(()) == ""


# -----------------------------------------------------------------------------
# MATCHING
# -----------------------------------------------------------------------------


def test_match_name_path():
    assert match_name_path(("a", 1), ("a", 1))
    assert not match_name_path(("a", 1), ("a", "1"))
    assert not match_name_path(("a",), ("a", 1))
    assert not match_name_path(None, ("a",))
    assert match_name_path((), ())


def test_contains_name_path():
    paths = [("a",), ("b", 0)]
    assert contains_name_path(paths, ("b", 0))
    assert not contains_name_path(paths, ("b",))
    assert not contains_name_path([], ("a",))
    assert not contains_name_path(None, ("a",))


def test_is_prefix():
    assert is_prefix(("list",), ("list", 0, "name"))
    assert is_prefix(("list", 0), ("list", 0))
    assert is_prefix((), ("anything",))
    assert not is_prefix(("list", 1), ("list", 0, "name"))
    assert not is_prefix(("a", "b"), ("a",))


# -----------------------------------------------------------------------------
# NAME MAP
# -----------------------------------------------------------------------------


def test_name_map_set_get_delete():
    name_map = NameMap()
    name_map.set(("a", 1), "x")
    name_map.set(("a", "1"), "y")

    assert name_map.get(("a", 1)) == "x"
    assert name_map.get(("a", "1")) == "y"
    assert len(name_map) == 2
    assert ("a", 1) in name_map

    name_map.delete(("a", 1))
    assert name_map.get(("a", 1)) is None
    assert name_map.get(("a", 1), "fallback") == "fallback"
    assert ("a", 1) not in name_map


def test_name_map_update_removes_on_none():
    name_map = NameMap()
    name_map.update(("list",), lambda existing: (existing or []) + [1])
    name_map.update(("list",), lambda existing: (existing or []) + [2])
    assert name_map.get(("list",)) == [1, 2]

    name_map.update(("list",), lambda existing: None)
    assert ("list",) not in name_map


def test_name_map_keeps_insertion_order():
    name_map = NameMap()
    name_map.set(("b",), 1)
    name_map.set(("a",), 2)
    assert name_map.keys() == [("b",), ("a",)]
    assert list(name_map) == [("b",), ("a",)]
    assert name_map.map(lambda path, value: (path[0], value * 10)) == [("b", 10), ("a", 20)]


def test_name_map_to_json():
    name_map = NameMap()
    name_map.set(("user", "name"), True)
    name_map.set(("list", 0), False)
    assert name_map.to_json() == {"user": {"name": True}, "list": {"0": False}}
