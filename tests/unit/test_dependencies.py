# tests/unit/test_dependencies.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from types import SimpleNamespace

import pytest

from formstore.runtime.dependencies import DependencyCascade

# -----------------------------------------------------------------------------
# TEST FIXTURES
# -----------------------------------------------------------------------------


class StubField:
    """Minimal entity exposing what the cascade reads."""

    def __init__(self, name, dependencies=None, dirty=True):
        self._name_path = tuple(name) if isinstance(name, (list, tuple)) else (name,)
        self.props = SimpleNamespace(dependencies=dependencies)
        self.dirty = dirty

    def get_name_path(self):
        return self._name_path

    def is_field_dirty(self):
        return self.dirty


@pytest.fixture
def chain():
    """a <- b <- c, all dirty."""
    return [
        StubField("a"),
        StubField("b", dependencies=["a"]),
        StubField("c", dependencies=[["b"]]),
    ]


# -----------------------------------------------------------------------------
# CASCADE
# -----------------------------------------------------------------------------


def test_transitive_children_in_discovery_order(chain):
    assert DependencyCascade(chain).children_of(("a",)) == [("b",), ("c",)]


def test_clean_fields_stop_the_cascade(chain):
    chain[1].dirty = False
    assert DependencyCascade(chain).children_of(("a",)) == []


def test_no_dependents():
    assert DependencyCascade([StubField("a")]).children_of(("a",)) == []


def test_cycles_terminate():
    fields = [StubField("a", dependencies=["b"]), StubField("b", dependencies=["a"])]
    assert DependencyCascade(fields).children_of(("a",)) == [("b",), ("a",)]


def test_field_visited_once_even_with_several_routes():
    shared = StubField("d", dependencies=["b", "c"])
    fields = [StubField("b", dependencies=["a"]), StubField("c", dependencies=["a"]), shared]
    assert DependencyCascade(fields).children_of(("a",)) == [("b",), ("d",), ("c",)]


def test_nameless_dependents_are_not_followed():
    fields = [StubField([], dependencies=["a"]), StubField("x", dependencies=[[]])]
    assert DependencyCascade(fields).children_of(("a",)) == []


def test_index_reflects_fields_passed_in(chain):
    assert DependencyCascade(chain[:2]).children_of(("a",)) == [("b",)]
