# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, List

import pytest

from formstore.core.form_store import FormStore
from formstore.core.hooks import HOOK_MARK


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "stress: mark test as a stress test")
    config.addinivalue_line("markers", "property: mark test as a property-based test")


@pytest.fixture
def store() -> FormStore:
    """A store attached the way a form attaches it, so no unhooked warning fires."""
    form_store = FormStore()
    form_store.get_internal_hooks(HOOK_MARK)
    return form_store


@pytest.fixture
def hooks(store):
    return store.get_internal_hooks(HOOK_MARK)


@pytest.fixture
def recorder():
    """Factory for callables that remember every call's arguments."""

    class Recorder:
        def __init__(self) -> None:
            self.calls: List[Any] = []

        def __call__(self, *args: Any) -> None:
            self.calls.append(args if len(args) != 1 else args[0])

    return Recorder
