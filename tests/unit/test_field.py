# tests/unit/test_field.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio
import logging

import pytest

from formstore.core.errors import ConfigurationError, RuleValidationError
from formstore.core.events import FieldData, FieldError
from formstore.core.field import Field, FieldProps, value_changed
from formstore.core.rules import Rule
from formstore.interfaces.protocols import FieldEntity
from formstore.runtime.validation import ValidateOptions
from tests.utils import settle

# -----------------------------------------------------------------------------
# LIFECYCLE
# -----------------------------------------------------------------------------


def test_field_satisfies_entity_protocol(store):
    assert isinstance(Field(store, name="a"), FieldEntity)


def test_initial_value_installed_on_construction(store):
    field = Field(store, name="name", initial_value="bob")

    assert store.get_field_value("name") == "bob"
    assert field.render_count == 0


def test_initial_value_does_not_override_existing_value(store):
    store.set_fields_value({"name": "alice"})
    Field(store, name="name", initial_value="bob")
    assert store.get_field_value("name") == "alice"


def test_mount_and_unmount(store, recorder):
    metas = recorder()
    field = Field(store, FieldProps(name="name", on_meta_change=metas)).mount()
    assert store.get_fields_error() == [FieldError(name=("name",))]

    field.unmount()

    assert metas.calls[-1].destroy is True
    assert store.get_fields_error() == []
    assert not field.mounted


def test_preserve_on_direct_list_field_warns(store, caplog):
    with caplog.at_level(logging.WARNING):
        Field(store, name=0, is_list_field=True, preserve=False)
    assert "`preserve` should not apply on list fields." in caplog.text


def test_rule_factories_receive_the_store(store):
    received = []

    def factory(form):
        received.append(form)
        return Rule(required=True)

    field = Field(store, name="a", rules=[factory, {"max": 3}])
    rules = field.get_rules()

    assert received == [store]
    assert rules[0].required is True
    assert rules[1].max == 3


# -----------------------------------------------------------------------------
# USER INPUT
# -----------------------------------------------------------------------------


def test_trigger_change_marks_touched_and_writes_value(store):
    field = Field(store, name="name", normalize=lambda value, prev, all_values: value.strip()).mount()

    field.trigger_change("  alice ")

    assert store.get_field_value("name") == "alice"
    assert field.is_field_touched()
    assert field.is_field_dirty()
    assert store.is_field_touched("name")
    assert field.render_count == 1


@pytest.mark.asyncio
async def test_trigger_event_validates_only_for_armed_triggers(store):
    field = Field(store, name="f", rules=[Rule(required=True)], validate_trigger="onBlur").mount()

    field.trigger_event("onChange")
    assert not field.is_field_validating()

    field.trigger_event("onBlur")
    assert field.is_field_validating()
    await settle()

    assert field.get_errors() == ["'f' is required"]
    assert not field.is_field_validating()


@pytest.mark.asyncio
async def test_form_level_trigger_is_inherited(store):
    field = Field(store, name="f", rules=[Rule(required=True)], context_validate_trigger=["onChange", "onBlur"]).mount()
    assert field.merged_validate_trigger() == ["onChange", "onBlur"]

    disabled = Field(store, name="g", rules=[Rule(required=True)], validate_trigger=False).mount()
    disabled.trigger_change("")
    assert not disabled.is_field_validating()


# -----------------------------------------------------------------------------
# VALIDATION
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_validate_rules_updates_errors(store):
    field = Field(store, name="name", rules=[Rule(required=True)]).mount()

    task = field.validate_rules()
    assert field.is_field_validating()
    assert field.is_field_dirty()

    with pytest.raises(RuleValidationError):
        await task

    assert field.get_errors() == ["'name' is required"]
    assert not field.is_field_validating()


@pytest.mark.asyncio
async def test_warning_only_rules_fill_warnings(store):
    rule = Rule(warning_only=True, validator=lambda rule, value: False, message="weak")
    field = Field(store, name="password", rules=[rule]).mount()

    with pytest.raises(RuleValidationError):
        await field.validate_rules()

    assert field.get_errors() == []
    assert field.get_warnings() == ["weak"]


@pytest.mark.asyncio
async def test_only_latest_validation_writes_back(store):
    async def validator(rule, value):
        await asyncio.sleep(0.05 if value == "slow" else 0.01)
        if value == "slow":
            raise ValueError("stale")

    field = Field(store, name="f", rules=[Rule(validator=validator)]).mount()

    store.set_field_value("f", "slow")
    first = field.validate_rules()
    store.set_field_value("f", "fast")
    second = field.validate_rules()

    assert await second == []
    with pytest.raises(RuleValidationError):
        await first

    assert field.get_errors() == []
    assert not field.is_field_validating()


@pytest.mark.asyncio
async def test_rules_filtered_by_trigger_name(store):
    field = Field(store, name="f", rules=[Rule(required=True, validate_trigger="onBlur")]).mount()

    assert await field.validate_rules(ValidateOptions(trigger_name="onChange")) == []
    with pytest.raises(RuleValidationError):
        await field.validate_rules(ValidateOptions(trigger_name="onBlur"))


@pytest.mark.asyncio
async def test_unmounted_field_validates_nothing(store):
    field = Field(store, name="f", rules=[Rule(required=True)])
    assert await field.validate_rules() == []


# -----------------------------------------------------------------------------
# STORE NOTIFICATIONS
# -----------------------------------------------------------------------------


def test_reset_clears_interaction_state(store, recorder):
    resets = recorder()
    field = Field(store, name="f", on_reset=resets).mount()
    field.trigger_change("x")

    store.reset_fields()

    assert not field.is_field_touched()
    assert not field.is_field_dirty()
    assert len(resets.calls) == 1
    assert field.reset_count == 1
    assert store.get_field_value("f") is None


def test_reset_of_other_path_is_ignored(store):
    field = Field(store, name="f").mount()
    field.trigger_change("x")

    store.reset_fields(["other"])

    assert field.is_field_touched()
    assert field.reset_count == 0


def test_set_field_patches_meta(store):
    field = Field(store, name="f").mount()

    store.set_fields([FieldData(name="f", touched=True, errors=["server says no"], validating=True)])
    assert field.is_field_touched()
    assert field.get_errors() == ["server says no"]
    assert field.is_field_validating()

    store.set_fields([{"name": "f", "validating": False, "warnings": None}])
    assert not field.is_field_validating()
    assert field.get_warnings() == []


def test_external_value_update_resets_validation_state(store):
    field = Field(store, name="f").mount()
    store.set_fields([FieldData(name="f", errors=["x"])])

    store.set_fields_value({"f": "new"})

    assert field.get_errors() == []
    assert field.is_field_touched()


def test_external_update_with_same_value_keeps_errors(store):
    field = Field(store, name="f").mount()
    store.set_fields([FieldData(name="f", value="same", errors=["x"])])

    store.set_fields_value({"f": "same"})

    assert field.get_errors() == ["x"]


def test_should_update_true_always_rerenders(store):
    field = Field(store, should_update=True).mount()
    count = field.render_count

    store.set_field_value("other", 1)

    assert field.render_count > count


def test_should_update_predicate_receives_source(store):
    seen = []

    def should_update(prev, nxt, info):
        seen.append(info)
        return prev.get("a") != nxt.get("a")

    field = Field(store, should_update=should_update).mount()
    store.set_fields_value({"a": 1})

    assert seen[-1] == {"source": "external"}
    assert field.render_count == 1


def test_dependencies_update_rerenders_dependent(store):
    source = Field(store, name="a").mount()
    dependent = Field(store, name="b", dependencies=["a"]).mount()
    before = dependent.render_count

    source.trigger_change(1)

    assert dependent.render_count == before + 1


def test_unrelated_value_change_does_not_rerender(store):
    Field(store, name="a").mount()
    other = Field(store, name="b").mount()

    store.set_field_value("a", 1)

    assert other.render_count == 0


def test_is_field_dirty_counts_form_initial_values(store, hooks):
    hooks.set_initial_values({"f": 1}, True)

    assert Field(store, name="f").is_field_dirty()
    assert not Field(store, name="g").is_field_dirty()
    assert Field(store, name="h", initial_value=0).is_field_dirty()


def test_value_changed():
    assert not value_changed("alice", "".join(["ali", "ce"]))
    assert value_changed(1, True)
    assert value_changed({"a": 1}, {"a": 1})
    shared = {"a": 1}
    assert not value_changed(shared, shared)


# -----------------------------------------------------------------------------
# ERROR PATHS
# -----------------------------------------------------------------------------


def test_input_without_event_loop_keeps_value_and_warns(store, caplog):
    field = Field(store, name="a", rules=[Rule(required=True)]).mount()

    with caplog.at_level(logging.WARNING):
        field.trigger_change("x")

    assert store.get_field_value("a") == "x"
    assert field.is_field_touched()
    assert not field.is_field_validating()
    assert "No running event loop" in caplog.text


@pytest.mark.asyncio
async def test_broken_rule_definition_ends_validation(store):
    field = Field(store, name="a", rules=[{"pattern": "("}]).mount()
    store.set_fields_value({"a": "x"})

    with pytest.raises(ConfigurationError):
        await store.validate_fields()
    await settle()

    assert not field.is_field_validating()
    assert field.get_errors() == []
