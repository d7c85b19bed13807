# formstore/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Records exchanged between the form store and its fields: the reason attached to
every store notification, field data patches, field errors, meta and dispatch actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Union

from formstore.core.name_path import get_name_path
from formstore.interfaces.types import NamePath, NamePathLike, Store, StoreValue


class _Missing:
    """Marks a FieldData attribute that was not supplied."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


# -----------------------------------------------------------------------------
# NOTIFY INFO
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueUpdate:
    """Values changed, either from a field (``internal``) or a bulk write (``external``)."""

    source: str = "internal"
    type: str = field(default="valueUpdate", init=False)


@dataclass(frozen=True)
class Reset:
    type: str = field(default="reset", init=False)


@dataclass(frozen=True)
class SetField:
    """A field record was pushed into the store through ``set_fields``."""

    data: "FieldData"
    type: str = field(default="setField", init=False)


@dataclass(frozen=True)
class Remove:
    type: str = field(default="remove", init=False)


@dataclass(frozen=True)
class DependenciesUpdate:
    """Fields declaring one of ``related_fields`` as a dependency should refresh."""

    related_fields: List[NamePath]
    type: str = field(default="dependenciesUpdate", init=False)


@dataclass(frozen=True)
class ValidateFinish:
    type: str = field(default="validateFinish", init=False)


NotifyInfo = Union[ValueUpdate, Reset, SetField, Remove, DependenciesUpdate, ValidateFinish]


@dataclass(frozen=True)
class ValuedNotifyInfo:
    """A notify info together with the store as it is after the mutation."""

    info: NotifyInfo
    store: Store

    @property
    def type(self) -> str:
        return self.info.type

    @property
    def source(self) -> Optional[str]:
        return getattr(self.info, "source", None)

    @property
    def data(self) -> Optional["FieldData"]:
        return getattr(self.info, "data", None)

    @property
    def related_fields(self) -> List[NamePath]:
        return getattr(self.info, "related_fields", [])


# -----------------------------------------------------------------------------
# FIELD RECORDS
# -----------------------------------------------------------------------------


@dataclass
class FieldData:
    """
    A patch for one field. Attributes left as ``MISSING`` are not applied.

    :param name: Path of the field.
    :param value: New store value.
    :param touched: New touched flag.
    :param validating: New validating flag.
    :param errors: Replacement error list.
    :param warnings: Replacement warning list.
    """

    name: NamePathLike
    value: StoreValue = MISSING
    touched: Any = MISSING
    validating: Any = MISSING
    errors: Any = MISSING
    warnings: Any = MISSING
    # Set on records produced by the store itself (get_fields)
    from_store: bool = field(default=False, compare=False, repr=False)

    def has(self, attribute: str) -> bool:
        return getattr(self, attribute) is not MISSING

    @property
    def name_path(self) -> NamePath:
        return get_name_path(self.name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldData":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "from_store" and getattr(self, f.name) is not MISSING
        }


@dataclass
class FieldError:
    """Errors and warnings of one field after validation."""

    name: NamePath
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class Meta:
    """Snapshot of a field's interaction and validation state."""

    name: NamePath
    touched: bool = False
    validating: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    destroy: bool = False


# -----------------------------------------------------------------------------
# DISPATCH ACTIONS
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class UpdateAction:
    name_path: NamePath
    value: StoreValue
    type: str = field(default="updateValue", init=False)


@dataclass(frozen=True)
class ValidateAction:
    name_path: NamePath
    trigger_name: Optional[str] = None
    type: str = field(default="validateField", init=False)


ReducerAction = Union[UpdateAction, ValidateAction]
