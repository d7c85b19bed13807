# formstore/interfaces/__init__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from formstore.interfaces.protocols import FieldEntity
from formstore.interfaces.types import NamePath, NamePathLike, Store, StoreValue

__all__ = ["FieldEntity", "NamePath", "NamePathLike", "Store", "StoreValue"]
