# formstore/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

Segment = Union[str, int]
NamePath = Tuple[Segment, ...]
# What callers may pass wherever a path is expected: a single segment or a sequence.
NamePathLike = Union[Segment, Sequence[Segment], None]

StoreValue = Any
Store = Dict[str, Any]

# Callback Types
WatchCallback = Callable[[Store, List[NamePath]], None]
ValuesChangeCallback = Callable[[Store, Store], None]
FieldsChangeCallback = Callable[[List[Any], List[Any]], None]
FinishCallback = Callable[[Store], None]
FinishFailedCallback = Callable[[Any], None]
ShouldUpdateFunc = Callable[[Store, Store, Dict[str, Any]], bool]
ShouldUpdate = Union[bool, ShouldUpdateFunc, None]
ValidateFirst = Union[bool, str]
Unregister = Callable[..., None]
MessageVariables = Optional[Dict[str, str]]
