# formstore/interfaces/protocols.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import TYPE_CHECKING, Any, Awaitable, List, Optional, Protocol, runtime_checkable

from formstore.interfaces.types import NamePath, Store, StoreValue

if TYPE_CHECKING:
    from formstore.core.events import Meta, ValuedNotifyInfo


@runtime_checkable
class FieldEntity(Protocol):
    """
    Capability protocol for anything the form store can register as a field.

    Methods:
        get_name_path(): Path of the store entry this field is bound to.
        get_value(store): Value at that path in ``store`` (the live store by default).
        get_errors() / get_warnings(): Current messages, in rule order.
        get_meta(): Touched/validating/errors/warnings snapshot.
        is_field_touched() / is_field_dirty() / is_field_validating(): Interaction flags.
        is_list_field() / is_preserve(): List membership and preserve override, None if unset.
        validate_rules(options): Start validating the current value; the returned
            awaitable resolves to [] or raises RuleValidationError.
        on_store_change(prev_store, name_path_list, info): React to a store notification.

    Attributes:
        props: Declared configuration (rules, dependencies, should_update,
            initial_value, validate_trigger, preserve, ...).

    Runtime Invariants:
    - ``on_store_change`` is side-effecting only and never writes to the store.
    - The name path does not change while the field is registered.

    Error Handling:
    - Getter calls must not raise. Validation failures are reported through the
      awaitable returned by ``validate_rules``.
    """

    props: Any

    def get_name_path(self) -> NamePath:
        """Return the field's store path."""
        ...

    def get_value(self, store: Optional[Store] = None) -> StoreValue:
        """Return the field's value from ``store`` or from the live store."""
        ...

    def get_errors(self) -> List[str]:
        ...

    def get_warnings(self) -> List[str]:
        ...

    def get_meta(self) -> "Meta":
        ...

    def is_field_touched(self) -> bool:
        ...

    def is_field_dirty(self) -> bool:
        """True once touched or validated, or when an initial value is declared for it."""
        ...

    def is_field_validating(self) -> bool:
        ...

    def is_list_field(self) -> Optional[bool]:
        ...

    def is_preserve(self) -> Optional[bool]:
        ...

    def validate_rules(self, options: Any = None) -> Awaitable[Any]:
        """Start validation of the current value."""
        ...

    def on_store_change(
        self,
        prev_store: Store,
        name_path_list: Optional[List[NamePath]],
        info: "ValuedNotifyInfo",
    ) -> None:
        """
        React to a store notification. ``name_path_list`` lists the affected paths,
        or is None when the whole store may have changed.
        """
        ...
