# formstore/runtime/dependencies.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Iterable, List, Set

from formstore.core.name_path import NameMap, get_name_path
from formstore.interfaces.protocols import FieldEntity
from formstore.interfaces.types import NamePath

logger = logging.getLogger(__name__)


class DependencyCascade:
    """
    Resolves which registered fields must revalidate when a value changes.

    The dependency -> fields index is rebuilt from the current registry on every
    lookup, so it always reflects the fields registered right now.
    """

    def __init__(self, fields: Iterable[FieldEntity]) -> None:
        """
        :param fields: The registered fields, in registry order.
        """
        self._dependencies_to_fields: NameMap[List[FieldEntity]] = NameMap()
        for entity in fields:
            for dependency in getattr(entity.props, "dependencies", None) or []:
                dependency_path = get_name_path(dependency)
                self._dependencies_to_fields.update(
                    dependency_path,
                    lambda existing, entity=entity: (existing or []) + [entity],
                )

    def children_of(self, root_name_path: NamePath) -> List[NamePath]:
        """
        Collect the paths of fields depending, directly or transitively, on
        ``root_name_path``.

        A field is only followed further when it is dirty and has a path of its own,
        so untouched fields never pull their dependents into the cascade. Each field
        is visited at most once (by identity), which also makes cycles terminate.

        :param root_name_path: The path whose value changed.
        :return: Paths of the affected fields, in discovery order.
        """
        visited: Set[int] = set()
        children_fields: List[NamePath] = []

        def fill_children(name_path: NamePath) -> None:
            for entity in self._dependencies_to_fields.get(name_path) or []:
                if id(entity) in visited:
                    continue
                visited.add(id(entity))

                field_name_path = entity.get_name_path()
                if entity.is_field_dirty() and field_name_path:
                    children_fields.append(field_name_path)
                    fill_children(field_name_path)

        fill_children(tuple(root_name_path))
        if children_fields:
            logger.debug("Change at %r cascades to %r", root_name_path, children_fields)
        return children_fields
