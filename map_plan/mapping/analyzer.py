"""Cycle and depth analysis over the type map graph.

Walks the member graph reachable from a root type map before its plan is
assembled, and annotates nested type maps in place:

- reference-type cycles get ``preserve_references`` so repeated source
  instances resolve to the same destination instance;
- value-type cycles get a ``max_depth`` bound;
- members that cannot be inlined are switched to registry dispatch.

The path is an explicit stack parameter: a type map reachable through two
different paths is evaluated on each of them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from map_plan.mapping.model import MemberMap, TypeMap

if TYPE_CHECKING:
    from map_plan.core.registry import PlanRegistry

logger = logging.getLogger(__name__)


def _member_maps(registry: PlanRegistry, type_map: TypeMap) -> Iterator[MemberMap]:
    yield from type_map.all_member_maps()
    if type_map.has_derived_types_to_include:
        for derived in registry.get_included_type_maps(type_map):
            yield from derived.all_member_maps()


def _resolve_member_type_map(registry: PlanRegistry, member_map: MemberMap) -> TypeMap | None:
    if not member_map.can_resolve_value:
        return None
    types = member_map.types
    if types.contains_generic_parameters:
        return None
    return registry.resolve_associated_type_map(types)


def _reset_inline(type_map: TypeMap, member_map: MemberMap) -> None:
    member_map.inline = False
    logger.debug("Resetting inline: %s in %s", member_map.destination_name, type_map.types)


def check_for_cycles(registry: PlanRegistry, type_map: TypeMap, path: list[TypeMap]) -> None:
    """Annotate the type maps reachable from ``type_map``.

    Args:
        registry: Registry resolving member type pairs to type maps.
        type_map: The type map being visited.
        path: Type maps on the current traversal path, root first.
    """
    path.append(type_map)
    try:
        max_plan_depth = registry.config.max_execution_plan_depth
        for member_map in _member_maps(registry, type_map):
            member_type_map = _resolve_member_type_map(registry, member_map)
            if member_type_map is None or member_type_map.has_type_converter:
                continue

            if member_map.inline and (
                member_type_map.preserve_references or len(set(path)) == max_plan_depth
            ):
                _reset_inline(type_map, member_map)

            if member_type_map.preserve_references or member_type_map.plan is not None:
                continue

            if member_type_map in path:
                if registry.metadata.is_value_type(member_type_map.source_type):
                    if member_type_map.max_depth == 0:
                        member_type_map.max_depth = registry.config.value_type_max_depth
                        logger.debug(
                            "Setting max_depth=%d: %s", member_type_map.max_depth, member_type_map.types
                        )
                    continue

                member_type_map.preserve_references = True
                logger.debug(
                    "Setting preserve_references: %s %s => %s",
                    member_map.destination_name,
                    type_map.types,
                    member_type_map.types,
                )
                if member_map.inline:
                    _reset_inline(type_map, member_map)
                for derived in registry.get_included_type_maps(member_type_map):
                    derived.preserve_references = True
                    logger.debug(
                        "Setting preserve_references: %s %s => %s",
                        member_map.destination_name,
                        type_map.types,
                        derived.types,
                    )

            check_for_cycles(registry, member_type_map, path)
    finally:
        path.pop()
