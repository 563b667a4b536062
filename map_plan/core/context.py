"""Execution context for one top-level conversion.

Holds the reference cache used by plans that preserve references and the
depth counters used by plans with a max depth. A context is owned by a
single top-level call and must not be shared between concurrent calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from map_plan.core.registry import PlanRegistry
    from map_plan.mapping.model import MemberMap, TypeMap


class ResolutionContext:
    """Per-call state threaded through every plan invocation.

    Args:
        registry: Registry used for nested dispatch and service location.
        items: Optional user state made available to resolvers and hooks.
    """

    def __init__(self, registry: PlanRegistry, items: dict[str, Any] | None = None) -> None:
        self.registry = registry
        self.items: dict[str, Any] = dict(items or {})
        # (id(source), destination type) -> (source, destination); the source
        # is kept so its id cannot be reused while the context lives.
        self._references: dict[tuple[int, Any], tuple[Any, Any]] = {}
        self._type_depth: dict[Any, int] = {}

    # --- Reference cache ---

    def get_destination(self, source: Any, destination_type: Any) -> Any:
        """Destination already created for ``source``, or None."""
        if source is None:
            return None
        entry = self._references.get((id(source), destination_type))
        return None if entry is None else entry[1]

    def cache_destination(self, source: Any, destination_type: Any, destination: Any) -> None:
        if source is None:
            return
        self._references[(id(source), destination_type)] = (source, destination)

    # --- Depth counters ---

    def get_type_depth(self, type_map: TypeMap) -> int:
        return self._type_depth.get(type_map.types, 0)

    def increment_type_depth(self, type_map: TypeMap) -> None:
        key = type_map.types
        self._type_depth[key] = self._type_depth.get(key, 0) + 1

    def decrement_type_depth(self, type_map: TypeMap) -> None:
        key = type_map.types
        self._type_depth[key] = self._type_depth.get(key, 0) - 1

    def over_type_depth(self, type_map: TypeMap) -> bool:
        return self.get_type_depth(type_map) >= type_map.max_depth

    # --- Nested dispatch ---

    def get_service(self, service_type: Any) -> Any:
        return self.registry.services.get(service_type)

    def map(
        self,
        source: Any,
        destination_type: Any,
        destination: Any = None,
        source_type: Any = None,
        member_map: MemberMap | None = None,
    ) -> Any:
        """Map a nested value through the registry within this context."""
        return self.registry.map_value(
            source,
            source_type if source_type is not None else type(source),
            destination_type,
            destination,
            self,
            member_map,
        )
