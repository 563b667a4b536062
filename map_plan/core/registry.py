"""Plan registry - maps type pairs to type maps and their compiled plans.

Plans are compiled at most once per type map under a re-entrant lock and
then served lock-free. Non-inlined nested conversions call back into the
registry at execution time through ``map_value``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any, get_args, get_origin

from map_plan.core.config import MapperConfig
from map_plan.core.context import ResolutionContext
from map_plan.core.enums import PlanState
from map_plan.core.exceptions import ConfigurationError, MappingError
from map_plan.core.services import DefaultServiceLocator, ServiceLocator
from map_plan.mapping.metadata import MemberMetadata, is_collection_type, runtime_class, unwrap_optional
from map_plan.mapping.model import MemberMap, TypeMap, TypePair
from map_plan.mapping.plan import Plan, PlanBuilder

logger = logging.getLogger(__name__)

_SCALAR_TYPES: tuple[type, ...] = (bool, int, float, complex, str, bytes)


def _element_pair(types: TypePair) -> TypePair | None:
    """Element type pair of two collection annotations, e.g. list[A] -> list[B]."""
    if not (is_collection_type(types.source_type) and is_collection_type(types.destination_type)):
        return None
    source_args = get_args(types.source_type)
    destination_args = get_args(types.destination_type)
    if not source_args or not destination_args:
        return None
    # dict[K, V]: values carry the mapped elements
    return TypePair(source_args[-1], destination_args[-1])


class PlanRegistry:
    """Process-wide store of type maps and their plans.

    Args:
        type_maps: Type maps to register up front.
        config: Profile-wide settings; defaults to ``MapperConfig()``.
        services: Locator for converters and resolvers declared by type.
        metadata: Member metadata provider.
    """

    def __init__(
        self,
        type_maps: Iterable[TypeMap] = (),
        config: MapperConfig | None = None,
        services: ServiceLocator | None = None,
        metadata: MemberMetadata | None = None,
    ) -> None:
        self.config = config or MapperConfig()
        self.services: ServiceLocator = services or DefaultServiceLocator()
        self.metadata = metadata or MemberMetadata()
        self._type_maps: dict[TypePair, TypeMap] = {}
        self._plans: dict[TypePair, Plan] = {}
        self._lock = threading.RLock()
        for type_map in type_maps:
            self.add_type_map(type_map)

    # --- Type maps ---

    def add_type_map(self, type_map: TypeMap) -> None:
        """Register a type map, replacing any map for the same pair."""
        with self._lock:
            for member_map in type_map.all_member_maps():
                member_map.type_map = type_map
            self._type_maps[type_map.types] = type_map
            self._plans.pop(type_map.types, None)

    def get_type_map(self, source_type: Any, destination_type: Any) -> TypeMap | None:
        return self._type_maps.get(TypePair(source_type, destination_type))

    def find_type_map(self, source_type: Any, destination_type: Any) -> TypeMap | None:
        """Type map for a pair, walking the source type's MRO.

        A map found for a base class redirects to one of its included derived
        maps when that map's source is exactly ``source_type``.
        """
        type_map = self.get_type_map(source_type, destination_type)
        if type_map is not None:
            return type_map
        source_class = runtime_class(source_type)
        if source_class is not None:
            for base in source_class.__mro__[1:]:
                type_map = self.get_type_map(base, destination_type)
                if type_map is not None:
                    for derived in self.get_included_type_maps(type_map):
                        if derived.source_type is source_class:
                            return derived
                    return type_map
        origin_source, origin_destination = get_origin(source_type), get_origin(destination_type)
        if origin_source is not None or origin_destination is not None:
            return self.get_type_map(origin_source or source_type, origin_destination or destination_type)
        return None

    def resolve_associated_type_map(self, types: TypePair) -> TypeMap | None:
        """Type map for a member pair, or for its element pair when both are collections."""
        types = TypePair(unwrap_optional(types.source_type), unwrap_optional(types.destination_type))
        type_map = self.get_type_map(types.source_type, types.destination_type)
        if type_map is not None:
            return type_map
        element_pair = _element_pair(types)
        if element_pair is not None:
            return self.get_type_map(element_pair.source_type, element_pair.destination_type)
        return None

    def get_included_type_maps(self, type_map: TypeMap) -> list[TypeMap]:
        """Derived type maps included by ``type_map``."""
        included = []
        for pair in type_map.include_derived:
            derived = self._type_maps.get(pair)
            if derived is not None:
                included.append(derived)
        return included

    @property
    def type_maps(self) -> list[TypeMap]:
        return list(self._type_maps.values())

    # --- Plans ---

    def compile(self, type_map: TypeMap) -> Plan:
        """Compile ``type_map`` once and cache its plan.

        Raises:
            ConfigurationError: If the type map cannot be compiled; the map is
                left uncompiled.
        """
        plan = type_map.plan
        if plan is not None:
            return plan
        with self._lock:
            if type_map.plan is not None:
                return type_map.plan
            type_map.state = PlanState.COMPILING
            try:
                plan = PlanBuilder(self, type_map).build()
            except BaseException:
                type_map.state = PlanState.UNCOMPILED
                raise
            type_map.plan = plan
            type_map.state = PlanState.COMPILED
            self._plans[type_map.types] = plan
            logger.debug("Compiled plan for %s", type_map.types)
            return plan

    def get_or_compile(self, source_type: Any, destination_type: Any) -> Plan:
        """Plan for a type pair, compiling it on first request.

        Raises:
            ConfigurationError: If no type map exists for the pair.
        """
        plan = self._plans.get(TypePair(source_type, destination_type))
        if plan is not None:
            return plan
        type_map = self.find_type_map(source_type, destination_type)
        if type_map is None:
            raise ConfigurationError(
                f"Missing type map configuration: {TypePair(source_type, destination_type)}"
            )
        return self.compile(type_map)

    def invalidate(self, source_type: Any, destination_type: Any) -> None:
        """Discard a compiled plan so the next request recompiles it."""
        with self._lock:
            pair = TypePair(source_type, destination_type)
            self._plans.pop(pair, None)
            type_map = self._type_maps.get(pair)
            if type_map is not None:
                type_map.reset_plan()

    def invoke(
        self,
        plan: Plan,
        source: Any,
        destination: Any = None,
        context: ResolutionContext | None = None,
    ) -> Any:
        return plan(source, destination, context or ResolutionContext(self))

    def map(
        self,
        source: Any,
        destination_type: Any,
        destination: Any = None,
        source_type: Any = None,
        context: ResolutionContext | None = None,
    ) -> Any:
        """Convert ``source`` into an instance of ``destination_type``."""
        if source_type is None:
            source_type = type(source)
        plan = self.get_or_compile(source_type, destination_type)
        return self.invoke(plan, source, destination, context)

    # --- Nested dispatch ---

    def map_value(
        self,
        value: Any,
        source_type: Any,
        destination_type: Any,
        destination: Any,
        context: ResolutionContext,
        member_map: MemberMap | None = None,
    ) -> Any:
        """Map a nested value within an executing plan."""
        if destination_type is None or destination_type is Any:
            return value
        destination_type = unwrap_optional(destination_type)
        lookup_type = type(value) if value is not None else source_type
        type_map = self.find_type_map(lookup_type, destination_type) if lookup_type is not None else None
        if type_map is not None:
            return self.compile(type_map).run(value, destination, context)

        destination_class = runtime_class(destination_type)
        if is_collection_type(destination_type) and destination_class not in (str, bytes):
            return self._map_collection(value, source_type, destination_type, context)
        if value is None:
            return None
        if destination_class is None or isinstance(value, destination_class):
            return value
        if destination_class in _SCALAR_TYPES:
            return destination_class(value)
        raise MappingError(
            f"Missing type map configuration: {TypePair(type(value), destination_type)}",
            member_map,
            member_map.type_map if member_map is not None else None,
        )

    def _map_collection(
        self,
        value: Any,
        source_type: Any,
        destination_type: Any,
        context: ResolutionContext,
    ) -> Any:
        destination_class = runtime_class(destination_type)
        if value is None:
            return None if self.config.allow_null_collections else destination_class()
        args = get_args(destination_type)
        source_args = get_args(source_type) if source_type is not None else ()
        if issubclass(destination_class, dict):
            value_type = args[1] if len(args) == 2 else None
            source_value_type = source_args[1] if len(source_args) == 2 else None
            return destination_class(
                (key, self.map_value(item, source_value_type, value_type, None, context))
                for key, item in value.items()
            )
        element_type = args[0] if args else None
        source_element_type = source_args[0] if source_args else None
        return destination_class(
            self.map_value(item, source_element_type, element_type, None, context) for item in value
        )
