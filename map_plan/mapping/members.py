"""Member assignment sequencing.

Compiles each member map, path map and constructor parameter map into one
closure that resolves the value, substitutes nulls, maps nested values,
applies transformers, evaluates conditions and assigns the result. Every
unit runs inside an error boundary that reports the failing member.

Each member is compiled by its own ``_MemberSession``; nothing is shared
between the sessions of two members.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from map_plan.core.enums import PlanState
from map_plan.core.exceptions import ConfigurationError, MappingError, NullPathError
from map_plan.mapping.metadata import (
    admits_none,
    default_value,
    is_collection_type,
    runtime_class,
)
from map_plan.mapping.model import (
    ConstructorParameterMap,
    IncludedMember,
    MemberMap,
    PathMap,
    TypeMap,
)

if TYPE_CHECKING:
    from map_plan.core.context import ResolutionContext
    from map_plan.core.registry import PlanRegistry

Step = Callable[["Frame"], Any]


@dataclass
class Frame:
    """Runtime state of one plan invocation."""

    source: Any
    initial_destination: Any
    context: ResolutionContext
    destination: Any = None
    included: dict[IncludedMember, Any] = field(default_factory=dict)

    def source_for(self, member_map: MemberMap) -> Any:
        if member_map.included_member is not None:
            return self.included.get(member_map.included_member)
        return self.source


class _MemberSession:
    """Compiles the resolution pipeline of a single member map."""

    def __init__(self, sequencer: MemberSequencer, member_map: MemberMap, destination_type: Any) -> None:
        self.registry = sequencer.registry
        self.type_map = sequencer.type_map
        self.member_map = member_map
        self.destination_type = destination_type

    def allows_null(self) -> bool:
        if self.member_map.allow_null is not None:
            return self.member_map.allow_null
        if self.type_map.allow_null_destination_values is not None:
            return self.type_map.allow_null_destination_values
        return self.registry.config.allow_null_destination_values

    def value_resolver(self) -> Callable[[Frame, Any, Any], Any]:
        """Resolver call, null substitute, then default instance backfill."""
        member_map = self.member_map
        metadata = self.registry.metadata
        resolve = None
        if member_map.resolver is not None:
            resolve = member_map.resolver.compile(member_map, self.registry)
        null_substitute = member_map.null_substitute

        backfill: type | None = None
        if null_substitute is None and not self.allows_null():
            cls = runtime_class(member_map.source_type)
            if (
                cls is not None
                and metadata.is_constructible(cls)
                and not is_collection_type(cls)
                and not metadata.is_value_type(cls)
            ):
                backfill = cls

        def value(frame: Frame, custom_source: Any, current: Any) -> Any:
            if resolve is None:
                resolved = current
            else:
                resolved = resolve(custom_source, frame.destination, current, frame.context)
            if resolved is None:
                if null_substitute is not None:
                    return null_substitute
                if backfill is not None:
                    return metadata.create_instance(backfill)
            return resolved

        return value

    def member_mapper(self) -> Callable[[Any, Any, ResolutionContext], Any]:
        """Nested mapping of the resolved value: inline plan call or registry dispatch."""
        member_map = self.member_map
        destination_type = self.destination_type
        registry = self.registry
        if destination_type is None:
            return lambda value, destination_value, context: value

        types = member_map.types
        nested: TypeMap | None = None
        if member_map.source_type is not None and not types.contains_generic_parameters:
            nested = registry.resolve_associated_type_map(types)
        if (
            member_map.inline
            and nested is not None
            and nested.types == types
            and not nested.has_type_converter
            and not nested.has_derived_types_to_include
            and nested.state is not PlanState.COMPILING
        ):
            nested_plan = registry.compile(nested)
            return nested_plan.run

        source_type = member_map.source_type

        def dispatch(value: Any, destination_value: Any, context: ResolutionContext) -> Any:
            return registry.map_value(
                value, source_type, destination_type, destination_value, context, member_map
            )

        return dispatch

    def guard(self, unit: Step) -> Step:
        """Error boundary re-raising any failure as the member's MappingError."""
        member_map = self.member_map
        type_map = self.type_map

        def guarded(frame: Frame) -> Any:
            try:
                return unit(frame)
            except Exception as e:
                raise MappingError("Error mapping types.", member_map, type_map) from e

        return guarded

    def assignment(self, destination_of: Step, read_only: bool) -> Step:
        """Unit resolving the member and assigning it on ``destination_of(frame)``."""
        member_map = self.member_map
        name = member_map.destination_name.rpartition(".")[2]
        value = self.value_resolver()
        map_member = self.member_mapper()
        keep_destination_value = read_only or member_map.use_destination_value
        member_default = default_value(self.destination_type)
        condition = member_map.condition
        pre_condition = member_map.pre_condition

        def unit(frame: Frame) -> None:
            context = frame.context
            custom_source = frame.source_for(member_map)
            if pre_condition is not None and not pre_condition(custom_source, frame.destination, context):
                return
            target = destination_of(frame)
            current = getattr(target, name, None)
            if keep_destination_value or frame.initial_destination is not None:
                destination_value = current
            else:
                destination_value = member_default
            resolved = value(frame, custom_source, current)
            mapped = member_map.apply_transformers(map_member(resolved, destination_value, context))
            if condition is not None:
                if not condition(custom_source, frame.destination, mapped, current, context):
                    return
            if not read_only:
                setattr(target, name, mapped)

        return self.guard(unit)


class MemberSequencer:
    """Builds the ordered member units of one type map's plan."""

    def __init__(self, registry: PlanRegistry, type_map: TypeMap) -> None:
        self.registry = registry
        self.type_map = type_map

    def _destination_member_type(self, member_map: MemberMap, owner: Any, name: str) -> Any:
        if member_map.destination_type is not None:
            return member_map.destination_type
        cls = runtime_class(owner)
        return None if cls is None else self.registry.metadata.member_type(cls, name)

    def property_step(self, member_map: MemberMap) -> Step:
        destination_type = self.type_map.destination_type
        name = member_map.destination_name
        read_only = self.registry.metadata.is_read_only(destination_type, name)
        session = _MemberSession(
            self, member_map, self._destination_member_type(member_map, destination_type, name)
        )
        step = session.assignment(lambda frame: frame.destination, read_only)
        if not self.type_map.constructor_parameter_matches(name):
            return step

        # Already set by the constructor unless mapping onto an existing destination.
        def unless_constructed(frame: Frame) -> Any:
            if frame.initial_destination is not None:
                return step(frame)
            return None

        return unless_constructed

    def path_step(self, path_map: PathMap) -> Step:
        """Unit creating missing intermediate objects before assigning the leaf."""
        metadata = self.registry.metadata
        path = path_map.destination_name
        *parents, leaf = path_map.segments
        chain: list[tuple[str, type, bool]] = []
        owner: Any = self.type_map.destination_type
        for segment in parents:
            segment_class = runtime_class(metadata.member_type(owner, segment))
            if segment_class is None:
                raise ConfigurationError(
                    f"Cannot determine the type of '{segment}' in path '{path}' "
                    f"for {self.type_map.types}"
                )
            chain.append((segment, segment_class, metadata.is_read_only(owner, segment)))
            owner = segment_class

        def destination_of(frame: Frame) -> Any:
            target = frame.destination
            for segment, segment_class, segment_read_only in chain:
                value = getattr(target, segment, None)
                if value is None:
                    if segment_read_only:
                        raise NullPathError(path, segment)
                    value = metadata.create_instance(segment_class)
                    setattr(target, segment, value)
                target = value
            return target

        session = _MemberSession(self, path_map, self._destination_member_type(path_map, owner, leaf))
        return session.assignment(destination_of, metadata.is_read_only(owner, leaf))

    def constructor_argument(self, param_map: ConstructorParameterMap) -> Step:
        """Unit producing one constructor argument."""
        session = _MemberSession(self, param_map, param_map.destination_type)
        annotation = param_map.declared_type
        if param_map.has_default:
            default = param_map.default
        else:
            default = default_value(annotation)
        if param_map.resolver is None:
            return lambda frame: default

        resolved_type = param_map.resolver.resolved_type
        if (
            not param_map.has_default
            and param_map.null_substitute is None
            and annotation is not None
            and not self.registry.metadata.is_nullable(annotation)
            and resolved_type is not None
            and admits_none(resolved_type)
        ):
            raise ConfigurationError(
                f"Constructor parameter '{param_map.destination_name}' of "
                f"{self.type_map.types} is not nullable but its resolver returns {resolved_type!r}"
            )

        value = session.value_resolver()
        map_member = session.member_mapper()
        condition = param_map.condition
        pre_condition = param_map.pre_condition

        def argument(frame: Frame) -> Any:
            context = frame.context
            custom_source = frame.source_for(param_map)
            if pre_condition is not None and not pre_condition(custom_source, None, context):
                return default
            resolved = value(frame, custom_source, default)
            mapped = param_map.apply_transformers(map_member(resolved, default, context))
            if condition is not None and not condition(custom_source, None, mapped, default, context):
                return default
            return mapped

        return session.guard(argument)
