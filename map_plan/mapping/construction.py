"""Destination construction.

Chooses how a plan creates its destination instance, in order: a custom
construction function, the constructor map, a failure for abstract
destinations, then default construction. A destination passed in by the
caller is used as is.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from map_plan.core.exceptions import ConfigurationError
from map_plan.mapping.members import Frame, MemberSequencer, Step
from map_plan.mapping.model import ConstructorMap

if TYPE_CHECKING:
    from map_plan.core.registry import PlanRegistry
    from map_plan.mapping.model import TypeMap


def _fail(message: str) -> Step:
    def fail(frame: Frame) -> Any:
        raise ConfigurationError(message)

    return fail


def _constructor_mapping(
    sequencer: MemberSequencer,
    type_map: TypeMap,
    constructor_map: ConstructorMap,
) -> Step:
    destination_type = type_map.destination_type
    preserve_references = type_map.preserve_references
    arguments = [
        (param.destination_name, param.kind, sequencer.constructor_argument(param))
        for param in constructor_map.parameters
    ]

    def construct(frame: Frame) -> Any:
        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        for name, kind, argument in arguments:
            value = argument(frame)
            if kind is inspect.Parameter.POSITIONAL_ONLY:
                positional.append(value)
            else:
                keywords[name] = value
        if preserve_references:
            # Arguments may have mapped a cycle back to this source.
            cached = frame.context.get_destination(frame.source, destination_type)
            if cached is not None:
                return cached
        return destination_type(*positional, **keywords)

    return construct


def new_destination_func(registry: PlanRegistry, sequencer: MemberSequencer, type_map: TypeMap) -> Step:
    """Step creating a fresh destination instance."""
    destination_type = type_map.destination_type
    metadata = registry.metadata

    if type_map.custom_constructor is not None:
        custom_constructor = type_map.custom_constructor
        return lambda frame: custom_constructor(frame.source, frame.context)

    constructor_map = type_map.constructor_map
    if constructor_map is not None and constructor_map.can_resolve:
        return _constructor_mapping(sequencer, type_map, constructor_map)

    if not metadata.is_constructible(destination_type):
        return _fail(f"Cannot create an instance of abstract type {type_map.destination_type!r}")

    required = [
        p.name for p in metadata.constructor_parameters(destination_type) if not p.has_default
    ]
    if required:
        return _fail(
            f"{getattr(destination_type, '__name__', destination_type)} needs to have a constructor "
            f"with 0 args or only optional args; missing {required}"
        )
    return lambda frame: destination_type()


def create_destination_func(
    registry: PlanRegistry, sequencer: MemberSequencer, type_map: TypeMap
) -> Callable[[Frame], Any]:
    """Step setting ``frame.destination``, registering it for reference preservation."""
    new_destination = new_destination_func(registry, sequencer, type_map)
    destination_type = type_map.destination_type
    preserve_references = type_map.preserve_references

    def create(frame: Frame) -> Any:
        destination = frame.initial_destination
        if destination is None:
            destination = new_destination(frame)
        frame.destination = destination
        if preserve_references:
            frame.context.cache_destination(frame.source, destination_type, destination)
        return destination

    return create
