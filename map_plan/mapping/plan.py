"""Plan assembly.

A Plan is the compiled, reusable conversion for one type pair. PlanBuilder
runs the cycle analyzer once, then composes destination construction and
the member units into a single closure with this wrapping, innermost
first:

1. create destination, before hooks, members, path maps, after hooks
2. max-depth short-circuit
3. null-source short-circuit
4. reference-cache short-circuit

Plans hold no mutable state of their own and are safe to call
concurrently, each call with its own ResolutionContext.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from map_plan.core.context import ResolutionContext
from map_plan.mapping.analyzer import check_for_cycles
from map_plan.mapping.construction import create_destination_func
from map_plan.mapping.members import Frame, MemberSequencer, Step
from map_plan.mapping.metadata import default_value
from map_plan.mapping.model import TypeMap, TypePair

if TYPE_CHECKING:
    from map_plan.core.registry import PlanRegistry

logger = logging.getLogger(__name__)

PlanFunc = Callable[[Any, Any, Any], Any]


@dataclass(frozen=True)
class Plan:
    """Compiled conversion ``(source, destination, context) -> destination``."""

    types: TypePair
    run: PlanFunc

    def __call__(self, source: Any, destination: Any = None, context: Any = None) -> Any:
        return self.run(source, destination, context)


class PlanBuilder:
    """Assembles the plan of one type map.

    Args:
        registry: Registry providing configuration, metadata and nested plans.
        type_map: The type map to compile.
    """

    def __init__(self, registry: PlanRegistry, type_map: TypeMap) -> None:
        self._registry = registry
        self._type_map = type_map

    def build(self) -> Plan:
        type_map = self._type_map
        registry = self._registry

        if type_map.type_converter is not None:
            convert = type_map.type_converter.compile(type_map, registry)

            def run_converter(source: Any, destination: Any, context: Any) -> Any:
                if context is None:
                    context = ResolutionContext(registry)
                return convert(source, destination, context)

            return Plan(type_map.types, run_converter)

        check_for_cycles(registry, type_map, [])
        logger.debug(
            "Assembling plan for %s (preserve_references=%s, max_depth=%d)",
            type_map.types,
            type_map.preserve_references,
            type_map.max_depth,
        )
        sequencer = MemberSequencer(registry, type_map)
        create_destination = create_destination_func(registry, sequencer, type_map)
        assignment = self._create_assignment_func(sequencer, create_destination)
        mapper = self._create_mapper_func(assignment)
        included_members = list(type_map.included_members)

        def run(source: Any, destination: Any, context: Any) -> Any:
            if context is None:
                context = ResolutionContext(registry)
            frame = Frame(source=source, initial_destination=destination, context=context)
            if included_members and source is not None:
                frame.included = {m: m.evaluate(source) for m in included_members}
            return mapper(frame)

        return Plan(type_map.types, run)

    def _create_assignment_func(self, sequencer: MemberSequencer, create_destination: Step) -> Step:
        type_map = self._type_map
        steps: list[Step] = []
        for before in type_map.before_map:
            steps.append(_hook_step(before))
        for member_map in type_map.ordered_member_maps():
            if member_map.can_resolve_value:
                steps.append(sequencer.property_step(member_map))
        for path_map in type_map.path_maps:
            if not path_map.ignored:
                steps.append(sequencer.path_step(path_map))
        for after in type_map.after_map:
            steps.append(_hook_step(after))

        if type_map.max_depth <= 0:

            def assign(frame: Frame) -> Any:
                create_destination(frame)
                for step in steps:
                    step(frame)
                return frame.destination

            return assign

        def assign_tracking_depth(frame: Frame) -> Any:
            create_destination(frame)
            context = frame.context
            context.increment_type_depth(type_map)
            try:
                for step in steps:
                    step(frame)
            finally:
                context.decrement_type_depth(type_map)
            return frame.destination

        return assign_tracking_depth

    def _create_mapper_func(self, assignment: Step) -> Step:
        type_map = self._type_map
        destination_type = type_map.destination_type
        has_max_depth = type_map.max_depth > 0
        preserve_references = type_map.preserve_references
        destination_default = default_value(destination_type)
        null_source = self._null_source_func()

        def mapper(frame: Frame) -> Any:
            if preserve_references:
                cached = frame.context.get_destination(frame.source, destination_type)
                if cached is not None:
                    return cached
            if frame.source is None:
                return null_source(frame)
            if has_max_depth and frame.context.over_type_depth(type_map):
                return destination_default
            return assignment(frame)

        return mapper

    def _null_source_func(self) -> Step:
        """Value produced for a None source, without running member logic."""
        type_map = self._type_map
        registry = self._registry
        destination_type = type_map.destination_type
        null_substitute = type_map.null_substitute
        allow_null = type_map.allow_null_destination_values
        if allow_null is None:
            allow_null = registry.config.allow_null_destination_values
        metadata = registry.metadata
        can_create = metadata.is_constructible(destination_type) and not any(
            not p.has_default for p in metadata.constructor_parameters(destination_type)
        )
        destination_default = default_value(destination_type)

        def null_source(frame: Frame) -> Any:
            if frame.initial_destination is not None:
                return frame.initial_destination
            if null_substitute is not None:
                return null_substitute()
            if not allow_null and can_create:
                return destination_type()
            return destination_default

        return null_source


def _hook_step(hook: Callable[[Any, Any, Any], None]) -> Step:
    def run_hook(frame: Frame) -> None:
        hook(frame.source, frame.destination, frame.context)

    return run_hook
