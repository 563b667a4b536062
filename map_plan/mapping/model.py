"""Type map data model.

Declarative description of one source/destination type pair as delivered
by the configuration surface. Type maps are compared by identity: the
cycle analyzer annotates them in place and keeps them in path stacks.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from map_plan.core.enums import PlanState

if TYPE_CHECKING:
    from map_plan.mapping.plan import Plan
    from map_plan.mapping.resolvers import TypeConverterConfig, ValueResolverBase


@dataclass(frozen=True)
class TypePair:
    """Source type and destination type of a conversion."""

    source_type: Any
    destination_type: Any

    @property
    def contains_generic_parameters(self) -> bool:
        return _has_type_var(self.source_type) or _has_type_var(self.destination_type)

    def __str__(self) -> str:
        return f"{_type_name(self.source_type)} -> {_type_name(self.destination_type)}"


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _has_type_var(tp: Any) -> bool:
    if isinstance(tp, TypeVar):
        return True
    return bool(getattr(tp, "__parameters__", ()))


@dataclass(eq=False)
class IncludedMember:
    """A source member whose value feeds the member maps merged from it.

    ``expression`` is a dotted attribute path or a callable of the source.
    """

    expression: str | Callable[[Any], Any]
    source_type: Any = None

    def evaluate(self, source: Any) -> Any:
        """Null-safe evaluation against the root source."""
        if callable(self.expression):
            return self.expression(source)
        value = source
        for name in self.expression.split("."):
            if value is None:
                return None
            value = getattr(value, name)
        return value


@dataclass(eq=False)
class MemberMap:
    """Resolution rule for one destination member."""

    destination_name: str
    destination_type: Any = None
    source_type: Any = None
    source_members: list[str] = field(default_factory=list)
    resolver: ValueResolverBase | None = None
    condition: Callable[..., bool] | None = None
    pre_condition: Callable[..., bool] | None = None
    null_substitute: Any = None
    ignored: bool = False
    inline: bool = True
    use_destination_value: bool = False
    allow_null: bool | None = None
    transformers: list[Callable[[Any], Any]] = field(default_factory=list)
    included_member: IncludedMember | None = None
    mapping_order: int | None = None
    type_map: TypeMap | None = field(default=None, repr=False)

    @property
    def can_resolve_value(self) -> bool:
        return not self.ignored and self.resolver is not None

    @property
    def types(self) -> TypePair:
        return TypePair(self.source_type, self.destination_type)

    @property
    def declared_type(self) -> Any:
        return self.destination_type

    def chain_source_members(self, source: Any) -> Any:
        """Walk ``source_members`` from ``source``, stopping at the first None."""
        value = source
        for name in self.source_members:
            if value is None:
                return None
            value = getattr(value, name)
        return value

    def apply_transformers(self, value: Any) -> Any:
        for transformer in self.transformers:
            value = transformer(value)
        return value


@dataclass(eq=False)
class PathMap(MemberMap):
    """Resolution rule for a member reached through a dotted destination path."""

    @property
    def segments(self) -> list[str]:
        return self.destination_name.split(".")


@dataclass(eq=False)
class ConstructorParameterMap(MemberMap):
    """Resolution rule producing one constructor argument."""

    default: Any = inspect.Parameter.empty
    # Declared annotation, Optional kept; destination_type holds the unwrapped type.
    annotation: Any = None
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def declared_type(self) -> Any:
        return self.annotation if self.annotation is not None else self.destination_type

    @property
    def can_resolve_value(self) -> bool:
        return not self.ignored and (self.resolver is not None or self.has_default)


@dataclass(eq=False)
class ConstructorMap:
    """Selected destination constructor with one map per parameter."""

    parameters: list[ConstructorParameterMap] = field(default_factory=list)

    @property
    def can_resolve(self) -> bool:
        return all(p.can_resolve_value for p in self.parameters)

    def parameter_names(self) -> set[str]:
        return {p.destination_name for p in self.parameters}


@dataclass(eq=False)
class TypeMap:
    """Full declarative rule set converting one source type to one destination type."""

    source_type: Any
    destination_type: Any
    member_maps: list[MemberMap] = field(default_factory=list)
    path_maps: list[PathMap] = field(default_factory=list)
    constructor_map: ConstructorMap | None = None
    before_map: list[Callable[[Any, Any, Any], None]] = field(default_factory=list)
    after_map: list[Callable[[Any, Any, Any], None]] = field(default_factory=list)
    type_converter: TypeConverterConfig | None = None
    custom_constructor: Callable[[Any, Any], Any] | None = None
    preserve_references: bool = False
    max_depth: int = 0
    included_members: list[IncludedMember] = field(default_factory=list)
    include_derived: list[TypePair] = field(default_factory=list)
    null_substitute: Callable[[], Any] | None = None
    allow_null_destination_values: bool | None = None
    state: PlanState = PlanState.UNCOMPILED
    plan: Plan | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        for member_map in self.all_member_maps():
            member_map.type_map = self

    @property
    def types(self) -> TypePair:
        return TypePair(self.source_type, self.destination_type)

    @property
    def has_type_converter(self) -> bool:
        return self.type_converter is not None

    @property
    def has_derived_types_to_include(self) -> bool:
        return bool(self.include_derived)

    def all_member_maps(self) -> list[MemberMap]:
        member_maps: list[MemberMap] = [*self.member_maps, *self.path_maps]
        if self.constructor_map is not None:
            member_maps.extend(self.constructor_map.parameters)
        return member_maps

    def ordered_member_maps(self) -> list[MemberMap]:
        """Member maps sorted by ``mapping_order``; unordered ones keep declaration order last."""
        ordered = [m for m in self.member_maps if m.mapping_order is not None]
        unordered = [m for m in self.member_maps if m.mapping_order is None]
        return sorted(ordered, key=lambda m: m.mapping_order) + unordered  # type: ignore[arg-type, return-value]

    def constructor_parameter_matches(self, name: str) -> bool:
        return self.constructor_map is not None and name in self.constructor_map.parameter_names()

    def reset_plan(self) -> None:
        self.plan = None
        self.state = PlanState.UNCOMPILED
