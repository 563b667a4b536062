"""Mapping layer - type maps, value resolution and plan assembly."""

from __future__ import annotations

from map_plan.mapping.builder import TypeMapBuilder, type_map
from map_plan.mapping.metadata import MemberMetadata
from map_plan.mapping.model import (
    ConstructorMap,
    ConstructorParameterMap,
    IncludedMember,
    MemberMap,
    PathMap,
    TypeMap,
    TypePair,
)
from map_plan.mapping.plan import Plan, PlanBuilder
from map_plan.mapping.protocol import (
    MemberValueResolver,
    TypeConverter,
    ValueConverter,
    ValueResolver,
)
from map_plan.mapping.resolvers import (
    ClassTypeConverter,
    ClassValueResolver,
    ExpressionResolver,
    FuncResolver,
    FuncTypeConverter,
    ValueConverterConfig,
)

__all__ = [
    "TypeMapBuilder",
    "type_map",
    "MemberMetadata",
    "TypeMap",
    "TypePair",
    "MemberMap",
    "PathMap",
    "ConstructorMap",
    "ConstructorParameterMap",
    "IncludedMember",
    "Plan",
    "PlanBuilder",
    "FuncResolver",
    "ExpressionResolver",
    "ValueConverterConfig",
    "ClassValueResolver",
    "FuncTypeConverter",
    "ClassTypeConverter",
    "ValueConverter",
    "ValueResolver",
    "MemberValueResolver",
    "TypeConverter",
]
