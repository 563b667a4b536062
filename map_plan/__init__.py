"""MapPlan - compiles declarative type maps into reusable object-mapping plans."""

from __future__ import annotations

from map_plan.core.config import MapperConfig
from map_plan.core.context import ResolutionContext
from map_plan.core.enums import PlanState
from map_plan.core.exceptions import (
    ConfigurationError,
    MappingError,
    MapPlanError,
    NullPathError,
)
from map_plan.core.registry import PlanRegistry
from map_plan.core.services import DefaultServiceLocator, ServiceLocator
from map_plan.mapping.builder import TypeMapBuilder, type_map
from map_plan.mapping.plan import Plan

__all__ = [
    # Registry
    "PlanRegistry",
    "Plan",
    "PlanState",
    "ResolutionContext",
    # Configuration
    "MapperConfig",
    "TypeMapBuilder",
    "type_map",
    # Services
    "ServiceLocator",
    "DefaultServiceLocator",
    # Exceptions
    "MapPlanError",
    "ConfigurationError",
    "MappingError",
    "NullPathError",
]
