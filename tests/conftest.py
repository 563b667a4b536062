"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from map_plan.core.config import MapperConfig
from map_plan.core.registry import PlanRegistry
from map_plan.core.services import DefaultServiceLocator
from map_plan.mapping.builder import TypeMapBuilder
from map_plan.mapping.model import TypeMap


@pytest.fixture
def services() -> DefaultServiceLocator:
    """Service locator tests can register instances on."""
    return DefaultServiceLocator()


@pytest.fixture
def make_registry(services: DefaultServiceLocator) -> Callable[..., PlanRegistry]:
    """Helper to build a registry from builders or type maps.

    Usage:
        registry = make_registry(type_map(A, B).member("name"), max_execution_plan_depth=2)
    """

    def _make(*maps: TypeMapBuilder | TypeMap, **config: Any) -> PlanRegistry:
        type_maps = [m.build() if isinstance(m, TypeMapBuilder) else m for m in maps]
        return PlanRegistry(type_maps, config=MapperConfig(**config), services=services)

    return _make
