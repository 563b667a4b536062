"""Service location for converter and resolver instances.

Resolvers and converters declared by type rather than by instance are
created through a ServiceLocator passed to the registry. Tests substitute
their own locator or register instances on the default one.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any, Protocol


class ServiceLocator(Protocol):
    """Creates service instances by type key."""

    def get(self, service_type: Any) -> Any:
        """Return an instance for the given type, generic alias or dotted path."""
        ...


def _load_type(path: str) -> Any:
    """Load a class from a 'package.module.ClassName' path."""
    module_path, _, cls_name = path.rpartition(".")
    if not module_path:
        raise LookupError(f"Invalid service path: '{path}'")
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)
    except (ImportError, AttributeError) as e:
        raise LookupError(f"Failed to load service '{path}': {e}") from e


class DefaultServiceLocator:
    """Service locator that instantiates types with no arguments.

    Instances and factories registered up front take precedence over
    construction.
    """

    def __init__(self) -> None:
        self._factories: dict[Any, Callable[[], Any]] = {}

    def register(self, service_type: Any, instance: Any) -> None:
        """Always return ``instance`` for ``service_type``."""
        self._factories[service_type] = lambda: instance

    def register_factory(self, service_type: Any, factory: Callable[[], Any]) -> None:
        """Create instances of ``service_type`` with ``factory``."""
        self._factories[service_type] = factory

    def get(self, service_type: Any) -> Any:
        factory = self._factories.get(service_type)
        if factory is not None:
            return factory()
        if isinstance(service_type, str):
            service_type = _load_type(service_type)
        return service_type()
