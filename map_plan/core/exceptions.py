"""MapPlan exception hierarchy.

Failures raised while resolving one member are wrapped in MappingError so
callers see a single error identifying the member and the type pair.
"""

from __future__ import annotations

from typing import Any


class MapPlanError(Exception):
    """Base exception for all MapPlan errors."""


# --- Configuration ---


class ConfigurationError(MapPlanError):
    """Raised when a type map cannot be compiled or a destination cannot be built."""


# --- Mapping ---


class MappingError(MapPlanError):
    """Raised when mapping a member, constructor parameter or type pair fails.

    Args:
        message: Short description of the failure.
        member_map: The member map being resolved, if any.
        type_map: The type map whose plan was executing, if any.
    """

    def __init__(
        self,
        message: str,
        member_map: Any | None = None,
        type_map: Any | None = None,
    ) -> None:
        self.member_map = member_map
        self.type_map = type_map
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.args[0] if self.args else "Error mapping types."]
        if self.type_map is not None:
            parts.append(f"Mapping types: {self.type_map.types}")
        if self.member_map is not None:
            parts.append(f"Destination member: {self.member_map.destination_name}")
        return "\n".join(parts)


class NullPathError(MapPlanError):
    """Raised when a read-only intermediate segment of a destination path is None."""

    def __init__(self, path: str, segment: str) -> None:
        self.path = path
        self.segment = segment
        super().__init__(f"{segment} cannot be None because it's used by path '{path}'")
