"""Mapper configuration.

MapperConfig is a Pydantic model holding the profile-wide settings the
plan compiler reads while analysing and assembling plans.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MapperConfig(BaseModel):
    """Profile-wide settings for plan compilation."""

    # Nested maps are dispatched through the registry once the analyzer path
    # holds this many distinct type maps.
    max_execution_plan_depth: int = Field(default=1, ge=1)
    value_type_max_depth: int = Field(default=10, ge=1)
    allow_null_destination_values: bool = True
    allow_null_collections: bool = False
