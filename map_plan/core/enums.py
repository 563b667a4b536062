"""Plan compilation state enumeration."""

from __future__ import annotations

from enum import Enum


class PlanState(Enum):
    """Compile state of a type map's plan."""

    UNCOMPILED = "uncompiled"
    COMPILING = "compiling"
    COMPILED = "compiled"
