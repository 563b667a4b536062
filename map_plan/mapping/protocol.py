"""Converter and resolver protocols.

User supplied objects implement one of these interfaces. The plan
compiler calls them from the member unit they are attached to, or in
place of a whole plan for type converters.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

S = TypeVar("S", contravariant=True)
D = TypeVar("D")


class ValueConverter(Protocol[S, D]):
    """Converts one source member value into a destination member value."""

    def convert(self, source_member: S, context: Any) -> D:
        ...


class ValueResolver(Protocol[D]):
    """Produces a destination member value from the whole source."""

    def resolve(self, source: Any, destination: Any, destination_member: D, context: Any) -> D:
        ...


class MemberValueResolver(Protocol[D]):
    """Produces a destination member value from the source and one source member."""

    def resolve(
        self,
        source: Any,
        destination: Any,
        source_member: Any,
        destination_member: D,
        context: Any,
    ) -> D:
        ...


class TypeConverter(Protocol[D]):
    """Replaces a whole plan: converts a source instance into a destination instance."""

    def convert(self, source: Any, destination: D | None, context: Any) -> D:
        ...
