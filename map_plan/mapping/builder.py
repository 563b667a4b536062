"""Type map DSL builder.

Provides a fluent builder recording explicit member rules into a TypeMap.
Members are never discovered or paired by convention: each mapped member
is declared by name. Declaring a member without a source maps it from the
source member of the same name.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, get_origin

from map_plan.core.exceptions import ConfigurationError
from map_plan.mapping.metadata import MemberMetadata, runtime_class, unwrap_optional
from map_plan.mapping.model import (
    ConstructorMap,
    ConstructorParameterMap,
    IncludedMember,
    MemberMap,
    PathMap,
    TypeMap,
    TypePair,
)
from map_plan.mapping.resolvers import (
    ClassTypeConverter,
    ClassValueResolver,
    ExpressionResolver,
    FuncResolver,
    FuncTypeConverter,
    TypeConverterConfig,
    ValueConverterConfig,
    ValueResolverBase,
)

_metadata = MemberMetadata()


def _is_type(obj: Any) -> bool:
    return isinstance(obj, type) or get_origin(obj) is not None


def type_map(source_type: Any, destination_type: Any) -> TypeMapBuilder:
    """Entry point for the type map DSL.

    Args:
        source_type: The class mapped from.
        destination_type: The class mapped to.

    Returns:
        A builder for chaining member declarations.
    """
    return TypeMapBuilder(source_type, destination_type)


class TypeMapBuilder:
    """Fluent builder for one type map."""

    def __init__(self, source_type: Any, destination_type: Any) -> None:
        self._source_type = source_type
        self._destination_type = destination_type
        self._member_maps: list[MemberMap] = []
        self._path_maps: list[PathMap] = []
        self._ctor_params: dict[str, dict[str, Any]] = {}
        self._before: list[Callable[[Any, Any, Any], None]] = []
        self._after: list[Callable[[Any, Any, Any], None]] = []
        self._converter: TypeConverterConfig | None = None
        self._custom_constructor: Callable[[Any, Any], Any] | None = None
        self._preserve_references = False
        self._max_depth = 0
        self._included_members: dict[Any, IncludedMember] = {}
        self._include_derived: list[TypePair] = []
        self._null_substitute: Callable[[], Any] | None = None
        self._allow_null: bool | None = None

    # --- Members ---

    def member(
        self,
        name: str,
        map_from: str | Callable[[Any], Any] | None = None,
        *,
        resolve: Callable[..., Any] | None = None,
        resolver: Any = None,
        converter: Any = None,
        condition: Callable[..., bool] | None = None,
        pre_condition: Callable[..., bool] | None = None,
        null_substitute: Any = None,
        transformers: Iterable[Callable[[Any], Any]] = (),
        inline: bool = True,
        use_destination_value: bool = False,
        allow_null: bool | None = None,
        source_type: Any = None,
        destination_type: Any = None,
        order: int | None = None,
        include: Any = None,
    ) -> TypeMapBuilder:
        """Declare how one destination member is resolved.

        Exactly one of ``resolve``, ``resolver`` or ``converter`` may be
        given; otherwise the member is copied from ``map_from`` (a dotted
        source path or a callable of the source), defaulting to ``name``.
        """
        included = self._included(include)
        member_map = MemberMap(
            destination_name=name,
            condition=condition,
            pre_condition=pre_condition,
            null_substitute=null_substitute,
            inline=inline,
            use_destination_value=use_destination_value,
            allow_null=allow_null,
            transformers=list(transformers),
            included_member=included,
            mapping_order=order,
        )
        self._configure(
            member_map,
            map_from,
            resolve,
            resolver,
            converter,
            source_type,
            destination_type if destination_type is not None else self._member_type(name),
            included,
        )
        self._member_maps.append(member_map)
        return self

    def ignore(self, name: str) -> TypeMapBuilder:
        """Leave a destination member untouched."""
        self._member_maps.append(MemberMap(destination_name=name, ignored=True))
        return self

    def path(
        self,
        destination_path: str,
        map_from: str | Callable[[Any], Any] | None = None,
        *,
        resolve: Callable[..., Any] | None = None,
        condition: Callable[..., bool] | None = None,
        null_substitute: Any = None,
        transformers: Iterable[Callable[[Any], Any]] = (),
        source_type: Any = None,
        destination_type: Any = None,
    ) -> TypeMapBuilder:
        """Declare a member reached through a dotted destination path."""
        if "." not in destination_path:
            raise ConfigurationError(f"'{destination_path}' is not a member path; use member()")
        path_map = PathMap(
            destination_name=destination_path,
            condition=condition,
            null_substitute=null_substitute,
            transformers=list(transformers),
        )
        if map_from is None and resolve is None:
            map_from = destination_path
        self._configure(path_map, map_from, resolve, None, None, source_type, destination_type, None)
        self._path_maps.append(path_map)
        return self

    def ctor_param(
        self,
        name: str,
        map_from: str | Callable[[Any], Any] | None = None,
        *,
        resolve: Callable[..., Any] | None = None,
        resolver: Any = None,
        converter: Any = None,
        condition: Callable[..., bool] | None = None,
        null_substitute: Any = None,
        transformers: Iterable[Callable[[Any], Any]] = (),
        source_type: Any = None,
    ) -> TypeMapBuilder:
        """Declare how one destination constructor parameter is resolved."""
        self._ctor_params[name] = {
            "map_from": map_from,
            "resolve": resolve,
            "resolver": resolver,
            "converter": converter,
            "condition": condition,
            "null_substitute": null_substitute,
            "transformers": list(transformers),
            "source_type": source_type,
        }
        return self

    # --- Type map options ---

    def construct_using(self, func: Callable[[Any, Any], Any]) -> TypeMapBuilder:
        """Create destinations with ``func(source, context)``."""
        self._custom_constructor = func
        return self

    def convert_using(self, converter: Any) -> TypeMapBuilder:
        """Replace the whole plan with a converter function, object or type."""
        if isinstance(converter, TypeConverterConfig):
            self._converter = converter
        elif _is_type(converter):
            self._converter = ClassTypeConverter(converter)
        elif hasattr(converter, "convert"):
            self._converter = FuncTypeConverter(converter.convert)
        else:
            self._converter = FuncTypeConverter(converter)
        return self

    def before_map(self, hook: Callable[[Any, Any, Any], None]) -> TypeMapBuilder:
        self._before.append(hook)
        return self

    def after_map(self, hook: Callable[[Any, Any, Any], None]) -> TypeMapBuilder:
        self._after.append(hook)
        return self

    def include(self, derived_source: Any, derived_destination: Any) -> TypeMapBuilder:
        """Dispatch sources of ``derived_source`` to the derived pair's map."""
        self._include_derived.append(TypePair(derived_source, derived_destination))
        return self

    def include_members(self, *expressions: str | Callable[[Any], Any]) -> TypeMapBuilder:
        """Declare source members usable as ``include=`` sources of members."""
        for expression in expressions:
            source_type = None
            if isinstance(expression, str):
                source_type = self._source_path_type(expression.split("."))
            self._included_members[expression] = IncludedMember(expression, source_type)
        return self

    def preserve_references(self, enabled: bool = True) -> TypeMapBuilder:
        self._preserve_references = enabled
        return self

    def max_depth(self, depth: int) -> TypeMapBuilder:
        self._max_depth = depth
        return self

    def null_substitute(self, factory: Callable[[], Any]) -> TypeMapBuilder:
        """Produce ``factory()`` when the source itself is None."""
        self._null_substitute = factory
        return self

    def allow_null_destination_values(self, enabled: bool = True) -> TypeMapBuilder:
        self._allow_null = enabled
        return self

    def build(self) -> TypeMap:
        """Compile the declarations into a TypeMap."""
        return TypeMap(
            source_type=self._source_type,
            destination_type=self._destination_type,
            member_maps=list(self._member_maps),
            path_maps=list(self._path_maps),
            constructor_map=self._build_constructor_map(),
            before_map=list(self._before),
            after_map=list(self._after),
            type_converter=self._converter,
            custom_constructor=self._custom_constructor,
            preserve_references=self._preserve_references,
            max_depth=self._max_depth,
            included_members=list(self._included_members.values()),
            include_derived=list(self._include_derived),
            null_substitute=self._null_substitute,
            allow_null_destination_values=self._allow_null,
        )

    # --- Helpers ---

    def _build_constructor_map(self) -> ConstructorMap | None:
        if not self._ctor_params:
            return None
        parameters = _metadata.constructor_parameters(self._destination_type)
        names = {p.name for p in parameters}
        unknown = sorted(set(self._ctor_params) - names)
        if unknown:
            raise ConfigurationError(
                f"{self._destination_type.__name__} has no constructor parameters {unknown}"
            )
        param_maps = []
        for param in parameters:
            param_map = ConstructorParameterMap(
                destination_name=param.name,
                destination_type=unwrap_optional(param.annotation),
                annotation=param.annotation,
                default=param.default,
                kind=param.kind,
            )
            declared = self._ctor_params.get(param.name)
            if declared is not None:
                param_map.condition = declared["condition"]
                param_map.null_substitute = declared["null_substitute"]
                param_map.transformers = declared["transformers"]
                self._configure(
                    param_map,
                    declared["map_from"],
                    declared["resolve"],
                    declared["resolver"],
                    declared["converter"],
                    declared["source_type"],
                    param_map.destination_type,
                    None,
                )
            param_maps.append(param_map)
        return ConstructorMap(parameters=param_maps)

    def _configure(
        self,
        member_map: MemberMap,
        map_from: str | Callable[[Any], Any] | None,
        resolve: Callable[..., Any] | None,
        resolver: Any,
        converter: Any,
        source_type: Any,
        destination_type: Any,
        included: IncludedMember | None,
    ) -> None:
        if sum(x is not None for x in (resolve, resolver, converter)) > 1:
            raise ConfigurationError(
                f"Member '{member_map.destination_name}' declares more than one resolver"
            )
        member_map.destination_type = destination_type
        root_type = included.source_type if included is not None else self._source_type
        source_name = map_from if isinstance(map_from, str) else None
        source_member = map_from if callable(map_from) else None

        strategy: ValueResolverBase
        if resolve is not None:
            strategy = FuncResolver(resolve)
        elif resolver is not None:
            strategy = ClassValueResolver(
                None if _is_type(resolver) else resolver,
                service_type=resolver if _is_type(resolver) else None,
                source_member=source_member,
                source_member_name=source_name,
            )
        elif converter is not None:
            strategy = ValueConverterConfig(
                None if _is_type(converter) else converter,
                service_type=converter if _is_type(converter) else None,
                source_member=source_member,
                source_member_name=source_name,
            )
        else:
            if map_from is None:
                map_from = member_map.destination_name
            strategy = ExpressionResolver(map_from)
            if isinstance(map_from, str):
                member_map.source_members = map_from.split(".")

        member_map.resolver = strategy
        if source_type is None:
            if isinstance(strategy, ExpressionResolver) and member_map.source_members:
                source_type = self._source_path_type(member_map.source_members, root_type)
            else:
                source_type = strategy.resolved_type
        member_map.source_type = source_type

    def _included(self, include: Any) -> IncludedMember | None:
        if include is None:
            return None
        try:
            return self._included_members[include]
        except KeyError:
            raise ConfigurationError(
                f"Included member {include!r} must be declared with include_members()"
            ) from None

    def _member_type(self, name: str) -> Any:
        cls = runtime_class(self._destination_type)
        return None if cls is None else _metadata.member_type(cls, name)

    def _source_path_type(self, names: list[str], root_type: Any = None) -> Any:
        tp = root_type if root_type is not None else self._source_type
        for name in names:
            cls = runtime_class(tp)
            if cls is None:
                return None
            tp = _metadata.member_type(cls, name)
        return tp
