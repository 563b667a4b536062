"""Value resolution strategies.

Each strategy compiles once, per member map, into a callable::

    resolve(source, destination, destination_member, context) -> value

Type converters compile into a callable replacing the whole plan::

    convert(source, destination, context) -> destination
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, get_type_hints

from map_plan.core.exceptions import ConfigurationError
from map_plan.mapping.metadata import default_value

if TYPE_CHECKING:
    from map_plan.core.registry import PlanRegistry
    from map_plan.mapping.model import MemberMap, TypeMap

ResolveFunc = Callable[[Any, Any, Any, Any], Any]
ConvertFunc = Callable[[Any, Any, Any], Any]

_MISSING = object()


def _return_type(func: Callable[..., Any]) -> Any:
    try:
        return get_type_hints(func).get("return")
    except (NameError, TypeError, AttributeError):
        return None


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def close_generic(tp: Any, candidates: list[Any]) -> Any:
    """Close an open generic class over the first matching candidate types."""
    parameters = getattr(tp, "__parameters__", ())
    if not parameters or not isinstance(tp, type):
        return tp
    args = [c for c in candidates if c is not None][: len(parameters)]
    if len(args) < len(parameters):
        return tp
    return tp[tuple(args)] if len(args) > 1 else tp[args[0]]


def is_null_failure(exc: BaseException) -> bool:
    """Whether an exception comes from dereferencing None."""
    if isinstance(exc, AttributeError):
        return getattr(exc, "obj", _MISSING) is None
    if isinstance(exc, TypeError):
        return "NoneType" in str(exc)
    return False


class ValueResolverBase:
    """Base class of member value resolution strategies."""

    resolved_type: Any = None
    source_member_name: str | None = None

    def compile(self, member_map: MemberMap, registry: PlanRegistry) -> ResolveFunc:
        raise NotImplementedError


class FuncResolver(ValueResolverBase):
    """Calls ``func(source, destination, destination_member, context)``."""

    def __init__(self, func: Callable[..., Any], resolved_type: Any = None) -> None:
        self.func = func
        self.resolved_type = resolved_type if resolved_type is not None else _return_type(func)

    def compile(self, member_map: MemberMap, registry: PlanRegistry) -> ResolveFunc:
        return self.func


class ExpressionResolver(ValueResolverBase):
    """Evaluates a member access against the source.

    A dotted path is null-safe: a None link yields the current destination
    member value. A callable is guarded so that dereferencing None yields
    the destination member type's default value while any other failure
    propagates.
    """

    def __init__(self, expression: str | Callable[[Any], Any], resolved_type: Any = None) -> None:
        self.expression = expression
        if isinstance(expression, str):
            self.source_member_name = expression
            self.resolved_type = resolved_type
        else:
            self.resolved_type = resolved_type if resolved_type is not None else _return_type(expression)

    def compile(self, member_map: MemberMap, registry: PlanRegistry) -> ResolveFunc:
        if isinstance(self.expression, str):
            return self._compile_path(self.expression.split("."))
        return self._compile_callable(self.expression, default_value(member_map.declared_type))

    @staticmethod
    def _compile_path(names: list[str]) -> ResolveFunc:
        def resolve(source: Any, destination: Any, destination_member: Any, context: Any) -> Any:
            value = source
            for name in names:
                if value is None:
                    return destination_member
                value = getattr(value, name)
            return value

        return resolve

    @staticmethod
    def _compile_callable(expression: Callable[[Any], Any], default: Any) -> ResolveFunc:
        def resolve(source: Any, destination: Any, destination_member: Any, context: Any) -> Any:
            try:
                return expression(source)
            except (AttributeError, TypeError) as e:
                if is_null_failure(e):
                    return default
                raise

        return resolve


class _ObjectResolverConfig(ValueResolverBase):
    """Shared configuration of converter and resolver objects."""

    def __init__(
        self,
        instance: Any = None,
        *,
        service_type: Any = None,
        source_member: Callable[[Any], Any] | None = None,
        source_member_name: str | None = None,
        resolved_type: Any = None,
    ) -> None:
        if instance is None and service_type is None:
            raise ConfigurationError(f"{type(self).__name__} needs an instance or a service type")
        self.instance = instance
        self.service_type = service_type
        self.source_member = source_member
        self.source_member_name = source_member_name
        self.resolved_type = resolved_type

    @property
    def concrete_type(self) -> Any:
        return self.service_type if self.instance is None else type(self.instance)

    def _explicit_source(self) -> Callable[[Any], Any] | None:
        if self.source_member is not None:
            return self.source_member
        if self.source_member_name is not None:
            names = self.source_member_name.split(".")

            def access(source: Any) -> Any:
                value = source
                for name in names:
                    if value is None:
                        return None
                    value = getattr(value, name)
                return value

            return access
        return None

    def _instance_getter(self, service_type: Any) -> Callable[[Any], Any]:
        if self.instance is not None:
            instance = self.instance
            return lambda context: instance
        return lambda context: context.get_service(service_type)


class ValueConverterConfig(_ObjectResolverConfig):
    """Passes one source member to ``converter.convert(source_member, context)``.

    Without an explicit source member the member map's source member chain
    is used; a map with neither fails to compile.
    """

    def compile(self, member_map: MemberMap, registry: PlanRegistry) -> ResolveFunc:
        access = self._explicit_source()
        if access is None:
            if not member_map.source_members:
                raise ConfigurationError(
                    "Cannot find a source member to pass to the value converter of type "
                    f"{_type_name(self.concrete_type)}. Configure a source member to map from."
                )
            access = member_map.chain_source_members
        get_instance = self._instance_getter(self.service_type)

        def resolve(source: Any, destination: Any, destination_member: Any, context: Any) -> Any:
            return get_instance(context).convert(access(source), context)

        return resolve


class ClassValueResolver(_ObjectResolverConfig):
    """Calls a resolver object's ``resolve`` method.

    With a source member the resolver receives it as an extra argument
    (``MemberValueResolver``), otherwise it gets the whole source
    (``ValueResolver``). Generic resolver classes are closed over the type
    map's source and destination types.
    """

    def compile(self, member_map: MemberMap, registry: PlanRegistry) -> ResolveFunc:
        type_map = member_map.type_map
        service_type = self.service_type
        if service_type is not None and type_map is not None:
            service_type = close_generic(
                service_type,
                [
                    type_map.source_type,
                    type_map.destination_type,
                    member_map.source_type,
                    member_map.destination_type,
                ],
            )
        get_instance = self._instance_getter(service_type)
        access = self._explicit_source()

        if access is None:

            def resolve(source: Any, destination: Any, destination_member: Any, context: Any) -> Any:
                return get_instance(context).resolve(source, destination, destination_member, context)

            return resolve

        def resolve_member(source: Any, destination: Any, destination_member: Any, context: Any) -> Any:
            return get_instance(context).resolve(
                source, destination, access(source), destination_member, context
            )

        return resolve_member


# --- Type converters ---


class TypeConverterConfig:
    """Base class of whole-plan replacements."""

    def compile(self, type_map: TypeMap, registry: PlanRegistry) -> ConvertFunc:
        raise NotImplementedError


class FuncTypeConverter(TypeConverterConfig):
    """Calls ``func(source, destination, context)`` instead of a plan."""

    def __init__(self, func: Callable[[Any, Any, Any], Any]) -> None:
        self.func = func

    def compile(self, type_map: TypeMap, registry: PlanRegistry) -> ConvertFunc:
        return self.func


class ClassTypeConverter(TypeConverterConfig):
    """Calls ``convert`` on a converter object located by type at execution time."""

    def __init__(self, converter_type: Any) -> None:
        self.converter_type = converter_type

    def close_generics(self, type_map: TypeMap) -> Any:
        """Close a generic converter over the generic arguments of the pair."""
        args = [
            *getattr(type_map.source_type, "__args__", ()),
            *getattr(type_map.destination_type, "__args__", ()),
        ]
        return close_generic(self.converter_type, args)

    def compile(self, type_map: TypeMap, registry: PlanRegistry) -> ConvertFunc:
        converter_type = self.close_generics(type_map)

        def convert(source: Any, destination: Any, context: Any) -> Any:
            return context.get_service(converter_type).convert(source, destination, context)

        return convert
