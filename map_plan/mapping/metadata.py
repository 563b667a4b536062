"""Member metadata provider.

Answers the questions the plan compiler asks about destination and source
types: member types, writability, constructor parameters, and whether a
type behaves as a value. Supports dataclasses, Pydantic models, named
tuples and plain classes.
"""

from __future__ import annotations

import dataclasses
import datetime
import inspect
import types
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Union, get_args, get_origin, get_type_hints

from map_plan.core.exceptions import ConfigurationError

_VALUE_BASES: tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    Decimal,
    Enum,
    tuple,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
)

_SCALAR_DEFAULTS: dict[type, Any] = {
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    Decimal: Decimal(0),
}

_COLLECTION_TYPES: tuple[type, ...] = (list, tuple, set, frozenset, dict, str, bytes, bytearray)

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True)
class ParameterInfo:
    """One constructor parameter as seen by the compiler."""

    name: str
    annotation: Any
    default: Any
    kind: inspect._ParameterKind

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY


def _is_pydantic_model(cls: Any) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    try:
        from pydantic import BaseModel

        return isinstance(cls, type) and issubclass(cls, BaseModel)
    except ImportError:
        return False


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def unwrap_optional(tp: Any) -> Any:
    """Return ``X`` for ``X | None``, otherwise ``tp`` unchanged."""
    if _is_union(tp):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def admits_none(tp: Any) -> bool:
    """True when an annotation explicitly allows None."""
    if tp is None or tp is type(None):
        return True
    return _is_union(tp) and type(None) in get_args(tp)


def runtime_class(tp: Any) -> type | None:
    """The class behind an annotation, or None when there is no single one."""
    tp = unwrap_optional(tp)
    if _is_union(tp):
        return None
    origin = get_origin(tp)
    if isinstance(origin, type):
        return origin
    if isinstance(tp, type):
        return tp
    return None


def is_collection_type(tp: Any) -> bool:
    cls = runtime_class(tp)
    return cls is not None and issubclass(cls, _COLLECTION_TYPES)


def default_value(tp: Any) -> Any:
    """The zero value of a type: 0 for numbers, False for bool, otherwise None."""
    if admits_none(tp):
        return None
    cls = runtime_class(tp)
    if cls is None:
        return None
    for scalar, value in _SCALAR_DEFAULTS.items():
        if cls is scalar:
            return value
    return None


class MemberMetadata:
    """Reflection queries used while compiling plans."""

    def member_type(self, cls: type, name: str) -> Any:
        """Declared type of a member, with Optional unwrapped, or None."""
        attr = inspect.getattr_static(cls, name, None)
        if isinstance(attr, property):
            if attr.fget is None:
                return None
            return unwrap_optional(self._hints(attr.fget).get("return"))
        if _is_pydantic_model(cls):
            field = cls.model_fields.get(name)  # type: ignore[attr-defined]
            if field is not None:
                return unwrap_optional(field.annotation)
        return unwrap_optional(self._hints(cls).get(name))

    def is_read_only(self, cls: type, name: str) -> bool:
        """Whether a member of ``cls`` cannot be assigned after construction."""
        attr = inspect.getattr_static(cls, name, None)
        if isinstance(attr, property):
            return attr.fset is None
        if dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen:  # type: ignore[attr-defined]
            return True
        if _is_pydantic_model(cls) and cls.model_config.get("frozen", False):  # type: ignore[attr-defined]
            return True
        return self._is_named_tuple(cls)

    def constructor_parameters(self, cls: type) -> list[ParameterInfo]:
        """Ordered constructor parameters, excluding *args and **kwargs."""
        try:
            sig = inspect.signature(cls, eval_str=True)
        except (NameError, TypeError):
            sig = inspect.signature(cls)
        except ValueError:
            return []
        return [
            ParameterInfo(
                name=param.name,
                annotation=None if param.annotation is _EMPTY else param.annotation,
                default=param.default,
                kind=param.kind,
            )
            for param in sig.parameters.values()
            if param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
        ]

    def is_value_type(self, tp: Any) -> bool:
        """Value types cannot take part in reference identity.

        Numbers, enums, dates, tuples (named tuples included), frozen
        dataclasses and frozen Pydantic models count as values.
        """
        cls = runtime_class(tp)
        if cls is None:
            return False
        if issubclass(cls, _VALUE_BASES):
            return True
        if dataclasses.is_dataclass(cls):
            return bool(cls.__dataclass_params__.frozen)  # type: ignore[attr-defined]
        if _is_pydantic_model(cls):
            return bool(cls.model_config.get("frozen", False))  # type: ignore[attr-defined]
        return False

    def is_nullable(self, tp: Any) -> bool:
        """Whether None is an acceptable value for the annotation."""
        if tp is None or tp is Any or admits_none(tp):
            return True
        return not self.is_value_type(tp)

    def is_constructible(self, tp: Any) -> bool:
        cls = runtime_class(tp)
        if cls is None:
            return False
        return not (inspect.isabstract(cls) or getattr(cls, "_is_protocol", False))

    def create_instance(self, tp: Any) -> Any:
        """Create a default instance of ``tp`` with its no-argument constructor.

        Raises:
            ConfigurationError: If the type is abstract or needs arguments.
        """
        cls = runtime_class(tp)
        if cls is None or not self.is_constructible(cls):
            raise ConfigurationError(f"Cannot create an instance of abstract type {tp!r}")
        required = [p.name for p in self.constructor_parameters(cls) if not p.has_default]
        if required:
            raise ConfigurationError(
                f"{cls.__name__} needs to have a constructor with 0 args or only "
                f"optional args; missing {required}"
            )
        return cls()

    @staticmethod
    def _is_named_tuple(cls: type) -> bool:
        return issubclass(cls, tuple) and hasattr(cls, "_fields")

    @staticmethod
    def _hints(obj: Any) -> dict[str, Any]:
        try:
            return get_type_hints(obj)
        except (NameError, TypeError, AttributeError):
            return dict(getattr(obj, "__annotations__", {}))
