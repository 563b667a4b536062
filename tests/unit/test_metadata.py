"""Unit tests for MemberMetadata and type helpers."""

from __future__ import annotations

import abc
import inspect
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional

import pytest
from pydantic import BaseModel, ConfigDict

from map_plan.core.exceptions import ConfigurationError
from map_plan.mapping.metadata import (
    MemberMetadata,
    admits_none,
    default_value,
    is_collection_type,
    runtime_class,
    unwrap_optional,
)


@dataclass
class Address:
    street: str = ""
    city: str = ""


@dataclass
class Customer:
    name: str = ""
    address: Address | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float


class Color(Enum):
    RED = "red"


class Pair(NamedTuple):
    left: int
    right: int


class UserModel(BaseModel):
    id: int
    email: str | None = None


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int


class Account:
    def __init__(self, owner: str, balance: int = 0) -> None:
        self.owner = owner
        self._balance = balance

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def label(self) -> str:
        return self.owner

    @label.setter
    def label(self, value: str) -> None:
        self.owner = value


class Shape(abc.ABC):
    @abc.abstractmethod
    def area(self) -> float: ...


@pytest.fixture
def metadata() -> MemberMetadata:
    return MemberMetadata()


class TestTypeHelpers:
    def test_unwrap_optional(self) -> None:
        assert unwrap_optional(Optional[int]) is int
        assert unwrap_optional(int | None) is int
        assert unwrap_optional(int) is int
        assert unwrap_optional(int | str) == int | str

    def test_admits_none(self) -> None:
        assert admits_none(int | None)
        assert admits_none(Optional[str])
        assert admits_none(None)
        assert not admits_none(int)
        assert not admits_none(int | str)

    def test_runtime_class(self) -> None:
        assert runtime_class(list[int]) is list
        assert runtime_class(Address | None) is Address
        assert runtime_class(int | str) is None

    def test_default_value(self) -> None:
        assert default_value(int) == 0
        assert default_value(bool) is False
        assert default_value(float) == 0.0
        assert default_value(Decimal) == Decimal(0)
        assert default_value(int | None) is None
        assert default_value(Address) is None
        assert default_value(None) is None

    def test_is_collection_type(self) -> None:
        assert is_collection_type(list[Address])
        assert is_collection_type(dict[str, int])
        assert not is_collection_type(Address)


class TestMemberTypes:
    def test_dataclass_member_type_unwraps_optional(self, metadata: MemberMetadata) -> None:
        assert metadata.member_type(Customer, "address") is Address
        assert metadata.member_type(Customer, "tags") == list[str]

    def test_property_member_type(self, metadata: MemberMetadata) -> None:
        assert metadata.member_type(Account, "balance") is int

    def test_pydantic_member_type(self, metadata: MemberMetadata) -> None:
        assert metadata.member_type(UserModel, "email") is str

    def test_unknown_member(self, metadata: MemberMetadata) -> None:
        assert metadata.member_type(Customer, "missing") is None


class TestReadOnly:
    def test_property_without_setter(self, metadata: MemberMetadata) -> None:
        assert metadata.is_read_only(Account, "balance")
        assert not metadata.is_read_only(Account, "label")

    def test_frozen_dataclass(self, metadata: MemberMetadata) -> None:
        assert metadata.is_read_only(Coordinate, "lat")
        assert not metadata.is_read_only(Address, "city")

    def test_frozen_pydantic_model(self, metadata: MemberMetadata) -> None:
        assert metadata.is_read_only(FrozenModel, "id")
        assert not metadata.is_read_only(UserModel, "id")

    def test_named_tuple(self, metadata: MemberMetadata) -> None:
        assert metadata.is_read_only(Pair, "left")


class TestValueTypes:
    @pytest.mark.parametrize("tp", [int, float, bool, Decimal, Color, Pair, Coordinate, FrozenModel])
    def test_value_types(self, metadata: MemberMetadata, tp: type) -> None:
        assert metadata.is_value_type(tp)

    @pytest.mark.parametrize("tp", [str, Address, Customer, UserModel, list])
    def test_reference_types(self, metadata: MemberMetadata, tp: type) -> None:
        assert not metadata.is_value_type(tp)

    def test_nullable(self, metadata: MemberMetadata) -> None:
        assert not metadata.is_nullable(int)
        assert metadata.is_nullable(int | None)
        assert metadata.is_nullable(Address)
        assert metadata.is_nullable(None)


class TestConstruction:
    def test_constructor_parameters(self, metadata: MemberMetadata) -> None:
        params = metadata.constructor_parameters(Account)
        assert [p.name for p in params] == ["owner", "balance"]
        assert params[0].annotation is str
        assert not params[0].has_default
        assert params[1].default == 0
        assert params[1].kind is inspect.Parameter.POSITIONAL_OR_KEYWORD

    def test_create_instance(self, metadata: MemberMetadata) -> None:
        instance = metadata.create_instance(Address)
        assert isinstance(instance, Address)
        assert instance.city == ""

    def test_create_instance_requires_default_constructor(self, metadata: MemberMetadata) -> None:
        with pytest.raises(ConfigurationError, match="constructor with 0 args"):
            metadata.create_instance(Account)

    def test_abstract_type_not_constructible(self, metadata: MemberMetadata) -> None:
        assert not metadata.is_constructible(Shape)
        with pytest.raises(ConfigurationError, match="abstract"):
            metadata.create_instance(Shape)
