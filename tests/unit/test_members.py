"""Unit tests for member units: resolution, conditions, nulls, paths and errors."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from map_plan.core.context import ResolutionContext
from map_plan.core.enums import PlanState
from map_plan.core.exceptions import ConfigurationError, MappingError, NullPathError
from map_plan.mapping.builder import type_map
from map_plan.mapping.model import PathMap, TypeMap


@dataclass
class Address:
    city: str = ""


@dataclass
class AddressDto:
    city: str = ""


@dataclass
class Profile:
    name: str = ""
    age: int = 0
    nickname: str | None = None
    address: Address | None = None


@dataclass
class ProfileDto:
    name: str = ""
    age: int = 0
    nickname: str = ""
    address: AddressDto | None = None


@dataclass
class Customer:
    name: str = ""
    details: Address | None = None


@dataclass
class CustomerDto:
    name: str = ""
    city: str = ""


@dataclass
class Flat:
    city: str = ""


@dataclass
class Nested:
    address: AddressDto | None = None


class Holder:
    def __init__(self) -> None:
        self._address: AddressDto | None = None

    @property
    def address(self) -> AddressDto | None:
        return self._address


class Loose:
    def __init__(self) -> None:
        self.meta = None


class Account:
    def __init__(self) -> None:
        self._balance = 7

    @property
    def balance(self) -> int:
        return self._balance


@dataclass
class Balance:
    balance: int = 0


class Ticket:
    def __init__(self, code: str) -> None:
        self.code = code


@dataclass
class Code:
    code: str = ""


class TestResolution:
    def test_same_name_members(self, make_registry) -> None:
        registry = make_registry(type_map(Profile, ProfileDto).member("name").member("age"))
        dto = registry.map(Profile(name="Ada", age=36), ProfileDto)
        assert dto == ProfileDto(name="Ada", age=36)

    def test_undeclared_members_are_left_alone(self, make_registry) -> None:
        registry = make_registry(type_map(Profile, ProfileDto).member("name"))
        dto = registry.map(Profile(name="Ada", age=36), ProfileDto)
        assert dto.age == 0

    def test_map_from_lambda(self, make_registry) -> None:
        registry = make_registry(type_map(Profile, ProfileDto).member("name", lambda p: p.name.title()))
        assert registry.map(Profile(name="grace"), ProfileDto).name == "Grace"

    def test_resolver_receives_context_items(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member(
                "name", resolve=lambda src, dest, member, ctx: ctx.items["prefix"] + src.name
            )
        )
        context = ResolutionContext(registry, items={"prefix": "Dr. "})
        assert registry.map(Profile(name="Who"), ProfileDto, context=context).name == "Dr. Who"

    def test_transformers_apply_in_order(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("name", transformers=[str.strip, str.upper])
        )
        assert registry.map(Profile(name="  ada "), ProfileDto).name == "ADA"

    def test_mapping_order(self, make_registry) -> None:
        seen: list[str] = []

        def record(name):
            def resolve(src, dest, member, ctx):
                seen.append(name)
                return member

            return resolve

        registry = make_registry(
            type_map(Profile, ProfileDto)
            .member("name", resolve=record("name"))
            .member("age", resolve=record("age"), order=2)
            .member("nickname", resolve=record("nickname"), order=1)
        )
        registry.map(Profile(), ProfileDto)
        assert seen == ["nickname", "age", "name"]


class TestConditions:
    def test_condition_sees_mapped_and_current_values(self, make_registry) -> None:
        calls = []

        def non_negative(src, dest, mapped, current, ctx):
            calls.append((mapped, current))
            return mapped >= 0

        registry = make_registry(type_map(Profile, ProfileDto).member("age", condition=non_negative))
        assert registry.map(Profile(age=-1), ProfileDto).age == 0
        assert registry.map(Profile(age=5), ProfileDto).age == 5
        assert calls == [(-1, 0), (5, 0)]

    def test_pre_condition_skips_resolution(self, make_registry) -> None:
        def boom(src, dest, member, ctx):
            raise AssertionError("resolver must not run")

        registry = make_registry(
            type_map(Profile, ProfileDto).member(
                "name", resolve=boom, pre_condition=lambda src, dest, ctx: False
            )
        )
        assert registry.map(Profile(name="x"), ProfileDto).name == ""


class TestNulls:
    def test_null_substitute(self, make_registry) -> None:
        registry = make_registry(type_map(Profile, ProfileDto).member("nickname", null_substitute="n/a"))
        assert registry.map(Profile(), ProfileDto).nickname == "n/a"
        assert registry.map(Profile(nickname="ace"), ProfileDto).nickname == "ace"

    def test_null_nested_member_stays_none_by_default(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("address"),
            type_map(Address, AddressDto).member("city"),
        )
        assert registry.map(Profile(), ProfileDto).address is None

    def test_member_disallowing_null_backfills_default_instance(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("address", allow_null=False),
            type_map(Address, AddressDto).member("city"),
        )
        assert registry.map(Profile(), ProfileDto).address == AddressDto()

    def test_type_map_disallowing_null(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("address").allow_null_destination_values(False),
            type_map(Address, AddressDto).member("city"),
        )
        assert registry.map(Profile(), ProfileDto).address == AddressDto()

    def test_config_disallowing_null(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("address"),
            type_map(Address, AddressDto).member("city"),
            allow_null_destination_values=False,
        )
        assert registry.map(Profile(), ProfileDto).address == AddressDto()

    def test_member_setting_overrides_type_map(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto)
            .member("address", allow_null=True)
            .allow_null_destination_values(False),
            type_map(Address, AddressDto).member("city"),
        )
        assert registry.map(Profile(), ProfileDto).address is None

    def test_null_link_in_lambda_yields_member_default(self, make_registry) -> None:
        registry = make_registry(type_map(Profile, ProfileDto).member("age", lambda p: len(p.address.city)))
        assert registry.map(Profile(address=None), ProfileDto).age == 0
        assert registry.map(Profile(address=Address("Oslo")), ProfileDto).age == 4


class TestDestinationValues:
    def test_use_destination_value_maps_into_existing_member(self, make_registry) -> None:
        existing = AddressDto(city="old")
        registry = make_registry(
            type_map(Profile, ProfileDto)
            .construct_using(lambda src, ctx: ProfileDto(address=existing))
            .member("address", use_destination_value=True),
            type_map(Address, AddressDto).member("city"),
        )
        dto = registry.map(Profile(address=Address("Lima")), ProfileDto)
        assert dto.address is existing
        assert existing.city == "Lima"

    def test_without_destination_value_a_new_member_is_created(self, make_registry) -> None:
        existing = AddressDto(city="old")
        registry = make_registry(
            type_map(Profile, ProfileDto)
            .construct_using(lambda src, ctx: ProfileDto(address=existing))
            .member("address"),
            type_map(Address, AddressDto).member("city"),
        )
        dto = registry.map(Profile(address=Address("Lima")), ProfileDto)
        assert dto.address is not existing
        assert existing.city == "old"

    def test_passed_destination_members_are_mapped_into(self, make_registry) -> None:
        registry = make_registry(
            type_map(Profile, ProfileDto).member("address"),
            type_map(Address, AddressDto).member("city"),
        )
        destination = ProfileDto(address=AddressDto(city="old"))
        nested = destination.address
        result = registry.map(Profile(address=Address("Kyiv")), ProfileDto, destination)
        assert result is destination
        assert result.address is nested
        assert nested.city == "Kyiv"

    def test_read_only_member_is_not_assigned(self, make_registry) -> None:
        registry = make_registry(type_map(Balance, Account).member("balance"))
        assert registry.map(Balance(balance=99), Account).balance == 7

    def test_constructor_member_skipped_unless_destination_passed(self, make_registry) -> None:
        calls = []

        def resolve(src, dest, member, ctx):
            calls.append(src.code)
            return "from-member"

        registry = make_registry(
            type_map(Code, Ticket).ctor_param("code", "code").member("code", resolve=resolve)
        )
        assert registry.map(Code("abc"), Ticket).code == "abc"
        assert calls == []

        ticket = registry.map(Code("abc"), Ticket, Ticket("old"))
        assert ticket.code == "from-member"
        assert calls == ["abc"]


class TestIncludedMembers:
    def test_members_resolved_from_included_source(self, make_registry) -> None:
        registry = make_registry(
            type_map(Customer, CustomerDto)
            .include_members("details")
            .member("name")
            .member("city", include="details")
        )
        dto = registry.map(Customer(name="Ann", details=Address("Porto")), CustomerDto)
        assert dto == CustomerDto(name="Ann", city="Porto")

    def test_none_included_source_leaves_member(self, make_registry) -> None:
        registry = make_registry(
            type_map(Customer, CustomerDto).include_members("details").member("city", include="details")
        )
        assert registry.map(Customer(), CustomerDto).city == ""

    def test_included_member_source_type(self) -> None:
        built = (
            type_map(Customer, CustomerDto).include_members("details").member("city", include="details").build()
        )
        assert built.member_maps[0].source_type is str


class TestPathMaps:
    def test_intermediate_objects_are_created(self, make_registry) -> None:
        registry = make_registry(type_map(Flat, Nested).path("address.city", "city"))
        assert registry.map(Flat(city="Rome"), Nested).address == AddressDto(city="Rome")

    def test_existing_intermediate_is_reused(self, make_registry) -> None:
        registry = make_registry(type_map(Flat, Nested).path("address.city", "city"))
        address = AddressDto()
        result = registry.map(Flat(city="Rome"), Nested, Nested(address=address))
        assert result.address is address
        assert address.city == "Rome"

    def test_read_only_none_segment_raises(self, make_registry) -> None:
        registry = make_registry(type_map(Flat, Holder).path("address.city", "city"))
        with pytest.raises(MappingError) as exc_info:
            registry.map(Flat(city="Rome"), Holder)
        cause = exc_info.value.__cause__
        assert isinstance(cause, NullPathError)
        assert cause.segment == "address"
        assert str(cause) == "address cannot be None because it's used by path 'address.city'"

    def test_undeterminable_segment_type_fails_compilation(self, make_registry) -> None:
        registry = make_registry(type_map(Flat, Loose).path("meta.city", "city"))
        with pytest.raises(ConfigurationError, match="Cannot determine the type"):
            registry.get_or_compile(Flat, Loose)
        assert registry.get_type_map(Flat, Loose).state is PlanState.UNCOMPILED

    def test_path_without_resolver_keeps_current_value(self, make_registry) -> None:
        registry = make_registry(TypeMap(Flat, Nested, path_maps=[PathMap(destination_name="address.city")]))
        assert registry.map(Flat(city="Rome"), Nested).address == AddressDto()

    def test_ignored_path_is_skipped(self, make_registry) -> None:
        path_map = PathMap(destination_name="address.city", ignored=True)
        registry = make_registry(TypeMap(Flat, Nested, path_maps=[path_map]))
        assert registry.map(Flat(city="Rome"), Nested).address is None


class TestErrorBoundary:
    def test_member_failure_is_wrapped(self, make_registry) -> None:
        def fail(src, dest, member, ctx):
            raise ValueError("bad age")

        registry = make_registry(type_map(Profile, ProfileDto).member("age", resolve=fail))
        with pytest.raises(MappingError) as exc_info:
            registry.map(Profile(), ProfileDto)
        error = exc_info.value
        assert isinstance(error.__cause__, ValueError)
        assert error.member_map.destination_name == "age"
        assert "Mapping types: Profile -> ProfileDto" in str(error)
        assert "Destination member: age" in str(error)
