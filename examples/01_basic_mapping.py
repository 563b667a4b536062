"""
Example 01: Basic Mapping

This example declares type maps with the fluent builder and maps objects
through a PlanRegistry.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from map_plan import PlanRegistry, type_map


@dataclass
class Address:
    street: str = ""
    city: str = ""


@dataclass
class Customer:
    name: str = ""
    email: str | None = None
    address: Address | None = None
    orders: list[int] = field(default_factory=list)


@dataclass
class CustomerDto:
    name: str = ""
    email: str = ""
    city: str = ""
    order_count: int = 0


def main():
    registry = PlanRegistry(
        [
            type_map(Customer, CustomerDto)
            .member("name", transformers=[str.title])
            .member("email", null_substitute="<none>")
            .member("city", "address.city")
            .member("order_count", lambda c: len(c.orders))
            .build(),
        ]
    )

    print("=== Basic Mapping ===\n")

    customer = Customer("alice smith", None, Address("Main St 1", "Springfield"), [1, 2, 3])
    dto = registry.map(customer, CustomerDto)
    print(f"map result: {dto}")

    # A null link in a source path keeps the destination member's value
    dto = registry.map(Customer("bob"), CustomerDto)
    print(f"without address: {dto}")

    # Mapping onto an existing destination
    existing = CustomerDto(city="unchanged")
    registry.map(Customer("carol"), CustomerDto, existing)
    print(f"existing destination: {existing}")


if __name__ == "__main__":
    main()
