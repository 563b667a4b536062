"""
Example 03: Converters, Resolvers and Constructors

This example maps into a class with a required constructor, uses a value
converter located by type and replaces a whole plan with a type converter.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from map_plan import DefaultServiceLocator, PlanRegistry, ResolutionContext, type_map


@dataclass
class PriceRow:
    cents: int = 0
    currency: str | None = None


class Money:
    def __init__(self, amount: Decimal, currency: str = "EUR") -> None:
        self.amount = amount
        self.currency = currency

    def __repr__(self) -> str:
        return f"Money({self.amount} {self.currency})"


class CentsToDecimal:
    def convert(self, source_member: int, context: ResolutionContext) -> Decimal:
        return Decimal(source_member) / 100


class TaxResolver:
    def resolve(self, source, destination, destination_member, context):
        return destination.amount * Decimal(context.items.get("tax_rate", "0"))


@dataclass
class Quote:
    total: str = ""


def main():
    services = DefaultServiceLocator()
    registry = PlanRegistry(
        [
            type_map(PriceRow, Money)
            .ctor_param("amount", "cents", converter=CentsToDecimal)
            .ctor_param("currency", condition=lambda s, d, mapped, current, c: mapped is not None)
            .member("tax", resolver=TaxResolver, destination_type=Decimal)
            .build(),
            type_map(Money, Quote)
            .convert_using(lambda money, destination, context: Quote(f"{money.amount:.2f} {money.currency}"))
            .build(),
        ],
        services=services,
    )

    print("=== Constructor Mapping ===\n")
    context = ResolutionContext(registry, items={"tax_rate": "0.2"})
    money = registry.map(PriceRow(1999), Money, context=context)
    print(f"money: {money}, tax: {money.tax}")

    print("\n=== Type Converter ===\n")
    print(f"quote: {registry.map(money, Quote)}")


if __name__ == "__main__":
    main()
