"""
Example 02: Cyclic Object Graphs

This example shows how plans preserve references for cyclic graphs and
bound the depth of recursive value types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from map_plan import PlanRegistry, type_map


@dataclass
class Employee:
    name: str = ""
    manager: Employee | None = None


@dataclass
class EmployeeDto:
    name: str = ""
    manager: EmployeeDto | None = None


@dataclass(frozen=True)
class Step:
    index: int = 0
    next: Step | None = None


@dataclass
class StepDto:
    index: int = 0
    next: StepDto | None = None


def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    registry = PlanRegistry(
        [
            type_map(Employee, EmployeeDto).member("name").member("manager").build(),
            type_map(Step, StepDto).member("index").member("next").build(),
        ]
    )

    print("=== Reference Cycles ===\n")
    ceo = Employee("ceo")
    ceo.manager = ceo
    dto = registry.map(ceo, EmployeeDto)
    print(f"manager is self: {dto.manager is dto}\n")

    print("=== Value Type Depth ===\n")
    step = None
    for index in reversed(range(25)):
        step = Step(index, step)
    dto = registry.map(step, StepDto)
    depth = 0
    while dto is not None:
        depth += 1
        dto = dto.next
    print(f"mapped {depth} of 25 steps")


if __name__ == "__main__":
    main()
