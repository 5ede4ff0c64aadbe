"""Example usage of BeanDiff comparison engine."""

import json
import threading
from dataclasses import dataclass, field
from typing import Optional

from beandiff import (
    BeanDiffEngine,
    BeanMismatchError,
    ComparisonConfig,
    assert_same_bean,
    instances_of,
    render_node,
)


@dataclass(eq=False)
class Department:
    name: str
    manager: Optional["Employee"] = None
    staff: list = field(default_factory=list)


@dataclass(eq=False)
class Employee:
    name: str
    department: Optional[Department] = None
    lock: object = None  # Live resource, not part of the value


def build_department(manager_name, *names):
    """Department <-> employee back-references make the graph cyclic."""
    department = Department("Engineering")
    for name in (manager_name,) + names:
        department.staff.append(Employee(name, department, threading.Lock()))
    department.manager = department.staff[0]
    return department


def main():
    print("=" * 60)
    print("BeanDiff Comparison Engine - Example")
    print("=" * 60)

    # Locks are compared by a constant, so each instance looks the same
    config = ComparisonConfig().add_type_adapter(type(threading.Lock()), lambda lock: "lock")
    engine = BeanDiffEngine(config)

    expected = build_department("ada", "grace")
    actual = build_department("ada", "grace")

    result = engine.compare(expected, actual)

    print(f"\nEqual: {result.is_equal}")
    print(f"\nExecution:")
    print(f"  Duration: {result.execution.duration_ms}ms")
    print(f"  Engine Version: {result.execution.engine_version}")

    print(f"\nSummary:")
    print(f"  Expected Nodes: {result.summary.expected_nodes}")
    print(f"  Expected Cycles: {result.summary.expected_cycles}")
    print(f"  Divergences: {result.summary.divergences_found}")

    print("\n" + "-" * 60)
    print("Canonical form of expected:")
    print(render_node(result.expected_tree))


def example_with_mismatch():
    """Example that demonstrates a divergence."""
    print("\n" + "=" * 60)
    print("Example with Mismatch")
    print("=" * 60)

    config = (ComparisonConfig()
              .add_type_adapter(type(threading.Lock()), lambda lock: "lock"))

    expected = build_department("ada", "grace")
    actual = build_department("ada", "linus")

    result = BeanDiffEngine(config).compare(expected, actual)

    print(f"\nEqual: {result.is_equal}")
    for divergence in result.divergences:
        print(f"  - [{divergence.type.value}] {divergence.path_text}")
        print(f"    {divergence.message}")

    print("\n" + "-" * 60)
    print("Full JSON Report:")
    print(json.dumps(result.to_dict(), indent=2))


def example_with_assertion():
    """Example using the assertion helper and ignored paths."""
    print("\n" + "=" * 60)
    print("Example with Assertion")
    print("=" * 60)

    config = (ComparisonConfig()
              .add_type_adapter(type(threading.Lock()), lambda lock: "lock")
              .skip_circular_reference_check(instances_of(Employee))
              .ignoring("$.staff[*].name"))

    try:
        assert_same_bean(
            build_department("ada", "linus"),
            build_department("ada", "grace"),
            config
        )
        print("\nSame bean (staff names ignored)")
    except BeanMismatchError as e:
        print(f"\n{e}")


if __name__ == "__main__":
    main()
    example_with_mismatch()
    example_with_assertion()
