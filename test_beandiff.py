"""Tests for BeanDiff comparison engine: circular references and assertions."""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import pytest
from beandiff import (
    BeanDiffEngine,
    BeanMismatchError,
    ComparisonConfig,
    DiffType,
    assert_same_bean,
    compare,
    compare_for_test,
    instances_of,
    render_result,
    to_plain,
)


ADDRESS_PATTERN = re.compile(r"0x[0-9a-fA-F]+")


class One:
    def __init__(self):
        self.generic_object = None


class Two:
    def __init__(self):
        self.generic_object = None


class Four:
    def __init__(self):
        self.generic_object = None
        self.sub_class_field = None


class Element(Enum):
    ONE = 1
    TWO = 2


@dataclass(eq=False)
class CircularReferenceBean:
    name: str
    parent: Optional["CircularReferenceBean"] = None
    children: list = field(default_factory=list)


def circular_reference_bean(parent_name, *child_names):
    parent = CircularReferenceBean(parent_name)
    for child_name in child_names:
        parent.children.append(CircularReferenceBean(child_name, parent=parent))
    return parent


def raise_chain():
    """Return a RuntimeError explicitly chained to a TypeError, with tracebacks."""
    try:
        try:
            raise TypeError("cannot cast")
        except TypeError as e:
            raise RuntimeError("wrapped") from e
    except RuntimeError as e:
        return e


class TestCircularReferences:
    """Cycle handling across self, mutual and nested cycles."""

    def setup_method(self):
        self.engine = BeanDiffEngine()

    def test_independent_circular_beans_are_equal(self):
        """Two separately built, structurally identical cyclic beans match."""
        expected = circular_reference_bean("parent", "child1", "child2")
        actual = circular_reference_bean("parent", "child1", "child2")

        result = self.engine.compare(expected, actual)
        assert result.is_equal is True
        assert result.divergences == []
        assert result.summary.expected_cycles == 2
        assert result.summary.actual_cycles == 2

    def test_circular_beans_with_different_child_names(self):
        """A differing field deep inside a cyclic graph is reported by path."""
        expected = circular_reference_bean("parent", "child1", "child2")
        actual = circular_reference_bean("parent", "child1", "other")

        result = self.engine.compare(expected, actual)
        assert result.is_equal is False
        assert len(result.divergences) == 1
        assert result.first.type == DiffType.VALUE_MISMATCH
        assert result.first.path_text == "$.children[1].name"

    def test_null_expected_against_cyclic_actual(self):
        """Null expected never crashes and never compares equal."""
        actual = circular_reference_bean("parent", "child1", "child2")

        result = self.engine.compare(None, actual)
        assert result.is_equal is False
        assert result.first.type == DiffType.NULL_MISMATCH
        assert result.first.path_text == "$"

        with pytest.raises(BeanMismatchError):
            assert_same_bean(actual, None)

    def test_cyclic_expected_against_null_actual(self):
        expected = circular_reference_bean("parent", "child1")

        result = self.engine.compare(expected, None)
        assert result.is_equal is False
        assert result.first.type == DiffType.NULL_MISMATCH

    def test_circular_reference_in_a_complex_graph(self):
        """Cycles nested inside an acyclic structure terminate and match."""
        root = Four()
        child1 = Four()
        child2 = Four()
        root.generic_object = child1
        child1.generic_object = root  # circular
        root.sub_class_field = child2

        sub_root = One()
        sub_root_child = One()
        sub_root.generic_object = sub_root_child
        sub_root_child.generic_object = sub_root  # circular

        child2.generic_object = sub_root

        result = assert_same_bean(root, root)
        assert result.summary.expected_cycles == 2

    def test_skipped_but_custom_serialized_cycle(self):
        """A skipped type with an adapter canonicalizes to the adapter's constant."""
        root = Four()
        child1 = Four()
        child2 = Four()
        root.generic_object = child1
        root.sub_class_field = child2

        sub_root = One()
        sub_root_child = One()
        sub_root.generic_object = sub_root_child
        sub_root_child.generic_object = sub_root  # circular

        child2.generic_object = sub_root

        config = (ComparisonConfig()
                  .skip_circular_reference_check(instances_of(One))
                  .add_type_adapter(One, lambda one: "customSerializedOneCircle"))

        result = assert_same_bean(root, root, config)
        plain = to_plain(result.expected_tree)
        assert plain["sub_class_field"]["generic_object"] == "customSerializedOneCircle"

    def test_custom_serialized_type_hides_internal_differences(self):
        """Both sides reduce the adapted type to the same constant."""
        def build(name):
            root = Four()
            one = One()
            one.generic_object = One()
            one.generic_object.generic_object = one
            one.name = name
            root.generic_object = one
            return root

        config = (ComparisonConfig()
                  .skip_circular_reference_check(instances_of(One))
                  .add_type_adapter(One, lambda one: "customSerializedOneCircle"))

        result = compare(build("left"), build("right"), config)
        assert result.is_equal is True

    def test_different_circular_types(self):
        """Unrelated cyclic types are reported as a type mismatch."""
        expected = One()
        expected_child = One()
        expected.generic_object = expected_child
        expected_child.generic_object = expected

        actual = Two()
        actual_child = Two()
        actual.generic_object = actual_child
        actual_child.generic_object = actual

        result = self.engine.compare(expected, actual)
        assert result.is_equal is False
        assert result.first.type == DiffType.TYPE_MISMATCH
        assert result.first.path_text == "$"
        assert "One" in result.first.message
        assert "Two" in result.first.message

        with pytest.raises(BeanMismatchError):
            assert_same_bean(actual, expected)

    def test_self_cycle_against_two_node_cycle(self):
        """Cycle shape is compared, not identity."""
        self_cycle = One()
        self_cycle.generic_object = self_cycle

        first = One()
        second = One()
        first.generic_object = second
        second.generic_object = first

        result = self.engine.compare(self_cycle, first)
        assert result.is_equal is False
        assert result.first.type == DiffType.CYCLE_MISMATCH
        assert result.first.path_text == "$.generic_object"

    def test_cyclic_against_acyclic_of_same_type(self):
        cyclic = One()
        cyclic.generic_object = cyclic

        acyclic = One()
        acyclic.generic_object = One()

        result = self.engine.compare(cyclic, acyclic)
        assert result.is_equal is False
        assert result.first.type == DiffType.CYCLE_MISMATCH

    def test_mutual_cycles_built_independently(self):
        def build():
            first = One()
            second = One()
            first.generic_object = second
            second.generic_object = first
            return first

        assert self.engine.compare(build(), build()).is_equal is True

    def test_different_enum_constants_are_fast(self):
        """Trivially unequal constants compare well within 150ms."""
        start = time.perf_counter()
        result = self.engine.compare(Element.ONE, Element.TWO)
        elapsed = time.perf_counter() - start

        assert result.is_equal is False
        assert result.first.type == DiffType.VALUE_MISMATCH
        assert elapsed < 0.150

    def test_self_referencing_exception(self):
        error = RuntimeError("boom")
        error.__cause__ = error

        assert_same_bean(error, error)

    def test_fresh_exceptions_are_equal(self):
        assert_same_bean(RuntimeError(), RuntimeError())

    def test_nested_exception_chain(self):
        throwable = Exception(RuntimeError(TypeError("cast")))
        throwable.__cause__ = throwable.args[0]

        assert_same_bean(throwable, throwable)

    def test_raised_exception_chains_ignore_tracebacks(self):
        """Chains raised at different moments compare by args and cause only."""
        first = raise_chain()
        second = raise_chain()

        assert first.__traceback__ is not None
        assert_same_bean(first, second)

    def test_exception_chains_with_different_causes(self):
        expected = RuntimeError("wrapped")
        expected.__cause__ = TypeError("cannot cast")
        actual = RuntimeError("wrapped")
        actual.__cause__ = ValueError("cannot cast")

        result = self.engine.compare(expected, actual)
        assert result.is_equal is False
        assert result.first.type == DiffType.TYPE_MISMATCH
        assert result.first.path_text == "$.cause"


class TestIdentityNonLeakage:
    """Rendered diagnostics never contain address-like tokens."""

    def test_enum_mismatch_diagnostic(self):
        with pytest.raises(BeanMismatchError) as excinfo:
            assert_same_bean(Element.ONE, Element.TWO)

        error = excinfo.value
        assert not ADDRESS_PATTERN.search(error.expected)
        assert not ADDRESS_PATTERN.search(error.actual)
        assert not ADDRESS_PATTERN.search(str(error))

    def test_cyclic_mismatch_diagnostic(self):
        expected = One()
        expected.generic_object = expected
        actual = Two()
        actual.generic_object = actual

        with pytest.raises(BeanMismatchError) as excinfo:
            assert_same_bean(actual, expected)

        error = excinfo.value
        assert "<cycle>" in error.expected
        assert "<cycle>" in error.actual
        for text in (error.expected, error.actual, str(error)):
            assert not ADDRESS_PATTERN.search(text)

    def test_objects_with_default_repr(self):
        """Field-less objects, functions and classes render by name only."""
        expected = Four()
        expected.generic_object = object()
        expected.sub_class_field = [lambda: None, One, len]
        actual = Four()
        actual.generic_object = object()
        actual.sub_class_field = [lambda: 1, Two, len]

        result = compare(expected, actual)
        assert result.is_equal is False
        for divergence in result.divergences:
            assert not ADDRESS_PATTERN.search(str(divergence.to_dict()))
            assert not ADDRESS_PATTERN.search(divergence.message)


class TestSelfComparison:
    """Comparing a value against itself always reports equal."""

    @pytest.mark.parametrize("factory", [
        lambda: 1,
        lambda: None,
        lambda: "text",
        lambda: [1, [2, [3]]],
        lambda: {"a": {"b": [1, 2]}},
        lambda: {1, 2, 3},
        lambda: circular_reference_bean("p", "c1", "c2"),
    ])
    def test_plain_and_cyclic_values(self, factory):
        value = factory()
        assert compare(value, value).is_equal is True

    def test_list_containing_itself(self):
        value = [1]
        value.append(value)
        assert compare(value, value).is_equal is True

    def test_dict_containing_itself(self):
        value = {"name": "root"}
        value["self"] = value
        assert compare(value, value).is_equal is True

    def test_mapping_keyed_by_object_referring_to_it(self):
        """Test that a key reaching back to its mapping terminates and matches."""
        key = One()
        registry = {key: 1}
        key.generic_object = registry

        assert compare(registry, registry).is_equal is True

    def test_huge_ints(self):
        huge = 10 ** 5000

        assert compare(huge, huge).is_equal is True

        result = compare(huge, huge + 1)
        assert result.first.type == DiffType.VALUE_MISMATCH
        assert "hex:" in render_result(result)

    def test_deep_linked_list(self):
        """Long acyclic chains do not exhaust the call stack."""
        def build(depth, tail):
            head = One()
            node = head
            for _ in range(depth):
                node.generic_object = One()
                node = node.generic_object
            node.generic_object = tail
            return head

        head = build(20000, "end")
        assert compare(head, head).is_equal is True

        result = compare(build(20000, "end"), build(20000, "other"))
        assert result.is_equal is False
        assert result.first.type == DiffType.VALUE_MISMATCH
        assert len(result.first.path) == 20001


class TestEntryPoints:
    """Public entry points and result structure."""

    def test_compare_for_test_does_not_raise(self):
        result = compare_for_test(Element.ONE, Element.TWO, ComparisonConfig())
        assert result.is_equal is False

    def test_engine_accepts_snapshot(self):
        snapshot = ComparisonConfig(fail_fast=True).snapshot()
        engine = BeanDiffEngine(snapshot)

        result = engine.compare([1, 2, 3], [4, 5, 6])
        assert len(result.divergences) == 1

    def test_result_to_dict(self):
        result = compare({"a": 1}, {"a": 2})
        data = result.to_dict()

        assert data["is_equal"] is False
        assert data["summary"]["divergences_found"] == 1
        assert data["divergences"][0] == {
            "path": "$['a']",
            "type": "VALUE_MISMATCH",
            "expected": 1,
            "actual": 2,
            "message": "Value mismatch: expected 1 but was 2",
        }
        assert data["execution"]["engine_version"] == BeanDiffEngine.VERSION

    def test_assert_same_bean_returns_result(self):
        result = assert_same_bean([1, 2], [1, 2])
        assert result.is_equal is True

    def test_mismatch_error_is_assertion_error(self):
        with pytest.raises(AssertionError) as excinfo:
            assert_same_bean({"a": 1}, {"a": 2})

        error = excinfo.value
        assert isinstance(error, BeanMismatchError)
        assert len(error.divergences) == 1
        assert "$['a']" in str(error)
        assert '"a": 2' in error.expected
        assert '"a": 1' in error.actual
