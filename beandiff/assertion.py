"""Assertion helper raising test failures from comparison results."""

from __future__ import annotations

from typing import Any, Optional

from .engine import Configuration, compare_for_test
from .models import DiffResult
from .render import render_node, render_result


class BeanMismatchError(AssertionError):
    """
    Raised when actual is not the same bean as expected.

    Attributes:
        result: The DiffResult of the comparison
        expected: Rendered canonical form of the expected value
        actual: Rendered canonical form of the actual value
    """

    def __init__(self, result: DiffResult):
        self.result = result
        self.expected = render_node(result.expected_tree)
        self.actual = render_node(result.actual_tree)
        super().__init__(render_result(result))

    @property
    def divergences(self):
        return self.result.divergences


def assert_same_bean(
    actual: Any,
    expected: Any,
    config: Optional[Configuration] = None
) -> DiffResult:
    """
    Assert that actual is structurally equal to expected.

    Raises:
        BeanMismatchError: if the values diverge
    """
    result = compare_for_test(expected, actual, config)
    if not result.is_equal:
        raise BeanMismatchError(result)
    return result
