"""Main comparison engine for BeanDiff."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .comparator import Comparator
from .config import ComparisonConfig, ConfigSnapshot
from .models import DiffResult, ExecutionInfo, Summary
from .traverser import GraphTraverser

logger = logging.getLogger(__name__)

Configuration = Union[ComparisonConfig, ConfigSnapshot]


class BeanDiffEngine:
    """
    Main comparison engine that orchestrates the pipeline:

    1. Snapshot: Freeze the caller's configuration for this comparison
    2. Canonicalization: Traverse expected and actual independently
    3. Path Resolution: Resolve ignored JSONPath expressions on both trees
    4. Comparison: Depth-first structural diff of the canonical trees

    The two graphs are never aligned with each other during traversal; object
    identities are only compared to ancestors within the same graph.
    """

    VERSION = "1.0.0"

    def __init__(self, config: Optional[Configuration] = None):
        """
        Initialize the engine.

        Args:
            config: Comparison configuration (uses defaults if not provided)
        """
        self.config = config or ComparisonConfig()

    def compare(self, expected: Any, actual: Any) -> DiffResult:
        """
        Compare two object graphs.

        Args:
            expected: The reference value
            actual: The value under test

        Returns:
            DiffResult, equal or carrying the divergences found
        """
        start_time = time.perf_counter()

        snapshot = self._snapshot()

        expected_traverser = GraphTraverser(snapshot)
        expected_tree = expected_traverser.traverse(expected)
        actual_traverser = GraphTraverser(snapshot)
        actual_tree = actual_traverser.traverse(actual)

        logger.debug(
            "Canonicalized expected (%d nodes, %d cycles) and actual (%d nodes, %d cycles)",
            expected_traverser.nodes_visited, expected_traverser.cycles_detected,
            actual_traverser.nodes_visited, actual_traverser.cycles_detected
        )

        ignored = snapshot.ignored_paths.resolve(expected_tree, actual_tree)

        comparator = Comparator(
            fail_fast=snapshot.fail_fast,
            max_divergences=snapshot.max_divergences,
            ignored=ignored
        )
        divergences = comparator.compare(expected_tree, actual_tree)

        duration_ms = (time.perf_counter() - start_time) * 1000

        result = DiffResult(
            is_equal=len(divergences) == 0,
            expected_tree=expected_tree,
            actual_tree=actual_tree,
            execution=ExecutionInfo(
                duration_ms=round(duration_ms, 3),
                timestamp=datetime.now(timezone.utc).isoformat(),
                engine_version=self.VERSION
            ),
            summary=Summary(
                expected_nodes=expected_traverser.nodes_visited,
                actual_nodes=actual_traverser.nodes_visited,
                expected_cycles=expected_traverser.cycles_detected,
                actual_cycles=actual_traverser.cycles_detected,
                divergences_found=len(divergences),
                divergences_ignored=comparator.ignored_count
            ),
            divergences=divergences
        )

        logger.debug(
            "Comparison finished in %.3fms: %s",
            duration_ms,
            "equal" if result.is_equal else f"{len(divergences)} divergence(s)"
        )
        return result

    def _snapshot(self) -> ConfigSnapshot:
        if isinstance(self.config, ConfigSnapshot):
            return self.config
        return self.config.snapshot()


def compare(
    expected: Any,
    actual: Any,
    config: Optional[Configuration] = None
) -> DiffResult:
    """
    Convenience function to compare two object graphs.

    Args:
        expected: The reference value
        actual: The value under test
        config: Optional comparison configuration

    Returns:
        DiffResult
    """
    engine = BeanDiffEngine(config)
    return engine.compare(expected, actual)


def compare_for_test(
    expected: Any,
    actual: Any,
    configuration: Optional[Configuration] = None
) -> DiffResult:
    """
    Entry point for assertion layers.

    Never raises on a mismatch; turning a non-equal result into a test
    failure is up to the caller (see assertion.assert_same_bean).
    """
    return compare(expected, actual, configuration)
