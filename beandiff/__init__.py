"""
BeanDiff - Cycle-safe deep structural comparison for object graphs

Walks two arbitrary, possibly self-referential object graphs, turns each into
a canonical tree (cycles replaced by markers), and reports where they diverge.
"""

from .engine import BeanDiffEngine, compare, compare_for_test
from .config import ComparisonConfig, ConfigSnapshot
from .models import (
    DiffResult,
    Divergence,
    DiffType,
    Summary,
    ExecutionInfo,
)
from .canonical import (
    CanonicalEncoder,
    CanonicalNode,
    MappingKey,
    NodeKind,
    to_plain,
)
from .traverser import GraphTraverser, canonicalize
from .comparator import Comparator
from .registry import TypeRegistry, TypeOverride
from .skip import SkipPredicateSet, instances_of
from .render import render_node, render_result
from .assertion import BeanMismatchError, assert_same_bean
from .exceptions import BeanDiffError, ConfigurationError, TypeOverrideError

__version__ = "1.0.0"
__all__ = [
    # Engine
    "BeanDiffEngine",
    "compare",
    "compare_for_test",
    # Configuration
    "ComparisonConfig",
    "ConfigSnapshot",
    "TypeRegistry",
    "TypeOverride",
    "SkipPredicateSet",
    "instances_of",
    # Results
    "DiffResult",
    "Divergence",
    "DiffType",
    "Summary",
    "ExecutionInfo",
    # Canonical trees
    "CanonicalEncoder",
    "CanonicalNode",
    "MappingKey",
    "NodeKind",
    "GraphTraverser",
    "Comparator",
    "canonicalize",
    "to_plain",
    # Rendering and assertions
    "render_node",
    "render_result",
    "assert_same_bean",
    "BeanMismatchError",
    # Errors
    "BeanDiffError",
    "ConfigurationError",
    "TypeOverrideError",
]
