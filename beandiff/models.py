"""Data models for BeanDiff engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .canonical import CanonicalNode, to_plain
from .utils import format_path


class DiffType(Enum):
    TYPE_MISMATCH = "TYPE_MISMATCH"
    VALUE_MISMATCH = "VALUE_MISMATCH"
    NULL_MISMATCH = "NULL_MISMATCH"
    CYCLE_MISMATCH = "CYCLE_MISMATCH"
    MISSING_FIELD = "MISSING_FIELD"
    UNEXPECTED_FIELD = "UNEXPECTED_FIELD"
    LENGTH_MISMATCH = "LENGTH_MISMATCH"
    MISSING_ITEM = "MISSING_ITEM"
    UNEXPECTED_ITEM = "UNEXPECTED_ITEM"
    MISSING_KEY = "MISSING_KEY"
    UNEXPECTED_KEY = "UNEXPECTED_KEY"


@dataclass
class Divergence:
    """A single point where the expected and actual trees disagree."""
    path: tuple
    type: DiffType
    expected: Optional[CanonicalNode]
    actual: Optional[CanonicalNode]
    message: str

    @property
    def path_text(self) -> str:
        return format_path(self.path)

    def to_dict(self) -> dict:
        return {
            "path": self.path_text,
            "type": self.type.value,
            "expected": _fragment(self.expected),
            "actual": _fragment(self.actual),
            "message": self.message,
        }


def _fragment(node: Optional[CanonicalNode]) -> Any:
    if node is None:
        return None
    return to_plain(node)


@dataclass
class ExecutionInfo:
    """Execution metadata."""
    duration_ms: float
    timestamp: str
    engine_version: str

    def to_dict(self) -> dict:
        return {
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "engine_version": self.engine_version,
        }


@dataclass
class Summary:
    """Summary statistics of a comparison."""
    expected_nodes: int = 0
    actual_nodes: int = 0
    expected_cycles: int = 0
    actual_cycles: int = 0
    divergences_found: int = 0
    divergences_ignored: int = 0

    def to_dict(self) -> dict:
        return {
            "expected_nodes": self.expected_nodes,
            "actual_nodes": self.actual_nodes,
            "expected_cycles": self.expected_cycles,
            "actual_cycles": self.actual_cycles,
            "divergences_found": self.divergences_found,
            "divergences_ignored": self.divergences_ignored,
        }


@dataclass
class DiffResult:
    """Complete comparison result."""
    is_equal: bool
    expected_tree: CanonicalNode
    actual_tree: CanonicalNode
    execution: ExecutionInfo
    summary: Summary
    divergences: list[Divergence] = field(default_factory=list)

    @property
    def first(self) -> Optional[Divergence]:
        """The first divergence found, if any."""
        return self.divergences[0] if self.divergences else None

    def to_dict(self) -> dict:
        return {
            "is_equal": self.is_equal,
            "execution": self.execution.to_dict(),
            "summary": self.summary.to_dict(),
            "divergences": [d.to_dict() for d in self.divergences],
        }
