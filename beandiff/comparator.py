"""Structural comparison of canonical trees for BeanDiff engine."""

from __future__ import annotations

from typing import Any, Optional

from .canonical import CanonicalNode, MappingKey, NodeKind, plain_segment
from .models import DiffType, Divergence
from .render import inline


# A trail is None for the root or (parent_trail, segment); paths are only
# materialized when needed, so descending a deep tree stays linear.
Trail = Optional[tuple]


class Comparator:
    """
    Compares two canonical trees depth-first and records divergences.

    Subtrees with equal fingerprints are equal and never descended into, so
    two cycle markers always match whatever ancestor they stood for. Work is
    kept on an explicit stack.

    Handles:
    - Null against non-null
    - Cycle marker against a real subtree
    - Kind or type tag mismatches
    - Scalars, sequences (by index), sets (by element fingerprint),
      mappings (by key) and composites (by field name)
    """

    def __init__(
        self,
        fail_fast: bool = False,
        max_divergences: Optional[int] = None,
        ignored: frozenset = frozenset()
    ):
        self.fail_fast = fail_fast
        self.max_divergences = 1 if fail_fast else max_divergences
        self.ignored = ignored
        # Every prefix of an ignored path; a node off these can't be ignored
        self._prefixes = frozenset(
            path[:i] for path in ignored for i in range(len(path) + 1)
        )

        self.divergences: list[Divergence] = []
        self.ignored_count = 0
        self.nodes_compared = 0

    def compare(self, expected: CanonicalNode, actual: CanonicalNode) -> list[Divergence]:
        """
        Compare two trees.

        Args:
            expected: Canonical tree of the expected value
            actual: Canonical tree of the actual value

        Returns:
            Divergences in depth-first order (empty if the trees are equal)
        """
        # (trail, scope, expected, actual, type recorded when a side is absent)
        root_scope = () if self.ignored else None
        stack: list[tuple] = [(None, root_scope, expected, actual, None)]

        while stack and not self._limit_reached():
            trail, scope, exp, act, absent_type = stack.pop()

            if exp is None or act is None:
                self._add_divergence(
                    trail, scope, absent_type, exp, act,
                    _absent_message(absent_type, trail[1])
                )
                continue

            if exp.fingerprint == act.fingerprint:
                continue

            if self._is_ignored(scope):
                self.ignored_count += 1
                continue

            self.nodes_compared += 1
            self._compare_nodes(trail, scope, exp, act, stack)

        return self.divergences

    def _compare_nodes(
        self,
        trail: Trail,
        scope: Optional[tuple],
        exp: CanonicalNode,
        act: CanonicalNode,
        stack: list
    ):
        if exp.kind == NodeKind.NULL or act.kind == NodeKind.NULL:
            self._add_divergence(
                trail, scope, DiffType.NULL_MISMATCH, exp, act,
                f"Expected {_describe(exp)} but was {_describe(act)}"
            )
        elif exp.kind == NodeKind.CYCLE or act.kind == NodeKind.CYCLE:
            self._add_divergence(
                trail, scope, DiffType.CYCLE_MISMATCH, exp, act,
                f"Expected {_describe(exp)} but was {_describe(act)}"
            )
        elif exp.kind != act.kind or exp.tag != act.tag:
            self._add_divergence(
                trail, scope, DiffType.TYPE_MISMATCH, exp, act,
                f"Type mismatch: expected {exp.tag} but was {act.tag}"
            )
        elif exp.kind == NodeKind.SCALAR:
            self._add_divergence(
                trail, scope, DiffType.VALUE_MISMATCH, exp, act,
                f"Value mismatch: expected {inline(exp)} but was {inline(act)}"
            )
        elif exp.kind == NodeKind.SEQUENCE:
            self._compare_sequences(trail, scope, exp, act, stack)
        elif exp.kind == NodeKind.SET:
            self._compare_sets(trail, scope, exp, act, stack)
        else:
            self._compare_keyed(trail, scope, exp, act, stack)

    def _compare_sequences(self, trail, scope, exp, act, stack):
        """Compare element by element; order matters."""
        exp_items = exp.children
        act_items = act.children

        if len(exp_items) != len(act_items):
            self._add_divergence(
                trail, scope, DiffType.LENGTH_MISMATCH, exp, act,
                f"Length mismatch: expected {len(exp_items)} items "
                f"but was {len(act_items)}"
            )

        tasks = []
        for i in range(max(len(exp_items), len(act_items))):
            exp_child = exp_items[i][1] if i < len(exp_items) else None
            act_child = act_items[i][1] if i < len(act_items) else None
            absent = DiffType.MISSING_ITEM if act_child is None else DiffType.UNEXPECTED_ITEM
            tasks.append(self._task(trail, scope, i, exp_child, act_child, absent))

        _push_in_order(stack, tasks)

    def _compare_sets(self, trail, scope, exp, act, stack):
        """Match elements by fingerprint; report what is left on either side."""
        unmatched_actual = _count_fingerprints(act)
        unmatched_expected = _count_fingerprints(exp)

        tasks = []
        for i, node in exp.children:
            if unmatched_actual.get(node.fingerprint):
                unmatched_actual[node.fingerprint] -= 1
                continue
            tasks.append(self._task(trail, scope, i, node, None, DiffType.MISSING_ITEM))

        for i, node in act.children:
            if unmatched_expected.get(node.fingerprint):
                unmatched_expected[node.fingerprint] -= 1
                continue
            tasks.append(self._task(trail, scope, i, None, node, DiffType.UNEXPECTED_ITEM))

        _push_in_order(stack, tasks)

    def _compare_keyed(self, trail, scope, exp, act, stack):
        """Match children by field name (composites) or key (mappings)."""
        if exp.kind == NodeKind.MAPPING:
            missing, unexpected = DiffType.MISSING_KEY, DiffType.UNEXPECTED_KEY
        else:
            missing, unexpected = DiffType.MISSING_FIELD, DiffType.UNEXPECTED_FIELD

        act_children = _index_children(act)
        tasks = []
        for slot, (segment, exp_child) in _index_children(exp).items():
            act_entry = act_children.pop(slot, None)
            act_child = act_entry[1] if act_entry is not None else None
            tasks.append(self._task(trail, scope, segment, exp_child, act_child, missing))
        for segment, act_child in act_children.values():
            tasks.append(self._task(trail, scope, segment, None, act_child, unexpected))

        _push_in_order(stack, tasks)

    def _task(self, trail, scope, segment, exp, act, absent_type) -> tuple:
        return ((trail, segment), self._child_scope(scope, segment), exp, act, absent_type)

    def _child_scope(self, scope: Optional[tuple], segment: Any) -> Optional[tuple]:
        """Plain path of a child, kept only while it can still reach an ignored path."""
        if scope is None:
            return None
        child = scope + (plain_segment(segment),)
        return child if child in self._prefixes else None

    def _add_divergence(
        self,
        trail: Trail,
        scope: Optional[tuple],
        diff_type: DiffType,
        expected: Optional[CanonicalNode],
        actual: Optional[CanonicalNode],
        message: str
    ):
        """Record a divergence unless its path is ignored."""
        if self._is_ignored(scope):
            self.ignored_count += 1
            return
        self.divergences.append(Divergence(
            path=unwind(trail),
            type=diff_type,
            expected=expected,
            actual=actual,
            message=message
        ))

    def _is_ignored(self, scope: Optional[tuple]) -> bool:
        return scope is not None and scope in self.ignored

    def _limit_reached(self) -> bool:
        return (
            self.max_divergences is not None
            and len(self.divergences) >= self.max_divergences
        )


def unwind(trail: Trail) -> tuple:
    """Materialize a trail into a root-first tuple of segments."""
    segments = []
    while trail is not None:
        trail, segment = trail
        segments.append(segment)
    segments.reverse()
    return tuple(segments)


def _count_fingerprints(node: CanonicalNode) -> dict[str, int]:
    counts: dict[str, int] = {}
    for _, child in node.children:
        counts[child.fingerprint] = counts.get(child.fingerprint, 0) + 1
    return counts


def _index_children(node: CanonicalNode) -> dict[tuple, tuple[Any, CanonicalNode]]:
    """Key children by (segment, occurrence) so duplicate keys pair up in order."""
    indexed = {}
    seen: dict[Any, int] = {}
    for segment, child in node.children:
        occurrence = seen.get(segment, 0)
        seen[segment] = occurrence + 1
        indexed[(segment, occurrence)] = (segment, child)
    return indexed


def _push_in_order(stack: list, tasks: list):
    # Reversed so the first task is popped first
    stack.extend(reversed(tasks))


def _describe(node: CanonicalNode) -> str:
    if node.kind == NodeKind.NULL:
        return "null"
    if node.kind == NodeKind.CYCLE:
        return "circular reference"
    return f"{node.tag} {inline(node)}"


def _absent_message(diff_type: DiffType, segment: Any) -> str:
    if isinstance(segment, MappingKey):
        segment = str(segment)
    messages = {
        DiffType.MISSING_FIELD: f"Field missing in actual: {segment}",
        DiffType.UNEXPECTED_FIELD: f"Unexpected field in actual: {segment}",
        DiffType.MISSING_KEY: f"Key missing in actual: {segment}",
        DiffType.UNEXPECTED_KEY: f"Unexpected key in actual: {segment}",
        DiffType.MISSING_ITEM: f"Item missing in actual at index {segment}",
        DiffType.UNEXPECTED_ITEM: f"Unexpected item in actual at index {segment}",
    }
    return messages[diff_type]
