"""
Canonical tree model for BeanDiff engine.

A canonical tree is the immutable, order-normalized form of one traversed
value. Every node carries a SHA-256 fingerprint derived from its kind, tag,
plain value and children, so structurally equal subtrees have equal
fingerprints no matter which objects they were built from.

Ordering rules:
- Composite fields are sorted by field name
- Mapping entries and set elements are sorted by the fingerprint of the key
  (or element), so insertion order never matters
- Sequences keep their order
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional


CYCLE_PLACEHOLDER = "<cycle>"
TRUNCATED_PLACEHOLDER = "<...>"


class NodeKind(Enum):
    NULL = "null"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    SET = "set"
    MAPPING = "mapping"
    COMPOSITE = "composite"
    CYCLE = "cycle"


@dataclass(frozen=True, eq=False)
class CanonicalNode:
    """
    A single node of a canonical tree.

    Attributes:
        kind: Structural kind of the node
        tag: Type tag (scalar type, container type or composite class name)
        fingerprint: SHA-256 digest of the whole subtree
        value: Plain scalar value (SCALAR nodes only)
        children: Tuple of (segment, node) pairs; segments are field names,
            indices or MappingKey instances
    """
    kind: NodeKind
    tag: str
    fingerprint: str
    value: Any = None
    children: tuple = ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CanonicalNode):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def __repr__(self) -> str:
        # Shallow on purpose: trees may be too deep for a recursive repr
        return (
            f"CanonicalNode(kind={self.kind.value}, tag={self.tag!r}, "
            f"children={len(self.children)}, fingerprint={self.fingerprint[:12]})"
        )

    @property
    def is_container(self) -> bool:
        return self.kind in (
            NodeKind.SEQUENCE, NodeKind.SET, NodeKind.MAPPING, NodeKind.COMPOSITE
        )

    def child(self, segment: Any) -> Optional[CanonicalNode]:
        """Get the first child stored under a segment, if any."""
        for child_segment, node in self.children:
            if child_segment == segment:
                return node
        return None


@dataclass(frozen=True)
class MappingKey:
    """Path segment for a mapping entry, holding the canonical key."""
    node: CanonicalNode

    def __str__(self) -> str:
        node = self.node
        if node.kind == NodeKind.SCALAR and isinstance(node.value, str):
            return repr(node.value)
        if node.kind == NodeKind.SCALAR:
            return str(node.value)
        if node.kind == NodeKind.NULL:
            return "None"
        return json.dumps(to_plain(node), ensure_ascii=False, sort_keys=False)

    @property
    def plain(self) -> str:
        """Key used for the mapping in the plain (JSON-like) rendering."""
        node = self.node
        if node.kind == NodeKind.SCALAR and isinstance(node.value, str):
            return node.value
        return str(self)


def plain_segment(segment: Any) -> Any:
    """Convert a path segment to the key used in the plain rendering."""
    if isinstance(segment, MappingKey):
        return segment.plain
    return segment


def _segment_token(segment: Any) -> str:
    if isinstance(segment, MappingKey):
        return f"k:{segment.node.fingerprint}"
    if isinstance(segment, int):
        return f"i:{segment}"
    return f"f:{segment}"


def _digest(kind: NodeKind, tag: str, value: Any, children: tuple) -> str:
    h = hashlib.sha256()
    header = f"{kind.value}\x00{tag}\x00{value!r}\x00"
    h.update(header.encode("utf-8", "surrogatepass"))
    for segment, child in children:
        h.update(_segment_token(segment).encode("utf-8", "surrogatepass"))
        h.update(b"\x00")
        h.update(child.fingerprint.encode("ascii"))
        h.update(b"\x01")
    return h.hexdigest()


class CanonicalEncoder:
    """
    Builds canonical nodes from traversal output.

    The encoder never sees raw objects other than plain scalar values, so no
    identity or address can end up in a node.
    """

    def __init__(self):
        self._null = CanonicalNode(
            NodeKind.NULL, "null", _digest(NodeKind.NULL, "null", None, ())
        )
        self._cycle = CanonicalNode(
            NodeKind.CYCLE, "cycle", _digest(NodeKind.CYCLE, "cycle", None, ())
        )

    def null(self) -> CanonicalNode:
        return self._null

    def cycle_marker(self) -> CanonicalNode:
        """Marker for a back-reference to an ancestor on the current path."""
        return self._cycle

    def scalar(self, tag: str, value: Any) -> CanonicalNode:
        return CanonicalNode(
            NodeKind.SCALAR, tag, _digest(NodeKind.SCALAR, tag, value, ()), value
        )

    def sequence(self, tag: str, items: list[CanonicalNode]) -> CanonicalNode:
        children = tuple(enumerate(items))
        return self._container(NodeKind.SEQUENCE, tag, children)

    def unordered(self, tag: str, items: list[CanonicalNode]) -> CanonicalNode:
        ordered = sorted(items, key=lambda node: node.fingerprint)
        children = tuple(enumerate(ordered))
        return self._container(NodeKind.SET, tag, children)

    def mapping(
        self,
        tag: str,
        entries: list[tuple[MappingKey, CanonicalNode]]
    ) -> CanonicalNode:
        children = tuple(sorted(
            entries,
            key=lambda entry: (entry[0].node.fingerprint, entry[1].fingerprint)
        ))
        return self._container(NodeKind.MAPPING, tag, children)

    def composite(
        self,
        tag: str,
        fields: list[tuple[str, CanonicalNode]]
    ) -> CanonicalNode:
        children = tuple(sorted(fields, key=lambda entry: entry[0]))
        return self._container(NodeKind.COMPOSITE, tag, children)

    def _container(self, kind: NodeKind, tag: str, children: tuple) -> CanonicalNode:
        return CanonicalNode(kind, tag, _digest(kind, tag, None, children), None, children)


def iter_postorder(root: CanonicalNode) -> Iterator[CanonicalNode]:
    """Yield every node of a tree, children before parents."""
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded or not node.children:
            yield node
            continue
        stack.append((node, True))
        for _, child in reversed(node.children):
            stack.append((child, False))


def tree_stats(root: CanonicalNode) -> tuple[int, int]:
    """Count (nodes, cycle markers) in a tree."""
    nodes = 0
    cycles = 0
    for node in iter_postorder(root):
        nodes += 1
        if node.kind == NodeKind.CYCLE:
            cycles += 1
    return nodes, cycles


def to_plain(root: CanonicalNode, max_depth: Optional[int] = None) -> Any:
    """
    Convert a canonical tree to JSON-compatible data.

    Composites and mappings become dicts, sequences and sets become lists,
    cycle markers become "<cycle>". Subtrees deeper than max_depth are
    replaced by "<...>".

    Args:
        root: Tree to convert
        max_depth: Optional depth limit (root is depth 0)

    Returns:
        Plain data made of dict, list, str, int, float, bool and None
    """
    results: dict[int, Any] = {}
    stack = [(root, 0, False)]

    while stack:
        node, depth, expanded = stack.pop()

        if max_depth is not None and depth > max_depth and node.is_container:
            results[id(node)] = TRUNCATED_PLACEHOLDER
            continue

        if node.kind == NodeKind.NULL:
            results[id(node)] = None
        elif node.kind == NodeKind.CYCLE:
            results[id(node)] = CYCLE_PLACEHOLDER
        elif node.kind == NodeKind.SCALAR:
            results[id(node)] = node.value
        elif not expanded:
            stack.append((node, depth, True))
            for _, child in reversed(node.children):
                stack.append((child, depth + 1, False))
        elif node.kind in (NodeKind.SEQUENCE, NodeKind.SET):
            results[id(node)] = [results[id(child)] for _, child in node.children]
        else:
            results[id(node)] = {
                plain_segment(segment): results[id(child)]
                for segment, child in node.children
            }

    return results[id(root)]
