"""
Cycle-safe graph traversal for BeanDiff engine.

The traverser walks one value with an explicit work stack and keeps the
identities of the containers currently being expanded (the ancestor path).
Meeting an identity that is already on the path means a back-edge, which is
replaced by a cycle marker. Shared references that are not ancestors
(diamonds) are traversed again at every occurrence. Mapping keys are
canonicalized on the same work stack, so a key reaching back to an ancestor
becomes a cycle marker too.

Entering a value:
1. None is encoded as null
2. A registered type adapter replaces the value by its encoded form
3. Scalars are encoded directly
4. A value already on the path becomes a cycle marker
5. Values matching a skip predicate are expanded without being tracked
6. Everything else is pushed on the path, expanded, then popped
"""

from __future__ import annotations

import dataclasses
import datetime
import uuid
from collections import deque
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from pathlib import PurePath
from types import (
    BuiltinFunctionType,
    BuiltinMethodType,
    FunctionType,
    MethodType,
    ModuleType,
)
from typing import Any, Iterator, Optional

from .canonical import CanonicalEncoder, CanonicalNode, MappingKey, NodeKind
from .config import EMPTY_SNAPSHOT, ConfigSnapshot
from .exceptions import TypeOverrideError
from .registry import TypeOverride
from .utils import is_namedtuple, qualified_name


_EXHAUSTED = object()
_MISSING = object()
_ENTRY = object()

# Ints longer than this are kept as hex text: decimal conversion of large ints
# is capped by the interpreter (640 digits at the lowest setting)
_MAX_DECIMAL_INT_BITS = 2000

_SEQUENCE_TYPES = (list, tuple, deque, range)
_SET_TYPES = (set, frozenset)
_CALLABLE_TYPES = (FunctionType, BuiltinFunctionType, MethodType, BuiltinMethodType)
_SLOT_EXCLUDES = frozenset({'__dict__', '__weakref__'})


@dataclasses.dataclass
class _Frame:
    """A container being expanded."""
    value: Any
    segment: Any
    kind: NodeKind
    tag: str
    children: Iterator
    tracked: bool
    results: list = dataclasses.field(default_factory=list)


class GraphTraverser:
    """
    Canonicalizes one value graph.

    A traverser holds the ancestor path of a single traversal and must not be
    shared between threads; the configuration snapshot it reads can be.
    """

    def __init__(
        self,
        config: Optional[ConfigSnapshot] = None,
        encoder: Optional[CanonicalEncoder] = None
    ):
        self.config = config or EMPTY_SNAPSHOT
        self.encoder = encoder or CanonicalEncoder()
        self.nodes_visited = 0
        self.cycles_detected = 0
        self._path: list[tuple[int, Any]] = []
        self._active: set[int] = set()

    @property
    def path(self) -> tuple:
        """(identity, segment) pairs of the containers currently expanded."""
        return tuple(self._path)

    def traverse(self, value: Any) -> CanonicalNode:
        """
        Build the canonical tree of value.

        Args:
            value: Any Python object graph, cyclic or not

        Returns:
            Root CanonicalNode
        """
        entered = self._enter(value, None)
        if isinstance(entered, CanonicalNode):
            return entered

        stack = [entered]
        while True:
            frame = stack[-1]
            item = next(frame.children, _EXHAUSTED)

            if item is _EXHAUSTED:
                stack.pop()
                if frame.segment is _ENTRY:
                    # (key segment, key node), (MappingKey, value node)
                    stack[-1].results.append(frame.results[1])
                    continue
                node = self._leave(frame)
                if not stack:
                    return node
                stack[-1].results.append((frame.segment, node))
                continue

            segment, child = item
            if segment is _ENTRY:
                stack.append(self._entry_frame(*child))
                continue

            entered = self._enter(child, segment)
            if isinstance(entered, _Frame):
                stack.append(entered)
            else:
                frame.results.append((segment, entered))

    def _enter(self, value: Any, segment: Any) -> CanonicalNode | _Frame:
        self.nodes_visited += 1

        if value is None:
            return self.encoder.null()

        override = self.config.registry.lookup(type(value))
        if override is not None:
            return self._apply_override(override, value)

        node = self._encode_scalar(value)
        if node is not None:
            return node

        identity = id(value)
        if identity in self._active:
            self.cycles_detected += 1
            return self.encoder.cycle_marker()

        tracked = not self.config.skip_predicates.matches(value)
        if tracked:
            self._active.add(identity)
            self._path.append((identity, segment))

        return self._open(value, segment, tracked)

    def _leave(self, frame: _Frame) -> CanonicalNode:
        if frame.tracked:
            identity, _ = self._path.pop()
            self._active.discard(identity)

        encoder = self.encoder
        nodes = frame.results
        if frame.kind == NodeKind.SEQUENCE:
            return encoder.sequence(frame.tag, [node for _, node in nodes])
        if frame.kind == NodeKind.SET:
            return encoder.unordered(frame.tag, [node for _, node in nodes])
        if frame.kind == NodeKind.MAPPING:
            return encoder.mapping(frame.tag, nodes)
        return encoder.composite(frame.tag, nodes)

    def _open(self, value: Any, segment: Any, tracked: bool) -> _Frame:
        tag = qualified_name(type(value))

        if isinstance(value, Mapping):
            return _Frame(value, segment, NodeKind.MAPPING, tag,
                          self._mapping_entries(value), tracked)
        if isinstance(value, _SET_TYPES):
            return _Frame(value, segment, NodeKind.SET, tag,
                          enumerate(list(value)), tracked)
        if isinstance(value, _SEQUENCE_TYPES) and not is_namedtuple(value):
            return _Frame(value, segment, NodeKind.SEQUENCE, tag,
                          enumerate(value), tracked)
        return _Frame(value, segment, NodeKind.COMPOSITE, tag,
                      iter_fields(value), tracked)

    def _mapping_entries(self, value: Mapping) -> Iterator[tuple[Any, tuple]]:
        for key, item in list(value.items()):
            yield _ENTRY, (key, item)

    def _entry_frame(self, key: Any, item: Any) -> _Frame:
        """Untracked frame canonicalizing one mapping key, then its value."""
        frame = _Frame(None, _ENTRY, NodeKind.MAPPING, "entry", iter(()), False)
        frame.children = _entry_items(frame, key, item)
        return frame

    def _apply_override(self, override: TypeOverride, value: Any) -> CanonicalNode:
        try:
            data = override.encoder(value)
        except Exception as e:
            raise TypeOverrideError(override.type_name, str(e)) from e

        # Adapter output is canonicalized as-is (no adapters, no skips) but
        # shares the ancestor path, so references back into the graph are cycles
        detached = GraphTraverser(EMPTY_SNAPSHOT, self.encoder)
        detached._path = self._path
        detached._active = self._active
        node = detached.traverse(data)

        self.nodes_visited += detached.nodes_visited
        self.cycles_detected += detached.cycles_detected
        return node

    def _encode_scalar(self, value: Any) -> Optional[CanonicalNode]:
        """Encode value if it is a scalar, else return None."""
        scalar = self.encoder.scalar

        if isinstance(value, Enum):
            return scalar(f"enum:{qualified_name(type(value))}", value.name)
        elif isinstance(value, bool):
            return scalar("bool", value)
        elif isinstance(value, int):
            if value.bit_length() > _MAX_DECIMAL_INT_BITS:
                return scalar("int", f"hex:{int(value):x}")
            return scalar("int", int(value))
        elif isinstance(value, float):
            return scalar("float", float(value))
        elif isinstance(value, str):
            return scalar("str", str(value))
        elif isinstance(value, complex):
            return scalar("complex", str(value))
        elif isinstance(value, (bytes, bytearray)):
            return scalar(type(value).__name__, bytes(value).hex())
        elif isinstance(value, Fraction):
            return scalar("fractions.Fraction",
                          f"{_int_text(value.numerator)}/{_int_text(value.denominator)}")
        elif isinstance(value, (Decimal, uuid.UUID)):
            return scalar(qualified_name(type(value)), str(value))
        elif isinstance(value, (datetime.date, datetime.time)):
            # datetime is a date subclass, so the tag keeps them apart
            return scalar(qualified_name(type(value)), value.isoformat())
        elif isinstance(value, datetime.timedelta):
            return scalar("datetime.timedelta", str(value))
        elif isinstance(value, PurePath):
            return scalar("path", value.as_posix())
        elif isinstance(value, type):
            return scalar("type", qualified_name(value))
        elif isinstance(value, ModuleType):
            return scalar("module", value.__name__)
        elif isinstance(value, _CALLABLE_TYPES):
            return scalar("callable", qualified_name(value))
        return None


def _entry_items(frame: _Frame, key: Any, item: Any) -> Iterator[tuple[Any, Any]]:
    yield None, key
    _, key_node = frame.results[0]
    yield MappingKey(key_node), item


def _int_text(value: int) -> str:
    if value.bit_length() > _MAX_DECIMAL_INT_BITS:
        return f"hex:{value:x}"
    return str(value)


def iter_fields(value: Any) -> Iterator[tuple[str, Any]]:
    """
    Yield the (name, value) fields of a composite in declaration order.

    Sources, first occurrence of a name wins:
    - dataclass fields
    - namedtuple fields
    - exception args and explicit cause (never the traceback)
    - __slots__ across the MRO
    - instance __dict__
    """
    seen = set()
    for name, item in _field_candidates(value):
        if name in seen or item is _MISSING:
            continue
        seen.add(name)
        yield name, item


def _field_candidates(value: Any) -> Iterator[tuple[str, Any]]:
    if dataclasses.is_dataclass(value):
        for f in dataclasses.fields(value):
            yield f.name, getattr(value, f.name, _MISSING)

    if is_namedtuple(value):
        for name in type(value)._fields:
            yield name, getattr(value, name, _MISSING)

    if isinstance(value, BaseException):
        yield 'args', value.args
        if value.__cause__ is not None:
            yield 'cause', value.__cause__

    for klass in type(value).__mro__:
        slots = klass.__dict__.get('__slots__', ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot in _SLOT_EXCLUDES:
                continue
            attr = slot
            if slot.startswith('__') and not slot.endswith('__'):
                attr = f"_{klass.__name__.lstrip('_')}{slot}"
            yield slot, getattr(value, attr, _MISSING)

    instance_dict = getattr(value, '__dict__', None)
    if isinstance(instance_dict, dict):
        yield from list(instance_dict.items())


def canonicalize(value: Any, config: Optional[ConfigSnapshot] = None) -> CanonicalNode:
    """Convenience function to build the canonical tree of one value."""
    return GraphTraverser(config).traverse(value)
