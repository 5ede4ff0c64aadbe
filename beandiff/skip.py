"""
Skip predicates for circular reference tracking.

A value matching any predicate is still traversed, but it is not pushed onto
the ancestor path, so a cycle running back through it is not detected there.
The cycle must be caught at another ancestor, or the caller must be right that
no unbounded expansion goes through the skipped value (typically because a
type adapter replaces it). The engine does not verify this.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator

from .exceptions import ConfigurationError


Predicate = Callable[[Any], bool]


class SkipPredicateSet:
    """Ordered collection of skip predicates."""

    def __init__(self, predicates: Iterable[Predicate] = (), frozen: bool = False):
        self._predicates: tuple[Predicate, ...] = tuple(predicates)
        self._frozen = frozen

    def add_skip(self, predicate: Predicate) -> None:
        """Append a predicate."""
        if self._frozen:
            raise ConfigurationError("Skip predicate set is frozen")
        if not callable(predicate):
            raise ConfigurationError(
                "Skip predicate is not callable",
                {"type": type(predicate).__name__}
            )
        self._predicates = self._predicates + (predicate,)

    def matches(self, value: Any) -> bool:
        """Check if any predicate exempts value from cycle tracking."""
        for predicate in self._predicates:
            if predicate(value):
                return True
        return False

    def frozen(self) -> SkipPredicateSet:
        """Get a read-only copy of this set."""
        return SkipPredicateSet(self._predicates, frozen=True)

    def __iter__(self) -> Iterator[Predicate]:
        return iter(self._predicates)

    def __len__(self) -> int:
        return len(self._predicates)


def instances_of(*types: type) -> Predicate:
    """Build a predicate matching instances of any of the given classes."""
    def predicate(value: Any) -> bool:
        return isinstance(value, types)

    predicate.__qualname__ = "instances_of(%s)" % ", ".join(t.__name__ for t in types)
    return predicate
