"""JSONPath utilities for BeanDiff engine."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.jsonpath import Child, Fields, Index

from .canonical import CanonicalNode, to_plain
from .exceptions import ConfigurationError


class IgnoredPaths:
    """
    JSONPath expressions whose matches are left out of the comparison.

    Expressions are evaluated against the plain rendering of each canonical
    tree (see canonical.to_plain) and resolved to tuples of plain path
    segments, which the comparator checks before recording a divergence.
    """

    # Cache for compiled JSONPath expressions
    _cache: dict = {}

    def __init__(self, expressions: Iterable[str] = (), frozen: bool = False):
        self._expressions: tuple[str, ...] = ()
        for path in expressions:
            self._append(path)
        self._frozen = frozen

    @classmethod
    def compile(cls, path: str):
        """Compile and cache a JSONPath expression."""
        if path not in cls._cache:
            try:
                cls._cache[path] = jsonpath_parse(path)
            except (JsonPathLexerError, JsonPathParserError) as e:
                raise ConfigurationError(
                    f"Invalid JSONPath expression '{path}': {e}",
                    {"path": path}
                ) from e
        return cls._cache[path]

    def add(self, *paths: str) -> None:
        """Register one or more JSONPath expressions."""
        if self._frozen:
            raise ConfigurationError("Ignored paths are frozen")
        for path in paths:
            self._append(path)

    def _append(self, path: str) -> None:
        if not isinstance(path, str) or not path:
            raise ConfigurationError(
                "Ignored path must be a non-empty string",
                {"path": path}
            )
        self.compile(path)
        if path not in self._expressions:
            self._expressions = self._expressions + (path,)

    def resolve(self, *trees: CanonicalNode) -> frozenset[tuple]:
        """
        Find every concrete path matched in the given trees.

        Args:
            trees: Canonical trees to evaluate the expressions against

        Returns:
            Set of plain segment tuples (field names, keys and indices)
        """
        if not self._expressions:
            return frozenset()

        matched = set()
        for tree in trees:
            plain = to_plain(tree)
            for path in self._expressions:
                for match in self.compile(path).find(plain):
                    matched.add(tuple(_path_segments(match.full_path)))
        return frozenset(matched)

    def frozen(self) -> IgnoredPaths:
        """Get a read-only copy."""
        return IgnoredPaths(self._expressions, frozen=True)

    def __iter__(self) -> Iterator[str]:
        return iter(self._expressions)

    def __len__(self) -> int:
        return len(self._expressions)


def _path_segments(path: Any) -> list[Any]:
    """Flatten a jsonpath-ng full_path into plain segments."""
    segments = []
    stack = [path]
    while stack:
        node = stack.pop()
        if isinstance(node, Child):
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, Fields):
            segments.extend(node.fields)
        elif isinstance(node, Index):
            indices = getattr(node, 'indices', None)
            if indices is None:
                indices = (node.index,)
            segments.extend(indices)
        # Root and This contribute nothing
    return segments
