"""Utility functions for BeanDiff engine."""

from __future__ import annotations

import re
from typing import Any, Iterable


_IDENTIFIER = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def _path_part(key: Any) -> str:
    if isinstance(key, int) and not isinstance(key, bool):
        return f"[{key}]"
    elif isinstance(key, str):
        # Handle special characters in field names
        if _IDENTIFIER.match(key):
            return f".{key}"
        else:
            return f"['{key}']"
    else:
        # Mapping keys render themselves
        return f"[{key}]"


def format_path(segments: Iterable[Any]) -> str:
    """Render a tuple of path segments as a path string rooted at '$'."""
    return "$" + "".join(_path_part(segment) for segment in segments)


def qualified_name(obj: Any) -> str:
    """
    Get the dotted name of a class, function or module-level object.

    Builtins are reported by their bare name.
    """
    module = getattr(obj, '__module__', None)
    name = getattr(obj, '__qualname__', None) or getattr(obj, '__name__', None)
    if name is None:
        name = type(obj).__qualname__
    if not module or module == 'builtins':
        return name
    return f"{module}.{name}"


def is_namedtuple(value: Any) -> bool:
    """Check if a value is a namedtuple instance."""
    return isinstance(value, tuple) and hasattr(type(value), '_fields')


def truncate(text: str, limit: int) -> str:
    """Shorten text to at most limit characters."""
    if limit is None or len(text) <= limit:
        return text
    return text[:max(limit - 3, 0)] + "..."
