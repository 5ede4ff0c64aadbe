"""
Text rendering of canonical trees and comparison results.

Rendering only reads canonical nodes, which never hold object identities, so
no address-like token can appear in the output. json.dumps recurses natively;
trees are cut at RENDER_DEPTH_LIMIT levels to stay clear of the interpreter's
recursion limit.
"""

from __future__ import annotations

import json
from typing import Optional

from .canonical import CanonicalNode, to_plain
from .models import DiffResult, Divergence
from .utils import truncate

RENDER_DEPTH_LIMIT = 200
INLINE_LIMIT = 80
INLINE_DEPTH_LIMIT = 3


def render_node(node: Optional[CanonicalNode], indent: int = 2) -> str:
    """Render a canonical tree as indented JSON."""
    if node is None:
        return "<absent>"
    plain = to_plain(node, max_depth=RENDER_DEPTH_LIMIT)
    return json.dumps(plain, indent=indent, ensure_ascii=False)


def inline(node: Optional[CanonicalNode], limit: int = INLINE_LIMIT) -> str:
    """Render a canonical tree on one line, shortened to limit characters."""
    if node is None:
        return "<absent>"
    plain = to_plain(node, max_depth=INLINE_DEPTH_LIMIT)
    return truncate(json.dumps(plain, ensure_ascii=False), limit)


def render_divergence(divergence: Divergence) -> str:
    return f"{divergence.path_text}: {divergence.message}"


def render_result(result: DiffResult) -> str:
    """Render every divergence of a result, one per line."""
    if result.is_equal:
        return "Values are equal"

    count = len(result.divergences)
    lines = [f"Found {count} divergence{'s' if count != 1 else ''}:"]
    for divergence in result.divergences:
        lines.append(f"  {render_divergence(divergence)}")
    if result.summary.divergences_ignored:
        lines.append(f"  ({result.summary.divergences_ignored} ignored)")
    return "\n".join(lines)
