"""Forest reconstruction from flat, parent-linked records.

Used identically for article comments (``parent_id``) and forum replies
(``parent_reply_id``). A node is any object with an ``id``, a parent attribute
and a ``replies`` list.

Dangling parents (a parent id absent from the input, e.g. hard-deleted or
filtered out as unapproved) turn the orphan into a root instead of dropping it.
"""

from collections.abc import Iterable, Iterator, Sequence
from typing import Any, Protocol, TypeVar


class ThreadNode(Protocol):
    id: str
    replies: list[Any]


N = TypeVar("N", bound=ThreadNode)


def build_forest(nodes: Iterable[N], parent_key: str = "parent_id") -> list[N]:
    """Nest nodes under their parents and return the roots.

    Every node's ``replies`` list is reset before linking. Input order is kept
    among roots and within each children list, so callers pass records already
    sorted the way they want them displayed. Duplicate ids keep the first
    occurrence. Parent cycles are broken by promoting the first node of the
    cycle (in input order) to a root, so every input node is returned exactly
    once.
    """
    index: dict[str, N] = {}
    ordered: list[N] = []
    for node in nodes:
        if node.id in index:
            continue
        node.replies = []
        index[node.id] = node
        ordered.append(node)

    roots: list[N] = []
    for node in ordered:
        parent_id = getattr(node, parent_key, None)
        parent = index.get(parent_id) if parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.replies.append(node)

    reached = {node.id for node in walk(roots)}
    if len(reached) < len(ordered):
        roots = _break_cycles(ordered, roots, index, reached, parent_key)
    return roots


def _break_cycles(
    ordered: list[N],
    roots: list[N],
    index: dict[str, N],
    reached: set[str],
    parent_key: str,
) -> list[N]:
    promoted: set[str] = set()
    for node in ordered:
        if node.id in reached:
            continue
        parent = index[getattr(node, parent_key)]
        parent.replies = [child for child in parent.replies if child is not node]
        promoted.add(node.id)
        reached.update(child.id for child in walk([node]))
    # Keep promoted roots in input order relative to the natural roots
    root_ids = {node.id for node in roots} | promoted
    return [node for node in ordered if node.id in root_ids]


def walk(forest: Sequence[N]) -> Iterator[N]:
    """Depth-first, pre-order traversal of a forest."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.replies))
