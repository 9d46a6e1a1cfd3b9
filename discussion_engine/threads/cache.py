"""Client-side cache of one loaded thread.

Nodes live in an id-indexed arena with a parent -> children-ids index, so
patching the cache after a single create/edit/delete touches O(depth) entries
instead of rebuilding the whole nested structure. ``forest()`` materializes the
nested view on demand.
"""

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from .builder import build_forest, walk


N = TypeVar("N")

_ROOT: None = None


class ThreadCache(Generic[N]):
    """Arena + index view of a comment or forum reply thread.

    Args:
        parent_key: Attribute holding the parent id on each node
            (``parent_id`` for comments, ``parent_reply_id`` for replies).
    """

    def __init__(self, parent_key: str = "parent_id"):
        self.parent_key = parent_key
        self._nodes: dict[str, N] = {}
        self._parent: dict[str, str | None] = {}
        self._children: dict[str | None, list[str]] = {_ROOT: []}

    @classmethod
    def from_records(
        cls, nodes: Iterable[N], parent_key: str = "parent_id"
    ) -> "ThreadCache[N]":
        """Build a cache from flat records (same rules as ``build_forest``)."""
        cache: ThreadCache[N] = cls(parent_key)
        cache.load(build_forest(nodes, parent_key))
        return cache

    def load(self, forest: Sequence[N]) -> None:
        """Replace the cache content with an already nested forest."""
        self._nodes.clear()
        self._parent.clear()
        self._children = {_ROOT: []}
        for root in forest:
            self._attach(root, _ROOT)
            for node in walk([root]):
                for child in node.replies:
                    self._attach(child, node.id)

    def _attach(self, node: Any, parent_id: str | None) -> None:
        self._nodes[node.id] = node
        self._parent[node.id] = parent_id
        self._children.setdefault(node.id, [])
        self._children.setdefault(parent_id, []).append(node.id)

    def insert(self, node: N) -> None:
        """Add a newly created node under its parent.

        A node whose parent is not loaded becomes a root. Inserting an id that
        is already cached behaves like ``replace``.
        """
        if node.id in self._nodes:
            self.replace(node)
            return
        parent_id = getattr(node, self.parent_key, None)
        if parent_id not in self._nodes:
            parent_id = _ROOT
        self._attach(node, parent_id)

    def replace(self, node: N) -> bool:
        """Swap in an edited node, keeping its loaded children.

        Edit responses carry the node's own fields only; the children already
        in the cache stay attached. Returns False if the node is not cached.
        """
        if node.id not in self._nodes:
            return False
        self._nodes[node.id] = node
        return True

    def remove(self, node_id: str) -> set[str]:
        """Remove a node together with its whole subtree.

        Returns:
            Every removed id (empty if the node was not cached).
        """
        if node_id not in self._nodes:
            return set()

        parent_id = self._parent[node_id]
        siblings = self._children.get(parent_id, [])
        if node_id in siblings:
            siblings.remove(node_id)

        removed: set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            removed.add(current)
            stack.extend(self._children.pop(current, []))
            self._nodes.pop(current, None)
            self._parent.pop(current, None)
        return removed

    def set_reactions(self, node_id: str, reactions: list[Any]) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.reactions = list(reactions)
        return True

    def get(self, node_id: str) -> N | None:
        return self._nodes.get(node_id)

    def parent_of(self, node_id: str) -> str | None:
        return self._parent.get(node_id)

    def roots(self) -> list[N]:
        return [self._nodes[node_id] for node_id in self._children[_ROOT]]

    def children_of(self, node_id: str) -> list[N]:
        return [self._nodes[child] for child in self._children.get(node_id, [])]

    def depth(self, node_id: str) -> int:
        """Depth of a cached node (root = 0).

        Raises:
            KeyError: If the node is not cached
        """
        if node_id not in self._nodes:
            raise KeyError(node_id)
        depth = 0
        parent_id = self._parent[node_id]
        while parent_id is not None:
            depth += 1
            parent_id = self._parent[parent_id]
        return depth

    def forest(self) -> list[N]:
        """Materialize the nested view (sets ``replies`` on every node)."""
        for node_id, node in self._nodes.items():
            node.replies = self.children_of(node_id)
        return self.roots()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
