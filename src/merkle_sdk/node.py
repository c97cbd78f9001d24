"""Flat node arena backing a Merkle tree.

Every node (leaf or internal) lives in one list. A node knows its parent by
integer position in that list, which is what proof generation walks upward.
The root is the only node whose ``parent_index`` stays ``None``.

Nodes are frozen; linking a child to its parent swaps the list slot for a
copy carrying the new ``parent_index``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from merkle_sdk.errors import NodeStoreError
from merkle_sdk.hashing import hash_pair


@dataclass(frozen=True)
class Node:
    digest: bytes
    # Only None for the root node
    parent_index: int | None = None


class NodeStore:
    def __init__(self) -> None:
        self._nodes: list[Node] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)

    def append_leaf(self, digest: bytes) -> int:
        self._nodes.append(Node(digest=digest))
        return len(self._nodes) - 1

    def append_parent(self, left_index: int, right_index: int) -> int:
        """Append the parent of two stored nodes and link both children to it."""
        left = self.read_at(left_index)
        right = self.read_at(right_index)
        if left is None or right is None:
            raise NodeStoreError(f"cannot pair missing nodes {left_index} and {right_index}")

        parent_index = len(self._nodes)
        self._set_parent(left_index, parent_index)
        self._set_parent(right_index, parent_index)
        self._nodes.append(Node(digest=hash_pair(left.digest, right.digest)))
        return parent_index

    def read_at(self, index: int) -> Node | None:
        if index < 0 or index >= len(self._nodes):
            return None
        return self._nodes[index]

    def last(self) -> Node:
        if not self._nodes:
            raise NodeStoreError("node store is empty")
        return self._nodes[-1]

    def find_digest(self, digest: bytes, *, stop: int | None = None) -> int | None:
        """Return the lowest index in ``[0, stop)`` holding ``digest``."""
        end = len(self._nodes) if stop is None else min(stop, len(self._nodes))
        for index in range(end):
            if self._nodes[index].digest == digest:
                return index
        return None

    def _set_parent(self, index: int, parent_index: int) -> None:
        node = self._nodes[index]
        if node.parent_index is not None:
            raise NodeStoreError(f"node {index} already has a parent")
        self._nodes[index] = replace(node, parent_index=parent_index)
