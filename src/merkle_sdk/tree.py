"""Perfect binary Merkle tree over an ordered, power-of-two sequence of blocks.

Layout of the node arena for four blocks ``a b c d``::

    index:  0     1     2     3     4       5       6
    node:   H(a)  H(b)  H(c)  H(d)  H(0|1)  H(2|3)  H(4|5)

Leaves come first, then each level left to right, and the root is always the
last node. Pairing is positional: the node at an even offset within its level
pairs with its right neighbour.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from merkle_sdk.errors import InvalidTreeShapeError, NodeStoreError, ProofFormatError
from merkle_sdk.hashing import hash_leaf, hash_pair, is_power_of_two, log2
from merkle_sdk.node import Node, NodeStore
from merkle_sdk.proof import HashDirection, Proof, ProofStep

logger = logging.getLogger(__name__)


def replay_path(digest: bytes, proof: Proof | Iterable[ProofStep]) -> bytes:
    """Fold ``digest`` through the proof path, leaf-adjacent sibling first."""
    for side, sibling in proof:
        try:
            side = HashDirection(side)
        except ValueError as exc:
            raise ProofFormatError(f"unknown proof side: {side!r}") from exc
        if side is HashDirection.LEFT:
            digest = hash_pair(sibling, digest)
        else:
            digest = hash_pair(digest, sibling)
    return digest


class MerkleTree:
    """Immutable Merkle tree. Build it once, then share it freely."""

    def __init__(self, blocks: Sequence[bytes]) -> None:
        leaf_count = len(blocks)
        # Level boundaries below are only well defined for a perfect binary tree
        if not is_power_of_two(leaf_count):
            raise InvalidTreeShapeError(
                f"leaf count must be a power of two >= 1, got {leaf_count}",
                leaf_count=leaf_count,
            )

        store = NodeStore()
        for block in blocks:
            store.append_leaf(hash_leaf(block))

        width = leaf_count
        while width > 1:
            end = len(store)
            start = end - width
            for i in range(start, end, 2):
                store.append_parent(i, i + 1)
            width >>= 1

        self._store = store
        self._leaf_count = leaf_count
        self._depth = log2(leaf_count)
        self._root = store.last().digest
        logger.debug(
            "built merkle tree: leaves=%d depth=%d nodes=%d root=%s",
            leaf_count,
            self._depth,
            len(store),
            self._root.hex(),
        )

    @classmethod
    def construct(cls, blocks: Sequence[bytes]) -> MerkleTree:
        return cls(blocks)

    def __len__(self) -> int:
        return self._leaf_count

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={self._leaf_count}, root={self.root_hex})"

    @property
    def root(self) -> bytes:
        return self._root

    @property
    def root_hex(self) -> str:
        return self._root.hex()

    @property
    def depth(self) -> int:
        """Number of levels above the leaves."""
        return self._depth

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._store)

    def leaf_index(self, block: bytes) -> int | None:
        """Lowest leaf position whose digest matches ``block``; ``None`` if absent."""
        return self._store.find_digest(hash_leaf(block), stop=self._leaf_count)

    def prove(self, block: bytes) -> Proof | None:
        """Build an inclusion proof for ``block``.

        Duplicate blocks resolve to the first (lowest index) matching leaf.
        Returns ``None`` when the block is not a leaf of this tree.
        """
        index = self.leaf_index(block)
        if index is None:
            logger.debug("block not present in tree %s", self.root_hex)
            return None
        return self._path_from(index)

    def prove_index(self, leaf_index: int) -> Proof:
        if leaf_index < 0 or leaf_index >= self._leaf_count:
            raise IndexError("leaf_index out of range")
        return self._path_from(leaf_index)

    def _path_from(self, index: int) -> Proof:
        path: list[ProofStep] = []
        # Stops one level below the root, so every visited node has a parent
        for _ in range(self._depth):
            if index % 2 == 0:
                side, sibling = HashDirection.RIGHT, self._store.read_at(index + 1)
            else:
                side, sibling = HashDirection.LEFT, self._store.read_at(index - 1)
            if sibling is None or sibling.parent_index is None:
                raise NodeStoreError(f"broken parent link at node {index}")

            path.append((side, sibling.digest))
            index = sibling.parent_index
        return Proof(tuple(path))

    @staticmethod
    def verify(blocks: Sequence[bytes], root: bytes) -> bool:
        """Rebuild a tree from ``blocks`` and compare its root to ``root``."""
        return MerkleTree(blocks).root == root

    @staticmethod
    def verify_proof(block: bytes, proof: Proof | Iterable[ProofStep], root: bytes) -> bool:
        """Check that ``block`` and ``proof`` reproduce ``root``."""
        return replay_path(hash_leaf(block), proof) == root
