"""Hash primitives shared by tree construction and proof verification.

- hash_leaf(block) = SHA256(block)
- hash_pair(left, right) = SHA256(left || right)

There is no domain separation between leaves and internal nodes and no length
prefix on the concatenation; swapping ``left`` and ``right`` changes the digest.
"""

from __future__ import annotations

import hashlib

HASH_ALGORITHM = "sha256"
DIGEST_SIZE = hashlib.sha256().digest_size


def hash_leaf(block: bytes) -> bytes:
    return hashlib.sha256(block).digest()


def hash_pair(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(left + right).digest()


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def log2(value: int) -> int:
    """Exact base-2 logarithm of a power of two."""
    return value.bit_length() - 1
