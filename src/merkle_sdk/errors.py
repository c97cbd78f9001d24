"""SDK error types."""

from __future__ import annotations


class MerkleSDKError(RuntimeError):
    """Base SDK error."""


class InvalidTreeShapeError(MerkleSDKError, ValueError):
    """Leaf count is not a power of two (or no leaves were given)."""

    def __init__(self, message: str, *, leaf_count: int | None = None) -> None:
        super().__init__(message)
        self.leaf_count = leaf_count


class NodeStoreError(MerkleSDKError):
    """Node arena invariant violated."""


class ProofFormatError(MerkleSDKError, ValueError):
    """Serialized proof could not be decoded."""


class SchemaValidationError(MerkleSDKError):
    """Schema validation failed."""
