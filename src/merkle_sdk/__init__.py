"""merkle-sdk public surface."""

from merkle_sdk.errors import (
    InvalidTreeShapeError,
    MerkleSDKError,
    NodeStoreError,
    ProofFormatError,
    SchemaValidationError,
)
from merkle_sdk.hashing import DIGEST_SIZE, hash_leaf, hash_pair
from merkle_sdk.node import Node, NodeStore
from merkle_sdk.offline_verify import (
    build_proof_bundle,
    verify_proof_bundle,
    verify_proof_bundle_file,
)
from merkle_sdk.proof import HashDirection, Proof
from merkle_sdk.signing import sign_root, verify_root_signature
from merkle_sdk.tree import MerkleTree, replay_path

__all__ = [
    "MerkleSDKError",
    "InvalidTreeShapeError",
    "NodeStoreError",
    "ProofFormatError",
    "SchemaValidationError",
    "DIGEST_SIZE",
    "hash_leaf",
    "hash_pair",
    "Node",
    "NodeStore",
    "HashDirection",
    "Proof",
    "MerkleTree",
    "replay_path",
    "build_proof_bundle",
    "verify_proof_bundle",
    "verify_proof_bundle_file",
    "sign_root",
    "verify_root_signature",
]
