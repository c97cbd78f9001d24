"""Self-contained proof bundles for verification away from the tree owner."""

from __future__ import annotations

import base64
import json
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from pydantic import ValidationError

from merkle_sdk.errors import SchemaValidationError
from merkle_sdk.hashing import HASH_ALGORITHM, hash_leaf
from merkle_sdk.proof import Proof
from merkle_sdk.schemas import BUNDLE_VERSION, ProofBundle
from merkle_sdk.signing import decode_b64, public_key_b64, sign_root, verify_root_signature
from merkle_sdk.tree import MerkleTree, replay_path


def build_proof_bundle(
    tree: MerkleTree,
    block: bytes,
    *,
    include_block: bool = False,
    signing_key: Ed25519PrivateKey | None = None,
) -> dict | None:
    """Return a JSON-ready bundle proving ``block`` is in ``tree``, or ``None``."""
    proof = tree.prove(block)
    if proof is None:
        return None

    bundle: dict = {
        "bundle_version": BUNDLE_VERSION,
        "hash_algorithm": HASH_ALGORITHM,
        "root": tree.root_hex,
        "depth": tree.depth,
        **proof.to_dict(),
    }
    if include_block:
        bundle["block_b64"] = base64.b64encode(block).decode("ascii")
    else:
        bundle["leaf_hash"] = hash_leaf(block).hex()
    if signing_key is not None:
        bundle["root_signature_b64"] = sign_root(tree.root, signing_key)
        bundle["signer_public_key_b64"] = public_key_b64(signing_key)
    return bundle


def parse_proof_bundle(payload: dict) -> ProofBundle:
    if not isinstance(payload, dict):
        raise SchemaValidationError("proof bundle must be a JSON object")
    try:
        return ProofBundle(**payload)
    except ValidationError as exc:
        raise SchemaValidationError(str(exc)) from exc


def verify_proof_bundle(
    payload: dict,
    *,
    block: bytes | None = None,
    trusted_public_key_b64: str | None = None,
) -> tuple[bool, str]:
    bundle = parse_proof_bundle(payload)
    proof = Proof.from_dict({"path": [step.model_dump() for step in bundle.path]})
    root = bytes.fromhex(bundle.root)

    if bundle.depth != len(proof):
        return False, "path length does not match depth"

    if trusted_public_key_b64 is not None:
        if bundle.root_signature_b64 is None:
            return False, "missing root signature"
        if bundle.signer_public_key_b64 != trusted_public_key_b64:
            return False, "root signed by untrusted key"
        if not verify_root_signature(root, bundle.root_signature_b64, trusted_public_key_b64):
            return False, "invalid root signature"

    if block is not None:
        leaf = hash_leaf(block)
    elif bundle.block_b64 is not None:
        try:
            leaf = hash_leaf(decode_b64(bundle.block_b64))
        except ValueError:
            return False, "block_b64 is not valid base64"
    else:
        leaf = bytes.fromhex(bundle.leaf_hash)

    if bundle.leaf_hash is not None and leaf.hex() != bundle.leaf_hash:
        return False, "block does not match leaf_hash"

    if replay_path(leaf, proof) != root:
        return False, "root mismatch"
    return True, "ok"


def verify_proof_bundle_file(
    bundle_path: str,
    *,
    block_path: str | None = None,
    trusted_public_key_b64: str | None = None,
) -> tuple[bool, str]:
    payload = json.loads(Path(bundle_path).read_text(encoding="utf-8"))
    block = Path(block_path).read_bytes() if block_path else None
    return verify_proof_bundle(
        payload,
        block=block,
        trusted_public_key_b64=trusted_public_key_b64,
    )
