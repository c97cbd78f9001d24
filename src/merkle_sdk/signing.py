"""Ed25519 signed roots.

A verifier that only holds a proof needs a trusted root to check it against.
Signing the root lets a tree owner hand out proof bundles that a remote party
can authenticate with nothing but the owner's public key.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

ROOT_SIGNING_INTENT = b"MERKLE-ROOT-1:"


def root_signing_message(root: bytes) -> bytes:
    return ROOT_SIGNING_INTENT + root


def decode_b64(data_b64: str) -> bytes:
    try:
        return base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid base64") from exc


def generate_private_key_b64() -> str:
    private = Ed25519PrivateKey.generate()
    raw = private.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    return base64.b64encode(raw).decode("ascii")


def load_private_key(private_key_b64: str) -> Ed25519PrivateKey:
    return Ed25519PrivateKey.from_private_bytes(decode_b64(private_key_b64.strip()))


def public_key_b64(private: Ed25519PrivateKey) -> str:
    raw = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return base64.b64encode(raw).decode("ascii")


def sign_root(root: bytes, private: Ed25519PrivateKey) -> str:
    signature = private.sign(root_signing_message(root))
    return base64.b64encode(signature).decode("ascii")


def verify_root_signature(root: bytes, signature_b64: str, public_key_b64_value: str) -> bool:
    try:
        signature = decode_b64(signature_b64)
        key = Ed25519PublicKey.from_public_bytes(decode_b64(public_key_b64_value))
        key.verify(signature, root_signing_message(root))
    except Exception:
        return False
    return True
