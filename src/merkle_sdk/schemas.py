"""Wire schemas for serialized proofs and proof bundles (MPB-1)."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

BUNDLE_VERSION = "MPB-1"

HexDigest = Annotated[str, Field(pattern=r"^[0-9a-f]{64}$")]


class ProofStepModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    side: Literal["left", "right"]
    digest: HexDigest


class ProofModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: List[ProofStepModel]


class ProofBundle(ProofModel):
    bundle_version: Literal["MPB-1"] = BUNDLE_VERSION
    hash_algorithm: Literal["sha256"] = "sha256"
    root: HexDigest
    depth: int = Field(..., ge=0)
    leaf_hash: Optional[HexDigest] = None
    block_b64: Optional[str] = None
    root_signature_b64: Optional[str] = None
    signer_public_key_b64: Optional[str] = None

    @model_validator(mode="after")
    def _check_leaf_reference(self) -> "ProofBundle":
        if self.leaf_hash is None and self.block_b64 is None:
            raise ValueError("one of leaf_hash or block_b64 is required")
        if self.root_signature_b64 is not None and self.signer_public_key_b64 is None:
            raise ValueError("root_signature_b64 requires signer_public_key_b64")
        return self
