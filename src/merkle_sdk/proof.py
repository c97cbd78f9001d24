"""Inclusion proof value type and its wire encodings.

A proof is the ordered list of sibling digests from the proven leaf up to the
level just below the root. Each step carries the side its sibling occupies when
the running digest is recombined.

Binary layout: one side byte (0x00 left, 0x01 right) followed by the 32-byte
sibling digest, repeated once per step.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator

from pydantic import ValidationError

from merkle_sdk.errors import ProofFormatError
from merkle_sdk.hashing import DIGEST_SIZE
from merkle_sdk.schemas import ProofModel

STEP_SIZE = 1 + DIGEST_SIZE


class HashDirection(str, enum.Enum):
    """Which side the sibling digest goes on when concatenating."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def tag(self) -> int:
        return 0 if self is HashDirection.LEFT else 1

    @classmethod
    def from_tag(cls, tag: int) -> HashDirection:
        if tag == 0:
            return cls.LEFT
        if tag == 1:
            return cls.RIGHT
        raise ProofFormatError(f"unknown side tag: {tag:#04x}")

    def flipped(self) -> HashDirection:
        return HashDirection.RIGHT if self is HashDirection.LEFT else HashDirection.LEFT


ProofStep = tuple[HashDirection, bytes]


@dataclass(frozen=True)
class Proof:
    path: tuple[ProofStep, ...] = ()

    def __len__(self) -> int:
        return len(self.path)

    def __iter__(self) -> Iterator[ProofStep]:
        return iter(self.path)

    def to_bytes(self) -> bytes:
        return b"".join(bytes([side.tag]) + digest for side, digest in self.path)

    @classmethod
    def from_bytes(cls, raw: bytes) -> Proof:
        if len(raw) % STEP_SIZE:
            raise ProofFormatError(f"proof length {len(raw)} is not a multiple of {STEP_SIZE}")
        steps = []
        for offset in range(0, len(raw), STEP_SIZE):
            side = HashDirection.from_tag(raw[offset])
            steps.append((side, raw[offset + 1 : offset + STEP_SIZE]))
        return cls(tuple(steps))

    def to_dict(self) -> dict:
        return {
            "path": [{"side": side.value, "digest": digest.hex()} for side, digest in self.path]
        }

    @classmethod
    def from_dict(cls, payload: dict) -> Proof:
        try:
            model = ProofModel(**payload)
        except (TypeError, ValidationError) as exc:
            raise ProofFormatError(f"invalid proof payload: {exc}") from exc
        return cls(tuple((HashDirection(step.side), bytes.fromhex(step.digest)) for step in model.path))
