#!/usr/bin/env python3
"""Minimal tamper demo: commit to records, hand out a proof, detect a rewrite."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from merkle_sdk.offline_verify import build_proof_bundle, verify_proof_bundle
from merkle_sdk.signing import generate_private_key_b64, load_private_key, public_key_b64
from merkle_sdk.tree import MerkleTree

RECORD_COUNT = 8
PROVEN_RECORD = 5


def _write_records(workdir: Path) -> list[Path]:
    paths = []
    for i in range(RECORD_COUNT):
        path = workdir / f"record-{i}.txt"
        path.write_text(f"ledger entry {i}\n", encoding="utf-8")
        paths.append(path)
    return paths


def run_demo(workdir: Path) -> int:
    workdir.mkdir(parents=True, exist_ok=True)
    bundle_path = workdir / "proof_bundle.json"

    records = _write_records(workdir)
    blocks = [path.read_bytes() for path in records]
    tree = MerkleTree(blocks)
    print("Step 1/5: records committed")
    print(f"root={tree.root_hex} depth={tree.depth}")

    print("Step 2/5: root signed")
    signing_key = load_private_key(generate_private_key_b64())
    trusted_key = public_key_b64(signing_key)
    print(f"signer={trusted_key}")

    print("Step 3/5: proof bundle handed out")
    bundle = build_proof_bundle(tree, blocks[PROVEN_RECORD], signing_key=signing_key)
    if bundle is None:
        raise RuntimeError("proven record missing from tree")
    bundle_path.write_text(json.dumps(bundle, indent=2, sort_keys=True), encoding="utf-8")
    ok, reason = verify_proof_bundle(
        bundle, block=blocks[PROVEN_RECORD], trusted_public_key_b64=trusted_key
    )
    print(f"verify_before_ok={ok} reason={reason}")

    print("Step 4/5: record silently modified")
    tampered = records[PROVEN_RECORD]
    tampered.write_text("ledger entry rewritten\n", encoding="utf-8")

    print("Step 5/5: verification fails")
    ok_after, reason_after = verify_proof_bundle(
        bundle, block=tampered.read_bytes(), trusted_public_key_b64=trusted_key
    )
    print(f"verify_after_ok={ok_after} reason={reason_after}")
    full_ok = MerkleTree.verify([path.read_bytes() for path in records], tree.root)
    print(f"full_dataset_ok={full_ok}")

    if not ok or ok_after or full_ok:
        print("unexpected_result=true")
        return 1
    print("unexpected_result=false")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run Merkle tamper detection demo.")
    parser.add_argument(
        "--workdir",
        default="./tamper-demo-output",
        help="Output directory for demo artifacts",
    )
    args = parser.parse_args()
    return run_demo(Path(args.workdir).resolve())


if __name__ == "__main__":
    raise SystemExit(main())
