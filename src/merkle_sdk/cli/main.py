"""Command-line interface for merkle-sdk."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Sequence

from merkle_sdk.cli.config import LOG_LEVELS, CLIConfig, ConfigError, load_cli_config
from merkle_sdk.errors import InvalidTreeShapeError, SchemaValidationError
from merkle_sdk.hashing import HASH_ALGORITHM
from merkle_sdk.offline_verify import build_proof_bundle, verify_proof_bundle_file
from merkle_sdk.schemas import BUNDLE_VERSION
from merkle_sdk.signing import generate_private_key_b64, load_private_key
from merkle_sdk.tree import MerkleTree

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_VERIFICATION_FAILED = 4

logger = logging.getLogger(__name__)


def _sdk_version() -> str:
    try:
        return pkg_version("merkle-sdk")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="merkle")
    parser.add_argument(
        "--version",
        action="version",
        version=f"merkle-sdk {_sdk_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.merkle_sdk/config.toml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=sorted(LOG_LEVELS),
        help="Override the configured log level",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI and bundle format version")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    root = sub.add_parser("root", help="Compute the Merkle root of a sequence of block files")
    root.add_argument("blocks", nargs="+", help="Block files, in leaf order")
    root.add_argument("--json", action="store_true", help="Print result as JSON")

    prove = sub.add_parser("prove", help="Write an inclusion proof bundle for one block")
    prove.add_argument("blocks", nargs="+", help="Block files, in leaf order")
    prove.add_argument("--block", required=True, help="File holding the block to prove")
    prove.add_argument("--out", default=None, help="Write the bundle here instead of stdout")
    prove.add_argument(
        "--include-block",
        action="store_true",
        help="Embed the block bytes (base64) instead of its leaf hash",
    )
    prove.add_argument("--sign", action="store_true", help="Sign the root with the configured key")
    prove.add_argument(
        "--signing-key-file",
        default=None,
        help="Base64 Ed25519 private key file (overrides config and environment)",
    )

    verify = sub.add_parser("verify", help="Check a full block sequence against a root")
    verify.add_argument("blocks", nargs="+", help="Block files, in leaf order")
    verify.add_argument("--root", required=True, help="Expected root as hex")
    verify.add_argument("--json", action="store_true", help="Print result as JSON")

    verify_proof = sub.add_parser("verify-proof", help="Check a proof bundle offline")
    verify_proof.add_argument("bundle", help="Path to proof bundle JSON")
    verify_proof.add_argument("--block", default=None, help="File holding the proven block")
    verify_proof.add_argument(
        "--trusted-key",
        default=None,
        help="Require the root to be signed by this base64 Ed25519 public key",
    )
    verify_proof.add_argument("--json", action="store_true", help="Print result as JSON")

    keygen = sub.add_parser("keygen", help="Generate an Ed25519 root signing key")
    keygen.add_argument("--out", default=None, help="Write the private key here (mode 0600)")

    return parser


def _configure_logging(level: int, stderr) -> None:
    logging.basicConfig(
        level=level,
        stream=stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {message}", file=stderr)
    return code


def _wants_json(args, config: CLIConfig) -> bool:
    return bool(getattr(args, "json", False)) or config.output == "json"


def _read_blocks(paths: Sequence[str]) -> list[bytes]:
    return [Path(path).read_bytes() for path in paths]


def _build_tree(paths: Sequence[str], stderr) -> MerkleTree | int:
    try:
        blocks = _read_blocks(paths)
    except OSError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)
    try:
        return MerkleTree(blocks)
    except InvalidTreeShapeError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)


def _resolve_signing_key_b64(args, config: CLIConfig) -> str | None:
    key_file = args.signing_key_file or config.signing_key_path
    if args.signing_key_file is None and config.signing_key_b64:
        return config.signing_key_b64
    if key_file is None:
        return None
    return Path(key_file).expanduser().read_text(encoding="utf-8").strip()


def _run_version(*, args, config: CLIConfig, stdout) -> int:
    payload = {
        "cli": "merkle",
        "sdk_version": _sdk_version(),
        "bundle_version": BUNDLE_VERSION,
        "hash_algorithm": HASH_ALGORITHM,
    }
    if _wants_json(args, config):
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"merkle-sdk {payload['sdk_version']}", file=stdout)
        print(f"bundle format: {payload['bundle_version']}", file=stdout)
        print(f"hash: {payload['hash_algorithm']}", file=stdout)
    return EXIT_SUCCESS


def _run_root(*, args, config: CLIConfig, stdout, stderr) -> int:
    tree = _build_tree(args.blocks, stderr)
    if isinstance(tree, int):
        return tree

    if _wants_json(args, config):
        payload = {"root": tree.root_hex, "depth": tree.depth, "leaf_count": tree.leaf_count}
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(tree.root_hex, file=stdout)
        print(f"depth: {tree.depth} ({tree.leaf_count} leaves)", file=stdout)
    return EXIT_SUCCESS


def _run_prove(*, args, config: CLIConfig, stdout, stderr) -> int:
    tree = _build_tree(args.blocks, stderr)
    if isinstance(tree, int):
        return tree

    try:
        block = Path(args.block).read_bytes()
    except OSError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)

    signing_key = None
    if args.sign:
        try:
            key_b64 = _resolve_signing_key_b64(args, config)
        except OSError as exc:
            return _print_error(stderr, "key error", str(exc), code=EXIT_VALIDATION_ERROR)
        if key_b64 is None:
            return _print_error(
                stderr,
                "key error",
                (
                    "--sign requires a key; pass --signing-key-file, set "
                    "MERKLE_SDK_SIGNING_KEY or cli.signing_key_path in config"
                ),
                code=EXIT_VALIDATION_ERROR,
            )
        try:
            signing_key = load_private_key(key_b64)
        except ValueError as exc:
            return _print_error(stderr, "key error", str(exc), code=EXIT_VALIDATION_ERROR)

    bundle = build_proof_bundle(
        tree,
        block,
        include_block=args.include_block,
        signing_key=signing_key,
    )
    if bundle is None:
        return _print_error(
            stderr,
            "prove error",
            f"{args.block} is not a leaf of this tree",
            code=EXIT_VERIFICATION_FAILED,
        )

    rendered = json.dumps(bundle, sort_keys=True, indent=2) + "\n"
    if args.out:
        Path(args.out).write_text(rendered, encoding="utf-8")
        logger.info("wrote proof bundle to %s", args.out)
    else:
        stdout.write(rendered)
    return EXIT_SUCCESS


def _run_verify(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        expected_root = bytes.fromhex(args.root)
    except ValueError:
        return _print_error(stderr, "input error", "--root must be hex", code=EXIT_VALIDATION_ERROR)

    try:
        blocks = _read_blocks(args.blocks)
    except OSError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)
    try:
        ok = MerkleTree.verify(blocks, expected_root)
    except InvalidTreeShapeError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)

    reason = "ok" if ok else "root mismatch"
    return _emit_verdict(ok, reason, args=args, config=config, stdout=stdout)


def _run_verify_proof(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        ok, reason = verify_proof_bundle_file(
            args.bundle,
            block_path=args.block,
            trusted_public_key_b64=args.trusted_key,
        )
    except OSError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return _print_error(
            stderr, "verify error", f"invalid bundle JSON: {exc}", code=EXIT_VALIDATION_ERROR
        )
    except SchemaValidationError as exc:
        return _print_error(stderr, "verify error", str(exc), code=EXIT_VALIDATION_ERROR)
    return _emit_verdict(ok, reason, args=args, config=config, stdout=stdout)


def _emit_verdict(ok: bool, reason: str, *, args, config: CLIConfig, stdout) -> int:
    if _wants_json(args, config):
        print(json.dumps({"ok": ok, "reason": reason}, sort_keys=True), file=stdout)
    else:
        print("verified" if ok else f"verification failed: {reason}", file=stdout)
    return EXIT_SUCCESS if ok else EXIT_VERIFICATION_FAILED


def _run_keygen(*, args, stdout, stderr) -> int:
    key_b64 = generate_private_key_b64()
    if args.out is None:
        print(key_b64, file=stdout)
        return EXIT_SUCCESS

    out_path = Path(args.out).expanduser()
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(out_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as exc:
        return _print_error(stderr, "key error", str(exc), code=EXIT_VALIDATION_ERROR)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(key_b64 + "\n")
    print(f"wrote signing key to {out_path}", file=stdout)
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if args.log_level:
        config = replace(config, log_level=args.log_level)
    _configure_logging(config.log_level_value, stderr)

    if args.command == "version":
        return _run_version(args=args, config=config, stdout=stdout)

    if args.command == "root":
        return _run_root(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "prove":
        return _run_prove(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "verify":
        return _run_verify(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "verify-proof":
        return _run_verify_proof(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "keygen":
        return _run_keygen(args=args, stdout=stdout, stderr=stderr)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
