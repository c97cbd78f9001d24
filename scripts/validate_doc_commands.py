#!/usr/bin/env python3
"""Run the ``merkle`` snippets from README.md against generated block files.

Each ``data/N.bin`` named in a snippet is created holding the single byte
``N``. Paths under ``~/`` are redirected into a scratch home directory, so
``keygen`` and signed proofs run without touching the real one.
"""

from __future__ import annotations

import argparse
import io
import os
import re
import shlex
import tempfile
from pathlib import Path

from merkle_sdk.cli.main import main as merkle_main

ROOT = Path(__file__).resolve().parents[1]

_BLOCK_PATH = re.compile(r"^data/(\d+)\.bin$")
_ROOT_HEX = re.compile(r"\b[0-9a-f]{64}\b")


def _extract_merkle_commands(text: str) -> list[str]:
    pattern = re.compile(r"```bash\s*(.*?)```", re.DOTALL | re.IGNORECASE)
    commands: list[str] = []
    for block in pattern.findall(text):
        for line in block.splitlines():
            stripped = line.strip()
            if stripped.startswith("merkle "):
                commands.append(stripped)
    return commands


def _prepare_blocks(argv: list[str], workdir: Path) -> None:
    for arg in argv:
        match = _BLOCK_PATH.match(arg)
        if match is None:
            continue
        path = workdir / arg
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes([int(match.group(1))]))


def _run_snippets(commands: list[str], documented_roots: set[str]) -> list[str]:
    errors: list[str] = []
    previous_cwd = Path.cwd()
    with tempfile.TemporaryDirectory() as scratch:
        workdir = Path(scratch)
        home = workdir / "home"
        missing_config = workdir / "no-config.toml"
        os.chdir(workdir)
        try:
            for command in commands:
                argv = [
                    str(home / arg[2:]) if arg.startswith("~/") else arg
                    for arg in shlex.split(command)[1:]
                ]
                _prepare_blocks(argv, workdir)

                out = io.StringIO()
                err = io.StringIO()
                try:
                    rc = merkle_main(["--config", str(missing_config), *argv], stdout=out, stderr=err)
                except SystemExit as exc:
                    rc = exc.code
                if rc != 0:
                    errors.append(f"exit {rc}: {command}: {err.getvalue().strip()}")
                    continue

                if argv[0] == "root":
                    root_hex = out.getvalue().splitlines()[0]
                    if root_hex not in documented_roots:
                        errors.append(f"computed root {root_hex} is not the documented one: {command}")
        finally:
            os.chdir(previous_cwd)
    return errors


def main() -> int:
    parser = argparse.ArgumentParser(description="Execute README merkle CLI snippets.")
    parser.add_argument("--readme", default=str(ROOT / "README.md"), help="Markdown file to check")
    args = parser.parse_args()

    readme = Path(args.readme)
    if not readme.exists():
        print(f"doc command validation failed:\n- {readme}: not found")
        return 1

    text = readme.read_text(encoding="utf-8")
    commands = _extract_merkle_commands(text)
    if not commands:
        print(f"doc command validation failed:\n- {readme}: no merkle snippets")
        return 1

    errors = _run_snippets(commands, set(_ROOT_HEX.findall(text)))
    if errors:
        print("doc command validation failed:")
        for item in errors:
            print(f"- {item}")
        return 1

    print(f"doc command validation passed ({len(commands)} command snippets)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
