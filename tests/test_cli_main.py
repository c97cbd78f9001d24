from __future__ import annotations

import io
import json

import pytest

from merkle_sdk.cli.main import main
from merkle_sdk.signing import generate_private_key_b64, load_private_key, public_key_b64

ROOT_4 = "9675e04b4ba9dc81b06e81731e2d21caa2c95557a85dcfa3fff70c9ff0f30b2e"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch) -> None:
    monkeypatch.delenv("MERKLE_SDK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("MERKLE_SDK_SIGNING_KEY", raising=False)


def _write_blocks(tmp_path, n: int) -> list[str]:
    paths = []
    for i in range(n):
        path = tmp_path / f"block{i:02d}.bin"
        path.write_bytes(bytes([i]))
        paths.append(str(path))
    return paths


def _run(argv: list[str], tmp_path) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    config = tmp_path / "missing-config.toml"
    rc = main(["--config", str(config), *argv], stdout=out, stderr=err)
    return rc, out.getvalue(), err.getvalue()


def test_root_json(tmp_path) -> None:
    rc, out, _ = _run(["root", *_write_blocks(tmp_path, 4), "--json"], tmp_path)
    assert rc == 0
    payload = json.loads(out)
    assert payload == {"root": ROOT_4, "depth": 2, "leaf_count": 4}


def test_root_text(tmp_path) -> None:
    rc, out, _ = _run(["root", *_write_blocks(tmp_path, 4)], tmp_path)
    assert rc == 0
    assert out.splitlines()[0] == ROOT_4


def test_root_rejects_non_power_of_two(tmp_path) -> None:
    rc, _, err = _run(["root", *_write_blocks(tmp_path, 3)], tmp_path)
    assert rc == 1
    assert "power of two" in err


def test_root_reports_missing_file(tmp_path) -> None:
    rc, _, err = _run(["root", str(tmp_path / "nope.bin")], tmp_path)
    assert rc == 1
    assert err.startswith("input error:")


def test_verify_exit_codes(tmp_path) -> None:
    blocks = _write_blocks(tmp_path, 4)
    rc, out, _ = _run(["verify", *blocks, "--root", ROOT_4, "--json"], tmp_path)
    assert rc == 0
    assert json.loads(out) == {"ok": True, "reason": "ok"}

    rc, out, _ = _run(["verify", *blocks, "--root", "00" * 32], tmp_path)
    assert rc == 4
    assert "root mismatch" in out

    rc, _, err = _run(["verify", *blocks, "--root", "xyz"], tmp_path)
    assert rc == 1
    assert "hex" in err


def test_prove_then_verify_proof(tmp_path) -> None:
    blocks = _write_blocks(tmp_path, 8)
    bundle_path = tmp_path / "proof.json"

    rc, _, _ = _run(["prove", *blocks, "--block", blocks[5], "--out", str(bundle_path)], tmp_path)
    assert rc == 0
    bundle = json.loads(bundle_path.read_text(encoding="utf-8"))
    assert bundle["depth"] == 3
    assert len(bundle["path"]) == 3

    rc, out, _ = _run(
        ["verify-proof", str(bundle_path), "--block", blocks[5], "--json"], tmp_path
    )
    assert rc == 0
    assert json.loads(out)["ok"] is True

    rc, out, _ = _run(
        ["verify-proof", str(bundle_path), "--block", blocks[4], "--json"], tmp_path
    )
    assert rc == 4
    assert json.loads(out)["ok"] is False


def test_prove_absent_block(tmp_path) -> None:
    blocks = _write_blocks(tmp_path, 4)
    stranger = tmp_path / "stranger.bin"
    stranger.write_bytes(b"stranger")
    rc, out, err = _run(["prove", *blocks, "--block", str(stranger)], tmp_path)
    assert rc == 4
    assert out == ""
    assert "not a leaf" in err


def test_prove_signed_with_key_file(tmp_path) -> None:
    blocks = _write_blocks(tmp_path, 4)
    key_b64 = generate_private_key_b64()
    key_path = tmp_path / "root.key"
    key_path.write_text(key_b64 + "\n", encoding="utf-8")
    bundle_path = tmp_path / "signed.json"

    rc, _, err = _run(
        [
            "prove",
            *blocks,
            "--block",
            blocks[2],
            "--sign",
            "--signing-key-file",
            str(key_path),
            "--out",
            str(bundle_path),
        ],
        tmp_path,
    )
    assert rc == 0, err

    trusted = public_key_b64(load_private_key(key_b64))
    rc, out, _ = _run(
        ["verify-proof", str(bundle_path), "--trusted-key", trusted, "--json"], tmp_path
    )
    assert rc == 0
    assert json.loads(out) == {"ok": True, "reason": "ok"}


def test_prove_signed_with_env_key(tmp_path, monkeypatch) -> None:
    blocks = _write_blocks(tmp_path, 2)
    monkeypatch.setenv("MERKLE_SDK_SIGNING_KEY", generate_private_key_b64())
    rc, out, _ = _run(["prove", *blocks, "--block", blocks[1], "--sign"], tmp_path)
    assert rc == 0
    assert "root_signature_b64" in json.loads(out)


def test_prove_sign_without_key(tmp_path) -> None:
    blocks = _write_blocks(tmp_path, 2)
    rc, _, err = _run(["prove", *blocks, "--block", blocks[0], "--sign"], tmp_path)
    assert rc == 1
    assert "--sign requires a key" in err


def test_verify_proof_invalid_bundle(tmp_path) -> None:
    bundle_path = tmp_path / "bad.json"
    bundle_path.write_text('{"path": []}', encoding="utf-8")
    rc, _, err = _run(["verify-proof", str(bundle_path)], tmp_path)
    assert rc == 1
    assert err.startswith("verify error:")

    bundle_path.write_text("{not json", encoding="utf-8")
    rc, _, err = _run(["verify-proof", str(bundle_path)], tmp_path)
    assert rc == 1
    assert "invalid bundle JSON" in err


def test_keygen_writes_private_file(tmp_path) -> None:
    key_path = tmp_path / "keys" / "root.key"
    rc, out, _ = _run(["keygen", "--out", str(key_path)], tmp_path)
    assert rc == 0
    assert str(key_path) in out
    assert oct(key_path.stat().st_mode & 0o777) == "0o600"
    load_private_key(key_path.read_text(encoding="utf-8"))

    rc, _, err = _run(["keygen", "--out", str(key_path)], tmp_path)
    assert rc == 1
    assert err.startswith("key error:")


def test_version_json(tmp_path) -> None:
    rc, out, _ = _run(["version", "--json"], tmp_path)
    assert rc == 0
    payload = json.loads(out)
    assert payload["bundle_version"] == "MPB-1"
    assert payload["hash_algorithm"] == "sha256"


def test_config_output_json_applies_without_flag(tmp_path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('[cli]\noutput = "json"\n', encoding="utf-8")
    out = io.StringIO()
    err = io.StringIO()
    rc = main(
        ["--config", str(config_path), "root", *_write_blocks(tmp_path, 4)],
        stdout=out,
        stderr=err,
    )
    assert rc == 0
    assert json.loads(out.getvalue())["root"] == ROOT_4


def test_invalid_config_is_validation_error(tmp_path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('output = "xml"\n', encoding="utf-8")
    out = io.StringIO()
    err = io.StringIO()
    rc = main(["--config", str(config_path), "version"], stdout=out, stderr=err)
    assert rc == 1
    assert err.getvalue().startswith("config error:")


def test_debug_logging_goes_to_stderr(tmp_path) -> None:
    rc, _, err = _run(["--log-level", "DEBUG", "root", *_write_blocks(tmp_path, 2)], tmp_path)
    assert rc == 0
    assert "built merkle tree" in err


def test_log_level_flag_is_case_insensitive(tmp_path) -> None:
    rc, _, err = _run(["--log-level", "debug", "root", *_write_blocks(tmp_path, 2)], tmp_path)
    assert rc == 0
    assert "built merkle tree" in err

    with pytest.raises(SystemExit) as excinfo:
        _run(["--log-level", "verbose", "version"], tmp_path)
    assert excinfo.value.code == 2


def test_config_log_level_drives_logging(tmp_path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('[cli]\nlog_level = "debug"\n', encoding="utf-8")
    out = io.StringIO()
    err = io.StringIO()
    rc = main(
        ["--config", str(config_path), "root", *_write_blocks(tmp_path, 2)],
        stdout=out,
        stderr=err,
    )
    assert rc == 0
    assert "built merkle tree" in err.getvalue()


def test_verify_proof_rejects_undecodable_bundle(tmp_path) -> None:
    bundle_path = tmp_path / "binary.json"
    bundle_path.write_bytes(b"\xff\xfe\x00")
    rc, _, err = _run(["verify-proof", str(bundle_path)], tmp_path)
    assert rc == 1
    assert "invalid bundle JSON" in err
