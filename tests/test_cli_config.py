from __future__ import annotations

import logging

import pytest

from merkle_sdk.cli.config import ConfigError, load_cli_config


def test_missing_config_uses_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("MERKLE_SDK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("MERKLE_SDK_SIGNING_KEY", raising=False)
    config = load_cli_config(tmp_path / "missing.toml")
    assert config.output == "text"
    assert config.log_level == "WARNING"
    assert config.log_level_value == logging.WARNING
    assert config.signing_key_path is None
    assert config.signing_key_b64 is None


def test_cli_table_is_read(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("MERKLE_SDK_LOG_LEVEL", raising=False)
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        '[cli]\noutput = "json"\nlog_level = "debug"\nsigning_key_path = "~/key.b64"\n',
        encoding="utf-8",
    )
    config = load_cli_config(config_path)
    assert config.output == "json"
    assert config.log_level == "DEBUG"
    assert config.signing_key_path == "~/key.b64"


def test_env_log_level_overrides_config_file(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('log_level = "ERROR"\n', encoding="utf-8")
    monkeypatch.setenv("MERKLE_SDK_LOG_LEVEL", "info")
    config = load_cli_config(config_path)
    assert config.log_level == "INFO"


def test_env_signing_key_is_picked_up(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("MERKLE_SDK_SIGNING_KEY", " abc= \n")
    config = load_cli_config(tmp_path / "missing.toml")
    assert config.signing_key_b64 == "abc="


@pytest.mark.parametrize(
    "content",
    [
        'output = "yaml"\n',
        'log_level = "LOUD"\n',
        'cli = "not a table"\n',
        "output = [\n",
    ],
)
def test_invalid_config_rejected(tmp_path, monkeypatch, content: str) -> None:
    monkeypatch.delenv("MERKLE_SDK_LOG_LEVEL", raising=False)
    config_path = tmp_path / "config.toml"
    config_path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_cli_config(config_path)
