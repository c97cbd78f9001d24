"""Configuration helpers for the merkle CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path.home() / ".merkle_sdk" / "config.toml"
LOG_LEVEL_ENV_VAR = "MERKLE_SDK_LOG_LEVEL"
SIGNING_KEY_ENV_VAR = "MERKLE_SDK_SIGNING_KEY"

_OUTPUT_FORMATS = {"text", "json"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class CLIConfig:
    output: str = "text"
    log_level: str = "WARNING"
    signing_key_path: str | None = None
    # Base64 private key taken from the environment; never read from the config file
    signing_key_b64: str | None = None

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _normalize_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of: {', '.join(sorted(LOG_LEVELS))}")
    return level


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    parsed: dict[str, Any] = _load_toml(config_path) if config_path.exists() else {}

    section = parsed.get("cli")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[cli] must be a table")

    output = str(source.get("output", "text")).strip().lower()
    if output not in _OUTPUT_FORMATS:
        raise ConfigError("output must be one of: json, text")

    env_log_level = os.getenv(LOG_LEVEL_ENV_VAR)
    log_level = _normalize_log_level(env_log_level or source.get("log_level", "WARNING"))

    signing_key_path_raw = source.get("signing_key_path")
    if signing_key_path_raw is None:
        signing_key_path = None
    else:
        signing_key_path = str(signing_key_path_raw).strip() or None

    env_signing_key = os.getenv(SIGNING_KEY_ENV_VAR)
    signing_key_b64 = env_signing_key.strip() if env_signing_key else None

    return CLIConfig(
        output=output,
        log_level=log_level,
        signing_key_path=signing_key_path,
        signing_key_b64=signing_key_b64,
    )
