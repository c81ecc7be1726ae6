"""Settings assembled once from the config file and the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from tv_errors import ConfigError

logger = logging.getLogger(__name__)

PROGRAM_NAME = "tv-power"
CONFIG_FILE = "tv-power.conf"
_CONFIG_PATH_ENV = "TV_POWER_CONFIG"

CONFIG_KEYS = (
    "MAC",
    "ADDR",
    "OUTPUT",
    "WOL_BROADCAST",
    "ADB_TIMEOUT_SECONDS",
    "RETRY_DELAY_MS",
    "LOG_LEVEL",
    "LOG_FILE",
)


def config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / PROGRAM_NAME
    home = env.get("HOME")
    if not home:
        raise ConfigError(
            "Can't find the config directory as neither $XDG_CONFIG_HOME nor $HOME are set"
        )
    return Path(home) / ".config" / PROGRAM_NAME


def config_file(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    explicit = env.get(_CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit)
    return config_dir(env) / CONFIG_FILE


def read_config_file(path: Path) -> Dict[str, str]:
    """Read ``KEY=value`` lines. A missing file yields no values."""
    logger.debug("Using config file path %s", path)
    if not path.exists():
        logger.debug("Ignoring config file %s as it doesn't exist", path)
        return {}
    try:
        raw = dotenv_values(path, interpolate=False)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc

    values: Dict[str, str] = {}
    for key, value in raw.items():
        upper = key.upper()
        if upper not in CONFIG_KEYS:
            logger.warning("Unexpected configuration key %s", key)
            valid = ", ".join(sorted(CONFIG_KEYS)).lower()
            logger.warning("Valid keys are %s (case insensitive)", valid)
            continue
        if value is None:
            logger.warning("Ignoring configuration key %s without a value", key)
            continue
        values[upper] = value
    return values


def merge_sources(
    file_values: Mapping[str, str],
    environ: Mapping[str, str],
) -> Dict[str, str]:
    """The environment wins over the config file."""
    merged: Dict[str, str] = {}
    for key in CONFIG_KEYS:
        env_value = environ.get(key)
        file_value = file_values.get(key)
        if env_value is not None:
            if file_value is not None:
                logger.debug(
                    "Not using %s=%r from config as it's set to %r in the environment",
                    key, file_value, env_value,
                )
            merged[key] = env_value
        elif file_value is not None:
            logger.debug("Using %s=%r from config", key, file_value)
            merged[key] = file_value
    return merged


def _float(values: Mapping[str, str], key: str, default: float) -> float:
    raw = (values.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def _text(values: Mapping[str, str], key: str) -> Optional[str]:
    return (values.get(key) or "").strip() or None


@dataclass(frozen=True)
class Settings:
    mac: Optional[str]
    addr: Optional[str]
    output: Optional[str]
    wol_broadcast: Optional[str]
    adb_timeout: float
    retry_delay: float
    log_level: str
    log_file: Optional[str]

    @staticmethod
    def from_values(values: Mapping[str, str]) -> "Settings":
        retry_ms = _float(values, "RETRY_DELAY_MS", 200.0)
        adb_timeout = _float(values, "ADB_TIMEOUT_SECONDS", 5.0)
        if retry_ms < 0 or adb_timeout <= 0:
            raise ConfigError("RETRY_DELAY_MS must be >= 0 and ADB_TIMEOUT_SECONDS > 0")
        return Settings(
            mac=_text(values, "MAC"),
            addr=_text(values, "ADDR"),
            output=_text(values, "OUTPUT"),
            wol_broadcast=_text(values, "WOL_BROADCAST"),
            adb_timeout=adb_timeout,
            retry_delay=retry_ms / 1000.0,
            log_level=(_text(values, "LOG_LEVEL") or "INFO").upper(),
            log_file=_text(values, "LOG_FILE"),
        )

    @staticmethod
    def load(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build Settings from the config file plus the process environment."""
        env = os.environ if environ is None else environ
        file_values = read_config_file(config_file(env))
        return Settings.from_values(merge_sources(file_values, env))
