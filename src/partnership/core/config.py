"""
Partnership engine configuration.

Runtime settings come from environment variables; nothing here is a
secret. Values are read once at import and can be re-read with
``load_settings()``.

Environment:
    PARTNERSHIP_ENVIRONMENT    development | staging | production
    PARTNERSHIP_LOG_LEVEL      DEBUG | INFO | WARNING | ERROR | CRITICAL
    PARTNERSHIP_LOG_FILE       optional path for rotating JSON logs
    PARTNERSHIP_LOG_JSON       "1" for JSON console output (default), "0" for plain text
    PARTNERSHIP_RATE_DECIMALS  implied decimals of the exchange rate (default 2, i.e. x100)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_ENVIRONMENTS = ("development", "staging", "production")

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = True
    rate_decimals: int = 2


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}", details={"env_var": name}
        ) from exc
    if value < minimum:
        raise ConfigurationError(
            f"{name} must be >= {minimum}, got {value}", details={"env_var": name}
        )
    return value


def _get_choice(env: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    value = raw.upper() if choices is VALID_LOG_LEVELS else raw.lower()
    if value not in choices:
        raise ConfigurationError(
            f"{name} must be one of {', '.join(choices)}, got {raw!r}",
            details={"env_var": name},
        )
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    return Settings(
        environment=_get_choice(env, "PARTNERSHIP_ENVIRONMENT", "development", VALID_ENVIRONMENTS),
        log_level=_get_choice(env, "PARTNERSHIP_LOG_LEVEL", "INFO", VALID_LOG_LEVELS),
        log_file=env.get("PARTNERSHIP_LOG_FILE", "").strip() or None,
        log_json=env.get("PARTNERSHIP_LOG_JSON", "1").strip() != "0",
        rate_decimals=_get_int(env, "PARTNERSHIP_RATE_DECIMALS", 2),
    )


SETTINGS = load_settings()
