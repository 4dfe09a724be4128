"""Client configuration loaded from TOML and the environment."""

from __future__ import annotations

import os
import random
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from bigrow.errors import StatusCode
from bigrow.retry import MAX_ATTEMPTS, MAX_DELAY_MICROS, RETRYABLE_CODES, BackoffPolicy
from bigrow.transport import CallOptions

DEFAULT_CONFIG_PATH = Path("~/.config/bigrow/config.toml").expanduser()
APP_PROFILE_ENV = "BIGROW_APP_PROFILE_ID"
DEFAULT_LOG_LEVEL = "INFO"

_DEFAULT_RETRYABLE = sorted(code.name for code in RETRYABLE_CODES)
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}


class ClientConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    app_profile_id: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    max_attempts: int = Field(default=MAX_ATTEMPTS, ge=1, le=10)
    max_delay_micros: int = Field(default=MAX_DELAY_MICROS, ge=1)
    retryable_codes: list[str] = Field(default_factory=lambda: list(_DEFAULT_RETRYABLE))
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str = ""

    @field_validator("retryable_codes")
    @classmethod
    def _validate_codes(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for name in value:
            key = name.strip().upper()
            if key not in StatusCode.__members__:
                raise ValueError(f"Unknown status code: {name}")
            if key == StatusCode.OK.name:
                raise ValueError("OK cannot be retried")
            if key not in normalized:
                normalized.append(key)
        return normalized

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return normalized

    def backoff_policy(self, rng: random.Random | None = None) -> BackoffPolicy:
        return BackoffPolicy(
            max_attempts=self.max_attempts,
            max_delay_micros=self.max_delay_micros,
            retryable_codes=frozenset(StatusCode[name] for name in self.retryable_codes),
            rng=rng or random.Random(),
        )

    def call_options(self) -> CallOptions:
        options = CallOptions()
        if self.app_profile_id:
            options["app_profile_id"] = self.app_profile_id
        if self.headers:
            options["headers"] = dict(self.headers)
        return options


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _normalize_headers(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {
        name.strip(): header
        for name, header in value.items()
        if isinstance(name, str) and name.strip() and isinstance(header, str)
    }


def _normalize_codes(value: object) -> list[str] | None:
    if not isinstance(value, list):
        return None
    names = [item.strip().upper() for item in value if isinstance(item, str)]
    if any(name not in StatusCode.__members__ or name == StatusCode.OK.name for name in names):
        return None
    return names


def _sanitize(raw: dict[str, object]) -> ClientConfig:
    cfg = ClientConfig()

    app_profile_id = raw.get("app_profile_id", cfg.app_profile_id)
    if isinstance(app_profile_id, str):
        cfg.app_profile_id = app_profile_id.strip()
    env_profile = os.getenv(APP_PROFILE_ENV, "").strip()
    if env_profile:
        cfg.app_profile_id = env_profile

    cfg.headers = _normalize_headers(raw.get("headers", {}))

    max_attempts = raw.get("max_attempts", cfg.max_attempts)
    if isinstance(max_attempts, int) and not isinstance(max_attempts, bool) and 1 <= max_attempts <= 10:
        cfg.max_attempts = max_attempts

    max_delay = raw.get("max_delay_micros", cfg.max_delay_micros)
    if isinstance(max_delay, int) and not isinstance(max_delay, bool) and max_delay >= 1:
        cfg.max_delay_micros = max_delay

    codes = _normalize_codes(raw.get("retryable_codes"))
    if codes is not None:
        cfg.retryable_codes = codes

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and log_level.strip().upper() in _VALID_LOG_LEVELS:
        cfg.log_level = log_level

    log_file = raw.get("log_file", cfg.log_file)
    if isinstance(log_file, str):
        cfg.log_file = log_file.strip()

    return cfg


def load_config(path: str | Path | None = None) -> ClientConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _sanitize({})
    if not isinstance(raw, dict):
        return _sanitize({})
    return _sanitize(raw)
