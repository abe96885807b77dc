from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from leaddesk.core.env import load_env

DEFAULT_USER_DATA_DIR = Path.home() / ".leaddesk" / "data"
DEFAULT_API_BASE_URL = "http://localhost:5000"

_ENVIRONMENTS = {"development", "production", "staging", "test"}


@dataclass(frozen=True)
class Settings:
    environment: str  # development, production, staging, test
    data_dir: Path
    api_base_url: str
    api_timeout_seconds: float  # 0 disables the request timeout
    cache_ttl_seconds: float
    admin_cache_ttl_seconds: float
    auth_token_file: Path
    log_level: str
    log_json: bool
    log_file: str


def _get_float(name: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


load_env()


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir and env_dir.strip():
        return Path(env_dir).expanduser()
    return DEFAULT_USER_DATA_DIR


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment not in _ENVIRONMENTS:
        environment = "development"

    data_dir = _default_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)

    token_file_raw = _get_str("AUTH_TOKEN_FILE")
    token_file = Path(token_file_raw).expanduser() if token_file_raw else data_dir / "token"

    return Settings(
        environment=environment,
        data_dir=data_dir,
        api_base_url=_get_str("API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        api_timeout_seconds=_get_float("API_TIMEOUT_SECONDS", 15.0, minimum=0.0),
        cache_ttl_seconds=_get_float("CACHE_TTL_SECONDS", 30.0, minimum=0.0),
        admin_cache_ttl_seconds=_get_float("ADMIN_CACHE_TTL_SECONDS", 300.0, minimum=0.0),
        auth_token_file=token_file,
        log_level=_get_str("LOG_LEVEL", "INFO").upper(),
        log_json=_get_bool("LOG_JSON"),
        log_file=_get_str("LOG_FILE"),
    )


__all__ = ["Settings", "get_settings"]
