"""
Runtime configuration for the shop service.

Settings are read from the environment once, at startup, and handed to the
components that need them.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

DEFAULT_MONGO_URL = "mongodb://mongo:27017/shopdb"
DEFAULT_DATABASE = "shopdb"


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    mongo_url: str = DEFAULT_MONGO_URL
    seed_size: int = 20000
    port: int = 3000
    host: str = "0.0.0.0"
    connect_max_attempts: int = 30
    connect_delay: float = 2.0
    log_level: str = "INFO"

    @property
    def database_name(self) -> str:
        """Database named in the URL path, e.g. ``shopdb`` for ``mongodb://host/shopdb``."""
        path = urlparse(self.mongo_url).path.lstrip("/")
        return path or DEFAULT_DATABASE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        seed_size = _env_int(env, "SEED_SIZE", 20000)
        if seed_size < 0:
            raise ValueError(f"SEED_SIZE must not be negative, got {seed_size}")
        return cls(
            mongo_url=env.get("MONGO_URL") or DEFAULT_MONGO_URL,
            seed_size=seed_size,
            port=_env_int(env, "PORT", 3000),
            host=env.get("HOST") or "0.0.0.0",
            connect_max_attempts=_env_int(env, "CONNECT_MAX_ATTEMPTS", 30),
            connect_delay=_env_float(env, "CONNECT_DELAY", 2.0),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
