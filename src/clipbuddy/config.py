from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_MAX_ITEMS = 50
DEFAULT_KEY_PREFIX = "clipbuddy"
DEFAULT_REDIS_TIMEOUT = 5.0


def _load_env_file(env_path: Optional[Path] = None) -> None:
    # existing environment variables win over the file
    if env_path is not None:
        load_dotenv(env_path, override=False)
    else:
        load_dotenv(override=False)


def _to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    decode_responses: bool = True
    socket_timeout: float = DEFAULT_REDIS_TIMEOUT

    def __post_init__(self) -> None:
        if self.socket_timeout <= 0:
            raise ValueError("socket_timeout must be positive")

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "RedisConfig":
        _load_env_file(env_path)

        timeout_raw = os.getenv("REDIS_TIMEOUT")
        socket_timeout = float(timeout_raw) if timeout_raw else DEFAULT_REDIS_TIMEOUT

        uri = os.getenv("REDIS_URI")
        if uri:
            return replace(cls.from_uri(uri), socket_timeout=socket_timeout)

        host = os.getenv("REDIS_HOST", cls.host)
        port_raw = os.getenv("REDIS_PORT")
        db_raw = os.getenv("REDIS_DB")
        password = os.getenv("REDIS_PASSWORD") or None

        port = int(port_raw) if port_raw else cls.port
        db = int(db_raw) if db_raw else cls.db

        return cls(host=host, port=port, db=db, password=password,
                   socket_timeout=socket_timeout)

    @classmethod
    def from_uri(cls, uri: str) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ValueError(
                f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        host = parsed.hostname or cls.host
        port = parsed.port or cls.port
        password = parsed.password or None
        db_fragment = parsed.path.lstrip("/")
        db = int(db_fragment) if db_fragment else cls.db

        return cls(host=host, port=port, db=db, password=password)


@dataclass(frozen=True)
class EngineConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_unpinned: int = DEFAULT_MAX_ITEMS
    ignore_own_writes: bool = True
    key_prefix: str = DEFAULT_KEY_PREFIX
    redis: RedisConfig = field(default_factory=RedisConfig)

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.max_unpinned < 1:
            raise ValueError("max_unpinned must be at least 1")

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "EngineConfig":
        _load_env_file(env_path)

        poll_raw = os.getenv("CLIPBUDDY_POLL_INTERVAL")
        max_raw = os.getenv("CLIPBUDDY_MAX_ITEMS")

        return cls(
            poll_interval=float(poll_raw) if poll_raw else DEFAULT_POLL_INTERVAL,
            max_unpinned=int(max_raw) if max_raw else DEFAULT_MAX_ITEMS,
            ignore_own_writes=_to_bool(
                os.getenv("CLIPBUDDY_IGNORE_OWN_WRITES"), default=True),
            key_prefix=os.getenv("CLIPBUDDY_KEY_PREFIX") or DEFAULT_KEY_PREFIX,
            redis=RedisConfig.from_env(env_path=env_path),
        )
