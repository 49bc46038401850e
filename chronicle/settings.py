from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    log_level: str
    # Per-game lock expiry, so a crashed holder cannot wedge a game forever.
    lock_ttl_ms: int
    # How long a caller waits for a busy game before giving up.
    lock_wait_ms: int


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def settings_from_env() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        log_level=os.environ.get("CHRONICLE_LOG_LEVEL", "INFO").upper(),
        lock_ttl_ms=_int_from_env("CHRONICLE_LOCK_TTL_MS", 5_000),
        lock_wait_ms=_int_from_env("CHRONICLE_LOCK_WAIT_MS", 2_000),
    )
