from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from uuid import uuid4

import redis

from chronicle.settings import settings_from_env

logger = logging.getLogger(__name__)


class GameBusyError(ValueError):
    """Another caller holds the game lock."""


def lock_key(game_id: str) -> str:
    return f"lock:game:{game_id}"


@contextmanager
def game_lock(*, r: redis.Redis, game_id: str, ttl_ms: int | None = None, wait_ms: int | None = None):
    """Per-game lock serializing every mutating operation on one game.

    The key holds a unique token so only the holder releases it; the TTL
    bounds how long a crashed holder can keep the game locked. Acquisition
    polls until `wait_ms` elapses, then raises GameBusyError.

    Waiting blocks the calling thread; async handlers must run the locked
    store call through `run_in_threadpool`.
    """

    settings = settings_from_env()
    ttl = settings.lock_ttl_ms if ttl_ms is None else ttl_ms
    wait = settings.lock_wait_ms if wait_ms is None else wait_ms

    key = lock_key(game_id)
    token = uuid4().hex
    deadline = time.monotonic() + wait / 1000

    while not r.set(key, token, nx=True, px=ttl):
        if time.monotonic() >= deadline:
            logger.warning("gave up waiting for lock on game %s", game_id)
            raise GameBusyError("Game is busy")
        time.sleep(0.01)

    try:
        yield
    finally:
        # Not atomic, but the TTL only lapses if the holder overran it.
        if r.get(key) == token:
            r.delete(key)
