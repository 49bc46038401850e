from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import redis
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


def load_record(*, r: redis.Redis, key: str, model: type[M]) -> M | None:
    raw = r.get(key)
    if not raw:
        return None
    return model.model_validate_json(raw)


def load_collection(*, r: redis.Redis, index_key: str, key_for: Callable[[str], str], model: type[M]) -> list[M]:
    """Load every row whose id is a member of the `index_key` set.

    Ids whose row has gone missing are skipped.
    """

    ids = sorted(r.smembers(index_key))
    if not ids:
        return []
    raws = r.mget([key_for(i) for i in ids])
    return [model.model_validate_json(raw) for raw in raws if raw]


def delete_collection(*, r: redis.Redis, index_key: str, key_for: Callable[[str], str]) -> int:
    ids = list(r.smembers(index_key))
    keys = [key_for(i) for i in ids]
    if keys:
        r.delete(*keys)
    r.delete(index_key)
    return len(ids)
