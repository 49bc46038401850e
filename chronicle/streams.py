from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, cast

import redis


@dataclass(frozen=True, slots=True)
class Timeline:
    """Per-game Redis Stream recording what happened in fiction time."""

    game_id: str

    @property
    def key(self) -> str:
        return f"timeline:{self.game_id}"


def publish_to_timeline(*, r: redis.Redis, timeline: Timeline, fields: Mapping[str, object]) -> str:
    """Append an entry to a game's timeline stream."""

    # Stream fields are flat strings; callers pre-render anything structured.
    stream_id = r.xadd(timeline.key, {str(k): str(v) for k, v in fields.items()})
    return cast(str, stream_id)


def publish_many(*, r: redis.Redis, entries: Sequence[tuple[str, Mapping[str, object]]]) -> list[str]:
    ids: list[str] = []
    for key, fields in entries:
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()})
        ids.append(cast(str, stream_id))
    return ids


def read_timeline(
    *,
    r: redis.Redis,
    timeline: Timeline,
    start: str = "-",
    end: str = "+",
    count: int | None = None,
) -> list[dict[str, object]]:
    entries = r.xrange(timeline.key, min=start, max=end, count=count)
    return [{"id": entry_id, "fields": fields} for entry_id, fields in entries]
