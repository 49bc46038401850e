from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis

from chronicle.api.models import GameClock, Recurrence, ScheduledEvent
from chronicle.core.calendar import GameDateTime, require_canonical
from chronicle.core.time_converter import to_epoch_minutes
from chronicle.game_store import get_clock
from chronicle.infra.records import delete_collection, load_collection, load_record
from chronicle.lock import game_lock

logger = logging.getLogger(__name__)


EVENT_KEY_PREFIX = "chronicle:event:"  # + {event_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _event_key(event_id: str) -> str:
    return f"{EVENT_KEY_PREFIX}{event_id}"


def _game_events_key(game_id: str) -> str:
    return f"chronicle:game:{game_id}:events"


def save_event(*, r: redis.Redis, event: ScheduledEvent) -> None:
    r.set(_event_key(event.event_id), event.model_dump_json())
    r.sadd(_game_events_key(event.game_id), event.event_id)


def get_event(*, r: redis.Redis, event_id: str) -> ScheduledEvent | None:
    return load_record(r=r, key=_event_key(event_id), model=ScheduledEvent)


def load_game_events(*, r: redis.Redis, game_id: str) -> list[ScheduledEvent]:
    return load_collection(r=r, index_key=_game_events_key(game_id), key_for=_event_key, model=ScheduledEvent)


def sort_events(events: Iterable[ScheduledEvent], clock: GameClock | None) -> list[ScheduledEvent]:
    """Order by trigger time under the game's calendar.

    Without a clock there is no calendar, so fall back to the field tuple,
    which orders canonical dates the same way.
    """

    if clock is None:
        return sorted(events, key=lambda e: (e.trigger_time.as_tuple(), e.created_at))
    cfg = clock.calendar_config
    return sorted(events, key=lambda e: (to_epoch_minutes(e.trigger_time, cfg), e.created_at))


def schedule_event(
    *,
    r: redis.Redis,
    game_id: str,
    name: str,
    trigger_time: GameDateTime,
    description: str = "",
    recurring: Recurrence | str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ScheduledEvent:
    """Schedule a trigger for the game.

    The trigger time may already be in the past; it is only looked at on the
    next advance. When the game has a calendar, the date must be valid in it.
    """

    if not name or not name.strip():
        raise ValueError("Event name is required")

    event = ScheduledEvent(
        event_id=str(uuid4()),
        game_id=game_id,
        name=name,
        description=description or "",
        trigger_time=trigger_time,
        recurring=Recurrence(recurring) if recurring else None,
        triggered=False,
        metadata=dict(metadata or {}),
        created_at=_now(),
    )

    with game_lock(r=r, game_id=game_id):
        clock = get_clock(r=r, game_id=game_id)
        if clock is not None:
            require_canonical(trigger_time, clock.calendar_config)
        save_event(r=r, event=event)

    logger.info("scheduled event %s (%s) for game %s", event.event_id, event.name, game_id)
    return event


def list_events(*, r: redis.Redis, game_id: str, include_triggered: bool = False) -> list[ScheduledEvent]:
    events = load_game_events(r=r, game_id=game_id)
    if not include_triggered:
        events = [e for e in events if not e.triggered]
    return sort_events(events, get_clock(r=r, game_id=game_id))


def cancel_event(*, r: redis.Redis, event_id: str) -> bool:
    event = get_event(r=r, event_id=event_id)
    if event is None:
        return False

    with game_lock(r=r, game_id=event.game_id):
        removed = r.delete(_event_key(event_id))
        r.srem(_game_events_key(event.game_id), event_id)

    if removed:
        logger.info("cancelled event %s for game %s", event_id, event.game_id)
    return bool(removed)


def delete_game_events(*, r: redis.Redis, game_id: str) -> int:
    return delete_collection(r=r, index_key=_game_events_key(game_id), key_for=_event_key)
