from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import redis

from chronicle.api.models import GameClock
from chronicle.core.calendar import GameDateTime, canonical_errors, merge_calendar, require_canonical
from chronicle.lock import game_lock

logger = logging.getLogger(__name__)


GAMES_SET_KEY = "chronicle:games"
CLOCK_KEY_PREFIX = "chronicle:clock:"  # + {game_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _clock_key(game_id: str) -> str:
    return f"{CLOCK_KEY_PREFIX}{game_id}"


def save_clock(*, r: redis.Redis, clock: GameClock) -> None:
    clock.last_updated_at = _now()
    r.set(_clock_key(clock.game_id), clock.model_dump_json())
    r.sadd(GAMES_SET_KEY, clock.game_id)


def get_clock(*, r: redis.Redis, game_id: str) -> GameClock | None:
    raw = r.get(_clock_key(game_id))
    if not raw:
        return None
    return GameClock.model_validate_json(raw)


def establish_calendar(
    *,
    r: redis.Redis,
    game_id: str,
    config_overrides: dict[str, Any] | None = None,
    initial_time: GameDateTime | None = None,
) -> GameClock:
    """Create (or replace) the game's clock.

    Overrides are merged onto the default calendar. Without `initial_time`
    the clock starts at 08:00 on the first day of `start_year`. Every pending
    event of the game must be a valid date in the new calendar, including
    events scheduled before the game had one.
    """

    from chronicle.event_store import load_game_events

    calendar = merge_calendar(config_overrides)
    if initial_time is None:
        initial_time = GameDateTime(year=calendar.start_year, month=0, day=0, hour=8, minute=0)
    else:
        require_canonical(initial_time, calendar)

    clock = GameClock(
        game_id=game_id,
        current_time=initial_time,
        calendar_config=calendar,
        last_updated_at=_now(),
    )

    with game_lock(r=r, game_id=game_id):
        invalid: list[str] = []
        for event in load_game_events(r=r, game_id=game_id):
            if event.triggered:
                continue
            errors = canonical_errors(event.trigger_time, calendar)
            if errors:
                invalid.append(f"{event.name!r} ({'; '.join(errors)})")
        if invalid:
            raise ValueError("Scheduled events do not fit the new calendar: " + ", ".join(invalid))

        replaced = r.exists(_clock_key(game_id))
        save_clock(r=r, clock=clock)

    logger.info(
        "%s calendar for game %s (%d months, %d days/year)",
        "replaced" if replaced else "established",
        game_id,
        len(calendar.month_names),
        calendar.days_per_year,
    )
    return clock


def set_time(*, r: redis.Redis, game_id: str, time: GameDateTime) -> GameClock | None:
    """Jump the clock to `time` without firing any scheduled events."""

    with game_lock(r=r, game_id=game_id):
        clock = get_clock(r=r, game_id=game_id)
        if clock is None:
            return None
        require_canonical(time, clock.calendar_config)
        clock.current_time = time
        save_clock(r=r, clock=clock)
    return clock


def list_clocks(*, r: redis.Redis) -> list[GameClock]:
    out: list[GameClock] = []
    for game_id in sorted(r.smembers(GAMES_SET_KEY)):
        clock = get_clock(r=r, game_id=game_id)
        if clock is not None:
            out.append(clock)
    out.sort(key=lambda c: c.last_updated_at, reverse=True)
    return out


def purge_game(*, r: redis.Redis, game_id: str) -> bool:
    """Delete everything the game owns. Returns True if it had a clock."""

    from chronicle import abilities, event_store, status_effects, timers
    from chronicle.streams import Timeline

    with game_lock(r=r, game_id=game_id):
        had_clock = bool(r.delete(_clock_key(game_id)))
        r.srem(GAMES_SET_KEY, game_id)
        n_events = event_store.delete_game_events(r=r, game_id=game_id)
        n_effects = status_effects.delete_game_status_effects(r=r, game_id=game_id)
        n_abilities = abilities.delete_game_abilities(r=r, game_id=game_id)
        n_timers = timers.delete_game_timers(r=r, game_id=game_id)
        r.delete(Timeline(game_id=game_id).key)

    logger.info(
        "purged game %s: clock=%s events=%d status_effects=%d abilities=%d timers=%d",
        game_id,
        had_clock,
        n_events,
        n_effects,
        n_abilities,
        n_timers,
    )
    return had_clock
