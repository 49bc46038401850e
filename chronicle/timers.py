from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import uuid4

import redis

from chronicle.api.models import Timer, TimerDirection, TimerTickResult, TimerType
from chronicle.infra.records import delete_collection, load_collection, load_record
from chronicle.lock import game_lock

logger = logging.getLogger(__name__)


TIMER_KEY_PREFIX = "chronicle:timer:"  # + {timer_id}

DEFAULT_CLOCK_SEGMENTS = 6


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _timer_key(timer_id: str) -> str:
    return f"{TIMER_KEY_PREFIX}{timer_id}"


def _game_timers_key(game_id: str) -> str:
    return f"chronicle:game:{game_id}:timers"


def save_timer(*, r: redis.Redis, timer: Timer) -> None:
    r.set(_timer_key(timer.timer_id), timer.model_dump_json())
    r.sadd(_game_timers_key(timer.game_id), timer.timer_id)


def get_timer(*, r: redis.Redis, timer_id: str) -> Timer | None:
    return load_record(r=r, key=_timer_key(timer_id), model=Timer)


def list_timers(*, r: redis.Redis, game_id: str, include_triggered: bool = False) -> list[Timer]:
    timers = load_collection(r=r, index_key=_game_timers_key(game_id), key_for=_timer_key, model=Timer)
    if not include_triggered:
        timers = [t for t in timers if not t.triggered]
    timers.sort(key=lambda t: (t.name, t.created_at))
    return timers


def create_timer(
    *,
    r: redis.Redis,
    game_id: str,
    name: str,
    timer_type: TimerType | str,
    description: str = "",
    current_value: int | None = None,
    max_value: int | None = None,
    direction: TimerDirection | str | None = None,
    trigger_at: int | None = None,
    unit: str = "tick",
    visible_to_players: bool = True,
) -> Timer:
    """Create a countdown, stopwatch or segmented clock.

    Defaults: stopwatches count up, everything else counts down; clocks get
    six segments; a downward timer with a max starts full; the trigger point
    is 0 going down and the max going up.
    """

    timer_type = TimerType(timer_type)
    if direction is None:
        direction = TimerDirection.up if timer_type == TimerType.stopwatch else TimerDirection.down
    direction = TimerDirection(direction)

    if max_value is None and timer_type == TimerType.clock:
        max_value = DEFAULT_CLOCK_SEGMENTS
    if current_value is None:
        current_value = max_value if direction == TimerDirection.down and max_value else 0
    if trigger_at is None:
        trigger_at = 0 if direction == TimerDirection.down else max_value

    timer = Timer(
        timer_id=str(uuid4()),
        game_id=game_id,
        name=name,
        description=description,
        timer_type=timer_type,
        current_value=current_value,
        max_value=max_value,
        direction=direction,
        trigger_at=trigger_at,
        triggered=False,
        unit=unit,
        visible_to_players=visible_to_players,
        created_at=_now(),
    )
    with game_lock(r=r, game_id=game_id):
        save_timer(r=r, timer=timer)
    return timer


def tick_timer(*, r: redis.Redis, timer_id: str, amount: int = 1) -> TimerTickResult | None:
    timer = get_timer(r=r, timer_id=timer_id)
    if timer is None:
        return None

    with game_lock(r=r, game_id=timer.game_id):
        timer = get_timer(r=r, timer_id=timer_id)
        if timer is None:
            return None

        previous = timer.current_value
        if timer.direction == TimerDirection.up:
            value = previous + amount
            if timer.max_value is not None:
                value = min(value, timer.max_value)
        else:
            value = max(previous - amount, 0)

        just_triggered = False
        if not timer.triggered and timer.trigger_at is not None:
            if timer.direction == TimerDirection.down:
                just_triggered = value <= timer.trigger_at
            else:
                just_triggered = value >= timer.trigger_at

        timer.current_value = value
        timer.triggered = timer.triggered or just_triggered
        save_timer(r=r, timer=timer)

    if just_triggered:
        logger.info("timer %s (%s) triggered for game %s", timer.timer_id, timer.name, timer.game_id)
    return TimerTickResult(timer=timer, previous_value=previous, just_triggered=just_triggered)


def reset_timer(*, r: redis.Redis, timer_id: str) -> Timer | None:
    timer = get_timer(r=r, timer_id=timer_id)
    if timer is None:
        return None

    with game_lock(r=r, game_id=timer.game_id):
        timer = get_timer(r=r, timer_id=timer_id)
        if timer is None:
            return None
        if timer.direction == TimerDirection.down and timer.max_value is not None:
            timer.current_value = timer.max_value
        else:
            timer.current_value = 0
        timer.triggered = False
        save_timer(r=r, timer=timer)
    return timer


def delete_timer(*, r: redis.Redis, timer_id: str) -> bool:
    timer = get_timer(r=r, timer_id=timer_id)
    if timer is None:
        return False
    with game_lock(r=r, game_id=timer.game_id):
        removed = r.delete(_timer_key(timer_id))
        r.srem(_game_timers_key(timer.game_id), timer_id)
    return bool(removed)


def delete_game_timers(*, r: redis.Redis, game_id: str) -> int:
    return delete_collection(r=r, index_key=_game_timers_key(game_id), key_for=_timer_key)
