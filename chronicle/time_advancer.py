"""Moving a game's clock and firing the scheduled events it crosses.

An event fires when its trigger time lies in the closed interval
[previous time, new time]. A recurring event is moved forward by one
recurrence step per advance, even when the advance spans several periods; a
one-shot event is marked triggered and never scanned again. Moving the clock
backwards fires nothing.
"""

from __future__ import annotations

import logging

import redis

from chronicle.api.models import AdvanceResult, Recurrence, ScheduledEvent
from chronicle.core.calendar import CalendarConfig, GameDateTime, is_canonical
from chronicle.core.time_converter import (
    compare,
    duration_minutes,
    format_datetime,
    from_epoch_minutes,
    to_epoch_minutes,
)
from chronicle.event_store import load_game_events, save_event, sort_events
from chronicle.fsm import ScheduledEventFSM
from chronicle.game_store import get_clock, save_clock
from chronicle.lock import game_lock
from chronicle.streams import Timeline, publish_many

logger = logging.getLogger(__name__)


def next_occurrence(trigger_time: GameDateTime, recurring: Recurrence | str, cfg: CalendarConfig) -> GameDateTime:
    """One recurrence step forward from `trigger_time`.

    Monthly steps use the length of the month the trigger currently sits in,
    not the month it lands in.
    """

    rule = Recurrence(recurring)
    if rule == Recurrence.daily:
        step = cfg.minutes_per_day
    elif rule == Recurrence.weekly:
        step = 7 * cfg.minutes_per_day
    elif rule == Recurrence.monthly:
        step = cfg.days_per_month[trigger_time.month] * cfg.minutes_per_day
    else:
        step = cfg.minutes_per_year
    return from_epoch_minutes(to_epoch_minutes(trigger_time, cfg) + step, cfg)


def is_crossed(trigger_time: GameDateTime, previous: GameDateTime, new: GameDateTime, cfg: CalendarConfig) -> bool:
    return compare(trigger_time, previous, cfg) >= 0 and compare(trigger_time, new, cfg) <= 0


def advance_time(
    *,
    r: redis.Redis,
    game_id: str,
    days: int = 0,
    hours: int = 0,
    minutes: int = 0,
) -> AdvanceResult | None:
    """Advance the game clock and fire crossed events.

    Returns None if the game has no calendar yet; nothing is written then.
    The clock, the event updates and the timeline entries are committed in
    one MULTI/EXEC while holding the game lock.
    """

    with game_lock(r=r, game_id=game_id):
        clock = get_clock(r=r, game_id=game_id)
        if clock is None:
            return None

        cfg = clock.calendar_config
        previous_time = clock.current_time
        total = to_epoch_minutes(previous_time, cfg) + duration_minutes(cfg, days=days, hours=hours, minutes=minutes)
        new_time = from_epoch_minutes(total, cfg)

        candidates: list[ScheduledEvent] = []
        for event in load_game_events(r=r, game_id=game_id):
            if event.triggered:
                continue
            if not is_canonical(event.trigger_time, cfg):
                logger.warning(
                    "skipping event %s (%s) for game %s: trigger time is not a valid date in the calendar",
                    event.event_id,
                    event.name,
                    game_id,
                )
                continue
            candidates.append(event)
        crossed = sort_events((e for e in candidates if is_crossed(e.trigger_time, previous_time, new_time, cfg)), clock)

        fired: list[ScheduledEvent] = []
        updated: list[ScheduledEvent] = []
        for event in crossed:
            fired.append(event.model_copy(update={"triggered": True}))

            stored = event.model_copy()
            ScheduledEventFSM(stored).apply_firing()
            if stored.recurring is not None:
                stored.trigger_time = next_occurrence(event.trigger_time, stored.recurring, cfg)
            updated.append(stored)

        timeline = Timeline(game_id=game_id)
        entries: list[tuple[str, dict[str, object]]] = [
            (
                timeline.key,
                {
                    "type": "time_advanced",
                    "game_id": game_id,
                    "previous_time": format_datetime(previous_time, cfg),
                    "new_time": format_datetime(new_time, cfg),
                    "triggered_count": len(fired),
                },
            )
        ]
        for event in fired:
            entries.append(
                (
                    timeline.key,
                    {
                        "type": "scheduled_event_triggered",
                        "game_id": game_id,
                        "event_id": event.event_id,
                        "name": event.name,
                        "trigger_time": format_datetime(event.trigger_time, cfg),
                        "recurring": event.recurring.value if event.recurring else "",
                    },
                )
            )

        clock.current_time = new_time
        pipe = r.pipeline(transaction=True)
        save_clock(r=pipe, clock=clock)
        for stored in updated:
            save_event(r=pipe, event=stored)
        publish_many(r=pipe, entries=entries)
        pipe.execute()

    logger.info(
        "advanced game %s from %s to %s; %d event(s) triggered",
        game_id,
        format_datetime(previous_time, cfg),
        format_datetime(new_time, cfg),
        len(fired),
    )
    for event in fired:
        logger.info("event %s (%s) triggered for game %s", event.event_id, event.name, game_id)

    return AdvanceResult(previous_time=previous_time, new_time=new_time, triggered_events=fired)
