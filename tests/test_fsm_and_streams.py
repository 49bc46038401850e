from __future__ import annotations

from datetime import UTC, datetime

import fakeredis
import pytest
from statemachine.exceptions import TransitionNotAllowed

from chronicle.api.models import Recurrence, ScheduledEvent
from chronicle.core.calendar import GameDateTime
from chronicle.fsm import ScheduledEventFSM
from chronicle.streams import Timeline, publish_many, publish_to_timeline, read_timeline


def _event(*, recurring: Recurrence | None = None, triggered: bool = False) -> ScheduledEvent:
    return ScheduledEvent(
        event_id="e1",
        game_id="g1",
        name="Moonrise",
        trigger_time=GameDateTime(year=1, month=0, day=0, hour=20, minute=0),
        recurring=recurring,
        triggered=triggered,
        created_at=datetime.now(tz=UTC),
    )


def test_one_shot_event_finishes_when_fired() -> None:
    event = _event()
    fsm = ScheduledEventFSM(event)
    assert fsm.current_state.id == "pending"

    fsm.apply_firing()

    assert fsm.current_state.id == "triggered"
    assert event.triggered is True


def test_recurring_event_stays_pending() -> None:
    event = _event(recurring=Recurrence.weekly)
    fsm = ScheduledEventFSM(event)

    fsm.apply_firing()
    fsm.apply_firing()

    assert fsm.current_state.id == "pending"
    assert event.triggered is False


def test_triggered_event_cannot_fire_again() -> None:
    fsm = ScheduledEventFSM(_event(triggered=True))
    assert fsm.current_state.id == "triggered"

    with pytest.raises(TransitionNotAllowed):
        fsm.apply_firing()


def test_timeline_stream_round_trip(r: fakeredis.FakeRedis) -> None:
    timeline = Timeline(game_id="g1")
    assert timeline.key == "timeline:g1"

    first = publish_to_timeline(r=r, timeline=timeline, fields={"type": "note", "count": 3})
    publish_many(r=r, entries=[(timeline.key, {"type": "a"}), (timeline.key, {"type": "b"})])

    entries = read_timeline(r=r, timeline=timeline)
    assert entries[0]["id"] == first
    assert entries[0]["fields"] == {"type": "note", "count": "3"}
    assert [e["fields"]["type"] for e in entries] == ["note", "a", "b"]

    assert len(read_timeline(r=r, timeline=timeline, count=2)) == 2
    assert read_timeline(r=r, timeline=Timeline(game_id="other")) == []
