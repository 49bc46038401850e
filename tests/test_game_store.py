from __future__ import annotations

import fakeredis
import pytest

from chronicle.abilities import create_ability, list_abilities
from chronicle.core.calendar import GameDateTime
from chronicle.event_store import list_events, schedule_event
from chronicle.game_store import GAMES_SET_KEY, establish_calendar, get_clock, list_clocks, purge_game, set_time
from chronicle.status_effects import apply_status_effect, list_status_effects
from chronicle.streams import Timeline, publish_to_timeline
from chronicle.timers import create_timer, list_timers


def test_establish_with_defaults_starts_at_eight_on_day_one(r: fakeredis.FakeRedis) -> None:
    clock = establish_calendar(r=r, game_id="g1")

    assert clock.current_time == GameDateTime(year=1, month=0, day=0, hour=8, minute=0)
    assert clock.calendar_config.month_names[0] == "Deepwinter"
    assert get_clock(r=r, game_id="g1") == clock
    assert "g1" in r.smembers(GAMES_SET_KEY)


def test_establish_default_start_follows_start_year(r: fakeredis.FakeRedis) -> None:
    clock = establish_calendar(r=r, game_id="g1", config_overrides={"start_year": 1492})
    assert clock.current_time.year == 1492


def test_establish_is_an_upsert(r: fakeredis.FakeRedis, tiny_calendar: dict[str, object]) -> None:
    establish_calendar(r=r, game_id="g1")
    start = GameDateTime(year=1, month=1, day=2, hour=1, minute=30)
    clock = establish_calendar(r=r, game_id="g1", config_overrides=tiny_calendar, initial_time=start)

    stored = get_clock(r=r, game_id="g1")
    assert stored is not None
    assert stored.calendar_config.month_names == ["Ember", "Frost"]
    assert stored.current_time == start
    assert clock.calendar_config.days_per_year == 6
    assert len(list_clocks(r=r)) == 1


def test_establish_rejects_initial_time_outside_calendar(r: fakeredis.FakeRedis, tiny_calendar: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        establish_calendar(
            r=r,
            game_id="g1",
            config_overrides=tiny_calendar,
            initial_time=GameDateTime(year=1, month=0, day=3, hour=0, minute=0),
        )
    assert get_clock(r=r, game_id="g1") is None


def test_establish_rejects_bad_calendar(r: fakeredis.FakeRedis) -> None:
    with pytest.raises(ValueError):
        establish_calendar(r=r, game_id="g1", config_overrides={"hours_per_day": 0})


def test_set_time(r: fakeredis.FakeRedis) -> None:
    assert set_time(r=r, game_id="nope", time=GameDateTime(year=1, month=0, day=0, hour=0, minute=0)) is None

    establish_calendar(r=r, game_id="g1")
    target = GameDateTime(year=7, month=3, day=14, hour=22, minute=15)
    clock = set_time(r=r, game_id="g1", time=target)
    assert clock is not None
    assert clock.current_time == target

    with pytest.raises(ValueError):
        set_time(r=r, game_id="g1", time=GameDateTime(year=7, month=12, day=0, hour=0, minute=0))
    stored = get_clock(r=r, game_id="g1")
    assert stored is not None
    assert stored.current_time == target


def test_list_clocks_newest_first(r: fakeredis.FakeRedis) -> None:
    establish_calendar(r=r, game_id="a")
    establish_calendar(r=r, game_id="b")
    set_time(r=r, game_id="a", time=GameDateTime(year=2, month=0, day=0, hour=0, minute=0))

    assert [c.game_id for c in list_clocks(r=r)] == ["a", "b"]


def test_purge_game_removes_everything_for_that_game_only(r: fakeredis.FakeRedis) -> None:
    when = GameDateTime(year=1, month=0, day=1, hour=0, minute=0)
    for gid in ("g1", "g2"):
        establish_calendar(r=r, game_id=gid)
        schedule_event(r=r, game_id=gid, name="Market day", trigger_time=when)
        apply_status_effect(r=r, game_id=gid, target_id="pc-1", name="Blessed", duration=3)
        create_ability(r=r, game_id=gid, name="Smite", owner_id="pc-1", cooldown=2)
        create_timer(r=r, game_id=gid, name="Doom", timer_type="clock")
        publish_to_timeline(r=r, timeline=Timeline(game_id=gid), fields={"type": "note"})

    assert purge_game(r=r, game_id="g1") is True

    assert get_clock(r=r, game_id="g1") is None
    assert list_events(r=r, game_id="g1", include_triggered=True) == []
    assert list_status_effects(r=r, game_id="g1") == []
    assert list_abilities(r=r, game_id="g1") == []
    assert list_timers(r=r, game_id="g1", include_triggered=True) == []
    assert r.exists(Timeline(game_id="g1").key) == 0
    assert "g1" not in r.smembers(GAMES_SET_KEY)

    assert get_clock(r=r, game_id="g2") is not None
    assert len(list_events(r=r, game_id="g2")) == 1
    assert len(list_status_effects(r=r, game_id="g2")) == 1
    assert len(list_abilities(r=r, game_id="g2")) == 1
    assert len(list_timers(r=r, game_id="g2")) == 1


def test_purge_game_without_clock(r: fakeredis.FakeRedis) -> None:
    schedule_event(r=r, game_id="g1", name="Orphan", trigger_time=GameDateTime(year=1, month=0, day=0, hour=0, minute=0))

    assert purge_game(r=r, game_id="g1") is False
    assert list_events(r=r, game_id="g1", include_triggered=True) == []
