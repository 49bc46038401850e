from __future__ import annotations

import fakeredis
import pytest

from chronicle.core.calendar import GameDateTime
from chronicle.game_store import establish_calendar, get_clock, set_time
from chronicle.lock import GameBusyError, game_lock, lock_key
from chronicle.time_advancer import advance_time


def test_lock_is_released_after_use(r: fakeredis.FakeRedis) -> None:
    with game_lock(r=r, game_id="g1"):
        assert r.exists(lock_key("g1")) == 1
    assert r.exists(lock_key("g1")) == 0


def test_lock_is_released_on_error(r: fakeredis.FakeRedis) -> None:
    with pytest.raises(RuntimeError):
        with game_lock(r=r, game_id="g1"):
            raise RuntimeError("boom")
    assert r.exists(lock_key("g1")) == 0


def test_lock_has_expiry(r: fakeredis.FakeRedis) -> None:
    with game_lock(r=r, game_id="g1", ttl_ms=1_000):
        ttl = r.pttl(lock_key("g1"))
        assert 0 < ttl <= 1_000


def test_busy_game_raises(r: fakeredis.FakeRedis) -> None:
    r.set(lock_key("g1"), "someone-else")

    with pytest.raises(GameBusyError):
        with game_lock(r=r, game_id="g1", wait_ms=0):
            pass

    # Another holder's lock is left alone.
    assert r.get(lock_key("g1")) == "someone-else"


def test_locks_are_per_game(r: fakeredis.FakeRedis) -> None:
    r.set(lock_key("g1"), "someone-else")
    with game_lock(r=r, game_id="g2", wait_ms=0):
        pass


def test_release_does_not_steal_a_lock_taken_after_expiry(r: fakeredis.FakeRedis) -> None:
    with game_lock(r=r, game_id="g1"):
        # Simulate our TTL lapsing and another caller acquiring the lock.
        r.set(lock_key("g1"), "next-holder")
    assert r.get(lock_key("g1")) == "next-holder"


def test_mutations_on_busy_game_leave_state_untouched(r: fakeredis.FakeRedis, monkeypatch: pytest.MonkeyPatch) -> None:
    establish_calendar(r=r, game_id="g1")
    before = get_clock(r=r, game_id="g1")

    monkeypatch.setenv("CHRONICLE_LOCK_WAIT_MS", "0")
    r.set(lock_key("g1"), "someone-else")

    with pytest.raises(GameBusyError):
        advance_time(r=r, game_id="g1", days=1)
    with pytest.raises(ValueError):
        set_time(r=r, game_id="g1", time=GameDateTime(year=9, month=0, day=0, hour=0, minute=0))

    after = get_clock(r=r, game_id="g1")
    assert after is not None and before is not None
    assert after.current_time == before.current_time
