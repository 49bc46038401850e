from __future__ import annotations

import pytest
from pydantic import ValidationError

from chronicle.core.calendar import (
    DEFAULT_CALENDAR,
    CalendarConfig,
    GameDateTime,
    canonical_errors,
    is_canonical,
    merge_calendar,
    require_canonical,
)


def test_default_calendar_shape() -> None:
    assert len(DEFAULT_CALENDAR.month_names) == 12
    assert DEFAULT_CALENDAR.days_per_year == 360
    assert DEFAULT_CALENDAR.minutes_per_day == 1440
    assert DEFAULT_CALENDAR.minutes_per_year == 360 * 1440
    assert DEFAULT_CALENDAR.era_name == "Age of Wonder"


def test_month_lengths_must_match_month_names() -> None:
    with pytest.raises(ValidationError) as e:
        CalendarConfig(month_names=["A", "B"], days_per_month=[10])
    assert "days_per_month has 1 entries" in str(e.value)


@pytest.mark.parametrize(
    "overrides",
    [
        {"hours_per_day": 0},
        {"minutes_per_hour": -5},
        {"days_per_month": [30, 0]},
        {"month_names": [], "days_per_month": []},
    ],
)
def test_non_positive_fields_rejected(overrides: dict[str, object]) -> None:
    base = {"month_names": ["A", "B"], "days_per_month": [30, 30]}
    with pytest.raises(ValueError):
        CalendarConfig.model_validate({**base, **overrides})


def test_start_year_may_be_zero_or_negative() -> None:
    cfg = CalendarConfig(month_names=["Only"], days_per_month=[10], start_year=-200)
    assert cfg.start_year == -200


def test_merge_calendar_ignores_none_overrides() -> None:
    cfg = merge_calendar({"hours_per_day": 30, "era_name": None})
    assert cfg.hours_per_day == 30
    assert cfg.era_name == "Age of Wonder"
    assert cfg.month_names == DEFAULT_CALENDAR.month_names


def test_merge_calendar_rejects_partial_month_override() -> None:
    # Twelve default month lengths no longer line up with two names.
    with pytest.raises(ValueError):
        merge_calendar({"month_names": ["Light", "Dark"]})


def test_calendar_is_frozen() -> None:
    with pytest.raises(ValidationError):
        DEFAULT_CALENDAR.hours_per_day = 10  # type: ignore[misc]


def test_canonical_checks() -> None:
    cfg = CalendarConfig(month_names=["Long", "Short"], days_per_month=[5, 2], hours_per_day=10, minutes_per_hour=10)

    assert is_canonical(GameDateTime(year=1, month=1, day=1, hour=9, minute=9), cfg)

    errors = canonical_errors(GameDateTime(year=1, month=1, day=2, hour=10, minute=10), cfg)
    assert len(errors) == 3
    assert "day 2 out of range for Short" in errors[0]

    with pytest.raises(ValueError) as e:
        require_canonical(GameDateTime(year=1, month=2, day=0, hour=0, minute=0), cfg)
    assert "month 2 out of range" in str(e.value)


def test_game_date_time_rejects_negative_components() -> None:
    with pytest.raises(ValidationError):
        GameDateTime(year=1, month=-1, day=0, hour=0, minute=0)


def test_game_date_time_equality_is_structural() -> None:
    a = GameDateTime(year=4, month=1, day=2, hour=3, minute=4)
    b = GameDateTime.model_validate({"year": 4, "month": 1, "day": 2, "hour": 3, "minute": 4})
    assert a == b
    assert hash(a) == hash(b)
    assert a.as_tuple() == (4, 1, 2, 3, 4)
