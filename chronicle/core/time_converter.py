"""Conversions between structured game dates and epoch-minutes.

Epoch-minute 0 is `start_year`, first month, first day, 00:00. All functions
here are pure and take the calendar explicitly; dates from different
calendars must never be compared.
"""

from __future__ import annotations

from chronicle.core.calendar import CalendarConfig, GameDateTime


def to_epoch_minutes(dt: GameDateTime, cfg: CalendarConfig) -> int:
    minutes = dt.minute
    minutes += dt.hour * cfg.minutes_per_hour
    minutes += dt.day * cfg.minutes_per_day
    minutes += sum(cfg.days_per_month[: dt.month]) * cfg.minutes_per_day
    minutes += (dt.year - cfg.start_year) * cfg.minutes_per_year
    return minutes


def from_epoch_minutes(minutes: int, cfg: CalendarConfig) -> GameDateTime:
    # Floor division keeps the remainder non-negative, so times before the
    # epoch still come out canonical.
    years, remaining = divmod(minutes, cfg.minutes_per_year)

    month = 0
    for month, days in enumerate(cfg.days_per_month):
        month_minutes = days * cfg.minutes_per_day
        if remaining < month_minutes:
            break
        remaining -= month_minutes

    day, remaining = divmod(remaining, cfg.minutes_per_day)
    hour, minute = divmod(remaining, cfg.minutes_per_hour)

    return GameDateTime(year=cfg.start_year + years, month=month, day=day, hour=hour, minute=minute)


def compare(a: GameDateTime, b: GameDateTime, cfg: CalendarConfig) -> int:
    """Return -1, 0 or 1 as `a` is before, equal to or after `b`."""

    diff = to_epoch_minutes(a, cfg) - to_epoch_minutes(b, cfg)
    return (diff > 0) - (diff < 0)


def duration_minutes(cfg: CalendarConfig, *, days: int = 0, hours: int = 0, minutes: int = 0) -> int:
    return minutes + hours * cfg.minutes_per_hour + days * cfg.minutes_per_day


def format_datetime(dt: GameDateTime, cfg: CalendarConfig) -> str:
    if 0 <= dt.month < len(cfg.month_names):
        month_name = cfg.month_names[dt.month]
    else:
        month_name = f"Month {dt.month + 1}"
    era = f" {cfg.era_name}" if cfg.era_name else ""
    return f"{dt.day + 1} {month_name}, Year {dt.year}{era} - {dt.hour:02d}:{dt.minute:02d}"
