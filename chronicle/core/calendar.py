from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CalendarConfig(BaseModel):
    """Shape of a game's calendar.

    Month lengths may differ, but every year has the same total length.
    """

    model_config = ConfigDict(frozen=True)

    month_names: list[str] = Field(..., min_length=1)
    days_per_month: list[int] = Field(..., min_length=1)
    hours_per_day: int = Field(24, gt=0)
    minutes_per_hour: int = Field(60, gt=0)
    start_year: int = 1

    # Display only.
    era_name: str | None = None

    @model_validator(mode="after")
    def _check_months(self) -> CalendarConfig:
        if len(self.days_per_month) != len(self.month_names):
            raise ValueError(
                f"days_per_month has {len(self.days_per_month)} entries but there are {len(self.month_names)} months"
            )
        for idx, days in enumerate(self.days_per_month):
            if days <= 0:
                raise ValueError(f"month {idx} ({self.month_names[idx]!r}) must have at least one day")
        return self

    @property
    def days_per_year(self) -> int:
        return sum(self.days_per_month)

    @property
    def minutes_per_day(self) -> int:
        return self.hours_per_day * self.minutes_per_hour

    @property
    def minutes_per_year(self) -> int:
        return self.days_per_year * self.minutes_per_day


DEFAULT_CALENDAR = CalendarConfig(
    month_names=[
        "Deepwinter",
        "Thawing",
        "Seedtime",
        "Blossoming",
        "Highsun",
        "Summertide",
        "Harvest",
        "Leaffall",
        "Dimming",
        "Frostfall",
        "Darknight",
        "Yearsend",
    ],
    days_per_month=[30] * 12,
    hours_per_day=24,
    minutes_per_hour=60,
    start_year=1,
    era_name="Age of Wonder",
)


def merge_calendar(overrides: dict[str, Any] | None = None, *, base: CalendarConfig = DEFAULT_CALENDAR) -> CalendarConfig:
    """Apply overrides on top of `base`; keys set to None keep the base value."""

    merged = base.model_dump()
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return CalendarConfig.model_validate(merged)


class GameDateTime(BaseModel):
    """A point in a game's fictional time. Month and day are 0-based."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(..., ge=0)
    day: int = Field(..., ge=0)
    hour: int = Field(..., ge=0)
    minute: int = Field(..., ge=0)

    def as_tuple(self) -> tuple[int, int, int, int, int]:
        return (self.year, self.month, self.day, self.hour, self.minute)


def canonical_errors(dt: GameDateTime, cfg: CalendarConfig) -> list[str]:
    errors: list[str] = []
    if dt.month >= len(cfg.month_names):
        errors.append(f"month {dt.month} out of range (calendar has {len(cfg.month_names)} months)")
    elif dt.day >= cfg.days_per_month[dt.month]:
        errors.append(
            f"day {dt.day} out of range for {cfg.month_names[dt.month]} ({cfg.days_per_month[dt.month]} days)"
        )
    if dt.hour >= cfg.hours_per_day:
        errors.append(f"hour {dt.hour} out of range ({cfg.hours_per_day} hours per day)")
    if dt.minute >= cfg.minutes_per_hour:
        errors.append(f"minute {dt.minute} out of range ({cfg.minutes_per_hour} minutes per hour)")
    return errors


def is_canonical(dt: GameDateTime, cfg: CalendarConfig) -> bool:
    return not canonical_errors(dt, cfg)


def require_canonical(dt: GameDateTime, cfg: CalendarConfig) -> GameDateTime:
    errors = canonical_errors(dt, cfg)
    if errors:
        raise ValueError("Invalid game date: " + "; ".join(errors))
    return dt
