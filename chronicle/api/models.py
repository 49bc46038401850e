from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from chronicle.core.calendar import CalendarConfig, GameDateTime


class Recurrence(StrEnum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class GameClock(BaseModel):
    game_id: str
    current_time: GameDateTime
    calendar_config: CalendarConfig
    last_updated_at: datetime


class ScheduledEvent(BaseModel):
    event_id: str
    game_id: str
    name: str
    description: str = ""
    trigger_time: GameDateTime

    # None => one-shot. Recurring events are never marked triggered; they move forward instead.
    recurring: Recurrence | None = None
    triggered: bool = False

    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AdvanceResult(BaseModel):
    previous_time: GameDateTime
    new_time: GameDateTime
    triggered_events: list[ScheduledEvent] = Field(default_factory=list)


class EffectType(StrEnum):
    buff = "buff"
    debuff = "debuff"
    neutral = "neutral"


class StatusEffect(BaseModel):
    effect_id: str
    game_id: str
    target_id: str
    name: str
    description: str = ""
    effect_type: EffectType | None = None

    # Rounds remaining; None means the effect lasts until removed.
    duration: int | None = None

    stacks: int = 1
    max_stacks: int | None = None
    effects: dict[str, float] = Field(default_factory=dict)
    source_id: str | None = None
    source_type: str | None = None
    created_at: datetime


class DurationTickResult(BaseModel):
    expired: list[StatusEffect] = Field(default_factory=list)
    remaining: list[StatusEffect] = Field(default_factory=list)


class OwnerType(StrEnum):
    template = "template"
    character = "character"


class Ability(BaseModel):
    ability_id: str
    game_id: str
    owner_id: str | None = None
    owner_type: OwnerType = OwnerType.character
    name: str
    description: str = ""
    category: str | None = None
    cost: dict[str, float] = Field(default_factory=dict)
    cooldown: int | None = None
    current_cooldown: int = 0
    effects: list[str] = Field(default_factory=list)
    requirements: dict[str, float] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime


class UseAbilityResult(BaseModel):
    success: bool
    ability: Ability
    reason: str | None = None
    costs_paid: dict[str, float] | None = None


class TimerType(StrEnum):
    countdown = "countdown"
    stopwatch = "stopwatch"
    # Segmented progress clock, filled up to max_value.
    clock = "clock"


class TimerDirection(StrEnum):
    up = "up"
    down = "down"


class Timer(BaseModel):
    timer_id: str
    game_id: str
    name: str
    description: str = ""
    timer_type: TimerType
    current_value: int = 0
    max_value: int | None = None
    direction: TimerDirection
    trigger_at: int | None = None
    triggered: bool = False
    unit: str = "tick"
    visible_to_players: bool = True
    created_at: datetime


class TimerTickResult(BaseModel):
    timer: Timer
    previous_value: int
    just_triggered: bool


# --- request bodies ---------------------------------------------------------


class CalendarOverrides(BaseModel):
    month_names: list[str] | None = Field(None, max_length=24)
    days_per_month: list[int] | None = Field(None, max_length=24)
    hours_per_day: int | None = None
    minutes_per_hour: int | None = None
    start_year: int | None = None
    era_name: str | None = Field(None, max_length=200)


class EstablishCalendarRequest(BaseModel):
    config: CalendarOverrides = Field(default_factory=CalendarOverrides)
    current_time: GameDateTime | None = None


class AdvanceRequest(BaseModel):
    days: int = 0
    hours: int = 0
    minutes: int = 0


class ScheduleEventRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=4000)
    trigger_time: GameDateTime
    recurring: Recurrence | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApplyStatusEffectRequest(BaseModel):
    target_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=4000)
    effect_type: EffectType | None = None
    duration: int | None = Field(None, ge=1)
    stacks: int = Field(1, ge=1)
    max_stacks: int | None = Field(None, ge=1)
    effects: dict[str, float] = Field(default_factory=dict)
    source_id: str | None = None
    source_type: str | None = None


class CreateAbilityRequest(BaseModel):
    owner_type: OwnerType = OwnerType.character
    owner_id: str | None = None
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=4000)
    category: str | None = None
    cost: dict[str, float] = Field(default_factory=dict)
    cooldown: int | None = Field(None, ge=0)
    effects: list[str] = Field(default_factory=list)
    requirements: dict[str, float] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class TickRequest(BaseModel):
    amount: int = Field(1, ge=0)


class CreateTimerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=4000)
    timer_type: TimerType
    current_value: int | None = None
    max_value: int | None = None
    direction: TimerDirection | None = None
    trigger_at: int | None = None
    unit: str = Field("tick", max_length=100)
    visible_to_players: bool = True


# --- responses --------------------------------------------------------------


class ClockResponse(GameClock):
    # Human-readable current time; never parsed back.
    formatted: str


class AdvanceResponse(AdvanceResult):
    formatted: str
    triggered_count: int


class ClockListResponse(BaseModel):
    clocks: list[GameClock]


class EventListResponse(BaseModel):
    events: list[ScheduledEvent]


class StatusEffectListResponse(BaseModel):
    status_effects: list[StatusEffect]


class AbilityListResponse(BaseModel):
    abilities: list[Ability]


class TimerListResponse(BaseModel):
    timers: list[Timer]
