from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
import redis

from chronicle.api.deps import get_redis
from chronicle.api.errors import http_error
from chronicle.api.models import (
    AdvanceRequest,
    AdvanceResponse,
    ClockListResponse,
    ClockResponse,
    EstablishCalendarRequest,
    EventListResponse,
    GameClock,
    ScheduledEvent,
    ScheduleEventRequest,
)
from chronicle.core.calendar import GameDateTime
from chronicle.core.time_converter import format_datetime
from chronicle.event_store import cancel_event, get_event, list_events, schedule_event
from chronicle.game_store import establish_calendar, get_clock, list_clocks, purge_game, set_time
from chronicle.streams import Timeline, read_timeline
from chronicle.time_advancer import advance_time
from chronicle.websocket_hub import hub

router = APIRouter()

NO_CALENDAR = "No calendar set for this game. Establish a calendar first."


def _clock_response(clock: GameClock) -> ClockResponse:
    return ClockResponse(
        **clock.model_dump(),
        formatted=format_datetime(clock.current_time, clock.calendar_config),
    )


@router.websocket("/ws/game/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: str) -> None:
    await hub.connect(game_id, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(game_id, websocket)
    except Exception:
        await hub.disconnect(game_id, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/games", response_model=ClockListResponse)
async def list_clocks_route(r: redis.Redis = Depends(get_redis)) -> ClockListResponse:
    return ClockListResponse(clocks=list_clocks(r=r))


@router.delete("/games/{game_id}")
async def purge_game_route(game_id: str, r: redis.Redis = Depends(get_redis)) -> dict[str, object]:
    try:
        had_clock = await run_in_threadpool(purge_game, r=r, game_id=game_id)
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "game_purged")
    return {"game_id": game_id, "purged": True, "had_clock": had_clock}


@router.put("/games/{game_id}/calendar", response_model=ClockResponse)
async def establish_calendar_route(
    game_id: str,
    payload: EstablishCalendarRequest,
    r: redis.Redis = Depends(get_redis),
) -> ClockResponse:
    try:
        clock = await run_in_threadpool(
            establish_calendar,
            r=r,
            game_id=game_id,
            config_overrides=payload.config.model_dump(exclude_none=True),
            initial_time=payload.current_time,
        )
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "clock_updated")
    return _clock_response(clock)


@router.get("/games/{game_id}/clock", response_model=ClockResponse)
async def get_clock_route(game_id: str, r: redis.Redis = Depends(get_redis)) -> ClockResponse:
    clock = get_clock(r=r, game_id=game_id)
    if clock is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_CALENDAR)
    return _clock_response(clock)


@router.put("/games/{game_id}/clock/time", response_model=ClockResponse)
async def set_time_route(
    game_id: str,
    payload: GameDateTime,
    r: redis.Redis = Depends(get_redis),
) -> ClockResponse:
    try:
        clock = await run_in_threadpool(set_time, r=r, game_id=game_id, time=payload)
    except ValueError as e:
        raise http_error(e) from e
    if clock is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_CALENDAR)

    await hub.notify(game_id, "clock_updated")
    return _clock_response(clock)


@router.post("/games/{game_id}/clock/advance", response_model=AdvanceResponse)
async def advance_time_route(
    game_id: str,
    payload: AdvanceRequest,
    r: redis.Redis = Depends(get_redis),
) -> AdvanceResponse:
    try:
        result = await run_in_threadpool(
            advance_time,
            r=r,
            game_id=game_id,
            days=payload.days,
            hours=payload.hours,
            minutes=payload.minutes,
        )
    except ValueError as e:
        raise http_error(e) from e
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_CALENDAR)

    clock = get_clock(r=r, game_id=game_id)
    if clock is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_CALENDAR)
    await hub.notify(game_id, "time_advanced", triggered_count=len(result.triggered_events))
    return AdvanceResponse(
        **result.model_dump(),
        formatted=format_datetime(result.new_time, clock.calendar_config),
        triggered_count=len(result.triggered_events),
    )


@router.post("/games/{game_id}/events", response_model=ScheduledEvent, status_code=status.HTTP_201_CREATED)
async def schedule_event_route(
    game_id: str,
    payload: ScheduleEventRequest,
    r: redis.Redis = Depends(get_redis),
) -> ScheduledEvent:
    try:
        event = await run_in_threadpool(
            schedule_event,
            r=r,
            game_id=game_id,
            name=payload.name,
            description=payload.description,
            trigger_time=payload.trigger_time,
            recurring=payload.recurring,
            metadata=payload.metadata,
        )
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "events_updated")
    return event


@router.get("/games/{game_id}/events", response_model=EventListResponse)
async def list_events_route(
    game_id: str,
    include_triggered: bool = False,
    r: redis.Redis = Depends(get_redis),
) -> EventListResponse:
    return EventListResponse(events=list_events(r=r, game_id=game_id, include_triggered=include_triggered))


@router.get("/events/{event_id}", response_model=ScheduledEvent)
async def get_event_route(event_id: str, r: redis.Redis = Depends(get_redis)) -> ScheduledEvent:
    event = get_event(r=r, event_id=event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


@router.delete("/events/{event_id}")
async def cancel_event_route(event_id: str, r: redis.Redis = Depends(get_redis)) -> dict[str, object]:
    event = get_event(r=r, event_id=event_id)
    try:
        cancelled = await run_in_threadpool(cancel_event, r=r, event_id=event_id)
    except ValueError as e:
        raise http_error(e) from e
    if not cancelled or event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

    await hub.notify(event.game_id, "events_updated")
    return {"event_id": event_id, "cancelled": True}


@router.get("/games/{game_id}/timeline")
async def get_timeline_route(
    game_id: str,
    count: int = 50,
    start: str = "-",
    end: str = "+",
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Read back the game's timeline stream (advances and fired events)."""

    if count < 1 or count > 500:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 500")

    timeline = Timeline(game_id=game_id)
    try:
        entries = read_timeline(r=r, timeline=timeline, start=start, end=end, count=count)
    except redis.RedisError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return {"game_id": game_id, "stream": timeline.key, "entries": entries}
