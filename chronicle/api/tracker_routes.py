"""Round-based trackers: status effect durations, ability cooldowns and timers.

None of these consult the game clock; a round is whatever the caller says it is.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
import redis

from chronicle.abilities import create_ability, list_abilities, tick_cooldowns, use_ability
from chronicle.api.deps import get_redis
from chronicle.api.errors import http_error
from chronicle.api.models import (
    Ability,
    AbilityListResponse,
    ApplyStatusEffectRequest,
    CreateAbilityRequest,
    CreateTimerRequest,
    DurationTickResult,
    EffectType,
    StatusEffect,
    StatusEffectListResponse,
    TickRequest,
    Timer,
    TimerListResponse,
    TimerTickResult,
    UseAbilityResult,
)
from chronicle.status_effects import apply_status_effect, list_status_effects, remove_status_effect, tick_durations
from chronicle.timers import create_timer, delete_timer, get_timer, list_timers, reset_timer, tick_timer
from chronicle.websocket_hub import hub

router = APIRouter()


# --- status effects ---------------------------------------------------------


@router.post("/games/{game_id}/status_effects", response_model=StatusEffect, status_code=status.HTTP_201_CREATED)
async def apply_status_effect_route(
    game_id: str,
    payload: ApplyStatusEffectRequest,
    r: redis.Redis = Depends(get_redis),
) -> StatusEffect:
    try:
        effect = await run_in_threadpool(apply_status_effect, r=r, game_id=game_id, **payload.model_dump())
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "status_effects_updated")
    return effect


@router.get("/games/{game_id}/status_effects", response_model=StatusEffectListResponse)
async def list_status_effects_route(
    game_id: str,
    target_id: str | None = None,
    effect_type: EffectType | None = None,
    r: redis.Redis = Depends(get_redis),
) -> StatusEffectListResponse:
    effects = list_status_effects(r=r, game_id=game_id, target_id=target_id, effect_type=effect_type)
    return StatusEffectListResponse(status_effects=effects)


@router.delete("/status_effects/{effect_id}")
async def remove_status_effect_route(effect_id: str, r: redis.Redis = Depends(get_redis)) -> dict[str, object]:
    try:
        removed = await run_in_threadpool(remove_status_effect, r=r, effect_id=effect_id)
    except ValueError as e:
        raise http_error(e) from e
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status effect not found")
    return {"effect_id": effect_id, "removed": True}


@router.post("/games/{game_id}/status_effects/tick", response_model=DurationTickResult)
async def tick_durations_route(
    game_id: str,
    payload: TickRequest,
    r: redis.Redis = Depends(get_redis),
) -> DurationTickResult:
    try:
        result = await run_in_threadpool(tick_durations, r=r, game_id=game_id, amount=payload.amount)
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "status_effects_updated", expired_count=len(result.expired))
    return result


# --- abilities --------------------------------------------------------------


@router.post("/games/{game_id}/abilities", response_model=Ability, status_code=status.HTTP_201_CREATED)
async def create_ability_route(
    game_id: str,
    payload: CreateAbilityRequest,
    r: redis.Redis = Depends(get_redis),
) -> Ability:
    try:
        return await run_in_threadpool(create_ability, r=r, game_id=game_id, **payload.model_dump())
    except ValueError as e:
        raise http_error(e) from e


@router.get("/games/{game_id}/abilities", response_model=AbilityListResponse)
async def list_abilities_route(
    game_id: str,
    owner_id: str | None = None,
    r: redis.Redis = Depends(get_redis),
) -> AbilityListResponse:
    return AbilityListResponse(abilities=list_abilities(r=r, game_id=game_id, owner_id=owner_id))


@router.post("/abilities/{ability_id}/use", response_model=UseAbilityResult)
async def use_ability_route(ability_id: str, r: redis.Redis = Depends(get_redis)) -> UseAbilityResult:
    try:
        result = await run_in_threadpool(use_ability, r=r, ability_id=ability_id)
    except ValueError as e:
        raise http_error(e) from e
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ability not found")
    return result


@router.post("/games/{game_id}/abilities/tick", response_model=list[Ability])
async def tick_cooldowns_route(
    game_id: str,
    payload: TickRequest,
    r: redis.Redis = Depends(get_redis),
) -> list[Ability]:
    try:
        return await run_in_threadpool(tick_cooldowns, r=r, game_id=game_id, amount=payload.amount)
    except ValueError as e:
        raise http_error(e) from e


# --- timers -----------------------------------------------------------------


@router.post("/games/{game_id}/timers", response_model=Timer, status_code=status.HTTP_201_CREATED)
async def create_timer_route(
    game_id: str,
    payload: CreateTimerRequest,
    r: redis.Redis = Depends(get_redis),
) -> Timer:
    try:
        timer = await run_in_threadpool(create_timer, r=r, game_id=game_id, **payload.model_dump())
    except ValueError as e:
        raise http_error(e) from e

    await hub.notify(game_id, "timers_updated")
    return timer


@router.get("/games/{game_id}/timers", response_model=TimerListResponse)
async def list_timers_route(
    game_id: str,
    include_triggered: bool = False,
    r: redis.Redis = Depends(get_redis),
) -> TimerListResponse:
    return TimerListResponse(timers=list_timers(r=r, game_id=game_id, include_triggered=include_triggered))


@router.get("/timers/{timer_id}", response_model=Timer)
async def get_timer_route(timer_id: str, r: redis.Redis = Depends(get_redis)) -> Timer:
    timer = get_timer(r=r, timer_id=timer_id)
    if timer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timer not found")
    return timer


@router.post("/timers/{timer_id}/tick", response_model=TimerTickResult)
async def tick_timer_route(
    timer_id: str,
    payload: TickRequest,
    r: redis.Redis = Depends(get_redis),
) -> TimerTickResult:
    try:
        result = await run_in_threadpool(tick_timer, r=r, timer_id=timer_id, amount=payload.amount)
    except ValueError as e:
        raise http_error(e) from e
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timer not found")

    await hub.notify(result.timer.game_id, "timers_updated", just_triggered=result.just_triggered)
    return result


@router.post("/timers/{timer_id}/reset", response_model=Timer)
async def reset_timer_route(timer_id: str, r: redis.Redis = Depends(get_redis)) -> Timer:
    try:
        timer = await run_in_threadpool(reset_timer, r=r, timer_id=timer_id)
    except ValueError as e:
        raise http_error(e) from e
    if timer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timer not found")
    return timer


@router.delete("/timers/{timer_id}")
async def delete_timer_route(timer_id: str, r: redis.Redis = Depends(get_redis)) -> dict[str, object]:
    try:
        deleted = await run_in_threadpool(delete_timer, r=r, timer_id=timer_id)
    except ValueError as e:
        raise http_error(e) from e
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timer not found")
    return {"timer_id": timer_id, "deleted": True}
