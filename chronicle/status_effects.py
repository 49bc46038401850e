from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import uuid4

import redis

from chronicle.api.models import DurationTickResult, EffectType, StatusEffect
from chronicle.infra.records import delete_collection, load_collection, load_record
from chronicle.lock import game_lock

logger = logging.getLogger(__name__)


STATUS_KEY_PREFIX = "chronicle:status:"  # + {effect_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _status_key(effect_id: str) -> str:
    return f"{STATUS_KEY_PREFIX}{effect_id}"


def _game_status_key(game_id: str) -> str:
    return f"chronicle:game:{game_id}:status_effects"


def save_status_effect(*, r: redis.Redis, effect: StatusEffect) -> None:
    r.set(_status_key(effect.effect_id), effect.model_dump_json())
    r.sadd(_game_status_key(effect.game_id), effect.effect_id)


def _delete_status_effect(*, r: redis.Redis, effect: StatusEffect) -> bool:
    removed = r.delete(_status_key(effect.effect_id))
    r.srem(_game_status_key(effect.game_id), effect.effect_id)
    return bool(removed)


def get_status_effect(*, r: redis.Redis, effect_id: str) -> StatusEffect | None:
    return load_record(r=r, key=_status_key(effect_id), model=StatusEffect)


def list_status_effects(
    *,
    r: redis.Redis,
    game_id: str,
    target_id: str | None = None,
    effect_type: EffectType | str | None = None,
) -> list[StatusEffect]:
    effects = load_collection(r=r, index_key=_game_status_key(game_id), key_for=_status_key, model=StatusEffect)
    if target_id is not None:
        effects = [e for e in effects if e.target_id == target_id]
    if effect_type is not None:
        wanted = EffectType(effect_type)
        effects = [e for e in effects if e.effect_type == wanted]
    effects.sort(key=lambda e: e.created_at)
    return effects


def apply_status_effect(
    *,
    r: redis.Redis,
    game_id: str,
    target_id: str,
    name: str,
    description: str = "",
    effect_type: EffectType | str | None = None,
    duration: int | None = None,
    stacks: int = 1,
    max_stacks: int | None = None,
    effects: dict[str, float] | None = None,
    source_id: str | None = None,
    source_type: str | None = None,
) -> StatusEffect:
    """Apply an effect to a target.

    Re-applying an effect with the same name to the same target adds stacks
    (capped by max_stacks) and refreshes the duration when one is given.
    """

    with game_lock(r=r, game_id=game_id):
        existing = next(
            (e for e in list_status_effects(r=r, game_id=game_id, target_id=target_id) if e.name == name),
            None,
        )

        if existing is not None:
            cap = max_stacks if max_stacks is not None else existing.max_stacks
            new_stacks = existing.stacks + stacks
            if cap is not None:
                new_stacks = min(new_stacks, cap)
            existing.stacks = new_stacks
            existing.max_stacks = cap
            if duration is not None:
                existing.duration = duration
            save_status_effect(r=r, effect=existing)
            return existing

        effect = StatusEffect(
            effect_id=str(uuid4()),
            game_id=game_id,
            target_id=target_id,
            name=name,
            description=description,
            effect_type=EffectType(effect_type) if effect_type else None,
            duration=duration,
            stacks=stacks,
            max_stacks=max_stacks,
            effects=dict(effects or {}),
            source_id=source_id,
            source_type=source_type,
            created_at=_now(),
        )
        save_status_effect(r=r, effect=effect)
        return effect


def remove_status_effect(*, r: redis.Redis, effect_id: str) -> bool:
    effect = get_status_effect(r=r, effect_id=effect_id)
    if effect is None:
        return False
    with game_lock(r=r, game_id=effect.game_id):
        return _delete_status_effect(r=r, effect=effect)


def tick_durations(*, r: redis.Redis, game_id: str, amount: int = 1) -> DurationTickResult:
    """Count down every timed effect in the game by `amount` rounds.

    Effects reaching zero or below are removed and reported as expired.
    """

    result = DurationTickResult()
    with game_lock(r=r, game_id=game_id):
        for effect in list_status_effects(r=r, game_id=game_id):
            if effect.duration is None:
                continue
            new_duration = effect.duration - amount
            if new_duration <= 0:
                _delete_status_effect(r=r, effect=effect)
                result.expired.append(effect.model_copy(update={"duration": 0}))
            else:
                effect.duration = new_duration
                save_status_effect(r=r, effect=effect)
                result.remaining.append(effect)

    logger.debug(
        "ticked status effects for game %s by %d: %d expired, %d remaining",
        game_id,
        amount,
        len(result.expired),
        len(result.remaining),
    )
    return result


def delete_game_status_effects(*, r: redis.Redis, game_id: str) -> int:
    return delete_collection(r=r, index_key=_game_status_key(game_id), key_for=_status_key)
