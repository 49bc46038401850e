from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import uuid4

import redis

from chronicle.api.models import Ability, OwnerType, UseAbilityResult
from chronicle.infra.records import delete_collection, load_collection, load_record
from chronicle.lock import game_lock

logger = logging.getLogger(__name__)


ABILITY_KEY_PREFIX = "chronicle:ability:"  # + {ability_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _ability_key(ability_id: str) -> str:
    return f"{ABILITY_KEY_PREFIX}{ability_id}"


def _game_abilities_key(game_id: str) -> str:
    return f"chronicle:game:{game_id}:abilities"


def save_ability(*, r: redis.Redis, ability: Ability) -> None:
    r.set(_ability_key(ability.ability_id), ability.model_dump_json())
    r.sadd(_game_abilities_key(ability.game_id), ability.ability_id)


def get_ability(*, r: redis.Redis, ability_id: str) -> Ability | None:
    return load_record(r=r, key=_ability_key(ability_id), model=Ability)


def list_abilities(*, r: redis.Redis, game_id: str, owner_id: str | None = None) -> list[Ability]:
    abilities = load_collection(r=r, index_key=_game_abilities_key(game_id), key_for=_ability_key, model=Ability)
    if owner_id is not None:
        abilities = [a for a in abilities if a.owner_id == owner_id]
    abilities.sort(key=lambda a: (a.name, a.created_at))
    return abilities


def create_ability(
    *,
    r: redis.Redis,
    game_id: str,
    name: str,
    owner_type: OwnerType | str = OwnerType.character,
    owner_id: str | None = None,
    description: str = "",
    category: str | None = None,
    cost: dict[str, float] | None = None,
    cooldown: int | None = None,
    effects: list[str] | None = None,
    requirements: dict[str, float] | None = None,
    tags: list[str] | None = None,
) -> Ability:
    owner_type = OwnerType(owner_type)
    ability = Ability(
        ability_id=str(uuid4()),
        game_id=game_id,
        # Templates are shared definitions and never have an owner.
        owner_id=None if owner_type == OwnerType.template else owner_id,
        owner_type=owner_type,
        name=name,
        description=description,
        category=category,
        cost=dict(cost or {}),
        cooldown=cooldown,
        current_cooldown=0,
        effects=list(effects or []),
        requirements=dict(requirements or {}),
        tags=list(tags or []),
        created_at=_now(),
    )
    with game_lock(r=r, game_id=game_id):
        save_ability(r=r, ability=ability)
    return ability


def use_ability(*, r: redis.Redis, ability_id: str) -> UseAbilityResult | None:
    ability = get_ability(r=r, ability_id=ability_id)
    if ability is None:
        return None

    with game_lock(r=r, game_id=ability.game_id):
        ability = get_ability(r=r, ability_id=ability_id)
        if ability is None:
            return None

        if ability.current_cooldown > 0:
            return UseAbilityResult(
                success=False,
                ability=ability,
                reason=f"Ability on cooldown ({ability.current_cooldown} rounds remaining)",
            )

        if ability.cooldown:
            ability.current_cooldown = ability.cooldown
            save_ability(r=r, ability=ability)

    return UseAbilityResult(success=True, ability=ability, costs_paid=ability.cost)


def tick_cooldowns(*, r: redis.Redis, game_id: str, amount: int = 1) -> list[Ability]:
    """Count down every ability on cooldown in the game, never below zero.

    Returns the abilities that were on cooldown before the tick.
    """

    updated: list[Ability] = []
    with game_lock(r=r, game_id=game_id):
        for ability in list_abilities(r=r, game_id=game_id):
            if ability.current_cooldown <= 0:
                continue
            ability.current_cooldown = max(0, ability.current_cooldown - amount)
            save_ability(r=r, ability=ability)
            updated.append(ability)

    logger.debug("ticked cooldowns for game %s by %d: %d abilities updated", game_id, amount, len(updated))
    return updated


def delete_game_abilities(*, r: redis.Redis, game_id: str) -> int:
    return delete_collection(r=r, index_key=_game_abilities_key(game_id), key_for=_ability_key)
