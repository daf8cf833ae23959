from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventEnvelope(BaseModel):
    """
    Событие движка. seq: сквозной счётчик партии (state.seq),
    поэтому события детерминированы и сортируются без часов.
    """

    model_config = ConfigDict(extra="forbid")

    seq: int
    type: str

    turn: int
    player_id: Optional[str] = None

    payload: dict[str, Any] = Field(default_factory=dict)


def _ev(
    type_: str,
    *,
    seq: int,
    turn: int,
    player_id: Optional[str],
    **payload: Any,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq, type=type_, turn=turn, player_id=player_id, payload=payload
    )


def ev_command_rejected(
    *,
    seq: int,
    turn: int,
    player_id: Optional[str],
    command: dict,
    code: str,
    message: str,
    meta: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        type="CommandRejected",
        turn=turn,
        player_id=player_id,
        payload={
            "command": command,
            "code": code,
            "message": message,
            "meta": meta,
        },
    )


# --- корабли ---


def ev_ship_reconfigured(
    *, seq: int, turn: int, player_id: str, ship_id: str, old_value: int, new_value: int
) -> EventEnvelope:
    return _ev(
        "ShipReconfigured",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        old_value=old_value,
        new_value=new_value,
    )


def ev_ship_deployed(
    *,
    seq: int,
    turn: int,
    player_id: str,
    ship_id: str,
    value: int,
    position: tuple[int, int],
    free: bool,
) -> EventEnvelope:
    return _ev(
        "ShipDeployed",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        value=value,
        position=list(position),
        free=free,
    )


def ev_ship_moved(
    *,
    seq: int,
    turn: int,
    player_id: str,
    ship_id: str,
    path: list[tuple[int, int]],
    cost: int,
) -> EventEnvelope:
    return _ev(
        "ShipMoved",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        path=[list(p) for p in path],
        cost=cost,
    )


def ev_ship_destroyed(
    *,
    seq: int,
    turn: int,
    player_id: str,
    ship_id: str,
    rerolled_value: int,
    reason: str,
) -> EventEnvelope:
    # player_id: владелец уничтоженного корабля
    return _ev(
        "ShipDestroyed",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        rerolled_value=rerolled_value,
        reason=reason,
    )


def ev_ability_used(
    *, seq: int, turn: int, player_id: str, ship_id: str, ability: str, details: dict
) -> EventEnvelope:
    return _ev(
        "AbilityUsed",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        ability=ability,
        details=details,
    )


# --- кубы / research ---


def ev_cube_placed(
    *, seq: int, turn: int, player_id: str, tile_id: str, cubes_remaining: int
) -> EventEnvelope:
    return _ev(
        "CubePlaced",
        seq=seq,
        turn=turn,
        player_id=player_id,
        tile_id=tile_id,
        cubes_remaining=cubes_remaining,
    )


def ev_cube_relocated(
    *,
    seq: int,
    turn: int,
    player_id: str,
    owner_id: str,
    from_tile_id: str,
    to_tile_id: str,
) -> EventEnvelope:
    return _ev(
        "CubeRelocated",
        seq=seq,
        turn=turn,
        player_id=player_id,
        owner_id=owner_id,
        from_tile_id=from_tile_id,
        to_tile_id=to_tile_id,
    )


def ev_research_advanced(
    *, seq: int, turn: int, player_id: str, before: int, after: int
) -> EventEnvelope:
    return _ev(
        "ResearchAdvanced",
        seq=seq,
        turn=turn,
        player_id=player_id,
        before=before,
        after=after,
    )


def ev_breakthrough_achieved(
    *, seq: int, turn: int, player_id: str, threshold: int
) -> EventEnvelope:
    return _ev(
        "BreakthroughAchieved",
        seq=seq,
        turn=turn,
        player_id=player_id,
        threshold=threshold,
    )


def ev_game_ended(*, seq: int, turn: int, winner_id: str) -> EventEnvelope:
    return _ev("GameEnded", seq=seq, turn=turn, player_id=winner_id, winner_id=winner_id)


# --- ход ---


def ev_turn_ended(
    *, seq: int, turn: int, player_id: str, cards_earned: int
) -> EventEnvelope:
    return _ev(
        "TurnEnded", seq=seq, turn=turn, player_id=player_id, cards_earned=cards_earned
    )


def ev_turn_started(
    *, seq: int, turn: int, player_id: str, actions: int
) -> EventEnvelope:
    return _ev("TurnStarted", seq=seq, turn=turn, player_id=player_id, actions=actions)


# --- карты ---


def ev_card_selected(
    *,
    seq: int,
    turn: int,
    player_id: str,
    card_id: str,
    instance_id: str,
    discarded_instance_id: Optional[str],
) -> EventEnvelope:
    return _ev(
        "CardSelected",
        seq=seq,
        turn=turn,
        player_id=player_id,
        card_id=card_id,
        instance_id=instance_id,
        discarded_instance_id=discarded_instance_id,
    )


def ev_gambit_resolved(
    *, seq: int, turn: int, player_id: str, card_id: str, effect: dict
) -> EventEnvelope:
    return _ev(
        "GambitResolved",
        seq=seq,
        turn=turn,
        player_id=player_id,
        card_id=card_id,
        effect=effect,
    )


def ev_card_discarded(
    *, seq: int, turn: int, player_id: str, card_id: str, instance_id: str, reason: str
) -> EventEnvelope:
    return _ev(
        "CardDiscarded",
        seq=seq,
        turn=turn,
        player_id=player_id,
        card_id=card_id,
        instance_id=instance_id,
        reason=reason,
    )


def ev_ships_reorganized(
    *, seq: int, turn: int, player_id: str, rerolled: dict, free_deploys: int
) -> EventEnvelope:
    return _ev(
        "ShipsReorganized",
        seq=seq,
        turn=turn,
        player_id=player_id,
        rerolled=rerolled,
        free_deploys=free_deploys,
    )


def ev_ship_adjusted(
    *, seq: int, turn: int, player_id: str, ship_id: str, old_value: int, new_value: int
) -> EventEnvelope:
    return _ev(
        "ShipAdjusted",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        old_value=old_value,
        new_value=new_value,
    )


def ev_resources_traded(
    *,
    seq: int,
    turn: int,
    player_id: str,
    trade: str,
    research: int,
    dominance: int,
) -> EventEnvelope:
    return _ev(
        "ResourcesTraded",
        seq=seq,
        turn=turn,
        player_id=player_id,
        trade=trade,
        research=research,
        dominance=dominance,
    )


def ev_ship_sacrificed(
    *, seq: int, turn: int, player_id: str, ship_id: str, rerolled_value: int
) -> EventEnvelope:
    return _ev(
        "ShipSacrificed",
        seq=seq,
        turn=turn,
        player_id=player_id,
        ship_id=ship_id,
        rerolled_value=rerolled_value,
    )


# --- бой ---


def ev_combat_started(
    *,
    seq: int,
    turn: int,
    player_id: str,
    attacker_ship_id: str,
    defender_ship_id: str,
    phase: str,
    is_strike: bool,
) -> EventEnvelope:
    return _ev(
        "CombatStarted",
        seq=seq,
        turn=turn,
        player_id=player_id,
        attacker_ship_id=attacker_ship_id,
        defender_ship_id=defender_ship_id,
        phase=phase,
        is_strike=is_strike,
    )


def ev_combat_rolled(
    *,
    seq: int,
    turn: int,
    player_id: str,
    attacker_roll: int,
    defender_roll: int,
    attacker_total: int,
    defender_total: int,
    attacker_modifiers: list[str],
    defender_modifiers: list[str],
) -> EventEnvelope:
    return _ev(
        "CombatRolled",
        seq=seq,
        turn=turn,
        player_id=player_id,
        attacker_roll=attacker_roll,
        defender_roll=defender_roll,
        attacker_total=attacker_total,
        defender_total=defender_total,
        attacker_modifiers=list(attacker_modifiers),
        defender_modifiers=list(defender_modifiers),
    )


def ev_combat_rerolled(
    *,
    seq: int,
    turn: int,
    player_id: str,
    reroll_type: str,
    side: str,
    old_roll: int,
    new_roll: int,
) -> EventEnvelope:
    # player_id: кто использовал переброс, side: чей кубик перебросили
    return _ev(
        "CombatRerolled",
        seq=seq,
        turn=turn,
        player_id=player_id,
        reroll_type=reroll_type,
        side=side,
        old_roll=old_roll,
        new_roll=new_roll,
    )


def ev_combat_input_required(
    *,
    seq: int,
    turn: int,
    player_id: str,
    phase: str,
    options: list[str],
    available_rerolls: Optional[list[dict]] = None,
) -> EventEnvelope:
    return _ev(
        "CombatInputRequired",
        seq=seq,
        turn=turn,
        player_id=player_id,
        phase=phase,
        options=list(options),
        available_rerolls=list(available_rerolls or []),
    )


def ev_combat_resolved(
    *, seq: int, turn: int, player_id: str, result: dict
) -> EventEnvelope:
    return _ev("CombatResolved", seq=seq, turn=turn, player_id=player_id, result=result)


def ev_combat_cancelled(
    *, seq: int, turn: int, player_id: str, policy: str, charged: bool
) -> EventEnvelope:
    return _ev(
        "CombatCancelled",
        seq=seq,
        turn=turn,
        player_id=player_id,
        policy=policy,
        charged=charged,
    )


def ev_dominance_changed(
    *, seq: int, turn: int, player_id: str, before: int, after: int, reason: str
) -> EventEnvelope:
    return _ev(
        "DominanceChanged",
        seq=seq,
        turn=turn,
        player_id=player_id,
        before=before,
        after=after,
        reason=reason,
    )
