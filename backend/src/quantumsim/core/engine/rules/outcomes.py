from __future__ import annotations

from typing import List, Tuple

from quantumsim.core.engine.config import EngineConfig
from quantumsim.core.engine.events import (
    ev_breakthrough_achieved,
    ev_dominance_changed,
    ev_ship_destroyed,
)
from quantumsim.core.engine.rules.modifiers import (
    adjust_dominance,
    breakthrough_threshold,
)
from quantumsim.core.engine.state import GameState, Player, Ship, require_player


def bump(state: GameState) -> int:
    state.seq += 1
    return state.seq


def destroy_ship(
    state: GameState, ship: Ship, *, reason: str
) -> Tuple[int, List[dict]]:
    """
    Убираем корабль с доски, новое значение кидаем в scrapyard владельца.
    return (rerolled_value, events)
    """
    owner = require_player(state, ship.owner_id)
    new_value = state.dice.roll_die()
    state.ships = [s for s in state.ships if s.id != ship.id]
    owner.scrapyard.append(new_value)

    ev = ev_ship_destroyed(
        seq=bump(state),
        turn=state.turn_number,
        player_id=owner.id,
        ship_id=ship.id,
        rerolled_value=new_value,
        reason=reason,
    ).model_dump()
    return new_value, [ev]


def change_dominance(
    state: GameState, player: Player, delta: int, *, reason: str
) -> Tuple[int, List[dict]]:
    before = player.dominance_counter
    applied = adjust_dominance(player, delta)
    if applied == 0:
        return 0, []
    ev = ev_dominance_changed(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        before=before,
        after=player.dominance_counter,
        reason=reason,
    ).model_dump()
    return applied, [ev]


def advance_research(
    state: GameState, player: Player, amount: int, config: EngineConfig
) -> Tuple[bool, List[dict]]:
    """
    Прибавить research; при достижении порога: прорыв и сброс на 1.
    return (breakthrough, events)
    """
    threshold = breakthrough_threshold(player, config)
    value = player.research_counter + amount
    if value < threshold:
        player.research_counter = value
        return False, []

    player.research_counter = 1
    player.achieved_breakthrough_this_turn = True
    ev = ev_breakthrough_achieved(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        threshold=threshold,
    ).model_dump()
    return True, [ev]
