from __future__ import annotations

from typing import Optional, Sequence

from quantumsim.core.engine.cards.definitions import CardInstance
from quantumsim.core.engine.dice import FixedDice
from quantumsim.core.engine.state import GameState, Player, Ship, Tile

# 2x2 тайла: центры-планеты (1,1) (4,1) (1,4) (4,4), доска 6x6
TILES = [
    ("tile-1", (0, 0), 8),
    ("tile-2", (3, 0), 7),
    ("tile-3", (0, 3), 9),
    ("tile-4", (3, 3), 10),
]


def card(card_id: str, n: int = 0) -> CardInstance:
    return CardInstance(card_id=card_id, instance_id=f"{card_id}#{n}")


def make_state(
    *,
    players: Sequence[str] = ("A", "B"),
    kinds: Optional[dict] = None,
    dice: Optional[Sequence[int]] = None,
    seed: Optional[int] = None,
) -> GameState:
    kinds = kinds or {}
    state = GameState(id="g1", map_id="test")
    state.tiles = [Tile(id=i, position=p, planet_number=n) for i, p, n in TILES]
    state.players = [
        Player(id=pid, kind=kinds.get(pid, "human"), quantum_cubes_remaining=4)
        for pid in players
    ]
    state.turn_order = list(players)
    state.current_player_id = players[0]

    state.tiles[0].quantum_cube = players[0]
    state.tiles[3].quantum_cube = players[1]

    if dice is not None:
        state.with_dice(FixedDice(dice))
    elif seed is not None:
        state.with_seed(seed)
    return state


def add_ship(state: GameState, owner: str, value: int, pos) -> Ship:
    ship = Ship(
        id=state.new_ship_id(),
        owner_id=owner,
        pip_value=value,
        position=tuple(pos) if pos is not None else None,
    )
    state.ships.append(ship)
    return ship


def give(state: GameState, player_id: str, *card_ids: str) -> None:
    p = next(p for p in state.players if p.id == player_id)
    for i, cid in enumerate(card_ids):
        p.active_command_cards.append(card(cid, i))


def player(state: GameState, player_id: str) -> Player:
    return next(p for p in state.players if p.id == player_id)
