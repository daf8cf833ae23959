from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from quantumsim.core.engine.board import orbital_positions
from quantumsim.core.engine.cards.library import build_deck
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.dice import Dice
from quantumsim.core.engine.errors import UnknownMapError
from quantumsim.core.engine.state import (
    CardZones,
    GameState,
    Player,
    PlayerKind,
    Ship,
    Tile,
)

FACTIONS = ("quantum", "void", "stellar", "nebula")

START_SHIPS = 3


class TileConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    position: tuple[int, int]
    planet_number: int


class MapConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    player_counts: tuple[int, ...]
    cubes_per_player: int
    tiles: tuple[TileConfig, ...]
    starting_planets: Dict[str, str]  # faction_id -> tile_id


class PlayerSetup(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    faction_id: str
    kind: PlayerKind = "human"


def _tiles(*rows: tuple[int, int, int]) -> tuple[TileConfig, ...]:
    return tuple(
        TileConfig(id=f"tile-{i}", position=(x, y), planet_number=n)
        for i, (x, y, n) in enumerate(rows, start=1)
    )


MAPS: List[MapConfig] = [
    MapConfig(
        id="binary-stars",
        name="Binary Stars",
        player_counts=(2,),
        cubes_per_player=5,
        tiles=_tiles(
            (0, 0, 8), (3, 0, 7), (6, 0, 9),
            (0, 3, 10), (3, 3, 8), (6, 3, 7),
        ),
        starting_planets={"quantum": "tile-1", "void": "tile-6"},
    ),
    MapConfig(
        id="tri-sector",
        name="Tri-Sector",
        player_counts=(3,),
        cubes_per_player=5,
        tiles=_tiles(
            (3, 0, 9),
            (0, 3, 8), (6, 3, 8), (3, 3, 10),
            (0, 6, 7), (3, 6, 9), (6, 6, 7),
        ),
        starting_planets={"quantum": "tile-5", "void": "tile-7", "stellar": "tile-1"},
    ),
    MapConfig(
        id="quadrant",
        name="The Quadrant",
        player_counts=(4,),
        cubes_per_player=4,
        tiles=_tiles(
            (0, 0, 8), (3, 0, 10), (6, 0, 8),
            (0, 3, 9), (3, 3, 7), (6, 3, 9),
            (0, 6, 8), (3, 6, 10), (6, 6, 8),
        ),
        starting_planets={
            "quantum": "tile-1",
            "void": "tile-3",
            "stellar": "tile-7",
            "nebula": "tile-9",
        },
    ),
    MapConfig(
        id="expanse",
        name="The Expanse",
        player_counts=(2,),
        cubes_per_player=7,
        tiles=_tiles(
            (0, 0, 7), (3, 0, 9), (6, 0, 11), (9, 0, 8),
            (0, 3, 10), (3, 3, 8), (6, 3, 8), (9, 3, 10),
            (0, 6, 9), (3, 6, 12), (6, 6, 12), (9, 6, 9),
        ),
        starting_planets={"quantum": "tile-1", "void": "tile-4"},
    ),
]

_MAPS_BY_ID: Dict[str, MapConfig] = {m.id: m for m in MAPS}


def get_map(map_id: str) -> MapConfig:
    m = _MAPS_BY_ID.get(map_id)
    if m is None:
        raise UnknownMapError(f"Unknown map config: {map_id}", context={"map_id": map_id})
    return m


def create_game(
    map_id: str,
    players: Sequence[PlayerSetup],
    *,
    dice: Optional[Dice] = None,
    cubes_override: Optional[int] = None,
    game_id: str = "game",
    config: EngineConfig = DEFAULT_CONFIG,
) -> GameState:
    """
    Новая партия: тайлы карты, по кубу на стартовой планете, три корабля
    в первых трёх орбитальных слотах, колоды с рынком по 3 карты,
    перемешанный порядок ходов.
    """
    cfg = get_map(map_id)
    if len(players) not in cfg.player_counts:
        raise UnknownMapError(
            f"Map {cfg.name} doesn't support {len(players)} players",
            context={"map_id": map_id, "players": len(players)},
        )

    state = GameState(id=game_id, map_id=map_id)
    if dice is not None:
        state.with_dice(dice)

    state.tiles = [
        Tile(id=t.id, position=t.position, planet_number=t.planet_number)
        for t in cfg.tiles
    ]
    tiles_by_id = {t.id: t for t in state.tiles}
    cubes = cubes_override if cubes_override is not None else cfg.cubes_per_player

    for ps in players:
        tile_id = cfg.starting_planets.get(ps.faction_id)
        if tile_id is None:
            raise UnknownMapError(
                f"No starting planet defined for faction {ps.faction_id}",
                context={"map_id": map_id, "faction_id": ps.faction_id},
            )
        tiles_by_id[tile_id].quantum_cube = ps.id
        state.players.append(
            Player(
                id=ps.id,
                kind=ps.kind,
                faction_id=ps.faction_id,
                quantum_cubes_remaining=cubes - 1,
                actions_remaining=config.base_actions,
            )
        )

    for player in state.players:
        start = tiles_by_id[cfg.starting_planets[player.faction_id]]
        for pos in orbital_positions(start)[:START_SHIPS]:
            state.ships.append(
                Ship(
                    id=state.new_ship_id(),
                    owner_id=player.id,
                    pip_value=state.dice.roll_die(),
                    position=pos,
                )
            )

    gambit_deck = build_deck("gambit", state.dice)
    command_deck = build_deck("command", state.dice)
    n = config.market_size
    state.cards = CardZones(
        gambit_deck=gambit_deck[n:],
        command_deck=command_deck[n:],
        gambit_market=gambit_deck[:n],
        command_market=command_deck[:n],
    )

    state.turn_order = state.dice.shuffle([p.id for p in state.players])
    state.current_player_id = state.turn_order[0]
    state.status = "in_progress"
    return state
