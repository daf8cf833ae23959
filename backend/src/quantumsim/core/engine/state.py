from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from quantumsim.core.engine.cards.definitions import CardInstance
from quantumsim.core.engine.dice import Dice, SeededDice
from quantumsim.core.engine.errors import InvariantViolation

Pos = Tuple[int, int]

PlayerKind = Literal["human", "ai"]
GameStatus = Literal["setup", "in_progress", "finished", "abandoned"]
TurnPhase = Literal["actions", "advance_cards"]
CombatPhase = Literal["pre-combat", "rolls", "re-roll", "resolution"]
RerollType = Literal["cruel", "relentless", "scrappy"]

REROLL_TYPES: Tuple[RerollType, ...] = ("cruel", "relentless", "scrappy")

# способность корабля определяется значением кубика
SHIP_ABILITIES: Dict[int, str] = {
    1: "strike",
    2: "transport",
    3: "warp",
    4: "modify",
    5: "maneuver",
    6: "free_reconfigure",
}

MANEUVER_VALUE = 5


@dataclass
class Tile:
    id: str
    position: Pos  # левый верхний угол 3x3
    planet_number: int
    quantum_cube: Optional[str] = None  # player_id или None


@dataclass
class Ship:
    id: str
    owner_id: str
    pip_value: int
    position: Optional[Pos] = None

    has_moved_this_turn: bool = False
    has_used_ability_this_turn: bool = False


@dataclass
class Player:
    id: str
    kind: PlayerKind = "human"
    faction_id: str = ""

    quantum_cubes_remaining: int = 0
    research_counter: int = 1
    dominance_counter: int = 0

    active_command_cards: List[CardInstance] = field(default_factory=list)
    scrapyard: List[int] = field(default_factory=list)

    # ресурсы хода
    actions_remaining: int = 3
    cubes_placed_this_turn: int = 0
    achieved_breakthrough_this_turn: bool = False
    cards_claimed_this_turn: int = 0
    bonus_moves: int = 0
    has_used_flexible_this_turn: bool = False
    has_traded_this_turn: bool = False
    has_used_cunning_this_turn: bool = False
    has_used_tactical_this_turn: bool = False

    # продолжения gambit-карт
    free_deploys: int = 0
    pending_gambits: List[str] = field(default_factory=list)


@dataclass
class CardZones:
    gambit_deck: List[CardInstance] = field(default_factory=list)
    command_deck: List[CardInstance] = field(default_factory=list)
    gambit_market: List[CardInstance] = field(default_factory=list)
    command_market: List[CardInstance] = field(default_factory=list)
    gambit_discard: List[CardInstance] = field(default_factory=list)
    command_discard: List[CardInstance] = field(default_factory=list)


def _fresh_rerolls() -> Dict[str, bool]:
    return {t: False for t in REROLL_TYPES}


@dataclass
class PendingCombat:
    attacker_ship_id: str
    defender_ship_id: str
    attacker_player_id: str
    defender_player_id: str

    attacker_origin: Pos
    attacker_launch_position: Pos
    target_position: Pos

    # Strike: атакующий не двигается ни при каком исходе
    is_strike: bool = False
    # Tactical: бесплатный бросок до 2 клеток, действие не списывается
    is_tactical: bool = False
    defender_has_dangerous: bool = False

    attacker_roll: int = 0
    defender_roll: int = 0
    attacker_total: int = 0
    defender_total: int = 0
    attacker_modifiers: List[str] = field(default_factory=list)
    defender_modifiers: List[str] = field(default_factory=list)

    rerolls_used: Dict[str, bool] = field(default_factory=_fresh_rerolls)
    rerolls_declined: List[str] = field(default_factory=list)  # player ids


class ActionLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    seq: int
    type: str
    player_id: str
    turn: int
    data: Dict[str, Any] = Field(default_factory=dict)
    combat_result: Optional[Dict[str, Any]] = None


@dataclass
class GameState:
    id: str = "game"
    status: GameStatus = "in_progress"
    map_id: str = ""
    winner_id: Optional[str] = None

    turn_number: int = 1
    current_player_id: Optional[str] = None
    phase: TurnPhase = "actions"
    turn_order: List[str] = field(default_factory=list)

    # combat_phase и pending_combat либо оба None, либо оба заданы
    combat_phase: Optional[CombatPhase] = None
    pending_combat: Optional[PendingCombat] = None

    tiles: List[Tile] = field(default_factory=list)
    ships: List[Ship] = field(default_factory=list)
    players: List[Player] = field(default_factory=list)
    cards: CardZones = field(default_factory=CardZones)

    action_log: List[ActionLogEntry] = field(default_factory=list)

    seq: int = 0
    ship_seq: int = 1

    dice: Dice = field(default_factory=Dice)

    def with_seed(self, seed: int) -> "GameState":
        self.dice = SeededDice(seed)
        return self

    def with_dice(self, dice: Dice) -> "GameState":
        self.dice = dice
        return self

    def new_ship_id(self) -> str:
        sid = f"ship-{self.ship_seq}"
        self.ship_seq += 1
        return sid


# --- accessors ---


def get_player(state: GameState, player_id: str) -> Optional[Player]:
    for p in state.players:
        if p.id == player_id:
            return p
    return None


def require_player(state: GameState, player_id: str) -> Player:
    p = get_player(state, player_id)
    if p is None:
        raise InvariantViolation("Player not found", context={"player_id": player_id})
    return p


def current_player(state: GameState) -> Player:
    if state.current_player_id is None:
        raise InvariantViolation("Current player not found")
    p = get_player(state, state.current_player_id)
    if p is None:
        raise InvariantViolation(
            "Current player not found",
            context={"player_id": state.current_player_id},
        )
    return p


def get_ship(state: GameState, ship_id: str) -> Optional[Ship]:
    for s in state.ships:
        if s.id == ship_id:
            return s
    return None


def require_ship(state: GameState, ship_id: str) -> Ship:
    s = get_ship(state, ship_id)
    if s is None:
        raise InvariantViolation("Ship not found", context={"ship_id": ship_id})
    return s


def player_ships(state: GameState, player_id: str) -> List[Ship]:
    return [s for s in state.ships if s.owner_id == player_id]


def deployed_ships(state: GameState, player_id: str) -> List[Ship]:
    return [s for s in player_ships(state, player_id) if s.position is not None]


def get_tile(state: GameState, tile_id: str) -> Optional[Tile]:
    for t in state.tiles:
        if t.id == tile_id:
            return t
    return None


def opponents(state: GameState, player_id: str) -> List[Player]:
    return [p for p in state.players if p.id != player_id]


def cards_owed(player: Player) -> int:
    """Сколько Advance-карт игрок ещё должен выбрать в этом ходу."""
    earned = player.cubes_placed_this_turn + (
        1 if player.achieved_breakthrough_this_turn else 0
    )
    return max(0, earned - player.cards_claimed_this_turn)


def check_combat_invariant(state: GameState) -> None:
    if (state.combat_phase is None) != (state.pending_combat is None):
        raise InvariantViolation(
            "combat_phase and pending_combat out of sync",
            context={"combat_phase": state.combat_phase},
        )
