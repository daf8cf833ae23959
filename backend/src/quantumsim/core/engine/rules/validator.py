from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from quantumsim.core.engine.board import (
    adjacent_positions,
    find_reachable_positions,
    is_adjacent,
    ship_at,
    tile_for_orbital,
)
from quantumsim.core.engine.commands import (
    AdvanceCombat,
    Attack,
    CancelCombat,
    Command,
    CombatInput,
    Construct,
    DangerousInput,
    Deploy,
    EndTurn,
    FinalizeInput,
    FlexibleAdjust,
    FreeDeploy,
    Move,
    Reconfigure,
    RelocateCube,
    ReorganizeShips,
    RerollInput,
    Research,
    SabotageDiscard,
    Sacrifice,
    SelectAdvanceCard,
    SkipRerollsInput,
    TradeResources,
    UseAbility,
)
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.rules.modifiers import (
    allows_diagonal,
    available_rerolls,
    can_move_again,
    can_use_ability,
    construct_cost,
    construct_sum,
    construct_sum_ok,
    deploy_cost,
    deploy_positions,
    has_card,
    move_bonus_range,
    move_cost,
    tactical_available,
)
from quantumsim.core.engine.state import (
    SHIP_ABILITIES,
    GameState,
    Player,
    Pos,
    Ship,
    cards_owed,
    deployed_ships,
    get_player,
    get_ship,
    get_tile,
)


@dataclass
class ValidationError:
    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    ok: bool
    errors: List[ValidationError] = field(default_factory=list)
    cost_preview: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> Optional[str]:
        return self.errors[0].message if self.errors else None


def _err(code: str, message: str, **meta: Any) -> ValidationResult:
    return ValidationResult(
        ok=False, errors=[ValidationError(code=code, message=message, meta=meta)]
    )


def _ok(actions: int = 0) -> ValidationResult:
    return ValidationResult(ok=True, cost_preview={"actions": actions})


# --- общие проверки ---


def _turn_gate(
    state: GameState, player_id: str
) -> Tuple[Optional[ValidationResult], Optional[Player]]:
    """Игра идёт, ход игрока, фаза действий, боя нет."""
    if state.status != "in_progress":
        return _err("GAME_NOT_IN_PROGRESS", "Game is not in progress"), None
    if state.current_player_id != player_id:
        return (
            _err(
                "NOT_YOUR_TURN",
                "Not your turn",
                current_player_id=state.current_player_id,
                player_id=player_id,
            ),
            None,
        )
    if state.phase != "actions":
        return _err("NOT_ACTION_PHASE", "Not in action phase", phase=state.phase), None
    if state.pending_combat is not None:
        return (
            _err(
                "COMBAT_IN_PROGRESS",
                "Resolve the current combat first",
                combat_phase=state.combat_phase,
            ),
            None,
        )
    player = get_player(state, player_id)
    if player is None:
        return _err("UNKNOWN_PLAYER", "Player not found", player_id=player_id), None
    return None, player


def _budget(player: Player, cost: int) -> Optional[ValidationResult]:
    if player.actions_remaining < cost:
        return _err(
            "NO_ACTIONS",
            "No actions remaining" if cost <= 1 else f"Need {cost} actions",
            actions_remaining=player.actions_remaining,
            cost=cost,
        )
    return None


def _own_deployed_ship(
    state: GameState, player_id: str, ship_id: str
) -> Tuple[Optional[ValidationResult], Optional[Ship]]:
    ship = get_ship(state, ship_id)
    if ship is None:
        return _err("UNKNOWN_SHIP", "Ship not found", ship_id=ship_id), None
    if ship.owner_id != player_id:
        return (
            _err("NOT_YOUR_SHIP", "Ship not owned by player", ship_id=ship_id),
            None,
        )
    if ship.position is None:
        return _err("SHIP_NOT_DEPLOYED", "Ship is not deployed", ship_id=ship_id), None
    return None, ship


def _reachable(
    state: GameState, player: Player, ship: Ship, *, tactical: bool = False
) -> Dict[Pos, List[Pos]]:
    return find_reachable_positions(
        ship,
        state,
        allow_diagonal=allows_diagonal(ship),
        bonus_range=move_bonus_range(player, ship, tactical=tactical),
    )


def _move_gate(
    player: Player, ship: Ship, *, tactical: bool, peaceful: bool
) -> Tuple[Optional[ValidationResult], int]:
    """Бюджет и повторный ход. Tactical бесплатен и не смотрит на has_moved."""
    if tactical:
        if not has_card(player, "tactical"):
            return _err("CARD_REQUIRED", "Player does not have Tactical card"), 0
        if not tactical_available(player):
            return _err("ALREADY_USED", "Tactical already used this turn"), 0
        return None, 0

    cost = move_cost(player, peaceful=peaceful)
    bad = _budget(player, cost)
    if bad is not None:
        return bad, cost
    if not can_move_again(player, ship):
        return (
            _err("ALREADY_MOVED", "Ship has already moved this turn", ship_id=ship.id),
            cost,
        )
    return None, cost


def _deploy_target_ok(
    state: GameState, player: Player, position: Pos
) -> Optional[ValidationResult]:
    tile = tile_for_orbital(position, state.tiles)
    if tile is None:
        return _err(
            "NOT_ORBITAL", "Target is not an orbital position", position=position
        )
    if ship_at(position, state.ships) is not None:
        return _err("POSITION_OCCUPIED", "Position is occupied", position=position)
    if position not in deploy_positions(state, player):
        if has_card(player, "stealthy"):
            return _err(
                "STEALTHY_BLOCKED",
                "Cannot deploy next to another ship",
                position=position,
            )
        return _err(
            "NO_CUBE_ON_PLANET",
            "You do not have a quantum cube on this planet",
            tile_id=tile.id,
        )
    return None


# --- предикаты по действиям ---


def validate_reconfigure(
    state: GameState, player_id: str, ship_id: str
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None
    bad = _budget(player, 1)
    if bad is not None:
        return bad
    bad, _ = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    return _ok(1)


def validate_deploy(
    state: GameState, player_id: str, ship_index: int, position: Pos
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    cost = deploy_cost(player)
    bad = _budget(player, cost)
    if bad is not None:
        return bad
    if not player.scrapyard:
        return _err("EMPTY_SCRAPYARD", "No ships in scrapyard")
    if ship_index < 0 or ship_index >= len(player.scrapyard):
        return _err("BAD_SHIP_INDEX", "Invalid ship index", ship_index=ship_index)

    bad = _deploy_target_ok(state, player, position)
    if bad is not None:
        return bad
    return _ok(cost)


def validate_move(
    state: GameState,
    player_id: str,
    ship_id: str,
    target: Pos,
    *,
    tactical: bool = False,
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    bad, ship = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    assert ship is not None

    bad, cost = _move_gate(player, ship, tactical=tactical, peaceful=True)
    if bad is not None:
        return bad

    if target not in _reachable(state, player, ship, tactical=tactical):
        return _err("UNREACHABLE", "Target position not reachable", target=target)

    other = ship_at(target, state.ships)
    if other is not None and other.owner_id != player_id:
        return _err(
            "USE_ATTACK",
            "Target has enemy ship - use Attack action",
            target_ship_id=other.id,
        )
    return _ok(cost)


def validate_attack(
    state: GameState,
    player_id: str,
    ship_id: str,
    target: Pos,
    *,
    tactical: bool = False,
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    bad, ship = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    assert ship is not None

    bad, cost = _move_gate(player, ship, tactical=tactical, peaceful=False)
    if bad is not None:
        return bad

    if target not in _reachable(state, player, ship, tactical=tactical):
        return _err("UNREACHABLE", "Target position not reachable", target=target)

    defender = ship_at(target, state.ships)
    if defender is None:
        return _err("NO_TARGET_SHIP", "No ship at target position", target=target)
    if defender.owner_id == player_id:
        return _err("OWN_SHIP", "Cannot attack own ship", target_ship_id=defender.id)
    return _ok(cost)


def validate_construct(
    state: GameState,
    player_id: str,
    tile_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    cost = construct_cost(player, config)
    bad = _budget(player, cost)
    if bad is not None:
        return bad
    if player.quantum_cubes_remaining < 1:
        return _err("NO_CUBES", "No quantum cubes remaining")

    tile = get_tile(state, tile_id)
    if tile is None:
        return _err("UNKNOWN_TILE", "Tile not found", tile_id=tile_id)
    if tile.quantum_cube is not None:
        return _err(
            "TILE_TAKEN",
            "Planet already has a quantum cube",
            tile_id=tile_id,
            owner_id=tile.quantum_cube,
        )

    total = construct_sum(state, player, tile)
    if not construct_sum_ok(player, total, tile.planet_number):
        if has_card(player, "intelligent"):
            msg = f"Ships sum to {total}, need within +/- 1 of {tile.planet_number}"
        else:
            msg = f"Ships sum to {total}, need exactly {tile.planet_number}"
        return _err("SUM_MISMATCH", msg, total=total, planet_number=tile.planet_number)
    return _ok(cost)


def validate_research(state: GameState, player_id: str) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None
    bad = _budget(player, 1)
    if bad is not None:
        return bad
    return _ok(1)


def validate_end_turn(state: GameState, player_id: str) -> ValidationResult:
    # можно в любой фазе, но не посреди боя
    if state.status != "in_progress":
        return _err("GAME_NOT_IN_PROGRESS", "Game is not in progress")
    if state.current_player_id != player_id:
        return _err(
            "NOT_YOUR_TURN",
            "Not your turn",
            current_player_id=state.current_player_id,
            player_id=player_id,
        )
    if state.pending_combat is not None:
        return _err("COMBAT_IN_PROGRESS", "Resolve the current combat first")
    return _ok(0)


def validate_use_ability(
    state: GameState,
    player_id: str,
    ship_id: str,
    ability: str,
    *,
    target: Optional[Pos] = None,
    target_ship_id: Optional[str] = None,
    new_value: Optional[int] = None,
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    bad, ship = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    assert ship is not None

    if not can_use_ability(player, ship):
        return _err(
            "ABILITY_USED", "Ship has already used ability this turn", ship_id=ship_id
        )

    native = SHIP_ABILITIES.get(ship.pip_value)
    if native != ability:
        return _err(
            "WRONG_ABILITY",
            f"Ship with value {ship.pip_value} cannot use {ability}",
            ship_ability=native,
            ability=ability,
        )

    if ability == "strike":
        bad = _budget(player, 1)
        if bad is not None:
            return bad
        if target is None:
            return _err("TARGET_REQUIRED", "Strike needs a target position")
        assert ship.position is not None
        if not is_adjacent(ship.position, target):
            return _err("NOT_ADJACENT", "Strike target must be next to the ship")
        defender = ship_at(target, state.ships)
        if defender is None or defender.owner_id == player_id:
            return _err("NO_TARGET_SHIP", "No enemy ship at target position")
        return _ok(1)

    if ability == "warp":
        if target_ship_id is None:
            return _err("TARGET_REQUIRED", "Warp needs a ship to swap with")
        if target_ship_id == ship_id:
            return _err("SAME_SHIP", "Cannot warp with itself")
        bad, _ = _own_deployed_ship(state, player_id, target_ship_id)
        if bad is not None:
            return bad
        return _ok(0)

    if ability == "modify":
        if new_value not in (3, 5):
            return _err("BAD_VALUE", "Modify can turn the ship into 3 or 5", new_value=new_value)
        return _ok(0)

    # free_reconfigure
    return _ok(0)


def validate_select_card(
    state: GameState,
    player_id: str,
    instance_id: str,
    discard_instance_id: Optional[str] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> ValidationResult:
    if state.status != "in_progress":
        return _err("GAME_NOT_IN_PROGRESS", "Game is not in progress")
    if state.current_player_id != player_id:
        return _err("NOT_YOUR_TURN", "Not your turn")
    if state.pending_combat is not None:
        return _err("COMBAT_IN_PROGRESS", "Resolve the current combat first")
    player = get_player(state, player_id)
    if player is None:
        return _err("UNKNOWN_PLAYER", "Player not found", player_id=player_id)

    if cards_owed(player) < 1:
        return _err("NO_CARDS_OWED", "No Advance cards to select this turn")

    in_gambit = any(c.instance_id == instance_id for c in state.cards.gambit_market)
    in_command = any(c.instance_id == instance_id for c in state.cards.command_market)
    if not in_gambit and not in_command:
        return _err(
            "CARD_NOT_IN_MARKET", "Card not found in market", instance_id=instance_id
        )

    if in_command and len(player.active_command_cards) >= config.max_command_cards:
        if discard_instance_id is None:
            return _err("DISCARD_REQUIRED", "Must discard a command card first")
        if not any(
            c.instance_id == discard_instance_id for c in player.active_command_cards
        ):
            return _err(
                "UNKNOWN_DISCARD",
                "Card to discard not found",
                instance_id=discard_instance_id,
            )
    return _ok(0)


def validate_free_deploy(
    state: GameState, player_id: str, ship_index: int, position: Pos
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if player.free_deploys < 1:
        return _err("NO_FREE_DEPLOYS", "No free deploys available")
    if ship_index < 0 or ship_index >= len(player.scrapyard):
        return _err("BAD_SHIP_INDEX", "Invalid scrapyard index", ship_index=ship_index)

    bad = _deploy_target_ok(state, player, position)
    if bad is not None:
        return bad
    return _ok(0)


def validate_relocate_cube(
    state: GameState, player_id: str, from_tile_id: str, to_tile_id: str
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if "relocation" not in player.pending_gambits:
        return _err("NO_PENDING_GAMBIT", "No Relocation to resolve")

    src = get_tile(state, from_tile_id)
    dst = get_tile(state, to_tile_id)
    if src is None or dst is None:
        return _err("UNKNOWN_TILE", "Invalid tile")
    if src.id == dst.id:
        return _err("SAME_TILE", "Source and destination are the same planet")
    if src.quantum_cube is None:
        return _err("NO_CUBE", "No cube on source planet")
    if src.quantum_cube == player_id:
        return _err("OWN_CUBE", "Cannot relocate your own cube")
    if dst.quantum_cube is not None:
        return _err("TILE_TAKEN", "Destination planet already has a cube")
    return _ok(0)


def validate_reorganize(
    state: GameState,
    player_id: str,
    reroll_ship_ids: List[str],
    reroll_scrapyard_indices: List[int],
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if "reorganization" not in player.pending_gambits:
        return _err("NO_PENDING_GAMBIT", "No Reorganization to resolve")

    if len(set(reroll_ship_ids)) != len(reroll_ship_ids):
        return _err("DUPLICATE_SHIPS", "Ship listed twice")
    for sid in reroll_ship_ids:
        bad, _ = _own_deployed_ship(state, player_id, sid)
        if bad is not None:
            return bad

    if len(set(reroll_scrapyard_indices)) != len(reroll_scrapyard_indices):
        return _err("DUPLICATE_INDICES", "Scrapyard index listed twice")
    for idx in reroll_scrapyard_indices:
        if idx < 0 or idx >= len(player.scrapyard):
            return _err("BAD_SHIP_INDEX", "Invalid scrapyard index", ship_index=idx)
    return _ok(0)


def validate_sabotage_discard(
    state: GameState, player_id: str, instance_id: str
) -> ValidationResult:
    # сбрасывает оппонент, не обязательно в свой ход
    if state.status != "in_progress":
        return _err("GAME_NOT_IN_PROGRESS", "Game is not in progress")
    if state.pending_combat is not None:
        return _err("COMBAT_IN_PROGRESS", "Resolve the current combat first")
    player = get_player(state, player_id)
    if player is None:
        return _err("UNKNOWN_PLAYER", "Player not found", player_id=player_id)
    if "sabotage" not in player.pending_gambits:
        return _err("NO_PENDING_GAMBIT", "No Sabotage discard owed")
    if not any(c.instance_id == instance_id for c in player.active_command_cards):
        return _err(
            "CARD_NOT_HELD", "Card not found in player hand", instance_id=instance_id
        )
    return _ok(0)


def validate_flexible_adjust(
    state: GameState, player_id: str, ship_id: str
) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if not has_card(player, "flexible"):
        return _err("CARD_REQUIRED", "Player does not have Flexible card")
    if player.has_used_flexible_this_turn:
        return _err("ALREADY_USED", "Already used Flexible this turn")
    bad, _ = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    return _ok(0)


def validate_trade(state: GameState, player_id: str, trade: str) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if not has_card(player, trade):
        return _err("CARD_REQUIRED", f"Player does not have {trade.title()} card")
    if player.has_traded_this_turn:
        return _err("ALREADY_USED", "Already traded this turn")
    if trade == "tyrannical" and player.research_counter < 1:
        return _err("NOT_ENOUGH_RESEARCH", "Need 1 research to trade")
    if trade == "cerebral" and player.dominance_counter < 1:
        return _err("NOT_ENOUGH_DOMINANCE", "Need 1 dominance to trade")
    return _ok(0)


def validate_sacrifice(state: GameState, player_id: str, ship_id: str) -> ValidationResult:
    gate, player = _turn_gate(state, player_id)
    if gate is not None:
        return gate
    assert player is not None

    if not has_card(player, "resourceful"):
        return _err("CARD_REQUIRED", "Player does not have Resourceful card")
    bad, _ = _own_deployed_ship(state, player_id, ship_id)
    if bad is not None:
        return bad
    return _ok(0)


def validate_combat_input(
    state: GameState, player_id: str, combat_input: Optional[CombatInput]
) -> ValidationResult:
    pc = state.pending_combat
    if pc is None or state.combat_phase is None:
        return _err("NO_COMBAT", "No combat in progress")
    if player_id not in (pc.attacker_player_id, pc.defender_player_id):
        return _err("NOT_A_PARTICIPANT", "Player is not part of this combat")
    if combat_input is None:
        return _ok(0)

    phase = state.combat_phase

    if isinstance(combat_input, DangerousInput):
        if phase != "pre-combat":
            return _err("WRONG_COMBAT_PHASE", "Dangerous is decided before rolls", phase=phase)
        if player_id != pc.defender_player_id:
            return _err("NOT_DEFENDER", "Only the defender decides on Dangerous")
        return _ok(0)

    if isinstance(combat_input, RerollInput):
        if phase != "re-roll":
            return _err("WRONG_COMBAT_PHASE", "Not in re-roll phase", phase=phase)
        if combat_input.player_id != player_id:
            return _err("PLAYER_MISMATCH", "Reroll must be requested by its owner")
        player = get_player(state, player_id)
        if player is None:
            return _err("UNKNOWN_PLAYER", "Player not found", player_id=player_id)
        options = available_rerolls(
            pc, player, is_attacker=(player_id == pc.attacker_player_id)
        )
        if combat_input.reroll_type not in options:
            return _err(
                "REROLL_UNAVAILABLE",
                f"{combat_input.reroll_type} reroll is not available",
                options=options,
            )
        return _ok(0)

    if isinstance(combat_input, SkipRerollsInput):
        if phase != "re-roll":
            return _err("WRONG_COMBAT_PHASE", "Not in re-roll phase", phase=phase)
        if combat_input.player_id is not None and combat_input.player_id != player_id:
            return _err("PLAYER_MISMATCH", "Cannot decline for another player")
        return _ok(0)

    if isinstance(combat_input, FinalizeInput):
        if phase != "resolution":
            return _err("WRONG_COMBAT_PHASE", "Not in resolution phase", phase=phase)
        if player_id != pc.attacker_player_id:
            return _err("NOT_ATTACKER", "Only the attacker finalizes the combat")
        return _ok(0)

    return _err("UNKNOWN_INPUT", "Unsupported combat input")


def validate_cancel_combat(state: GameState, player_id: str) -> ValidationResult:
    pc = state.pending_combat
    if pc is None:
        return _err("NO_COMBAT", "No combat in progress")
    if player_id != pc.attacker_player_id:
        return _err("NOT_ATTACKER", "Only the attacker can cancel the combat")
    return _ok(0)


def validate_command(
    state: GameState, cmd: Command, config: EngineConfig = DEFAULT_CONFIG
) -> ValidationResult:
    if isinstance(cmd, Reconfigure):
        return validate_reconfigure(state, cmd.player_id, cmd.ship_id)
    if isinstance(cmd, Deploy):
        return validate_deploy(state, cmd.player_id, cmd.ship_index, cmd.position)
    if isinstance(cmd, Move):
        return validate_move(
            state, cmd.player_id, cmd.ship_id, cmd.target, tactical=cmd.tactical
        )
    if isinstance(cmd, Attack):
        return validate_attack(
            state, cmd.player_id, cmd.ship_id, cmd.target, tactical=cmd.tactical
        )
    if isinstance(cmd, Construct):
        return validate_construct(state, cmd.player_id, cmd.tile_id, config)
    if isinstance(cmd, Research):
        return validate_research(state, cmd.player_id)
    if isinstance(cmd, EndTurn):
        return validate_end_turn(state, cmd.player_id)
    if isinstance(cmd, UseAbility):
        return validate_use_ability(
            state,
            cmd.player_id,
            cmd.ship_id,
            cmd.ability,
            target=cmd.target,
            target_ship_id=cmd.target_ship_id,
            new_value=cmd.new_value,
        )
    if isinstance(cmd, SelectAdvanceCard):
        return validate_select_card(
            state, cmd.player_id, cmd.instance_id, cmd.discard_instance_id, config
        )
    if isinstance(cmd, FreeDeploy):
        return validate_free_deploy(state, cmd.player_id, cmd.ship_index, cmd.position)
    if isinstance(cmd, RelocateCube):
        return validate_relocate_cube(
            state, cmd.player_id, cmd.from_tile_id, cmd.to_tile_id
        )
    if isinstance(cmd, ReorganizeShips):
        return validate_reorganize(
            state, cmd.player_id, cmd.reroll_ship_ids, cmd.reroll_scrapyard_indices
        )
    if isinstance(cmd, SabotageDiscard):
        return validate_sabotage_discard(state, cmd.player_id, cmd.instance_id)
    if isinstance(cmd, FlexibleAdjust):
        return validate_flexible_adjust(state, cmd.player_id, cmd.ship_id)
    if isinstance(cmd, TradeResources):
        return validate_trade(state, cmd.player_id, cmd.trade)
    if isinstance(cmd, Sacrifice):
        return validate_sacrifice(state, cmd.player_id, cmd.ship_id)
    if isinstance(cmd, AdvanceCombat):
        return validate_combat_input(state, cmd.player_id, cmd.input)
    if isinstance(cmd, CancelCombat):
        return validate_cancel_combat(state, cmd.player_id)

    return _err("UNKNOWN_COMMAND", "Unsupported command", type=getattr(cmd, "type", None))


# --- агрегатор доступных действий ---


class AvailableActions(BaseModel):
    player_id: Optional[str] = None

    can_reconfigure: List[str] = Field(default_factory=list)
    can_deploy: List[Pos] = Field(default_factory=list)
    can_move: Dict[str, List[Pos]] = Field(default_factory=dict)
    can_attack: Dict[str, List[Pos]] = Field(default_factory=dict)
    can_construct: List[str] = Field(default_factory=list)
    can_research: bool = False
    can_use_ability: Dict[str, List[str]] = Field(default_factory=dict)
    can_end_turn: bool = False

    cards_to_select: int = 0
    free_deploys: int = 0
    pending_gambits: List[str] = Field(default_factory=list)
    combat_pending: bool = False


def get_available_actions(
    state: GameState, config: EngineConfig = DEFAULT_CONFIG
) -> AvailableActions:
    pid = state.current_player_id
    available = AvailableActions(player_id=pid)
    player = get_player(state, pid) if pid is not None else None
    if player is None or state.status != "in_progress":
        return available

    available.cards_to_select = cards_owed(player)
    available.free_deploys = player.free_deploys
    available.pending_gambits = list(player.pending_gambits)

    if state.pending_combat is not None:
        available.combat_pending = True
        return available

    available.can_end_turn = validate_end_turn(state, player.id).ok

    if state.phase != "actions":
        return available

    for ship in deployed_ships(state, player.id):
        if validate_reconfigure(state, player.id, ship.id).ok:
            available.can_reconfigure.append(ship.id)

        if can_move_again(player, ship):
            moves: List[Pos] = []
            attacks: List[Pos] = []
            for pos in _reachable(state, player, ship):
                other = ship_at(pos, state.ships)
                if other is None:
                    if player.actions_remaining >= move_cost(player, peaceful=True):
                        moves.append(pos)
                elif other.owner_id != player.id and player.actions_remaining >= 1:
                    attacks.append(pos)
            if moves:
                available.can_move[ship.id] = moves
            if attacks:
                available.can_attack[ship.id] = attacks

        abilities = _usable_abilities(state, player, ship)
        if abilities:
            available.can_use_ability[ship.id] = abilities

    if player.scrapyard and player.actions_remaining >= deploy_cost(player):
        available.can_deploy = deploy_positions(state, player)

    for tile in state.tiles:
        if validate_construct(state, player.id, tile.id, config).ok:
            available.can_construct.append(tile.id)

    available.can_research = validate_research(state, player.id).ok
    return available


def _usable_abilities(state: GameState, player: Player, ship: Ship) -> List[str]:
    ability = SHIP_ABILITIES.get(ship.pip_value)
    if ability is None or ability in ("transport", "maneuver"):
        return []
    if not can_use_ability(player, ship):
        return []
    if ability == "strike":
        assert ship.position is not None
        for pos in adjacent_positions(ship.position):
            if validate_use_ability(state, player.id, ship.id, "strike", target=pos).ok:
                return ["strike"]
        return []
    if ability == "warp":
        others = [s for s in deployed_ships(state, player.id) if s.id != ship.id]
        return ["warp"] if others else []
    return [ability]
