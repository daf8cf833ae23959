from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from quantumsim.core.engine.board import move_path
from quantumsim.core.engine.cards.definitions import CardInstance
from quantumsim.core.engine.cards.library import get_card
from quantumsim.core.engine.commands import (
    AdvanceCombat,
    Attack,
    CancelCombat,
    Command,
    Construct,
    Deploy,
    EndTurn,
    FlexibleAdjust,
    FreeDeploy,
    Move,
    Reconfigure,
    RelocateCube,
    ReorganizeShips,
    Research,
    SabotageDiscard,
    Sacrifice,
    SelectAdvanceCard,
    TradeResources,
    UseAbility,
)
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.errors import InvariantViolation
from quantumsim.core.engine.events import (
    ev_ability_used,
    ev_card_discarded,
    ev_card_selected,
    ev_command_rejected,
    ev_cube_placed,
    ev_cube_relocated,
    ev_gambit_resolved,
    ev_game_ended,
    ev_research_advanced,
    ev_resources_traded,
    ev_ship_adjusted,
    ev_ship_deployed,
    ev_ship_moved,
    ev_ship_reconfigured,
    ev_ship_sacrificed,
    ev_ships_reorganized,
    ev_turn_ended,
    ev_turn_started,
)
from quantumsim.core.engine.rules.combat import (
    CombatInputRequest,
    CombatResult,
    CombatStep,
    Deciders,
    advance_combat,
    cancel_combat,
    default_deciders,
    initiate_attack,
)
from quantumsim.core.engine.rules.modifiers import (
    allows_diagonal,
    construct_cost,
    deploy_cost,
    has_card,
    move_bonus_range,
    move_cost,
    research_gain,
    spend_ability,
    turn_action_budget,
)
from quantumsim.core.engine.rules.outcomes import (
    advance_research,
    bump,
    change_dominance,
    destroy_ship,
)
from quantumsim.core.engine.rules.validator import ValidationError, validate_command
from quantumsim.core.engine.state import (
    ActionLogEntry,
    GameState,
    Player,
    Ship,
    opponents,
    require_player,
    require_ship,
)

logger = logging.getLogger(__name__)

# follow-up гамбиты, которые сгорают в конце хода владельца
_TURN_SCOPED_GAMBITS = ("relocation", "reorganization")


@dataclass
class CommandResult:
    ok: bool
    state: GameState
    events: List[dict] = field(default_factory=list)
    error: Optional[ValidationError] = None

    needs_input: Optional[CombatInputRequest] = None
    combat_result: Optional[CombatResult] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.message if self.error is not None else None


@dataclass
class _Ctx:
    config: EngineConfig
    deciders: Deciders


@dataclass
class _Outcome:
    events: List[dict] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    step: Optional[CombatStep] = None


def _take_action(player: Player, cost: int) -> None:
    if player.actions_remaining < cost:
        raise InvariantViolation(
            "Action budget overdrawn",
            context={"player_id": player.id, "cost": cost},
        )
    player.actions_remaining -= cost


def _place_ship(state: GameState, player: Player, ship_index: int, position) -> Ship:
    value = player.scrapyard.pop(ship_index)
    ship = Ship(
        id=state.new_ship_id(),
        owner_id=player.id,
        pip_value=value,
        position=tuple(position),
    )
    state.ships.append(ship)
    return ship


def _refill(market: List[CardInstance], deck: List[CardInstance]) -> None:
    if deck:
        market.append(deck.pop())


# --- базовые действия ---


def _apply_reconfigure(state: GameState, cmd: Reconfigure, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    ship = require_ship(state, cmd.ship_id)
    old = ship.pip_value
    ship.pip_value = state.dice.roll_different(old)
    _take_action(player, 1)

    ev = ev_ship_reconfigured(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        ship_id=ship.id,
        old_value=old,
        new_value=ship.pip_value,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={"ship_id": ship.id, "previous_value": old, "new_value": ship.pip_value},
    )


def _apply_deploy(state: GameState, cmd: Deploy, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    cost = deploy_cost(player)
    ship = _place_ship(state, player, cmd.ship_index, cmd.position)
    _take_action(player, cost)

    ev = ev_ship_deployed(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        ship_id=ship.id,
        value=ship.pip_value,
        position=cmd.position,
        free=cost == 0,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={
            "ship_id": ship.id,
            "ship_index": cmd.ship_index,
            "ship_value": ship.pip_value,
            "position": list(cmd.position),
        },
    )


def _apply_free_deploy(state: GameState, cmd: FreeDeploy, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    ship = _place_ship(state, player, cmd.ship_index, cmd.position)
    player.free_deploys -= 1

    ev = ev_ship_deployed(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        ship_id=ship.id,
        value=ship.pip_value,
        position=cmd.position,
        free=True,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={
            "ship_id": ship.id,
            "ship_value": ship.pip_value,
            "position": list(cmd.position),
            "free_deploys_left": player.free_deploys,
        },
    )


def _apply_move(state: GameState, cmd: Move, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    ship = require_ship(state, cmd.ship_id)
    origin = ship.position

    path = move_path(
        ship,
        cmd.target,
        state,
        allow_diagonal=allows_diagonal(ship),
        bonus_range=move_bonus_range(player, ship, tactical=cmd.tactical),
    )
    if path is None:
        raise InvariantViolation("Validated move has no path", context={"ship_id": ship.id})

    if cmd.tactical:
        cost = 0
        player.has_used_tactical_this_turn = True
    else:
        cost = move_cost(player, peaceful=True)
        if cost == 0:
            player.bonus_moves -= 1
        else:
            _take_action(player, cost)

    ship.position = tuple(cmd.target)
    ship.has_moved_this_turn = True

    ev = ev_ship_moved(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        ship_id=ship.id,
        path=path,
        cost=cost,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={
            "ship_id": ship.id,
            "from": list(origin) if origin else None,
            "to": list(cmd.target),
            "path": [list(p) for p in path],
            "bonus_move": cost == 0 and not cmd.tactical,
            "tactical": cmd.tactical,
        },
    )


def _apply_attack(state: GameState, cmd: Attack, ctx: _Ctx) -> _Outcome:
    step = initiate_attack(
        state,
        cmd.player_id,
        cmd.ship_id,
        tuple(cmd.target),
        is_tactical=cmd.tactical,
        deciders=ctx.deciders,
        config=ctx.config,
    )
    return _Outcome(
        events=list(step.events),
        data={
            "ship_id": cmd.ship_id,
            "target": list(cmd.target),
            "tactical": cmd.tactical,
        },
        step=step,
    )


def _apply_construct(state: GameState, cmd: Construct, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    tile = next((t for t in state.tiles if t.id == cmd.tile_id), None)
    if tile is None:
        raise InvariantViolation("Tile not found", context={"tile_id": cmd.tile_id})

    tile.quantum_cube = player.id
    player.quantum_cubes_remaining -= 1
    player.cubes_placed_this_turn += 1
    _take_action(player, construct_cost(player, ctx.config))

    events = [
        ev_cube_placed(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player.id,
            tile_id=tile.id,
            cubes_remaining=player.quantum_cubes_remaining,
        ).model_dump()
    ]

    if player.quantum_cubes_remaining == 0:
        state.status = "finished"
        state.winner_id = player.id
        events.append(
            ev_game_ended(
                seq=bump(state), turn=state.turn_number, winner_id=player.id
            ).model_dump()
        )
        logger.info("Game %s finished, winner %s", state.id, player.id)

    return _Outcome(
        events=events,
        data={"tile_id": tile.id, "cubes_remaining": player.quantum_cubes_remaining},
    )


def _apply_research(state: GameState, cmd: Research, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    before = player.research_counter
    # seq занимаем заранее: событие прорыва идёт следом
    seq = bump(state)
    breakthrough, evs = advance_research(
        state, player, research_gain(player), ctx.config
    )
    _take_action(player, 1)

    events = [
        ev_research_advanced(
            seq=seq,
            turn=state.turn_number,
            player_id=player.id,
            before=before,
            after=player.research_counter,
        ).model_dump()
    ]
    events.extend(evs)
    return _Outcome(
        events=events,
        data={
            "previous_value": before,
            "new_value": player.research_counter,
            "breakthrough": breakthrough,
        },
    )


def _reset_ships(state: GameState, player_id: str) -> None:
    for s in state.ships:
        if s.owner_id == player_id:
            s.has_moved_this_turn = False
            s.has_used_ability_this_turn = False


def _start_turn(state: GameState, player: Player, config: EngineConfig) -> None:
    player.actions_remaining = turn_action_budget(state, player, config)
    player.has_used_flexible_this_turn = False
    player.has_traded_this_turn = False
    player.has_used_cunning_this_turn = False
    player.has_used_tactical_this_turn = False
    player.bonus_moves = 1 if has_card(player, "curious") else 0


def _apply_end_turn(state: GameState, cmd: EndTurn, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)

    cards_earned = player.cubes_placed_this_turn + (
        1 if player.achieved_breakthrough_this_turn else 0
    )
    unclaimed = max(0, cards_earned - player.cards_claimed_this_turn)
    if unclaimed:
        logger.debug("Player %s ends turn with %d unclaimed cards", player.id, unclaimed)

    player.cubes_placed_this_turn = 0
    player.achieved_breakthrough_this_turn = False
    player.cards_claimed_this_turn = 0
    player.bonus_moves = 0
    player.free_deploys = 0
    player.pending_gambits = [
        g for g in player.pending_gambits if g not in _TURN_SCOPED_GAMBITS
    ]
    _reset_ships(state, player.id)

    events = [
        ev_turn_ended(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player.id,
            cards_earned=cards_earned,
        ).model_dump()
    ]

    order = state.turn_order
    if player.id not in order:
        raise InvariantViolation(
            "Current player missing from turn order", context={"player_id": player.id}
        )
    nxt = (order.index(player.id) + 1) % len(order)
    if nxt == 0:
        state.turn_number += 1
    state.current_player_id = order[nxt]
    state.phase = "actions"

    incoming = require_player(state, order[nxt])
    _start_turn(state, incoming, ctx.config)

    events.append(
        ev_turn_started(
            seq=bump(state),
            turn=state.turn_number,
            player_id=incoming.id,
            actions=incoming.actions_remaining,
        ).model_dump()
    )
    return _Outcome(
        events=events,
        data={
            "cards_earned": cards_earned,
            "cards_unclaimed": unclaimed,
            "next_player_id": incoming.id,
        },
    )


# --- способности кораблей ---


def _apply_use_ability(state: GameState, cmd: UseAbility, ctx: _Ctx) -> _Outcome:
    if cmd.ability == "strike":
        assert cmd.target is not None
        step = initiate_attack(
            state,
            cmd.player_id,
            cmd.ship_id,
            tuple(cmd.target),
            is_strike=True,
            deciders=ctx.deciders,
            config=ctx.config,
        )
        return _Outcome(
            events=list(step.events),
            data={
                "ship_id": cmd.ship_id,
                "ability": "strike",
                "target": list(cmd.target),
            },
            step=step,
        )

    ship = require_ship(state, cmd.ship_id)
    details: Dict[str, Any] = {}

    if cmd.ability == "warp":
        assert cmd.target_ship_id is not None
        other = require_ship(state, cmd.target_ship_id)
        ship.position, other.position = other.position, ship.position
        details = {
            "target_ship_id": other.id,
            "position": list(ship.position) if ship.position else None,
        }
    elif cmd.ability == "modify":
        assert cmd.new_value is not None
        details = {"old_value": ship.pip_value, "new_value": cmd.new_value}
        ship.pip_value = cmd.new_value
    elif cmd.ability == "free_reconfigure":
        old = ship.pip_value
        ship.pip_value = state.dice.roll_different(old)
        details = {"old_value": old, "new_value": ship.pip_value}
    else:
        raise InvariantViolation("Unknown ability", context={"ability": cmd.ability})

    spend_ability(require_player(state, cmd.player_id), ship)
    ev = ev_ability_used(
        seq=bump(state),
        turn=state.turn_number,
        player_id=cmd.player_id,
        ship_id=ship.id,
        ability=cmd.ability,
        details=details,
    ).model_dump()
    return _Outcome(
        events=[ev], data={"ship_id": ship.id, "ability": cmd.ability, **details}
    )


# --- карты ---


def _resolve_gambit(state: GameState, player: Player, card_id: str) -> Dict[str, Any]:
    if card_id == "expansion":
        value = state.dice.roll_die()
        player.scrapyard.append(value)
        player.free_deploys += 1
        return {"scrapyard_value": value, "free_deploys": player.free_deploys}

    if card_id == "aggression":
        applied, _ = change_dominance(state, player, 2, reason="aggression")
        return {"dominance": applied}

    if card_id == "momentum":
        player.actions_remaining += 2
        _reset_ships(state, player.id)
        return {"actions": 2}

    if card_id in ("relocation", "reorganization"):
        player.pending_gambits.append(card_id)
        return {"pending": card_id}

    if card_id == "sabotage":
        victims = []
        for opp in opponents(state, player.id):
            if opp.active_command_cards:
                opp.pending_gambits.append("sabotage")
                victims.append(opp.id)
        return {"victims": victims}

    raise InvariantViolation("Unknown gambit", context={"card_id": card_id})


def _apply_select_card(state: GameState, cmd: SelectAdvanceCard, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    zones = state.cards
    events: List[dict] = []
    discarded: Optional[str] = None
    seq = bump(state)

    gambit = next(
        (c for c in zones.gambit_market if c.instance_id == cmd.instance_id), None
    )
    if gambit is not None:
        zones.gambit_market.remove(gambit)
        effect = _resolve_gambit(state, player, gambit.card_id)
        zones.gambit_discard.append(gambit)
        _refill(zones.gambit_market, zones.gambit_deck)
        card = gambit
        events.append(
            ev_gambit_resolved(
                seq=bump(state),
                turn=state.turn_number,
                player_id=player.id,
                card_id=gambit.card_id,
                effect=effect,
            ).model_dump()
        )
    else:
        command = next(
            (c for c in zones.command_market if c.instance_id == cmd.instance_id), None
        )
        if command is None:
            raise InvariantViolation(
                "Card vanished from market", context={"instance_id": cmd.instance_id}
            )
        if len(player.active_command_cards) >= ctx.config.max_command_cards:
            old = next(
                c
                for c in player.active_command_cards
                if c.instance_id == cmd.discard_instance_id
            )
            player.active_command_cards.remove(old)
            zones.command_discard.append(old)
            discarded = old.instance_id

        zones.command_market.remove(command)
        player.active_command_cards.append(
            command.model_copy(update={"gained_on_turn": state.turn_number})
        )
        _refill(zones.command_market, zones.command_deck)
        card = command

    player.cards_claimed_this_turn += 1

    events.insert(
        0,
        ev_card_selected(
            seq=seq,
            turn=state.turn_number,
            player_id=player.id,
            card_id=card.card_id,
            instance_id=card.instance_id,
            discarded_instance_id=discarded,
        ).model_dump(),
    )
    return _Outcome(
        events=events,
        data={
            "card_id": card.card_id,
            "card_type": get_card(card.card_id).type,
            "instance_id": card.instance_id,
            "discarded_instance_id": discarded,
        },
    )


def _apply_relocate(state: GameState, cmd: RelocateCube, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    src = next(t for t in state.tiles if t.id == cmd.from_tile_id)
    dst = next(t for t in state.tiles if t.id == cmd.to_tile_id)

    owner_id = src.quantum_cube
    assert owner_id is not None
    src.quantum_cube = None
    dst.quantum_cube = owner_id
    player.pending_gambits.remove("relocation")

    ev = ev_cube_relocated(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        owner_id=owner_id,
        from_tile_id=src.id,
        to_tile_id=dst.id,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={"owner_id": owner_id, "from_tile_id": src.id, "to_tile_id": dst.id},
    )


def _apply_reorganize(state: GameState, cmd: ReorganizeShips, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    events: List[dict] = []
    rerolled: Dict[str, Any] = {"ships": {}, "scrapyard": {}}

    # сначала scrapyard по старым индексам, потом корабли с доски (в конец)
    for idx in cmd.reroll_scrapyard_indices:
        player.scrapyard[idx] = state.dice.roll_die()
        rerolled["scrapyard"][str(idx)] = player.scrapyard[idx]

    for sid in cmd.reroll_ship_ids:
        ship = require_ship(state, sid)
        value, evs = destroy_ship(state, ship, reason="reorganization")
        rerolled["ships"][sid] = value
        events.extend(evs)

    player.free_deploys = len(player.scrapyard)
    player.pending_gambits.remove("reorganization")

    events.append(
        ev_ships_reorganized(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player.id,
            rerolled=rerolled,
            free_deploys=player.free_deploys,
        ).model_dump()
    )
    return _Outcome(
        events=events,
        data={"rerolled": rerolled, "free_deploys": player.free_deploys},
    )


def _apply_sabotage_discard(
    state: GameState, cmd: SabotageDiscard, ctx: _Ctx
) -> _Outcome:
    player = require_player(state, cmd.player_id)
    card = next(
        c for c in player.active_command_cards if c.instance_id == cmd.instance_id
    )
    player.active_command_cards.remove(card)
    state.cards.command_discard.append(card)
    player.pending_gambits.remove("sabotage")

    ev = ev_card_discarded(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        card_id=card.card_id,
        instance_id=card.instance_id,
        reason="sabotage",
    ).model_dump()
    return _Outcome(
        events=[ev], data={"card_id": card.card_id, "instance_id": card.instance_id}
    )


def _apply_flexible(state: GameState, cmd: FlexibleAdjust, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    ship = require_ship(state, cmd.ship_id)
    old = ship.pip_value
    # по кругу: 6+1 -> 1, 1-1 -> 6
    ship.pip_value = (old - 1 + cmd.delta) % 6 + 1
    player.has_used_flexible_this_turn = True

    ev = ev_ship_adjusted(
        seq=bump(state),
        turn=state.turn_number,
        player_id=player.id,
        ship_id=ship.id,
        old_value=old,
        new_value=ship.pip_value,
    ).model_dump()
    return _Outcome(
        events=[ev],
        data={"ship_id": ship.id, "old_value": old, "new_value": ship.pip_value},
    )


def _apply_trade(state: GameState, cmd: TradeResources, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    events: List[dict] = []
    seq = bump(state)

    if cmd.trade == "tyrannical":
        player.research_counter -= 1
        _, evs = change_dominance(state, player, 1, reason="tyrannical")
        events.extend(evs)
        research_delta, dominance_delta = -1, 1
    else:
        # добровольная трата, Righteous тут ни при чём
        player.dominance_counter -= 1
        _, evs = advance_research(state, player, 3, ctx.config)
        events.extend(evs)
        research_delta, dominance_delta = 3, -1

    player.has_traded_this_turn = True
    events.insert(
        0,
        ev_resources_traded(
            seq=seq,
            turn=state.turn_number,
            player_id=player.id,
            trade=cmd.trade,
            research=research_delta,
            dominance=dominance_delta,
        ).model_dump(),
    )
    return _Outcome(
        events=events,
        data={
            "trade": cmd.trade,
            "research_counter": player.research_counter,
            "dominance_counter": player.dominance_counter,
        },
    )


def _apply_sacrifice(state: GameState, cmd: Sacrifice, ctx: _Ctx) -> _Outcome:
    player = require_player(state, cmd.player_id)
    ship = require_ship(state, cmd.ship_id)
    seq = bump(state)
    value, evs = destroy_ship(state, ship, reason="sacrifice")
    player.actions_remaining += 1

    events = [
        ev_ship_sacrificed(
            seq=seq,
            turn=state.turn_number,
            player_id=player.id,
            ship_id=ship.id,
            rerolled_value=value,
        ).model_dump()
    ]
    events.extend(evs)
    return _Outcome(events=events, data={"ship_id": ship.id, "rerolled_value": value})


# --- бой ---


def _apply_advance_combat(state: GameState, cmd: AdvanceCombat, ctx: _Ctx) -> _Outcome:
    step = advance_combat(
        state,
        cmd.input,
        actor_id=cmd.player_id,
        deciders=ctx.deciders,
        config=ctx.config,
    )
    return _Outcome(
        events=list(step.events),
        data={"input": cmd.input.model_dump() if cmd.input is not None else None},
        step=step,
    )


def _apply_cancel_combat(state: GameState, cmd: CancelCombat, ctx: _Ctx) -> _Outcome:
    events = cancel_combat(state, cmd.player_id, ctx.config)
    return _Outcome(
        events=events,
        data={
            "policy": ctx.config.cancel_policy,
            "charged": ctx.config.cancel_policy == "charge",
        },
    )


def _dispatch(state: GameState, cmd: Command, ctx: _Ctx) -> _Outcome:
    if isinstance(cmd, Reconfigure):
        return _apply_reconfigure(state, cmd, ctx)
    if isinstance(cmd, Deploy):
        return _apply_deploy(state, cmd, ctx)
    if isinstance(cmd, Move):
        return _apply_move(state, cmd, ctx)
    if isinstance(cmd, Attack):
        return _apply_attack(state, cmd, ctx)
    if isinstance(cmd, Construct):
        return _apply_construct(state, cmd, ctx)
    if isinstance(cmd, Research):
        return _apply_research(state, cmd, ctx)
    if isinstance(cmd, EndTurn):
        return _apply_end_turn(state, cmd, ctx)
    if isinstance(cmd, UseAbility):
        return _apply_use_ability(state, cmd, ctx)
    if isinstance(cmd, SelectAdvanceCard):
        return _apply_select_card(state, cmd, ctx)
    if isinstance(cmd, FreeDeploy):
        return _apply_free_deploy(state, cmd, ctx)
    if isinstance(cmd, RelocateCube):
        return _apply_relocate(state, cmd, ctx)
    if isinstance(cmd, ReorganizeShips):
        return _apply_reorganize(state, cmd, ctx)
    if isinstance(cmd, SabotageDiscard):
        return _apply_sabotage_discard(state, cmd, ctx)
    if isinstance(cmd, FlexibleAdjust):
        return _apply_flexible(state, cmd, ctx)
    if isinstance(cmd, TradeResources):
        return _apply_trade(state, cmd, ctx)
    if isinstance(cmd, Sacrifice):
        return _apply_sacrifice(state, cmd, ctx)
    if isinstance(cmd, AdvanceCombat):
        return _apply_advance_combat(state, cmd, ctx)
    if isinstance(cmd, CancelCombat):
        return _apply_cancel_combat(state, cmd, ctx)

    raise InvariantViolation("Unsupported command", context={"type": cmd.type})


def apply_command(
    state: GameState,
    cmd: Command,
    *,
    deciders: Optional[Deciders] = None,
    config: Optional[EngineConfig] = None,
) -> CommandResult:
    """
    Чистый редьюсер: (state, cmd) -> CommandResult.

    Входной state не меняется никогда. При ошибке валидации возвращаем его же
    с CommandRejected; при успехе: новую копию с одной записью в action_log.
    """
    config = config or DEFAULT_CONFIG

    vr = validate_command(state, cmd, config)
    if not vr.ok:
        e = vr.errors[0]
        rej = ev_command_rejected(
            seq=state.seq + 1,
            turn=state.turn_number,
            player_id=cmd.player_id,
            command=cmd.model_dump(mode="json"),
            code=e.code,
            message=e.message,
            meta=e.meta,
        ).model_dump()
        logger.debug("Rejected %s from %s: %s", cmd.type, cmd.player_id, e.code)
        return CommandResult(ok=False, state=state, events=[rej], error=e)

    new = copy.deepcopy(state)
    ctx = _Ctx(
        config=config,
        deciders=deciders if deciders is not None else default_deciders(new),
    )
    turn = new.turn_number

    outcome = _dispatch(new, cmd, ctx)

    step = outcome.step
    combat_result = step.result if step is not None else None
    needs_input = step.needs_input if step is not None else None

    new.action_log.append(
        ActionLogEntry(
            seq=bump(new),
            type=cmd.type,
            player_id=cmd.player_id,
            turn=turn,
            data=outcome.data,
            combat_result=(
                combat_result.model_dump(mode="json")
                if combat_result is not None
                else None
            ),
        )
    )

    return CommandResult(
        ok=True,
        state=new,
        events=outcome.events,
        needs_input=needs_input,
        combat_result=combat_result,
    )
