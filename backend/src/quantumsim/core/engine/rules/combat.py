from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from quantumsim.core.engine.board import find_reachable_positions
from quantumsim.core.engine.commands import (
    CombatInput,
    DangerousInput,
    FinalizeInput,
    RerollInput,
    SkipRerollsInput,
)
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.errors import InvariantViolation
from quantumsim.core.engine.events import (
    ev_combat_cancelled,
    ev_combat_input_required,
    ev_combat_rerolled,
    ev_combat_resolved,
    ev_combat_rolled,
    ev_combat_started,
)
from quantumsim.core.engine.rules.modifiers import (
    DEFAULT_COMBAT_MIDDLEWARES,
    CombatMiddleware,
    CombatRollContext,
    allows_diagonal,
    apply_die_mods,
    apply_total_mods,
    available_rerolls,
    combat_dominance_delta,
    has_card,
    move_bonus_range,
    punishes_failed_attack,
    spend_ability,
    tie_favors_defender,
)
from quantumsim.core.engine.rules.outcomes import (
    advance_research,
    bump,
    change_dominance,
    destroy_ship,
)
from quantumsim.core.engine.state import (
    GameState,
    PendingCombat,
    Player,
    Pos,
    Ship,
    get_ship,
    require_player,
    require_ship,
)

logger = logging.getLogger(__name__)

Side = Literal["attacker", "defender"]
Winner = Literal["attacker", "defender", "mutual"]


# --- результат / запрос ввода ---


class RerollOption(BaseModel):
    player_id: str
    type: str


class CombatInputRequest(BaseModel):
    """
    Бой остановлен: нужен ответ игрока player_id.
    В фазе re-roll available_rerolls перечисляет варианты всех людей,
    которые ещё не перебросили и не отказались.
    """

    phase: str
    player_id: str
    options: List[str] = Field(default_factory=list)
    available_rerolls: List[RerollOption] = Field(default_factory=list)


class CombatResult(BaseModel):
    winner: Winner

    attacker_ship_id: str
    defender_ship_id: str
    attacker_player_id: str
    defender_player_id: str

    attacker_roll: int = 0
    defender_roll: int = 0
    attacker_total: int = 0
    defender_total: int = 0
    attacker_modifiers: List[str] = Field(default_factory=list)
    defender_modifiers: List[str] = Field(default_factory=list)
    rerolls_used: List[str] = Field(default_factory=list)

    is_strike: bool = False
    dangerous_activated: bool = False
    moved_to_target: bool = False
    attacker_final_position: Optional[Pos] = None

    destroyed_ship_ids: List[str] = Field(default_factory=list)
    attacker_new_value: Optional[int] = None
    defender_new_value: Optional[int] = None
    dominance_changes: Dict[str, int] = Field(default_factory=dict)


@dataclass
class CombatStep:
    needs_input: Optional[CombatInputRequest] = None
    result: Optional[CombatResult] = None
    events: List[dict] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.result is not None


# --- кто принимает решения ---


class CombatDecider(Protocol):
    def activate_dangerous(self, state: GameState, combat: PendingCombat) -> bool: ...

    def choose_reroll(
        self,
        state: GameState,
        combat: PendingCombat,
        player_id: str,
        options: List[str],
    ) -> Optional[str]: ...

    def occupy_target(self, state: GameState, combat: PendingCombat) -> bool: ...


class ScriptedDecider:
    """
    Автоматический участник: Dangerous не включает, перебрасывает только
    когда проигрывает (приоритет cruel > relentless > scrappy), занимает
    цель только после победы.
    """

    def activate_dangerous(self, state: GameState, combat: PendingCombat) -> bool:
        return False

    def choose_reroll(
        self,
        state: GameState,
        combat: PendingCombat,
        player_id: str,
        options: List[str],
    ) -> Optional[str]:
        if not options:
            return None
        winner = combat_winner(state, combat)
        my_side = "attacker" if player_id == combat.attacker_player_id else "defender"
        if winner == my_side:
            return None
        return options[0]

    def occupy_target(self, state: GameState, combat: PendingCombat) -> bool:
        return combat_winner(state, combat) == "attacker"


Deciders = Mapping[str, Optional[CombatDecider]]


def default_deciders(state: GameState) -> Dict[str, Optional[CombatDecider]]:
    # None = человек: протокол останавливается и ждёт ввода
    return {
        p.id: (ScriptedDecider() if p.kind == "ai" else None) for p in state.players
    }


def _decider_for(deciders: Deciders, player_id: str) -> Optional[CombatDecider]:
    return deciders.get(player_id)


# --- математика боя ---


def combat_winner(state: GameState, combat: PendingCombat) -> Side:
    """Меньшая сумма побеждает; ничья: атакующему, если у защитника нет Stubborn."""
    if combat.attacker_total < combat.defender_total:
        return "attacker"
    if combat.defender_total < combat.attacker_total:
        return "defender"
    defender = require_player(state, combat.defender_player_id)
    return "defender" if tie_favors_defender(defender) else "attacker"


def _side_ctx(
    state: GameState, pc: PendingCombat, side: Side, config: EngineConfig
) -> CombatRollContext:
    if side == "attacker":
        return CombatRollContext(
            side=side,
            player=require_player(state, pc.attacker_player_id),
            opponent=require_player(state, pc.defender_player_id),
            ship=require_ship(state, pc.attacker_ship_id),
            position=pc.attacker_launch_position,
            config=config,
        )
    return CombatRollContext(
        side=side,
        player=require_player(state, pc.defender_player_id),
        opponent=require_player(state, pc.attacker_player_id),
        ship=require_ship(state, pc.defender_ship_id),
        position=pc.target_position,
        config=config,
    )


def _roll_die(
    state: GameState,
    ctx: CombatRollContext,
    middlewares: List[CombatMiddleware],
) -> int:
    raw = state.dice.roll_die()
    mods = []
    for mw in middlewares:
        mods.extend(mw.before_die(state, ctx, raw))
    return apply_die_mods(raw, mods)


def _recompute_side(
    state: GameState,
    ctx: CombatRollContext,
    die: int,
    middlewares: List[CombatMiddleware],
) -> Tuple[int, List[str]]:
    names: List[str] = []
    for mw in middlewares:
        names.extend(m.name for m in mw.before_die(state, ctx, die))
    total_mods = []
    for mw in middlewares:
        total_mods.extend(mw.before_total(state, ctx, ctx.ship.pip_value + die))
    names.extend(m.name for m in total_mods)
    total = apply_total_mods(ctx.ship.pip_value + die, total_mods)
    return total, names


def _recompute_totals(
    state: GameState,
    pc: PendingCombat,
    config: EngineConfig,
    middlewares: List[CombatMiddleware],
) -> None:
    a_ctx = _side_ctx(state, pc, "attacker", config)
    d_ctx = _side_ctx(state, pc, "defender", config)
    pc.attacker_total, pc.attacker_modifiers = _recompute_side(
        state, a_ctx, pc.attacker_roll, middlewares
    )
    pc.defender_total, pc.defender_modifiers = _recompute_side(
        state, d_ctx, pc.defender_roll, middlewares
    )


def _do_rolls(
    state: GameState,
    pc: PendingCombat,
    config: EngineConfig,
    middlewares: List[CombatMiddleware],
) -> List[dict]:
    pc.attacker_roll = _roll_die(
        state, _side_ctx(state, pc, "attacker", config), middlewares
    )
    pc.defender_roll = _roll_die(
        state, _side_ctx(state, pc, "defender", config), middlewares
    )
    _recompute_totals(state, pc, config, middlewares)

    return [
        ev_combat_rolled(
            seq=bump(state),
            turn=state.turn_number,
            player_id=pc.attacker_player_id,
            attacker_roll=pc.attacker_roll,
            defender_roll=pc.defender_roll,
            attacker_total=pc.attacker_total,
            defender_total=pc.defender_total,
            attacker_modifiers=pc.attacker_modifiers,
            defender_modifiers=pc.defender_modifiers,
        ).model_dump()
    ]


def _apply_reroll(
    state: GameState,
    pc: PendingCombat,
    player_id: str,
    reroll_type: str,
    config: EngineConfig,
    middlewares: List[CombatMiddleware],
) -> List[dict]:
    user_side: Side = "attacker" if player_id == pc.attacker_player_id else "defender"
    # cruel: перебрасываем кубик соперника, остальные: свой
    if reroll_type == "cruel":
        side: Side = "defender" if user_side == "attacker" else "attacker"
    else:
        side = user_side

    ctx = _side_ctx(state, pc, side, config)
    new_die = _roll_die(state, ctx, middlewares)
    if side == "attacker":
        old_die = pc.attacker_roll
        pc.attacker_roll = new_die
    else:
        old_die = pc.defender_roll
        pc.defender_roll = new_die

    pc.rerolls_used[reroll_type] = True
    # ситуация поменялась: все снова могут передумать
    pc.rerolls_declined = []
    _recompute_totals(state, pc, config, middlewares)

    return [
        ev_combat_rerolled(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player_id,
            reroll_type=reroll_type,
            side=side,
            old_roll=old_die,
            new_roll=new_die,
        ).model_dump()
    ]


def _reroll_options(state: GameState, pc: PendingCombat) -> Dict[str, List[str]]:
    """player_id -> доступные перебросы (без тех, кто уже отказался)."""
    out: Dict[str, List[str]] = {}
    for pid, is_attacker in (
        (pc.attacker_player_id, True),
        (pc.defender_player_id, False),
    ):
        if pid in pc.rerolls_declined:
            continue
        opts = available_rerolls(pc, require_player(state, pid), is_attacker=is_attacker)
        if opts:
            out[pid] = opts
    return out


# --- единственный путь завершения боя ---


def _finish(state: GameState) -> None:
    state.combat_phase = None
    state.pending_combat = None


def _reward_destroyer(
    state: GameState, winner: Player, config: EngineConfig
) -> List[dict]:
    evs: List[dict] = []
    if has_card(winner, "warlike"):
        winner.actions_remaining += 1
    if has_card(winner, "plundering"):
        _, more = advance_research(state, winner, 1, config)
        evs.extend(more)
    return evs


def _base_result(pc: PendingCombat, winner: Winner) -> CombatResult:
    return CombatResult(
        winner=winner,
        attacker_ship_id=pc.attacker_ship_id,
        defender_ship_id=pc.defender_ship_id,
        attacker_player_id=pc.attacker_player_id,
        defender_player_id=pc.defender_player_id,
        attacker_roll=pc.attacker_roll,
        defender_roll=pc.defender_roll,
        attacker_total=pc.attacker_total,
        defender_total=pc.defender_total,
        attacker_modifiers=list(pc.attacker_modifiers),
        defender_modifiers=list(pc.defender_modifiers),
        rerolls_used=[t for t, used in pc.rerolls_used.items() if used],
        is_strike=pc.is_strike,
    )


def _charge_attacker(state: GameState, pc: PendingCombat, attacker_ship: Ship) -> None:
    attacker = require_player(state, pc.attacker_player_id)
    if pc.is_tactical:
        attacker.has_used_tactical_this_turn = True
    else:
        attacker.actions_remaining = max(0, attacker.actions_remaining - 1)
    if pc.is_strike:
        spend_ability(attacker, attacker_ship)
    else:
        attacker_ship.has_moved_this_turn = True


def resolve_combat(
    state: GameState,
    *,
    move_to_target: bool,
    mutual: bool = False,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Tuple[CombatResult, List[dict]]:
    """
    Итог боя. Действие списывается с атакующего ДО удаления кораблей.
    mutual=True: Dangerous: гибнут оба, доминирование не меняется.
    """
    pc = state.pending_combat
    if pc is None:
        raise InvariantViolation("resolve_combat without pending combat")

    attacker_ship = require_ship(state, pc.attacker_ship_id)
    defender_ship = require_ship(state, pc.defender_ship_id)
    attacker = require_player(state, pc.attacker_player_id)
    defender = require_player(state, pc.defender_player_id)

    _charge_attacker(state, pc, attacker_ship)
    events: List[dict] = []

    if mutual:
        result = _base_result(pc, "mutual")
        result.dangerous_activated = True
        result.attacker_new_value, evs = destroy_ship(
            state, attacker_ship, reason="dangerous"
        )
        events.extend(evs)
        result.defender_new_value, evs = destroy_ship(
            state, defender_ship, reason="dangerous"
        )
        events.extend(evs)
        result.destroyed_ship_ids = [attacker_ship.id, defender_ship.id]
        return _close(state, pc, result, events)

    winner = combat_winner(state, pc)
    result = _base_result(pc, winner)

    if winner == "attacker":
        result.defender_new_value, evs = destroy_ship(
            state, defender_ship, reason="combat"
        )
        events.extend(evs)
        result.destroyed_ship_ids.append(defender_ship.id)

        d_loss, evs = change_dominance(
            state, defender, combat_dominance_delta(defender, won=False), reason="combat"
        )
        events.extend(evs)
        a_gain, evs = change_dominance(
            state, attacker, combat_dominance_delta(attacker, won=True), reason="combat"
        )
        events.extend(evs)
        result.dominance_changes = {attacker.id: a_gain, defender.id: d_loss}
        events.extend(_reward_destroyer(state, attacker, config))

        if move_to_target and not pc.is_strike:
            attacker_ship.position = pc.target_position
            result.moved_to_target = True
        result.attacker_final_position = attacker_ship.position
        return _close(state, pc, result, events)

    # победил защитник: атакующий остаётся на месте
    result.attacker_final_position = attacker_ship.position
    if punishes_failed_attack(defender):
        result.attacker_new_value, evs = destroy_ship(
            state, attacker_ship, reason="stubborn"
        )
        events.extend(evs)
        result.destroyed_ship_ids.append(attacker_ship.id)
        result.attacker_final_position = None

        a_loss, evs = change_dominance(
            state, attacker, combat_dominance_delta(attacker, won=False), reason="combat"
        )
        events.extend(evs)
        d_gain, evs = change_dominance(
            state, defender, combat_dominance_delta(defender, won=True), reason="combat"
        )
        events.extend(evs)
        result.dominance_changes = {attacker.id: a_loss, defender.id: d_gain}
        events.extend(_reward_destroyer(state, defender, config))

    return _close(state, pc, result, events)


def _close(
    state: GameState, pc: PendingCombat, result: CombatResult, events: List[dict]
) -> Tuple[CombatResult, List[dict]]:
    _finish(state)
    events.append(
        ev_combat_resolved(
            seq=bump(state),
            turn=state.turn_number,
            player_id=pc.attacker_player_id,
            result=result.model_dump(mode="json"),
        ).model_dump()
    )
    logger.info(
        "Combat resolved: %s (%s vs %s, totals %s/%s)",
        result.winner,
        pc.attacker_ship_id,
        pc.defender_ship_id,
        pc.attacker_total,
        pc.defender_total,
    )
    return result, events


# --- re-entrant драйвер ---


def _halt(
    state: GameState,
    step: CombatStep,
    player_id: str,
    options: List[str],
    rerolls: Optional[List[RerollOption]] = None,
) -> CombatStep:
    assert state.combat_phase is not None
    step.needs_input = CombatInputRequest(
        phase=state.combat_phase,
        player_id=player_id,
        options=list(options),
        available_rerolls=list(rerolls or []),
    )
    step.events.append(
        ev_combat_input_required(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player_id,
            phase=state.combat_phase,
            options=options,
            available_rerolls=[r.model_dump() for r in rerolls or []],
        ).model_dump()
    )
    logger.info(
        "Combat halted in %s: waiting for %s %s",
        state.combat_phase,
        player_id,
        options,
    )
    return step


def _apply_input(
    state: GameState,
    combat_input: CombatInput,
    actor_id: str,
    config: EngineConfig,
    middlewares: List[CombatMiddleware],
    step: CombatStep,
) -> None:
    pc = state.pending_combat
    assert pc is not None

    if isinstance(combat_input, DangerousInput):
        if combat_input.activate:
            step.result, evs = resolve_combat(
                state, move_to_target=False, mutual=True, config=config
            )
            step.events.extend(evs)
        else:
            state.combat_phase = "rolls"
        return

    if isinstance(combat_input, RerollInput):
        step.events.extend(
            _apply_reroll(
                state,
                pc,
                combat_input.player_id,
                combat_input.reroll_type,
                config,
                middlewares,
            )
        )
        return

    if isinstance(combat_input, SkipRerollsInput):
        # отказаться можно только за себя, второй человек спрашивается отдельно
        decliner = combat_input.player_id or actor_id
        if decliner not in pc.rerolls_declined:
            pc.rerolls_declined.append(decliner)
        return

    if isinstance(combat_input, FinalizeInput):
        step.result, evs = resolve_combat(
            state, move_to_target=combat_input.move_to_target, config=config
        )
        step.events.extend(evs)
        return

    raise InvariantViolation("Unsupported combat input", context={"input": combat_input})


def advance_combat(
    state: GameState,
    combat_input: Optional[CombatInput] = None,
    *,
    actor_id: Optional[str] = None,
    deciders: Optional[Deciders] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    middlewares: Optional[List[CombatMiddleware]] = None,
) -> CombatStep:
    """
    Принять (опционально) решение игрока и крутить фазы дальше,
    пока решает автоматика. Возвращает либо needs_input, либо result.
    Состояние мутируется на месте (вызывающий работает с копией).
    """
    if state.pending_combat is None or state.combat_phase is None:
        raise InvariantViolation("advance_combat without pending combat")

    deciders = deciders if deciders is not None else default_deciders(state)
    middlewares = middlewares if middlewares is not None else DEFAULT_COMBAT_MIDDLEWARES
    step = CombatStep()

    if combat_input is not None:
        _apply_input(
            state,
            combat_input,
            actor_id or state.pending_combat.attacker_player_id,
            config,
            middlewares,
            step,
        )
        if step.result is not None:
            return step

    while True:
        pc = state.pending_combat
        phase = state.combat_phase
        if pc is None or phase is None:
            raise InvariantViolation("Combat state lost while advancing")

        if phase == "pre-combat":
            decider = _decider_for(deciders, pc.defender_player_id)
            if decider is None:
                return _halt(state, step, pc.defender_player_id, ["activate", "skip"])
            if decider.activate_dangerous(state, pc):
                step.result, evs = resolve_combat(
                    state, move_to_target=False, mutual=True, config=config
                )
                step.events.extend(evs)
                return step
            state.combat_phase = "rolls"
            continue

        if phase == "rolls":
            step.events.extend(_do_rolls(state, pc, config, middlewares))
            state.combat_phase = "re-roll" if _reroll_options(state, pc) else "resolution"
            continue

        if phase == "re-roll":
            options = _reroll_options(state, pc)
            if not options:
                state.combat_phase = "resolution"
                continue

            rerolled = False
            waiting: List[Tuple[str, List[str]]] = []
            for pid, opts in options.items():
                decider = _decider_for(deciders, pid)
                if decider is None:
                    waiting.append((pid, opts))
                    continue
                choice = decider.choose_reroll(state, pc, pid, opts)
                if choice is None:
                    pc.rerolls_declined.append(pid)
                    continue
                if choice not in opts:
                    raise InvariantViolation(
                        "Decider chose unavailable reroll",
                        context={"player_id": pid, "choice": choice},
                    )
                step.events.extend(
                    _apply_reroll(state, pc, pid, choice, config, middlewares)
                )
                rerolled = True
                break

            if rerolled:
                continue
            if waiting:
                pid, opts = waiting[0]
                rerolls = [
                    RerollOption(player_id=w_pid, type=t)
                    for w_pid, w_opts in waiting
                    for t in w_opts
                ]
                return _halt(state, step, pid, opts, rerolls)
            continue

        if phase == "resolution":
            winner = combat_winner(state, pc)
            if winner != "attacker" or pc.is_strike:
                # двигаться некуда: спрашивать нечего
                move = False
            else:
                decider = _decider_for(deciders, pc.attacker_player_id)
                if decider is None:
                    return _halt(
                        state, step, pc.attacker_player_id, ["occupy", "hold"]
                    )
                move = decider.occupy_target(state, pc)
            step.result, evs = resolve_combat(state, move_to_target=move, config=config)
            step.events.extend(evs)
            return step

        raise InvariantViolation("Unknown combat phase", context={"phase": phase})


# --- вход в бой ---


def initiate_attack(
    state: GameState,
    player_id: str,
    ship_id: str,
    target: Pos,
    *,
    is_strike: bool = False,
    is_tactical: bool = False,
    deciders: Optional[Deciders] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    middlewares: Optional[List[CombatMiddleware]] = None,
) -> CombatStep:
    """
    Атака уже провалидирована. Заводим PendingCombat и один раз крутим драйвер.
    """
    attacker_ship = require_ship(state, ship_id)
    defender_ship = None
    for s in state.ships:
        if s.position == target and s.id != ship_id:
            defender_ship = s
            break
    if defender_ship is None or attacker_ship.position is None:
        raise InvariantViolation(
            "Attack without defender", context={"ship_id": ship_id, "target": target}
        )

    attacker = require_player(state, player_id)
    defender = require_player(state, defender_ship.owner_id)

    origin = attacker_ship.position
    launch = origin
    if not is_strike:
        path = find_reachable_positions(
            attacker_ship,
            state,
            allow_diagonal=allows_diagonal(attacker_ship),
            bonus_range=move_bonus_range(attacker, attacker_ship, tactical=is_tactical),
        ).get(target)
        if path is None:
            raise InvariantViolation(
                "Attack target not reachable", context={"target": target}
            )
        if len(path) >= 2:
            launch = path[-2]

    has_dangerous = has_card(defender, "dangerous")
    state.pending_combat = PendingCombat(
        attacker_ship_id=attacker_ship.id,
        defender_ship_id=defender_ship.id,
        attacker_player_id=attacker.id,
        defender_player_id=defender.id,
        attacker_origin=origin,
        attacker_launch_position=launch,
        target_position=target,
        is_strike=is_strike,
        is_tactical=is_tactical,
        defender_has_dangerous=has_dangerous,
    )
    state.combat_phase = "pre-combat" if has_dangerous else "rolls"

    step_events = [
        ev_combat_started(
            seq=bump(state),
            turn=state.turn_number,
            player_id=attacker.id,
            attacker_ship_id=attacker_ship.id,
            defender_ship_id=defender_ship.id,
            phase=state.combat_phase,
            is_strike=is_strike,
        ).model_dump()
    ]

    step = advance_combat(
        state, None, deciders=deciders, config=config, middlewares=middlewares
    )
    step.events = step_events + step.events
    return step


def cancel_combat(
    state: GameState, player_id: str, config: EngineConfig = DEFAULT_CONFIG
) -> List[dict]:
    """
    Сброс боя. free: без последствий; charge: атакующий платит действие,
    корабль считается походившим (или потратившим способность).
    """
    pc = state.pending_combat
    if pc is None:
        raise InvariantViolation("cancel_combat without pending combat")

    charged = config.cancel_policy == "charge"
    if charged:
        attacker_ship = get_ship(state, pc.attacker_ship_id)
        if attacker_ship is None:
            raise InvariantViolation(
                "Attacker ship not found", context={"ship_id": pc.attacker_ship_id}
            )
        _charge_attacker(state, pc, attacker_ship)

    _finish(state)
    logger.info("Combat cancelled by %s (policy=%s)", player_id, config.cancel_policy)
    return [
        ev_combat_cancelled(
            seq=bump(state),
            turn=state.turn_number,
            player_id=player_id,
            policy=config.cancel_policy,
            charged=charged,
        ).model_dump()
    ]
