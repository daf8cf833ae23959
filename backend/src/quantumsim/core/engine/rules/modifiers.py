from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Literal, Optional, Protocol

from quantumsim.core.engine.board import (
    adjacent_positions,
    orbital_positions,
    player_ships_in_corners,
    player_ships_in_orbit,
    ship_at,
    tile_for_orbital,
)
from quantumsim.core.engine.config import DEFAULT_CONFIG, EngineConfig
from quantumsim.core.engine.state import (
    MANEUVER_VALUE,
    REROLL_TYPES,
    GameState,
    PendingCombat,
    Player,
    Pos,
    Ship,
    Tile,
    deployed_ships,
)

Side = Literal["attacker", "defender"]


def has_card(player: Player, card_id: str) -> bool:
    # идентичность карты: только card_id, instance_id не разбираем
    return any(c.card_id == card_id for c in player.active_command_cards)


# --- стоимость / экономика ---


def deploy_cost(player: Player) -> int:
    return 0 if has_card(player, "eager") else 1


def move_cost(player: Player, *, peaceful: bool) -> int:
    # Curious: бонусное мирное перемещение
    if peaceful and player.bonus_moves > 0:
        return 0
    return 1


def construct_cost(player: Player, config: EngineConfig = DEFAULT_CONFIG) -> int:
    return config.construct_cost


def research_gain(player: Player) -> int:
    return 2 if has_card(player, "brilliant") else 1


def breakthrough_threshold(
    player: Player, config: EngineConfig = DEFAULT_CONFIG
) -> int:
    if has_card(player, "precocious"):
        return config.precocious_threshold
    return config.breakthrough_threshold


def turn_action_budget(
    state: GameState, player: Player, config: EngineConfig = DEFAULT_CONFIG
) -> int:
    budget = config.base_actions

    if has_card(player, "arrogant"):
        mine = len(deployed_ships(state, player.id))
        others = [
            len(deployed_ships(state, p.id)) for p in state.players if p.id != player.id
        ]
        if all(mine > n for n in others):
            budget += 1

    if has_card(player, "conformist"):
        values = Counter(s.pip_value for s in deployed_ships(state, player.id))
        if any(n >= 2 for n in values.values()):
            budget += 1

    return budget


# --- движение ---

TACTICAL_RANGE = 2


def movement_bonus(player: Player) -> int:
    return 1 if has_card(player, "agile") else 0


def move_bonus_range(player: Player, ship: Ship, *, tactical: bool = False) -> int:
    """bonus_range для BFS. Tactical ходит ровно на 2 клетки, без Agile."""
    if tactical:
        return TACTICAL_RANGE - ship.pip_value
    return movement_bonus(player)


def tactical_available(player: Player) -> bool:
    return has_card(player, "tactical") and not player.has_used_tactical_this_turn


def allows_diagonal(ship: Ship) -> bool:
    # Interceptor (5): Maneuver
    return ship.pip_value == MANEUVER_VALUE


def can_move_again(player: Player, ship: Ship) -> bool:
    return not ship.has_moved_this_turn or has_card(player, "energetic")


# --- способности кораблей ---


def can_use_ability(player: Player, ship: Ship) -> bool:
    """Одна способность на корабль за ход; Cunning даёт ещё одну на весь ход."""
    if not ship.has_used_ability_this_turn:
        return True
    return has_card(player, "cunning") and not player.has_used_cunning_this_turn


def spend_ability(player: Player, ship: Ship) -> None:
    if ship.has_used_ability_this_turn:
        player.has_used_cunning_this_turn = True
    ship.has_used_ability_this_turn = True


# --- деплой / строительство ---


def stealthy_deploy_ok(state: GameState, pos: Pos) -> bool:
    """Stealthy: любой пустой орбитальный слот, если рядом (ортогонально) нет кораблей."""
    if tile_for_orbital(pos, state.tiles) is None:
        return False
    if ship_at(pos, state.ships) is not None:
        return False
    for nb in adjacent_positions(pos):
        if ship_at(nb, state.ships) is not None:
            return False
    return True


def deploy_positions(state: GameState, player: Player) -> List[Pos]:
    out: List[Pos] = []
    seen = set()
    for tile in state.tiles:
        for pos in orbital_positions(tile):
            if pos in seen:
                continue
            if tile.quantum_cube == player.id and ship_at(pos, state.ships) is None:
                out.append(pos)
                seen.add(pos)
            elif has_card(player, "stealthy") and stealthy_deploy_ok(state, pos):
                out.append(pos)
                seen.add(pos)
    return out


def construct_sum(state: GameState, player: Player, tile: Tile) -> int:
    ships = player_ships_in_orbit(tile, state.ships, player.id)
    if has_card(player, "ingenious"):
        ships = ships + player_ships_in_corners(tile, state.ships, player.id)
    return sum(s.pip_value for s in ships)


def construct_sum_ok(player: Player, total: int, target: int) -> bool:
    if has_card(player, "intelligent"):
        return target - 1 <= total <= target + 1
    return total == target


# --- доминирование ---


def adjust_dominance(player: Player, delta: int) -> int:
    """Возвращает реально применённую дельту (Righteous не даёт уменьшать)."""
    if delta < 0 and has_card(player, "righteous"):
        return 0
    player.dominance_counter += delta
    return delta


def combat_dominance_delta(player: Player, *, won: bool) -> int:
    step = 2 if has_card(player, "ravenous") else 1
    return step if won else -step


# --- бой: ничьи и наказание ---


def tie_favors_defender(defender: Player) -> bool:
    return has_card(defender, "stubborn")


def punishes_failed_attack(defender: Player) -> bool:
    return has_card(defender, "stubborn")


def available_rerolls(
    combat: PendingCombat, player: Player, *, is_attacker: bool
) -> List[str]:
    """Неиспользованные перебросы игрока в порядке приоритета."""
    out: List[str] = []
    for rtype in REROLL_TYPES:
        if combat.rerolls_used.get(rtype):
            continue
        if not has_card(player, rtype):
            continue
        # Scrappy: только в свой ход, т.е. атакующим
        if rtype == "scrappy" and not is_attacker:
            continue
        out.append(rtype)
    return out


# --- бой: middleware бросков ---


@dataclass(frozen=True)
class CombatRollContext:
    side: Side
    player: Player
    opponent: Player
    ship: Ship
    position: Pos  # где стоит бойцовый корабль этой стороны в бою
    config: EngineConfig


@dataclass(frozen=True)
class CombatMod:
    name: str
    value: int = 0
    set_to: Optional[int] = None


class CombatMiddleware(Protocol):
    def before_die(
        self, state: GameState, ctx: CombatRollContext, die: int
    ) -> List[CombatMod]: ...

    def before_total(
        self, state: GameState, ctx: CombatRollContext, total: int
    ) -> List[CombatMod]: ...


def apply_die_mods(die: int, mods: List[CombatMod]) -> int:
    for m in mods:
        if m.set_to is not None:
            die = m.set_to
        else:
            die += m.value
        die = max(1, die)
    return die


def apply_total_mods(total: int, mods: List[CombatMod]) -> int:
    return total + sum(m.value for m in mods)


class RationalMiddleware:
    """Rational: все кубики боя считаются 3, если карта есть у любой стороны."""

    def before_die(
        self, state: GameState, ctx: CombatRollContext, die: int
    ) -> List[CombatMod]:
        if has_card(ctx.player, "rational") or has_card(ctx.opponent, "rational"):
            return [CombatMod(name="rational", set_to=ctx.config.fixed_roll)]
        return []

    def before_total(
        self, state: GameState, ctx: CombatRollContext, total: int
    ) -> List[CombatMod]:
        return []


class FerociousMiddleware:
    def before_die(
        self, state: GameState, ctx: CombatRollContext, die: int
    ) -> List[CombatMod]:
        if not has_card(ctx.player, "ferocious"):
            return []
        return [CombatMod(name="ferocious", value=-1)]

    def before_total(
        self, state: GameState, ctx: CombatRollContext, total: int
    ) -> List[CombatMod]:
        return []


class StrategicMiddleware:
    """-1 к сумме за каждый свой корабль рядом (ортогонально) с бойцом."""

    def before_die(
        self, state: GameState, ctx: CombatRollContext, die: int
    ) -> List[CombatMod]:
        return []

    def before_total(
        self, state: GameState, ctx: CombatRollContext, total: int
    ) -> List[CombatMod]:
        if not has_card(ctx.player, "strategic"):
            return []
        near = set(adjacent_positions(ctx.position))
        support = [
            s
            for s in state.ships
            if s.owner_id == ctx.player.id
            and s.id != ctx.ship.id
            and s.position is not None
            and s.position in near
        ]
        return [CombatMod(name="strategic", value=-1) for _ in support]


DEFAULT_COMBAT_MIDDLEWARES: List[CombatMiddleware] = [
    RationalMiddleware(),
    FerociousMiddleware(),
    StrategicMiddleware(),
]
