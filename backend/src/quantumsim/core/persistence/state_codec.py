from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Dict, List, Optional

from quantumsim.core.engine.cards.definitions import CardInstance
from quantumsim.core.engine.dice import Dice
from quantumsim.core.engine.errors import SnapshotError
from quantumsim.core.engine.state import (
    ActionLogEntry,
    CardZones,
    GameState,
    PendingCombat,
    Player,
    Pos,
    Ship,
    Tile,
)

SCHEMA_VERSION = 1


# ---------- encode ----------


def _jsonable(v: Any) -> Any:
    """Привести значение к JSON-виду (tuple->list, dataclass/pydantic->dict)."""
    if v is None or isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, Dice):
        return v.to_dict()
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(val) for k, val in v.items()}

    md = getattr(v, "model_dump", None)
    if callable(md):
        return _jsonable(md(mode="json"))

    if is_dataclass(v) and not isinstance(v, type):
        # не asdict: он глубоко копирует всё, включая Random внутри dice
        return {f.name: _jsonable(getattr(v, f.name)) for f in fields(v)}

    raise SnapshotError(
        "Value is not serializable", context={"type": type(v).__name__}
    )


def game_state_to_dict(state: GameState) -> Dict[str, Any]:
    out = _jsonable(state)
    out["schema_version"] = SCHEMA_VERSION
    return out


# ---------- decode ----------


def _pos(v: Any) -> Optional[Pos]:
    if v is None:
        return None
    x, y = v
    return (int(x), int(y))


def _card(d: Dict[str, Any]) -> CardInstance:
    return CardInstance.model_validate(d)


def _cards(items: Optional[List[Dict[str, Any]]]) -> List[CardInstance]:
    return [_card(c) for c in (items or [])]


def _tile(d: Dict[str, Any]) -> Tile:
    return Tile(
        id=d["id"],
        position=_pos(d["position"]),  # type: ignore[arg-type]
        planet_number=int(d["planet_number"]),
        quantum_cube=d.get("quantum_cube"),
    )


def _ship(d: Dict[str, Any]) -> Ship:
    return Ship(
        id=d["id"],
        owner_id=d["owner_id"],
        pip_value=int(d["pip_value"]),
        position=_pos(d.get("position")),
        has_moved_this_turn=bool(d.get("has_moved_this_turn", False)),
        has_used_ability_this_turn=bool(d.get("has_used_ability_this_turn", False)),
    )


def _player(d: Dict[str, Any]) -> Player:
    return Player(
        id=d["id"],
        kind=d.get("kind", "human"),
        faction_id=d.get("faction_id", ""),
        quantum_cubes_remaining=int(d.get("quantum_cubes_remaining", 0)),
        research_counter=int(d.get("research_counter", 1)),
        dominance_counter=int(d.get("dominance_counter", 0)),
        active_command_cards=_cards(d.get("active_command_cards")),
        scrapyard=[int(x) for x in d.get("scrapyard", [])],
        actions_remaining=int(d.get("actions_remaining", 3)),
        cubes_placed_this_turn=int(d.get("cubes_placed_this_turn", 0)),
        achieved_breakthrough_this_turn=bool(
            d.get("achieved_breakthrough_this_turn", False)
        ),
        cards_claimed_this_turn=int(d.get("cards_claimed_this_turn", 0)),
        bonus_moves=int(d.get("bonus_moves", 0)),
        has_used_flexible_this_turn=bool(d.get("has_used_flexible_this_turn", False)),
        has_traded_this_turn=bool(d.get("has_traded_this_turn", False)),
        has_used_cunning_this_turn=bool(d.get("has_used_cunning_this_turn", False)),
        has_used_tactical_this_turn=bool(d.get("has_used_tactical_this_turn", False)),
        free_deploys=int(d.get("free_deploys", 0)),
        pending_gambits=list(d.get("pending_gambits", [])),
    )


def _zones(d: Optional[Dict[str, Any]]) -> CardZones:
    d = d or {}
    return CardZones(
        gambit_deck=_cards(d.get("gambit_deck")),
        command_deck=_cards(d.get("command_deck")),
        gambit_market=_cards(d.get("gambit_market")),
        command_market=_cards(d.get("command_market")),
        gambit_discard=_cards(d.get("gambit_discard")),
        command_discard=_cards(d.get("command_discard")),
    )


def _pending(d: Optional[Dict[str, Any]]) -> Optional[PendingCombat]:
    if d is None:
        return None
    pc = PendingCombat(
        attacker_ship_id=d["attacker_ship_id"],
        defender_ship_id=d["defender_ship_id"],
        attacker_player_id=d["attacker_player_id"],
        defender_player_id=d["defender_player_id"],
        attacker_origin=_pos(d["attacker_origin"]),  # type: ignore[arg-type]
        attacker_launch_position=_pos(d["attacker_launch_position"]),  # type: ignore[arg-type]
        target_position=_pos(d["target_position"]),  # type: ignore[arg-type]
        is_strike=bool(d.get("is_strike", False)),
        is_tactical=bool(d.get("is_tactical", False)),
        defender_has_dangerous=bool(d.get("defender_has_dangerous", False)),
        attacker_roll=int(d.get("attacker_roll", 0)),
        defender_roll=int(d.get("defender_roll", 0)),
        attacker_total=int(d.get("attacker_total", 0)),
        defender_total=int(d.get("defender_total", 0)),
        attacker_modifiers=list(d.get("attacker_modifiers", [])),
        defender_modifiers=list(d.get("defender_modifiers", [])),
        rerolls_declined=list(d.get("rerolls_declined", [])),
    )
    pc.rerolls_used.update({k: bool(v) for k, v in (d.get("rerolls_used") or {}).items()})
    return pc


def game_state_from_dict(d: Dict[str, Any]) -> GameState:
    """Обратная операция к game_state_to_dict. Битый снапшот -> SnapshotError."""
    try:
        state = GameState(
            id=d.get("id", "game"),
            status=d.get("status", "in_progress"),
            map_id=d.get("map_id", ""),
            winner_id=d.get("winner_id"),
            turn_number=int(d.get("turn_number", 1)),
            current_player_id=d.get("current_player_id"),
            phase=d.get("phase", "actions"),
            turn_order=list(d.get("turn_order", [])),
            combat_phase=d.get("combat_phase"),
            pending_combat=_pending(d.get("pending_combat")),
            tiles=[_tile(t) for t in d.get("tiles", [])],
            ships=[_ship(s) for s in d.get("ships", [])],
            players=[_player(p) for p in d.get("players", [])],
            cards=_zones(d.get("cards")),
            action_log=[
                ActionLogEntry.model_validate(e) for e in d.get("action_log", [])
            ],
            seq=int(d.get("seq", 0)),
            ship_seq=int(d.get("ship_seq", 1)),
        )
        if d.get("dice") is not None:
            state.dice = Dice.from_dict(d["dice"])
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError("Cannot restore game state", context={"error": str(e)})

    if (state.combat_phase is None) != (state.pending_combat is None):
        raise SnapshotError(
            "combat_phase and pending_combat out of sync",
            context={"combat_phase": state.combat_phase},
        )
    return state
