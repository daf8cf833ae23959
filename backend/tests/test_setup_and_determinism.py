import json

import pytest

from quantumsim.core.engine.commands import EndTurn, Move, Reconfigure, Research
from quantumsim.core.engine.dice import SeededDice
from quantumsim.core.engine.errors import UnknownMapError
from quantumsim.core.engine.rules.apply import apply_command
from quantumsim.core.engine.setup import MAPS, PlayerSetup, create_game, get_map
from quantumsim.core.persistence.state_codec import game_state_to_dict

PLAYERS = [
    PlayerSetup(id="A", faction_id="quantum"),
    PlayerSetup(id="B", faction_id="void"),
]


def test_create_game_binary_stars():
    state = create_game("binary-stars", PLAYERS, dice=SeededDice(11))

    assert state.status == "in_progress"
    assert sorted(state.turn_order) == ["A", "B"]
    assert state.current_player_id == state.turn_order[0]

    tiles = {t.id: t for t in state.tiles}
    assert tiles["tile-1"].quantum_cube == "A"
    assert tiles["tile-6"].quantum_cube == "B"

    for pid in ("A", "B"):
        ships = [s for s in state.ships if s.owner_id == pid]
        assert len(ships) == 3
        assert all(1 <= s.pip_value <= 6 for s in ships)

    a_ships = [s.position for s in state.ships if s.owner_id == "A"]
    assert a_ships == [(1, 0), (1, 2), (0, 1)]

    a = next(p for p in state.players if p.id == "A")
    assert a.quantum_cubes_remaining == get_map("binary-stars").cubes_per_player - 1
    assert len(state.cards.gambit_market) == 3
    assert len(state.cards.command_market) == 3


def test_cubes_override():
    state = create_game("binary-stars", PLAYERS, dice=SeededDice(1), cubes_override=2)
    assert all(p.quantum_cubes_remaining == 1 for p in state.players)


def test_unknown_map_and_bad_player_count():
    with pytest.raises(UnknownMapError):
        create_game("nowhere", PLAYERS)

    with pytest.raises(UnknownMapError):
        create_game("quadrant", PLAYERS)


def test_every_map_has_start_planets_on_its_tiles():
    for m in MAPS:
        tile_ids = {t.id for t in m.tiles}
        assert set(m.starting_planets.values()) <= tile_ids


def _replay(seed):
    state = create_game("binary-stars", PLAYERS, dice=SeededDice(seed))
    first = state.current_player_id
    ship = next(s for s in state.ships if s.owner_id == first)

    cmds = [
        Reconfigure(player_id=first, ship_id=ship.id),
        Research(player_id=first),
        EndTurn(player_id=first),
    ]
    for cmd in cmds:
        res = apply_command(state, cmd)
        assert res.ok, res.reason
        state = res.state
    return state


def test_seeded_replay_is_byte_identical():
    one = json.dumps(game_state_to_dict(_replay(42)), sort_keys=True)
    two = json.dumps(game_state_to_dict(_replay(42)), sort_keys=True)
    assert one == two


def test_input_state_is_never_mutated():
    state = create_game("binary-stars", PLAYERS, dice=SeededDice(5))
    before = json.dumps(game_state_to_dict(state), sort_keys=True)
    pid = state.current_player_id

    apply_command(state, Research(player_id=pid))
    apply_command(state, Move(player_id=pid, ship_id="ship-999", target=(0, 0)))

    assert json.dumps(game_state_to_dict(state), sort_keys=True) == before
