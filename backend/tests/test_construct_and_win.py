from quantumsim.core.engine.commands import Construct
from quantumsim.core.engine.rules.apply import apply_command
from quantumsim.core.engine.state import cards_owed

from factories import add_ship, give, make_state, player


def _orbit_tile2(state, values):
    # tile-2: планета 7, орбиты (4,0) (4,2) (3,1) (5,1)
    for v, pos in zip(values, [(4, 0), (3, 1), (5, 1)]):
        add_ship(state, "A", v, pos)


def test_construct_last_cube_wins_game():
    state = make_state()
    player(state, "A").quantum_cubes_remaining = 1
    _orbit_tile2(state, [2, 2, 3])

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))

    assert res.ok, res.reason
    a = player(res.state, "A")
    assert a.quantum_cubes_remaining == 0
    assert res.state.status == "finished"
    assert res.state.winner_id == "A"
    assert res.state.tiles[1].quantum_cube == "A"
    assert [e["type"] for e in res.events] == ["CubePlaced", "GameEnded"]
    # входное состояние не тронуто
    assert state.status == "in_progress"
    assert player(state, "A").quantum_cubes_remaining == 1


def test_construct_costs_two_actions_and_earns_card():
    state = make_state()
    _orbit_tile2(state, [1, 2, 4])

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))

    assert res.ok, res.reason
    a = player(res.state, "A")
    assert a.actions_remaining == 1
    assert a.cubes_placed_this_turn == 1
    assert cards_owed(a) == 1
    assert res.state.status == "in_progress"


def test_construct_sum_mismatch_rejected_without_side_effects():
    state = make_state()
    _orbit_tile2(state, [2, 2, 2])
    seq_before = state.seq

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))

    assert not res.ok
    assert res.error.code == "SUM_MISMATCH"
    assert res.state is state
    assert state.seq == seq_before
    assert state.action_log == []
    assert res.events[0]["type"] == "CommandRejected"
    assert res.events[0]["payload"]["code"] == "SUM_MISMATCH"


def test_intelligent_relaxes_sum_by_one():
    state = make_state()
    give(state, "A", "intelligent")
    _orbit_tile2(state, [2, 2, 2])  # 6 при цели 7

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))
    assert res.ok, res.reason


def test_ingenious_counts_corner_ships():
    state = make_state()
    give(state, "A", "ingenious")
    add_ship(state, "A", 3, (4, 0))
    add_ship(state, "A", 4, (3, 2))  # угол вокруг (4,1)

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))
    assert res.ok, res.reason


def test_construct_needs_two_actions_and_free_tile():
    state = make_state()
    _orbit_tile2(state, [2, 2, 3])
    player(state, "A").actions_remaining = 1

    res = apply_command(state, Construct(player_id="A", tile_id="tile-2"))
    assert not res.ok
    assert res.error.code == "NO_ACTIONS"

    player(state, "A").actions_remaining = 3
    res = apply_command(state, Construct(player_id="A", tile_id="tile-4"))
    assert not res.ok
    assert res.error.code == "TILE_TAKEN"
