from quantumsim.core.engine.commands import EndTurn, Move, Research
from quantumsim.core.engine.rules.apply import apply_command

from factories import add_ship, give, make_state, player


def test_n_end_turns_increment_turn_once():
    state = make_state(players=("A", "B", "C"))
    start_turn = state.turn_number

    for pid in ("A", "B", "C"):
        assert state.current_player_id == pid
        res = apply_command(state, EndTurn(player_id=pid))
        assert res.ok, res.reason
        state = res.state
        if pid != "C":
            assert state.turn_number == start_turn

    assert state.turn_number == start_turn + 1
    assert state.current_player_id == "A"
    assert len(state.action_log) == 3


def test_end_turn_resets_departing_player_and_budgets_incoming():
    state = make_state()
    a = player(state, "A")
    a.cubes_placed_this_turn = 1
    a.free_deploys = 2
    a.pending_gambits = ["relocation", "sabotage"]
    a.actions_remaining = 0
    ship = add_ship(state, "A", 2, (2, 2))
    ship.has_moved_this_turn = True
    player(state, "B").actions_remaining = 0

    res = apply_command(state, EndTurn(player_id="A"))

    assert res.ok, res.reason
    s = res.state
    a = player(s, "A")
    assert a.cubes_placed_this_turn == 0
    assert a.free_deploys == 0
    assert a.pending_gambits == ["sabotage"]
    assert s.ships[0].has_moved_this_turn is False
    assert player(s, "B").actions_remaining == 3
    assert [e["type"] for e in res.events] == ["TurnEnded", "TurnStarted"]
    assert res.events[0]["payload"]["cards_earned"] == 1


def test_end_turn_only_for_current_player():
    state = make_state()
    res = apply_command(state, EndTurn(player_id="B"))
    assert not res.ok
    assert res.error.code == "NOT_YOUR_TURN"


def test_arrogant_and_conformist_extend_budget():
    state = make_state()
    give(state, "B", "arrogant", "conformist")
    add_ship(state, "B", 4, (5, 4))
    add_ship(state, "B", 4, (5, 5))
    add_ship(state, "A", 1, (0, 0))

    res = apply_command(state, EndTurn(player_id="A"))
    assert player(res.state, "B").actions_remaining == 5


def test_arrogant_needs_strictly_most_ships():
    state = make_state()
    give(state, "B", "arrogant")
    add_ship(state, "B", 1, (5, 4))
    add_ship(state, "A", 2, (0, 0))

    res = apply_command(state, EndTurn(player_id="A"))
    assert player(res.state, "B").actions_remaining == 3


def test_curious_grants_one_free_move():
    state = make_state()
    give(state, "B", "curious", "energetic")
    ship = add_ship(state, "B", 1, (5, 5))

    s = apply_command(state, EndTurn(player_id="A")).state
    assert player(s, "B").bonus_moves == 1

    res = apply_command(s, Move(player_id="B", ship_id=ship.id, target=(5, 4)))
    assert res.ok, res.reason
    assert player(res.state, "B").actions_remaining == 3
    assert player(res.state, "B").bonus_moves == 0
    assert res.state.action_log[-1].data["bonus_move"] is True

    res = apply_command(res.state, Move(player_id="B", ship_id=ship.id, target=(5, 5)))
    assert player(res.state, "B").actions_remaining == 2


def test_out_of_actions_then_end_turn():
    state = make_state()
    for _ in range(3):
        state = apply_command(state, Research(player_id="A")).state

    r = apply_command(state, Research(player_id="A"))
    assert r.error.code == "NO_ACTIONS"

    res = apply_command(state, EndTurn(player_id="A"))
    assert res.ok
    assert res.state.current_player_id == "B"


def test_finished_game_rejects_commands():
    state = make_state()
    state.status = "finished"

    r = apply_command(state, Research(player_id="A"))
    assert r.error.code == "GAME_NOT_IN_PROGRESS"
