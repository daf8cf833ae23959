from quantumsim.core.engine.commands import Construct, Research
from quantumsim.core.engine.dice import FixedDice
from quantumsim.core.engine.engine import GameEngine
from quantumsim.core.engine.policy import FirstAvailablePolicy, run_policy_turn

from factories import add_ship, make_state, player


def test_engine_forwards_events_and_hides_internal_state():
    seen = []
    engine = GameEngine(make_state(), on_event=seen.append)

    res = engine.research("A")

    assert res.success
    assert [e["type"] for e in seen] == ["ResearchAdvanced"]
    assert seen == res.events

    copy_ = engine.get_state()
    player(copy_, "A").research_counter = 99
    assert player(engine.get_state(), "A").research_counter == 2


def test_engine_rejection_keeps_state():
    seen = []
    engine = GameEngine(make_state(), on_event=seen.append)
    before = engine.get_state().seq

    res = engine.research("B")

    assert not res.success
    assert res.code == "NOT_YOUR_TURN"
    assert res.state is None
    assert seen[0]["type"] == "CommandRejected"
    assert engine.get_state().seq == before


def test_engine_combat_between_scripted_players_completes():
    state = make_state(kinds={"A": "ai", "B": "ai"})
    state.with_dice(FixedDice([1, 5, 6]))
    a = add_ship(state, "A", 2, (2, 1))
    add_ship(state, "B", 3, (3, 1))
    engine = GameEngine(state)

    res = engine.attack("A", a.id, (3, 1))

    assert res.success, res.error
    assert res.completed
    assert res.needs_input is None
    assert res.combat_result.winner == "attacker"


def test_policy_constructs_then_researches_and_ends_turn():
    state = make_state(kinds={"A": "ai"})
    # tile-2: планета 7
    add_ship(state, "A", 3, (4, 0))
    add_ship(state, "A", 4, (3, 1))
    engine = GameEngine(state)

    results = run_policy_turn(engine, FirstAvailablePolicy())

    assert all(r.success for r in results)
    assert results[0].events[0]["type"] == "CubePlaced"
    after = engine.get_state()
    assert after.current_player_id == "B"
    assert {t.id: t.quantum_cube for t in after.tiles}["tile-2"] == "A"
    assert player(after, "A").research_counter == 2


def test_policy_skips_when_game_is_over():
    state = make_state()
    state.status = "finished"
    engine = GameEngine(state)

    assert run_policy_turn(engine, FirstAvailablePolicy()) == []


def test_execute_accepts_raw_commands():
    engine = GameEngine(make_state())
    assert engine.execute(Research(player_id="A")).success
    res = engine.execute(Construct(player_id="A", tile_id="tile-2"))
    assert res.code == "SUM_MISMATCH"
