from quantumsim.core.engine.cards.library import (
    ALL_CARDS,
    build_deck,
    cards_by_type,
    get_card,
)
from quantumsim.core.engine.commands import (
    FreeDeploy,
    RelocateCube,
    ReorganizeShips,
    SabotageDiscard,
    SelectAdvanceCard,
)
from quantumsim.core.engine.dice import SeededDice
from quantumsim.core.engine.rules.apply import apply_command
from quantumsim.core.engine.state import cards_owed, get_ship

from factories import add_ship, card, give, make_state, player


def _with_market(state, *, gambits=(), commands=()):
    state.cards.gambit_market = [card(c) for c in gambits]
    state.cards.command_market = [card(c) for c in commands]
    state.cards.gambit_deck = [card("aggression", 9)]
    state.cards.command_deck = [card("brilliant", 9)]
    return state


def _owed(state, pid="A", n=1):
    player(state, pid).cubes_placed_this_turn = n


def test_catalog_identity_is_explicit():
    assert {c.type for c in ALL_CARDS} == {"command", "gambit"}
    assert get_card("stubborn").type == "command"
    deck = build_deck("gambit", SeededDice(3))
    total = sum(c.count for c in cards_by_type("gambit"))
    assert len(deck) == total
    assert len({c.instance_id for c in deck}) == total
    for inst in deck:
        assert get_card(inst.card_id).type == "gambit"


def test_select_requires_earned_card():
    state = _with_market(make_state(), commands=("agile",))

    r = apply_command(state, SelectAdvanceCard(player_id="A", instance_id="agile#0"))
    assert r.error.code == "NO_CARDS_OWED"


def test_select_command_card_refills_market():
    state = _with_market(make_state(), commands=("agile", "eager"))
    _owed(state)

    res = apply_command(state, SelectAdvanceCard(player_id="A", instance_id="agile#0"))

    assert res.ok, res.reason
    s = res.state
    a = player(s, "A")
    assert [c.card_id for c in a.active_command_cards] == ["agile"]
    assert a.active_command_cards[0].gained_on_turn == s.turn_number
    assert [c.card_id for c in s.cards.command_market] == ["eager", "brilliant"]
    assert s.cards.command_deck == []
    assert cards_owed(a) == 0


def test_command_cap_requires_discard():
    state = _with_market(make_state(), commands=("agile",))
    give(state, "A", "eager", "brilliant", "curious")
    _owed(state)

    r = apply_command(state, SelectAdvanceCard(player_id="A", instance_id="agile#0"))
    assert r.error.code == "DISCARD_REQUIRED"

    res = apply_command(
        state,
        SelectAdvanceCard(
            player_id="A", instance_id="agile#0", discard_instance_id="brilliant#1"
        ),
    )
    assert res.ok, res.reason
    held = [c.card_id for c in player(res.state, "A").active_command_cards]
    assert held == ["eager", "curious", "agile"]
    assert [c.card_id for c in res.state.cards.command_discard] == ["brilliant"]


def test_expansion_then_free_deploy():
    state = _with_market(make_state(dice=[6]), gambits=("expansion",))
    _owed(state)

    res = apply_command(
        state, SelectAdvanceCard(player_id="A", instance_id="expansion#0")
    )
    assert res.ok, res.reason
    s = res.state
    a = player(s, "A")
    assert a.scrapyard == [6]
    assert a.free_deploys == 1
    assert [c.card_id for c in s.cards.gambit_discard] == ["expansion"]
    assert [e["type"] for e in res.events] == ["CardSelected", "GambitResolved"]

    res = apply_command(s, FreeDeploy(player_id="A", ship_index=0, position=(1, 0)))
    assert res.ok, res.reason
    a = player(res.state, "A")
    assert a.free_deploys == 0
    assert a.actions_remaining == 3

    r = apply_command(
        res.state, FreeDeploy(player_id="A", ship_index=0, position=(1, 2))
    )
    assert r.error.code == "NO_FREE_DEPLOYS"


def test_aggression_and_momentum():
    state = _with_market(make_state(), gambits=("aggression", "momentum"))
    _owed(state, n=2)
    ship = add_ship(state, "A", 2, (2, 2))
    ship.has_moved_this_turn = True

    s = apply_command(
        state, SelectAdvanceCard(player_id="A", instance_id="aggression#0")
    ).state
    assert player(s, "A").dominance_counter == 2

    s = apply_command(s, SelectAdvanceCard(player_id="A", instance_id="momentum#0")).state
    assert player(s, "A").actions_remaining == 5
    assert get_ship(s, ship.id).has_moved_this_turn is False


def test_relocation_moves_opponent_cube():
    state = _with_market(make_state(), gambits=("relocation",))
    _owed(state)

    s = apply_command(
        state, SelectAdvanceCard(player_id="A", instance_id="relocation#0")
    ).state
    assert player(s, "A").pending_gambits == ["relocation"]

    r = apply_command(
        s, RelocateCube(player_id="A", from_tile_id="tile-1", to_tile_id="tile-2")
    )
    assert r.error.code == "OWN_CUBE"

    res = apply_command(
        s, RelocateCube(player_id="A", from_tile_id="tile-4", to_tile_id="tile-2")
    )
    assert res.ok, res.reason
    tiles = {t.id: t.quantum_cube for t in res.state.tiles}
    assert tiles["tile-4"] is None
    assert tiles["tile-2"] == "B"
    assert player(res.state, "A").pending_gambits == []


def test_reorganization_rerolls_and_grants_free_deploys():
    state = _with_market(make_state(dice=[1, 2, 3]), gambits=("reorganization",))
    _owed(state)
    player(state, "A").scrapyard = [6]
    ship = add_ship(state, "A", 5, (2, 1))
    keep = add_ship(state, "A", 4, (1, 0))

    s = apply_command(
        state, SelectAdvanceCard(player_id="A", instance_id="reorganization#0")
    ).state
    res = apply_command(
        s,
        ReorganizeShips(
            player_id="A", reroll_ship_ids=[ship.id], reroll_scrapyard_indices=[0]
        ),
    )

    assert res.ok, res.reason
    a = player(res.state, "A")
    # scrapyard перебрасывается первым, корабль с доски уходит в конец
    assert a.scrapyard == [1, 2]
    assert a.free_deploys == 2
    assert get_ship(res.state, ship.id) is None
    assert get_ship(res.state, keep.id) is not None
    assert a.pending_gambits == []


def test_sabotage_forces_opponent_discard_off_turn():
    state = _with_market(make_state(), gambits=("sabotage",))
    give(state, "B", "agile", "eager")
    _owed(state)

    s = apply_command(state, SelectAdvanceCard(player_id="A", instance_id="sabotage#0")).state
    assert player(s, "B").pending_gambits == ["sabotage"]
    assert player(s, "A").pending_gambits == []

    r = apply_command(s, SabotageDiscard(player_id="B", instance_id="curious#0"))
    assert r.error.code == "CARD_NOT_HELD"

    res = apply_command(s, SabotageDiscard(player_id="B", instance_id="eager#1"))
    assert res.ok, res.reason
    b = player(res.state, "B")
    assert [c.card_id for c in b.active_command_cards] == ["agile"]
    assert b.pending_gambits == []
    assert res.state.cards.command_discard[-1].card_id == "eager"
