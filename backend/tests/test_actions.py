from quantumsim.core.engine.commands import (
    Deploy,
    FlexibleAdjust,
    Move,
    Reconfigure,
    Research,
    Sacrifice,
    TradeResources,
    UseAbility,
)
from quantumsim.core.engine.rules.apply import apply_command
from quantumsim.core.engine.state import cards_owed, get_ship

from factories import add_ship, give, make_state, player


def test_reconfigure_rolls_a_different_value():
    # первый бросок совпадает с текущим значением и отбрасывается
    state = make_state(dice=[4, 4, 2])
    ship = add_ship(state, "A", 4, (2, 2))

    res = apply_command(state, Reconfigure(player_id="A", ship_id=ship.id))

    assert res.ok, res.reason
    assert get_ship(res.state, ship.id).pip_value == 2
    assert player(res.state, "A").actions_remaining == 2
    assert res.events[0]["payload"]["old_value"] == 4
    assert res.state.action_log[-1].data["new_value"] == 2


def test_deploy_needs_own_cube_on_planet():
    state = make_state()
    a = player(state, "A")
    a.scrapyard = [5, 2]

    # tile-1 с кубом A: орбиты (1,0) (1,2) (0,1) (2,1)
    res = apply_command(state, Deploy(player_id="A", ship_index=1, position=(1, 2)))
    assert res.ok, res.reason
    s = res.state
    assert player(s, "A").scrapyard == [5]
    deployed = [x for x in s.ships if x.position == (1, 2)]
    assert deployed[0].pip_value == 2
    assert player(s, "A").actions_remaining == 2

    r = apply_command(state, Deploy(player_id="A", ship_index=0, position=(3, 1)))
    assert r.error.code == "NO_CUBE_ON_PLANET"

    r = apply_command(state, Deploy(player_id="A", ship_index=5, position=(1, 2)))
    assert r.error.code == "BAD_SHIP_INDEX"


def test_eager_deploys_for_free():
    state = make_state()
    give(state, "A", "eager")
    player(state, "A").scrapyard = [3]

    res = apply_command(state, Deploy(player_id="A", ship_index=0, position=(2, 1)))

    assert res.ok, res.reason
    assert player(res.state, "A").actions_remaining == 3
    assert res.events[0]["payload"]["free"] is True


def test_stealthy_deploy_away_from_ships():
    state = make_state()
    give(state, "A", "stealthy")
    player(state, "A").scrapyard = [3, 3]
    add_ship(state, "B", 2, (5, 2))

    # tile-2 без куба A, но рядом никого нет
    res = apply_command(state, Deploy(player_id="A", ship_index=0, position=(3, 1)))
    assert res.ok, res.reason

    # (5,1) соседствует с кораблём на (5,2)
    r = apply_command(state, Deploy(player_id="A", ship_index=0, position=(5, 1)))
    assert r.error.code == "STEALTHY_BLOCKED"


def test_move_once_per_turn_unless_energetic():
    state = make_state()
    ship = add_ship(state, "A", 2, (2, 2))

    res = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 4)))
    assert res.ok, res.reason
    moved = get_ship(res.state, ship.id)
    assert moved.position == (2, 4)
    assert moved.has_moved_this_turn
    assert res.events[0]["payload"]["path"] == [(2, 3), (2, 4)]

    r = apply_command(res.state, Move(player_id="A", ship_id=ship.id, target=(2, 5)))
    assert r.error.code == "ALREADY_MOVED"

    give(res.state, "A", "energetic")
    r = apply_command(res.state, Move(player_id="A", ship_id=ship.id, target=(2, 5)))
    assert r.ok, r.reason


def test_move_rules():
    state = make_state()
    ship = add_ship(state, "A", 1, (2, 2))
    add_ship(state, "B", 3, (2, 3))

    r = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 3)))
    assert r.error.code == "USE_ATTACK"

    r = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 0)))
    assert r.error.code == "UNREACHABLE"

    player(state, "A").actions_remaining = 0
    r = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(3, 2)))
    assert r.error.code == "NO_ACTIONS"


def test_agile_extends_range():
    state = make_state()
    give(state, "A", "agile")
    ship = add_ship(state, "A", 1, (2, 2))

    res = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 4)))
    assert res.ok, res.reason


def test_research_breakthrough_resets_and_owes_card():
    state = make_state()
    player(state, "A").research_counter = 5

    res = apply_command(state, Research(player_id="A"))

    assert res.ok, res.reason
    a = player(res.state, "A")
    assert a.research_counter == 1
    assert a.achieved_breakthrough_this_turn
    assert cards_owed(a) == 1
    assert [e["type"] for e in res.events] == [
        "ResearchAdvanced",
        "BreakthroughAchieved",
    ]
    assert res.events[0]["seq"] < res.events[1]["seq"]


def test_brilliant_and_precocious():
    state = make_state()
    give(state, "A", "brilliant", "precocious")
    player(state, "A").research_counter = 2

    res = apply_command(state, Research(player_id="A"))

    # 2 + 2 = 4 == порог Precocious
    a = player(res.state, "A")
    assert a.research_counter == 1
    assert a.achieved_breakthrough_this_turn


def test_warp_modify_and_free_reconfigure():
    state = make_state(dice=[6, 2])
    warp = add_ship(state, "A", 3, (2, 2))
    other = add_ship(state, "A", 4, (2, 5))

    res = apply_command(
        state,
        UseAbility(player_id="A", ship_id=warp.id, ability="warp", target_ship_id=other.id),
    )
    assert res.ok, res.reason
    s = res.state
    assert get_ship(s, warp.id).position == (2, 5)
    assert get_ship(s, other.id).position == (2, 2)
    assert player(s, "A").actions_remaining == 3

    r = apply_command(
        s, UseAbility(player_id="A", ship_id=warp.id, ability="warp", target_ship_id=other.id)
    )
    assert r.error.code == "ABILITY_USED"

    res = apply_command(
        s, UseAbility(player_id="A", ship_id=other.id, ability="modify", new_value=5)
    )
    assert res.ok, res.reason
    assert get_ship(res.state, other.id).pip_value == 5

    r = apply_command(
        s, UseAbility(player_id="A", ship_id=other.id, ability="modify", new_value=4)
    )
    assert r.error.code == "BAD_VALUE"

    six = add_ship(state, "A", 6, (0, 5))
    res = apply_command(
        state, UseAbility(player_id="A", ship_id=six.id, ability="free_reconfigure")
    )
    assert res.ok, res.reason
    assert get_ship(res.state, six.id).pip_value == 2


def test_ability_must_match_ship_value():
    state = make_state()
    ship = add_ship(state, "A", 2, (2, 2))

    r = apply_command(
        state, UseAbility(player_id="A", ship_id=ship.id, ability="modify", new_value=3)
    )
    assert r.error.code == "WRONG_ABILITY"


def test_flexible_wraps_once_per_turn():
    state = make_state()
    give(state, "A", "flexible")
    ship = add_ship(state, "A", 6, (2, 2))

    res = apply_command(state, FlexibleAdjust(player_id="A", ship_id=ship.id, delta=1))
    assert res.ok, res.reason
    assert get_ship(res.state, ship.id).pip_value == 1
    assert player(res.state, "A").actions_remaining == 3

    r = apply_command(res.state, FlexibleAdjust(player_id="A", ship_id=ship.id, delta=-1))
    assert r.error.code == "ALREADY_USED"


def test_trades():
    state = make_state()
    give(state, "A", "tyrannical")
    player(state, "A").research_counter = 3

    res = apply_command(state, TradeResources(player_id="A", trade="tyrannical"))
    assert res.ok, res.reason
    a = player(res.state, "A")
    assert (a.research_counter, a.dominance_counter) == (2, 1)

    r = apply_command(res.state, TradeResources(player_id="A", trade="tyrannical"))
    assert r.error.code == "ALREADY_USED"

    r = apply_command(state, TradeResources(player_id="A", trade="cerebral"))
    assert r.error.code == "CARD_REQUIRED"

    state = make_state()
    give(state, "A", "cerebral", "righteous")
    player(state, "A").dominance_counter = 1
    res = apply_command(state, TradeResources(player_id="A", trade="cerebral"))
    a = player(res.state, "A")
    assert (a.research_counter, a.dominance_counter) == (4, 0)


def test_sacrifice_returns_ship_and_grants_action():
    state = make_state(dice=[5])
    give(state, "A", "resourceful")
    ship = add_ship(state, "A", 2, (2, 2))

    res = apply_command(state, Sacrifice(player_id="A", ship_id=ship.id))

    assert res.ok, res.reason
    a = player(res.state, "A")
    assert get_ship(res.state, ship.id) is None
    assert a.scrapyard == [5]
    assert a.actions_remaining == 4
    assert [e["type"] for e in res.events] == ["ShipSacrificed", "ShipDestroyed"]


def test_cunning_allows_one_extra_ability_per_turn():
    state = make_state()
    give(state, "A", "cunning")
    warp = add_ship(state, "A", 3, (2, 2))
    other = add_ship(state, "A", 4, (2, 5))
    cmd = UseAbility(player_id="A", ship_id=warp.id, ability="warp", target_ship_id=other.id)

    s = apply_command(state, cmd).state
    res = apply_command(s, cmd)
    assert res.ok, res.reason
    assert get_ship(res.state, warp.id).position == (2, 2)
    assert player(res.state, "A").has_used_cunning_this_turn

    r = apply_command(res.state, cmd)
    assert r.error.code == "ABILITY_USED"


def test_tactical_free_short_move():
    state = make_state()
    give(state, "A", "tactical")
    ship = add_ship(state, "A", 1, (2, 2))

    # обычный ход на 1 клетку, Tactical: до 2
    r = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 4)))
    assert r.error.code == "UNREACHABLE"

    res = apply_command(
        state, Move(player_id="A", ship_id=ship.id, target=(2, 4), tactical=True)
    )
    assert res.ok, res.reason
    a = player(res.state, "A")
    assert a.actions_remaining == 3
    assert a.has_used_tactical_this_turn
    assert res.state.action_log[-1].data["tactical"] is True

    r = apply_command(
        res.state, Move(player_id="A", ship_id=ship.id, target=(2, 5), tactical=True)
    )
    assert r.error.code == "ALREADY_USED"


def test_tactical_rules():
    state = make_state()
    ship = add_ship(state, "A", 4, (2, 2))

    r = apply_command(
        state, Move(player_id="A", ship_id=ship.id, target=(2, 3), tactical=True)
    )
    assert r.error.code == "CARD_REQUIRED"

    give(state, "A", "tactical")
    r = apply_command(
        state, Move(player_id="A", ship_id=ship.id, target=(2, 5), tactical=True)
    )
    assert r.error.code == "UNREACHABLE"

    # уже походивший корабль всё ещё может сделать ход Tactical
    s = apply_command(state, Move(player_id="A", ship_id=ship.id, target=(2, 3))).state
    res = apply_command(
        s, Move(player_id="A", ship_id=ship.id, target=(2, 5), tactical=True)
    )
    assert res.ok, res.reason
    assert player(res.state, "A").actions_remaining == 2
