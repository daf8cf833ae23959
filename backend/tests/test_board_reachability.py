from quantumsim.core.engine.board import (
    find_reachable_positions,
    manhattan_distance,
    orbital_positions,
    tile_for_orbital,
)
from quantumsim.core.engine.rules.validator import get_available_actions

from factories import add_ship, make_state

PLANETS = {(1, 1), (4, 1), (1, 4), (4, 4)}


def test_value_three_reaches_manhattan_one_to_three():
    state = make_state()
    ship = add_ship(state, "A", 3, (2, 2))

    reachable = find_reachable_positions(ship, state)

    expected = {
        (x, y)
        for x in range(6)
        for y in range(6)
        if 1 <= manhattan_distance((2, 2), (x, y)) <= 3
    } - PLANETS
    assert set(reachable) == expected

    for pos, path in reachable.items():
        assert path[-1] == pos
        assert len(path) <= 3
        assert pos not in PLANETS

    # canMove без врагов совпадает с достижимостью
    available = get_available_actions(state)
    assert set(available.can_move[ship.id]) == expected


def test_own_ship_blocks_and_enemy_is_attack_only():
    state = make_state()
    ship = add_ship(state, "A", 3, (2, 2))
    add_ship(state, "A", 4, (3, 2))
    enemy = add_ship(state, "B", 1, (2, 3))

    reachable = find_reachable_positions(ship, state)

    assert (3, 2) not in reachable
    assert reachable[(2, 3)] == [(2, 3)]
    # через врага не проходим, обход длиннее трёх шагов
    assert (2, 4) not in reachable

    available = get_available_actions(state)
    assert (2, 3) in available.can_attack[ship.id]
    assert (2, 3) not in available.can_move[ship.id]
    assert enemy.position == (2, 3)


def test_bfs_order_is_stable():
    state = make_state()
    ship = add_ship(state, "A", 2, (2, 2))

    first = find_reachable_positions(ship, state)
    second = find_reachable_positions(ship, state)

    assert list(first.items()) == list(second.items())
    # сосед "вверх" перебирается первым
    assert list(first)[0] == (2, 1)


def test_diagonal_traversal_and_bonus_range():
    state = make_state()
    ship = add_ship(state, "A", 1, (2, 2))

    plain = find_reachable_positions(ship, state)
    assert (3, 3) not in plain

    diagonal = find_reachable_positions(ship, state, allow_diagonal=True)
    assert diagonal[(3, 3)] == [(3, 3)]

    extended = find_reachable_positions(ship, state, bonus_range=1)
    assert (2, 4) in extended
    assert all(len(p) <= 2 for p in extended.values())


def test_orbitals_and_tile_lookup():
    state = make_state()
    tile = state.tiles[1]  # (3,0), центр (4,1)

    assert orbital_positions(tile) == [(4, 0), (4, 2), (3, 1), (5, 1)]
    assert tile_for_orbital((3, 1), state.tiles) is tile
    assert tile_for_orbital((4, 1), state.tiles) is None
