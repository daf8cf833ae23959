from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from quantumsim.core.engine.state import GameState, Pos, Ship, Tile

# "Next to"  = 4 ортогональных клетки
# "Surrounding" = 8 клеток (ортогональ + диагональ)
# Порядок соседей фиксирован: от него зависит путь, который вернёт BFS.


def adjacent_positions(pos: Pos) -> List[Pos]:
    x, y = pos
    return [
        (x, y - 1),  # up
        (x, y + 1),  # down
        (x - 1, y),  # left
        (x + 1, y),  # right
    ]


def diagonal_positions(pos: Pos) -> List[Pos]:
    x, y = pos
    return [
        (x - 1, y - 1),
        (x + 1, y - 1),
        (x - 1, y + 1),
        (x + 1, y + 1),
    ]


def surrounding_positions(pos: Pos) -> List[Pos]:
    return adjacent_positions(pos) + diagonal_positions(pos)


def manhattan_distance(a: Pos, b: Pos) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def chebyshev_distance(a: Pos, b: Pos) -> int:
    return max(abs(a[0] - b[0]), abs(a[1] - b[1]))


def is_adjacent(a: Pos, b: Pos) -> bool:
    return manhattan_distance(a, b) == 1


def is_surrounding(a: Pos, b: Pos) -> bool:
    return chebyshev_distance(a, b) == 1


# --- тайлы / планеты ---


def tile_center(tile: Tile) -> Pos:
    return (tile.position[0] + 1, tile.position[1] + 1)


def orbital_positions(tile: Tile) -> List[Pos]:
    return adjacent_positions(tile_center(tile))


def corner_positions(tile: Tile) -> List[Pos]:
    """Угловые клетки вокруг планеты (для Ingenious)."""
    return diagonal_positions(tile_center(tile))


def tile_contains(tile: Tile, pos: Pos) -> bool:
    x0, y0 = tile.position
    return x0 <= pos[0] <= x0 + 2 and y0 <= pos[1] <= y0 + 2


def is_valid_position(pos: Pos, tiles: Iterable[Tile]) -> bool:
    return any(tile_contains(t, pos) for t in tiles)


def is_planet_position(pos: Pos, tiles: Iterable[Tile]) -> bool:
    return any(tile_center(t) == pos for t in tiles)


def tile_for_orbital(pos: Pos, tiles: Iterable[Tile]) -> Optional[Tile]:
    for t in tiles:
        if pos in orbital_positions(t):
            return t
    return None


def is_orbital_position(pos: Pos, tiles: Iterable[Tile]) -> bool:
    return tile_for_orbital(pos, tiles) is not None


# --- корабли на доске ---


def ship_at(pos: Pos, ships: Iterable[Ship]) -> Optional[Ship]:
    for s in ships:
        if s.position == pos:
            return s
    return None


def ships_in_orbit(tile: Tile, ships: Iterable[Ship]) -> List[Ship]:
    orbitals = orbital_positions(tile)
    return [s for s in ships if s.position is not None and s.position in orbitals]


def player_ships_in_orbit(
    tile: Tile, ships: Iterable[Ship], player_id: str
) -> List[Ship]:
    return [s for s in ships_in_orbit(tile, ships) if s.owner_id == player_id]


def player_ships_in_corners(
    tile: Tile, ships: Iterable[Ship], player_id: str
) -> List[Ship]:
    corners = corner_positions(tile)
    return [
        s
        for s in ships
        if s.owner_id == player_id and s.position is not None and s.position in corners
    ]


# --- достижимость ---


def _board_cells(tiles: Iterable[Tile]) -> Set[Pos]:
    cells: Set[Pos] = set()
    for t in tiles:
        x0, y0 = t.position
        for dx in range(3):
            for dy in range(3):
                cells.add((x0 + dx, y0 + dy))
    return cells


def find_reachable_positions(
    ship: Ship,
    state: GameState,
    allow_diagonal: bool = False,
    bonus_range: int = 0,
    start: Optional[Pos] = None,
) -> Dict[Pos, List[Pos]]:
    """
    BFS от позиции корабля на value + bonus_range шагов.

    Нельзя: за пределы доски, на центр планеты, на свой корабль.
    Клетка с чужим кораблём достижима (атака), но дальше через неё не идём.
    Возвращает {позиция: путь}, путь без стартовой клетки, с конечной.
    Первым найденный путь: кратчайший; порядок dict = порядок обхода.
    """
    origin = start if start is not None else ship.position
    if origin is None:
        return {}

    max_distance = ship.pip_value + bonus_range
    cells = _board_cells(state.tiles)
    planets = {tile_center(t) for t in state.tiles}
    occupied: Dict[Pos, Ship] = {
        s.position: s for s in state.ships if s.position is not None and s.id != ship.id
    }

    reachable: Dict[Pos, List[Pos]] = {}
    visited: Set[Pos] = {origin}
    queue: deque[tuple[Pos, int, List[Pos]]] = deque([(origin, 0, [])])

    while queue:
        pos, dist, path = queue.popleft()
        if dist > 0:
            reachable[pos] = path
        if dist >= max_distance:
            continue

        neighbors = (
            surrounding_positions(pos) if allow_diagonal else adjacent_positions(pos)
        )
        for nb in neighbors:
            if nb in visited:
                continue
            if nb not in cells:
                continue
            if nb in planets:
                continue

            other = occupied.get(nb)
            if other is not None:
                if other.owner_id == ship.owner_id:
                    continue
                # враг: можно атаковать, но не проходить насквозь
                visited.add(nb)
                reachable[nb] = path + [nb]
                continue

            visited.add(nb)
            queue.append((nb, dist + 1, path + [nb]))

    return reachable


def move_path(
    ship: Ship,
    target: Pos,
    state: GameState,
    allow_diagonal: bool = False,
    bonus_range: int = 0,
) -> Optional[List[Pos]]:
    return find_reachable_positions(ship, state, allow_diagonal, bonus_range).get(
        target
    )
