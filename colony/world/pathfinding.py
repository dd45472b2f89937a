"""A* pathfinding with terrain cost awareness.

Usage:
    pf = Pathfinder(grid)
    path = pf.find_path(start, goal)          # list[Position] or None
    steps = pf.distance(start, goal)          # int or None
    next_step = pf.next_step(start, goal, 1)  # Position or None
"""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING

from colony.core.models import Position
from colony.world.grid import Terrain

if TYPE_CHECKING:
    from colony.world.grid import Grid

# Cost of stepping onto a tile. Walls are handled by Grid.walkable_xy().
TERRAIN_MOVE_COST: dict[Terrain, float] = {
    Terrain.PLAIN: 1.0,
    Terrain.SWAMP: 5.0,
}

# 8-connected: diagonal steps cost the same as straight ones
_DIRS = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (1, -1), (-1, 1), (-1, -1),
)


class Pathfinder:
    """A* pathfinder over one room's Grid.

    Performance-bounded: explores at most ``max_nodes`` before giving up.
    """

    __slots__ = ("_grid", "_max_nodes")

    def __init__(self, grid: Grid, max_nodes: int = 2500) -> None:
        self._grid = grid
        self._max_nodes = max_nodes

    def find_path(self, start: Position, goal: Position, goal_range: int = 0) -> list[Position] | None:
        """A* path from *start* to any tile within *goal_range* of *goal*.

        Returns the positions stepped on (excluding *start*), or None if no
        path exists within the node budget.
        """
        if start.range_to(goal) <= goal_range:
            return []

        grid = self._grid
        if goal_range == 0 and not grid.is_walkable(goal):
            return None

        counter = 0
        open_heap: list[tuple[float, int, int, int]] = []
        heapq.heappush(open_heap, (0.0, counter, start.x, start.y))

        g_score: dict[tuple[int, int], float] = {(start.x, start.y): 0.0}
        came_from: dict[tuple[int, int], tuple[int, int]] = {}
        closed: set[tuple[int, int]] = set()
        nodes_explored = 0

        gx, gy = goal.x, goal.y

        while open_heap and nodes_explored < self._max_nodes:
            _, _, cx, cy = heapq.heappop(open_heap)
            ckey = (cx, cy)

            if max(abs(cx - gx), abs(cy - gy)) <= goal_range:
                return self._reconstruct(came_from, ckey, start.room)

            if ckey in closed:
                continue
            closed.add(ckey)
            nodes_explored += 1

            current_g = g_score[ckey]

            for dx, dy in _DIRS:
                nx, ny = cx + dx, cy + dy
                nkey = (nx, ny)
                if nkey in closed or not grid.walkable_xy(nx, ny):
                    continue

                tentative_g = current_g + TERRAIN_MOVE_COST.get(grid.get_xy(nx, ny), 1.0)
                if tentative_g < g_score.get(nkey, float("inf")):
                    g_score[nkey] = tentative_g
                    came_from[nkey] = ckey
                    h = max(abs(nx - gx), abs(ny - gy)) - goal_range  # Chebyshev heuristic
                    counter += 1
                    heapq.heappush(open_heap, (tentative_g + max(h, 0), counter, nx, ny))

        return None

    def distance(self, start: Position, goal: Position, goal_range: int = 0) -> int | None:
        """Number of steps on the path, or None when unreachable."""
        path = self.find_path(start, goal, goal_range)
        return None if path is None else len(path)

    def next_step(self, start: Position, goal: Position, goal_range: int = 0) -> Position | None:
        """First step of the A* path, or None if no path exists or already in range."""
        path = self.find_path(start, goal, goal_range)
        if path:
            return path[0]
        return None

    @staticmethod
    def _reconstruct(
        came_from: dict[tuple[int, int], tuple[int, int]],
        current: tuple[int, int],
        room: str,
    ) -> list[Position]:
        path: list[Position] = []
        while current in came_from:
            path.append(Position(current[0], current[1], room))
            current = came_from[current]
        path.reverse()
        return path
