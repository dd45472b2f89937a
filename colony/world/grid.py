"""Room terrain grid."""

from __future__ import annotations

from enum import IntEnum, unique

from colony.core.models import Position


@unique
class Terrain(IntEnum):
    PLAIN = 0
    SWAMP = 1
    WALL = 2


class Grid:
    """2D terrain grid for one room, backed by a flat list."""

    __slots__ = ("width", "height", "room", "_tiles")

    def __init__(self, width: int, height: int, room: str = "", default: Terrain = Terrain.PLAIN) -> None:
        self.width = width
        self.height = height
        self.room = room
        self._tiles: list[Terrain] = [default] * (width * height)

    # -- access --

    def _idx(self, x: int, y: int) -> int:
        return y * self.width + x

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def get(self, pos: Position) -> Terrain:
        return self.get_xy(pos.x, pos.y)

    def set(self, pos: Position, terrain: Terrain) -> None:
        if self.in_bounds(pos):
            self._tiles[self._idx(pos.x, pos.y)] = terrain

    def is_walkable(self, pos: Position) -> bool:
        return self.get(pos) != Terrain.WALL

    # -- fast raw-coordinate access for hot loops --

    def in_bounds_xy(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_xy(self, x: int, y: int) -> Terrain:
        if 0 <= x < self.width and 0 <= y < self.height:
            return self._tiles[y * self.width + x]
        return Terrain.WALL

    def walkable_xy(self, x: int, y: int) -> bool:
        return self.get_xy(x, y) != Terrain.WALL

    def neighbours(self, pos: Position) -> list[Position]:
        """Walkable tiles at range 1 (8-connected)."""
        out = []
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nx, ny = pos.x + dx, pos.y + dy
                if self.walkable_xy(nx, ny):
                    out.append(Position(nx, ny, pos.room))
        return out

    # -- copy --

    def copy(self) -> Grid:
        new = Grid.__new__(Grid)
        new.width = self.width
        new.height = self.height
        new.room = self.room
        new._tiles = list(self._tiles)
        return new
