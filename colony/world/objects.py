"""Sandbox world objects and their resource stores."""

from __future__ import annotations

from dataclasses import dataclass, field

from colony.core.enums import BodyPart, ObjectKind, RESOURCE_ENERGY
from colony.core.models import Position


class Store:
    """Resource container with one shared capacity.

    A store restricted to some resource types reports ``capacity`` None and
    ``free`` 0 for every other type.
    """

    __slots__ = ("_capacity", "_contents", "_allowed")

    def __init__(
        self,
        capacity: int,
        contents: dict[str, int] | None = None,
        allowed: tuple[str, ...] | None = None,
    ) -> None:
        self._capacity = capacity
        self._contents: dict[str, int] = dict(contents or {})
        self._allowed = allowed

    def _accepts(self, resource_type: str | None) -> bool:
        return resource_type is None or self._allowed is None or resource_type in self._allowed

    def used(self, resource_type: str | None = None) -> int:
        if resource_type is None:
            return sum(self._contents.values())
        return self._contents.get(resource_type, 0)

    def capacity(self, resource_type: str | None = None) -> int | None:
        if not self._accepts(resource_type):
            return None
        return self._capacity

    def free(self, resource_type: str | None = None) -> int:
        if not self._accepts(resource_type):
            return 0
        return max(self._capacity - self.used(), 0)

    def resource_types(self) -> list[str]:
        return [rt for rt, amount in self._contents.items() if amount > 0]

    def add(self, resource_type: str, amount: int) -> int:
        """Store up to *amount*; returns how much fit."""
        moved = min(amount, self.free(resource_type))
        if moved > 0:
            self._contents[resource_type] = self._contents.get(resource_type, 0) + moved
        return moved

    def remove(self, resource_type: str, amount: int) -> int:
        """Take up to *amount*; returns how much was there."""
        moved = min(amount, self.used(resource_type))
        if moved > 0:
            left = self._contents[resource_type] - moved
            if left:
                self._contents[resource_type] = left
            else:
                del self._contents[resource_type]
        return moved

    def __repr__(self) -> str:
        return f"Store({self._contents}, cap={self._capacity})"


@dataclass(slots=True)
class Structure:
    """Any built object: spawn, extension, container, controller, ..."""

    id: str
    kind: ObjectKind
    pos: Position
    store: Store | None = None
    progress: int = 0


@dataclass(slots=True)
class Source:
    id: str
    pos: Position
    energy: int
    capacity: int
    kind: ObjectKind = ObjectKind.SOURCE


@dataclass(slots=True)
class ConstructionSite:
    id: str
    pos: Position
    structure_kind: ObjectKind
    progress_total: int
    progress: int = 0
    kind: ObjectKind = ObjectKind.CONSTRUCTION_SITE

    @property
    def complete(self) -> bool:
        return self.progress >= self.progress_total


@dataclass(slots=True)
class DroppedResource:
    id: str
    pos: Position
    resource_type: str
    amount: int
    kind: ObjectKind = ObjectKind.DROPPED_RESOURCE


@dataclass(slots=True)
class Tombstone:
    id: str
    pos: Position
    store: Store
    decay_at: int
    kind: ObjectKind = ObjectKind.TOMBSTONE


@dataclass(slots=True)
class Worker:
    name: str
    pos: Position
    body: dict[BodyPart, int] = field(default_factory=dict)
    store: Store = field(default_factory=lambda: Store(0))
    spawning: bool = False
    ready_at: int = 0
    kind: ObjectKind = ObjectKind.CREEP

    @property
    def id(self) -> str:
        return self.name

    def parts(self, part: BodyPart) -> int:
        return self.body.get(part, 0)

    @property
    def energy(self) -> int:
        return self.store.used(RESOURCE_ENERGY)


# Carry capacity per CARRY part
CARRY_CAPACITY = 50
# Energy harvested per WORK part per tick
HARVEST_POWER = 2
# Build progress per WORK part per tick (costs one energy each)
BUILD_POWER = 5
# Controller progress per WORK part per tick (costs one energy each)
UPGRADE_POWER = 1

STRUCTURE_CAPACITY: dict[ObjectKind, int] = {
    ObjectKind.SPAWN: 300,
    ObjectKind.EXTENSION: 50,
    ObjectKind.TOWER: 1000,
    ObjectKind.CONTAINER: 2000,
    ObjectKind.STORAGE: 1_000_000,
    ObjectKind.LINK: 800,
}

# Structures whose store only takes energy
ENERGY_ONLY = frozenset({ObjectKind.SPAWN, ObjectKind.EXTENSION, ObjectKind.TOWER, ObjectKind.LINK})


def make_store(kind: ObjectKind, energy: int = 0) -> Store | None:
    capacity = STRUCTURE_CAPACITY.get(kind)
    if capacity is None:
        return None
    allowed = (RESOURCE_ENERGY,) if kind in ENERGY_ONLY else None
    return Store(capacity, {RESOURCE_ENERGY: energy} if energy else None, allowed)
