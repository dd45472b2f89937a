"""World oracle: the read-only view of the world the engine consumes.

The engine never inspects world objects directly. Everything it needs
(path distances, existence checks, stores, ephemeral object listings,
worker views) comes through this protocol, so the same engine runs against
the sandbox world, a test fake, or a real game binding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from colony.core.enums import BodyPart, ObjectKind
from colony.core.models import Position


class StoreView(Protocol):
    """Resource store of a world object."""

    def used(self, resource_type: str | None = None) -> int: ...

    def free(self, resource_type: str | None = None) -> int: ...

    def capacity(self, resource_type: str | None = None) -> int | None: ...

    def resource_types(self) -> list[str]: ...


@dataclass(frozen=True, slots=True)
class ObjectRef:
    """Identity, tag and location of a world object, as handed to registration calls."""

    id: str
    kind: ObjectKind
    pos: Position


@dataclass(frozen=True, slots=True)
class EphemeralObject:
    """A dropped resource pile or corpse found by a room scan."""

    ref: ObjectRef
    resource_type: str
    amount: int


@dataclass(frozen=True, slots=True)
class WorkerView:
    """What the scheduler needs to know about a worker."""

    name: str
    pos: Position
    body: dict[BodyPart, int] = field(default_factory=dict)
    spawning: bool = False
    carry_capacity: int = 0
    carry_free: int = 0

    def parts(self, part: BodyPart) -> int:
        return self.body.get(part, 0)


class WorldOracle(Protocol):
    """Everything the engine reads from the world."""

    def owned_rooms(self) -> list[str]: ...

    def path_distance(self, a: Position, b: Position) -> int | None:
        """Path length between two positions, or None when unreachable."""
        ...

    def object_exists(self, object_id: str) -> bool: ...

    def object_pos(self, object_id: str) -> Position | None: ...

    def object_store(self, object_id: str) -> StoreView | None: ...

    def dropped_amount(self, object_id: str) -> int: ...

    def find_ephemeral(self, room: str) -> Iterable[EphemeralObject]: ...

    def worker_exists(self, name: str) -> bool: ...

    def get_worker(self, name: str) -> WorkerView | None: ...

    def workers(self) -> Iterable[WorkerView]: ...

    def structure_at(self, pos: Position, kind: ObjectKind) -> ObjectRef | None: ...

    def find_objects(self, room: str, kind: ObjectKind) -> list[ObjectRef]:
        """Objects of *kind* in *room*: sources, controllers, sites, structures."""
        ...

    def harvest_slots(self, source_id: str) -> int:
        """Walkable tiles next to a source, i.e. how many workers can mine it at once."""
        ...
