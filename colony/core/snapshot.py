"""Immutable snapshot of colony state for API readers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping

from colony.core.models import RoomNetwork, SupplyRequest, Task

if TYPE_CHECKING:
    from colony.core.colony_state import ColonyState
    from colony.core.oracle import WorkerView


@dataclass(frozen=True, slots=True)
class ColonySnapshot:
    """Read-only copy of the state, safe to hand to another thread."""

    tick: int
    tasks: Mapping[str, Task]
    creep_tasks: Mapping[str, str]
    networks: Mapping[str, RoomNetwork]
    supply_requests: tuple[SupplyRequest, ...]
    stats: Mapping[str, int]
    workers: tuple[WorkerView, ...] = ()

    @classmethod
    def from_state(cls, state: ColonyState, workers: Iterable[WorkerView] = ()) -> ColonySnapshot:
        registry = state.registry
        tasks = {t.id: Task.from_dict(t.to_dict()) for t in registry.all_tasks()}
        creep_tasks = {w: tid for w, tid in registry.bound_workers()}
        networks = {
            room: RoomNetwork(
                providers={k: replace(v) for k, v in net.providers.items()},
                consumers={k: replace(v) for k, v in net.consumers.items()},
                planned_roles=dict(net.planned_roles),
                last_updated=net.last_updated,
            )
            for room, net in state.networks.items()
        }
        return cls(
            tick=state.tick,
            tasks=MappingProxyType(tasks),
            creep_tasks=MappingProxyType(creep_tasks),
            networks=MappingProxyType(networks),
            supply_requests=tuple(replace(r) for reqs in state.supply_requests.values() for r in reqs),
            stats=MappingProxyType(registry.stats()),
            workers=tuple(workers),
        )

    def tasks_in(self, room_name: str) -> list[Task]:
        return [t for t in self.tasks.values() if t.room_name == room_name]

    def creep_task(self, worker: str) -> Task | None:
        task_id = self.creep_tasks.get(worker)
        return self.tasks.get(task_id) if task_id is not None else None
