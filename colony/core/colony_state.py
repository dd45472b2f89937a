"""ColonyState — the explicit context object every engine service works on.

It holds everything that must survive a restart (task registry, logistics
networks, supply requests, throttle bookmarks) plus the per-tick event
list. The loop opens and closes each tick with ``begin_tick``/``end_tick``;
services read ``tick`` from here instead of a global clock.
"""

from __future__ import annotations

from typing import Any

from colony.core.models import RoomNetwork, SupplyRequest
from colony.tasks.registry import TaskRegistry
from colony.utils.event_log import SimEvent

STATE_VERSION = 1


class ColonyState:
    """Single source of truth for engine bookkeeping."""

    __slots__ = (
        "tick",
        "registry",
        "networks",
        "supply_requests",
        "last_cleanup",
        "last_supply_cleanup",
        "events",
    )

    def __init__(self, tick: int = 0) -> None:
        self.tick: int = tick
        self.registry: TaskRegistry = TaskRegistry()
        self.networks: dict[str, RoomNetwork] = {}
        self.supply_requests: dict[str, list[SupplyRequest]] = {}
        self.last_cleanup: int = tick
        self.last_supply_cleanup: int = tick
        self.events: list[SimEvent] = []

    # -- tick boundary --

    def begin_tick(self, tick: int) -> None:
        self.tick = tick
        self.events = []

    def end_tick(self) -> list[SimEvent]:
        """Close the tick, returning the events it produced."""
        events = self.events
        self.events = []
        self.tick += 1
        return events

    def emit(self, category: str, message: str, subject_ids: tuple[str, ...] = ()) -> None:
        self.events.append(SimEvent(
            tick=self.tick,
            category=category,
            message=message,
            subject_ids=subject_ids,
        ))

    # -- persistence --

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "tick": self.tick,
            "last_cleanup": self.last_cleanup,
            "last_supply_cleanup": self.last_supply_cleanup,
            "tasks": self.registry.to_dict(),
            "networks": {room: net.to_dict() for room, net in self.networks.items()},
            "supply_requests": {
                room: [r.to_dict() for r in reqs] for room, reqs in self.supply_requests.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColonyState:
        state = cls(tick=data.get("tick", 0))
        state.last_cleanup = data.get("last_cleanup", state.tick)
        state.last_supply_cleanup = data.get("last_supply_cleanup", state.tick)
        state.registry = TaskRegistry.from_dict(data.get("tasks", {}))
        state.networks = {
            room: RoomNetwork.from_dict(raw) for room, raw in data.get("networks", {}).items()
        }
        state.supply_requests = {
            room: [SupplyRequest.from_dict(r) for r in reqs]
            for room, reqs in data.get("supply_requests", {}).items()
        }
        return state
