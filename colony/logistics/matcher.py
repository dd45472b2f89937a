"""DemandMatcher — turns a room's open requests and available sources into transport specs.

Greedy, per call, stateless between calls:

  1. open requests: consumers whose object exists with free capacity > 0
  2. available sources: ready providers whose object holds > 0
  3. priority = importance(kind) * needs / capacity, highest first
  4. each request drains the nearest-by-path provider first until satisfied
     or out of candidates

Unmet remainders are simply picked up again on the next pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from colony.core.enums import ObjectKind
from colony.core.models import TaskSpec

if TYPE_CHECKING:
    from colony.core.models import ConsumerInfo, ProviderInfo
    from colony.core.oracle import WorldOracle
    from colony.logistics.network import LogisticsNetwork

logger = logging.getLogger(__name__)

CONSUMER_IMPORTANCE: dict[ObjectKind, float] = {
    ObjectKind.SPAWN: 1.0,
    ObjectKind.EXTENSION: 1.0,
    ObjectKind.TOWER: 0.8,
    ObjectKind.POWER_SPAWN: 0.7,
    ObjectKind.LINK: 0.6,
    ObjectKind.CONTAINER: 0.5,
    ObjectKind.LAB: 0.4,
    ObjectKind.CREEP: 0.4,
    ObjectKind.NUKER: 0.3,
    ObjectKind.STORAGE: 0.2,
    ObjectKind.TERMINAL: 0.2,
}
DEFAULT_IMPORTANCE = 0.5


def importance(kind: ObjectKind) -> float:
    return CONSUMER_IMPORTANCE.get(kind, DEFAULT_IMPORTANCE)


@dataclass(slots=True)
class OpenRequest:
    consumer: ConsumerInfo
    needs: int
    capacity: int | None
    priority: float = 0.0


class DemandMatcher:
    """Pairs consumers with providers for one room at a time."""

    __slots__ = ("_network", "_oracle")

    def __init__(self, network: LogisticsNetwork, oracle: WorldOracle) -> None:
        self._network = network
        self._oracle = oracle

    def open_requests(self, room_name: str) -> list[OpenRequest]:
        net = self._network.network(room_name)
        if net is None:
            return []
        requests: list[OpenRequest] = []
        for consumer in net.consumers.values():
            free, capacity = self._network.consumer_free(consumer)
            if free <= 0:
                continue
            if consumer.kind == ObjectKind.CREEP:
                # Workers move; distances are measured from where they stand now
                pos = self._oracle.object_pos(consumer.id)
                if pos is not None:
                    consumer.pos = pos
            consumer.needs = free
            requests.append(OpenRequest(consumer=consumer, needs=free, capacity=capacity))
        return requests

    def available_sources(self, room_name: str) -> list[ProviderInfo]:
        return self._network.ready_providers(room_name)

    def generate_transport_tasks(self, room_name: str) -> list[TaskSpec]:
        """Transport specs for *room_name*; the caller feeds them to the lifecycle engine."""
        requests = self.open_requests(room_name)
        sources = self.available_sources(room_name)
        if not requests or not sources:
            return []

        for req in requests:
            urgency = req.needs / req.capacity if req.capacity else 0.0
            req.priority = importance(req.consumer.kind) * urgency
            req.consumer.priority = req.priority
        # Equal priorities fall back to consumer id so a pass is reproducible.
        requests.sort(key=lambda r: (-r.priority, r.consumer.id))

        remaining = {p.id: p.amount for p in sources}
        specs: list[TaskSpec] = []

        for req in requests:
            need = req.needs
            consumer = req.consumer
            unreachable: set[str] = set()
            while need > 0:
                candidates = [
                    p for p in sources
                    if p.resource_type == consumer.resource_type
                    and remaining[p.id] > 0
                    and p.id != consumer.id
                    and p.id not in unreachable
                ]
                if not candidates:
                    break
                provider = self._nearest(consumer, candidates, unreachable)
                if provider is None:
                    break

                amount = min(need, remaining[provider.id])
                specs.append(self._transport_spec(room_name, provider, consumer, amount))
                need -= amount
                remaining[provider.id] -= amount

        if specs:
            logger.debug(
                "Matcher %s: %d requests, %d sources -> %d transport specs",
                room_name, len(requests), len(sources), len(specs),
            )
        return specs

    def _nearest(
        self, consumer: ConsumerInfo, candidates: list[ProviderInfo], unreachable: set[str]
    ) -> ProviderInfo | None:
        """Closest reachable candidate. Unreachable ones are added to *unreachable*."""
        best: ProviderInfo | None = None
        best_key: tuple[int, str] | None = None
        for provider in candidates:
            distance = self._oracle.path_distance(consumer.pos, provider.pos)
            if distance is None:
                unreachable.add(provider.id)
                continue
            key = (distance, provider.id)
            if best_key is None or key < best_key:
                best, best_key = provider, key
        return best

    @staticmethod
    def _transport_spec(room_name: str, provider: ProviderInfo, consumer: ConsumerInfo, amount: int) -> TaskSpec:
        dropped = provider.kind == ObjectKind.DROPPED_RESOURCE
        return TaskSpec.transport(
            room_name=room_name,
            resource_type=provider.resource_type,
            amount=amount,
            target_id=consumer.id,
            source_id=None if dropped else provider.id,
            source_pos=provider.pos if dropped else None,
        )
