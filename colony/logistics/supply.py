"""SupplyService — workers asking for a resource to be brought to them.

A request registers the worker as a ``creep`` consumer so the matcher will
route transport to it, and returns a suggested number of ticks to wait
before giving up and fetching the resource itself.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from colony.core.enums import ObjectKind
from colony.core.models import SupplyRequest
from colony.core.oracle import ObjectRef

if TYPE_CHECKING:
    from colony.config import ColonyConfig
    from colony.core.colony_state import ColonyState
    from colony.core.models import Position
    from colony.core.oracle import WorldOracle
    from colony.logistics.network import LogisticsNetwork

logger = logging.getLogger(__name__)


def request_id(room_name: str, worker: str, resource_type: str) -> str:
    return f"{room_name}:{worker}:{resource_type}"


class SupplyService:
    __slots__ = ("_config", "_state", "_oracle", "_network")

    def __init__(
        self,
        config: ColonyConfig,
        state: ColonyState,
        oracle: WorldOracle,
        network: LogisticsNetwork,
    ) -> None:
        self._config = config
        self._state = state
        self._oracle = oracle
        self._network = network

    def requests(self, room_name: str | None = None) -> list[SupplyRequest]:
        if room_name is not None:
            return list(self._state.supply_requests.get(room_name, []))
        return [r for reqs in self._state.supply_requests.values() for r in reqs]

    # ------------------------------------------------------------------
    # Request / cancel
    # ------------------------------------------------------------------

    def request(
        self,
        worker: str,
        resource_type: str,
        amount: int | None = None,
        ttl: int | None = None,
    ) -> tuple[str, int] | None:
        """Register *worker* as a consumer of *resource_type*.

        Idempotent per (room, worker, resource type): a repeat call refreshes
        the existing record. Returns ``(request_id, suggested_wait)``, or None
        when the worker is unknown.
        """
        view = self._oracle.get_worker(worker)
        if view is None:
            logger.warning("Supply request from unknown worker %s", worker)
            return None

        room_name = view.pos.room
        tick = self._state.tick
        rid = request_id(room_name, worker, resource_type)

        self._network.set_consumer(ObjectRef(worker, ObjectKind.CREEP, view.pos), room_name, resource_type)
        wait = self.estimate_eta(room_name, view.pos, resource_type, amount)
        expires_at = tick + ttl if ttl is not None else None

        pending = self._state.supply_requests.setdefault(room_name, [])
        existing = next((r for r in pending if r.id == rid), None)
        if existing is None:
            pending.append(SupplyRequest(
                id=rid,
                worker=worker,
                room_name=room_name,
                resource_type=resource_type,
                created_at=tick,
                suggested_wait=wait,
                amount=amount,
                expires_at=expires_at,
            ))
        else:
            existing.created_at = tick
            existing.suggested_wait = wait
            existing.amount = amount
            existing.expires_at = expires_at
        return rid, wait

    def cancel(self, worker: str, resource_type: str | None = None, room_name: str | None = None) -> int:
        """Drop *worker*'s requests (all types unless *resource_type*). Returns how many."""
        if room_name is None:
            view = self._oracle.get_worker(worker)
            rooms = [view.pos.room] if view is not None else list(self._state.supply_requests)
        else:
            rooms = [room_name]
        removed = 0
        for room in rooms:
            removed += self._cancel_in(room, worker, resource_type)
        return removed

    def _cancel_in(self, room_name: str, worker: str, resource_type: str | None) -> int:
        self._network.remove_consumer(worker, room_name)
        pending = self._state.supply_requests.get(room_name)
        if not pending:
            return 0
        keep = [
            r for r in pending
            if not (r.worker == worker and (resource_type is None or r.resource_type == resource_type))
        ]
        removed = len(pending) - len(keep)
        self._state.supply_requests[room_name] = keep
        return removed

    # ------------------------------------------------------------------
    # ETA / self-fetch
    # ------------------------------------------------------------------

    def estimate_eta(
        self,
        room_name: str,
        pos: Position,
        resource_type: str,
        min_amount: int | None = None,
    ) -> int:
        """Ticks a worker at *pos* should wait before fetching for itself."""
        cfg = self._config
        providers = [
            p for p in self._network.ready_providers(room_name, resource_type)
            if min_amount is None or p.amount >= min_amount
        ]
        if not providers:
            return cfg.eta_max_wait

        best = math.inf
        for provider in providers:
            distance = self._oracle.path_distance(pos, provider.pos)
            if distance is None:
                distance = pos.range_to(provider.pos) + cfg.eta_unreachable_penalty
            best = min(best, distance)

        raw = math.ceil(best * cfg.eta_beta + cfg.eta_overhead)
        return max(cfg.eta_min_wait, min(cfg.eta_max_wait, raw))

    def suggest_self_fetch(
        self, worker: str, resource_type: str, min_amount: int | None = None
    ) -> dict[str, Any] | None:
        """Where *worker* should go to collect *resource_type* itself.

        ``{"source_pos": pos}`` for a dropped pile, ``{"source_id": id}``
        otherwise, None when nothing suitable is reachable.
        """
        view = self._oracle.get_worker(worker)
        if view is None:
            return None
        provider = self._network.get_closest_provider(view.pos.room, view.pos, resource_type, min_amount)
        if provider is None:
            return None
        if provider.kind == ObjectKind.DROPPED_RESOURCE:
            return {"source_pos": provider.pos}
        return {"source_id": provider.id}

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup(self, force: bool = False) -> int:
        """Cancel requests whose worker died, left the room, expired or filled up."""
        tick = self._state.tick
        if not force and tick - self._state.last_supply_cleanup < self._config.supply_cleanup_interval:
            return 0

        dropped = 0
        for room_name, pending in list(self._state.supply_requests.items()):
            for req in list(pending):
                if self._stale(req, room_name, tick):
                    dropped += self._cancel_in(room_name, req.worker, req.resource_type)

        self._state.last_supply_cleanup = tick
        if dropped:
            logger.debug("Tick %d: supply cleanup dropped %d requests", tick, dropped)
        return dropped

    def _stale(self, req: SupplyRequest, room_name: str, tick: int) -> bool:
        view = self._oracle.get_worker(req.worker)
        if view is None:
            return True
        if req.expires_at is not None and tick > req.expires_at:
            return True
        if view.pos.room != room_name:
            return True
        store = self._oracle.object_store(req.worker)
        free = store.free(req.resource_type) if store is not None else view.carry_free
        return free == 0
