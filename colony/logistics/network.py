"""LogisticsNetwork — per-room registry of resource providers and consumers.

Entries come from two places:
  - explicit registration (structures, construction sites, workers asking
    for supply) through ``set_provider`` / ``set_consumer``
  - the per-tick scan of ephemeral objects (dropped resources, corpses)

Entries whose world object is gone are swept by ``collect_garbage``:
ephemeral kinds every tick, everything every ``full_gc_interval`` ticks.
Reads in between tolerate stale ids by filtering them out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.enums import LogisticsRole, ObjectKind, ProviderStatus
from colony.core.models import ConsumerInfo, Position, ProviderInfo, RoomNetwork

if TYPE_CHECKING:
    from colony.config import ColonyConfig
    from colony.core.colony_state import ColonyState
    from colony.core.oracle import ObjectRef, WorldOracle

logger = logging.getLogger(__name__)


class LogisticsNetwork:
    """Owns every mutation of ``state.networks``."""

    __slots__ = ("_config", "_state", "_oracle")

    def __init__(self, config: ColonyConfig, state: ColonyState, oracle: WorldOracle) -> None:
        self._config = config
        self._state = state
        self._oracle = oracle

    # ------------------------------------------------------------------
    # Room bookkeeping
    # ------------------------------------------------------------------

    def ensure_room(self, room_name: str) -> RoomNetwork:
        network = self._state.networks.get(room_name)
        if network is None:
            network = RoomNetwork(last_updated=self._state.tick)
            self._state.networks[room_name] = network
        return network

    def network(self, room_name: str) -> RoomNetwork | None:
        return self._state.networks.get(room_name)

    def _lookup(self, room_name: str, caller: str) -> RoomNetwork | None:
        network = self._state.networks.get(room_name)
        if network is None:
            logger.warning("%s: no logistics network for room %s", caller, room_name)
        return network

    def get_transport_rooms(self) -> list[str]:
        """Rooms whose network holds at least one provider or consumer."""
        return [room for room, net in self._state.networks.items() if not net.empty]

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_provider(
        self,
        target: ObjectRef,
        room_name: str,
        resource_type: str,
        status: ProviderStatus = ProviderStatus.READY,
    ) -> ProviderInfo:
        """Upsert *target* as a provider, overwriting any existing entry for its id."""
        info = ProviderInfo(
            id=target.id,
            kind=target.kind,
            pos=target.pos,
            resource_type=resource_type,
            status=ProviderStatus(status),
        )
        self.ensure_room(room_name).providers[target.id] = info
        return info

    def set_consumer(self, target: ObjectRef, room_name: str, resource_type: str) -> ConsumerInfo:
        info = ConsumerInfo(
            id=target.id,
            kind=target.kind,
            pos=target.pos,
            resource_type=resource_type,
        )
        self.ensure_room(room_name).consumers[target.id] = info
        return info

    def remove_provider(self, target_id: str, room_name: str) -> bool:
        network = self._state.networks.get(room_name)
        if network is None:
            return False
        return network.providers.pop(target_id, None) is not None

    def remove_consumer(self, target_id: str, room_name: str) -> bool:
        network = self._state.networks.get(room_name)
        if network is None:
            return False
        return network.consumers.pop(target_id, None) is not None

    def update_provider_status(
        self,
        target_id: str,
        room_name: str,
        resource_type: str | None = None,
        status: ProviderStatus | None = None,
    ) -> bool:
        network = self._lookup(room_name, "update_provider_status")
        if network is None:
            return False
        info = network.providers.get(target_id)
        if info is None:
            return False
        if status is not None:
            info.status = ProviderStatus(status)
        if resource_type:
            info.resource_type = resource_type
        return True

    def update_consumer_status(self, target_id: str, room_name: str, resource_type: str | None = None) -> bool:
        network = self._lookup(room_name, "update_consumer_status")
        if network is None:
            return False
        info = network.consumers.get(target_id)
        if info is None:
            return False
        if resource_type:
            info.resource_type = resource_type
        return True

    # ------------------------------------------------------------------
    # Construction sites
    # ------------------------------------------------------------------

    def register_planned(
        self,
        site: ObjectRef,
        room_name: str,
        role: LogisticsRole,
        resource_type: str,
    ) -> None:
        """Track a freshly placed construction site under its planned role."""
        network = self.ensure_room(room_name)
        role = LogisticsRole(role)
        if role == LogisticsRole.PROVIDER:
            self.set_provider(site, room_name, resource_type, ProviderStatus.UNDER_CONSTRUCTION)
        else:
            self.set_consumer(site, room_name, resource_type)
        network.planned_roles[site.id] = role

    def migrate(self, old_id: str, new_id: str, pos: Position, kind: ObjectKind, room_name: str | None = None) -> bool:
        """Move a site's record to the finished structure's id.

        Role, resource type and status carry over; an ``underConstruction``
        provider becomes ``ready``. Returns False when nothing was tracked
        under *old_id*.
        """
        room_name = room_name or pos.room
        network = self._lookup(room_name, "migrate")
        if network is None:
            return False

        role = network.planned_roles.pop(old_id, None)
        if role is None:
            if old_id in network.providers:
                role = LogisticsRole.PROVIDER
            elif old_id in network.consumers:
                role = LogisticsRole.CONSUMER
            else:
                logger.debug("migrate: %s is not tracked in %s", old_id, room_name)
                return False

        kind = ObjectKind(kind)
        if role == LogisticsRole.PROVIDER:
            old = network.providers.pop(old_id, None)
            if old is None:
                return False
            status = ProviderStatus.READY if old.status == ProviderStatus.UNDER_CONSTRUCTION else old.status
            network.providers[new_id] = ProviderInfo(
                id=new_id, kind=kind, pos=pos, resource_type=old.resource_type, status=status,
            )
        else:
            old = network.consumers.pop(old_id, None)
            if old is None:
                return False
            network.consumers[new_id] = ConsumerInfo(
                id=new_id, kind=kind, pos=pos, resource_type=old.resource_type,
            )

        logger.info("Migrated %s %s -> %s (%s) in %s", role.value, old_id, new_id, kind.value, room_name)
        return True

    # ------------------------------------------------------------------
    # Per-tick maintenance
    # ------------------------------------------------------------------

    def update(self, room_name: str) -> None:
        """GC then scan one room. Called once per room per tick."""
        network = self.ensure_room(room_name)
        tick = self._state.tick
        full = self._config.full_gc_interval > 0 and tick % self._config.full_gc_interval == 0
        self.collect_garbage(room_name, full=full)
        self.scan(room_name)
        network.last_updated = tick

    def update_all(self) -> None:
        for room_name in self._oracle.owned_rooms():
            self.update(room_name)

    def collect_garbage(self, room_name: str, full: bool = False) -> int:
        """Drop entries whose object is gone. Ephemeral kinds only unless *full*."""
        network = self._state.networks.get(room_name)
        if network is None:
            return 0
        exists = self._oracle.object_exists

        dead = [
            pid for pid, info in network.providers.items()
            if (full or info.kind.ephemeral) and not exists(pid)
        ]
        for pid in dead:
            del network.providers[pid]
        removed = len(dead)

        if full:
            gone = [cid for cid in network.consumers if not exists(cid)]
            for cid in gone:
                del network.consumers[cid]
            removed += len(gone)
            if removed:
                logger.debug("Tick %d: full logistics GC in %s removed %d", self._state.tick, room_name, removed)
        return removed

    def scan(self, room_name: str) -> int:
        """Register untracked dropped resources and non-empty corpses as providers."""
        network = self.ensure_room(room_name)
        added = 0
        for obj in self._oracle.find_ephemeral(room_name):
            if obj.ref.id in network.providers:
                continue
            if obj.amount <= 0:
                continue
            self.set_provider(obj.ref, room_name, obj.resource_type)
            added += 1
        return added

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_providers(self, room_name: str) -> list[ProviderInfo]:
        network = self._lookup(room_name, "get_providers")
        return list(network.providers.values()) if network is not None else []

    def get_consumers(self, room_name: str) -> list[ConsumerInfo]:
        network = self._lookup(room_name, "get_consumers")
        return list(network.consumers.values()) if network is not None else []

    def provider_amount(self, info: ProviderInfo) -> int:
        """Live amount a provider can hand out; 0 when its object is gone."""
        if not self._oracle.object_exists(info.id):
            return 0
        if info.kind == ObjectKind.DROPPED_RESOURCE:
            return self._oracle.dropped_amount(info.id)
        store = self._oracle.object_store(info.id)
        if store is None:
            return 0
        return store.used(info.resource_type)

    def consumer_free(self, info: ConsumerInfo) -> tuple[int, int | None]:
        """``(free, capacity)`` for a consumer; ``(0, None)`` when its object is gone."""
        if not self._oracle.object_exists(info.id):
            return 0, None
        store = self._oracle.object_store(info.id)
        if store is None:
            return 0, None
        return store.free(info.resource_type), store.capacity(info.resource_type)

    def ready_providers(self, room_name: str, resource_type: str | None = None) -> list[ProviderInfo]:
        """Ready providers with a positive live amount, ``amount`` refreshed."""
        network = self._state.networks.get(room_name)
        if network is None:
            return []
        out: list[ProviderInfo] = []
        for info in network.providers.values():
            if info.status != ProviderStatus.READY:
                continue
            if resource_type is not None and info.resource_type != resource_type:
                continue
            info.amount = self.provider_amount(info)
            if info.amount > 0:
                out.append(info)
        return out

    def get_closest_provider(
        self,
        room_name: str,
        pos: Position,
        resource_type: str,
        min_amount: int | None = None,
    ) -> ProviderInfo | None:
        """Nearest-by-path ready provider of *resource_type*. Ties go to the lower id."""
        if self._lookup(room_name, "get_closest_provider") is None:
            return None
        best: ProviderInfo | None = None
        best_key: tuple[int, str] | None = None
        for info in self.ready_providers(room_name, resource_type):
            if min_amount is not None and info.amount < min_amount:
                continue
            distance = self._oracle.path_distance(pos, info.pos)
            if distance is None:
                continue
            key = (distance, info.id)
            if best_key is None or key < best_key:
                best, best_key = info, key
        return best
