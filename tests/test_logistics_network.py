"""Tests for the per-room provider/consumer registry."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.core.enums import LogisticsRole, ObjectKind, ProviderStatus
from colony.core.models import Position
from colony.logistics.network import LogisticsNetwork
from tests.helpers.fake_world import ROOM, FakeWorld


def _make_network(**overrides):
    world = FakeWorld()
    state = ColonyState()
    return LogisticsNetwork(ColonyConfig(**overrides), state, world), state, world


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegistration:
    def test_set_provider_is_upsert(self):
        net, _, world = _make_network()
        ref = world.add_object("cont-1", ObjectKind.CONTAINER, (5, 5), capacity=2000, used=100)
        net.set_provider(ref, ROOM, "energy")
        net.set_provider(ref, ROOM, "energy", ProviderStatus.UNDER_CONSTRUCTION)
        providers = net.get_providers(ROOM)
        assert len(providers) == 1
        assert providers[0].status == ProviderStatus.UNDER_CONSTRUCTION

    def test_set_consumer_is_upsert(self):
        net, _, world = _make_network()
        ref = world.add_object("ext-1", ObjectKind.EXTENSION, (5, 5), capacity=50)
        net.set_consumer(ref, ROOM, "energy")
        net.set_consumer(ref, ROOM, "power")
        consumers = net.get_consumers(ROOM)
        assert len(consumers) == 1
        assert consumers[0].resource_type == "power"

    def test_remove_is_noop_when_absent(self):
        net, _, world = _make_network()
        ref = world.add_object("ext-1", ObjectKind.EXTENSION, (5, 5), capacity=50)
        net.set_consumer(ref, ROOM, "energy")
        assert net.remove_consumer("ext-1", ROOM)
        assert not net.remove_consumer("ext-1", ROOM)
        assert not net.remove_provider("nope", ROOM)
        assert not net.remove_provider("nope", "W9N9")

    def test_unknown_room_reads_are_empty(self):
        net, _, _ = _make_network()
        assert net.get_providers("W9N9") == []
        assert net.get_consumers("W9N9") == []
        assert net.get_closest_provider("W9N9", Position(1, 1, "W9N9"), "energy") is None

    def test_transport_rooms(self):
        net, _, world = _make_network()
        net.ensure_room("W2N2")
        ref = world.add_object("ext-1", ObjectKind.EXTENSION, (5, 5), capacity=50)
        net.set_consumer(ref, ROOM, "energy")
        assert net.get_transport_rooms() == [ROOM]

    def test_update_provider_status(self):
        net, _, world = _make_network()
        ref = world.add_object("cont-1", ObjectKind.CONTAINER, (5, 5), capacity=2000)
        net.set_provider(ref, ROOM, "energy", ProviderStatus.UNDER_CONSTRUCTION)
        assert net.update_provider_status("cont-1", ROOM, status=ProviderStatus.READY)
        assert net.get_providers(ROOM)[0].status == ProviderStatus.READY
        assert not net.update_provider_status("missing", ROOM)
        assert not net.update_consumer_status("missing", "W9N9")


# ---------------------------------------------------------------------------
# Scan and GC
# ---------------------------------------------------------------------------

class TestScanAndGC:
    def test_scan_picks_up_ephemeral_objects(self):
        net, _, world = _make_network()
        world.add_dropped("drop-1", (3, 3), 40)
        world.add_tombstone("tomb-1", (4, 4), 25)
        world.add_tombstone("tomb-2", (6, 6), 0)
        assert net.scan(ROOM) == 2
        kinds = {p.id: p.kind for p in net.get_providers(ROOM)}
        assert kinds == {"drop-1": ObjectKind.DROPPED_RESOURCE, "tomb-1": ObjectKind.TOMBSTONE}

    def test_scan_does_not_overwrite_registered(self):
        net, _, world = _make_network()
        ref = world.add_dropped("drop-1", (3, 3), 40)
        net.set_provider(ref, ROOM, "energy", ProviderStatus.UNDER_CONSTRUCTION)
        assert net.scan(ROOM) == 0
        assert net.get_providers(ROOM)[0].status == ProviderStatus.UNDER_CONSTRUCTION

    def test_ephemeral_gc_every_tick_structures_only_on_full(self):
        net, state, world = _make_network(full_gc_interval=100)
        world.add_dropped("drop-1", (3, 3), 40)
        cont = world.add_object("cont-1", ObjectKind.CONTAINER, (5, 5), capacity=2000, used=10)
        ext = world.add_object("ext-1", ObjectKind.EXTENSION, (7, 7), capacity=50)
        net.set_provider(cont, ROOM, "energy")
        net.set_consumer(ext, ROOM, "energy")
        state.tick = 1
        net.update(ROOM)
        world.remove("drop-1")
        world.remove("cont-1")
        world.remove("ext-1")

        state.tick = 2
        net.update(ROOM)
        ids = {p.id for p in net.get_providers(ROOM)}
        assert ids == {"cont-1"}
        assert len(net.get_consumers(ROOM)) == 1

        state.tick = 100
        net.update(ROOM)
        assert net.get_providers(ROOM) == []
        assert net.get_consumers(ROOM) == []
        assert net.network(ROOM).last_updated == 100

    def test_stale_provider_filtered_before_gc(self):
        net, _, world = _make_network()
        cont = world.add_object("cont-1", ObjectKind.CONTAINER, (5, 5), capacity=2000, used=10)
        net.set_provider(cont, ROOM, "energy")
        world.remove("cont-1")
        assert net.ready_providers(ROOM) == []
        assert net.get_closest_provider(ROOM, Position(1, 1, ROOM), "energy") is None


# ---------------------------------------------------------------------------
# Construction migration
# ---------------------------------------------------------------------------

class TestMigration:
    def test_planned_provider_becomes_ready(self):
        net, _, world = _make_network()
        site = world.add_object("site-1", ObjectKind.CONSTRUCTION_SITE, (8, 8))
        net.register_planned(site, ROOM, LogisticsRole.PROVIDER, "energy")
        assert net.get_providers(ROOM)[0].status == ProviderStatus.UNDER_CONSTRUCTION

        assert net.migrate("site-1", "cont-9", site.pos, ObjectKind.CONTAINER)
        providers = net.get_providers(ROOM)
        assert [p.id for p in providers] == ["cont-9"]
        assert providers[0].status == ProviderStatus.READY
        assert providers[0].kind == ObjectKind.CONTAINER
        assert providers[0].resource_type == "energy"
        assert "site-1" not in net.network(ROOM).planned_roles

    def test_planned_consumer_keeps_role(self):
        net, _, world = _make_network()
        site = world.add_object("site-2", ObjectKind.CONSTRUCTION_SITE, (9, 9))
        net.register_planned(site, ROOM, LogisticsRole.CONSUMER, "energy")
        assert net.migrate("site-2", "ext-9", site.pos, ObjectKind.EXTENSION)
        assert [c.id for c in net.get_consumers(ROOM)] == ["ext-9"]
        assert net.get_providers(ROOM) == []

    def test_untracked_site_is_not_migrated(self):
        net, _, _ = _make_network()
        net.ensure_room(ROOM)
        assert not net.migrate("site-x", "ext-x", Position(1, 1, ROOM), ObjectKind.EXTENSION)


# ---------------------------------------------------------------------------
# Closest provider
# ---------------------------------------------------------------------------

class TestClosestProvider:
    def test_picks_nearest_by_path(self):
        net, _, world = _make_network()
        near = world.add_object("cont-a", ObjectKind.CONTAINER, (10, 10), capacity=2000, used=50)
        far = world.add_object("cont-b", ObjectKind.CONTAINER, (11, 10), capacity=2000, used=50)
        net.set_provider(near, ROOM, "energy")
        net.set_provider(far, ROOM, "energy")
        world.add_object("spawn", ObjectKind.SPAWN, (20, 20), capacity=300)
        world.set_distance("spawn", "cont-a", 30)
        world.set_distance("spawn", "cont-b", 4)
        best = net.get_closest_provider(ROOM, Position(20, 20, ROOM), "energy")
        assert best.id == "cont-b"

    def test_ties_go_to_lower_id(self):
        net, _, world = _make_network()
        for oid in ("cont-b", "cont-a"):
            ref = world.add_object(oid, ObjectKind.CONTAINER, (10, 10) if oid == "cont-a" else (12, 10), capacity=2000, used=50)
            net.set_provider(ref, ROOM, "energy")
        best = net.get_closest_provider(ROOM, Position(11, 10, ROOM), "energy")
        assert best.id == "cont-a"

    def test_min_amount_and_status_filters(self):
        net, _, world = _make_network()
        small = world.add_object("cont-a", ObjectKind.CONTAINER, (10, 10), capacity=2000, used=5)
        planned = world.add_object("cont-b", ObjectKind.CONTAINER, (11, 10), capacity=2000, used=500)
        net.set_provider(small, ROOM, "energy")
        net.set_provider(planned, ROOM, "energy", ProviderStatus.UNDER_CONSTRUCTION)
        assert net.get_closest_provider(ROOM, Position(10, 11, ROOM), "energy", min_amount=10) is None
        assert net.get_closest_provider(ROOM, Position(10, 11, ROOM), "energy").id == "cont-a"

    def test_dropped_amount_used_for_piles(self):
        net, _, world = _make_network()
        world.add_dropped("drop-1", (3, 3), 40)
        net.scan(ROOM)
        [provider] = net.ready_providers(ROOM, "energy")
        assert provider.amount == 40
