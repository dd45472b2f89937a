"""Tests for DemandMatcher greedy allocation."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.core.enums import ObjectKind, ProviderStatus, TaskType
from colony.core.models import Position
from colony.core.oracle import ObjectRef
from colony.logistics.matcher import DemandMatcher, importance
from colony.logistics.network import LogisticsNetwork
from tests.helpers.fake_world import ROOM, FakeWorld


def _make_matcher():
    world = FakeWorld()
    state = ColonyState()
    network = LogisticsNetwork(ColonyConfig(), state, world)
    network.ensure_room(ROOM)
    return DemandMatcher(network, world), network, world


def _consumer(network, world, oid, kind, xy, capacity, used=0):
    ref = world.add_object(oid, kind, xy, capacity=capacity, used=used)
    network.set_consumer(ref, ROOM, "energy")
    return ref


def _provider(network, world, oid, xy, used, kind=ObjectKind.CONTAINER, status=ProviderStatus.READY):
    ref = world.add_object(oid, kind, xy, capacity=2000, used=used)
    network.set_provider(ref, ROOM, "energy", status)
    return ref


def _pairs(specs):
    return [(s.params["source_id"], s.params["target_id"], s.params["amount"]) for s in specs]


class TestImportance:
    def test_table(self):
        assert importance(ObjectKind.SPAWN) == 1.0
        assert importance(ObjectKind.EXTENSION) == 1.0
        assert importance(ObjectKind.TOWER) == 0.8
        assert importance(ObjectKind.POWER_SPAWN) == 0.7
        assert importance(ObjectKind.LINK) == 0.6
        assert importance(ObjectKind.CONTAINER) == 0.5
        assert importance(ObjectKind.LAB) == 0.4
        assert importance(ObjectKind.CREEP) == 0.4
        assert importance(ObjectKind.STORAGE) == 0.2
        assert importance(ObjectKind.TERMINAL) == 0.2


class TestGreedyAllocation:
    def test_nearest_provider_drained_first(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "spawn-1", ObjectKind.SPAWN, (25, 25), capacity=100)
        _provider(network, world, "cont-far", (30, 25), used=60)
        _provider(network, world, "cont-near", (27, 25), used=60)
        world.set_distance("spawn-1", "cont-far", 5)
        world.set_distance("spawn-1", "cont-near", 2)

        specs = matcher.generate_transport_tasks(ROOM)
        assert _pairs(specs) == [
            ("cont-near", "spawn-1", 60),
            ("cont-far", "spawn-1", 40),
        ]

    def test_remaining_amounts_carry_to_next_consumer(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "spawn-1", ObjectKind.SPAWN, (25, 25), capacity=100)
        _consumer(network, world, "storage-1", ObjectKind.STORAGE, (20, 20), capacity=1000, used=500)
        _provider(network, world, "cont-far", (30, 25), used=60)
        _provider(network, world, "cont-near", (27, 25), used=60)
        world.set_distance("spawn-1", "cont-far", 5)
        world.set_distance("spawn-1", "cont-near", 2)

        specs = matcher.generate_transport_tasks(ROOM)
        assert _pairs(specs) == [
            ("cont-near", "spawn-1", 60),
            ("cont-far", "spawn-1", 40),
            ("cont-far", "storage-1", 20),
        ]

    def test_transport_spec_shape(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (27, 25), used=500)
        [spec] = matcher.generate_transport_tasks(ROOM)
        assert spec.type == TaskType.TRANSPORT
        assert spec.room_name == ROOM
        assert spec.max_assignees == 1
        assert spec.max_retries == 2
        assert spec.params["resource_type"] == "energy"
        assert spec.params["amount"] == 50
        assert spec.params["source_pos"] is None

    def test_dropped_pile_referenced_by_position(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        world.add_dropped("drop-1", (26, 26), 30)
        network.scan(ROOM)
        [spec] = matcher.generate_transport_tasks(ROOM)
        assert spec.params["source_id"] is None
        assert spec.params["source_pos"] == Position(26, 26, ROOM)
        assert spec.params["amount"] == 30


class TestPriorityOrder:
    def test_emptier_consumer_served_first(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-a", ObjectKind.EXTENSION, (25, 25), capacity=50, used=49)
        _consumer(network, world, "ext-b", ObjectKind.EXTENSION, (26, 25), capacity=50, used=0)
        _provider(network, world, "cont-1", (30, 30), used=500)
        specs = matcher.generate_transport_tasks(ROOM)
        assert [s.params["target_id"] for s in specs] == ["ext-b", "ext-a"]
        assert [s.params["amount"] for s in specs] == [50, 1]

    def test_equal_priority_ties_by_consumer_id(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-c", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _consumer(network, world, "ext-a", ObjectKind.EXTENSION, (26, 25), capacity=50)
        _consumer(network, world, "ext-b", ObjectKind.EXTENSION, (27, 25), capacity=50)
        _provider(network, world, "cont-1", (30, 30), used=60)
        specs = matcher.generate_transport_tasks(ROOM)
        assert _pairs(specs) == [
            ("cont-1", "ext-a", 50),
            ("cont-1", "ext-b", 10),
        ]

    def test_priority_written_back_to_consumer(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "tower-1", ObjectKind.TOWER, (25, 25), capacity=1000, used=500)
        _provider(network, world, "cont-1", (30, 30), used=60)
        matcher.generate_transport_tasks(ROOM)
        [consumer] = network.get_consumers(ROOM)
        assert consumer.needs == 500
        assert abs(consumer.priority - 0.4) < 1e-9


class TestOpenRequestsAndSources:
    def test_full_consumer_never_requested(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-full", ObjectKind.EXTENSION, (25, 25), capacity=50, used=50)
        _consumer(network, world, "ext-open", ObjectKind.EXTENSION, (26, 25), capacity=50, used=10)
        ids = [r.consumer.id for r in matcher.open_requests(ROOM)]
        assert ids == ["ext-open"]

    def test_vanished_provider_excluded(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (27, 25), used=500)
        _provider(network, world, "cont-2", (28, 25), used=500)
        world.remove("cont-1")
        assert [p.id for p in matcher.available_sources(ROOM)] == ["cont-2"]
        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-2", "ext-1", 50)]

    def test_vanished_consumer_excluded(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (27, 25), used=500)
        world.remove("ext-1")
        assert matcher.open_requests(ROOM) == []
        assert matcher.generate_transport_tasks(ROOM) == []

    def test_under_construction_provider_ignored(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (27, 25), used=500, status=ProviderStatus.UNDER_CONSTRUCTION)
        assert matcher.generate_transport_tasks(ROOM) == []

    def test_empty_sides_abort_early(self):
        matcher, network, world = _make_matcher()
        assert matcher.generate_transport_tasks(ROOM) == []
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        assert matcher.generate_transport_tasks(ROOM) == []
        assert world.path_calls == 0

    def test_resource_type_must_match(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        ref = world.add_object("lab-1", ObjectKind.LAB, (27, 25), capacity=3000, used=100, resource_type="H")
        network.set_provider(ref, ROOM, "H")
        assert matcher.generate_transport_tasks(ROOM) == []

    def test_unknown_room(self):
        matcher, _, _ = _make_matcher()
        assert matcher.generate_transport_tasks("W9N9") == []


class TestUnreachable:
    def test_unreachable_provider_skipped(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-near", (26, 25), used=500)
        _provider(network, world, "cont-far", (40, 25), used=500)
        world.set_distance("ext-1", "cont-near", None)
        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-far", "ext-1", 50)]

    def test_all_unreachable_yields_nothing(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (26, 25), used=500)
        world.set_distance("ext-1", "cont-1", None)
        assert matcher.generate_transport_tasks(ROOM) == []

    def test_unreachable_for_one_consumer_still_serves_another(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-a", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _consumer(network, world, "ext-b", ObjectKind.EXTENSION, (10, 10), capacity=50)
        _provider(network, world, "cont-1", (26, 25), used=500)
        world.set_distance("ext-a", "cont-1", None)
        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-1", "ext-b", 50)]

    def test_stateless_between_calls(self):
        matcher, network, world = _make_matcher()
        _consumer(network, world, "ext-1", ObjectKind.EXTENSION, (25, 25), capacity=50)
        _provider(network, world, "cont-1", (26, 25), used=500)
        first = _pairs(matcher.generate_transport_tasks(ROOM))
        second = _pairs(matcher.generate_transport_tasks(ROOM))
        assert first == second == [("cont-1", "ext-1", 50)]


class TestSelfAndMovingConsumers:
    def test_object_never_supplies_itself(self):
        matcher, network, world = _make_matcher()
        storage = _provider(network, world, "storage-1", (25, 25), used=500, kind=ObjectKind.STORAGE)
        network.set_consumer(storage, ROOM, "energy")
        _provider(network, world, "cont-1", (30, 25), used=60)

        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-1", "storage-1", 60)]

    def test_self_only_provider_yields_nothing(self):
        matcher, network, world = _make_matcher()
        storage = _provider(network, world, "storage-1", (25, 25), used=500, kind=ObjectKind.STORAGE)
        network.set_consumer(storage, ROOM, "energy")
        assert matcher.generate_transport_tasks(ROOM) == []

    def test_worker_consumer_measured_from_current_position(self):
        matcher, network, world = _make_matcher()
        view = world.add_worker("hauler-1", (12, 25), work=0, carry=2)
        network.set_consumer(ObjectRef("hauler-1", ObjectKind.CREEP, view.pos), ROOM, "energy")
        _provider(network, world, "cont-west", (10, 25), used=500)
        _provider(network, world, "cont-east", (40, 25), used=500)
        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-west", "hauler-1", 100)]

        world.add_worker("hauler-1", (38, 25), work=0, carry=2)
        assert _pairs(matcher.generate_transport_tasks(ROOM)) == [("cont-east", "hauler-1", 100)]
        [consumer] = network.get_consumers(ROOM)
        assert consumer.pos == Position(38, 25, ROOM)
