"""E2E tests: the full ColonyLoop driving the sandbox world.

Validates the whole pipeline: generate tasks → match demand → schedule →
execute → clean up, plus determinism and save/resume.
"""

import sys
import os
import json

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.core.enums import ObjectKind, TaskType
from colony.engine.colony_loop import ColonyLoop
from colony.utils.persistence import load_state, save_state
from colony.world.executor import SandboxWorkers
from colony.world.sandbox import SandboxWorld


def _make_loop(seed: int = 42, ticks: int = 400, state: ColonyState | None = None, **overrides):
    cfg = ColonyConfig(world_seed=seed, max_ticks=ticks, **overrides)
    world = SandboxWorld.generate(cfg)
    workers = SandboxWorkers(world)
    loop = ColonyLoop(cfg, state or ColonyState(), world, executor=workers)
    if state is None:
        workers.bootstrap(loop)
    return loop, world


def _run_collecting(loop: ColonyLoop, ticks: int) -> list:
    events = []
    for _ in range(ticks):
        if not loop.tick_once():
            break
        events.extend(loop.tick_events)
    return events


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class TestSandboxGeneration:
    def test_standard_room_layout(self):
        cfg = ColonyConfig()
        world = SandboxWorld.generate(cfg)
        room = cfg.room_name
        assert len(world.find_objects(room, ObjectKind.SPAWN)) == 1
        assert len(world.find_objects(room, ObjectKind.SOURCE)) == cfg.num_sources
        assert len(world.find_objects(room, ObjectKind.CONTROLLER)) == 1
        assert len(world.workers()) == cfg.initial_workers + cfg.initial_haulers

    def test_generation_is_deterministic(self):
        a = SandboxWorld.generate(ColonyConfig(world_seed=7))
        b = SandboxWorld.generate(ColonyConfig(world_seed=7))
        room = a.room
        for kind in (ObjectKind.SOURCE, ObjectKind.CONTAINER, ObjectKind.CONTROLLER):
            assert [(r.id, r.pos) for r in a.find_objects(room, kind)] == \
                   [(r.id, r.pos) for r in b.find_objects(room, kind)]

    def test_bootstrap_registers_network_and_plans_site(self):
        loop, world = _make_loop()
        room = world.room
        consumers = {c.id for c in loop.network.get_consumers(room)}
        for kind in (ObjectKind.SPAWN, ObjectKind.EXTENSION):
            assert {r.id for r in world.find_objects(room, kind)} <= consumers
        [site] = world.find_objects(room, ObjectKind.CONSTRUCTION_SITE)
        assert not loop.messages.empty

        loop.tick_once()
        assert site.id in {c.id for c in loop.network.get_consumers(room)}


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------

class TestColonyRun:
    def test_strategy_tasks_created(self):
        loop, world = _make_loop()
        loop.tick_once()
        types = [t.type for t in loop.engine.get_tasks()]
        assert types.count(TaskType.HARVEST) == len(world.find_objects(world.room, ObjectKind.SOURCE))
        assert TaskType.UPGRADE in types
        assert TaskType.BUILD in types

    def test_workers_get_assigned(self):
        loop, _ = _make_loop()
        loop.tick_once()
        assert loop.state.registry.bound_workers(), "Idle workers should be scheduled onto tasks"

    def test_harvesting_produces_transport_work(self):
        loop, _ = _make_loop()
        events = _run_collecting(loop, 300)
        created = [e for e in events if e.category == "task-created"]
        transport_ids = {
            sid for e in created for sid in e.subject_ids if sid.startswith(TaskType.TRANSPORT.value)
        }
        assert transport_ids, "Harvested energy should be matched to consumers"

    def test_tasks_complete(self):
        loop, _ = _make_loop()
        _run_collecting(loop, 300)
        stats = loop.state.registry.stats()
        assert stats["tasks_completed"] > 0

    def test_binding_invariant_holds_every_tick(self):
        loop, _ = _make_loop()
        for _ in range(150):
            loop.tick_once()
            for worker, task_id in loop.state.registry.bound_workers():
                task = loop.engine.get_task_by_id(task_id)
                assert task is not None
                assert worker in task.assigned_creeps
                assert task.status.active

    def test_stops_at_max_ticks(self):
        loop, _ = _make_loop(ticks=25)
        loop.run()
        assert loop.state.tick == 25


# ---------------------------------------------------------------------------
# Determinism and persistence
# ---------------------------------------------------------------------------

class TestDeterminism:
    def test_same_seed_same_state(self):
        a, _ = _make_loop(seed=11)
        b, _ = _make_loop(seed=11)
        a.run(200)
        b.run(200)
        assert json.dumps(a.state.to_dict(), sort_keys=True) == json.dumps(b.state.to_dict(), sort_keys=True)

    def test_same_seed_same_worker_positions(self):
        a, wa = _make_loop(seed=11)
        b, wb = _make_loop(seed=11)
        a.run(120)
        b.run(120)
        assert [(v.name, v.pos) for v in wa.workers()] == [(v.name, v.pos) for v in wb.workers()]


class TestSaveResume:
    def test_state_survives_mid_run(self, tmp_path):
        loop, _ = _make_loop()
        loop.run(150)
        path = save_state(loop.state, tmp_path / "colony.json")
        restored = load_state(path)
        assert restored.tick == 150
        assert restored.to_dict() == loop.state.to_dict()

    def test_resumed_run_keeps_going(self, tmp_path):
        loop, _ = _make_loop()
        loop.run(100)
        path = save_state(loop.state, tmp_path / "colony.json")
        created_before = loop.state.registry.stats()["tasks_created"]

        resumed, _ = _make_loop(state=load_state(path))
        resumed.run(50)
        assert resumed.state.tick == 150
        assert resumed.state.registry.stats()["tasks_created"] >= created_before
