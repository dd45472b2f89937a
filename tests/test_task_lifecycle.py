"""Tests for task creation, assignment rules and status transitions."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.core.enums import (
    AssignmentType,
    TaskKind,
    TaskLifetime,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from colony.core.errors import UnknownTaskTypeError
from colony.core.models import Position, TaskSpec
from colony.tasks.lifecycle import TaskLifecycleEngine
from tests.helpers.fake_world import ROOM, FakeWorld


def _make_config(**overrides) -> ColonyConfig:
    return ColonyConfig(**overrides)


def _make_engine(world: FakeWorld | None = None, tick: int = 0, **overrides):
    world = world or FakeWorld()
    state = ColonyState(tick=tick)
    engine = TaskLifecycleEngine(_make_config(**overrides), state, world)
    return engine, state, world


def _spec(task_type: TaskType = TaskType.BUILD, **kwargs) -> TaskSpec:
    return TaskSpec(type=task_type, room_name=kwargs.pop("room_name", ROOM), params=kwargs.pop("params", {}), **kwargs)


def _transport_spec(target: str = "ext-1", source: str = "cont-1", amount: int = 50) -> TaskSpec:
    return TaskSpec.transport(ROOM, "energy", amount, target_id=target, source_id=source)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateTask:
    def test_defaults_per_type(self):
        engine, _, _ = _make_engine()
        expected = {
            TaskType.HARVEST: (AssignmentType.SHARED, TaskLifetime.PERSISTENT, 3),
            TaskType.TRANSPORT: (AssignmentType.EXCLUSIVE, TaskLifetime.ONCE, 1),
            TaskType.BUILD: (AssignmentType.SHARED, TaskLifetime.ONCE, 5),
            TaskType.REPAIR: (AssignmentType.SHARED, TaskLifetime.ONCE, 3),
            TaskType.UPGRADE: (AssignmentType.SHARED, TaskLifetime.PERSISTENT, 4),
            TaskType.ATTACK: (AssignmentType.SHARED, TaskLifetime.ONCE, 10),
        }
        for task_type, (assignment, lifetime, max_assignees) in expected.items():
            task = engine.get_task_by_id(engine.create_task(_spec(task_type)))
            assert task.assignment_type == assignment, task_type
            assert task.lifetime == lifetime, task_type
            assert task.max_assignees == max_assignees, task_type

    def test_new_task_is_pending_at_init_state(self):
        engine, _, _ = _make_engine(tick=7)
        task = engine.get_task_by_id(engine.create_task(_spec(TaskType.UPGRADE)))
        assert task.status == TaskStatus.PENDING
        assert task.fsm.kind == TaskKind.UPGRADE
        assert task.fsm.task_state == "INIT"
        assert task.fsm.creep_states == {}
        assert task.created_at == 7
        assert task.updated_at == 7
        assert task.assigned_creeps == []

    def test_ids_are_unique_and_monotonic(self):
        engine, _, _ = _make_engine()
        ids = [engine.create_task(_spec()) for _ in range(5)]
        assert len(set(ids)) == 5
        assert ids == sorted(ids)

    def test_overrides_are_honoured(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD, base_priority=TaskPriority.HIGH, max_assignees=2))
        task = engine.get_task_by_id(tid)
        assert task.base_priority == TaskPriority.HIGH
        assert task.max_assignees == 2

    def test_exclusive_ignores_max_assignees_override(self):
        engine, _, _ = _make_engine()
        spec = _transport_spec()
        spec.max_assignees = 4
        task = engine.get_task_by_id(engine.create_task(spec))
        assert task.max_assignees == 1

    def test_transport_retry_budget(self):
        engine, _, _ = _make_engine()
        task = engine.get_task_by_id(engine.create_task(_transport_spec()))
        assert task.max_retries == 2
        assert task.base_priority == TaskPriority.NORMAL
        assert task.params["target_id"] == "ext-1"

    def test_unknown_type_is_fatal(self):
        engine, _, _ = _make_engine()
        with pytest.raises(UnknownTaskTypeError):
            engine.create_task(TaskSpec(type="dance", room_name=ROOM))

    def test_unknown_type_error_is_value_error(self):
        engine, _, _ = _make_engine()
        with pytest.raises(ValueError):
            engine.create_task(TaskSpec(type="dance", room_name=ROOM))

    def test_creation_counter_and_event(self):
        engine, state, _ = _make_engine()
        tid = engine.create_task(_spec())
        assert state.registry.stats()["tasks_created"] == 1
        assert [e.category for e in state.events] == ["task-created"]
        assert state.events[0].subject_ids == (tid,)


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

class TestAssignTask:
    def test_first_assignee_moves_to_assigned(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        assert engine.assign_task(tid, "w1")
        task = engine.get_task_by_id(tid)
        assert task.status == TaskStatus.ASSIGNED
        assert task.assigned_creeps == ["w1"]
        assert engine.get_creep_task("w1") is task

    def test_unknown_task_returns_false(self):
        engine, _, _ = _make_engine()
        assert not engine.assign_task("build-999999", "w1")

    def test_duplicate_worker_rejected(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        assert engine.assign_task(tid, "w1")
        assert not engine.assign_task(tid, "w1")
        assert engine.get_task_by_id(tid).assigned_creeps == ["w1"]

    def test_full_task_rejects_and_is_unchanged(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.HARVEST))
        for name in ("w1", "w2", "w3"):
            assert engine.assign_task(tid, name)
        before = engine.get_task_by_id(tid).to_dict()
        assert not engine.assign_task(tid, "w4")
        assert not engine.assign_task(tid, "w4")
        assert engine.get_task_by_id(tid).to_dict() == before
        assert engine.get_creep_task("w4") is None

    def test_exclusive_never_has_two_assignees(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_transport_spec())
        assert engine.assign_task(tid, "w1")
        assert not engine.assign_task(tid, "w2")
        assert engine.get_task_by_id(tid).assigned_creeps == ["w1"]

    def test_exclusive_only_assignable_while_pending(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_transport_spec())
        engine.assign_task(tid, "w1")
        engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        engine.unassign_creep("w1")
        # Back to PENDING once empty, so a new worker may take it.
        assert engine.get_task_by_id(tid).status == TaskStatus.PENDING
        assert engine.assign_task(tid, "w2")

    def test_shared_assignable_while_in_progress(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        engine.assign_task(tid, "w1")
        engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        assert engine.assign_task(tid, "w2")
        task = engine.get_task_by_id(tid)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.assigned_creeps == ["w1", "w2"]

    def test_terminal_task_not_assignable(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        engine.update_task_status(tid, TaskStatus.COMPLETED)
        assert not engine.assign_task(tid, "w1")

    def test_worker_bound_elsewhere_rejected(self):
        engine, _, _ = _make_engine()
        a = engine.create_task(_spec(TaskType.BUILD))
        b = engine.create_task(_spec(TaskType.BUILD))
        assert engine.assign_task(a, "w1")
        assert not engine.assign_task(b, "w1")
        assert engine.get_task_by_id(b).status == TaskStatus.PENDING

    def test_bound_within_max_after_random_sequence(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.HARVEST))
        ops = [
            ("a", "w1"), ("a", "w2"), ("u", "w1"), ("a", "w3"), ("a", "w4"),
            ("a", "w5"), ("u", "w3"), ("a", "w1"), ("a", "w6"), ("u", "w9"),
        ]
        for op, name in ops:
            if op == "a":
                engine.assign_task(tid, name)
            else:
                engine.unassign_creep(name)
            task = engine.get_task_by_id(tid)
            assert len(task.assigned_creeps) <= task.max_assignees
            assert len(set(task.assigned_creeps)) == len(task.assigned_creeps)


# ---------------------------------------------------------------------------
# Unassignment / deaths
# ---------------------------------------------------------------------------

class TestUnassign:
    def test_unassign_twice_returns_false_second_time(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        engine.assign_task(tid, "w1")
        assert engine.unassign_creep("w1")
        assert not engine.unassign_creep("w1")

    def test_unassign_worker_without_task(self):
        engine, _, _ = _make_engine()
        assert not engine.unassign_creep("ghost")

    def test_assign_unassign_restores_pending(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        engine.assign_task(tid, "w1")
        engine.unassign_creep("w1")
        task = engine.get_task_by_id(tid)
        assert task.status == TaskStatus.PENDING
        assert task.assigned_creeps == []
        assert engine.get_creep_task("w1") is None

    def test_in_progress_resets_to_pending_when_empty(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        engine.assign_task(tid, "w1")
        engine.assign_task(tid, "w2")
        engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        engine.unassign_creep("w1")
        assert engine.get_task_by_id(tid).status == TaskStatus.IN_PROGRESS
        engine.unassign_creep("w2")
        assert engine.get_task_by_id(tid).status == TaskStatus.PENDING

    def test_unassign_drops_worker_fsm_state(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        engine.assign_task(tid, "w1")
        from colony.tasks.fsm import creep_state
        creep_state(engine.get_task_by_id(tid).fsm, "w1").current_state = "BUILDING"
        engine.unassign_creep("w1")
        assert "w1" not in engine.get_task_by_id(tid).fsm.creep_states

    def test_worker_died_releases_and_emits(self):
        engine, state, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        engine.assign_task(tid, "w1")
        engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        state.events.clear()
        assert engine.on_worker_died("w1")
        assert engine.get_task_by_id(tid).assigned_creeps == []
        assert engine.get_task_by_id(tid).status == TaskStatus.PENDING
        assert [e.category for e in state.events] == ["worker-died"]

    def test_worker_died_without_task(self):
        engine, _, _ = _make_engine()
        assert not engine.on_worker_died("ghost")


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

class TestUpdateStatus:
    def test_in_progress_sets_started_at_once(self):
        engine, state, _ = _make_engine()
        tid = engine.create_task(_spec())
        engine.assign_task(tid, "w1")
        state.tick = 3
        assert engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        state.tick = 9
        assert engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        task = engine.get_task_by_id(tid)
        assert task.started_at == 3
        assert task.updated_at == 9

    def test_completed_clears_every_index_entry(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec(TaskType.BUILD))
        for name in ("w1", "w2", "w3"):
            engine.assign_task(tid, name)
        assert engine.update_task_status(tid, TaskStatus.COMPLETED)
        for name in ("w1", "w2", "w3"):
            assert engine.get_creep_task(name) is None
        book = engine.state.registry.book(ROOM)
        assert tid not in book.task_assignments
        assert tid in book.completed_tasks
        assert book.tasks_completed == 1

    def test_failed_counts_and_emits(self):
        engine, state, _ = _make_engine(tick=4)
        tid = engine.create_task(_spec())
        engine.update_task_status(tid, TaskStatus.FAILED)
        task = engine.get_task_by_id(tid)
        assert task.completed_at == 4
        assert state.registry.stats()["tasks_failed"] == 1
        assert state.events[-1].category == "task-failed"

    def test_terminal_is_final(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        engine.update_task_status(tid, TaskStatus.COMPLETED)
        assert not engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        assert not engine.update_task_status(tid, TaskStatus.FAILED)
        assert engine.get_task_by_id(tid).status == TaskStatus.COMPLETED

    def test_unknown_task(self):
        engine, _, _ = _make_engine()
        assert not engine.update_task_status("nope", TaskStatus.COMPLETED)

    def test_pending_cannot_jump_to_in_progress(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_spec())
        assert not engine.update_task_status(tid, TaskStatus.IN_PROGRESS)
        assert engine.get_task_by_id(tid).status == TaskStatus.PENDING

    def test_record_retry_fails_after_budget(self):
        engine, _, _ = _make_engine()
        tid = engine.create_task(_transport_spec())
        assert engine.record_retry(tid)
        assert engine.record_retry(tid)
        assert not engine.record_retry(tid)
        assert engine.get_task_by_id(tid).status == TaskStatus.FAILED


# ---------------------------------------------------------------------------
# Queries and transport injection
# ---------------------------------------------------------------------------

class TestQueries:
    def test_pending_and_active(self):
        engine, _, _ = _make_engine()
        a = engine.create_task(_spec())
        b = engine.create_task(_spec())
        c = engine.create_task(_spec())
        engine.assign_task(b, "w1")
        engine.update_task_status(c, TaskStatus.COMPLETED)
        assert [t.id for t in engine.get_pending_tasks()] == [a]
        assert {t.id for t in engine.get_active_tasks()} == {a, b}

    def test_tasks_by_room(self):
        engine, _, _ = _make_engine()
        a = engine.create_task(_spec(room_name="W1N1"))
        engine.create_task(_spec(room_name="W2N2"))
        assert [t.id for t in engine.get_tasks_by_room("W1N1")] == [a]
        assert engine.get_tasks_by_room("W9N9") == []

    def test_get_task_by_unknown_id(self):
        engine, _, _ = _make_engine()
        assert engine.get_task_by_id("missing") is None

    def test_inject_skips_covered_pairs(self):
        engine, _, _ = _make_engine()
        first = engine.inject_transport_tasks(ROOM, [_transport_spec(), _transport_spec()])
        assert len(first) == 1
        second = engine.inject_transport_tasks(ROOM, [_transport_spec(), _transport_spec(target="ext-2")])
        assert len(second) == 1
        assert engine.get_task_by_id(second[0]).params["target_id"] == "ext-2"

    def test_inject_dropped_source_by_position(self):
        engine, _, _ = _make_engine()
        pos = Position(3, 4, ROOM)
        spec = TaskSpec.transport(ROOM, "energy", 20, target_id="ext-1", source_pos=pos)
        assert len(engine.inject_transport_tasks(ROOM, [spec])) == 1
        again = TaskSpec.transport(ROOM, "energy", 20, target_id="ext-1", source_pos=Position(3, 4, ROOM))
        assert engine.inject_transport_tasks(ROOM, [again]) == []
