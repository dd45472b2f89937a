"""SandboxWorkers — drives assigned sandbox workers through their task FSMs.

This is the worker-execution collaborator for the sandbox: once per tick it
advances world dynamics, then moves every assigned worker one FSM step and
reports progress back through the lifecycle engine. Deaths and finished
construction are pushed onto the loop's message queue.

Energy-hungry tasks (build, upgrade) first ask the SupplyService for a
delivery and only fetch for themselves once the suggested wait runs out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.enums import LogisticsRole, ObjectKind, ProviderStatus, RESOURCE_ENERGY, TaskStatus, TaskType
from colony.core.models import Position
from colony.engine.messages import ConstructionCompleted, ConstructionPlanUpdated, WorkerDied
from colony.tasks.fsm import (
    BuildState,
    HarvestState,
    TransportState,
    UpgradeState,
    creep_state,
)

if TYPE_CHECKING:
    from colony.core.models import CreepFSMState, Task
    from colony.engine.colony_loop import ColonyLoop
    from colony.world.objects import Worker
    from colony.world.sandbox import SandboxWorld

logger = logging.getLogger(__name__)

# Structures registered with the logistics network at bootstrap
CONSUMER_KINDS = (ObjectKind.SPAWN, ObjectKind.EXTENSION, ObjectKind.TOWER)
PROVIDER_KINDS = (ObjectKind.CONTAINER, ObjectKind.STORAGE)

UPGRADE_RANGE = 3
BUILD_RANGE = 3


class SandboxWorkers:
    """WorkerExecutor for SandboxWorld."""

    __slots__ = ("_world",)

    def __init__(self, world: SandboxWorld) -> None:
        self._world = world

    @property
    def world(self) -> SandboxWorld:
        return self._world

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def bootstrap(self, loop: ColonyLoop, plan_extension: bool = True) -> None:
        """Register starting structures and optionally plan one extra extension."""
        world = self._world
        network = loop.network
        room = world.room
        network.ensure_room(room)
        for kind in CONSUMER_KINDS:
            for ref in world.find_objects(room, kind):
                network.set_consumer(ref, room, RESOURCE_ENERGY)
        for kind in PROVIDER_KINDS:
            for ref in world.find_objects(room, kind):
                network.set_provider(ref, room, RESOURCE_ENERGY, ProviderStatus.READY)

        if plan_extension:
            spawns = world.find_objects(room, ObjectKind.SPAWN)
            if spawns:
                pos = world.free_tile_near(spawns[0].pos, 3)
                if pos is not None:
                    world.place_site(ObjectKind.EXTENSION, pos)
                    loop.messages.push(ConstructionPlanUpdated(
                        room_name=room,
                        structure_kind=ObjectKind.EXTENSION,
                        pos=pos,
                        role=LogisticsRole.CONSUMER,
                        resource_type=RESOURCE_ENERGY,
                    ))

    # ------------------------------------------------------------------
    # Per tick
    # ------------------------------------------------------------------

    def execute(self, loop: ColonyLoop) -> None:
        tick = loop.state.tick
        for name in self._world.step(tick):
            loop.messages.push(WorkerDied(name))

        engine = loop.engine
        for view in loop.oracle.workers():
            if view.spawning:
                continue
            task = engine.get_creep_task(view.name)
            if task is None:
                continue
            worker = self._world.worker(view.name)
            if worker is None:
                continue
            if task.status == TaskStatus.ASSIGNED:
                engine.update_task_status(task.id, TaskStatus.IN_PROGRESS)
            state = creep_state(task.fsm, worker.name)
            match task.type:
                case TaskType.HARVEST:
                    self._harvest(loop, task, worker, state)
                case TaskType.TRANSPORT:
                    self._transport(loop, task, worker, state)
                case TaskType.UPGRADE:
                    self._upgrade(loop, task, worker, state)
                case TaskType.BUILD:
                    self._build(loop, task, worker, state)
                case _:
                    logger.debug("No sandbox behaviour for %s; failing %s", task.type.value, task.id)
                    engine.update_task_status(task.id, TaskStatus.FAILED)

    # ------------------------------------------------------------------
    # Harvest: MOVING -> HARVESTING <-> DUMPING
    # ------------------------------------------------------------------

    def _harvest(self, loop: ColonyLoop, task: Task, worker: Worker, state: CreepFSMState) -> None:
        world = self._world
        source = world.source(task.params["source_id"])
        if source is None:
            loop.engine.update_task_status(task.id, TaskStatus.FAILED)
            return

        match state.current_state:
            case HarvestState.INIT | HarvestState.MOVING:
                state.current_state = HarvestState.MOVING.value
                if world.move_toward(worker, source.pos, 1):
                    state.current_state = HarvestState.HARVESTING.value
            case HarvestState.HARVESTING:
                world.harvest(worker, source.id)
                if worker.store.free() == 0:
                    state.current_state = HarvestState.DUMPING.value
            case HarvestState.DUMPING:
                container = next(
                    (
                        ref for ref in world.find_objects(world.room, ObjectKind.CONTAINER)
                        if ref.pos.range_to(worker.pos) <= 1
                    ),
                    None,
                )
                moved = world.transfer(worker, container.id, RESOURCE_ENERGY) if container else 0
                if worker.energy > 0:
                    world.drop(worker.pos, RESOURCE_ENERGY, worker.store.remove(RESOURCE_ENERGY, worker.energy))
                state.record["dumped"] = state.record.get("dumped", 0) + moved
                state.current_state = HarvestState.HARVESTING.value

    # ------------------------------------------------------------------
    # Transport: PICKUP -> DELIVER -> FINISHED
    # ------------------------------------------------------------------

    def _transport(self, loop: ColonyLoop, task: Task, worker: Worker, state: CreepFSMState) -> None:
        world = self._world
        engine = loop.engine
        params = task.params
        resource_type = params["resource_type"]

        if state.current_state == TransportState.INIT:
            state.current_state = TransportState.PICKUP.value

        if state.current_state == TransportState.PICKUP:
            source_pos = params.get("source_pos") or world.object_pos(params.get("source_id") or "")
            if source_pos is None:
                self._pickup_failed(loop, task, worker, state)
                return
            if not world.move_toward(worker, source_pos, 1):
                return
            if params.get("source_id"):
                got = world.withdraw(worker, params["source_id"], resource_type, params.get("amount"))
            else:
                got = world.pickup_at(worker, source_pos, resource_type, params.get("amount"))
            if got <= 0 and worker.store.used(resource_type) == 0:
                self._pickup_failed(loop, task, worker, state)
                return
            state.current_state = TransportState.DELIVER.value
            return

        if state.current_state == TransportState.DELIVER:
            target_pos = world.object_pos(params["target_id"])
            if target_pos is None:
                state.current_state = TransportState.DROPPING.value
            elif world.move_toward(worker, target_pos, 1):
                world.transfer(worker, params["target_id"], resource_type)
                state.current_state = TransportState.FINISHED.value
                engine.update_task_status(task.id, TaskStatus.COMPLETED)
                return

        if state.current_state == TransportState.DROPPING:
            world.drop(worker.pos, resource_type, worker.store.remove(resource_type, worker.store.used(resource_type)))
            state.current_state = TransportState.FINISHED.value
            engine.update_task_status(task.id, TaskStatus.FAILED)

    def _pickup_failed(self, loop: ColonyLoop, task: Task, worker: Worker, state: CreepFSMState) -> None:
        if loop.engine.record_retry(task.id):
            # Retry budget left: give the task back and let the scheduler try again
            loop.engine.unassign_creep(worker.name)
        else:
            state.current_state = TransportState.FINISHED.value

    # ------------------------------------------------------------------
    # Upgrade: GET_ENERGY <-> UPGRADING
    # ------------------------------------------------------------------

    def _upgrade(self, loop: ColonyLoop, task: Task, worker: Worker, state: CreepFSMState) -> None:
        world = self._world
        controller_pos = world.object_pos(task.params["controller_id"])
        if controller_pos is None:
            loop.engine.update_task_status(task.id, TaskStatus.FAILED)
            return

        if state.current_state in (UpgradeState.INIT, UpgradeState.GET_ENERGY):
            state.current_state = UpgradeState.GET_ENERGY.value
            if self._get_energy(loop, worker, state):
                state.current_state = UpgradeState.UPGRADING.value
            return

        if world.move_toward(worker, controller_pos, UPGRADE_RANGE):
            world.upgrade(worker, task.params["controller_id"])
        if worker.energy == 0:
            state.current_state = UpgradeState.GET_ENERGY.value

    # ------------------------------------------------------------------
    # Build: GET_ENERGY <-> BUILDING -> FINISHED
    # ------------------------------------------------------------------

    def _build(self, loop: ColonyLoop, task: Task, worker: Worker, state: CreepFSMState) -> None:
        world = self._world
        site = world.site(task.params["target_id"])
        if site is None:
            # Finished by a co-worker already, or removed
            if task.status.active:
                loop.engine.update_task_status(task.id, TaskStatus.COMPLETED)
            return

        if state.current_state in (BuildState.INIT, BuildState.GET_ENERGY):
            state.current_state = BuildState.GET_ENERGY.value
            if self._get_energy(loop, worker, state):
                state.current_state = BuildState.BUILDING.value
            return

        if world.move_toward(worker, site.pos, BUILD_RANGE):
            world.build(worker, site.id)
        if site.complete:
            structure = world.complete_site(site.id)
            if structure is not None:
                loop.messages.push(ConstructionCompleted(structure.pos, structure.kind, site.id))
            state.current_state = BuildState.FINISHED.value
            loop.engine.update_task_status(task.id, TaskStatus.COMPLETED)
        elif worker.energy == 0:
            state.current_state = BuildState.GET_ENERGY.value

    # ------------------------------------------------------------------
    # Shared: wait for delivery, then fetch
    # ------------------------------------------------------------------

    def _get_energy(self, loop: ColonyLoop, worker: Worker, state: CreepFSMState) -> bool:
        """One tick of refuelling. True once the worker has energy to work with."""
        world = self._world
        supply = loop.supply
        tick = loop.state.tick
        record = state.record

        if worker.store.free(RESOURCE_ENERGY) == 0:
            self._done_refuelling(loop, worker, record)
            return True

        plan = record.get("fetch")
        if plan is None:
            if "wait_until" not in record:
                if worker.energy > 0:
                    return True
                result = supply.request(worker.name, RESOURCE_ENERGY)
                record["wait_until"] = tick + (result[1] if result is not None else 0)
                return False
            if worker.energy > 0:
                # A hauler delivered while we waited
                self._done_refuelling(loop, worker, record)
                return True
            if tick < record["wait_until"]:
                return False
            plan = supply.suggest_self_fetch(worker.name, RESOURCE_ENERGY)
            if plan is None:
                record["wait_until"] = tick + loop.config.eta_min_wait
                return False
            # Kept JSON-safe: the record is persisted with the task
            plan = {k: (v.to_dict() if isinstance(v, Position) else v) for k, v in plan.items()}
            record["fetch"] = plan

        if "source_pos" in plan:
            target = Position.from_dict(plan["source_pos"])
        else:
            target = world.object_pos(plan["source_id"])
        if target is None:
            del record["fetch"]
            return False
        if not world.move_toward(worker, target, 1):
            return False
        if "source_pos" in plan:
            world.pickup_at(worker, target, RESOURCE_ENERGY)
        else:
            world.withdraw(worker, plan["source_id"], RESOURCE_ENERGY)
        del record["fetch"]
        if worker.energy > 0:
            self._done_refuelling(loop, worker, record)
            return True
        return False

    @staticmethod
    def _done_refuelling(loop: ColonyLoop, worker: Worker, record: dict) -> None:
        record.pop("wait_until", None)
        record.pop("fetch", None)
        loop.supply.cancel(worker.name, RESOURCE_ENERGY)
