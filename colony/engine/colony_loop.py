"""ColonyLoop — the fixed per-tick pipeline.

Pipeline order:
  1. begin tick
  2. drain inbound messages (worker deaths, construction notifications)
  3. strategy task creation
  4. logistics GC + scan, every room
  5. demand matching + transport injection (every ``matching_interval`` ticks)
  6. idle-worker scheduling (every ``scheduling_interval`` ticks)
  7. worker execution
  8. supply cleanup, task cleanup (self-throttled)
  9. end tick

Everything runs to completion on the calling thread; only the message
queue may be fed from elsewhere.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

from colony.core.enums import ObjectKind
from colony.engine.messages import (
    ConstructionCompleted,
    ConstructionPlanUpdated,
    Message,
    MessageQueue,
    WorkerDied,
)
from colony.logistics.matcher import DemandMatcher
from colony.logistics.network import LogisticsNetwork
from colony.logistics.supply import SupplyService
from colony.tasks.generator import TaskGenerator
from colony.tasks.lifecycle import TaskLifecycleEngine
from colony.tasks.scheduler import TaskScheduler

if TYPE_CHECKING:
    from colony.config import ColonyConfig
    from colony.core.colony_state import ColonyState
    from colony.core.oracle import WorldOracle
    from colony.utils.event_log import SimEvent

logger = logging.getLogger(__name__)


class WorkerExecutor(Protocol):
    """Drives assigned workers through their task FSMs for one tick."""

    def execute(self, loop: ColonyLoop) -> None: ...


class ColonyLoop:
    """Owns one ColonyState and the services that mutate it."""

    __slots__ = (
        "_config",
        "_state",
        "_oracle",
        "_messages",
        "_executor",
        "_engine",
        "_network",
        "_matcher",
        "_supply",
        "_generator",
        "_scheduler",
        "_tick_events",
    )

    def __init__(
        self,
        config: ColonyConfig,
        state: ColonyState,
        oracle: WorldOracle,
        executor: WorkerExecutor | None = None,
        messages: MessageQueue | None = None,
    ) -> None:
        self._config = config
        self._state = state
        self._oracle = oracle
        self._messages = messages or MessageQueue()
        self._executor = executor
        self._engine = TaskLifecycleEngine(config, state, oracle)
        self._network = LogisticsNetwork(config, state, oracle)
        self._matcher = DemandMatcher(self._network, oracle)
        self._supply = SupplyService(config, state, oracle, self._network)
        self._generator = TaskGenerator(self._engine, oracle)
        self._scheduler = TaskScheduler(config, self._engine, oracle)
        self._tick_events: list[SimEvent] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ColonyConfig:
        return self._config

    @property
    def state(self) -> ColonyState:
        return self._state

    @property
    def oracle(self) -> WorldOracle:
        return self._oracle

    @property
    def messages(self) -> MessageQueue:
        return self._messages

    @property
    def engine(self) -> TaskLifecycleEngine:
        return self._engine

    @property
    def network(self) -> LogisticsNetwork:
        return self._network

    @property
    def matcher(self) -> DemandMatcher:
        return self._matcher

    @property
    def supply(self) -> SupplyService:
        return self._supply

    @property
    def scheduler(self) -> TaskScheduler:
        return self._scheduler

    @property
    def tick_events(self) -> list[SimEvent]:
        """Events emitted during the most recent tick."""
        return self._tick_events

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def tick_once(self) -> bool:
        """Execute a single tick. Returns False if the run should stop."""
        if self._state.tick >= self._config.max_ticks:
            logger.info("Tick %d: Max ticks reached.", self._state.tick)
            return False
        self._step()
        return True

    def run(self, ticks: int | None = None) -> None:
        """Run until ``max_ticks`` or for *ticks* more ticks."""
        stop_at = self._config.max_ticks if ticks is None else self._state.tick + ticks
        logger.info("=== Colony run started at tick %d ===", self._state.tick)
        while self._state.tick < stop_at:
            if not self.tick_once():
                break
            if self._state.tick % 100 == 0:
                stats = self._state.registry.stats()
                logger.info(
                    "Tick %d: %d tasks live, %d completed, %d failed",
                    self._state.tick, stats["total"], stats["tasks_completed"], stats["tasks_failed"],
                )
        logger.info("=== Colony run finished at tick %d ===", self._state.tick)

    def _step(self) -> None:
        cfg = self._config
        state = self._state
        tick = state.tick
        t0 = time.perf_counter()

        state.begin_tick(tick)
        self._dispatch(self._messages.drain())

        created = self._generator.generate()
        self._network.update_all()

        injected: list[str] = []
        if cfg.matching_interval <= 1 or tick % cfg.matching_interval == 0:
            for room_name in self._oracle.owned_rooms():
                specs = self._matcher.generate_transport_tasks(room_name)
                if specs:
                    injected.extend(self._engine.inject_transport_tasks(room_name, specs))

        assigned = 0
        if cfg.scheduling_interval <= 1 or tick % cfg.scheduling_interval == 0:
            assigned = self._scheduler.schedule()

        t1 = time.perf_counter()
        if self._executor is not None:
            self._executor.execute(self)
        t2 = time.perf_counter()

        self._supply.cleanup()
        self._engine.cleanup()

        self._tick_events = state.end_tick()
        logger.debug(
            "Tick %d: plan=%.4fs exec=%.4fs total=%.4fs created=%d transport=%d assigned=%d",
            tick, t1 - t0, t2 - t1, time.perf_counter() - t0,
            len(created), len(injected), assigned,
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _dispatch(self, messages: list[Message]) -> None:
        for message in messages:
            match message:
                case WorkerDied(worker=worker):
                    self._engine.on_worker_died(worker)
                    self._supply.cancel(worker)
                case ConstructionPlanUpdated():
                    self._on_plan_updated(message)
                case ConstructionCompleted():
                    self._on_construction_completed(message)
                case _:
                    logger.warning("Ignoring unknown message %r", message)

    def _on_plan_updated(self, msg: ConstructionPlanUpdated) -> None:
        site = self._oracle.structure_at(msg.pos, ObjectKind.CONSTRUCTION_SITE)
        if site is None:
            logger.debug("Plan update at %s has no construction site yet", msg.pos)
            return
        self._network.register_planned(site, msg.room_name, msg.role, msg.resource_type)

    def _on_construction_completed(self, msg: ConstructionCompleted) -> None:
        structure = self._oracle.structure_at(msg.pos, msg.structure_kind)
        if structure is None:
            logger.warning("Construction at %s finished but no %s found", msg.pos, msg.structure_kind.value)
            return
        if self._network.migrate(msg.old_id, structure.id, msg.pos, msg.structure_kind, msg.pos.room):
            self._state.emit(
                "construction-completed",
                f"{msg.structure_kind.value} {structure.id} replaced site {msg.old_id}",
                (msg.old_id, structure.id),
            )
