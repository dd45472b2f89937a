"""EngineManager — runs the ColonyLoop on a background thread.

The API reads from an atomically-swapped immutable ColonySnapshot; the loop
mutates ColonyState exclusively on its own thread.
"""

from __future__ import annotations

import logging
import threading
import time

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.core.snapshot import ColonySnapshot
from colony.engine.colony_loop import ColonyLoop
from colony.utils.event_log import EventLog, SimEvent
from colony.utils.logging import log_events
from colony.utils.persistence import save_state
from colony.world.executor import SandboxWorkers
from colony.world.sandbox import SandboxWorld

logger = logging.getLogger(__name__)


class EngineManager:
    """Manages the colony run lifecycle on a background thread.

    Provides thread-safe access to:
      - latest snapshot (atomic reference swap)
      - event log (lock-guarded ring buffer)
      - control commands (start / pause / resume / step / reset)
    """

    def __init__(self, config: ColonyConfig, state: ColonyState | None = None) -> None:
        self._config = config
        self._tick_rate: float = 0.05  # seconds between ticks (20 tps default)

        self._world: SandboxWorld | None = None
        self._loop: ColonyLoop | None = None

        self._snapshot_lock = threading.Lock()
        # Held for a whole tick so a save never sees half-mutated state
        self._tick_lock = threading.Lock()
        self._latest_snapshot: ColonySnapshot | None = None
        self._event_log = EventLog()

        self._thread: threading.Thread | None = None
        self._running = threading.Event()
        self._paused = threading.Event()
        self._step_requested = threading.Event()
        self._stop_requested = threading.Event()

        self._build(state)

    # -- public properties --

    @property
    def config(self) -> ColonyConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    @property
    def tick_rate(self) -> float:
        return self._tick_rate

    @tick_rate.setter
    def tick_rate(self, value: float) -> None:
        self._tick_rate = max(0.01, min(value, 2.0))

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # -- snapshot access --

    def get_snapshot(self) -> ColonySnapshot | None:
        with self._snapshot_lock:
            return self._latest_snapshot

    # -- lifecycle --

    def start(self, paused: bool = False) -> None:
        if self._running.is_set():
            return
        self._stop_requested.clear()
        if paused:
            self._paused.set()
        else:
            self._paused.clear()
        self._running.set()
        self._thread = threading.Thread(target=self._run_loop, name="colony-loop", daemon=True)
        self._thread.start()
        logger.info("EngineManager started (tick_rate=%.3fs)", self._tick_rate)

    def pause(self) -> None:
        self._paused.set()
        logger.info("EngineManager paused at tick %d", self._current_tick())

    def resume(self) -> None:
        self._paused.clear()
        logger.info("EngineManager resumed at tick %d", self._current_tick())

    def step(self) -> None:
        """Execute exactly one tick (must be paused)."""
        if not self._paused.is_set():
            self.pause()
        self._step_requested.set()

    def stop(self) -> None:
        self._stop_requested.set()
        self._paused.clear()
        self._running.clear()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        logger.info("EngineManager stopped.")

    def reset(self) -> None:
        """Stop, rebuild from scratch, and leave stopped ready to start."""
        self.stop()
        self._event_log.clear()
        self._build()
        logger.info("EngineManager reset.")

    def save(self, path: str | None = None) -> str:
        """Persist the current state, waiting out any tick already in flight."""
        assert self._loop is not None
        with self._tick_lock:
            return str(save_state(self._loop.state, path or self._config.state_file))

    # -- internals --

    def _build(self, state: ColonyState | None = None) -> None:
        cfg = self._config
        self._world = SandboxWorld.generate(cfg)
        executor = SandboxWorkers(self._world)
        self._loop = ColonyLoop(cfg, state or ColonyState(), self._world, executor=executor)
        if state is None:
            executor.bootstrap(self._loop)
        self._publish_snapshot_and_events()

    def _run_loop(self) -> None:
        """Background thread main loop."""
        logger.info("Colony thread started.")
        assert self._loop is not None

        while not self._stop_requested.is_set():
            if self._paused.is_set() and not self._step_requested.is_set():
                time.sleep(0.01)
                continue

            single_step = self._step_requested.is_set()
            if single_step:
                self._step_requested.clear()

            with self._tick_lock:
                can_continue = self._loop.tick_once()
                self._publish_snapshot_and_events()
            if not can_continue:
                logger.info("Colony run ended at tick %d.", self._loop.state.tick)
                break

            if not single_step:
                time.sleep(self._tick_rate)

        self._running.clear()
        logger.info("Colony thread exited.")

    def _publish_snapshot_and_events(self) -> None:
        assert self._loop is not None
        snap = ColonySnapshot.from_state(self._loop.state, self._loop.oracle.workers())
        with self._snapshot_lock:
            self._latest_snapshot = snap

        events: list[SimEvent] = self._loop.tick_events
        if events:
            self._event_log.append_many(events)
            log_events(logger, events)

    def _current_tick(self) -> int:
        if self._loop:
            return self._loop.state.tick
        return 0
