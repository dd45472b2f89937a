"""Colony engine configuration with sensible defaults."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ColonyConfig:
    """Immutable configuration for a colony run."""

    # Sandbox world
    world_seed: int = 42
    grid_width: int = 50
    grid_height: int = 50
    room_name: str = "W1N1"
    num_sources: int = 2
    num_extensions: int = 5
    num_containers: int = 2
    initial_workers: int = 6
    initial_haulers: int = 3

    # Timing
    max_ticks: int = 5000

    # Task lifecycle (throttled passes, in ticks)
    cleanup_interval: int = 50
    task_expiry_ticks: int = 1500
    scheduling_interval: int = 1

    # Logistics
    matching_interval: int = 5
    full_gc_interval: int = 100

    # Effective priority (aging keeps low-priority work from starving)
    aging_factor: float = 0.3
    saturation_factor: float = 1.0

    # Supply requests
    supply_cleanup_interval: int = 20
    eta_beta: float = 1.2
    eta_overhead: int = 3
    eta_min_wait: int = 5
    eta_max_wait: int = 60
    eta_unreachable_penalty: int = 20

    # Sandbox dynamics
    worker_death_chance: float = 0.002
    drop_chance: float = 0.001
    source_regen_interval: int = 300
    source_capacity: int = 3000
    spawn_drain_per_tick: int = 1
    pathfinder_max_nodes: int = 2500

    # Logging / persistence
    log_level: str = "INFO"
    state_file: str = "colony_state.json"
