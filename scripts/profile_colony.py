#!/usr/bin/env python3
"""Automated colony loop profiler.

Usage:
    python scripts/profile_colony.py --ticks 500 --seed 42
    python scripts/profile_colony.py --ticks 2000 --matching-interval 1 --cprofile profile.prof
    python scripts/profile_colony.py --ticks 500 --memory

Reports:
    - Per-tick timing statistics (min, max, mean, p50, p95, p99)
    - Split between the planning pipeline and worker execution
    - Live task count over time
    - Throughput (ticks/sec)
    - Optional: cProfile dump for flame graph generation
    - Optional: tracemalloc memory snapshot
"""

from __future__ import annotations

import argparse
import cProfile
import io
import os
import pstats
import statistics
import sys
import time
import tracemalloc

# Ensure project root is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from colony.config import ColonyConfig
from colony.core.colony_state import ColonyState
from colony.engine.colony_loop import ColonyLoop
from colony.world.executor import SandboxWorkers
from colony.world.sandbox import SandboxWorld


class _TimedWorkers:
    """Wraps SandboxWorkers and records how long execution took each tick."""

    def __init__(self, inner: SandboxWorkers) -> None:
        self.inner = inner
        self.last = 0.0

    def execute(self, loop: ColonyLoop) -> None:
        t0 = time.perf_counter()
        self.inner.execute(loop)
        self.last = time.perf_counter() - t0


def _run_colony(cfg: ColonyConfig, num_ticks: int) -> dict:
    """Run the colony and collect per-tick timing data."""
    world = SandboxWorld.generate(cfg)
    workers = SandboxWorkers(world)
    timed = _TimedWorkers(workers)
    loop = ColonyLoop(cfg, ColonyState(), world, executor=timed)
    workers.bootstrap(loop)

    tick_times: list[float] = []
    phase_times: list[tuple[float, float]] = []
    task_counts: list[int] = []

    for _ in range(num_ticks):
        t_start = time.perf_counter()
        if not loop.tick_once():
            break
        total = time.perf_counter() - t_start
        tick_times.append(total)
        phase_times.append((total - timed.last, timed.last))
        task_counts.append(len(loop.state.registry.all_tasks()))

    return {
        "tick_times": tick_times,
        "phase_times": phase_times,
        "task_counts": task_counts,
        "stats": loop.state.registry.stats(),
        "final_tick": loop.state.tick,
    }


def _percentile(data: list[float], p: float) -> float:
    """Simple percentile calculation."""
    if not data:
        return 0.0
    sorted_data = sorted(data)
    k = (len(sorted_data) - 1) * (p / 100.0)
    f = int(k)
    c = f + 1
    if c >= len(sorted_data):
        return sorted_data[f]
    return sorted_data[f] + (k - f) * (sorted_data[c] - sorted_data[f])


def _print_report(data: dict, wall_time: float) -> None:
    """Print a formatted performance report."""
    tick_times = data["tick_times"]
    phase_times = data["phase_times"]
    task_counts = data["task_counts"]
    stats = data["stats"]
    num_ticks = len(tick_times)

    if num_ticks == 0:
        print("No ticks executed.")
        return

    print("\n" + "=" * 70)
    print("  COLONY PERFORMANCE REPORT")
    print("=" * 70)

    print(f"\n  Ticks executed:    {num_ticks}")
    print(f"  Wall clock time:   {wall_time:.3f}s")
    print(f"  Throughput:        {num_ticks / wall_time:.1f} ticks/sec")
    print(f"  Avg tick time:     {statistics.mean(tick_times) * 1000:.2f}ms")

    print(f"\n  Tasks created:     {stats['tasks_created']}")
    print(f"  Tasks completed:   {stats['tasks_completed']}")
    print(f"  Tasks failed:      {stats['tasks_failed']}")
    print(f"  Live tasks (peak): {max(task_counts)}")

    print(f"\n  {'Metric':<16} {'Time (ms)':>10}")
    print(f"  {'-' * 16} {'-' * 10}")
    print(f"  {'Min':<16} {min(tick_times) * 1000:>10.3f}")
    print(f"  {'P50 (median)':<16} {_percentile(tick_times, 50) * 1000:>10.3f}")
    print(f"  {'P95':<16} {_percentile(tick_times, 95) * 1000:>10.3f}")
    print(f"  {'P99':<16} {_percentile(tick_times, 99) * 1000:>10.3f}")
    print(f"  {'Max':<16} {max(tick_times) * 1000:>10.3f}")
    if num_ticks > 1:
        print(f"  {'StdDev':<16} {statistics.stdev(tick_times) * 1000:>10.3f}")

    pipeline = [p[0] for p in phase_times]
    execute = [p[1] for p in phase_times]
    total_sum = sum(tick_times)

    print(f"\n  {'Phase':<16} {'Avg (ms)':>10} {'P95 (ms)':>10} {'% Total':>10}")
    print(f"  {'-' * 16} {'-' * 10} {'-' * 10} {'-' * 10}")
    for name, times in [("Pipeline", pipeline), ("Execute", execute)]:
        avg_ms = statistics.mean(times) * 1000
        p95_ms = _percentile(times, 95) * 1000
        pct = (sum(times) / total_sum * 100) if total_sum > 0 else 0
        print(f"  {name:<16} {avg_ms:>10.3f} {p95_ms:>10.3f} {pct:>9.1f}%")

    print("\n  Top 5 slowest ticks:")
    indexed = sorted(enumerate(tick_times), key=lambda x: x[1], reverse=True)[:5]
    for tick_idx, t in indexed:
        print(f"    Tick {tick_idx:>5}: {t * 1000:.3f}ms  ({task_counts[tick_idx]} tasks)")

    print("\n" + "=" * 70)


def main() -> None:
    parser = argparse.ArgumentParser(description="Profile the colony loop")
    parser.add_argument("--ticks", type=int, default=500, help="Number of ticks to run")
    parser.add_argument("--seed", type=int, default=42, help="World seed")
    parser.add_argument("--workers", type=int, default=6, help="Initial worker count")
    parser.add_argument("--haulers", type=int, default=3, help="Initial hauler count")
    parser.add_argument("--matching-interval", type=int, default=5, help="Ticks between matcher passes")
    parser.add_argument("--cprofile", type=str, default=None, help="Save cProfile output to file")
    parser.add_argument("--memory", action="store_true", help="Enable tracemalloc memory profiling")
    args = parser.parse_args()

    cfg = ColonyConfig(
        world_seed=args.seed,
        max_ticks=args.ticks + 10,
        initial_workers=args.workers,
        initial_haulers=args.haulers,
        matching_interval=args.matching_interval,
        log_level="WARNING",
    )

    print(f"Profiling: {args.ticks} ticks, seed={args.seed}, "
          f"workers={args.workers}, haulers={args.haulers}, matching every {args.matching_interval}")

    if args.memory:
        tracemalloc.start()

    profiler = None
    if args.cprofile:
        profiler = cProfile.Profile()
        profiler.enable()

    wall_start = time.perf_counter()
    data = _run_colony(cfg, args.ticks)
    wall_time = time.perf_counter() - wall_start

    if profiler:
        profiler.disable()

    _print_report(data, wall_time)

    if profiler and args.cprofile:
        profiler.dump_stats(args.cprofile)
        print(f"\n  cProfile data saved to: {args.cprofile}")
        print(f"  View with: python -m pstats {args.cprofile}")

        print("\n  Top 20 functions by cumulative time:")
        stream = io.StringIO()
        ps = pstats.Stats(profiler, stream=stream)
        ps.sort_stats("cumulative")
        ps.print_stats(20)
        print(stream.getvalue())

    if args.memory:
        snapshot = tracemalloc.take_snapshot()
        print("\n  Top 15 memory allocations by size:")
        print(f"  {'File:Line':<60} {'Size':>10}")
        print(f"  {'-' * 60} {'-' * 10}")
        for stat in snapshot.statistics("lineno")[:15]:
            print(f"  {str(stat.traceback):<60} {stat.size / 1024:>8.1f} KB")

        current, peak = tracemalloc.get_traced_memory()
        print(f"\n  Current memory: {current / 1024:.1f} KB")
        print(f"  Peak memory:    {peak / 1024:.1f} KB")
        tracemalloc.stop()


if __name__ == "__main__":
    main()
