"""Sandbox world: terrain, pathfinding, objects and the worker executor."""

from colony.world.executor import SandboxWorkers
from colony.world.grid import Grid
from colony.world.pathfinding import Pathfinder
from colony.world.rng import DeterministicRNG
from colony.world.sandbox import SandboxWorld

__all__ = ["DeterministicRNG", "Grid", "Pathfinder", "SandboxWorkers", "SandboxWorld"]
