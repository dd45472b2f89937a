"""SandboxWorld — a deterministic single-room world implementing WorldOracle.

Built from a ColonyConfig and a seed: terrain, one spawn ringed by
extensions, sources with containers beside them, a controller, and a
starting crew of workers and haulers. ``step`` advances the world's own
dynamics (decay, regeneration, spawn drain, random deaths, respawns);
everything workers do goes through the mutation helpers at the bottom.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable

from colony.core.enums import BodyPart, Domain, ObjectKind, RESOURCE_ENERGY
from colony.core.models import Position
from colony.core.oracle import EphemeralObject, ObjectRef, WorkerView
from colony.world.grid import Grid, Terrain
from colony.world.objects import (
    BUILD_POWER,
    CARRY_CAPACITY,
    HARVEST_POWER,
    UPGRADE_POWER,
    ConstructionSite,
    DroppedResource,
    Source,
    Store,
    Structure,
    Tombstone,
    Worker,
    make_store,
)
from colony.world.pathfinding import Pathfinder
from colony.world.rng import DeterministicRNG

if TYPE_CHECKING:
    from colony.config import ColonyConfig

logger = logging.getLogger(__name__)

WORKER_BODY = {BodyPart.WORK: 2, BodyPart.CARRY: 1, BodyPart.MOVE: 2}
HAULER_BODY = {BodyPart.CARRY: 4, BodyPart.MOVE: 2}
BODY_COST = 200
SPAWN_TIME = 3
TOMBSTONE_TTL = 50
SITE_PROGRESS = {ObjectKind.EXTENSION: 300, ObjectKind.CONTAINER: 500, ObjectKind.TOWER: 500}
DISTANCE_CACHE_SIZE = 4096


class SandboxWorld:
    """In-memory world for one room."""

    __slots__ = (
        "_config",
        "_rng",
        "_room",
        "_grid",
        "_pathfinder",
        "_distance_cache",
        "_structures",
        "_sources",
        "_sites",
        "_dropped",
        "_tombstones",
        "_workers",
        "_seq",
        "_spawned",
    )

    def __init__(self, config: ColonyConfig, rng: DeterministicRNG | None = None, grid: Grid | None = None) -> None:
        self._config = config
        self._rng = rng or DeterministicRNG(config.world_seed)
        self._room = config.room_name
        self._grid = grid or Grid(config.grid_width, config.grid_height, config.room_name)
        self._pathfinder = Pathfinder(self._grid, config.pathfinder_max_nodes)
        self._distance_cache: dict[tuple[Position, Position], int | None] = {}
        self._structures: dict[str, Structure] = {}
        self._sources: dict[str, Source] = {}
        self._sites: dict[str, ConstructionSite] = {}
        self._dropped: dict[str, DroppedResource] = {}
        self._tombstones: dict[str, Tombstone] = {}
        self._workers: dict[str, Worker] = {}
        self._seq = 0
        self._spawned = 0

    @property
    def room(self) -> str:
        return self._room

    @property
    def grid(self) -> Grid:
        return self._grid

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, config: ColonyConfig) -> SandboxWorld:
        """Build the standard starting room for *config*."""
        world = cls(config)
        world._generate_terrain()
        w, h = config.grid_width, config.grid_height
        spawn_pos = Position(w // 2, h // 2, config.room_name)
        world._clear_around(spawn_pos, 3)
        spawn = world.add_structure(ObjectKind.SPAWN, spawn_pos, energy=300)

        ring = [p for p in _ring(spawn_pos, 2) if world._grid.is_walkable(p)]
        for pos in ring[: config.num_extensions]:
            world.add_structure(ObjectKind.EXTENSION, pos)

        for i in range(config.num_sources):
            pos = world._random_free_tile(Domain.MAP_GEN, 1000 + i, margin=4)
            world._clear_around(pos, 1)
            source = world.add_source(pos, config.source_capacity)
            if i < config.num_containers:
                spot = next(
                    (p for p in world._grid.neighbours(source.pos) if not world._occupied(p)),
                    None,
                )
                if spot is not None:
                    world.add_structure(ObjectKind.CONTAINER, spot)

        controller_pos = world._random_free_tile(Domain.MAP_GEN, 2000, margin=3)
        world._clear_around(controller_pos, 1)
        world.add_structure(ObjectKind.CONTROLLER, controller_pos)

        near_spawn = [p for p in _ring(spawn_pos, 1) if world._grid.is_walkable(p)]
        for i in range(config.initial_workers):
            world.add_worker(f"worker-{i + 1}", near_spawn[i % len(near_spawn)], WORKER_BODY)
        for i in range(config.initial_haulers):
            world.add_worker(f"hauler-{i + 1}", near_spawn[(i + 3) % len(near_spawn)], HAULER_BODY)

        logger.info(
            "Sandbox %s generated: spawn=%s, %d sources, %d structures, %d workers",
            world._room, spawn.id, len(world._sources), len(world._structures), len(world._workers),
        )
        return world

    def _generate_terrain(self) -> None:
        grid = self._grid
        w, h = grid.width, grid.height
        for x in range(w):
            grid.set(Position(x, 0), Terrain.WALL)
            grid.set(Position(x, h - 1), Terrain.WALL)
        for y in range(h):
            grid.set(Position(0, y), Terrain.WALL)
            grid.set(Position(w - 1, y), Terrain.WALL)
        # Scattered single-tile walls and swamp patches
        for i in range((w * h) // 25):
            x = self._rng.next_int(Domain.MAP_GEN, i, 0, 1, w - 2)
            y = self._rng.next_int(Domain.MAP_GEN, i, 1, 1, h - 2)
            terrain = Terrain.WALL if self._rng.next_bool(Domain.MAP_GEN, i, 2, 0.5) else Terrain.SWAMP
            grid.set(Position(x, y), terrain)

    def _clear_around(self, center: Position, radius: int) -> None:
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                pos = Position(center.x + dx, center.y + dy, center.room)
                if 0 < pos.x < self._grid.width - 1 and 0 < pos.y < self._grid.height - 1:
                    self._grid.set(pos, Terrain.PLAIN)

    def _random_free_tile(self, domain: Domain, salt: int, margin: int) -> Position:
        w, h = self._grid.width, self._grid.height
        for attempt in range(500):
            x = self._rng.next_int(domain, salt, attempt * 2, margin, w - 1 - margin)
            y = self._rng.next_int(domain, salt, attempt * 2 + 1, margin, h - 1 - margin)
            pos = Position(x, y, self._room)
            if self._grid.is_walkable(pos) and not self._occupied(pos) and not self._near_spawn(pos):
                return pos
        raise RuntimeError(f"No free tile found in {self._room}")

    def _near_spawn(self, pos: Position) -> bool:
        return any(
            s.kind == ObjectKind.SPAWN and s.pos.range_to(pos) <= 4 for s in self._structures.values()
        )

    def _occupied(self, pos: Position) -> bool:
        return (
            any(s.pos == pos for s in self._structures.values())
            or any(s.pos == pos for s in self._sources.values())
            or any(s.pos == pos for s in self._sites.values())
        )

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    # ------------------------------------------------------------------
    # Construction of objects
    # ------------------------------------------------------------------

    def add_structure(self, kind: ObjectKind, pos: Position, energy: int = 0, object_id: str | None = None) -> Structure:
        structure = Structure(
            id=object_id or self._next_id(kind.value),
            kind=kind,
            pos=pos,
            store=make_store(kind, energy),
        )
        self._structures[structure.id] = structure
        return structure

    def add_source(self, pos: Position, capacity: int) -> Source:
        source = Source(id=self._next_id("source"), pos=pos, energy=capacity, capacity=capacity)
        self._sources[source.id] = source
        return source

    def add_worker(self, name: str, pos: Position, body: dict[BodyPart, int], ready_at: int = 0) -> Worker:
        capacity = body.get(BodyPart.CARRY, 0) * CARRY_CAPACITY
        worker = Worker(
            name=name,
            pos=pos,
            body=dict(body),
            store=Store(capacity),
            spawning=ready_at > 0,
            ready_at=ready_at,
        )
        self._workers[name] = worker
        return worker

    def place_site(self, kind: ObjectKind, pos: Position) -> ConstructionSite:
        site = ConstructionSite(
            id=self._next_id("site"),
            pos=pos,
            structure_kind=kind,
            progress_total=SITE_PROGRESS.get(kind, 300),
        )
        self._sites[site.id] = site
        return site

    def complete_site(self, site_id: str) -> Structure | None:
        """Turn a finished site into its structure (new id, same tile)."""
        site = self._sites.pop(site_id, None)
        if site is None:
            return None
        structure = self.add_structure(site.structure_kind, site.pos)
        logger.info("Site %s completed as %s %s", site_id, structure.kind.value, structure.id)
        return structure

    def drop(self, pos: Position, resource_type: str, amount: int) -> DroppedResource | None:
        if amount <= 0:
            return None
        for pile in self._dropped.values():
            if pile.pos == pos and pile.resource_type == resource_type:
                pile.amount += amount
                return pile
        pile = DroppedResource(id=self._next_id("drop"), pos=pos, resource_type=resource_type, amount=amount)
        self._dropped[pile.id] = pile
        return pile

    def kill_worker(self, name: str, tick: int = 0) -> Tombstone | None:
        worker = self._workers.pop(name, None)
        if worker is None:
            return None
        tomb = Tombstone(
            id=self._next_id("tombstone"),
            pos=worker.pos,
            store=Store(max(worker.store.used(), 1), {rt: worker.store.used(rt) for rt in worker.store.resource_types()}),
            decay_at=tick + TOMBSTONE_TTL,
        )
        self._tombstones[tomb.id] = tomb
        return tomb

    # ------------------------------------------------------------------
    # WorldOracle
    # ------------------------------------------------------------------

    def owned_rooms(self) -> list[str]:
        return [self._room]

    def path_distance(self, a: Position, b: Position) -> int | None:
        """Steps from *a* until within interaction range (1) of *b*."""
        if a.room != b.room:
            return None
        key = (a, b)
        cached = self._distance_cache.get(key, -1)
        if cached != -1:
            return cached
        if len(self._distance_cache) >= DISTANCE_CACHE_SIZE:
            # Oldest entry first; worker positions churn every tick
            del self._distance_cache[next(iter(self._distance_cache))]
        dist = self._pathfinder.distance(a, b, goal_range=1)
        self._distance_cache[key] = dist
        return dist

    def _get(self, object_id: str):
        for table in (self._structures, self._sources, self._sites, self._dropped, self._tombstones, self._workers):
            obj = table.get(object_id)
            if obj is not None:
                return obj
        return None

    def object_exists(self, object_id: str) -> bool:
        return self._get(object_id) is not None

    def object_pos(self, object_id: str) -> Position | None:
        obj = self._get(object_id)
        return obj.pos if obj is not None else None

    def object_store(self, object_id: str) -> Store | None:
        obj = self._get(object_id)
        return getattr(obj, "store", None)

    def dropped_amount(self, object_id: str) -> int:
        pile = self._dropped.get(object_id)
        return pile.amount if pile is not None else 0

    def find_ephemeral(self, room: str) -> Iterable[EphemeralObject]:
        if room != self._room:
            return []
        found = [
            EphemeralObject(ObjectRef(p.id, p.kind, p.pos), p.resource_type, p.amount)
            for p in self._dropped.values()
        ]
        for tomb in self._tombstones.values():
            types = tomb.store.resource_types()
            if types:
                # Only the first resource in a corpse is offered
                found.append(EphemeralObject(ObjectRef(tomb.id, tomb.kind, tomb.pos), types[0], tomb.store.used(types[0])))
        return found

    def worker_exists(self, name: str) -> bool:
        return name in self._workers

    def get_worker(self, name: str) -> WorkerView | None:
        worker = self._workers.get(name)
        if worker is None:
            return None
        return WorkerView(
            name=worker.name,
            pos=worker.pos,
            body=dict(worker.body),
            spawning=worker.spawning,
            carry_capacity=worker.store.capacity() or 0,
            carry_free=worker.store.free(),
        )

    def workers(self) -> list[WorkerView]:
        return [self.get_worker(name) for name in sorted(self._workers)]

    def worker(self, name: str) -> Worker | None:
        """Mutable worker record (sandbox-only, for the executor)."""
        return self._workers.get(name)

    def structure_at(self, pos: Position, kind: ObjectKind) -> ObjectRef | None:
        if kind == ObjectKind.CONSTRUCTION_SITE:
            for site in self._sites.values():
                if site.pos == pos:
                    return ObjectRef(site.id, site.kind, site.pos)
            return None
        for structure in self._structures.values():
            if structure.pos == pos and structure.kind == kind:
                return ObjectRef(structure.id, structure.kind, structure.pos)
        return None

    def find_objects(self, room: str, kind: ObjectKind) -> list[ObjectRef]:
        if room != self._room:
            return []
        if kind == ObjectKind.SOURCE:
            objs = self._sources.values()
        elif kind == ObjectKind.CONSTRUCTION_SITE:
            objs = self._sites.values()
        elif kind == ObjectKind.CREEP:
            objs = self._workers.values()
        else:
            objs = [s for s in self._structures.values() if s.kind == kind]
        return sorted((ObjectRef(o.id, o.kind, o.pos) for o in objs), key=lambda r: r.id)

    def harvest_slots(self, source_id: str) -> int:
        source = self._sources.get(source_id)
        if source is None:
            return 0
        return len(self._grid.neighbours(source.pos))

    # ------------------------------------------------------------------
    # World dynamics
    # ------------------------------------------------------------------

    def step(self, tick: int) -> list[str]:
        """Advance world dynamics by one tick. Returns the names of workers that died."""
        cfg = self._config

        for pile in list(self._dropped.values()):
            pile.amount -= math.ceil(pile.amount / 1000)
            if pile.amount <= 0:
                del self._dropped[pile.id]

        for tomb in list(self._tombstones.values()):
            if tick >= tomb.decay_at or tomb.store.used() == 0:
                del self._tombstones[tomb.id]

        if cfg.source_regen_interval > 0 and tick > 0 and tick % cfg.source_regen_interval == 0:
            for source in self._sources.values():
                source.energy = source.capacity

        self._drain_spawn_energy(cfg.spawn_drain_per_tick)

        for worker in self._workers.values():
            if worker.spawning and tick >= worker.ready_at:
                worker.spawning = False

        for name in sorted(self._workers):
            worker = self._workers[name]
            if worker.spawning or worker.energy == 0:
                continue
            if self._rng.next_bool(Domain.DROP, name, tick, cfg.drop_chance):
                spilled = worker.store.remove(RESOURCE_ENERGY, (worker.energy + 1) // 2)
                self.drop(worker.pos, RESOURCE_ENERGY, spilled)
                logger.debug("Tick %d: %s spilled %d energy", tick, name, spilled)

        dead: list[str] = []
        for name in sorted(self._workers):
            worker = self._workers[name]
            if worker.spawning:
                continue
            if self._rng.next_bool(Domain.WORKER_DEATH, name, tick, cfg.worker_death_chance):
                dead.append(name)
        for name in dead:
            self.kill_worker(name, tick)
            logger.info("Tick %d: worker %s died", tick, name)

        self._respawn(tick)
        return dead

    def _drain_spawn_energy(self, amount: int) -> None:
        """Spawning bodies constantly eats energy from spawn and extensions."""
        if amount <= 0:
            return
        for structure in sorted(self._structures.values(), key=lambda s: s.id):
            if structure.kind in (ObjectKind.SPAWN, ObjectKind.EXTENSION) and structure.store is not None:
                amount -= structure.store.remove(RESOURCE_ENERGY, amount)
                if amount <= 0:
                    return

    def _respawn(self, tick: int) -> None:
        target = self._config.initial_workers + self._config.initial_haulers
        if len(self._workers) >= target:
            return
        spawn = next((s for s in self._structures.values() if s.kind == ObjectKind.SPAWN), None)
        if spawn is None or spawn.store is None or spawn.store.used(RESOURCE_ENERGY) < BODY_COST:
            return
        spawn.store.remove(RESOURCE_ENERGY, BODY_COST)
        haulers = sum(1 for n in self._workers if n.startswith("hauler-"))
        self._spawned += 1
        if haulers < self._config.initial_haulers:
            name, body = f"hauler-r{self._spawned}", HAULER_BODY
        else:
            name, body = f"worker-r{self._spawned}", WORKER_BODY
        self.add_worker(name, spawn.pos, body, ready_at=tick + SPAWN_TIME)
        logger.info("Tick %d: spawning %s", tick, name)

    # ------------------------------------------------------------------
    # Worker actions (used by the sandbox executor)
    # ------------------------------------------------------------------

    def move_toward(self, worker: Worker, goal: Position, goal_range: int = 1) -> bool:
        """Step *worker* toward *goal*. True once it is within *goal_range*."""
        if worker.pos.range_to(goal) <= goal_range:
            return True
        step = self._pathfinder.next_step(worker.pos, goal, goal_range)
        if step is None:
            return False
        worker.pos = step
        return worker.pos.range_to(goal) <= goal_range

    def harvest(self, worker: Worker, source_id: str) -> int:
        source = self._sources.get(source_id)
        if source is None or worker.pos.range_to(source.pos) > 1:
            return 0
        amount = min(worker.parts(BodyPart.WORK) * HARVEST_POWER, source.energy)
        if worker.store.capacity() == 0:
            # No CARRY: the energy falls on the ground
            source.energy -= amount
            self.drop(worker.pos, RESOURCE_ENERGY, amount)
            return amount
        moved = worker.store.add(RESOURCE_ENERGY, amount)
        source.energy -= moved
        return moved

    def withdraw(self, worker: Worker, object_id: str, resource_type: str, amount: int | None = None) -> int:
        obj = self._get(object_id)
        if obj is None or worker.pos.range_to(obj.pos) > 1:
            return 0
        want = worker.store.free(resource_type) if amount is None else min(amount, worker.store.free(resource_type))
        if isinstance(obj, DroppedResource):
            moved = min(want, obj.amount)
            obj.amount -= moved
            if obj.amount <= 0:
                del self._dropped[obj.id]
            return worker.store.add(resource_type, moved)
        store = getattr(obj, "store", None)
        if store is None:
            return 0
        moved = store.remove(resource_type, want)
        return worker.store.add(resource_type, moved)

    def pickup_at(self, worker: Worker, pos: Position, resource_type: str, amount: int | None = None) -> int:
        pile = next(
            (p for p in self._dropped.values() if p.pos == pos and p.resource_type == resource_type),
            None,
        )
        if pile is None:
            return 0
        return self.withdraw(worker, pile.id, resource_type, amount)

    def transfer(self, worker: Worker, target_id: str, resource_type: str, amount: int | None = None) -> int:
        target = self._get(target_id)
        store = getattr(target, "store", None)
        if target is None or store is None or worker.pos.range_to(target.pos) > 1:
            return 0
        have = worker.store.used(resource_type)
        want = have if amount is None else min(amount, have)
        moved = store.add(resource_type, want)
        worker.store.remove(resource_type, moved)
        return moved

    def build(self, worker: Worker, site_id: str) -> ConstructionSite | None:
        site = self._sites.get(site_id)
        if site is None or worker.pos.range_to(site.pos) > 3:
            return None
        spend = min(worker.parts(BodyPart.WORK), worker.energy, math.ceil((site.progress_total - site.progress) / BUILD_POWER))
        if spend > 0:
            worker.store.remove(RESOURCE_ENERGY, spend)
            site.progress = min(site.progress_total, site.progress + spend * BUILD_POWER)
        return site

    def upgrade(self, worker: Worker, controller_id: str) -> int:
        controller = self._structures.get(controller_id)
        if controller is None or worker.pos.range_to(controller.pos) > 3:
            return 0
        spend = min(worker.parts(BodyPart.WORK), worker.energy)
        if spend > 0:
            worker.store.remove(RESOURCE_ENERGY, spend)
            controller.progress += spend * UPGRADE_POWER
        return spend

    def site(self, site_id: str) -> ConstructionSite | None:
        return self._sites.get(site_id)

    def source(self, source_id: str) -> Source | None:
        return self._sources.get(source_id)

    def free_tile_near(self, center: Position, radius: int) -> Position | None:
        for pos in _ring(center, radius):
            if self._grid.is_walkable(pos) and not self._occupied(pos):
                return pos
        return None


def _ring(center: Position, radius: int) -> list[Position]:
    """Tiles at exactly Chebyshev *radius* from *center*, in a fixed order."""
    out = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if max(abs(dx), abs(dy)) == radius:
                out.append(Position(center.x + dx, center.y + dy, center.room))
    return out
