"""
V-Life simulation kernel.

Main simulation class that manages the cell lifecycle, the tick loop and
the circle-world physics.

Tick order:
1. Physics step (collisions, world walls, integration, contacts)
2. Contact handling (energy diffusion between touching cells)
3. Cell update (neurons, contraction, movement, metabolism, energy)
4. Dead cell removal (lifetime scored into the rank)
5. Evolution: refill the population with offspring of ranked genomes
"""

import numpy as np
import time
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .cell import Cell
from .cell_rank import CellRank
from .data_types import WorldConfig
from .genome import Genome
from .loader import load_world
from .physics import ObjectId, Physics, PhysicsObject
from .rng import make_rng, random_position_in_box
from .spatial import distance_2d
from .constants import (
    MIN_SIZE,
    MAX_SIZE,
    TICK_TIME_WINDOW,
    FREE_POSITION_MAX_ATTEMPTS,
    TESTING_CELL_POSITION,
    TESTING_CELL_RADIUS,
    TESTING_CELL_ENERGY,
    TESTING_CELL_SPEED,
    TESTING_CELL_DIRECTION,
)

CellId = int


class CellView:
    """
    Read-only view joining a cell with its physics object.
    """

    def __init__(self, cell_id: CellId, cell: Cell, obj: PhysicsObject):
        self.cell_id = cell_id
        self.cell = cell
        self._object = obj

    @property
    def id(self) -> CellId:
        return self.cell_id

    def position(self) -> np.ndarray:
        return self._object.position.copy()

    def radius(self) -> float:
        return self._object.radius

    def velocity(self) -> np.ndarray:
        return self._object.velocity.copy()

    def describe(self) -> str:
        return f"Cell {self.cell_id}\n{self._object.describe()}\n{self.cell.describe()}"


class Simulator:
    """
    Main simulation class for the cell world.

    Cells are kept in insertion order; cell ids and physics object ids are
    never reused.
    """

    def __init__(self, world: WorldConfig, populate: bool = True):
        """
        Initialize simulation from a world configuration.

        Args:
            world: Loaded world configuration
            populate: Spawn world.simulation.num_initial_cells random cells
        """
        self.world = world
        self.world_size = np.array(world.size, dtype=np.float64)
        self.dt: float = world.simulation.tick_delta_seconds

        self.physics = Physics(
            self.world_size,
            sub_steps=world.physics.sub_steps,
            response_coef=world.physics.response_coef,
            use_ckdtree=world.physics.use_ckdtree
        )

        # Simulation state
        self.time: float = 0.0
        self.tick_count: int = 0
        self.dead_cells: List[CellId] = []
        self.births: int = 0
        self.deaths: int = 0
        self._next_cell_id: CellId = 0
        self._cells: Dict[CellId, Cell] = {}
        self._object_cell: Dict[ObjectId, CellId] = {}

        # Evolution
        self.rank = CellRank(world.evolution.rank_size)
        self._spawn_rng = make_rng(world.seed, "spawn")
        self._evolution_rng = make_rng(world.seed, "evolution")

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW  # Rolling average window

        if populate:
            num_cells = world.simulation.num_initial_cells
            print(f"Spawning cells (count={num_cells})...")
            for _ in range(num_cells):
                self.add_random_cell()

        print(f"[OK] Simulation initialized: {len(self._cells)} cells, "
              f"dt={self.dt}s, seed={world.seed}")

    @classmethod
    def from_file(cls, config_path: Path, schema_dir: Optional[Path] = None,
                  populate: bool = True) -> 'Simulator':
        """Load a world YAML (validated when schema_dir is given) and build a simulator."""
        print("Loading world config...")
        return cls(load_world(config_path, schema_dir), populate=populate)

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def cells(self) -> Iterator[Tuple[CellId, Cell]]:
        """Iterate (cell_id, cell) in insertion order."""
        return iter(list(self._cells.items()))

    def num_cells(self) -> int:
        return len(self._cells)

    def get_cell(self, cell_id: CellId) -> Optional[Cell]:
        return self._cells.get(cell_id)

    def get_cell_object(self, cell_id: CellId) -> Optional[PhysicsObject]:
        cell = self._cells.get(cell_id)
        if cell is None:
            return None
        return self.physics.get_object(cell.object_id)

    def get_cell_view(self, cell_id: CellId) -> Optional[CellView]:
        cell = self._cells.get(cell_id)
        if cell is None:
            return None
        obj = self.physics.get_object(cell.object_id)
        if obj is None:
            return None
        return CellView(cell_id, cell, obj)

    def _register_cell(self, cell: Cell) -> CellId:
        cell_id = self._next_cell_id
        self._next_cell_id += 1
        self._cells[cell_id] = cell
        self._object_cell[cell.object_id] = cell_id
        return cell_id

    def add_random_cell(self, genome: Optional[Genome] = None) -> CellId:
        """
        Spawn a random cell at a free position.

        Args:
            genome: Optional genome applied over the random traits

        Returns:
            New cell id

        Raises:
            RuntimeError: If no free position is found
        """
        radius = float(self._spawn_rng.uniform(MIN_SIZE, MAX_SIZE))
        position = self._find_free_position(radius)
        object_id = self.physics.add_object(position, radius)

        cell_rng = make_rng(self.world.seed, "cell", self._next_cell_id)
        cell = Cell.random(cell_rng, object_id, radius, birth_time=self.time)
        if genome is not None:
            cell.apply_genome(genome)
        return self._register_cell(cell)

    def add_testing_cell(self) -> CellId:
        """Add the probe cell: fixed place and size, no molecules, huge energy."""
        object_id = self.physics.add_object(TESTING_CELL_POSITION, TESTING_CELL_RADIUS)
        cell_rng = make_rng(self.world.seed, "cell", self._next_cell_id)
        cell = Cell.random(cell_rng, object_id, TESTING_CELL_RADIUS, birth_time=self.time)
        cell.molecules = np.zeros_like(cell.molecules)
        cell.energy = TESTING_CELL_ENERGY
        cell.movement_speed_limit = TESTING_CELL_SPEED
        cell.movement_direction = TESTING_CELL_DIRECTION
        cell.movement_speed = TESTING_CELL_SPEED
        return self._register_cell(cell)

    def remove_cell(self, cell_id: CellId) -> Optional[Cell]:
        """Remove a cell and its physics object (not scored)."""
        cell = self._cells.pop(cell_id, None)
        if cell is None:
            return None
        self._object_cell.pop(cell.object_id, None)
        self.physics.remove_object(cell.object_id)
        return cell

    def _find_free_position(self, radius: float) -> np.ndarray:
        """
        Rejection-sample a position whose disk lies inside the world and
        overlaps no existing object.

        Raises:
            RuntimeError: After FREE_POSITION_MAX_ATTEMPTS failed samples
        """
        objects = [obj for _, obj in self.physics.objects()]
        if objects:
            centers = np.array([obj.position for obj in objects], dtype=np.float64)
            radii = np.array([obj.radius for obj in objects], dtype=np.float64)
        else:
            centers = np.zeros((0, 2), dtype=np.float64)
            radii = np.zeros(0, dtype=np.float64)

        for _ in range(FREE_POSITION_MAX_ATTEMPTS):
            position = random_position_in_box(self._spawn_rng, self.world_size, margin=radius)
            if len(radii) == 0:
                return position
            distances = np.linalg.norm(centers - position, axis=1)
            if np.all(distances > radii + radius):
                return position

        raise RuntimeError(f"No free position for a cell of radius {radius:.2f} "
                           f"after {FREE_POSITION_MAX_ATTEMPTS} attempts")

    def get_cell_id_closer_to(self, x: float, y: float) -> Optional[CellId]:
        """
        Cell selected by a point.

        Cells whose disk contains the point win over the others; among
        equals the nearest centre wins, then the oldest cell.
        """
        point = np.array([x, y], dtype=np.float64)
        selected = None
        selected_key = None
        for cell_id, cell in self._cells.items():
            obj = self.physics.get_object(cell.object_id)
            if obj is None:
                continue
            dist = distance_2d(obj.position, point)
            key = (dist > obj.radius, dist)
            if selected_key is None or key < selected_key:
                selected = cell_id
                selected_key = key
        return selected

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, dt: Optional[float] = None):
        """
        Advance simulation by one tick.

        Args:
            dt: Time step in seconds (default: world tick_delta_seconds)
        """
        start_time = time.perf_counter()
        if dt is None:
            dt = self.dt

        self.dead_cells = []
        self.physics.update(dt)
        self.time += dt

        self._handle_contacts(dt)
        self._update_cells(dt)
        self._remove_dead_cells()

        if self.world.evolution.enabled:
            self._refill_population()

        self.tick_count += 1

        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

    def _handle_contacts(self, dt: float):
        """Exchange energy between touching cells and record contact inputs."""
        for cell in self._cells.values():
            cell.contact_count = 0.0
            cell.contact_normal = np.zeros(2, dtype=np.float64)

        for contact in self.physics.contacts():
            cell1 = self._cells.get(self._object_cell.get(contact.id1))
            cell2 = self._cells.get(self._object_cell.get(contact.id2))
            if cell1 is None or cell2 is None:
                continue

            delta1 = cell1.energy_absorption_from(cell2, dt)
            delta2 = cell2.energy_absorption_from(cell1, dt)

            cell1.energy += delta1 - delta2
            cell1.contact_count += 1.0
            cell1.contact_normal = cell1.contact_normal + contact.normal

            cell2.energy += delta2 - delta1
            cell2.contact_count += 1.0
            cell2.contact_normal = cell2.contact_normal - contact.normal

    def _update_cells(self, dt: float):
        step_dt = dt / self.physics.sub_steps
        for cell_id, cell in self._cells.items():
            obj = self.physics.get_object(cell.object_id)
            if obj is not None:
                cell.update(dt, obj)
                obj.set_radius(cell.contracted_size())
                # Blend the current velocity with the cilia velocity
                obj.set_velocity(0.5 * (obj.velocity + cell.movement_velocity), step_dt)
            if cell.is_dead():
                self.dead_cells.append(cell_id)

    def _remove_dead_cells(self):
        for cell_id in self.dead_cells:
            cell = self.remove_cell(cell_id)
            if cell is None:
                continue
            self.rank.insert(cell.age(self.time), cell)
            self.deaths += 1

    def _min_population(self) -> int:
        return self.world.evolution.min_population or self.world.simulation.num_initial_cells

    def _refill_population(self):
        """Add offspring until the population is back at its minimum."""
        target = self._min_population()
        while len(self._cells) < target:
            genome = self.breed_genome()
            try:
                self.add_random_cell(genome)
            except RuntimeError as e:
                print(f"[WARN] Population refill stopped at {len(self._cells)}/{target}: {e}")
                break
            self.births += 1

    def breed_genome(self) -> Optional[Genome]:
        """
        Offspring genome of two ranked parents (crossover then mutation).

        Returns:
            Child genome, or None while the rank is empty
        """
        evolution = self.world.evolution
        parent1 = self.rank.choose_random_genome(self._evolution_rng)
        parent2 = self.rank.choose_random_genome(self._evolution_rng)
        if parent1 is None or parent2 is None:
            return None
        child = parent1.cross(parent2, self._evolution_rng)
        child.mutate(evolution.num_mutations, evolution.mutation_probability,
                     self._evolution_rng, scale=evolution.mutation_scale)
        return child

    # ------------------------------------------------------------------
    # Statistics and output
    # ------------------------------------------------------------------

    def get_tick_stats(self) -> dict:
        """
        Get current tick timing statistics.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
        """
        if not self._tick_times:
            return {
                'tick_count': self.tick_count,
                'avg_tick_time_ms': 0.0,
                'last_tick_time_ms': 0.0
            }

        avg_time = self._tick_time_sum / len(self._tick_times)
        last_time = self._tick_times[-1]

        return {
            'tick_count': self.tick_count,
            'avg_tick_time_ms': avg_time * 1000.0,
            'last_tick_time_ms': last_time * 1000.0
        }

    def _record_tick_time(self, elapsed: float):
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

    def get_population_stats(self) -> dict:
        """
        Population and evolution counters.

        Returns:
            Dict with cell_count, energy stats, mean_age, deaths, births,
            dead_last_tick, rank_size, best_score
        """
        energies = np.array([cell.energy for cell in self._cells.values()], dtype=np.float64)
        ages = np.array([cell.age(self.time) for cell in self._cells.values()], dtype=np.float64)
        best = self.rank.best()
        return {
            'cell_count': len(self._cells),
            'mean_energy': float(energies.mean()) if len(energies) else 0.0,
            'min_energy': float(energies.min()) if len(energies) else 0.0,
            'max_energy': float(energies.max()) if len(energies) else 0.0,
            'mean_age': float(ages.mean()) if len(ages) else 0.0,
            'deaths': self.deaths,
            'births': self.births,
            'dead_last_tick': len(self.dead_cells),
            'rank_size': len(self.rank),
            'best_score': best[0] if best is not None else None
        }

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot.

        Returns:
            Dict with tick_count, time, cells, population, timing
        """
        cells = []
        for cell_id, cell in self._cells.items():
            obj = self.physics.get_object(cell.object_id)
            entry = {'cell_id': cell_id}
            if obj is not None:
                entry['object'] = obj.to_dict()
            entry.update(cell.to_dict())
            cells.append(entry)

        return {
            'tick_count': self.tick_count,
            'time': self.time,
            'cell_count': len(self._cells),
            'cells': cells,
            'population': self.get_population_stats(),
            'timing': self.get_tick_stats()
        }

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_tick_stats()
        population = self.get_population_stats()
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Last: {stats['last_tick_time_ms']:6.3f} ms | "
              f"Cells: {population['cell_count']} | "
              f"Energy: {population['mean_energy']:7.2f} | "
              f"Deaths: {population['deaths']} | Births: {population['births']}")
