"""
Cell model for V-Life simulation.

A cell owns one circular physics object (referenced by id) and a neuronal
network. Each update it reads its object and internal state into the
network and turns the outputs into contraction, cilia movement,
metabolism and contact energy absorption, then books the energy it
produced and consumed.

Energy flows:
- produced: molecules converted at the heritable conversion ratios,
  never beyond MAX_ENERGY
- consumed: cilia movement (kinetic energy) and contraction
- exchanged: with touching cells through membrane channels (see
  energy_absorption_from, applied by the simulator)
"""

import math
import numpy as np
from dataclasses import dataclass, field

from .genome import Genome, GenomeBuilder, GenomeReader
from .neurons import Neurons
from .physics import ObjectId, PhysicsObject
from .spatial import TWO_PI, direction_vector
from .constants import (
    NUM_MOLECULES,
    MAX_ENERGY,
    MAX_MOLECULE_AMOUNT,
    MAX_ENERGY_CONVERSION,
    MIN_MOVEMENT_COST,
    MAX_MOVEMENT_COST,
    MIN_CONTRACTION_COST,
    MAX_CONTRACTION_COST,
    MAX_CONTRACTION,
    MAX_CONTACT_ENERGY_ABSORPTION,
    MIN_SIZE,
    MAX_SPEED,
)


@dataclass
class Cell:
    """
    Cell state.

    Attributes marked (genome) are heritable, (neurons) are set from the
    network outputs every update.

    Attributes:
        object_id: Physics object of the cell
        neurons: Behaviour network (genome: weights and biases)
        size: Radius without contraction
        energy: Current energy
        last_energy: Energy at the start of the last update
        molecules: Amount of each molecule type
        molecules_energy_conversion: Energy per unit of molecule (genome)
        movement_cost: Cost factor of cilia movement (genome)
        movement_direction: Cilia direction in radians (neurons)
        movement_speed_limit: Max cilia speed (genome)
        movement_speed: Cilia speed (neurons)
        movement_velocity: Last cilia velocity [vx, vy]
        contraction_cost: Cost factor of contraction (genome)
        contraction_limit: Max contraction ratio (genome)
        contraction_amount: Contraction ratio (neurons)
        contact_energy_absorption_limit: Max membrane channels (genome)
        contact_energy_absorption_amount: Membrane channels (neurons)
        contact_count: Contacts during the current tick
        contact_normal: Sum of contact normals pointing towards this cell
        birth_time: Simulation time at creation
    """
    object_id: ObjectId
    neurons: Neurons
    size: float
    energy: float = MAX_ENERGY
    last_energy: float = MAX_ENERGY
    molecules: np.ndarray = field(default_factory=lambda: np.zeros(NUM_MOLECULES))
    molecules_energy_conversion: np.ndarray = field(default_factory=lambda: np.zeros(NUM_MOLECULES))
    movement_cost: float = MIN_MOVEMENT_COST
    movement_direction: float = 0.0
    movement_speed_limit: float = 0.0
    movement_speed: float = 0.0
    movement_velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    contraction_cost: float = MIN_CONTRACTION_COST
    contraction_limit: float = 0.0
    contraction_amount: float = 0.0
    contact_energy_absorption_limit: float = 0.0
    contact_energy_absorption_amount: float = 0.0
    contact_count: float = 0.0
    contact_normal: np.ndarray = field(default_factory=lambda: np.zeros(2))
    birth_time: float = 0.0

    @classmethod
    def random(cls, rng: np.random.Generator, object_id: ObjectId, size: float,
               birth_time: float = 0.0) -> 'Cell':
        """
        Create a cell with random heritable traits and a random network.

        Args:
            rng: numpy Generator
            object_id: Physics object owned by the cell
            size: Radius without contraction
            birth_time: Simulation time at creation

        Returns:
            New Cell with MAX_ENERGY energy
        """
        neurons = Neurons.random(rng)
        return cls(
            object_id=object_id,
            neurons=neurons,
            size=size,
            energy=MAX_ENERGY,
            last_energy=MAX_ENERGY,
            molecules=rng.uniform(0.0, MAX_MOLECULE_AMOUNT, size=NUM_MOLECULES),
            molecules_energy_conversion=rng.uniform(0.0, MAX_ENERGY_CONVERSION, size=NUM_MOLECULES),
            movement_cost=float(rng.uniform(MIN_MOVEMENT_COST, MAX_MOVEMENT_COST)),
            movement_speed_limit=float(rng.uniform(0.0, MAX_SPEED)),
            contraction_cost=float(rng.uniform(MIN_CONTRACTION_COST, MAX_CONTRACTION_COST)),
            contraction_limit=float(rng.uniform(0.0, MAX_CONTRACTION)),
            contact_energy_absorption_limit=float(rng.uniform(0.0, MAX_CONTACT_ENERGY_ABSORPTION)),
            birth_time=birth_time
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def energy_delta(self) -> float:
        return self.energy - self.last_energy

    def contracted_size(self) -> float:
        return max(self.size * (1.0 - self.contraction_amount), MIN_SIZE)

    def energy_stored(self) -> float:
        """Energy obtainable by converting every molecule."""
        return float(np.dot(self.molecules, self.molecules_energy_conversion))

    def is_dead(self) -> bool:
        return self.energy <= 0.0

    def age(self, now: float) -> float:
        return now - self.birth_time

    def energy_absorption_from(self, other: 'Cell', dt: float) -> float:
        """
        Energy this cell absorbs from other during dt.

        Absorption grows with own channels and the other's energy; the
        other's channels act as resistance.
        """
        resistance = 1.0 / (1.0 + other.contact_energy_absorption_amount)
        return self.contact_energy_absorption_amount * other.energy * resistance * dt

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, dt: float, obj: PhysicsObject):
        self._process_neurons(obj)
        self.last_energy = self.energy
        self._compute_contraction()
        self._compute_movement()
        self._compute_metabolism(dt)
        self._compute_contact_energy_absorption()
        self._compute_produced_energy(dt)
        self._compute_consumed_energy(dt, obj)

    def _process_neurons(self, obj: PhysicsObject):
        neurons = self.neurons
        neurons.set_input('velocity_pos', obj.velocity)
        neurons.set_input('velocity_magnitude', np.linalg.norm(obj.velocity))
        neurons.set_input('acceleration_pos', obj.measured_acceleration)
        neurons.set_input('acceleration_magnitude', np.linalg.norm(obj.measured_acceleration))
        neurons.set_input('radius', obj.radius)

        neurons.set_input('energy_amount', self.energy)
        neurons.set_input('energy_delta', self.energy_delta())
        neurons.set_input('energy_stored', self.energy_stored())
        neurons.set_input('molecules_amount', self.molecules)
        neurons.set_input('molecules_total', self.molecules.sum())
        neurons.set_input('movement_direction', self.movement_direction)
        neurons.set_input('movement_speed', self.movement_speed)
        neurons.set_input('contact_energy_absorption', self.contact_energy_absorption_amount)
        neurons.set_input('contact_count', self.contact_count)
        neurons.set_input('contact_normal', self.contact_normal)

        neurons.process()

    def _compute_contraction(self):
        self.contraction_amount = max(self.neurons.contraction_out(), 0.0) * self.contraction_limit

    def _compute_movement(self):
        direction = self.neurons.movement_direction_out() * TWO_PI
        self.movement_direction = math.fmod(abs(direction), TWO_PI)
        self.movement_speed = max(self.neurons.movement_speed_out(), 0.0) * self.movement_speed_limit
        self.movement_velocity = direction_vector(self.movement_direction, self.movement_speed)

    def _compute_metabolism(self, dt: float):
        """
        Transform molecules into each other.

        Row i of the factor matrix spreads the substrate taken from molecule
        i over every product. Rows are normalized to the substrate amount,
        so the molecule total is conserved.
        """
        metabolism = np.abs(self.neurons.metabolism_factors_out()).reshape(NUM_MOLECULES, NUM_MOLECULES)
        np.fill_diagonal(metabolism, 1.0)

        substrates = np.minimum(dt, self.molecules)
        metabolism *= (substrates / metabolism.sum(axis=1))[:, np.newaxis]

        products = metabolism.sum(axis=0)
        self.molecules = self.molecules + products - substrates

    def _compute_contact_energy_absorption(self):
        amount = self.contact_energy_absorption_amount + self.neurons.contact_energy_absorption_out()
        self.contact_energy_absorption_amount = float(
            np.clip(amount, 0.0, self.contact_energy_absorption_limit)
        )

    def _compute_produced_energy(self, dt: float):
        if self.energy >= MAX_ENERGY:
            return

        energy_source = np.maximum(self.neurons.energy_source_out(), 0.0)
        energy_source = np.minimum(energy_source * self.molecules_energy_conversion * dt, self.molecules)
        produced_energy = float(energy_source.sum())
        if produced_energy <= 0.0:
            return

        if self.energy + produced_energy > MAX_ENERGY:
            factor = (MAX_ENERGY - self.energy) / produced_energy
            energy_source = energy_source * factor
            produced_energy *= factor

        self.molecules = self.molecules - energy_source
        self.energy += produced_energy

    def _compute_consumed_energy(self, dt: float, obj: PhysicsObject):
        speed = float(np.linalg.norm(self.movement_velocity))
        kinetic_energy = 0.5 * obj.mass * speed * speed * self.movement_cost
        contraction_energy = self.contraction_amount * self.contraction_cost
        self.energy -= (kinetic_energy + contraction_energy) * dt

    # ------------------------------------------------------------------
    # Genome
    # ------------------------------------------------------------------

    def build_genome(self, builder: GenomeBuilder):
        builder.add_vector('molecules_energy_conversion', self.molecules_energy_conversion)
        builder.add_value('movement_cost', self.movement_cost)
        builder.add_value('movement_speed_limit', self.movement_speed_limit)
        builder.add_value('contraction_cost', self.contraction_cost)
        builder.add_value('contraction_limit', self.contraction_limit)
        builder.add_value('contact_energy_absorption_limit', self.contact_energy_absorption_limit)
        self.neurons.build_genome(builder.nested('neurons'))

    def apply_genome(self, genome: Genome):
        """Overwrite heritable traits with the genes present in genome (clamped to limits)."""
        reader = GenomeReader(genome)
        conversion = reader.vector('molecules_energy_conversion', self.molecules_energy_conversion)
        self.molecules_energy_conversion = np.clip(conversion, 0.0, MAX_ENERGY_CONVERSION)
        self.movement_cost = _clamp(
            reader.value('movement_cost', self.movement_cost), MIN_MOVEMENT_COST, MAX_MOVEMENT_COST)
        self.movement_speed_limit = _clamp(
            reader.value('movement_speed_limit', self.movement_speed_limit), 0.0, MAX_SPEED)
        self.contraction_cost = _clamp(
            reader.value('contraction_cost', self.contraction_cost), MIN_CONTRACTION_COST, MAX_CONTRACTION_COST)
        self.contraction_limit = _clamp(
            reader.value('contraction_limit', self.contraction_limit), 0.0, MAX_CONTRACTION)
        self.contact_energy_absorption_limit = _clamp(
            reader.value('contact_energy_absorption_limit', self.contact_energy_absorption_limit),
            0.0, MAX_CONTACT_ENERGY_ABSORPTION)
        self.neurons.apply_genome(reader.nested('neurons'))

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """
        Serialize cell state to JSON-compatible dict (network excluded).

        Returns:
            Dict with cell fields
        """
        return {
            'object_id': int(self.object_id),
            'size': float(self.size),
            'energy': float(self.energy),
            'last_energy': float(self.last_energy),
            'molecules': self.molecules.tolist(),
            'molecules_energy_conversion': self.molecules_energy_conversion.tolist(),
            'movement_cost': float(self.movement_cost),
            'movement_direction': float(self.movement_direction),
            'movement_speed_limit': float(self.movement_speed_limit),
            'movement_speed': float(self.movement_speed),
            'movement_velocity': self.movement_velocity.tolist(),
            'contraction_cost': float(self.contraction_cost),
            'contraction_limit': float(self.contraction_limit),
            'contraction_amount': float(self.contraction_amount),
            'contact_energy_absorption_limit': float(self.contact_energy_absorption_limit),
            'contact_energy_absorption_amount': float(self.contact_energy_absorption_amount),
            'contact_count': float(self.contact_count),
            'contact_normal': self.contact_normal.tolist(),
            'birth_time': float(self.birth_time)
        }

    def describe(self) -> str:
        contracted_size = self.contracted_size()
        contracted_pct = (self.size - contracted_size) * 100.0 / self.size if self.size else 0.0
        with np.printoptions(precision=2, suppress=True):
            lines = [
                f"Energy: Amount: {self.energy:.2f} Delta: {self.energy_delta():.6f}",
                f"Molecules: {self.molecules}, Total: {self.molecules.sum():.2f}",
                f"Molecules: Production: {self.molecules_energy_conversion}",
                f"Movement: Speed: {self.movement_speed:.2f} / {self.movement_speed_limit:.2f}, "
                f"Direction: {math.degrees(self.movement_direction):3.0f} deg, Cost: {self.movement_cost:.6f}",
                f"Contraction: Size: {contracted_size:.1f} / {self.size:.1f} ({contracted_pct:5.1f}%), "
                f"Amount: {self.contraction_amount:.3f} / {self.contraction_limit:.3f}, "
                f"Cost: {self.contraction_cost:.6f}",
                f"Contact: Energy Abs: {self.contact_energy_absorption_amount:.4f} / "
                f"{self.contact_energy_absorption_limit:.4f}, Count: {self.contact_count:.0f}",
            ]
        return "\n".join(lines + [self.neurons.describe()])


def _clamp(value: float, low: float, high: float) -> float:
    return float(min(max(value, low), high))
