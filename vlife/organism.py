"""
Articulated organisms built on the soft-body engine.

A CellBody is a centre particle surrounded by a ring of membrane particles.
Spokes (centre to membrane) and ring edges are springs; the ring is also
the body's collision outline. An Organism groups cell bodies and links
their centres with springs so the bodies move as one articulated creature.
"""

import math
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .geometry import polygon_area
from .softbody import Handle, Particle, PolygonCollider, SoftBodyPhysics, Spring
from .constants import MEMBRANE_PARTICLES_DEFAULT, MEMBRANE_SPRING_STRENGTH


@dataclass
class CellBody:
    """Handles of the particles, springs and collider making up one cell"""
    physics: SoftBodyPhysics
    center: Handle
    particles: List[Handle]
    springs: List[Handle]
    collider: Handle

    def position(self) -> np.ndarray:
        return self.physics.get_particle(self.center).position.copy()

    def membrane(self) -> List[np.ndarray]:
        """Membrane vertex positions in ring order."""
        points = []
        for handle in self.particles:
            particle = self.physics.get_particle(handle)
            if particle is not None:
                points.append(particle.position.copy())
        return points

    def radius(self) -> float:
        """Mean distance from the centre to the membrane."""
        center = self.position()
        membrane = self.membrane()
        if not membrane:
            return 0.0
        return float(np.mean([np.linalg.norm(p - center) for p in membrane]))

    def area(self) -> float:
        return abs(polygon_area(self.membrane()))

    def remove(self):
        """Remove every particle, spring and the collider from the world."""
        for handle in self.springs:
            self.physics.remove_spring(handle)
        for handle in self.particles:
            self.physics.remove_particle(handle)
        self.physics.remove_particle(self.center)
        self.physics.remove_collider(self.collider)


def build_cell_body(
    physics: SoftBodyPhysics,
    position,
    radius: float,
    num_membrane_particles: int = MEMBRANE_PARTICLES_DEFAULT,
    strength: float = MEMBRANE_SPRING_STRENGTH,
    mass: float = 1.0
) -> CellBody:
    """
    Create a cell body in physics.

    Args:
        physics: Soft-body world to populate
        position: Centre [x, y]
        radius: Rest distance from centre to membrane
        num_membrane_particles: Ring size (>= 3)
        strength: Spring stiffness in (0, 1]
        mass: Mass of each particle

    Returns:
        CellBody with handles into physics

    Raises:
        ValueError: If the ring has fewer than 3 particles or radius <= 0
    """
    if num_membrane_particles < 3:
        raise ValueError(f"A cell membrane needs at least 3 particles, got {num_membrane_particles}")
    if radius <= 0:
        raise ValueError(f"Cell radius must be positive, got {radius}")

    center_position = np.asarray(position, dtype=np.float64)
    center = physics.add_particle(Particle(center_position, mass=mass))

    particles = []
    for i in range(num_membrane_particles):
        angle = 2.0 * math.pi * i / num_membrane_particles
        offset = np.array([math.cos(angle), math.sin(angle)]) * radius
        particles.append(physics.add_particle(Particle(center_position + offset, mass=mass)))

    edge_length = 2.0 * radius * math.sin(math.pi / num_membrane_particles)
    springs = []
    for i, handle in enumerate(particles):
        springs.append(physics.add_spring(Spring(center, handle, radius, strength)))
        next_handle = particles[(i + 1) % num_membrane_particles]
        springs.append(physics.add_spring(Spring(handle, next_handle, edge_length, strength)))

    collider = physics.add_collider(PolygonCollider(particles))

    return CellBody(
        physics=physics,
        center=center,
        particles=particles,
        springs=springs,
        collider=collider
    )


@dataclass
class Organism:
    """Multicellular organism: cell bodies joined centre to centre"""
    physics: SoftBodyPhysics
    name: str = "organism"
    cells: List[CellBody] = field(default_factory=list)
    links: List[Tuple[int, int, Handle]] = field(default_factory=list)

    def add_cell(
        self,
        position,
        radius: float,
        num_membrane_particles: int = MEMBRANE_PARTICLES_DEFAULT,
        strength: float = MEMBRANE_SPRING_STRENGTH
    ) -> int:
        """Add a cell body and return its index in the organism."""
        body = build_cell_body(self.physics, position, radius, num_membrane_particles, strength)
        self.cells.append(body)
        return len(self.cells) - 1

    def link(self, index1: int, index2: int, strength: float = MEMBRANE_SPRING_STRENGTH,
             length: Optional[float] = None) -> Handle:
        """
        Join two cells with a centre-to-centre spring.

        The rest length defaults to the current centre distance.
        """
        if index1 == index2:
            raise ValueError("Cannot link a cell to itself")
        body1 = self.cells[index1]
        body2 = self.cells[index2]
        if length is None:
            length = float(np.linalg.norm(body2.position() - body1.position()))
        handle = self.physics.add_spring(Spring(body1.center, body2.center, length, strength))
        self.links.append((index1, index2, handle))
        return handle

    def positions(self) -> List[np.ndarray]:
        return [body.position() for body in self.cells]

    def center_of_mass(self) -> np.ndarray:
        """Mass-weighted mean of all particles in the organism."""
        total_mass = 0.0
        weighted = np.zeros(2, dtype=np.float64)
        for body in self.cells:
            for handle in [body.center] + body.particles:
                particle = self.physics.get_particle(handle)
                if particle is None:
                    continue
                total_mass += particle.mass
                weighted += particle.mass * particle.position
        if total_mass == 0.0:
            return weighted
        return weighted / total_mass
