"""
Particle/spring soft-body engine for articulated organisms.

Bodies are made of point particles joined by springs. Each body outline
is a PolygonCollider over its membrane particles; when a vertex of one
outline ends up inside another, it is pushed back onto the closest edge.

Algorithm (per update, num_iterations sub-steps):
1. Integrate particles (position Verlet, gravity, quadratic drag)
2. Reflect particles at the world boundaries (restitution, friction)
3. Relax springs towards their rest length
4. Resolve polygon collisions (point-in-polygon, closest edge)
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from .geometry import ClosedPolygon
from .constants import (
    SOFTBODY_STEP_TIME,
    SOFTBODY_NUM_ITERATIONS,
    SOFTBODY_GRAVITY,
    SOFTBODY_DRAG,
    SOFTBODY_RESTITUTION,
    SOFTBODY_FRICTION,
)

T = TypeVar('T')
Handle = int


class ObjectSet(Generic[T]):
    """
    Insertion-ordered registry with stable integer handles.

    Handles are never reused, so a stale handle simply resolves to None.
    """

    def __init__(self):
        self._next_id: Handle = 0
        self._objects: Dict[Handle, T] = {}

    def insert(self, obj: T) -> Handle:
        handle = self._next_id
        self._next_id += 1
        self._objects[handle] = obj
        return handle

    def get(self, handle: Handle) -> Optional[T]:
        return self._objects.get(handle)

    def remove(self, handle: Handle) -> Optional[T]:
        return self._objects.pop(handle, None)

    def keys(self) -> List[Handle]:
        return list(self._objects.keys())

    def values(self) -> List[T]:
        return list(self._objects.values())

    def items(self) -> Iterator[Tuple[Handle, T]]:
        return iter(list(self._objects.items()))

    def __contains__(self, handle: Handle) -> bool:
        return handle in self._objects

    def __len__(self) -> int:
        return len(self._objects)


class Particle:
    """Point mass integrated with position Verlet."""

    def __init__(self, position, mass: float = 1.0, radius: float = 0.0):
        self.mass = mass
        self.radius = radius
        self.position = np.array(position, dtype=np.float64)
        self.previous = self.position.copy()
        self.acceleration = np.zeros(2, dtype=np.float64)

    def with_velocity(self, velocity) -> 'Particle':
        """Set the implicit per-step velocity (builder style)."""
        self.previous = self.position - np.asarray(velocity, dtype=np.float64)
        return self

    @property
    def velocity(self) -> np.ndarray:
        return self.position - self.previous

    @property
    def inv_mass(self) -> float:
        return 0.0 if self.mass == 0.0 else 1.0 / self.mass


@dataclass
class Spring:
    """Spring between two particles (handles into SoftBodyPhysics)"""
    particle1: Handle
    particle2: Handle
    length: float
    strength: float


class PolygonCollider:
    """Collision outline over an ordered ring of particles."""

    def __init__(self, particle_handles: List[Handle], restitution: float = SOFTBODY_RESTITUTION):
        self.particle_handles = list(particle_handles)
        self.restitution = restitution
        self.polygon = ClosedPolygon.empty()
        # Handles that resolved to live particles at the last update
        self._live_handles: List[Handle] = []

    def intersects_bounding_box(self, other: 'PolygonCollider') -> bool:
        return self.polygon.bounding_box().intersects(other.polygon.bounding_box())

    def update(self, particles: ObjectSet):
        self._live_handles = [h for h in self.particle_handles if particles.get(h) is not None]
        self.polygon.update(particles.get(h).position for h in self._live_handles)

    def vertices(self) -> Iterator[Tuple[Handle, np.ndarray]]:
        return zip(self._live_handles, self.polygon.points())

    def edge_handles(self, index1: int, index2: int) -> Tuple[Handle, Handle]:
        return self._live_handles[index1], self._live_handles[index2]


class SoftBodyPhysics:
    """
    World of particles, springs and polygon colliders inside [0, W] x [0, H].
    """

    def __init__(
        self,
        world_size,
        step_time: float = SOFTBODY_STEP_TIME,
        num_iterations: int = SOFTBODY_NUM_ITERATIONS,
        gravity: float = SOFTBODY_GRAVITY,
        drag: float = SOFTBODY_DRAG,
        restitution: float = SOFTBODY_RESTITUTION,
        friction: float = SOFTBODY_FRICTION
    ):
        self.world_size = np.array(world_size, dtype=np.float64)
        self.step_time = step_time
        self.num_iterations = max(1, int(num_iterations))
        self.gravity = np.array([0.0, gravity], dtype=np.float64)
        self.drag = drag
        self.restitution = restitution
        self.friction = friction
        self.time = 0.0

        self.particles: ObjectSet = ObjectSet()
        self.springs: ObjectSet = ObjectSet()
        self.colliders: ObjectSet = ObjectSet()
        self._contacts: List[Tuple[Handle, Handle]] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_particle(self, particle: Particle) -> Handle:
        return self.particles.insert(particle)

    def get_particle(self, handle: Handle) -> Optional[Particle]:
        return self.particles.get(handle)

    def remove_particle(self, handle: Handle) -> Optional[Particle]:
        return self.particles.remove(handle)

    def add_spring(self, spring: Spring) -> Handle:
        return self.springs.insert(spring)

    def get_spring(self, handle: Handle) -> Optional[Spring]:
        return self.springs.get(handle)

    def remove_spring(self, handle: Handle) -> Optional[Spring]:
        return self.springs.remove(handle)

    def add_collider(self, collider: PolygonCollider) -> Handle:
        return self.colliders.insert(collider)

    def get_collider(self, handle: Handle) -> Optional[PolygonCollider]:
        return self.colliders.get(handle)

    def remove_collider(self, handle: Handle) -> Optional[PolygonCollider]:
        return self.colliders.remove(handle)

    def contacts(self) -> List[Tuple[Handle, Handle]]:
        """Collider pairs that had penetrating vertices in the last update."""
        return list(self._contacts)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def update(self):
        sub_step_time = self.step_time / self.num_iterations
        contacts = set()
        for _ in range(self.num_iterations):
            self._update_particles(sub_step_time)
            self._apply_world_boundaries()
            self._apply_springs()
            contacts.update(self._resolve_collisions())
        self._contacts = sorted(contacts)
        self.time += self.step_time

    def _update_particles(self, dt: float):
        half_drag = 0.5 * self.drag
        for particle in self.particles.values():
            velocity = particle.position - particle.previous
            drag = _drag_acceleration(particle.mass, velocity, half_drag)
            acceleration = particle.acceleration + self.gravity - drag
            particle.previous = particle.position.copy()
            particle.position = particle.position + velocity + acceleration * dt * dt
            particle.acceleration = np.zeros(2, dtype=np.float64)

    def _apply_world_boundaries(self):
        for particle in self.particles.values():
            for axis in (0, 1):
                self._reflect_axis(particle, axis)

    def _reflect_axis(self, particle: Particle, axis: int):
        low = particle.radius
        high = self.world_size[axis] - particle.radius
        position = particle.position[axis]
        if position > high:
            mirrored = 2.0 * high - position
        elif position < low:
            mirrored = 2.0 * low - position
        else:
            return

        velocity = particle.position - particle.previous
        tangent = 1 - axis

        new_velocity = velocity.copy()
        new_velocity[axis] = -self.restitution * velocity[axis]
        new_velocity[tangent] = velocity[tangent] * (1.0 - self.friction)

        particle.position = particle.position.copy()
        particle.position[axis] = mirrored
        particle.previous = particle.position - new_velocity

    def _apply_springs(self):
        for spring in self.springs.values():
            p1 = self.particles.get(spring.particle1)
            p2 = self.particles.get(spring.particle2)
            if p1 is None or p2 is None:
                continue

            axis = p2.position - p1.position
            distance = float(np.linalg.norm(axis))
            if distance == 0.0:
                continue

            displacement = distance - spring.length
            total_inv_mass = p1.inv_mass + p2.inv_mass
            if total_inv_mass == 0.0:
                continue

            correction = axis / distance * (spring.strength * displacement / total_inv_mass)
            p1.position = p1.position + correction * p1.inv_mass
            p2.position = p2.position - correction * p2.inv_mass

    def _resolve_collisions(self) -> List[Tuple[Handle, Handle]]:
        for collider in self.colliders.values():
            collider.update(self.particles)

        touched = []
        items = list(self.colliders.items())
        for index1 in range(len(items)):
            handle1, collider1 = items[index1]
            for index2 in range(index1 + 1, len(items)):
                handle2, collider2 = items[index2]
                if not collider1.intersects_bounding_box(collider2):
                    continue
                hits = self._resolve_between(collider1, collider2)
                hits += self._resolve_between(collider2, collider1)
                if hits:
                    touched.append((handle1, handle2))
        return touched

    def _resolve_between(self, collider: PolygonCollider, other: PolygonCollider) -> int:
        """Push collider's vertices found inside other back onto other's edges."""
        hits = 0
        for particle_handle, point in list(collider.vertices()):
            if not other.polygon.has_point_inside(point):
                continue

            segment = other.polygon.closest_segment_within_bounding_box(
                point, collider.polygon.bounding_box()
            )
            if segment is None:
                continue

            segment_handle1, segment_handle2 = other.edge_handles(segment.index1, segment.index2)
            self._resolve_point_in_polygon(
                particle_handle, point, segment_handle1, segment_handle2,
                segment.point1, segment.point2, segment.ratio
            )
            hits += 1
        return hits

    def _resolve_point_in_polygon(
        self,
        particle_handle: Handle,
        point: np.ndarray,
        segment_handle1: Handle,
        segment_handle2: Handle,
        segment_point1: np.ndarray,
        segment_point2: np.ndarray,
        ratio: float
    ):
        """
        Move the vertex and the edge towards each other until they meet.

        The separation is shared by inverse mass: the vertex takes its own
        share, the edge endpoints split theirs by the projection ratio.
        """
        p0 = self.particles.get(particle_handle)
        p1 = self.particles.get(segment_handle1)
        p2 = self.particles.get(segment_handle2)
        if p0 is None or p1 is None or p2 is None:
            return

        contact_point = (1.0 - ratio) * segment_point1 + ratio * segment_point2
        separation = contact_point - point

        inv_mass0 = p0.inv_mass
        inv_mass_edge = (1.0 - ratio) * p1.inv_mass + ratio * p2.inv_mass
        total_inv_mass = inv_mass0 + inv_mass_edge
        if total_inv_mass == 0.0:
            return

        p0.position = p0.position + separation * (inv_mass0 / total_inv_mass)

        edge_shift = -separation * (inv_mass_edge / total_inv_mass)
        weight_sq = (1.0 - ratio) ** 2 + ratio ** 2
        p1.position = p1.position + edge_shift * ((1.0 - ratio) / weight_sq)
        p2.position = p2.position + edge_shift * (ratio / weight_sq)


def _drag_acceleration(mass: float, velocity: np.ndarray, half_drag: float) -> np.ndarray:
    speed = float(np.linalg.norm(velocity))
    if speed == 0.0 or mass == 0.0:
        return np.zeros(2, dtype=np.float64)
    return half_drag * speed * velocity / mass
