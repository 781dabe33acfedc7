"""
Circle-world physics for V-Life cells.

Every cell owns one circular PhysicsObject. Objects are integrated with
position Verlet, kept inside the world rectangle with a soft response,
and pushed apart when they overlap. Overlaps are reported as contacts so
the simulator can exchange energy between touching cells.

Pair search uses scipy.cKDTree (query_pairs) with an O(n^2) fallback
selected by USE_CKDTREE.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from scipy.spatial import cKDTree

from .constants import (
    SUB_STEPS,
    RESPONSE_COEF,
    USE_CKDTREE,
    CKDTREE_LEAFSIZE,
    COINCIDENT_NORMAL,
)

ObjectId = int


@dataclass
class PhysicsObject:
    """
    Circular rigid object.

    Attributes:
        radius: Current radius (follows the cell's contraction)
        position: 2D position [x, y]
        last_position: Position at the previous step (Verlet state)
        velocity: Velocity measured at the end of the last update
        acceleration: Pending acceleration, consumed by the next integration
        measured_acceleration: Change of velocity over the last update
        mass: pi * r^2 of the radius at creation time
    """
    radius: float
    position: np.ndarray
    last_position: np.ndarray = None
    velocity: np.ndarray = None
    acceleration: np.ndarray = None
    measured_acceleration: np.ndarray = None
    mass: float = None

    def __post_init__(self):
        """Ensure vectors are float64 arrays, initialize defaults"""
        self.position = np.array(self.position, dtype=np.float64)
        if self.last_position is None:
            self.last_position = self.position.copy()
        else:
            self.last_position = np.array(self.last_position, dtype=np.float64)
        if self.velocity is None:
            self.velocity = np.zeros(2, dtype=np.float64)
        else:
            self.velocity = np.array(self.velocity, dtype=np.float64)
        if self.acceleration is None:
            self.acceleration = np.zeros(2, dtype=np.float64)
        else:
            self.acceleration = np.array(self.acceleration, dtype=np.float64)
        if self.measured_acceleration is None:
            self.measured_acceleration = np.zeros(2, dtype=np.float64)
        else:
            self.measured_acceleration = np.array(self.measured_acceleration, dtype=np.float64)
        if self.mass is None:
            self.mass = math.pi * self.radius * self.radius

    def set_radius(self, radius: float):
        """Change radius (mass is kept)."""
        self.radius = radius

    def set_velocity(self, velocity: np.ndarray, dt: float):
        """Impose velocity for the next integration step."""
        self.last_position = self.position - np.asarray(velocity, dtype=np.float64) * dt

    def add_velocity(self, velocity: np.ndarray, dt: float):
        """Add velocity on top of the current implicit Verlet velocity."""
        self.last_position = self.last_position - np.asarray(velocity, dtype=np.float64) * dt

    def describe(self) -> str:
        speed = float(np.linalg.norm(self.velocity))
        accel = self.measured_acceleration
        return (f"Radius: {self.radius:4.1f}, Mass: {self.mass:.2f}, "
                f"Position: [{self.position[0]:.2f}, {self.position[1]:.2f}]\n"
                f"Velocity: {speed:4.1f} [{self.velocity[0]:.1f}, {self.velocity[1]:.1f}], "
                f"Acceleration: {float(np.linalg.norm(accel)):4.1f} [{accel[0]:.1f}, {accel[1]:.1f}]")

    def to_dict(self) -> dict:
        """
        Serialize object to JSON-compatible dict.

        Returns:
            Dict with all object fields
        """
        return {
            'radius': float(self.radius),
            'mass': float(self.mass),
            'position': self.position.tolist(),
            'last_position': self.last_position.tolist(),
            'velocity': self.velocity.tolist(),
            'acceleration': self.acceleration.tolist(),
            'measured_acceleration': self.measured_acceleration.tolist()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PhysicsObject':
        return cls(
            radius=data['radius'],
            position=data['position'],
            last_position=data.get('last_position'),
            velocity=data.get('velocity'),
            acceleration=data.get('acceleration'),
            measured_acceleration=data.get('measured_acceleration'),
            mass=data.get('mass')
        )


@dataclass
class Contact:
    """Overlap between two objects detected during the last update"""
    id1: ObjectId
    id2: ObjectId
    normal: np.ndarray  # Unit vector pointing from id2 towards id1
    depth: float        # Overlap distance when detected


class Physics:
    """
    Physics world of circular objects inside a [0, W] x [0, H] rectangle.
    """

    def __init__(
        self,
        world_size,
        sub_steps: int = SUB_STEPS,
        response_coef: float = RESPONSE_COEF,
        use_ckdtree: bool = USE_CKDTREE
    ):
        """
        Args:
            world_size: [width, height]
            sub_steps: Collision/integration sub-steps per update
            response_coef: Fraction of the overlap corrected per sub-step
            use_ckdtree: Use cKDTree pair search (False = O(n^2) loop)
        """
        self.world_size = np.array(world_size, dtype=np.float64)
        self.sub_steps = max(1, int(sub_steps))
        self.response_coef = response_coef
        self.use_ckdtree = use_ckdtree
        self.time = 0.0

        self._next_id: ObjectId = 0
        self._objects: Dict[ObjectId, PhysicsObject] = {}
        self._contacts: List[Contact] = []
        self._contact_pairs = set()

    # ------------------------------------------------------------------
    # Object registry
    # ------------------------------------------------------------------

    def add_object(self, position, radius: float) -> ObjectId:
        object_id = self._next_id
        self._next_id += 1
        self._objects[object_id] = PhysicsObject(radius=radius, position=position)
        return object_id

    def get_object(self, object_id: ObjectId) -> Optional[PhysicsObject]:
        return self._objects.get(object_id)

    def remove_object(self, object_id: ObjectId) -> Optional[PhysicsObject]:
        return self._objects.pop(object_id, None)

    def set_object_velocity(self, object_id: ObjectId, velocity, dt: float):
        obj = self._objects.get(object_id)
        if obj is not None:
            obj.set_velocity(velocity, dt)

    def objects(self) -> Iterator[Tuple[ObjectId, PhysicsObject]]:
        """Iterate (object_id, object) in insertion order."""
        return iter(list(self._objects.items()))

    def contacts(self) -> List[Contact]:
        return list(self._contacts)

    def __len__(self) -> int:
        return len(self._objects)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def update(self, dt: float):
        """
        Advance the world by dt.

        Per sub-step: resolve overlaps, apply wall constraints, integrate.
        Velocity and acceleration are measured at the end of the update.
        """
        self.time += dt
        self._contacts = []
        self._contact_pairs = set()
        step_dt = dt / self.sub_steps

        previous_velocities = {oid: obj.velocity.copy() for oid, obj in self._objects.items()}

        for _ in range(self.sub_steps):
            self._check_collisions()
            self._apply_constraints()
            self._update_objects(step_dt)

        self._end_update(step_dt, dt, previous_velocities)

    def _candidate_pairs(self, ids: List[ObjectId]) -> List[Tuple[int, int]]:
        """
        Candidate (row_i, row_j) pairs with i < j, sorted for determinism.

        cKDTree mode: pairs whose centres are within twice the largest radius
        Fallback mode: every pair
        """
        n = len(ids)
        if n < 2:
            return []

        if not self.use_ckdtree:
            return [(i, j) for i in range(n) for j in range(i + 1, n)]

        positions = np.array([self._objects[oid].position for oid in ids], dtype=np.float64)
        max_radius = max(self._objects[oid].radius for oid in ids)
        if max_radius <= 0.0:
            return []

        tree = cKDTree(positions, leafsize=CKDTREE_LEAFSIZE)
        pairs = tree.query_pairs(r=2.0 * max_radius, output_type='ndarray')
        if len(pairs) == 0:
            return []
        order = np.lexsort((pairs[:, 1], pairs[:, 0]))
        return [(int(i), int(j)) for i, j in pairs[order]]

    def _check_collisions(self):
        ids = list(self._objects.keys())
        for i, j in self._candidate_pairs(ids):
            id1, id2 = ids[i], ids[j]
            o1 = self._objects[id1]
            o2 = self._objects[id2]

            # Positions may have moved since the pair search, re-test
            v = o1.position - o2.position
            dist2 = float(np.dot(v, v))
            min_dist = o1.radius + o2.radius
            if dist2 >= min_dist * min_dist:
                continue

            dist = math.sqrt(dist2)
            if dist > 0.0:
                normal = v / dist
            else:
                normal = np.array(COINCIDENT_NORMAL, dtype=np.float64)
            overlap = min_dist - dist

            if (id1, id2) not in self._contact_pairs:
                self._contact_pairs.add((id1, id2))
                self._contacts.append(Contact(id1=id1, id2=id2, normal=normal.copy(), depth=overlap))

            # Lighter object takes the larger share of the correction
            total_mass = o1.mass + o2.mass
            share_1 = o2.mass / total_mass
            share_2 = o1.mass / total_mass
            delta = 0.5 * self.response_coef * overlap
            o1.position = o1.position + normal * (share_1 * delta)
            o2.position = o2.position - normal * (share_2 * delta)

    def _apply_constraints(self):
        response = 0.5 * self.response_coef
        width, height = self.world_size
        for obj in self._objects.values():
            x, y = obj.position
            r = obj.radius
            if x + r >= width:
                x -= response * (x + r - width)
            elif x - r < 0.0:
                x += response * (r - x)
            if y + r >= height:
                y -= response * (y + r - height)
            elif y - r < 0.0:
                y += response * (r - y)
            obj.position = np.array([x, y], dtype=np.float64)

    def _update_objects(self, dt: float):
        for obj in self._objects.values():
            displacement = obj.position - obj.last_position
            obj.last_position = obj.position.copy()
            obj.position = obj.position + displacement + obj.acceleration * (dt * dt)
            obj.acceleration = np.zeros(2, dtype=np.float64)

    def _end_update(self, step_dt: float, dt: float, previous_velocities: Dict[ObjectId, np.ndarray]):
        for object_id, obj in self._objects.items():
            velocity = (obj.position - obj.last_position) / step_dt
            previous = previous_velocities.get(object_id, velocity)
            obj.measured_acceleration = (velocity - previous) / dt
            obj.velocity = velocity
