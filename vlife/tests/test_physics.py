"""
Test circle-world physics

Verifies:
- Verlet integration keeps imposed velocities
- Overlapping objects are separated and reported once per update
- Lighter objects take the larger share of the correction
- Objects are pushed back inside the world
- cKDTree and O(n^2) pair search agree
"""

import math
import numpy as np

from vlife.physics import Physics, PhysicsObject
from vlife.rng import make_rng

DT = 1.0 / 60.0


def test_object_mass_fixed_at_creation():
    obj = PhysicsObject(radius=2.0, position=[10.0, 10.0])
    assert np.isclose(obj.mass, math.pi * 4.0)
    obj.set_radius(5.0)
    assert obj.radius == 5.0
    assert np.isclose(obj.mass, math.pi * 4.0)


def test_object_ids_are_monotonic():
    physics = Physics([100.0, 100.0])
    a = physics.add_object([10.0, 10.0], 1.0)
    b = physics.add_object([20.0, 20.0], 1.0)
    assert physics.remove_object(a) is not None
    c = physics.add_object([30.0, 30.0], 1.0)
    assert (a, b, c) == (0, 1, 2)
    assert physics.get_object(a) is None
    assert physics.remove_object(a) is None
    assert [oid for oid, _ in physics.objects()] == [1, 2]


def test_free_object_keeps_velocity():
    physics = Physics([1000.0, 1000.0])
    oid = physics.add_object([500.0, 500.0], 1.0)
    physics.set_object_velocity(oid, [60.0, 0.0], DT)

    for _ in range(10):
        physics.update(DT)

    obj = physics.get_object(oid)
    assert np.allclose(obj.position, [510.0, 500.0])
    assert np.allclose(obj.velocity, [60.0, 0.0])
    assert np.allclose(obj.measured_acceleration, [0.0, 0.0])
    assert np.isclose(physics.time, 10 * DT)


def test_add_velocity_stacks_on_current_velocity():
    physics = Physics([1000.0, 1000.0])
    oid = physics.add_object([500.0, 500.0], 1.0)
    physics.set_object_velocity(oid, [60.0, 0.0], DT)
    obj = physics.get_object(oid)

    last_position = obj.last_position.copy()
    obj.add_velocity(np.array([0.0, 30.0]), DT)
    assert np.allclose(obj.last_position, last_position - np.array([0.0, 30.0]) * DT)

    physics.update(DT)
    assert np.allclose(obj.velocity, [60.0, 30.0])
    assert np.allclose(obj.position, [501.0, 500.5])


def test_pending_acceleration_is_consumed():
    physics = Physics([1000.0, 1000.0])
    oid = physics.add_object([500.0, 500.0], 1.0)
    obj = physics.get_object(oid)
    obj.acceleration = np.array([3600.0, 0.0])

    physics.update(DT)
    assert np.allclose(obj.position, [501.0, 500.0])
    assert np.allclose(obj.acceleration, [0.0, 0.0])

    physics.update(DT)
    # Keeps drifting at the velocity gained, no second kick
    assert np.allclose(obj.position, [502.0, 500.0])


def test_overlap_reported_once_and_separated():
    physics = Physics([200.0, 200.0])
    a = physics.add_object([100.0, 100.0], 5.0)
    b = physics.add_object([108.0, 100.0], 5.0)

    physics.update(DT)
    contacts = physics.contacts()
    assert len(contacts) == 1
    contact = contacts[0]
    assert (contact.id1, contact.id2) == (a, b)
    # Normal points from id2 towards id1
    assert np.allclose(contact.normal, [-1.0, 0.0])
    assert np.isclose(contact.depth, 2.0)

    before = 8.0
    after = np.linalg.norm(physics.get_object(b).position - physics.get_object(a).position)
    assert after > before


def test_lighter_object_moves_more():
    physics = Physics([200.0, 200.0])
    heavy = physics.add_object([100.0, 100.0], 8.0)
    light = physics.add_object([110.0, 100.0], 4.0)

    physics.update(DT)
    heavy_shift = abs(physics.get_object(heavy).position[0] - 100.0)
    light_shift = abs(physics.get_object(light).position[0] - 110.0)
    assert light_shift > heavy_shift
    # Mass ratio 4:1
    assert np.isclose(light_shift, 4.0 * heavy_shift)


def test_coincident_centres_use_default_normal():
    physics = Physics([200.0, 200.0])
    a = physics.add_object([100.0, 100.0], 2.0)
    b = physics.add_object([100.0, 100.0], 2.0)
    physics.update(DT)
    assert np.allclose(physics.contacts()[0].normal, [1.0, 0.0])
    assert physics.get_object(a).position[0] > physics.get_object(b).position[0]


def test_separated_objects_have_no_contacts():
    physics = Physics([200.0, 200.0])
    physics.add_object([50.0, 50.0], 5.0)
    physics.add_object([60.0, 50.0], 5.0)  # exactly touching
    physics.update(DT)
    assert physics.contacts() == []


def test_world_constraint_pushes_inside():
    physics = Physics([100.0, 100.0])
    oid = physics.add_object([99.0, 1.0], 5.0)
    obj = physics.get_object(oid)

    physics.update(DT)

    assert obj.position[0] < 99.0
    assert obj.position[1] > 1.0
    assert obj.velocity[0] < 0.0
    assert obj.velocity[1] > 0.0


def test_object_inside_world_is_untouched():
    physics = Physics([100.0, 100.0])
    oid = physics.add_object([50.0, 50.0], 5.0)
    physics.update(DT)
    assert np.allclose(physics.get_object(oid).position, [50.0, 50.0])


def test_ckdtree_matches_quadratic_pair_search():
    rng = make_rng(3, "physics-ab")
    positions = rng.random((60, 2)) * [300.0, 200.0]
    radii = rng.uniform(1.0, 4.0, size=60)

    worlds = []
    for use_ckdtree in (True, False):
        physics = Physics([300.0, 200.0], use_ckdtree=use_ckdtree)
        for position, radius in zip(positions, radii):
            physics.add_object(position, radius)
        for _ in range(20):
            physics.update(DT)
        worlds.append(physics)

    fast, slow = worlds
    fast_positions = np.array([obj.position for _, obj in fast.objects()])
    slow_positions = np.array([obj.position for _, obj in slow.objects()])
    assert np.allclose(fast_positions, slow_positions)
    assert [(c.id1, c.id2) for c in fast.contacts()] == [(c.id1, c.id2) for c in slow.contacts()]


def test_object_round_trip_dict():
    obj = PhysicsObject(radius=3.0, position=[1.0, 2.0], velocity=[0.5, 0.0])
    restored = PhysicsObject.from_dict(obj.to_dict())
    assert restored.radius == obj.radius
    assert np.isclose(restored.mass, obj.mass)
    assert np.allclose(restored.position, obj.position)
    assert np.allclose(restored.velocity, obj.velocity)
