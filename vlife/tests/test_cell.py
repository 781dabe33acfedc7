"""
Test cell model

Verifies:
- Random traits stay within their limits
- Metabolism conserves the molecule total
- Energy production never exceeds MAX_ENERGY
- Update keeps neuron-driven values within their genome limits
- Genome export/import with clamping
"""

import json
import math
import numpy as np

from vlife.cell import Cell
from vlife.constants import (
    MAX_ENERGY,
    MAX_MOVEMENT_COST,
    MIN_MOVEMENT_COST,
    MAX_CONTRACTION,
    MAX_SPEED,
    MAX_CONTACT_ENERGY_ABSORPTION,
    NUM_MOLECULES,
)
from vlife.genome import Gene, Genome, build_genome_of
from vlife.physics import PhysicsObject
from vlife.rng import make_rng


def make_cell(seed=1, size=5.0):
    return Cell.random(make_rng(seed, "cell"), object_id=0, size=size, birth_time=2.0)


def test_random_cell_within_limits():
    for seed in range(20):
        cell = make_cell(seed)
        assert cell.energy == MAX_ENERGY
        assert cell.molecules.shape == (NUM_MOLECULES,)
        assert np.all((cell.molecules >= 0.0) & (cell.molecules <= 100.0))
        assert np.all((cell.molecules_energy_conversion >= 0.0) & (cell.molecules_energy_conversion < 10.0))
        assert MIN_MOVEMENT_COST <= cell.movement_cost < MAX_MOVEMENT_COST
        assert 0.0 <= cell.movement_speed_limit <= MAX_SPEED
        assert 0.0 <= cell.contraction_limit <= MAX_CONTRACTION
        assert 0.0 <= cell.contact_energy_absorption_limit <= MAX_CONTACT_ENERGY_ABSORPTION


def test_metabolism_conserves_molecules():
    cell = make_cell()
    cell.neurons.process()
    total = cell.molecules.sum()

    cell._compute_metabolism(0.5)

    assert np.isclose(cell.molecules.sum(), total)
    assert np.all(cell.molecules >= 0.0)


def test_metabolism_limited_by_scarce_molecules():
    cell = make_cell()
    cell.neurons.process()
    cell.molecules = np.array([0.0, 0.1, 5.0, 5.0, 5.0, 5.0, 5.0, 5.0])
    total = cell.molecules.sum()

    cell._compute_metabolism(1.0)

    assert np.isclose(cell.molecules.sum(), total)
    assert np.all(cell.molecules >= 0.0)


def test_produced_energy_capped_at_max():
    cell = make_cell()
    cell.neurons.layer2.outputs = np.ones(76)
    cell.molecules_energy_conversion = np.full(NUM_MOLECULES, 5.0)
    cell.molecules = np.full(NUM_MOLECULES, 10.0)
    cell.energy = 99.0

    cell._compute_produced_energy(1.0)

    assert np.isclose(cell.energy, MAX_ENERGY)
    # One unit of energy taken from molecules
    assert np.isclose(cell.molecules.sum(), 80.0 - 1.0)


def test_no_production_when_full_or_no_molecules():
    cell = make_cell()
    cell.neurons.layer2.outputs = np.ones(76)
    cell.energy = MAX_ENERGY
    before = cell.molecules.copy()
    cell._compute_produced_energy(1.0)
    assert cell.energy == MAX_ENERGY
    assert np.array_equal(cell.molecules, before)

    cell.energy = 10.0
    cell.molecules = np.zeros(NUM_MOLECULES)
    cell._compute_produced_energy(1.0)
    assert cell.energy == 10.0


def test_consumed_energy_formula():
    cell = make_cell()
    obj = PhysicsObject(radius=2.0, position=[0.0, 0.0])
    cell.energy = 50.0
    cell.movement_velocity = np.array([3.0, 4.0])
    cell.movement_cost = 0.0004
    cell.contraction_amount = 0.5
    cell.contraction_cost = 0.001

    cell._compute_consumed_energy(0.1, obj)

    kinetic = 0.5 * obj.mass * 25.0 * 0.0004
    expected = 50.0 - (kinetic + 0.5 * 0.001) * 0.1
    assert np.isclose(cell.energy, expected)


def test_contracted_size_floor():
    cell = make_cell(size=1.2)
    cell.contraction_amount = 0.8
    assert cell.contracted_size() == 1.0

    cell = make_cell(size=10.0)
    cell.contraction_amount = 0.5
    assert np.isclose(cell.contracted_size(), 5.0)


def test_energy_absorption_from():
    a = make_cell(1)
    b = make_cell(2)
    a.contact_energy_absorption_amount = 1.0
    b.contact_energy_absorption_amount = 0.5
    b.energy = 30.0
    assert np.isclose(a.energy_absorption_from(b, 0.1), 1.0 * 30.0 / 1.5 * 0.1)
    b.contact_energy_absorption_amount = 0.0
    assert b.energy_absorption_from(a, 0.1) == 0.0


def test_update_keeps_neuron_values_in_limits():
    obj = PhysicsObject(radius=5.0, position=[50.0, 50.0])
    dt = 1.0 / 60.0
    for seed in range(10):
        cell = make_cell(seed)
        for _ in range(5):
            energy = cell.energy
            cell.update(dt, obj)
            assert cell.last_energy == energy
            assert 0.0 <= cell.movement_direction < 2.0 * math.pi
            assert 0.0 <= cell.movement_speed <= cell.movement_speed_limit
            assert np.isclose(np.linalg.norm(cell.movement_velocity), cell.movement_speed)
            assert 0.0 <= cell.contraction_amount <= cell.contraction_limit
            assert 0.0 <= cell.contact_energy_absorption_amount <= cell.contact_energy_absorption_limit
            assert cell.energy <= MAX_ENERGY
            assert np.all(cell.molecules >= -1e-12)


def test_dead_and_age():
    cell = make_cell()
    assert not cell.is_dead()
    cell.energy = 0.0
    assert cell.is_dead()
    assert np.isclose(cell.age(5.0), 3.0)


def test_genome_round_trip_between_cells():
    source = make_cell(1)
    target = make_cell(2)

    target.apply_genome(build_genome_of(source))

    assert np.allclose(target.molecules_energy_conversion, source.molecules_energy_conversion)
    assert target.movement_cost == source.movement_cost
    assert target.contraction_limit == source.contraction_limit
    assert np.array_equal(target.neurons.layer1.weights, source.neurons.layer1.weights)
    # Non-heritable state is kept
    assert target.size == make_cell(2).size
    assert np.array_equal(target.molecules, make_cell(2).molecules)


def test_apply_genome_clamps_out_of_range_values():
    cell = make_cell()
    genome = Genome({
        'movement_cost': Gene(1.0),
        'movement_speed_limit': Gene(-5.0),
        'contraction_limit': Gene(3.0),
        'molecules_energy_conversion/000': Gene(50.0),
    })
    cell.apply_genome(genome)
    assert cell.movement_cost == MAX_MOVEMENT_COST
    assert cell.movement_speed_limit == 0.0
    assert cell.contraction_limit == MAX_CONTRACTION
    assert cell.molecules_energy_conversion[0] == 10.0


def test_to_dict_is_json_serializable():
    cell = make_cell()
    data = cell.to_dict()
    json.dumps(data)
    assert data['energy'] == MAX_ENERGY
    assert len(data['molecules']) == NUM_MOLECULES
    assert "Energy: Amount" in cell.describe()


def test_inherited_network_keeps_outputs_within_limits():
    parent = make_cell(3)
    genome = build_genome_of(parent)
    genome.genes['neurons/layer2/activation'] = Gene(2.6)

    child = make_cell(4)
    child.apply_genome(genome)
    obj = PhysicsObject(radius=5.0, position=[50.0, 50.0])
    child.energy = 1e4
    for _ in range(5):
        child.update(1.0 / 60.0, obj)
        assert np.all(np.abs(child.neurons.outputs()) <= 1.0)
        assert child.movement_speed <= child.movement_speed_limit
        assert child.contraction_amount <= child.contraction_limit
        assert np.all(np.isfinite(child.molecules))
