import numpy as np
import pytest

from vlife.genome import Gene, GenomeBuilder, GenomeReader
from vlife.neurons import (
    ActivationFunction,
    Layer,
    Neurons,
    INPUT_SLICES,
    NUM_INPUTS,
    NUM_OUTPUTS,
    NUM_PROCESSING,
)
from vlife.rng import make_rng


def test_network_dimensions():
    assert NUM_INPUTS == 25
    assert NUM_PROCESSING == 12
    assert NUM_OUTPUTS == 76

    neurons = Neurons.random(make_rng(1, "neurons"))
    assert neurons.layer1.weights.shape == (12, 25)
    assert neurons.layer1.bias.shape == (12,)
    assert neurons.layer2.weights.shape == (76, 12)
    assert neurons.layer1.activation is ActivationFunction.SIGMOID
    assert neurons.layer2.activation is ActivationFunction.TANH


def test_activation_functions():
    x = np.array([-1.0, 0.0, 2.0])
    assert np.allclose(ActivationFunction.LINEAR.apply(x), x)
    assert np.allclose(ActivationFunction.SIGMOID.apply(np.zeros(1)), [0.5])
    assert np.allclose(ActivationFunction.TANH.apply(x), np.tanh(x))
    assert np.allclose(ActivationFunction.RELU.apply(x), [0.0, 0.0, 2.0])
    assert np.allclose(ActivationFunction.SWISH.apply(np.zeros(1)), [0.0])


def test_random_activation_excludes_tanh():
    rng = make_rng(2, "activations")
    chosen = {ActivationFunction.random(rng) for _ in range(200)}
    assert ActivationFunction.TANH not in chosen
    assert len(chosen) == 4


def test_set_input_checks_width():
    neurons = Neurons.random(make_rng(1, "neurons"))
    neurons.set_input('velocity_pos', [1.0, 2.0])
    neurons.set_input('energy_amount', 50.0)
    assert np.allclose(neurons.get_input('velocity_pos'), [1.0, 2.0])
    assert np.allclose(neurons.inputs[INPUT_SLICES['energy_amount']], [50.0])

    with pytest.raises(ValueError):
        neurons.set_input('velocity_pos', [1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        neurons.set_input('molecules_amount', np.ones(3))
    with pytest.raises(KeyError):
        neurons.set_input('no_such_input', 1.0)


def test_outputs_bounded_and_finite_for_large_inputs():
    neurons = Neurons.random(make_rng(3, "neurons"))
    neurons.set_input('energy_amount', 1e6)
    neurons.set_input('molecules_amount', np.full(8, 1e4))
    outputs = neurons.process()

    assert outputs.shape == (NUM_OUTPUTS,)
    assert np.all(np.isfinite(outputs))
    assert np.all(np.abs(outputs) <= 1.0)
    assert neurons.metabolism_factors_out().shape == (64,)
    assert neurons.energy_source_out().shape == (8,)
    assert -1.0 <= neurons.contraction_out() <= 1.0
    assert -1.0 <= neurons.movement_direction_out() <= 1.0
    assert -1.0 <= neurons.movement_speed_out() <= 1.0
    assert -1.0 <= neurons.contact_energy_absorption_out() <= 1.0


def test_working_neurons_count_rows_with_weights():
    layer = Layer(np.array([[1.0, 0.0], [0.0, 0.0], [0.0, -2.0]]), np.zeros(3), ActivationFunction.LINEAR)
    assert layer.num_working_neurons() == 2
    assert np.allclose(layer.process(np.array([3.0, 4.0])), [3.0, 0.0, -8.0])

    neurons = Neurons.random(make_rng(1, "neurons"))
    assert neurons.num_working_neurons() == NUM_PROCESSING + NUM_OUTPUTS


def test_genome_transfers_weights_between_networks():
    source = Neurons.random(make_rng(1, "source"))
    target = Neurons.random(make_rng(2, "target"))

    builder = GenomeBuilder()
    source.build_genome(builder)
    genome = builder.build()
    assert len(genome) == (12 * 25 + 12) + (76 * 12 + 76)
    assert "layer1/weights/011/024" in genome
    assert "layer2/bias/075" in genome

    target.apply_genome(GenomeReader(genome))
    assert np.array_equal(target.layer1.weights, source.layer1.weights)
    assert np.array_equal(target.layer2.bias, source.layer2.bias)
    assert target.layer2.activation is ActivationFunction.TANH


def test_describe_mentions_outputs():
    neurons = Neurons.random(make_rng(1, "neurons"))
    neurons.process()
    text = neurons.describe()
    assert "Working neurons" in text
    assert "movement_speed" in text


def test_genome_does_not_carry_activations():
    neurons = Neurons.random(make_rng(4, "neurons"))
    builder = GenomeBuilder()
    neurons.build_genome(builder)
    genome = builder.build()
    assert not any(key.endswith("activation") for key in genome.keys())

    genome.genes["layer1/activation"] = Gene(0.0)
    genome.genes["layer2/activation"] = Gene(2.6)
    neurons.apply_genome(GenomeReader(genome))

    assert neurons.layer1.activation is ActivationFunction.SIGMOID
    assert neurons.layer2.activation is ActivationFunction.TANH
