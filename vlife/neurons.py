"""
Neuronal network driving cell behaviour.

Two dense layers map perception and internal state to impulses:

    inputs (25) -> hidden (12, sigmoid) -> outputs (76, tanh)

External inputs come from the cell's physics object (velocity,
acceleration, radius, contacts); internal ones (energy, molecules,
current movement) close feedback loops. Outputs drive contraction and
movement, and regulate genome expression such as metabolism factors and
the amount of membrane channels used to absorb energy from other cells.

Weights and biases are heritable (see build_genome/apply_genome).
"""

import numpy as np
from enum import Enum
from typing import Dict, List, Tuple

from .constants import NUM_MOLECULES
from .genome import GenomeBuilder, GenomeReader


# ============================================================================
# Input / Output Layout
# ============================================================================

# (name, width) in network order
INPUT_LAYOUT: List[Tuple[str, int]] = [
    ('velocity_pos', 2),
    ('velocity_magnitude', 1),
    ('acceleration_pos', 2),
    ('acceleration_magnitude', 1),
    ('radius', 1),
    ('energy_amount', 1),
    ('energy_delta', 1),
    ('energy_stored', 1),
    ('molecules_amount', NUM_MOLECULES),
    ('molecules_total', 1),
    ('movement_direction', 1),
    ('movement_speed', 1),
    ('contact_energy_absorption', 1),
    ('contact_count', 1),
    ('contact_normal', 2),
]


def _build_slices(layout: List[Tuple[str, int]]) -> Tuple[Dict[str, slice], int]:
    slices = {}
    start = 0
    for name, width in layout:
        slices[name] = slice(start, start + width)
        start += width
    return slices, start


INPUT_SLICES, NUM_INPUTS = _build_slices(INPUT_LAYOUT)

NUM_METABOLIC_OUTPUTS = NUM_MOLECULES * NUM_MOLECULES
NUM_ENERGY_OUTPUTS = NUM_MOLECULES
NUM_CONTRACTION_OUTPUTS = 1
NUM_MOVEMENT_OUTPUTS = 2
NUM_CONTACT_OUTPUTS = 1

NUM_PROCESSING = NUM_INPUTS // 2
NUM_OUTPUTS = (NUM_METABOLIC_OUTPUTS
               + NUM_ENERGY_OUTPUTS
               + NUM_CONTRACTION_OUTPUTS
               + NUM_MOVEMENT_OUTPUTS
               + NUM_CONTACT_OUTPUTS)

ENERGY_OUTPUT_START = NUM_METABOLIC_OUTPUTS
CONTRACTION_OUTPUT = ENERGY_OUTPUT_START + NUM_ENERGY_OUTPUTS
MOVEMENT_DIRECTION_OUTPUT = CONTRACTION_OUTPUT + NUM_CONTRACTION_OUTPUTS
MOVEMENT_SPEED_OUTPUT = MOVEMENT_DIRECTION_OUTPUT + 1
CONTACT_OUTPUT = MOVEMENT_DIRECTION_OUTPUT + NUM_MOVEMENT_OUTPUTS


# ============================================================================
# Activation Functions
# ============================================================================

class ActivationFunction(Enum):
    LINEAR = 'linear'
    SIGMOID = 'sigmoid'
    TANH = 'tanh'
    RELU = 'relu'
    SWISH = 'swish'

    def apply(self, x: np.ndarray) -> np.ndarray:
        if self is ActivationFunction.LINEAR:
            return x
        if self is ActivationFunction.SIGMOID:
            return 1.0 / (1.0 + np.exp(-x))
        if self is ActivationFunction.TANH:
            return np.tanh(x)
        if self is ActivationFunction.RELU:
            return np.maximum(x, 0.0)
        # swish
        return x / (1.0 + np.exp(-x))

    @classmethod
    def random(cls, rng: np.random.Generator) -> 'ActivationFunction':
        # tanh is reserved for output layers
        choices = [cls.LINEAR, cls.SIGMOID, cls.RELU, cls.SWISH]
        return choices[int(rng.integers(len(choices)))]


# ============================================================================
# Layers
# ============================================================================

class Layer:
    """
    Dense layer. Every row of weights holds the weights of one neuron.
    """

    def __init__(self, weights: np.ndarray, bias: np.ndarray, activation: ActivationFunction):
        self.weights = np.asarray(weights, dtype=np.float64)
        self.bias = np.asarray(bias, dtype=np.float64)
        self.activation = activation
        self.outputs = np.zeros(self.weights.shape[0], dtype=np.float64)

    @classmethod
    def random(cls, num_inputs: int, num_outputs: int, rng: np.random.Generator) -> 'Layer':
        return cls(
            weights=rng.uniform(-1.0, 1.0, size=(num_outputs, num_inputs)),
            bias=rng.uniform(-1.0, 1.0, size=num_outputs),
            activation=ActivationFunction.random(rng)
        )

    def process(self, inputs: np.ndarray) -> np.ndarray:
        # Large inputs (energy of the probe cell) would overflow exp()
        with np.errstate(over='ignore'):
            self.outputs = self.activation.apply(self.weights @ inputs + self.bias)
        return self.outputs

    def num_working_neurons(self) -> int:
        """Neurons with at least one non-zero input weight."""
        return int(np.count_nonzero(np.any(self.weights != 0.0, axis=1)))

    def build_genome(self, builder: GenomeBuilder):
        builder.add_matrix('weights', self.weights)
        builder.add_vector('bias', self.bias)

    def apply_genome(self, reader: GenomeReader):
        self.weights = reader.matrix('weights', self.weights)
        self.bias = reader.vector('bias', self.bias)


class Neurons:
    """Two-layer network with named inputs and outputs."""

    def __init__(self, layer1: Layer, layer2: Layer):
        self.inputs = np.zeros(NUM_INPUTS, dtype=np.float64)
        self.layer1 = layer1
        self.layer2 = layer2
        self.working_neurons = layer1.num_working_neurons() + layer2.num_working_neurons()

    @classmethod
    def random(cls, rng: np.random.Generator) -> 'Neurons':
        layer1 = Layer.random(NUM_INPUTS, NUM_PROCESSING, rng)
        layer1.activation = ActivationFunction.SIGMOID
        layer2 = Layer.random(NUM_PROCESSING, NUM_OUTPUTS, rng)
        layer2.activation = ActivationFunction.TANH
        return cls(layer1, layer2)

    def num_working_neurons(self) -> int:
        return self.working_neurons

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_input(self, name: str, value):
        """
        Set a named input.

        Raises:
            KeyError: Unknown input name
            ValueError: Value width does not match the layout
        """
        target = INPUT_SLICES[name]
        values = np.atleast_1d(np.asarray(value, dtype=np.float64))
        width = target.stop - target.start
        if values.shape != (width,):
            raise ValueError(f"Input '{name}' expects {width} values, got {values.size}")
        self.inputs[target] = values

    def get_input(self, name: str) -> np.ndarray:
        return self.inputs[INPUT_SLICES[name]].copy()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(self) -> np.ndarray:
        hidden = self.layer1.process(self.inputs)
        return self.layer2.process(hidden)

    def outputs(self) -> np.ndarray:
        return self.layer2.outputs

    def metabolism_factors_out(self) -> np.ndarray:
        return self.outputs()[:NUM_METABOLIC_OUTPUTS]

    def energy_source_out(self) -> np.ndarray:
        return self.outputs()[ENERGY_OUTPUT_START:ENERGY_OUTPUT_START + NUM_ENERGY_OUTPUTS]

    def contraction_out(self) -> float:
        return float(self.outputs()[CONTRACTION_OUTPUT])

    def movement_direction_out(self) -> float:
        return float(self.outputs()[MOVEMENT_DIRECTION_OUTPUT])

    def movement_speed_out(self) -> float:
        return float(self.outputs()[MOVEMENT_SPEED_OUTPUT])

    def contact_energy_absorption_out(self) -> float:
        return float(self.outputs()[CONTACT_OUTPUT])

    # ------------------------------------------------------------------
    # Genome
    # ------------------------------------------------------------------

    def build_genome(self, builder: GenomeBuilder):
        self.layer1.build_genome(builder.nested('layer1'))
        self.layer2.build_genome(builder.nested('layer2'))

    def apply_genome(self, reader: GenomeReader):
        self.layer1.apply_genome(reader.nested('layer1'))
        self.layer2.apply_genome(reader.nested('layer2'))
        self.working_neurons = self.layer1.num_working_neurons() + self.layer2.num_working_neurons()

    def describe(self) -> str:
        with np.printoptions(precision=2, suppress=True):
            return "\n".join([
                f"Working neurons: {self.working_neurons}",
                f"I1: {self.inputs}",
                f"O1: {self.layer1.outputs}",
                f"O2: {self.layer2.outputs}",
                f"activations: [{self.layer1.activation.value}, {self.layer2.activation.value}]",
                f"energy_source: {self.energy_source_out()}",
                f"movement_direction: {self.movement_direction_out():.2f}",
                f"movement_speed: {self.movement_speed_out():.2f}",
                f"contraction: {self.contraction_out():.2f}",
            ])
