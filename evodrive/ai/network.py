"""Fixed-topology feed-forward controller."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from evodrive.constants import Evolution, Sensors
from evodrive.errors import IncompatibleTopology, InvalidConfiguration, ShapeMismatch
from evodrive.logging_config import get_logger

logger = get_logger(__name__)


class NeuralNetwork:
    """Dense tanh network mapping sensor readings to one steering value.

    Each layer owns a weight matrix of shape (next, current) and a bias
    vector of length next. Arrays are never shared between instances.

    Attributes:
        layer_sizes: (inputs, hidden..., outputs)
        weights: One matrix per layer transition
        biases: One vector per layer transition
    """

    def __init__(
        self,
        input_size: int = Sensors.RAY_COUNT,
        hidden_sizes: Sequence[int] = Evolution.HIDDEN_LAYERS,
        output_size: int = Evolution.OUTPUTS,
        rng: np.random.Generator | None = None,
    ) -> None:
        """Create a network with weights and biases drawn from U[-1, 1].

        Args:
            input_size: Number of input neurons
            hidden_sizes: Neuron count of each hidden layer
            output_size: Number of output neurons
            rng: Random generator used for initialisation and mutation
        """
        self.layer_sizes: tuple[int, ...] = (input_size, *hidden_sizes, output_size)
        if any(size < 1 for size in self.layer_sizes):
            raise InvalidConfiguration(f"layer sizes must be positive, got {self.layer_sizes}")
        self.rng = rng if rng is not None else np.random.default_rng()

        self.weights: list[np.ndarray] = []
        self.biases: list[np.ndarray] = []
        for cols, rows in zip(self.layer_sizes[:-1], self.layer_sizes[1:]):
            self.weights.append(self.rng.uniform(-1.0, 1.0, size=(rows, cols)))
            self.biases.append(self.rng.uniform(-1.0, 1.0, size=rows))

    @property
    def input_size(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1]

    @property
    def parameter_count(self) -> int:
        return sum(w.size + b.size for w, b in zip(self.weights, self.biases))

    def predict(self, inputs: Sequence[float] | np.ndarray) -> float:
        """Run one forward pass.

        Args:
            inputs: Encoded sensor readings

        Returns:
            First output activation, in (-1, 1)

        Raises:
            ShapeMismatch: If the input length differs from the input layer
        """
        activations = np.asarray(inputs, dtype=float)
        if activations.shape != (self.input_size,):
            raise ShapeMismatch(
                f"expected {self.input_size} inputs, got {activations.size}"
            )
        for weights, biases in zip(self.weights, self.biases):
            activations = np.tanh(weights @ activations + biases)
        return float(activations[0])

    def mutate(self, rate: float, amplitude: float = Evolution.MUTATION_AMPLITUDE) -> None:
        """Nudge each parameter by U[-1, 1] * amplitude with probability ``rate``."""
        if not 0.0 <= rate <= 1.0:
            raise InvalidConfiguration(f"mutation rate must be in [0, 1], got {rate}")
        for param in (*self.weights, *self.biases):
            mask = self.rng.random(param.shape) < rate
            noise = self.rng.uniform(-1.0, 1.0, size=param.shape) * amplitude
            param += np.where(mask, noise, 0.0)

    def clone(self) -> NeuralNetwork:
        """Deep copy with independent storage (the generator is shared)."""
        clone = NeuralNetwork.__new__(NeuralNetwork)
        clone.layer_sizes = self.layer_sizes
        clone.rng = self.rng
        clone.weights = [w.copy() for w in self.weights]
        clone.biases = [b.copy() for b in self.biases]
        return clone

    @staticmethod
    def crossover(a: NeuralNetwork, b: NeuralNetwork) -> NeuralNetwork:
        """Child whose every parameter is the mean of the parents'.

        Raises:
            IncompatibleTopology: If the parents' layer sizes differ
        """
        if a.layer_sizes != b.layer_sizes:
            raise IncompatibleTopology(
                f"cannot cross {a.layer_sizes} with {b.layer_sizes}"
            )
        child = a.clone()
        child.weights = [(wa + wb) / 2 for wa, wb in zip(a.weights, b.weights)]
        child.biases = [(ba + bb) / 2 for ba, bb in zip(a.biases, b.biases)]
        return child

    def flatten(self) -> np.ndarray:
        """All weights and biases, layer by layer, as one vector."""
        parts: list[np.ndarray] = []
        for w, b in zip(self.weights, self.biases):
            parts.append(w.ravel())
            parts.append(b.ravel())
        return np.concatenate(parts)

    def describe(self) -> None:
        """Log the layer structure and weight statistics."""
        for index, (w, b) in enumerate(zip(self.weights, self.biases), start=1):
            logger.info(
                "network_layer",
                layer=index,
                shape=f"{w.shape[1]}->{w.shape[0]}",
                weight_mean=float(w.mean()),
                weight_abs_max=float(np.abs(w).max()),
                bias_mean=float(b.mean()),
            )
