"""Multi-layer perceptron with bipolar sigmoid layers."""
from typing import List, Optional, Sequence
import logging

import numpy as np

logger = logging.getLogger(__name__)

# Threshold value that disables rejection in winner selection
NO_THRESHOLD = -1.0


def bipolar_sigmoid(x: np.ndarray) -> np.ndarray:
    """Bipolar sigmoid, range (-1, 1)."""
    return 2.0 / (1.0 + np.exp(-x)) - 1.0


def bipolar_sigmoid_derivative(x: np.ndarray) -> np.ndarray:
    """Derivative of the bipolar sigmoid with respect to the net input."""
    f = bipolar_sigmoid(x)
    return (1.0 + f) * (1.0 - f) / 2.0


class Layer:
    """Fully connected layer.

    Keeps the net input of the last forward pass, needed for the
    backpropagation deltas.
    """

    def __init__(self, weights: np.ndarray, biases: np.ndarray):
        weights = np.asarray(weights, dtype=np.float64)
        biases = np.asarray(biases, dtype=np.float64).reshape(-1)
        if weights.ndim != 2:
            raise ValueError(f"weights must be a (nin, nout) matrix, got shape {weights.shape}")
        if biases.shape[0] != weights.shape[1]:
            raise ValueError(
                f"expected {weights.shape[1]} biases, got {biases.shape[0]}")
        self.weights = weights
        self.biases = biases
        self.net_inputs = np.zeros((1, self.nout))
        self.deltas = np.zeros((1, self.nout))

    @property
    def nin(self) -> int:
        return self.weights.shape[0]

    @property
    def nout(self) -> int:
        return self.weights.shape[1]

    @classmethod
    def random(cls, nin: int, nout: int, rng: Optional[np.random.Generator] = None) -> "Layer":
        """Layer with weights and biases drawn uniformly from (-1, 1)."""
        rng = rng or np.random.default_rng()
        return cls(rng.uniform(-1.0, 1.0, (nin, nout)), rng.uniform(-1.0, 1.0, nout))

    def activate(self, x: np.ndarray) -> np.ndarray:
        self.net_inputs = x @ self.weights + self.biases
        return bipolar_sigmoid(self.net_inputs)

    def backward(self, error: np.ndarray) -> np.ndarray:
        """Store deltas for ``error`` and return the error of the inputs."""
        self.deltas = error * bipolar_sigmoid_derivative(self.net_inputs)
        return self.deltas @ self.weights.T

    def update(self, x: np.ndarray, eta: float) -> np.ndarray:
        """Apply the delta rule and return this layer's output."""
        self.weights += eta * x.T @ self.deltas
        self.biases += eta * self.deltas.sum(axis=0)
        return bipolar_sigmoid(self.net_inputs)

    def __repr__(self) -> str:
        return f"Layer(nin={self.nin}, nout={self.nout})"


class Perceptron:
    """Feed-forward network made of bipolar sigmoid layers."""

    def __init__(self, layers: Sequence[Layer]):
        if not layers:
            raise ValueError("a perceptron needs at least one layer")
        for prev, nxt in zip(layers, layers[1:]):
            if prev.nout != nxt.nin:
                raise ValueError(
                    f"layer sizes do not chain: {prev.nout} outputs into {nxt.nin} inputs")
        self.layers: List[Layer] = list(layers)

    @classmethod
    def random(cls, sizes: Sequence[int], rng: Optional[np.random.Generator] = None) -> "Perceptron":
        """
        Randomly initialized network.

        Args:
            sizes: Number of inputs of each layer; the last element is the
                number of outputs of the last layer.
            rng: Random generator
        """
        if len(sizes) < 2:
            raise ValueError(f"need at least input and output sizes, got {list(sizes)}")
        rng = rng or np.random.default_rng()
        return cls([Layer.random(nin, nout, rng) for nin, nout in zip(sizes, sizes[1:])])

    @property
    def nin(self) -> int:
        return self.layers[0].nin

    @property
    def nout(self) -> int:
        return self.layers[-1].nout

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        Feed samples through every layer.

        Args:
            x: (n_samples, nin) matrix, one sample per row. A single
               sample may be given as a vector. Inputs should be bipolar.

        Returns:
            (n_samples, nout) matrix of activations
        """
        y = np.atleast_2d(np.asarray(x, dtype=np.float64))
        if y.shape[1] != self.nin:
            raise ValueError(f"expected {self.nin} inputs per sample, got {y.shape[1]}")
        for layer in self.layers:
            y = layer.activate(y)
        return y

    def train(
        self,
        x: np.ndarray,
        targets: np.ndarray,
        eta: float = 0.1,
        epochs: int = 1,
    ) -> float:
        """
        Online backpropagation.

        Args:
            x: (n_samples, nin) inputs
            targets: (n_samples, nout) bipolar targets
            eta: Learning rate
            epochs: Passes over the samples

        Returns:
            Mean squared error over the last epoch
        """
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        targets = np.atleast_2d(np.asarray(targets, dtype=np.float64))
        if len(x) != len(targets):
            raise ValueError(f"{len(x)} samples but {len(targets)} targets")

        sq_error = 0.0
        for epoch in range(epochs):
            sq_error = 0.0
            for sample, target in zip(x, targets):
                sample = sample[np.newaxis, :]
                error = target[np.newaxis, :] - self.forward(sample)
                sq_error += float(np.sum(error ** 2))

                for layer in reversed(self.layers):
                    error = layer.backward(error)

                y = sample
                for layer in self.layers:
                    y = layer.update(y, eta)
            logger.debug(f"epoch {epoch}: mse={sq_error / len(x):.6f}")

        return sq_error / max(len(x), 1)

    def __repr__(self) -> str:
        sizes = [self.nin] + [layer.nout for layer in self.layers]
        return f"Perceptron({sizes})"


def select_winner(outputs: np.ndarray, threshold: float = NO_THRESHOLD) -> np.ndarray:
    """
    Select the strongest responding unit of each output row.

    Units are numbered from 1; 0 means that the strongest unit did not
    reach ``threshold``. A threshold of ``NO_THRESHOLD`` (-1) always
    selects a unit, since bipolar activations never go below -1.

    Args:
        outputs: (n_samples, nout) activations
        threshold: Rejection threshold

    Returns:
        (n_samples,) int array of winners
    """
    outputs = np.atleast_2d(outputs)
    best = np.argmax(outputs, axis=1)
    best_val = outputs[np.arange(len(outputs)), best]
    return np.where(best_val < threshold, 0, best + 1)
