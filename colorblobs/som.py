"""Self-organizing map used for competitive region clustering."""
from typing import Optional
import logging

import numpy as np

logger = logging.getLogger(__name__)


class SOM:
    """One-layer competitive network.

    ``weights`` holds one reference vector per unit, shape (nout, nin).
    """

    def __init__(self, weights: np.ndarray):
        weights = np.asarray(weights, dtype=np.float64)
        if weights.ndim != 2 or weights.shape[0] < 1:
            raise ValueError(f"weights must be a (nout, nin) matrix, got shape {weights.shape}")
        self.weights = weights.copy()

    @property
    def nin(self) -> int:
        return self.weights.shape[1]

    @property
    def nout(self) -> int:
        return self.weights.shape[0]

    @classmethod
    def random(cls, nin: int, nout: int, rng: Optional[np.random.Generator] = None) -> "SOM":
        """Random reference vectors in (-1, 1), normalized to unit length."""
        rng = rng or np.random.default_rng()
        w = rng.uniform(-1.0, 1.0, (nout, nin))
        norms = np.sqrt(np.sum(w ** 2, axis=1, keepdims=True))
        norms[norms == 0] = 1.0
        return cls(w / norms)

    def init_from_samples(self, x: np.ndarray, rng: Optional[np.random.Generator] = None) -> None:
        """Set every reference vector to a randomly picked sample."""
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        if x.shape[1] != self.nin:
            raise ValueError(f"expected {self.nin}-dimensional samples, got {x.shape[1]}")
        rng = rng or np.random.default_rng()
        picks = rng.integers(0, len(x), self.nout)
        self.weights = x[picks].copy()

    def distances(self, x: np.ndarray) -> np.ndarray:
        """Squared Euclidean distance from ``x`` to every unit."""
        return np.sum((self.weights - np.asarray(x, dtype=np.float64)) ** 2, axis=1)

    def select_winner(self, x: np.ndarray) -> int:
        """Index of the closest unit; the lowest index wins ties."""
        return int(np.argmin(self.distances(x)))

    def select_winners(self, x: np.ndarray) -> np.ndarray:
        """Winner of every row of ``x``."""
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        if len(x) == 0:
            return np.zeros(0, dtype=int)
        d = np.sum((x[:, np.newaxis, :] - self.weights[np.newaxis, :, :]) ** 2, axis=2)
        return np.argmin(d, axis=1)

    def learn(
        self,
        x: np.ndarray,
        alpha: float,
        decay: float,
        min_alpha: float = 1e-4,
    ) -> int:
        """
        Online competitive learning.

        Each sample moves its winning unit towards it by ``alpha``; after
        every epoch ``alpha`` is multiplied by ``decay``, until it falls
        below ``min_alpha``.

        Args:
            x: (n_samples, nin) training samples
            alpha: Initial learning rate
            decay: Per-epoch decay factor, in (0, 1)
            min_alpha: Learning stops once alpha drops below this

        Returns:
            Number of epochs run
        """
        if not 0.0 < decay < 1.0:
            raise ValueError(f"decay must be in (0, 1), got {decay}")
        if min_alpha <= 0.0:
            raise ValueError(f"min_alpha must be positive, got {min_alpha}")
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        if x.size and x.shape[1] != self.nin:
            raise ValueError(f"expected {self.nin}-dimensional samples, got {x.shape[1]}")

        epochs = 0
        while alpha > min_alpha:
            for sample in x:
                j = self.select_winner(sample)
                self.weights[j] += alpha * (sample - self.weights[j])
            alpha *= decay
            epochs += 1

        logger.debug(f"SOM learned {len(x)} samples in {epochs} epochs")
        return epochs

    def __str__(self) -> str:
        return f"SOM NN: {self.nin} inputs, {self.nout} outputs"
