"""
Centroid initialization by sampling feature rows with replacement.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.random import Generator

from clustering.validation import as_feature_matrix, validate_cluster_count


CentroidInitializer = Callable[[np.ndarray, int], np.ndarray]


class CentroidSampler:
    """
    Draws ``n`` initial centroids uniformly at random from the feature rows.

    Each draw is independent and with replacement, so ``n`` may exceed the
    number of rows and duplicate centroids are possible. The only state is
    the random generator, which advances on every call.
    """

    def __init__(self, rng: Generator | None = None, seed: int | None = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    def __call__(self, features: np.ndarray, n: int) -> np.ndarray:
        return self.sample(features, n)

    def sample(self, features: np.ndarray, n: int) -> np.ndarray:
        """
        Return an ``(n, n_features)`` array of rows drawn from *features*.
        """
        matrix = as_feature_matrix(features)
        count = validate_cluster_count(n, field="n")
        rows = self._rng.integers(0, matrix.shape[0], size=count)
        return matrix[rows].copy()


def init_centroids(
    features: np.ndarray,
    n: int,
    rng: Generator | None = None,
) -> np.ndarray:
    """Functional form of :class:`CentroidSampler`."""
    return CentroidSampler(rng=rng).sample(features, n)
