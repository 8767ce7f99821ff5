"""
diagnostics/elbow.py

Elbow method: nearest-centroid error sums for k = 1..K.

For each k the engine is run without labels or query, then every point's
distance to its nearest converged centroid is summed. With the default
squared Euclidean distance this is the classic SSE; no extra squaring is
applied on top of the distance function.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from app.logging_utils import log_event
from clustering.assignment import nearest_centroids
from clustering.kmeans import KMeansEngine
from clustering.validation import as_feature_matrix, validate_cluster_count
from diagnostics.base import BaseDiagnostic

logger = logging.getLogger(__name__)


class ElbowDiagnostic(BaseDiagnostic):
    """
    Sweeps k from 1 to ``max_clusters`` and reports one error sum per k.

    Usage::

        sse = ElbowDiagnostic(engine).evaluate(features, 10)
        sse[0]  # error for k = 1
    """

    def evaluate(self, features: Any, n_clusters: int) -> np.ndarray:
        """
        Parameters
        ----------
        features:
            2-D feature matrix.
        n_clusters:
            Largest k to evaluate (inclusive).

        Returns
        -------
        np.ndarray
            Float array of length ``n_clusters``; index ``k - 1`` holds the
            error sum for ``k`` clusters.
        """
        matrix = as_feature_matrix(features)
        max_k = validate_cluster_count(n_clusters, field="num_clusters")

        sse = np.zeros(max_k, dtype=np.float64)
        for k in range(1, max_k + 1):
            result = self.engine.cluster(matrix, k)
            _, min_distances = nearest_centroids(matrix, result.centroids, self.engine.distance)
            sse[k - 1] = float(np.sum(min_distances))
            log_event(
                logger,
                logging.DEBUG,
                "elbow.k_evaluated",
                k=k,
                sse=sse[k - 1],
                n_iter=result.n_iter,
                converged=result.converged,
            )
        return sse


def elbow_method(
    features: Any,
    num_clusters: int,
    engine: KMeansEngine | None = None,
) -> np.ndarray:
    """Functional form of :meth:`ElbowDiagnostic.evaluate`."""
    return ElbowDiagnostic(engine).evaluate(features, num_clusters)
