"""
diagnostics/silhouette.py

Mean silhouette coefficient for one k-means run.

Per point ``i`` assigned to cluster ``C``:

    a = mean linear distance to the other members of C   (0 if C = {i})
    b = min over clusters D != C of the mean linear distance to members of D
    s = (b - a) / max(a, b)

The linear distance is ``sqrt(dist)`` because the engine's distance is
squared-distance-like; a registered linear distance such as ``euclidean``
is used as is. Empty clusters contribute +inf to ``b``. Two
indeterminate cases are resolved to 0: ``a == b == 0`` and ``b == inf``
(no other non-empty cluster).
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np

from app.logging_utils import log_event
from clustering.assignment import nearest_centroids, pairwise_distances
from clustering.distance import is_linear_distance
from clustering.errors import InvalidComputationError
from clustering.kmeans import KMeansEngine
from clustering.validation import as_feature_matrix, validate_cluster_count
from diagnostics.base import BaseDiagnostic

logger = logging.getLogger(__name__)


def silhouette_coefficient(a: float, b: float) -> float:
    """
    ``(b - a) / max(a, b)`` with the 0/0 and infinite-``b`` cases defined as 0.
    """
    if math.isinf(b):
        return 0.0
    denominator = max(a, b)
    if denominator == 0.0:
        return 0.0
    return (b - a) / denominator


class SilhouetteDiagnostic(BaseDiagnostic):
    """
    Runs the engine once for a fixed k and averages per-point silhouettes.

    Args:
        engine:         Engine used for the clustering run.
        root_distances: Take the square root of the distance function's
                        output. None derives it from the engine: registered
                        linear distances (``euclidean``) are not rooted,
                        everything else is.
    """

    def __init__(
        self,
        engine: KMeansEngine | None = None,
        root_distances: bool | None = None,
    ) -> None:
        super().__init__(engine)
        if root_distances is None:
            root_distances = not is_linear_distance(self.engine.distance)
        self._root_distances = root_distances

    @property
    def root_distances(self) -> bool:
        return self._root_distances

    def evaluate(self, features: Any, n_clusters: int) -> float:
        """
        Return the mean silhouette coefficient over all points.
        """
        matrix = as_feature_matrix(features)
        n = validate_cluster_count(n_clusters)

        result = self.engine.cluster(matrix, n)
        coefficients = self.sample_coefficients(matrix, result.centroids)
        score = float(np.mean(coefficients))
        if math.isnan(score):
            raise InvalidComputationError("silhouette score is NaN.")

        log_event(
            logger,
            logging.INFO,
            "silhouette.computed",
            n_clusters=n,
            score=score,
            n_iter=result.n_iter,
        )
        return score

    def sample_coefficients(self, features: Any, centroids: Any) -> np.ndarray:
        """
        Per-point silhouette coefficients against finalized centroids.

        Points are re-assigned to their nearest centroid here, independently
        of the engine's last-iteration assignment.
        """
        matrix = as_feature_matrix(features)
        centers = np.asarray(centroids, dtype=np.float64)
        n_clusters = centers.shape[0]

        assignments, _ = nearest_centroids(matrix, centers, self.engine.distance)
        counts = np.bincount(assignments, minlength=n_clusters)

        point_distances = pairwise_distances(matrix, matrix, self.engine.distance)
        if self._root_distances:
            point_distances = np.sqrt(point_distances)

        coefficients = np.zeros(matrix.shape[0], dtype=np.float64)
        for i in range(matrix.shape[0]):
            own = assignments[i]
            sums = np.bincount(assignments, weights=point_distances[i], minlength=n_clusters)

            # dist(i, i) is 0, so the own-cluster sum already excludes i.
            a = sums[own] / (counts[own] - 1) if counts[own] > 1 else 0.0

            b = math.inf
            for cluster_id in range(n_clusters):
                if cluster_id == own or counts[cluster_id] == 0:
                    continue
                b = min(b, sums[cluster_id] / counts[cluster_id])

            coefficients[i] = silhouette_coefficient(float(a), float(b))
        return coefficients


def silhouette(
    features: Any,
    n_clusters: int,
    engine: KMeansEngine | None = None,
) -> float:
    """Functional form of :meth:`SilhouetteDiagnostic.evaluate`."""
    return SilhouetteDiagnostic(engine).evaluate(features, n_clusters)
