"""
K-means clustering engine.

Accepts a feature matrix and returns converged centroids, a label per
centroid and the label of an optional query point. No feature engineering,
scaling or cluster-count selection here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from app.config import ClusteringSettings, get_clustering_settings
from app.logging_utils import log_event
from clustering.assignment import nearest_centroids
from clustering.distance import DistanceFunction, get_distance
from clustering.errors import InvalidComputationError, InvalidInputError
from clustering.sampler import CentroidInitializer, CentroidSampler
from clustering.validation import validate_clustering_inputs
from neighbors.knn import KNNLabeler

logger = logging.getLogger(__name__)

Labeler = Callable[[np.ndarray, np.ndarray, Sequence[str], int], Tuple[Any, str]]


@dataclass(frozen=True)
class ClusterResult:
    """
    Outcome of one clustering run.

    ``assignments`` and ``counts`` describe the final iteration.
    ``converged`` is False only when an iteration cap stopped the loop.
    """

    centroids: np.ndarray
    centroid_labels: List[str]
    query_label: str = ""
    query_cluster: Optional[int] = None
    assignments: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    counts: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    n_iter: int = 0
    converged: bool = True
    warnings: List[str] = field(default_factory=list)

    @property
    def n_clusters(self) -> int:
        return int(self.centroids.shape[0])


class KMeansEngine:
    """
    Lloyd-style k-means with exact fixed-point convergence.

    Responsibilities:
        - Initialize centroids through the injected initializer.
        - Iterate assignment and mean update until the summed signed
          centroid difference is zero (or within the configured tolerance).
        - Label converged centroids via the k-NN labeler.
        - Classify an optional query point against the converged centroids.

    Not responsible for:
        - Feature engineering or scaling.
        - Choosing k.
        - Persistence.

    Args:
        distance:    Pairwise distance; defaults to the configured one.
        initializer: ``(features, n) -> (n, D) array``; defaults to a
                     :class:`CentroidSampler` seeded from settings.
        labeler:     ``(point, features, labels, k) -> (neighbors, label)``;
                     defaults to :class:`KNNLabeler` over the same distance.
        settings:    Iteration cap, tolerance and neighbour count.
    """

    def __init__(
        self,
        distance: DistanceFunction | None = None,
        initializer: CentroidInitializer | None = None,
        labeler: Labeler | None = None,
        settings: ClusteringSettings | None = None,
    ) -> None:
        self._settings = settings if settings is not None else get_clustering_settings()
        self._distance = distance if distance is not None else get_distance(self._settings.distance)
        self._initializer = (
            initializer
            if initializer is not None
            else CentroidSampler(seed=self._settings.random_seed)
        )
        self._labeler = labeler if labeler is not None else KNNLabeler(self._distance)

    @property
    def distance(self) -> DistanceFunction:
        return self._distance

    @property
    def settings(self) -> ClusteringSettings:
        return self._settings

    def cluster(
        self,
        features: Any,
        n_clusters: int,
        query: Any = None,
        labels: Sequence[Any] | None = None,
    ) -> ClusterResult:
        """
        Run k-means to convergence and label the result.

        Args:
            features:   2-D array-like of shape (n_samples, n_features).
            n_clusters: Number of centroids; may exceed the number of
                        distinct rows (surplus centroids stay empty).
            query:      Optional vector of length n_features. None or empty
                        means no query.
            labels:     Optional labels, one per row. None or empty means
                        unlabeled mode: centroid labels are ``""`` and the
                        labeler is not called.

        Returns:
            :class:`ClusterResult`.

        Raises:
            InvalidInputError: On invalid features, cluster count, labels or
                query, or an initializer returning the wrong shape.
            InvalidComputationError: If distances or the convergence
                residual become NaN.
        """
        matrix, n, query_vector, label_list = validate_clustering_inputs(
            features, n_clusters, query, labels
        )
        centroids = self._initial_centroids(matrix, n)

        max_iterations = self._settings.max_iterations
        tolerance = self._settings.convergence_tolerance
        log_event(
            logger,
            logging.DEBUG,
            "kmeans.run_started",
            n_samples=matrix.shape[0],
            n_features=matrix.shape[1],
            n_clusters=n,
            max_iterations=max_iterations,
            tolerance=tolerance,
        )

        warnings: List[str] = []
        converged = False
        n_iter = 0
        while True:
            n_iter += 1
            assignments, _ = self.assign(matrix, centroids)
            new_centroids, counts = self.update(matrix, centroids, assignments)

            residual = abs(float(np.sum(new_centroids - centroids)))
            if np.isnan(residual):
                raise InvalidComputationError("centroid update produced NaN values.")

            log_event(logger, logging.DEBUG, "kmeans.iteration", iteration=n_iter, residual=residual)

            # Adopted even on convergence: a zero residual can hide cancelling
            # shifts, and only the new positions are the member means.
            centroids = new_centroids
            if residual <= tolerance:
                converged = True
                break

            if max_iterations is not None and n_iter >= max_iterations:
                message = f"k-means did not converge within {max_iterations} iterations."
                warnings.append(message)
                log_event(
                    logger,
                    logging.WARNING,
                    "kmeans.iteration_cap_reached",
                    max_iterations=max_iterations,
                    residual=residual,
                )
                break

        if converged:
            log_event(logger, logging.INFO, "kmeans.converged", n_clusters=n, n_iter=n_iter)

        centroid_labels = self._label_centroids(matrix, centroids, label_list)
        query_cluster, query_label = self._classify_query(query_vector, centroids, centroid_labels)

        return ClusterResult(
            centroids=centroids,
            centroid_labels=centroid_labels,
            query_label=query_label,
            query_cluster=query_cluster,
            assignments=assignments,
            counts=counts,
            n_iter=n_iter,
            converged=converged,
            warnings=warnings,
        )

    def assign(self, features: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Nearest-centroid index and distance for every row (lowest index on ties).
        """
        return nearest_centroids(features, centroids, self._distance)

    @staticmethod
    def update(
        features: np.ndarray,
        centroids: np.ndarray,
        assignments: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Recompute centroids as the mean of their assigned rows.

        Rows are accumulated in order, so the same assignment always yields
        bit-identical means. Centroids without members keep their position.

        Returns:
            A tuple of:
                - new_centroids: array with the same shape as *centroids*.
                - counts:        1-D int array of members per centroid.
        """
        n_clusters = centroids.shape[0]
        sums = np.zeros_like(centroids, dtype=np.float64)
        counts = np.zeros(n_clusters, dtype=np.int64)
        np.add.at(sums, assignments, features)
        np.add.at(counts, assignments, 1)

        new_centroids = np.array(centroids, dtype=np.float64, copy=True)
        occupied = counts > 0
        new_centroids[occupied] = sums[occupied] / counts[occupied, None]
        return new_centroids, counts

    def step(self, features: Any, centroids: Any) -> np.ndarray:
        """
        One assignment + update pass; a converged result is a fixed point.
        """
        matrix = np.asarray(features, dtype=np.float64)
        current = np.asarray(centroids, dtype=np.float64)
        assignments, _ = self.assign(matrix, current)
        new_centroids, _ = self.update(matrix, current, assignments)
        return new_centroids

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _initial_centroids(self, matrix: np.ndarray, n: int) -> np.ndarray:
        centroids = np.array(self._initializer(matrix, n), dtype=np.float64, copy=True)
        expected = (n, matrix.shape[1])
        if centroids.shape != expected:
            raise InvalidInputError.single(
                "invalid_initial_centroids",
                f"initializer returned shape {centroids.shape}, expected {expected}.",
            )
        return centroids

    def _label_centroids(
        self,
        matrix: np.ndarray,
        centroids: np.ndarray,
        label_list: List[str] | None,
    ) -> List[str]:
        if label_list is None:
            return [""] * centroids.shape[0]

        k = self._settings.label_neighbors
        return [
            str(self._labeler(centroid, matrix, label_list, k)[1])
            for centroid in centroids
        ]

    def _classify_query(
        self,
        query_vector: np.ndarray | None,
        centroids: np.ndarray,
        centroid_labels: List[str],
    ) -> Tuple[Optional[int], str]:
        if query_vector is None:
            return None, ""

        assignment, _ = nearest_centroids(query_vector.reshape(1, -1), centroids, self._distance)
        index = int(assignment[0])
        return index, centroid_labels[index]


def cluster(
    features: Any,
    n_clusters: int,
    query: Any = None,
    labels: Sequence[Any] | None = None,
    *,
    seed: int | None = None,
    settings: ClusteringSettings | None = None,
) -> ClusterResult:
    """
    Cluster *features* with a fresh engine.

    ``seed`` overrides the configured random seed for centroid sampling.
    """
    resolved = settings if settings is not None else get_clustering_settings()
    sampler = CentroidSampler(seed=seed if seed is not None else resolved.random_seed)
    engine = KMeansEngine(initializer=sampler, settings=resolved)
    return engine.cluster(features, n_clusters, query=query, labels=labels)
