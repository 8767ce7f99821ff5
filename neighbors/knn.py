"""
k-nearest-neighbours labeler.

Predicts a label for a point by majority vote among the ``k`` closest rows
of a labeled reference dataset. The k-means engine uses it to attach a
readable label to each converged centroid.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, List, Sequence, Tuple

import numpy as np

from clustering.distance import DistanceFunction, squared_euclidean
from clustering.errors import InvalidComputationError, InvalidInputError
from clustering.validation import as_feature_matrix, normalize_labels


class KNNLabeler:
    """
    Majority-vote k-NN classifier over an arbitrary distance function.

    Neighbour order:
        Rows are sorted by ascending distance with a stable sort, so equal
        distances keep row order.

    Vote ties:
        Resolved in favour of the tied label whose closest member appears
        first in the neighbour order.

    Usage::

        labeler = KNNLabeler()
        neighbors, label = labeler(point, features, labels, 5)
    """

    def __init__(self, distance: DistanceFunction = squared_euclidean) -> None:
        self._distance = distance

    def __call__(
        self,
        point: Any,
        features: Any,
        labels: Sequence[Any],
        k: int,
    ) -> Tuple[np.ndarray, str]:
        return self.predict(point, features, labels, k)

    def predict(
        self,
        point: Any,
        features: Any,
        labels: Sequence[Any],
        k: int,
    ) -> Tuple[np.ndarray, str]:
        """
        Return the neighbour row indices and the predicted label for *point*.

        Args:
            point:    1-D vector with the same width as *features*.
            features: Reference rows, shape (n_rows, n_features).
            labels:   One label per reference row.
            k:        Number of neighbours; clamped to ``n_rows``.

        Returns:
            A tuple of:
                - neighbors: 1-D int array of the ``min(k, n_rows)`` closest
                  row indices, nearest first.
                - label:     Majority label among those neighbours.

        Raises:
            InvalidInputError: On invalid k, empty or mismatched inputs.
            InvalidComputationError: If the distance function yields NaN.
        """
        matrix = as_feature_matrix(features)
        label_list = self._validate(point, matrix, labels, k)
        vector = np.asarray(point, dtype=np.float64).reshape(-1)

        distances = np.array([self._distance(vector, row) for row in matrix], dtype=np.float64)
        if np.any(np.isnan(distances)):
            raise InvalidComputationError("distance function returned NaN.")

        n_neighbors = min(int(k), matrix.shape[0])
        neighbors = np.argsort(distances, kind="stable")[:n_neighbors]
        return neighbors, self._vote([label_list[i] for i in neighbors])

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _vote(neighbor_labels: List[str]) -> str:
        counts = Counter(neighbor_labels)
        best = max(counts.values())
        # neighbor_labels is nearest-first; the first label reaching the top
        # count wins the tie.
        return next(label for label in neighbor_labels if counts[label] == best)

    @staticmethod
    def _validate(
        point: Any,
        matrix: np.ndarray,
        labels: Sequence[Any],
        k: int,
    ) -> List[str]:
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
            raise InvalidInputError.single(
                "invalid_neighbor_count",
                f"k must be a positive integer, got {k!r}.",
            )

        label_list = normalize_labels(labels) or []
        if len(label_list) != matrix.shape[0]:
            raise InvalidInputError.single(
                "label_length_mismatch",
                f"labels and features must have the same length; "
                f"got {len(label_list)} labels and {matrix.shape[0]} rows.",
            )

        width = np.asarray(point, dtype=np.float64).reshape(-1).shape[0]
        if width != matrix.shape[1]:
            raise InvalidInputError.single(
                "query_length_mismatch",
                f"point must have {matrix.shape[1]} components, got {width}.",
            )
        return label_list


def knn(
    point: Any,
    features: Any,
    labels: Sequence[Any],
    k: int,
    distance: DistanceFunction = squared_euclidean,
) -> Tuple[np.ndarray, str]:
    """Functional form of :meth:`KNNLabeler.predict`."""
    return KNNLabeler(distance).predict(point, features, labels, k)
