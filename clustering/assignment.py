"""
Nearest-centroid search shared by the engine and the diagnostics.

The minimum search scans centroids in increasing index order and keeps the
first minimum, so ties always resolve to the lowest centroid index.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from clustering.distance import DistanceFunction
from clustering.errors import InvalidComputationError


def pairwise_distances(
    points: np.ndarray,
    centroids: np.ndarray,
    distance: DistanceFunction,
) -> np.ndarray:
    """
    Distance from every point to every centroid.

    Args:
        points:    2-D array of shape (n_points, n_features).
        centroids: 2-D array of shape (n_centroids, n_features).
        distance:  Pairwise distance function.

    Returns:
        Array of shape (n_points, n_centroids).

    Raises:
        InvalidComputationError: If the distance function returns NaN or a
            negative value.
    """
    out = np.empty((points.shape[0], centroids.shape[0]), dtype=np.float64)
    for i, point in enumerate(points):
        for j, centroid in enumerate(centroids):
            out[i, j] = distance(point, centroid)

    if np.any(np.isnan(out)):
        raise InvalidComputationError("distance function returned NaN.")
    if np.any(out < 0.0):
        raise InvalidComputationError("distance function returned a negative value.")
    return out


def nearest_centroids(
    points: np.ndarray,
    centroids: np.ndarray,
    distance: DistanceFunction,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Assign every point to its nearest centroid.

    Returns:
        A tuple of:
            - assignments:   1-D int array, index of the nearest centroid.
            - min_distances: 1-D float array, distance to that centroid.
    """
    distances = pairwise_distances(points, centroids, distance)
    # np.argmin returns the first occurrence of the minimum.
    assignments = np.argmin(distances, axis=1).astype(np.int64)
    min_distances = distances[np.arange(points.shape[0]), assignments]
    return assignments, min_distances
