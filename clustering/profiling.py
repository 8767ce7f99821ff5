"""
Cluster profiling module.

Computes per-cluster aggregate statistics from the feature matrix and a
converged :class:`ClusterResult`. No clustering happens here.
"""

from typing import Any

import numpy as np

from clustering.assignment import nearest_centroids
from clustering.distance import DistanceFunction, squared_euclidean
from clustering.kmeans import ClusterResult
from clustering.validation import as_feature_matrix


class ClusterProfiler:
    """
    Summarises each cluster of a converged run.

    Responsibilities:
        - Re-assign rows to the final centroids.
        - Compute size, error sum and mean distance per cluster.
        - Carry the centroid label and position alongside.

    Not responsible for:
        - Cluster assignment during fitting (that is the engine's job).
        - Choosing k.
    """

    def __init__(self, distance: DistanceFunction = squared_euclidean) -> None:
        self._distance = distance

    def profile_clusters(self, features: Any, result: ClusterResult) -> dict:
        """
        Build a profile summary for every centroid, empty ones included.

        Returns:
            Dict mapping cluster_id (int) to::

                {
                    "size": int,
                    "sse": float,
                    "mean_distance": float,
                    "label": str,
                    "centroid": list[float],
                }
        """
        matrix = as_feature_matrix(features)
        assignments, min_distances = nearest_centroids(matrix, result.centroids, self._distance)

        profiles = {}
        for cluster_id in range(result.n_clusters):
            member_distances = min_distances[assignments == cluster_id]
            size = int(member_distances.shape[0])
            profiles[cluster_id] = {
                "size": size,
                "sse": float(np.sum(member_distances)),
                "mean_distance": float(np.mean(member_distances)) if size else 0.0,
                "label": result.centroid_labels[cluster_id],
                "centroid": [float(v) for v in result.centroids[cluster_id]],
            }
        return profiles
