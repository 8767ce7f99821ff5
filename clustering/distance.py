"""
Distance functions used by the k-means engine, the k-NN labeler and the
diagnostics.

A distance function takes two equal-length vectors and returns a
non-negative float with ``dist(u, u) == 0``. The default is squared
Euclidean; the error-sum and silhouette computations assume a
squared-distance-like value.
"""

from typing import Callable, Dict

import numpy as np

from clustering.errors import InvalidInputError


DistanceFunction = Callable[[np.ndarray, np.ndarray], float]


def squared_euclidean(u: np.ndarray, v: np.ndarray) -> float:
    """Sum of squared component differences."""
    diff = np.asarray(u, dtype=np.float64) - np.asarray(v, dtype=np.float64)
    return float(np.dot(diff, diff))


def euclidean(u: np.ndarray, v: np.ndarray) -> float:
    """Straight-line distance."""
    return float(np.sqrt(squared_euclidean(u, v)))


_DISTANCES: Dict[str, DistanceFunction] = {
    "squared_euclidean": squared_euclidean,
    "euclidean": euclidean,
}

# Names whose values are already linear; silhouette must not root them again.
LINEAR_DISTANCES = frozenset({"euclidean"})


def available_distances() -> list[str]:
    return sorted(_DISTANCES)


def get_distance(name: str) -> DistanceFunction:
    """
    Look up a distance function by registry name.

    Raises:
        InvalidInputError: If the name is not registered.
    """
    key = name.strip().lower()
    try:
        return _DISTANCES[key]
    except KeyError:
        raise InvalidInputError.single(
            "unknown_distance",
            f"Unknown distance {name!r}. Allowed values: {available_distances()}.",
            name=name,
        ) from None


def is_linear_distance(distance: DistanceFunction) -> bool:
    """
    True when *distance* is a registered function whose values are already
    linear. Unregistered functions are treated as squared-distance-like.
    """
    return any(distance is _DISTANCES[name] for name in LINEAR_DISTANCES)
