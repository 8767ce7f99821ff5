"""
diagnostics/base.py

Abstract base class for model-selection diagnostics built on the k-means engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from clustering.kmeans import KMeansEngine


class BaseDiagnostic(ABC):
    """
    Contract for clustering diagnostics.

    Subclasses run the engine in unlabeled mode and summarise the converged
    centroids into a score. They report numbers only; choosing ``k`` is
    left to the caller.
    """

    def __init__(self, engine: KMeansEngine | None = None) -> None:
        self._engine = engine if engine is not None else KMeansEngine()

    @property
    def engine(self) -> KMeansEngine:
        return self._engine

    @abstractmethod
    def evaluate(self, features: Any, n_clusters: int) -> Any:
        """
        Compute the diagnostic for *features*.

        Parameters
        ----------
        features:
            2-D feature matrix, one row per data point.
        n_clusters:
            Cluster count (or the maximum cluster count for sweeps).

        Returns
        -------
        Any
            Diagnostic value; the concrete type is defined by each subclass.
        """
