"""
Clustering orchestrator.

Wires together feature engineering, the k-means engine, profiling and the
diagnostics into single deterministic pipeline calls.
No clustering math lives here.
"""

from typing import Any, List, Optional, Sequence

from app.config import ClusteringSettings, get_clustering_settings
from clustering.features import FeatureEngineer
from clustering.kmeans import KMeansEngine
from clustering.profiling import ClusterProfiler
from clustering.schema import ClusteringReport, ElbowReport, SilhouetteReport
from diagnostics.elbow import ElbowDiagnostic
from diagnostics.silhouette import SilhouetteDiagnostic


class ClusteringOrchestrator:
    """
    Coordinates the end-to-end clustering pipeline.

    Each pipeline step is delegated entirely to its dedicated module:
        1. FeatureEngineer: builds the feature matrix and labels.
        2. KMeansEngine: converges centroids, labels them, classifies the query.
        3. ClusterProfiler: computes per-cluster aggregates.
        4. Elbow / Silhouette diagnostics: model-selection numbers.

    Every returned dict is validated against its pydantic report schema.

    Args:
        engine:   Optional pre-built engine (tests inject deterministic
                  initializers here). Defaults to one built from settings.
        settings: Optional settings; defaults to the cached env settings.
    """

    def __init__(
        self,
        engine: Optional[KMeansEngine] = None,
        settings: Optional[ClusteringSettings] = None,
    ) -> None:
        self._settings = settings if settings is not None else get_clustering_settings()
        self._engine = engine if engine is not None else KMeansEngine(settings=self._settings)
        self._profiler = ClusterProfiler(self._engine.distance)

    def run_clustering(
        self,
        records: List[dict],
        n_clusters: int,
        feature_keys: Optional[Sequence[str]] = None,
        label_key: Optional[str] = None,
        query: Optional[Sequence[Any]] = None,
        scale: bool = False,
    ) -> dict:
        """
        Cluster *records* and return a labeled, profiled report.

        Returns:
            Dict matching :class:`ClusteringReport`.

        Raises:
            InvalidInputError: Propagated from feature engineering or the engine.
        """
        engineer = FeatureEngineer(feature_keys=feature_keys, label_key=label_key, scale=scale)
        matrix, labels, names = engineer.build_dataset(records)
        query_vector = engineer.transform_query(query) if query is not None and len(query) else None

        result = self._engine.cluster(matrix, n_clusters, query=query_vector, labels=labels)
        profiles = self._profiler.profile_clusters(matrix, result)

        report = ClusteringReport(
            n_clusters=result.n_clusters,
            feature_names=names,
            centroids=[[float(v) for v in row] for row in result.centroids],
            centroid_labels=list(result.centroid_labels),
            query_label=result.query_label,
            query_cluster=result.query_cluster,
            n_iter=result.n_iter,
            converged=result.converged,
            warnings=list(result.warnings),
            clusters=profiles,
        )
        return report.model_dump()

    def run_elbow(
        self,
        records: List[dict],
        max_clusters: int,
        feature_keys: Optional[Sequence[str]] = None,
        label_key: Optional[str] = None,
        scale: bool = False,
    ) -> dict:
        """
        Return the elbow error sums for k = 1..max_clusters.
        """
        matrix, _labels, _names = FeatureEngineer(
            feature_keys=feature_keys, label_key=label_key, scale=scale
        ).build_dataset(records)

        sse = ElbowDiagnostic(self._engine).evaluate(matrix, max_clusters)
        report = ElbowReport(
            max_clusters=max_clusters,
            ks=list(range(1, max_clusters + 1)),
            sse=[float(v) for v in sse],
        )
        return report.model_dump()

    def run_silhouette(
        self,
        records: List[dict],
        n_clusters: int,
        feature_keys: Optional[Sequence[str]] = None,
        label_key: Optional[str] = None,
        scale: bool = False,
    ) -> dict:
        """
        Return the mean silhouette coefficient for one run with *n_clusters*.
        """
        matrix, _labels, _names = FeatureEngineer(
            feature_keys=feature_keys, label_key=label_key, scale=scale
        ).build_dataset(records)

        score = SilhouetteDiagnostic(self._engine).evaluate(matrix, n_clusters)
        return SilhouetteReport(n_clusters=n_clusters, score=score).model_dump()
