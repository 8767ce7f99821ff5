"""Structured output schemas for clustering and diagnostic reports."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


_REPORT_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    str_strip_whitespace=True,
)


class ClusterProfile(BaseModel):
    """Summary of one cluster of a converged run."""

    model_config = _REPORT_CONFIG

    size: int = Field(ge=0)
    sse: float = Field(ge=0.0)
    mean_distance: float = Field(ge=0.0)
    label: str
    centroid: List[float]


class ClusteringReport(BaseModel):
    """Output contract of a single clustering run."""

    model_config = _REPORT_CONFIG

    n_clusters: int = Field(ge=1)
    feature_names: List[str]
    centroids: List[List[float]]
    centroid_labels: List[str]
    query_label: str = ""
    query_cluster: Optional[int] = None
    n_iter: int = Field(ge=1)
    converged: bool
    warnings: List[str] = Field(default_factory=list)
    clusters: Dict[int, ClusterProfile]

    @model_validator(mode="after")
    def _check_cluster_count(self) -> "ClusteringReport":
        if len(self.centroids) != self.n_clusters:
            raise ValueError("centroids must contain exactly n_clusters rows.")
        if len(self.centroid_labels) != self.n_clusters:
            raise ValueError("centroid_labels must contain exactly n_clusters entries.")
        width = len(self.feature_names)
        if any(len(row) != width for row in self.centroids):
            raise ValueError("every centroid must have one value per feature.")
        return self


class ElbowReport(BaseModel):
    """Output contract of an elbow sweep."""

    model_config = _REPORT_CONFIG

    max_clusters: int = Field(ge=1)
    ks: List[int]
    sse: List[float]

    @model_validator(mode="after")
    def _check_lengths(self) -> "ElbowReport":
        if len(self.ks) != self.max_clusters or len(self.sse) != self.max_clusters:
            raise ValueError("ks and sse must contain exactly max_clusters entries.")
        return self


class SilhouetteReport(BaseModel):
    """Output contract of a silhouette evaluation."""

    model_config = _REPORT_CONFIG

    n_clusters: int = Field(ge=1)
    score: float = Field(ge=-1.0, le=1.0)
