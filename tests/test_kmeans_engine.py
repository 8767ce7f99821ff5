"""
tests/test_kmeans_engine.py

Pytest unit tests for KMeansEngine.

Exact-value assertions inject a deterministic initializer so that results do
not depend on random centroid sampling. Randomly initialized runs only assert
structural properties (shape, fixed point, centroid means).

Coverage
--------
- Two-group scenario: centroids, assignments, iteration count
- Centroid labeling through the labeler collaborator
- Query classification
- Empty clusters and first-minimum tie policy
- Fixed-point and mean invariants on random data
- Iteration cap and tolerance extensions
- Input validation and invalid computations
"""

from __future__ import annotations

import dataclasses
import logging

import numpy as np
import pytest

from app.config import ClusteringSettings
from clustering.distance import squared_euclidean
from clustering.errors import InvalidComputationError, InvalidInputError
from clustering.kmeans import ClusterResult, KMeansEngine, cluster
from clustering.sampler import CentroidSampler


TWO_GROUPS = np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 0.0], [10.0, 1.0]])
TWO_GROUP_LABELS = ["left", "left", "right", "right"]


def rows_initializer(rows):
    """Initializer that always picks the given feature rows, in order."""

    def _init(features: np.ndarray, n: int) -> np.ndarray:
        return features[list(rows)[:n]].copy()

    return _init


def make_blobs(seed: int = 7, per_blob: int = 15) -> np.ndarray:
    rng = np.random.default_rng(seed)
    centers = np.array([[0.0, 0.0], [8.0, 8.0], [-8.0, 8.0]])
    return np.vstack([center + rng.normal(scale=0.5, size=(per_blob, 2)) for center in centers])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> ClusteringSettings:
    return ClusteringSettings()


@pytest.fixture()
def engine(settings: ClusteringSettings) -> KMeansEngine:
    """Engine seeded on rows 0 and 2 of TWO_GROUPS (one per group)."""
    return KMeansEngine(initializer=rows_initializer([0, 2]), settings=settings)


@pytest.fixture()
def random_engine() -> KMeansEngine:
    settings = ClusteringSettings(max_iterations=1000, random_seed=11)
    return KMeansEngine(initializer=CentroidSampler(seed=11), settings=settings)


# ---------------------------------------------------------------------------
# ClusterResult contract
# ---------------------------------------------------------------------------


class TestClusterResultContract:
    def test_is_frozen(self) -> None:
        result = ClusterResult(centroids=np.zeros((2, 2)), centroid_labels=["", ""])
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.n_iter = 5  # type: ignore[misc]

    def test_n_clusters_follows_centroid_rows(self) -> None:
        result = ClusterResult(centroids=np.zeros((3, 4)), centroid_labels=["", "", ""])
        assert result.n_clusters == 3

    def test_defaults_describe_no_query(self) -> None:
        result = ClusterResult(centroids=np.zeros((1, 1)), centroid_labels=[""])
        assert result.query_label == ""
        assert result.query_cluster is None
        assert result.warnings == []


# ---------------------------------------------------------------------------
# Two-group scenario
# ---------------------------------------------------------------------------


class TestTwoGroupScenario:
    """Four points in two well-separated groups, n=2."""

    def test_centroids_are_group_means(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2)
        np.testing.assert_allclose(result.centroids, [[0.0, 0.5], [10.0, 0.5]])

    def test_converges_on_second_iteration(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2)
        assert result.converged is True
        assert result.n_iter == 2
        assert result.warnings == []

    def test_final_assignments_and_counts(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2)
        assert result.assignments.tolist() == [0, 0, 1, 1]
        assert result.counts.tolist() == [2, 2]

    def test_centroid_labels_from_nearest_neighbours(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)
        assert result.centroid_labels == ["left", "right"]

    def test_query_takes_label_of_nearest_centroid(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2, query=[10.0, 1.0], labels=TWO_GROUP_LABELS)
        assert result.query_label == "right"
        assert result.query_cluster == 1

    def test_query_equal_to_data_point_matches_brute_force(self, engine: KMeansEngine) -> None:
        query = TWO_GROUPS[1]
        result = engine.cluster(TWO_GROUPS, 2, query=query, labels=TWO_GROUP_LABELS)

        distances = [squared_euclidean(query, c) for c in result.centroids]
        nearest = int(np.argmin(distances))
        assert result.query_label == result.centroid_labels[nearest]
        assert result.query_cluster == nearest

    def test_no_query_gives_empty_label(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)
        assert result.query_label == ""
        assert result.query_cluster is None

    def test_empty_query_is_treated_as_absent(self, engine: KMeansEngine) -> None:
        result = engine.cluster(TWO_GROUPS, 2, query=[], labels=TWO_GROUP_LABELS)
        assert result.query_label == ""
        assert result.query_cluster is None

    def test_input_matrix_is_not_mutated(self, engine: KMeansEngine) -> None:
        features = TWO_GROUPS.copy()
        engine.cluster(features, 2)
        np.testing.assert_array_equal(features, TWO_GROUPS)


# ---------------------------------------------------------------------------
# Labeler collaborator
# ---------------------------------------------------------------------------


class RecordingLabeler:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __call__(self, point, features, labels, k):
        self.calls.append((tuple(point), len(features), list(labels), k))
        return np.array([0]), f"label-{len(self.calls)}"


class TestLabelerCollaborator:
    def test_labeler_called_once_per_centroid_with_five_neighbours(self, settings) -> None:
        labeler = RecordingLabeler()
        engine = KMeansEngine(initializer=rows_initializer([0, 2]), labeler=labeler, settings=settings)

        result = engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)

        assert len(labeler.calls) == 2
        assert all(call[3] == 5 for call in labeler.calls)
        assert all(call[1] == 4 for call in labeler.calls)
        assert all(call[2] == TWO_GROUP_LABELS for call in labeler.calls)
        assert result.centroid_labels == ["label-1", "label-2"]

    def test_labeler_receives_final_centroid_positions(self, settings) -> None:
        labeler = RecordingLabeler()
        engine = KMeansEngine(initializer=rows_initializer([0, 2]), labeler=labeler, settings=settings)

        engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)

        assert labeler.calls[0][0] == pytest.approx((0.0, 0.5))
        assert labeler.calls[1][0] == pytest.approx((10.0, 0.5))

    def test_neighbour_count_comes_from_settings(self) -> None:
        labeler = RecordingLabeler()
        engine = KMeansEngine(
            initializer=rows_initializer([0, 2]),
            labeler=labeler,
            settings=ClusteringSettings(label_neighbors=3),
        )
        engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)
        assert {call[3] for call in labeler.calls} == {3}

    @pytest.mark.parametrize("labels", [None, []])
    def test_unlabeled_mode_skips_labeler(self, settings, labels) -> None:
        labeler = RecordingLabeler()
        engine = KMeansEngine(initializer=rows_initializer([0, 2]), labeler=labeler, settings=settings)

        result = engine.cluster(TWO_GROUPS, 2, query=[0.0, 0.0], labels=labels)

        assert labeler.calls == []
        assert result.centroid_labels == ["", ""]
        assert result.query_label == ""
        assert result.query_cluster == 0


# ---------------------------------------------------------------------------
# Empty clusters and ties
# ---------------------------------------------------------------------------


class TestEmptyClusters:
    DUPLICATES = np.array([[0.0, 0.0], [0.0, 0.0], [5.0, 5.0], [5.0, 5.0]])

    def test_tie_goes_to_lowest_centroid_index(self, settings) -> None:
        engine = KMeansEngine(initializer=rows_initializer([0, 2, 1]), settings=settings)
        result = engine.cluster(self.DUPLICATES, 3)
        assert result.assignments.tolist() == [0, 0, 1, 1]
        assert result.counts.tolist() == [2, 2, 0]

    def test_empty_centroid_keeps_initial_position(self, settings) -> None:
        engine = KMeansEngine(initializer=rows_initializer([0, 2, 1]), settings=settings)
        result = engine.cluster(self.DUPLICATES, 3)
        np.testing.assert_array_equal(result.centroids[2], [0.0, 0.0])
        assert result.converged is True

    def test_more_clusters_than_rows_is_accepted(self, random_engine: KMeansEngine) -> None:
        result = random_engine.cluster(TWO_GROUPS, 6)
        assert result.centroids.shape == (6, 2)
        assert result.converged is True
        assert int(result.counts.sum()) == TWO_GROUPS.shape[0]

    def test_one_centroid_per_distinct_point_has_zero_error(self, settings) -> None:
        engine = KMeansEngine(initializer=rows_initializer([0, 1, 2, 3]), settings=settings)
        result = engine.cluster(TWO_GROUPS, 4)
        np.testing.assert_array_equal(result.centroids, TWO_GROUPS)
        _, min_distances = engine.assign(TWO_GROUPS, result.centroids)
        assert float(min_distances.sum()) == 0.0


# ---------------------------------------------------------------------------
# Invariants on randomly initialized runs
# ---------------------------------------------------------------------------


class TestRandomInitializationInvariants:
    @pytest.mark.parametrize("n_clusters", [1, 2, 3, 5])
    def test_centroid_shape(self, random_engine: KMeansEngine, n_clusters: int) -> None:
        features = make_blobs()
        result = random_engine.cluster(features, n_clusters)
        assert result.centroids.shape == (n_clusters, features.shape[1])
        assert len(result.centroid_labels) == n_clusters

    @pytest.mark.parametrize("n_clusters", [2, 3, 4])
    def test_converged_result_is_fixed_point(self, random_engine: KMeansEngine, n_clusters: int) -> None:
        features = make_blobs()
        result = random_engine.cluster(features, n_clusters)

        assert result.converged is True
        np.testing.assert_array_equal(random_engine.step(features, result.centroids), result.centroids)

    def test_non_empty_centroids_are_member_means(self, random_engine: KMeansEngine) -> None:
        features = make_blobs()
        result = random_engine.cluster(features, 3)
        assignments, _ = random_engine.assign(features, result.centroids)

        for cluster_id in range(3):
            members = features[assignments == cluster_id]
            if members.shape[0]:
                np.testing.assert_allclose(result.centroids[cluster_id], members.mean(axis=0))

    def test_same_seed_is_deterministic(self) -> None:
        features = make_blobs()
        settings = ClusteringSettings(max_iterations=1000)
        first = cluster(features, 3, seed=5, settings=settings)
        second = cluster(features, 3, seed=5, settings=settings)
        np.testing.assert_array_equal(first.centroids, second.centroids)


# ---------------------------------------------------------------------------
# Convergence controls
# ---------------------------------------------------------------------------


class TestConvergenceControls:
    def test_default_settings_are_unbounded_and_exact(self, settings: ClusteringSettings) -> None:
        assert settings.max_iterations is None
        assert settings.convergence_tolerance == 0.0

    def test_iteration_cap_stops_without_converging(self) -> None:
        engine = KMeansEngine(
            initializer=rows_initializer([0, 2]),
            settings=ClusteringSettings(max_iterations=1),
        )
        result = engine.cluster(TWO_GROUPS, 2, labels=TWO_GROUP_LABELS)

        assert result.converged is False
        assert result.n_iter == 1
        assert len(result.warnings) == 1
        assert "1 iterations" in result.warnings[0]

    def test_capped_run_still_labels_centroids(self) -> None:
        engine = KMeansEngine(
            initializer=rows_initializer([0, 2]),
            settings=ClusteringSettings(max_iterations=1),
        )
        result = engine.cluster(TWO_GROUPS, 2, query=[0.0, 1.0], labels=TWO_GROUP_LABELS)
        assert result.centroid_labels == ["left", "right"]
        assert result.query_label == "left"

    def test_iteration_cap_logs_warning_event(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="clustering.kmeans")
        engine = KMeansEngine(
            initializer=rows_initializer([0, 2]),
            settings=ClusteringSettings(max_iterations=1),
        )
        engine.cluster(TWO_GROUPS, 2)
        assert "kmeans.iteration_cap_reached" in caplog.text

    def test_large_tolerance_stops_after_first_update(self) -> None:
        engine = KMeansEngine(
            initializer=rows_initializer([0, 2]),
            settings=ClusteringSettings(convergence_tolerance=1e9),
        )
        result = engine.cluster(TWO_GROUPS, 2)
        assert result.converged is True
        assert result.n_iter == 1


# ---------------------------------------------------------------------------
# Update step
# ---------------------------------------------------------------------------


class TestUpdateStep:
    def test_update_means_and_counts(self) -> None:
        centroids = np.array([[0.0, 0.0], [10.0, 0.0], [99.0, 99.0]])
        new, counts = KMeansEngine.update(TWO_GROUPS, centroids, np.array([0, 0, 1, 1]))
        np.testing.assert_allclose(new, [[0.0, 0.5], [10.0, 0.5], [99.0, 99.0]])
        assert counts.tolist() == [2, 2, 0]

    def test_update_does_not_mutate_previous_centroids(self) -> None:
        centroids = np.array([[0.0, 0.0], [10.0, 0.0]])
        KMeansEngine.update(TWO_GROUPS, centroids, np.array([0, 0, 1, 1]))
        np.testing.assert_array_equal(centroids, [[0.0, 0.0], [10.0, 0.0]])


# ---------------------------------------------------------------------------
# Validation and invalid computations
# ---------------------------------------------------------------------------


class TestValidation:
    def test_empty_features_rejected(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster([], 2)
        assert "empty_features" in exc_info.value.codes

    def test_one_dimensional_features_rejected(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster([1.0, 2.0, 3.0], 1)
        assert "invalid_shape" in exc_info.value.codes

    def test_nan_features_rejected(self, engine: KMeansEngine) -> None:
        features = TWO_GROUPS.copy()
        features[1, 1] = np.nan
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(features, 2)
        assert "non_finite_features" in exc_info.value.codes

    @pytest.mark.parametrize("n_clusters", [0, -1, 1.5, True, "2"])
    def test_invalid_cluster_count_rejected(self, engine: KMeansEngine, n_clusters) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, n_clusters)
        assert "invalid_cluster_count" in exc_info.value.codes

    def test_label_length_mismatch_rejected(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 2, labels=["a", "b"])
        assert "label_length_mismatch" in exc_info.value.codes

    def test_query_length_mismatch_rejected(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 2, query=[1.0, 2.0, 3.0])
        assert "query_length_mismatch" in exc_info.value.codes

    def test_non_finite_query_rejected(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 2, query=[np.inf, 0.0])
        assert exc_info.value.codes == {"non_finite_query"}

    def test_all_problems_reported_together(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 0, query=[1.0], labels=["a"])
        assert exc_info.value.codes == {
            "invalid_cluster_count",
            "label_length_mismatch",
            "query_length_mismatch",
        }

    def test_invalid_input_is_a_value_error(self, engine: KMeansEngine) -> None:
        with pytest.raises(ValueError):
            engine.cluster([], 2)

    def test_error_serializes_to_dict(self, engine: KMeansEngine) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 0)
        payload = exc_info.value.to_dict()
        assert payload["errors"][0]["code"] == "invalid_cluster_count"
        assert payload["message"]

    def test_initializer_with_wrong_shape_rejected(self, settings) -> None:
        engine = KMeansEngine(initializer=lambda features, n: features[:1], settings=settings)
        with pytest.raises(InvalidInputError) as exc_info:
            engine.cluster(TWO_GROUPS, 2)
        assert "invalid_initial_centroids" in exc_info.value.codes

    def test_nan_distance_raises_invalid_computation(self, settings) -> None:
        engine = KMeansEngine(
            distance=lambda u, v: float("nan"),
            initializer=rows_initializer([0, 2]),
            settings=settings,
        )
        with pytest.raises(InvalidComputationError) as exc_info:
            engine.cluster(TWO_GROUPS, 2)
        assert isinstance(exc_info.value, ArithmeticError)
