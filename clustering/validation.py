"""
clustering/validation.py

Fail-fast validation of feature matrices, cluster counts, labels and queries.

Every check raises :class:`InvalidInputError` with a machine-readable code.
``validate_clustering_inputs`` collects all problems of one call before
raising, so callers see every issue at once.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from clustering.errors import InputErrorDetail, InvalidInputError


def as_feature_matrix(features: Any) -> np.ndarray:
    """
    Convert *features* to a finite, non-empty 2-D float64 array.

    Raises:
        InvalidInputError: On empty, non-2-D, non-numeric or non-finite input.
    """
    try:
        matrix = np.asarray(features, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError.single(
            "invalid_shape",
            f"features must be a numeric 2-D array: {exc}",
        ) from exc

    if matrix.size == 0:
        raise InvalidInputError.single("empty_features", "features array is empty (0 samples).")

    if matrix.ndim != 2:
        raise InvalidInputError.single(
            "invalid_shape",
            f"features must be a 2-D array, got shape {matrix.shape}.",
            shape=list(matrix.shape),
        )

    if not np.all(np.isfinite(matrix)):
        bad_rows = np.where(~np.all(np.isfinite(matrix), axis=1))[0]
        raise InvalidInputError.single(
            "non_finite_features",
            "features contain NaN or infinite values.",
            rows=[int(row) for row in bad_rows[:10]],
        )

    return matrix


def cluster_count_error(n_clusters: Any, *, field: str = "n_clusters") -> InputErrorDetail | None:
    """
    Return an error detail when *n_clusters* is not a positive integer.
    """
    if isinstance(n_clusters, bool) or not isinstance(n_clusters, (int, np.integer)) or n_clusters < 1:
        return InputErrorDetail(
            code="invalid_cluster_count",
            message=f"{field} must be a positive integer, got {n_clusters!r}.",
            context={"value": repr(n_clusters)},
        )
    return None


def validate_cluster_count(n_clusters: Any, *, field: str = "n_clusters") -> int:
    error = cluster_count_error(n_clusters, field=field)
    if error is not None:
        raise InvalidInputError(message=error.message, errors=[error])
    return int(n_clusters)


def normalize_labels(labels: Sequence[Any] | None) -> list[str] | None:
    """
    Return labels as a list of strings, or None for unlabeled mode.
    """
    if labels is None:
        return None
    values = list(np.asarray(labels, dtype=object).reshape(-1))
    if not values:
        return None
    return ["" if value is None else str(value) for value in values]


def normalize_query(query: Any) -> np.ndarray | None:
    """
    Return the query as a 1-D float array, or None when absent or empty.
    """
    if query is None:
        return None
    vector = np.asarray(query, dtype=np.float64).reshape(-1)
    if vector.size == 0:
        return None
    return vector


def validate_clustering_inputs(
    features: Any,
    n_clusters: Any,
    query: Any = None,
    labels: Sequence[Any] | None = None,
) -> tuple[np.ndarray, int, np.ndarray | None, list[str] | None]:
    """
    Validate one clustering call and return normalized inputs.

    Returns:
        ``(matrix, n_clusters, query_vector_or_None, labels_or_None)``.

    Raises:
        InvalidInputError: Listing every problem found.
    """
    matrix = as_feature_matrix(features)
    n_rows, n_cols = matrix.shape
    errors: list[InputErrorDetail] = []

    count_error = cluster_count_error(n_clusters)
    if count_error is not None:
        errors.append(count_error)

    label_list = normalize_labels(labels)
    if label_list is not None and len(label_list) != n_rows:
        errors.append(
            InputErrorDetail(
                code="label_length_mismatch",
                message=(
                    f"labels and features must have the same length; "
                    f"got {len(label_list)} labels and {n_rows} rows."
                ),
                context={"labels": len(label_list), "rows": n_rows},
            )
        )

    query_vector = normalize_query(query)
    if query_vector is not None:
        if query_vector.shape[0] != n_cols:
            errors.append(
                InputErrorDetail(
                    code="query_length_mismatch",
                    message=(
                        f"query must have {n_cols} components to match the features, "
                        f"got {query_vector.shape[0]}."
                    ),
                    context={"query": int(query_vector.shape[0]), "columns": n_cols},
                )
            )
        elif not np.all(np.isfinite(query_vector)):
            errors.append(
                InputErrorDetail(
                    code="non_finite_query",
                    message="query contains NaN or infinite values.",
                )
            )

    if errors:
        raise InvalidInputError(
            message="; ".join(error.message for error in errors),
            errors=errors,
        )

    return matrix, int(n_clusters), query_vector, label_list
