"""
Feature engineering module for clustering.

Transforms raw record dicts into a numeric feature matrix plus a parallel
label list suitable for the k-means engine.
"""

from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.preprocessing import StandardScaler

from clustering.errors import InputErrorDetail, InvalidInputError


class FeatureEngineer:
    """
    Extracts, cleans, and optionally standardizes numeric features.

    Does not perform clustering or labeling.
    Transformation is deterministic given the same input.

    Args:
        feature_keys: Record keys to use as columns, in order. When None,
                      every key of the first record except ``label_key``.
        label_key:    Record key holding the row label, or None for
                      unlabeled data.
        scale:        Apply standard scaling (zero mean, unit variance).
    """

    def __init__(
        self,
        feature_keys: Optional[Sequence[str]] = None,
        label_key: Optional[str] = None,
        scale: bool = False,
    ) -> None:
        self._feature_keys = list(feature_keys) if feature_keys else None
        self._label_key = label_key
        self._scale_enabled = scale
        self._scaler = StandardScaler()

    def build_dataset(
        self, records: List[dict]
    ) -> Tuple[np.ndarray, Optional[List[str]], List[str]]:
        """
        Build a feature matrix and labels from a list of raw records.

        Args:
            records: List of dicts, one per data point.

        Returns:
            A tuple of:
                - feature_matrix: float array of shape (n_records, n_features).
                - labels: one string per record, or None when no label key
                  is configured.
                - feature_names: column names in matrix order.

        Raises:
            InvalidInputError: If there are no records, no feature columns,
                a requested feature key that no record carries,
                or a value cannot be parsed as a number.
        """
        if not records:
            raise InvalidInputError.single("empty_dataset", "no records to cluster.")

        names = self._resolve_feature_names(records)
        matrix = self._extract(records, names)
        labels = self._extract_labels(records)
        if self._scale_enabled:
            matrix = self._scale(matrix)
        return matrix, labels, names

    def transform_query(self, query: Sequence[Any]) -> np.ndarray:
        """
        Apply the fitted scaling (if enabled) to a single query vector.

        Raises:
            InvalidInputError: When scaling is enabled and the query width
                does not match the fitted columns or a component is not
                finite. Unscaled queries are checked by the engine.
        """
        vector = np.asarray(query, dtype=np.float64).reshape(1, -1)
        if self._scale_enabled:
            self._check_scalable_query(vector)
            vector = self._scaler.transform(vector)
        return vector.reshape(-1)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve_feature_names(self, records: List[dict]) -> List[str]:
        if self._feature_keys is not None:
            names = list(self._feature_keys)
            self._check_known_keys(records, names)
        else:
            names = [key for key in records[0].keys() if key != self._label_key]

        if not names:
            raise InvalidInputError.single("empty_features", "no feature columns selected.")
        return names

    @staticmethod
    def _check_known_keys(records: List[dict], names: List[str]) -> None:
        """
        Reject requested feature keys that no record carries.

        A key present in at least one record is accepted; rows lacking it
        fall back to 0.0 like any other missing value.
        """
        seen = set()
        for record in records:
            seen.update(record.keys())

        unknown = [key for key in names if key not in seen]
        if unknown:
            raise InvalidInputError(
                message=f"unknown feature column(s): {unknown}.",
                errors=[
                    InputErrorDetail(
                        code="unknown_feature",
                        message=f"no record has a column named {key!r}.",
                        context={"column": key, "available": sorted(str(k) for k in seen)},
                    )
                    for key in unknown
                ],
            )

    def _check_scalable_query(self, vector: np.ndarray) -> None:
        expected = int(getattr(self._scaler, "n_features_in_", vector.shape[1]))
        if vector.shape[1] != expected:
            raise InvalidInputError.single(
                "query_length_mismatch",
                f"query must have {expected} components to match the features, "
                f"got {vector.shape[1]}.",
                query=int(vector.shape[1]),
                columns=expected,
            )
        if not np.all(np.isfinite(vector)):
            raise InvalidInputError.single(
                "non_finite_query", "query contains NaN or infinite values."
            )

    def _extract(self, records: List[dict], names: List[str]) -> np.ndarray:
        """
        Pull the named numeric features from each record in order.

        Missing or blank values are filled with 0.0; anything else that
        does not parse as a finite float is rejected.
        """
        matrix = np.zeros((len(records), len(names)), dtype=np.float64)
        errors: List[InputErrorDetail] = []

        for i, record in enumerate(records):
            for j, key in enumerate(names):
                value = record.get(key)
                if value is None or (isinstance(value, str) and not value.strip()):
                    continue
                try:
                    matrix[i, j] = float(value)
                except (TypeError, ValueError):
                    errors.append(
                        InputErrorDetail(
                            code="non_numeric_value",
                            message=f"row {i} column {key!r} is not numeric: {value!r}.",
                            context={"row": i, "column": key, "value": str(value)},
                        )
                    )

        if errors:
            raise InvalidInputError(
                message=f"{len(errors)} non-numeric feature value(s).",
                errors=errors,
            )
        if not np.all(np.isfinite(matrix)):
            raise InvalidInputError.single(
                "non_finite_features", "features contain NaN or infinite values."
            )
        return matrix

    def _extract_labels(self, records: List[dict]) -> Optional[List[str]]:
        if self._label_key is None:
            return None
        return [
            "" if record.get(self._label_key) is None else str(record.get(self._label_key)).strip()
            for record in records
        ]

    def _scale(self, matrix: np.ndarray) -> np.ndarray:
        """
        Apply standard scaling column-wise.

        Constant columns become zeros, which is safe.
        """
        return self._scaler.fit_transform(matrix)
