"""
app/config.py

Application-level configuration helpers for the clustering engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_DISTANCE = "squared_euclidean"
DEFAULT_LABEL_NEIGHBORS = 5


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_optional_int_env(name: str) -> int | None:
    """
    Read an optional integer; blank or unparsable values become None.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ClusteringSettings:
    """
    Runtime settings for the k-means engine and its diagnostics.

    ``max_iterations=None`` keeps the loop unbounded; a positive value is a
    safety cap after which the run stops with ``converged=False``.
    ``convergence_tolerance=0.0`` is the exact-equality convergence test.
    """

    distance: str = DEFAULT_DISTANCE
    max_iterations: int | None = None
    convergence_tolerance: float = 0.0
    label_neighbors: int = DEFAULT_LABEL_NEIGHBORS
    random_seed: int | None = None


@lru_cache(maxsize=1)
def get_clustering_settings() -> ClusteringSettings:
    """
    Return cached clustering settings from environment variables.
    """

    max_iterations = _get_optional_int_env("KMEANS_MAX_ITERATIONS")
    if max_iterations is not None and max_iterations <= 0:
        max_iterations = None

    return ClusteringSettings(
        distance=_get_str_env("KMEANS_DISTANCE", DEFAULT_DISTANCE).lower(),
        max_iterations=max_iterations,
        convergence_tolerance=max(0.0, _get_float_env("KMEANS_CONVERGENCE_TOLERANCE", 0.0)),
        label_neighbors=max(1, _get_int_env("KMEANS_LABEL_NEIGHBORS", DEFAULT_LABEL_NEIGHBORS)),
        random_seed=_get_optional_int_env("KMEANS_RANDOM_SEED"),
    )
