"""
clustering/dataset.py

CSV dataset reader producing record dicts for the feature engineer.
"""

from __future__ import annotations

import csv
from pathlib import Path

from clustering.errors import InvalidInputError


def read_csv_records(path: str | Path) -> list[dict[str, str]]:
    """
    Read a headered CSV file into a list of row dicts.

    Completely blank rows are skipped. Values are returned as raw strings;
    numeric parsing happens in :class:`clustering.features.FeatureEngineer`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        InvalidInputError: If the file has no header or no data rows.
    """

    csv_path = Path(path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise InvalidInputError.single(
                "empty_dataset", f"CSV file has no header row: {csv_path}", path=str(csv_path)
            )
        records = [
            {key.strip(): (value or "").strip() for key, value in row.items() if key is not None}
            for row in reader
            if any((value or "").strip() for value in row.values() if isinstance(value, str))
        ]

    if not records:
        raise InvalidInputError.single(
            "empty_dataset", f"CSV file has no data rows: {csv_path}", path=str(csv_path)
        )
    return records
