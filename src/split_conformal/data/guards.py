from __future__ import annotations

from typing import Iterable, Mapping

import pandas as pd

from split_conformal.errors import DataValidationError, PartitionError


def ensure_required_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    required = list(columns)
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise DataValidationError(f"Missing required columns: {missing}")


def ensure_no_leakage(feature_names: Iterable[str], target_name: str) -> None:
    names = list(feature_names)
    if target_name in names:
        raise DataValidationError(f"Target column '{target_name}' must not appear in features.")


def ensure_unique_index(frame: pd.DataFrame) -> None:
    if not frame.index.is_unique:
        raise DataValidationError("Row ids must be unique; reset the frame index before partitioning.")


def ensure_disjoint_partition(row_ids: Mapping[str, Iterable[object]], universe: Iterable[object]) -> None:
    """Splits must not overlap and together must cover every row exactly once."""
    seen: dict[object, str] = {}
    for split_name, ids in row_ids.items():
        for row_id in ids:
            if row_id in seen:
                raise PartitionError(
                    f"Row {row_id!r} assigned to both '{seen[row_id]}' and '{split_name}' splits."
                )
            seen[row_id] = split_name
    expected = set(universe)
    unassigned = expected.difference(seen)
    if unassigned:
        raise PartitionError(f"{len(unassigned)} rows were not assigned to any split.")
    unknown = set(seen).difference(expected)
    if unknown:
        raise PartitionError(f"{len(unknown)} split rows do not belong to the dataset.")
