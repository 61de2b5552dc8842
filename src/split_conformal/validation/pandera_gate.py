from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from split_conformal.errors import DataValidationError
from split_conformal.features.schema import FeatureSchema
from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    frame: pd.DataFrame
    dropped_rows: int
    failures_by_column: dict[str, int] = field(default_factory=dict)


def _pandera():
    try:
        import pandera.pandas as pa
    except Exception as exc:
        raise RuntimeError("Pandera is required for validation gates.") from exc
    return pa


def _finite_number(values: pd.Series) -> pd.Series:
    return pd.Series(np.isfinite(pd.to_numeric(values, errors="coerce")), index=values.index)


def build_row_schema(schema: FeatureSchema, *, require_target: bool):
    """Untyped schema whose failures always point at a row index."""
    pa = _pandera()
    finite = pa.Check(_finite_number, error="finite_number")
    columns: dict[str, Any] = {}

    for feature in schema.numeric_features:
        columns[feature] = pa.Column(checks=finite, nullable=False)

    for feature in schema.categorical_features:
        columns[feature] = pa.Column(nullable=False)

    if require_target:
        columns[schema.target_name] = pa.Column(checks=finite, nullable=False)

    return pa.DataFrameSchema(columns=columns, strict=False)


def build_pandera_schema(
    schema: FeatureSchema,
    *,
    require_target: bool,
    allow_extra_columns: bool = True,
):
    pa = _pandera()
    columns: dict[str, Any] = {}

    for feature in schema.numeric_features:
        columns[feature] = pa.Column(float, nullable=False, coerce=True)

    for feature in schema.categorical_features:
        columns[feature] = pa.Column(str, nullable=False, coerce=True)

    if require_target:
        columns[schema.target_name] = pa.Column(float, nullable=False, coerce=True)

    return pa.DataFrameSchema(
        columns=columns,
        strict=not allow_extra_columns,
        coerce=True,
    )


def drop_invalid_rows(
    frame: pd.DataFrame,
    schema: FeatureSchema,
    *,
    require_target: bool = True,
    context: str = "input",
) -> ValidationOutcome:
    """Drop every row with a missing or non-finite value, then coerce column types.

    Missing columns are fatal; bad cell values only cost their row.
    """
    schema.ensure_valid()
    schema.validate_frame(frame, require_target=require_target)
    pa = _pandera()

    failures_by_column: dict[str, int] = {}
    kept = frame
    try:
        build_row_schema(schema, require_target=require_target).validate(frame, lazy=True)
    except pa.errors.SchemaErrors as exc:
        cases = exc.failure_cases
        row_cases = cases.dropna(subset=["index"])
        if row_cases.shape[0] != cases.shape[0]:
            raise DataValidationError(f"Validation gate failed in {context}: {exc}") from exc
        failures_by_column = {
            str(column): int(count)
            for column, count in row_cases.groupby("column")["index"].nunique().items()
        }
        kept = frame.drop(index=pd.Index(row_cases["index"].unique()))

    dropped = int(frame.shape[0] - kept.shape[0])
    if dropped:
        logger.warning(
            f"[DATA] Dropped {dropped} of {frame.shape[0]} rows with missing or invalid values "
            f"in {context}: {failures_by_column}"
        )
    else:
        logger.info(f"[DATA] All {frame.shape[0]} rows passed validation in {context}")

    if kept.empty:
        raise DataValidationError(f"No valid rows remain after validation in {context}.")

    try:
        validated = build_pandera_schema(schema, require_target=require_target).validate(kept, lazy=True)
    except pa.errors.SchemaErrors as exc:
        raise DataValidationError(f"Validation gate failed in {context}: {exc}") from exc

    return ValidationOutcome(
        frame=validated,
        dropped_rows=dropped,
        failures_by_column=failures_by_column,
    )
