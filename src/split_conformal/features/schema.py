from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from split_conformal.errors import DataValidationError


@dataclass(frozen=True, slots=True)
class FeatureSchema:
    numeric_features: tuple[str, ...]
    categorical_features: tuple[str, ...]
    target_name: str

    @classmethod
    def create(
        cls,
        numeric_features: Iterable[str],
        categorical_features: Iterable[str],
        target_name: str,
    ) -> "FeatureSchema":
        return cls(
            numeric_features=tuple(numeric_features),
            categorical_features=tuple(categorical_features),
            target_name=target_name,
        )

    @classmethod
    def infer(
        cls,
        frame: pd.DataFrame,
        target_name: str,
        exclude: Iterable[str] = (),
    ) -> "FeatureSchema":
        """Split every non-target column into numeric or categorical by dtype."""
        if target_name not in frame.columns:
            raise DataValidationError(f"Target column '{target_name}' not found in input table.")
        skipped = set(exclude) | {target_name}
        numeric: list[str] = []
        categorical: list[str] = []
        for column in frame.columns:
            if column in skipped:
                continue
            if pd.api.types.is_bool_dtype(frame[column]):
                categorical.append(str(column))
            elif pd.api.types.is_numeric_dtype(frame[column]):
                numeric.append(str(column))
            else:
                categorical.append(str(column))
        return cls.create(numeric, categorical, target_name)

    @property
    def all_features(self) -> tuple[str, ...]:
        return self.numeric_features + self.categorical_features

    def ensure_valid(self) -> None:
        if not self.numeric_features and not self.categorical_features:
            raise DataValidationError("Feature schema must include at least one feature.")
        duplicates = [name for name in self.all_features if self.all_features.count(name) > 1]
        if duplicates:
            raise DataValidationError(f"Duplicated features are not allowed: {sorted(set(duplicates))}")
        if self.target_name in self.all_features:
            raise DataValidationError("Target column must not be part of input features.")

    def validate_frame(self, frame: pd.DataFrame, require_target: bool = True) -> None:
        required = list(self.all_features)
        if require_target:
            required.append(self.target_name)
        missing = [column for column in required if column not in frame.columns]
        if missing:
            raise DataValidationError(f"Missing required columns: {missing}")

    def as_dict(self) -> dict[str, object]:
        return {
            "numeric_features": list(self.numeric_features),
            "categorical_features": list(self.categorical_features),
            "target_name": self.target_name,
        }
