from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

import numpy as np
import pandas as pd
from sklearn.base import RegressorMixin

from split_conformal.features.schema import FeatureSchema


@runtime_checkable
class PointPredictor(Protocol):
    """Any regressor the conformal layer can wrap: fit on train, predict any rows."""

    def fit(self, x: pd.DataFrame, y: pd.Series) -> Any: ...

    def predict(self, x: pd.DataFrame) -> np.ndarray: ...


EstimatorFactory = Callable[[dict[str, Any]], RegressorMixin]


@dataclass(frozen=True, slots=True)
class CandidateModel:
    name: str
    estimator_factory: EstimatorFactory
    parameter_grid: tuple[dict[str, Any], ...] = ({},)
    scale_numeric: bool = True


@dataclass(frozen=True, slots=True)
class ModelScore:
    model_name: str
    parameters: dict[str, Any]
    metrics: dict[str, float]


@dataclass(frozen=True, slots=True)
class TrainingResult:
    predictor: PointPredictor
    best_score: ModelScore
    leaderboard: tuple[ModelScore, ...]
    schema: FeatureSchema
