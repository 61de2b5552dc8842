from __future__ import annotations

from typing import Any, Mapping

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingRegressor
from sklearn.linear_model import LinearRegression

from split_conformal.features.schema import FeatureSchema
from split_conformal.modeling.contracts import CandidateModel, PointPredictor


def default_candidates(random_state: int = 42) -> list[CandidateModel]:
    return [
        CandidateModel(
            name="LinearRegression",
            estimator_factory=lambda _: LinearRegression(),
            parameter_grid=({},),
        ),
        CandidateModel(
            name="GradientBoostingRegressor",
            estimator_factory=lambda params: GradientBoostingRegressor(random_state=random_state, **params),
            parameter_grid=({"n_estimators": 150, "learning_rate": 0.08, "max_depth": 3},),
            scale_numeric=False,
        ),
    ]


def candidates_by_name(names: list[str], random_state: int = 42) -> list[CandidateModel]:
    available = {candidate.name: candidate for candidate in default_candidates(random_state=random_state)}
    unknown = [name for name in names if name not in available]
    if unknown:
        raise ValueError(f"Unknown candidate models: {unknown}. Available: {sorted(available)}")
    return [available[name] for name in names]


def predict_frame(model: PointPredictor, x: pd.DataFrame) -> np.ndarray:
    predictions = np.asarray(model.predict(x), dtype=float).reshape(-1)
    if predictions.shape[0] != x.shape[0]:
        raise ValueError(
            f"Point predictor returned {predictions.shape[0]} predictions for {x.shape[0]} rows."
        )
    if not np.all(np.isfinite(predictions)):
        raise ValueError("Point predictor returned non-finite predictions.")
    return predictions


def predict_row(model: PointPredictor, row: Mapping[str, Any], schema: FeatureSchema) -> float:
    missing = [name for name in schema.all_features if name not in row]
    if missing:
        raise ValueError(f"Missing required features: {missing}")
    frame = pd.DataFrame([{name: row[name] for name in schema.all_features}])
    return float(predict_frame(model, frame)[0])
