from __future__ import annotations

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, cross_val_score
from sklearn.pipeline import Pipeline

from split_conformal.features.preprocessor import build_preprocessor
from split_conformal.features.schema import FeatureSchema
from split_conformal.logging_utils import get_logger
from split_conformal.modeling.contracts import CandidateModel, ModelScore, TrainingResult

logger = get_logger(__name__)


SCORING_BY_METRIC = {
    "rmse": "neg_root_mean_squared_error",
    "mse": "neg_mean_squared_error",
    "mae": "neg_mean_absolute_error",
}


class RegressionTrainer:
    """Selects a point predictor by cross-validation on the train split alone.

    Calibration and test rows never reach this class, so the chosen model and
    its fitted preprocessing carry no information about them.
    """

    def __init__(
        self,
        schema: FeatureSchema,
        candidates: list[CandidateModel],
        primary_metric: str = "rmse",
        cv_folds: int = 5,
        random_state: int = 42,
    ) -> None:
        if not candidates:
            raise ValueError("At least one candidate model is required.")
        if primary_metric not in SCORING_BY_METRIC:
            raise ValueError(f"Unsupported primary metric: {primary_metric}")
        if cv_folds < 2:
            raise ValueError("cv_folds must be at least 2.")
        self.schema = schema
        self.candidates = candidates
        self.primary_metric = primary_metric
        self.cv_folds = cv_folds
        self.random_state = random_state

    def fit(self, x_train: pd.DataFrame, y_train: pd.Series) -> TrainingResult:
        self.schema.ensure_valid()
        folds = min(self.cv_folds, int(x_train.shape[0]))
        if folds < 2:
            raise ValueError("Model selection needs at least two training rows.")
        cv = KFold(n_splits=folds, shuffle=True, random_state=self.random_state)

        scores: list[ModelScore] = []
        best: tuple[CandidateModel, dict[str, object], ModelScore] | None = None
        for candidate in self.candidates:
            for parameters in candidate.parameter_grid or ({},):
                pipeline = self._build_pipeline(candidate, parameters)
                cv_scores = cross_val_score(
                    pipeline,
                    x_train,
                    y_train,
                    cv=cv,
                    scoring=SCORING_BY_METRIC[self.primary_metric],
                )
                score = ModelScore(
                    model_name=candidate.name,
                    parameters=dict(parameters),
                    metrics={
                        f"cv_{self.primary_metric}": float(-np.mean(cv_scores)),
                        f"cv_{self.primary_metric}_std": float(np.std(cv_scores)),
                    },
                )
                logger.info(
                    f"[MODEL] {candidate.name} {parameters or ''} "
                    f"cv_{self.primary_metric}={score.metrics[f'cv_{self.primary_metric}']:.4f}"
                )
                scores.append(score)
                if best is None or self._value(score) < self._value(best[2]):
                    best = (candidate, dict(parameters), score)

        if best is None:
            raise RuntimeError("Training did not produce a valid model.")

        candidate, parameters, best_score = best
        pipeline = self._build_pipeline(candidate, parameters)
        pipeline.fit(x_train, y_train)
        logger.info(f"[MODEL] Selected {candidate.name} and refit on {x_train.shape[0]} train rows")

        ordered = tuple(sorted(scores, key=self._value))
        return TrainingResult(
            predictor=pipeline,
            best_score=best_score,
            leaderboard=ordered,
            schema=self.schema,
        )

    def _value(self, score: ModelScore) -> float:
        return score.metrics[f"cv_{self.primary_metric}"]

    def _build_pipeline(self, candidate: CandidateModel, parameters: dict[str, object]) -> Pipeline:
        estimator = candidate.estimator_factory(parameters)
        return Pipeline(
            steps=[
                ("preprocessor", build_preprocessor(self.schema, scale_numeric=candidate.scale_numeric)),
                ("regressor", estimator),
            ]
        )
