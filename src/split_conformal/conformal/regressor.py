from __future__ import annotations

from typing import Any, Iterable

import numpy as np
import pandas as pd

from split_conformal.conformal.calibrator import CalibrationResult, calibrate_split_conformal
from split_conformal.conformal.coverage import coverage_report
from split_conformal.conformal.intervals import IntervalMode, IntervalSet, build_intervals
from split_conformal.errors import ConformalError
from split_conformal.modeling.contracts import PointPredictor
from split_conformal.modeling.predictor import predict_frame


class SplitConformalRegressor:
    """
    Wraps a fitted point predictor with a split conformal calibration.

    Parameters
    ----------
    predictor:
        Any object with ``predict(frame) -> array``, already fit on the train split.
    alpha:
        Miscoverage rate; intervals target ``1 - alpha`` marginal coverage.
    mode:
        ``"symmetric"`` (default) or ``"label_anchored"``.
    training_row_ids:
        Row ids the predictor was fit on. When given, calibrating on any of
        them raises ``ConformalError``.
    """

    def __init__(
        self,
        predictor: PointPredictor,
        alpha: float = 0.1,
        mode: IntervalMode | str = IntervalMode.SYMMETRIC,
        training_row_ids: Iterable[object] | None = None,
    ) -> None:
        if not 0 < alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {alpha}")
        self.predictor = predictor
        self.alpha = alpha
        self.mode = IntervalMode(mode)
        self.training_row_ids = frozenset(training_row_ids) if training_row_ids is not None else None
        self.calibration_: CalibrationResult | None = None

    @property
    def is_calibrated(self) -> bool:
        return self.calibration_ is not None

    def calibrate(self, x_calibration: pd.DataFrame, y_calibration: pd.Series) -> CalibrationResult:
        if self.training_row_ids is not None:
            overlap = self.training_row_ids.intersection(x_calibration.index)
            if overlap:
                raise ConformalError(
                    f"{len(overlap)} calibration rows were also used to fit the point predictor."
                )
        y_hat = predict_frame(self.predictor, x_calibration)
        self.calibration_ = calibrate_split_conformal(
            np.asarray(y_calibration, dtype=float),
            y_hat,
            alpha=self.alpha,
        )
        return self.calibration_

    def predict_interval(self, x: pd.DataFrame, y_true: pd.Series | None = None) -> IntervalSet:
        if self.calibration_ is None:
            raise RuntimeError("Regressor not calibrated. Call .calibrate() first.")
        y_hat = predict_frame(self.predictor, x)
        return build_intervals(
            y_hat,
            self.calibration_.q_hat,
            mode=self.mode,
            y_true=None if y_true is None else np.asarray(y_true, dtype=float),
        )

    def evaluate(self, x_test: pd.DataFrame, y_test: pd.Series) -> tuple[IntervalSet, dict[str, Any]]:
        intervals = self.predict_interval(x_test, y_true=y_test)
        return intervals, coverage_report(np.asarray(y_test, dtype=float), intervals, self.alpha)
