from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math

import numpy as np

from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)


class IntervalMode(str, Enum):
    SYMMETRIC = "symmetric"
    # lower = y_true - q, upper = y_pred + q. Uses the observed label, so it is
    # not a prediction interval; kept only to reproduce legacy reports.
    LABEL_ANCHORED = "label_anchored"


@dataclass(frozen=True, slots=True)
class IntervalSet:
    y_pred: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    q_hat: float
    mode: IntervalMode = IntervalMode.SYMMETRIC

    def __len__(self) -> int:
        return int(self.y_pred.shape[0])

    @property
    def width(self) -> np.ndarray:
        return self.upper - self.lower

    def covers(self, y_true: np.ndarray) -> np.ndarray:
        y_true = np.asarray(y_true, dtype=float).reshape(-1)
        if y_true.shape != self.y_pred.shape:
            raise ValueError("y_true must have one value per interval.")
        return (self.lower <= y_true) & (y_true <= self.upper)


def _check_q_hat(q_hat: float) -> None:
    if not math.isfinite(q_hat) or q_hat < 0:
        raise ValueError(f"q_hat must be a finite non-negative number, got {q_hat}")


def build_intervals(
    y_pred: np.ndarray,
    q_hat: float,
    *,
    mode: IntervalMode | str = IntervalMode.SYMMETRIC,
    y_true: np.ndarray | None = None,
) -> IntervalSet:
    mode = IntervalMode(mode)
    _check_q_hat(q_hat)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    upper = y_pred + q_hat

    if mode is IntervalMode.SYMMETRIC:
        lower = y_pred - q_hat
    else:
        if y_true is None:
            raise ValueError("label_anchored intervals require y_true.")
        y_true = np.asarray(y_true, dtype=float).reshape(-1)
        if y_true.shape != y_pred.shape:
            raise ValueError("y_true and y_pred must have the same shape.")
        logger.warning(
            "[INTERVALS] label_anchored mode builds the lower bound from the true label; "
            "the resulting bounds are not valid prediction intervals."
        )
        lower = y_true - q_hat

    return IntervalSet(y_pred=y_pred, lower=lower, upper=upper, q_hat=float(q_hat), mode=mode)


def conformal_interval(prediction: float, q_hat: float) -> tuple[float, float]:
    _check_q_hat(q_hat)
    return (float(prediction - q_hat), float(prediction + q_hat))
