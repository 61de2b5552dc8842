from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
import math

import numpy as np

from split_conformal.errors import UnboundedIntervalError
from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)

METHOD = "split_conformal_abs_residual"


@dataclass(frozen=True, slots=True)
class CalibrationResult:
    alpha: float
    q_hat: float
    rank: int
    calibration_size: int
    empirical_coverage: float
    method: str = METHOD

    @property
    def nominal_coverage(self) -> float:
        return float(1 - self.alpha)

    def as_dict(self) -> dict[str, float | int | str]:
        return {
            "method": self.method,
            "alpha": float(self.alpha),
            "nominal_coverage": self.nominal_coverage,
            "q_hat": float(self.q_hat),
            "rank": int(self.rank),
            "calibration_size": int(self.calibration_size),
            "empirical_coverage": float(self.empirical_coverage),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "CalibrationResult":
        return cls(
            alpha=float(raw["alpha"]),
            q_hat=float(raw["q_hat"]),
            rank=int(raw["rank"]),
            calibration_size=int(raw["calibration_size"]),
            empirical_coverage=float(raw.get("empirical_coverage", float("nan"))),
            method=str(raw.get("method", METHOD)),
        )


def _check_alpha(alpha: float) -> None:
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")


def absolute_residuals(y_true: np.ndarray, y_pred: np.ndarray) -> np.ndarray:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.shape != y_pred.shape:
        raise ValueError("y_true and y_pred must have the same shape.")
    residuals = np.abs(y_true - y_pred).reshape(-1)
    if residuals.size == 0:
        raise ValueError("Conformal calibration requires at least one sample.")
    if not np.all(np.isfinite(residuals)):
        raise ValueError("Conformal calibration requires finite residuals.")
    return residuals


def conformal_rank(calibration_size: int, alpha: float) -> int:
    """1-based order statistic ``ceil((1 - alpha) * (n + 1))``, clipped below at 1.

    The result is not clipped above; a value larger than ``calibration_size``
    means no finite quantile attains the target coverage.
    """
    _check_alpha(alpha)
    if calibration_size < 1:
        raise ValueError("Calibration size must be at least 1.")
    coverage = 1 - Fraction(str(alpha))
    return max(1, math.ceil(coverage * (calibration_size + 1)))


def minimum_calibration_size(alpha: float) -> int:
    """Smallest calibration size for which ``alpha`` yields a finite quantile."""
    _check_alpha(alpha)
    n = max(1, math.ceil(1 / alpha - 1))
    while conformal_rank(n, alpha) > n:
        n += 1
    while n > 1 and conformal_rank(n - 1, alpha) <= n - 1:
        n -= 1
    return n


def ensure_bounded_rank(calibration_size: int, alpha: float) -> int:
    rank = conformal_rank(calibration_size, alpha)
    if rank > calibration_size:
        raise UnboundedIntervalError(
            calibration_size=calibration_size,
            alpha=alpha,
            rank=rank,
            required_size=minimum_calibration_size(alpha),
        )
    return rank


def calibrate_split_conformal(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    *,
    alpha: float = 0.1,
) -> CalibrationResult:
    _check_alpha(alpha)
    residuals = absolute_residuals(y_true, y_pred)
    n = int(residuals.size)
    rank = ensure_bounded_rank(n, alpha)

    q_hat = float(np.sort(residuals)[rank - 1])
    empirical_coverage = float(np.mean(residuals <= q_hat))
    logger.info(
        f"[CALIBRATE] n={n} alpha={alpha} rank={rank} q_hat={q_hat:.6g} "
        f"calibration_coverage={empirical_coverage:.3f}"
    )
    return CalibrationResult(
        alpha=float(alpha),
        q_hat=q_hat,
        rank=rank,
        calibration_size=n,
        empirical_coverage=empirical_coverage,
    )
