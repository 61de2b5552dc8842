from __future__ import annotations

from typing import Any

import numpy as np

from split_conformal.conformal.calibrator import (
    absolute_residuals,
    conformal_rank,
    ensure_bounded_rank,
)
from split_conformal.conformal.intervals import IntervalSet
from split_conformal.modeling.metrics import compute_interval_metrics


def empirical_coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    lower = np.asarray(lower, dtype=float).reshape(-1)
    upper = np.asarray(upper, dtype=float).reshape(-1)
    if not (y_true.shape == lower.shape == upper.shape):
        raise ValueError("y_true, lower and upper must have the same shape.")
    if y_true.size == 0:
        raise ValueError("Coverage requires at least one test row.")
    return float(np.mean((lower <= y_true) & (y_true <= upper)))


def coverage_report(y_true: np.ndarray, intervals: IntervalSet, alpha: float) -> dict[str, Any]:
    covered = intervals.covers(y_true)
    coverage = empirical_coverage(y_true, intervals.lower, intervals.upper)
    nominal = float(1 - alpha)
    return {
        "coverage": coverage,
        "nominal_coverage": nominal,
        "coverage_gap": float(coverage - nominal),
        "covered_count": int(covered.sum()),
        "test_size": int(covered.shape[0]),
        "interval_mode": intervals.mode.value,
        **compute_interval_metrics(intervals.lower, intervals.upper),
    }


def simulate_coverage(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    *,
    alpha: float,
    n_calibration: int,
    n_repeats: int = 200,
    random_state: int = 42,
) -> dict[str, Any]:
    """Re-split a pool of held-out predictions into calibration/test many times.

    Each repeat calibrates on ``n_calibration`` random rows and measures
    coverage on the rest. Under exchangeability the mean coverage lies in
    ``[1 - alpha, 1 - alpha + 1 / (n_calibration + 1)]``.
    """
    residuals = absolute_residuals(y_true, y_pred)
    n_total = int(residuals.size)
    if not 1 <= n_calibration < n_total:
        raise ValueError(
            f"n_calibration must leave at least one test row (got {n_calibration} of {n_total})."
        )
    if n_repeats < 1:
        raise ValueError("n_repeats must be at least 1.")
    rank = ensure_bounded_rank(n_calibration, alpha)

    rng = np.random.default_rng(random_state)
    coverages = np.empty(n_repeats, dtype=float)
    for repeat in range(n_repeats):
        order = rng.permutation(n_total)
        calibration = residuals[order[:n_calibration]]
        test = residuals[order[n_calibration:]]
        q_hat = np.sort(calibration)[rank - 1]
        coverages[repeat] = np.mean(test <= q_hat)

    return {
        "alpha": float(alpha),
        "nominal_coverage": float(1 - alpha),
        "expected_coverage": float(conformal_rank(n_calibration, alpha) / (n_calibration + 1)),
        "calibration_size": int(n_calibration),
        "test_size": int(n_total - n_calibration),
        "n_repeats": int(n_repeats),
        "mean_coverage": float(np.mean(coverages)),
        "std_coverage": float(np.std(coverages)),
        "min_coverage": float(np.min(coverages)),
        "max_coverage": float(np.max(coverages)),
    }
