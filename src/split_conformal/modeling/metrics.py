from __future__ import annotations

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score


def compute_regression_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> dict[str, float]:
    mse = float(mean_squared_error(y_true, y_pred))
    rmse = float(np.sqrt(mse))
    mae = float(mean_absolute_error(y_true, y_pred))
    r2 = float(r2_score(y_true, y_pred)) if np.asarray(y_true).size > 1 else float("nan")
    return {"mse": mse, "rmse": rmse, "mae": mae, "r2": r2}


def compute_interval_metrics(lower: np.ndarray, upper: np.ndarray) -> dict[str, float]:
    widths = np.asarray(upper, dtype=float) - np.asarray(lower, dtype=float)
    if widths.size == 0:
        raise ValueError("Interval metrics require at least one interval.")
    return {
        "mean_width": float(np.mean(widths)),
        "median_width": float(np.median(widths)),
        "max_width": float(np.max(widths)),
    }
