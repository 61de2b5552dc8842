"""
Split conformal prediction intervals for tabular regression.

Partition a labeled table into train/calibration/test splits, fit any point
predictor on train, calibrate the absolute-residual quantile on the
calibration split and widen test predictions into intervals with a
distribution-free ``1 - alpha`` marginal coverage guarantee.
"""

from split_conformal.conformal import (
    CalibrationResult,
    IntervalMode,
    IntervalSet,
    SplitConformalRegressor,
    build_intervals,
    calibrate_split_conformal,
    conformal_rank,
    empirical_coverage,
)
from split_conformal.errors import (
    ConformalError,
    DataValidationError,
    PartitionError,
    UnboundedIntervalError,
)

__version__ = "0.1.0"

__all__ = [
    "CalibrationResult",
    "ConformalError",
    "DataValidationError",
    "IntervalMode",
    "IntervalSet",
    "PartitionError",
    "SplitConformalRegressor",
    "UnboundedIntervalError",
    "__version__",
    "build_intervals",
    "calibrate_split_conformal",
    "conformal_rank",
    "empirical_coverage",
]
