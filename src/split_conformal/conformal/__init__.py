from split_conformal.conformal.calibrator import (
    CalibrationResult,
    absolute_residuals,
    calibrate_split_conformal,
    conformal_rank,
    ensure_bounded_rank,
    minimum_calibration_size,
)
from split_conformal.conformal.coverage import coverage_report, empirical_coverage, simulate_coverage
from split_conformal.conformal.intervals import IntervalMode, IntervalSet, build_intervals, conformal_interval
from split_conformal.conformal.regressor import SplitConformalRegressor

__all__ = [
    "CalibrationResult",
    "IntervalMode",
    "IntervalSet",
    "SplitConformalRegressor",
    "absolute_residuals",
    "build_intervals",
    "calibrate_split_conformal",
    "conformal_interval",
    "conformal_rank",
    "coverage_report",
    "empirical_coverage",
    "ensure_bounded_rank",
    "minimum_calibration_size",
    "simulate_coverage",
]
