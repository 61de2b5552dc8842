from __future__ import annotations


class ConformalError(ValueError):
    """Base class for errors raised by the split conformal workflow."""


class PartitionError(ConformalError):
    """The dataset cannot be partitioned into non-empty train/calibration/test splits."""


class DataValidationError(ConformalError):
    """The input table cannot be turned into a usable modelling frame."""


class UnboundedIntervalError(ConformalError):
    """The calibration set is too small for the requested miscoverage rate."""

    def __init__(
        self,
        *,
        calibration_size: int,
        alpha: float,
        rank: int,
        required_size: int,
    ) -> None:
        self.calibration_size = calibration_size
        self.alpha = alpha
        self.rank = rank
        self.required_size = required_size
        super().__init__(
            f"Conformal rank {rank} exceeds calibration size {calibration_size} for alpha={alpha}; "
            f"no finite quantile reaches {1 - alpha:.2%} coverage. "
            f"At least {required_size} calibration rows are required."
        )
