from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True, slots=True)
class ConformalSplit:
    x_train: pd.DataFrame
    x_calibration: pd.DataFrame
    x_test: pd.DataFrame
    y_train: pd.Series
    y_calibration: pd.Series
    y_test: pd.Series

    @property
    def row_ids(self) -> dict[str, frozenset]:
        return {
            "train": frozenset(self.x_train.index),
            "calibration": frozenset(self.x_calibration.index),
            "test": frozenset(self.x_test.index),
        }

    @property
    def sizes(self) -> dict[str, int]:
        return {
            "train": int(self.x_train.shape[0]),
            "calibration": int(self.x_calibration.shape[0]),
            "test": int(self.x_test.shape[0]),
        }


@dataclass(frozen=True, slots=True)
class SplitProportions:
    train: float = 0.6
    calibration: float = 0.2
    test: float = 0.2

    @classmethod
    def from_sequence(cls, values: list[float] | tuple[float, ...]) -> "SplitProportions":
        if len(values) != 3:
            raise ValueError("Split proportions must be given as (train, calibration, test).")
        return cls(train=float(values[0]), calibration=float(values[1]), test=float(values[2]))

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.train, self.calibration, self.test)

    def ensure_valid(self) -> None:
        if any(value <= 0 or value >= 1 for value in self.as_tuple()):
            raise ValueError(f"Each split proportion must be in (0, 1), got {self.as_tuple()}.")
        total = sum(self.as_tuple())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Split proportions must sum to 1, got {total:.6f}.")

    def sizes(self, n_rows: int) -> dict[str, int]:
        n_test = int(round(n_rows * self.test))
        n_calibration = int(round(n_rows * self.calibration))
        return {
            "train": n_rows - n_test - n_calibration,
            "calibration": n_calibration,
            "test": n_test,
        }
