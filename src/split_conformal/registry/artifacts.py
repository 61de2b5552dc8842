from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import pandas as pd

from split_conformal.conformal.intervals import IntervalSet
from split_conformal.modeling.contracts import ModelScore
from split_conformal.registry.metadata import RunMetadata


INTERVAL_COLUMNS = ("y_true", "y_pred", "lower", "upper", "covered")


def build_interval_table(
    x_test: pd.DataFrame,
    y_test: pd.Series,
    intervals: IntervalSet,
) -> pd.DataFrame:
    if len(intervals) != x_test.shape[0]:
        raise ValueError("One interval per test row is required.")
    table = x_test.copy()
    table.index.name = "row_id"
    y_true = np.asarray(y_test, dtype=float)
    table["y_true"] = y_true
    table["y_pred"] = intervals.y_pred
    table["lower"] = intervals.lower
    table["upper"] = intervals.upper
    table["covered"] = intervals.covers(y_true)
    return table.reset_index()


class ArtifactRegistry:
    def __init__(
        self,
        root_dir: Path,
        model_filename: str = "model.joblib",
        metadata_filename: str = "calibration.json",
        intervals_filename: str = "intervals.csv",
    ) -> None:
        self.root_dir = root_dir
        self.model_path = root_dir / model_filename
        self.metadata_path = root_dir / metadata_filename
        self.intervals_path = root_dir / intervals_filename

    def save_run(
        self,
        *,
        predictor: Any,
        metadata: RunMetadata,
        interval_table: pd.DataFrame,
    ) -> dict[str, Any]:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        joblib.dump(predictor, self.model_path)
        payload = metadata.as_dict()
        self.metadata_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        interval_table.to_csv(self.intervals_path, index=False)
        return payload

    def load_model(self) -> Any:
        if not self.model_path.exists():
            raise FileNotFoundError(f"Model artifact not found: {self.model_path}")
        return joblib.load(self.model_path)

    def load_metadata(self) -> RunMetadata:
        if not self.metadata_path.exists():
            raise FileNotFoundError(f"Calibration artifact not found: {self.metadata_path}")
        return RunMetadata.from_dict(json.loads(self.metadata_path.read_text(encoding="utf-8")))

    def load_intervals(self) -> pd.DataFrame:
        if not self.intervals_path.exists():
            raise FileNotFoundError(f"Interval table not found: {self.intervals_path}")
        return pd.read_csv(self.intervals_path)

    def run_exists(self) -> bool:
        return self.model_path.exists() and self.metadata_path.exists() and self.intervals_path.exists()


def leaderboard_as_records(leaderboard: tuple[ModelScore, ...]) -> list[dict[str, Any]]:
    return [
        {
            "model_name": score.model_name,
            "parameters": score.parameters,
            "metrics": score.metrics,
        }
        for score in leaderboard
    ]
