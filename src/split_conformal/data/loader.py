from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)

SYNTHETIC_NUMERIC_FEATURES = ["x_linear", "x_curved", "x_noise"]
SYNTHETIC_CATEGORICAL_FEATURES = ["segment", "channel"]
SYNTHETIC_TARGET = "target"


class TabularDatasetLoader:
    """Reads the input table once, or builds a reproducible synthetic one."""

    def __init__(self, random_state: int = 42) -> None:
        self.random_state = random_state

    def load(
        self,
        path: Path | None = None,
        use_synthetic_if_missing: bool = False,
        n_synthetic_rows: int = 2000,
    ) -> pd.DataFrame:
        if path is not None and path.exists():
            frame = self.read_table(path)
        elif use_synthetic_if_missing:
            logger.info(f"[DATA] No input table found; generating {n_synthetic_rows} synthetic rows")
            frame = self.synthetic_frame(n_rows=n_synthetic_rows)
        elif path is None:
            raise FileNotFoundError("No input table configured; pass a data path or enable synthetic data.")
        else:
            raise FileNotFoundError(f"Input table not found: {path}")
        return frame.reset_index(drop=True)

    def read_table(self, path: Path) -> pd.DataFrame:
        suffix = path.suffix.lower()
        logger.info(f"[DATA] Loading input table from {path}")
        if suffix in {".parquet", ".pq"}:
            frame = pd.read_parquet(path)
        elif suffix in {".csv", ".txt"}:
            frame = pd.read_csv(path)
        elif suffix == ".tsv":
            frame = pd.read_csv(path, sep="\t")
        else:
            raise ValueError(f"Unsupported table format '{suffix}' for {path}")
        logger.info(f"[DATA] Raw shape: {frame.shape[0]} rows x {frame.shape[1]} columns")
        return frame

    def synthetic_frame(self, n_rows: int = 2000, noise_scale: float = 1.0) -> pd.DataFrame:
        rng = np.random.default_rng(self.random_state)
        x_linear = rng.uniform(-3.0, 3.0, size=n_rows)
        x_curved = rng.normal(0.0, 1.0, size=n_rows)
        x_noise = rng.normal(0.0, 1.0, size=n_rows)
        segment = rng.choice(["retail", "wholesale", "online"], size=n_rows)
        channel = rng.choice(["direct", "partner"], size=n_rows, p=[0.7, 0.3])

        segment_effect = np.select(
            [segment == "retail", segment == "wholesale"],
            [1.5, -1.0],
            default=0.0,
        )
        channel_effect = np.where(channel == "partner", 0.8, 0.0)
        target = (
            2.0 * x_linear
            + 0.75 * x_curved**2
            + segment_effect
            + channel_effect
            + rng.normal(0.0, noise_scale, size=n_rows)
        )
        return pd.DataFrame(
            {
                "x_linear": x_linear,
                "x_curved": x_curved,
                "x_noise": x_noise,
                "segment": segment,
                "channel": channel,
                SYNTHETIC_TARGET: target,
            }
        )
