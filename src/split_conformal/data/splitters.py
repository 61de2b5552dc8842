from __future__ import annotations

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from split_conformal.data.contracts import ConformalSplit, SplitProportions
from split_conformal.data.guards import (
    ensure_disjoint_partition,
    ensure_no_leakage,
    ensure_required_columns,
    ensure_unique_index,
)
from split_conformal.errors import PartitionError
from split_conformal.features.schema import FeatureSchema
from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)


def label_strata(y: pd.Series, n_bins: int | None) -> pd.Series | None:
    """Bucket a continuous label into equal-frequency bins usable as stratification classes."""
    if not n_bins or n_bins < 2:
        return None
    bins = min(int(n_bins), int(y.shape[0]))
    # Ranking first keeps bin edges unique when the label has ties.
    ranked = y.rank(method="first")
    return pd.Series(pd.qcut(ranked, q=bins, labels=False), index=y.index, name="stratum")


def _draw(
    row_ids: np.ndarray,
    n_holdout: int,
    strata: pd.Series | None,
    random_state: int,
    stage: str,
) -> tuple[np.ndarray, np.ndarray]:
    if strata is not None:
        try:
            kept, held_out = train_test_split(
                row_ids,
                test_size=n_holdout,
                random_state=random_state,
                stratify=strata.loc[row_ids].to_numpy(),
            )
            return np.asarray(kept), np.asarray(held_out)
        except ValueError as exc:
            logger.warning(f"[SPLIT] Stratified {stage} draw failed ({exc}); falling back to a random draw.")
    kept, held_out = train_test_split(row_ids, test_size=n_holdout, random_state=random_state)
    return np.asarray(kept), np.asarray(held_out)


def partition_frame(
    frame: pd.DataFrame,
    schema: FeatureSchema,
    proportions: SplitProportions | None = None,
    random_state: int = 42,
    stratify_bins: int | None = 5,
) -> ConformalSplit:
    proportions = proportions or SplitProportions()
    try:
        proportions.ensure_valid()
    except ValueError as exc:
        raise PartitionError(str(exc)) from exc
    schema.ensure_valid()
    ensure_required_columns(frame, list(schema.all_features) + [schema.target_name])
    ensure_no_leakage(schema.all_features, schema.target_name)
    ensure_unique_index(frame)

    sizes = proportions.sizes(int(frame.shape[0]))
    empty = [name for name, size in sizes.items() if size < 1]
    if empty:
        raise PartitionError(
            f"Cannot partition {frame.shape[0]} rows with proportions {proportions.as_tuple()}: "
            f"split(s) {empty} would be empty (sizes {sizes})."
        )

    x = frame.loc[:, list(schema.all_features)]
    y = frame.loc[:, schema.target_name]
    strata = label_strata(y, stratify_bins)

    all_ids = frame.index.to_numpy()
    remainder_ids, test_ids = _draw(all_ids, sizes["test"], strata, random_state, "test")
    train_ids, calibration_ids = _draw(remainder_ids, sizes["calibration"], strata, random_state, "calibration")

    split = ConformalSplit(
        x_train=x.loc[train_ids].copy(),
        x_calibration=x.loc[calibration_ids].copy(),
        x_test=x.loc[test_ids].copy(),
        y_train=y.loc[train_ids].copy(),
        y_calibration=y.loc[calibration_ids].copy(),
        y_test=y.loc[test_ids].copy(),
    )
    ensure_disjoint_partition(split.row_ids, frame.index)
    logger.info(
        f"[SPLIT] train={split.sizes['train']} calibration={split.sizes['calibration']} "
        f"test={split.sizes['test']} (seed={random_state}, stratify_bins={stratify_bins})"
    )
    return split
