import numpy as np
import pandas as pd
import pytest

from split_conformal.data.contracts import SplitProportions
from split_conformal.data.guards import ensure_disjoint_partition
from split_conformal.data.splitters import label_strata, partition_frame
from split_conformal.errors import DataValidationError, PartitionError
from split_conformal.features.schema import FeatureSchema


def _frame(n_rows: int = 500, seed: int = 42) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    frame = pd.DataFrame(
        {
            "x1": rng.normal(size=n_rows),
            "cat": rng.choice(["a", "b", "c"], size=n_rows),
        }
    )
    frame["target"] = np.exp(frame["x1"]) + rng.normal(0.0, 0.1, size=n_rows)
    return frame


SCHEMA = FeatureSchema.create(["x1"], ["cat"], "target")


def test_partition_is_disjoint_and_exhaustive() -> None:
    frame = _frame()
    split = partition_frame(frame, SCHEMA, SplitProportions(0.6, 0.2, 0.2), random_state=1)

    ids = split.row_ids
    assert ids["train"].isdisjoint(ids["calibration"])
    assert ids["train"].isdisjoint(ids["test"])
    assert ids["calibration"].isdisjoint(ids["test"])
    assert ids["train"] | ids["calibration"] | ids["test"] == set(frame.index)
    assert split.sizes == {"train": 300, "calibration": 100, "test": 100}
    assert list(split.x_train.columns) == ["x1", "cat"]
    assert (split.y_calibration.index == split.x_calibration.index).all()


def test_partition_is_reproducible_for_a_seed() -> None:
    frame = _frame()
    first = partition_frame(frame, SCHEMA, random_state=7)
    second = partition_frame(frame, SCHEMA, random_state=7)
    other = partition_frame(frame, SCHEMA, random_state=8)

    assert first.row_ids == second.row_ids
    assert first.row_ids != other.row_ids


def test_stratification_preserves_label_distribution() -> None:
    frame = _frame(n_rows=1000)
    split = partition_frame(frame, SCHEMA, SplitProportions(0.5, 0.25, 0.25), stratify_bins=5)

    strata = label_strata(frame["target"], 5)
    for y in (split.y_train, split.y_calibration, split.y_test):
        shares = strata.loc[y.index].value_counts(normalize=True)
        assert shares.min() == pytest.approx(0.2, abs=0.02)
        assert shares.max() == pytest.approx(0.2, abs=0.02)


def test_label_strata_handles_ties_and_can_be_disabled() -> None:
    y = pd.Series([1.0] * 10 + [2.0] * 10)
    strata = label_strata(y, 4)
    assert strata.nunique() == 4
    assert label_strata(y, None) is None
    assert label_strata(y, 1) is None


def test_tiny_dataset_falls_back_to_unstratified_draw() -> None:
    frame = _frame(n_rows=12)
    split = partition_frame(frame, SCHEMA, SplitProportions(0.5, 0.25, 0.25), stratify_bins=10)
    assert sum(split.sizes.values()) == 12


def test_empty_split_is_rejected_before_modelling() -> None:
    frame = _frame(n_rows=4)
    with pytest.raises(PartitionError) as excinfo:
        partition_frame(frame, SCHEMA, SplitProportions(0.8, 0.1, 0.1))
    assert "empty" in str(excinfo.value)


def test_proportions_must_sum_to_one() -> None:
    with pytest.raises(PartitionError):
        partition_frame(_frame(), SCHEMA, SplitProportions(0.5, 0.2, 0.2))


def test_partition_requires_unique_row_ids() -> None:
    frame = _frame(n_rows=20)
    frame.index = [0] * 20
    with pytest.raises(DataValidationError):
        partition_frame(frame, SCHEMA)


def test_disjoint_guard_detects_overlap_and_gaps() -> None:
    with pytest.raises(PartitionError):
        ensure_disjoint_partition({"train": [1, 2], "test": [2, 3]}, [1, 2, 3])
    with pytest.raises(PartitionError):
        ensure_disjoint_partition({"train": [1], "test": [3]}, [1, 2, 3])
