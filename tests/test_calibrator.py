from fractions import Fraction
import math

import numpy as np
import pytest

from split_conformal.conformal.calibrator import (
    CalibrationResult,
    absolute_residuals,
    calibrate_split_conformal,
    conformal_rank,
    ensure_bounded_rank,
    minimum_calibration_size,
)
from split_conformal.errors import ConformalError, UnboundedIntervalError


def test_rank_for_hundred_rows_at_ten_percent_is_ninety_one() -> None:
    assert conformal_rank(100, 0.1) == 91


def test_q_hat_is_ninety_first_smallest_residual() -> None:
    rng = np.random.default_rng(3)
    y_true = rng.normal(0.0, 2.0, size=100)
    y_pred = rng.normal(0.0, 0.5, size=100)

    result = calibrate_split_conformal(y_true, y_pred, alpha=0.1)

    residuals = np.sort(np.abs(y_true - y_pred))
    assert result.rank == 91
    assert result.q_hat == residuals[90]
    assert result.calibration_size == 100


@pytest.mark.parametrize("n", [9, 19, 50, 137, 400])
@pytest.mark.parametrize("alpha", [0.05, 0.1, 0.2, 0.33])
def test_q_hat_matches_order_statistic_at_adjusted_rank(n: int, alpha: float) -> None:
    if math.ceil((1 - Fraction(str(alpha))) * (n + 1)) > n:
        pytest.skip("rank exceeds calibration size")
    rng = np.random.default_rng(n)
    y_true = rng.standard_t(df=3, size=n)
    y_pred = np.zeros(n)

    result = calibrate_split_conformal(y_true, y_pred, alpha=alpha)

    expected_rank = min(max(math.ceil((1 - Fraction(str(alpha))) * (n + 1)), 1), n)
    assert result.rank == expected_rank
    assert result.q_hat == np.sort(np.abs(y_true))[expected_rank - 1]


@pytest.mark.parametrize(
    ("n", "alpha", "expected_rank"),
    [(149, 0.18, 123), (49, 0.42, 29), (99, 0.41, 59), (99, 0.1, 90)],
)
def test_rank_is_exact_when_adjusted_level_is_an_integer(n: int, alpha: float, expected_rank: int) -> None:
    assert conformal_rank(n, alpha) == expected_rank

    y_true = np.arange(1, n + 1, dtype=float)
    result = calibrate_split_conformal(y_true, np.zeros(n), alpha=alpha)

    assert result.rank == expected_rank
    assert result.q_hat == float(expected_rank)


def test_calibration_is_idempotent() -> None:
    rng = np.random.default_rng(8)
    y_true = rng.normal(size=60)
    y_pred = y_true + rng.normal(0.0, 0.3, size=60)

    first = calibrate_split_conformal(y_true, y_pred, alpha=0.1)
    second = calibrate_split_conformal(y_true, y_pred, alpha=0.1)

    assert first == second


def test_small_alpha_with_small_calibration_set_is_unbounded() -> None:
    y_true = np.linspace(0.0, 1.0, 20)
    y_pred = np.zeros(20)

    with pytest.raises(UnboundedIntervalError) as excinfo:
        calibrate_split_conformal(y_true, y_pred, alpha=0.01)

    error = excinfo.value
    assert error.rank == 21
    assert error.calibration_size == 20
    assert error.required_size == 99
    assert isinstance(error, ConformalError)
    assert "20" in str(error) and "0.01" in str(error)


def test_ensure_bounded_rank_accepts_exact_boundary() -> None:
    # (1 - 0.1) * (9 + 1) == 9, so nine rows are exactly enough.
    assert ensure_bounded_rank(9, 0.1) == 9
    with pytest.raises(UnboundedIntervalError):
        ensure_bounded_rank(8, 0.1)


@pytest.mark.parametrize("alpha", [0.01, 0.05, 0.1, 0.2, 0.3, 0.5])
def test_minimum_calibration_size_is_tight(alpha: float) -> None:
    n_min = minimum_calibration_size(alpha)
    assert conformal_rank(n_min, alpha) <= n_min
    if n_min > 1:
        assert conformal_rank(n_min - 1, alpha) > n_min - 1


def test_rank_is_clipped_below_at_one() -> None:
    assert conformal_rank(1, 0.9) == 1
    result = calibrate_split_conformal(np.array([3.0]), np.array([1.0]), alpha=0.6)
    assert result.rank == 1
    assert result.q_hat == pytest.approx(2.0)


@pytest.mark.parametrize("alpha", [0.0, 1.0, -0.1, 1.5])
def test_alpha_outside_unit_interval_is_rejected(alpha: float) -> None:
    with pytest.raises(ValueError):
        calibrate_split_conformal(np.ones(10), np.zeros(10), alpha=alpha)


def test_residual_inputs_are_validated() -> None:
    with pytest.raises(ValueError):
        absolute_residuals(np.ones(3), np.ones(4))
    with pytest.raises(ValueError):
        absolute_residuals(np.array([]), np.array([]))
    with pytest.raises(ValueError):
        absolute_residuals(np.array([1.0, np.nan]), np.array([1.0, 2.0]))


def test_calibration_result_roundtrips_through_dict() -> None:
    result = calibrate_split_conformal(np.arange(30, dtype=float), np.zeros(30), alpha=0.2)
    payload = result.as_dict()

    assert payload["method"] == "split_conformal_abs_residual"
    assert payload["nominal_coverage"] == pytest.approx(0.8)
    assert payload["empirical_coverage"] >= 0.8
    assert CalibrationResult.from_dict(payload) == result
