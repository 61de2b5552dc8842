import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression

from split_conformal.conformal.calibrator import calibrate_split_conformal
from split_conformal.conformal.coverage import coverage_report, empirical_coverage, simulate_coverage
from split_conformal.conformal.intervals import build_intervals
from split_conformal.conformal.regressor import SplitConformalRegressor
from split_conformal.errors import ConformalError, UnboundedIntervalError


def test_empirical_coverage_counts_closed_bounds() -> None:
    y_true = np.array([0.0, 1.0, 2.0, 3.0])
    lower = np.array([0.0, 0.0, 2.5, 2.0])
    upper = np.array([1.0, 0.5, 3.0, 3.0])
    assert empirical_coverage(y_true, lower, upper) == pytest.approx(0.5)


def test_empirical_coverage_rejects_mismatched_shapes() -> None:
    with pytest.raises(ValueError):
        empirical_coverage(np.ones(3), np.zeros(2), np.ones(3))


def test_coverage_report_includes_width_and_gap() -> None:
    intervals = build_intervals(np.zeros(4), 1.0)
    report = coverage_report(np.array([0.5, -0.5, 2.0, 0.0]), intervals, alpha=0.1)

    assert report["coverage"] == pytest.approx(0.75)
    assert report["covered_count"] == 3
    assert report["test_size"] == 4
    assert report["coverage_gap"] == pytest.approx(0.75 - 0.9)
    assert report["mean_width"] == pytest.approx(2.0)
    assert report["interval_mode"] == "symmetric"


@pytest.mark.parametrize("alpha", [0.1, 0.2])
def test_repeated_splits_converge_to_nominal_coverage(alpha: float) -> None:
    rng = np.random.default_rng(2024)
    n_pool = 2000
    y_pred = rng.uniform(-5.0, 5.0, size=n_pool)
    y_true = y_pred + rng.laplace(0.0, 1.0, size=n_pool)

    summary = simulate_coverage(
        y_true,
        y_pred,
        alpha=alpha,
        n_calibration=500,
        n_repeats=300,
        random_state=7,
    )

    assert summary["expected_coverage"] == pytest.approx(1 - alpha, abs=1 / 501)
    assert summary["mean_coverage"] == pytest.approx(1 - alpha, abs=0.01)
    assert summary["n_repeats"] == 300
    assert summary["test_size"] == 1500


def test_fresh_draws_cover_at_nominal_rate() -> None:
    rng = np.random.default_rng(99)
    coverages = []
    for _ in range(200):
        calibration_residuals = rng.normal(0.0, 1.0, size=200)
        test_residuals = rng.normal(0.0, 1.0, size=200)
        result = calibrate_split_conformal(calibration_residuals, np.zeros(200), alpha=0.1)
        intervals = build_intervals(np.zeros(200), result.q_hat)
        coverages.append(empirical_coverage(test_residuals, intervals.lower, intervals.upper))

    assert float(np.mean(coverages)) == pytest.approx(0.9, abs=0.01)


def test_simulation_rejects_unbounded_calibration_size() -> None:
    with pytest.raises(UnboundedIntervalError):
        simulate_coverage(np.ones(50), np.zeros(50), alpha=0.01, n_calibration=20)


def test_simulation_requires_test_rows() -> None:
    with pytest.raises(ValueError):
        simulate_coverage(np.ones(50), np.zeros(50), alpha=0.1, n_calibration=50)


def _linear_frame(n_rows: int, seed: int) -> tuple[pd.DataFrame, pd.Series]:
    rng = np.random.default_rng(seed)
    x = pd.DataFrame({"x": rng.uniform(-4.0, 4.0, size=n_rows)})
    y = pd.Series(3.2 * x["x"] + rng.normal(0.0, 0.8, size=n_rows), name="target")
    return x, y


def test_regressor_calibrates_and_evaluates() -> None:
    x_train, y_train = _linear_frame(200, 1)
    x_cal, y_cal = _linear_frame(200, 2)
    x_test, y_test = _linear_frame(400, 3)
    x_cal.index = x_cal.index + 1000
    y_cal.index = x_cal.index

    model = LinearRegression().fit(x_train, y_train)
    regressor = SplitConformalRegressor(model, alpha=0.1, training_row_ids=x_train.index)
    assert not regressor.is_calibrated

    calibration = regressor.calibrate(x_cal, y_cal)
    intervals, report = regressor.evaluate(x_test, y_test)

    assert regressor.is_calibrated
    assert calibration.q_hat > 0
    np.testing.assert_allclose(intervals.upper - intervals.y_pred, calibration.q_hat)
    assert 0.8 <= report["coverage"] <= 1.0


def test_regressor_refuses_calibration_rows_used_for_training() -> None:
    x_train, y_train = _linear_frame(50, 1)
    model = LinearRegression().fit(x_train, y_train)
    regressor = SplitConformalRegressor(model, alpha=0.1, training_row_ids=x_train.index)

    with pytest.raises(ConformalError):
        regressor.calibrate(x_train.iloc[:20], y_train.iloc[:20])


def test_regressor_requires_calibration_before_intervals() -> None:
    x_train, y_train = _linear_frame(30, 1)
    regressor = SplitConformalRegressor(LinearRegression().fit(x_train, y_train))
    with pytest.raises(RuntimeError):
        regressor.predict_interval(x_train)
