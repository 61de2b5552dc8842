from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from split_conformal.config import DataConfig, WorkflowConfig, load_workflow_config
from split_conformal.conformal.calibrator import ensure_bounded_rank
from split_conformal.conformal.coverage import simulate_coverage
from split_conformal.conformal.intervals import IntervalMode
from split_conformal.conformal.regressor import SplitConformalRegressor
from split_conformal.data.contracts import ConformalSplit, SplitProportions
from split_conformal.data.loader import TabularDatasetLoader
from split_conformal.data.splitters import partition_frame
from split_conformal.features.schema import FeatureSchema
from split_conformal.logging_utils import get_logger, set_package_level
from split_conformal.modeling.contracts import PointPredictor
from split_conformal.modeling.metrics import compute_regression_metrics
from split_conformal.modeling.predictor import candidates_by_name, predict_frame
from split_conformal.modeling.trainer import RegressionTrainer
from split_conformal.registry.artifacts import ArtifactRegistry, build_interval_table, leaderboard_as_records
from split_conformal.registry.metadata import RunMetadata
from split_conformal.validation.pandera_gate import drop_invalid_rows

logger = get_logger(__name__)


def resolve_schema(frame: pd.DataFrame, data: DataConfig) -> FeatureSchema:
    if data.numeric_features is None and data.categorical_features is None:
        schema = FeatureSchema.infer(frame, data.target, exclude=data.exclude_columns)
    else:
        schema = FeatureSchema.create(
            data.numeric_features or [],
            data.categorical_features or [],
            data.target,
        )
    schema.ensure_valid()
    return schema


def _fit_point_predictor(
    split: ConformalSplit,
    schema: FeatureSchema,
    config: WorkflowConfig,
    predictor: PointPredictor | None,
) -> tuple[PointPredictor, str, list[dict[str, Any]]]:
    if predictor is not None:
        predictor.fit(split.x_train, split.y_train)
        name = type(predictor).__name__
        logger.info(f"[MODEL] Fit supplied predictor {name} on {split.sizes['train']} train rows")
        return predictor, name, []

    trainer = RegressionTrainer(
        schema=schema,
        candidates=candidates_by_name(config.conformal.candidate_models, random_state=config.split.random_state),
        primary_metric=config.conformal.primary_metric,
        cv_folds=config.conformal.cv_folds,
        random_state=config.split.random_state,
    )
    result = trainer.fit(split.x_train, split.y_train)
    return result.predictor, result.best_score.model_name, leaderboard_as_records(result.leaderboard)


def run_conformal_workflow(
    config: WorkflowConfig | None = None,
    *,
    frame: pd.DataFrame | None = None,
    predictor: PointPredictor | None = None,
) -> dict[str, Any]:
    config = config or WorkflowConfig()
    config.ensure_valid()
    alpha = config.conformal.alpha

    if frame is None:
        frame = TabularDatasetLoader(random_state=config.split.random_state).load(
            path=config.data.path,
            use_synthetic_if_missing=config.data.use_synthetic_if_missing,
            n_synthetic_rows=config.data.synthetic_rows,
        )
    schema = resolve_schema(frame, config.data)
    outcome = drop_invalid_rows(frame, schema, require_target=True, context="workflow_input")
    clean = outcome.frame

    split = partition_frame(
        clean,
        schema,
        proportions=config.split.proportions,
        random_state=config.split.random_state,
        stratify_bins=config.split.stratify_bins,
    )
    # Fail on an unbounded interval before spending time on model fitting.
    ensure_bounded_rank(split.sizes["calibration"], alpha)

    fitted, predictor_name, leaderboard = _fit_point_predictor(split, schema, config, predictor)

    conformal = SplitConformalRegressor(
        fitted,
        alpha=alpha,
        mode=config.conformal.interval_mode,
        training_row_ids=split.row_ids["train"],
    )
    calibration = conformal.calibrate(split.x_calibration, split.y_calibration)
    intervals, coverage = conformal.evaluate(split.x_test, split.y_test)
    logger.info(
        f"[INTERVALS] test coverage={coverage['coverage']:.3f} "
        f"(target {coverage['nominal_coverage']:.3f}) mean_width={coverage['mean_width']:.4g}"
    )

    point_metrics = compute_regression_metrics(split.y_test.to_numpy(dtype=float), intervals.y_pred)

    simulation: dict[str, Any] | None = None
    if config.conformal.simulation_repeats > 0:
        held_out_pred = np.concatenate([predict_frame(fitted, split.x_calibration), intervals.y_pred])
        held_out_true = np.concatenate(
            [split.y_calibration.to_numpy(dtype=float), split.y_test.to_numpy(dtype=float)]
        )
        simulation = simulate_coverage(
            held_out_true,
            held_out_pred,
            alpha=alpha,
            n_calibration=split.sizes["calibration"],
            n_repeats=config.conformal.simulation_repeats,
            random_state=config.split.random_state,
        )

    metadata = RunMetadata(
        project_name=config.output.project_name,
        schema=schema,
        point_predictor=predictor_name,
        calibration=calibration,
        split_sizes=split.sizes,
        coverage=coverage,
        extra={
            "dataset_rows": int(frame.shape[0]),
            "dropped_rows": outcome.dropped_rows,
            "dropped_by_column": outcome.failures_by_column,
            "point_metrics": point_metrics,
            "leaderboard": leaderboard,
            "random_state": config.split.random_state,
            "proportions": list(config.split.proportions.as_tuple()),
            "stratify_bins": config.split.stratify_bins,
            "simulation": simulation,
        },
    )
    registry = ArtifactRegistry(root_dir=config.output.output_dir)
    saved = registry.save_run(
        predictor=fitted,
        metadata=metadata,
        interval_table=build_interval_table(split.x_test, split.y_test, intervals),
    )

    return {
        "point_predictor": predictor_name,
        "calibration": calibration.as_dict(),
        "coverage": coverage,
        "point_metrics": point_metrics,
        "split_sizes": split.sizes,
        "dropped_rows": outcome.dropped_rows,
        "simulation": simulation,
        "artifacts": {
            "model": str(registry.model_path),
            "metadata": str(registry.metadata_path),
            "intervals": str(registry.intervals_path),
        },
        "metadata": saved,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fit a point predictor and wrap it in split conformal prediction intervals."
    )
    parser.add_argument("--config", type=str, default=None, help="YAML workflow config.")
    parser.add_argument("--data-path", type=str, default=None)
    parser.add_argument("--target", type=str, default=None)
    parser.add_argument("--alpha", type=float, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--proportions",
        type=float,
        nargs=3,
        metavar=("TRAIN", "CALIBRATION", "TEST"),
        default=None,
    )
    parser.add_argument("--stratify-bins", type=int, default=None)
    parser.add_argument("--interval-mode", type=str, choices=[mode.value for mode in IntervalMode], default=None)
    parser.add_argument("--simulation-repeats", type=int, default=None)
    parser.add_argument("--output-dir", type=str, default=None)
    parser.add_argument("--synthetic", action="store_true", help="Generate a synthetic table if no data file exists.")
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def config_from_args(args: argparse.Namespace) -> WorkflowConfig:
    config = load_workflow_config(args.config) if args.config else WorkflowConfig()
    return config.with_overrides(
        **{
            "data.path": Path(args.data_path).resolve() if args.data_path else None,
            "data.target": args.target,
            "data.use_synthetic_if_missing": True if args.synthetic else None,
            "split.random_state": args.seed,
            "split.proportions": SplitProportions.from_sequence(args.proportions) if args.proportions else None,
            "split.stratify_bins": args.stratify_bins,
            "conformal.alpha": args.alpha,
            "conformal.interval_mode": IntervalMode(args.interval_mode) if args.interval_mode else None,
            "conformal.simulation_repeats": args.simulation_repeats,
            "output.output_dir": Path(args.output_dir).resolve() if args.output_dir else None,
            "output.log_level": args.log_level,
        }
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
        set_package_level(config.output.log_level)
        payload = run_conformal_workflow(config)
    except (ValueError, FileNotFoundError) as exc:
        logger.error(f"{type(exc).__name__}: {exc}")
        return 1
    print(json.dumps({key: payload[key] for key in payload if key != "metadata"}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
