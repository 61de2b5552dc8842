from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from split_conformal.conformal.intervals import IntervalMode
from split_conformal.data.contracts import SplitProportions
from split_conformal.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class DataConfig:
    path: Optional[Path] = None
    target: str = "target"
    numeric_features: Optional[List[str]] = None
    categorical_features: Optional[List[str]] = None
    exclude_columns: List[str] = field(default_factory=list)
    use_synthetic_if_missing: bool = False
    synthetic_rows: int = 2000


@dataclass
class SplitConfig:
    proportions: SplitProportions = field(default_factory=SplitProportions)
    random_state: int = 42
    stratify_bins: Optional[int] = 5


@dataclass
class ConformalConfig:
    alpha: float = 0.1
    interval_mode: IntervalMode = IntervalMode.SYMMETRIC
    candidate_models: List[str] = field(
        default_factory=lambda: ["LinearRegression", "GradientBoostingRegressor"]
    )
    cv_folds: int = 5
    primary_metric: str = "rmse"
    simulation_repeats: int = 0


@dataclass
class OutputConfig:
    output_dir: Path = Path("artifacts")
    project_name: str = "split_conformal"
    log_level: str = "INFO"


@dataclass
class WorkflowConfig:
    data: DataConfig = field(default_factory=DataConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    conformal: ConformalConfig = field(default_factory=ConformalConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def ensure_valid(self) -> None:
        self.split.proportions.ensure_valid()
        if not 0 < self.conformal.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.conformal.alpha}")
        if not self.conformal.candidate_models:
            raise ValueError("At least one candidate model must be configured.")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any], base_dir: Path | None = None) -> "WorkflowConfig":
        base_dir = base_dir or Path.cwd()
        data_cfg = dict(cfg.get("data") or {})
        split_cfg = dict(cfg.get("split") or {})
        conformal_cfg = dict(cfg.get("conformal") or {})
        output_cfg = dict(cfg.get("output") or {})

        defaults = cls()
        raw_path = data_cfg.get("path")
        data = DataConfig(
            path=_resolve(base_dir, raw_path) if raw_path else None,
            target=str(data_cfg.get("target", defaults.data.target)),
            numeric_features=_optional_list(data_cfg.get("numeric_features")),
            categorical_features=_optional_list(data_cfg.get("categorical_features")),
            exclude_columns=list(data_cfg.get("exclude_columns", [])),
            use_synthetic_if_missing=bool(
                data_cfg.get("use_synthetic_if_missing", defaults.data.use_synthetic_if_missing)
            ),
            synthetic_rows=int(data_cfg.get("synthetic_rows", defaults.data.synthetic_rows)),
        )

        proportions = split_cfg.get("proportions")
        split = SplitConfig(
            proportions=(
                SplitProportions.from_sequence(proportions)
                if proportions is not None
                else defaults.split.proportions
            ),
            random_state=int(split_cfg.get("random_state", defaults.split.random_state)),
            stratify_bins=_optional_int(split_cfg.get("stratify_bins", defaults.split.stratify_bins)),
        )

        conformal = ConformalConfig(
            alpha=float(conformal_cfg.get("alpha", defaults.conformal.alpha)),
            interval_mode=IntervalMode(conformal_cfg.get("interval_mode", defaults.conformal.interval_mode)),
            candidate_models=list(conformal_cfg.get("candidate_models", defaults.conformal.candidate_models)),
            cv_folds=int(conformal_cfg.get("cv_folds", defaults.conformal.cv_folds)),
            primary_metric=str(conformal_cfg.get("primary_metric", defaults.conformal.primary_metric)),
            simulation_repeats=int(conformal_cfg.get("simulation_repeats", defaults.conformal.simulation_repeats)),
        )

        output = OutputConfig(
            output_dir=_resolve(base_dir, output_cfg.get("output_dir", defaults.output.output_dir)),
            project_name=str(output_cfg.get("project_name", defaults.output.project_name)),
            log_level=str(output_cfg.get("log_level", defaults.output.log_level)),
        )

        config = cls(data=data, split=split, conformal=conformal, output=output)
        config.ensure_valid()
        return config

    def with_overrides(self, **overrides: Any) -> "WorkflowConfig":
        """Return a copy with dotted keys replaced, e.g. ``{"conformal.alpha": 0.2}``."""
        sections = {
            "data": self.data,
            "split": self.split,
            "conformal": self.conformal,
            "output": self.output,
        }
        updates: Dict[str, Dict[str, Any]] = {}
        for dotted, value in overrides.items():
            if value is None:
                continue
            section, _, name = dotted.partition(".")
            if section not in sections or not hasattr(sections[section], name):
                raise ValueError(f"Unknown configuration key: {dotted}")
            updates.setdefault(section, {})[name] = value
        for section, values in updates.items():
            sections[section] = replace(sections[section], **values)
        config = WorkflowConfig(**sections)
        config.ensure_valid()
        return config


def _resolve(base_dir: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (base_dir / path).resolve()


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _optional_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    return [str(item) for item in value]


def load_workflow_config(config_path: Path | str) -> WorkflowConfig:
    """
    Load a YAML workflow config and return a typed WorkflowConfig.

    Relative paths inside the file are resolved against the file's directory.
    """
    config_file = Path(config_path).resolve()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    logger.info(f"Loading workflow config from {config_file}")
    with config_file.open("r", encoding="utf-8") as f:
        cfg: Dict[str, Any] = yaml.safe_load(f) or {}

    return WorkflowConfig.from_dict(cfg, base_dir=config_file.parent)
