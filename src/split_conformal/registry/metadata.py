from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from split_conformal.conformal.calibrator import CalibrationResult
from split_conformal.features.schema import FeatureSchema


@dataclass(frozen=True, slots=True)
class RunMetadata:
    project_name: str
    schema: FeatureSchema
    point_predictor: str
    calibration: CalibrationResult
    split_sizes: dict[str, int]
    coverage: dict[str, object]
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    extra: dict[str, object] = field(default_factory=dict)

    def as_dict(self) -> dict[str, object]:
        return {
            "project_name": self.project_name,
            "task_type": "regression_interval",
            "schema": self.schema.as_dict(),
            "point_predictor": self.point_predictor,
            "calibration": self.calibration.as_dict(),
            "split_sizes": dict(self.split_sizes),
            "coverage": dict(self.coverage),
            "created_at": self.created_at,
            "extra": self.extra,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "RunMetadata":
        schema_raw = dict(raw["schema"])
        return cls(
            project_name=str(raw["project_name"]),
            schema=FeatureSchema.create(
                schema_raw["numeric_features"],
                schema_raw["categorical_features"],
                str(schema_raw["target_name"]),
            ),
            point_predictor=str(raw["point_predictor"]),
            calibration=CalibrationResult.from_dict(dict(raw["calibration"])),
            split_sizes={str(k): int(v) for k, v in dict(raw["split_sizes"]).items()},
            coverage=dict(raw.get("coverage", {})),
            created_at=str(raw.get("created_at", datetime.now(timezone.utc).isoformat())),
            extra=dict(raw.get("extra", {})),
        )
