from __future__ import annotations

from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from split_conformal.features.schema import FeatureSchema


def build_preprocessor(schema: FeatureSchema, scale_numeric: bool = True) -> ColumnTransformer:
    """Column transformer fit on the train split only; unseen categories encode to zeros."""
    schema.ensure_valid()
    transformers: list[tuple[str, object, list[str]]] = []
    if schema.numeric_features:
        numeric_step: object = StandardScaler() if scale_numeric else "passthrough"
        transformers.append(("numeric", numeric_step, list(schema.numeric_features)))
    if schema.categorical_features:
        transformers.append(
            (
                "categorical",
                OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                list(schema.categorical_features),
            )
        )
    return ColumnTransformer(transformers=transformers, remainder="drop")
