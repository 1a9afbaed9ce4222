# packages/ml_core/data/preprocessing.py

from typing import NamedTuple

import polars as pl

from packages.ml_core.common.errors import DataValidationError

LABEL_COLUMN = "diagnosis"

# Malignant is the positive class
LABEL_ENCODING = {"M": 1, "B": 0}


class PreprocessedData(NamedTuple):
    dataset: pl.DataFrame  # features + label
    x: pl.DataFrame  # features only
    y: pl.DataFrame  # single label column


def _is_droppable(df: pl.DataFrame, column: str) -> bool:
    if column.lower() == "id" or column == "" or column.startswith("Unnamed"):
        return True
    # CSV exports often carry a trailing empty column
    return df.height > 0 and df[column].null_count() == df.height


def preprocess(raw_df: pl.DataFrame, label_column: str = LABEL_COLUMN) -> PreprocessedData:
    """
    Cleans the raw dataset into model-ready numeric frames.
    Drops identifier/empty columns and incomplete rows, encodes the label (M=1, B=0)
    and casts every feature to Float64.
    """
    if label_column not in raw_df.columns:
        raise DataValidationError(f"Label column '{label_column}' missing from dataset")

    drop_cols = [
        c for c in raw_df.columns if c != label_column and _is_droppable(raw_df, c)
    ]
    df = raw_df.drop(drop_cols).drop_nulls()

    if df.schema[label_column] == pl.String:
        label_expr = pl.col(label_column).replace_strict(
            LABEL_ENCODING, default=None, return_dtype=pl.Int64
        )
    else:
        label_expr = pl.col(label_column).cast(pl.Int64)

    feature_cols = [c for c in df.columns if c != label_column]
    try:
        df = df.with_columns(
            label_expr,
            pl.col(feature_cols).cast(pl.Float64),
        )
    except pl.exceptions.InvalidOperationError as e:
        raise DataValidationError(f"Non-numeric feature values: {e}") from e

    if df[label_column].null_count() > 0:
        unknown = raw_df[label_column].unique().to_list()
        raise DataValidationError(
            f"Unrecognised labels in '{label_column}': {unknown}. Expected {list(LABEL_ENCODING)}"
        )

    classes = set(df[label_column].unique().to_list())
    if not classes <= set(LABEL_ENCODING.values()):
        raise DataValidationError(
            f"Label column '{label_column}' must be encoded as 0/1, found {sorted(classes)}"
        )
    if len(classes) != 2:
        raise DataValidationError(
            f"Label column '{label_column}' must be binary, found {len(classes)} distinct values"
        )

    return PreprocessedData(
        dataset=df,
        x=df.select(feature_cols),
        y=df.select(label_column),
    )
