# packages/ml_core/evaluation/metrics.py

from typing import Dict, Sequence

import numpy as np
from sklearn import metrics as sk_metrics

POSITIVE_LABEL = 1


def _as_label_arrays(y_true: Sequence[int], y_pred: Sequence[int]):
    y_true = np.asarray(y_true).ravel()
    y_pred = np.asarray(y_pred).ravel()
    if y_true.shape != y_pred.shape:
        raise ValueError(
            f"Label sequences differ in length: {len(y_true)} != {len(y_pred)}"
        )
    return y_true, y_pred


def accuracy(y_true: Sequence[int], y_pred: Sequence[int]) -> float:
    y_true, y_pred = _as_label_arrays(y_true, y_pred)
    # An empty test partition scores 0.0 like the other metrics; nothing was predicted correctly
    if y_true.size == 0:
        return 0.0
    return float(sk_metrics.accuracy_score(y_true, y_pred))


def precision(y_true: Sequence[int], y_pred: Sequence[int]) -> float:
    """Of all positive predictions, the fraction that were correct."""
    y_true, y_pred = _as_label_arrays(y_true, y_pred)
    if y_true.size == 0:
        return 0.0
    return float(
        sk_metrics.precision_score(
            y_true, y_pred, pos_label=POSITIVE_LABEL, zero_division=0.0
        )
    )


def recall(y_true: Sequence[int], y_pred: Sequence[int]) -> float:
    """Of all actual positives, the fraction that were caught."""
    y_true, y_pred = _as_label_arrays(y_true, y_pred)
    if y_true.size == 0:
        return 0.0
    return float(
        sk_metrics.recall_score(
            y_true, y_pred, pos_label=POSITIVE_LABEL, zero_division=0.0
        )
    )


def f1_score(y_true: Sequence[int], y_pred: Sequence[int]) -> float:
    y_true, y_pred = _as_label_arrays(y_true, y_pred)
    if y_true.size == 0:
        return 0.0
    return float(
        sk_metrics.f1_score(
            y_true, y_pred, pos_label=POSITIVE_LABEL, zero_division=0.0
        )
    )


def compute_metrics(y_true: Sequence[int], y_pred: Sequence[int]) -> Dict[str, float]:
    return {
        "accuracy": accuracy(y_true, y_pred),
        "precision": precision(y_true, y_pred),
        "recall": recall(y_true, y_pred),
        "f1Score": f1_score(y_true, y_pred),
    }


def round_metric(value: float | None, places: int = 4) -> float:
    if value is None:
        return 0.0
    return round(float(value), places)
