# packages/ml_core/data/splits.py

from typing import NamedTuple, Tuple

import numpy as np
import polars as pl
import torch
from torch.utils.data import TensorDataset


class DataFrameSplit(NamedTuple):
    train: pl.DataFrame
    test: pl.DataFrame
    test_features: pl.DataFrame
    test_labels: pl.DataFrame


class ArraySplit(NamedTuple):
    x_train: np.ndarray
    x_test: np.ndarray
    y_train: np.ndarray
    y_test: np.ndarray


class NetworkSplit(NamedTuple):
    train: TensorDataset
    test: TensorDataset


def _partition_indices(
    n_rows: int, fraction: float, seed: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Shuffles row positions with a seeded generator and cuts them in two.
    Returns (first, rest) where len(first) == round(fraction * n_rows).
    """
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"Split fraction must be within [0, 1], got {fraction}")

    n_first = int(round(fraction * n_rows))
    permutation = np.random.default_rng(seed).permutation(n_rows)
    return permutation[:n_first], permutation[n_first:]


def _take_rows(df: pl.DataFrame, indices: np.ndarray) -> pl.DataFrame:
    return df.select(pl.all().gather(indices))


def split_dataframe(
    data: pl.DataFrame, test_size: float, seed: int, label_column: str
) -> DataFrameSplit:
    """Row split of a labeled frame, used by the tree ensembles."""
    test_idx, train_idx = _partition_indices(data.height, test_size, seed)

    train = _take_rows(data, train_idx)
    test = _take_rows(data, test_idx)
    return DataFrameSplit(
        train=train,
        test=test,
        test_features=test.drop(label_column),
        test_labels=test.select(label_column),
    )


def split_features_labels(
    x: np.ndarray, y: np.ndarray, test_size: float, seed: int
) -> ArraySplit:
    x = np.asarray(x)
    y = np.asarray(y).ravel()
    if len(x) != len(y):
        raise ValueError(f"x has {len(x)} rows but y has {len(y)}")

    test_idx, train_idx = _partition_indices(len(x), test_size, seed)
    return ArraySplit(
        x_train=x[train_idx],
        x_test=x[test_idx],
        y_train=y[train_idx],
        y_test=y[test_idx],
    )


def split_for_network(
    x: np.ndarray, y: np.ndarray, train_size: float, seed: int
) -> NetworkSplit:
    """Builds batched-iteration datasets; labels stay inside each dataset."""
    x = np.asarray(x, dtype=np.float32)
    y = np.asarray(y).ravel()
    if len(x) != len(y):
        raise ValueError(f"x has {len(x)} rows but y has {len(y)}")

    train_idx, test_idx = _partition_indices(len(x), train_size, seed)

    def _to_dataset(idx: np.ndarray) -> TensorDataset:
        features = torch.from_numpy(x[idx].reshape(len(idx), x.shape[1]))
        labels = torch.as_tensor(y[idx], dtype=torch.long)
        return TensorDataset(features, labels)

    return NetworkSplit(train=_to_dataset(train_idx), test=_to_dataset(test_idx))
