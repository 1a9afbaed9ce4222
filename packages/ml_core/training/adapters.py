# packages/ml_core/training/adapters.py

from abc import ABC, abstractmethod
from pathlib import Path

import numpy as np
import polars as pl
import torch
from sklearn import ensemble, linear_model, tree
from torch import nn
from torch.utils.data import DataLoader, TensorDataset

from packages.ml_core.common.errors import UnfittedModelError
from packages.ml_core.common.schemas import (
    AdaBoostConfig,
    DecisionTreeConfig,
    GradientBoostingConfig,
    LogisticRegressionConfig,
    NeuralNetworkConfig,
    RandomForestConfig,
)
from packages.ml_core.data.preprocessing import LABEL_COLUMN


def _unbounded(value: int) -> int | None:
    """Config uses 0 for 'no limit'; sklearn uses None."""
    return value or None


def _max_leaf_nodes(value: int) -> int | None:
    # sklearn requires at least 2 leaves when bounded
    return max(value, 2) if value else None


# ---------------------------------------------------------------------------
# Labeled DataFrame adapters (tree ensembles)
# ---------------------------------------------------------------------------


class DataFrameClassifier(ABC):
    """
    Fit/predict over a labeled polars DataFrame.
    The label column is separated inside fit(); predict() ignores it if present.
    """

    def __init__(self, config, random_state: int | None = None):
        self.config = config
        self.random_state = random_state
        self.label_column = LABEL_COLUMN
        self._model = None
        self._feature_columns: list[str] | None = None

    @abstractmethod
    def _build_estimator(self):
        """Returns an un-fitted sklearn estimator configured from self.config."""
        pass

    def fit(self, train_df: pl.DataFrame, label_column: str = LABEL_COLUMN) -> None:
        self.label_column = label_column
        self._feature_columns = [c for c in train_df.columns if c != label_column]

        X = train_df.select(self._feature_columns).to_numpy()
        y = train_df[label_column].to_numpy()

        model = self._build_estimator()
        model.fit(X, y)
        self._model = model

    def predict(self, test_df: pl.DataFrame) -> np.ndarray:
        if self._model is None:
            raise UnfittedModelError(type(self).__name__)
        X = test_df.select(self._feature_columns).to_numpy()
        if len(X) == 0:
            return np.empty(0, dtype=np.int64)
        return self._model.predict(X).astype(np.int64)


class DecisionTreeClassifier(DataFrameClassifier):
    config: DecisionTreeConfig

    def _build_estimator(self):
        return tree.DecisionTreeClassifier(
            criterion=self.config.split_rule.value.lower(),
            max_depth=_unbounded(self.config.max_depth),
            max_leaf_nodes=_max_leaf_nodes(self.config.max_nodes),
            min_samples_leaf=self.config.node_size,
            random_state=self.random_state,
        )


class RandomForestClassifier(DataFrameClassifier):
    config: RandomForestConfig

    def _build_estimator(self):
        cfg = self.config
        class_weight = (
            {label: weight for label, weight in enumerate(cfg.class_weight)}
            if cfg.class_weight
            else None
        )
        # One seed drives the whole forest; the first configured seed wins
        random_state = cfg.seeds[0] if cfg.seeds else self.random_state

        return ensemble.RandomForestClassifier(
            n_estimators=cfg.n_trees,
            max_features=cfg.mtry or "sqrt",
            criterion=cfg.split_rule.value.lower(),
            max_depth=_unbounded(cfg.max_depth),
            max_leaf_nodes=_max_leaf_nodes(cfg.max_nodes),
            min_samples_leaf=cfg.node_size,
            max_samples=cfg.subsample if cfg.subsample < 1.0 else None,
            class_weight=class_weight,
            random_state=random_state,
            n_jobs=-1,
        )


class AdaBoostClassifier(DataFrameClassifier):
    config: AdaBoostConfig

    def _build_estimator(self):
        base_tree = tree.DecisionTreeClassifier(
            max_depth=_unbounded(self.config.max_depth),
            max_leaf_nodes=_max_leaf_nodes(self.config.max_nodes),
            min_samples_leaf=self.config.node_size,
            random_state=self.random_state,
        )
        return ensemble.AdaBoostClassifier(
            estimator=base_tree,
            n_estimators=self.config.n_trees,
            random_state=self.random_state,
        )


class GradientBoostingClassifier(DataFrameClassifier):
    config: GradientBoostingConfig

    def _build_estimator(self):
        return ensemble.GradientBoostingClassifier(
            n_estimators=self.config.n_trees,
            max_depth=_unbounded(self.config.max_depth),
            max_leaf_nodes=_max_leaf_nodes(self.config.max_nodes),
            min_samples_leaf=self.config.node_size,
            learning_rate=self.config.shrinkage,
            subsample=self.config.subsample,
            random_state=self.random_state,
        )


# ---------------------------------------------------------------------------
# Raw array adapters
# ---------------------------------------------------------------------------


class ArrayClassifier(ABC):
    """Fit/predict over plain numeric matrices and label vectors."""

    @abstractmethod
    def fit(self, x_train: np.ndarray, y_train: np.ndarray) -> None:
        pass

    @abstractmethod
    def predict(self, x_test: np.ndarray) -> np.ndarray:
        pass


class LogisticRegressionClassifier(ArrayClassifier):
    def __init__(self, config: LogisticRegressionConfig):
        self.config = config
        self._model = None

    def fit(self, x_train: np.ndarray, y_train: np.ndarray) -> None:
        if self.config.penalty > 0:
            # lambda is the L2 strength; sklearn's C is its inverse
            model = linear_model.LogisticRegression(
                C=1.0 / self.config.penalty,
                tol=self.config.tol,
                max_iter=self.config.max_iter,
            )
        else:
            model = linear_model.LogisticRegression(
                penalty=None, tol=self.config.tol, max_iter=self.config.max_iter
            )
        model.fit(np.asarray(x_train), np.asarray(y_train).ravel())
        self._model = model

    def predict(self, x_test: np.ndarray) -> np.ndarray:
        if self._model is None:
            raise UnfittedModelError(type(self).__name__)
        x_test = np.asarray(x_test)
        if len(x_test) == 0:
            return np.empty(0, dtype=np.int64)
        return self._model.predict(x_test).astype(np.int64)


# ---------------------------------------------------------------------------
# Batched dataset adapters (PyTorch)
# ---------------------------------------------------------------------------


class DatasetClassifier(ABC):
    """Fit/predict over datasets that yield (features, label) batches."""

    @abstractmethod
    def fit(self, train_data: TensorDataset) -> None:
        pass

    @abstractmethod
    def predict(self, test_data: TensorDataset) -> np.ndarray:
        pass

    @abstractmethod
    def evaluate(self, test_data: TensorDataset) -> float:
        pass


class NeuralNetworkClassifier(DatasetClassifier):
    """
    Two-layer feed-forward network:
    Dense(300, ReLU, He-normal) -> Dense(2, linear), trained with SGD on
    softmax cross-entropy.
    """

    HIDDEN_UNITS = 300
    N_CLASSES = 2
    LEARNING_RATE = 0.001

    def __init__(self, config: NeuralNetworkConfig):
        self.config = config
        self._model: nn.Sequential | None = None

    def _build_network(self, n_features: int) -> nn.Sequential:
        generator = torch.Generator().manual_seed(self.config.kernel_initializer_seed)
        model = nn.Sequential(
            nn.Linear(n_features, self.HIDDEN_UNITS),
            nn.ReLU(),
            nn.Linear(self.HIDDEN_UNITS, self.N_CLASSES),
        )
        for layer in model:
            if isinstance(layer, nn.Linear):
                nn.init.kaiming_normal_(layer.weight, nonlinearity="relu", generator=generator)
                nn.init.zeros_(layer.bias)
        return model

    def fit(self, train_data: TensorDataset) -> None:
        features, _ = train_data.tensors
        model = self._build_network(features.shape[1])

        loader = DataLoader(
            train_data,
            batch_size=self.config.train_batch_size,
            shuffle=True,
            generator=torch.Generator().manual_seed(self.config.kernel_initializer_seed),
        )
        optimizer = torch.optim.SGD(model.parameters(), lr=self.LEARNING_RATE)
        loss_fn = nn.CrossEntropyLoss()

        for _ in range(self.config.epochs):
            model.train()
            for X_batch, y_batch in loader:
                loss = loss_fn(model(X_batch), y_batch)

                optimizer.zero_grad()
                loss.backward()
                optimizer.step()

        self._model = model

    def predict(self, test_data: TensorDataset) -> np.ndarray:
        if self._model is None:
            raise UnfittedModelError(type(self).__name__)

        loader = DataLoader(test_data, batch_size=self.config.test_batch_size)
        predictions = []
        self._model.eval()
        with torch.no_grad():
            for X_batch, _ in loader:
                predictions.append(self._model(X_batch).argmax(dim=1))

        if not predictions:
            return np.empty(0, dtype=np.int64)
        return torch.cat(predictions).numpy().astype(np.int64)

    def evaluate(self, test_data: TensorDataset) -> float:
        """Accuracy on a labeled dataset."""
        predictions = self.predict(test_data)
        _, labels = test_data.tensors
        if len(predictions) == 0:
            return 0.0
        return float((predictions == labels.numpy()).mean())

    def save(self, path: Path) -> Path:
        if self._model is None:
            raise UnfittedModelError(type(self).__name__)
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(self._model.state_dict(), path)
        return path
