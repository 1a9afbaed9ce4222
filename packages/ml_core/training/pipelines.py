# packages/ml_core/training/pipelines.py

import shutil
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Tuple

import numpy as np
import polars as pl

from packages.database.results import TrainingResultsRepository
from packages.ml_core.common.errors import InvalidAlgorithmError, PipelineStageError
from packages.ml_core.common.schemas import Algorithm, TrainingBlueprint
from packages.ml_core.common.tracker import ExperimentTracker
from packages.ml_core.data.preprocessing import LABEL_COLUMN, PreprocessedData, preprocess
from packages.ml_core.data.splits import (
    split_dataframe,
    split_features_labels,
    split_for_network,
)
from packages.ml_core.evaluation.metrics import compute_metrics, round_metric
from packages.ml_core.storage.artifacts import Artifact, ArtifactCatalog, ArtifactStore
from packages.ml_core.training.adapters import (
    AdaBoostClassifier,
    DataFrameClassifier,
    DecisionTreeClassifier,
    GradientBoostingClassifier,
    LogisticRegressionClassifier,
    NeuralNetworkClassifier,
    RandomForestClassifier,
)

STALE_MODEL_AGE = timedelta(days=2)


class TrainingPipeline(ABC):
    """
    One linear run per algorithm:
    ensure-raw-dataset -> preprocess -> split -> persist-locally -> mirror-remote
    -> reload-from-local -> fit -> predict -> compute-metrics -> dual-sink-write.

    Subclasses pick the split strategy, the artifacts they materialize and the
    adapter family. The algorithm is validated in __init__, before any I/O.
    """

    name: str = "training pipeline"
    supported_algorithms: FrozenSet[Algorithm] = frozenset()

    def __init__(
        self,
        blueprint: TrainingBlueprint,
        algorithm: Algorithm,
        store: ArtifactStore,
        catalog: ArtifactCatalog,
        results: TrainingResultsRepository,
        tracker: ExperimentTracker,
        logger,
        experiment_name: str,
        dataset_tag: str = "breast_cancer",
    ):
        if algorithm not in self.supported_algorithms:
            raise InvalidAlgorithmError(algorithm, self.name)

        self.blueprint = blueprint
        self.algorithm = algorithm
        self.store = store
        self.catalog = catalog
        self.results = results
        self.tracker = tracker
        self.logger = logger
        self.experiment_name = experiment_name
        self.dataset_tag = dataset_tag

    @contextmanager
    def _stage(self, stage: str):
        self.logger.debug(f"[{self.algorithm.value}] -> {stage}")
        try:
            yield
        except PipelineStageError:
            raise
        except Exception as e:
            self.logger.error(f"[{self.algorithm.value}] Stage '{stage}' failed: {e}")
            raise PipelineStageError(stage, e) from e

    async def execute(self) -> Dict[str, float]:
        self.logger.info(f"--- Starting {self.name} for: {self.algorithm.value} ---")
        start = time.perf_counter()

        with self._stage("ensure-raw-dataset"):
            await self.store.ensure_local(self.catalog.raw_dataset)
            raw_df = await self.store.read(self.catalog.raw_dataset.local_path)

        with self._stage("preprocess"):
            data = preprocess(raw_df, label_column=LABEL_COLUMN)
            self.logger.info(
                f"Preprocessed dataset: {data.dataset.height} rows, {data.x.width} features"
            )

        with self._stage("split"):
            to_store = self._materialize(data)

        with self._stage("persist-locally"):
            await self.store.store_all(to_store)

        with self._stage("mirror-remote"):
            await self.store.upload_all(artifact for _, artifact in to_store)

        with self._stage("reload-from-local"):
            loaded = await self._reload()

        with self._stage("fit"):
            self.logger.info(f"{self.algorithm.value} training started")
            model = self._fit(loaded)

        with self._stage("predict"):
            y_true, y_pred = self._predict(model, loaded)

        with self._stage("compute-metrics"):
            metrics = {k: round_metric(v) for k, v in compute_metrics(y_true, y_pred).items()}
            for key, value in metrics.items():
                self.logger.info(f"{key}: {value}")

        await self._record(metrics)

        self.logger.success(
            f"{self.algorithm.value} pipeline finished in {time.perf_counter() - start:.1f}s"
        )
        return metrics

    @abstractmethod
    def _materialize(self, data: PreprocessedData) -> List[Tuple[pl.DataFrame, Artifact]]:
        """Splits (where the variant splits before persisting) and names each artifact."""
        pass

    @abstractmethod
    async def _reload(self) -> Any:
        """Reads the persisted artifacts back from local disk."""
        pass

    @abstractmethod
    def _fit(self, loaded) -> Any:
        """Builds the adapter for self.algorithm and fits it."""
        pass

    @abstractmethod
    def _predict(self, model, loaded) -> Tuple[np.ndarray, np.ndarray]:
        """Returns (y_true, y_pred) on the held-out partition."""
        pass

    async def _record(self, metrics: Dict[str, float]) -> None:
        # The relational table is the system of record: failures abort the run
        with self._stage("results-database"):
            await self.results.prepare()
            await self.results.insert(self.algorithm.value, metrics)

        with self._stage("experiment-tracking"):
            self.tracker.record(
                experiment_name=self.experiment_name,
                algorithm=self.algorithm,
                metrics=metrics,
                dataset_tag=self.dataset_tag,
            )


class EnsembleTrainingPipeline(TrainingPipeline):
    """Tree-based classifiers trained on a labeled DataFrame."""

    name = "ensemble training pipeline"
    supported_algorithms = frozenset(
        {
            Algorithm.DECISION_TREE,
            Algorithm.RANDOM_FOREST,
            Algorithm.ADA_BOOST,
            Algorithm.GRADIENT_BOOSTING,
        }
    )

    def _create_model(self) -> DataFrameClassifier:
        train_cfg = self.blueprint.train
        seed = self.blueprint.pre_processing.seed
        if self.algorithm == Algorithm.DECISION_TREE:
            return DecisionTreeClassifier(train_cfg.decision_tree, random_state=seed)
        if self.algorithm == Algorithm.RANDOM_FOREST:
            return RandomForestClassifier(train_cfg.random_forest, random_state=seed)
        if self.algorithm == Algorithm.ADA_BOOST:
            return AdaBoostClassifier(train_cfg.ada_boost, random_state=seed)
        return GradientBoostingClassifier(train_cfg.gradient_boosting, random_state=seed)

    def _materialize(self, data):
        cfg = self.blueprint.pre_processing
        split = split_dataframe(
            data.dataset,
            test_size=cfg.test_size,
            seed=cfg.seed,
            label_column=LABEL_COLUMN,
        )
        self.logger.info(f"Train: {split.train.height} | Test: {split.test.height}")
        return [
            (data.dataset, self.catalog.preprocessed_dataset),
            (split.train, self.catalog.train_dataset),
            (split.test, self.catalog.test_dataset),
            (split.test_labels, self.catalog.y_test_data),
        ]

    async def _reload(self):
        return {
            "train": await self.store.read(self.catalog.train_dataset.local_path),
            "test": await self.store.read(self.catalog.test_dataset.local_path),
            "y_test": await self.store.read(self.catalog.y_test_data.local_path),
        }

    def _fit(self, loaded):
        model = self._create_model()
        model.fit(loaded["train"], label_column=LABEL_COLUMN)
        return model

    def _predict(self, model, loaded):
        predictions = model.predict(loaded["test"])
        return loaded["y_test"][LABEL_COLUMN].to_numpy(), predictions


class LogisticRegressionTrainingPipeline(TrainingPipeline):
    """Persists x/y first, then splits the reloaded arrays."""

    name = "logistic regression training pipeline"
    supported_algorithms = frozenset({Algorithm.LOGISTIC_REGRESSION})

    def _materialize(self, data):
        return [
            (data.dataset, self.catalog.preprocessed_dataset),
            (data.x, self.catalog.x_data),
            (data.y, self.catalog.y_data),
        ]

    async def _reload(self):
        x_df = await self.store.read(self.catalog.x_data.local_path)
        y_df = await self.store.read(self.catalog.y_data.local_path)

        cfg = self.blueprint.pre_processing
        split = split_features_labels(
            x_df.to_numpy().astype(np.float64),
            y_df[LABEL_COLUMN].to_numpy().astype(np.int64),
            test_size=cfg.test_size,
            seed=cfg.seed,
        )
        self.logger.info(f"Train: {len(split.x_train)} | Test: {len(split.x_test)}")
        return split

    def _fit(self, loaded):
        model = LogisticRegressionClassifier(self.blueprint.train.logistic_regression)
        model.fit(loaded.x_train, loaded.y_train)
        return model

    def _predict(self, model, loaded):
        return loaded.y_test, model.predict(loaded.x_test)


class DeepLearningTrainingPipeline(TrainingPipeline):
    """Feed-forward network on batched datasets; saves the fitted weights."""

    name = "deep learning training pipeline"
    supported_algorithms = frozenset({Algorithm.DEEP_LEARNING_CLASSIFIER})

    def _materialize(self, data):
        return [
            (data.x, self.catalog.x_data),
            (data.y, self.catalog.y_data),
        ]

    async def _reload(self):
        x_df = await self.store.read(self.catalog.x_data.local_path)
        y_df = await self.store.read(self.catalog.y_data.local_path)

        split = split_for_network(
            x_df.to_numpy(),
            y_df[LABEL_COLUMN].to_numpy(),
            train_size=self.blueprint.pre_processing_dl.train_size,
            seed=self.blueprint.pre_processing.seed,
        )
        self.logger.info(f"Train: {len(split.train)} | Test: {len(split.test)}")
        return split

    def _fit(self, loaded):
        model = NeuralNetworkClassifier(self.blueprint.train.deep_learning_classifier)
        model.fit(loaded.train)

        models_dir = Path(self.store.config.models_dir)
        removed = prune_stale_models(models_dir, max_age=STALE_MODEL_AGE)
        if removed:
            self.logger.info(f"Removed {len(removed)} stale model(s) from {models_dir}")
        saved = model.save(
            models_dir / f"{self.algorithm.value}_{datetime.now():%Y%m%d_%H%M%S}.pt"
        )
        self.logger.info(f"Saved model to {saved}")
        return model

    def _predict(self, model, loaded):
        predictions = model.predict(loaded.test)
        _, labels = loaded.test.tensors
        return labels.numpy(), predictions


def prune_stale_models(models_dir: Path, max_age: timedelta = STALE_MODEL_AGE) -> List[Path]:
    """Deletes saved models (files or folders) older than max_age."""
    if not models_dir.exists():
        return []

    cutoff = time.time() - max_age.total_seconds()
    removed = []
    for entry in models_dir.iterdir():
        if entry.stat().st_mtime >= cutoff:
            continue
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed.append(entry)
    return removed
