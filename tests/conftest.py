"""
Shared fixtures: a synthetic dataset shaped like the Wisconsin breast cancer
CSV, temporary artifact storage, a SQLite results database and trackers.
"""

from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import polars as pl
import pytest
import pytest_asyncio
from loguru import logger as _logger

from packages.classifier_lib.config import StorageConfig
from packages.database.results import TrainingResultsRepository
from packages.database.session import create_engine
from packages.ml_core.common.schemas import TrainingBlueprint
from packages.ml_core.common.tracker import ExperimentTracker
from packages.ml_core.storage.artifacts import ArtifactCatalog, ArtifactStore

FEATURE_STEMS = [
    "radius", "texture", "perimeter", "area", "smoothness",
    "compactness", "concavity", "concave points", "symmetry", "fractal_dimension",
]
FEATURE_COLUMNS = [
    f"{stem}_{suffix}" for suffix in ("mean", "se", "worst") for stem in FEATURE_STEMS
]


def make_raw_dataset(n_rows: int = 100, seed: int = 0) -> pl.DataFrame:
    """Linearly separable-ish data: malignant rows are shifted upward."""
    rng = np.random.default_rng(seed)
    labels = np.array(["M" if i % 3 == 0 else "B" for i in range(n_rows)])
    shift = np.where(labels == "M", 3.0, 0.0)[:, None]
    features = rng.normal(size=(n_rows, len(FEATURE_COLUMNS))) + shift

    columns = {"id": np.arange(100_000, 100_000 + n_rows), "diagnosis": labels}
    columns.update({name: features[:, i] for i, name in enumerate(FEATURE_COLUMNS)})
    columns["Unnamed: 32"] = [None] * n_rows
    return pl.DataFrame(columns)


@pytest.fixture
def raw_df() -> pl.DataFrame:
    return make_raw_dataset()


@pytest.fixture
def logger():
    return _logger.bind(context="tests")


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(
        ARTIFACT_DATA_DIR=tmp_path / "data",
        TRAINED_MODELS_DIR=tmp_path / "trained_models",
        REMOTE_STORAGE_ENABLED=False,
        STORAGE_CONNECTION_STRING=None,
    )


@pytest.fixture
def catalog(storage_config) -> ArtifactCatalog:
    return ArtifactCatalog(storage_config)


@pytest.fixture
def store(storage_config, logger) -> ArtifactStore:
    return ArtifactStore(storage_config, logger=logger)


@pytest.fixture
def blob_service_client() -> MagicMock:
    return MagicMock(name="BlobServiceClient")


@pytest.fixture
def remote_store(storage_config, logger, blob_service_client) -> ArtifactStore:
    return ArtifactStore(
        storage_config,
        logger=logger,
        blob_service_client=blob_service_client,
        remote_enabled=True,
    )


@pytest.fixture
def raw_csv(catalog, raw_df) -> Path:
    path = catalog.raw_dataset.local_path
    path.parent.mkdir(parents=True, exist_ok=True)
    raw_df.write_csv(path)
    return path


@pytest_asyncio.fixture
async def engine(tmp_path: Path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'results.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def results(engine, logger) -> TrainingResultsRepository:
    return TrainingResultsRepository(engine, logger=logger)


@pytest.fixture
def disabled_tracker(logger) -> ExperimentTracker:
    return ExperimentTracker("http://mlflow.invalid", logger=logger, probe=lambda uri: False)


@pytest.fixture
def fast_blueprint() -> TrainingBlueprint:
    """Small ensembles and few epochs to keep the suite quick."""
    return TrainingBlueprint.model_validate(
        {
            "train": {
                "randomForest": {"nTrees": 10},
                "adaBoost": {"nTrees": 10, "maxDepth": 3},
                "gradientBoosting": {"nTrees": 10, "maxDepth": 3},
                "deepLearningClassifier": {"epochs": 3},
            },
            "preProcessing": {"seed": 42, "testSize": 0.2},
            "preProcessingDL": {"trainSize": 0.8},
        }
    )
