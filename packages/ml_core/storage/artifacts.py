# packages/ml_core/storage/artifacts.py

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

import polars as pl
from azure.storage.blob import BlobServiceClient

from packages.classifier_lib.config import StorageConfig
from packages.ml_core.common.errors import ArtifactNotFoundError, ArtifactStoreError


@dataclass(frozen=True)
class Artifact:
    """A dataset materialized locally and mirrored remotely under container/file_name."""

    local_path: Path
    container_name: str
    file_name: str


class ArtifactCatalog:
    """Fixed names for every artifact a pipeline run produces."""

    RAW_FILE_NAME = "breast_cancer.csv"
    PREPROCESSED_FILE_NAME = "preprocessed_breast_cancer.csv"
    TRAIN_FILE_NAME = "preprocessed_train.csv"
    TEST_FILE_NAME = "preprocessed_test.csv"
    Y_TEST_FILE_NAME = "preprocessed_y_test.csv"
    X_DATA_FILE_NAME = "preprocessed_x_data.csv"
    Y_DATA_FILE_NAME = "preprocessed_y_data.csv"

    def __init__(self, config: StorageConfig):
        self.config = config
        self.raw_dir = Path(config.data_dir) / "raw"
        self.processed_dir = Path(config.data_dir) / "processed"

    def _processed(self, file_name: str) -> Artifact:
        return Artifact(
            self.processed_dir / file_name, self.config.processed_container, file_name
        )

    @property
    def raw_dataset(self) -> Artifact:
        return Artifact(
            self.raw_dir / self.RAW_FILE_NAME, self.config.raw_container, self.RAW_FILE_NAME
        )

    @property
    def preprocessed_dataset(self) -> Artifact:
        return self._processed(self.PREPROCESSED_FILE_NAME)

    @property
    def train_dataset(self) -> Artifact:
        return self._processed(self.TRAIN_FILE_NAME)

    @property
    def test_dataset(self) -> Artifact:
        return self._processed(self.TEST_FILE_NAME)

    @property
    def y_test_data(self) -> Artifact:
        return self._processed(self.Y_TEST_FILE_NAME)

    @property
    def x_data(self) -> Artifact:
        return self._processed(self.X_DATA_FILE_NAME)

    @property
    def y_data(self) -> Artifact:
        return self._processed(self.Y_DATA_FILE_NAME)


class ArtifactStore:
    """
    Write-through cache for pipeline datasets.
    Every artifact is written to local disk, then mirrored to blob storage.
    Later stages re-read from local disk so a run can restart from any stage.
    """

    def __init__(
        self,
        config: StorageConfig,
        logger,
        blob_service_client: BlobServiceClient | None = None,
        remote_enabled: bool | None = None,
    ):
        self.config = config
        self.logger = logger
        self._blob_service_client = blob_service_client
        self.remote_enabled = (
            config.remote_enabled if remote_enabled is None else remote_enabled
        )

    @property
    def blob_service_client(self) -> BlobServiceClient:
        if self._blob_service_client is None:
            if self.config.connection_string is None:
                raise ArtifactStoreError(
                    "STORAGE_CONNECTION_STRING is not set; cannot reach blob storage."
                )
            self._blob_service_client = BlobServiceClient.from_connection_string(
                self.config.connection_string.get_secret_value()
            )
        return self._blob_service_client

    # --- Local ---

    @staticmethod
    def _write_csv(df: pl.DataFrame, local_path: Path) -> Path:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        # Full replace: write_csv truncates any existing file
        df.write_csv(local_path)
        return local_path

    async def store(self, df: pl.DataFrame, local_path: Path) -> Path:
        await asyncio.to_thread(self._write_csv, df, Path(local_path))
        self.logger.debug(f"Stored {df.height} rows -> {local_path}")
        return Path(local_path)

    async def read(self, local_path: Path) -> pl.DataFrame:
        local_path = Path(local_path)
        if not local_path.exists():
            raise ArtifactNotFoundError(f"Local artifact missing: {local_path}")
        return await asyncio.to_thread(pl.read_csv, local_path)

    # --- Remote ---

    def _upload_blob(self, local_path: Path, container_name: str, file_name: str):
        blob_client = self.blob_service_client.get_blob_client(
            container=container_name, blob=file_name
        )
        with open(local_path, "rb") as data:
            blob_client.upload_blob(data, overwrite=True)

    def _download_blob(self, container_name: str, file_name: str, local_path: Path):
        blob_client = self.blob_service_client.get_blob_client(
            container=container_name, blob=file_name
        )
        payload = blob_client.download_blob().readall()

        # A partial file at local_path would later pass as a cache hit
        local_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = local_path.with_name(f"{local_path.name}.part")
        try:
            with open(partial_path, "wb") as f:
                f.write(payload)
            os.replace(partial_path, local_path)
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

    async def upload(self, local_path: Path, container_name: str, file_name: str) -> bool:
        """Mirrors a local file to blob storage, replacing any previous blob."""
        if not self.remote_enabled:
            self.logger.debug(f"Remote storage disabled; skipping upload of {file_name}")
            return False

        await asyncio.to_thread(
            self._upload_blob, Path(local_path), container_name, file_name
        )
        self.logger.info(f"Uploaded {local_path} -> {container_name}/{file_name}")
        return True

    async def download(self, container_name: str, file_name: str, local_path: Path):
        await asyncio.to_thread(
            self._download_blob, container_name, file_name, Path(local_path)
        )
        self.logger.info(f"Downloaded {container_name}/{file_name} -> {local_path}")

    async def ensure_local(self, artifact: Artifact) -> bool:
        """
        Fetches the artifact only if it is not already on disk.
        Returns True if a download happened.
        """
        if artifact.local_path.exists():
            self.logger.info(f"⚡ Cache Hit! Using local {artifact.local_path.name}")
            return False

        if not self.remote_enabled:
            raise ArtifactNotFoundError(
                f"{artifact.local_path} is missing and remote storage is disabled."
            )

        self.logger.info(f"Downloading {artifact.file_name} from Blob...")
        await self.download(artifact.container_name, artifact.file_name, artifact.local_path)
        return True

    # --- Fan-out ---

    async def store_all(self, items: Iterable[Tuple[pl.DataFrame, Artifact]]) -> List[Path]:
        """Writes every frame concurrently; the first failure fails the batch."""
        tasks = [
            asyncio.create_task(self.store(df, artifact.local_path))
            for df, artifact in items
        ]
        return await self._join(tasks)

    async def upload_all(self, artifacts: Iterable[Artifact]) -> List[bool]:
        tasks = [
            asyncio.create_task(
                self.upload(a.local_path, a.container_name, a.file_name)
            )
            for a in artifacts
        ]
        return await self._join(tasks)

    @staticmethod
    async def _join(tasks: List[asyncio.Task]) -> list:
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # Let the cancelled siblings settle before re-raising
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
