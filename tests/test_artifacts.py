from pathlib import Path
from unittest.mock import MagicMock

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from packages.ml_core.common.errors import ArtifactNotFoundError, ArtifactStoreError
from packages.ml_core.storage.artifacts import Artifact, ArtifactStore


@pytest.fixture
def small_df() -> pl.DataFrame:
    return pl.DataFrame({"radius_mean": [1.5, 2.25, 3.0], "diagnosis": [1, 0, 1]})


class TestArtifactCatalog:
    def test_processed_artifacts_share_container(self, catalog, storage_config):
        for artifact in (catalog.train_dataset, catalog.test_dataset, catalog.x_data):
            assert artifact.container_name == storage_config.processed_container
            assert artifact.local_path.name == artifact.file_name

    def test_raw_dataset_lives_in_raw_container(self, catalog, storage_config):
        raw = catalog.raw_dataset
        assert raw.container_name == storage_config.raw_container
        assert raw.local_path.parent.name == "raw"


class TestLocalStorage:
    async def test_store_then_read_round_trips(self, store, small_df, tmp_path):
        path = tmp_path / "nested" / "frame.csv"
        await store.store(small_df, path)

        assert_frame_equal(await store.read(path), small_df)

    async def test_store_is_byte_stable(self, store, small_df, tmp_path):
        path = tmp_path / "frame.csv"
        await store.store(small_df, path)
        first = path.read_bytes()
        await store.store(await store.read(path), path)
        assert path.read_bytes() == first

    async def test_store_replaces_existing_file(self, store, small_df, tmp_path):
        path = tmp_path / "frame.csv"
        await store.store(small_df, path)
        await store.store(small_df.head(1), path)

        assert (await store.read(path)).height == 1

    async def test_read_missing_file(self, store, tmp_path):
        with pytest.raises(ArtifactNotFoundError):
            await store.read(tmp_path / "absent.csv")


class TestRemoteStorage:
    async def test_download_skipped_when_local_exists(
        self, remote_store, blob_service_client, catalog, raw_csv
    ):
        downloaded = await remote_store.ensure_local(catalog.raw_dataset)

        assert downloaded is False
        blob_service_client.get_blob_client.assert_not_called()

    async def test_download_when_missing(self, remote_store, blob_service_client, catalog):
        blob_client = blob_service_client.get_blob_client.return_value
        blob_client.download_blob.return_value.readall.return_value = b"diagnosis\nM\n"

        downloaded = await remote_store.ensure_local(catalog.raw_dataset)

        assert downloaded is True
        blob_service_client.get_blob_client.assert_called_once_with(
            container=catalog.raw_dataset.container_name,
            blob=catalog.raw_dataset.file_name,
        )
        assert catalog.raw_dataset.local_path.read_bytes() == b"diagnosis\nM\n"

    async def test_failed_download_leaves_no_cached_file(
        self, remote_store, blob_service_client, catalog
    ):
        blob_client = blob_service_client.get_blob_client.return_value
        blob_client.download_blob.side_effect = ConnectionError("connection reset")

        with pytest.raises(ConnectionError):
            await remote_store.ensure_local(catalog.raw_dataset)

        assert not catalog.raw_dataset.local_path.exists()
        assert list(catalog.raw_dir.glob("*")) == []

        # The next run must retry instead of treating a stub file as cached
        blob_client.download_blob.side_effect = None
        blob_client.download_blob.return_value.readall.return_value = b"diagnosis\nB\n"

        assert await remote_store.ensure_local(catalog.raw_dataset) is True
        assert catalog.raw_dataset.local_path.read_bytes() == b"diagnosis\nB\n"

    async def test_missing_raw_with_remote_disabled(self, store, catalog):
        with pytest.raises(ArtifactNotFoundError):
            await store.ensure_local(catalog.raw_dataset)

    async def test_upload_overwrites_blob(self, remote_store, blob_service_client, tmp_path):
        path = tmp_path / "train.csv"
        path.write_text("a\n1\n")

        assert await remote_store.upload(path, "processed-data", "train.csv") is True

        blob_service_client.get_blob_client.assert_called_once_with(
            container="processed-data", blob="train.csv"
        )
        blob_client = blob_service_client.get_blob_client.return_value
        _, kwargs = blob_client.upload_blob.call_args
        assert kwargs["overwrite"] is True

    async def test_upload_is_noop_when_remote_disabled(self, storage_config, logger, tmp_path):
        client = MagicMock()
        store = ArtifactStore(storage_config, logger=logger, blob_service_client=client)
        path = tmp_path / "train.csv"
        path.write_text("a\n1\n")

        assert await store.upload(path, "processed-data", "train.csv") is False
        client.get_blob_client.assert_not_called()

    async def test_missing_connection_string(self, storage_config, logger, tmp_path):
        store = ArtifactStore(storage_config, logger=logger, remote_enabled=True)
        path = tmp_path / "train.csv"
        path.write_text("a\n1\n")

        with pytest.raises(ArtifactStoreError, match="STORAGE_CONNECTION_STRING"):
            await store.upload(path, "processed-data", "train.csv")


class TestFanOut:
    async def test_store_all_writes_every_artifact(self, store, small_df, tmp_path):
        artifacts = [
            Artifact(tmp_path / f"{name}.csv", "processed-data", f"{name}.csv")
            for name in ("a", "b", "c")
        ]
        paths = await store.store_all((small_df, a) for a in artifacts)

        assert paths == [a.local_path for a in artifacts]
        assert all(a.local_path.exists() for a in artifacts)

    async def test_store_all_fails_the_batch(self, store, small_df, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        artifacts = [
            Artifact(tmp_path / "ok.csv", "c", "ok.csv"),
            Artifact(blocker / "bad.csv", "c", "bad.csv"),
        ]

        with pytest.raises(OSError):
            await store.store_all((small_df, a) for a in artifacts)

    async def test_upload_all_fails_the_batch(
        self, remote_store, blob_service_client, tmp_path
    ):
        good, bad = MagicMock(), MagicMock()
        bad.upload_blob.side_effect = RuntimeError("network down")
        blob_service_client.get_blob_client.side_effect = (
            lambda container, blob: bad if blob == "bad.csv" else good
        )
        artifacts = []
        for name in ("good.csv", "bad.csv"):
            (tmp_path / name).write_text("a\n1\n")
            artifacts.append(Artifact(tmp_path / name, "processed-data", name))

        with pytest.raises(RuntimeError, match="network down"):
            await remote_store.upload_all(artifacts)
