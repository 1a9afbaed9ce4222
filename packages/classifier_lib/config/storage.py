# packages/classifier_lib/config/storage.py

from pathlib import Path
from pydantic import Field, SecretStr
from .base import EnvConfig, PROJECT_ROOT


class StorageConfig(EnvConfig):
    """
    Object storage credentials and the local artifact layout.
    Passed explicitly into the ArtifactStore; nothing else reads these env vars.
    """

    connection_string: SecretStr | None = Field(
        validation_alias="STORAGE_CONNECTION_STRING", default=None
    )
    raw_container: str = Field(
        validation_alias="RAW_DATA_BLOB_CONTAINER_NAME", default="raw-data"
    )
    processed_container: str = Field(
        validation_alias="PROCESSED_DATA_BLOB_CONTAINER_NAME",
        default="processed-data",
    )

    # Local mirror of every artifact
    data_dir: Path = Field(
        validation_alias="ARTIFACT_DATA_DIR", default=PROJECT_ROOT / "data"
    )
    models_dir: Path = Field(
        validation_alias="TRAINED_MODELS_DIR", default=PROJECT_ROOT / "trained_models"
    )

    # When False, uploads are skipped and the raw dataset must already be local
    remote_enabled: bool = Field(validation_alias="REMOTE_STORAGE_ENABLED", default=True)
