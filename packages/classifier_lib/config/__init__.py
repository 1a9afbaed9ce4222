# packages/classifier_lib/config/__init__.py

from pydantic_settings import BaseSettings


# Import sub-configs
from .base import PROJECT_ROOT
from .database import DatabaseConfig
from .mlflow import MLflowConfig
from .storage import StorageConfig
from .system import SystemConfig

__all__ = [
    "PROJECT_ROOT",
    "DatabaseConfig",
    "MLflowConfig",
    "StorageConfig",
    "SystemConfig",
    "Settings",
    "settings",
]


class Settings(BaseSettings):
    # Composition: Grouping configs by domain
    db: DatabaseConfig = DatabaseConfig()
    mlflow: MLflowConfig = MLflowConfig()
    storage: StorageConfig = StorageConfig()
    system: SystemConfig = SystemConfig()


# Singleton Instance
try:
    settings = Settings()
except Exception as e:
    print(f"CRITICAL: Config load failed. Details: {e}")
    raise e
