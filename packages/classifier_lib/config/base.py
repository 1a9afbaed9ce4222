# packages/classifier_lib/config/base.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

# <root>/packages/classifier_lib/config/base.py
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class EnvConfig(BaseSettings):
    """
    Shared settings behaviour: values come from the process environment first,
    then <root>/.env. Variable names are matched exactly and unknown ones ignored,
    so every sub-config can read the same file.
    """

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )
