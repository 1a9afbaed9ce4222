from pydantic import Field
from .base import EnvConfig


class SystemConfig(EnvConfig):
    debug: bool = Field(validation_alias="DEBUG", default=False)

    # Tag logged against every tracking run
    dataset_tag: str = Field(validation_alias="DATASET_TAG", default="breast_cancer")
