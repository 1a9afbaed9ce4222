from pydantic import Field
from .base import EnvConfig


class MLflowConfig(EnvConfig):
    # Tracking Server Connection (For Clients)
    tracking_uri: str = Field(
        validation_alias="MLFLOW_TRACKING_URI", default="http://localhost:5000"
    )
    experiment_name: str = Field(
        validation_alias="MLFLOW_EXPERIMENT_NAME",
        default="breast_cancer_classification",
    )

    # Seconds to wait for the reachability probe
    probe_timeout: float = Field(validation_alias="MLFLOW_PROBE_TIMEOUT", default=5.0)
