# packages/ml_core/common/tracker.py

from datetime import datetime
from typing import Callable, Dict

import requests
from mlflow.tracking import MlflowClient
from mlflow.utils.mlflow_tags import MLFLOW_RUN_NAME

from packages.ml_core.common.schemas import Algorithm


def is_tracking_server_running(tracking_uri: str, timeout: float = 5.0) -> bool:
    """
    Lightweight reachability probe. Any failure means 'not running';
    nothing is raised to the caller.
    """
    try:
        response = requests.get(tracking_uri, timeout=timeout)
    except Exception:
        return False
    return response.status_code == 200


class ExperimentTracker:
    """
    Wrapper around the MLflow client.
    Reachability is probed once per run and cached; when the server is down
    every call becomes a no-op returning None.
    """

    def __init__(
        self,
        tracking_uri: str,
        logger,
        client: MlflowClient | None = None,
        probe: Callable[[str], bool] = is_tracking_server_running,
    ):
        self.tracking_uri = tracking_uri
        self.logger = logger

        self.enabled = probe(tracking_uri)
        if self.enabled:
            self.logger.info(f"MLflow tracking server is running at {tracking_uri}")
            self.client = client or MlflowClient(tracking_uri=tracking_uri)
        else:
            self.logger.warning(
                f"⚠️  MLflow Server ({tracking_uri}) unreachable. Tracking is disabled for this run."
            )
            self.client = None

    def get_or_create_experiment(self, name: str) -> str | None:
        if not self.enabled:
            return None

        experiment = self.client.get_experiment_by_name(name)
        if experiment is not None:
            return experiment.experiment_id

        self.logger.info(f"Creating new experiment '{name}'...")
        return self.client.create_experiment(name)

    def start_run(self, experiment_id: str | None) -> str | None:
        if not self.enabled or experiment_id is None:
            return None
        run = self.client.create_run(experiment_id)
        return run.info.run_id

    def log_information(
        self,
        run_id: str | None,
        metrics: Dict[str, float],
        param_key: str,
        param_value: str,
        tag_key: str,
        tag_value: str,
    ) -> None:
        if not self.enabled or run_id is None:
            return
        for key, value in metrics.items():
            self.client.log_metric(run_id, key, value)
        self.client.log_param(run_id, param_key, param_value)
        self.client.set_tag(run_id, tag_key, tag_value)

    def define_run_name(self, run_id: str | None, algorithm: Algorithm) -> str | None:
        if not self.enabled or run_id is None:
            return None
        run_name = f"{algorithm.value}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        self.client.set_tag(run_id, MLFLOW_RUN_NAME, run_name)
        return run_name

    def finish_run(self, run_id: str | None, status: str = "FINISHED") -> None:
        if not self.enabled or run_id is None:
            return
        self.client.set_terminated(run_id, status=status)

    def record(
        self,
        experiment_name: str,
        algorithm: Algorithm,
        metrics: Dict[str, float],
        dataset_tag: str,
    ) -> str | None:
        """Full tracking sequence for one run. Returns the run id (None if disabled)."""
        if not self.enabled:
            self.logger.debug("Skipping MLflow logging; tracking server not reachable.")
            return None

        experiment_id = self.get_or_create_experiment(experiment_name)
        run_id = self.start_run(experiment_id)
        try:
            self.log_information(
                run_id,
                metrics=metrics,
                param_key="algorithm",
                param_value=algorithm.value,
                tag_key="dataset",
                tag_value=dataset_tag,
            )
            self.define_run_name(run_id, algorithm)
        except Exception:
            self.finish_run(run_id, status="FAILED")
            raise

        self.finish_run(run_id)
        self.logger.info(f"✅ MLflow run {run_id} logged.")
        return run_id
