import argparse
import asyncio
import sys
from functools import partial
from pathlib import Path

from packages.classifier_lib.config import PROJECT_ROOT, settings
from packages.classifier_lib.logging import LogManager
from packages.database.results import TrainingResultsRepository
from packages.database.session import create_engine
from packages.ml_core.common.errors import TrainingError
from packages.ml_core.common.schemas import load_blueprint
from packages.ml_core.common.tracker import ExperimentTracker, is_tracking_server_running
from packages.ml_core.storage.artifacts import ArtifactCatalog, ArtifactStore
from packages.ml_core.training.factory import PipelineFactory

DEFAULT_CONFIG = PROJECT_ROOT / "configs" / "training.yml"


async def main(config_path: Path) -> int:
    # 1. Load Blueprint
    blueprint = load_blueprint(config_path)

    # 2. Setup Logger
    log_manager = LogManager(service_name="model_trainer", debug=settings.system.debug)
    logger = log_manager.get_logger("trainer")

    # 3. Resolve algorithms before touching disk, network or database
    algorithms = blueprint.train.selected_algorithms()
    logger.info(f"Algorithms to train: {[a.value for a in algorithms]}")

    # 4. Shared collaborators
    store = ArtifactStore(
        settings.storage,
        logger=log_manager.get_logger("artifacts"),
        remote_enabled=settings.storage.remote_enabled and blueprint.cloud_provider.azure,
    )
    engine = create_engine(settings.db.URL)
    results = TrainingResultsRepository(engine, logger=log_manager.get_logger("results"))
    tracker = ExperimentTracker(
        settings.mlflow.tracking_uri,
        logger=log_manager.get_logger("tracker"),
        probe=partial(is_tracking_server_running, timeout=settings.mlflow.probe_timeout),
    )

    factory = PipelineFactory(
        blueprint=blueprint,
        store=store,
        catalog=ArtifactCatalog(settings.storage),
        results=results,
        tracker=tracker,
        logger=logger,
        experiment_name=settings.mlflow.experiment_name,
        dataset_tag=settings.system.dataset_tag,
    )

    # Every pipeline validates its algorithm on construction
    pipelines = [factory.create_pipeline(a) for a in algorithms]

    # 5. Run
    try:
        for pipeline in pipelines:
            await pipeline.execute()
    finally:
        await engine.dispose()
    return 0


def cli(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Breast cancer classifier training")
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        default=DEFAULT_CONFIG,
        help="Path to the training .yml blueprint.",
    )
    args = parser.parse_args(argv)

    if not args.config.exists():
        print(f"❌ Error: Config file not found at {args.config}")
        return 1

    try:
        return asyncio.run(main(args.config))
    except TrainingError as e:
        print(f"❌ Training aborted: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(cli())
