# packages/ml_core/training/factory.py

from typing import Dict, List, Type

from packages.database.results import TrainingResultsRepository
from packages.ml_core.common.errors import ConfigurationError
from packages.ml_core.common.schemas import Algorithm, TrainingBlueprint
from packages.ml_core.common.tracker import ExperimentTracker
from packages.ml_core.storage.artifacts import ArtifactCatalog, ArtifactStore
from packages.ml_core.training.pipelines import (
    DeepLearningTrainingPipeline,
    EnsembleTrainingPipeline,
    LogisticRegressionTrainingPipeline,
    TrainingPipeline,
)

PIPELINE_VARIANTS: List[Type[TrainingPipeline]] = [
    EnsembleTrainingPipeline,
    LogisticRegressionTrainingPipeline,
    DeepLearningTrainingPipeline,
]


class PipelineFactory:
    """
    Central Factory for instantiating training pipelines.
    Maps each Algorithm to the one pipeline variant that supports it, and
    injects the shared collaborators (store, sinks, logger).
    """

    def __init__(
        self,
        blueprint: TrainingBlueprint,
        store: ArtifactStore,
        catalog: ArtifactCatalog,
        results: TrainingResultsRepository,
        tracker: ExperimentTracker,
        logger,
        experiment_name: str,
        dataset_tag: str,
    ):
        self.blueprint = blueprint
        self.store = store
        self.catalog = catalog
        self.results = results
        self.tracker = tracker
        self.logger = logger
        self.experiment_name = experiment_name
        self.dataset_tag = dataset_tag

        # --- Registry ---
        self._pipeline_registry: Dict[Algorithm, Type[TrainingPipeline]] = {
            algorithm: variant
            for variant in PIPELINE_VARIANTS
            for algorithm in variant.supported_algorithms
        }

    def pipeline_class_for(self, algorithm: Algorithm) -> Type[TrainingPipeline]:
        pipeline_class = self._pipeline_registry.get(algorithm)
        if not pipeline_class:
            raise ConfigurationError(
                f"No training pipeline for {algorithm}. Available: {[a.value for a in self._pipeline_registry]}"
            )
        return pipeline_class

    def create_pipeline(self, algorithm: Algorithm) -> TrainingPipeline:
        pipeline_class = self.pipeline_class_for(algorithm)
        return pipeline_class(
            blueprint=self.blueprint,
            algorithm=algorithm,
            store=self.store,
            catalog=self.catalog,
            results=self.results,
            tracker=self.tracker,
            logger=self.logger,
            experiment_name=self.experiment_name,
            dataset_tag=self.dataset_tag,
        )
