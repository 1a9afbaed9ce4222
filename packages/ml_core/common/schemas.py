# packages/ml_core/common/schemas.py

from enum import Enum
from pathlib import Path
from typing import Dict, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from packages.ml_core.common.errors import ConfigurationError


class Algorithm(str, Enum):
    DECISION_TREE = "decisionTree"
    RANDOM_FOREST = "randomForest"
    ADA_BOOST = "adaBoost"
    GRADIENT_BOOSTING = "gradientBoosting"
    LOGISTIC_REGRESSION = "logisticRegression"
    DEEP_LEARNING_CLASSIFIER = "deepLearningClassifier"


class SplitRule(str, Enum):
    GINI = "GINI"
    ENTROPY = "ENTROPY"


class FrozenConfig(BaseModel):
    # camelCase keys in YAML, snake_case attributes in Python
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DecisionTreeConfig(FrozenConfig):
    split_rule: SplitRule = Field(default=SplitRule.GINI, alias="splitRule")
    max_depth: int = Field(default=20, alias="maxDepth", ge=0)
    max_nodes: int = Field(default=0, alias="maxNodes", ge=0)  # 0 = unbounded
    node_size: int = Field(default=5, alias="nodeSize", ge=1)


class RandomForestConfig(FrozenConfig):
    n_trees: int = Field(default=500, alias="nTrees", ge=1)
    mtry: int = Field(default=0, ge=0)  # 0 = sqrt(n_features)
    split_rule: SplitRule = Field(default=SplitRule.GINI, alias="splitRule")
    max_depth: int = Field(default=20, alias="maxDepth", ge=0)
    max_nodes: int = Field(default=500, alias="maxNodes", ge=0)
    node_size: int = Field(default=1, alias="nodeSize", ge=1)
    subsample: float = Field(default=1.0, gt=0.0, le=1.0)
    class_weight: List[int] | None = Field(default=None, alias="classWeight")
    seeds: List[int] | None = None


class AdaBoostConfig(FrozenConfig):
    n_trees: int = Field(default=500, alias="nTrees", ge=1)
    max_depth: int = Field(default=50, alias="maxDepth", ge=0)
    max_nodes: int = Field(default=10, alias="maxNodes", ge=0)
    node_size: int = Field(default=2, alias="nodeSize", ge=1)


class GradientBoostingConfig(FrozenConfig):
    n_trees: int = Field(default=500, alias="nTrees", ge=1)
    max_depth: int = Field(default=20, alias="maxDepth", ge=0)
    max_nodes: int = Field(default=6, alias="maxNodes", ge=0)
    node_size: int = Field(default=1, alias="nodeSize", ge=1)
    shrinkage: float = Field(default=0.05, gt=0.0)
    subsample: float = Field(default=0.7, gt=0.0, le=1.0)


class LogisticRegressionConfig(FrozenConfig):
    # 'lambda' is a Python keyword, so only the alias carries that name
    penalty: float = Field(default=0.0, alias="lambda", ge=0.0)
    tol: float = Field(default=1e-5, gt=0.0)
    max_iter: int = Field(default=500, alias="maxIter", ge=1)


class NeuralNetworkConfig(FrozenConfig):
    kernel_initializer_seed: int = Field(default=12, alias="kernelInitializerSeed")
    epochs: int = Field(default=50, ge=1)
    train_batch_size: int = Field(default=32, alias="trainBatchSize", ge=1)
    test_batch_size: int = Field(default=32, alias="testBatchSize", ge=1)


class TrainConfig(FrozenConfig):
    algorithms: List[str] = Field(default_factory=lambda: [Algorithm.RANDOM_FOREST.value])
    decision_tree: DecisionTreeConfig = Field(
        default_factory=DecisionTreeConfig, alias="decisionTree"
    )
    random_forest: RandomForestConfig = Field(
        default_factory=RandomForestConfig, alias="randomForest"
    )
    ada_boost: AdaBoostConfig = Field(default_factory=AdaBoostConfig, alias="adaBoost")
    gradient_boosting: GradientBoostingConfig = Field(
        default_factory=GradientBoostingConfig, alias="gradientBoosting"
    )
    logistic_regression: LogisticRegressionConfig = Field(
        default_factory=LogisticRegressionConfig, alias="logisticRegression"
    )
    deep_learning_classifier: NeuralNetworkConfig = Field(
        default_factory=NeuralNetworkConfig, alias="deepLearningClassifier"
    )

    def selected_algorithms(self) -> List[Algorithm]:
        """Resolves the configured names, failing on the first unknown one."""
        selected = []
        for name in self.algorithms:
            try:
                selected.append(Algorithm(name))
            except ValueError:
                valid = [a.value for a in Algorithm]
                raise ConfigurationError(
                    f"Unknown algorithm '{name}'. Available: {valid}"
                ) from None
        return selected


class PreProcessingConfig(FrozenConfig):
    seed: int = 42
    test_size: float = Field(default=0.2, alias="testSize", ge=0.0, le=1.0)


class PreProcessingDLConfig(FrozenConfig):
    train_size: float = Field(default=0.8, alias="trainSize", ge=0.0, le=1.0)


class CloudProviderConfig(FrozenConfig):
    azure: bool = False
    aws: bool = False

    @model_validator(mode="after")
    def _only_azure(self):
        if self.aws:
            raise ValueError("AWS object storage is not supported; use azure")
        return self


class TrainingBlueprint(FrozenConfig):
    train: TrainConfig = Field(default_factory=TrainConfig)
    pre_processing: PreProcessingConfig = Field(
        default_factory=PreProcessingConfig, alias="preProcessing"
    )
    pre_processing_dl: PreProcessingDLConfig = Field(
        default_factory=PreProcessingDLConfig, alias="preProcessingDL"
    )
    cloud_provider: CloudProviderConfig = Field(
        default_factory=CloudProviderConfig, alias="cloudProvider"
    )


def load_blueprint(config_path: Path) -> TrainingBlueprint:
    """Reads a YAML training blueprint, wrapping validation failures."""
    with open(config_path, "r") as f:
        config_dict: Dict = yaml.safe_load(f) or {}
    try:
        return TrainingBlueprint.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid training config {config_path}:\n{e}") from e
