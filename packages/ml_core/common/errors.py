# packages/ml_core/common/errors.py


class TrainingError(Exception):
    """Base class for every error raised by the training system."""


class ConfigurationError(TrainingError):
    """Invalid or unsupported configuration. Raised before any I/O."""


class InvalidAlgorithmError(ConfigurationError):
    def __init__(self, algorithm, pipeline_name: str):
        self.algorithm = algorithm
        self.pipeline_name = pipeline_name
        super().__init__(
            f"Invalid algorithm for {pipeline_name}: {getattr(algorithm, 'value', algorithm)}"
        )


class UnfittedModelError(TrainingError):
    """predict() was called before a successful fit()."""

    def __init__(self, model_name: str):
        super().__init__(f"{model_name} is not fitted yet. Call fit() first.")


class DataValidationError(TrainingError):
    pass


class ArtifactStoreError(TrainingError):
    pass


class ArtifactNotFoundError(ArtifactStoreError):
    pass


class PipelineStageError(TrainingError):
    """Wraps the failure of a single pipeline stage, naming the stage."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {type(cause).__name__}: {cause}")
