# packages/database/models.py

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import declarative_base


# This is the base class which our model classes will inherit.
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrainingResult(Base):
    """
    One row per pipeline run. Append-only: runs are never updated in place.
    New metric columns may be added here; update_table_structure() adds them
    to existing databases without touching stored rows.
    """

    __tablename__ = "training_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    algorithm_name = Column(String(64), nullable=False)

    accuracy = Column(Float)
    precision = Column(Float)
    recall = Column(Float)
    f1_score = Column(Float)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_training_results_algorithm_time", "algorithm_name", "created_at"),
    )


# Metric keys as produced by the pipelines -> column attributes
METRIC_COLUMNS = {
    "accuracy": "accuracy",
    "precision": "precision",
    "recall": "recall",
    "f1Score": "f1_score",
}
