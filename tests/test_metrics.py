import numpy as np
import pytest

from packages.ml_core.evaluation.metrics import (
    accuracy,
    compute_metrics,
    f1_score,
    precision,
    recall,
    round_metric,
)


class TestMetricFunctions:
    def test_perfect_predictions_score_one(self):
        y = [1, 0, 1, 1, 0]
        assert compute_metrics(y, y) == {
            "accuracy": 1.0,
            "precision": 1.0,
            "recall": 1.0,
            "f1Score": 1.0,
        }

    def test_known_confusion_matrix(self):
        # TP=1, FN=1, FP=1, TN=1
        y_true = [1, 1, 0, 0]
        y_pred = [1, 0, 1, 0]
        assert accuracy(y_true, y_pred) == pytest.approx(0.5)
        assert precision(y_true, y_pred) == pytest.approx(0.5)
        assert recall(y_true, y_pred) == pytest.approx(0.5)
        assert f1_score(y_true, y_pred) == pytest.approx(0.5)

    def test_precision_and_recall_differ(self):
        # TP=2, FP=2, FN=0
        y_true = [1, 1, 0, 0]
        y_pred = [1, 1, 1, 1]
        assert precision(y_true, y_pred) == pytest.approx(0.5)
        assert recall(y_true, y_pred) == pytest.approx(1.0)
        assert f1_score(y_true, y_pred) == pytest.approx(2 / 3)

    def test_no_predicted_positives_does_not_raise(self):
        y_true = [1, 0, 1]
        y_pred = [0, 0, 0]
        assert precision(y_true, y_pred) == 0.0
        assert recall(y_true, y_pred) == 0.0
        assert f1_score(y_true, y_pred) == 0.0

    def test_no_positives_at_all(self):
        y = [0, 0, 0]
        assert accuracy(y, y) == 1.0
        assert precision(y, y) == 0.0
        assert recall(y, y) == 0.0

    def test_empty_sequences_score_zero(self):
        assert compute_metrics([], []) == {
            "accuracy": 0.0,
            "precision": 0.0,
            "recall": 0.0,
            "f1Score": 0.0,
        }

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            accuracy([0, 1], [0])

    @pytest.mark.parametrize("seed", range(20))
    def test_metrics_bounded_and_accuracy_one_iff_equal(self, seed):
        rng = np.random.default_rng(seed)
        y_true = rng.integers(0, 2, size=25)
        y_pred = y_true.copy()
        if seed % 2:
            y_pred[rng.integers(0, 25)] ^= 1

        metrics = compute_metrics(y_true, y_pred)
        assert all(0.0 <= v <= 1.0 for v in metrics.values())
        assert (metrics["accuracy"] == 1.0) == bool((y_true == y_pred).all())

    def test_accepts_numpy_arrays(self):
        assert accuracy(np.array([1, 0]), np.array([1, 0])) == 1.0


class TestRoundMetric:
    def test_rounds_to_four_places(self):
        assert round_metric(0.123456) == 0.1235

    def test_none_becomes_zero(self):
        assert round_metric(None) == 0.0
