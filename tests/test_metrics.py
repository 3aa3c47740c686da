import numpy as np
import pytest

from hipdrift.diagnostics import (chance_similarity, min_pairwise_difference,
                                  pairwise_difference_matrix, similarity_profile)
from hipdrift.metrics import (learning_curve, mean_test_accuracy, recall_accuracy, sem,
                              summarise_condition, summary_rows, sweep_scalar_metric_array)


@pytest.fixture
def results():
    return {"train_hits": np.array([[0.0, 0.5, 1.0], [0.5, np.nan, 1.0]]),
            "test_hits": {"TestAB_ri0": np.array([1.0, 0.0]),
                          "TestAB_ri4": np.array([0.5, np.nan])}}


class TestMetrics:
    def test_learning_curve(self, results):
        np.testing.assert_allclose(learning_curve(results["train_hits"]), [0.25, 0.5, 1.0])
        assert learning_curve([]).size == 0

    def test_recall_accuracy_and_sem(self):
        assert recall_accuracy([1.0, 0.0, np.nan]) == 0.5
        assert np.isnan(recall_accuracy([]))
        assert sem([1.0, 0.0]) == pytest.approx(0.5)
        assert np.isnan(sem([1.0]))

    def test_summaries(self, results):
        summary = summarise_condition(results)
        assert summary["TestAB_ri0"] == {"mean": 0.5, "sem": pytest.approx(0.5), "n_runs": 2}
        assert summary["TestAB_ri4"]["n_runs"] == 1
        rows = summary_rows({"no_drift": results})
        assert [r["TestSet"] for r in rows] == ["TestAB_ri0", "TestAB_ri4"]
        assert rows[0]["MeanHit"] == "0.5"
        assert mean_test_accuracy(results) == 0.5

    def test_sweep_alignment(self, results):
        sweep = {0.1: results, 0.5: {"test_hits": {"T": np.array([1.0])}}}
        y = sweep_scalar_metric_array(sweep, [0.1, 0.5], mean_test_accuracy)
        np.testing.assert_allclose(y, [0.5, 1.0])
        with pytest.raises(KeyError):
            sweep_scalar_metric_array(sweep, [0.3], mean_test_accuracy)

    def test_sweep_alignment_list_and_string_keys(self, results):
        sweep = {(0, 1): results, "AB": {"test_hits": {"T": np.array([0.0])}}}
        y = sweep_scalar_metric_array(sweep, [[0, 1], "AB"], mean_test_accuracy)
        np.testing.assert_allclose(y, [0.5, 0.0])
        with pytest.raises(KeyError):
            sweep_scalar_metric_array(sweep, [[1, 0]], mean_test_accuracy)


class TestDiagnostics:
    def test_profile_of_identical_vectors(self):
        v = np.zeros(10)
        v[:3] = 1
        lags, mean = similarity_profile([[v, v, v]], 3)
        np.testing.assert_array_equal(lags, [0, 1, 2, 3])
        np.testing.assert_allclose(mean[:3], 1.0)
        assert np.isnan(mean[3])

    def test_pairwise(self):
        a = np.array([1, 1, 0, 0])
        b = np.array([0, 1, 1, 0])
        c = np.array([0, 0, 1, 1])
        D = pairwise_difference_matrix([a, b, c])
        assert D[0, 1] == 1 and D[0, 2] == 2 and D[2, 0] == 2
        assert min_pairwise_difference([a, b, c]) == 1
        assert min_pairwise_difference([a]) is None
        assert chance_similarity(49, 10) == pytest.approx(10 / 49)
