import threading

import numpy as np
import pytest

from hipdrift.config import get_condition
from hipdrift.engine import HippocampusEngine
from hipdrift.errors import ConfigurationError
from hipdrift.logs import read_tsv
from hipdrift.simulation import build_condition, prepare_run, run_experiment
from hipdrift.trial import TrialController


class TestNoDriftScenario:
    def test_studied_pair_is_recalled(self, single_pair, one_pair_config, rng):
        """Four study epochs in a fixed context, then one cued test trial."""
        pattern = single_pair["pattern"]
        engine = HippocampusEngine(pattern.layout.size, rng=rng)
        controller = TrialController(engine, one_pair_config)
        controller.check_engine(pattern.layout)

        for _ in range(4):
            controller.run_trial(pattern, train=True)
        assert engine.n_updates == 4

        stats = controller.run_trial(pattern, train=False)
        assert stats.memory_hit == 1
        assert stats.miss_rate < one_pair_config.hit_thresh_test
        assert stats.false_alarm_rate < one_pair_config.hit_thresh_test

    def test_run_experiment_recalls(self, table, one_pair_config):
        results = run_experiment(get_condition(table, "no_drift"), one_pair_config,
                                 n_epochs=4, n_runs=1)
        assert results["test_hits"]["TestAB_ri0"][0] == 1.0
        assert results["train_hits"].shape == (1, 4)
        assert not results["stopped"]

    def test_default_list_is_learned(self, table, config):
        """Every pair of the default list shares one context and must still be recalled."""
        results = run_experiment(get_condition(table, "no_drift"), config, n_epochs=4)
        assert config.n_pairs == 4
        assert results["test_hits"]["TestAB_ri0"][0] == 1.0


class TestBuildCondition:
    def test_no_drift_sets(self, table, config, rng):
        data = build_condition(get_condition(table, "no_drift"), config, 4, rng)
        assert set(data.pattern_sets) == {"TrainAB", "TestAB_ri0"}
        assert data.schedule.n_epochs == 4
        assert data.test_set_names == ("TestAB_ri0",)
        assert len(data.pattern_sets["TrainAB"]) == config.n_pairs

    def test_drifting_epochs_get_own_sets(self, table, config, rng):
        cond = get_condition(table, "slow_drift")
        data = build_condition(cond, config, 4, rng)
        epochs = data.schedule.resolve(data.pattern_sets)
        assert [ps.name for ps in epochs] == [f"TrainAB_e{e}" for e in range(4)]
        assert data.test_set_names == tuple(f"TestAB_ri{ri}" for ri in cond.retention_intervals)

    def test_zero_interval_test_shares_last_study_context(self, table, config, rng):
        data = build_condition(get_condition(table, "slow_drift"), config, 4, rng)
        last = data.pattern_sets["TrainAB_e3"][0].slot_value("ctx0")
        test0 = data.pattern_sets["TestAB_ri0"][0].slot_value("ctx0")
        np.testing.assert_array_equal(last, test0)

    def test_retention_beyond_study_continues_chain(self, table, config, rng):
        data = build_condition(get_condition(table, "slow_drift"), config, 4, rng)
        # ri=1 sits one step past the last AB context, i.e. the first derived element
        ctx = data.pattern_sets["TestAB_ri1"][0].slot_value("ctx0")
        np.testing.assert_array_equal(ctx, data.derived_chains[0][0])
        assert int(np.count_nonzero(ctx)) == config.n_active

    def test_ab_ac_lists_share_cues(self, table, config, rng):
        cond = get_condition(table, "ab_ac_new_context")
        data = build_condition(cond, config, 2, rng)
        assert data.schedule.n_epochs == 2 + cond.ac_epochs
        assert "TrainAC" in data.pattern_sets
        assert any(n.startswith("TestAC_") for n in data.test_set_names)
        ab = data.pattern_sets["TrainAB"][0]
        ac = data.pattern_sets["TrainAC"][0]
        np.testing.assert_array_equal(ab.slot_value("A"), ac.slot_value("A"))
        assert not np.array_equal(ab.slot_value("B"), ac.slot_value("B"))

    def test_zero_epochs_rejected(self, table, config, rng):
        with pytest.raises(ConfigurationError):
            build_condition(get_condition(table, "no_drift"), config, 0, rng)


class TestRunExperiment:
    def test_deterministic_for_seed(self, table, one_pair_config):
        cond = get_condition(table, "fast_drift")
        a = run_experiment(cond, one_pair_config, n_epochs=2, n_runs=2)
        b = run_experiment(cond, one_pair_config, n_epochs=2, n_runs=2)
        np.testing.assert_array_equal(a["train_sse"], b["train_sse"])
        for name in a["test_hits"]:
            np.testing.assert_array_equal(a["test_hits"][name], b["test_hits"][name])

    def test_stop_before_start(self, table, one_pair_config):
        stop = threading.Event()
        stop.set()
        results = run_experiment(get_condition(table, "no_drift"), one_pair_config,
                                 n_epochs=2, n_runs=3, stop=stop)
        assert results["stopped"]
        assert results["records"] == []

    def test_stop_at_trial_boundary(self, table, config):
        seen = []
        results = run_experiment(get_condition(table, "no_drift"), config, n_epochs=2,
                                 stop=lambda: len(seen) >= 3, on_trial=seen.append)
        assert results["stopped"]
        assert len(results["records"]) == 3
        assert seen == results["records"]

    def test_trial_log_and_weights(self, table, one_pair_config, tmp_path):
        log_path = tmp_path / "logs" / "trials.tsv"
        results = run_experiment(get_condition(table, "no_drift"), one_pair_config,
                                 n_epochs=2, log_path=log_path,
                                 weights_dir=tmp_path / "weights")
        rows = read_tsv(log_path)
        assert len(rows) == len(results["records"])
        assert {"RunId", "Mode", "MemoryHit", "CA3ActAvg"} <= set(rows[0])
        assert [r["Mode"] for r in rows][-1] == "test"
        assert (tmp_path / "weights" / "run00_epoch001.npz").exists()

    def test_engine_size_mismatch(self, table, config):
        def factory(input_size, rng):
            return HippocampusEngine(input_size + 1, rng=rng)

        with pytest.raises(ConfigurationError):
            prepare_run(get_condition(table, "no_drift"), config, 2, engine_factory=factory)

    def test_no_log_created_when_engine_rejected(self, table, config, tmp_path):
        log_path = tmp_path / "trials.tsv"

        def factory(input_size, rng):
            return HippocampusEngine(input_size + 1, rng=rng)

        with pytest.raises(ConfigurationError):
            run_experiment(get_condition(table, "no_drift"), config, n_epochs=1,
                           engine_factory=factory, log_path=log_path)
        assert not log_path.exists()
