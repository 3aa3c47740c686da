import pytest

from hipdrift.config import get_condition
from hipdrift.sweep import run_conditions, sweep_one_param


class TestSweep:
    def test_condition_parameter(self, table, one_pair_config):
        grid = [0.1, 0.9]
        out = sweep_one_param("decay_rate", grid, get_condition(table, "fast_drift"),
                              one_pair_config, n_epochs=1, n_runs=1, verbose=False)
        assert list(out) == grid
        for val in grid:
            assert out[val]["param_value"] == val
            assert out[val]["condition"].decay_rate == val
            assert "TestAB_ri0" in out[val]["summary"]

    def test_config_parameter(self, table, one_pair_config):
        out = sweep_one_param("mossy_delta_test", [0.5], get_condition(table, "no_drift"),
                              one_pair_config, n_epochs=1, n_runs=1, verbose=False)
        assert out[0.5]["config"].mossy_delta_test == 0.5
        assert out[0.5]["config"].seed == one_pair_config.seed

    def test_list_valued_parameter(self, table, one_pair_config):
        out = sweep_one_param("retention_intervals", [[0], [0, 2]],
                              get_condition(table, "fast_drift"), one_pair_config,
                              n_epochs=1, n_runs=1, verbose=False)
        assert list(out) == [(0,), (0, 2)]
        assert out[(0, 2)]["param_value"] == [0, 2]
        assert set(out[(0, 2)]["summary"]) == {"TestAB_ri0", "TestAB_ri2"}

    def test_string_parameter_progress(self, table, one_pair_config, capsys):
        cond = get_condition(table, "no_drift").replace(ac_epochs=1)
        out = sweep_one_param("list_design", ["AB", "AB-AC"], cond, one_pair_config,
                              n_epochs=1, n_runs=1, verbose=True)
        assert list(out) == ["AB", "AB-AC"]
        assert "list_design=AB-AC  done" in capsys.readouterr().out

    def test_unknown_parameter(self, table, one_pair_config):
        with pytest.raises(KeyError):
            sweep_one_param("volume", [1], get_condition(table, "no_drift"), one_pair_config,
                            verbose=False)


def test_run_conditions(table, one_pair_config, tmp_path):
    out = run_conditions(["no_drift", "massed"], table, one_pair_config, n_epochs=1,
                         n_runs=1, log_dir=tmp_path, verbose=False)
    assert list(out) == ["no_drift", "massed"]
    assert (tmp_path / "massed_trials.tsv").exists()


def test_run_conditions_weights_per_condition(table, one_pair_config, tmp_path, capsys):
    run_conditions(["no_drift"], table, one_pair_config, n_epochs=1, n_runs=1,
                   weights_dir=tmp_path / "weights")
    assert (tmp_path / "weights" / "no_drift" / "run00_epoch000.npz").exists()
    assert "=== no_drift:" in capsys.readouterr().out
