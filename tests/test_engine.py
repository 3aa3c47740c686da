import numpy as np
import pytest

from hipdrift.engine import EngineConfig, HippocampusEngine, _kwta
from hipdrift.errors import ConfigurationError


@pytest.fixture
def engine(rng):
    return HippocampusEngine(147, rng=rng)


@pytest.fixture
def ec_input(rng):
    v = np.zeros(147)
    v[rng.permutation(147)[:30]] = 1.0
    return v


class TestContract:
    def test_unknown_names_raise(self, engine):
        with pytest.raises(ConfigurationError):
            engine.read_activation("CA2")
        with pytest.raises(ConfigurationError):
            engine.set_pathway_scale("CA3ToCA2", 1.0)
        with pytest.raises(ConfigurationError):
            engine.read_activation("CA1", view="previous")

    def test_only_ec_layers_clamp(self, engine):
        with pytest.raises(ConfigurationError):
            engine.apply_input({"CA3": np.zeros(400)})
        with pytest.raises(ConfigurationError):
            engine.apply_input({"ECin": np.zeros(10)})

    def test_negative_scale(self, engine):
        with pytest.raises(ConfigurationError):
            engine.set_pathway_scale("DGToCA3", -0.1)

    def test_default_scales(self, engine):
        assert engine.pathway_scale("ECinToCA1") == 1.0
        assert engine.pathway_scale("CA3ToCA1") == 0.0

    def test_layer_sizes(self, engine):
        assert engine.layer_sizes() == {"ECin": 147, "DG": 800, "CA3": 400,
                                        "CA1": 147, "ECout": 147}

    def test_bad_config(self):
        with pytest.raises(ConfigurationError):
            EngineConfig(ca3_k=0)
        with pytest.raises(ConfigurationError):
            HippocampusEngine(0)


class TestDynamics:
    def test_kwta(self):
        act = _kwta(np.array([0.1, 0.9, 0.0, 0.5, 0.7]), 2)
        np.testing.assert_array_equal(act, [0, 1, 0, 0, 1])
        assert _kwta(np.zeros(4), 2).sum() == 0

    def test_step_records_history(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        for _ in range(3):
            engine.step_cycle()
        assert engine.n_cycles == 3
        assert engine.read_activation("CA3", view=0).sum() <= engine.config.ca3_k
        assert engine.read_activation("DG").sum() <= engine.config.dg_k
        with pytest.raises(ConfigurationError):
            engine.read_activation("CA3", view=5)

    def test_direct_pathway_copies_input(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        np.testing.assert_array_equal(engine.read_activation("ECout"), ec_input)

    def test_ecout_clamp_overrides(self, engine, ec_input):
        out = np.zeros(147)
        engine.apply_input({"ECin": ec_input, "ECout": out})
        engine.step_cycle()
        np.testing.assert_array_equal(engine.read_activation("ECout"), out)

    def test_reset_clears_history_keeps_weights(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        w = engine.weights()
        engine.reset_decay_state()
        assert engine.n_cycles == 0
        assert engine.read_activation("CA3").sum() == 0
        np.testing.assert_array_equal(engine.weights()["ECinToCA3"], w["ECinToCA3"])


class TestLearning:
    def test_commit_moves_active_columns_only(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        before = engine.weights()
        engine.commit_weight_update(1.0)
        after = engine.weights()
        ca3 = engine.read_activation("CA3") > 0
        changed = np.any(before["ECinToCA3"] != after["ECinToCA3"], axis=0)
        np.testing.assert_array_equal(changed, ca3)
        assert engine.n_updates == 1

    def test_zero_multiplier_is_no_op(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        before = engine.weights()
        engine.commit_weight_update(0.0)
        np.testing.assert_array_equal(before["CA3ToCA1"], engine.weights()["CA3ToCA1"])
        assert engine.n_updates == 0


class TestMossyDetonation:
    def test_full_mossy_scale_fixes_the_code(self, engine, ec_input):
        # units strongly tuned to the input through the perforant path
        engine.w_pp[:, :50] = 1.0
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        dg = engine.read_activation("DG")
        expected = _kwta(dg @ engine.w_mossy, engine.config.ca3_k)
        np.testing.assert_array_equal(engine.read_activation("CA3"), expected)

    def test_recall_window_follows_perforant_input(self, engine, ec_input):
        engine.w_pp[:, :engine.config.ca3_k] = 1.0
        engine.set_pathway_scale("DGToCA3", 0.1)
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        active = np.flatnonzero(engine.read_activation("CA3"))
        np.testing.assert_array_equal(active, np.arange(engine.config.ca3_k))

    def test_same_input_same_code(self, engine, ec_input):
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        first = engine.read_activation("CA3")
        engine.commit_weight_update(1.0)
        engine.reset_decay_state()
        engine.apply_input({"ECin": ec_input})
        engine.step_cycle()
        np.testing.assert_array_equal(engine.read_activation("CA3"), first)
