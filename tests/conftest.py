import numpy as np
import pytest

from hipdrift.config import ExperimentConfig, load_experiment_table
from hipdrift.drift import generate_chain
from hipdrift.patterns import PatternAssembler
from hipdrift.pool import VectorPool


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def config():
    return ExperimentConfig()


@pytest.fixture
def one_pair_config():
    return ExperimentConfig(n_pairs=1)


@pytest.fixture
def table():
    return load_experiment_table()


@pytest.fixture
def single_pair(one_pair_config, rng):
    """
    The minimal no-drift scenario: a two-entry pool (A, B) and one context
    chain of length 5 at rate 0.25, with the study context fixed at chain[0].
    """
    pool = VectorPool.from_config(one_pair_config)
    pool.generate_group({"A": 1, "B": 1}, rng)
    chain = generate_chain(pool.random_vector(rng), 5, 0.25, rng)
    assembler = PatternAssembler.from_config(one_pair_config)
    pattern = assembler.assemble("AB_0", pool["A"][0], pool["B"][0], (chain[0],))
    return {"pool": pool, "chain": chain, "assembler": assembler, "pattern": pattern}
