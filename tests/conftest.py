"""
Test configuration and fixtures for dictionary learning tests.

Provides common test fixtures, utilities, and configuration for all test modules.
"""

import numpy as np
import pytest


@pytest.fixture
def random_seed():
    """Fixed random seed for reproducible tests."""
    return 42


@pytest.fixture
def rng(random_seed):
    return np.random.default_rng(random_seed)


def make_hidden_basis_data(seed, noise=0.05):
    """
    features=5, samples=20 data built from 4 sparse combinations of 3 hidden
    unit-norm basis vectors, with random per-sample scale and optional noise.
    """
    gen = np.random.default_rng(seed)
    basis = gen.standard_normal((5, 3))
    basis /= np.linalg.norm(basis, axis=0, keepdims=True)

    # Columns are the 4 ground-truth combinations
    weights = np.array([
        [1.0, 0.0, 0.0, 0.7],
        [0.0, 1.0, 0.0, 0.6],
        [0.0, 0.0, 1.0, 0.0],
    ])
    combos = basis @ weights

    n_samples = 20
    scales = gen.uniform(1.0, 2.0, size=n_samples)
    signals = combos[:, np.arange(n_samples) % 4] * scales
    if noise:
        signals += noise * gen.standard_normal(signals.shape)

    return {
        'signals': signals,
        'basis': basis,
        'weights': weights,
        'n_features': 5,
        'n_samples': n_samples,
    }


@pytest.fixture
def hidden_basis_data(random_seed):
    return make_hidden_basis_data(random_seed)


@pytest.fixture
def random_problem(random_seed):
    """Random dictionary and data for coding-step tests."""
    gen = np.random.default_rng(random_seed)
    D = gen.standard_normal((12, 6))
    D /= np.linalg.norm(D, axis=0, keepdims=True)
    X = gen.standard_normal((12, 15))
    return {'dictionary': D, 'signals': X}


@pytest.fixture
def coded_signals(random_seed):
    """
    Sparse codes (5 atoms x 30 samples, atom 3 unused) and the exact signals
    they produce with a unit-norm generating dictionary (4 features).
    """
    gen = np.random.default_rng(random_seed)
    codes = gen.standard_normal((5, 30))
    codes[np.abs(codes) < 0.4] = 0.0
    codes[3] = 0.0

    dictionary = gen.standard_normal((4, 5))
    dictionary /= np.linalg.norm(dictionary, axis=0, keepdims=True)

    return {
        'codes': codes,
        'dictionary': dictionary,
        'signals': dictionary @ codes,
        'noise': 0.2 * gen.standard_normal((4, 30)),
    }


class StaticInitializer:
    """Initializer returning a stored dictionary; records how often it ran."""

    def __init__(self, dictionary):
        self.dictionary = np.asarray(dictionary, dtype=float)
        self.calls = 0

    def initialize(self, data, atoms, rng):
        self.calls += 1
        return self.dictionary.copy()


class FailingRegressor:
    """Regressor failing on chosen sample targets, LARS otherwise."""

    def __init__(self, bad_columns, data):
        from sparse_dictionary import LarsRegressor
        self.inner = LarsRegressor()
        self.bad = [np.asarray(data)[:, i].copy() for i in bad_columns]

    def solve(self, dictionary, target, lambda1, lambda2, gram=None):
        from sparse_dictionary import RegressionFailure
        for bad in self.bad:
            if np.array_equal(bad, target):
                raise RegressionFailure("forced failure")
        return self.inner.solve(dictionary, target, lambda1, lambda2, gram=gram)


def assert_elastic_net_kkt(D, x, z, lambda1, lambda2, atol=1e-6):
    """Assert z satisfies the optimality conditions of the elastic-net problem."""
    corr = D.T @ (x - D @ z) - lambda2 * z
    support = z != 0
    np.testing.assert_allclose(corr[support], lambda1 * np.sign(z[support]), atol=atol)
    assert np.all(np.abs(corr[~support]) <= lambda1 + atol)


def assert_unit_columns(matrix, atol=1e-8):
    norms = np.linalg.norm(matrix, axis=0)
    np.testing.assert_allclose(norms, 1.0, atol=atol,
                               err_msg="Dictionary atoms must be unit normalized")


class DuplicatingRegressor:
    """LARS codes with atoms 0 and 1 forced to the same coefficient in every sample."""

    def __init__(self):
        from sparse_dictionary import LarsRegressor
        self.inner = LarsRegressor()

    def solve(self, dictionary, target, lambda1, lambda2, gram=None):
        code = self.inner.solve(dictionary, target, lambda1, lambda2, gram=gram)
        # Dyadic values keep Z Z^T exact, so the two rows make it singular
        code = np.round(4.0 * code) / 4.0
        code[0] = code[1] = 1.0
        return code


def assert_dual_optimal(update, atol=1e-4):
    """Assert the multipliers and atoms of a DictionaryUpdate satisfy the KKT conditions."""
    nu = update.dual_variables
    norms = np.linalg.norm(update.dictionary[:, update.active_atoms], axis=0)
    assert np.all(nu >= 0), "dual variables must be nonnegative"
    assert np.all(norms <= 1 + atol), f"atom norms exceed 1: {norms}"
    # A positive multiplier means the norm constraint is tight
    np.testing.assert_allclose(norms[nu > 1e-6], 1.0, atol=atol)
