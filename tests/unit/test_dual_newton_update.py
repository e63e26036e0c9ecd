"""
Unit tests for the dual Newton dictionary update.
"""

import threading

import numpy as np
import pytest
from sparse_dictionary import (
    DictionaryLearner, DualNewtonUpdate, EncodingCancelled, HistorySink,
    IllConditionedDictionaryUpdate, NewtonNonConvergence, adjacencies,
)
from sparse_dictionary.core.initialization import random_data_atom
from sparse_dictionary.core.dictionary import dual_newton_update
from tests.conftest import assert_dual_optimal, assert_unit_columns, make_hidden_basis_data


def run_update(codes, signals, **kwargs):
    updater = DualNewtonUpdate(**kwargs)
    return updater.update(codes, adjacencies(codes), signals)


class TestDualNewtonUpdate:
    """Test the constrained least-squares dictionary step."""

    def test_recovers_generating_dictionary(self, coded_signals):
        """Noise-free signals give back the unit-norm generating atoms."""
        data = coded_signals

        update = run_update(data['codes'], data['signals'], rng=np.random.default_rng(0))

        active = update.active_atoms
        np.testing.assert_allclose(update.dictionary[:, active],
                                   data['dictionary'][:, active], atol=1e-6)
        np.testing.assert_allclose(update.dual_variables, 0.0, atol=1e-6)

    def test_partition_and_neighbor_counts(self, coded_signals):
        data = coded_signals
        codes = data['codes']

        update = run_update(codes, data['signals'], rng=np.random.default_rng(0))

        np.testing.assert_array_equal(update.active_atoms, [0, 1, 2, 4])
        np.testing.assert_array_equal(update.inactive_atoms, [3])
        np.testing.assert_array_equal(update.neighbor_counts, np.count_nonzero(codes, axis=0))
        assert update.dual_variables.shape == (4,)
        assert update.dictionary.shape == (4, 5)

    def test_noisy_signals_satisfy_optimality(self, coded_signals):
        """Multipliers are nonnegative and tight atoms have unit norm."""
        data = coded_signals
        signals = data['signals'] + data['noise']

        update = run_update(data['codes'], signals, newton_tolerance=1e-10,
                            rng=np.random.default_rng(0))

        assert_dual_optimal(update)
        assert update.newton_iterations >= 1

    def test_slack_atoms_keep_zero_multiplier(self, coded_signals):
        """Atoms whose least-squares fit is shorter than 1 are not stretched."""
        data = coded_signals
        signals = 0.5 * data['signals']

        update = run_update(data['codes'], signals, rng=np.random.default_rng(0))

        active = update.active_atoms
        np.testing.assert_array_equal(update.dual_variables, 0.0)
        np.testing.assert_allclose(update.dictionary[:, active],
                                   0.5 * data['dictionary'][:, active], atol=1e-8)

    def test_mixed_scales_reach_constrained_optimum(self, coded_signals):
        """The update beats any feasible dictionary on the reconstruction error."""
        data = coded_signals
        codes = data['codes']
        scales = np.array([2.0, 0.5, 1.5, 1.0, 0.6])
        signals = data['dictionary'] @ np.diag(scales) @ codes

        update = run_update(codes, signals, newton_tolerance=1e-10,
                            rng=np.random.default_rng(0))

        assert_dual_optimal(update)
        feasible = data['dictionary'] * np.minimum(scales, 1.0)
        error = np.sum((signals - update.dictionary @ codes) ** 2)
        feasible_error = np.sum((signals - feasible @ codes) ** 2)
        assert error <= feasible_error + 1e-6
        assert np.any(update.dual_variables > 0)

    def test_inactive_atom_reseeded_from_data(self, coded_signals):
        """An unused atom becomes the normalised sum of three data columns."""
        data = coded_signals

        update = run_update(data['codes'], data['signals'], rng=np.random.default_rng(11))
        expected = random_data_atom(data['signals'], np.random.default_rng(11), 3)

        np.testing.assert_allclose(update.dictionary[:, 3], expected)
        assert np.linalg.norm(update.dictionary[:, 3]) == pytest.approx(1.0)

    def test_inactive_atoms_reported(self, coded_signals):
        data = coded_signals
        sink = HistorySink()

        run_update(data['codes'], data['signals'], rng=np.random.default_rng(0), progress=sink)

        assert sink.values("inactive_atoms", "count") == [1]
        assert len(sink.history["newton_iteration"]) >= 1

    def test_all_atoms_inactive(self, coded_signals):
        """Zero codes skip the solve and reseed every atom."""
        data = coded_signals
        codes = np.zeros((5, 30))

        update = run_update(codes, data['signals'], rng=np.random.default_rng(0))

        assert update.active_atoms.size == 0
        assert update.dual_variables.size == 0
        assert update.newton_iterations == 0
        assert_unit_columns(update.dictionary)

    def test_inputs_not_modified(self, coded_signals):
        data = coded_signals
        codes = data['codes'].copy()
        signals = data['signals'].copy()

        run_update(codes, signals, rng=np.random.default_rng(0))

        np.testing.assert_array_equal(codes, data['codes'])
        np.testing.assert_array_equal(signals, data['signals'])


class TestDualNewtonFailures:
    """Test singular systems, iteration bounds and cancellation."""

    def test_duplicate_code_rows_are_ill_conditioned(self, coded_signals):
        data = coded_signals
        # Integer codes keep Z Z^T exact, so the duplicated rows make it singular
        codes = np.round(4.0 * data['codes'])
        codes[1] = codes[0]

        with pytest.raises(IllConditionedDictionaryUpdate):
            run_update(codes, data['signals'] + data['noise'])

    def test_newton_iteration_bound(self, coded_signals):
        data = coded_signals
        scales = np.array([2.0, 1.0, 1.0, 1.0, 1.0])
        signals = data['dictionary'] @ np.diag(scales) @ data['codes'] + data['noise']

        with pytest.raises(NewtonNonConvergence) as excinfo:
            run_update(data['codes'], signals, newton_tolerance=1e-300, max_newton_iterations=1)

        assert excinfo.value.iterations == 1

    def test_exhausted_line_search_raises(self, coded_signals, monkeypatch):
        """No acceptable step is an error, not convergence."""
        data = coded_signals
        # Atom 0 fits with norm 2, so its multiplier has to move off zero
        scales = np.array([2.0, 1.0, 1.0, 1.0, 1.0])
        signals = data['dictionary'] @ np.diag(scales) @ data['codes']
        monkeypatch.setattr(dual_newton_update.DualNewtonUpdate, "_dual_objective",
                            staticmethod(lambda *args: np.inf))

        with pytest.raises(NewtonNonConvergence, match="line search") as excinfo:
            run_update(data['codes'], signals, max_line_search_steps=5)

        assert excinfo.value.iterations == 1
        assert excinfo.value.reason is not None

    def test_noise_free_hidden_basis_codes(self):
        """Bootstrap codes of an overcomplete learner on exact data give a KKT point."""
        signals = make_hidden_basis_data(6, noise=0.0)['signals']
        learner = DictionaryLearner(signals, atoms=8, lambda1=0.1, seed=4)
        learner.optimize_code()

        update = learner.optimize_dictionary()

        assert_dual_optimal(update)
        np.testing.assert_array_equal(learner.dictionary, update.dictionary)

    def test_cancel_between_newton_steps(self, coded_signals):
        data = coded_signals
        event = threading.Event()
        event.set()
        updater = DualNewtonUpdate()

        with pytest.raises(EncodingCancelled):
            updater.update(data['codes'], adjacencies(data['codes']), data['signals'], cancel=event)

    def test_name(self):
        assert DualNewtonUpdate().name == "dual_newton"
