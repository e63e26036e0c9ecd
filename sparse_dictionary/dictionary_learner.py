"""
Dictionary Learning for Sparse Coding

Learns a dictionary D and sparse codes Z that jointly reconstruct a fixed data
matrix X under an L1 (optionally elastic-net) penalty on the codes:

    min_{D,Z} 0.5||X - DZ||_F^2 + lambda1 ||Z||_1 + 0.5 lambda2 ||Z||_F^2

Alternates between a dictionary step (dual Newton solve, see
``core.dictionary.dual_newton_update``) and a coding step (per-sample LARS),
after a bootstrap coding step against the initial dictionary.

Reference: Lee, Battle, Raina & Ng (2007). Efficient sparse coding algorithms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

import numpy as np

from .config import SparseCodingConfig, make_config
from .core.array import ArrayLike, adjacencies, nonzero_fraction
from .core.dictionary import DictionaryUpdate, DualNewtonUpdate
from .core.initialization import DataDependentRandomInitializer
from .core.interfaces import CancelToken, DictionaryInitializer, ProgressSink, SparseRegressor
from .core.objective import objective
from .exceptions import (
    EncodingCancelled,
    IllConditionedDictionaryUpdate,
    InvalidConfigurationError,
    NewtonNonConvergence,
    RegressionFailure,
)
from .sparse_coder import SparseCoder

logger = logging.getLogger(__name__)


class EncodeStatus(Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class EncodeResult:
    """Outcome of ``DictionaryLearner.encode``.

    ``dictionary`` and ``codes`` are the last pair that was fully computed;
    ``objective_history`` holds the bootstrap objective followed by one value
    per completed iteration.
    """
    dictionary: np.ndarray
    codes: np.ndarray
    status: EncodeStatus
    iterations: int
    objective_history: List[float] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def converged(self) -> bool:
        return self.status is EncodeStatus.CONVERGED

    @property
    def initial_objective(self) -> Optional[float]:
        return self.objective_history[0] if self.objective_history else None

    @property
    def final_objective(self) -> Optional[float]:
        return self.objective_history[-1] if self.objective_history else None

    @property
    def nonzero_fraction(self) -> float:
        return nonzero_fraction(self.codes)

    def raise_for_status(self) -> None:
        """Re-raise the error that stopped a failed run."""
        if self.error is not None:
            raise self.error


def project_dictionary(dictionary: ArrayLike) -> np.ndarray:
    """Shrink atoms whose norm exceeds 1 back onto the unit sphere."""
    dictionary = np.array(dictionary, dtype=float)
    norms = np.linalg.norm(dictionary, axis=0)
    for j in np.flatnonzero(norms > 1):
        logger.info("Norm of atom %d exceeds 1 (%.3e). Shrinking...", j, norms[j])
        dictionary[:, j] /= norms[j]
    return dictionary


class DictionaryLearner:
    """
    Sparse coding with dictionary learning by alternating optimisation.

    The dictionary is initialised at construction; ``encode`` then runs the
    bootstrap coding step followed by (dictionary, coding, convergence test)
    iterations. The run stops at the first iteration whose objective
    improvement falls below the tolerance.

    Args:
        data: Data matrix X (n_features, n_samples), never modified
        config: SparseCodingConfig or mapping; keyword overrides are merged in
        initializer: DictionaryInitializer, three-column data sums by default
        regressor: SparseRegressor for the coding step, LARS by default
        rng: Generator for initialisation and atom reseeding; built from
            ``config.seed`` when None
        progress: Optional diagnostics sink

    Example:
        >>> learner = DictionaryLearner(X, atoms=8, lambda1=0.1, seed=0)
        >>> result = learner.encode(max_iterations=50, tolerance=1e-3)
        >>> result.status, result.final_objective
    """

    def __init__(self,
                 data: ArrayLike,
                 config: Optional[Union[SparseCodingConfig, Mapping[str, Any]]] = None,
                 *,
                 initializer: Optional[DictionaryInitializer] = None,
                 regressor: Optional[SparseRegressor] = None,
                 rng: Optional[np.random.Generator] = None,
                 progress: Optional[ProgressSink] = None,
                 **params: Any):
        self.config = make_config(config, **params)

        data = np.asarray(data, dtype=float)
        if data.ndim != 2 or data.size == 0:
            raise InvalidConfigurationError(f"data must be a non-empty 2D array, got shape {data.shape}")
        if not np.all(np.isfinite(data)):
            raise InvalidConfigurationError("data contains non-finite values (inf/nan)")
        # Read-only view; the caller's array flags stay untouched
        self._data = data.view()
        self._data.flags.writeable = False

        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.progress = progress
        self.initializer = initializer if initializer is not None else DataDependentRandomInitializer()

        self.coder = SparseCoder(
            lambda1=self.config.lambda1,
            lambda2=self.config.lambda2,
            regressor=regressor,
            n_jobs=self.config.n_jobs,
            on_failure=self.config.on_regression_failure,
            progress=progress,
        )
        self.updater = DualNewtonUpdate(
            newton_tolerance=self.config.newton_tolerance,
            max_newton_iterations=self.config.max_newton_iterations,
            max_line_search_steps=self.config.max_line_search_steps,
            rng=self.rng,
            progress=progress,
        )

        atoms = self.config.atoms
        dictionary = np.asarray(self.initializer.initialize(self._data, atoms, self.rng), dtype=float)
        if dictionary.shape != (self._data.shape[0], atoms):
            raise InvalidConfigurationError(
                f"initializer returned shape {dictionary.shape}, "
                f"expected {(self._data.shape[0], atoms)}"
            )
        self._dictionary = dictionary
        self._codes = np.zeros((atoms, self._data.shape[1]))

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def dictionary(self) -> np.ndarray:
        return self._dictionary

    @property
    def codes(self) -> np.ndarray:
        return self._codes

    @property
    def atoms(self) -> int:
        return self.config.atoms

    def encode(self,
               max_iterations: Optional[int] = None,
               tolerance: Optional[float] = None,
               cancel: Optional[CancelToken] = None) -> EncodeResult:
        """
        Run the alternating optimisation.

        Args:
            max_iterations: Outer iteration limit (config value when None);
                0 performs only the bootstrap coding step
            tolerance: Minimum objective improvement per iteration (config
                value when None)
            cancel: Checked before every iteration and between Newton steps

        Returns:
            EncodeResult; numeric failures are reported in its status and
            ``error`` rather than raised
        """
        if max_iterations is None:
            max_iterations = self.config.max_iterations
        if tolerance is None:
            tolerance = self.config.objective_tolerance
        if max_iterations < 0:
            raise InvalidConfigurationError(f"max_iterations must be >= 0, got {max_iterations}")
        if not tolerance > 0:
            raise InvalidConfigurationError(f"tolerance must be > 0, got {tolerance}")

        history: List[float] = []

        # The initial coding step has to happen before the main loop.
        logger.info("Initial coding step.")
        try:
            self.optimize_code()
        except RegressionFailure as exc:
            return self._failed(exc, 0, history)

        adjacency = adjacencies(self._codes)
        self._report_sparsity(0, adjacency)
        last_objective = self.objective()
        history.append(last_objective)
        logger.info("  Objective value: %g.", last_objective)
        self._record("objective", iteration=0, value=last_objective)

        for t in range(1, max_iterations + 1):
            if cancel is not None and cancel.is_set():
                logger.info("Cancelled before iteration %d.", t)
                return self._result(EncodeStatus.CANCELLED, t - 1, history)

            logger.info("Iteration %d of %d.", t, max_iterations)
            try:
                logger.info("Performing dictionary step...")
                update = self.updater.update(self._codes, adjacency, self._data, cancel=cancel)
                if logger.isEnabledFor(logging.INFO):
                    logger.info("  Objective value: %g.", objective(
                        self._data, update.dictionary, self._codes,
                        self.config.lambda1, self.config.lambda2))

                logger.info("Performing coding step...")
                codes = self.coder.encode(update.dictionary, self._data)
            except EncodingCancelled:
                logger.info("Cancelled during iteration %d.", t)
                return self._result(EncodeStatus.CANCELLED, t - 1, history)
            except (IllConditionedDictionaryUpdate, NewtonNonConvergence, RegressionFailure) as exc:
                return self._failed(exc, t - 1, history)

            # Dictionary and codes are replaced together
            self._dictionary = update.dictionary
            self._codes = codes

            adjacency = adjacencies(self._codes)
            self._report_sparsity(t, adjacency)

            current = self.objective()
            history.append(current)
            improvement = last_objective - current
            logger.info("  Objective value: %g (improvement %.3e).", current, improvement)
            self._record("objective", iteration=t, value=current, improvement=improvement)

            if improvement < tolerance:
                logger.info("Converged within tolerance %g.", tolerance)
                self._record("converged", iteration=t, objective=current)
                return self._result(EncodeStatus.CONVERGED, t, history)

            last_objective = current

        return self._result(EncodeStatus.MAX_ITERATIONS, max_iterations, history)

    def optimize_code(self) -> np.ndarray:
        """Recode every sample against the current dictionary."""
        self._codes = self.coder.encode(self._dictionary, self._data)
        return self._codes

    def optimize_dictionary(self,
                            adjacency: Optional[ArrayLike] = None,
                            cancel: Optional[CancelToken] = None) -> DictionaryUpdate:
        """Replace the dictionary using the current codes."""
        if adjacency is None:
            adjacency = adjacencies(self._codes)
        update = self.updater.update(self._codes, adjacency, self._data, cancel=cancel)
        self._dictionary = update.dictionary
        return update

    def objective(self) -> float:
        """Objective of the current (dictionary, codes) pair."""
        return objective(self._data, self._dictionary, self._codes,
                         self.config.lambda1, self.config.lambda2)

    def project_dictionary(self) -> np.ndarray:
        """Shrink atoms with norm above 1 onto the unit sphere."""
        self._dictionary = project_dictionary(self._dictionary)
        return self._dictionary

    def _report_sparsity(self, iteration: int, adjacency: np.ndarray) -> None:
        percent = 100.0 * len(adjacency) / self._codes.size
        logger.info("  Sparsity level: %.4g%%.", percent)
        self._record("sparsity", iteration=iteration, percent=percent)

    def _result(self, status: EncodeStatus, iterations: int, history: List[float],
                error: Optional[Exception] = None) -> EncodeResult:
        return EncodeResult(
            dictionary=self._dictionary.copy(),
            codes=self._codes.copy(),
            status=status,
            iterations=iterations,
            objective_history=list(history),
            error=error,
        )

    def _failed(self, exc: Exception, iterations: int, history: List[float]) -> EncodeResult:
        logger.error("Dictionary learning stopped after %d iterations: %s", iterations, exc)
        return self._result(EncodeStatus.FAILED, iterations, history, error=exc)

    def _record(self, event: str, **fields: Any) -> None:
        if self.progress is not None:
            self.progress.record(event, **fields)
