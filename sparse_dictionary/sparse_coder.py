"""
Sparse coding step of dictionary learning.

For a fixed dictionary D every sample x_i is coded independently:

    z_i = argmin_z 0.5||x_i - D z||^2 + lambda1 ||z||_1 + 0.5 lambda2 ||z||^2

The Gram matrix D^T D is formed once per call and shared by all solves. Solves
only read shared inputs and each produces one column, so they are dispatched
on a joblib thread pool and merged into the code matrix after the join.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from .core.array import ArrayLike
from .core.inference import LarsRegressor
from .core.interfaces import ProgressSink, SparseRegressor
from .exceptions import InvalidConfigurationError, RegressionFailure

logger = logging.getLogger(__name__)

FailurePolicy = Literal["raise", "zero"]


def _solve_column(regressor: SparseRegressor,
                  dictionary: np.ndarray,
                  gram: np.ndarray,
                  data: np.ndarray,
                  index: int,
                  lambda1: float,
                  lambda2: float,
                  substitute_zero: bool) -> Tuple[int, np.ndarray, Optional[RegressionFailure]]:
    if index % 100 == 0:
        logger.debug("Optimization at point %d.", index)
    try:
        code = regressor.solve(dictionary, data[:, index], lambda1, lambda2, gram=gram)
    except RegressionFailure as exc:
        failure = RegressionFailure(exc.reason, sample_index=index)
        if not substitute_zero:
            raise failure from exc
        return index, np.zeros(dictionary.shape[1]), failure
    return index, code, None


class SparseCoder:
    """
    Codes every sample of a data matrix against a fixed dictionary.

    Args:
        lambda1: L1 weight (>= 0)
        lambda2: L2 weight (>= 0)
        regressor: SparseRegressor; LARS-lasso when None
        n_jobs: joblib worker count (1 runs sequentially, -1 uses all cores)
        on_failure: "raise" propagates RegressionFailure, "zero" substitutes
            a zero code for the failing sample
        progress: Optional diagnostics sink
    """

    def __init__(self,
                 lambda1: float = 0.0,
                 lambda2: float = 0.0,
                 regressor: Optional[SparseRegressor] = None,
                 n_jobs: int = 1,
                 on_failure: FailurePolicy = "raise",
                 progress: Optional[ProgressSink] = None):
        if lambda1 < 0 or lambda2 < 0:
            raise InvalidConfigurationError(
                f"regularization weights must be >= 0, got lambda1={lambda1}, lambda2={lambda2}"
            )
        if on_failure not in ("raise", "zero"):
            raise InvalidConfigurationError(f"on_failure must be 'raise' or 'zero', got {on_failure!r}")

        self.lambda1 = float(lambda1)
        self.lambda2 = float(lambda2)
        self.regressor = regressor if regressor is not None else LarsRegressor()
        self.n_jobs = n_jobs
        self.on_failure = on_failure
        self.progress = progress
        self.failures: List[RegressionFailure] = []

    def encode(self, dictionary: ArrayLike, data: ArrayLike) -> np.ndarray:
        """Code all samples.

        Args:
            dictionary: Dictionary D (n_features, n_atoms)
            data: Data matrix X (n_features, n_samples)

        Returns:
            Codes Z (n_atoms, n_samples)

        Raises:
            RegressionFailure: A sample failed and the policy is "raise"
        """
        dictionary = np.asarray(dictionary, dtype=float)
        data = np.asarray(data, dtype=float)
        if dictionary.ndim != 2 or data.ndim != 2:
            raise InvalidConfigurationError("dictionary and data must both be 2D")
        if dictionary.shape[0] != data.shape[0]:
            raise InvalidConfigurationError(
                f"dictionary has {dictionary.shape[0]} features but data has {data.shape[0]}"
            )

        n_atoms = dictionary.shape[1]
        n_samples = data.shape[1]

        # When using the Gram form of LARS this is correct even if lambda2 > 0.
        gram = dictionary.T @ dictionary
        substitute_zero = self.on_failure == "zero"

        results = Parallel(n_jobs=self.n_jobs, backend="threading")(
            delayed(_solve_column)(self.regressor, dictionary, gram, data, i,
                                   self.lambda1, self.lambda2, substitute_zero)
            for i in range(n_samples)
        )

        codes = np.zeros((n_atoms, n_samples))
        self.failures = []
        for index, code, failure in results:
            codes[:, index] = code
            if failure is not None:
                self.failures.append(failure)
                logger.warning("Regression failed for sample %d (%s); using a zero code.",
                               index, failure.reason)
                if self.progress is not None:
                    self.progress.record("regression_failure", sample_index=index,
                                         reason=failure.reason)
        return codes

    def decode(self, dictionary: ArrayLike, codes: ArrayLike) -> np.ndarray:
        return np.asarray(dictionary, dtype=float) @ np.asarray(codes, dtype=float)
