"""
Coordinate descent elastic-net regression (scikit-learn ``ElasticNet``).

The objective 0.5||x - D z||^2 + lambda1 ||z||_1 + 0.5 lambda2 ||z||^2 maps to
scikit-learn's per-sample-averaged parametrisation with n = n_features:

    alpha = (lambda1 + lambda2) / n,    l1_ratio = lambda1 / (lambda1 + lambda2)

A fit that uses all ``max_iter`` passes, read from ``n_iter_``, counts as not
converged.
"""

from typing import Optional

import numpy as np
from sklearn.linear_model import ElasticNet

from ..array import ArrayLike
from ...exceptions import InvalidConfigurationError, RegressionFailure


class CoordinateDescentRegressor:
    """Cyclic coordinate descent on the Gram matrix; using up ``max_iter`` is a failure."""

    def __init__(self, max_iter: int = 1000, tol: float = 1e-4):
        self.max_iter = max_iter
        self.tol = tol

    def solve(self,
              dictionary: ArrayLike,
              target: ArrayLike,
              lambda1: float,
              lambda2: float,
              gram: Optional[ArrayLike] = None) -> np.ndarray:
        dictionary = np.asarray(dictionary, dtype=float)
        target = np.asarray(target, dtype=float).ravel()
        n_features = dictionary.shape[0]

        penalty = lambda1 + lambda2
        if penalty <= 0:
            raise InvalidConfigurationError(
                "coordinate descent needs lambda1 + lambda2 > 0; use LarsRegressor"
            )

        if gram is None:
            gram = dictionary.T @ dictionary

        model = ElasticNet(
            alpha=penalty / n_features,
            l1_ratio=lambda1 / penalty,
            fit_intercept=False,
            precompute=np.ascontiguousarray(gram, dtype=float),
            max_iter=self.max_iter,
            tol=self.tol,
        )
        try:
            model.fit(dictionary, target)
        except (np.linalg.LinAlgError, ValueError, FloatingPointError) as exc:
            raise RegressionFailure(f"coordinate descent failed: {exc}") from exc

        n_iter = int(np.max(model.n_iter_))
        if n_iter >= self.max_iter:
            raise RegressionFailure(
                f"coordinate descent did not converge within {self.max_iter} iterations"
            )

        coef = np.asarray(model.coef_, dtype=float).ravel()
        if not np.all(np.isfinite(coef)):
            raise RegressionFailure("coordinate descent produced non-finite coefficients")
        return coef

    @property
    def name(self) -> str:
        return "coordinate_descent"
