"""
LARS-lasso sparse regression on a precomputed Gram matrix.

Solves, for one sample x and a fixed dictionary D:

    minimize_z 0.5||x - D z||^2 + lambda1 ||z||_1 + 0.5 lambda2 ||z||^2

The elastic-net case is the lasso on the augmented system [D; sqrt(lambda2) I],
[x; 0], whose Gram matrix is D^T D + lambda2 I and whose correlation vector is
unchanged, so the same Gram-based LARS path applies for any lambda2 >= 0.

Reference: Efron, Hastie, Johnstone & Tibshirani (2004). Least angle regression.
"""

from typing import Optional

import numpy as np
from sklearn.linear_model import lars_path_gram

from ..array import ArrayLike
from ...exceptions import RegressionFailure


class LarsRegressor:
    """Efron et al. (2004) LARS with the lasso modification, Gram-matrix form."""

    def __init__(self, max_iter: int = 500):
        self.max_iter = max_iter

    def solve(self,
              dictionary: ArrayLike,
              target: ArrayLike,
              lambda1: float,
              lambda2: float,
              gram: Optional[ArrayLike] = None) -> np.ndarray:
        """Solve one elastic-net problem along the LARS path.

        Args:
            dictionary: Dictionary D (n_features, n_atoms)
            target: Signal vector x (n_features,)
            lambda1: L1 weight
            lambda2: L2 weight
            gram: Precomputed D^T D (not modified)

        Returns:
            Coefficients z (n_atoms,)
        """
        dictionary = np.asarray(dictionary, dtype=float)
        target = np.asarray(target, dtype=float).ravel()
        n_features, n_atoms = dictionary.shape

        if gram is None:
            gram = dictionary.T @ dictionary
        gram = np.array(gram, dtype=float)
        if lambda2 > 0:
            gram.flat[::n_atoms + 1] += lambda2

        correlations = dictionary.T @ target

        # lars_path_gram scales alpha by 1/n_samples; any n_samples works as
        # long as alpha_min is scaled the same way.
        try:
            _, _, coef = lars_path_gram(
                correlations, gram,
                n_samples=n_features,
                max_iter=self.max_iter,
                alpha_min=lambda1 / n_features,
                method="lasso",
                copy_Gram=False,
                return_path=False,
            )
        except (np.linalg.LinAlgError, ValueError, FloatingPointError) as exc:
            raise RegressionFailure(f"LARS failed: {exc}") from exc

        coef = np.asarray(coef, dtype=float).ravel()
        if not np.all(np.isfinite(coef)):
            raise RegressionFailure("LARS produced non-finite coefficients")
        return coef

    @property
    def name(self) -> str:
        return "lars"
