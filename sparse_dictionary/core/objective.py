"""
Regularised reconstruction objective of the dictionary learning problem.

    J(D, Z) = 0.5 ||X - D Z||_F^2 + lambda1 * sum|Z| + 0.5 * lambda2 * ||Z||_F^2

The ridge term is only evaluated when lambda2 > 0.
"""

import numpy as np

from .array import ArrayLike


def objective(data: ArrayLike,
              dictionary: ArrayLike,
              codes: ArrayLike,
              lambda1: float,
              lambda2: float = 0.0) -> float:
    """
    Evaluate the elastic-net dictionary learning objective.

    Args:
        data: Data matrix X (n_features, n_samples)
        dictionary: Dictionary D (n_features, n_atoms)
        codes: Codes Z (n_atoms, n_samples)
        lambda1: L1 weight
        lambda2: L2 (ridge) weight

    Returns:
        Scalar objective value
    """
    data = np.asarray(data, dtype=float)
    dictionary = np.asarray(dictionary, dtype=float)
    codes = np.asarray(codes, dtype=float)

    l11_norm = float(np.sum(np.abs(codes)))
    fro_residual = float(np.linalg.norm(data - dictionary @ codes, "fro"))

    if lambda2 > 0:
        fro_codes = float(np.linalg.norm(codes, "fro"))
        return 0.5 * (fro_residual ** 2 + lambda2 * fro_codes ** 2) + lambda1 * l11_norm

    return 0.5 * fro_residual ** 2 + lambda1 * l11_norm
