"""
Protocol interfaces for the pluggable collaborators of the learner.

Defines contracts for: SparseRegressor, DictionaryInitializer, ProgressSink,
CancelToken. Concrete implementations live in ``core.inference``,
``core.initialization`` and ``monitoring``.
"""

from typing import Any, Optional, Protocol

import numpy as np

from .array import ArrayLike


class SparseRegressor(Protocol):
    """
    Per-sample sparse regression capability.

    Solves: argmin_z [0.5||x - D z||^2 + lambda1 ||z||_1 + 0.5 lambda2 ||z||^2]
    """

    def solve(self,
              dictionary: ArrayLike,
              target: ArrayLike,
              lambda1: float,
              lambda2: float,
              gram: Optional[ArrayLike] = None) -> np.ndarray:
        """
        Solve one elastic-net regression problem.

        Args:
            dictionary: Dictionary D (n_features, n_atoms)
            target: One data sample x (n_features,)
            lambda1: L1 weight
            lambda2: L2 weight
            gram: Precomputed D^T D, reused across samples when given

        Returns:
            Coefficient vector z (n_atoms,)

        Raises:
            RegressionFailure: If the solver cannot produce a finite solution
        """
        ...


class DictionaryInitializer(Protocol):
    """Produces the starting dictionary for a learning run."""

    def initialize(self,
                   data: ArrayLike,
                   atoms: int,
                   rng: np.random.Generator) -> np.ndarray:
        """
        Args:
            data: Data matrix X (n_features, n_samples)
            atoms: Number of atoms to create
            rng: Random generator owned by the learner

        Returns:
            Dictionary of shape (n_features, atoms)
        """
        ...


class ProgressSink(Protocol):
    """Receives diagnostics; never influences control flow."""

    def record(self, event: str, **fields: Any) -> None:
        ...


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool:
        ...
