"""
Dictionary update by Newton's method on the Lagrangian dual.

Given codes Z and data X, the dictionary step solves

    minimize_D ||X - D Z||_F^2   subject to  ||d_j||_2 <= 1 for every active atom j

Introducing one multiplier nu_j >= 0 per norm constraint, the minimiser for
fixed nu is D^T = (Z Z^T + diag(nu))^{-1} Z X^T, and nu minimises the (negated)
dual over nu >= 0

    f(nu) = trace(B^T A^{-1} B) + sum(nu),   A = Z Z^T + diag(nu),  B = Z X^T

with gradient 1 - rowsum((A^{-1} B)^2) and Hessian 2 (M M^T) * A^{-1}, M = A^{-1} B.
Newton steps are projected onto nu >= 0, so A stays positive semi-definite and an
atom with a positive multiplier has unit norm; a slack atom keeps nu = 0.
Only active atoms (nonzero code rows) enter the solve; inactive atoms are
reseeded from the data.

Reference: Lee, Battle, Raina & Ng (2007). Efficient sparse coding algorithms.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import linalg

from ..array import ArrayLike, neighbor_counts, partition_atoms, remove_rows
from ..initialization import random_data_atom
from ..interfaces import CancelToken, ProgressSink
from ...exceptions import (
    EncodingCancelled,
    IllConditionedDictionaryUpdate,
    NewtonNonConvergence,
)

logger = logging.getLogger(__name__)

# Armijo backtracking constants
ARMIJO_C = 1e-4
ARMIJO_RHO = 0.9

RESEED_COLUMNS = 3


@dataclass
class DictionaryUpdate:
    """Outcome of one dictionary step."""
    dictionary: np.ndarray
    active_atoms: np.ndarray
    inactive_atoms: np.ndarray
    dual_variables: np.ndarray
    newton_iterations: int
    neighbor_counts: np.ndarray


def _solve(matrix: np.ndarray, rhs: np.ndarray, what: str) -> np.ndarray:
    """Dense solve that refuses singular or ill-conditioned systems."""
    with warnings.catch_warnings():
        warnings.simplefilter("error", linalg.LinAlgWarning)
        try:
            solution = linalg.solve(matrix, rhs)
        except (linalg.LinAlgError, linalg.LinAlgWarning, ValueError) as exc:
            raise IllConditionedDictionaryUpdate(
                f"ill-conditioned dictionary update: {what} cannot be solved ({exc})"
            ) from exc

    if not np.all(np.isfinite(solution)):
        raise IllConditionedDictionaryUpdate(
            f"ill-conditioned dictionary update: {what} gave non-finite values"
        )
    return solution


class DualNewtonUpdate:
    """Least-squares dictionary update with atoms constrained to the unit ball.

    Args:
        newton_tolerance: Stop once one Newton step improves the dual by less
        max_newton_iterations: Hard bound on Newton steps
        max_line_search_steps: Hard bound on Armijo backtracks per step
        rng: Generator used to reseed inactive atoms
        progress: Optional diagnostics sink
    """

    def __init__(self,
                 newton_tolerance: float = 1e-6,
                 max_newton_iterations: int = 100,
                 max_line_search_steps: int = 200,
                 rng: Optional[np.random.Generator] = None,
                 progress: Optional[ProgressSink] = None):
        self.newton_tolerance = newton_tolerance
        self.max_newton_iterations = max_newton_iterations
        self.max_line_search_steps = max_line_search_steps
        self.rng = rng if rng is not None else np.random.default_rng()
        self.progress = progress

    def update(self,
               codes: ArrayLike,
               adjacency: ArrayLike,
               data: ArrayLike,
               cancel: Optional[CancelToken] = None) -> DictionaryUpdate:
        """Compute the next dictionary.

        Args:
            codes: Current codes Z (n_atoms, n_samples)
            adjacency: Flat column-major indices of the nonzeros of Z
            data: Data matrix X (n_features, n_samples)
            cancel: Checked between Newton iterations

        Returns:
            DictionaryUpdate with the new (n_features, n_atoms) dictionary
        """
        codes = np.asarray(codes, dtype=float)
        data = np.asarray(data, dtype=float)
        atoms, samples = codes.shape

        counts = neighbor_counts(adjacency, atoms, samples)
        active, inactive = partition_atoms(codes)

        if inactive.size > 0:
            logger.warning("There are %d inactive atoms. They will be re-initialized randomly.",
                           inactive.size)
            self._record("inactive_atoms", count=int(inactive.size), atoms=atoms)

        dictionary = np.zeros((data.shape[0], atoms))
        dual = np.zeros(active.size)
        iterations = 0

        if active.size > 0:
            active_codes = remove_rows(codes, inactive) if inactive.size > 0 else codes
            codes_xt = active_codes @ data.T
            codes_zt = active_codes @ active_codes.T

            logger.debug("Solving dual via Newton's method for %d active atoms.", active.size)
            dual, iterations = self._solve_dual(codes_zt, codes_xt, cancel)

            estimate = _solve(codes_zt + np.diag(dual), codes_xt, "ZZ^T + diag(nu)").T
            dictionary[:, active] = estimate

        for atom in inactive:
            dictionary[:, atom] = random_data_atom(data, self.rng, RESEED_COLUMNS)

        return DictionaryUpdate(
            dictionary=dictionary,
            active_atoms=active,
            inactive_atoms=inactive,
            dual_variables=dual,
            newton_iterations=iterations,
            neighbor_counts=counts,
        )

    def _solve_dual(self,
                    codes_zt: np.ndarray,
                    codes_xt: np.ndarray,
                    cancel: Optional[CancelToken]) -> Tuple[np.ndarray, int]:
        """Projected Newton iterations on f(nu) over nu >= 0."""
        n_active = codes_zt.shape[0]
        dual = np.zeros(n_active)
        identity = np.eye(n_active)
        improvement = np.inf

        for t in range(1, self.max_newton_iterations + 1):
            if cancel is not None and cancel.is_set():
                raise EncodingCancelled("cancelled during the dual Newton solve")

            a = codes_zt + np.diag(dual)
            a_inv_zxt = _solve(a, codes_xt, "ZZ^T + diag(nu)")
            a_inv = _solve(a, identity, "ZZ^T + diag(nu)")

            gradient = 1.0 - np.sum(a_inv_zxt ** 2, axis=1)
            hessian = 2.0 * (a_inv_zxt @ a_inv_zxt.T) * a_inv
            f_old = float(np.sum(codes_xt * a_inv_zxt)) + float(np.sum(dual))
            grad_norm = float(np.linalg.norm(gradient))

            # Multipliers at zero with a positive gradient stay at zero
            free = (dual > 0) | (gradient <= 0)
            direction = np.zeros(n_active)
            if np.any(free):
                direction[free] = -_solve(hessian[np.ix_(free, free)], gradient[free],
                                          "dual Hessian")
            slope = float(gradient @ direction)
            if not slope <= 0:
                logger.debug("Newton direction is not a descent direction (slope %.3e); "
                             "using the projected gradient.", slope)
                direction = np.where(free, -gradient, 0.0)
                slope = float(gradient @ direction)

            if -0.5 * slope < self.newton_tolerance:
                logger.debug("Newton iteration %d: decrement %.3e below tolerance.", t, -0.5 * slope)
                self._record("newton_iteration", iteration=t, gradient_norm=grad_norm,
                             improvement=0.0)
                return dual, t

            accepted = self._line_search(codes_zt, codes_xt, dual, direction, gradient, f_old)
            if accepted is None:
                fallback = np.where(free, -gradient, 0.0)
                if not np.array_equal(fallback, direction):
                    logger.debug("Newton step rejected by the line search; "
                                 "trying the projected gradient.")
                    accepted = self._line_search(codes_zt, codes_xt, dual, fallback,
                                                 gradient, f_old)
            if accepted is None:
                raise NewtonNonConvergence(
                    t, improvement,
                    reason=f"Armijo line search found no acceptable step at Newton iteration {t}",
                )
            dual, improvement = accepted

            logger.debug("Newton iteration %d: gradient norm %.3e, improvement %.3e",
                         t, grad_norm, improvement)
            self._record("newton_iteration", iteration=t, gradient_norm=grad_norm,
                         improvement=improvement)

            if improvement < self.newton_tolerance:
                return dual, t

        raise NewtonNonConvergence(self.max_newton_iterations, improvement)

    def _line_search(self,
                     codes_zt: np.ndarray,
                     codes_xt: np.ndarray,
                     dual: np.ndarray,
                     direction: np.ndarray,
                     gradient: np.ndarray,
                     f_old: float) -> Optional[Tuple[np.ndarray, float]]:
        """
        Armijo backtracking along the projection of nu + alpha * d onto nu >= 0.

        Returns (new nu, objective decrease), or None when no step within
        ``max_line_search_steps`` backtracks gives sufficient decrease.
        """
        alpha = 1.0

        for _ in range(self.max_line_search_steps):
            trial = np.maximum(dual + alpha * direction, 0.0)
            if np.array_equal(trial, dual):
                return None  # the projection removes the whole step
            try:
                f_new = self._dual_objective(codes_zt, codes_xt, trial)
            except IllConditionedDictionaryUpdate:
                f_new = np.inf  # unsolvable trial point, backtrack

            # The projection can turn the slope positive; an accepted step never raises f
            slope = min(float(gradient @ (trial - dual)), 0.0)
            if f_new <= f_old + ARMIJO_C * slope:
                return trial, f_old - f_new

            alpha *= ARMIJO_RHO

        logger.debug("Armijo line search exhausted after %d steps.", self.max_line_search_steps)
        return None

    @staticmethod
    def _dual_objective(codes_zt: np.ndarray, codes_xt: np.ndarray, dual: np.ndarray) -> float:
        solved = _solve(codes_zt + np.diag(dual), codes_xt, "ZZ^T + diag(nu)")
        return float(np.sum(codes_xt * solved)) + float(np.sum(dual))

    def _record(self, event: str, **fields) -> None:
        if self.progress is not None:
            self.progress.record(event, **fields)

    @property
    def name(self) -> str:
        return "dual_newton"
