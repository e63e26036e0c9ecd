"""
Dictionary update algorithms.

Implements the norm-constrained (||d_j|| <= 1) least-squares dictionary step solved in
its Lagrangian dual (Lee et al. 2007).
"""

from .dual_newton_update import DualNewtonUpdate, DictionaryUpdate

__all__ = [
    'DualNewtonUpdate',
    'DictionaryUpdate',
]
