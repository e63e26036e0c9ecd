"""
Per-sample sparse regression solvers.

Each solver implements the ``SparseRegressor`` protocol:
minimize 0.5||x - Dz||² + λ1||z||₁ + 0.5 λ2||z||²
"""

from .lars_regression import LarsRegressor
from .coordinate_descent import CoordinateDescentRegressor

__all__ = [
    'LarsRegressor',
    'CoordinateDescentRegressor',
]
