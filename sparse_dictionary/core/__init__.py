"""
Core numerical building blocks: array utilities, objective, regression
solvers, initialisers and the dictionary update.
"""

from .array import (
    adjacencies,
    neighbor_counts,
    nonzero_fraction,
    normalize_columns,
    partition_atoms,
    remove_rows,
)
from .objective import objective
from .dictionary import DualNewtonUpdate, DictionaryUpdate
from .inference import LarsRegressor, CoordinateDescentRegressor
from .initialization import (
    DataDependentRandomInitializer,
    FixedInitializer,
    RandomInitializer,
    SampleInitializer,
    random_data_atom,
)

__all__ = [
    'adjacencies', 'neighbor_counts', 'nonzero_fraction', 'normalize_columns',
    'partition_atoms', 'remove_rows',
    'objective',
    'DualNewtonUpdate', 'DictionaryUpdate',
    'LarsRegressor', 'CoordinateDescentRegressor',
    'DataDependentRandomInitializer', 'FixedInitializer', 'RandomInitializer',
    'SampleInitializer', 'random_data_atom',
]
