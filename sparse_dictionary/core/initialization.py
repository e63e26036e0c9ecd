"""
Dictionary initialisation strategies.

Every strategy implements the ``DictionaryInitializer`` protocol and draws all
randomness from the generator handed in by the learner, so a run is fully
determined by its seed.
"""

from typing import Optional

import numpy as np

from .array import ArrayLike, normalize_columns
from ..exceptions import InvalidConfigurationError


def random_data_atom(data: np.ndarray,
                     rng: np.random.Generator,
                     columns: int = 3) -> np.ndarray:
    """
    Sum of ``columns`` data columns drawn uniformly with replacement,
    scaled to unit norm. A zero sum is returned unscaled.
    """
    picks = rng.integers(0, data.shape[1], size=columns)
    atom = data[:, picks].sum(axis=1)
    norm = np.linalg.norm(atom)
    if norm > 0:
        atom /= norm
    return atom


class DataDependentRandomInitializer:
    """Each atom is the normalised sum of three random data columns.

    Columns are drawn independently per atom. This is the same rule used to
    reseed atoms that fall out of use.
    """

    def __init__(self, columns_per_atom: int = 3):
        self.columns_per_atom = columns_per_atom

    def initialize(self, data: ArrayLike, atoms: int, rng: np.random.Generator) -> np.ndarray:
        data = np.asarray(data, dtype=float)
        dictionary = np.empty((data.shape[0], atoms))
        for j in range(atoms):
            dictionary[:, j] = random_data_atom(data, rng, self.columns_per_atom)
        return dictionary


class RandomInitializer:
    """Gaussian atoms scaled to unit norm."""

    def initialize(self, data: ArrayLike, atoms: int, rng: np.random.Generator) -> np.ndarray:
        n_features = np.asarray(data).shape[0]
        return normalize_columns(rng.standard_normal((n_features, atoms)))


class SampleInitializer:
    """Distinct random data columns, normalised.

    Falls back to sampling with replacement when there are fewer samples
    than atoms.
    """

    def initialize(self, data: ArrayLike, atoms: int, rng: np.random.Generator) -> np.ndarray:
        data = np.asarray(data, dtype=float)
        n_samples = data.shape[1]
        idx = rng.choice(n_samples, size=atoms, replace=atoms > n_samples)
        return normalize_columns(data[:, idx].copy())


class FixedInitializer:
    """Use a caller-supplied dictionary as is."""

    def __init__(self, dictionary: ArrayLike):
        self.dictionary = np.array(dictionary, dtype=float)

    def initialize(self,
                   data: ArrayLike,
                   atoms: int,
                   rng: Optional[np.random.Generator] = None) -> np.ndarray:
        expected = (np.asarray(data).shape[0], atoms)
        if self.dictionary.shape != expected:
            raise InvalidConfigurationError(
                f"initial dictionary has shape {self.dictionary.shape}, expected {expected}"
            )
        return self.dictionary.copy()
