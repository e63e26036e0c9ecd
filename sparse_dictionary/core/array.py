"""
Dense array utilities shared by the coding and dictionary steps.

Index conventions follow the (atoms, samples) layout of the code matrix:
flat adjacency indices are column-major, i.e. ``sample * atoms + atom``.
"""

from typing import Any, Tuple

import numpy as np

ArrayLike = Any  # anything np.asarray accepts


def remove_rows(matrix: ArrayLike, rows_to_remove: ArrayLike) -> np.ndarray:
    """
    Copy of ``matrix`` without the given rows.

    Kept rows stay in their original order and every column is preserved.
    Each run of kept rows between two removed indices is copied as a single
    block, so the cost is linear in the number of entries.

    Args:
        matrix: 2-D array (rows, cols)
        rows_to_remove: Row indices sorted ascending, no duplicates

    Returns:
        Array of shape (rows - len(rows_to_remove), cols)

    Raises:
        ValueError: If the indices are unsorted, duplicated or out of range
    """
    matrix = np.asarray(matrix)
    if matrix.ndim != 2:
        raise ValueError(f"matrix must be 2D, got {matrix.ndim}D")

    remove = np.asarray(rows_to_remove, dtype=np.intp).ravel()
    n_rows = matrix.shape[0]
    if remove.size == 0:
        return matrix.copy()

    if np.any(np.diff(remove) <= 0):
        raise ValueError("rows_to_remove must be sorted ascending without duplicates")
    if remove[0] < 0 or remove[-1] >= n_rows:
        raise ValueError(f"rows_to_remove out of range for a matrix with {n_rows} rows")

    result = np.empty((n_rows - remove.size, matrix.shape[1]), dtype=matrix.dtype)
    cur_row = 0
    block_start = 0
    for removed in remove:
        height = removed - block_start
        if height > 0:
            result[cur_row:cur_row + height] = matrix[block_start:removed]
            cur_row += height
        block_start = removed + 1

    # Trailing block after the last removed row
    if block_start < n_rows:
        result[cur_row:] = matrix[block_start:]

    return result


def adjacencies(codes: ArrayLike) -> np.ndarray:
    """Ascending column-major flat indices of the nonzero entries of ``codes``."""
    codes = np.asarray(codes)
    return np.flatnonzero(codes.ravel(order="F"))


def neighbor_counts(adjacency: ArrayLike, atoms: int, samples: int) -> np.ndarray:
    """Number of nonzero codes (atomic neighbours) of every sample."""
    adjacency = np.asarray(adjacency, dtype=np.intp)
    if adjacency.size == 0:
        return np.zeros(samples, dtype=np.intp)
    # Intentional integer division: the column index of each flat entry
    return np.bincount(adjacency // atoms, minlength=samples)


def partition_atoms(codes: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split atoms into (active, inactive) index arrays.

    An atom is active iff its row of ``codes`` has at least one nonzero entry.
    """
    codes = np.asarray(codes)
    used = np.any(codes != 0, axis=1)
    return np.flatnonzero(used), np.flatnonzero(~used)


def nonzero_fraction(codes: ArrayLike) -> float:
    """Fraction of entries of ``codes`` that are exactly nonzero."""
    codes = np.asarray(codes)
    if codes.size == 0:
        return 0.0
    return float(np.count_nonzero(codes)) / codes.size


def normalize_columns(matrix: ArrayLike) -> np.ndarray:
    """Scale every column to unit Euclidean norm; zero columns stay zero."""
    matrix = np.asarray(matrix, dtype=float)
    norms = np.linalg.norm(matrix, axis=0, keepdims=True)
    norms = np.where(norms < 1e-12, 1.0, norms)
    return matrix / norms
