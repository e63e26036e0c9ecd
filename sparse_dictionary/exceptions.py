"""
Error types raised by the dictionary learning engine.

Every error is a ``SparseCodingError`` (itself a ``ValueError``) so callers can
catch the whole family in one place.
"""

from typing import Optional


class SparseCodingError(ValueError):
    """Base class for sparse coding specific errors."""
    pass


class InvalidConfigurationError(SparseCodingError):
    """Parameters or inputs rejected before any computation starts."""
    pass


class RegressionFailure(SparseCodingError):
    """The sparse regression for one sample could not be solved."""

    def __init__(self, reason: str, sample_index: Optional[int] = None):
        self.reason = reason
        self.sample_index = sample_index
        if sample_index is None:
            message = reason
        else:
            message = f"sample {sample_index}: {reason}"
        super().__init__(message)


class IllConditionedDictionaryUpdate(SparseCodingError):
    """A (near-)singular linear system was met during the dual Newton solve."""
    pass


class NewtonNonConvergence(SparseCodingError):
    """The dual Newton solve did not converge within its iteration bound."""

    def __init__(self, iterations: int, improvement: float, reason: Optional[str] = None):
        self.iterations = iterations
        self.improvement = improvement
        self.reason = reason
        if reason is None:
            reason = f"Newton solver did not converge within {iterations} iterations"
        super().__init__(f"{reason} (last improvement {improvement:.3e})")


class EncodingCancelled(SparseCodingError):
    """Raised inside a step when the caller's cancel flag is observed."""
    pass
