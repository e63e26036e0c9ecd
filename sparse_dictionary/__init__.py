from .__about__ import __version__

from .dictionary_learner import (
    DictionaryLearner, EncodeResult, EncodeStatus, project_dictionary
)
from .sparse_coder import SparseCoder
from .config import SparseCodingConfig, make_config

from .core import (
    remove_rows, adjacencies, neighbor_counts, partition_atoms, nonzero_fraction,
    objective,
    DualNewtonUpdate, DictionaryUpdate,
    LarsRegressor, CoordinateDescentRegressor,
    DataDependentRandomInitializer, RandomInitializer, SampleInitializer, FixedInitializer,
)

from .exceptions import (
    SparseCodingError, InvalidConfigurationError, RegressionFailure,
    IllConditionedDictionaryUpdate, NewtonNonConvergence, EncodingCancelled,
)

from .monitoring import LoggingSink, JsonLogSink, HistorySink
from .sklearn_estimator import SparseCodingEstimator

__all__ = [
    # Version
    "__version__",

    # Alternating optimizer
    "DictionaryLearner", "EncodeResult", "EncodeStatus", "project_dictionary",

    # Coding step
    "SparseCoder", "LarsRegressor", "CoordinateDescentRegressor",

    # Dictionary step
    "DualNewtonUpdate", "DictionaryUpdate",

    # Building blocks
    "remove_rows", "adjacencies", "neighbor_counts", "partition_atoms",
    "nonzero_fraction", "objective",

    # Initializers
    "DataDependentRandomInitializer", "RandomInitializer", "SampleInitializer",
    "FixedInitializer",

    # Configuration
    "SparseCodingConfig", "make_config",

    # Errors
    "SparseCodingError", "InvalidConfigurationError", "RegressionFailure",
    "IllConditionedDictionaryUpdate", "NewtonNonConvergence", "EncodingCancelled",

    # Diagnostics
    "LoggingSink", "JsonLogSink", "HistorySink",

    # scikit-learn adapter
    "SparseCodingEstimator",
]
