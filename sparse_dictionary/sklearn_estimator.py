import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_array, check_is_fitted

from .config import make_config
from .dictionary_learner import DictionaryLearner, EncodeStatus
from .sparse_coder import SparseCoder


class SparseCodingEstimator(BaseEstimator, TransformerMixin):
    """scikit-learn wrapper; rows of X are samples, as usual in scikit-learn.

    After ``fit``: ``components_`` is the dictionary as (n_atoms, n_features),
    ``n_iter_`` the number of outer iterations, ``objective_`` the final
    objective and ``status_`` the run status.
    """

    def __init__(self, n_atoms=8, lambda1=0.1, lambda2=0.0, max_iter=50, tol=1e-2,
                 n_jobs=1, seed=0):
        self.n_atoms = n_atoms
        self.lambda1 = lambda1
        self.lambda2 = lambda2
        self.max_iter = max_iter
        self.tol = tol
        self.n_jobs = n_jobs
        self.seed = seed

    def _config(self):
        return make_config(atoms=self.n_atoms, lambda1=self.lambda1, lambda2=self.lambda2,
                           max_iterations=self.max_iter, objective_tolerance=self.tol,
                           n_jobs=self.n_jobs, seed=self.seed)

    def fit(self, X, y=None):
        X = check_array(X, dtype=float)
        learner = DictionaryLearner(X.T, self._config())
        result = learner.encode()
        if result.status is EncodeStatus.FAILED:
            result.raise_for_status()
        self.components_ = result.dictionary.T
        self.n_iter_ = result.iterations
        self.objective_ = result.final_objective
        self.status_ = result.status.value
        return self

    def transform(self, X):
        check_is_fitted(self, "components_")
        X = check_array(X, dtype=float)
        coder = SparseCoder(lambda1=self.lambda1, lambda2=self.lambda2, n_jobs=self.n_jobs)
        return coder.encode(self.components_.T, X.T).T

    def inverse_transform(self, A):
        check_is_fitted(self, "components_")
        A = np.asarray(A, dtype=float)
        return A @ self.components_
