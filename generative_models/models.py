"""
Gaussian generative classifiers with a fit/predict estimator interface.

Implements:
- GaussianNB: independent features per class (diagonal covariance)
- QuadraticDiscriminantAnalysis: full covariance per class
- LinearDiscriminantAnalysis: one covariance shared by all classes

All three share one engine (GaussianClassifier) and differ only in the
covariance mode:

    P(y|x) ∝ P(y) * N(x | mu_y, Sigma_y)

    Naive Bayes: Sigma_y = diag(sigma_y^2)
    QDA:         Sigma_y per class  -> quadratic boundaries
    LDA:         Sigma_y = Sigma    -> linear boundaries
"""

from typing import Optional

import numpy as np

from config import EngineConfig
from .classifier import FittedModel, GaussianClassifier
from .covariance import CovarianceMode
from .errors import NotFittedError


class _GaussianEstimator:
    """Shared fit/predict plumbing; subclasses set the covariance mode."""

    mode: CovarianceMode = CovarianceMode.PER_CLASS

    def __init__(self, priors=None, config: Optional[EngineConfig] = None):
        """
        Args:
            priors: Optional fixed class priors (default: class frequencies)
            config: Engine configuration
        """
        self.priors = priors
        self.config = config or EngineConfig()
        self.model_: Optional[FittedModel] = None

    def fit(self, X: np.ndarray, y: np.ndarray):
        """
        Fit the model.

        Args:
            X: Training features (n_samples, n_features)
            y: Training labels (n_samples,)

        Returns:
            self
        """
        # Assigned only after a successful fit
        self.model_ = GaussianClassifier(self.mode, self.config).fit(X, y, priors=self.priors)
        return self

    def _check_fitted(self) -> FittedModel:
        if self.model_ is None:
            raise NotFittedError(f"{type(self).__name__} not fitted. Call fit() first.")
        return self.model_

    @property
    def classes_(self) -> np.ndarray:
        return self._check_fitted().classes

    @property
    def priors_(self) -> np.ndarray:
        return self._check_fitted().priors

    @property
    def means_(self) -> np.ndarray:
        return self._check_fitted().get_params()['means']

    @property
    def covariances_(self) -> np.ndarray:
        return self._check_fitted().get_params()['covariances']

    def predict_log_proba(self, X: np.ndarray, priors=None) -> np.ndarray:
        """
        Predict log probabilities.

        Args:
            X: Feature matrix
            priors: Optional prior override for this call

        Returns:
            Log probability matrix (n_samples, n_classes)
        """
        return self._check_fitted().predict_log_proba(X, priors=priors)

    def predict_proba(self, X: np.ndarray, priors=None) -> np.ndarray:
        """
        Predict class probabilities.

        Args:
            X: Feature matrix
            priors: Optional prior override for this call

        Returns:
            Probability matrix (n_samples, n_classes)
        """
        return self._check_fitted().predict_proba(X, priors=priors)

    def predict(self, X: np.ndarray, threshold: Optional[float] = None, priors=None) -> np.ndarray:
        """
        Predict class labels.

        Args:
            X: Feature matrix
            threshold: Binary only, P(positive) cutoff (default 0.5)
            priors: Optional prior override for this call

        Returns:
            Predicted class labels
        """
        return self._check_fitted().predict(X, threshold=threshold, priors=priors)

    def score(self, X: np.ndarray, y: np.ndarray) -> float:
        """Calculate accuracy."""
        return self._check_fitted().score(X, y)

    def get_params(self) -> dict:
        """Get model parameters."""
        return self._check_fitted().get_params()


class GaussianNB(_GaussianEstimator):
    """
    Gaussian Naive Bayes Classifier.

    Assumes features are conditionally independent given the class:
    P(xi|y) = (1 / sqrt(2π * σ²)) * exp(-(xi - μ)² / (2σ²))

    Prediction:
    y_pred = argmax_y [ log P(y) + Σ log P(xi|y) ]
    """

    mode = CovarianceMode.DIAGONAL

    @property
    def theta_(self) -> np.ndarray:
        """Mean of each feature per class."""
        return self.means_

    @property
    def var_(self) -> np.ndarray:
        """Variance of each feature per class."""
        return np.array([np.diag(cov) for cov in self.covariances_])


class QuadraticDiscriminantAnalysis(_GaussianEstimator):
    """
    Quadratic Discriminant Analysis.

    Each class has its own mean and full covariance:
    g_k(x) = log π_k - 0.5 * log|Σ_k| - 0.5 * (x - μ_k)^T Σ_k^(-1) (x - μ_k)
    """

    mode = CovarianceMode.PER_CLASS


class LinearDiscriminantAnalysis(_GaussianEstimator):
    """
    Linear Discriminant Analysis (Gaussian classifier with shared covariance).

    The shared covariance makes the quadratic term identical for every class,
    leaving a linear discriminant:
    g_k(x) = x^T Σ^(-1) μ_k - 0.5 * μ_k^T Σ^(-1) μ_k + log π_k
    """

    mode = CovarianceMode.POOLED

    @property
    def covariance_(self) -> np.ndarray:
        """The shared covariance matrix."""
        return self.covariances_[0]

    def decision_boundary(self):
        """(w, b) with log-odds(x) = w^T x + b; binary models only."""
        return self._check_fitted().linear_boundary()
