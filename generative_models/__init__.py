"""
Gaussian Generative Classifiers - built from scratch on NumPy.

Class-conditional Gaussian densities combined with class priors through
Bayes' rule:

    P(y=k|x) = π_k f_k(x) / Σ_j π_j f_j(x)

Engine:
- Dataset / Sample: read-only labeled training data
- estimate_class_parameters: per-class means, covariances and priors
- GaussianDensity: Cholesky-factorized log-density evaluation
- posterior / log_posterior: log-space Bayes' rule with log-sum-exp
- GaussianClassifier / FittedModel: fit, predict, predict_proba

Estimators:
- GaussianNB: diagonal covariance (Naive Bayes)
- QuadraticDiscriminantAnalysis: per-class covariance (QDA)
- LinearDiscriminantAnalysis: pooled covariance (LDA)
"""

# Engine
from .dataset import Dataset, Sample
from .covariance import ClassParameters, CovarianceMode, estimate_class_parameters
from .density import GaussianDensity
from .posterior import (
    validate_priors,
    resolve_priors,
    joint_log_likelihood,
    log_posterior,
    posterior,
    log_odds,
)
from .classifier import FittedModel, GaussianClassifier

# Estimators
from .models import GaussianNB, QuadraticDiscriminantAnalysis, LinearDiscriminantAnalysis

# Errors
from .errors import (
    GenerativeModelError,
    InsufficientDataError,
    SingularCovarianceError,
    DimensionMismatchError,
    InvalidPriorError,
    UndefinedPosteriorError,
    NotFittedError,
    Outcome,
    attempt,
)

# Utilities
from .log import configure_logging
from .synthetic import make_gaussian_classes

__all__ = [
    # Engine
    'Dataset',
    'Sample',
    'ClassParameters',
    'CovarianceMode',
    'estimate_class_parameters',
    'GaussianDensity',
    'validate_priors',
    'resolve_priors',
    'joint_log_likelihood',
    'log_posterior',
    'posterior',
    'log_odds',
    'FittedModel',
    'GaussianClassifier',

    # Estimators
    'GaussianNB',
    'QuadraticDiscriminantAnalysis',
    'LinearDiscriminantAnalysis',

    # Errors
    'GenerativeModelError',
    'InsufficientDataError',
    'SingularCovarianceError',
    'DimensionMismatchError',
    'InvalidPriorError',
    'UndefinedPosteriorError',
    'NotFittedError',
    'Outcome',
    'attempt',

    # Utilities
    'configure_logging',
    'make_gaussian_classes',
]
