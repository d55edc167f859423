"""
Per-class Gaussian parameter estimation.

One estimator covers the three members of the Gaussian generative family,
selected by a CovarianceMode tag:

- PER_CLASS (QDA): each class gets its own sample covariance
- POOLED (LDA): one covariance shared by every class
- DIAGONAL (Naive Bayes): per-feature variances, correlations ignored

All covariances use the unbiased (n - 1) denominator.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Sequence, Union

import numpy as np

from config import EngineConfig
from .dataset import Dataset
from .errors import InsufficientDataError, plain_label
from .posterior import resolve_priors

logger = logging.getLogger(__name__)


class CovarianceMode(Enum):
    """How class covariances are shared."""
    PER_CLASS = "per_class"
    POOLED = "pooled"
    DIAGONAL = "diagonal"

    @classmethod
    def parse(cls, mode: Union['CovarianceMode', str]) -> 'CovarianceMode':
        """Accept an enum member or its value/name, e.g. 'pooled' or 'POOLED'."""
        if isinstance(mode, cls):
            return mode
        key = str(mode).strip()
        for member in cls:
            if key.lower() in (member.value, member.name.lower()):
                return member
        aliases = {'qda': cls.PER_CLASS, 'lda': cls.POOLED, 'naive_bayes': cls.DIAGONAL, 'nb': cls.DIAGONAL}
        if key.lower() in aliases:
            return aliases[key.lower()]
        raise ValueError(f"Unknown covariance mode '{mode}'. Choose from {[m.value for m in cls]}")


@dataclass(frozen=True, eq=False)
class ClassParameters:
    """
    Gaussian parameters of one class.

    Attributes:
        label: Class label
        mean: Mean vector (n_features,)
        covariance: Covariance matrix (n_features, n_features); diagonal in
            DIAGONAL mode
        prior: Prior probability P(y = label)
        n_samples: Training samples seen for this class
    """
    label: object
    mean: np.ndarray
    covariance: np.ndarray
    prior: float
    n_samples: int

    @property
    def variances(self) -> np.ndarray:
        return np.diag(self.covariance).copy()

    def with_prior(self, prior: float) -> 'ClassParameters':
        """Copy with a different prior; the arrays are shared, not copied."""
        return replace(self, prior=float(prior))

    def to_dict(self) -> dict:
        """Plain-Python view of the parameters (lists and floats)."""
        return {
            'label': plain_label(self.label),
            'mean': self.mean.tolist(),
            'covariance': self.covariance.tolist(),
            'prior': self.prior,
            'n_samples': self.n_samples,
        }


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _center(X: np.ndarray, mean: np.ndarray) -> np.ndarray:
    """X - mean, with constant columns exactly zero (no rounding residue in the mean)."""
    centered = X - mean
    centered[:, np.all(X == X[0], axis=0)] = 0.0
    return centered


def sample_covariance(X: np.ndarray) -> np.ndarray:
    """Unbiased sample covariance of the rows of X (n_samples >= 2)."""
    centered = _center(X, np.mean(X, axis=0))
    return centered.T @ centered / (len(X) - 1)


def sample_variances(X: np.ndarray) -> np.ndarray:
    """Unbiased per-feature variances, matching the diagonal of sample_covariance."""
    centered = _center(X, np.mean(X, axis=0))
    return np.sum(centered ** 2, axis=0) / (len(X) - 1)


def _scatter(X: np.ndarray, mean: np.ndarray) -> np.ndarray:
    centered = _center(X, mean)
    return centered.T @ centered


def required_samples(mode: CovarianceMode, n_features: int) -> int:
    """Minimum samples per class for a non-degenerate estimate."""
    if mode is CovarianceMode.PER_CLASS:
        return n_features + 1
    if mode is CovarianceMode.DIAGONAL:
        return 2
    return 1


def estimate_class_parameters(dataset: Dataset,
                              mode: Union[CovarianceMode, str],
                              priors=None,
                              config: Optional[EngineConfig] = None) -> 'OrderedDict[object, ClassParameters]':
    """
    Estimate mean, covariance and prior for every class in the dataset.

    Args:
        dataset: Training data (not modified)
        mode: Covariance sharing mode
        priors: Optional prior override, a mapping label -> prior or a
            sequence ordered like the sorted classes
        config: Engine configuration (pooling strategy, smoothing, tolerance)

    Returns:
        OrderedDict label -> ClassParameters, in sorted label order

    Raises:
        InsufficientDataError: a class has too few samples for the mode
        InvalidPriorError: the prior override is malformed
    """
    mode = CovarianceMode.parse(mode)
    config = (config or EngineConfig()).validate()

    X, y = dataset.X, dataset.y
    classes = np.unique(y)
    n_samples, n_features = X.shape
    n_classes = len(classes)

    # Class statistics
    groups = [X[y == cls] for cls in classes]
    counts = np.array([len(g) for g in groups])
    n_required = required_samples(mode, n_features)
    if mode is CovarianceMode.POOLED and config.pooling == "average":
        n_required = 2
    for cls, count in zip(classes, counts):
        if count < n_required:
            raise InsufficientDataError(label=cls, n_samples=int(count), n_required=n_required)

    means = [np.mean(g, axis=0) for g in groups]

    if mode is CovarianceMode.PER_CLASS:
        covariances = [sample_covariance(g) for g in groups]
    elif mode is CovarianceMode.DIAGONAL:
        covariances = [np.diag(sample_variances(g)) for g in groups]
    else:
        shared = _pooled_covariance(groups, means, n_features, config.pooling)
        covariances = [shared] * n_classes

    if config.var_smoothing > 0:
        logger.info("Adding var_smoothing=%g to every covariance", config.var_smoothing)
        ridge = config.var_smoothing * np.eye(n_features)
        if mode is CovarianceMode.POOLED:
            shared = covariances[0] + ridge
            covariances = [shared] * n_classes
        else:
            covariances = [cov + ridge for cov in covariances]

    if mode is CovarianceMode.POOLED:
        _readonly(covariances[0])
    else:
        covariances = [_readonly(cov) for cov in covariances]

    empirical = counts / n_samples
    class_priors = empirical if priors is None else resolve_priors(priors, classes, config.prior_tolerance)

    logger.debug(
        "Estimated %s parameters: %d classes, %d features, counts=%s",
        mode.value, n_classes, n_features, dict(zip(classes.tolist(), counts.tolist())),
    )

    params = OrderedDict()
    for i, cls in enumerate(classes):
        params[cls] = ClassParameters(
            label=cls,
            mean=_readonly(means[i]),
            covariance=covariances[i],
            prior=float(class_priors[i]),
            n_samples=int(counts[i]),
        )
    return params


def _pooled_covariance(groups: Sequence[np.ndarray], means: Sequence[np.ndarray],
                       n_features: int, pooling: str) -> np.ndarray:
    """
    Shared covariance for LDA.

    weighted: S = sum_k (n_k - 1) S_k / (n - K), the pooled within-class covariance
    average:  S = (1 / K) sum_k S_k, the unweighted mean of class covariances
    """
    n_samples = sum(len(g) for g in groups)
    n_classes = len(groups)
    dof = n_samples - n_classes
    if dof < n_features:
        # Too few residual degrees of freedom for a full-rank shared matrix
        raise InsufficientDataError(label=None, n_samples=n_samples,
                                    n_required=n_features + n_classes)

    if pooling == "average":
        return sum(sample_covariance(g) for g in groups) / n_classes

    S_W = np.zeros((n_features, n_features))
    for X_cls, mean in zip(groups, means):
        S_W += _scatter(X_cls, mean)
    return S_W / dof


def class_parameter_arrays(parameters: Sequence[ClassParameters]) -> Dict[str, np.ndarray]:
    """Stack per-class parameters into arrays, keeping their order."""
    values = list(parameters)
    return {
        'classes': np.array([p.label for p in values]),
        'means': np.vstack([p.mean for p in values]),
        'covariances': np.stack([p.covariance for p in values]),
        'priors': np.array([p.prior for p in values]),
        'counts': np.array([p.n_samples for p in values]),
    }
