"""
Bayes' rule in log space.

    log P(y=k|x) = log pi_k + log f_k(x) - log sum_j exp(log pi_j + log f_j(x))

The normalizer uses the max-shift log-sum-exp so extreme log-densities
neither overflow nor underflow. Priors are passed in per call, so a
prevalence correction never requires re-estimating the densities.
"""

from typing import Mapping, Optional

import numpy as np

from config import PRIOR_TOLERANCE
from .errors import InvalidPriorError, UndefinedPosteriorError, plain_label


def validate_priors(priors, n_classes: int, tolerance: float = PRIOR_TOLERANCE) -> np.ndarray:
    """
    Check a prior vector.

    Args:
        priors: Sequence of class priors
        n_classes: Expected number of entries
        tolerance: Allowed deviation of the sum from 1

    Returns:
        Priors as a float array (n_classes,)

    Raises:
        InvalidPriorError: wrong length, entry outside [0, 1], or sum != 1
    """
    priors = np.asarray(priors, dtype=np.float64).ravel()

    if priors.shape[0] != n_classes:
        raise InvalidPriorError(f"Expected {n_classes} priors, got {priors.shape[0]}")
    if not np.all(np.isfinite(priors)) or np.any(priors < 0) or np.any(priors > 1):
        raise InvalidPriorError(f"Priors must lie in [0, 1], got {priors.tolist()}")
    total = np.sum(priors)
    if abs(total - 1.0) > tolerance:
        raise InvalidPriorError(f"Priors must sum to 1, got {total:.12g}")

    return priors


def resolve_priors(priors, classes, tolerance: float = PRIOR_TOLERANCE) -> np.ndarray:
    """
    Turn a prior override into a vector ordered like `classes`.

    Args:
        priors: Mapping label -> prior (every class exactly once) or a
            sequence already in class order
        classes: Ordered class labels
        tolerance: Allowed deviation of the sum from 1
    """
    classes = list(np.asarray(classes).tolist())

    if isinstance(priors, Mapping):
        # Equal labels hash equal, so int keys find float classes (0 == 0.0)
        lookup = {plain_label(k): v for k, v in priors.items()}
        if len(lookup) != len(classes) or any(cls not in lookup for cls in classes):
            raise InvalidPriorError(f"Prior labels {list(lookup)} do not match classes {classes}")
        priors = [lookup[cls] for cls in classes]

    return validate_priors(priors, len(classes), tolerance)


def joint_log_likelihood(log_densities: np.ndarray, priors: np.ndarray) -> np.ndarray:
    """
    log pi_k + log f_k(x) for every query and class.

    Args:
        log_densities: Class-conditional log-densities (n_queries, n_classes)
        priors: Class priors (n_classes,); a zero prior gives -inf

    Returns:
        Joint log-likelihood (n_queries, n_classes)
    """
    with np.errstate(divide='ignore'):
        log_prior = np.log(np.asarray(priors, dtype=np.float64))
    return np.asarray(log_densities, dtype=np.float64) + log_prior


def _undefined_rows(joint: np.ndarray, row_max: np.ndarray) -> np.ndarray:
    bad = np.isnan(row_max) | np.isneginf(row_max) | np.any(np.isnan(joint), axis=1)
    return np.flatnonzero(bad)


def log_posterior(joint: np.ndarray) -> np.ndarray:
    """
    Normalize joint log-likelihoods into log posteriors.

    Raises:
        UndefinedPosteriorError: for any row where every class has zero
            density (all -inf) or the scores are NaN
    """
    joint = np.atleast_2d(joint)
    row_max = np.max(joint, axis=1, keepdims=True)

    bad = _undefined_rows(joint, row_max.ravel())
    if len(bad):
        raise UndefinedPosteriorError(rows=bad.tolist())

    # +inf joint scores cannot come from a finite density; treat as undefined too
    if np.any(np.isposinf(row_max)):
        raise UndefinedPosteriorError(rows=np.flatnonzero(np.isposinf(row_max.ravel())).tolist())

    log_sum = row_max + np.log(np.sum(np.exp(joint - row_max), axis=1, keepdims=True))
    return joint - log_sum


def posterior(log_densities: np.ndarray, priors: np.ndarray) -> np.ndarray:
    """P(y=k|x) for every query and class; rows sum to 1."""
    return np.exp(log_posterior(joint_log_likelihood(log_densities, priors)))


def log_odds(joint: np.ndarray, positive_index: int = 1,
             negative_index: Optional[int] = None) -> np.ndarray:
    """
    Binary log posterior odds log(pi_1 f_1(x)) - log(pi_0 f_0(x)).

    Equal to logit(P(positive|x)); comparing it to logit(threshold) is the
    likelihood-ratio decision rule.

    Raises:
        UndefinedPosteriorError: both classes have zero density
    """
    joint = np.atleast_2d(joint)
    if negative_index is None:
        negative_index = 1 - positive_index

    pos = joint[:, positive_index]
    neg = joint[:, negative_index]
    bad = np.flatnonzero(np.isnan(pos) | np.isnan(neg) | (np.isneginf(pos) & np.isneginf(neg)))
    if len(bad):
        raise UndefinedPosteriorError(rows=bad.tolist())
    return pos - neg


def logit(p: float) -> float:
    """log(p / (1 - p)); exactly 0.0 at p = 0.5."""
    return float(np.log(p / (1.0 - p)))
