"""
Synthetic Gaussian class data for demos and tests.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np


def make_gaussian_classes(means: Sequence,
                          n_per_class: Union[int, Sequence[int]],
                          stds: Optional[Sequence] = None,
                          covariances: Optional[Sequence] = None,
                          seed: Optional[int] = None,
                          shuffle: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw labeled samples from one Gaussian per class.

    Class k gets label k. Give either `stds` (independent features, one
    scalar or vector per class) or full `covariances`; neither means unit
    variance.

    Args:
        means: Class means; scalars give 1-D data
        n_per_class: Samples per class (one int for all classes, or a list)
        stds: Per-class standard deviations
        covariances: Per-class covariance matrices
        seed: Random seed
        shuffle: Shuffle rows after stacking

    Returns:
        X (n_samples, n_features), y (n_samples,)

    Example
    -------
    >>> X, y = make_gaussian_classes([0.0, 3.0], n_per_class=1000, seed=0)
    >>> X.shape
    (2000, 1)
    """
    if stds is not None and covariances is not None:
        raise ValueError("Give stds or covariances, not both")

    rng = np.random.default_rng(seed)
    means = [np.atleast_1d(np.asarray(m, dtype=np.float64)) for m in means]
    n_classes = len(means)
    n_features = means[0].shape[0]

    if np.ndim(n_per_class) == 0:
        n_per_class = [int(n_per_class)] * n_classes
    if len(n_per_class) != n_classes:
        raise ValueError(f"Expected {n_classes} class sizes, got {len(n_per_class)}")

    X_parts = []
    y_parts = []
    for k, (mean, n_k) in enumerate(zip(means, n_per_class)):
        if covariances is not None:
            cov = np.asarray(covariances[k], dtype=np.float64).reshape(n_features, n_features)
            X_k = rng.multivariate_normal(mean, cov, size=n_k)
        else:
            std = 1.0 if stds is None else np.asarray(stds[k], dtype=np.float64)
            X_k = mean + rng.standard_normal((n_k, n_features)) * std
        X_parts.append(X_k)
        y_parts.append(np.full(n_k, k))

    X = np.vstack(X_parts)
    y = np.concatenate(y_parts)

    if shuffle:
        idx = rng.permutation(len(X))
        X, y = X[idx], y[idx]

    return X, y


def train_test_split(X: np.ndarray, y: np.ndarray, test_fraction: float = 0.2,
                     seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Random split into X_train, X_test, y_train, y_test."""
    rng = np.random.default_rng(seed)
    idx = rng.permutation(len(X))
    n_test = int(round(len(X) * test_fraction))
    test, train = idx[:n_test], idx[n_test:]
    return X[train], X[test], y[train], y[test]
