"""
Multivariate Gaussian density evaluation in log space.

The covariance is factorized once when a GaussianDensity is built; every
later query only needs a matrix product with the cached whitening factor:

    Sigma = L L^T            (Cholesky)
    W = L^(-1)               (whitener)
    (x - mu)^T Sigma^(-1) (x - mu) = ||W (x - mu)||^2
    log|Sigma| = 2 * sum(log diag(L))

    log f(x) = -0.5 * [p * log(2*pi) + log|Sigma| + ||W (x - mu)||^2]

Diagonal (Naive Bayes) densities skip the matrix entirely and sum p
univariate log-densities.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from config import SINGULAR_RTOL
from .errors import DimensionMismatchError, SingularCovarianceError, plain_label

logger = logging.getLogger(__name__)

LOG_2PI = np.log(2 * np.pi)


def as_query_matrix(X, n_features: int) -> Tuple[np.ndarray, bool]:
    """
    Coerce queries to a (n_queries, n_features) float matrix.

    A scalar or 1-D input is a single query point. The input is never
    truncated or padded; a wrong length raises DimensionMismatchError.

    Returns:
        (matrix, single) where single is True for a one-point input
    """
    X = np.asarray(X, dtype=np.float64)
    single = X.ndim <= 1
    if single:
        X = X.reshape(1, -1)

    if X.ndim != 2:
        raise ValueError(f"Queries must be a vector or a 2-D matrix, got shape {X.shape}")
    if X.shape[1] != n_features:
        raise DimensionMismatchError(expected=n_features, got=X.shape[1])
    return X, single


class GaussianDensity:
    """
    Factorized Gaussian density N(mean, covariance).

    Build with `from_covariance` (full matrix) or `from_variances`
    (diagonal). Instances are read-only after construction.

    Attributes:
        mean: Mean vector (n_features,)
        log_det: log|Sigma| (pseudo-determinant on the fallback path)
        rank: Dimension of the support (n_features unless degenerate)
        pseudo_inverse: True if built through the eigendecomposition fallback
    """

    def __init__(self, mean: np.ndarray, log_det: float, rank: int,
                 whitener: Optional[np.ndarray] = None,
                 variances: Optional[np.ndarray] = None,
                 pseudo_inverse: bool = False):
        if (whitener is None) == (variances is None):
            raise ValueError("Provide exactly one of whitener or variances")

        self.mean = np.array(mean, dtype=np.float64)
        self.mean.setflags(write=False)
        self.n_features = self.mean.shape[0]
        self.log_det = float(log_det)
        self.rank = int(rank)
        self.pseudo_inverse = pseudo_inverse

        self._whitener = whitener
        self._variances = variances
        for arr in (self._whitener, self._variances):
            if arr is not None:
                arr.setflags(write=False)

        self._log_norm = -0.5 * (self.rank * LOG_2PI + self.log_det)

    @classmethod
    def from_covariance(cls, mean, covariance, allow_pseudo_inverse: bool = False,
                        rtol: float = SINGULAR_RTOL, label=None) -> 'GaussianDensity':
        """
        Factorize a full covariance matrix.

        Args:
            mean: Mean vector (n_features,)
            covariance: Symmetric covariance (n_features, n_features)
            allow_pseudo_inverse: Evaluate on the covariance's support when
                it is singular instead of raising
            rtol: A pivot at or below rtol times its feature's variance (or a
                correlation eigenvalue below rtol times the largest) counts as zero
            label: Class label, used in error messages

        Raises:
            SingularCovarianceError: covariance not positive-definite and
                the fallback is disabled
        """
        mean = np.asarray(mean, dtype=np.float64).ravel()
        covariance = np.asarray(covariance, dtype=np.float64)
        p = mean.shape[0]

        if covariance.shape != (p, p):
            raise DimensionMismatchError(expected=p, got=covariance.shape[0])
        if not np.all(np.isfinite(covariance)):
            raise SingularCovarianceError("Covariance contains NaN or infinite values", label=label)

        try:
            L = np.linalg.cholesky(covariance)
            # Pivot j is the variance of feature j left after conditioning on
            # the earlier features, so compare it with the feature's own variance
            if np.any(np.diag(L) ** 2 <= rtol * np.diag(covariance)):
                raise np.linalg.LinAlgError("Matrix is numerically singular")
        except np.linalg.LinAlgError:
            if not allow_pseudo_inverse:
                raise SingularCovarianceError(label=label) from None
            return cls._from_eigh(mean, covariance, rtol, label)

        whitener = np.linalg.solve(L, np.eye(p))
        log_det = 2.0 * np.sum(np.log(np.diag(L)))
        return cls(mean, log_det=log_det, rank=p, whitener=whitener)

    @classmethod
    def _from_eigh(cls, mean, covariance, rtol, label) -> 'GaussianDensity':
        # Rank from the correlation matrix, so feature units do not matter
        scale = np.sqrt(np.clip(np.diag(covariance), 0.0, None))
        inv_scale = np.divide(1.0, scale, out=np.zeros_like(scale), where=scale > 0)
        correlation_values = np.linalg.eigvalsh(covariance * np.outer(inv_scale, inv_scale))
        rank = int(np.sum(correlation_values > rtol * max(np.max(correlation_values), 0.0)))

        # eigh sorts ascending; the support is spanned by the top `rank` eigenvectors
        eigenvalues, eigenvectors = np.linalg.eigh(covariance)
        values = eigenvalues[len(eigenvalues) - rank:]
        if rank == 0 or np.any(values <= 0):
            raise SingularCovarianceError("Covariance has no usable positive eigenvalues", label=label)

        logger.warning(
            "Covariance for class %r is singular; using pseudo-inverse on rank %d of %d",
            plain_label(label), rank, len(mean),
        )
        whitener = (eigenvectors[:, len(eigenvalues) - rank:] / np.sqrt(values)).T
        return cls(mean, log_det=np.sum(np.log(values)), rank=rank,
                   whitener=whitener, pseudo_inverse=True)

    @classmethod
    def from_variances(cls, mean, variances, allow_pseudo_inverse: bool = False,
                       label=None) -> 'GaussianDensity':
        """
        Build an axis-aligned density from per-feature variances.

        log f(x) = sum_j -0.5 * [log(2*pi*var_j) + (x_j - mu_j)^2 / var_j]

        Any positive variance is valid whatever its magnitude; only an
        exactly zero (or negative) variance is singular.
        """
        mean = np.asarray(mean, dtype=np.float64).ravel()
        variances = np.array(variances, dtype=np.float64).ravel()

        if variances.shape != mean.shape:
            raise DimensionMismatchError(expected=mean.shape[0], got=variances.shape[0])
        if not np.all(np.isfinite(variances)):
            raise SingularCovarianceError("Variances contain NaN or infinite values", label=label)

        keep = variances > 0
        if not np.all(keep):
            if not allow_pseudo_inverse or not np.any(keep):
                raise SingularCovarianceError("Zero variance feature", label=label)
            logger.warning(
                "Class %r has %d zero-variance features; evaluating on the remaining %d",
                plain_label(label), int(np.sum(~keep)), int(np.sum(keep)),
            )
            # Zero-variance dimensions drop out of the density entirely
            variances = np.where(keep, variances, np.inf)
            return cls(mean, log_det=np.sum(np.log(variances[keep])), rank=int(np.sum(keep)),
                       variances=variances, pseudo_inverse=True)

        return cls(mean, log_det=np.sum(np.log(variances)), rank=len(mean), variances=variances)

    def with_mean(self, mean) -> 'GaussianDensity':
        """Same covariance factorization around a different mean."""
        mean = np.asarray(mean, dtype=np.float64).ravel()
        if mean.shape[0] != self.n_features:
            raise DimensionMismatchError(expected=self.n_features, got=mean.shape[0])
        return GaussianDensity(mean, log_det=self.log_det, rank=self.rank,
                               whitener=self._whitener, variances=self._variances,
                               pseudo_inverse=self.pseudo_inverse)

    def precision(self) -> np.ndarray:
        """Sigma^(-1) (pseudo-inverse on the fallback path)."""
        if self._variances is not None:
            return np.diag(1.0 / self._variances)
        return self._whitener.T @ self._whitener

    @property
    def is_diagonal(self) -> bool:
        return self._variances is not None

    def mahalanobis(self, X) -> np.ndarray:
        """
        Squared Mahalanobis distance of each query to the mean.

        Args:
            X: Single point (n_features,) or batch (n_queries, n_features)

        Returns:
            Float for a single point, else array (n_queries,)
        """
        X, single = as_query_matrix(X, self.n_features)
        d2 = self._squared_distance(X)
        return d2[0] if single else d2

    def _squared_distance(self, X: np.ndarray) -> np.ndarray:
        diff = X - self.mean
        if self._variances is not None:
            return np.sum(diff ** 2 / self._variances, axis=1)
        z = diff @ self._whitener.T
        return np.sum(z ** 2, axis=1)

    def log_pdf(self, X) -> np.ndarray:
        """
        Log-density at each query.

        Args:
            X: Single point (n_features,) or batch (n_queries, n_features)

        Returns:
            Float for a single point, else array (n_queries,)
        """
        X, single = as_query_matrix(X, self.n_features)
        log_p = self._log_norm - 0.5 * self._squared_distance(X)
        return log_p[0] if single else log_p

    def pdf(self, X) -> np.ndarray:
        """Density at each query (exp of log_pdf; may underflow to 0)."""
        return np.exp(self.log_pdf(X))

    def __repr__(self) -> str:
        kind = "diagonal" if self.is_diagonal else "full"
        return f"GaussianDensity(n_features={self.n_features}, {kind}, log_det={self.log_det:.4f})"
