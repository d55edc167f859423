"""
Read-only labeled datasets.

A Dataset is an ordered sequence of (feature vector, label) samples with a
common dimension p. Its arrays are private copies marked non-writeable, so
nothing downstream can mutate the caller's data.
"""

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence

import numpy as np

from .errors import DimensionMismatchError, InsufficientDataError, plain_label


class Sample(NamedTuple):
    """A single labeled feature vector."""
    features: tuple
    label: object


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Feature matrix and label vector.

    Attributes:
        X: Features (n_samples, n_features), read-only
        y: Labels (n_samples,), read-only
    """
    X: np.ndarray
    y: np.ndarray

    @classmethod
    def from_arrays(cls, X, y) -> 'Dataset':
        """
        Build a Dataset from a feature matrix and label vector.

        A 1-D X is treated as a single feature column.
        """
        X = np.array(X, dtype=np.float64)
        y = np.array(y)

        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2:
            raise ValueError(f"X must be 2-D, got shape {X.shape}")
        if y.ndim != 1:
            raise ValueError(f"y must be 1-D, got shape {y.shape}")
        if len(X) != len(y):
            raise ValueError(f"X has {len(X)} rows but y has {len(y)} labels")
        if len(X) == 0:
            raise InsufficientDataError(label=None, n_samples=0, n_required=1)
        if not np.all(np.isfinite(X)):
            raise ValueError("X contains NaN or infinite values")

        X.setflags(write=False)
        y.setflags(write=False)
        return cls(X=X, y=y)

    @classmethod
    def from_samples(cls, samples: Sequence[Sample]) -> 'Dataset':
        """Build a Dataset from Samples; every sample must share one dimension."""
        samples = list(samples)
        if not samples:
            raise InsufficientDataError(label=None, n_samples=0, n_required=1)

        n_features = len(samples[0].features)
        for sample in samples:
            if len(sample.features) != n_features:
                raise DimensionMismatchError(expected=n_features, got=len(sample.features))

        X = [list(sample.features) for sample in samples]
        y = [sample.label for sample in samples]
        return cls.from_arrays(X, y)

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]

    def classes(self) -> np.ndarray:
        """Sorted unique labels."""
        return np.unique(self.y)

    def __len__(self) -> int:
        return self.n_samples

    def __iter__(self) -> Iterator[Sample]:
        for row, label in zip(self.X, self.y):
            yield Sample(features=tuple(row.tolist()), label=plain_label(label))
