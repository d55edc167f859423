"""
Gaussian generative classifier.

Ties the pieces together:

    Dataset -> estimate_class_parameters -> GaussianDensity per class
            -> joint log-likelihood -> log posterior -> label

Fitting returns an immutable FittedModel. Every prediction method is a pure
read of that model, so one model can serve any number of concurrent callers.
A prior override (prevalence correction) yields a new FittedModel that shares
the factorized densities of the original.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple, Union

import numpy as np

from config import EngineConfig
from .covariance import ClassParameters, CovarianceMode, class_parameter_arrays, estimate_class_parameters
from .dataset import Dataset
from .density import GaussianDensity, as_query_matrix
from .posterior import (
    joint_log_likelihood,
    log_odds,
    log_posterior,
    logit,
    resolve_priors,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    A fitted Gaussian generative model.

    Attributes:
        mode: Covariance sharing mode used at fit time
        classes: Sorted class labels (n_classes,)
        parameters: ClassParameters per class, ordered like `classes`
        densities: Factorized GaussianDensity per class
        priors: Class priors (n_classes,)
        config: Engine configuration used at fit time
    """
    mode: CovarianceMode
    classes: np.ndarray
    parameters: Tuple[ClassParameters, ...]
    densities: Tuple[GaussianDensity, ...]
    priors: np.ndarray
    config: EngineConfig

    @property
    def n_classes(self) -> int:
        return len(self.classes)

    @property
    def n_features(self) -> int:
        return self.densities[0].n_features

    @property
    def is_binary(self) -> bool:
        return self.n_classes == 2

    @property
    def positive_class(self):
        """Label whose posterior is thresholded in binary models (second sorted class)."""
        if not self.is_binary:
            raise ValueError("positive_class is only defined for binary models")
        return self.classes[1]

    def class_parameters(self, label) -> ClassParameters:
        for params in self.parameters:
            if params.label == label:
                return params
        raise KeyError(f"Unknown class {label!r}")

    # -------------------------------------------------------------------------
    # Priors
    # -------------------------------------------------------------------------

    def with_priors(self, priors) -> 'FittedModel':
        """
        Copy of this model with different class priors.

        The densities (and their factorizations) are shared with this model;
        only the mixing weights change.

        Args:
            priors: Mapping label -> prior or sequence in class order
        """
        resolved = resolve_priors(priors, self.classes, self.config.prior_tolerance)
        resolved.setflags(write=False)
        return replace(
            self,
            parameters=tuple(p.with_prior(pi) for p, pi in zip(self.parameters, resolved)),
            priors=resolved,
        )

    def _resolve(self, priors) -> np.ndarray:
        if priors is None:
            return self.priors
        return resolve_priors(priors, self.classes, self.config.prior_tolerance)

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def log_likelihood(self, X) -> np.ndarray:
        """
        Class-conditional log-densities log f_k(x).

        Returns:
            (n_classes,) for a single point, else (n_queries, n_classes)
        """
        X, single = as_query_matrix(X, self.n_features)
        scores = self._score_batches(X)
        return scores[0] if single else scores

    def _class_log_densities(self, X: np.ndarray) -> np.ndarray:
        return np.column_stack([density.log_pdf(X) for density in self.densities])

    def _score_batches(self, X: np.ndarray,
                       batch_size: Optional[int] = None,
                       n_jobs: Optional[int] = None) -> np.ndarray:
        """Log-densities for a query matrix, optionally in parallel chunks."""
        batch_size = self.config.batch_size if batch_size is None else batch_size
        n_jobs = self.config.n_jobs if n_jobs is None else n_jobs
        return map_row_chunks(self._class_log_densities, X, batch_size, n_jobs)

    def joint_log_likelihood(self, X, priors=None,
                             batch_size: Optional[int] = None,
                             n_jobs: Optional[int] = None) -> np.ndarray:
        """log pi_k + log f_k(x) per query and class."""
        X, single = as_query_matrix(X, self.n_features)
        joint = joint_log_likelihood(self._score_batches(X, batch_size, n_jobs), self._resolve(priors))
        return joint[0] if single else joint

    def predict_log_proba(self, X, priors=None,
                          batch_size: Optional[int] = None,
                          n_jobs: Optional[int] = None) -> np.ndarray:
        """
        Log posterior probabilities.

        Args:
            X: Single point (n_features,) or batch (n_queries, n_features)
            priors: Optional prior override for this call only
            batch_size: Rows per chunk (default from config)
            n_jobs: Worker threads (default from config)

        Returns:
            (n_classes,) for a single point, else (n_queries, n_classes)

        Raises:
            DimensionMismatchError, InvalidPriorError, UndefinedPosteriorError
        """
        X, single = as_query_matrix(X, self.n_features)
        joint = joint_log_likelihood(self._score_batches(X, batch_size, n_jobs), self._resolve(priors))
        log_proba = log_posterior(joint)
        return log_proba[0] if single else log_proba

    def predict_proba(self, X, priors=None,
                      batch_size: Optional[int] = None,
                      n_jobs: Optional[int] = None) -> np.ndarray:
        """Posterior probabilities; each row sums to 1."""
        return np.exp(self.predict_log_proba(X, priors, batch_size, n_jobs))

    def decision_function(self, X, priors=None,
                          batch_size: Optional[int] = None,
                          n_jobs: Optional[int] = None) -> np.ndarray:
        """
        Binary: log posterior odds of the positive class.
        Multi-class: joint log-likelihoods (argmax gives the label).
        """
        X, single = as_query_matrix(X, self.n_features)
        joint = joint_log_likelihood(self._score_batches(X, batch_size, n_jobs), self._resolve(priors))
        scores = log_odds(joint, positive_index=1) if self.is_binary else joint
        return scores[0] if single else scores

    def predict(self, X, threshold: Optional[float] = None, priors=None,
                batch_size: Optional[int] = None,
                n_jobs: Optional[int] = None):
        """
        Predict class labels.

        Binary models predict the positive class when
        P(positive|x) > threshold (default 0.5). Multi-class models take the
        argmax of the posterior; ties go to the earliest class in sorted order.

        Returns:
            A label for a single point, else an array of labels
        """
        X, single = as_query_matrix(X, self.n_features)
        joint = joint_log_likelihood(self._score_batches(X, batch_size, n_jobs), self._resolve(priors))

        if self.is_binary:
            threshold = self.config.threshold if threshold is None else threshold
            if not 0.0 < threshold < 1.0:
                raise ValueError(f"threshold must be in (0, 1), got {threshold}")
            indices = (log_odds(joint, positive_index=1) > logit(threshold)).astype(int)
        else:
            if threshold is not None:
                raise ValueError("threshold only applies to binary models")
            # Raises for rows with no defined posterior
            log_posterior(joint)
            indices = np.argmax(joint, axis=1)

        labels = self.classes[indices]
        return labels[0] if single else labels

    def score(self, X, y, threshold: Optional[float] = None, priors=None) -> float:
        """Calculate accuracy."""
        y_pred = self.predict(X, threshold=threshold, priors=priors)
        return float(np.mean(np.atleast_1d(y_pred) == np.asarray(y)))

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def linear_boundary(self) -> Tuple[np.ndarray, float]:
        """
        Hyperplane of a binary pooled-covariance model.

        With a shared covariance the quadratic terms cancel:
            log-odds(x) = w^T x + b
            w = Sigma^(-1) (mu_1 - mu_0)
            b = -0.5 (mu_1^T Sigma^(-1) mu_1 - mu_0^T Sigma^(-1) mu_0) + log(pi_1 / pi_0)

        The decision boundary at threshold 0.5 is {x : w^T x + b = 0}.
        """
        if not self.is_binary or self.mode is not CovarianceMode.POOLED:
            raise ValueError("linear_boundary requires a binary model with pooled covariance")

        precision = self.densities[0].precision()
        mu_0, mu_1 = self.parameters[0].mean, self.parameters[1].mean
        w = precision @ (mu_1 - mu_0)
        with np.errstate(divide='ignore'):
            log_prior_ratio = np.log(self.priors[1]) - np.log(self.priors[0])
        b = -0.5 * (mu_1 @ precision @ mu_1 - mu_0 @ precision @ mu_0) + log_prior_ratio
        return w, float(b)

    def get_params(self) -> dict:
        """Get model parameters."""
        params = {'mode': self.mode.value}
        params.update(class_parameter_arrays(self.parameters))
        return params


def map_row_chunks(fn: Callable[[np.ndarray], np.ndarray], X: np.ndarray,
                   batch_size: Optional[int] = None, n_jobs: int = 1) -> np.ndarray:
    """
    Apply fn to row chunks of X and stack the results.

    fn must only read shared state. With n_jobs > 1 the chunks run on a
    thread pool (NumPy releases the GIL inside the matrix products).
    """
    n_rows = len(X)
    if n_rows == 0 or (batch_size is None and n_jobs <= 1):
        return fn(X)

    size = batch_size or int(np.ceil(n_rows / n_jobs))
    chunks = [X[start:start + size] for start in range(0, n_rows, size)]

    if n_jobs <= 1 or len(chunks) == 1:
        results = [fn(chunk) for chunk in chunks]
    else:
        with ThreadPoolExecutor(max_workers=n_jobs) as executor:
            results = list(executor.map(fn, chunks))
    return np.concatenate(results, axis=0)


class GaussianClassifier:
    """
    Gaussian generative classifier façade.

    Selects the covariance mode (per-class = QDA, pooled = LDA,
    diagonal = Naive Bayes) and turns training data into FittedModels.

    Example
    -------
    >>> clf = GaussianClassifier(mode="pooled")
    >>> model = clf.fit(X_train, y_train)
    >>> clf.predict(model, X_test)
    >>> clf.predict_proba(model, X_test, priors=[0.5, 0.5])
    """

    def __init__(self, mode: Union[CovarianceMode, str] = CovarianceMode.PER_CLASS,
                 config: Optional[EngineConfig] = None):
        self.mode = CovarianceMode.parse(mode)
        self.config = (config or EngineConfig()).validate()

    def fit(self, X, y=None, priors=None) -> FittedModel:
        """
        Fit class densities.

        Args:
            X: Dataset, or training features (n_samples, n_features)
            y: Training labels (n_samples,) when X is an array
            priors: Optional prior override (mapping or class-ordered sequence)

        Returns:
            A complete FittedModel; nothing is stored on the classifier

        Raises:
            InsufficientDataError, SingularCovarianceError, InvalidPriorError
        """
        if isinstance(X, Dataset):
            if y is not None:
                raise ValueError("Pass labels inside the Dataset, not as y")
            dataset = X
        else:
            if y is None:
                raise ValueError("y is required when X is not a Dataset")
            dataset = Dataset.from_arrays(X, y)

        params = estimate_class_parameters(dataset, self.mode, priors=priors, config=self.config)

        parameters = tuple(params.values())
        densities = self._factorize(parameters)

        classes = np.array([p.label for p in parameters])
        priors_arr = np.array([p.prior for p in parameters])
        classes.setflags(write=False)
        priors_arr.setflags(write=False)

        logger.debug("Fitted %s model on %d samples, %d classes",
                     self.mode.value, dataset.n_samples, len(classes))

        return FittedModel(
            mode=self.mode,
            classes=classes,
            parameters=parameters,
            densities=densities,
            priors=priors_arr,
            config=self.config,
        )

    def _factorize(self, parameters: Tuple[ClassParameters, ...]) -> Tuple[GaussianDensity, ...]:
        """One factorization per class; a single shared one in pooled mode."""
        cfg = self.config

        if self.mode is CovarianceMode.DIAGONAL:
            return tuple(
                GaussianDensity.from_variances(p.mean, p.variances, cfg.allow_pseudo_inverse, label=p.label)
                for p in parameters
            )

        if self.mode is CovarianceMode.POOLED:
            first = parameters[0]
            shared = GaussianDensity.from_covariance(first.mean, first.covariance,
                                                     cfg.allow_pseudo_inverse, cfg.singular_rtol)
            return (shared,) + tuple(shared.with_mean(p.mean) for p in parameters[1:])

        return tuple(
            GaussianDensity.from_covariance(p.mean, p.covariance, cfg.allow_pseudo_inverse,
                                            cfg.singular_rtol, label=p.label)
            for p in parameters
        )

    def predict_proba(self, model: FittedModel, X, priors=None) -> np.ndarray:
        """Posterior probability vector(s) over model.classes."""
        return model.predict_proba(X, priors=priors)

    def predict(self, model: FittedModel, X, threshold: Optional[float] = None, priors=None):
        """Hard label(s); see FittedModel.predict."""
        return model.predict(X, threshold=threshold, priors=priors)

    def __repr__(self) -> str:
        return f"GaussianClassifier(mode='{self.mode.value}')"
