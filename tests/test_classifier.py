"""
Tests for the GaussianClassifier façade and FittedModel.

Covers the end-to-end behaviour of the three covariance modes:
posterior normalization, decision boundaries, prevalence correction,
mode agreement, batch prediction and error reporting.
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import EngineConfig
from evaluation import confusion_matrix, sensitivity_specificity
from generative_models import (
    CovarianceMode,
    Dataset,
    DimensionMismatchError,
    GaussianClassifier,
    InsufficientDataError,
    InvalidPriorError,
    SingularCovarianceError,
    UndefinedPosteriorError,
    attempt,
    make_gaussian_classes,
)

MODES = [CovarianceMode.PER_CLASS, CovarianceMode.POOLED, CovarianceMode.DIAGONAL]


def _symmetric_sample(n, seed):
    """
    n standard-normal-like values on a 1/1024 grid, mirrored around 0.

    Every value and partial sum is exact in float64, so the sample mean is
    exactly 0 and shifted copies have exactly the same spread.
    """
    rng = np.random.default_rng(seed)
    half = np.round(rng.standard_normal(n // 2) * 1024) / 1024
    return np.concatenate([half, -half])


def _three_clusters(n_per_class, seed):
    return make_gaussian_classes([[0, 0], [8, 0], [0, 8]], n_per_class=n_per_class, seed=seed)


# =============================================================================
# Posterior normalization
# =============================================================================

@pytest.mark.parametrize("mode", MODES)
def test_probabilities_sum_to_one(mode):
    X, y = _three_clusters(100, seed=0)
    model = GaussianClassifier(mode).fit(X, y)

    rng = np.random.default_rng(1)
    queries = np.vstack([rng.normal(0, 5, size=(200, 2)), [[80.0, -60.0], [-1e3, 1e3]]])
    proba = model.predict_proba(queries)

    assert proba.shape == (202, 3)
    assert np.all(proba >= 0)
    np.testing.assert_allclose(proba.sum(axis=1), 1.0, atol=1e-9)


def test_single_point_returns_vector():
    X, y = _three_clusters(50, seed=0)
    model = GaussianClassifier("per_class").fit(X, y)

    proba = model.predict_proba([1.0, 1.0])
    assert proba.shape == (3,)
    assert proba.sum() == pytest.approx(1.0, abs=1e-9)
    assert model.predict([1.0, 1.0]) == 0


def test_predict_log_proba_consistent():
    X, y = _three_clusters(50, seed=0)
    model = GaussianClassifier("pooled").fit(X, y)

    np.testing.assert_allclose(np.exp(model.predict_log_proba(X[:10])), model.predict_proba(X[:10]))


# =============================================================================
# Decision boundaries
# =============================================================================

def test_one_dimensional_boundary_at_midpoint():
    """N(0, 1) vs N(3, 1), equal priors: 1.5 -> class 0, 1.6 -> class 1."""
    z0 = _symmetric_sample(1000, seed=0)
    z1 = _symmetric_sample(1000, seed=1)
    X = np.concatenate([z0, 3.0 + z1]).reshape(-1, 1)
    y = np.array([0] * 1000 + [1] * 1000)

    model = GaussianClassifier("pooled").fit(X, y)

    assert model.priors.tolist() == [0.5, 0.5]
    assert model.predict(1.5) == 0
    assert model.predict(1.6) == 1
    assert model.predict_proba(1.5)[1] == pytest.approx(0.5, abs=1e-12)


def test_one_dimensional_boundary_random_sample():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=1000, seed=7)
    model = GaussianClassifier("pooled").fit(X, y)

    w, b = model.linear_boundary()
    assert -b / w[0] == pytest.approx(1.5, abs=0.2)
    np.testing.assert_array_equal(model.predict([[0.5], [1.0], [2.0], [2.5]]), [0, 0, 1, 1])


def test_equal_variance_posterior_is_monotone():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=500, seed=3)
    model = GaussianClassifier("pooled").fit(X, y)

    grid = np.linspace(-2, 5, 141).reshape(-1, 1)
    p1 = model.predict_proba(grid)[:, 1]

    assert np.all(np.diff(p1) > 0)
    crossings = np.sum(np.diff(np.sign(p1 - 0.5)) != 0)
    assert crossings == 1


def test_linear_boundary_matches_log_odds():
    X, y = make_gaussian_classes([[0, 0, 0], [1, 2, -1]], n_per_class=[150, 250], seed=4)
    model = GaussianClassifier("pooled").fit(X, y)

    w, b = model.linear_boundary()
    rng = np.random.default_rng(5)
    queries = rng.normal(0, 2, size=(40, 3))

    np.testing.assert_allclose(queries @ w + b, model.decision_function(queries), rtol=1e-9, atol=1e-9)


def test_linear_boundary_requires_pooled_binary():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=100, seed=0)
    model = GaussianClassifier("per_class").fit(X, y)

    with pytest.raises(ValueError):
        model.linear_boundary()


def test_threshold_moves_decision():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=500, seed=8)
    model = GaussianClassifier("pooled").fit(X, y)

    x = 1.5
    p1 = model.predict_proba(x)[1]
    assert model.predict(x, threshold=min(p1 + 0.1, 0.99)) == 0
    assert model.predict(x, threshold=max(p1 - 0.1, 0.01)) == 1

    with pytest.raises(ValueError):
        model.predict(x, threshold=1.5)


def test_threshold_rejected_for_multiclass():
    X, y = _three_clusters(50, seed=0)
    model = GaussianClassifier("pooled").fit(X, y)

    with pytest.raises(ValueError):
        model.predict([0.0, 0.0], threshold=0.3)


# =============================================================================
# Prevalence correction
# =============================================================================

def test_balanced_priors_raise_sensitivity_and_lower_specificity():
    X, y = make_gaussian_classes([0.0, 2.0], n_per_class=[4000, 1000], seed=11)
    model = GaussianClassifier("pooled").fit(X, y)

    np.testing.assert_allclose(model.priors, [0.8, 0.2])

    sens_emp, spec_emp = sensitivity_specificity(y, model.predict(X), positive_label=1)
    sens_bal, spec_bal = sensitivity_specificity(y, model.predict(X, priors=[0.5, 0.5]), positive_label=1)

    assert sens_bal > sens_emp
    assert spec_bal < spec_emp


def test_with_priors_is_a_new_model_sharing_densities():
    X, y = make_gaussian_classes([0.0, 2.0], n_per_class=[400, 100], seed=12)
    model = GaussianClassifier("per_class").fit(X, y)
    balanced = model.with_priors({0: 0.5, 1: 0.5})

    assert balanced is not model
    assert balanced.densities is model.densities
    np.testing.assert_allclose(model.priors, [0.8, 0.2])
    np.testing.assert_array_equal(balanced.priors, [0.5, 0.5])
    assert balanced.class_parameters(1).prior == 0.5
    assert model.class_parameters(1).prior == pytest.approx(0.2)

    np.testing.assert_allclose(balanced.predict_proba(X), model.predict_proba(X, priors=[0.5, 0.5]))


def test_fit_with_prior_override():
    X, y = make_gaussian_classes([0.0, 2.0], n_per_class=[400, 100], seed=13)
    model = GaussianClassifier("diagonal").fit(X, y, priors=[0.5, 0.5])

    np.testing.assert_array_equal(model.priors, [0.5, 0.5])


def test_invalid_prior_at_prediction():
    X, y = make_gaussian_classes([0.0, 2.0], n_per_class=100, seed=0)
    model = GaussianClassifier("pooled").fit(X, y)

    with pytest.raises(InvalidPriorError):
        model.predict_proba(X, priors=[0.9, 0.3])


def test_float_labels_accept_int_prior_keys():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=20, seed=14)
    model = GaussianClassifier("pooled").fit(X, y.astype(float))

    balanced = model.with_priors({0: 0.5, 1: 0.5})
    np.testing.assert_array_equal(balanced.priors, [0.5, 0.5])

    proba = model.predict_proba(X, priors={1: 0.2, 0: 0.8})
    np.testing.assert_allclose(proba, model.predict_proba(X, priors=[0.8, 0.2]))

    refit = GaussianClassifier("pooled").fit(X, y.astype(float), priors={0: 0.3, 1: 0.7})
    np.testing.assert_array_equal(refit.priors, [0.3, 0.7])


# =============================================================================
# Mode agreement
# =============================================================================

def _grid_class(center, scales):
    """
    16 points on a symmetric dyadic grid: the sample covariance is exactly
    diagonal (the cross terms cancel in exact arithmetic).
    """
    offsets = np.array([-2.0, -1.0, 1.0, 2.0])
    a, b = np.meshgrid(offsets * scales[0], offsets * scales[1])
    return np.column_stack([a.ravel(), b.ravel()]) + center


def test_diagonal_and_per_class_agree_without_correlation():
    X = np.vstack([_grid_class([0.0, 0.0], [1.0, 0.5]), _grid_class([1.5, -0.75], [0.25, 2.0])])
    y = np.array([0] * 16 + [1] * 16)

    qda = GaussianClassifier("per_class").fit(X, y)
    nb = GaussianClassifier("diagonal").fit(X, y)

    for p_qda, p_nb in zip(qda.parameters, nb.parameters):
        np.testing.assert_array_equal(p_qda.mean, p_nb.mean)
        np.testing.assert_array_equal(p_qda.covariance, p_nb.covariance)

    rng = np.random.default_rng(0)
    queries = rng.normal(0.5, 2.0, size=(100, 2))
    np.testing.assert_allclose(qda.predict_proba(queries), nb.predict_proba(queries), rtol=1e-9, atol=1e-12)
    np.testing.assert_allclose(qda.log_likelihood(queries), nb.log_likelihood(queries), rtol=1e-12, atol=1e-12)


def test_pooled_model_shares_covariance():
    X, y = _three_clusters(80, seed=2)
    model = GaussianClassifier("pooled").fit(X, y)

    covs = model.get_params()['covariances']
    for cov in covs[1:]:
        np.testing.assert_array_equal(cov, covs[0])


def test_per_class_model_covariances_differ():
    X, y = make_gaussian_classes([[0, 0], [3, 3]], n_per_class=300,
                                 covariances=[np.eye(2), [[4.0, 1.0], [1.0, 0.5]]], seed=3)
    model = GaussianClassifier("per_class").fit(X, y)

    covs = model.get_params()['covariances']
    assert not np.allclose(covs[0], covs[1], atol=0.1)


# =============================================================================
# Multi-class
# =============================================================================

@pytest.mark.parametrize("mode", MODES)
def test_three_class_confusion_matrix_is_diagonal_dominant(mode):
    X_train, y_train = _three_clusters(200, seed=20)
    X_test, y_test = _three_clusters(100, seed=21)

    model = GaussianClassifier(mode).fit(X_train, y_train)
    cm = confusion_matrix(y_test, model.predict(X_test), labels=model.classes)

    for k in range(3):
        assert np.argmax(cm[k]) == k
    assert np.trace(cm) / cm.sum() > 0.95


def test_argmax_ties_go_to_lowest_class():
    """Three classes with identical parameters: every point ties."""
    base = _grid_class([0.0, 0.0], [1.0, 1.0])
    X = np.vstack([base, base, base])
    y = np.array([0] * 16 + [1] * 16 + [2] * 16)

    model = GaussianClassifier("pooled").fit(X, y)
    np.testing.assert_array_equal(model.predict(np.array([[0.3, -0.2], [5.0, 5.0]])), [0, 0])


def test_string_labels():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=200, seed=0)
    labels = np.where(y == 0, 'healthy', 'sick')
    model = GaussianClassifier("pooled").fit(X, labels)

    assert model.classes.tolist() == ['healthy', 'sick']
    assert model.positive_class == 'sick'
    assert model.predict(0.0) == 'healthy'
    assert model.predict(3.0) == 'sick'
    assert model.with_priors({'healthy': 0.9, 'sick': 0.1}).predict(1.6) == 'healthy'


# =============================================================================
# Batch prediction
# =============================================================================

def test_chunked_parallel_prediction_matches_serial():
    X, y = _three_clusters(100, seed=5)
    model = GaussianClassifier("per_class").fit(X, y)

    rng = np.random.default_rng(6)
    queries = rng.normal(3, 4, size=(1000, 2))

    serial = model.predict_proba(queries)
    parallel = model.predict_proba(queries, batch_size=64, n_jobs=4)

    np.testing.assert_allclose(parallel, serial, rtol=1e-12, atol=1e-15)
    np.testing.assert_array_equal(model.predict(queries, n_jobs=3), model.predict(queries))
    np.testing.assert_allclose(model.decision_function(queries, batch_size=100, n_jobs=2),
                               model.decision_function(queries), rtol=1e-12)


def test_config_batching_is_used():
    X, y = _three_clusters(100, seed=5)
    config = EngineConfig(batch_size=10, n_jobs=2)
    model = GaussianClassifier("diagonal", config=config).fit(X, y)

    assert model.predict_proba(X).shape == (300, 3)
    assert model.score(X, y) > 0.95


# =============================================================================
# Fit contract and errors
# =============================================================================

def test_fit_accepts_dataset_and_does_not_mutate_input():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=100, seed=0)
    X_before = X.copy()
    dataset = Dataset.from_arrays(X, y)

    model = GaussianClassifier("per_class").fit(dataset)

    np.testing.assert_array_equal(X, X_before)
    assert model.n_features == 1
    with pytest.raises(ValueError):
        dataset.X[0, 0] = 1.0


def test_fit_requires_labels_for_arrays():
    with pytest.raises(ValueError):
        GaussianClassifier().fit(np.zeros((4, 2)))


def test_dimension_mismatch_never_truncates():
    X, y = _three_clusters(50, seed=0)
    model = GaussianClassifier("per_class").fit(X, y)

    with pytest.raises(DimensionMismatchError) as excinfo:
        model.predict_proba([1.0, 2.0, 3.0])
    assert excinfo.value.expected == 2
    assert excinfo.value.got == 3

    with pytest.raises(DimensionMismatchError):
        model.predict(np.zeros((5, 1)))


def test_constant_feature_is_singular():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((40, 2))
    X[:20, 1] = 5.0
    y = np.array([0] * 20 + [1] * 20)

    for mode in ["per_class", "diagonal"]:
        with pytest.raises(SingularCovarianceError) as excinfo:
            GaussianClassifier(mode).fit(X, y)
        assert excinfo.value.label == 0


def test_near_constant_feature_is_singular():
    """Values like 0.1 leave rounding residue in the mean; still a zero variance."""
    rng = np.random.default_rng(2)
    X = rng.standard_normal((40, 2))
    X[:20, 1] = 0.1
    y = np.array([0] * 20 + [1] * 20)

    for mode in ["per_class", "diagonal"]:
        with pytest.raises(SingularCovarianceError):
            GaussianClassifier(mode).fit(X, y)


def test_error_labels_are_plain_python():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((40, 2))
    X[:20, 1] = 5.0
    y = np.array([0] * 20 + [1] * 20)

    with pytest.raises(SingularCovarianceError) as excinfo:
        GaussianClassifier("per_class").fit(X, y)
    assert type(excinfo.value.label) is int
    assert "np." not in str(excinfo.value)

    with pytest.raises(InsufficientDataError) as excinfo:
        GaussianClassifier("per_class").fit(X[:22], y[:22])
    assert excinfo.value.label == 1
    assert type(excinfo.value.label) is int
    assert "class 1:" in str(excinfo.value)


@pytest.mark.parametrize("mode", MODES)
def test_mixed_feature_scales_fit_in_every_mode(mode):
    """A dollar amount next to a proportion is well-conditioned data."""
    X, y = make_gaussian_classes([[4e4, 0.40], [6e4, 0.45]], n_per_class=200,
                                 stds=[[2e4, 0.01], [2e4, 0.01]], seed=0)
    model = GaussianClassifier(mode).fit(X, y)

    assert not any(density.pseudo_inverse for density in model.densities)
    np.testing.assert_allclose(model.predict_proba(X).sum(axis=1), 1.0, atol=1e-9)
    assert model.score(X, y) > 0.95


def test_duplicated_feature_is_singular_for_pooled():
    rng = np.random.default_rng(1)
    X = rng.standard_normal((40, 1))
    X = np.hstack([X, X])
    y = np.array([0] * 20 + [1] * 20)

    with pytest.raises(SingularCovarianceError):
        GaussianClassifier("pooled").fit(X, y)


def test_pseudo_inverse_fallback_is_opt_in():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((40, 2))
    X[:20, 1] = 5.0
    y = np.array([0] * 20 + [1] * 20)

    model = GaussianClassifier("per_class", EngineConfig(allow_pseudo_inverse=True)).fit(X, y)

    assert model.densities[0].pseudo_inverse
    assert not model.densities[1].pseudo_inverse
    proba = model.predict_proba(X)
    np.testing.assert_allclose(proba.sum(axis=1), 1.0, atol=1e-9)


def test_infinite_query_has_undefined_posterior():
    X, y = make_gaussian_classes([0.0, 3.0], n_per_class=100, seed=0)
    model = GaussianClassifier("pooled").fit(X, y)

    with pytest.raises(UndefinedPosteriorError):
        model.predict_proba([[0.0], [np.inf]])
    with pytest.raises(UndefinedPosteriorError):
        model.predict(np.inf)


def test_attempt_returns_discriminated_result():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((6, 3))
    y = np.array([0, 0, 0, 1, 1, 1])

    failed = attempt(GaussianClassifier("per_class").fit, X, y)
    assert not failed.ok
    assert failed.kind == "InsufficientData"
    assert failed.value is None

    X_ok, y_ok = make_gaussian_classes([0.0, 3.0], n_per_class=50, seed=0)
    fitted = attempt(GaussianClassifier("pooled").fit, X_ok, y_ok)
    assert fitted.ok
    assert attempt(fitted.value.predict_proba, [1.0, 2.0]).kind == "DimensionMismatch"
    assert attempt(fitted.value.predict_proba, 1.0, priors=[2.0, -1.0]).kind == "InvalidPrior"
