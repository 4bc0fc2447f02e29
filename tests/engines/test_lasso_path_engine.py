import numpy as np
import pytest
import scipy.sparse as sp
from scipy.special import expit
from sklearn.linear_model import LogisticRegression

from textlasso.engines.lasso_path_engine import LassoPathEngine, predict_proba
from textlasso.utils.errors import ConvergenceWarning, DegenerateFoldError


@pytest.fixture(scope="module")
def problem():
    rng = np.random.default_rng(0)
    n, p = 300, 10
    X = rng.normal(size=(n, p))
    # sparsify a little so the CSC paths get exercised
    X[rng.random(size=(n, p)) < 0.2] = 0.0
    true = np.zeros(p)
    true[:3] = [1.5, -1.0, 0.8]
    y = (rng.random(n) < expit(X @ true - 0.5)).astype(float)
    return sp.csr_matrix(X), y


def gradient(X, y, model):
    prob = expit(np.asarray(X @ model.coef).ravel() + model.intercept)
    return np.asarray(X.T @ (y - prob)).ravel() / X.shape[0], float(np.sum(y - prob))


def test_path_is_descending_and_deduplicated(problem):
    X, y = problem
    path = LassoPathEngine().fit_path(X, y, [0.01, 0.1, 0.05, 0.1])

    assert [m.penalty for m in path] == [0.1, 0.05, 0.01]


def test_above_max_penalty_everything_is_zero(problem):
    X, y = problem
    solver = LassoPathEngine()
    lam_max = solver.max_penalty(X, y)

    top, below = solver.fit_path(X, y, [lam_max * 1.01, lam_max * 0.9])

    assert top.nnz == 0
    assert top.intercept == pytest.approx(np.log(y.mean() / (1 - y.mean())), abs=1e-6)
    assert below.nnz >= 1


def test_nonzero_count_grows_as_penalty_shrinks(problem):
    X, y = problem
    solver = LassoPathEngine(tol=1e-8, max_iter=5000)
    lam_max = solver.max_penalty(X, y)

    path = solver.fit_path(X, y, lam_max * np.geomspace(0.95, 0.01, 8))
    nnz = [m.nnz for m in path]

    assert nnz == sorted(nnz)
    assert nnz[-1] > nnz[0]


def test_lasso_solution_satisfies_optimality_conditions(problem):
    X, y = problem
    penalty = 0.02
    (model,) = LassoPathEngine(tol=1e-9, max_iter=10000).fit_path(X, y, [penalty])

    grad, intercept_grad = gradient(X, y, model)
    active = model.coef != 0

    assert model.converged
    assert abs(intercept_grad) < 1e-4
    assert np.allclose(grad[active], penalty * np.sign(model.coef[active]), atol=1e-4)
    assert np.all(np.abs(grad[~active]) <= penalty + 1e-4)


def test_ridge_matches_sklearn(problem):
    X, y = problem
    penalty = 0.05
    (model,) = LassoPathEngine(mixture=0.0, tol=1e-10, max_iter=10000).fit_path(X, y, [penalty])

    ref = LogisticRegression(C=1.0 / (penalty * X.shape[0]), tol=1e-10, max_iter=10000)
    ref.fit(X.toarray(), y)

    assert np.allclose(model.coef, ref.coef_.ravel(), atol=1e-4)
    assert model.intercept == pytest.approx(ref.intercept_[0], abs=1e-4)


def test_warm_start_matches_cold_start(problem):
    X, y = problem
    solver = LassoPathEngine(tol=1e-9, max_iter=10000)

    warm = solver.fit_path(X, y, [0.1, 0.05, 0.01])[-1]
    (cold,) = solver.fit_path(X, y, [0.01])

    assert np.allclose(warm.coef, cold.coef, atol=1e-5)


def test_iteration_cap_warns_and_flags_model(problem):
    X, y = problem
    solver = LassoPathEngine(tol=1e-12, max_iter=1)

    with pytest.warns(ConvergenceWarning):
        (model,) = solver.fit_path(X, y, [0.001])

    assert not model.converged
    assert model.n_iter == 1
    assert model.warnings
    assert np.all(np.isfinite(model.coef))


def test_single_class_labels_raise(problem):
    X, _ = problem
    with pytest.raises(DegenerateFoldError):
        LassoPathEngine().fit_path(X, np.zeros(X.shape[0]), [0.1])


def test_bad_inputs(problem):
    X, y = problem
    with pytest.raises(ValueError):
        LassoPathEngine().fit_path(X, y[:-1], [0.1])
    with pytest.raises(ValueError):
        LassoPathEngine().fit_path(X, y * 2, [0.1])
    with pytest.raises(ValueError):
        LassoPathEngine().fit_path(X, y, [])
    with pytest.raises(ValueError):
        LassoPathEngine().fit_path(X, y, [0.1, 0.0])
    with pytest.raises(ValueError):
        LassoPathEngine(mixture=1.5)


def test_coefficients_are_read_only(problem):
    X, y = problem
    (model,) = LassoPathEngine().fit_path(X, y, [0.05])
    with pytest.raises(ValueError):
        model.coef[0] = 1.0


def test_predict_proba(problem):
    X, y = problem
    (model,) = LassoPathEngine().fit_path(X, y, [0.01])

    prob = predict_proba(model, X)

    assert prob.shape == (X.shape[0],)
    assert np.all((prob > 0) & (prob < 1))
    with pytest.raises(ValueError):
        predict_proba(model, X[:, :5])


def test_mixture_override_per_path(problem):
    X, y = problem
    solver = LassoPathEngine(tol=1e-6, max_iter=5000)

    (ridge,) = solver.fit_path(X, y, [0.05], mixture=0.0)
    (lasso,) = solver.fit_path(X, y, [0.05])

    assert ridge.mixture == 0.0
    assert ridge.nnz == X.shape[1]
    assert lasso.nnz < X.shape[1]
    with pytest.raises(ValueError):
        solver.fit_path(X, y, [0.05], mixture=-0.5)
