# textlasso/engines/lasso_path_engine.py
from __future__ import annotations

import warnings
from typing import Any, List, Sequence, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.special import expit

from textlasso import logs
from textlasso.core.types import FittedModel
from textlasso.utils.errors import ConvergenceWarning, DegenerateFoldError

# IRLS weights are computed from probabilities clipped to this band
_PROB_EPS = 1e-5


class LassoPathEngine:
    """
    LassoPathEngine

    Elastic-net penalized logistic regression by IRLS + cyclic coordinate
    descent over sparse columns:

        mean log-loss
        + penalty * mixture * |coef|_1
        + penalty * (1 - mixture) / 2 * |coef|_2^2

    The intercept is not penalized. Penalties are fit in descending order,
    each warm-started from the previous solution.

    Convergence:
    - a penalty is converged when the first full coordinate pass after an
      IRLS reweighting moves no coefficient by more than `tol`
    - `max_iter` caps the total number of coordinate passes per penalty;
      hitting it emits ConvergenceWarning and keeps the current coefficients
    """

    def __init__(self, *, mixture: float = 1.0, tol: float = 1e-4, max_iter: int = 1000):
        if not 0.0 <= mixture <= 1.0:
            raise ValueError(f"mixture must be in [0, 1], got {mixture}")
        self.mixture = float(mixture)
        self.tol = float(tol)
        self.max_iter = int(max_iter)

    @classmethod
    def from_config(cls, cfg) -> "LassoPathEngine":
        """cfg: SolverConfig"""
        return cls(mixture=cfg.mixture, tol=cfg.tol, max_iter=cfg.max_iter)

    # ======================================================================
    # Public API
    # ======================================================================
    def fit_path(
            self,
            X,
            y,
            penalty_values: Sequence[float],
            mixture: float | None = None,
            *,
            assembler_state: Any = None,
    ) -> List[FittedModel]:
        """
        Returns one FittedModel per distinct penalty, largest penalty first.
        `mixture` overrides the engine default for this path.
        """
        mixture = self._mixture(mixture)
        Xc = sp.csc_matrix(X, dtype=np.float64)
        y = self._check_labels(y, Xc.shape[0])
        penalties = self._descending(penalty_values)

        n, p = Xc.shape
        X2 = Xc.copy()
        X2.data **= 2

        ybar = float(y.mean())
        intercept = float(np.log(ybar / (1.0 - ybar)))
        beta = np.zeros(p, dtype=np.float64)

        path: List[FittedModel] = []
        for penalty in penalties:
            intercept, n_iter, converged = self._fit_one(
                Xc, X2, y, beta, intercept, penalty, mixture
            )

            notes: Tuple[str, ...] = ()
            if not converged:
                msg = (
                    f"coordinate descent did not converge for penalty={penalty:.6g} "
                    f"after {n_iter} passes (tol={self.tol:g})"
                )
                warnings.warn(msg, ConvergenceWarning, stacklevel=2)
                logs.warning(f"[LassoPath] {msg}")
                notes = (msg,)

            coef = beta.copy()
            coef.setflags(write=False)
            path.append(
                FittedModel(
                    coef=coef,
                    intercept=intercept,
                    penalty=penalty,
                    mixture=mixture,
                    converged=converged,
                    n_iter=n_iter,
                    warnings=notes,
                    assembler_state=assembler_state,
                )
            )
            logs.debug(
                f"[LassoPath] penalty={penalty:.6g} nnz={path[-1].nnz}/{p} passes={n_iter}"
            )

        return path

    def max_penalty(self, X, y, mixture: float | None = None) -> float:
        """
        Smallest penalty at which every coefficient is zero (pure-L1 case;
        scaled by 1 / mixture otherwise).
        """
        Xc = sp.csc_matrix(X, dtype=np.float64)
        y = self._check_labels(y, Xc.shape[0])
        grad = np.abs(Xc.T @ (y - y.mean())) / Xc.shape[0]
        if grad.size == 0:
            return 0.0
        return float(grad.max() / max(self._mixture(mixture), 1e-3))

    # ======================================================================
    # Internal
    # ======================================================================
    def _fit_one(
            self,
            Xc: sp.csc_matrix,
            X2: sp.csc_matrix,
            y: np.ndarray,
            beta: np.ndarray,
            intercept: float,
            penalty: float,
            mixture: float,
    ) -> Tuple[float, int, bool]:
        """
        Solve for one penalty, updating `beta` in place.

        Returns:
            intercept, passes used, converged
        """
        n = Xc.shape[0]
        l1 = penalty * mixture
        l2 = penalty * (1.0 - mixture)

        passes = 0
        while passes < self.max_iter:
            eta = Xc @ beta + intercept
            prob = np.clip(expit(eta), _PROB_EPS, 1.0 - _PROB_EPS)
            w = prob * (1.0 - prob)
            r = (y - prob) / w
            v = (X2.T @ w) / n

            intercept, first_delta, used = self._coordinate_descent(
                Xc, w, r, v, beta, intercept, l1, l2, budget=self.max_iter - passes
            )
            passes += used
            if first_delta < self.tol:
                return intercept, passes, True

        return intercept, passes, False

    def _coordinate_descent(
            self,
            Xc: sp.csc_matrix,
            w: np.ndarray,
            r: np.ndarray,
            v: np.ndarray,
            beta: np.ndarray,
            intercept: float,
            l1: float,
            l2: float,
            *,
            budget: int,
    ) -> Tuple[float, float, int]:
        """
        Weighted least-squares subproblem: full passes, with active-set
        passes in between until the active set settles.

        Returns:
            intercept, max change of the first full pass, passes used
        """
        all_cols = np.arange(Xc.shape[1])
        sum_w = float(w.sum())

        intercept, first_delta = self._pass(Xc, w, r, v, beta, intercept, l1, l2, all_cols, sum_w)
        used = 1
        delta = first_delta

        while delta >= self.tol and used < budget:
            active = np.flatnonzero(beta)
            while used < budget:
                intercept, delta = self._pass(Xc, w, r, v, beta, intercept, l1, l2, active, sum_w)
                used += 1
                if delta < self.tol:
                    break
            if used >= budget:
                break
            intercept, delta = self._pass(Xc, w, r, v, beta, intercept, l1, l2, all_cols, sum_w)
            used += 1

        return intercept, first_delta, used

    @staticmethod
    def _pass(Xc, w, r, v, beta, intercept, l1, l2, cols, sum_w) -> Tuple[float, float]:
        n = Xc.shape[0]
        indptr, indices, data = Xc.indptr, Xc.indices, Xc.data
        dmax = 0.0

        for j in cols:
            vj = v[j]
            if vj <= 0.0:
                continue
            s, e = indptr[j], indptr[j + 1]
            rows = indices[s:e]
            vals = data[s:e]

            old = beta[j]
            u = np.dot(w[rows] * vals, r[rows]) / n + vj * old
            new = np.sign(u) * max(abs(u) - l1, 0.0) / (vj + l2)

            d = new - old
            if d != 0.0:
                r[rows] -= vals * d
                beta[j] = new
                dmax = max(dmax, abs(d))

        shift = float(np.dot(w, r) / sum_w)
        if shift != 0.0:
            r -= shift
            intercept += shift
            dmax = max(dmax, abs(shift))

        return intercept, dmax

    def _mixture(self, mixture: float | None) -> float:
        if mixture is None:
            return self.mixture
        if not 0.0 <= mixture <= 1.0:
            raise ValueError(f"mixture must be in [0, 1], got {mixture}")
        return float(mixture)

    @staticmethod
    def _check_labels(y, n_rows: int) -> np.ndarray:
        y = np.asarray(y, dtype=np.float64).ravel()
        if y.shape[0] != n_rows:
            raise ValueError(f"X has {n_rows} rows but y has {y.shape[0]}")
        if not np.isin(y, (0.0, 1.0)).all():
            raise ValueError("y must be encoded as 0/1")
        if y.size == 0 or y.min() == y.max():
            raise DegenerateFoldError("training labels contain a single class")
        return y

    @staticmethod
    def _descending(penalty_values: Sequence[float]) -> List[float]:
        penalties = sorted({float(v) for v in penalty_values}, reverse=True)
        if not penalties:
            raise ValueError("penalty_values is empty")
        if penalties[-1] <= 0:
            raise ValueError("penalty values must be positive")
        return penalties


def predict_proba(model: FittedModel, X) -> np.ndarray:
    """
    P(positive) = logistic(X @ coef + intercept)
    """
    if X.shape[1] != model.n_features:
        raise ValueError(
            f"matrix has {X.shape[1]} columns but the model was fit on {model.n_features}; "
            f"it must be built with the model's own assembler state"
        )
    return expit(np.asarray(X @ model.coef).ravel() + model.intercept)
