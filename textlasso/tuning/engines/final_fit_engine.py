# textlasso/tuning/engines/final_fit_engine.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from textlasso import logs
from textlasso.core.types import FinalModel, HyperparameterPoint, LabeledRecord
from textlasso.engines.feature_assembler_engine import FeatureAssemblerEngine, transform_with_state
from textlasso.engines.lasso_path_engine import LassoPathEngine, predict_proba
from textlasso.engines.metrics_engine import ClassificationMetricsEngine
from textlasso.utils.errors import HoldoutReuseError


class FinalFitEngine:
    """
    FinalFitEngine

    Responsibility:
    - refit assembler + solver on the whole training set at one point
    - coefficient-based feature importance
    - record-level prediction through the model's own assembler state
    """

    def __init__(self, *, assembler: FeatureAssemblerEngine, solver: LassoPathEngine):
        self.assembler = assembler
        self.solver = solver

    def finalize(
            self,
            point: HyperparameterPoint,
            train_records: Sequence[LabeledRecord],
            *,
            warm_path: Sequence[float] = (),
    ) -> FinalModel:
        """
        `warm_path` penalties larger than point.penalty are fit first as warm
        starts; only the model at point.penalty is kept.
        """
        state, X = self.assembler.fit_transform(train_records, max_tokens=point.max_tokens)
        y = np.array([r.label.encode() for r in train_records], dtype=np.int64)

        penalties = [p for p in warm_path if p > point.penalty] + [point.penalty]
        path = self.solver.fit_path(X, y, penalties, assembler_state=state)
        model = path[-1]

        logs.info(
            f"[FinalFit] penalty={point.penalty:.6g} max_tokens={point.max_tokens} "
            f"features={state.n_features} nnz={model.nnz} converged={model.converged}"
        )
        return FinalModel(
            point=point,
            assembler_state=state,
            model=model,
            feature_names=state.feature_names,
        )

    @staticmethod
    def predict(final_model: FinalModel, records: Sequence[LabeledRecord]) -> np.ndarray:
        X = transform_with_state(records, final_model.assembler_state)
        return predict_proba(final_model.model, X)

    @staticmethod
    def importance(final_model: FinalModel) -> List[Tuple[str, float]]:
        """
        Nonzero coefficients, largest |weight| first. Positive weights push
        toward the positive class.
        """
        coef = final_model.model.coef
        nz = np.flatnonzero(coef)
        order = nz[np.argsort(-np.abs(coef[nz]), kind="stable")]
        return [(final_model.feature_names[j], float(coef[j])) for j in order]


@dataclass(frozen=True, eq=False)
class HoldoutEvaluation:
    metrics: Dict[str, float]
    predictions: pd.DataFrame


class HoldoutEvaluator:
    """
    HoldoutEvaluator

    Owns the held-out test set and allows exactly one evaluation. The
    result is a generalization estimate only; it must not feed selection.
    """

    def __init__(self, records: Sequence[LabeledRecord], metrics: ClassificationMetricsEngine):
        self._records = tuple(records)
        self._metrics = metrics
        self.calls = 0

    def __len__(self) -> int:
        return len(self._records)

    def evaluate(self, final_model: FinalModel) -> HoldoutEvaluation:
        if self.calls:
            raise HoldoutReuseError("the held-out test set has already been evaluated in this run")
        self.calls += 1

        prob = FinalFitEngine.predict(final_model, self._records)
        y = np.array([r.label.encode() for r in self._records], dtype=np.int64)
        scores = self._metrics.evaluate(y, prob)

        predictions = pd.DataFrame(
            {
                "id": [r.id for r in self._records],
                "label": y,
                "prob": prob,
            }
        )
        logs.info(
            "[Holdout] " + " ".join(f"{k}={v:.4f}" for k, v in scores.items())
        )
        return HoldoutEvaluation(metrics=scores, predictions=predictions)
