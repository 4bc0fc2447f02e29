# textlasso/engines/metrics_engine.py
from __future__ import annotations

from typing import Dict, Iterable

import numpy as np
import pandas as pd
from sklearn import metrics as skm

from textlasso.core.types import METRIC_NAMES
from textlasso.utils.errors import DegenerateFoldError


class ClassificationMetricsEngine:
    """
    ClassificationMetricsEngine

    Contract:
    - y_true is 0/1, prob is P(positive)
    - hard predictions use `threshold`
    - a single-class y_true raises DegenerateFoldError (AUC undefined)
    """

    def __init__(self, metrics: Iterable[str] = METRIC_NAMES, threshold: float = 0.5):
        unknown = set(metrics) - set(METRIC_NAMES)
        if unknown:
            raise ValueError(f"unknown metrics: {sorted(unknown)}")
        self.metrics = tuple(metrics)
        self.threshold = threshold

    def evaluate(self, y_true, prob) -> Dict[str, float]:
        y_true = np.asarray(y_true, dtype=np.int64).ravel()
        prob = np.asarray(prob, dtype=np.float64).ravel()

        if y_true.shape != prob.shape:
            raise ValueError(f"y_true {y_true.shape} and prob {prob.shape} differ")
        if np.unique(y_true).size < 2:
            raise DegenerateFoldError(
                f"evaluation set holds a single class (n={y_true.size}); AUC is undefined"
            )

        pred = (prob >= self.threshold).astype(np.int64)
        out: Dict[str, float] = {}
        for name in self.metrics:
            out[name] = float(self._compute(name, y_true, prob, pred))
        return out

    @staticmethod
    def _compute(name: str, y_true, prob, pred) -> float:
        if name == "roc_auc":
            return skm.roc_auc_score(y_true, prob)
        if name == "accuracy":
            return skm.accuracy_score(y_true, pred)
        if name == "precision":
            return skm.precision_score(y_true, pred, zero_division=0)
        if name == "recall":
            return skm.recall_score(y_true, pred, zero_division=0)
        if name == "f1":
            return skm.f1_score(y_true, pred, zero_division=0)
        if name == "log_loss":
            return skm.log_loss(y_true, prob, labels=[0, 1])
        raise ValueError(f"unknown metric {name!r}")


def roc_curve_frame(y_true, prob):
    """
    ROC points for external rendering.
    """
    fpr, tpr, thresholds = skm.roc_curve(np.asarray(y_true), np.asarray(prob))
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})
