# textlasso/core/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Tuple

import numpy as np


METRIC_NAMES: Tuple[str, ...] = (
    "roc_auc",
    "accuracy",
    "precision",
    "recall",
    "f1",
    "log_loss",
)

# metrics where a smaller value is better
MINIMIZED_METRICS = frozenset({"log_loss"})


class Label(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"

    def encode(self) -> int:
        return 1 if self is Label.POSITIVE else 0


@dataclass(frozen=True, slots=True)
class LabeledRecord:
    """
    LabeledRecord

    Immutable input unit. `label` is already reduced to two classes.
    """
    id: Any
    free_text: str
    categorical_tag: Optional[str]
    event_date: date
    label: Label


@dataclass(frozen=True)
class Fold:
    """
    One cross-validation partition of a training set.

    Indices refer to positions in the record sequence the fold was built from.
    """
    fold_id: int
    fit_indices: Tuple[int, ...]
    validation_indices: Tuple[int, ...]


@dataclass(frozen=True, order=True)
class HyperparameterPoint:
    penalty: float
    max_tokens: int

    def __post_init__(self):
        if not self.penalty > 0:
            raise ValueError(f"penalty must be positive, got {self.penalty}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    FittedModel

    Semantics:
    - coef is aligned to the column layout of `assembler_state`
    - never apply it to a matrix built by a different fit
    - converged=False means the iteration cap was hit; coef is still usable
    """
    coef: np.ndarray
    intercept: float
    penalty: float
    mixture: float = 1.0
    converged: bool = True
    n_iter: int = 0
    warnings: Tuple[str, ...] = ()
    assembler_state: Any = None

    @property
    def n_features(self) -> int:
        return int(self.coef.shape[0])

    @property
    def nnz(self) -> int:
        return int(np.count_nonzero(self.coef))


@dataclass(frozen=True)
class MetricRecord:
    point: HyperparameterPoint
    fold_id: int
    metric_name: str
    value: float

    def as_row(self) -> dict:
        return {
            "penalty": self.point.penalty,
            "max_tokens": self.point.max_tokens,
            "fold_id": self.fold_id,
            "metric": self.metric_name,
            "value": self.value,
        }


@dataclass(frozen=True, eq=False)
class FinalModel:
    """
    The one retained output of a tuning run: selected point, transformation
    state and coefficients refit on the whole training set.
    """
    point: HyperparameterPoint
    assembler_state: Any
    model: FittedModel
    feature_names: Tuple[str, ...] = field(default=())
