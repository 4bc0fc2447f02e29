# textlasso/tuning/engines/grid_search_engine.py
from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from textlasso import logs
from textlasso.core.types import Fold, HyperparameterPoint, LabeledRecord, MetricRecord
from textlasso.engines.feature_assembler_engine import FeatureAssemblerEngine
from textlasso.engines.lasso_path_engine import LassoPathEngine, predict_proba
from textlasso.engines.metrics_engine import ClassificationMetricsEngine
from textlasso.utils.errors import ConvergenceWarning, DegenerateFoldError


def expand_grid(
        *,
        penalty_range: Tuple[float, float],
        max_tokens_range: Tuple[int, int],
        levels: int,
) -> Tuple[Tuple[float, ...], Tuple[int, ...]]:
    """
    Regular grid: `levels` log10-spaced penalties (descending) and `levels`
    evenly spaced vocabulary sizes (ascending). Duplicates after rounding
    collapse, so the grid can hold fewer than levels**2 points.
    """
    if levels < 1:
        raise ValueError(f"levels must be >= 1, got {levels}")

    exponents = np.linspace(penalty_range[0], penalty_range[1], levels)
    penalties = sorted({float(10.0 ** e) for e in exponents}, reverse=True)

    sizes = np.rint(np.linspace(max_tokens_range[0], max_tokens_range[1], levels))
    max_tokens = sorted({int(s) for s in sizes})

    return tuple(penalties), tuple(max_tokens)


def grid_points(penalties: Sequence[float], max_tokens: Sequence[int]) -> List[HyperparameterPoint]:
    return [
        HyperparameterPoint(penalty=p, max_tokens=t)
        for t in max_tokens
        for p in penalties
    ]


@dataclass(frozen=True)
class SearchUnit:
    """
    One dispatch unit: a fold at one vocabulary size, across the whole
    penalty path.
    """
    fold: Fold
    max_tokens: int
    penalties: Tuple[float, ...]

    def __str__(self) -> str:
        return f"fold={self.fold.fold_id}/max_tokens={self.max_tokens}"


@dataclass(frozen=True, eq=False)
class UnitResult:
    fold_id: int
    max_tokens: int
    metrics: Tuple[MetricRecord, ...]
    n_features: int
    vocabulary_size: int
    warnings: Tuple[str, ...] = ()
    predictions: Optional[pd.DataFrame] = None


class GridSearchEngine:
    """
    GridSearchEngine

    Responsibility:
    - execute one SearchUnit end to end:
        fit assembler on fit-rows -> transform fit / validation rows
        -> one penalty path -> metrics per penalty

    Contract:
    - holds configuration only; safe to pickle into worker processes
    - the assembler state never sees validation rows
    - the transform is built once per unit and reused across the path
    """

    def __init__(
            self,
            *,
            assembler: FeatureAssemblerEngine,
            solver: LassoPathEngine,
            metrics: ClassificationMetricsEngine,
            save_predictions: bool = False,
    ):
        self.assembler = assembler
        self.solver = solver
        self.metrics = metrics
        self.save_predictions = save_predictions

    def run_unit(self, records: Sequence[LabeledRecord], unit: SearchUnit) -> UnitResult:
        fold = unit.fold
        fit_rows = [records[i] for i in fold.fit_indices]
        val_rows = [records[i] for i in fold.validation_indices]

        y_fit = np.array([r.label.encode() for r in fit_rows], dtype=np.int64)
        y_val = np.array([r.label.encode() for r in val_rows], dtype=np.int64)

        # fail before paying for the transform
        for name, y in (("fit", y_fit), ("validation", y_val)):
            if np.unique(y).size < 2:
                raise DegenerateFoldError(
                    f"{unit}: {name} rows hold a single class (n={y.size})"
                )

        state = self.assembler.fit(fit_rows, max_tokens=unit.max_tokens)
        X_fit = self.assembler.transform(fit_rows, state)
        X_val = self.assembler.transform(val_rows, state)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            path = self.solver.fit_path(
                X_fit, y_fit, unit.penalties, assembler_state=state
            )

        records_out: List[MetricRecord] = []
        notes: List[str] = []
        frames: List[pd.DataFrame] = []
        for model in path:
            point = HyperparameterPoint(penalty=model.penalty, max_tokens=unit.max_tokens)
            prob = predict_proba(model, X_val)
            for name, value in self.metrics.evaluate(y_val, prob).items():
                records_out.append(
                    MetricRecord(point=point, fold_id=fold.fold_id, metric_name=name, value=value)
                )
            notes.extend(model.warnings)

            if self.save_predictions:
                frames.append(
                    pd.DataFrame(
                        {
                            "id": [r.id for r in val_rows],
                            "fold_id": fold.fold_id,
                            "penalty": model.penalty,
                            "max_tokens": unit.max_tokens,
                            "label": y_val,
                            "prob": prob,
                        }
                    )
                )

        vocab = state.vectorizer_state
        logs.debug(
            f"[GridSearch] {unit} features={state.n_features} "
            f"nnz@min_penalty={path[-1].nnz}"
        )

        return UnitResult(
            fold_id=fold.fold_id,
            max_tokens=unit.max_tokens,
            metrics=tuple(records_out),
            n_features=state.n_features,
            vocabulary_size=len(vocab) if vocab is not None else 0,
            warnings=tuple(notes),
            predictions=pd.concat(frames, ignore_index=True) if frames else None,
        )
