# textlasso/tuning/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from textlasso.core.types import FinalModel, Fold, HyperparameterPoint, LabeledRecord


class TuningPhase(str, Enum):
    INIT = "init"
    EXPANDING_GRID = "expanding_grid"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"
    DONE = "done"


_ORDER = list(TuningPhase)


@dataclass
class TuningContext:
    """
    TuningContext

    Semantics:
    - one context == one tuning run
    - steps communicate only through this object
    - phase only moves forward, one step at a time
    """

    # -------------------------
    # identity / bindings
    # -------------------------
    run_id: str
    cfg: Any
    records: Tuple[LabeledRecord, ...]
    phase: TuningPhase = TuningPhase.INIT

    # -------------------------
    # split
    # -------------------------
    train: Tuple[LabeledRecord, ...] = ()
    holdout: Any = None
    folds: List[Fold] = field(default_factory=list)

    # -------------------------
    # grid / dispatch
    # -------------------------
    penalties: Tuple[float, ...] = ()
    max_tokens: Tuple[int, ...] = ()
    grid: List[HyperparameterPoint] = field(default_factory=list)
    units: List[Any] = field(default_factory=list)
    unit_results: List[Any] = field(default_factory=list)
    failed_units: List[Dict[str, Any]] = field(default_factory=list)

    # -------------------------
    # aggregation / selection
    # -------------------------
    metrics: Optional[pd.DataFrame] = None
    table: Optional[pd.DataFrame] = None
    fold_predictions: Optional[pd.DataFrame] = None
    best: Optional[HyperparameterPoint] = None

    # -------------------------
    # final fit
    # -------------------------
    final_model: Optional[FinalModel] = None
    importance: List[Tuple[str, float]] = field(default_factory=list)
    test_metrics: Dict[str, float] = field(default_factory=dict)
    test_predictions: Optional[pd.DataFrame] = None

    def advance(self, phase: TuningPhase) -> None:
        cur, nxt = _ORDER.index(self.phase), _ORDER.index(phase)
        if nxt != cur + 1:
            raise RuntimeError(
                f"[TuningContext] illegal transition {self.phase.value} -> {phase.value}"
            )
        self.phase = phase

    def require(self, phase: TuningPhase) -> None:
        if self.phase != phase:
            raise RuntimeError(
                f"[TuningContext] expected phase {phase.value}, found {self.phase.value}"
            )


@dataclass(frozen=True, eq=False)
class TuningResult:
    """
    Plain structured outputs of a run (no presentation dependency).
    """
    run_id: str
    metrics: pd.DataFrame
    table: pd.DataFrame
    best: HyperparameterPoint
    final_model: FinalModel
    importance: List[Tuple[str, float]]
    test_metrics: Dict[str, float]
    test_predictions: pd.DataFrame
    failed_units: List[Dict[str, Any]]
    fold_predictions: Optional[pd.DataFrame] = None
    unit_warnings: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_context(cls, ctx: TuningContext) -> "TuningResult":
        if ctx.final_model is None or ctx.test_predictions is None:
            raise RuntimeError("[TuningResult] run did not reach the holdout evaluation")
        return cls(
            run_id=ctx.run_id,
            metrics=ctx.metrics,
            table=ctx.table,
            best=ctx.best,
            final_model=ctx.final_model,
            importance=ctx.importance,
            test_metrics=ctx.test_metrics,
            test_predictions=ctx.test_predictions,
            failed_units=ctx.failed_units,
            fold_predictions=ctx.fold_predictions,
            unit_warnings=[
                {"fold_id": r.fold_id, "max_tokens": r.max_tokens, "message": note}
                for r in ctx.unit_results
                for note in r.warnings
            ],
        )
