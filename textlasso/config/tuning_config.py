# textlasso/config/tuning_config.py
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from textlasso.core.types import METRIC_NAMES


class ParallelBackend(str, Enum):
    PROCESS = "process"
    THREAD = "thread"


class GridConfig(BaseModel):
    """
    Regular grid over (penalty, max_tokens).

    penalty_range is in log10 units, e.g. (-3, 0) -> 1e-3 .. 1.
    """

    penalty_range: Tuple[float, float] = (-3.0, 0.0)
    max_tokens_range: Tuple[int, int] = (500, 2000)
    levels: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def _check_ranges(self) -> "GridConfig":
        lo, hi = self.penalty_range
        if lo > hi:
            raise ValueError(f"penalty_range must be ascending, got {self.penalty_range}")
        t_lo, t_hi = self.max_tokens_range
        if t_lo < 1 or t_lo > t_hi:
            raise ValueError(f"max_tokens_range must be positive and ascending, got {self.max_tokens_range}")
        return self


class VectorizerConfig(BaseModel):
    min_times: int = Field(default=10, ge=1)
    ngram_min: int = Field(default=1, ge=1)
    ngram_max: int = Field(default=2, ge=1)
    smooth_idf: bool = False
    stopwords: Union[Literal["english", "none"], List[str]] = "english"

    @model_validator(mode="after")
    def _check_ngram(self) -> "VectorizerConfig":
        if self.ngram_min > self.ngram_max:
            raise ValueError("ngram_min must be <= ngram_max")
        return self


class SolverConfig(BaseModel):
    mixture: float = Field(default=1.0, ge=0.0, le=1.0)
    tol: float = Field(default=1e-4, gt=0.0)
    max_iter: int = Field(default=1000, ge=1)


class ParallelConfig(BaseModel):
    backend: ParallelBackend = ParallelBackend.PROCESS
    max_workers: Optional[int] = None
    unit_timeout: Optional[float] = None


class TuningConfig(BaseModel):
    """
    TuningConfig

    One config == one tuning run (split -> CV grid search -> final fit).
    """

    seed: int = 1234
    strata_field: str = "label"
    train_proportion: float = Field(default=0.75, gt=0.0, lt=1.0)
    folds: int = Field(default=5, ge=2)
    metric: str = "roc_auc"
    save_predictions: bool = False

    grid: GridConfig = GridConfig()
    vectorizer: VectorizerConfig = VectorizerConfig()
    solver: SolverConfig = SolverConfig()
    parallel: ParallelConfig = ParallelConfig()

    @field_validator("metric")
    @classmethod
    def _known_metric(cls, v: str) -> str:
        if v not in METRIC_NAMES:
            raise ValueError(f"unknown metric {v!r}, expected one of {METRIC_NAMES}")
        return v
