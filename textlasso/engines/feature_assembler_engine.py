# textlasso/engines/feature_assembler_engine.py
from __future__ import annotations

import calendar
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from textlasso.core.types import LabeledRecord
from textlasso.engines.text_vectorizer_engine import TextVectorizerEngine, VectorizerState

UNKNOWN_TAG = "unknown"


class FeatureStage(ABC):
    """
    One preprocessing stage.

    Stages hold configuration only. Fitted state is an immutable value
    returned by fit and passed back explicitly to transform / columns.
    """

    name: str

    @abstractmethod
    def fit(self, records: Sequence[LabeledRecord], **params) -> Any:
        ...

    @abstractmethod
    def transform(self, records: Sequence[LabeledRecord], state: Any) -> sp.csr_matrix:
        ...

    @abstractmethod
    def columns(self, state: Any) -> List[str]:
        ...


class _OneHotStage(FeatureStage):
    """One-hot over a category list fixed at fit time."""

    def transform(self, records, state: Tuple[str, ...]) -> sp.csr_matrix:
        lookup = {c: j for j, c in enumerate(state)}
        rows = np.arange(len(records))
        cols = np.fromiter((lookup[self.category(r, lookup)] for r in records), dtype=np.int64, count=len(records))
        data = np.ones(len(records), dtype=np.float64)
        return sp.csr_matrix((data, (rows, cols)), shape=(len(records), len(state)))

    def columns(self, state: Tuple[str, ...]) -> List[str]:
        return [f"{self.name}_{c}" for c in state]

    @abstractmethod
    def category(self, record: LabeledRecord, lookup: dict) -> str:
        ...


class MonthStage(_OneHotStage):
    name = "month"

    def fit(self, records, **params) -> Tuple[str, ...]:
        return tuple(calendar.month_abbr[m] for m in range(1, 13))

    def category(self, record, lookup) -> str:
        return calendar.month_abbr[record.event_date.month]


class WeekdayStage(_OneHotStage):
    name = "dow"

    def fit(self, records, **params) -> Tuple[str, ...]:
        return tuple(calendar.day_abbr[d] for d in range(7))

    def category(self, record, lookup) -> str:
        return calendar.day_abbr[record.event_date.weekday()]


class TagStage(_OneHotStage):
    """
    Tags seen at fit time (sorted) plus a reserved unknown bucket; missing
    or unseen tags route to the unknown bucket.
    """
    name = "tag"

    def fit(self, records, **params) -> Tuple[str, ...]:
        seen = sorted({r.categorical_tag for r in records if r.categorical_tag is not None} - {UNKNOWN_TAG})
        return tuple(seen) + (UNKNOWN_TAG,)

    def category(self, record, lookup) -> str:
        tag = record.categorical_tag
        return tag if tag in lookup else UNKNOWN_TAG


class TextStage(FeatureStage):
    name = "text"

    def __init__(self, vectorizer: TextVectorizerEngine, min_times: int = 1):
        self.vectorizer = vectorizer
        self.min_times = min_times

    def fit(self, records, *, max_tokens: int, **params) -> VectorizerState:
        return self.vectorizer.fit(
            [r.free_text for r in records],
            max_tokens=max_tokens,
            min_times=self.min_times,
        )

    def transform(self, records, state: VectorizerState) -> sp.csr_matrix:
        return self.vectorizer.transform([r.free_text for r in records], state)

    def columns(self, state: VectorizerState) -> List[str]:
        return [f"{self.name}_{g}" for g in state.vocabulary]


@dataclass(frozen=True, eq=False)
class AssemblerState:
    """
    Ordered (stage, fitted state) pairs and the column layout they define.
    """
    stages: Tuple[Tuple[FeatureStage, Any], ...]
    feature_names: Tuple[str, ...]
    max_tokens: int

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    @property
    def vectorizer_state(self) -> VectorizerState | None:
        for stage, state in self.stages:
            if isinstance(stage, TextStage):
                return state
        return None


class FeatureAssemblerEngine:
    """
    FeatureAssemblerEngine

    Contract:
    - fit sees only the rows it is given (per-fold, leakage-safe)
    - transform reproduces the fit-time column order exactly, with zero
      fill for absent tokens and unseen categories
    """

    def __init__(self, stages: Sequence[FeatureStage]):
        if not stages:
            raise ValueError("FeatureAssemblerEngine needs at least one stage")
        self.stages = tuple(stages)

    @classmethod
    def default(
            cls,
            *,
            min_times: int = 1,
            stopwords="english",
            ngram_range: Tuple[int, int] = (1, 2),
            smooth_idf: bool = False,
    ) -> "FeatureAssemblerEngine":
        vectorizer = TextVectorizerEngine(
            stopwords=stopwords,
            ngram_range=ngram_range,
            smooth_idf=smooth_idf,
        )
        return cls([
            MonthStage(),
            WeekdayStage(),
            TagStage(),
            TextStage(vectorizer, min_times=min_times),
        ])

    @classmethod
    def from_config(cls, cfg) -> "FeatureAssemblerEngine":
        """cfg: VectorizerConfig"""
        return cls.default(
            min_times=cfg.min_times,
            stopwords=cfg.stopwords,
            ngram_range=(cfg.ngram_min, cfg.ngram_max),
            smooth_idf=cfg.smooth_idf,
        )

    # ======================================================================
    # Public API
    # ======================================================================
    def fit(self, records: Sequence[LabeledRecord], *, max_tokens: int) -> AssemblerState:
        fitted = []
        names: List[str] = []
        for stage in self.stages:
            state = stage.fit(records, max_tokens=max_tokens)
            fitted.append((stage, state))
            names.extend(stage.columns(state))

        return AssemblerState(
            stages=tuple(fitted),
            feature_names=tuple(names),
            max_tokens=max_tokens,
        )

    def transform(self, records: Sequence[LabeledRecord], state: AssemblerState) -> sp.csr_matrix:
        blocks = [stage.transform(records, st) for stage, st in state.stages]
        X = sp.hstack(blocks, format="csr", dtype=np.float64)
        if X.shape[1] != state.n_features:
            raise RuntimeError(
                f"[FeatureAssembler] column layout drift: {X.shape[1]} != {state.n_features}"
            )
        return X

    def fit_transform(self, records, *, max_tokens: int) -> Tuple[AssemblerState, sp.csr_matrix]:
        state = self.fit(records, max_tokens=max_tokens)
        return state, self.transform(records, state)


def transform_with_state(records: Sequence[LabeledRecord], state: AssemblerState) -> sp.csr_matrix:
    """
    Transform using the stages recorded in `state` itself.
    """
    return FeatureAssemblerEngine([stage for stage, _ in state.stages]).transform(records, state)
