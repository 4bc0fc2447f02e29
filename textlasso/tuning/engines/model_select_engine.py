# textlasso/tuning/engines/model_select_engine.py
from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from textlasso.core.types import HyperparameterPoint, MetricRecord, MINIMIZED_METRICS

_TIE_ATOL = 1e-12


class ModelSelectEngine:
    """
    ModelSelectEngine

    Responsibility:
    - per-fold MetricRecords -> ranked hyperparameter table
    - pick the best point

    Tie-break (explicit policy):
    - equal mean metric -> the higher penalty wins (sparser, simpler model)
    - still equal -> the smaller max_tokens wins
    """

    @staticmethod
    def metrics_frame(records: Iterable[MetricRecord]) -> pd.DataFrame:
        rows = [r.as_row() for r in records]
        return pd.DataFrame(rows, columns=["penalty", "max_tokens", "fold_id", "metric", "value"])

    def aggregate(self, records: Iterable[MetricRecord]) -> pd.DataFrame:
        """
        Returns columns: penalty, max_tokens, metric, mean, std_err, n

        std_err = sample std / sqrt(n); NaN when only one fold survived.
        Rows are ranked within each metric, best first.
        """
        raw = self.metrics_frame(records)
        if raw.empty:
            return pd.DataFrame(columns=["penalty", "max_tokens", "metric", "mean", "std_err", "n"])

        table = (
            raw.groupby(["max_tokens", "penalty", "metric"], sort=True)["value"]
            .agg(mean="mean", std="std", n="count")
            .reset_index()
        )
        table["std_err"] = table["std"] / np.sqrt(table["n"])
        table = table.drop(columns="std")

        ranked = []
        for metric, part in table.groupby("metric", sort=True):
            ranked.append(self._rank(part, metric))
        return pd.concat(ranked, ignore_index=True)[
            ["penalty", "max_tokens", "metric", "mean", "std_err", "n"]
        ]

    def select_best(self, table: pd.DataFrame, metric: str) -> HyperparameterPoint:
        part = table[table["metric"] == metric]
        if part.empty:
            raise ValueError(f"no aggregated rows for metric {metric!r}")

        best = self._rank(part, metric).iloc[0]
        return HyperparameterPoint(penalty=float(best["penalty"]), max_tokens=int(best["max_tokens"]))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    @staticmethod
    def _rank(part: pd.DataFrame, metric: str) -> pd.DataFrame:
        score = -part["mean"] if metric in MINIMIZED_METRICS else part["mean"]
        top = score.max()
        # snap near-equal scores together so the tie-break decides
        tied = np.isclose(score, top, rtol=0.0, atol=_TIE_ATOL)
        score = score.where(~tied, top)

        return (
            part.assign(_score=score)
            .sort_values(
                ["_score", "penalty", "max_tokens"],
                ascending=[False, False, True],
                kind="mergesort",
            )
            .drop(columns="_score")
            .reset_index(drop=True)
        )
