# textlasso/tuning/steps/aggregate_step.py
from __future__ import annotations

import pandas as pd

from textlasso import logs
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.model_select_engine import ModelSelectEngine


class AggregateStep(PipelineStep):
    """
    AggregateStep

    Barrier after dispatch: only successful units contribute.
    Produces ctx.metrics (per fold) and ctx.table (aggregated, ranked).
    """

    def __init__(self, engine: ModelSelectEngine, inst=None):
        super().__init__(inst)
        self.engine = engine

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.advance(TuningPhase.AGGREGATING)

        records = [m for res in ctx.unit_results for m in res.metrics]
        ctx.metrics = self.engine.metrics_frame(records)
        ctx.table = self.engine.aggregate(records)

        frames = [res.predictions for res in ctx.unit_results if res.predictions is not None]
        if frames:
            ctx.fold_predictions = pd.concat(frames, ignore_index=True)

        logs.info(
            f"[Aggregate] metric_rows={len(ctx.metrics)} table_rows={len(ctx.table)}"
        )
        ctx.advance(TuningPhase.DONE)
        return ctx
