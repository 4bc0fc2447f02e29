# textlasso/tuning/steps/select_step.py
from __future__ import annotations

from textlasso import logs
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.model_select_engine import ModelSelectEngine


class SelectBestStep(PipelineStep):
    def __init__(self, engine: ModelSelectEngine, inst=None):
        super().__init__(inst)
        self.engine = engine

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.require(TuningPhase.DONE)
        metric = ctx.cfg.metric

        ctx.best = self.engine.select_best(ctx.table, metric)

        row = ctx.table[
            (ctx.table["metric"] == metric)
            & (ctx.table["penalty"] == ctx.best.penalty)
            & (ctx.table["max_tokens"] == ctx.best.max_tokens)
        ].iloc[0]
        logs.info(
            f"[SelectBest] {metric}: penalty={ctx.best.penalty:.6g} "
            f"max_tokens={ctx.best.max_tokens} mean={row['mean']:.4f} std_err={row['std_err']:.4f}"
        )
        return ctx
