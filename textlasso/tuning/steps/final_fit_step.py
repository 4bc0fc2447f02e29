# textlasso/tuning/steps/final_fit_step.py
from __future__ import annotations

from textlasso import logs
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.final_fit_engine import FinalFitEngine


class FinalFitStep(PipelineStep):
    """
    FinalFitStep

    Contract:
    - consumes ctx.best, ctx.train (the whole training set, not a fold)
    - produces ctx.final_model, ctx.importance
    """

    def __init__(self, engine: FinalFitEngine, inst=None):
        super().__init__(inst)
        self.engine = engine

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.require(TuningPhase.DONE)
        if ctx.best is None:
            raise RuntimeError("[FinalFitStep] no hyperparameter point selected")

        with self.timed(), self.inst.timer("final_fit"):
            ctx.final_model = self.engine.finalize(
                ctx.best, ctx.train, warm_path=ctx.penalties
            )

        ctx.importance = self.engine.importance(ctx.final_model)
        for name, weight in ctx.importance[:10]:
            logs.info(f"[FinalFit] {name:<30} {weight:+.4f}")
        return ctx


class HoldoutEvaluateStep(PipelineStep):
    """
    Single evaluation on the held-out test set; reported, never selected on.
    """

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.require(TuningPhase.DONE)
        if ctx.final_model is None:
            raise RuntimeError("[HoldoutEvaluateStep] no final model")

        with self.timed(), self.inst.timer("holdout"):
            evaluation = ctx.holdout.evaluate(ctx.final_model)

        ctx.test_metrics = evaluation.metrics
        ctx.test_predictions = evaluation.predictions
        return ctx
