# textlasso/tuning/steps/split_step.py
from __future__ import annotations

from textlasso import logs
from textlasso.engines.metrics_engine import ClassificationMetricsEngine
from textlasso.engines.split_engine import SplitEngine
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.final_fit_engine import HoldoutEvaluator
from textlasso.utils.errors import InsufficientDataError


class SplitStep(PipelineStep):
    """
    SplitStep

    Contract:
    - consumes ctx.records
    - produces ctx.train, ctx.holdout (guarded test set), ctx.folds
    - InsufficientDataError surfaces here, before any fitting: a stratum
      smaller than k, or a test set missing a class
    """

    def __init__(self, engine: SplitEngine, metrics: ClassificationMetricsEngine, inst=None):
        super().__init__(inst)
        self.engine = engine
        self.metrics = metrics

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.require(TuningPhase.INIT)
        cfg = ctx.cfg

        with self.timed(), self.inst.timer("split"):
            train, test = self.engine.stratified_split(
                ctx.records,
                strata_field=cfg.strata_field,
                proportion=cfg.train_proportion,
                seed=cfg.seed,
            )
            self._check_both_classes(test)
            folds = self.engine.stratified_kfold(
                train,
                strata_field=cfg.strata_field,
                k=cfg.folds,
                seed=cfg.seed,
            )

        ctx.train = tuple(train)
        ctx.holdout = HoldoutEvaluator(test, self.metrics)
        ctx.folds = folds

        logs.info(
            f"[SplitStep] run_id={ctx.run_id} train={len(train)} test={len(test)} folds={len(folds)}"
        )
        return ctx

    @staticmethod
    def _check_both_classes(test) -> None:
        """
        The holdout is scored once at the very end; a single-class test set
        would only fail there, after the whole search.
        """
        labels = {r.label for r in test}
        if len(labels) < 2:
            raise InsufficientDataError(
                f"test set of {len(test)} records holds only {sorted(l.value for l in labels)}; "
                f"both classes are needed to score the holdout"
            )
