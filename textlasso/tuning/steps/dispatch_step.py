# textlasso/tuning/steps/dispatch_step.py
from __future__ import annotations

from functools import partial

from textlasso import logs
from textlasso.config.tuning_config import ParallelBackend
from textlasso.pipeline.parallel.executor import ParallelExecutor
from textlasso.pipeline.parallel.types import ParallelKind
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.grid_search_engine import GridSearchEngine
from textlasso.utils.errors import SearchFailedError


class DispatchStep(PipelineStep):
    """
    DispatchStep

    Contract:
    - consumes ctx.units, ctx.train
    - produces ctx.unit_results (successful units) and ctx.failed_units
    - a failed or timed-out unit is recorded, not fatal; all units failing is
    """

    def __init__(
            self,
            engine: GridSearchEngine,
            *,
            max_workers: int | None = None,
            backend: ParallelBackend = ParallelBackend.PROCESS,
            unit_timeout: float | None = None,
            inst=None,
    ):
        super().__init__(inst)
        self.engine = engine
        self.max_workers = max_workers
        self.backend = backend
        self.unit_timeout = unit_timeout

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.advance(TuningPhase.DISPATCHING)

        # records are shared read-only; each unit builds its own state
        handler = partial(self.engine.run_unit, ctx.train)

        progress = self.inst.progress
        progress.start("search units", total=len(ctx.units), unit="units")
        with self.timed(), self.inst.timer("dispatch"):
            outcomes = ParallelExecutor.run(
                kind=ParallelKind.SEARCH_UNIT,
                items=ctx.units,
                handler=handler,
                max_workers=self.max_workers,
                backend=self.backend,
                timeout=self.unit_timeout,
                on_progress=lambda done, total: progress.update("search units", done, total, "units"),
            )
        progress.done("search units")

        for outcome in outcomes:
            unit = outcome.item
            if outcome.ok:
                ctx.unit_results.append(outcome.result)
                for note in outcome.result.warnings:
                    logs.warning(f"[Dispatch] {unit}: {note}")
            else:
                ctx.failed_units.append(
                    {
                        "fold_id": unit.fold.fold_id,
                        "max_tokens": unit.max_tokens,
                        "error": type(outcome.error).__name__,
                        "message": str(outcome.error),
                    }
                )

        logs.info(
            f"[Dispatch] units ok={len(ctx.unit_results)} failed={len(ctx.failed_units)}"
        )
        if not ctx.unit_results:
            raise SearchFailedError(
                f"all {len(ctx.units)} search units failed: "
                f"{sorted({f['error'] for f in ctx.failed_units})}"
            )
        return ctx
