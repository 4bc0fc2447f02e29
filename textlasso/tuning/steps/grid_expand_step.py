# textlasso/tuning/steps/grid_expand_step.py
from __future__ import annotations

from textlasso import logs
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningPhase
from textlasso.tuning.engines.grid_search_engine import SearchUnit, expand_grid, grid_points


class GridExpandStep(PipelineStep):
    """
    GridExpandStep

    Contract:
    - produces ctx.penalties (descending), ctx.max_tokens, ctx.grid
    - produces ctx.units: one per (fold, max_tokens), each spanning the
      whole penalty path
    """

    def run(self, ctx: TuningContext) -> TuningContext:
        ctx.advance(TuningPhase.EXPANDING_GRID)
        grid_cfg = ctx.cfg.grid

        penalties, max_tokens = expand_grid(
            penalty_range=grid_cfg.penalty_range,
            max_tokens_range=grid_cfg.max_tokens_range,
            levels=grid_cfg.levels,
        )

        ctx.penalties = penalties
        ctx.max_tokens = max_tokens
        ctx.grid = grid_points(penalties, max_tokens)
        ctx.units = [
            SearchUnit(fold=fold, max_tokens=t, penalties=penalties)
            for fold in ctx.folds
            for t in max_tokens
        ]

        logs.info(
            f"[GridExpand] points={len(ctx.grid)} "
            f"(penalty x{len(penalties)}, max_tokens x{len(max_tokens)}) units={len(ctx.units)}"
        )
        return ctx
