# textlasso/tuning/pipeline.py
from __future__ import annotations

import uuid
from typing import List, Sequence

from textlasso import logs
from textlasso.config.tuning_config import TuningConfig
from textlasso.core.types import LabeledRecord
from textlasso.observability.instrumentation import Instrumentation
from textlasso.pipeline.step import PipelineStep
from textlasso.tuning.context import TuningContext, TuningResult
from textlasso.utils.errors import TextLassoError


class TuningPipeline:
    """
    TuningPipeline

    Semantics:
    - pipeline owns context creation and step order
    - steps execute semantics
    - structural errors propagate and abort the run
    """

    def __init__(
            self,
            *,
            steps: List[PipelineStep],
            inst: Instrumentation,
            cfg: TuningConfig,
    ):
        self.steps = steps
        self.inst = inst
        self.cfg = cfg

    @logs.catch(msg="tuning run aborted", quiet=(TextLassoError,))
    def run(self, records: Sequence[LabeledRecord], run_id: str | None = None) -> TuningResult:
        run_id = run_id or uuid.uuid4().hex[:12]
        logs.info(f"[TuningPipeline] START run_id={run_id} records={len(records)}")

        ctx = TuningContext(
            run_id=run_id,
            cfg=self.cfg,
            records=tuple(records),
        )

        for step in self.steps:
            ctx = step.run(ctx)

        self.inst.generate_timeline_report(run_id)
        logs.info(f"[TuningPipeline] DONE run_id={run_id}")
        return TuningResult.from_context(ctx)
