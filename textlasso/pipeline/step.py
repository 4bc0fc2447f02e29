#!filepath: textlasso/pipeline/step.py
from __future__ import annotations

from typing import Any

from textlasso.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)


class PipelineStep:
    """
    Pipeline Step base

    Responsibilities:
      1. orchestration (loops / dispatch / conditional execution)
      2. a step-level time boundary (parent scope)

    Rules:
      - the step scope itself is not recorded in the timeline
      - leaf timings happen inside the step
      - step behaviour never depends on whether inst is enabled
    """

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self):
        """Step-level scope (record=False)."""
        return self.inst.timer(self.step_name, record=False)

    def run(self, ctx: Any) -> Any:
        raise NotImplementedError
