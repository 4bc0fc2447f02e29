#!filepath: textlasso/observability/instrumentation.py
from __future__ import annotations

import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict

from textlasso.observability.progress import ProgressReporter
from textlasso.observability.timeline_reporter import TimelineReporter
from textlasso.observability.timer import Clock, Timer


@dataclass
class Instrumentation:
    """
    Leaf-only timing.

    Rules:
    1. only record=True timers (leaves) enter the timeline
    2. record=False timers only bound a parent scope, no side effects
    3. a leaf entered more than once accumulates
    4. no logging on the hot path; progress lines are throttled
    """

    enabled: bool = True
    clock: Clock = time.perf_counter

    def __post_init__(self):
        self.progress = ProgressReporter(enabled=self.enabled, clock=self.clock)
        self._timer = Timer(enabled=self.enabled, clock=self.clock)

        # timeline: OrderedDict[leaf_name, elapsed_seconds]
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            lap = None
            try:
                with inst._timer.lap(name) as lap:
                    yield
            finally:
                if record and lap is not None:
                    inst.timeline[name] = inst.timeline.get(name, 0.0) + lap.elapsed

        return _ctx()

    def generate_timeline_report(self, run_id: str):
        TimelineReporter(self.timeline, run_id).print()


class NoOpInstrumentation:
    """Used when observability is disabled."""

    def __init__(self):
        self.progress = ProgressReporter(enabled=False)
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def generate_timeline_report(self, run_id: str):
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
