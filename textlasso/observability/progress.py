#!filepath: textlasso/observability/progress.py
from __future__ import annotations

import math
import time
from typing import Dict

from textlasso import logs
from textlasso.observability.timer import Clock


class ProgressReporter:
    """
    Log-only progress for long batches (no tty widgets, safe under pytest / CI).

    `update` is throttled: a line is written only when the task crosses the
    next `step` fraction of its total, and always at completion. Each line
    carries the elapsed time and a naive ETA from the mean rate so far.
    """

    def __init__(self, enabled: bool = True, *, step: float = 0.1, clock: Clock = time.perf_counter):
        if not 0.0 < step <= 1.0:
            raise ValueError(f"step must be in (0, 1], got {step}")
        self.enabled = enabled
        self.step = step
        self.clock = clock
        self._started: Dict[str, float] = {}
        self._bucket: Dict[str, int] = {}

    def start(self, task: str, total: int, unit: str = ""):
        if not self.enabled:
            return
        self._started[task] = self.clock()
        self._bucket[task] = 0
        logs.info(f"[Progress] {task} started total={total} {unit}".rstrip())

    def update(self, task: str, current: int, total: int, unit: str = ""):
        if not self.enabled or total <= 0:
            return

        share = current / total
        # tolerance keeps 3/10 at step 0.1 in bucket 3 despite float rounding
        bucket = math.floor(share / self.step + 1e-9)
        if current < total and bucket <= self._bucket.get(task, 0):
            return
        self._bucket[task] = bucket

        started = self._started.get(task)
        elapsed = self.clock() - started if started is not None else 0.0
        eta = elapsed / current * (total - current) if current else 0.0
        logs.info(
            f"[Progress] {task}: {current}/{total} {unit} ({share:.0%}) "
            f"elapsed={elapsed:.1f}s eta={eta:.1f}s"
        )

    def done(self, task: str):
        if not self.enabled:
            return
        started = self._started.pop(task, None)
        self._bucket.pop(task, None)
        if started is None:
            logs.info(f"[Progress] {task} done")
            return
        logs.info(f"[Progress] {task} done in {self.clock() - started:.2f}s")
