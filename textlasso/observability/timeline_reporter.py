#!filepath: textlasso/observability/timeline_reporter.py
from __future__ import annotations

from typing import Dict, List, Tuple

from textlasso import logs


class TimelineReporter:
    """
    Per-run timeline: each leaf with its seconds and its share of the run.
    """

    def __init__(self, timeline: Dict[str, float], run_id: str):
        self.timeline = timeline
        self.run_id = run_id

    @property
    def total(self) -> float:
        return sum(self.timeline.values())

    def rows(self) -> List[Tuple[str, float, float]]:
        total = self.total
        return [
            (name, sec, sec / total if total > 0 else 0.0)
            for name, sec in self.timeline.items()
        ]

    def print(self):
        if not self.timeline:
            logs.info(f"[Timeline] run {self.run_id}: no timings recorded")
            return

        logs.info(f"[Timeline] run {self.run_id}")
        for name, sec, share in self.rows():
            logs.info(f"[Timeline]   {name:<16} {sec:>9.3f}s {share:>6.1%}")
        logs.info(f"[Timeline]   {'total':<16} {self.total:>9.3f}s")
