#!filepath: textlasso/observability/timer.py
from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator

Clock = Callable[[], float]


@dataclass
class Lap:
    """One measured scope; `elapsed` is filled in when the scope closes."""
    name: str
    started: float
    elapsed: float = 0.0


class Timer:
    """
    Named laps on an injectable clock.

    A name is open at most once at a time, so nested scopes need distinct
    names. A disabled timer measures nothing and every lap reads 0.0.
    """

    def __init__(self, enabled: bool = True, clock: Clock = time.perf_counter):
        self.enabled = enabled
        self.clock = clock
        self._open: Dict[str, float] = {}

    def start(self, name: str) -> None:
        if not self.enabled:
            return
        if name in self._open:
            raise RuntimeError(f"timer {name!r} is already running")
        self._open[name] = self.clock()

    def end(self, name: str) -> float:
        if not self.enabled or name not in self._open:
            return 0.0
        return self.clock() - self._open.pop(name)

    def running(self) -> list[str]:
        return list(self._open)

    @contextmanager
    def lap(self, name: str) -> Iterator[Lap]:
        self.start(name)
        lap = Lap(name=name, started=self._open.get(name, 0.0))
        try:
            yield lap
        finally:
            lap.elapsed = self.end(name)
