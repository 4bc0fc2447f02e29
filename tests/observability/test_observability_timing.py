#!filepath: tests/observability/test_observability_timing.py

import time

import pytest
from loguru import logger

from textlasso.observability.instrumentation import Instrumentation, NoOpInstrumentation
from textlasso.observability.progress import ProgressReporter
from textlasso.observability.timeline_reporter import TimelineReporter
from textlasso.observability.timer import Timer
from textlasso.pipeline.step import PipelineStep


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def captured():
    lines = []
    sink_id = logger.add(lambda msg: lines.append(str(msg).strip()), format="{message}")
    yield lines
    logger.remove(sink_id)


def test_timer_basic():
    t = Timer(enabled=True)
    t.start("task")
    time.sleep(0.01)
    elapsed = t.end("task")

    assert elapsed > 0
    assert isinstance(elapsed, float)


def test_timer_disabled_or_unknown():
    assert Timer(enabled=False).end("task") == 0.0
    assert Timer(enabled=True).end("never-started") == 0.0


def test_timer_lap_uses_injected_clock(clock):
    t = Timer(clock=clock)

    with t.lap("fit") as lap:
        clock.advance(2.5)
        assert t.running() == ["fit"]

    assert lap.started == 100.0
    assert lap.elapsed == 2.5
    assert t.running() == []


def test_timer_refuses_reentry(clock):
    t = Timer(clock=clock)
    t.start("fit")
    with pytest.raises(RuntimeError):
        t.start("fit")


def test_instrumentation_records_leaves_only():
    inst = Instrumentation(enabled=True)

    with inst.timer("parent", record=False):
        with inst.timer("leaf"):
            time.sleep(0.005)

    assert list(inst.timeline) == ["leaf"]
    assert inst.timeline["leaf"] > 0


def test_instrumentation_accumulates_repeated_leaves(clock):
    inst = Instrumentation(clock=clock)

    for seconds in (1.0, 0.5):
        with inst.timer("fold"):
            clock.advance(seconds)

    assert inst.timeline["fold"] == 1.5


def test_leaf_is_recorded_when_its_scope_raises(clock):
    inst = Instrumentation(clock=clock)

    with pytest.raises(ValueError):
        with inst.timer("holdout"):
            clock.advance(0.25)
            raise ValueError("x")

    assert inst.timeline["holdout"] == 0.25


def test_noop_instrumentation():
    inst = NoOpInstrumentation()
    with inst.timer("x"):
        pass
    inst.generate_timeline_report("run")
    assert inst.timeline == {}


def test_progress_disabled_is_silent(captured):
    p = ProgressReporter(enabled=False)
    p.start("Task", 10)
    p.update("Task", 3, 10)
    p.done("Task")

    assert captured == []


def test_progress_update_is_throttled(clock, captured):
    p = ProgressReporter(step=0.25, clock=clock)
    p.start("units", total=10, unit="units")

    for current in range(1, 11):
        clock.advance(1.0)
        p.update("units", current, 10, "units")
    p.done("units")

    updates = [line for line in captured if "units: " in line]
    # 25% steps: 3/10 (30%), 5/10, 8/10 and the final 10/10
    assert [line.split()[2] for line in updates] == ["3/10", "5/10", "8/10", "10/10"]
    assert "elapsed=3.0s" in updates[0]
    assert "eta=7.0s" in updates[0]
    assert captured[-1].endswith("done in 10.00s")


def test_progress_burst_logs_once(clock, captured):
    p = ProgressReporter(step=0.1, clock=clock)
    p.start("units", total=4)

    p.update("units", 3, 4)
    p.update("units", 3, 4)

    assert sum("3/4" in line for line in captured) == 1


def test_progress_rejects_bad_step():
    with pytest.raises(ValueError):
        ProgressReporter(step=0.0)


def test_timeline_rows_carry_shares():
    reporter = TimelineReporter({"split": 1.0, "dispatch": 3.0}, "run-1")

    assert reporter.total == 4.0
    assert reporter.rows() == [("split", 1.0, 0.25), ("dispatch", 3.0, 0.75)]


def test_empty_timeline_report(captured):
    TimelineReporter({}, "run-0").print()

    assert captured == ["[Timeline] run run-0: no timings recorded"]


def test_generate_timeline_report(clock, captured):
    inst = Instrumentation(clock=clock)
    with inst.timer("phase_X"):
        clock.advance(1.0)
    with inst.timer("phase_Y"):
        clock.advance(3.0)

    inst.generate_timeline_report("run-42")

    output = "\n".join(captured)
    assert "run-42" in output
    assert "phase_X" in output
    assert "75.0%" in output


def test_step_defaults_to_noop_instrumentation():
    class Echo(PipelineStep):
        def run(self, ctx):
            with self.timed():
                return ctx

    step = Echo()
    assert step.step_name == "Echo"
    assert isinstance(step.inst, NoOpInstrumentation)
    assert step.run(5) == 5
