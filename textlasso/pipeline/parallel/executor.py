# textlasso/pipeline/parallel/executor.py
from __future__ import annotations

import math
import os
import time
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    TimeoutError as FutureTimeout,
    as_completed,
)
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from textlasso import logs
from textlasso.config.tuning_config import ParallelBackend
from textlasso.pipeline.parallel.types import ParallelKind, ParallelOutcome

ProgressCallback = Callable[[int, int], None]


class UnitTimeoutError(TimeoutError):
    """A dispatched item exceeded its time budget."""


def _timed_call(handler: Callable[[Any], Any], item: Any) -> Tuple[Any, float]:
    # runs in the worker, so the clock covers the item alone and not its queueing
    start = time.perf_counter()
    result = handler(item)
    return result, time.perf_counter() - start


class ParallelExecutor:
    """
    ParallelExecutor

    - one outcome per item, in submission order
    - failures are isolated into outcomes unless fail_fast=True
    - `timeout` is a per-item run-time budget, measured where the item runs.
      An item that finishes over budget is a failed outcome in both modes.
    - in parallel mode the whole batch also gets a wall-clock allowance of
      timeout * (rounds + 1); items still pending past it are failed and the
      pool is abandoned. Running work is never interrupted, only queued work
      is cancelled.
    - `on_progress(done, total)` is called in the caller's thread after each
      collected item
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind,
            items: Iterable[Any],
            handler: Callable[[Any], Any],
            max_workers: int | None = None,
            backend: ParallelBackend = ParallelBackend.PROCESS,
            timeout: float | None = None,
            fail_fast: bool = False,
            on_progress: Optional[ProgressCallback] = None,
    ) -> list[ParallelOutcome]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        workers = ParallelExecutor._resolve_workers(items, max_workers)
        logs.info(
            f"[ParallelExecutor] start kind={kind.value} total={len(items)} "
            f"workers={workers} backend={backend.value}"
        )

        if workers == 1:
            outcomes = ParallelExecutor._run_sequential(items, handler, timeout, fail_fast, on_progress)
        else:
            outcomes = ParallelExecutor._run_parallel(
                items, handler, workers, backend, timeout, fail_fast, on_progress
            )

        failed = sum(1 for o in outcomes if not o.ok)
        logs.info(f"[ParallelExecutor] done kind={kind.value} ok={len(outcomes) - failed} failed={failed}")
        return outcomes

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _check_budget(
            item: Any,
            result: Any,
            elapsed: float,
            timeout: float | None,
            fail_fast: bool,
    ) -> ParallelOutcome:
        if timeout is None or elapsed <= timeout:
            return ParallelOutcome(item=item, result=result, elapsed=elapsed)

        err = UnitTimeoutError(f"{item} took {elapsed:.2f}s > timeout={timeout}s")
        if fail_fast:
            raise err
        logs.warning(f"[ParallelExecutor] {err}")
        return ParallelOutcome(item=item, error=err, elapsed=elapsed)

    @staticmethod
    def _failed(item: Any, error: BaseException, elapsed: float, fail_fast: bool) -> ParallelOutcome:
        if fail_fast:
            raise error
        logs.warning(f"[ParallelExecutor] {item} failed: {error!r}")
        return ParallelOutcome(item=item, error=error, elapsed=elapsed)

    @staticmethod
    def _run_sequential(
            items: list,
            handler: Callable[[Any], Any],
            timeout: float | None,
            fail_fast: bool,
            on_progress: Optional[ProgressCallback],
    ) -> list[ParallelOutcome]:
        outcomes = []
        for done, item in enumerate(items, start=1):
            start = time.perf_counter()
            try:
                result, elapsed = _timed_call(handler, item)
            except Exception as e:
                outcomes.append(
                    ParallelExecutor._failed(item, e, time.perf_counter() - start, fail_fast)
                )
            else:
                # in-process work cannot be preempted; overruns are failed after the fact
                outcomes.append(ParallelExecutor._check_budget(item, result, elapsed, timeout, fail_fast))

            if on_progress is not None:
                on_progress(done, len(items))
        return outcomes

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
            backend: ParallelBackend,
            timeout: float | None,
            fail_fast: bool,
            on_progress: Optional[ProgressCallback],
    ) -> list[ParallelOutcome]:
        pool_cls = ProcessPoolExecutor if backend == ParallelBackend.PROCESS else ThreadPoolExecutor
        pool: Executor = pool_cls(max_workers=workers)
        abandon = False

        total = len(items)
        batch_budget = None
        if timeout is not None:
            batch_budget = timeout * (math.ceil(total / workers) + 1)

        outcomes: List[Optional[ParallelOutcome]] = [None] * total
        try:
            start = time.perf_counter()
            futures: Dict[Future, int] = {
                pool.submit(_timed_call, handler, item): i for i, item in enumerate(items)
            }

            done = 0
            collected = as_completed(futures, timeout=batch_budget)
            while True:
                # only the batch wait may time out here; UnitTimeoutError is a
                # TimeoutError too and must not be taken for it
                try:
                    fut = next(collected)
                except StopIteration:
                    break
                except FutureTimeout:
                    abandon = True
                    break

                i = futures[fut]
                try:
                    result, elapsed = fut.result()
                except Exception as e:
                    outcomes[i] = ParallelExecutor._failed(
                        items[i], e, time.perf_counter() - start, fail_fast
                    )
                else:
                    outcomes[i] = ParallelExecutor._check_budget(
                        items[i], result, elapsed, timeout, fail_fast
                    )

                done += 1
                if on_progress is not None:
                    on_progress(done, total)

            if abandon:
                waited = time.perf_counter() - start
                for fut, i in futures.items():
                    if outcomes[i] is not None:
                        continue
                    fut.cancel()
                    err = UnitTimeoutError(
                        f"{items[i]} still pending after {waited:.2f}s (timeout={timeout}s per item)"
                    )
                    if fail_fast:
                        raise err
                    logs.warning(f"[ParallelExecutor] {err}")
                    outcomes[i] = ParallelOutcome(item=items[i], error=err, elapsed=waited)

            return outcomes
        except BaseException:
            abandon = True
            raise
        finally:
            pool.shutdown(wait=not abandon, cancel_futures=True)
