"""Bounded-concurrency worker pool for review calls.

run_concurrent() is deliberately agnostic about what a task is. The pipeline
uses it once per file, and review_chunked() uses it again for the chunks of
a single file. Only the task function differs.

Failure policy: a failing task is recorded and its worker moves on to the
next index; the pool drains completely and then re-raises the failure with
the lowest task index. Successful results gathered before that point are
discarded: callers receive either every result or an exception.

If the calling thread is interrupted while waiting (Ctrl-C), no further
task is claimed. Tasks already running finish, queued work is cancelled
and the interrupt is re-raised.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
MAX_CONCURRENCY = 10


@dataclass(frozen=True)
class TaskFailure:
    index: int
    error: BaseException


def clamp_concurrency(value: int | None) -> int:
    """Clamp a requested worker count to [1, MAX_CONCURRENCY]; None or 0 means the default."""
    return max(1, min(MAX_CONCURRENCY, value or DEFAULT_CONCURRENCY))


def run_concurrent(
    task_count: int,
    task_fn: Callable[[int], Any],
    concurrency: int | None = DEFAULT_CONCURRENCY,
) -> list:
    """Run task_fn(i) for every i in range(task_count) on a bounded pool of workers.

    Returns the non-None results ordered by task index. Raises the error of
    the lowest-index failed task once every worker has finished.
    """
    if task_count <= 0:
        return []

    workers = min(clamp_concurrency(concurrency), task_count)
    cursor = itertools.count()
    lock = threading.Lock()
    stop = threading.Event()
    results: dict[int, Any] = {}
    failures: list[TaskFailure] = []

    def _claim() -> int:
        with lock:
            return next(cursor)

    def _worker() -> None:
        while not stop.is_set():
            idx = _claim()
            if idx >= task_count:
                return
            try:
                result = task_fn(idx)
            except Exception as e:
                logger.error("Task %d failed: %s", idx, e)
                with lock:
                    failures.append(TaskFailure(idx, e))
                continue
            if result is not None:
                with lock:
                    results[idx] = result

    logger.debug("Running %d task(s) on %d worker(s)", task_count, workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_worker) for _ in range(workers)]
        try:
            for future in futures:
                # _worker() catches task errors itself; this only surfaces bugs in the loop.
                future.result()
        except BaseException as e:
            stop.set()
            logger.warning("Stopping run (%s); waiting for in-flight task(s) to finish", type(e).__name__)
            executor.shutdown(wait=True, cancel_futures=True)
            raise

    if failures:
        first = min(failures, key=lambda f: f.index)
        if len(failures) > 1:
            logger.error("%d of %d task(s) failed; raising the first (task %d)", len(failures), task_count, first.index)
        raise first.error

    return [results[i] for i in sorted(results)]
