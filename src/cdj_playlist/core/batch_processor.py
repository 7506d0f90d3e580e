"""
Batch Processor - Runs one job per track on a bounded worker pool

Every item is submitted exactly once and results are collected in
completion order. The first failure cancels the batch: nothing new is
submitted, queued jobs are skipped, jobs already running finish, then the
error is raised and no partial results are returned.
"""

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, TypeVar


T = TypeVar('T')
U = TypeVar('U')

ProgressCallback = Callable[[int, int], None]


class BatchCancelledError(Exception):
    """Raised by jobs skipped after the batch was cancelled"""
    pass


def default_workers(fanout: int = 1, cpu_count: Optional[int] = None) -> int:
    """
    Pool size for jobs that each spawn ``fanout`` external processes.

    Never less than one worker.
    """
    cpus = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, cpus // max(1, fanout))


class BatchProcessor:
    """
    Cancellation-aware bounded batch execution.

    At most ``max_workers`` jobs are in flight; the feeder (the calling
    thread) only submits the next item when a slot frees up.
    """

    def __init__(self, max_workers: Optional[int] = None, fanout: int = 1,
                 progress_callback: Optional[ProgressCallback] = None):
        """
        Args:
            max_workers: Pool size, derived from the CPU count when omitted
            fanout: External processes spawned by a single job
            progress_callback: Receives ``(done, total)`` after each completed job
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers or default_workers(fanout)
        self.progress_callback = progress_callback
        self.logger = logging.getLogger(__name__)

    def run(self, items: Iterable[T], job: Callable[[T], U]) -> List[U]:
        """
        Apply ``job`` to every item.

        Returns:
            Job results in completion order

        Raises:
            The first exception raised by a job
        """
        items = list(items)
        total = len(items)
        if not total:
            return []

        workers = min(self.max_workers, total)
        self.logger.info(f"⚙️  Processing {total} items with {workers} workers")

        cancelled = threading.Event()

        def guarded(item: T) -> U:
            if cancelled.is_set():
                raise BatchCancelledError("batch cancelled before the job started")
            return job(item)

        results: List[U] = []
        first_error: Optional[BaseException] = None
        done = 0
        pending: Dict[Future, T] = {}
        iterator = iter(items)

        with ThreadPoolExecutor(max_workers=workers) as executor:

            def feed():
                if cancelled.is_set():
                    return
                item = next(iterator, _SENTINEL)
                if item is not _SENTINEL:
                    pending[executor.submit(guarded, item)] = item

            for _ in range(workers):
                feed()

            while pending:
                completed, _ = wait(list(pending), return_when=FIRST_COMPLETED)
                for future in completed:
                    item = pending.pop(future)
                    try:
                        result = future.result()
                    except BatchCancelledError:
                        continue
                    except BaseException as e:
                        if first_error is None:
                            first_error = e
                            cancelled.set()
                            self.logger.error(f"❌ Job failed for {item}: {e}")
                        continue

                    results.append(result)
                    done += 1
                    if self.progress_callback:
                        self.progress_callback(done, total)
                    feed()

        if first_error is not None:
            raise first_error

        self.logger.info(f"✅ Processed {done} items")
        return results


_SENTINEL = object()


def run_batch(items: Iterable[T], job: Callable[[T], U], max_workers: Optional[int] = None,
              fanout: int = 1, progress_callback: Optional[ProgressCallback] = None) -> List[U]:
    """Convenience wrapper around BatchProcessor.run"""
    return BatchProcessor(max_workers, fanout, progress_callback).run(items, job)
