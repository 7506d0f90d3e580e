"""
Progress tracking and reporting utilities
"""
import logging
import threading
import time
from typing import Callable, List, Optional

from tqdm import tqdm


class ProgressTracker:
    """Track and display progress of a batch operation"""

    def __init__(self, total_items: int, desc: str = "Processing", unit: str = "tracks",
                 disable: bool = False):
        """Initialize progress tracker"""
        self.total_items = total_items
        self.desc = desc
        self.start_time = time.time()
        self.processed = 0
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

        self.pbar = tqdm(total=total_items, desc=desc, unit=unit,
                         dynamic_ncols=True, disable=disable, leave=False)

    def __call__(self, done: int, total: int):
        """Batch progress callback: ``done`` of ``total`` jobs completed"""
        with self._lock:
            if self.pbar is None:
                return
            if total != self.pbar.total:
                self.pbar.total = total
            self.pbar.update(done - self.processed)
            self.processed = done
            if done >= total:
                self.close()

    def close(self):
        if self.pbar is None:
            return
        self.pbar.close()
        self.pbar = None
        elapsed = time.time() - self.start_time
        self.logger.info(f"{self.desc}: {self.processed}/{self.total_items} in {format_duration(elapsed)}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ProgressFactory:
    """
    Creates one tracker per batch, for ``Playlist(progress_factory=...)``.

    Trackers left open by a failed batch are closed by ``close_all``.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.trackers: List[ProgressTracker] = []

    def __call__(self, desc: str, total: int) -> Callable[[int, int], None]:
        tracker = ProgressTracker(total, desc=desc, disable=not self.enabled)
        self.trackers.append(tracker)
        return tracker

    def close_all(self):
        for tracker in self.trackers:
            tracker.close()
        self.trackers.clear()


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as H:MM:SS"""
    if seconds is None or seconds < 0:
        return "--:--:--"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
