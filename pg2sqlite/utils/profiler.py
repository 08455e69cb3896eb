"""
Resource sampling around a migration run.

``profile_block`` records wall-clock time, CPU percent over the block and, via
a background sampler, the peak resident memory and the peak number of threads
of the current process. The thread peak shows the fetch pool staying within
its configured size.

Usage:
    from pg2sqlite.utils.profiler import profile_block

    with profile_block("migration") as stats:
        engine.run()

    print(stats.duration_seconds, stats.peak_rss_bytes, stats.peak_threads)
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass
from typing import Iterator, Optional

import psutil

DEFAULT_SAMPLE_INTERVAL = 0.1


@dataclass
class ProfileStats:
    label: str
    duration_seconds: float = 0.0
    peak_rss_bytes: Optional[int] = None
    peak_threads: Optional[int] = None
    cpu_percent: Optional[float] = None


class _PeakSampler(threading.Thread):
    """Polls RSS and thread count until stopped, keeping the maxima."""

    def __init__(self, process: psutil.Process, label: str, interval: float) -> None:
        super().__init__(name=f"profiler-{label}", daemon=True)
        self._process = process
        self._interval = interval
        self._stopped = threading.Event()
        self.peak_rss = 0
        self.peak_threads = 0

    def sample(self) -> None:
        with self._process.oneshot():
            self.peak_rss = max(self.peak_rss, self._process.memory_info().rss)
            self.peak_threads = max(self.peak_threads, self._process.num_threads())

    def run(self) -> None:
        while True:
            try:
                self.sample()
            except psutil.Error:
                return
            if self._stopped.wait(self._interval):
                return

    def stop(self) -> None:
        self._stopped.set()
        self.join(timeout=1.0)


@contextlib.contextmanager
def profile_block(label: str, sample_interval: float = DEFAULT_SAMPLE_INTERVAL) -> Iterator[ProfileStats]:
    """
    Profile the enclosed block.

    Parameters
    ----------
    label : str
        Name of the profiled block, used for the sampler thread name.
    sample_interval : float
        Seconds between RSS/thread samples.

    Notes
    -----
    The stats object is filled in when the block exits, including when it raises.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    process.cpu_percent(interval=None)
    sampler = _PeakSampler(process, label, sample_interval)
    sampler.start()

    started = time.perf_counter()
    try:
        yield stats
    finally:
        stats.duration_seconds = time.perf_counter() - started
        sampler.stop()
        stats.peak_rss_bytes = sampler.peak_rss or None
        stats.peak_threads = sampler.peak_threads or None
        stats.cpu_percent = process.cpu_percent(interval=None)


__all__ = ["ProfileStats", "profile_block"]
