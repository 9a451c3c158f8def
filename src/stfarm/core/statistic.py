# src/stfarm/core/statistic.py

from __future__ import annotations

"""
Process-wide statistics.

Counters are bumped by every logical thread and read by a single reporting
loop. Each update is one step with no await in it, so under cooperative
scheduling on one OS thread no lock is needed. Do not share a Statistic
across OS threads.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..logging_setup import REPORT
from ..utility import current_time_ms

logger = logging.getLogger(__name__)


def throughput_kbps(nbytes: int, duration_ms: float) -> float:
    """Kilobits per second for nbytes transferred over duration_ms (0 when no time elapsed)."""
    if duration_ms <= 0:
        return 0.0
    return nbytes * 8.0 / duration_ms / 1000


@dataclass(slots=True, frozen=True)
class StatisticSnapshot:
    duration_ms: float
    threads: int
    alive: int
    nread: int
    nwrite: int
    read_kbps: float
    write_kbps: float
    tasks: int
    err_tasks: int
    sub_tasks: int
    err_sub_tasks: int

    def format(self) -> str:
        return (
            f"[report] threads:{self.threads} alive:{self.alive} "
            f"duration:{self.duration_ms / 1000.0:.0f} "
            f"nread:{self.read_kbps:.2f} nwrite:{self.write_kbps:.2f} "
            f"tasks:{self.tasks} etasks:{self.err_tasks} "
            f"stasks:{self.sub_tasks} estasks:{self.err_sub_tasks}"
        )


class Statistic:
    """
    Aggregated counters for all tasks.

    The tid / url arguments are accepted so callers can attribute events, but
    everything is aggregated globally.
    """

    def __init__(self, clock: Callable[[], float] = current_time_ms) -> None:
        self._clock = clock
        self.starttime = clock()

        self.threads = 0
        self.alive = 0

        self.nread = 0
        self.nwrite = 0

        self.tasks = 0
        self.err_tasks = 0
        self.sub_tasks = 0
        self.err_sub_tasks = 0

    # ---- I/O ----

    def on_read(self, tid: int, nread: int) -> None:
        self.nread += nread

    def on_write(self, tid: int, nwrite: int) -> None:
        self.nwrite += nwrite

    # ---- logical threads ----

    def on_thread_run(self, tid: int) -> None:
        self.threads += 1

    def on_thread_quit(self, tid: int) -> None:
        self.threads -= 1

    # ---- tasks ----

    def on_task_start(self, tid: int, task_url: str = "") -> None:
        self.alive += 1
        self.tasks += 1

    def on_task_error(self, tid: int) -> None:
        self.alive -= 1
        self.err_tasks += 1

    def on_task_end(self, tid: int) -> None:
        self.alive -= 1

    # ---- sub tasks ----

    def on_sub_task_start(self, tid: int, sub_task_url: str = "") -> None:
        self.sub_tasks += 1

    def on_sub_task_error(self, tid: int) -> None:
        self.err_sub_tasks += 1

    def on_sub_task_end(self, tid: int) -> None:
        pass

    # ---- reporting ----

    def snapshot(self) -> StatisticSnapshot:
        duration = self._clock() - self.starttime
        return StatisticSnapshot(
            duration_ms=duration,
            threads=self.threads,
            alive=self.alive,
            nread=self.nread,
            nwrite=self.nwrite,
            read_kbps=throughput_kbps(self.nread, duration),
            write_kbps=throughput_kbps(self.nwrite, duration),
            tasks=self.tasks,
            err_tasks=self.err_tasks,
            sub_tasks=self.sub_tasks,
            err_sub_tasks=self.err_sub_tasks,
        )

    def report(self) -> StatisticSnapshot:
        snap = self.snapshot()
        logger.log(REPORT, "%s", snap.format())
        return snap

    async def do_report(self, sleep_ms: float) -> None:
        """
        Report forever, once every sleep_ms.

        This is the heartbeat of the process; cancel the coroutine to stop it.
        """
        sleep_s = max(0.0, float(sleep_ms)) / 1000

        while True:
            self.report()
            await asyncio.sleep(sleep_s)
