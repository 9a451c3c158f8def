# src/stfarm/tasks/task_farm.py

from __future__ import annotations

"""
Task farm.

Runs many Tasks as asyncio tasks on one event loop:
- initialize() picks the I/O readiness backend and creates the loop,
- spawn() starts one logical thread per Task and returns immediately,
- wait_all() turns the caller into the statistics reporting loop, forever.

To stop the farm, cancel wait_all() (or interrupt run()) and call close().
"""

import asyncio
import contextlib
import logging
import selectors
import signal

from ..core.state import FarmState
from ..errors import ErrorCode, InitializeError
from ..logging_setup import TRACE
from ..utility import init_random
from .task_models import Task

logger = logging.getLogger(__name__)


def _select_backend(name: str) -> selectors.BaseSelector:
    if name == "epoll":
        epoll_cls = getattr(selectors, "EpollSelector", None)
        if epoll_cls is None:
            raise InitializeError("epoll event backend is not available on this platform")
        return epoll_cls()
    if name == "select":
        return selectors.SelectSelector()
    return selectors.DefaultSelector()


class Farm:
    def __init__(self, state: FarmState) -> None:
        self.state = state
        self.report_seconds = 0.0
        self.loop: asyncio.AbstractEventLoop | None = None
        self._threads: dict[asyncio.Task, Task] = {}

    @property
    def active(self) -> int:
        """Number of spawned logical threads that have not finished yet."""
        return len(self._threads)

    def initialize(self, report_seconds: float) -> None:
        self.report_seconds = float(report_seconds)
        backend = self.state.settings.event_backend

        try:
            selector = _select_backend(backend)
        except InitializeError:
            logger.error("select event backend %s failed. ret=%d", backend, ErrorCode.ST_INITIALIZE)
            raise
        except OSError as e:
            logger.error("select event backend %s failed. ret=%d", backend, ErrorCode.ST_INITIALIZE)
            raise InitializeError(f"cannot create {backend} selector: {e}") from e

        try:
            loop = asyncio.SelectorEventLoop(selector)
        except OSError as e:
            selector.close()
            logger.error("create event loop failed. ret=%d", ErrorCode.ST_INITIALIZE)
            raise InitializeError(f"cannot create event loop: {e}") from e

        asyncio.set_event_loop(loop)
        self.loop = loop

        init_random()
        logger.info("farm initialized (backend=%s, report=%.2fs)", backend, self.report_seconds)

    def spawn(self, task: Task) -> ErrorCode:
        if self.loop is None or self.loop.is_closed():
            ret = ErrorCode.ST_THREAD_CREATE
            logger.error("create thread for task #%d failed, farm not running. ret=%d", task.id, ret)
            return ret

        if task.spent:
            ret = ErrorCode.ST_THREAD_CREATE
            logger.error("create thread for task #%d failed, task already ran. ret=%d", task.id, ret)
            return ret

        try:
            thread = self.loop.create_task(self._thread_main(task), name=f"task-{task.id}")
        except (RuntimeError, MemoryError):
            ret = ErrorCode.ST_THREAD_CREATE
            logger.exception("create thread for task #%d failed. ret=%d", task.id, ret)
            return ret

        # The loop only keeps weak references to tasks.
        task.spent = True
        self._threads[thread] = task
        thread.add_done_callback(self._on_thread_done)

        logger.log(TRACE, "create thread for task #%d success", task.id)
        return ErrorCode.SUCCESS

    def _on_thread_done(self, thread: asyncio.Task) -> None:
        task = self._threads.pop(thread, None)
        # A thread cancelled before its first step never reached _thread_main.
        if task is not None and thread.cancelled():
            task.close()

    async def _thread_main(self, task: Task) -> None:
        statistic = self.state.statistic
        tid = task.id

        self.state.identity.set_id(tid)
        statistic.on_thread_run(tid)

        try:
            ret = await task.process()
        except asyncio.CancelledError:
            statistic.on_thread_quit(tid)
            task.close()
            raise
        except Exception:
            logger.exception("task #%d raised instead of returning a status", tid)
            ret = ErrorCode.TASK_CRASHED

        statistic.on_thread_quit(tid)

        if ret != ErrorCode.SUCCESS:
            logger.warning("task #%d terminate with ret=%d", tid, int(ret))
        else:
            logger.log(TRACE, "task #%d terminate with ret=%d", tid, int(ret))

        task.close()

    async def wait_all(self) -> None:
        """Run the reporting loop on the calling coroutine. Never returns."""
        await self.state.statistic.do_report(self.report_seconds * 1000)

    def run(self) -> None:
        """Blocking entry: drive wait_all() on the farm's loop until SIGINT/SIGTERM."""
        loop = self.loop
        if loop is None:
            raise InitializeError("farm is not initialized")

        reporter = loop.create_task(self.wait_all(), name="report")

        installed: list[signal.Signals] = []
        for signum in (signal.SIGINT, signal.SIGTERM):
            # Not supported on every platform/thread; Ctrl+C then raises KeyboardInterrupt.
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.add_signal_handler(signum, reporter.cancel)
                installed.append(signum)

        try:
            loop.run_until_complete(reporter)
        except asyncio.CancelledError:
            logger.info("reporting stopped, %d threads still running", self.active)
        finally:
            for signum in installed:
                loop.remove_signal_handler(signum)
            if not reporter.done():
                reporter.cancel()
                loop.run_until_complete(asyncio.gather(reporter, return_exceptions=True))

    async def drain(self) -> None:
        """Wait until every logical thread spawned so far has finished."""
        while self._threads:
            await asyncio.wait(list(self._threads))

    def close(self) -> None:
        loop = self.loop
        if loop is None:
            return

        if not loop.is_closed():
            pending = list(self._threads)
            for thread in pending:
                thread.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            for thread in pending:
                self._on_thread_done(thread)
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

        asyncio.set_event_loop(None)
        self.loop = None
