# src/stfarm/tasks/stream_client.py

from __future__ import annotations

import asyncio
import logging

from ..core.state import FarmState
from ..errors import ErrorCode
from ..logging_setup import TRACE
from ..utility import dns_resolve, randomized_delay_ms
from .task_models import Task

logger = logging.getLogger(__name__)


class StreamClientTask(Task):
    """
    Simulated streaming client.

    Each round (a sub task) connects, sends the optional request, then drains
    the stream until the server closes it or max_bytes is reached. Rounds repeat
    with a randomized pause until `rounds` is reached (0 = forever) or a round
    fails, which fails the task.
    """

    def __init__(
        self,
        state: FarmState,
        host: str,
        port: int,
        *,
        request: bytes = b"",
        rounds: int = 1,
        round_interval_seconds: float = 0.0,
        startup_seconds: float = 0.0,
        read_size: int = 4096,
        max_bytes: int = 0,
    ) -> None:
        super().__init__()
        self.state = state
        self.host = host
        self.port = int(port)
        self.request = request
        self.rounds = max(0, int(rounds))
        self.round_interval_seconds = round_interval_seconds
        self.startup_seconds = startup_seconds
        self.read_size = max(1, int(read_size))
        self.max_bytes = max(0, int(max_bytes))
        self.sock = state.new_socket()

    @property
    def url(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    async def process(self) -> int:
        statistic = self.state.statistic
        statistic.on_task_start(self.id, self.url)

        try:
            ret = await self._process()
        except Exception:
            logger.exception("stream client %s failed", self.url)
            ret = ErrorCode.TASK_CRASHED

        if ret != ErrorCode.SUCCESS:
            statistic.on_task_error(self.id)
        else:
            statistic.on_task_end(self.id)
        return ret

    async def _process(self) -> ErrorCode:
        if self.startup_seconds > 0:
            await asyncio.sleep(randomized_delay_ms(self.startup_seconds, 0) / 1000)

        ret, ip = await dns_resolve(self.host)
        if ret != ErrorCode.SUCCESS:
            return ret

        statistic = self.state.statistic
        done = 0
        while self.rounds == 0 or done < self.rounds:
            statistic.on_sub_task_start(self.id, self.url)
            ret = await self._round(ip)
            done += 1

            if ret != ErrorCode.SUCCESS:
                statistic.on_sub_task_error(self.id)
                logger.warning("round %d of %s failed. ret=%d", done, self.url, ret)
                return ret
            statistic.on_sub_task_end(self.id)

            if self.rounds == 0 or done < self.rounds:
                await asyncio.sleep(randomized_delay_ms(self.round_interval_seconds, 0) / 1000)

        return ErrorCode.SUCCESS

    async def _round(self, ip: str) -> ErrorCode:
        sock = self.sock

        ret = await sock.connect(ip, self.port)
        if ret != ErrorCode.SUCCESS:
            return ret

        try:
            if self.request:
                ret, _ = await sock.write(self.request)
                if ret != ErrorCode.SUCCESS:
                    logger.error("send request to %s failed. ret=%d", self.url, ret)
                    return ret

            received = 0
            while True:
                ret, data = await sock.read(self.read_size)
                if ret != ErrorCode.SUCCESS:
                    # The server closing the stream ends a round that got data.
                    if received > 0:
                        break
                    logger.error("read from %s failed before any data. ret=%d", self.url, ret)
                    return ret

                received += len(data)
                if self.max_bytes and received >= self.max_bytes:
                    break

            logger.log(TRACE, "round on %s received %d bytes", self.url, received)
            return ErrorCode.SUCCESS
        finally:
            sock.close()

    def close(self) -> None:
        self.sock.close()
