# src/stfarm/core/sockets.py

"""
Byte-stream socket for logical threads.

Calls look blocking from the task's point of view (await sock.read(...)) but
only suspend the calling task; the event loop keeps running everyone else.

Status machine:
    INIT -> CONNECTED -> DISCONNECTED
    INIT -> DISCONNECTED
connect() always closes first, so DISCONNECTED -> CONNECTED only happens
through close() + connect().

There is no I/O timeout by default: a silent peer stalls the calling task
forever. Pass io_timeout (seconds) to bound every connect/read/write.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import socket
from enum import Enum

from ..errors import ErrorCode
from .identity import IdentityRegistry
from .statistic import Statistic

logger = logging.getLogger(__name__)


class SocketStatus(str, Enum):
    INIT = "init"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class Socket:
    def __init__(
        self,
        statistic: Statistic,
        identity: IdentityRegistry,
        *,
        io_timeout: float | None = None,
    ) -> None:
        self._sock: socket.socket | None = None
        self._status = SocketStatus.INIT
        self._statistic = statistic
        self._identity = identity
        self.io_timeout = io_timeout
        self.last_errno: int | None = None

    def __del__(self) -> None:
        self.close()

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def status(self) -> SocketStatus:
        return self._status

    def fileno(self) -> int:
        return -1 if self._sock is None else self._sock.fileno()

    async def _wait(self, aw):
        if self.io_timeout is None:
            return await aw
        return await asyncio.wait_for(aw, self.io_timeout)

    def _fail_connect(self, sock: socket.socket, exc: BaseException) -> None:
        self.last_errno = getattr(exc, "errno", None)
        sock.close()
        self._sock = None
        self._status = SocketStatus.DISCONNECTED

    async def connect(self, ip: str, port: int) -> ErrorCode:
        self.close()
        self.last_errno = None

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            ret = ErrorCode.SOCKET
            self.last_errno = e.errno
            self._status = SocketStatus.DISCONNECTED
            logger.error("create socket error. ret=%d", ret)
            return ret

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as e:
            ret = ErrorCode.SOCKET
            self._fail_connect(sock, e)
            logger.error("setsockopt reuse-addr error. ret=%d", ret)
            return ret

        # Hand the descriptor to the event loop: it must never block the OS thread.
        try:
            sock.setblocking(False)
        except OSError as e:
            ret = ErrorCode.OPEN_SOCKET
            self._fail_connect(sock, e)
            logger.error("open socket for event loop failed. ret=%d", ret)
            return ret
        self._sock = sock
        logger.info("create socket(%d) success", sock.fileno())

        loop = asyncio.get_running_loop()
        try:
            await self._wait(loop.sock_connect(sock, (ip, int(port))))
        except (OSError, asyncio.TimeoutError, OverflowError) as e:
            ret = ErrorCode.CONNECT
            self._fail_connect(sock, e)
            logger.error("connect to server(%s:%d) error. ret=%d", ip, port, ret)
            return ret

        logger.info("connect to server %s at port %d success", ip, port)
        self._status = SocketStatus.CONNECTED
        return ErrorCode.SUCCESS

    def _io_failed(self, exc: BaseException | None) -> None:
        # Only io_timeout expiring (a bare TimeoutError from wait_for) reads as "try again";
        # a kernel ETIMEDOUT keeps its errno.
        if isinstance(exc, asyncio.TimeoutError) and exc.errno is None:
            self.last_errno = errno.EAGAIN
        elif exc is not None:
            self.last_errno = getattr(exc, "errno", None)
        else:
            self.last_errno = None
        self._status = SocketStatus.DISCONNECTED

    async def read(self, size: int) -> tuple[ErrorCode, bytes]:
        """Read up to size bytes. Returns (ErrorCode.READ, b"") on EOF or failure."""
        if self._sock is None:
            self.last_errno = errno.EBADF
            self._status = SocketStatus.DISCONNECTED
            return ErrorCode.READ, b""

        loop = asyncio.get_running_loop()
        try:
            data = await self._wait(loop.sock_recv(self._sock, size))
        except (OSError, asyncio.TimeoutError) as e:
            self._io_failed(e)
            return ErrorCode.READ, b""

        if not data:
            self._io_failed(None)
            return ErrorCode.READ, b""

        self._statistic.on_read(self._identity.get_id(), len(data))
        return ErrorCode.SUCCESS, data

    async def write(self, data: bytes) -> tuple[ErrorCode, int]:
        """Send all of data. Returns (ErrorCode.SEND, 0) on failure or for an empty buffer."""
        if self._sock is None:
            self.last_errno = errno.EBADF
            self._status = SocketStatus.DISCONNECTED
            return ErrorCode.SEND, 0

        nwrite = len(data)
        if nwrite <= 0:
            self._io_failed(None)
            return ErrorCode.SEND, 0

        loop = asyncio.get_running_loop()
        try:
            await self._wait(loop.sock_sendall(self._sock, data))
        except (OSError, asyncio.TimeoutError) as e:
            self._io_failed(e)
            return ErrorCode.SEND, 0

        self._statistic.on_write(self._identity.get_id(), nwrite)
        return ErrorCode.SUCCESS, nwrite

    def close(self) -> ErrorCode:
        sock = getattr(self, "_sock", None)
        if sock is None:
            return ErrorCode.SUCCESS

        ret = ErrorCode.SUCCESS
        try:
            sock.close()
        except OSError:
            ret = ErrorCode.CLOSE

        self._sock = None
        self._status = SocketStatus.DISCONNECTED
        return ret
