# tests/test_sockets.py

from __future__ import annotations

import asyncio
import errno
import gc

import pytest

from stfarm.core.sockets import Socket, SocketStatus
from stfarm.errors import ErrorCode

from .fakes import serve


async def _read_exactly(sock: Socket, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        ret, data = await sock.read(n - len(buf))
        assert ret == ErrorCode.SUCCESS
        buf += data
    return buf


@pytest.mark.asyncio
async def test_connect_write_read_counts_bytes(state) -> None:
    state.identity.set_id(42)

    async with serve(echo=True) as server:
        sock = state.new_socket()
        assert sock.status == SocketStatus.INIT

        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        assert sock.status == SocketStatus.CONNECTED

        ret, nwrite = await sock.write(b"hello")
        assert ret == ErrorCode.SUCCESS
        assert nwrite == 5
        assert await _read_exactly(sock, 5) == b"hello"

        assert sock.close() == ErrorCode.SUCCESS
        assert sock.status == SocketStatus.DISCONNECTED

    assert state.statistic.nwrite == 5
    assert state.statistic.nread == 5
    assert set(state.statistic.write_ids) == {42}
    assert set(state.statistic.read_ids) == {42}


@pytest.mark.asyncio
async def test_close_is_idempotent(state) -> None:
    sock = state.new_socket()
    assert sock.close() == ErrorCode.SUCCESS
    assert sock.status == SocketStatus.INIT

    async with serve() as server:
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        assert sock.close() == ErrorCode.SUCCESS
        assert sock.close() == ErrorCode.SUCCESS
        assert sock.status == SocketStatus.DISCONNECTED
        assert sock.fileno() == -1


@pytest.mark.asyncio
async def test_connect_refused_then_reusable(state, free_port: int) -> None:
    sock = state.new_socket()

    assert await sock.connect("127.0.0.1", free_port) == ErrorCode.CONNECT
    assert sock.status == SocketStatus.DISCONNECTED
    assert sock.fileno() == -1

    async with serve(port=free_port) as server:
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        assert sock.status == SocketStatus.CONNECTED
        sock.close()


@pytest.mark.asyncio
async def test_reconnect_closes_previous_descriptor(state) -> None:
    async with serve() as server:
        sock = state.new_socket()
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        first = sock.fileno()
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        assert sock.status == SocketStatus.CONNECTED
        assert sock.fileno() != -1
        assert first != -1
        sock.close()


@pytest.mark.asyncio
async def test_read_eof_marks_disconnected(state) -> None:
    async with serve(close_immediately=True) as server:
        with state.new_socket() as sock:
            assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS

            ret, data = await sock.read(1024)

            assert ret == ErrorCode.READ
            assert data == b""
            assert sock.status == SocketStatus.DISCONNECTED

    assert state.statistic.nread == 0


@pytest.mark.asyncio
async def test_io_without_descriptor_fails(state) -> None:
    sock = state.new_socket()

    ret, _ = await sock.read(16)
    assert ret == ErrorCode.READ
    assert sock.last_errno == errno.EBADF
    assert sock.status == SocketStatus.DISCONNECTED

    ret, n = await sock.write(b"abc")
    assert ret == ErrorCode.SEND
    assert n == 0


@pytest.mark.asyncio
async def test_empty_write_is_an_error(state) -> None:
    async with serve() as server:
        with state.new_socket() as sock:
            assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
            ret, n = await sock.write(b"")
            assert ret == ErrorCode.SEND
            assert n == 0
            assert sock.status == SocketStatus.DISCONNECTED

    assert state.statistic.nwrite == 0


@pytest.mark.asyncio
async def test_read_timeout_is_normalized_to_retry(state) -> None:
    async with serve() as server:
        sock = Socket(state.statistic, state.identity, io_timeout=0.05)
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS

        ret, data = await sock.read(16)

        assert ret == ErrorCode.READ
        assert data == b""
        assert sock.last_errno == errno.EAGAIN
        assert sock.status == SocketStatus.DISCONNECTED
        sock.close()


@pytest.mark.asyncio
async def test_dropping_socket_releases_descriptor(state) -> None:
    async with serve() as server:
        sock = state.new_socket()
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        raw = sock._sock
        assert raw is not None and raw.fileno() != -1

        del sock
        gc.collect()

        assert raw.fileno() == -1


@pytest.mark.asyncio
async def test_kernel_timeout_keeps_its_errno(state, monkeypatch: pytest.MonkeyPatch) -> None:
    loop = asyncio.get_running_loop()

    async def timed_out_recv(sock, size):
        raise TimeoutError(errno.ETIMEDOUT, "Connection timed out")

    async with serve() as server:
        sock = Socket(state.statistic, state.identity, io_timeout=5.0)
        assert await sock.connect("127.0.0.1", server.port) == ErrorCode.SUCCESS
        monkeypatch.setattr(loop, "sock_recv", timed_out_recv)

        ret, _ = await sock.read(16)

        assert ret == ErrorCode.READ
        assert sock.last_errno == errno.ETIMEDOUT
        assert sock.status == SocketStatus.DISCONNECTED
        sock.close()
