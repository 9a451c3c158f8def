# tests/test_utility.py

from __future__ import annotations

import asyncio
import random
import socket

import pytest

from stfarm.errors import ErrorCode
from stfarm.utility import dns_resolve, randomized_delay_ms


def test_randomized_delay_uses_default_for_non_positive_target() -> None:
    assert randomized_delay_ms(0, 3) == 3000
    assert randomized_delay_ms(-1, 0.5) == 500


def test_randomized_delay_stays_within_80_to_120_percent() -> None:
    random.seed(1234)
    values = [randomized_delay_ms(10, 0) for _ in range(500)]

    assert min(values) >= 8000
    assert max(values) < 12000
    assert len(set(values)) > 1


def test_randomized_delay_tiny_target_has_no_jitter() -> None:
    assert randomized_delay_ms(0.001, 0) == 0


@pytest.mark.asyncio
async def test_dns_resolve_passes_dotted_decimal_through() -> None:
    assert await dns_resolve("10.1.2.3") == (ErrorCode.SUCCESS, "10.1.2.3")


@pytest.mark.asyncio
async def test_dns_resolve_uses_first_ipv4_answer(monkeypatch: pytest.MonkeyPatch) -> None:
    loop = asyncio.get_running_loop()

    async def fake_getaddrinfo(host, port, **kwargs):
        assert host == "stream.example"
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.10", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.11", 0)),
        ]

    monkeypatch.setattr(loop, "getaddrinfo", fake_getaddrinfo)

    assert await dns_resolve("stream.example") == (ErrorCode.SUCCESS, "192.0.2.10")


@pytest.mark.asyncio
async def test_dns_resolve_failure_returns_error(monkeypatch: pytest.MonkeyPatch) -> None:
    loop = asyncio.get_running_loop()

    async def fake_getaddrinfo(host, port, **kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(loop, "getaddrinfo", fake_getaddrinfo)

    assert await dns_resolve("nope.invalid") == (ErrorCode.DNS_RESOLVE, "")
