# src/stfarm/utility.py

from __future__ import annotations

import asyncio
import logging
import random
import socket
import time

from .errors import ErrorCode

logger = logging.getLogger(__name__)


def current_time_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


def init_random() -> None:
    random.seed(time.time_ns() // 1000)


def randomized_delay_ms(sleep_seconds: float, default_seconds: float) -> int:
    """
    Pacing delay in milliseconds.

    80% of the target is fixed and up to 40% is random on top, which spreads
    simulated clients out without letting any of them drift far from the target.
    A non-positive target returns default_seconds as is.
    """
    if sleep_seconds <= 0:
        return int(default_seconds * 1000)

    fixed_ms = int(sleep_seconds * 1000 * 0.8)
    jitter_range = int(sleep_seconds * 1000 * 0.4)
    jitter_ms = random.randrange(jitter_range) if jitter_range > 0 else 0

    return fixed_ms + jitter_ms


def _is_ipv4(host: str) -> bool:
    try:
        socket.inet_pton(socket.AF_INET, host)
    except OSError:
        return False
    return True


async def dns_resolve(host: str) -> tuple[ErrorCode, str]:
    """
    Resolve host to a dotted-decimal IPv4 address.

    Addresses already in dotted-decimal form are returned unchanged. The lookup
    runs in the loop's resolver so other tasks keep running meanwhile.
    """
    if _is_ipv4(host):
        logger.info("dns resolve %s to %s", host, host)
        return ErrorCode.SUCCESS, host

    loop = asyncio.get_running_loop()
    try:
        answers = await loop.getaddrinfo(host, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
    except (OSError, UnicodeError):
        ret = ErrorCode.DNS_RESOLVE
        logger.error("dns resolve host %s error. ret=%d", host, ret)
        return ret, ""

    if not answers:
        ret = ErrorCode.DNS_RESOLVE
        logger.error("dns resolve host %s got no address. ret=%d", host, ret)
        return ret, ""

    ip = str(answers[0][4][0])
    logger.info("dns resolve %s to %s", host, ip)
    return ErrorCode.SUCCESS, ip
