# src/stfarm/errors.py

"""
Numeric error codes shared by the farm, the socket wrapper and the utilities.

Operations return an ErrorCode instead of raising; only runtime initialization
raises (InitializeError), since nothing can run without it.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    SUCCESS = 0

    # socket / network
    SOCKET = 100
    OPEN_SOCKET = 101
    CONNECT = 102
    READ = 103
    SEND = 104
    CLOSE = 105
    DNS_RESOLVE = 106

    # cooperative runtime
    ST_INITIALIZE = 200
    ST_THREAD_CREATE = 201
    TASK_CRASHED = 202


class FarmError(Exception):
    """Base error carrying an ErrorCode."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        super().__init__(message or f"{code.name} (ret={int(code)})")


class InitializeError(FarmError):
    def __init__(self, message: str = "") -> None:
        super().__init__(ErrorCode.ST_INITIALIZE, message)
