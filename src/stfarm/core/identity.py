# src/stfarm/core/identity.py

from __future__ import annotations

"""
Per-logical-thread task identity.

Every spawned logical thread is an asyncio.Task, and every asyncio.Task runs in
its own copy of the contextvars.Context. A ContextVar therefore behaves like
thread-local storage for coroutines sharing one OS thread: a task only ever
sees the id it set itself (or the one it inherited from the task that created it).

Entries live inside the task's context, so they go away with the task.
"""

import logging
from contextvars import ContextVar

UNSET_ID = 0


class IdentityRegistry:
    def __init__(self, name: str = "stfarm_task_id") -> None:
        self._var: ContextVar[int] = ContextVar(name, default=UNSET_ID)

    def set_id(self, task_id: int) -> None:
        """Bind task_id to the currently running logical thread."""
        self._var.set(int(task_id))

    def get_id(self) -> int:
        """Id registered by the calling logical thread, UNSET_ID before set_id()."""
        return self._var.get()


class IdentityFilter(logging.Filter):
    """Stamp record.task_id so log lines can be correlated with a task."""

    def __init__(self, registry: IdentityRegistry) -> None:
        super().__init__()
        self._registry = registry

    def filter(self, record: logging.LogRecord) -> bool:
        record.task_id = self._registry.get_id()
        return True
