# src/stfarm/tasks/task_models.py

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod

# Shared by every Task subclass so ids are unique across the process.
_task_ids = itertools.count(1)


class Task(ABC):
    """
    One unit of work, run by exactly one logical thread.

    process() must return a status code (0 on success) and must not let
    exceptions escape; the farm only logs a nonzero status and never retries.
    The farm disposes the task (close()) once process() returns; a disposed task
    cannot be spawned again.
    """

    def __init__(self) -> None:
        self.id: int = next(_task_ids)
        self.spent = False

    def get_id(self) -> int:
        return self.id

    @abstractmethod
    async def process(self) -> int: ...

    def close(self) -> None:
        """Release resources owned by the task. Must be idempotent."""
