# src/stfarm/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- builds the single Statistic / IdentityRegistry pair for the process,
- builds the client tasks the farm will run.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.identity import IdentityRegistry
from ..core.state import FarmState
from ..core.statistic import Statistic
from ..tasks.stream_client import StreamClientTask

logger = logging.getLogger(__name__)


def create_initial_state(*, settings: Settings | None = None) -> FarmState:
    """
    Create FarmState from the provided settings.

    Keeping settings injectable makes the farm easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    return FarmState(
        settings=settings,
        statistic=Statistic(),
        identity=IdentityRegistry(),
    )


def build_client_tasks(state: FarmState) -> list[StreamClientTask]:
    settings = state.settings
    tasks = [
        StreamClientTask(
            state,
            settings.target_host,
            settings.target_port,
            request=settings.request,
            rounds=settings.rounds,
            round_interval_seconds=settings.round_interval_seconds,
            startup_seconds=settings.startup_seconds,
            read_size=settings.read_size,
            max_bytes=settings.max_bytes_per_round,
        )
        for _ in range(settings.clients)
    ]
    logger.info(
        "Built %d clients for %s:%d (rounds=%s)",
        len(tasks),
        settings.target_host,
        settings.target_port,
        settings.rounds or "forever",
    )
    return tasks
