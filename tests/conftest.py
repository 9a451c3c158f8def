# tests/conftest.py

from __future__ import annotations

import socket
from pathlib import Path

import pytest

from stfarm.config import Settings
from stfarm.core.identity import IdentityRegistry
from stfarm.core.state import FarmState
from stfarm.tasks.task_farm import Farm

from .fakes import FakeClock, RecordingStatistic


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly rather than from the environment,
    to keep unit tests isolated and deterministic.
    """
    return Settings(
        app_name="stfarm-test",
        log_level="TRACE",
        log_dir=tmp_path / "logs",
        event_backend="auto",
        report_interval_seconds=0.01,
        io_timeout_seconds=None,
        target_host="127.0.0.1",
        target_port=1,
        clients=1,
        rounds=1,
        round_interval_seconds=0.0,
        startup_seconds=0.0,
        request=b"",
        read_size=4096,
        max_bytes_per_round=0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def state(settings: Settings, clock: FakeClock) -> FarmState:
    return FarmState(
        settings=settings,
        statistic=RecordingStatistic(clock=clock),
        identity=IdentityRegistry(),
    )


@pytest.fixture()
def farm(state: FarmState):
    f = Farm(state)
    f.initialize(state.settings.report_interval_seconds)
    try:
        yield f
    finally:
        f.close()


@pytest.fixture()
def free_port() -> int:
    """A loopback port with nothing listening on it (at the time of the call)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
