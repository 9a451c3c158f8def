# src/stfarm/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole farm.
- Nothing is read at import time except the optional local .env file.
- CLI flags override selected fields via dataclasses.replace().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "STFARM"

EVENT_BACKENDS = ("epoll", "auto", "select")

MIN_REPORT_INTERVAL_SECONDS = 0.1


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_timeout(name: str) -> float | None:
    """Unset, empty or non-positive means "no timeout"."""
    value = _env_float(name, 0.0)
    return value if value > 0 else None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_payload(name: str) -> bytes:
    # Allow "GET /live.flv HTTP/1.1\r\nHost: x\r\n\r\n" in a single-line env value.
    raw = _env(name, "")
    return raw.replace("\\r", "\r").replace("\\n", "\n").encode("utf-8")


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path

    # ---- Runtime ----
    event_backend: str
    report_interval_seconds: float
    io_timeout_seconds: float | None

    # ---- Workload ----
    target_host: str
    target_port: int
    clients: int
    rounds: int
    round_interval_seconds: float
    startup_seconds: float
    request: bytes
    read_size: int
    max_bytes_per_round: int

    @staticmethod
    def from_env() -> "Settings":
        event_backend = _env(_k("EVENT_BACKEND"), "epoll").strip().lower()
        if event_backend not in EVENT_BACKENDS:
            event_backend = "epoll"

        return Settings(
            app_name=_env(_k("APP_NAME"), "stfarm"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            log_dir=_env_path(_k("LOG_DIR"), Path(".local/stfarm")),
            event_backend=event_backend,
            report_interval_seconds=max(MIN_REPORT_INTERVAL_SECONDS, _env_float(_k("REPORT_INTERVAL_SECONDS"), 5.0)),
            io_timeout_seconds=_env_timeout(_k("IO_TIMEOUT_SECONDS")),
            target_host=_env(_k("TARGET_HOST"), "127.0.0.1").strip() or "127.0.0.1",
            target_port=_env_int(_k("TARGET_PORT"), 1935),
            clients=max(0, _env_int(_k("CLIENTS"), 10)),
            rounds=max(0, _env_int(_k("ROUNDS"), 0)),
            round_interval_seconds=_env_float(_k("ROUND_INTERVAL_SECONDS"), 0.0),
            startup_seconds=_env_float(_k("STARTUP_SECONDS"), 0.0),
            request=_env_payload(_k("REQUEST")),
            read_size=max(1, _env_int(_k("READ_SIZE"), 4096)),
            max_bytes_per_round=max(0, _env_int(_k("MAX_BYTES_PER_ROUND"), 0)),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
