# src/stfarm/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

from .core.identity import IdentityFilter, IdentityRegistry

# Extra levels: TRACE for per-task chatter, REPORT for the statistics heartbeat.
TRACE = 5
REPORT = 25

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(REPORT, "REPORT")


def level_from_name(name: str, default: int = logging.INFO) -> int:
    """Map "TRACE"/"report"/"debug"... to a numeric level."""
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable under load:
    - allow stfarm logs
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise (asyncio included) unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("stfarm."):
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    identity: IdentityRegistry,
    log_dir: str | Path = ".local/stfarm",
    console_level: int = logging.INFO,
    file_level: int = TRACE,
) -> None:
    """
    Configure logging with:
    - Console handler: filtered, level from settings
    - File handler: everything down to TRACE
    Both handlers tag records with the id of the task that emitted them.

    Call this ONCE, before the farm is initialized.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "stfarm.log"

    root = logging.getLogger()
    root.setLevel(TRACE)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s [%(task_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    identity_filter = IdentityFilter(identity)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(identity_filter)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    fh.addFilter(identity_filter)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
