# src/stfarm/cli/main.py

"""
CLI entrypoint.

Loads settings (env + CLI overrides), initializes logging, starts the farm,
spawns one StreamClientTask per client, then reports statistics until
SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from ..cli.bootstrap import build_client_tasks, create_initial_state
from ..config import MIN_REPORT_INTERVAL_SECONDS, Settings, get_settings
from ..errors import ErrorCode, InitializeError
from ..logging_setup import level_from_name, setup_logging
from ..tasks.task_farm import Farm

logger = logging.getLogger(__name__)


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stfarm",
        description="Run many simulated stream clients and report aggregate throughput.",
    )
    parser.add_argument("--host", help="target host (name or dotted-decimal)")
    parser.add_argument("--port", type=int, help="target port")
    parser.add_argument("-c", "--clients", type=_non_negative_int, help="number of concurrent clients")
    parser.add_argument("--rounds", type=_non_negative_int, help="rounds per client, 0 = forever")
    parser.add_argument("-r", "--report-interval", type=float, help="seconds between reports")
    parser.add_argument("--log-level", help="console level: TRACE, DEBUG, INFO, REPORT, WARNING...")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "target_host": args.host,
        "target_port": args.port,
        "clients": args.clients,
        "rounds": args.rounds,
        "log_level": args.log_level,
    }
    if args.report_interval is not None:
        # A zero interval would turn the report loop into a busy loop.
        overrides["report_interval_seconds"] = max(MIN_REPORT_INTERVAL_SECONDS, args.report_interval)
    return dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    settings = apply_overrides(get_settings(), _parse_args(argv))
    state = create_initial_state(settings=settings)

    console_level = level_from_name(settings.log_level)
    setup_logging(identity=state.identity, log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    farm = Farm(state)
    try:
        farm.initialize(settings.report_interval_seconds)
    except InitializeError as e:
        logger.error("farm initialize failed: %s. ret=%d", e, e.code)
        return 1

    try:
        for task in build_client_tasks(state):
            ret = farm.spawn(task)
            if ret != ErrorCode.SUCCESS:
                logger.error("spawn task #%d failed. ret=%d", task.id, ret)

        farm.run()
    finally:
        farm.close()
        logger.info("Bye.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
