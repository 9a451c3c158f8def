# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
CLI flags (--host, --port, -c/--clients, --rounds, -r/--report-interval, --log-level)
override the matching values.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "STFARM_APP_NAME": "Name used in the startup log line (default: stfarm).",
    "STFARM_LOG_LEVEL": "Console level: TRACE, DEBUG, INFO, REPORT, WARNING, ERROR (default: INFO).",
    "STFARM_LOG_DIR": "Directory for stfarm.log, which keeps everything down to TRACE (default: .local/stfarm).",
    # Runtime
    "STFARM_EVENT_BACKEND": "I/O readiness backend: epoll, auto or select (default: epoll).",
    "STFARM_REPORT_INTERVAL_SECONDS": "Seconds between [report] lines (default: 5).",
    "STFARM_IO_TIMEOUT_SECONDS": (
        "Deadline for every connect/read/write. Unset or 0 means wait forever (default)."
    ),
    # Workload
    "STFARM_TARGET_HOST": "Server to load, name or dotted-decimal (default: 127.0.0.1).",
    "STFARM_TARGET_PORT": "Server port (default: 1935).",
    "STFARM_CLIENTS": "Number of concurrent simulated clients (default: 10).",
    "STFARM_ROUNDS": "Connect/drain rounds per client, 0 = forever (default: 0).",
    "STFARM_ROUND_INTERVAL_SECONDS": "Pacing target between rounds, randomized 80%..120% (default: 0).",
    "STFARM_STARTUP_SECONDS": "Pacing target before a client's first round (default: 0).",
    "STFARM_REQUEST": r"Payload sent after connect; \r and \n escapes allowed (default: empty).",
    "STFARM_READ_SIZE": "Bytes per read (default: 4096).",
    "STFARM_MAX_BYTES_PER_ROUND": "End a round after this many bytes, 0 = until the server closes (default: 0).",
}
