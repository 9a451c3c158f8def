"""stfarm: run many simulated network clients on one event loop and report aggregate throughput."""

__version__ = "0.1.0"
