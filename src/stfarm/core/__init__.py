"""
Farm core.

Components:
- identity.py: per-logical-thread task id (ContextVar) + logging filter
- statistic.py: process-wide counters and the reporting loop
- sockets.py: byte-stream socket that suspends the calling task on I/O
- state.py: FarmState, the collaborators shared by the farm and its tasks
"""
