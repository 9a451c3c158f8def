"""
Task subsystem.

Components:
- task_models.py: Task, the abstract unit of work
- task_farm.py: Farm, which runs tasks as logical threads and reports statistics
- stream_client.py: StreamClientTask, a simulated streaming-server client
"""
