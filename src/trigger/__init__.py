"""
Package: trigger
Description: Long-running SQS trigger.

Provides the poll loop that receives messages on a timer and delivers
them downstream, plus the scheduler abstraction it runs on.
"""

from .poll_loop import PollHandle, PollLoop, start
from .scheduler import AsyncioScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "PollHandle",
    "PollLoop",
    "Scheduler",
    "start",
]
