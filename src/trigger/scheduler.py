"""
Module: scheduler.py
Description: Scheduling abstraction used by the poll loop.

The poll loop never touches the event loop directly: it arms timers and
spawns cycles through a Scheduler, which keeps timer ownership explicit
and lets tests drive the loop without waiting on a wall clock.
"""

import asyncio
from typing import Any, Awaitable, Callable, Coroutine, Optional, Protocol


class TimerHandle(Protocol):
    """Handle of an armed timer."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Timer and task factory."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Awaitable[Any]:
        """Start running coro without waiting for it."""
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        return self.loop.create_task(coro)
