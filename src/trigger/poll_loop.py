"""
Module: poll_loop.py
Description: Poll-and-deliver trigger loop.

Repeatedly receives messages from one queue, delivers each to a sink in
receipt order and optionally deletes it once delivered. Runtime failures
never escape the loop: they are logged and reported to the sink as
diagnostics, and the loop keeps polling on its next tick.

Key Components:
- PollLoop: Loop state machine (idle -> polling -> delivering -> idle,
  stopped from any state)
- PollHandle: Cancellation capability returned by start()
- start(): Build and start a loop in one call

Scheduling:
    One cycle runs immediately on start(). When a cycle finishes, and
    only then, the next one is armed interval_ms later, so at most one
    receive call is ever in flight. stop() cancels the armed timer; a
    cycle already running completes its deliveries and deletes but does
    not re-arm.

Dependencies: asyncio, structlog
Author: SQS Nodes Team
"""

import asyncio
from typing import Any, Awaitable, Optional

from delivery.sink import Sink
from models.message import InboundMessage
from models.poll import Diagnostic, DiagnosticKind, PollConfig, PollState
from sqs_queue.errors import QueueError
from sqs_queue.sqs import SQSClient
from trigger.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from utils.logger import get_logger

logger = get_logger(__name__)


class PollHandle:
    """Cancellation capability of a started poll loop."""

    def __init__(self, poll_loop: "PollLoop"):
        self._poll_loop = poll_loop

    @property
    def stopped(self) -> bool:
        return self._poll_loop.state is PollState.STOPPED

    def stop(self) -> None:
        """Stop scheduling further cycles. Idempotent."""
        self._poll_loop.stop()

    async def wait_closed(self) -> None:
        """Wait for a cycle still in flight after stop() to finish."""
        await self._poll_loop.wait_closed()

    async def close(self) -> None:
        """Stop the loop and wait for the in-flight cycle."""
        self.stop()
        await self.wait_closed()


class PollLoop:
    """
    Poll loop owned by one trigger activation.

    Attributes:
        config: Immutable poll configuration
        sink: Downstream consumer of records and diagnostics
        client: Queue client used for receive and delete
        cycles: Number of poll cycles started so far

    Example:
        >>> poll_loop = PollLoop(config, sink, client)
        >>> handle = poll_loop.start()
        >>> ...
        >>> await handle.close()
    """

    def __init__(
        self,
        config: PollConfig,
        sink: Sink,
        client: SQSClient,
        scheduler: Optional[Scheduler] = None
    ):
        if not isinstance(config, PollConfig):
            raise ValueError("config must be a PollConfig instance")

        self.config = config
        self.sink = sink
        self.client = client
        self.scheduler = scheduler or AsyncioScheduler()
        self.cycles = 0

        self._state = PollState.IDLE
        self._started = False
        self._timer: Optional[TimerHandle] = None
        self._in_flight: Optional[Awaitable[Any]] = None

    @property
    def state(self) -> PollState:
        return self._state

    def _set_state(self, state: PollState) -> None:
        # Stopped is terminal
        if self._state is not PollState.STOPPED:
            self._state = state

    def start(self) -> PollHandle:
        """
        Start polling: one cycle now, then one every interval_ms.

        Returns without waiting for the first cycle.

        Raises:
            ValueError: If interval_ms is not positive
            RuntimeError: If the loop was already started or stopped
        """
        if self.config.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self._started or self._state is PollState.STOPPED:
            raise RuntimeError("poll loop can only be started once")

        self._started = True
        logger.info(
            "Poll loop started",
            queue_url=self.config.queue_url,
            interval_ms=self.config.interval_ms,
            max_messages=self.config.max_messages,
            delete_after_delivery=self.config.delete_after_delivery
        )

        self._run_cycle()
        return PollHandle(self)

    def stop(self) -> None:
        """
        Stop scheduling further cycles.

        A cycle in flight finishes its deliveries; no new one starts.
        Calling stop() again, or on a loop that never started, is a no-op.
        """
        if self._state is PollState.STOPPED:
            return

        self._state = PollState.STOPPED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        logger.info("Poll loop stopped", queue_url=self.config.queue_url, cycles=self.cycles)

    async def wait_closed(self) -> None:
        """
        Wait until the cycle in flight, if any, has finished.

        Returns at once when called from within that cycle (a sink
        closing the handle from deliver()), since the cycle cannot await
        itself.
        """
        in_flight = self._in_flight
        if in_flight is None or in_flight is asyncio.current_task():
            return
        await in_flight

    def _run_cycle(self) -> None:
        # Timer callback: the armed timer has fired
        self._timer = None
        if self._state is PollState.STOPPED:
            return
        self._in_flight = self.scheduler.spawn(self._cycle())

    async def _cycle(self) -> None:
        try:
            await self._poll()
        except asyncio.CancelledError:
            self.stop()
            raise

        if self._state is not PollState.STOPPED:
            self._state = PollState.IDLE
            self._timer = self.scheduler.call_later(self.config.interval_seconds, self._run_cycle)

    async def _poll(self) -> int:
        """Run one receive-deliver-delete cycle; return the number delivered."""
        self.cycles += 1
        self._set_state(PollState.POLLING)
        config = self.config

        try:
            messages = await self.client.receive_messages(
                config.queue_url,
                max_messages=config.max_messages,
                wait_time_seconds=config.wait_time_seconds,
                visibility_timeout_seconds=config.visibility_timeout_seconds,
                attribute_names=['All'],
                message_attribute_names=['All'] if config.include_message_attributes else []
            )
        except QueueError as e:
            await self._report(DiagnosticKind.RECEIVE_FAILED, f"Failed to poll messages: {e.message}", e)
            return 0
        except Exception as e:
            await self._report(DiagnosticKind.RECEIVE_FAILED, f"Failed to poll messages: {e}", e)
            return 0

        logger.debug(
            "Poll cycle received messages",
            queue_url=config.queue_url,
            cycle=self.cycles,
            count=len(messages)
        )
        if not messages:
            return 0

        self._set_state(PollState.DELIVERING)
        delivered = 0
        for message in messages:
            if not await self._deliver(message):
                continue
            delivered += 1
            if config.delete_after_delivery:
                await self._delete(message)

        logger.info(
            "Poll cycle completed",
            queue_url=config.queue_url,
            cycle=self.cycles,
            received=len(messages),
            delivered=delivered
        )
        return delivered

    async def _deliver(self, message: InboundMessage) -> bool:
        record = message.to_record(self.config.include_message_attributes)
        try:
            await self.sink.deliver(record)
        except Exception as e:
            # Not deleted: the message reappears after its visibility timeout
            await self._report(
                DiagnosticKind.DELIVERY_FAILED,
                f"Failed to deliver message: {e}",
                e,
                message_id=message.message_id
            )
            return False
        return True

    async def _delete(self, message: InboundMessage) -> None:
        # Never retried: the receipt handle may already be stale
        try:
            await self.client.delete_message(self.config.queue_url, message.receipt_handle)
        except QueueError as e:
            await self._report(
                DiagnosticKind.DELETE_FAILED,
                f"Failed to delete message: {e.message}",
                e,
                message_id=message.message_id
            )
        except Exception as e:
            await self._report(
                DiagnosticKind.DELETE_FAILED,
                f"Failed to delete message: {e}",
                e,
                message_id=message.message_id
            )

    async def _report(
        self,
        kind: DiagnosticKind,
        error: str,
        cause: Exception,
        message_id: Optional[str] = None
    ) -> None:
        diagnostic = Diagnostic(
            kind=kind,
            error=error,
            error_kind=cause.kind.value if isinstance(cause, QueueError) else None,
            queue_url=self.config.queue_url,
            message_id=message_id
        )
        logger.warning(
            "Poll loop diagnostic",
            diagnostic_kind=kind.value,
            error=error,
            error_kind=diagnostic.error_kind,
            error_type=type(cause).__name__,
            message_id=message_id,
            queue_url=self.config.queue_url
        )

        try:
            await self.sink.report(diagnostic)
        except Exception as e:
            logger.error(
                "Sink failed to accept diagnostic",
                diagnostic_kind=kind.value,
                error=str(e)
            )


def start(
    config: PollConfig,
    sink: Sink,
    client: SQSClient,
    scheduler: Optional[Scheduler] = None
) -> PollHandle:
    """Build a poll loop and start it."""
    return PollLoop(config, sink, client, scheduler).start()
