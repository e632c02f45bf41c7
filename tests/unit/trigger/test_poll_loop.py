"""
Module: test_poll_loop.py
Description: Unit tests for the poll-and-deliver trigger loop.

Drives the loop with a manual scheduler and a mocked queue client.
Covers scheduling, delivery order, delete-after-delivery, diagnostics
and stop semantics.
"""

import asyncio

import pytest
from pydantic import ValidationError

from delivery.sink import CollectingSink, DeliveryError
from models.poll import DiagnosticKind, PollState
from sqs_queue.errors import ErrorKind, QueueError
from trigger.poll_loop import PollLoop, start


class RecordingSink(CollectingSink):
    """Collecting sink that also logs each delivery into a shared event list."""

    def __init__(self, events, fail_for=()):
        super().__init__()
        self.events = events
        self.fail_for = set(fail_for)

    async def deliver(self, record):
        if record['MessageId'] in self.fail_for:
            raise DeliveryError("webhook unavailable")
        self.events.append(('deliver', record['MessageId']))
        await super().deliver(record)


class TestPollLoopScheduling:
    """Test cases for cycle scheduling and lifecycle."""

    @pytest.mark.asyncio
    async def test_start_polls_immediately_without_blocking(self, make_poll_config, sink, fake_client, scheduler):
        """Test start() spawns the first cycle and returns before it runs."""
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)

        handle = poll_loop.start()

        assert len(scheduler.tasks) == 1
        fake_client.receive_messages.assert_not_awaited()

        await scheduler.drain()

        fake_client.receive_messages.assert_awaited_once()
        assert not handle.stopped
        assert poll_loop.state is PollState.IDLE
        assert [timer.delay for timer in scheduler.pending] == [30.0]

    @pytest.mark.asyncio
    async def test_ticks_are_spaced_by_interval(self, make_poll_config, sink, fake_client, scheduler):
        """Test each cycle re-arms exactly one timer at the configured interval."""
        poll_loop = PollLoop(make_poll_config(interval_ms=5000), sink, fake_client, scheduler)
        poll_loop.start()
        await scheduler.drain()

        for _ in range(3):
            assert len(scheduler.pending) == 1
            fired = await scheduler.fire_next()
            assert fired.delay == 5.0

        assert fake_client.receive_messages.await_count == 4
        assert poll_loop.cycles == 4

    @pytest.mark.asyncio
    async def test_receive_arguments(self, make_poll_config, sink, fake_client, scheduler, queue_url):
        """Test the receive call uses the configured limits and attribute selectors."""
        config = make_poll_config(max_messages=5, wait_time_seconds=20, visibility_timeout_seconds=120)
        PollLoop(config, sink, fake_client, scheduler).start()
        await scheduler.drain()

        fake_client.receive_messages.assert_awaited_once_with(
            queue_url,
            max_messages=5,
            wait_time_seconds=20,
            visibility_timeout_seconds=120,
            attribute_names=['All'],
            message_attribute_names=['All']
        )

    @pytest.mark.asyncio
    async def test_receive_without_message_attributes(self, make_poll_config, sink, fake_client, scheduler):
        """Test message attributes are not requested when excluded."""
        config = make_poll_config(include_message_attributes=False)
        PollLoop(config, sink, fake_client, scheduler).start()
        await scheduler.drain()

        kwargs = fake_client.receive_messages.await_args.kwargs
        assert kwargs['message_attribute_names'] == []

    @pytest.mark.asyncio
    async def test_no_overlapping_cycles(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test no timer is armed while a receive call is still unresolved."""
        release = asyncio.Event()

        async def slow_receive(*args, **kwargs):
            await release.wait()
            return [make_message()]

        fake_client.receive_messages.side_effect = slow_receive
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        poll_loop.start()

        await asyncio.sleep(0)
        assert poll_loop.state is PollState.POLLING
        assert scheduler.pending == []

        release.set()
        await scheduler.drain()

        assert len(sink.records) == 1
        assert len(scheduler.pending) == 1

    @pytest.mark.asyncio
    async def test_start_twice_raises(self, make_poll_config, sink, fake_client, scheduler):
        """Test a loop can only be started once."""
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        poll_loop.start()

        with pytest.raises(RuntimeError, match="only be started once"):
            poll_loop.start()

        await scheduler.drain()

    def test_invalid_interval_rejected(self, make_poll_config):
        """Test a non-positive interval never reaches the loop."""
        with pytest.raises(ValidationError):
            make_poll_config(interval_ms=0)

        with pytest.raises(ValidationError):
            make_poll_config(interval_ms=-1000)

    def test_invalid_config_type(self, sink, fake_client):
        """Test the loop requires a PollConfig."""
        with pytest.raises(ValueError, match="config must be a PollConfig instance"):
            PollLoop({"interval_ms": 1000}, sink, fake_client)

    @pytest.mark.asyncio
    async def test_start_helper(self, make_poll_config, sink, fake_client, scheduler):
        """Test the module-level start() builds and starts a loop."""
        handle = start(make_poll_config(), sink, fake_client, scheduler)
        await scheduler.drain()

        fake_client.receive_messages.assert_awaited_once()
        await handle.close()
        assert handle.stopped


class TestPollLoopDelivery:
    """Test cases for delivery and delete-after-delivery."""

    @pytest.mark.asyncio
    async def test_single_message_delivered_then_deleted(self, make_poll_config, fake_client, scheduler, make_message, queue_url):
        """Test one received message yields one delivery followed by one delete."""
        events = []
        sink = RecordingSink(events)
        fake_client.receive_messages.return_value = [make_message(1, body="hello")]

        async def record_delete(url, receipt_handle):
            events.append(('delete', receipt_handle))
            return "req-1"

        fake_client.delete_message.side_effect = record_delete
        config = make_poll_config(interval_ms=30000, max_messages=1, delete_after_delivery=True)

        PollLoop(config, sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert sink.records == [{'MessageId': 'm1', 'Body': 'hello', 'ReceiptHandle': 'r1'}]
        assert events == [('deliver', 'm1'), ('delete', 'r1')]
        fake_client.delete_message.assert_awaited_once_with(queue_url, 'r1')

    @pytest.mark.asyncio
    async def test_batch_delivered_in_receipt_order(self, make_poll_config, fake_client, scheduler, make_message):
        """Test k messages produce k deliveries, each followed by its own delete."""
        events = []
        sink = RecordingSink(events)
        fake_client.receive_messages.return_value = [make_message(i) for i in (3, 1, 2)]

        async def record_delete(url, receipt_handle):
            events.append(('delete', receipt_handle))

        fake_client.delete_message.side_effect = record_delete

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert [record['MessageId'] for record in sink.records] == ['m3', 'm1', 'm2']
        assert events == [
            ('deliver', 'm3'), ('delete', 'r3'),
            ('deliver', 'm1'), ('delete', 'r1'),
            ('deliver', 'm2'), ('delete', 'r2'),
        ]

    @pytest.mark.asyncio
    async def test_no_delete_when_disabled(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test no delete call is made when delete_after_delivery is off."""
        fake_client.receive_messages.return_value = [make_message(i) for i in range(1, 6)]

        PollLoop(make_poll_config(delete_after_delivery=False), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert len(sink.records) == 5
        fake_client.delete_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_receive_delivers_nothing(self, make_poll_config, sink, fake_client, scheduler):
        """Test an empty receive ends the cycle without delivery or diagnostics."""
        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert sink.records == []
        assert sink.diagnostics == []
        fake_client.delete_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_includes_fifo_and_attribute_fields(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test delivered records carry FIFO fields and message attributes."""
        from models.message import MessageAttribute

        fake_client.receive_messages.return_value = [make_message(
            1,
            body_md5="5d41402abc4b2a76b9719d911017c592",
            attributes={'MessageGroupId': 'g1', 'SequenceNumber': '100'},
            message_attributes={'color': MessageAttribute.string('red')}
        )]

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        record = sink.records[0]
        assert record['MD5OfBody'] == "5d41402abc4b2a76b9719d911017c592"
        assert record['MessageGroupId'] == 'g1'
        assert record['SequenceNumber'] == '100'
        assert record['MessageAttributes'] == {'color': {'DataType': 'String', 'StringValue': 'red'}}


class TestPollLoopFailures:
    """Test cases for non-fatal failures reported as diagnostics."""

    @pytest.mark.asyncio
    async def test_receive_failure_reported_and_loop_stays_armed(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test a receive failure becomes a diagnostic and the next tick retries."""
        fake_client.receive_messages.side_effect = [
            QueueError(ErrorKind.TRANSIENT, "Service unavailable", code="ServiceUnavailable"),
            [make_message()],
        ]

        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        poll_loop.start()
        await scheduler.drain()

        assert len(sink.diagnostics) == 1
        diagnostic = sink.diagnostics[0]
        assert diagnostic.kind is DiagnosticKind.RECEIVE_FAILED
        assert diagnostic.error_kind == "transient"
        assert "Service unavailable" in diagnostic.error
        assert len(scheduler.pending) == 1

        await scheduler.fire_next()

        assert len(sink.records) == 1
        assert poll_loop.state is PollState.IDLE

    @pytest.mark.asyncio
    async def test_permanent_failure_reported_every_tick(self, make_poll_config, sink, fake_client, scheduler):
        """Test a permanent failure does not stop the loop and is reported each tick."""
        fake_client.receive_messages.side_effect = QueueError(
            ErrorKind.PERMANENT, "The specified queue does not exist", code="QueueDoesNotExist"
        )

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()
        await scheduler.fire_next()
        await scheduler.fire_next()

        assert len(sink.diagnostics) == 3
        assert all(d.error_kind == "permanent" for d in sink.diagnostics)
        assert len(scheduler.pending) == 1

    @pytest.mark.asyncio
    async def test_unexpected_receive_error_reported(self, make_poll_config, sink, fake_client, scheduler):
        """Test non-queue exceptions from receive are also contained."""
        fake_client.receive_messages.side_effect = RuntimeError("boom")

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert sink.diagnostics[0].kind is DiagnosticKind.RECEIVE_FAILED
        assert sink.diagnostics[0].error_kind is None
        assert len(scheduler.pending) == 1

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_abort_batch(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test a failed delete is reported once and never retried."""
        fake_client.receive_messages.return_value = [make_message(1), make_message(2)]
        fake_client.delete_message.side_effect = [
            QueueError(ErrorKind.PERMANENT, "The receipt handle has expired", code="ReceiptHandleIsInvalid"),
            "req-2",
        ]

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert [record['MessageId'] for record in sink.records] == ['m1', 'm2']
        assert fake_client.delete_message.await_count == 2
        assert len(sink.diagnostics) == 1
        diagnostic = sink.diagnostics[0]
        assert diagnostic.kind is DiagnosticKind.DELETE_FAILED
        assert diagnostic.message_id == 'm1'
        assert len(scheduler.pending) == 1

    @pytest.mark.asyncio
    async def test_delivery_failure_skips_delete(self, make_poll_config, fake_client, scheduler, make_message, queue_url):
        """Test an undelivered message is reported and left on the queue."""
        sink = RecordingSink([], fail_for={'m1'})
        fake_client.receive_messages.return_value = [make_message(1), make_message(2)]

        PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await scheduler.drain()

        assert [record['MessageId'] for record in sink.records] == ['m2']
        fake_client.delete_message.assert_awaited_once_with(queue_url, 'r2')
        assert sink.diagnostics[0].kind is DiagnosticKind.DELIVERY_FAILED
        assert sink.diagnostics[0].message_id == 'm1'

    @pytest.mark.asyncio
    async def test_sink_report_failure_is_contained(self, make_poll_config, fake_client, scheduler):
        """Test a sink failing to accept a diagnostic does not break the loop."""
        class BrokenSink(CollectingSink):
            async def report(self, diagnostic):
                raise RuntimeError("sink down")

        fake_client.receive_messages.side_effect = QueueError(ErrorKind.TRANSIENT, "throttled")

        PollLoop(make_poll_config(), BrokenSink(), fake_client, scheduler).start()
        await scheduler.drain()

        assert len(scheduler.pending) == 1


class TestPollLoopStop:
    """Test cases for stop() semantics."""

    @pytest.mark.asyncio
    async def test_stop_cancels_timer_and_is_idempotent(self, make_poll_config, sink, fake_client, scheduler):
        """Test stop() clears the armed timer; repeated calls change nothing."""
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        handle = poll_loop.start()
        await scheduler.drain()
        timer = scheduler.pending[0]

        handle.stop()
        handle.stop()
        poll_loop.stop()

        assert timer.cancelled
        assert scheduler.pending == []
        assert poll_loop.state is PollState.STOPPED
        assert handle.stopped
        fake_client.receive_messages.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_before_start_is_noop(self, make_poll_config, sink, fake_client, scheduler):
        """Test stopping a loop that never started leaves it stopped without polling."""
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)

        poll_loop.stop()
        poll_loop.stop()

        assert poll_loop.state is PollState.STOPPED
        with pytest.raises(RuntimeError):
            poll_loop.start()
        fake_client.receive_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_during_cycle_completes_deliveries(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test an in-flight cycle finishes delivering but does not re-arm."""
        handle = None

        async def receive_then_stop(*args, **kwargs):
            handle.stop()
            return [make_message(1), make_message(2)]

        fake_client.receive_messages.side_effect = receive_then_stop
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        handle = poll_loop.start()

        await handle.wait_closed()

        assert [record['MessageId'] for record in sink.records] == ['m1', 'm2']
        assert fake_client.delete_message.await_count == 2
        assert scheduler.pending == []
        assert poll_loop.state is PollState.STOPPED

    @pytest.mark.asyncio
    async def test_close_waits_for_in_flight_cycle(self, make_poll_config, sink, fake_client, scheduler, make_message):
        """Test close() returns only after the running cycle has delivered."""
        release = asyncio.Event()

        async def slow_receive(*args, **kwargs):
            await release.wait()
            return [make_message()]

        fake_client.receive_messages.side_effect = slow_receive
        handle = PollLoop(make_poll_config(), sink, fake_client, scheduler).start()
        await asyncio.sleep(0)

        closing = asyncio.ensure_future(handle.close())
        await asyncio.sleep(0)
        assert not closing.done()

        release.set()
        await closing

        assert len(sink.records) == 1
        assert scheduler.pending == []

    @pytest.mark.asyncio
    async def test_close_from_sink_during_delivery(self, make_poll_config, fake_client, scheduler, make_message):
        """Test a sink closing the handle inside deliver() stops the loop without deadlock."""
        handle = None

        class ClosingSink(CollectingSink):
            async def deliver(self, record):
                await super().deliver(record)
                await handle.close()

        sink = ClosingSink()
        fake_client.receive_messages.return_value = [make_message(1), make_message(2)]
        poll_loop = PollLoop(make_poll_config(), sink, fake_client, scheduler)
        handle = poll_loop.start()

        await scheduler.drain()

        assert [record['MessageId'] for record in sink.records] == ['m1', 'm2']
        assert sink.diagnostics == []
        assert fake_client.delete_message.await_count == 2
        assert scheduler.pending == []
        assert handle.stopped


class TestPollLoopWithEventLoop:
    """Test cases running on the real asyncio scheduler."""

    @pytest.mark.asyncio
    async def test_polls_until_stopped(self, make_poll_config, sink, fake_client):
        """Test the loop keeps polling on its own and stops polling after close()."""
        handle = PollLoop(make_poll_config(interval_ms=10), sink, fake_client).start()

        await asyncio.sleep(0.1)
        await handle.close()
        polls = fake_client.receive_messages.await_count

        await asyncio.sleep(0.05)

        assert polls >= 2
        assert fake_client.receive_messages.await_count == polls
