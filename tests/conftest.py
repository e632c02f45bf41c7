"""
Module: conftest.py
Description: Shared pytest fixtures for SQS nodes tests.

Provides reusable fixtures for settings, credentials, a mocked queue
client, sinks and a manually driven scheduler so poll loop tests never
wait on a wall clock.
"""

import asyncio
from typing import Any, Callable, List

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from config.credentials import AwsCredentials
from config.settings import Settings
from delivery.sink import CollectingSink
from models.message import InboundMessage
from models.poll import PollConfig
from sqs_queue.sqs import SQSClient

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/orders"


class ManualTimer:
    """Timer armed on a ManualScheduler; fires only when told to."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.callback()


class ManualScheduler:
    """Scheduler whose timers fire only when the test advances them."""

    def __init__(self):
        self.timers: List[ManualTimer] = []
        self.tasks: List["asyncio.Task[Any]"] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    async def drain(self) -> None:
        """Run every spawned cycle to completion."""
        while any(not task.done() for task in self.tasks):
            await asyncio.gather(*self.tasks)

    async def fire_next(self) -> ManualTimer:
        """Fire the oldest pending timer and run the cycle it spawns."""
        timer = self.pending[0]
        timer.fire()
        await self.drain()
        return timer


@pytest.fixture
def queue_url():
    """Provide the queue URL used across tests."""
    return QUEUE_URL


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading so tests are not affected by local files.
    """
    return Settings(
        _env_file=None,
        aws_region="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        log_level="DEBUG"
    )


@pytest.fixture
def credentials():
    """Provide resolved test credentials."""
    return AwsCredentials(
        access_key_id="testing",
        secret_access_key="testing",
        region="us-east-1"
    )


@pytest.fixture
def sqs_client(credentials):
    """Provide an SQSClient built from test credentials."""
    return SQSClient(credentials)


@pytest.fixture
def mock_sqs(sqs_client):
    """
    Patch the aioboto3 client factory of sqs_client.

    Yields the AsyncMock standing in for the SQS client object returned
    by `async with session.client('sqs')`.
    """
    sqs = AsyncMock()
    context = MagicMock()
    context.__aenter__.return_value = sqs
    context.__aexit__.return_value = False

    with patch.object(sqs_client.session, 'client', return_value=context):
        yield sqs


@pytest.fixture
def fake_client():
    """Provide a queue client double with awaitable methods."""
    client = AsyncMock(spec=SQSClient)
    client.receive_messages.return_value = []
    client.delete_message.return_value = "req-delete"
    return client


@pytest.fixture
def sink():
    """Provide an in-memory sink."""
    return CollectingSink()


@pytest.fixture
def scheduler():
    """Provide a manually driven scheduler."""
    return ManualScheduler()


@pytest.fixture
def make_poll_config(queue_url):
    """Provide a factory of PollConfig with overridable fields."""
    def _make(**overrides) -> PollConfig:
        fields = {
            "queue_url": queue_url,
            "interval_ms": 30000,
            "max_messages": 10,
            "wait_time_seconds": 0,
            "visibility_timeout_seconds": 30,
            "delete_after_delivery": True,
            "include_message_attributes": True,
        }
        fields.update(overrides)
        return PollConfig(**fields)

    return _make


@pytest.fixture
def make_message():
    """Provide a factory of InboundMessage."""
    def _make(index: int = 1, body: str = "hello", **fields) -> InboundMessage:
        return InboundMessage(
            message_id=fields.pop("message_id", f"m{index}"),
            body=body,
            receipt_handle=fields.pop("receipt_handle", f"r{index}"),
            **fields
        )

    return _make
