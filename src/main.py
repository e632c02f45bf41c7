"""
Module: main.py
Description: Entry point running the SQS trigger as a standalone process.

Resolves credentials, builds the queue client and the sink, starts the
poll loop and runs until SIGINT or SIGTERM, then stops the loop and
waits for the cycle in flight.
"""

import asyncio
import signal
import sys
from typing import Optional

from pydantic import ValidationError

from config.credentials import CredentialsError, resolve_credentials
from config.settings import Settings, TriggerSettings, settings
from delivery.push import WebhookSink
from delivery.sink import LoggingSink, Sink
from models.poll import PollConfig
from sqs_queue.sqs import SQSClient
from trigger.poll_loop import PollLoop
from utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def build_sink(app_settings: Settings) -> Sink:
    """Webhook sink when a webhook URL is configured, logging sink otherwise."""
    if app_settings.webhook_url:
        return WebhookSink(
            app_settings.webhook_url,
            timeout_seconds=app_settings.delivery_timeout,
            max_attempts=app_settings.delivery_max_attempts
        )
    return LoggingSink()


async def run_trigger(
    app_settings: Settings,
    poll_config: PollConfig,
    stop_event: Optional[asyncio.Event] = None
) -> None:
    """
    Run the trigger until stop_event is set (or a stop signal arrives).

    Raises:
        CredentialsError: If AWS credentials cannot be resolved
    """
    credentials = resolve_credentials(app_settings)
    client = SQSClient(credentials, endpoint_url=app_settings.sqs_endpoint_url)

    if stop_event is None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

    handle = PollLoop(poll_config, build_sink(app_settings), client).start()
    logger.info(
        "Starting SQS trigger",
        version=app_settings.app_version,
        queue_url=poll_config.queue_url
    )

    await stop_event.wait()

    logger.info("Shutting down SQS trigger")
    await handle.close()


def main() -> None:
    """Console entry point."""
    configure_logging(settings.log_level)

    try:
        poll_config = TriggerSettings().to_poll_config()
    except ValidationError as e:
        logger.error("Invalid trigger configuration", errors=e.errors(include_url=False))
        sys.exit(2)

    try:
        asyncio.run(run_trigger(settings, poll_config))
    except CredentialsError as e:
        logger.error("AWS credentials unavailable", error=str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
