"""
Module: push.py
Description: Push trigger output to a webhook.

Implements HTTP push delivery with timeout handling and retries for
transient failures. A record that cannot be delivered after all attempts
raises DeliveryError so the trigger leaves the message on the queue.
"""

from typing import Any, Dict, Optional

import httpx

from delivery.retry import delivery_retrying
from delivery.sink import DeliveryError
from models.poll import Diagnostic
from utils.logger import get_logger

logger = get_logger(__name__)


class WebhookSink:
    """
    Sink POSTing each record as JSON to a webhook.

    Payloads are {"type": "message", "record": ...} for delivered
    messages and {"type": "diagnostic", "diagnostic": ...} for poll
    loop diagnostics.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: int = 10,
        max_attempts: int = 3,
        retry_max_wait: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize webhook sink.

        Args:
            webhook_url: Webhook URL receiving records
            timeout_seconds: HTTP timeout in seconds
            max_attempts: Delivery attempts per record
            retry_max_wait: Upper bound of one backoff wait in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ValueError: If webhook_url is invalid
        """
        if not webhook_url or not isinstance(webhook_url, str):
            raise ValueError("webhook_url must be a non-empty string")
        if not webhook_url.startswith(('http://', 'https://')):
            raise ValueError("webhook_url must be a valid HTTP/HTTPS URL")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.webhook_url = webhook_url
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self.max_attempts = max_attempts
        self.retry_max_wait = retry_max_wait
        self.transport = transport

        logger.info(
            "Webhook sink initialized",
            webhook_url=webhook_url,
            timeout_seconds=timeout_seconds,
            max_attempts=max_attempts
        )

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.webhook_url,
                json=payload,
                headers={'Content-Type': 'application/json'}
            )
            response.raise_for_status()
            return response

    async def deliver(self, record: Dict[str, Any]) -> None:
        """
        Deliver one message record.

        Raises:
            DeliveryError: If every attempt failed
        """
        message_id = record.get('MessageId')

        try:
            async for attempt in delivery_retrying(self.max_attempts, self.retry_max_wait):
                with attempt:
                    response = await self._post({'type': 'message', 'record': record})

        except httpx.HTTPStatusError as e:
            logger.warning(
                "Webhook delivery HTTP error",
                message_id=message_id,
                status_code=e.response.status_code,
                response=e.response.text[:500]  # Truncate large responses
            )
            raise DeliveryError(f"Webhook returned HTTP {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.warning(
                "Webhook delivery failed",
                message_id=message_id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise DeliveryError(f"Webhook delivery failed: {e}") from e

        logger.info(
            "Record delivered to webhook",
            message_id=message_id,
            status_code=response.status_code
        )

    async def report(self, diagnostic: Diagnostic) -> None:
        """Post one diagnostic, single attempt; failures are only logged."""
        try:
            await self._post({'type': 'diagnostic', 'diagnostic': diagnostic.to_record()})
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to post diagnostic to webhook",
                diagnostic_kind=diagnostic.kind.value,
                error=str(e)
            )
