"""
Module: sqs.py
Description: SQS client for queue operations.

Handles sending messages (single and batch), receiving messages for the
trigger, deleting messages after delivery and listing queues. Each call
is one network round trip; botocore retries are disabled and every
failure surfaces as a typed QueueError.
"""

from typing import Any, Dict, List, Optional, Sequence

from aioboto3 import Session
from aiobotocore.config import AioConfig
from botocore.exceptions import BotoCoreError, ClientError

from config.credentials import AwsCredentials
from models.message import InboundMessage, OutboundMessage
from sqs_queue.errors import QueueError, from_botocore_error, from_client_error
from utils.batch_helpers import validate_batch_size
from utils.logger import get_logger

logger = get_logger(__name__)

# SQS service limits
MAX_BATCH_ENTRIES = 10
MAX_RECEIVE_MESSAGES = 10
MAX_WAIT_TIME_SECONDS = 20
MAX_VISIBILITY_TIMEOUT_SECONDS = 43200


class SQSClient:
    """
    SQS client for queue operations.

    The session and client configuration are built once and never
    mutated afterwards, so one instance can be shared by the trigger and
    the command executor.
    """

    def __init__(
        self,
        credentials: AwsCredentials,
        endpoint_url: Optional[str] = None
    ):
        """
        Initialize SQS client.

        Args:
            credentials: Resolved AWS credentials
            endpoint_url: Optional SQS endpoint override
        """
        if not isinstance(credentials, AwsCredentials):
            raise ValueError("credentials must be an AwsCredentials instance")

        self.region = credentials.region
        self.endpoint_url = endpoint_url
        if credentials.from_settings:
            self.session = Session(
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key.get_secret_value(),
                aws_session_token=(
                    credentials.session_token.get_secret_value()
                    if credentials.session_token else None
                ),
                region_name=credentials.region
            )
        else:
            # Default chain: the session resolves (and refreshes) credentials itself
            self.session = Session(region_name=credentials.region)
        # A single attempt per call: retry policy belongs to the callers
        self.config = AioConfig(retries={'max_attempts': 1, 'mode': 'standard'})

        logger.info(
            "SQS client initialized",
            region=self.region,
            credential_source=credentials.source,
            endpoint_url=endpoint_url
        )

    def _client(self):
        return self.session.client('sqs', endpoint_url=self.endpoint_url, config=self.config)

    def _failure(self, operation: str, error: Exception, **context: Any) -> QueueError:
        if isinstance(error, ClientError):
            queue_error = from_client_error(error)
        else:
            queue_error = from_botocore_error(error)

        logger.error(
            f"SQS {operation} failed",
            error_kind=queue_error.kind.value,
            error_code=queue_error.code,
            error_message=queue_error.message,
            request_id=queue_error.request_id,
            **context
        )
        return queue_error

    @staticmethod
    def _require_queue_url(queue_url: str) -> None:
        if not queue_url or not isinstance(queue_url, str):
            raise QueueError.validation("queue_url must be a non-empty string")

    async def send_message(self, queue_url: str, message: OutboundMessage) -> Dict[str, Any]:
        """
        Send one message.

        Args:
            queue_url: Target queue URL
            message: Message to send

        Returns:
            SendMessage response (MessageId, MD5OfMessageBody,
            SequenceNumber for FIFO queues, ResponseMetadata)

        Raises:
            QueueError: If the parameters are invalid or the call fails
        """
        self._require_queue_url(queue_url)
        if not isinstance(message, OutboundMessage):
            raise QueueError.validation("message must be an OutboundMessage instance")

        try:
            async with self._client() as sqs:
                response = await sqs.send_message(**message.to_send_request(queue_url))

        except (ClientError, BotoCoreError) as e:
            raise self._failure("SendMessage", e, queue_url=queue_url) from e

        logger.info(
            "Message sent to SQS",
            message_id=response.get('MessageId'),
            sequence_number=response.get('SequenceNumber'),
            queue_url=queue_url
        )
        return response

    async def send_message_batch(
        self,
        queue_url: str,
        entries: Sequence[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Send up to ten messages in one call.

        Args:
            queue_url: Target queue URL
            entries: SendMessageBatch entries, each with a unique Id

        Returns:
            SendMessageBatch response with Successful and Failed lists

        Raises:
            QueueError: validation kind if entries is empty or holds more
                than ten items (no call is made), otherwise on call failure
        """
        self._require_queue_url(queue_url)
        entries = list(entries)
        try:
            validate_batch_size(entries, MAX_BATCH_ENTRIES)
        except ValueError as e:
            raise QueueError.validation(str(e)) from e

        try:
            async with self._client() as sqs:
                response = await sqs.send_message_batch(QueueUrl=queue_url, Entries=entries)

        except (ClientError, BotoCoreError) as e:
            raise self._failure("SendMessageBatch", e, queue_url=queue_url, entries=len(entries)) from e

        logger.info(
            "Message batch sent to SQS",
            queue_url=queue_url,
            successful=len(response.get('Successful', [])),
            failed=len(response.get('Failed', []))
        )
        return response

    async def receive_messages(
        self,
        queue_url: str,
        max_messages: int,
        wait_time_seconds: int,
        visibility_timeout_seconds: Optional[int] = None,
        attribute_names: Sequence[str] = ('All',),
        message_attribute_names: Sequence[str] = ('All',)
    ) -> List[InboundMessage]:
        """
        Receive up to max_messages messages, long-polling for up to
        wait_time_seconds.

        Returns:
            Received messages in the order returned by the service

        Raises:
            QueueError: If the parameters are out of range or the call fails
        """
        self._require_queue_url(queue_url)
        if not 1 <= max_messages <= MAX_RECEIVE_MESSAGES:
            raise QueueError.validation(f"max_messages must be between 1 and {MAX_RECEIVE_MESSAGES}")
        if not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise QueueError.validation(f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}")
        if visibility_timeout_seconds is not None and not (
            0 <= visibility_timeout_seconds <= MAX_VISIBILITY_TIMEOUT_SECONDS
        ):
            raise QueueError.validation(
                f"visibility_timeout_seconds must be between 0 and {MAX_VISIBILITY_TIMEOUT_SECONDS}"
            )

        params: Dict[str, Any] = {
            'QueueUrl': queue_url,
            'MaxNumberOfMessages': max_messages,
            'WaitTimeSeconds': wait_time_seconds,
        }
        if visibility_timeout_seconds is not None:
            params['VisibilityTimeout'] = visibility_timeout_seconds
        if attribute_names:
            params['AttributeNames'] = list(attribute_names)
        if message_attribute_names:
            params['MessageAttributeNames'] = list(message_attribute_names)

        try:
            async with self._client() as sqs:
                response = await sqs.receive_message(**params)

        except (ClientError, BotoCoreError) as e:
            raise self._failure("ReceiveMessage", e, queue_url=queue_url) from e

        messages = [InboundMessage.from_sqs(raw) for raw in response.get('Messages', [])]
        logger.debug(
            "Messages received from SQS",
            queue_url=queue_url,
            count=len(messages)
        )
        return messages

    async def delete_message(self, queue_url: str, receipt_handle: str) -> Optional[str]:
        """
        Delete one retrieved message.

        Args:
            queue_url: Queue URL the message was received from
            receipt_handle: Receipt handle of that retrieval

        Returns:
            Service request id

        Raises:
            QueueError: If the parameters are invalid or the call fails
        """
        self._require_queue_url(queue_url)
        if not receipt_handle or not isinstance(receipt_handle, str):
            raise QueueError.validation("receipt_handle must be a non-empty string")

        try:
            async with self._client() as sqs:
                response = await sqs.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)

        except (ClientError, BotoCoreError) as e:
            raise self._failure("DeleteMessage", e, queue_url=queue_url) from e

        request_id = response.get('ResponseMetadata', {}).get('RequestId')
        logger.info("Message deleted from SQS", queue_url=queue_url, request_id=request_id)
        return request_id

    async def list_queues(self, prefix: Optional[str] = None) -> List[str]:
        """
        List queue URLs visible to the credentials.

        Args:
            prefix: Only return queues whose name starts with this prefix

        Returns:
            Queue URLs (up to 1000, as returned by one ListQueues call)
        """
        params: Dict[str, Any] = {}
        if prefix:
            params['QueueNamePrefix'] = prefix

        try:
            async with self._client() as sqs:
                response = await sqs.list_queues(**params)

        except (ClientError, BotoCoreError) as e:
            raise self._failure("ListQueues", e, prefix=prefix) from e

        queue_urls = response.get('QueueUrls', [])
        logger.info("Queues listed", count=len(queue_urls), prefix=prefix)
        return queue_urls
