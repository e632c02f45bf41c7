"""
Module: executor.py
Description: Command executor for SQS send, batch-send, delete and list.

Translates one input record into exactly one queue call and one outcome
record. Nothing is retried: a failure either aborts the run with an
ItemProcessingError naming the failing index, or, with continue-on-fail
enabled, is turned into an error record and processing moves on.

Key Components:
- Operation: Supported command operations
- CommandExecutor: Runs operations for single records and record sequences
- ItemProcessingError: Raised when an item fails and continue-on-fail is off

Dependencies: pydantic, typing, sqs_queue, models, utils
Author: SQS Nodes Team
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from models.message import OutboundMessage, QueueOption
from models.request import (
    BatchEntryDescriptor,
    DeleteMessageParams,
    SendBatchParams,
    SendMessageParams,
)
from models.response import OutcomeRecord
from sqs_queue.attributes import parse_attribute_list, parse_attribute_object, parse_attributes
from sqs_queue.errors import QueueError
from sqs_queue.sqs import MAX_BATCH_ENTRIES, SQSClient
from utils.batch_helpers import parse_json_array, validate_batch_size
from utils.logger import get_logger

logger = get_logger(__name__)

ParamsT = TypeVar('ParamsT', bound=BaseModel)


class Operation(str, Enum):
    """Command operations."""

    SEND_MESSAGE = "sendMessage"
    SEND_MESSAGE_BATCH = "sendMessageBatch"
    DELETE_MESSAGE = "deleteMessage"
    LIST_QUEUES = "listQueues"


class ItemProcessingError(Exception):
    """
    An input record failed and continue-on-fail is disabled.

    Attributes:
        index: Index of the failing record
        operation: Operation being executed
        cause: Underlying exception
    """

    def __init__(self, index: int, operation: Operation, cause: Exception):
        message = cause.message if isinstance(cause, QueueError) else str(cause)
        super().__init__(f"AWS SQS Error: {message} [item {index}]")
        self.index = index
        self.operation = operation
        self.cause = cause


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get('loc', ()))
    reason = first.get('msg', str(error))
    return f"{location}: {reason}" if location else reason


def _parse_params(model: Type[ParamsT], params: Union[ParamsT, Mapping[str, Any]]) -> ParamsT:
    if isinstance(params, model):
        return params
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise QueueError.validation(f"Invalid parameters: {_validation_message(e)}") from e


def _build_message(**fields: Any) -> OutboundMessage:
    try:
        return OutboundMessage(**fields)
    except ValidationError as e:
        raise QueueError.validation(f"Invalid message: {_validation_message(e)}") from e


class CommandExecutor:
    """
    Runs SQS command operations for input records.

    Attributes:
        client: Queue client
        continue_on_fail: Emit error records instead of raising on failure

    Example:
        >>> executor = CommandExecutor(client, continue_on_fail=True)
        >>> records = await executor.run(Operation.SEND_MESSAGE, [
        ...     {"queue_url": url, "message_body": "hello"},
        ... ])
        >>> records[0].success
        True
    """

    def __init__(self, client: SQSClient, continue_on_fail: bool = False):
        self.client = client
        self.continue_on_fail = continue_on_fail

    async def send_one(self, params: Union[SendMessageParams, Mapping[str, Any]]) -> OutcomeRecord:
        """
        Send one message built from the input record.

        Raises:
            QueueError: On invalid parameters or a failed call
        """
        params = _parse_params(SendMessageParams, params)

        if params.attributes is not None:
            attributes = parse_attribute_list(params.attributes)
        elif params.attributes_json is not None:
            attributes = parse_attribute_object(params.attributes_json)
        else:
            attributes = {}

        message = _build_message(
            body=params.resolve_body(),
            group_id=params.group_id,
            deduplication_id=params.deduplication_id,
            delay_seconds=params.delay_seconds,
            attributes=attributes
        )
        response = await self.client.send_message(params.queue_url, message)

        return OutcomeRecord(
            success=True,
            operation=Operation.SEND_MESSAGE.value,
            queue_url=params.queue_url,
            message_id=response.get('MessageId'),
            md5_of_body=response.get('MD5OfMessageBody'),
            sequence_number=response.get('SequenceNumber'),
            request_id=response.get('ResponseMetadata', {}).get('RequestId')
        )

    async def send_batch(self, params: Union[SendBatchParams, Mapping[str, Any]]) -> OutcomeRecord:
        """
        Send up to ten messages described by a JSON array in one call.

        Entries without an id get their array index as id. The service's
        successful and failed partitions are returned verbatim.

        Raises:
            QueueError: validation kind for malformed JSON, an empty array
                or more than ten entries (before any call is made)
        """
        params = _parse_params(SendBatchParams, params)

        try:
            raw_entries = parse_json_array(params.entries_json)
            validate_batch_size(raw_entries, MAX_BATCH_ENTRIES)
        except ValueError as e:
            raise QueueError.validation(f"Invalid batch: {e}") from e

        entries: List[Dict[str, Any]] = []
        seen_ids = set()
        for index, raw in enumerate(raw_entries):
            try:
                descriptor = BatchEntryDescriptor.model_validate(raw)
            except ValidationError as e:
                raise QueueError.validation(
                    f"Invalid batch entry {index}: {_validation_message(e)}"
                ) from e

            entry_id = descriptor.id or str(index)
            if entry_id in seen_ids:
                raise QueueError.validation(f"Duplicate batch entry id '{entry_id}'")
            seen_ids.add(entry_id)

            message = _build_message(
                body=descriptor.resolve_body(),
                group_id=descriptor.group_id,
                deduplication_id=descriptor.deduplication_id,
                delay_seconds=descriptor.delay_seconds,
                attributes=parse_attributes(descriptor.attributes)
            )
            entries.append(message.to_batch_entry(entry_id))

        response = await self.client.send_message_batch(params.queue_url, entries)

        return OutcomeRecord(
            success=True,
            operation=Operation.SEND_MESSAGE_BATCH.value,
            queue_url=params.queue_url,
            successful=response.get('Successful', []),
            failed=response.get('Failed', []),
            request_id=response.get('ResponseMetadata', {}).get('RequestId')
        )

    async def delete_one(self, params: Union[DeleteMessageParams, Mapping[str, Any]]) -> OutcomeRecord:
        """Delete one message by receipt handle."""
        params = _parse_params(DeleteMessageParams, params)
        request_id = await self.client.delete_message(params.queue_url, params.receipt_handle)

        return OutcomeRecord(
            success=True,
            operation=Operation.DELETE_MESSAGE.value,
            queue_url=params.queue_url,
            receipt_handle=params.receipt_handle,
            request_id=request_id
        )

    async def list_queues(self, prefix: Optional[str] = None) -> List[QueueOption]:
        """List queues as name/url options."""
        queue_urls = await self.client.list_queues(prefix=prefix)
        return [QueueOption.from_url(url) for url in queue_urls]

    async def _execute(self, operation: Operation, item: Mapping[str, Any]) -> OutcomeRecord:
        if operation is Operation.SEND_MESSAGE:
            return await self.send_one(item)
        if operation is Operation.SEND_MESSAGE_BATCH:
            return await self.send_batch(item)
        if operation is Operation.DELETE_MESSAGE:
            return await self.delete_one(item)

        options = await self.list_queues(prefix=item.get('prefix'))
        return OutcomeRecord(
            success=True,
            operation=operation.value,
            queues=[option.model_dump() for option in options]
        )

    async def run(
        self,
        operation: Union[Operation, str],
        items: Sequence[Mapping[str, Any]]
    ) -> List[OutcomeRecord]:
        """
        Execute an operation once per input record, in order.

        Args:
            operation: Operation to execute
            items: Resolved parameters, one mapping per input record

        Returns:
            One outcome record per input record

        Raises:
            ItemProcessingError: On the first failing record, unless
                continue_on_fail is enabled
        """
        operation = Operation(operation)
        results: List[OutcomeRecord] = []

        for index, item in enumerate(items):
            try:
                results.append(await self._execute(operation, item))

            except Exception as e:
                error_kind = e.kind.value if isinstance(e, QueueError) else None
                error = e.message if isinstance(e, QueueError) else str(e)
                logger.warning(
                    "Command item failed",
                    operation=operation.value,
                    item_index=index,
                    error=error,
                    error_kind=error_kind,
                    continue_on_fail=self.continue_on_fail
                )

                if not self.continue_on_fail:
                    raise ItemProcessingError(index, operation, e) from e

                results.append(OutcomeRecord.failure(
                    operation=operation.value,
                    error=error,
                    item_index=index,
                    error_kind=error_kind
                ))

        logger.info(
            "Command run completed",
            operation=operation.value,
            items=len(items),
            failed=sum(1 for result in results if not result.success)
        )
        return results
