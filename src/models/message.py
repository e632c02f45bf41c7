"""
Module: message.py
Description: Message data models for SQS send and receive operations.

Defines typed message attributes and the outbound/inbound message shapes
exchanged with the queue service. Each model knows how to convert itself
to and from the SQS wire format.

Key Components:
- MessageAttribute: Tagged attribute value (String, Number or Binary)
- OutboundMessage: Message to send (single or batch entry)
- InboundMessage: Message returned by ReceiveMessage
- QueueOption: Queue entry returned by ListQueues

Dependencies: pydantic, base64, decimal, typing
Author: SQS Nodes Team
"""

import base64
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AttributeDataType(str, Enum):
    """Base data types supported for SQS message attributes."""

    STRING = "String"
    NUMBER = "Number"
    BINARY = "Binary"


def _base_type(data_type: str) -> AttributeDataType:
    # Custom labels are allowed after a dot, e.g. "Number.int" or "String.json"
    return AttributeDataType(data_type.split(".", 1)[0])


class MessageAttribute(BaseModel):
    """
    Typed message attribute value.

    Exactly one of string_value / binary_value is set: binary_value for
    Binary attributes, string_value for String and Number attributes.

    Attributes:
        data_type: SQS data type, optionally with a custom label suffix
        string_value: Value for String and Number attributes
        binary_value: Value for Binary attributes
    """

    model_config = ConfigDict(frozen=True)

    data_type: str = Field(..., description="SQS attribute data type")
    string_value: Optional[str] = Field(default=None, description="String or numeric value")
    binary_value: Optional[bytes] = Field(default=None, description="Binary value")

    @field_validator('data_type')
    @classmethod
    def validate_data_type(cls, v: str) -> str:
        """Validate the data type starts with String, Number or Binary."""
        try:
            _base_type(v)
        except ValueError:
            raise ValueError("data_type must be String, Number or Binary (optionally with a .label suffix)")
        return v

    @model_validator(mode='after')
    def validate_value(self) -> "MessageAttribute":
        """Validate the value matches the data type."""
        if self.base_type is AttributeDataType.BINARY:
            if not self.binary_value:
                raise ValueError("Binary attributes require a non-empty binary_value")
            if self.string_value is not None:
                raise ValueError("Binary attributes cannot carry a string_value")
            return self

        if self.binary_value is not None:
            raise ValueError(f"{self.data_type} attributes cannot carry a binary_value")
        if not self.string_value:
            raise ValueError(f"{self.data_type} attributes require a non-empty string_value")

        if self.base_type is AttributeDataType.NUMBER:
            try:
                number = Decimal(self.string_value)
            except InvalidOperation:
                raise ValueError(f"Number attribute value is not numeric: {self.string_value!r}")
            if not number.is_finite():
                raise ValueError(f"Number attribute value must be finite: {self.string_value!r}")

        return self

    @property
    def base_type(self) -> AttributeDataType:
        return _base_type(self.data_type)

    @property
    def value(self) -> Union[str, bytes]:
        if self.binary_value is not None:
            return self.binary_value
        return self.string_value

    @classmethod
    def string(cls, value: str) -> "MessageAttribute":
        return cls(data_type=AttributeDataType.STRING.value, string_value=value)

    @classmethod
    def number(cls, value: Union[int, float, str, Decimal]) -> "MessageAttribute":
        return cls(data_type=AttributeDataType.NUMBER.value, string_value=str(value))

    @classmethod
    def binary(cls, value: Union[bytes, str]) -> "MessageAttribute":
        if isinstance(value, str):
            value = value.encode("utf-8")
        return cls(data_type=AttributeDataType.BINARY.value, binary_value=value)

    def to_sqs(self) -> Dict[str, Any]:
        """Convert to the SQS MessageAttributeValue shape."""
        if self.binary_value is not None:
            return {'DataType': self.data_type, 'BinaryValue': self.binary_value}
        return {'DataType': self.data_type, 'StringValue': self.string_value}

    def to_record(self) -> Dict[str, Any]:
        """Convert to a JSON-safe record; binary values are base64 encoded."""
        record: Dict[str, Any] = {'DataType': self.data_type}
        if self.binary_value is not None:
            record['BinaryValue'] = base64.b64encode(self.binary_value).decode("ascii")
        else:
            record['StringValue'] = self.string_value
        return record

    @classmethod
    def from_sqs(cls, raw: Dict[str, Any]) -> "MessageAttribute":
        """Build from an SQS MessageAttributeValue dictionary."""
        return cls(
            data_type=raw['DataType'],
            string_value=raw.get('StringValue'),
            binary_value=raw.get('BinaryValue')
        )


class OutboundMessage(BaseModel):
    """
    Message to be sent to a queue.

    Attributes:
        body: Message body text
        group_id: Message group id (FIFO queues)
        deduplication_id: Deduplication id (FIFO queues)
        delay_seconds: Delivery delay, 0-900 seconds
        attributes: Typed message attributes keyed by name
    """

    model_config = ConfigDict(frozen=True)

    body: str = Field(..., min_length=1, description="Message body")
    group_id: Optional[str] = Field(default=None, description="FIFO message group id")
    deduplication_id: Optional[str] = Field(default=None, description="FIFO deduplication id")
    delay_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        le=900,
        description="Delivery delay in seconds"
    )
    attributes: Dict[str, MessageAttribute] = Field(
        default_factory=dict,
        description="Message attributes"
    )

    @field_validator('group_id', 'deduplication_id', mode='before')
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        """Treat empty ids as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def _request_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {'MessageBody': self.body}
        if self.group_id:
            fields['MessageGroupId'] = self.group_id
        if self.deduplication_id:
            fields['MessageDeduplicationId'] = self.deduplication_id
        if self.delay_seconds:
            fields['DelaySeconds'] = self.delay_seconds
        if self.attributes:
            fields['MessageAttributes'] = {
                name: attribute.to_sqs() for name, attribute in self.attributes.items()
            }
        return fields

    def to_send_request(self, queue_url: str) -> Dict[str, Any]:
        """Build SendMessage keyword arguments."""
        return {'QueueUrl': queue_url, **self._request_fields()}

    def to_batch_entry(self, entry_id: str) -> Dict[str, Any]:
        """Build one SendMessageBatch entry."""
        return {'Id': entry_id, **self._request_fields()}


class InboundMessage(BaseModel):
    """
    Message returned by ReceiveMessage.

    Attributes:
        message_id: Service-assigned message id
        body: Message body text
        receipt_handle: Single-use token needed to delete this retrieval
        body_md5: MD5 digest of the body, as reported by the service
        attributes: System attributes (SentTimestamp, MessageGroupId, ...)
        message_attributes: Typed user attributes
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(..., description="Message id")
    body: str = Field(default="", description="Message body")
    receipt_handle: str = Field(..., min_length=1, description="Receipt handle")
    body_md5: Optional[str] = Field(default=None, description="MD5 of message body")
    attributes: Dict[str, str] = Field(default_factory=dict, description="System attributes")
    message_attributes: Dict[str, MessageAttribute] = Field(
        default_factory=dict,
        description="Message attributes"
    )

    @property
    def group_id(self) -> Optional[str]:
        return self.attributes.get('MessageGroupId')

    @property
    def deduplication_id(self) -> Optional[str]:
        return self.attributes.get('MessageDeduplicationId')

    @property
    def sequence_number(self) -> Optional[str]:
        return self.attributes.get('SequenceNumber')

    @classmethod
    def from_sqs(cls, raw: Dict[str, Any]) -> "InboundMessage":
        """Build from one entry of a ReceiveMessage response."""
        return cls(
            message_id=raw['MessageId'],
            body=raw.get('Body', ''),
            receipt_handle=raw['ReceiptHandle'],
            body_md5=raw.get('MD5OfBody'),
            attributes=raw.get('Attributes') or {},
            message_attributes={
                name: MessageAttribute.from_sqs(value)
                for name, value in (raw.get('MessageAttributes') or {}).items()
            }
        )

    def to_record(self, include_message_attributes: bool = True) -> Dict[str, Any]:
        """
        Convert to the record delivered downstream by the trigger.

        Optional keys are omitted when the service did not return them.
        """
        record: Dict[str, Any] = {
            'MessageId': self.message_id,
            'Body': self.body,
            'ReceiptHandle': self.receipt_handle,
        }
        if self.body_md5:
            record['MD5OfBody'] = self.body_md5
        if self.attributes:
            record['Attributes'] = dict(self.attributes)
        if include_message_attributes and self.message_attributes:
            record['MessageAttributes'] = {
                name: attribute.to_record()
                for name, attribute in self.message_attributes.items()
            }
        if self.group_id:
            record['MessageGroupId'] = self.group_id
        if self.deduplication_id:
            record['MessageDeduplicationId'] = self.deduplication_id
        if self.sequence_number:
            record['SequenceNumber'] = self.sequence_number
        return record


class QueueOption(BaseModel):
    """Queue returned by ListQueues, labelled by its name."""

    name: str = Field(..., description="Queue name (last URL path segment)")
    url: str = Field(..., description="Queue URL")

    @classmethod
    def from_url(cls, queue_url: str) -> "QueueOption":
        name = queue_url.rstrip('/').rsplit('/', 1)[-1] or queue_url
        return cls(name=name, url=queue_url)
