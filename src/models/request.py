"""
Module: request.py
Description: Parameter models for command operations.

Defines the resolved parameters of one input record for each command
operation. These models handle input validation before any network call.

Key Components:
- AttributeEntry: One entry of a structured attribute list
- SendMessageParams: Parameters of a single send
- BatchEntryDescriptor: One message descriptor of a batch send
- SendBatchParams: Parameters of a batch send
- DeleteMessageParams: Parameters of a delete

Dependencies: pydantic, typing
Author: SQS Nodes Team
"""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class AttributeEntry(BaseModel):
    """
    One attribute of a structured attribute list.

    Attributes:
        name: Attribute name
        data_type: String, Number or Binary
        value: Attribute value as text (Binary values are UTF-8 encoded)
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., description="Attribute name")
    data_type: str = Field(
        default="String",
        validation_alias=AliasChoices('data_type', 'dataType', 'DataType'),
        description="Attribute data type"
    )
    value: Union[str, int, float] = Field(..., description="Attribute value")


class SendMessageParams(BaseModel):
    """
    Resolved parameters for sending one message.

    Attributes:
        queue_url: Target queue URL
        send_input_data: Send the input record as JSON instead of message_body
        message_body: Literal message body
        input_data: Input record payload (used when send_input_data is set)
        group_id: FIFO message group id
        deduplication_id: FIFO deduplication id
        delay_seconds: Delivery delay in seconds (0-900)
        attributes: Structured attribute list
        attributes_json: Raw JSON object of attributes
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    queue_url: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('queue_url', 'queueUrl'),
        description="Queue URL"
    )
    send_input_data: bool = Field(
        default=False,
        validation_alias=AliasChoices('send_input_data', 'sendInputData'),
        description="Send input data as the message body"
    )
    message_body: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('message_body', 'messageBody'),
        description="Literal message body"
    )
    input_data: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices('input_data', 'inputData', 'json'),
        description="Input record payload"
    )
    group_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('group_id', 'groupId', 'messageGroupId'),
        description="FIFO message group id"
    )
    deduplication_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('deduplication_id', 'deduplicationId', 'messageDeduplicationId'),
        description="FIFO deduplication id"
    )
    delay_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        le=900,
        validation_alias=AliasChoices('delay_seconds', 'delaySeconds'),
        description="Delivery delay in seconds"
    )
    attributes: Optional[List[AttributeEntry]] = Field(
        default=None,
        validation_alias=AliasChoices('attributes', 'messageAttributes'),
        description="Structured attribute list"
    )
    attributes_json: Optional[Union[str, Dict[str, Any]]] = Field(
        default=None,
        validation_alias=AliasChoices('attributes_json', 'attributesJson'),
        description="Raw JSON object of attributes"
    )

    @model_validator(mode='after')
    def validate_body_source(self) -> "SendMessageParams":
        """Ensure the selected body source is present."""
        if self.send_input_data:
            if self.input_data is None:
                raise ValueError("input_data is required when send_input_data is set")
        elif not self.message_body:
            raise ValueError("message_body is required when send_input_data is not set")

        if self.attributes is not None and self.attributes_json is not None:
            raise ValueError("provide either attributes or attributes_json, not both")
        return self

    def resolve_body(self) -> str:
        """Return the message body text."""
        if self.send_input_data:
            return json.dumps(self.input_data)
        return self.message_body


class BatchEntryDescriptor(BaseModel):
    """
    One message descriptor of a batch send.

    Non-string bodies are serialized as JSON. Attributes may be given as a
    structured list or as a raw JSON object.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('id', 'Id'),
        description="Batch entry id (defaults to the entry index)"
    )
    body: Any = Field(
        ...,
        validation_alias=AliasChoices('body', 'messageBody', 'MessageBody'),
        description="Message body"
    )
    group_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('group_id', 'groupId', 'messageGroupId', 'MessageGroupId'),
        description="FIFO message group id"
    )
    deduplication_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            'deduplication_id', 'deduplicationId', 'messageDeduplicationId', 'MessageDeduplicationId'
        ),
        description="FIFO deduplication id"
    )
    delay_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        le=900,
        validation_alias=AliasChoices('delay_seconds', 'delaySeconds', 'DelaySeconds'),
        description="Delivery delay in seconds"
    )
    attributes: Optional[Union[List[AttributeEntry], Dict[str, Any]]] = Field(
        default=None,
        validation_alias=AliasChoices('attributes', 'messageAttributes', 'MessageAttributes'),
        description="Message attributes"
    )

    @field_validator('body')
    @classmethod
    def validate_body(cls, v: Any) -> Any:
        """Reject missing bodies."""
        if v is None or v == "":
            raise ValueError("body must not be empty")
        return v

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: Optional[str]) -> Optional[str]:
        """Batch entry ids allow letters, digits, hyphens and underscores."""
        if v is None:
            return v

        import re
        if not re.match(r'^[A-Za-z0-9_-]{1,80}$', v):
            raise ValueError(
                "id must be 1-80 letters, numbers, hyphens or underscores"
            )
        return v

    def resolve_body(self) -> str:
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body)


class SendBatchParams(BaseModel):
    """
    Resolved parameters for a batch send.

    Attributes:
        queue_url: Target queue URL
        entries_json: JSON array (text or parsed) of message descriptors
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    queue_url: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('queue_url', 'queueUrl'),
        description="Queue URL"
    )
    entries_json: Union[str, List[Any]] = Field(
        ...,
        validation_alias=AliasChoices('entries_json', 'entriesJson', 'entries', 'messages'),
        description="JSON array of message descriptors"
    )


class DeleteMessageParams(BaseModel):
    """
    Resolved parameters for deleting one message.

    Attributes:
        queue_url: Queue URL the message was received from
        receipt_handle: Receipt handle of the retrieval to delete
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    queue_url: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('queue_url', 'queueUrl'),
        description="Queue URL"
    )
    receipt_handle: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices('receipt_handle', 'receiptHandle', 'ReceiptHandle'),
        description="Receipt handle"
    )
