"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the SQS nodes:
- MessageAttribute, OutboundMessage, InboundMessage: Queue message shapes
- PollConfig, PollState, Diagnostic: Poll loop configuration and reporting
- SendMessageParams, SendBatchParams, DeleteMessageParams: Command parameters
- OutcomeRecord: Command output record

All models are exported here for convenient importing.
"""

from .message import AttributeDataType, InboundMessage, MessageAttribute, OutboundMessage, QueueOption
from .poll import Diagnostic, DiagnosticKind, IntervalUnit, PollConfig, PollState
from .request import (
    AttributeEntry,
    BatchEntryDescriptor,
    DeleteMessageParams,
    SendBatchParams,
    SendMessageParams,
)
from .response import OutcomeRecord

__all__ = [
    "AttributeDataType",
    "AttributeEntry",
    "BatchEntryDescriptor",
    "DeleteMessageParams",
    "Diagnostic",
    "DiagnosticKind",
    "InboundMessage",
    "IntervalUnit",
    "MessageAttribute",
    "OutboundMessage",
    "OutcomeRecord",
    "PollConfig",
    "PollState",
    "QueueOption",
    "SendBatchParams",
    "SendMessageParams",
]
