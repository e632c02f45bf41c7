"""
Module: response.py
Description: Outcome records produced by command operations.

Each input record processed by the command executor yields exactly one
OutcomeRecord: a success record for the operation, or an error record
when continue-on-fail is enabled.

Key Components:
- OutcomeRecord: Output record of one command operation

Dependencies: pydantic, datetime, typing
Author: SQS Nodes Team
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OutcomeRecord(BaseModel):
    """
    Output record of one command operation.

    Optional fields are populated depending on the operation and omitted
    from to_record() output when unset.

    Attributes:
        success: Whether the operation succeeded
        operation: Operation name (sendMessage, sendMessageBatch, ...)
        timestamp: When the record was produced
        queue_url: Queue the operation targeted
        message_id: Id of a sent message
        md5_of_body: MD5 of the sent body, as reported by the service
        sequence_number: FIFO sequence number of a sent message
        receipt_handle: Receipt handle of a deleted message
        request_id: Service request identifier
        successful: Successful entries of a batch send, verbatim
        failed: Failed entries of a batch send, verbatim
        queues: Queue listing
        error: Error description (failure records)
        error_kind: Queue error classification (failure records)
        item_index: Index of the failing input record (failure records)
    """

    model_config = ConfigDict(frozen=True)

    success: bool = Field(..., description="Operation succeeded")
    operation: str = Field(..., description="Operation name")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Record creation time"
    )
    queue_url: Optional[str] = Field(default=None, description="Queue URL")
    message_id: Optional[str] = Field(default=None, description="Message id")
    md5_of_body: Optional[str] = Field(default=None, description="MD5 of message body")
    sequence_number: Optional[str] = Field(default=None, description="FIFO sequence number")
    receipt_handle: Optional[str] = Field(default=None, description="Receipt handle")
    request_id: Optional[str] = Field(default=None, description="Service request id")
    successful: Optional[List[Dict[str, Any]]] = Field(default=None, description="Successful batch entries")
    failed: Optional[List[Dict[str, Any]]] = Field(default=None, description="Failed batch entries")
    queues: Optional[List[Dict[str, str]]] = Field(default=None, description="Queue listing")
    error: Optional[str] = Field(default=None, description="Error description")
    error_kind: Optional[str] = Field(default=None, description="Error classification")
    item_index: Optional[int] = Field(default=None, ge=0, description="Failing input index")

    @classmethod
    def failure(
        cls,
        operation: str,
        error: str,
        item_index: int,
        error_kind: Optional[str] = None
    ) -> "OutcomeRecord":
        """Build the error record emitted in place of a failed item."""
        return cls(
            success=False,
            operation=operation,
            error=error,
            error_kind=error_kind,
            item_index=item_index
        )

    def to_record(self) -> Dict[str, Any]:
        """Convert to a JSON-safe record, dropping unset fields."""
        return self.model_dump(mode="json", exclude_none=True)
