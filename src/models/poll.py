"""
Module: poll.py
Description: Poll loop configuration, state and diagnostic models.

Key Components:
- PollConfig: Immutable configuration of one poll loop instance
- IntervalUnit: Host-facing polling interval unit
- PollState: Poll loop lifecycle states
- Diagnostic: Non-fatal runtime failure reported by the poll loop

Dependencies: pydantic, datetime, typing
Author: SQS Nodes Team
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IntervalUnit(str, Enum):
    """Unit of the host-facing polling interval."""

    SECONDS = "seconds"
    MINUTES = "minutes"

    @property
    def milliseconds(self) -> int:
        return 60_000 if self is IntervalUnit.MINUTES else 1_000


class PollConfig(BaseModel):
    """
    Configuration of one poll loop.

    Every field is required; changing any of them means stopping the
    loop and starting a new one.

    Attributes:
        queue_url: Queue to poll
        interval_ms: Delay between the end of one poll cycle and the next
        max_messages: Messages requested per receive call (1-10)
        wait_time_seconds: Long-poll duration per receive call (0-20)
        visibility_timeout_seconds: Visibility timeout for received messages (0-43200)
        delete_after_delivery: Delete each message once delivered downstream
        include_message_attributes: Request and forward user message attributes
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    queue_url: str = Field(..., min_length=1, description="Queue URL")
    interval_ms: int = Field(..., gt=0, description="Polling interval in milliseconds")
    max_messages: int = Field(..., ge=1, le=10, description="Max messages per poll")
    wait_time_seconds: int = Field(..., ge=0, le=20, description="Long-poll wait time")
    visibility_timeout_seconds: int = Field(
        ...,
        ge=0,
        le=43200,
        description="Visibility timeout for received messages"
    )
    delete_after_delivery: bool = Field(..., description="Delete messages after delivery")
    include_message_attributes: bool = Field(..., description="Forward message attributes")

    @field_validator('queue_url')
    @classmethod
    def validate_queue_url(cls, v: str) -> str:
        """Validate the queue URL looks like an HTTP(S) address."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("queue_url must be an HTTP/HTTPS queue URL")
        return v

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @classmethod
    def from_interval(
        cls,
        interval: int,
        unit: IntervalUnit,
        **fields: Any
    ) -> "PollConfig":
        """
        Build a config from the host's interval value and unit.

        Example:
            >>> PollConfig.from_interval(2, IntervalUnit.MINUTES, queue_url=..., ...).interval_ms
            120000
        """
        return cls(interval_ms=interval * IntervalUnit(unit).milliseconds, **fields)


class PollState(str, Enum):
    """Lifecycle states of a poll loop."""

    IDLE = "idle"
    POLLING = "polling"
    DELIVERING = "delivering"
    STOPPED = "stopped"


class DiagnosticKind(str, Enum):
    """Kinds of non-fatal poll loop failures."""

    RECEIVE_FAILED = "receive_failed"
    DELIVERY_FAILED = "delivery_failed"
    DELETE_FAILED = "delete_failed"


class Diagnostic(BaseModel):
    """
    Non-fatal failure reported by the poll loop instead of raising.

    Attributes:
        kind: Which step failed
        error: Human-readable error description
        error_kind: Queue error classification, when known
        queue_url: Queue being polled
        message_id: Affected message, for delivery and delete failures
        timestamp: When the failure was observed
    """

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind = Field(..., description="Failed step")
    error: str = Field(..., description="Error description")
    error_kind: Optional[str] = Field(default=None, description="Queue error kind")
    queue_url: str = Field(..., description="Queue URL")
    message_id: Optional[str] = Field(default=None, description="Affected message id")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Observation time"
    )

    def to_record(self) -> Dict[str, Any]:
        """Convert to a JSON-safe record for sinks."""
        return self.model_dump(mode="json", exclude_none=True)
