"""
Module: errors.py
Description: Typed failures for SQS queue operations.

Every queue call either returns a payload or raises QueueError carrying
one of three kinds: transient (may succeed on a later attempt), permanent
(configuration or addressing problem) or validation (malformed input,
rejected before or by the service).

Key Components:
- ErrorKind: Failure classification
- QueueError: Exception raised by the queue client and command handlers
- from_client_error(): Map botocore ClientError to QueueError
- from_botocore_error(): Map non-HTTP botocore failures to QueueError

Dependencies: botocore, enum, typing
Author: SQS Nodes Team
"""

from enum import Enum
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
    NoRegionError,
    ParamValidationError,
)


class ErrorKind(str, Enum):
    """Classification of a queue operation failure."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    VALIDATION = "validation"


class QueueError(Exception):
    """
    Typed failure of a queue operation.

    Attributes:
        kind: Failure classification
        message: Human-readable error description
        code: Service error code, when the service returned one
        request_id: Service request identifier, when available
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: Optional[str] = None,
        request_id: Optional[str] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.request_id = request_id

    @classmethod
    def validation(cls, message: str) -> "QueueError":
        """Build a validation failure for locally rejected input."""
        return cls(ErrorKind.VALIDATION, message)

    def __repr__(self) -> str:
        return (
            f"QueueError(kind={self.kind.value!r}, message={self.message!r}, "
            f"code={self.code!r}, request_id={self.request_id!r})"
        )


# Service error codes, with and without the legacy query-protocol prefix
_PERMANENT_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "InvalidClientTokenId",
    "InvalidSecurity",
    "SignatureDoesNotMatch",
    "UnrecognizedClientException",
    "ExpiredToken",
    "QueueDoesNotExist",
    "NonExistentQueue",
    "InvalidAddress",
    "ReceiptHandleIsInvalid",
    "InvalidIdFormat",
    "QueueDeletedRecently",
    "UnsupportedOperation",
    "KmsAccessDenied",
    "KmsDisabled",
    "KmsInvalidState",
    "KmsNotFound",
}

_VALIDATION_CODES = {
    "InvalidParameterValue",
    "InvalidParameterCombination",
    "MissingParameter",
    "ValidationError",
    "InvalidAttributeName",
    "InvalidAttributeValue",
    "InvalidMessageContents",
    "InvalidBatchEntryId",
    "BatchEntryIdsNotDistinct",
    "BatchRequestTooLong",
    "EmptyBatchRequest",
    "TooManyEntriesInBatchRequest",
    "MessageTooLong",
}


def _normalize_code(code: str) -> str:
    # "AWS.SimpleQueueService.NonExistentQueue" -> "NonExistentQueue"
    return code.rsplit(".", 1)[-1]


def classify_error_code(code: Optional[str]) -> ErrorKind:
    """
    Classify a service error code.

    Unknown codes are treated as transient so that the poll loop keeps
    trying on its next tick.
    """
    if not code:
        return ErrorKind.TRANSIENT

    normalized = _normalize_code(code)
    if normalized in _PERMANENT_CODES:
        return ErrorKind.PERMANENT
    if normalized in _VALIDATION_CODES:
        return ErrorKind.VALIDATION
    return ErrorKind.TRANSIENT


def from_client_error(error: ClientError) -> QueueError:
    """
    Convert a botocore ClientError into a QueueError.

    Args:
        error: ClientError raised by an SQS call

    Returns:
        QueueError with kind, code and request id populated
    """
    response = getattr(error, "response", None) or {}
    details = response.get("Error", {})
    code = details.get("Code")
    message = details.get("Message") or str(error)
    request_id = response.get("ResponseMetadata", {}).get("RequestId")

    return QueueError(
        kind=classify_error_code(code),
        message=message,
        code=code,
        request_id=request_id
    )


def from_botocore_error(error: BotoCoreError) -> QueueError:
    """
    Convert a non-HTTP botocore failure into a QueueError.

    Credential and region problems are permanent, client-side parameter
    validation is a validation failure, everything else (connection
    errors, read timeouts) is transient.
    """
    if isinstance(error, (NoCredentialsError, PartialCredentialsError, NoRegionError)):
        kind = ErrorKind.PERMANENT
    elif isinstance(error, ParamValidationError):
        kind = ErrorKind.VALIDATION
    else:
        kind = ErrorKind.TRANSIENT

    return QueueError(kind=kind, message=str(error), code=type(error).__name__)
