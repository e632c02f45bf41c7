"""
Module: batch_helpers.py
Description: Utility functions for batch operations.

Key Components:
- validate_batch_size(): Validate batch size constraints
- parse_json_array(): Decode a JSON array parameter

Dependencies: json, typing
Author: SQS Nodes Team
"""

import json
from typing import Any, List


def validate_batch_size(items: List[Any], max_size: int, min_size: int = 1) -> None:
    """
    Validate that a batch holds between min_size and max_size items.

    Args:
        items: List of items to validate
        max_size: Maximum allowed batch size
        min_size: Minimum allowed batch size

    Raises:
        ValueError: If batch size is outside the allowed range

    Example:
        >>> validate_batch_size([1, 2, 3], 10)  # OK
        >>> validate_batch_size([], 10)  # Raises ValueError
    """
    if not isinstance(items, list):
        raise ValueError("items must be a list")
    if len(items) < min_size:
        raise ValueError(f"batch must contain at least {min_size} item(s)")
    if len(items) > max_size:
        raise ValueError(f"batch size cannot exceed {max_size} items")


def parse_json_array(raw: Any) -> List[Any]:
    """
    Decode a JSON array given either as text or as an already-parsed list.

    Raises:
        ValueError: If the value is not valid JSON or not an array
    """
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str):
        raise ValueError("expected a JSON array string")

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e.msg}") from e

    if not isinstance(value, list):
        raise ValueError("expected a JSON array")
    return value
