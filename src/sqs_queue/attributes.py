"""
Module: attributes.py
Description: Parsing of user-supplied message attributes.

Attributes arrive either as a structured list of {name, data_type, value}
entries or as a raw JSON object. Both are normalized to a mapping of
attribute name to MessageAttribute. Parsing is total: any shape that
cannot be mapped to String, Number or Binary raises a validation
QueueError instead of being coerced.
"""

import base64
import binascii
import json
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from models.message import MessageAttribute
from models.request import AttributeEntry
from sqs_queue.errors import QueueError

# SQS accepts at most 10 message attributes per message
MAX_ATTRIBUTES = 10

_TYPE_KEYS = ('DataType', 'dataType', 'data_type')
_VALUE_KEYS = ('StringValue', 'BinaryValue', 'value', 'Value')


def _build(name: str, data_type: str, value: Any) -> MessageAttribute:
    if not isinstance(value, (str, bytes, int, float)) or isinstance(value, bool):
        raise QueueError.validation(
            f"Attribute '{name}' has unsupported value type {type(value).__name__}"
        )

    try:
        if data_type.split(".", 1)[0] == "Binary":
            if isinstance(value, str):
                value = value.encode("utf-8")
            if not isinstance(value, bytes):
                raise QueueError.validation(f"Binary attribute '{name}' needs a text or bytes value")
            return MessageAttribute(data_type=data_type, binary_value=value)

        if isinstance(value, bytes):
            raise QueueError.validation(f"{data_type} attribute '{name}' cannot hold bytes")
        return MessageAttribute(data_type=data_type, string_value=str(value))

    except ValidationError as e:
        reason = e.errors()[0].get('msg', str(e))
        raise QueueError.validation(f"Invalid attribute '{name}': {reason}") from e


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise QueueError.validation("Attribute names must be non-empty strings")
    return name.strip()


def _check_count(attributes: Dict[str, MessageAttribute]) -> Dict[str, MessageAttribute]:
    if len(attributes) > MAX_ATTRIBUTES:
        raise QueueError.validation(
            f"A message can carry at most {MAX_ATTRIBUTES} attributes, got {len(attributes)}"
        )
    return attributes


def parse_attribute_list(entries: List[Union[AttributeEntry, Mapping[str, Any]]]) -> Dict[str, MessageAttribute]:
    """
    Parse a structured attribute list.

    Args:
        entries: AttributeEntry models or dicts with name, data_type and value

    Returns:
        Mapping of attribute name to MessageAttribute

    Raises:
        QueueError: validation kind, on empty names/values, unknown data
            types, non-numeric Number values or duplicate names
    """
    attributes: Dict[str, MessageAttribute] = {}

    for raw in entries:
        try:
            entry = raw if isinstance(raw, AttributeEntry) else AttributeEntry.model_validate(raw)
        except ValidationError as e:
            raise QueueError.validation(f"Invalid attribute entry: {e.errors()[0].get('msg')}") from e

        name = _check_name(entry.name)
        if name in attributes:
            raise QueueError.validation(f"Duplicate attribute name '{name}'")
        attributes[name] = _build(name, entry.data_type, entry.value)

    return _check_count(attributes)


def _decode_binary_value(name: str, value: Any) -> Any:
    # BinaryValue text is the base64 form carried by delivered records
    if not isinstance(value, str):
        return value
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise QueueError.validation(f"Binary attribute '{name}' BinaryValue is not valid base64") from e


def _parse_typed_object(name: str, value: Mapping[str, Any]) -> MessageAttribute:
    data_type = next((value[key] for key in _TYPE_KEYS if key in value), None)
    value_key = next((key for key in _VALUE_KEYS if key in value), None)
    raw_value = value[value_key] if value_key else None

    if not isinstance(data_type, str) or raw_value is None:
        raise QueueError.validation(
            f"Attribute '{name}' must be a string, a number, or an object with a data type and a value"
        )
    if value_key == 'BinaryValue':
        raw_value = _decode_binary_value(name, raw_value)
    return _build(name, data_type, raw_value)


def parse_attribute_object(raw: Union[str, Mapping[str, Any]]) -> Dict[str, MessageAttribute]:
    """
    Parse attributes given as a raw JSON object.

    Strings map to String attributes, numbers to Number attributes, and
    nested objects of the form {"DataType": ..., "StringValue"|"BinaryValue"|"value": ...}
    to the stated type. Booleans, nulls and arrays are rejected.

    Binary values given as "value" are UTF-8 text; given as "BinaryValue"
    they are base64, matching the MessageAttributes of delivered records,
    so a received record's attributes can be sent again unchanged.

    Example:
        >>> parse_attribute_object('{"color": "red", "count": 3}')
        {'color': String 'red', 'count': Number '3'}

    Raises:
        QueueError: validation kind, on malformed JSON or unsupported shapes
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise QueueError.validation(f"Attributes are not valid JSON: {e.msg}") from e

    if not isinstance(raw, Mapping):
        raise QueueError.validation("Attributes must be a JSON object")

    attributes: Dict[str, MessageAttribute] = {}
    for name, value in raw.items():
        name = _check_name(name)

        if isinstance(value, Mapping):
            attributes[name] = _parse_typed_object(name, value)
        elif isinstance(value, bool) or value is None:
            raise QueueError.validation(
                f"Attribute '{name}' has unsupported value {json.dumps(value)}"
            )
        elif isinstance(value, str):
            attributes[name] = _build(name, "String", value)
        elif isinstance(value, (int, float)):
            attributes[name] = _build(name, "Number", value)
        else:
            raise QueueError.validation(
                f"Attribute '{name}' has unsupported value type {type(value).__name__}"
            )

    return _check_count(attributes)


def parse_attributes(raw: Any) -> Dict[str, MessageAttribute]:
    """Parse attributes in either accepted format; None yields no attributes."""
    if raw is None:
        return {}
    if isinstance(raw, list):
        return parse_attribute_list(raw)
    return parse_attribute_object(raw)
