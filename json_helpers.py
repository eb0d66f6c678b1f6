"""
JSON Serialisation Helpers
==========================
Make decoded readings, device details and exposure records safe for JSON
payloads. zigpy hands us wrapped numeric types, and our own definitions
carry enums and dataclasses.
"""
import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger("json_helpers")


def serialise_value(value: Any) -> Any:
    """
    Recursively serialise a value to be JSON-compatible.

    Handles:
    - Enums (including IntFlag access bits)
    - dataclasses
    - nested dicts, lists, tuples
    - bytes
    - zigpy wrapped values exposing .value
    """
    if value is None:
        return None

    # Enums before the basic types: IntFlag is also an int
    if isinstance(value, Enum):
        return value.value

    if isinstance(value, bool):
        return value

    if isinstance(value, int):
        return int(value)

    if isinstance(value, float):
        return float(value)

    if isinstance(value, str):
        return str(value)

    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value.hex()

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if is_dataclass(value) and not isinstance(value, type):
        return serialise_value(asdict(value))

    if hasattr(value, 'items'):
        return {str(serialise_value(k)): serialise_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [serialise_value(item) for item in value]

    if hasattr(value, 'value'):
        return serialise_value(value.value)

    logger.debug(f"Falling back to str() for {type(value).__name__}")
    return str(value)


def prepare_for_json(data: Any) -> Any:
    """Main entry point before json.dumps() or an MQTT publish."""
    return serialise_value(data)


def safe_json_dumps(obj: Any, **kwargs) -> str:
    """Drop-in replacement for json.dumps() that handles our types."""
    return json.dumps(serialise_value(obj), **kwargs)
