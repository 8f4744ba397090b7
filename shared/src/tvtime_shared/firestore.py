"""Firestore serialization helpers.

Handles conversion between Python snake_case and Firestore camelCase.
"""

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def to_snake(string: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", string).lower()


def model_to_firestore(model: BaseModel) -> dict[str, Any]:
    """Convert a pydantic model to Firestore document format.

    - Converts field names from snake_case to camelCase
    - Renders datetimes as ISO 8601 strings, the format the web client writes
    - Drops fields that are unset (None)
    """
    data = model.model_dump(mode="python", exclude_none=True)
    return _convert_keys_to_camel(data)


def models_to_firestore(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    """Convert a collection of models for an array field."""
    return [model_to_firestore(model) for model in models]


def _convert_keys_to_camel(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        camel_key = to_camel(key)
        if isinstance(value, dict):
            result[camel_key] = _convert_keys_to_camel(value)
        elif isinstance(value, list):
            result[camel_key] = [
                _convert_keys_to_camel(item) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, datetime):
            result[camel_key] = value.isoformat()
        else:
            result[camel_key] = value
    return result


def firestore_to_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Convert Firestore document to snake_case dict for pydantic parsing."""
    return _convert_keys_to_snake(data)


def _convert_keys_to_snake(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        snake_key = to_snake(key)
        if isinstance(value, dict):
            result[snake_key] = _convert_keys_to_snake(value)
        elif isinstance(value, list):
            result[snake_key] = [
                _convert_keys_to_snake(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[snake_key] = value
    return result
