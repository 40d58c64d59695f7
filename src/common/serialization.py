"""Serialization utilities."""

import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


def serialize_dataclass(obj) -> dict:
    """Serialize a dataclass to dict, converting datetimes to ISO strings."""
    data = asdict(obj)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
        elif isinstance(value, dict):
            for k, v in value.items():
                if isinstance(v, datetime):
                    value[k] = v.isoformat()
    return data


def dump_json(value: Any) -> str | None:
    """Serialize a structured value for a text column."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def load_json_list(raw: str | None, field_name: str = "value") -> list:
    """Parse a JSON array stored as text. Malformed or non-list input yields []."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Malformed JSON in %s, treating as empty", field_name)
        return []
    if not isinstance(value, list):
        logger.warning("Expected JSON array in %s, got %s", field_name, type(value).__name__)
        return []
    return value


def load_json_dict(raw: str | None, field_name: str = "value") -> dict | None:
    """Parse a JSON object stored as text. Malformed or non-object input yields None."""
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Malformed JSON in %s, treating as empty", field_name)
        return None
    if not isinstance(value, dict):
        logger.warning("Expected JSON object in %s, got %s", field_name, type(value).__name__)
        return None
    return value
