"""Parsing and serialization of the persisted business_flags field"""

import json
from dataclasses import asdict, fields
from typing import Any, Mapping

from fine_service.domain.exceptions import InvalidFlags
from fine_service.domain.models import BusinessFlags

FLAG_NAMES = tuple(f.name for f in fields(BusinessFlags))


def normalize_flags(raw: Any) -> BusinessFlags:
    """
    Turn stored business_flags into a BusinessFlags value.

    Accepts a JSON string, a mapping, or None (treated as "{}").
    Unknown keys are dropped so older code can read flags written by newer
    code; missing known keys default to False.

    Raises:
        InvalidFlags: Malformed JSON, a non-object payload, or a known key
            whose value is not a boolean
    """
    if raw is None:
        raw = {}

    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidFlags(f"business_flags is not valid JSON: {e.msg}") from e
        if not isinstance(decoded, dict):
            raise InvalidFlags("business_flags JSON must be an object")
        raw = decoded
    elif not isinstance(raw, Mapping):
        raise InvalidFlags("business_flags must be a JSON string or a mapping")

    values = {}
    for name in FLAG_NAMES:
        if name not in raw:
            continue
        value = raw[name]
        if not isinstance(value, bool):
            raise InvalidFlags(f"business_flags.{name} must be a boolean, got {value!r}")
        values[name] = value

    return BusinessFlags(**values)


def serialize_flags(flags: BusinessFlags) -> str:
    """Canonical JSON: fixed key order, compact separators"""
    return json.dumps(asdict(flags), separators=(",", ":"))


def merge_flags(current: BusinessFlags, requested: BusinessFlags) -> BusinessFlags:
    """Combine flag sets without ever clearing one that is already set"""
    return BusinessFlags(**{
        name: getattr(current, name) or getattr(requested, name)
        for name in FLAG_NAMES
    })
