"""
Module: payloads.py
Description: Decoding of JSON-encoded form fields.

Multipart forms can only carry strings, so structured values such as
amenities and the bulk participants array arrive JSON-encoded. JSON
request bodies may carry the same values already decoded; both shapes
are accepted here.
"""

import json
import math
from typing import Any, Dict, List, Optional


class PayloadDecodeError(ValueError):
    """A JSON-encoded request field could not be decoded into the expected shape."""


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"{name} is not a valid JSON value")


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode('utf-8')
    if isinstance(raw, str):
        return json.loads(raw, parse_constant=_reject_constant)
    return raw


def ensure_finite(value: Any, field: str) -> Any:
    """
    Reject NaN and infinite numbers anywhere inside a decoded JSON value.

    Already-decoded bodies (Starlette's request.json(), pydantic) accept
    these constants, so they are checked after the fact.

    Raises:
        PayloadDecodeError: If a non-finite float is found
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise PayloadDecodeError(f"{field} contains a non-finite number")
    if isinstance(value, dict):
        for key, item in value.items():
            ensure_finite(item, f"{field}.{key}")
    elif isinstance(value, list):
        for index, item in enumerate(value):
            ensure_finite(item, f"{field}[{index}]")
    return value


def parse_amenities(raw: Optional[Any]) -> Dict[str, Any]:
    """
    Decode an amenities field into a mapping.

    Args:
        raw: JSON string, already-decoded dict, or None/empty

    Returns:
        Decoded amenities ({} when absent)

    Raises:
        PayloadDecodeError: If the value is not valid JSON, not an object,
            or holds a non-finite number
    """
    if raw is None or raw == "":
        return {}

    try:
        value = _decode(raw)
    except ValueError as e:
        raise PayloadDecodeError(f"amenities is not valid JSON: {e}")

    if not isinstance(value, dict):
        raise PayloadDecodeError("amenities must be a JSON object")

    return ensure_finite(value, "amenities")


def parse_participants(raw: Optional[Any]) -> List[Dict[str, Any]]:
    """
    Decode the bulk upload participants field into a list of objects.

    Raises:
        PayloadDecodeError: If missing, not valid JSON, not an array,
            or any element is not an object
    """
    if raw is None or raw == "":
        raise PayloadDecodeError("participants is required")

    try:
        value = _decode(raw)
    except ValueError as e:
        raise PayloadDecodeError(f"participants is not valid JSON: {e}")

    if not isinstance(value, list):
        raise PayloadDecodeError("participants must be a JSON array")

    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise PayloadDecodeError(f"participants[{index}] must be a JSON object")

    return ensure_finite(value, "participants")
