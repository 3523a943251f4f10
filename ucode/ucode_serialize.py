from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from ucode.ucode_datatypes import SourceHandle


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode(encoding or 'utf-8', errors='replace')
    return data


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _collect(chunks: Iterable[bytes]) -> bytes:
    buf = bytearray()
    for chunk in chunks:
        buf += chunk
    return bytes(buf)


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str) -> Any:
    """
    Parse exactly one JSON document.
    Raises ValueError (json.JSONDecodeError) on malformed input, including
    trailing garbage after the value.
    """
    return json.loads(_norm_text(data))


def read_json_object(source: SourceHandle) -> dict:
    """
    Drain `source` in fixed-size chunks and parse it as a JSON object.
    Raises ValueError when the payload is malformed, nested too deeply, or
    its top level is anything other than an object.
    """
    try:
        value = deserialize(_collect(source.chunks()))
    except RecursionError as e:
        raise ValueError("nesting too deep") from e
    if not isinstance(value, dict):
        raise ValueError(f"expected an object, got {_json_type(value)}")
    return value


__all__ = [
    "deserialize",
    "read_json_object",
]
