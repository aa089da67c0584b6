"""
CBOR serialization for stored values.

Values are limited to None, bool, int, float, str, bytes, and lists,
tuples and str-keyed dicts of those, so every blob decodes back to plain
Python data. Tuples come back as lists and bytearrays as bytes.
"""

from typing import Any

import cbor2

from anysql_store.models.exceptions import UnsupportedValueTypeError

_SCALARS = (type(None), bool, int, float, str, bytes, bytearray)


def _check(value: Any, seen: set[int]) -> None:
    """Reject types, non-str mapping keys and cycles before serializing."""
    if isinstance(value, _SCALARS):
        return
    if not isinstance(value, (list, tuple, dict)):
        raise UnsupportedValueTypeError(f"Unsupported value type: {type(value).__name__}")
    if id(value) in seen:
        raise UnsupportedValueTypeError("Cyclic structure in value")
    seen.add(id(value))
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise UnsupportedValueTypeError(
                    f"Mapping keys must be strings, got {type(k).__name__}"
                )
            _check(v, seen)
    else:
        for item in value:
            _check(item, seen)
    seen.discard(id(value))


def encode_value(value: Any) -> bytes:
    """
    Serialize a value to CBOR.

    Raises:
        UnsupportedValueTypeError: If the value (or something nested in it)
            cannot be represented.
    """
    _check(value, set())
    try:
        return cbor2.dumps(value)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise UnsupportedValueTypeError(f"Cannot encode value: {e}") from e


def decode_value(data: bytes) -> Any:
    """
    Deserialize a CBOR blob produced by encode_value().

    Raises:
        UnsupportedValueTypeError: If the blob is malformed.
    """
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, TypeError, ValueError) as e:
        raise UnsupportedValueTypeError(f"Malformed value blob: {e}") from e
