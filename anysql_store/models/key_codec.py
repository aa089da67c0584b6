"""
Order-preserving binary encoding for composite keys.

A key is a sequence of components. Each component is written as a tag
byte followed by a payload:

    [0x10]                          None
    [0x20] / [0x21]                 False / True
    [0x30][double:8][subtype:1]     number (subtype 0x00 int, 0x01 float)
    [0x40][utf-8, escaped][0x00]    string (0x00 written as 0x00 0xFF)
    [0x50][components...][0x00]     array

Comparing two encodings bytewise gives the same answer as compare_keys().
No component starts with 0xFF, so appending MAX_SENTINEL to an encoded key
yields a value above every key that it prefixes.
"""

import math
import struct
from collections.abc import Sequence
from typing import Any

from anysql_store.models.exceptions import InvalidKeyComponentError

TAG_NULL = 0x10
TAG_FALSE = 0x20
TAG_TRUE = 0x21
TAG_NUMBER = 0x30
TAG_STRING = 0x40
TAG_ARRAY = 0x50

TERMINATOR = 0x00
ESCAPE = 0xFF

SUBTYPE_INT = 0x00
SUBTYPE_FLOAT = 0x01

MIN_ENCODED_KEY = b""
MAX_SENTINEL = b"\xff"

# Largest magnitude an int can have and still survive the trip through a double
MAX_SAFE_INTEGER = 2**53

_SIGN_BIT = 1 << 63
_ALL_BITS = (1 << 64) - 1
_DOUBLE = struct.Struct(">d")
_UINT64 = struct.Struct(">Q")


def normalize_key(key: Any, allow_empty: bool = False) -> list[Any]:
    """
    Coerce a caller-supplied key into list form.

    A bare scalar becomes a one-component key.

    Raises:
        InvalidKeyComponentError: If the key is empty and allow_empty is False.
    """
    if isinstance(key, (list, tuple)):
        key = list(key)
    else:
        key = [key]
    if not key and not allow_empty:
        raise InvalidKeyComponentError("Key must have at least one component")
    return key


def encode_key(key: Sequence[Any]) -> bytes:
    """
    Encode a key into bytes whose lexicographic order matches the key order.

    Args:
        key: Sequence of components.

    Returns:
        The encoded key.

    Raises:
        InvalidKeyComponentError: If a component cannot be encoded.
    """
    if not isinstance(key, (list, tuple)):
        raise InvalidKeyComponentError(f"Key must be a list or tuple, got {type(key).__name__}")
    out = bytearray()
    seen = {id(key)}
    for component in key:
        _encode_component(component, out, seen)
    return bytes(out)


def _encode_component(component: Any, out: bytearray, seen: set[int]) -> None:
    if component is None:
        out.append(TAG_NULL)
    elif isinstance(component, bool):
        out.append(TAG_TRUE if component else TAG_FALSE)
    elif isinstance(component, int):
        if abs(component) > MAX_SAFE_INTEGER:
            raise InvalidKeyComponentError(
                f"Integer key component out of range (|n| > 2**53): {component}"
            )
        out.append(TAG_NUMBER)
        out += _encode_double(float(component))
        out.append(SUBTYPE_INT)
    elif isinstance(component, float):
        if math.isnan(component) or math.isinf(component):
            raise InvalidKeyComponentError(f"Unsupported float key component: {component}")
        out.append(TAG_NUMBER)
        out += _encode_double(component)
        out.append(SUBTYPE_FLOAT)
    elif isinstance(component, str):
        try:
            data = component.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidKeyComponentError(f"Key string is not valid unicode: {component!r}") from e
        out.append(TAG_STRING)
        out += data.replace(b"\x00", b"\x00\xff")
        out.append(TERMINATOR)
    elif isinstance(component, (list, tuple)):
        if id(component) in seen:
            raise InvalidKeyComponentError("Cyclic array in key")
        seen.add(id(component))
        out.append(TAG_ARRAY)
        for item in component:
            _encode_component(item, out, seen)
        out.append(TERMINATOR)
        seen.discard(id(component))
    else:
        raise InvalidKeyComponentError(
            f"Unsupported key component type: {type(component).__name__}"
        )


def _encode_double(value: float) -> bytes:
    if value == 0:
        value = 0.0  # -0.0 and 0.0 must share one encoding
    bits = _UINT64.unpack(_DOUBLE.pack(value))[0]
    if bits & _SIGN_BIT:
        bits ^= _ALL_BITS
    else:
        bits |= _SIGN_BIT
    return _UINT64.pack(bits)


def _decode_double(data: bytes) -> float:
    bits = _UINT64.unpack(data)[0]
    if bits & _SIGN_BIT:
        bits ^= _SIGN_BIT
    else:
        bits ^= _ALL_BITS
    return _DOUBLE.unpack(_UINT64.pack(bits))[0]


def decode_key(data: bytes) -> list[Any]:
    """
    Decode bytes produced by encode_key().

    Raises:
        InvalidKeyComponentError: If the data is not a valid encoded key.
    """
    data = bytes(data)
    key = []
    offset = 0
    while offset < len(data):
        if data[offset] == TERMINATOR:
            raise InvalidKeyComponentError(f"Unexpected terminator at offset {offset}")
        component, offset = _decode_component(data, offset)
        key.append(component)
    return key


def _decode_component(data: bytes, offset: int) -> tuple[Any, int]:
    tag = data[offset]
    offset += 1

    if tag == TAG_NULL:
        return None, offset
    if tag == TAG_FALSE:
        return False, offset
    if tag == TAG_TRUE:
        return True, offset

    if tag == TAG_NUMBER:
        if offset + 9 > len(data):
            raise InvalidKeyComponentError("Truncated number in encoded key")
        value = _decode_double(data[offset : offset + 8])
        subtype = data[offset + 8]
        offset += 9
        if subtype == SUBTYPE_INT:
            return int(value), offset
        if subtype == SUBTYPE_FLOAT:
            return value, offset
        raise InvalidKeyComponentError(f"Unknown number subtype: 0x{subtype:02x}")

    if tag == TAG_STRING:
        chunks = bytearray()
        while True:
            end = data.find(b"\x00", offset)
            if end == -1:
                raise InvalidKeyComponentError("Unterminated string in encoded key")
            chunks += data[offset:end]
            if end + 1 < len(data) and data[end + 1] == ESCAPE:
                chunks.append(0)
                offset = end + 2
            else:
                break
        try:
            return chunks.decode("utf-8"), end + 1
        except UnicodeDecodeError as e:
            raise InvalidKeyComponentError("Invalid utf-8 in encoded key") from e

    if tag == TAG_ARRAY:
        items = []
        while True:
            if offset >= len(data):
                raise InvalidKeyComponentError("Unterminated array in encoded key")
            if data[offset] == TERMINATOR:
                return items, offset + 1
            item, offset = _decode_component(data, offset)
            items.append(item)

    raise InvalidKeyComponentError(f"Unknown tag 0x{tag:02x} at offset {offset - 1}")


def _rank(component: Any) -> int:
    if component is None:
        return 0
    if isinstance(component, bool):
        return 1
    if isinstance(component, (int, float)):
        return 2
    if isinstance(component, str):
        return 3
    if isinstance(component, (list, tuple)):
        return 4
    raise InvalidKeyComponentError(f"Unsupported key component type: {type(component).__name__}")


def _compare_components(a: Any, b: Any) -> int:
    rank_a, rank_b = _rank(a), _rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 4:
        return compare_keys(a, b)
    if rank_a == 2:
        if a != b:
            return -1 if a < b else 1
        # Equal magnitude: int sorts before float
        float_a, float_b = isinstance(a, float), isinstance(b, float)
        return (float_a > float_b) - (float_a < float_b)
    if a == b:
        return 0
    return -1 if a < b else 1


def compare_keys(a: Sequence[Any], b: Sequence[Any]) -> int:
    """
    Compare two keys in logical order.

    Returns:
        -1, 0 or 1 as a sorts before, equal to, or after b.
    """
    for x, y in zip(a, b):
        result = _compare_components(x, y)
        if result:
            return result
    return (len(a) > len(b)) - (len(a) < len(b))
