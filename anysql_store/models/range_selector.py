"""
Translation of range selector options into encoded-key bounds.
"""

from dataclasses import dataclass
from typing import Any

from anysql_store.models.exceptions import InvalidRangeOptionsError
from anysql_store.models.key_codec import (
    MAX_SENTINEL,
    MIN_ENCODED_KEY,
    encode_key,
    normalize_key,
)
from anysql_store.models.options import StoreOptions

SELECTOR_OPTIONS = frozenset(
    {"prefix", "start", "start_after", "end", "end_before", "reverse", "limit"}
)


@dataclass(frozen=True)
class Bound:
    """
    One side of a key range in encoded space.

    Attributes:
        value: Encoded key the range is bounded by.
        inclusive: Whether keys equal to value are part of the range.
    """

    value: bytes
    inclusive: bool = True

    def sql(self, column: str, lower: bool) -> str:
        """Render the comparison for this bound, e.g. '"key" >= ?'."""
        if lower:
            op = ">=" if self.inclusive else ">"
        else:
            op = "<=" if self.inclusive else "<"
        return f'"{column}" {op} ?'


@dataclass(frozen=True)
class RangeSelector:
    """
    A normalized range: start/end bounds plus result ordering and size.

    reverse never changes the bounds, only the order rows come back in.
    """

    start: Bound
    end: Bound
    reverse: bool = False
    limit: int = StoreOptions.DEFAULT_LIMIT

    def where(self, column: str = "key") -> str:
        """SQL predicate selecting the keys inside this range."""
        return f"{self.start.sql(column, lower=True)} AND {self.end.sql(column, lower=False)}"

    def params(self) -> tuple[bytes, bytes]:
        return (self.start.value, self.end.value)


_MISSING = object()


def normalize_range(
    prefix: Any = _MISSING,
    start: Any = _MISSING,
    start_after: Any = _MISSING,
    end: Any = _MISSING,
    end_before: Any = _MISSING,
    reverse: bool = False,
    limit: int | None = None,
    default_limit: int = StoreOptions.DEFAULT_LIMIT,
) -> RangeSelector:
    """
    Normalize range selector options.

    Args:
        prefix: Select every key starting with these components.
        start: Inclusive lower bound.
        start_after: Exclusive lower bound; also skips keys prefixed by it.
        end: Inclusive upper bound.
        end_before: Exclusive upper bound.
        reverse: Return rows in descending key order.
        limit: Maximum number of rows; defaults to default_limit.
        default_limit: Cap used when limit is None.

    Returns:
        The normalized RangeSelector.

    Raises:
        InvalidRangeOptionsError: On conflicting or malformed options.
        InvalidKeyComponentError: If a bound key cannot be encoded.
    """
    has_prefix = prefix is not _MISSING
    has_start = start is not _MISSING
    has_start_after = start_after is not _MISSING
    has_end = end is not _MISSING
    has_end_before = end_before is not _MISSING

    if has_start and has_start_after:
        raise InvalidRangeOptionsError("'start' and 'start_after' cannot be combined")
    if has_end and has_end_before:
        raise InvalidRangeOptionsError("'end' and 'end_before' cannot be combined")
    if has_prefix and (has_start or has_start_after) and (has_end or has_end_before):
        raise InvalidRangeOptionsError(
            "'prefix' cannot be combined with both a start and an end option"
        )
    if not isinstance(reverse, bool):
        raise InvalidRangeOptionsError(f"'reverse' must be a bool, got {reverse!r}")
    if limit is None:
        limit = default_limit
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidRangeOptionsError(f"'limit' must be a non-negative integer, got {limit!r}")

    encoded_prefix = None
    if has_prefix:
        encoded_prefix = encode_key(normalize_key(prefix, allow_empty=True))

    if has_start:
        lower = Bound(encode_key(normalize_key(start)))
    elif has_start_after:
        lower = Bound(encode_key(normalize_key(start_after)) + MAX_SENTINEL)
    elif encoded_prefix is not None:
        lower = Bound(encoded_prefix)
    else:
        lower = Bound(MIN_ENCODED_KEY)

    if has_end:
        upper = Bound(encode_key(normalize_key(end)))
    elif has_end_before:
        upper = Bound(encode_key(normalize_key(end_before)), inclusive=False)
    elif encoded_prefix is not None:
        upper = Bound(encoded_prefix + MAX_SENTINEL)
    else:
        upper = Bound(MAX_SENTINEL)

    return RangeSelector(start=lower, end=upper, reverse=reverse, limit=limit)


def check_selector_options(options: dict[str, Any]) -> None:
    """
    Reject option names normalize_range() does not understand.

    Raises:
        InvalidRangeOptionsError: If an unknown option is present.
    """
    unknown = set(options) - SELECTOR_OPTIONS
    if unknown:
        raise InvalidRangeOptionsError(f"Unknown range options: {', '.join(sorted(unknown))}")
