"""
Tests for the order-preserving key encoding.
"""

import itertools
import random

import pytest

from anysql_store.models.exceptions import ErrorKind, InvalidKeyComponentError
from anysql_store.models.key_codec import (
    MAX_SENTINEL,
    compare_keys,
    decode_key,
    encode_key,
    normalize_key,
)


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


class TestRoundTrip:
    """Tests for encode/decode round trips."""

    def test_sample_keys(self, sample_keys):
        """Every sample key decodes back to itself."""
        for key in sample_keys:
            assert decode_key(encode_key(key)) == key

    def test_number_types_survive(self):
        """Ints stay ints and floats stay floats."""
        decoded = decode_key(encode_key([3, 3.0, -7, 2.5]))
        assert decoded == [3, 3.0, -7, 2.5]
        assert [type(c) for c in decoded] == [int, float, int, float]

    def test_tuples_decode_as_lists(self):
        """Tuples are accepted and come back as lists."""
        assert decode_key(encode_key(("users", ("nested", 1)))) == ["users", ["nested", 1]]

    def test_users_key(self):
        key = ["users", "mvila"]
        assert decode_key(encode_key(key)) == key

    def test_empty_key(self):
        assert encode_key([]) == b""
        assert decode_key(b"") == []

    def test_negative_zero(self):
        """-0.0 shares the encoding of 0.0."""
        assert encode_key([-0.0]) == encode_key([0.0])

    def test_deeply_nested_arrays(self):
        key = [[[[["deep"]]]], []]
        assert decode_key(encode_key(key)) == key


class TestOrdering:
    """Tests that byte order matches logical order."""

    def test_sample_keys_sorted(self, sample_keys):
        """The fixture is listed in ascending order; both orders agree with it."""
        shuffled = list(sample_keys)
        random.Random(7).shuffle(shuffled)
        assert sorted(shuffled, key=encode_key) == sample_keys

    def test_pairwise_agreement(self, sample_keys):
        """For every pair, byte comparison equals logical comparison."""
        for a, b in itertools.product(sample_keys, repeat=2):
            ea, eb = encode_key(a), encode_key(b)
            byte_order = (ea > eb) - (ea < eb)
            assert byte_order == _sign(compare_keys(a, b)), (a, b)

    def test_random_numbers(self):
        """Random ints and floats sort numerically."""
        rng = random.Random(1)
        numbers = [rng.uniform(-1e6, 1e6) for _ in range(200)]
        numbers += [rng.randint(-(2**53), 2**53) for _ in range(200)]
        by_bytes = sorted(numbers, key=lambda n: encode_key([n]))
        assert [float(n) for n in by_bytes] == sorted(float(n) for n in numbers)

    def test_type_rank(self):
        """None < bool < number < string < array."""
        ranked = [[None], [True], [-1000], ["a"], [[]]]
        encoded = [encode_key(k) for k in ranked]
        assert encoded == sorted(encoded)

    def test_prefix_sorts_first(self):
        assert encode_key(["a"]) < encode_key(["a", None])
        assert encode_key([["a"]]) < encode_key([["a", "b"]])

    def test_string_with_nul_not_confused_with_child(self):
        """['a', x] for any x sorts before ['a\\x00']."""
        child = encode_key(["a", [[["z"]]]])
        assert child < encode_key(["a\x00"])

    def test_max_sentinel_covers_children(self):
        """encode(k) + 0xFF lies above every key that k prefixes."""
        upper = encode_key(["users"]) + MAX_SENTINEL
        for child in (["users", "zzz"], ["users", [["x"]]], ["users", 1e300]):
            assert encode_key(["users"]) < encode_key(child) < upper
        assert encode_key(["users\x00"]) > upper
        assert encode_key(["usert"]) > upper


class TestInvalidComponents:
    """Tests for rejected key components."""

    @pytest.mark.parametrize(
        "component",
        [float("nan"), float("inf"), float("-inf"), 2**53 + 1, -(2**53) - 1, {"a": 1}, {1, 2}, b"raw", object()],
    )
    def test_rejected(self, component):
        with pytest.raises(InvalidKeyComponentError) as exc_info:
            encode_key(["ok", component])
        assert exc_info.value.kind == ErrorKind.INVALID_KEY_COMPONENT

    def test_cyclic_array(self):
        cyclic = ["a"]
        cyclic.append(cyclic)
        with pytest.raises(InvalidKeyComponentError):
            encode_key([cyclic])

    def test_repeated_array_is_not_a_cycle(self):
        shared = [1, 2]
        assert decode_key(encode_key([shared, shared])) == [[1, 2], [1, 2]]

    def test_lone_surrogate(self):
        with pytest.raises(InvalidKeyComponentError):
            encode_key(["\ud800"])

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            encode_key([float("nan")])

    @pytest.mark.parametrize(
        "data",
        [b"\x00", b"\x40abc", b"\x50\x10", b"\x30\x00\x01", b"\x99", b"\x30" + b"\x80" * 8 + b"\x07"],
    )
    def test_malformed_bytes(self, data):
        with pytest.raises(InvalidKeyComponentError):
            decode_key(data)


class TestNormalizeKey:
    """Tests for key normalization."""

    def test_scalar_becomes_list(self):
        assert normalize_key("users") == ["users"]
        assert normalize_key(None) == [None]

    def test_tuple_becomes_list(self):
        assert normalize_key(("a", 1)) == ["a", 1]

    def test_empty_rejected(self):
        with pytest.raises(InvalidKeyComponentError):
            normalize_key([])

    def test_empty_allowed(self):
        assert normalize_key([], allow_empty=True) == []
