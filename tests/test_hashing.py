import pytest

from epochdb.hashing import DEFAULT_HASH_SEED, default_hash, xxh32


def test_empty_input_reference_value():
    assert xxh32(b"", 0) == 0x02CC5D05


def test_abc_reference_value():
    assert xxh32(b"abc", 0) == 0x32D153FF


@pytest.mark.parametrize("size", [0, 1, 3, 4, 7, 15, 16, 17, 31, 32, 33, 100])
def test_result_fits_in_32_bits_and_is_stable(size):
    data = bytes(range(size))
    first = xxh32(data, 7)
    assert 0 <= first <= 0xFFFFFFFF
    assert xxh32(data, 7) == first


def test_seed_changes_digest():
    data = b"some key of moderate length"
    assert xxh32(data, 0) != xxh32(data, 1)


def test_input_change_changes_digest():
    assert xxh32(b"x" * 20, 0) != xxh32(b"x" * 19 + b"y", 0)


def test_accepts_bytearray_and_memoryview():
    data = b"0123456789abcdefXYZ"
    expected = xxh32(data, 3)
    assert xxh32(bytearray(data), 3) == expected
    assert xxh32(memoryview(data), 3) == expected


def test_seed_is_taken_modulo_32_bits():
    assert xxh32(b"abc", 1 << 32) == xxh32(b"abc", 0)


def test_default_hash_uses_default_seed():
    key = b"warehouse-1"
    assert default_hash(key) == xxh32(key, DEFAULT_HASH_SEED)
    assert DEFAULT_HASH_SEED == 0xDEADBEEF