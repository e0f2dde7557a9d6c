"""32-bit xxHash and the default key hash used by the hashtable index."""

from __future__ import annotations

_MASK = 0xFFFFFFFF
_PRIME1 = 2654435761
_PRIME2 = 2246822519
_PRIME3 = 3266489917
_PRIME4 = 668265263
_PRIME5 = 374761393

DEFAULT_HASH_SEED = 0xDEADBEEF


def _rotl(x: int, r: int) -> int:
    return ((x << r) | (x >> (32 - r))) & _MASK


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _PRIME2) & _MASK
    return (_rotl(acc, 13) * _PRIME1) & _MASK


def xxh32(data: bytes, seed: int = 0) -> int:
    """Return the XXH32 digest of data with the given seed."""
    buf = memoryview(bytes(data))
    length = len(buf)
    seed &= _MASK
    pos = 0

    if length >= 16:
        v1 = (seed + _PRIME1 + _PRIME2) & _MASK
        v2 = (seed + _PRIME2) & _MASK
        v3 = seed
        v4 = (seed - _PRIME1) & _MASK
        limit = length - 16
        while pos <= limit:
            v1 = _round(v1, int.from_bytes(buf[pos:pos + 4], "little"))
            v2 = _round(v2, int.from_bytes(buf[pos + 4:pos + 8], "little"))
            v3 = _round(v3, int.from_bytes(buf[pos + 8:pos + 12], "little"))
            v4 = _round(v4, int.from_bytes(buf[pos + 12:pos + 16], "little"))
            pos += 16
        h = (_rotl(v1, 1) + _rotl(v2, 7) + _rotl(v3, 12) + _rotl(v4, 18)) & _MASK
    else:
        h = (seed + _PRIME5) & _MASK

    h = (h + length) & _MASK

    while pos + 4 <= length:
        lane = int.from_bytes(buf[pos:pos + 4], "little")
        h = (h + lane * _PRIME3) & _MASK
        h = (_rotl(h, 17) * _PRIME4) & _MASK
        pos += 4

    for byte in buf[pos:]:
        h = (h + byte * _PRIME5) & _MASK
        h = (_rotl(h, 11) * _PRIME1) & _MASK

    h ^= h >> 15
    h = (h * _PRIME2) & _MASK
    h ^= h >> 13
    h = (h * _PRIME3) & _MASK
    h ^= h >> 16
    return h


def default_hash(key: bytes) -> int:
    """Hash an index key the way the hashtable index does by default."""
    return xxh32(key, DEFAULT_HASH_SEED)