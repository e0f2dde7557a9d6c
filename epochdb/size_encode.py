"""Compact 8-bit encoding of object sizes used by checkpoint files.

The encoding works like a tiny floating point number: precision drops as
the magnitude grows, and codes compare in the same order as the sizes
they stand for.  Sizes from 0 up to 950272 can be encoded; code 0xff is
reserved as invalid.  Encoding always rounds up to the next size that can
be represented, so an object never gets clipped.
"""

from bisect import bisect_left

CHKPT_ALIGN_BITS = 4
INVALID_SIZE_CODE = 0xFF
MAX_ENCODABLE_SIZE = 950272
INVALID_SIZE = (1 << 64) - 1

_BIAS = tuple(16 - (15 >> e) for e in range(16))


def _decode_helper(code: int) -> int:
    exponent, mantissa = code >> 4, code & 0x0F
    return (mantissa + _BIAS[exponent]) << exponent


def _decode(code: int) -> int:
    if (code + 1) & 0xF0:
        return _decode_helper((code + 0xFF) & 0xFF)
    # Codes 0..14 stand for themselves; 0xff is the invalid marker.
    return INVALID_SIZE if code == INVALID_SIZE_CODE else code


_DECODE_TABLE = tuple(_decode(code) for code in range(256))


def _first(exponent: int) -> int:
    return _decode_helper(exponent << 4)


def _last(exponent: int) -> int:
    if exponent == 15:
        return _DECODE_TABLE[0xFE]
    return _decode_helper((exponent << 4) + 0x0F)


def _round_up_code(sz: int, exponent: int) -> int:
    sz += (1 << exponent) - 1
    mantissa = (sz >> exponent) & 0xFF
    return ((exponent << 4) + mantissa - _BIAS[exponent] + 1) & 0xFF


def decode_size(code: int) -> int:
    """Return the size a code stands for; the invalid code gives INVALID_SIZE."""
    if not 0 <= code <= 0xFF:
        raise ValueError(f"size code {code} is not a byte")
    return _DECODE_TABLE[code]


def decode_size_aligned(code: int, align_bits: int = CHKPT_ALIGN_BITS) -> int:
    """Decode a code produced by encode_size_aligned back to a byte count."""
    size = decode_size(code)
    if size == INVALID_SIZE:
        return INVALID_SIZE
    return size << align_bits


def encode_size(sz: int) -> int:
    """Encode a size, rounding up; sizes too large give INVALID_SIZE_CODE."""
    if sz < 0:
        raise ValueError(f"size {sz} is negative")

    if sz <= _last(2):
        if sz <= _last(1):
            if sz < _first(1):
                return sz
            return _round_up_code(sz, 1)
        if sz <= _first(2):
            return (2 << 4) + 1
        return _round_up_code(sz, 2)

    if sz <= _last(3):
        if sz <= _first(3):
            return (3 << 4) + 1
        return _round_up_code(sz, 3)

    if sz <= _first(4):
        return (4 << 4) + 1

    if sz <= _last(15):
        exponent = sz.bit_length() - 5
        sz += (1 << exponent) - 1
        exponent = sz.bit_length() - 5
        mantissa = (sz >> exponent) - 16
        return (exponent << 4) + mantissa + 1

    return INVALID_SIZE_CODE


def _align_up(value: int, amount: int) -> int:
    return (value + amount - 1) & -amount


def encode_size_aligned(size: int, align_bits: int = CHKPT_ALIGN_BITS) -> tuple[int, int]:
    """Align a size to 2**align_bits and encode it.

    Returns the code together with the size it decodes to, which is the
    aligned, rounded-up size an allocation of that code really has.
    """
    if size < 0:
        raise ValueError(f"size {size} is negative")
    units = _align_up(size, 1 << align_bits) >> align_bits
    code = bisect_left(_DECODE_TABLE, units)
    if code >= INVALID_SIZE_CODE:
        raise ValueError(f"size {size} cannot be encoded")
    return code, _DECODE_TABLE[code] << align_bits