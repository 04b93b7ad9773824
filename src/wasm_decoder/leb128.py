"""LEB128 variable-length integers."""

from .stream import InputStream


class LEB128Error(ValueError):
    """The stream did not hold a well-formed LEB128 integer."""


def _read_byte(stream: InputStream) -> int:
    data = stream.read(1)
    if not data:
        raise LEB128Error("truncated LEB128 integer")
    return data[0]


def read_unsigned(stream: InputStream, bits: int = 32) -> int:
    """Decode an unsigned LEB128 integer of at most ``bits`` bits."""
    max_bytes = (bits + 6) // 7
    result = 0
    shift = 0
    for _ in range(max_bytes):
        byte = _read_byte(stream)
        result |= (byte & 0x7F) << shift
        shift += 7
        if (byte & 0x80) == 0:
            if result >= 1 << bits:
                raise LEB128Error(f"integer does not fit in {bits} bits")
            return result
    raise LEB128Error("LEB128 integer too long")


def read_signed(stream: InputStream, bits: int = 32) -> int:
    """Decode a signed LEB128 integer of at most ``bits`` bits."""
    max_bytes = (bits + 6) // 7
    result = 0
    shift = 0
    for _ in range(max_bytes):
        byte = _read_byte(stream)
        result |= (byte & 0x7F) << shift
        shift += 7
        if (byte & 0x80) == 0:
            # Sign extend if the sign bit (bit 6 of the last byte) is set
            if byte & 0x40:
                result -= 1 << shift
            if not -(1 << (bits - 1)) <= result < 1 << (bits - 1):
                raise LEB128Error(f"integer does not fit in {bits} bits")
            return result
    raise LEB128Error("LEB128 integer too long")
