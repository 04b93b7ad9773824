"""Helpers for building WebAssembly binaries in tests."""

HEADER = b"\x00asm\x01\x00\x00\x00"


def uleb(value: int) -> bytes:
    """Encode an unsigned LEB128 integer."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def sleb(value: int) -> bytes:
    """Encode a signed LEB128 integer."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if (value == 0 and not byte & 0x40) or (value == -1 and byte & 0x40):
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


def vec(items: list[bytes]) -> bytes:
    return uleb(len(items)) + b"".join(items)


def name(text: str) -> bytes:
    data = text.encode("utf-8")
    return uleb(len(data)) + data


def section(section_id: int, payload: bytes) -> bytes:
    return bytes([section_id]) + uleb(len(payload)) + payload


def module(*sections: bytes) -> bytes:
    return HEADER + b"".join(sections)


def code_entry(body: bytes, locals_: bytes = b"\x00") -> bytes:
    """Size-prefixed function body; ``body`` must include the final end."""
    func = locals_ + body
    return uleb(len(func)) + func


def func_module(body: bytes, locals_: bytes = b"\x00") -> bytes:
    """Module with a single () -> () function whose code is ``body``."""
    return module(
        section(1, vec([b"\x60\x00\x00"])),
        section(3, vec([b"\x00"])),
        section(10, vec([code_entry(body, locals_)])),
    )
