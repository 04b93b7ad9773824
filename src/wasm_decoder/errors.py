"""Exception classes for the WebAssembly decoder."""

from enum import Enum


class ParseErrorKind(Enum):
    """Closed set of reasons a decode can fail."""

    UNEXPECTED_EOF = "unexpected end of input"
    EXPECTED_INDEX = "expected a valid index"
    EXPECTED_KIND_TAG = "expected a valid kind tag"
    EXPECTED_SIZE = "expected a valid size"
    EXPECTED_VALUE_OR_TERMINATOR = "expected either a terminator or a value"
    INVALID_INDEX = "invalid index"
    INVALID_INPUT = "invalid input"
    INVALID_MODULE_MAGIC = "invalid module magic"
    INVALID_MODULE_VERSION = "invalid module version"
    INVALID_SIZE = "invalid size"
    INVALID_TAG = "invalid tag"
    INVALID_TYPE = "invalid type"
    HUGE_ALLOCATION_REQUESTED = "requested allocation is too large"
    NOT_IMPLEMENTED = "not implemented"


def describe_error(kind: ParseErrorKind) -> str:
    """Return the human-readable description of an error kind."""
    return kind.value


class WasmError(Exception):
    """Base class for all WebAssembly errors."""

    pass


class DecodeError(WasmError):
    """Error during binary format decoding.

    ``kind`` is always set. ``offset`` is the absolute byte offset in the
    module at which decoding stopped; it is filled in by the module
    assembler if the raising site did not know it.
    """

    def __init__(
        self,
        kind: ParseErrorKind,
        detail: str | None = None,
        offset: int | None = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.offset = offset
        super().__init__(kind, detail, offset)

    def __str__(self) -> str:
        message = describe_error(self.kind)
        if self.detail:
            message = f"{message}: {self.detail}"
        if self.offset is not None:
            message = f"{message} (at offset {self.offset})"
        return message


class ValidationError(WasmError):
    """Error raised when decoded sections do not fit together."""

    pass


def with_eof_check(stream, kind: ParseErrorKind) -> ParseErrorKind:
    """Pick UNEXPECTED_EOF over ``kind`` if the stream ran out of input."""
    if stream.unreliable_eof():
        return ParseErrorKind.UNEXPECTED_EOF
    return kind
