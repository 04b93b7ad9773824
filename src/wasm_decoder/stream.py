"""Byte sources the decoder reads from.

Every decoder reads through an ``InputStream``. ``MemoryStream`` is the root
source; ``ReconsumableStream`` and ``ConstrainedStream`` decorate another
stream with push-back and with a hard byte budget respectively.
"""

from abc import ABC, abstractmethod
from collections import deque

from .errors import DecodeError, ParseErrorKind


class InputStream(ABC):
    """A source of bytes with best-effort end-of-input detection."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes. Returns fewer at end of input."""

    @abstractmethod
    def unreliable_eof(self) -> bool:
        """Return True if the stream has (probably) reached end of input."""

    @abstractmethod
    def tell(self) -> int:
        """Return the absolute offset of the next byte in the root source."""

    def read_or_error(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        data = bytearray()
        while len(data) < size:
            chunk = self.read(size - len(data))
            if not chunk:
                raise DecodeError(
                    ParseErrorKind.UNEXPECTED_EOF,
                    f"wanted {size} bytes, got {len(data)}",
                    self.tell(),
                )
            data += chunk
        return bytes(data)

    def discard_or_error(self, size: int) -> None:
        """Skip exactly ``size`` bytes."""
        self.read_or_error(size)


class MemoryStream(InputStream):
    """An input stream over an in-memory buffer."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.position = 0

    def read(self, size: int) -> bytes:
        result = self.data[self.position : self.position + size]
        self.position += len(result)
        return result

    def unreliable_eof(self) -> bool:
        return self.position >= len(self.data)

    def tell(self) -> int:
        return self.position

    def discard_or_error(self, size: int) -> None:
        if self.position + size > len(self.data):
            self.position = len(self.data)
            raise DecodeError(
                ParseErrorKind.UNEXPECTED_EOF, f"cannot skip {size} bytes", self.position
            )
        self.position += size

    def remaining(self) -> int:
        """Return number of remaining bytes."""
        return len(self.data) - self.position


class ReconsumableStream(InputStream):
    """A stream that bytes can be pushed back into.

    Bytes passed to ``unread`` are served, in the order they were pushed,
    before anything from the wrapped stream.
    """

    def __init__(self, stream: InputStream) -> None:
        self.stream = stream
        self.buffer: deque[int] = deque()

    def unread(self, data: bytes) -> None:
        self.buffer.extend(data)

    def read(self, size: int) -> bytes:
        from_buffer = bytearray()
        while self.buffer and len(from_buffer) < size:
            from_buffer.append(self.buffer.popleft())
        if len(from_buffer) == size:
            return bytes(from_buffer)
        return bytes(from_buffer) + self.stream.read(size - len(from_buffer))

    def unreliable_eof(self) -> bool:
        return not self.buffer and self.stream.unreliable_eof()

    def tell(self) -> int:
        return self.stream.tell() - len(self.buffer)

    def discard_or_error(self, size: int) -> None:
        from_buffer = min(size, len(self.buffer))
        for _ in range(from_buffer):
            self.buffer.popleft()
        self.stream.discard_or_error(size - from_buffer)


class ConstrainedStream(InputStream):
    """A view of another stream limited to a fixed number of bytes.

    Reads never go past the budget, so a decoder handed this stream cannot
    consume bytes that belong to whatever follows it.
    """

    def __init__(self, stream: InputStream, size: int) -> None:
        self.stream = stream
        self.bytes_left = size

    @property
    def remaining(self) -> int:
        return self.bytes_left

    def read(self, size: int) -> bytes:
        result = self.stream.read(min(size, self.bytes_left))
        self.bytes_left -= len(result)
        return result

    def unreliable_eof(self) -> bool:
        return self.bytes_left == 0 or self.stream.unreliable_eof()

    def tell(self) -> int:
        return self.stream.tell()

    def read_or_error(self, size: int) -> bytes:
        if size > self.bytes_left:
            raise DecodeError(
                ParseErrorKind.UNEXPECTED_EOF,
                f"wanted {size} bytes, only {self.bytes_left} left",
                self.tell(),
            )
        return super().read_or_error(size)

    def discard_or_error(self, size: int) -> None:
        if size > self.bytes_left:
            raise DecodeError(
                ParseErrorKind.UNEXPECTED_EOF,
                f"cannot skip {size} bytes, only {self.bytes_left} left",
                self.tell(),
            )
        self.stream.discard_or_error(size)
        self.bytes_left -= size
