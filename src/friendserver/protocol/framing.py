"""
=============================================================================
LINE FRAMING
=============================================================================

TCP is a byte stream, not a message protocol. A client that sends

    "make_friends bob\r\n"

might be read by the server as one chunk, as three chunks, or glued onto
the next command. The only thing TCP promises is that the bytes arrive in
order. So every connection keeps a small buffer of bytes it has received
but not yet understood, and cuts complete lines off the front of it.

=============================================================================
THE NETWORK NEWLINE
=============================================================================

A line ends with the two bytes CR LF (b"\\r\\n"). A bare LF is NOT a line
ending; it stays part of the line. The two bytes may arrive in different
reads:

    feed(b"abc\\r")        buffer: b"abc\\r"        drain() -> (nothing)
    feed(b"\\ndef\\r\\n")    buffer: b"abc\\r\\ndef\\r\\n"
                                                  drain() -> "abc", "def"
                          buffer: b""

And one read may carry several lines:

    feed(b"ping\\r\\nlist_users\\r\\n")
    drain() -> "ping", "list_users"

=============================================================================
THE BOUND
=============================================================================

The buffer has a fixed capacity. Lines must fit in it, terminator
included. A peer that fills the buffer without ever sending CR LF is
misbehaving: feed() refuses the bytes with LineTooLongError instead of
growing the buffer, and the server hangs up on that connection.

    ┌──────────────────────── capacity ────────────────────────┐
    │ complete line \\r\\n │ partial line ...  │      room        │
    └──────────────────────────────────────────────────────────┘
      ▲ drain() removes     ▲ kept for the       ▲ how much the next
        these                 next feed()          recv() may ask for

=============================================================================
"""

import logging
from typing import Iterator, List


logger = logging.getLogger(__name__)


TERMINATOR = b"\r\n"


class LineTooLongError(ValueError):
    """Raised when buffered, unterminated input would exceed the capacity."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"Unterminated line too long: {size} > {capacity} bytes")


class LineFramer:
    """
    Incremental CR-LF line decoder for one connection.

    Args:
        capacity: Maximum number of bytes that may be buffered at once.
        encoding: Text encoding of the protocol. Undecodable bytes are
                  replaced rather than raising.
    """

    def __init__(self, capacity: int = 128, encoding: str = "utf-8"):
        if capacity < len(TERMINATOR) + 1:
            raise ValueError(f"capacity must be > {len(TERMINATOR)}")
        self.capacity = capacity
        self.encoding = encoding
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet part of a complete line."""
        return bytes(self._buffer)

    @property
    def room(self) -> int:
        """How many more bytes fit before the buffer is full."""
        return self.capacity - len(self._buffer)

    @property
    def is_full(self) -> bool:
        return len(self._buffer) >= self.capacity

    def feed(self, data: bytes) -> None:
        """
        Append freshly received bytes.

        Raises:
            LineTooLongError: If the bytes do not fit. The buffer is left
                              exactly as it was.
        """
        size = len(self._buffer) + len(data)
        if size > self.capacity:
            raise LineTooLongError(size, self.capacity)
        self._buffer.extend(data)

    def drain(self) -> Iterator[str]:
        """
        Yield every complete line in the buffer, oldest first.

        The terminator is stripped. Consumed bytes are removed from the
        front of the buffer as each line is yielded; whatever follows the
        last terminator stays buffered for the next feed().
        """
        while True:
            end = self._buffer.find(TERMINATOR)
            if end < 0:
                return
            raw = bytes(self._buffer[:end])
            del self._buffer[:end + len(TERMINATOR)]
            yield raw.decode(self.encoding, errors="replace")

    def feed_and_drain(self, data: bytes) -> List[str]:
        """Convenience: feed() then collect everything drain() yields."""
        self.feed(data)
        return list(self.drain())

    def clear(self) -> None:
        """Drop any buffered bytes (used at teardown)."""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} unterminated bytes")
        self._buffer.clear()
