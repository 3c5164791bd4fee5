"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with everything the server
needs to remember about that client between readiness events.

=============================================================================
WHAT A CONNECTION CARRIES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           Connection                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   socket         the accepted client socket                         │
    │   address        (ip, port) of the peer                             │
    │   id             short random id, used as a log prefix              │
    │   framer         LineFramer holding unterminated input              │
    │   outbox         reply bytes the kernel has not taken yet           │
    │   session        Session: AWAITING_USERNAME / READY + username      │
    │   state          OPEN → CLOSED                                      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

The connection never blocks the event loop. Its socket is non-blocking:
recv() is only called after the selector has reported the socket
readable, and it asks for at most what the line buffer can still hold.

Writes make one send() attempt. Whatever the kernel does not take right
away waits in a small outbound queue, and the multiplexer watches the
socket for writability until the queue is empty again:

    send(reply) ──► outbox ──► socket.send() ──► kernel
                      │
                      └── leftover bytes wait for EVENT_WRITE ──► flush()

A client that stops reading only grows its own queue. Once that queue
passes `max_pending_output` bytes the client is dropped, and nobody else
ever waits on it.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    accept() ──► OPEN ──┬── quit ─────────────┐
                        ├── peer closed ──────┤
                        ├── read/write error ─┼──► close() ──► CLOSED
                        ├── line too long ────┤
                        └── server shutdown ──┘

close() is idempotent: calling it on a CLOSED connection does nothing.

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..protocol.framing import LineFramer
from ..protocol.commands import Session


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.
    """
    OPEN = "open"        # Accepted and registered with the selector
    CLOSED = "closed"    # Socket closed, buffer and identity released


@dataclass(eq=False)
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        max_pending_output: Cap on bytes queued for a slow reader.
        framer: Buffered partial input.
        outbox: Reply bytes the kernel has not accepted yet.
        session: Login state and bound username.
        state: Current connection state.
        lines_handled: Number of complete lines interpreted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    buffer_size: int = 128
    max_pending_output: int = 16384
    encoding: str = "utf-8"

    framer: LineFramer = field(init=False, repr=False)
    outbox: bytearray = field(default_factory=bytearray, repr=False)
    session: Session = field(default_factory=Session)
    state: ConnectionState = ConnectionState.OPEN
    lines_handled: int = 0

    def __post_init__(self):
        """
        Configure socket after initialization.

        Called automatically by dataclass after __init__.
        """
        self.framer = LineFramer(capacity=self.buffer_size, encoding=self.encoding)
        self.socket.setblocking(False)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0] if self.address else ""

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1] if self.address else 0

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def wants_write(self) -> bool:
        """True while queued output is waiting for the socket to drain."""
        return bool(self.outbox) and not self.is_closed

    @property
    def username(self) -> Optional[str]:
        return self.session.username

    def recv(self, max_bytes: int) -> Optional[bytes]:
        """
        Read at most `max_bytes` from the socket.

        Returns:
            Received bytes, empty bytes if the peer closed or reset the
            connection, or None if nothing was actually available.

        Raises:
            OSError: For any other socket failure.
        """
        try:
            return self.socket.recv(max_bytes)
        except BlockingIOError:
            return None
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def send(self, data: bytes) -> bool:
        """
        Queue data for the client and make one attempt to write it.

        Returns:
            True if the data was written or queued, False if the connection
            is lost or the client has fallen too far behind.
        """
        if not data:
            return True
        if self.is_closed:
            return False

        self.outbox += data
        if not self.flush():
            return False

        if len(self.outbox) > self.max_pending_output:
            logger.warning(
                f"[{self.id}] Client is not reading: "
                f"{len(self.outbox)} bytes pending (limit {self.max_pending_output})"
            )
            return False
        return True

    def flush(self) -> bool:
        """
        Write as much queued output as the socket takes without blocking.

        Returns:
            True unless the write failed.
        """
        if not self.outbox:
            return True
        if self.is_closed:
            return False

        try:
            sent = self.socket.send(self.outbox)
        except BlockingIOError:
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        del self.outbox[:sent]
        return True

    def close(self):
        """
        Close the connection and release its buffer and identity.

        shutdown(SHUT_RDWR) sends FIN to the peer right away; close()
        then releases the file descriptor.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.framer.clear()
        self.outbox.clear()
        username = self.session.username
        self.session.reset()
        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.lines_handled} lines"
            + (f" (user '{username}')" if username else "")
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
