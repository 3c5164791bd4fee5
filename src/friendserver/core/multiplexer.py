"""
=============================================================================
CONNECTION MULTIPLEXER
=============================================================================

One thread, many clients. Instead of a thread per connection, the server
asks the operating system a single question over and over:

    "Which of these sockets has something for me right now?"

and then deals with exactly those sockets before asking again.

=============================================================================
THE EVENT LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         serve_forever()                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   while running:                                                    │
    │       │                                                             │
    │       ├──► poll_ready()          BLOCKS in select/epoll/kqueue      │
    │       │       │                  (the only place the loop waits)    │
    │       │       └── [LISTENER, conn_a, conn_c]                        │
    │       │                                                             │
    │       └──► for each ready endpoint:                                 │
    │               │                                                     │
    │               ├── LISTENER ──► accept_connection()                  │
    │               │                  └── register, send login prompt   │
    │               │                                                     │
    │               └── Connection ──► dispatch_readable(conn)            │
    │                                    ├── recv()  (one bounded read)  │
    │                                    ├── framer.feed() / drain()     │
    │                                    ├── interpreter.handle_line()   │
    │                                    └── send() or teardown()        │
    │                                                                     │
    │   a writable Connection is flushed inside poll_ready() and is only  │
    │   watched for writability while its outbound queue is non-empty     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Because everything runs on this one thread, the social graph, the line
buffers and the connection table are never touched by two commands at
once. No locks are needed, and commands from one client are handled in
the order they arrived.

=============================================================================
SELECTORS
=============================================================================

The `selectors` module picks the best readiness primitive the platform
offers (epoll on Linux, kqueue on BSD/macOS, select elsewhere) behind one
API:

    selector.register(sock, EVENT_READ, data=anything)
    selector.select(timeout)  ->  [(key, mask), ...]   key.data is `anything`
    selector.unregister(sock)

We store the Connection itself as `data`, so a ready key leads straight to
its connection without a lookup.

=============================================================================
WAKING THE LOOP UP
=============================================================================

select() with no timeout sleeps until a socket is ready. To stop the loop
from another thread or a signal handler, shutdown() writes one byte into
a socketpair whose read end is registered with the selector. The loop
wakes, sees the stop flag, and tears everything down.

=============================================================================
FAILURES
=============================================================================

    accept() fails           FatalServerError   whole server stops
    select() fails           FatalServerError   whole server stops
    recv() fails / EOF       teardown(conn)     only that client
    send() fails             teardown(conn)     only that client
    output queue overflows   teardown(conn)     only that client
    line too long            teardown(conn)     only that client

=============================================================================
"""

import logging
import selectors
import socket
import time
from typing import Dict, List, Optional, Union

from ..command_log import CommandLogger
from ..config import ServerConfig
from ..protocol.commands import CommandInterpreter
from ..protocol.framing import LineTooLongError
from ..protocol.responses import LOGIN_PROMPT, to_network_newlines
from .connection import Connection


logger = logging.getLogger(__name__)


LISTENER = "listener"
_WAKEUP = "wakeup"

Endpoint = Union[str, Connection]


class FatalServerError(RuntimeError):
    """The server cannot keep running (accept or readiness wait failed)."""


class ConnectionMultiplexer:
    """
    Single-threaded readiness loop over a listening socket and its clients.

    The multiplexer does not create the listening socket; it is handed one
    that is already bound and listening. It owns its selector, its
    connection table and every client socket it accepts.

    Usage:
        multiplexer = ConnectionMultiplexer(listener, interpreter, config)
        multiplexer.serve_forever()      # blocks until shutdown()
    """

    def __init__(
        self,
        listener: socket.socket,
        interpreter: CommandInterpreter,
        config: Optional[ServerConfig] = None,
        command_log: Optional[CommandLogger] = None,
    ):
        self.config = config or ServerConfig()
        self._listener = listener
        self._interpreter = interpreter
        self._command_log = command_log

        self._connections: Dict[str, Connection] = {}
        self._running = False
        self._stop_requested = False
        self._closed = False

        # accept() after a readiness event must never block the loop
        self._listener.setblocking(False)

        self._wakeup_recv, self._wakeup_send = socket.socketpair()
        self._wakeup_recv.setblocking(False)
        self._wakeup_send.setblocking(False)

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._listener, selectors.EVENT_READ, data=LISTENER)
        self._selector.register(self._wakeup_recv, selectors.EVENT_READ, data=_WAKEUP)

    # ─────────────────────────────────────────────────────────────────────
    # INTROSPECTION
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def live_connections(self) -> List[Connection]:
        """Snapshot of the currently open connections, oldest first."""
        return list(self._connections.values())

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def __len__(self) -> int:
        return len(self._connections)

    # ─────────────────────────────────────────────────────────────────────
    # ACCEPT
    # ─────────────────────────────────────────────────────────────────────

    def accept_connection(self) -> Optional[str]:
        """
        Accept exactly one pending connection.

        The new connection is registered for readiness and sent the login
        prompt straight away.

        Returns:
            The new connection's id, or None if nothing was pending or the
            prompt could not be written.

        Raises:
            FatalServerError: If accept() fails.
        """
        try:
            client_socket, client_address = self._listener.accept()
        except BlockingIOError:
            # Peer gave up between the readiness event and accept()
            logger.debug("Listener was readable but no connection was pending")
            return None
        except OSError as e:
            logger.critical(f"Accept failed: {e}")
            raise FatalServerError(f"accept() failed: {e}") from e

        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            max_pending_output=self.config.max_pending_output,
        )
        self._selector.register(client_socket, selectors.EVENT_READ, data=conn)
        self._connections[conn.id] = conn

        logger.info(f"[{conn.id}] Accepted connection from {conn.client_ip}:{conn.client_port}")

        if not self.write(conn, to_network_newlines(LOGIN_PROMPT).encode(conn.encoding)):
            return None
        return conn.id

    # ─────────────────────────────────────────────────────────────────────
    # WAIT
    # ─────────────────────────────────────────────────────────────────────

    def poll_ready(self, timeout: Optional[float] = None) -> List[Endpoint]:
        """
        Wait until at least one endpoint is ready.

        Connections that became writable have their queued output flushed
        here; only readable endpoints are handed back.

        Args:
            timeout: Seconds to wait. None waits indefinitely.

        Returns:
            LISTENER if a connection is waiting to be accepted, plus every
            Connection with data (or EOF) to read. Empty if the wait was
            ended by shutdown() or the timeout, or only output was flushed.

        Raises:
            FatalServerError: If the readiness wait itself fails.
        """
        try:
            events = self._selector.select(timeout)
        except OSError as e:
            logger.critical(f"Readiness wait failed: {e}")
            raise FatalServerError(f"select() failed: {e}") from e

        ready: List[Endpoint] = []
        for key, mask in events:
            if key.data is _WAKEUP:
                self._drain_wakeup()
                continue
            if key.data is not LISTENER and mask & selectors.EVENT_WRITE:
                if not self.dispatch_writable(key.data):
                    continue
            if mask & selectors.EVENT_READ:
                ready.append(key.data)
        return ready

    def _drain_wakeup(self) -> None:
        try:
            while self._wakeup_recv.recv(64):
                pass
        except BlockingIOError:
            pass

    # ─────────────────────────────────────────────────────────────────────
    # READ + INTERPRET
    # ─────────────────────────────────────────────────────────────────────

    def dispatch_readable(self, conn: Connection) -> bool:
        """
        Handle one readiness event for a client.

        Performs one bounded read, frames the bytes into lines and runs
        every complete line through the interpreter, queuing each reply
        before the next line is looked at.

        Returns:
            True if the connection is still open afterwards.
        """
        if conn.is_closed:
            return False

        max_bytes = min(conn.framer.room, self.config.read_chunk_size)
        try:
            data = conn.recv(max_bytes)
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            self.teardown(conn, reason="read error")
            return False

        if data is None:
            return True  # spurious wakeup
        if not data:
            self.teardown(conn, reason="peer closed")
            return False

        try:
            conn.framer.feed(data)
        except LineTooLongError as e:
            logger.warning(f"[{conn.id}] {e}")
            self.teardown(conn, reason="line too long")
            return False

        for line in conn.framer.drain():
            if not self._handle_line(conn, line):
                return False

        if conn.framer.is_full:
            # Buffer full and still no CR LF: the line can never complete
            logger.warning(
                f"[{conn.id}] Unterminated line filled the {conn.framer.capacity}-byte buffer"
            )
            self.teardown(conn, reason="line too long")
            return False

        return True

    def _handle_line(self, conn: Connection, line: str) -> bool:
        logged_in = conn.session.logged_in
        started = time.perf_counter()

        reply = self._interpreter.handle_line(conn.session, line)
        conn.lines_handled += 1

        if self._command_log is not None:
            self._command_log.record(conn, line, reply.outcome, started, logged_in)

        if reply.disconnect:
            conn.flush()
            self.teardown(conn, reason="quit")
            return False

        return self.write(conn, reply.encode(conn.encoding))

    # ─────────────────────────────────────────────────────────────────────
    # WRITE
    # ─────────────────────────────────────────────────────────────────────

    def write(self, conn: Connection, data: bytes) -> bool:
        """
        Queue `data` for a client and try to send it once.

        Returns:
            True if the connection is still open afterwards.
        """
        if not conn.send(data):
            self.teardown(conn, reason="write failed")
            return False
        self._watch_writes(conn)
        return True

    def dispatch_writable(self, conn: Connection) -> bool:
        """
        Push queued output to a client whose socket became writable.

        Returns:
            True if the connection is still open afterwards.
        """
        if conn.is_closed:
            return False
        if not conn.flush():
            self.teardown(conn, reason="write failed")
            return False
        self._watch_writes(conn)
        return True

    def _watch_writes(self, conn: Connection) -> None:
        """Watch for writability only while the connection has output queued."""
        events = selectors.EVENT_READ
        if conn.wants_write:
            events |= selectors.EVENT_WRITE
        key = self._selector.get_key(conn.socket)
        if key.events != events:
            self._selector.modify(conn.socket, events, data=conn)

    # ─────────────────────────────────────────────────────────────────────
    # TEARDOWN
    # ─────────────────────────────────────────────────────────────────────

    def teardown(self, conn: Connection, reason: str = "closed") -> None:
        """
        Close a client and forget it.

        Unregisters the socket, closes it, drops the connection from the
        live table and releases its buffer and bound username. Calling it
        again for the same connection does nothing.
        """
        registered = self._connections.pop(conn.id, None) is not None
        if registered:
            try:
                self._selector.unregister(conn.socket)
            except (KeyError, ValueError):
                pass
        elif conn.is_closed:
            return

        username = conn.username
        conn.close()
        logger.info(
            f"[{conn.id}] Disconnected: {reason}"
            + (f" (user '{username}')" if username else "")
        )

    # ─────────────────────────────────────────────────────────────────────
    # LOOP
    # ─────────────────────────────────────────────────────────────────────

    def serve_forever(self) -> None:
        """
        Run the event loop until shutdown() is called.

        All client connections are closed on the way out, whether the loop
        ended normally or with an exception.

        Raises:
            FatalServerError: If accepting or waiting fails.
        """
        self._running = True
        logger.debug("Event loop started")

        try:
            while not self._stop_requested:
                for endpoint in self.poll_ready():
                    if self._stop_requested:
                        break
                    if endpoint is LISTENER:
                        self.accept_connection()
                    else:
                        self._dispatch_isolated(endpoint)
        finally:
            self._running = False
            self.close()

    def _dispatch_isolated(self, conn: Connection) -> None:
        """dispatch_readable(), with a bug in one client's handling contained to it."""
        try:
            self.dispatch_readable(conn)
        except Exception:
            logger.exception(f"[{conn.id}] Unexpected error while handling connection")
            self.teardown(conn, reason="internal error")

    def shutdown(self) -> None:
        """
        Ask the loop to stop.

        Safe to call from another thread or a signal handler, and safe to
        call more than once. A stop requested before serve_forever() starts
        makes it return straight away.
        """
        self._stop_requested = True
        try:
            self._wakeup_send.send(b"\0")
        except OSError:
            pass  # Already closed, or a wakeup is already pending

    def close(self) -> None:
        """Close every client and release the selector. The listener is left open."""
        if self._closed:
            return
        self._closed = True

        for conn in self.live_connections:
            self.teardown(conn, reason="server shutdown")

        self._selector.close()
        self._wakeup_recv.close()
        self._wakeup_send.close()
        logger.debug("Event loop stopped")
