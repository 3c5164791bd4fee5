"""
=============================================================================
LISTENING SOCKET
=============================================================================

Owns the one socket every client connects to: creates it, binds it,
puts it in listening mode, and closes it at the end. What happens to the
connections it receives is someone else's job; SocketServer hands the
listening socket to a `serve` callback and waits for it to return.

SERVER-SIDE SOCKET LIFECYCLE:
─────────────────────────────

    1. socket()    Create the TCP socket
    2. bind()      Reserve host:port for this process
    3. listen()    Let the OS queue incoming connections (backlog)
    4. serve()     Hand the socket to the event loop (BLOCKS)
    5. close()     Release the port

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SocketServer                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │    start(serve)                                                     │
    │        ├──► _create_socket()    socket() + SO_REUSEADDR             │
    │        ├──► bind()              fails loudly: port busy, no perms   │
    │        ├──► listen(backlog)                                         │
    │        ├──► _setup_signals()    SIGINT/SIGTERM → shutdown()         │
    │        └──► serve(listener)     BLOCKS until the loop ends          │
    │                                                                     │
    │    shutdown()                                                       │
    │        └──► run shutdown hooks  (e.g. wake the event loop)          │
    │                                                                     │
    │    _cleanup()                                                       │
    │        ├──► restore signal handlers                                 │
    │        └──► close listener                                          │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, List, Optional, Tuple

from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Creates, binds and serves a TCP listening socket.

    Usage:
        def serve(listener: socket.socket):
            ...                          # run until told to stop

        server = SocketServer(config)
        server.add_shutdown_hook(stop_serving)
        server.start(serve)              # Blocks until serve() returns
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog).

        The socket is not created until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._shutdown_requested = False

        # Called by shutdown(); lets the event loop wake itself up
        self._shutdown_hooks: List[Callable[[], None]] = []

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when port 0 asked the OS to pick.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the IPv4 TCP socket with its options set."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Replies are small and interactive; send them right away
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        return sock

    def _setup_signals(self):
        """
        Turn SIGTERM and SIGINT into a graceful shutdown.

        Python only allows signal handlers on the main thread. When the
        server runs anywhere else (tests, embedding) the caller is
        responsible for calling shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, serve: Callable[[socket.socket], None]):
        """
        Bind, listen, and hand the listening socket to `serve`.

        This method BLOCKS until `serve` returns.

        Args:
            serve: Runs the server on the listening socket. Expected to
                   return once shutdown() has been called.

        Raises:
            OSError: If the address cannot be bound.
        """
        # Each run starts clean: a stop or hook from an earlier run is gone
        self._shutdown_requested = False
        self._shutdown_hooks.clear()

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")

        try:
            serve(self._socket)
        finally:
            self._cleanup()

    def add_shutdown_hook(self, hook: Callable[[], None]):
        """
        Register a callable to run when shutdown() is called.

        If shutdown has already been requested the hook runs immediately.
        """
        self._shutdown_hooks.append(hook)
        if self._shutdown_requested:
            hook()

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Can be called from a signal handler, from another thread, or from
        the serving thread itself. Calling it twice is harmless.
        """
        logger.info("Shutting down socket server...")
        self._shutdown_requested = True
        for hook in list(self._shutdown_hooks):
            hook()

    def _cleanup(self):
        """Release the listener and signal handlers."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        logger.info("Socket server stopped")
