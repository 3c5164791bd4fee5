"""
=============================================================================
FRIEND SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          FriendServer                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ServerConfig ──► SocketServer        bind / listen / signals      │
    │                        │                                            │
    │                        ▼                                            │
    │                  ConnectionMultiplexer  the event loop              │
    │                        │                                            │
    │                        ▼                                            │
    │                  CommandInterpreter     line -> Reply               │
    │                        │                                            │
    │                        ▼                                            │
    │                  SocialGraph            users, friends, posts       │
    │                                                                     │
    │   CommandLogger records one entry per interpreted line.             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

The social graph lives in memory for the lifetime of the server object.
Connections come and go; users, friendships and posts stay.

=============================================================================
USAGE
=============================================================================

    from friendserver import FriendServer, ServerConfig

    server = FriendServer(ServerConfig(port=4000))
    server.run()            # Blocks until Ctrl+C / SIGTERM / shutdown()

=============================================================================
"""

import logging
import socket
import threading
from typing import List, Optional, Tuple

from .command_log import CommandLogger
from .config import ServerConfig
from .core.connection import Connection
from .core.multiplexer import ConnectionMultiplexer
from .core.socket_server import SocketServer
from .protocol.commands import CommandInterpreter
from .social.store import SocialGraph


logger = logging.getLogger(__name__)


class FriendServer:
    """
    The friend network server.

    Owns the social graph and the command interpreter, and runs a
    ConnectionMultiplexer on the socket that SocketServer opens.
    """

    def __init__(self, config: Optional[ServerConfig] = None, graph: Optional[SocialGraph] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Defaults if not provided.
            graph: Existing social graph to serve. A fresh one if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self.graph = graph if graph is not None else SocialGraph(
            max_friends=self.config.max_friends,
            max_name_length=self.config.max_name_length,
        )
        self.interpreter = CommandInterpreter(
            self.graph,
            max_tokens=self.config.max_command_tokens,
        )
        self.command_log = CommandLogger(
            log_format=self.config.log_format,
            enabled=self.config.log_commands,
        )

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)
        self._multiplexer: Optional[ConnectionMultiplexer] = None

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE
        # ─────────────────────────────────────────────────────────────────

        self._running = False
        self._ready = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening, even if 0 was configured."""
        return self._socket_server.address

    @property
    def connections(self) -> List[Connection]:
        if self._multiplexer is None:
            return []
        return self._multiplexer.live_connections

    def run(self, host: Optional[str] = None, port: Optional[int] = None, banner: bool = False):
        """
        Start the server (blocking).

        Returns once shutdown() is called or a signal is received.

        Args:
            host: Override config host.
            port: Override config port.
            banner: Print a startup banner to stdout.

        Raises:
            OSError: If the address cannot be bound.
            FatalServerError: If the event loop cannot continue.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True

        logger.info(f"Starting friend server on {self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(lambda listener: self._serve(listener, banner))
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            self._ready.clear()
            self._multiplexer = None
            logger.info(
                f"Server stopped ({len(self.graph)} users, "
                f"{self.graph.friendship_count} friendships)"
            )

    def _serve(self, listener: socket.socket, banner: bool):
        """Run the event loop on the listening socket until shutdown."""
        self._multiplexer = ConnectionMultiplexer(
            listener,
            self.interpreter,
            config=self.config,
            command_log=self.command_log,
        )
        self._socket_server.add_shutdown_hook(self._multiplexer.shutdown)

        if banner:
            self._print_startup_banner()

        self._ready.set()
        self._multiplexer.serve_forever()

    def shutdown(self):
        """
        Stop the server.

        Safe to call from another thread. Every client is disconnected;
        the social graph is kept.
        """
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections. False on timeout."""
        return self._ready.wait(timeout)

    def _print_startup_banner(self):
        """Print server startup information."""
        host, port = self.address
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"║  Friend server listening on {host}:{port}".ljust(63) + "║")
        print(f"║  Max friends per user: {self.config.max_friends}".ljust(63) + "║")
        print("║  Connect with: nc -C <host> <port>".ljust(63) + "║")
        print("║  Press Ctrl+C to stop".ljust(63) + "║")
        print("╚══════════════════════════════════════════════════════════════╝")
        print()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("friendserver").setLevel(level)
