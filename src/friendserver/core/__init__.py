"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking half of the server: sockets in, sockets out. Nothing here
knows what a friend or a post is.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                               │
    │  Creates the TCP listening socket, binds it, installs signal        │
    │  handlers and hands the socket to the multiplexer.                  │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ listening socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                     CONNECTION MULTIPLEXER                          │
    │  One thread, one selector. Accepts clients, reads whatever is       │
    │  ready, feeds complete lines to the interpreter, writes replies.    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           CONNECTION                                │
    │  Client socket + line buffer + login session.                       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .multiplexer import ConnectionMultiplexer, FatalServerError, LISTENER

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ConnectionMultiplexer",
    "FatalServerError",
    "LISTENER",
]
