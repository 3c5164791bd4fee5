"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the friend server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m friendserver --port 4000                         │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── FRIEND_SERVER_PORT=4000 python -m friendserver             │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PROTOCOL LIMITS
=============================================================================

Several fields are hard limits of the line protocol rather than tuning
knobs. They bound how much memory one client can make the server hold:

    buffer_size          Bytes of unterminated input kept per connection.
                         A client that fills it without sending CR LF is
                         disconnected.
    read_chunk_size      Most bytes read from a socket in one go.
    max_pending_output   Reply bytes kept for a client that is not reading.
    max_name_length      Usernames are cut to max_name_length - 1 chars.
    max_command_tokens   More words than this on one line is bad syntax.
    max_friends          Friend capacity of every user.

=============================================================================
"""

import os
from dataclasses import dataclass


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the friend server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, max_pending_output

    PROTOCOL LIMITS
    - buffer_size, read_chunk_size, max_name_length, max_command_tokens

    SOCIAL GRAPH
    - max_friends

    LOGGING
    - log_level, log_format, log_commands

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 53232
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 5
    """
    Maximum number of connections the OS queues before we accept() them.
    """

    max_pending_output: int = 16384
    """
    Bytes of reply output a client may leave unread before it is dropped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL LIMITS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 128
    """
    Per-connection line buffer in bytes, CR LF included.
    """

    read_chunk_size: int = 128
    """
    Maximum bytes requested from recv() per readiness event.
    """

    max_name_length: int = 32
    """
    Usernames are strictly shorter than this.
    """

    max_command_tokens: int = 11
    """
    Maximum whitespace-separated tokens in one command line.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SOCIAL GRAPH
    # ─────────────────────────────────────────────────────────────────────

    max_friends: int = 10
    """
    Friend capacity per user.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Command log format: 'json' or 'text'.
    """

    log_commands: bool = True
    """
    Write one command log entry per interpreted line.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FRIEND_SERVER_HOST          Server host (default: 127.0.0.1)
        FRIEND_SERVER_PORT          Server port (default: 53232)
        FRIEND_SERVER_BACKLOG       Listen backlog (default: 5)
        FRIEND_SERVER_BUFFER_SIZE   Line buffer bytes (default: 128)
        FRIEND_SERVER_MAX_PENDING   Unread output bytes (default: 16384)
        FRIEND_SERVER_MAX_FRIENDS   Friend capacity (default: 10)
        FRIEND_SERVER_LOG_LEVEL     Logging level (default: INFO)
        FRIEND_SERVER_LOG_FORMAT    text or json (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("FRIEND_SERVER_HOST", "127.0.0.1"),
            port=int(os.getenv("FRIEND_SERVER_PORT", "53232")),
            backlog=int(os.getenv("FRIEND_SERVER_BACKLOG", "5")),
            buffer_size=int(os.getenv("FRIEND_SERVER_BUFFER_SIZE", "128")),
            max_pending_output=int(os.getenv("FRIEND_SERVER_MAX_PENDING", "16384")),
            max_friends=int(os.getenv("FRIEND_SERVER_MAX_FRIENDS", "10")),
            log_level=os.getenv("FRIEND_SERVER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FRIEND_SERVER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup, so a bad value stops the server before it
        binds a socket rather than after the first client connects.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 8:
            raise ValueError("buffer_size must be >= 8")

        if self.read_chunk_size < 1:
            raise ValueError("read_chunk_size must be >= 1")

        if self.max_name_length < 2:
            raise ValueError("max_name_length must be >= 2")

        if self.max_friends < 1:
            raise ValueError("max_friends must be >= 1")

        if self.max_command_tokens < 3:
            raise ValueError("max_command_tokens must be >= 3")

        if self.max_pending_output < 1:
            raise ValueError("max_pending_output must be >= 1")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
