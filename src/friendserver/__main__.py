"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m friendserver [options]

Options override environment variables (FRIEND_SERVER_*), which override
the defaults in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import FriendServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Argument parser whose defaults come from `defaults` (i.e. the environment)."""
    parser = argparse.ArgumentParser(
        prog="friendserver",
        description="Line-oriented friend network server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m friendserver                        # 127.0.0.1:53232
  python -m friendserver --port 4000            # Custom port
  python -m friendserver --host 0.0.0.0         # Listen on all interfaces
  python -m friendserver --max-friends 50       # Bigger friend lists
  python -m friendserver --log-format json      # JSON command log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SOCIAL GRAPH ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-friends",
        type=int,
        default=defaults.max_friends,
        help=f"Friend capacity per user (default: {defaults.max_friends})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Command log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--no-command-log",
        action="store_true",
        help="Do not log every interpreted command"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"friendserver {__version__}"
    )

    return parser


def parse_config(argv: Optional[List[str]] = None) -> ServerConfig:
    """Build the ServerConfig for this run from env + command line."""
    config = ServerConfig.from_env()
    args = build_parser(config).parse_args(argv)

    config.host = args.host
    config.port = args.port
    config.max_friends = args.max_friends
    config.log_level = args.log_level
    config.log_format = args.log_format
    if args.no_command_log:
        config.log_commands = False
    return config


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    try:
        config = parse_config(argv)
        server = FriendServer(config)
        server.run(banner=True)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
