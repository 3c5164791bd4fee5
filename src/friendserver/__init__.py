"""
=============================================================================
FRIENDSERVER - A Tiny Social Network Over Raw TCP
=============================================================================

Clients connect with a line-oriented terminal client (telnet, nc -C),
pick a username, and then befriend each other, write on each other's
walls and read profiles. One thread serves every client through a
readiness loop; all state lives in memory.

=============================================================================
PROTOCOL AT A GLANCE
=============================================================================

    S: What is your user name?
    C: alice
    S: Welcome.
       Go ahead and enter user commands>
    C: make_friends bob
    S: The user you entered does not exist
    C: list_users
    S: User List
           alice
    C: quit

    Commands (after login):
        list_users                      every username, oldest first
        make_friends <user>             mutual friendship
        post <user> <message...>        write on a friend's profile
        profile <user>                  friends and posts of a user
        quit                            disconnect

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    friendserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m friendserver)
    ├── server.py            # FriendServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── command_log.py       # One log entry per interpreted line
    ├── core/                # Networking
    │   ├── socket_server.py # Listening socket + signals
    │   ├── multiplexer.py   # Single-threaded readiness loop
    │   └── connection.py    # Per-client socket, buffer and session
    ├── protocol/            # Line protocol
    │   ├── framing.py       # CR-LF line framing
    │   ├── commands.py      # Login + command dispatch
    │   └── responses.py     # Reply wording
    └── social/              # Domain model
        ├── models.py        # User, Post, Profile, FriendSet
        ├── outcomes.py      # Result enums for friend/post
        └── store.py         # SocialGraph

=============================================================================
QUICK START
=============================================================================

    python -m friendserver --port 53232

    from friendserver import FriendServer, ServerConfig
    FriendServer(ServerConfig(port=53232)).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import FriendServer
from .config import ServerConfig

__all__ = ["FriendServer", "ServerConfig", "__version__"]
