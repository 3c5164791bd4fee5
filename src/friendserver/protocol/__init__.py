"""
=============================================================================
LINE PROTOCOL
=============================================================================

The application layer of the server: bytes in, replies out.

    framing.py     LineFramer: bytes -> complete CR-LF lines
    commands.py    CommandInterpreter + Session: line -> Reply
    responses.py   Reply and the wording of every message

    recv() bytes ──► LineFramer.feed() ──► LineFramer.drain() ──► line
                                                                   │
    sendall() ◄── Reply.encode() ◄── CommandInterpreter.handle_line()

=============================================================================
"""

from .framing import LineFramer, LineTooLongError, TERMINATOR
from .commands import Command, CommandInterpreter, Session, SessionState
from .responses import Reply, LOGIN_PROMPT

__all__ = [
    "LineFramer",
    "LineTooLongError",
    "TERMINATOR",
    "CommandInterpreter",
    "Command",
    "Session",
    "SessionState",
    "Reply",
    "LOGIN_PROMPT",
]
