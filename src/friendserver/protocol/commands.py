"""
=============================================================================
COMMAND INTERPRETER
=============================================================================

Turns one decoded protocol line into one Reply, reading and changing the
social graph on the way.

=============================================================================
SESSION STATE MACHINE
=============================================================================

Each connection carries a Session with two states:

        connect
           │
           ▼
    ┌────────────────────┐   empty name: re-prompt
    │ AWAITING_USERNAME  │◄──────────────┐
    └─────────┬──────────┘───────────────┘
              │ any non-empty line = username
              ▼
    ┌────────────────────┐
    │       READY        │◄──── every command except quit
    └─────────┬──────────┘
              │ quit / peer closed
              ▼
         (torn down)

=============================================================================
COMMANDS (READY STATE)
=============================================================================

    quit                      hang up, nothing is written
    list_users                every registered name
    make_friends <user>       symmetric friendship with the caller
    post <user> <msg ...>     post to a friend's profile
    profile <user>            name, friends and posts (newest first)
    (empty line)              nothing
    anything else             "Incorrect syntax"

Lines are split on any run of whitespace. More than `max_tokens` tokens
is a syntax error, as is the wrong number of arguments for a command.
The words of a post are re-joined with single spaces, so

    post bob   hello     there

stores "hello there".

The caller is looked up by name on every command. A Session never holds a
User object, only the name, so it always sees the graph as it is now.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..social.store import SocialGraph
from . import responses
from .responses import Reply


logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Protocol state of one connection."""
    AWAITING_USERNAME = "awaiting_username"
    READY = "ready"


@dataclass
class Session:
    """Per-connection protocol state: where we are and who is logged in."""

    state: SessionState = SessionState.AWAITING_USERNAME
    username: Optional[str] = None

    @property
    def logged_in(self) -> bool:
        return self.state is SessionState.READY

    def bind(self, username: str) -> None:
        self.username = username
        self.state = SessionState.READY

    def reset(self) -> None:
        """Forget the bound identity (used at teardown)."""
        self.username = None
        self.state = SessionState.AWAITING_USERNAME


Handler = Callable[[Session, List[str]], Reply]


@dataclass(frozen=True)
class Command:
    """
    A registered command.

    Attributes:
        name: The first token that selects it.
        handler: Called with the session and the argument tokens.
        min_args: Fewest arguments accepted.
        max_args: Most arguments accepted (None = no limit).
    """

    name: str
    handler: Handler
    min_args: int = 0
    max_args: Optional[int] = 0

    def accepts(self, argc: int) -> bool:
        if argc < self.min_args:
            return False
        return self.max_args is None or argc <= self.max_args


class CommandInterpreter:
    """
    Parses protocol lines and applies them to a SocialGraph.

    Usage:
        graph = SocialGraph()
        interpreter = CommandInterpreter(graph)
        session = Session()

        interpreter.handle_line(session, "alice")       # welcome
        interpreter.handle_line(session, "list_users")  # "User List\\n\\talice\\n"
        interpreter.handle_line(session, "quit")        # Reply(disconnect=True)
    """

    def __init__(self, graph: SocialGraph, max_tokens: int = 11):
        if max_tokens < 3:
            raise ValueError("max_tokens must be >= 3")
        self.graph = graph
        self.max_tokens = max_tokens
        self._commands: Dict[str, Command] = {}

        self.register(Command("quit", self._quit))
        self.register(Command("list_users", self._list_users))
        self.register(Command("make_friends", self._make_friends, min_args=1, max_args=1))
        self.register(Command("post", self._post, min_args=2, max_args=None))
        self.register(Command("profile", self._profile, min_args=1, max_args=1))

    def register(self, command: Command) -> None:
        self._commands[command.name] = command

    @property
    def command_names(self) -> List[str]:
        return list(self._commands)

    # ─────────────────────────────────────────────────────────────────────
    # ENTRY POINT
    # ─────────────────────────────────────────────────────────────────────

    def handle_line(self, session: Session, line: str) -> Reply:
        """Interpret one complete line for the given session."""
        if session.state is SessionState.AWAITING_USERNAME:
            return self._login(session, line)
        return self._dispatch(session, line)

    def _login(self, session: Session, line: str) -> Reply:
        name = line.strip()[:self.graph.max_name_length - 1].rstrip()
        if not name:
            return Reply.text(
                responses.EMPTY_USERNAME + responses.LOGIN_PROMPT,
                outcome="empty_username",
            )

        _, created = self.graph.create_or_fetch(name)
        session.bind(name)

        if created:
            logger.info(f"New user '{name}' logged in")
            return Reply.text(responses.WELCOME, outcome="registered")
        logger.info(f"Returning user '{name}' logged in")
        return Reply.text(responses.WELCOME_BACK, outcome="welcome_back")

    def _dispatch(self, session: Session, line: str) -> Reply:
        tokens = line.split()
        if not tokens:
            return Reply.empty()
        if len(tokens) > self.max_tokens:
            return responses.incorrect_syntax()

        name, args = tokens[0], tokens[1:]
        command = self._commands.get(name)
        if command is None or not command.accepts(len(args)):
            return responses.incorrect_syntax()
        return command.handler(session, args)

    # ─────────────────────────────────────────────────────────────────────
    # COMMAND HANDLERS
    # ─────────────────────────────────────────────────────────────────────

    def _quit(self, session: Session, args: List[str]) -> Reply:
        return Reply.hang_up()

    def _list_users(self, session: Session, args: List[str]) -> Reply:
        return Reply.text(responses.user_list(self.graph.list_usernames()))

    def _make_friends(self, session: Session, args: List[str]) -> Reply:
        outcome = self.graph.make_friends(session.username, args[0])
        return responses.friend_reply(outcome)

    def _post(self, session: Session, args: List[str]) -> Reply:
        target, words = args[0], args[1:]
        outcome = self.graph.make_post(session.username, target, " ".join(words))
        return responses.post_reply(outcome)

    def _profile(self, session: Session, args: List[str]) -> Reply:
        text = self.graph.render_profile(args[0])
        if text is None:
            return responses.user_not_found()
        return Reply.text(text)
