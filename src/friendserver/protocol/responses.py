"""
=============================================================================
RESPONSE TEXT
=============================================================================

Every line a client sends gets exactly one reply: a (possibly empty) chunk
of text, or a hang-up. This module holds the wording and the small helpers
that build replies, so the interpreter only decides WHICH reply to send.

    ┌────────────────────────────┬──────────────────────────────────────┐
    │ Reply                      │ Wire bytes                           │
    ├────────────────────────────┼──────────────────────────────────────┤
    │ Reply.text("hi\\n")         │ b"hi\\r\\n"                            │
    │ Reply.empty()              │ (nothing written)                    │
    │ Reply.hang_up()            │ (nothing written, connection closed) │
    └────────────────────────────┴──────────────────────────────────────┘

Replies are written with "\\n" line breaks and converted to network
newlines ("\\r\\n") by encode().

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Iterable

from ..social.outcomes import FriendOutcome, PostOutcome


# ─────────────────────────────────────────────────────────────────────────
# FIXED MESSAGES
# ─────────────────────────────────────────────────────────────────────────

LOGIN_PROMPT = "What is your user name?\n"
EMPTY_USERNAME = "Your user name cannot be empty.\n"
WELCOME = "Welcome.\nGo ahead and enter user commands>\n"
WELCOME_BACK = "Welcome back.\nGo ahead and enter user commands>\n"
INCORRECT_SYNTAX = "Incorrect syntax\n"
USER_NOT_FOUND = "User not found\n"

FRIEND_MESSAGES: Dict[FriendOutcome, str] = {
    FriendOutcome.SUCCESS: "",
    FriendOutcome.ALREADY_FRIENDS: "You are already friends\n",
    FriendOutcome.CAPACITY_EXCEEDED: "At least one of you has entered the max number of friends\n",
    FriendOutcome.SELF_FRIEND: "You can't friend yourself\n",
    FriendOutcome.NOT_FOUND: "The user you entered does not exist\n",
}

POST_MESSAGES: Dict[PostOutcome, str] = {
    PostOutcome.SUCCESS: "",
    PostOutcome.NOT_FRIENDS: "You can only post to your friends\n",
    PostOutcome.NOT_FOUND: "The user you want to post to does not exist\n",
}


@dataclass(frozen=True)
class Reply:
    """
    What the server does in answer to one line.

    Attributes:
        body: Text to send back ("" sends nothing).
        disconnect: True if the connection should be closed instead.
        outcome: Short machine-readable label, used for the command log.
    """

    body: str = ""
    disconnect: bool = False
    outcome: str = "ok"

    @classmethod
    def text(cls, body: str, outcome: str = "ok") -> "Reply":
        return cls(body=body, outcome=outcome)

    @classmethod
    def empty(cls) -> "Reply":
        return cls()

    @classmethod
    def hang_up(cls) -> "Reply":
        return cls(disconnect=True, outcome="quit")

    def encode(self, encoding: str = "utf-8") -> bytes:
        """Wire form of the body, with every "\\n" sent as "\\r\\n"."""
        return to_network_newlines(self.body).encode(encoding)


def to_network_newlines(text: str) -> str:
    """Normalise line breaks to CR LF without doubling existing ones."""
    return text.replace("\r\n", "\n").replace("\n", "\r\n")


def user_list(names: Iterable[str]) -> str:
    """
    Format the registered users:

        User List
        \\talice
        \\tbob
    """
    return "User List\n" + "".join(f"\t{name}\n" for name in names)


def friend_reply(outcome: FriendOutcome) -> Reply:
    return Reply.text(FRIEND_MESSAGES[outcome], outcome=outcome.value)


def post_reply(outcome: PostOutcome) -> Reply:
    return Reply.text(POST_MESSAGES[outcome], outcome=outcome.value)


def incorrect_syntax() -> Reply:
    return Reply.text(INCORRECT_SYNTAX, outcome="incorrect_syntax")


def user_not_found() -> Reply:
    return Reply.text(USER_NOT_FOUND, outcome="not_found")
