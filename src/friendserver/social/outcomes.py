"""
=============================================================================
SOCIAL GRAPH OUTCOMES
=============================================================================

Every mutation on the social graph can fail for ordinary, user-caused
reasons: the target does not exist, the two users are not friends, somebody
already has too many friends. None of these are server errors, so the store
never raises for them. It returns an outcome code instead, and the command
interpreter maps each code to the text the client sees.

    ┌───────────────────────────────────────────────────────────────────┐
    │  make_friends()                   make_post()                     │
    │  ───────────────                  ───────────                     │
    │  SUCCESS                          SUCCESS                         │
    │  ALREADY_FRIENDS                  NOT_FRIENDS                     │
    │  CAPACITY_EXCEEDED                NOT_FOUND                       │
    │  SELF_FRIEND                                                      │
    │  NOT_FOUND                                                        │
    └───────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import Enum


class FriendOutcome(Enum):
    """Result of a friendship attempt, in the order the checks run."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"                  # one of the two users is unknown
    SELF_FRIEND = "self_friend"              # same user passed twice
    ALREADY_FRIENDS = "already_friends"
    CAPACITY_EXCEEDED = "capacity_exceeded"  # either side is full

    @property
    def ok(self) -> bool:
        return self is FriendOutcome.SUCCESS


class PostOutcome(Enum):
    """Result of a post attempt."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"      # target (or, unexpectedly, author) is unknown
    NOT_FRIENDS = "not_friends"

    @property
    def ok(self) -> bool:
        return self is PostOutcome.SUCCESS
