"""
=============================================================================
SOCIAL GRAPH STORE
=============================================================================

The single owner of every User, Friendship and Post in the server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          SocialGraph                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   _users: dict[str, User]     registration order == dict order     │
    │                                                                     │
    │   create_or_fetch(name)  ──► (User, created)                       │
    │   find_user(name)        ──► User | None                           │
    │   list_usernames()       ──► [name, ...]                           │
    │   make_friends(a, b)     ──► FriendOutcome                         │
    │   make_post(a, b, text)  ──► PostOutcome                           │
    │   profile(name)          ──► Profile | None                        │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INVARIANTS
=============================================================================

1. SYMMETRY       b in a.friends  <=>  a in b.friends
2. NO SELF LOOPS  a not in a.friends
3. CAPACITY       len(a.friends) <= max_friends, and a failed attempt
                  changes neither side
4. POSTS          a post from a to b exists only if a and b were friends
                  when it was made; newest post first

The store does no I/O and no locking. It is only ever touched from the
server's single event-loop thread, so each operation runs to completion
before the next one starts.

=============================================================================
"""

import logging
from typing import Dict, List, Optional, Tuple

from .models import Post, Profile, User
from .outcomes import FriendOutcome, PostOutcome


logger = logging.getLogger(__name__)


class InvalidUsernameError(ValueError):
    """Raised when a name is empty or does not fit the name limit."""


class SocialGraph:
    """
    In-memory registry of users, friendships and posts.

    Args:
        max_friends: Friend capacity per user.
        max_name_length: Names must be strictly shorter than this.

    Usage:
        graph = SocialGraph()
        graph.create_or_fetch("alice")
        graph.create_or_fetch("bob")
        graph.make_friends("alice", "bob")     # FriendOutcome.SUCCESS
        graph.make_post("bob", "alice", "hi")  # PostOutcome.SUCCESS
        print(graph.render_profile("alice"))
    """

    def __init__(self, max_friends: int = 10, max_name_length: int = 32):
        if max_friends < 1:
            raise ValueError("max_friends must be >= 1")
        if max_name_length < 2:
            raise ValueError("max_name_length must be >= 2")
        self.max_friends = max_friends
        self.max_name_length = max_name_length
        self._users: Dict[str, User] = {}

    # ─────────────────────────────────────────────────────────────────────
    # USERS
    # ─────────────────────────────────────────────────────────────────────

    def create_or_fetch(self, name: str) -> Tuple[User, bool]:
        """
        Return the user called `name`, creating it on first sight.

        Returns:
            (user, created) where created is False for a returning user.

        Raises:
            InvalidUsernameError: If the name is empty or too long.
        """
        if not name:
            raise InvalidUsernameError("username must not be empty")
        if len(name) >= self.max_name_length:
            raise InvalidUsernameError(
                f"username must be shorter than {self.max_name_length} characters"
            )

        user = self._users.get(name)
        if user is not None:
            return user, False

        user = User(name=name, max_friends=self.max_friends)
        self._users[name] = user
        logger.debug(f"Registered user '{name}' ({len(self._users)} total)")
        return user, True

    def find_user(self, name: str) -> Optional[User]:
        return self._users.get(name)

    def list_usernames(self) -> List[str]:
        """All usernames, in registration order."""
        return list(self._users)

    # ─────────────────────────────────────────────────────────────────────
    # FRIENDSHIPS
    # ─────────────────────────────────────────────────────────────────────

    def make_friends(self, name1: str, name2: str) -> FriendOutcome:
        """
        Make two users friends with each other.

        Checks run in this order, and the first failing one wins:

            NOT_FOUND          either name is unknown
            SELF_FRIEND        both names are the same user
            ALREADY_FRIENDS    the edge already exists
            CAPACITY_EXCEEDED  either side is full

        Both capacity checks happen before either side is touched, so a
        failed attempt never leaves a half-made friendship behind.
        """
        user1 = self._users.get(name1)
        user2 = self._users.get(name2)

        if user1 is None or user2 is None:
            return FriendOutcome.NOT_FOUND
        if user1 is user2:
            return FriendOutcome.SELF_FRIEND
        if user2 in user1.friends:
            return FriendOutcome.ALREADY_FRIENDS
        if user1.friends.is_full or user2.friends.is_full:
            return FriendOutcome.CAPACITY_EXCEEDED

        user1.friends.add(user2)
        user2.friends.add(user1)
        logger.debug(f"'{name1}' and '{name2}' are now friends")
        return FriendOutcome.SUCCESS

    def are_friends(self, name1: str, name2: str) -> bool:
        user1 = self._users.get(name1)
        user2 = self._users.get(name2)
        if user1 is None or user2 is None:
            return False
        return user2 in user1.friends

    @property
    def friendship_count(self) -> int:
        """Number of distinct friendship edges."""
        return sum(len(user.friends) for user in self._users.values()) // 2

    # ─────────────────────────────────────────────────────────────────────
    # POSTS
    # ─────────────────────────────────────────────────────────────────────

    def make_post(self, author: str, target: str, content: str) -> PostOutcome:
        """
        Leave a post from `author` on `target`'s profile.

        The target is resolved before the author, so an unknown target is
        reported as NOT_FOUND even if the author is unknown too. Identical
        posts are never merged; every successful call adds a new entry.
        """
        target_user = self._users.get(target)
        if target_user is None:
            return PostOutcome.NOT_FOUND

        author_user = self._users.get(author)
        if author_user is None:
            return PostOutcome.NOT_FOUND

        if author_user not in target_user.friends:
            return PostOutcome.NOT_FRIENDS

        target_user.receive_post(Post(author=author, target=target, content=content))
        logger.debug(f"'{author}' posted to '{target}' ({len(content)} chars)")
        return PostOutcome.SUCCESS

    # ─────────────────────────────────────────────────────────────────────
    # PROFILES
    # ─────────────────────────────────────────────────────────────────────

    def profile(self, name: str) -> Optional[Profile]:
        user = self._users.get(name)
        if user is None:
            return None
        return Profile.of(user)

    def render_profile(self, name: str) -> Optional[str]:
        """Rendered profile text, or None if there is no such user."""
        snapshot = self.profile(name)
        return snapshot.render() if snapshot else None

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, name: object) -> bool:
        return name in self._users
