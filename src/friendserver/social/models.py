"""
=============================================================================
SOCIAL GRAPH DATA MODEL
=============================================================================

The three things the server remembers about its community:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   User ──────────── friends (FriendSet, bounded, symmetric)         │
    │    │                                                                │
    │    └── posts  (list[Post], newest first)                            │
    │                                                                     │
    │   Post                                                              │
    │    ├── author   (name of the user who wrote it)                     │
    │    ├── target   (name of the user whose wall it is on)              │
    │    ├── content  (free text)                                         │
    │    └── created_at                                                   │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Friends are held as references to the canonical User objects owned by the
store, never as copies. A User never points at a Connection; connections
find their user again by name for every command.

=============================================================================
FRIEND SET
=============================================================================

A friend list has two properties that a plain Python set does not give us:

1. ORDER      Friends are listed in the order the friendships were made.
2. CAPACITY   A user can have at most `capacity` friends.

FriendSet wraps a dict (insertion ordered since Python 3.7) keyed by name,
so membership tests are O(1) and iteration follows insertion order.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Tuple


SEPARATOR = "-" * 42
POST_SEPARATOR = "\n===\n\n"


class FriendSet:
    """
    Capacity-bounded, insertion-ordered set of friends.

    Usage:
        friends = FriendSet(capacity=10)
        friends.add(bob)          # True
        friends.add(bob)          # False, already present
        bob in friends            # True
        len(friends)              # 1
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._members: Dict[str, "User"] = {}

    def add(self, user: "User") -> bool:
        """
        Add a friend.

        Returns:
            True if the friend was added, False if already present.

        Raises:
            OverflowError: If the set is already at capacity.
        """
        if user.name in self._members:
            return False
        if self.is_full:
            raise OverflowError(f"friend set is full ({self.capacity})")
        self._members[user.name] = user
        return True

    @property
    def is_full(self) -> bool:
        return len(self._members) >= self.capacity

    def names(self) -> List[str]:
        return list(self._members)

    def __contains__(self, user: object) -> bool:
        if isinstance(user, User):
            return self._members.get(user.name) is user
        if isinstance(user, str):
            return user in self._members
        return False

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator["User"]:
        return iter(self._members.values())

    def __repr__(self) -> str:
        return f"FriendSet({self.names()!r}, capacity={self.capacity})"


@dataclass(frozen=True)
class Post:
    """A message left by `author` on `target`'s profile. Immutable."""

    author: str
    target: str
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now().astimezone())

    def render(self) -> str:
        """
        Format the post the way it appears on a profile:

            From: bob
            Date: Mon Oct 19 12:00:00 2026

            hello there
        """
        return (
            f"From: {self.author}\n"
            f"Date: {self.created_at.ctime()}\n"
            f"\n"
            f"{self.content}\n"
        )


@dataclass(eq=False)
class User:
    """
    A registered user.

    Users compare by identity: there is exactly one User object per name,
    owned by the SocialGraph.
    """

    name: str
    max_friends: int = 10
    friends: FriendSet = field(init=False, repr=False)
    posts: List[Post] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.friends = FriendSet(self.max_friends)

    def receive_post(self, post: Post) -> None:
        """Prepend a post so the list stays newest-first."""
        self.posts.insert(0, post)


@dataclass(frozen=True)
class Profile:
    """Read-only snapshot of a user, taken at the moment it was requested."""

    name: str
    friends: Tuple[str, ...]
    posts: Tuple[Post, ...]

    @classmethod
    def of(cls, user: User) -> "Profile":
        return cls(
            name=user.name,
            friends=tuple(user.friends.names()),
            posts=tuple(user.posts),
        )

    def render(self) -> str:
        """
        Render the profile as plain text.

            Name: alice

            ------------------------------------------
            Friends:
            bob
            ------------------------------------------
            Posts:
            From: bob
            ...
            ------------------------------------------
        """
        lines = [f"Name: {self.name}", "", SEPARATOR, "Friends:"]
        lines.extend(self.friends)
        lines.extend([SEPARATOR, "Posts:"])
        text = "\n".join(lines) + "\n"
        text += POST_SEPARATOR.join(post.render() for post in self.posts)
        return text + SEPARATOR + "\n"
