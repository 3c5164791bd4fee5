"""
=============================================================================
SOCIAL GRAPH
=============================================================================

Users, friendships and posts, kept in memory for the life of the process.

    models.py     User, Post, FriendSet, Profile
    outcomes.py   FriendOutcome, PostOutcome (user-error codes)
    store.py      SocialGraph (the one owner of all of the above)

=============================================================================
"""

from .models import FriendSet, Post, Profile, User
from .outcomes import FriendOutcome, PostOutcome
from .store import InvalidUsernameError, SocialGraph

__all__ = [
    "SocialGraph",
    "InvalidUsernameError",
    "User",
    "Post",
    "Profile",
    "FriendSet",
    "FriendOutcome",
    "PostOutcome",
]
