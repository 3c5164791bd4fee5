"""
Unit tests for User, Post, Profile and FriendSet.
"""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from friendserver.social.models import (
    FriendSet,
    Post,
    POST_SEPARATOR,
    Profile,
    SEPARATOR,
    User,
)
from friendserver.social.outcomes import FriendOutcome, PostOutcome


class TestFriendSet:
    """Tests for FriendSet."""

    def test_add_and_contains(self):
        friends = FriendSet(capacity=3)
        bob = User("bob")

        assert friends.add(bob) is True
        assert bob in friends
        assert "bob" in friends
        assert len(friends) == 1

    def test_add_twice(self):
        friends = FriendSet(capacity=3)
        bob = User("bob")
        friends.add(bob)
        assert friends.add(bob) is False
        assert len(friends) == 1

    def test_membership_is_by_identity(self):
        """A different User object with the same name is not the friend."""
        friends = FriendSet(capacity=3)
        friends.add(User("bob"))
        assert User("bob") not in friends

    def test_full_set_raises(self):
        friends = FriendSet(capacity=1)
        friends.add(User("bob"))
        assert friends.is_full
        with pytest.raises(OverflowError):
            friends.add(User("carol"))

    def test_iteration_order(self):
        friends = FriendSet(capacity=3)
        for name in ("carol", "alice", "bob"):
            friends.add(User(name))
        assert friends.names() == ["carol", "alice", "bob"]
        assert [u.name for u in friends] == ["carol", "alice", "bob"]

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            FriendSet(capacity=0)


class TestUser:
    """Tests for User."""

    def test_defaults(self):
        user = User("alice")
        assert user.friends.capacity == 10
        assert user.posts == []

    def test_receive_post_prepends(self):
        user = User("alice")
        user.receive_post(Post("bob", "alice", "one"))
        user.receive_post(Post("bob", "alice", "two"))
        assert [p.content for p in user.posts] == ["two", "one"]

    def test_users_compare_by_identity(self):
        assert User("alice") != User("alice")


class TestPost:
    """Tests for Post."""

    def test_render(self):
        post = Post("bob", "alice", "hello there", created_at=datetime(2026, 10, 19, 12, 0, 0))
        assert post.render() == (
            "From: bob\n"
            "Date: Mon Oct 19 12:00:00 2026\n"
            "\n"
            "hello there\n"
        )

    def test_post_is_immutable(self):
        post = Post("bob", "alice", "hi")
        with pytest.raises(FrozenInstanceError):
            post.content = "changed"


class TestProfile:
    """Tests for Profile rendering."""

    def test_render_empty_profile(self):
        profile = Profile(name="alice", friends=(), posts=())
        assert profile.render() == (
            "Name: alice\n"
            "\n"
            f"{SEPARATOR}\n"
            "Friends:\n"
            f"{SEPARATOR}\n"
            "Posts:\n"
            f"{SEPARATOR}\n"
        )

    def test_posts_are_separated(self):
        when = datetime(2026, 10, 19, 12, 0, 0)
        posts = (
            Post("bob", "alice", "newer", created_at=when),
            Post("carol", "alice", "older", created_at=when),
        )
        profile = Profile(name="alice", friends=("bob", "carol"), posts=posts)
        text = profile.render()

        assert "Friends:\nbob\ncarol\n" in text
        assert posts[0].render() + POST_SEPARATOR + posts[1].render() in text

    def test_of_user(self):
        alice = User("alice")
        bob = User("bob")
        alice.friends.add(bob)
        alice.receive_post(Post("bob", "alice", "hi"))

        profile = Profile.of(alice)
        assert profile.friends == ("bob",)
        assert profile.posts[0].content == "hi"


class TestOutcomes:
    """Tests for outcome enums."""

    def test_ok(self):
        assert FriendOutcome.SUCCESS.ok
        assert not FriendOutcome.CAPACITY_EXCEEDED.ok
        assert PostOutcome.SUCCESS.ok
        assert not PostOutcome.NOT_FRIENDS.ok
