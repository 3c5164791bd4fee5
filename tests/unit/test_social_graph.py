"""
Unit tests for the social graph store.
"""

import pytest

from friendserver.social.store import InvalidUsernameError, SocialGraph
from friendserver.social.outcomes import FriendOutcome, PostOutcome


def make_graph(*names: str, max_friends: int = 10) -> SocialGraph:
    """Helper to create a graph with some users registered."""
    graph = SocialGraph(max_friends=max_friends)
    for name in names:
        graph.create_or_fetch(name)
    return graph


class TestUsers:
    """Tests for user registration and lookup."""

    def test_create_user(self, graph):
        user, created = graph.create_or_fetch("alice")
        assert created
        assert user.name == "alice"
        assert "alice" in graph
        assert len(graph) == 1

    def test_fetch_existing_user(self, graph):
        first, _ = graph.create_or_fetch("alice")
        second, created = graph.create_or_fetch("alice")
        assert not created
        assert second is first
        assert len(graph) == 1

    def test_names_are_case_sensitive(self, graph):
        graph.create_or_fetch("alice")
        _, created = graph.create_or_fetch("Alice")
        assert created
        assert len(graph) == 2

    def test_empty_name_rejected(self, graph):
        with pytest.raises(InvalidUsernameError):
            graph.create_or_fetch("")

    def test_name_length_limit(self):
        graph = SocialGraph(max_name_length=32)
        graph.create_or_fetch("a" * 31)
        with pytest.raises(InvalidUsernameError):
            graph.create_or_fetch("a" * 32)

    def test_find_user(self, graph):
        user, _ = graph.create_or_fetch("alice")
        assert graph.find_user("alice") is user
        assert graph.find_user("bob") is None

    def test_list_usernames_in_registration_order(self):
        graph = make_graph("carol", "alice", "bob")
        graph.create_or_fetch("alice")  # returning user keeps its place
        assert graph.list_usernames() == ["carol", "alice", "bob"]

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            SocialGraph(max_friends=0)
        with pytest.raises(ValueError):
            SocialGraph(max_name_length=1)


class TestFriendships:
    """Tests for make_friends()."""

    def test_friendship_is_symmetric(self):
        graph = make_graph("alice", "bob")
        assert graph.make_friends("alice", "bob") is FriendOutcome.SUCCESS
        assert graph.are_friends("alice", "bob")
        assert graph.are_friends("bob", "alice")
        assert graph.friendship_count == 1

    def test_already_friends(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")
        assert graph.make_friends("bob", "alice") is FriendOutcome.ALREADY_FRIENDS
        assert len(graph.find_user("alice").friends) == 1

    def test_self_friend(self):
        graph = make_graph("alice")
        assert graph.make_friends("alice", "alice") is FriendOutcome.SELF_FRIEND
        alice = graph.find_user("alice")
        assert alice not in alice.friends

    def test_unknown_target(self):
        graph = make_graph("alice")
        assert graph.make_friends("alice", "bob") is FriendOutcome.NOT_FOUND
        assert len(graph.find_user("alice").friends) == 0

    def test_unknown_user_beats_self_friend(self):
        graph = make_graph()
        assert graph.make_friends("ghost", "ghost") is FriendOutcome.NOT_FOUND

    def test_already_friends_beats_capacity(self):
        graph = make_graph("alice", "bob", "carol", max_friends=1)
        graph.make_friends("alice", "bob")
        assert graph.make_friends("alice", "bob") is FriendOutcome.ALREADY_FRIENDS

    def test_capacity_exceeded_changes_neither_side(self):
        """A full requester must not gain a one-sided edge on the target."""
        graph = make_graph("alice", "bob", "carol", max_friends=1)
        graph.make_friends("alice", "bob")

        assert graph.make_friends("alice", "carol") is FriendOutcome.CAPACITY_EXCEEDED
        assert graph.make_friends("carol", "alice") is FriendOutcome.CAPACITY_EXCEEDED

        carol = graph.find_user("carol")
        assert len(carol.friends) == 0
        assert graph.find_user("alice").friends.names() == ["bob"]

    def test_fill_to_capacity(self):
        names = [f"user{i}" for i in range(11)]
        graph = make_graph("hub", *names)

        for name in names[:10]:
            assert graph.make_friends("hub", name) is FriendOutcome.SUCCESS
        assert graph.make_friends("hub", names[10]) is FriendOutcome.CAPACITY_EXCEEDED
        assert len(graph.find_user("hub").friends) == 10

    def test_friends_listed_in_friendship_order(self):
        graph = make_graph("alice", "bob", "carol", "dave")
        graph.make_friends("alice", "dave")
        graph.make_friends("carol", "alice")
        graph.make_friends("alice", "bob")
        assert graph.find_user("alice").friends.names() == ["dave", "carol", "bob"]


class TestPosts:
    """Tests for make_post()."""

    def test_post_between_friends(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")

        assert graph.make_post("bob", "alice", "hello there") is PostOutcome.SUCCESS

        posts = graph.find_user("alice").posts
        assert len(posts) == 1
        assert posts[0].author == "bob"
        assert posts[0].target == "alice"
        assert posts[0].content == "hello there"

    def test_post_requires_friendship(self):
        graph = make_graph("alice", "bob")
        assert graph.make_post("bob", "alice", "hi") is PostOutcome.NOT_FRIENDS
        assert graph.find_user("alice").posts == []

    def test_post_to_unknown_target(self):
        graph = make_graph("alice")
        assert graph.make_post("alice", "ghost", "hi") is PostOutcome.NOT_FOUND

    def test_unknown_target_reported_before_unknown_author(self):
        graph = make_graph()
        assert graph.make_post("nobody", "ghost", "hi") is PostOutcome.NOT_FOUND

    def test_unknown_author(self):
        graph = make_graph("alice")
        assert graph.make_post("ghost", "alice", "hi") is PostOutcome.NOT_FOUND

    def test_identical_posts_are_not_merged(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")
        graph.make_post("bob", "alice", "same")
        graph.make_post("bob", "alice", "same")
        assert len(graph.find_user("alice").posts) == 2

    def test_posts_newest_first(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")
        graph.make_post("bob", "alice", "first")
        graph.make_post("alice", "alice", "to myself")  # not friends with self
        graph.make_post("bob", "alice", "second")

        contents = [p.content for p in graph.find_user("alice").posts]
        assert contents == ["second", "first"]

    def test_post_to_self_is_not_friends(self):
        graph = make_graph("alice")
        assert graph.make_post("alice", "alice", "hi") is PostOutcome.NOT_FRIENDS


class TestProfiles:
    """Tests for profile snapshots and rendering."""

    def test_unknown_profile(self, graph):
        assert graph.profile("ghost") is None
        assert graph.render_profile("ghost") is None

    def test_profile_snapshot(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")
        graph.make_post("bob", "alice", "hi")

        profile = graph.profile("alice")
        assert profile.name == "alice"
        assert profile.friends == ("bob",)
        assert [p.content for p in profile.posts] == ["hi"]

        # later changes do not leak into the snapshot
        graph.make_post("bob", "alice", "again")
        assert len(profile.posts) == 1

    def test_render_profile(self):
        graph = make_graph("alice", "bob")
        graph.make_friends("alice", "bob")
        graph.make_post("bob", "alice", "older")
        graph.make_post("bob", "alice", "newer")

        text = graph.render_profile("alice")

        assert text.startswith("Name: alice\n")
        assert "Friends:\nbob\n" in text
        assert text.index("newer") < text.index("older")
        assert text.endswith("-" * 42 + "\n")
