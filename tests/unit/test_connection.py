"""
Unit tests for Connection.
"""

import socket

import pytest

from friendserver.core.connection import Connection, ConnectionState


@pytest.fixture
def pair():
    """(Connection, peer socket) joined by a socketpair."""
    a, b = socket.socketpair()
    b.settimeout(2.0)
    conn = Connection(socket=a, address=("127.0.0.1", 50000), buffer_size=16)
    yield conn, b
    conn.close()
    b.close()


class TestConnection:
    """Tests for Connection I/O and lifecycle."""

    def test_initial_state(self, pair):
        conn, _ = pair
        assert conn.state is ConnectionState.OPEN
        assert conn.client_ip == "127.0.0.1"
        assert conn.client_port == 50000
        assert conn.username is None
        assert conn.framer.capacity == 16
        assert len(conn.id) == 8

    def test_socket_is_non_blocking(self, pair):
        conn, _ = pair
        assert conn.socket.gettimeout() == 0.0

    def test_send(self, pair):
        conn, peer = pair
        assert conn.send(b"User List\r\n\talice\r\n")
        assert peer.recv(100) == b"User List\r\n\talice\r\n"
        assert not conn.wants_write

    def test_send_empty_writes_nothing(self, pair):
        conn, _ = pair
        assert conn.send(b"")

    def test_recv(self, pair):
        conn, peer = pair
        peer.sendall(b"alice\r\n")
        assert conn.recv(16) == b"alice\r\n"

    def test_recv_respects_limit(self, pair):
        conn, peer = pair
        peer.sendall(b"0123456789")
        assert conn.recv(4) == b"0123"

    def test_recv_with_nothing_available(self, pair):
        conn, _ = pair
        assert conn.recv(16) is None

    def test_recv_after_peer_closed(self, pair):
        conn, peer = pair
        peer.close()
        assert conn.recv(16) == b""

    def test_close_releases_state(self, pair):
        conn, peer = pair
        conn.session.bind("alice")
        conn.framer.feed(b"half")

        conn.close()

        assert conn.is_closed
        assert conn.username is None
        assert conn.framer.pending == b""
        assert peer.recv(16) == b""

    def test_close_is_idempotent(self, pair):
        conn, _ = pair
        conn.close()
        conn.close()
        assert conn.state is ConnectionState.CLOSED

    def test_send_after_close_fails(self, pair):
        conn, _ = pair
        conn.close()
        assert conn.send(b"hello") is False

    def test_context_manager(self):
        a, b = socket.socketpair()
        with Connection(socket=a, address=("127.0.0.1", 1)) as conn:
            assert not conn.is_closed
        assert conn.is_closed
        b.close()


BIG = 16 * 1024 * 1024


@pytest.fixture
def slow_reader():
    """Build a Connection whose peer has not read anything yet."""
    made = []

    def build(max_pending_output):
        a, b = socket.socketpair()
        b.settimeout(2.0)
        conn = Connection(socket=a, address=("127.0.0.1", 1), max_pending_output=max_pending_output)
        made.append((conn, b))
        return conn, b

    yield build
    for conn, peer in made:
        conn.close()
        peer.close()


class TestOutbox:
    """Tests for output the client has not read yet."""

    def test_unread_output_is_queued(self, slow_reader):
        conn, peer = slow_reader(max_pending_output=2 * BIG)

        assert conn.send(b"x" * BIG)  # returns without waiting for the peer
        assert conn.wants_write

        received = 0
        while received < BIG:
            received += len(peer.recv(65536))
            assert conn.flush()

        assert received == BIG
        assert not conn.wants_write

    def test_client_too_far_behind_fails(self, slow_reader):
        conn, _ = slow_reader(max_pending_output=1024)

        assert conn.send(b"x" * BIG) is False

    def test_close_drops_queued_output(self, slow_reader):
        conn, _ = slow_reader(max_pending_output=2 * BIG)
        conn.send(b"x" * BIG)

        conn.close()

        assert conn.outbox == bytearray()
        assert not conn.wants_write
