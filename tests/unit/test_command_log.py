"""
Unit tests for command logging.
"""

import json
import logging
import socket
import time

import pytest

from friendserver.command_log import CommandLog, CommandLogger, redact
from friendserver.core.connection import Connection


@pytest.fixture
def conn():
    """A Connection over one end of a socketpair."""
    a, b = socket.socketpair()
    connection = Connection(socket=a, address=("10.0.0.7", 40000))
    yield connection
    connection.close()
    b.close()


class TestRedact:
    """Tests for redact()."""

    def test_username_line_logged_whole(self):
        assert redact("  alice  ", logged_in=False) == "alice"

    def test_post_body_dropped(self):
        assert redact("post bob my secret message", logged_in=True) == "post bob"

    def test_short_command(self):
        assert redact("list_users", logged_in=True) == "list_users"


class TestCommandLogger:
    """Tests for CommandLogger."""

    def test_text_format(self, conn, caplog):
        conn.session.bind("alice")
        command_log = CommandLogger()

        with caplog.at_level(logging.INFO, logger="friendserver.commands"):
            entry = command_log.record(conn, "make_friends bob", "not_found", time.perf_counter(), True)

        assert entry.command == "make_friends"
        assert entry.username == "alice"
        assert entry.client_ip == "10.0.0.7"
        message = caplog.records[-1].getMessage()
        assert message.startswith(f'10.0.0.7 [{conn.id}] alice "make_friends bob" -> not_found ')
        assert message.endswith("ms")

    def test_json_format(self, conn, caplog):
        conn.session.bind("alice")
        command_log = CommandLogger(log_format="json")

        with caplog.at_level(logging.INFO, logger="friendserver.commands"):
            command_log.record(conn, "post bob hello there", "success", time.perf_counter(), True)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["connection_id"] == conn.id
        assert payload["line"] == "post bob"
        assert payload["command"] == "post"
        assert payload["outcome"] == "success"
        assert "hello" not in caplog.text

    def test_login_line_has_no_command(self, conn):
        entry = CommandLogger().build(conn.id, conn.client_ip, None, "alice", "registered",
                                      time.perf_counter(), logged_in=False)
        assert entry.command == ""
        assert entry.line == "alice"

    def test_disabled(self, conn, caplog):
        command_log = CommandLogger(enabled=False)
        with caplog.at_level(logging.DEBUG, logger="friendserver.commands"):
            assert command_log.record(conn, "list_users", "ok", time.perf_counter(), True) is None
        assert caplog.records == []

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            CommandLogger(log_format="xml")

    def test_to_text_without_user(self):
        entry = CommandLog(
            connection_id="abcd1234",
            client_ip="127.0.0.1",
            username=None,
            command="",
            line="alice",
            outcome="registered",
            duration_ms=0.5,
            timestamp="2026-10-19T12:00:00+00:00",
        )
        assert entry.to_text() == '127.0.0.1 [abcd1234] - "alice" -> registered 0.50ms'
