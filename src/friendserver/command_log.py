"""
=============================================================================
COMMAND LOGGING
=============================================================================

One log entry per interpreted protocol line: who sent what, what came of
it, and how long it took. Entries go to the "friendserver.commands" logger
so they can be routed or silenced separately from the server's own
diagnostics.

User mistakes (unknown user, not friends, bad syntax) are recorded here at
INFO as ordinary outcomes. They are never logged as server errors.

=============================================================================
FORMATS
=============================================================================

text:
    127.0.0.1 [3f2a9c1b] alice "make_friends bob" -> not_found 0.04ms

json:
    {"connection_id": "3f2a9c1b", "client_ip": "127.0.0.1",
     "username": "alice", "command": "make_friends", "line": "make_friends bob",
     "outcome": "not_found", "duration_ms": 0.04, "timestamp": "..."}

Post bodies are not logged; only the command word and the target are.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .config import LOG_FORMATS


logger = logging.getLogger("friendserver.commands")


@dataclass
class CommandLog:
    """
    Structured log entry for one command line.

    Fields:
        connection_id:  Short id of the connection
        client_ip:      Peer address
        username:       Bound user, None before login
        command:        First token of the line ("" for blank lines)
        line:           Redacted line (command + first argument)
        outcome:        Reply outcome label
        duration_ms:    Time spent interpreting the line
        timestamp:      When the line was handled (UTC, ISO 8601)
    """

    connection_id: str
    client_ip: str
    username: Optional[str]
    command: str
    line: str
    outcome: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "username": self.username,
            "command": self.command,
            "line": self.line,
            "outcome": self.outcome,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip} [{self.connection_id}] {self.username or "-"} '
            f'"{self.line}" -> {self.outcome} {self.duration_ms:.2f}ms'
        )


def redact(line: str, logged_in: bool) -> str:
    """
    Keep only what is safe to log.

    Before login the line is a username and is logged whole. After login
    only the command word and its first argument are kept.
    """
    if not logged_in:
        return line.strip()
    return " ".join(line.split()[:2])


class CommandLogger:
    """
    Builds and emits CommandLog entries.

    Usage:
        command_log = CommandLogger(log_format="json")
        started = time.perf_counter()
        reply = interpreter.handle_line(session, line)
        command_log.record(conn, line, reply.outcome, started, was_logged_in)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO, enabled: bool = True):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
        self.log_format = log_format
        self.log_level = log_level
        self.enabled = enabled

    def build(
        self,
        connection_id: str,
        client_ip: str,
        username: Optional[str],
        line: str,
        outcome: str,
        started: float,
        logged_in: bool,
    ) -> CommandLog:
        tokens = line.split()
        return CommandLog(
            connection_id=connection_id,
            client_ip=client_ip,
            username=username,
            command=tokens[0] if tokens and logged_in else "",
            line=redact(line, logged_in),
            outcome=outcome,
            duration_ms=(time.perf_counter() - started) * 1000,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def format(self, entry: CommandLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def record(self, conn, line: str, outcome: str, started: float, logged_in: bool) -> Optional[CommandLog]:
        """Log one handled line for `conn`. Returns the entry, or None if disabled."""
        if not self.enabled:
            return None
        entry = self.build(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            username=conn.username,
            line=line,
            outcome=outcome,
            started=started,
            logged_in=logged_in,
        )
        logger.log(self.log_level, self.format(entry))
        return entry
