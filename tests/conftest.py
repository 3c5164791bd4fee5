"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from friendserver import FriendServer, ServerConfig
from friendserver.protocol.commands import CommandInterpreter, Session
from friendserver.social.store import SocialGraph


@pytest.fixture
def graph() -> SocialGraph:
    """Empty social graph with the default limits."""
    return SocialGraph()


@pytest.fixture
def interpreter(graph: SocialGraph) -> CommandInterpreter:
    """Interpreter over the `graph` fixture."""
    return CommandInterpreter(graph)


@pytest.fixture
def session() -> Session:
    """Fresh session waiting for a username."""
    return Session()


@pytest.fixture
def login(interpreter: CommandInterpreter) -> Callable[[str], Session]:
    """Log a new session in as `name` and return it."""
    def _login(name: str) -> Session:
        s = Session()
        interpreter.handle_line(s, name)
        return s
    return _login


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class LineClient:
    """Blocking test client speaking the CR-LF line protocol."""

    def __init__(self, port: int, timeout: float = 5.0):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self._buffer = b""

    def send_line(self, line: str):
        self.sock.sendall(line.encode() + b"\r\n")

    def send_raw(self, data: bytes):
        self.sock.sendall(data)

    def read_until(self, marker: bytes) -> bytes:
        """Read until `marker` has arrived; return everything up to and including it."""
        while marker not in self._buffer:
            chunk = self.sock.recv(4096)
            if not chunk:
                raise ConnectionError(f"closed before {marker!r}; got {self._buffer!r}")
            self._buffer += chunk
        end = self._buffer.index(marker) + len(marker)
        data, self._buffer = self._buffer[:end], self._buffer[end:]
        return data

    def login(self, name: str) -> bytes:
        """Consume the prompt, send the name and return the welcome text."""
        self.read_until(b"What is your user name?\r\n")
        self.send_line(name)
        return self.read_until(b"Go ahead and enter user commands>\r\n")

    def is_closed_by_peer(self) -> bool:
        """True if the server closed the connection without sending anything more."""
        if self._buffer:
            return False
        try:
            return self.sock.recv(4096) == b""
        except ConnectionResetError:
            return True

    def close(self):
        self.sock.close()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: FriendServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self._clients: List[LineClient] = []

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def client(self) -> LineClient:
        c = LineClient(self.port)
        self._clients.append(c)
        return c

    def stop(self):
        """Stop the server."""
        for c in self._clients:
            c.close()

        if self.server.is_running:
            self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running FriendServer on a free port."""
    test_srv = TestServer(FriendServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
