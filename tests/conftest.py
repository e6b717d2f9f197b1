"""
Pytest configuration and fixtures for agent client tests.

Provides a fake agent listening on 127.0.0.1 that answers keys with
pre-recorded frames.
"""

import os
import socket
import threading
import time
from typing import Dict, List, Optional

import pytest

from zagent_client.config import HEADER_MAGIC
from zagent_client.frame import LENGTH_WINDOW, encode_varint


def build_frame(data: bytes, header: bytes = HEADER_MAGIC) -> bytes:
    """Lay out ``data`` the way an agent would, padding the length window to 8 bytes."""
    length = encode_varint(len(data))
    return header + length.ljust(LENGTH_WINDOW, b"\x00") + data


NOT_SUPPORTED_FRAME = build_frame(b"ZBX_NOTSUPPORTED\x00Unsupported item key.")


class FakeAgent:
    """Answers one key per connection, then closes it like the real agent does."""

    def __init__(self) -> None:
        self.replies: Dict[str, Optional[bytes]] = {}
        self.received: List[bytes] = []
        # one entry per answered connection: did the client close its end
        self.client_closed: List[bool] = []
        self._stop = threading.Event()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(16)
        self._sock.settimeout(0.1)
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def answer(self, key: str, data) -> None:
        """Frame ``data`` as the reply for ``key``."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.replies[key] = build_frame(data)

    def answer_raw(self, key: str, raw: bytes) -> None:
        self.replies[key] = raw

    def hang(self, key: str) -> None:
        """Accept ``key`` but never answer."""
        self.replies[key] = None

    def wait_closed(self, count: int, timeout: float = 3.0) -> List[bool]:
        deadline = time.monotonic() + timeout
        while len(self.client_closed) < count and time.monotonic() < deadline:
            time.sleep(0.01)
        return list(self.client_closed)

    def start(self) -> "FakeAgent":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=2)
        self._sock.close()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            conn.settimeout(2)
            key = conn.recv(4096)
            self.received.append(key)
            reply = self.replies.get(key.decode("utf-8", errors="replace"), NOT_SUPPORTED_FRAME)
            if reply is None:
                self._stop.wait(5)
                return
            conn.sendall(reply)
            conn.shutdown(socket.SHUT_WR)
            try:
                self.client_closed.append(conn.recv(1) == b"")
            except OSError:
                self.client_closed.append(False)


@pytest.fixture
def fake_agent():
    agent = FakeAgent().start()
    agent.answer("agent.ping", "1")
    agent.answer("agent.version", "6.0.23")
    agent.answer("agent.hostname", "hostA")
    yield agent
    agent.stop()


@pytest.fixture
def frame_of():
    return build_frame


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def clean_environment():
    """Clean environment variables for testing."""
    env_vars_to_clean = [
        'ZABBIX_HOST',
        'ZABBIX_PORT',
        'ZABBIX_TIMEOUT',
        'ZAGENT_STRICT_HEADER',
        'ZAGENT_STRICT_LENGTH',
    ]

    original_env = {}
    for var in env_vars_to_clean:
        if var in os.environ:
            original_env[var] = os.environ[var]
            del os.environ[var]

    yield

    # Restore original environment
    for var, value in original_env.items():
        os.environ[var] = value


@pytest.fixture
def fs_discovery_payload():
    return (
        b'{"data":[{"{#FSNAME}":"/","{#FSTYPE}":"ext4"},'
        b'{"{#FSNAME}":"/boot","{#FSTYPE}":"vfat"}]}'
    )
