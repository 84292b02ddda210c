"""
pytest configuration and fixtures.
"""

import errno
import socket
from collections import deque
from typing import Generator, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from muxserver import MuxServer, ServerConfig
from muxserver.core import (
    HandleSet,
    Inet4Address,
    MultiplexingLoop,
    SocketOps,
)


LISTENING_HANDLE = 3


class FakeSocketOps(SocketOps):
    """
    Scripted SocketOps for driving the loop without a network.

    ready_script: one entry per select(); an iterable of handles or an
                  exception to raise.
    pending:      accept() results; (handle, peer) or an exception.
    incoming:     handle -> bytes or exception for receive().
    send_errors:  handle -> exception for send().
    send_limit:   cap on bytes "sent" per call, to simulate short sends.
    """

    def __init__(self):
        self.ready_script = deque()
        self.pending = deque()
        self.incoming = {}
        self.send_errors = {}
        self.send_limit = None

        self.create_error = None
        self.bind_error = None
        self.listen_error = None

        self.events = []
        self.waited_on = []
        self.sent = []
        self.closed = []
        self.reuse = []
        self.bound = None
        self.backlog = None
        self._next_handle = LISTENING_HANDLE

    def create(self) -> int:
        if self.create_error:
            raise self.create_error
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def set_reuse_address(self, handle: int) -> None:
        self.reuse.append(handle)

    def bind(self, handle: int, host: str, port: int) -> None:
        if self.bind_error:
            raise self.bind_error
        self.bound = (host, port)

    def listen(self, handle: int, backlog: int) -> None:
        if self.listen_error:
            raise self.listen_error
        self.backlog = backlog

    def local_address(self, handle: int) -> Tuple[str, int]:
        return self.bound or ("0.0.0.0", 0)

    def wait_readable(self, handles: HandleSet) -> HandleSet:
        self.waited_on.append(handles)
        if not self.ready_script:
            raise OSError(errno.EINTR, "No readiness scripted")
        item = self.ready_script.popleft()
        if isinstance(item, BaseException):
            raise item
        # Like select(), only report handles that were asked about
        return HandleSet([h for h in item if h in handles],
                         capacity=handles.capacity)

    def accept(self, handle: int):
        self.events.append(("accept", handle))
        item = self.pending.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    def receive(self, handle: int, max_size: int) -> bytes:
        self.events.append(("recv", handle))
        item = self.incoming.pop(handle)
        if isinstance(item, BaseException):
            raise item
        return item[:max_size]

    def send(self, handle, payload, peer, non_blocking=True) -> int:
        self.events.append(("send", handle))
        if handle in self.send_errors:
            raise self.send_errors[handle]
        self.sent.append((handle, payload, peer, non_blocking))
        if self.send_limit is not None:
            return min(self.send_limit, len(payload))
        return len(payload)

    def close(self, handle: int) -> None:
        self.events.append(("close", handle))
        self.closed.append(handle)

    def connect(self, handle: int, host: str = "127.0.0.1", port: int = 50000,
                message: bytes = None) -> Inet4Address:
        """Queue a client for accept(), optionally with data to read."""
        peer = Inet4Address(host, port)
        self.pending.append((handle, peer))
        if message is not None:
            self.incoming[handle] = message
        return peer


def assert_consistent(loop: MultiplexingLoop):
    """Watched handles (minus the listener) and peer entries match exactly."""
    watched = set(loop.watched)
    assert loop.listening_handle in watched
    assert watched - {loop.listening_handle} == set(loop.peers.handles())


@pytest.fixture
def fake_ops() -> FakeSocketOps:
    return FakeSocketOps()


@pytest.fixture
def loop(fake_ops: FakeSocketOps) -> MultiplexingLoop:
    """Loop over the fake, listening on handle 3."""
    return MultiplexingLoop(fake_ops, LISTENING_HANDLE)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def live_server(free_port: int) -> Generator[MuxServer, None, None]:
    """
    A real server bound to loopback, started but not looping.

    Tests drive it with server.loop.run_once(), so no thread is needed:
    connect() completes against the listen backlog before accept().
    """
    server = MuxServer(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        log_level="WARNING",
    ))
    server.start()

    yield server

    server.ops.close_all()


def recv_all(sock: socket.socket) -> bytes:
    """Read until the server closes its end."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)
