"""
=============================================================================
SOCKET OPERATIONS
=============================================================================

The multiplexing loop never touches the socket module directly. It talks to
a SocketOps object that exposes the handful of OS primitives it needs, with
every socket identified by its integer handle (the file descriptor):

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketOps                                                          │
    │  ─────────────────────────────────────────────────────────────────  │
    │  create()                    socket(AF_INET, SOCK_STREAM)           │
    │  set_reuse_address(h)        setsockopt(SO_REUSEADDR)               │
    │  bind(h, host, port)         bind()                                 │
    │  listen(h, backlog)          listen()                               │
    │  local_address(h)            getsockname()                          │
    │  wait_readable(handles)      select() with no timeout               │
    │  accept(h)                   accept() → (handle, peer)              │
    │  receive(h, max_size)        recvfrom()                             │
    │  send(h, payload, peer, nb)  send(MSG_DONTWAIT)                     │
    │  close(h)                    close()                                │
    └─────────────────────────────────────────────────────────────────────┘

All failures surface as OSError; deciding which ones are fatal is the
loop's job, not this layer's.

SystemSocketOps is the real implementation. Tests substitute a scripted
fake so the loop can be driven without a network.

=============================================================================
"""

import errno
import select
import socket
import logging
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from .handle_set import HandleSet
from .peer_directory import PeerAddress, peer_address_from_sockaddr


logger = logging.getLogger(__name__)


class SocketOps(ABC):
    """Abstract capability interface over the OS socket primitives."""

    @abstractmethod
    def create(self) -> int:
        """Create an IPv4 TCP socket and return its handle."""

    @abstractmethod
    def set_reuse_address(self, handle: int) -> None:
        """Allow rebinding an address still in TIME_WAIT."""

    @abstractmethod
    def bind(self, handle: int, host: str, port: int) -> None:
        """Bind the socket to host:port."""

    @abstractmethod
    def listen(self, handle: int, backlog: int) -> None:
        """Mark the socket passive."""

    @abstractmethod
    def local_address(self, handle: int) -> Tuple[str, int]:
        """Return the (host, port) the socket is bound to."""

    @abstractmethod
    def wait_readable(self, handles: HandleSet) -> HandleSet:
        """
        Block until at least one handle is readable.

        No timeout: this waits forever if nothing ever becomes ready.

        Returns:
            The subset of handles that are ready.
        """

    @abstractmethod
    def accept(self, handle: int) -> Tuple[int, PeerAddress]:
        """Accept one pending connection on a listening handle."""

    @abstractmethod
    def receive(self, handle: int, max_size: int) -> bytes:
        """Read at most max_size bytes in a single call."""

    @abstractmethod
    def send(self, handle: int, payload: bytes, peer: PeerAddress,
             non_blocking: bool = True) -> int:
        """Send payload, returning the number of bytes the OS accepted."""

    @abstractmethod
    def close(self, handle: int) -> None:
        """Release the handle."""


class SystemSocketOps(SocketOps):
    """
    SocketOps backed by the socket and select modules.

    Socket objects are kept alive in a handle → socket table; dropping the
    last reference to a Python socket would close the descriptor behind
    the loop's back.
    """

    def __init__(self):
        self._sockets: Dict[int, socket.socket] = {}

    def _socket(self, handle: int) -> socket.socket:
        try:
            return self._sockets[handle]
        except KeyError:
            raise OSError(errno.EBADF, f"Unknown handle {handle}") from None

    def _register(self, sock: socket.socket) -> int:
        handle = sock.fileno()
        self._sockets[handle] = sock
        return handle

    def create(self) -> int:
        # AF_INET = IPv4, SOCK_STREAM = TCP
        return self._register(socket.socket(socket.AF_INET, socket.SOCK_STREAM))

    def set_reuse_address(self, handle: int) -> None:
        self._socket(handle).setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def bind(self, handle: int, host: str, port: int) -> None:
        self._socket(handle).bind((host, port))

    def listen(self, handle: int, backlog: int) -> None:
        self._socket(handle).listen(backlog)

    def local_address(self, handle: int) -> Tuple[str, int]:
        host, port = self._socket(handle).getsockname()[:2]
        return (host, port)

    def wait_readable(self, handles: HandleSet) -> HandleSet:
        # select() accepts plain integers as well as socket objects
        readable, _, _ = select.select(list(handles), [], [])
        return HandleSet(readable, capacity=handles.capacity)

    def accept(self, handle: int) -> Tuple[int, PeerAddress]:
        conn, sockaddr = self._socket(handle).accept()
        try:
            peer = peer_address_from_sockaddr(sockaddr)
        except ValueError:
            conn.close()
            raise
        return self._register(conn), peer

    def receive(self, handle: int, max_size: int) -> bytes:
        data, _ = self._socket(handle).recvfrom(max_size)
        return data

    def send(self, handle: int, payload: bytes, peer: PeerAddress,
             non_blocking: bool = True) -> int:
        # Connection-mode sockets already know their peer; the address is
        # only carried for logging.
        flags = socket.MSG_DONTWAIT if non_blocking else 0
        return self._socket(handle).send(payload, flags)

    def close(self, handle: int) -> None:
        sock = self._sockets.pop(handle, None)
        if sock is None:
            raise OSError(errno.EBADF, f"Unknown handle {handle}")
        sock.close()

    def close_all(self) -> None:
        """Close every socket still open. Used when tearing down tests."""
        for handle in list(self._sockets):
            try:
                self.close(handle)
            except OSError as e:
                logger.debug(f"Close of handle {handle} failed: {e}")
