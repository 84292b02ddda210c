"""
=============================================================================
MULTIPLEXING LOOP
=============================================================================

One thread, many connections. Instead of parking a thread in recv() for
every client, the loop asks the OS which sockets have something to read
and only touches those.

=============================================================================
ONE ITERATION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. ready = select(snapshot of watched)    ◄── blocks, no timeout   │
    │                                                                      │
    │  2. for fd in 0 .. max_handle:                                       │
    │         if fd not in ready: skip                                     │
    │                                                                      │
    │         fd == listening?                                             │
    │           ├── yes: accept()                                          │
    │           │        watched.add(new_fd)                               │
    │           │        peers.set(new_fd, address)                        │
    │           │                                                          │
    │           └── no:  recv(fd, max_message_size)                        │
    │                    ├── error: log, forget fd                         │
    │                    └── ok:    log, send reply, forget fd             │
    │                                                                      │
    │  "forget fd" = watched.remove(fd), peers.remove(fd), close(fd)       │
    └─────────────────────────────────────────────────────────────────────┘

A connection gets exactly one recv() and at most one send(). Whatever the
client sends after its first message is never read.

=============================================================================
FAILURE POLICY
=============================================================================

select() and accept() failing means the process can't make progress, so
both raise FatalServerError. recv() and send() failures only affect one
client: they are logged and the connection is dropped.

=============================================================================
"""

import logging

from ..config import ServerConfig, DEFAULT_HANDLE_CAPACITY
from ..errors import FatalServerError, HandleCapacityError
from .handle_set import HandleSet
from .peer_directory import PeerDirectory
from .socket_ops import SocketOps


logger = logging.getLogger(__name__)


REPLY_PREFIX = b"We just received your message: "


class MultiplexingLoop:
    """
    The select() loop and the state it owns.

    Args:
        ops: Socket primitives (real or fake).
        listening_handle: Handle of the already listening socket.
        max_message_size: Bytes requested by the single recv().
        handle_capacity: Ceiling for the watched handle set.
        echo_full_buffer: Reply with the whole zero-padded receive buffer
                          instead of only the bytes read.
        log_messages: Log message bodies at DEBUG.

    Usage:
        loop = MultiplexingLoop(SystemSocketOps(), listening_fd)
        loop.run_forever()
    """

    def __init__(self, ops: SocketOps, listening_handle: int,
                 max_message_size: int = 8000,
                 handle_capacity: int = DEFAULT_HANDLE_CAPACITY,
                 echo_full_buffer: bool = False,
                 log_messages: bool = False):
        self._ops = ops
        self._listening_handle = listening_handle
        self._max_message_size = max_message_size
        self._echo_full_buffer = echo_full_buffer
        self._log_messages = log_messages

        self._watched = HandleSet(capacity=handle_capacity)
        self._watched.add(listening_handle)
        self._peers = PeerDirectory()

        # Upper bound of the scan. Only grows; closed handles below it
        # simply never show up as ready again.
        self._max_handle = listening_handle

    @classmethod
    def from_config(cls, ops: SocketOps, listening_handle: int,
                    config: ServerConfig) -> "MultiplexingLoop":
        return cls(
            ops,
            listening_handle,
            max_message_size=config.max_message_size,
            handle_capacity=config.handle_capacity,
            echo_full_buffer=config.echo_full_buffer,
            log_messages=config.log_messages,
        )

    @property
    def listening_handle(self) -> int:
        return self._listening_handle

    @property
    def watched(self) -> HandleSet:
        """Copy of the handles currently watched."""
        return self._watched.snapshot()

    @property
    def peers(self) -> PeerDirectory:
        return self._peers

    @property
    def max_handle(self) -> int:
        return self._max_handle

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def run_forever(self):
        """Serve until a fatal error. Never returns normally."""
        while True:
            self.run_once()

    def run_once(self) -> int:
        """
        Run a single select() and handle everything it reported.

        Returns:
            Number of handles that were ready.

        Raises:
            FatalServerError: select() or accept() failed.
        """
        snapshot = self._watched.snapshot()

        try:
            ready = self._ops.wait_readable(snapshot)
        except OSError as e:
            raise FatalServerError("select", e) from e

        logger.debug(f"Select {len(ready)}")

        for handle in range(self._max_handle + 1):
            if not ready.contains(handle):
                continue
            if handle == self._listening_handle:
                self._accept()
            else:
                self._serve(handle)

        return len(ready)

    # =========================================================================
    # PER-HANDLE WORK
    # =========================================================================

    def _accept(self):
        try:
            handle, peer = self._ops.accept(self._listening_handle)
        except OSError as e:
            raise FatalServerError("accept", e) from e

        try:
            self._watched.add(handle)
        except HandleCapacityError as e:
            logger.error(f"Rejecting connection from {peer}: {e}")
            self._close(handle)
            return

        self._peers.set(handle, peer)
        if handle > self._max_handle:
            self._max_handle = handle

        logger.debug(f"Accepted connection from {peer} on socket {handle}")

    def _serve(self, handle: int):
        try:
            data = self._ops.receive(handle, self._max_message_size)
        except OSError as e:
            logger.error(f"Recvfrom on socket {handle}: {e}")
            self._forget(handle)
            return

        peer = self._peers.get(handle)
        logger.info(f"{len(data)} byte read from {peer} on socket {handle}")

        reply = self.build_reply(data)
        if self._log_messages:
            logger.debug(f"> Received message: {data!r}")

        try:
            sent = self._ops.send(handle, reply, peer, non_blocking=True)
        except OSError as e:
            logger.warning(f"Send to {peer} on socket {handle}: {e}")
        else:
            if sent < len(reply):
                logger.warning(
                    f"Short send to {peer} on socket {handle}: "
                    f"{sent} of {len(reply)} bytes"
                )
            if self._log_messages:
                logger.debug(f"< Response message: {reply!r}")

        self._forget(handle)

    def build_reply(self, data: bytes) -> bytes:
        """
        Wrap received bytes in the reply text.

        With echo_full_buffer the payload is padded with NUL bytes to
        max_message_size, the way a fixed receive buffer would look.
        """
        if self._echo_full_buffer:
            data = data.ljust(self._max_message_size, b"\x00")
        return REPLY_PREFIX + data

    def _forget(self, handle: int):
        self._watched.remove(handle)
        self._peers.remove(handle)
        self._close(handle)

    def _close(self, handle: int):
        try:
            self._ops.close(handle)
        except OSError as e:
            logger.warning(f"Close of socket {handle} failed: {e}")
