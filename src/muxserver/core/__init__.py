"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       MULTIPLEXING LOOP                              │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • select() over every watched handle                               │
    │  • accept() on the listening handle                                 │
    │  • one recv / send / close per connection handle                    │
    └─────────────────────────────────────────────────────────────────────┘
                │                        │                      │
                ▼                        ▼                      ▼
    ┌────────────────────┐   ┌────────────────────┐  ┌────────────────────┐
    │     HANDLE SET     │   │   PEER DIRECTORY   │  │     SOCKET OPS     │
    │  bitset of fds     │   │  fd → peer address │  │  OS primitives     │
    └────────────────────┘   └────────────────────┘  └────────────────────┘

=============================================================================
"""

from .handle_set import HandleSet
from .peer_directory import (
    Inet4Address,
    PeerAddress,
    PeerDirectory,
    peer_address_from_sockaddr,
)
from .socket_ops import SocketOps, SystemSocketOps
from .mux_loop import MultiplexingLoop, REPLY_PREFIX

__all__ = [
    "HandleSet",
    "Inet4Address",
    "PeerAddress",
    "PeerDirectory",
    "peer_address_from_sockaddr",
    "SocketOps",
    "SystemSocketOps",
    "MultiplexingLoop",
    "REPLY_PREFIX",
]
