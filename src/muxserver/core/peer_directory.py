"""
=============================================================================
PEER DIRECTORY
=============================================================================

Remembers who is on the other end of each accepted connection.

    ┌──────────┬──────────────────────────────┐
    │  handle  │  peer address                │
    ├──────────┼──────────────────────────────┤
    │     4    │  Inet4Address(127.0.0.1, 51234)
    │     5    │  Inet4Address(10.0.0.7, 40022)
    └──────────┴──────────────────────────────┘

An entry exists from accept() until the connection is closed. The loop is
the only writer.

=============================================================================
PEER ADDRESSES
=============================================================================

Python's socket layer hands back addresses as bare tuples whose shape
depends on the address family: (host, port) for IPv4, (host, port,
flowinfo, scope_id) for IPv6, a path string for AF_UNIX. Instead of
passing those around and checking shapes at every use site, addresses are
converted once, at accept time, into a closed set of frozen dataclasses.
Only IPv4 is served, so only Inet4Address exists.

=============================================================================
"""

import ipaddress
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Tuple, Union


@dataclass(frozen=True)
class Inet4Address:
    """An IPv4 endpoint."""

    host: str
    port: int

    def __post_init__(self):
        # Rejects anything that isn't dotted-quad IPv4
        ipaddress.IPv4Address(self.host)
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")

    def to_sockaddr(self) -> Tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


PeerAddress = Union[Inet4Address]


def peer_address_from_sockaddr(sockaddr: Any) -> PeerAddress:
    """
    Convert a socket-module address into a PeerAddress.

    Raises:
        ValueError: the address is not an IPv4 (host, port) pair.
    """
    if (isinstance(sockaddr, tuple) and len(sockaddr) == 2
            and isinstance(sockaddr[0], str) and isinstance(sockaddr[1], int)):
        try:
            return Inet4Address(sockaddr[0], sockaddr[1])
        except ValueError as e:
            raise ValueError(f"Unsupported peer address {sockaddr!r}: {e}") from e
    raise ValueError(f"Unsupported peer address {sockaddr!r}")


class PeerDirectory:
    """Mapping of connection handle to peer address."""

    def __init__(self):
        self._peers: Dict[int, PeerAddress] = {}

    def set(self, handle: int, address: PeerAddress) -> None:
        self._peers[handle] = address

    def get(self, handle: int) -> PeerAddress:
        """
        Look up a peer.

        Raises:
            KeyError: no entry for this handle. The loop only asks for
                      handles it is watching, so this means a bug.
        """
        return self._peers[handle]

    def remove(self, handle: int) -> None:
        self._peers.pop(handle, None)

    def handles(self) -> Iterator[int]:
        return iter(sorted(self._peers))

    def __contains__(self, handle: object) -> bool:
        return handle in self._peers

    def __len__(self) -> int:
        return len(self._peers)

    def __repr__(self) -> str:
        entries = ", ".join(f"{h}: {a}" for h, a in sorted(self._peers.items()))
        return f"PeerDirectory({{{entries}}})"
