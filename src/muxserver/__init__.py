"""
=============================================================================
MUXSERVER - Single-Threaded select() TCP Server
=============================================================================

A small TCP server that watches every client from one thread using
readiness-based I/O multiplexing. Each connection gets exactly one
exchange:

    client ──── "hello world" ────► server
    client ◄─── "We just received your message: hello world" ──── server
    server closes the connection

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    muxserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m muxserver)
    ├── server.py            # MuxServer: listening socket + loop
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Fatal / capacity errors
    └── core/
        ├── handle_set.py    # Bitset of watched handles
        ├── peer_directory.py# Handle → peer address
        ├── socket_ops.py    # OS socket primitives
        └── mux_loop.py      # The select() loop

=============================================================================
QUICK START
=============================================================================

    from muxserver import MuxServer, ServerConfig

    server = MuxServer(ServerConfig(port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import MuxServerError, FatalServerError, HandleCapacityError
from .server import MuxServer

__all__ = [
    "MuxServer",
    "ServerConfig",
    "MuxServerError",
    "FatalServerError",
    "HandleCapacityError",
    "__version__",
]
