"""
=============================================================================
MULTIPLEXING SERVER
=============================================================================

Ties configuration, the listening socket and the loop together.

    MuxServer.run()
        │
        ├──► _setup_logging()
        │
        ├──► start()
        │       ├──► create()             socket(AF_INET, SOCK_STREAM)
        │       ├──► set_reuse_address()  SO_REUSEADDR (optional)
        │       ├──► bind()               host:port
        │       ├──► listen()             backlog
        │       └──► MultiplexingLoop(...)
        │
        └──► loop.run_forever()           (blocks here)

Any failure while setting up the listening socket is fatal and raised as
FatalServerError. There is no shutdown path: the process runs until it is
killed or a fatal error escapes.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .errors import FatalServerError
from .core.mux_loop import MultiplexingLoop
from .core.socket_ops import SocketOps, SystemSocketOps


logger = logging.getLogger(__name__)


class MuxServer:
    """
    A select()-based TCP server that answers one message per connection.

    Usage:
        server = MuxServer(ServerConfig(port=8080))
        server.run()   # Blocks forever
    """

    def __init__(self, config: Optional[ServerConfig] = None,
                 ops: Optional[SocketOps] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._ops = ops or SystemSocketOps()
        self._listening_handle: Optional[int] = None
        self._loop: Optional[MultiplexingLoop] = None

    @property
    def ops(self) -> SocketOps:
        return self._ops

    @property
    def loop(self) -> Optional[MultiplexingLoop]:
        """The loop, once start() has run."""
        return self._loop

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before start() this is the configured address; afterwards it is
        what the OS actually assigned, which matters for port 0.
        """
        if self._listening_handle is None:
            return (self.config.host, self.config.port)
        return self._ops.local_address(self._listening_handle)

    def start(self) -> MultiplexingLoop:
        """
        Create, bind and listen on the server socket.

        Raises:
            FatalServerError: any of the setup steps failed.
        """
        if self._loop is not None:
            return self._loop

        try:
            handle = self._ops.create()
        except OSError as e:
            raise FatalServerError("socket", e) from e

        try:
            if self.config.reuse_address:
                self._ops.set_reuse_address(handle)
            self._ops.bind(handle, self.config.host, self.config.port)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise FatalServerError("bind", e) from e

        host, port = self._ops.local_address(handle)
        logger.info(f"Server: Bound to addr: {host}, port: {port}")

        try:
            self._ops.listen(handle, self.config.backlog)
        except OSError as e:
            raise FatalServerError("listen", e) from e

        self._listening_handle = handle
        self._loop = MultiplexingLoop.from_config(self._ops, handle, self.config)

        logger.info(f"Server listening on {host}:{port} (socket {handle})")
        return self._loop

    def run(self):
        """
        Start the server and serve forever.

        Raises:
            FatalServerError: setup, select() or accept() failed.
        """
        self._setup_logging()
        loop = self.start()
        loop.run_forever()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("muxserver").setLevel(level)
