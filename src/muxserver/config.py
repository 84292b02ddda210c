"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the multiplexing server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m muxserver --port 3000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MUX_PORT=3000 python -m muxserver                         │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The defaults reproduce the classic select() test server: loopback only,
port 8080, a backlog of 100 and an 8000 byte receive buffer.

=============================================================================
"""

import os
from dataclasses import dataclass


# select() can only watch descriptors below FD_SETSIZE.
DEFAULT_HANDLE_CAPACITY = 1024


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for the multiplexing server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, reuse_address

    LOOP SETTINGS
    - max_message_size, handle_capacity, echo_full_buffer

    LOGGING
    - log_level, log_messages

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IPv4 address to bind to. Only IPv4 is supported."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 100
    """
    Maximum number of queued connections.
    Connections wait here until the loop gets around to accept().
    """

    reuse_address: bool = True
    """Set SO_REUSEADDR so restarts don't fail with 'Address already in use'."""

    # ─────────────────────────────────────────────────────────────────────
    # LOOP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_message_size: int = 8000
    """
    Size of the single receive per connection, in bytes.
    Anything the client sends beyond this is never read.
    """

    handle_capacity: int = DEFAULT_HANDLE_CAPACITY
    """Highest handle value + 1 the loop can watch."""

    echo_full_buffer: bool = False
    """
    Echo the whole receive buffer, zero padding included.

    False (default) echoes only the bytes actually read.
    True matches the classic fixed-buffer wire output byte for byte.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_messages: bool = False
    """Log received messages and replies at DEBUG level."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MUX_HOST              Server host (default: 127.0.0.1)
        MUX_PORT              Server port (default: 8080)
        MUX_BACKLOG           Listen backlog (default: 100)
        MUX_MAX_MESSAGE_SIZE  Receive size in bytes (default: 8000)
        MUX_ECHO_FULL_BUFFER  Echo zero-padded buffer (default: false)
        MUX_LOG_LEVEL         Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("MUX_HOST", "127.0.0.1"),
            port=int(os.getenv("MUX_PORT", "8080")),
            backlog=int(os.getenv("MUX_BACKLOG", "100")),
            max_message_size=int(os.getenv("MUX_MAX_MESSAGE_SIZE", "8000")),
            echo_full_buffer=_env_flag("MUX_ECHO_FULL_BUFFER"),
            log_level=os.getenv("MUX_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so bad values fail before any socket exists.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_message_size < 1:
            raise ValueError("max_message_size must be >= 1")

        if self.handle_capacity < 1:
            raise ValueError("handle_capacity must be >= 1")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with dataclass
# 2. Environment variable support (MUX_*)
# 3. Validation at startup (fail-fast)
# =============================================================================
