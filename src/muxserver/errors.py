"""
=============================================================================
SERVER ERRORS
=============================================================================

The server has a deliberately coarse, two-tier failure policy:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  FATAL (raised, process ends)                                       │
    │  ─────────────────────────────────────────────────────────────────  │
    │  socket() · bind() · listen() · select() · accept()                 │
    │  └── Raised as FatalServerError, never retried                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │  RECOVERABLE (logged, connection-scoped)                            │
    │  ─────────────────────────────────────────────────────────────────  │
    │  recv() · send()                                                    │
    │  └── Logged; the connection is removed and closed either way        │
    └─────────────────────────────────────────────────────────────────────┘

Recoverable errors never leave the loop, so they have no exception type of
their own. They stay plain OSError from the socket layer.

=============================================================================
"""


class MuxServerError(Exception):
    """Base class for all errors raised by muxserver."""


class FatalServerError(MuxServerError):
    """
    An unrecoverable infrastructure failure.

    Args:
        operation: The socket operation that failed ("bind", "select", ...).
        cause: The underlying OSError.
    """

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation.capitalize()}: {cause}")


class HandleCapacityError(MuxServerError, ValueError):
    """A handle is negative or does not fit in the handle set."""

    def __init__(self, handle: int, capacity: int):
        self.handle = handle
        self.capacity = capacity
        super().__init__(
            f"Handle {handle} out of range for capacity {capacity}"
        )
