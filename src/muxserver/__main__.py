"""
=============================================================================
MUXSERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:8080)
    python -m muxserver

    # Custom port
    python -m muxserver --port 3000

    # Byte-exact replies (zero-padded to the buffer size)
    python -m muxserver --echo-full-buffer

Defaults come from MUX_* environment variables (see config.py); command
line flags override them.

Exit status: 0 on Ctrl+C, 1 on any fatal socket error.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .errors import FatalServerError
from .server import MuxServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="muxserver",
        description="Single-threaded select() TCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m muxserver                      # Run with defaults
  python -m muxserver --port 3000          # Custom port
  python -m muxserver -l DEBUG             # Log every select()
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"IPv4 address to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--backlog", "-b",
        type=int,
        default=defaults.backlog,
        help=f"Listen backlog (default: {defaults.backlog})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOOP ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-message-size",
        type=int,
        default=defaults.max_message_size,
        help=f"Bytes read per connection (default: {defaults.max_message_size})"
    )

    parser.add_argument(
        "--echo-full-buffer",
        action="store_true",
        default=defaults.echo_full_buffer,
        help="Echo the whole zero-padded receive buffer"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-messages",
        action="store_true",
        help="Log message bodies (needs --log-level DEBUG)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"muxserver {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser(ServerConfig.from_env()).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        max_message_size=args.max_message_size,
        echo_full_buffer=args.echo_full_buffer,
        log_level=args.log_level,
        log_messages=args.log_messages,
    )

    try:
        server = MuxServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except FatalServerError as e:
        print(e, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
