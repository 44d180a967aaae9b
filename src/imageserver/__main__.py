"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    # Serve the current directory on port 23564
    python -m imageserver

    # Serve a specific directory, localhost only
    python -m imageserver --base-dir /srv/images --host 127.0.0.1

    # Bigger cache, verbose logging
    python -m imageserver --cache-size 512 --log-level DEBUG

Options left unset fall back to the IMAGESERVER_* environment variables
(see ServerConfig.from_env), then to the built-in defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, MIB
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imageserver",
        description="Serve image files over HTTP with caching and conditional requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 23564)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (default: 100)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # IMAGE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--base-dir", "-d",
        help="Directory to serve images from (default: current directory)"
    )
    parser.add_argument(
        "--cache-size",
        type=int,
        metavar="MIB",
        help="Memory cache size in MiB (default: 200)"
    )
    parser.add_argument(
        "--no-cors",
        action="store_true",
        help="Do not send CORS headers"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"imageserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-based config with command-line overrides applied."""
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.workers:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.base_dir:
        config.base_dir = args.base_dir
    if args.cache_size is not None:
        config.cache_size_limit = args.cache_size * MIB
        config.max_cacheable_size = min(config.max_cacheable_size, config.cache_size_limit)
    if args.no_cors:
        config.cors_enabled = False
    if args.log_level:
        config.log_level = args.log_level

    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        app = create_app(config)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        app.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
