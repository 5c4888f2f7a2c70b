"""Command-line entry point."""

import argparse
import logging
import sys
from typing import List, Optional

from connload.client import Client
from connload.config.settings import ConfigError, LoadConfig
from connload.server import Server

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging() -> None:
    """Send log lines to stderr; payload lines only appear with --debug."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="connload",
        description=(
            "Open short-lived TCP/UDP connections against a target at a fixed "
            "rate, or run a server that logs what it receives."
        ),
    )
    parser.add_argument("--server", "-server", action="store_true", help="server")
    parser.add_argument(
        "--protocol", "-protocol", default="tcp", help="protocol (tcp or udp)"
    )
    parser.add_argument("--host", "-host", default="127.0.0.1", help="host")
    parser.add_argument("--port", "-port", type=int, default=8080, help="port")
    parser.add_argument(
        "--rate-per-second",
        "-rate-per-second",
        dest="rate",
        type=int,
        default=1000,
        help="rate of connections per second",
    )
    parser.add_argument("--debug", "-debug", action="store_true", help="debug")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the client or the server.

    Returns:
        Process exit code. The client only returns when interrupted.
    """
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        config = LoadConfig(
            protocol=args.protocol,
            host=args.host,
            port=args.port,
            rate=args.rate,
            debug=args.debug,
            server=args.server,
        )
    except ConfigError as e:
        logger.critical("%s", e)
        return 1

    try:
        if config.server:
            try:
                Server(config).run()
            except (OSError, UnicodeError) as e:
                logger.critical("could not create server, err: %s", e)
                return 1
            return 0
        Client(config).run()
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
