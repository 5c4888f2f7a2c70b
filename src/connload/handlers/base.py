"""Handlers for payloads read by the listeners."""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class BaseHandler(ABC):
    """Base interface for received-payload handlers."""

    @abstractmethod
    def handle(self, data: bytes, address: Any) -> None:
        """
        Handle one message read by a listener.

        A message is a single line (or the bytes read before EOF) for TCP,
        and a single datagram for UDP. Nothing is ever sent back.

        Args:
            data: Received bytes
            address: Remote address
        """
        pass

    def __call__(self, data: bytes, address: Any) -> None:
        self.handle(data, address)


class LoggingHandler(BaseHandler):
    """Logs the remote address and payload when debug logging is enabled."""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def handle(self, data: bytes, address: Any) -> None:
        if self.debug:
            logger.info(
                "read from remote %s: %s",
                format_address(address),
                data.decode("utf-8", errors="replace"),
            )


def format_address(address: Any) -> str:
    """Render a socket address as host:port."""
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)
