"""Load generator configuration settings."""

from dataclasses import dataclass
from typing import Tuple

TCP = "tcp"
UDP = "udp"
PROTOCOLS = (TCP, UDP)

NANOSECONDS_PER_SECOND = 1_000_000_000

# Literal payload written by every connection attempt. No framing.
PAYLOAD = b"msg"

# Size of the UDP listener's receive buffer. Larger datagrams are truncated.
UDP_BUFFER_SIZE = 1024


class ConfigError(ValueError):
    """Raised when a configuration value is rejected at startup."""


@dataclass(frozen=True)
class LoadConfig:
    """Run configuration shared read-only by every component."""

    protocol: str = TCP
    host: str = "127.0.0.1"
    port: int = 8080
    rate: int = 1000  # connection attempts per second
    debug: bool = False
    server: bool = False

    def __post_init__(self):
        """Validate the configuration once, before anything is started."""
        if self.protocol not in PROTOCOLS:
            raise ConfigError(f"Invalid protocol: {self.protocol!r}")
        if isinstance(self.rate, bool) or not isinstance(self.rate, int):
            raise ConfigError(f"Rate must be an integer, got {self.rate!r}")
        if self.rate <= 0:
            raise ConfigError(f"Rate must be greater than 0, got {self.rate}")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Port must be between 0 and 65535, got {self.port}")

    @property
    def interval_ns(self) -> int:
        """Delay between two connection attempts, in whole nanoseconds."""
        return NANOSECONDS_PER_SECOND // self.rate

    @property
    def interval(self) -> float:
        """Delay between two connection attempts, in seconds."""
        return self.interval_ns / NANOSECONDS_PER_SECOND

    @property
    def address(self) -> Tuple[str, int]:
        """Target (client) or bind (server) address."""
        return (self.host, self.port)
