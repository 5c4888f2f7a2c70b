"""Rate-controlled TCP/UDP connection load generator and logging server."""

from connload.client import AttemptResult, Client
from connload.config.settings import ConfigError, LoadConfig
from connload.server import Server

__version__ = "0.1.0"
__all__ = ["Client", "Server", "LoadConfig", "ConfigError", "AttemptResult", "__version__"]
