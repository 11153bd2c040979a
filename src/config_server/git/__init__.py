"""Git integration module for Config Server."""

from config_server.git.client import GitClient
from config_server.git.credentials import GitCredentials, resolve_credentials
from config_server.git.synchronizer import WorkingCopySynchronizer
from config_server.git.transport import TransportConfig

__all__ = [
    "GitClient",
    "GitCredentials",
    "TransportConfig",
    "WorkingCopySynchronizer",
    "resolve_credentials",
]
