"""HTTP API for Config Server."""

from config_server.api.main import create_app

__all__ = ["create_app"]
