"""Business logic services for Config Server."""

from config_server.services.environment import EnvironmentService

__all__ = ["EnvironmentService"]
