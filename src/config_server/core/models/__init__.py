"""Domain models for Config Server."""

from config_server.core.models.environment import Environment, PropertySource, SyncResult
from config_server.core.models.repository import (
    LOWEST_PRECEDENCE,
    GitRepositoryProperties,
    MultipleGitProperties,
    PatternRepositoryProperties,
)

__all__ = [
    "Environment",
    "PropertySource",
    "SyncResult",
    "GitRepositoryProperties",
    "PatternRepositoryProperties",
    "MultipleGitProperties",
    "LOWEST_PRECEDENCE",
]
