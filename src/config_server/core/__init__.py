"""Core domain models and exceptions for Config Server."""

from config_server.core.exceptions import (
    ConfigServerError,
    ConfigurationError,
    GitCommandError,
    InvalidPropertySourceError,
    NoSuchLabelError,
    NoSuchRepositoryError,
    SyncError,
)
from config_server.core.models import (
    Environment,
    GitRepositoryProperties,
    MultipleGitProperties,
    PatternRepositoryProperties,
    PropertySource,
    SyncResult,
)

__all__ = [
    # Models
    "Environment",
    "PropertySource",
    "SyncResult",
    "GitRepositoryProperties",
    "PatternRepositoryProperties",
    "MultipleGitProperties",
    # Exceptions
    "ConfigServerError",
    "ConfigurationError",
    "NoSuchLabelError",
    "NoSuchRepositoryError",
    "SyncError",
    "GitCommandError",
    "InvalidPropertySourceError",
]
