"""Environment repositories: single, routed and composite."""

from config_server.repositories.composite import CompositeEnvironmentRepository
from config_server.repositories.factory import RepositoryFactory
from config_server.repositories.multiple import (
    MultipleGitEnvironmentRepository,
    PatternRepository,
    PlaceholderCache,
)
from config_server.repositories.native import NativeEnvironmentLoader
from config_server.repositories.scm import ScmEnvironmentRepository

__all__ = [
    "CompositeEnvironmentRepository",
    "MultipleGitEnvironmentRepository",
    "NativeEnvironmentLoader",
    "PatternRepository",
    "PlaceholderCache",
    "RepositoryFactory",
    "ScmEnvironmentRepository",
]
