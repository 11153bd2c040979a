"""Environment service."""

import time

import structlog

from config_server.core.models.environment import Environment, SyncResult
from config_server.repositories.composite import CompositeEnvironmentRepository

logger = structlog.get_logger(__name__)

# Branch names with slashes travel in a single path segment.
SLASH_PLACEHOLDER = "(_)"


def normalize_label(label: str | None) -> str | None:
    if not label:
        return None
    return label.replace(SLASH_PLACEHOLDER, "/")


class EnvironmentService:
    """Resolves environments and working-copy locations for callers."""

    def __init__(self, repository: CompositeEnvironmentRepository) -> None:
        self._repository = repository

    def find_one(
        self, application: str, profile: str | None = None, label: str | None = None
    ) -> Environment:
        """Resolve the environment for an application, profiles and label."""
        label = normalize_label(label)
        started = time.perf_counter()
        environment = self._repository.find_one(application, profile, label)
        logger.info(
            "Environment resolved",
            application=application,
            profile=profile,
            label=label,
            version=environment.version,
            sources=len(environment.property_sources),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return environment

    def get_locations(
        self, application: str, profile: str | None = None, label: str | None = None
    ) -> list[SyncResult]:
        """Sync and report the revision and search directories of each repository."""
        return self._repository.get_locations(application, profile, normalize_label(label))
