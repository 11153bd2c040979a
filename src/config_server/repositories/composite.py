"""Composite Aggregator: merges environments from several repositories."""

from typing import Protocol

import structlog

from config_server.core.models.environment import Environment, SyncResult
from config_server.utils.patterns import split_list

logger = structlog.get_logger(__name__)


class EnvironmentRepository(Protocol):
    """Anything that resolves an environment and has a priority order."""

    @property
    def order(self) -> int: ...

    def find_one(
        self, application: str, profile: str | None, label: str | None = None
    ) -> Environment: ...


class CompositeEnvironmentRepository:
    """Queries repositories in priority order and appends their sources.

    With a single repository its environment is returned untouched, keeping
    the version and state it reported. With several, earlier repositories'
    sources come first and any failure aborts the whole resolution.
    """

    def __init__(self, repositories: list[EnvironmentRepository]) -> None:
        # sorted() is stable, so equal orders keep declaration order.
        self._repositories = sorted(repositories, key=lambda r: r.order)

    @property
    def repositories(self) -> list[EnvironmentRepository]:
        return list(self._repositories)

    def initialize(self) -> None:
        for repository in self._repositories:
            initialize = getattr(repository, "initialize", None)
            if initialize is not None:
                initialize()

    def find_one(
        self, application: str, profile: str | None, label: str | None = None
    ) -> Environment:
        if len(self._repositories) == 1:
            return self._repositories[0].find_one(application, profile, label)

        environment = Environment(
            name=application, profiles=split_list(profile), label=label
        )
        for repository in self._repositories:
            found = repository.find_one(application, profile, label)
            environment.add_all(found.property_sources)
        logger.debug(
            "Merged composite environment",
            application=application,
            repositories=len(self._repositories),
            sources=len(environment.property_sources),
        )
        return environment

    def get_locations(
        self, application: str, profile: str | None, label: str | None = None
    ) -> list[SyncResult]:
        """Sync results of every repository that works from a local checkout."""
        results: list[SyncResult] = []
        for repository in self._repositories:
            get_locations = getattr(repository, "get_locations", None)
            if get_locations is None:
                continue
            found = get_locations(application, profile, label)
            results += found if isinstance(found, list) else [found]
        return results
