"""Repository factory for building the environment repository graph."""

from typing import TYPE_CHECKING

import structlog

from config_server.core.exceptions import ConfigurationError
from config_server.repositories.composite import CompositeEnvironmentRepository
from config_server.repositories.multiple import MultipleGitEnvironmentRepository

if TYPE_CHECKING:
    from config_server.config.settings import Settings

logger = structlog.get_logger(__name__)


class RepositoryFactory:
    """Creates the environment repository described by the settings.

    ``git`` alone yields a single router. When ``composite`` entries are
    present every entry (and ``git``, if set) becomes one router and the
    routers are merged by order.
    """

    def __init__(self, settings: "Settings") -> None:
        self._settings = settings
        self._environment = None

    def get_environment_repository(self) -> CompositeEnvironmentRepository:
        """Get or create the environment repository."""
        if self._environment is None:
            properties = list(self._settings.composite)
            if self._settings.git is not None:
                properties.insert(0, self._settings.git)
            if not properties:
                raise ConfigurationError(
                    "No git repository configured, set git.uri or composite entries"
                )

            routers = [MultipleGitEnvironmentRepository.from_properties(p) for p in properties]
            self._check_distinct_basedirs(routers)
            repository = CompositeEnvironmentRepository(routers)
            repository.initialize()
            self._environment = repository

            logger.info(
                "Environment repository created",
                repositories=[router.default.uri for router in repository.repositories],
            )

        return self._environment

    @staticmethod
    def _check_distinct_basedirs(routers: list[MultipleGitEnvironmentRepository]) -> None:
        """Every synchronizer must own its working directory."""
        owners: dict[str, str] = {}
        for router in routers:
            repositories = [router.default] + [named.repository for named in router.repos]
            for repository in repositories:
                basedir = str(repository.synchronizer.working_directory)
                if basedir in owners:
                    raise ConfigurationError(
                        f"Repositories share a basedir, configure distinct basedirs: {basedir}",
                        details={"basedir": basedir, "uris": [owners[basedir], repository.uri]},
                    )
                owners[basedir] = repository.uri
