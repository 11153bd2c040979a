"""Environment repository backed by a single git working copy."""

from pathlib import Path

from config_server.core.models.environment import Environment, PropertySource, SyncResult
from config_server.core.models.repository import GitRepositoryProperties
from config_server.git.synchronizer import WorkingCopySynchronizer
from config_server.repositories.native import NativeEnvironmentLoader
from config_server.utils.patterns import split_list


class ScmEnvironmentRepository:
    """Resolves environments from one synchronized working copy.

    The working copy stays on the requested label while its files are read,
    so concurrent requests for other labels cannot switch it underneath.
    """

    def __init__(
        self,
        synchronizer: WorkingCopySynchronizer,
        loader: NativeEnvironmentLoader | None = None,
    ) -> None:
        self._synchronizer = synchronizer
        self._loader = loader or NativeEnvironmentLoader()

    @classmethod
    def from_properties(cls, properties: GitRepositoryProperties) -> "ScmEnvironmentRepository":
        return cls(WorkingCopySynchronizer(properties))

    @property
    def synchronizer(self) -> WorkingCopySynchronizer:
        return self._synchronizer

    @property
    def properties(self) -> GitRepositoryProperties:
        return self._synchronizer.properties

    @property
    def uri(self) -> str:
        return self._synchronizer.uri

    @property
    def order(self) -> int:
        return self.properties.order

    def initialize(self) -> None:
        self._synchronizer.initialize()

    def get_locations(
        self, application: str, profile: str | None, label: str | None = None
    ) -> SyncResult:
        return self._synchronizer.sync(label, application, profile)

    def find_one(
        self, application: str, profile: str | None, label: str | None = None
    ) -> Environment:
        with self._synchronizer.checked_out(label, application, profile) as result:
            sources = self._loader.load(application, profile, result.search_paths)
        environment = Environment(
            name=application,
            profiles=split_list(profile),
            label=result.label,
            version=result.revision,
        )
        environment.add_all([self._clean(source) for source in sources])
        return environment

    def _clean(self, source: PropertySource) -> PropertySource:
        """Name a property source by repository URI instead of local path."""
        path = Path(source.name)
        try:
            relative = path.relative_to(self._synchronizer.working_directory)
        except ValueError:
            return source
        return PropertySource(
            name=f"{self.uri.rstrip('/')}/{relative.as_posix()}", source=source.source
        )

    def __repr__(self) -> str:
        return f"ScmEnvironmentRepository(uri={self.uri!r})"
