"""Routes requests across a default repository and pattern-matched repositories.

A repository URI may contain ``{application}``, ``{profile}`` and ``{label}``
placeholders. Each distinct substituted URI gets its own working copy, created
on first use and kept for the life of the process.
"""

import hashlib
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from config_server.core.exceptions import ConfigServerError, ConfigurationError
from config_server.core.models.environment import Environment, SyncResult
from config_server.core.models.repository import (
    MultipleGitProperties,
    PatternRepositoryProperties,
)
from config_server.repositories.scm import ScmEnvironmentRepository
from config_server.utils.patterns import PatternRule, split_list

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Settings a named repository takes from the default one unless set explicitly.
INHERITED_FIELDS = ("timeout", "command_timeout", "refresh_rate")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """Outcome of resolving a request against one candidate repository."""

    value: T | None = None
    error: ConfigServerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PatternRepository:
    """A repository paired with the rule that selects it."""

    name: str
    rule: PatternRule
    repository: ScmEnvironmentRepository

    @property
    def order(self) -> int:
        return self.repository.order

    def matches(self, application: str, profile: str | None) -> bool:
        return self.rule.matches(application, profile)


class PlaceholderCache:
    """Substituted URI to repository, created exactly once per URI."""

    def __init__(self) -> None:
        self._entries: dict[str, ScmEnvironmentRepository] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, uri: str, factory: Callable[[], ScmEnvironmentRepository]
    ) -> ScmEnvironmentRepository:
        repository = self._entries.get(uri)
        if repository is not None:
            return repository
        with self._lock:
            repository = self._entries.get(uri)
            if repository is None:
                repository = factory()
                self._entries[uri] = repository
        return repository

    def __contains__(self, uri: str) -> bool:
        return uri in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def inherit_defaults(
    parent: MultipleGitProperties, key: str, child: PatternRepositoryProperties
) -> PatternRepositoryProperties:
    """Fill a named repository's unset settings from the default repository."""
    explicit = child.model_fields_set
    update: dict = {}
    if not child.name:
        update["name"] = key
    if not child.pattern:
        update["pattern"] = [key]
    for field in INHERITED_FIELDS:
        if field not in explicit:
            update[field] = getattr(parent, field)
    if child.username is None:
        update["username"] = parent.username
        update["password"] = parent.password
    if child.passphrase is None:
        update["passphrase"] = parent.passphrase
    if parent.skip_ssl_validation:
        update["skip_ssl_validation"] = True
    return child.model_copy(update=update)


class MultipleGitEnvironmentRepository:
    """Repository Router.

    Named repositories whose patterns match the request are tried first, in
    order. For each, every requested profile yields a candidate, the last
    listed profile first. The first candidate that resolves wins; if none
    does, the default repository answers and its errors propagate.
    """

    def __init__(
        self,
        default: ScmEnvironmentRepository,
        repos: list[PatternRepository] | None = None,
        cache: PlaceholderCache | None = None,
    ) -> None:
        self._default = default
        self._repos = sorted(repos or [], key=lambda r: r.order)
        self._cache = cache or PlaceholderCache()

    @classmethod
    def from_properties(cls, properties: MultipleGitProperties) -> "MultipleGitEnvironmentRepository":
        repos = []
        for key, raw in properties.repos.items():
            child = inherit_defaults(properties, key, raw)
            repos.append(
                PatternRepository(
                    name=child.name or key,
                    rule=PatternRule(child.pattern),
                    repository=ScmEnvironmentRepository.from_properties(child),
                )
            )
        default = ScmEnvironmentRepository.from_properties(
            properties.model_copy(update={"repos": {}})
        )
        return cls(default, repos)

    @property
    def default(self) -> ScmEnvironmentRepository:
        return self._default

    @property
    def repos(self) -> list[PatternRepository]:
        return list(self._repos)

    @property
    def placeholders(self) -> PlaceholderCache:
        return self._cache

    @property
    def order(self) -> int:
        return self._default.order

    def initialize(self) -> None:
        """Validate the base directory and run eager clones."""
        basedir = self._default.synchronizer.working_directory
        try:
            basedir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Basedir does not exist and can not be created: {basedir}"
            ) from e
        if not os.access(basedir.parent, os.W_OK):
            raise ConfigurationError(
                f"Cannot write parent of basedir (please configure a writable location): {basedir}"
            )
        self._default.initialize()
        for named in self._repos:
            named.repository.initialize()

    def find_one(
        self, application: str, profile: str | None, label: str | None = None
    ) -> Environment:
        return self._route(
            application, profile, label,
            lambda repo: repo.find_one(application, profile, label),
        )

    def get_locations(
        self, application: str, profile: str | None, label: str | None = None
    ) -> SyncResult:
        return self._route(
            application, profile, label,
            lambda repo: repo.get_locations(application, profile, label),
        )

    def resolve(
        self, application: str, profile: str | None, label: str | None = None
    ) -> list[ScmEnvironmentRepository]:
        """Candidate repositories for a request, in the order they are tried."""
        candidates: list[ScmEnvironmentRepository] = []
        for named in self._repos:
            if named.matches(application, profile):
                candidates += self._candidates(named.repository, application, profile, label)
        candidates.append(self._repository_for(self._default, application, profile, label))
        return candidates

    def _route(
        self,
        application: str,
        profile: str | None,
        label: str | None,
        operation: Callable[[ScmEnvironmentRepository], T],
    ) -> T:
        *candidates, fallback = self.resolve(application, profile, label)
        for candidate in candidates:
            attempt = self._attempt(candidate, operation)
            if attempt.ok:
                return attempt.value
            logger.debug(
                "Cannot resolve from candidate repository",
                uri=candidate.uri,
                error_type=type(attempt.error).__name__,
                error=str(attempt.error),
            )
        return operation(fallback)

    @staticmethod
    def _attempt(
        candidate: ScmEnvironmentRepository,
        operation: Callable[[ScmEnvironmentRepository], T],
    ) -> Attempt[T]:
        try:
            return Attempt(value=operation(candidate))
        except ConfigServerError as e:
            return Attempt(error=e)

    def _candidates(
        self,
        repository: ScmEnvironmentRepository,
        application: str,
        profile: str | None,
        label: str | None,
    ) -> list[ScmEnvironmentRepository]:
        profiles = split_list(profile) or [None]
        candidates = [
            self._repository_for(repository, application, single, label)
            for single in reversed(profiles)
        ]
        return list({id(c): c for c in candidates}.values())

    def _repository_for(
        self,
        template: ScmEnvironmentRepository,
        application: str | None,
        profile: str | None,
        label: str | None,
    ) -> ScmEnvironmentRepository:
        properties = template.properties
        if not properties.is_template:
            return template
        uri = properties.uri
        if "{label}" in uri and label is None:
            label = properties.default_label
        for placeholder, value in (
            ("{application}", application),
            ("{profile}", profile),
            ("{label}", label),
        ):
            if value is not None:
                uri = uri.replace(placeholder, value)
        return self._cache.get_or_create(uri, lambda: self._derive(template, uri))

    @staticmethod
    def _derive(template: ScmEnvironmentRepository, uri: str) -> ScmEnvironmentRepository:
        basedir = template.properties.basedir
        suffix = hashlib.sha1(uri.encode("utf-8")).hexdigest()[:12]
        properties = template.properties.model_copy(
            update={"uri": uri, "basedir": basedir.parent / f"{basedir.name}-{suffix}"}
        )
        logger.info(
            "Created repository for placeholder URI",
            uri=uri,
            basedir=str(properties.basedir),
        )
        return ScmEnvironmentRepository.from_properties(properties)
