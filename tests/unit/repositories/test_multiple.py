"""Tests for the repository router."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from config_server.core.exceptions import (
    ConfigurationError,
    NoSuchLabelError,
    NoSuchRepositoryError,
)
from config_server.core.models.repository import PatternRepositoryProperties
from config_server.repositories.multiple import (
    MultipleGitEnvironmentRepository,
    PlaceholderCache,
    inherit_defaults,
)
from tests.git_helpers import git
from tests.factories import MultipleGitPropertiesFactory, PatternRepositoryPropertiesFactory


def head(repo: Path) -> str:
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def work(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest.mark.unit
class TestPlaceholderCache:
    """Tests for PlaceholderCache."""

    def test_created_once(self) -> None:
        cache = PlaceholderCache()
        sentinel = object()
        calls = []

        def factory():
            calls.append(1)
            return sentinel

        assert cache.get_or_create("uri", factory) is sentinel
        assert cache.get_or_create("uri", factory) is sentinel
        assert len(calls) == 1
        assert "uri" in cache
        assert len(cache) == 1

    def test_concurrent_first_access_creates_one(self) -> None:
        cache = PlaceholderCache()
        created = []
        start = threading.Barrier(8)

        def factory():
            time.sleep(0.05)
            instance = object()
            created.append(instance)
            return instance

        def access(_):
            start.wait()
            return cache.get_or_create("https://git.example.com/orders.git", factory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(access, range(8)))

        assert len(created) == 1
        assert all(r is created[0] for r in results)


@pytest.mark.unit
class TestInheritDefaults:
    """Tests for inherit_defaults."""

    def test_unset_values_come_from_parent(self) -> None:
        parent = MultipleGitPropertiesFactory(
            timeout=11, refresh_rate=30, username="alice", password="pw",
            passphrase="phrase", skip_ssl_validation=True,
        )
        child = inherit_defaults(parent, "team", PatternRepositoryProperties(uri="https://x/t.git"))
        assert child.name == "team"
        assert child.pattern == ["team"]
        assert child.timeout == 11
        assert child.refresh_rate == 30
        assert (child.username, child.password) == ("alice", "pw")
        assert child.passphrase == "phrase"
        assert child.skip_ssl_validation is True

    def test_explicit_values_kept(self) -> None:
        parent = MultipleGitPropertiesFactory(timeout=11, username="alice", password="pw")
        raw = PatternRepositoryProperties(
            uri="https://x/t.git", name="custom", pattern=["t-*"], timeout=5,
            username="bob", password="other",
        )
        child = inherit_defaults(parent, "team", raw)
        assert child.name == "custom"
        assert child.pattern == ["t-*"]
        assert child.timeout == 5
        assert (child.username, child.password) == ("bob", "other")


@pytest.mark.unit
class TestPlaceholderRouting:
    """Tests for URI placeholder substitution."""

    def test_application_placeholder(self, make_repo, tmp_path: Path, work: Path) -> None:
        orders = make_repo("orders", {"application.yml": "app: orders\n"})
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=f"{tmp_path}/{{application}}", basedir=work / "apps")
        )

        env = router.find_one("orders", "default", "main")

        assert env.version == head(orders)
        assert env.property_sources[0].source == {"app": "orders"}
        assert str(orders) in router.placeholders

    def test_same_request_reuses_instance(self, make_repo, tmp_path: Path, work: Path) -> None:
        make_repo("orders")
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=f"{tmp_path}/{{application}}", basedir=work / "apps")
        )

        first = router.resolve("orders", "default", "main")[-1]
        router.find_one("orders", "default", "main")
        second = router.resolve("orders", "default", "main")[-1]

        assert first is second
        assert first.synchronizer.working_directory.parent == (work).resolve()
        assert first.synchronizer.working_directory.name.startswith("apps-")
        assert len(router.placeholders) == 1

    def test_distinct_uris_get_distinct_directories(
        self, make_repo, tmp_path: Path, work: Path
    ) -> None:
        make_repo("orders")
        make_repo("billing")
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=f"{tmp_path}/{{application}}", basedir=work / "apps")
        )

        orders = router.resolve("orders", "default")[-1]
        billing = router.resolve("billing", "default")[-1]

        assert orders is not billing
        assert orders.synchronizer.working_directory != billing.synchronizer.working_directory
        assert orders.properties.search_paths == billing.properties.search_paths

    def test_label_placeholder_uses_default_label(self, tmp_path: Path, work: Path) -> None:
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(
                uri=f"{tmp_path}/config-{{label}}", basedir=work / "labels", default_label="stable"
            )
        )
        candidate = router.resolve("orders", "default")[-1]
        assert candidate.uri == f"{tmp_path}/config-stable"

    def test_non_template_is_used_directly(self, remote_repo: Path, work: Path) -> None:
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=str(remote_repo), basedir=work / "default")
        )
        assert router.resolve("orders", "dev,prod") == [router.default]
        assert len(router.placeholders) == 0


@pytest.mark.unit
class TestPatternRouting:
    """Tests for pattern-matched repositories and fallback."""

    def _router(self, default: Path, work: Path, **repos) -> MultipleGitEnvironmentRepository:
        return MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(
                uri=str(default), basedir=work / "default", repos=repos
            )
        )

    def test_matching_repository_used(self, remote_repo: Path, make_repo, work: Path) -> None:
        team = make_repo("team", {"application.yml": "owner: team\n"})
        router = self._router(
            remote_repo, work,
            team=PatternRepositoryPropertiesFactory(
                uri=str(team), basedir=work / "team", pattern=["team-*"]
            ),
        )

        assert router.find_one("team-orders", "default").version == head(team)
        assert router.find_one("orders", "default").version == head(remote_repo)

    def test_pattern_defaults_to_name(self, remote_repo: Path, make_repo, work: Path) -> None:
        team = make_repo("team")
        router = self._router(
            remote_repo, work,
            team=PatternRepositoryProperties(uri=str(team), basedir=work / "team"),
        )
        assert router.find_one("team", "dev").version == head(team)

    def test_failing_candidate_falls_back_to_default(
        self, remote_repo: Path, tmp_path: Path, work: Path
    ) -> None:
        router = self._router(
            remote_repo, work,
            missing=PatternRepositoryPropertiesFactory(
                uri=str(tmp_path / "missing"), basedir=work / "missing", pattern=["*"]
            ),
        )
        assert router.find_one("orders", "default").version == head(remote_repo)
        assert router.get_locations("orders", "default").revision == head(remote_repo)

    def test_default_error_propagates(self, tmp_path: Path, work: Path) -> None:
        router = self._router(tmp_path / "absent", work)
        with pytest.raises(NoSuchRepositoryError):
            router.find_one("orders", "default")

    def test_unknown_label_everywhere(self, remote_repo: Path, make_repo, work: Path) -> None:
        team = make_repo("team")
        router = self._router(
            remote_repo, work,
            team=PatternRepositoryPropertiesFactory(uri=str(team), basedir=work / "team", pattern=["*"]),
        )
        with pytest.raises(NoSuchLabelError):
            router.find_one("orders", "default", "nope")

    def test_profiles_tried_last_first(self, remote_repo: Path, make_repo, tmp_path: Path, work: Path) -> None:
        dev = make_repo("dev-config")
        prod = make_repo("prod-config", {"application.yml": "env: prod\n"})
        router = self._router(
            remote_repo, work,
            per_profile=PatternRepositoryPropertiesFactory(
                uri=f"{tmp_path}/{{profile}}-config", basedir=work / "profiles", pattern=["*"]
            ),
        )

        assert router.find_one("orders", "dev,prod").version == head(prod)
        assert router.find_one("orders", "prod,dev").version == head(dev)
        assert router.find_one("orders", "dev,qa").version == head(dev)

    def test_repos_sorted_by_order(self, remote_repo: Path, make_repo, work: Path) -> None:
        first = make_repo("first")
        second = make_repo("second")
        router = self._router(
            remote_repo, work,
            b=PatternRepositoryPropertiesFactory(uri=str(second), basedir=work / "b", pattern=["*"], order=2),
            a=PatternRepositoryPropertiesFactory(uri=str(first), basedir=work / "a", pattern=["*"], order=1),
        )

        assert [r.repository.uri for r in router.repos] == [str(first), str(second)]
        assert router.find_one("orders", "default").version == head(first)

    def test_locations_follow_same_route(self, remote_repo: Path, make_repo, work: Path) -> None:
        team = make_repo("team")
        router = self._router(
            remote_repo, work,
            team=PatternRepositoryPropertiesFactory(uri=str(team), basedir=work / "team", pattern=["team-*"]),
        )
        env = router.find_one("team-orders", "default")
        locations = router.get_locations("team-orders", "default")
        assert locations.revision == env.version


@pytest.mark.unit
class TestInitialize:
    def test_creates_basedir(self, remote_repo: Path, work: Path) -> None:
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=str(remote_repo), basedir=work / "default")
        )
        router.initialize()
        assert (work / "default").is_dir()

    def test_uncreatable_basedir(self, remote_repo: Path, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        router = MultipleGitEnvironmentRepository.from_properties(
            MultipleGitPropertiesFactory(uri=str(remote_repo), basedir=blocker / "default")
        )
        with pytest.raises(ConfigurationError):
            router.initialize()
