"""Tests for the composite aggregator."""

import pytest

from config_server.core.exceptions import SyncError
from config_server.core.models.environment import Environment, SyncResult
from config_server.repositories.composite import CompositeEnvironmentRepository
from tests.factories import EnvironmentFactory, PropertySourceFactory


class StubRepository:
    """Returns a fixed environment, or raises, and records calls."""

    def __init__(self, order: int, environment: Environment | None = None, error=None) -> None:
        self.order = order
        self._environment = environment
        self._error = error
        self.calls: list[tuple] = []

    def find_one(self, application, profile, label=None) -> Environment:
        self.calls.append((application, profile, label))
        if self._error is not None:
            raise self._error
        return self._environment

    def get_locations(self, application, profile, label=None) -> SyncResult:
        return SyncResult(revision=f"rev-{self.order}", label=label or "main")


def _env(*names: str, **kwargs) -> Environment:
    return EnvironmentFactory(
        property_sources=[PropertySourceFactory(name=n) for n in names], **kwargs
    )


@pytest.mark.unit
class TestCompositeEnvironmentRepository:
    """Tests for CompositeEnvironmentRepository."""

    def test_single_repository_passes_through(self) -> None:
        environment = _env("a", version="abc123", state="partial")
        composite = CompositeEnvironmentRepository([StubRepository(1, environment)])

        result = composite.find_one("orders", "dev", "main")

        assert result is environment
        assert result.version == "abc123"
        assert result.state == "partial"

    def test_sources_appended_in_priority_order(self) -> None:
        low = StubRepository(2, _env("low-1", "low-2"))
        high = StubRepository(1, _env("high"))
        composite = CompositeEnvironmentRepository([low, high])

        result = composite.find_one("orders", "dev,prod", "main")

        assert [s.name for s in result.property_sources] == ["high", "low-1", "low-2"]
        assert result.name == "orders"
        assert result.profiles == ["dev", "prod"]
        assert result.label == "main"
        assert result.version is None

    def test_equal_order_keeps_declaration_order(self) -> None:
        first = StubRepository(5, _env("first"))
        second = StubRepository(5, _env("second"))
        result = CompositeEnvironmentRepository([first, second]).find_one("orders", "dev")
        assert [s.name for s in result.property_sources] == ["first", "second"]

    def test_every_repository_queried(self) -> None:
        repositories = [StubRepository(i, _env(f"s{i}")) for i in range(3)]
        CompositeEnvironmentRepository(repositories).find_one("orders", "dev", "v1")
        assert all(r.calls == [("orders", "dev", "v1")] for r in repositories)

    def test_failure_aborts(self) -> None:
        composite = CompositeEnvironmentRepository(
            [StubRepository(1, _env("ok")), StubRepository(2, error=SyncError("boom"))]
        )
        with pytest.raises(SyncError):
            composite.find_one("orders", "dev")

    def test_get_locations_collects_all(self) -> None:
        composite = CompositeEnvironmentRepository([StubRepository(2), StubRepository(1)])
        results = composite.get_locations("orders", "dev")
        assert [r.revision for r in results] == ["rev-1", "rev-2"]
