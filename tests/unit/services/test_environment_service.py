"""Tests for the environment service."""

import pytest

from config_server.core.models.environment import Environment
from config_server.services.environment import EnvironmentService, normalize_label


class RecordingRepository:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def find_one(self, application, profile, label=None) -> Environment:
        self.calls.append((application, profile, label))
        return Environment(name=application, label=label)

    def get_locations(self, application, profile, label=None) -> list:
        self.calls.append((application, profile, label))
        return []


@pytest.mark.unit
class TestEnvironmentService:
    """Tests for EnvironmentService."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("feature(_)login", "feature/login"),
            ("a(_)b(_)c", "a/b/c"),
            ("main", "main"),
            ("", None),
            (None, None),
        ],
    )
    def test_normalize_label(self, label, expected) -> None:
        assert normalize_label(label) == expected

    def test_find_one_translates_label(self) -> None:
        repository = RecordingRepository()
        env = EnvironmentService(repository).find_one("orders", "dev", "release(_)1.0")
        assert repository.calls == [("orders", "dev", "release/1.0")]
        assert env.label == "release/1.0"

    def test_get_locations_translates_label(self) -> None:
        repository = RecordingRepository()
        EnvironmentService(repository).get_locations("orders", "dev", "x(_)y")
        assert repository.calls == [("orders", "dev", "x/y")]
