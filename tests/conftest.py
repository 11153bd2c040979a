"""Pytest configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from config_server.config.settings import get_settings
from tests.git_helpers import init_repo


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """A local repository acting as the remote, with one commit on main."""
    return init_repo(
        tmp_path / "remote",
        {
            "application.yml": "info:\n  name: shared\nserver:\n  port: 8080\n",
            "orders.yml": "orders:\n  limit: 10\n",
            "orders-dev.properties": "orders.limit=20\ndebug=true\n",
        },
    )


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture creating further repositories under tmp_path."""

    def _make(name: str, files: dict[str, str] | None = None) -> Path:
        return init_repo(tmp_path / name, files)

    return _make


@pytest.fixture
def basedir(tmp_path: Path) -> Path:
    """Working-copy location; deliberately not created yet."""
    return tmp_path / "work" / "config-repo"


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Isolate tests from real settings files and CONFIG_SERVER_* variables."""
    monkeypatch.setenv("CONFIG_SERVER_CONFIG_FILE", str(tmp_path / "absent.yml"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
