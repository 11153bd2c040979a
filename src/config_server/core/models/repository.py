"""Repository configuration models."""

import hashlib
import json
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

# Lowest precedence, so unordered repositories sort last.
LOWEST_PRECEDENCE = 2**31 - 1

PLACEHOLDERS = ("{application}", "{profile}", "{label}")


def default_basedir(uri: str, identity: str = "") -> Path:
    """Stable local directory for a repository that has no configured basedir.

    ``identity`` distinguishes repositories that share a URI but differ in
    any other setting, so each gets a working copy of its own.
    """
    digest = hashlib.sha1(f"{uri}\n{identity}".encode("utf-8")).hexdigest()[:12]
    return Path(tempfile.gettempdir()) / f"config-repo-{digest}"


class GitRepositoryProperties(BaseModel):
    """Configuration for one git-backed configuration repository."""

    uri: str
    basedir: Path | None = None
    search_paths: list[str] = Field(default_factory=list)

    # Transport
    username: str | None = None
    password: str | None = None
    passphrase: str | None = None
    strict_host_key_checking: bool = True
    skip_ssl_validation: bool = False
    timeout: int = Field(default=5, ge=0, description="Connect/stall timeout in seconds")
    command_timeout: int = Field(
        default=300, ge=0, description="Hard limit in seconds for clone and fetch, 0 disables"
    )

    # Synchronization
    default_label: str = "main"
    refresh_rate: int = Field(
        default=0, ge=0, description="Minimum seconds between remote checks"
    )
    clone_on_start: bool = False
    force_pull: bool = False
    delete_untracked_branches: bool = False

    order: int = LOWEST_PRECEDENCE

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _fill_basedir(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("basedir") is None and data.get("uri"):
            identity = json.dumps(
                {k: v for k, v in data.items() if k not in ("basedir", "repos")},
                sort_keys=True,
                default=str,
            )
            data = {**data, "basedir": default_basedir(data["uri"], identity)}
        return data

    @property
    def is_template(self) -> bool:
        """True when the URI contains request placeholders."""
        return any(p in self.uri for p in PLACEHOLDERS)


class PatternRepositoryProperties(GitRepositoryProperties):
    """A named repository selected by application/profile patterns."""

    name: str | None = None
    pattern: list[str] = Field(default_factory=list)


class MultipleGitProperties(GitRepositoryProperties):
    """The default repository plus named pattern-matched repositories."""

    repos: dict[str, PatternRepositoryProperties] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _name_repos(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("repos"), dict):
            repos = {
                key: {"name": key, **raw} if isinstance(raw, dict) and not raw.get("name") else raw
                for key, raw in data["repos"].items()
            }
            data = {**data, "repos": repos}
        return data
