"""Helpers building real git repositories for tests."""

import subprocess
from pathlib import Path

GIT_IDENTITY = [
    "-c", "user.email=test@test.com",
    "-c", "user.name=Test",
    "-c", "commit.gpgsign=false",
    "-c", "tag.gpgsign=false",
]


def git(repo: Path, *args: str) -> str:
    """Run git in ``repo`` and return stdout."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=repo, capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


def commit(repo: Path, files: dict[str, str], message: str = "Update") -> str:
    """Write ``files`` into ``repo``, commit them and return the new revision."""
    for relative, content in files.items():
        path = repo / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    git(repo, "add", "--all")
    git(repo, "commit", "--quiet", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def init_repo(path: Path, files: dict[str, str] | None = None) -> Path:
    """Create a repository on branch ``main`` with an initial commit."""
    path.mkdir(parents=True)
    git(path, "init", "--quiet")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    commit(path, files or {"application.yml": "info:\n  name: default\n"}, "Initial commit")
    return path
