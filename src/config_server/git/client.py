"""Thin git CLI wrapper using subprocess."""

import subprocess
from pathlib import Path

import structlog

from config_server.core.exceptions import GitCommandError
from config_server.git.transport import TransportConfig

logger = structlog.get_logger(__name__)

REMOTE = "origin"
REMOTE_REF_PREFIX = f"refs/remotes/{REMOTE}/"
LOCAL_REF_PREFIX = "refs/heads/"


class GitClient:
    """Runs git commands against one working copy.

    Uses subprocess + git CLI directly (no gitpython dependency). Commands that
    talk to the remote get the transport's environment and timeout.
    """

    def __init__(self, repo_path: Path, transport: TransportConfig | None = None) -> None:
        self._repo_path = Path(repo_path)
        self._transport = transport

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    def _run_git(
        self,
        *args: str,
        cwd: Path | None = None,
        remote: bool = False,
        check: bool = True,
    ) -> str:
        """Run a git command and return stdout."""
        command = ["git"]
        env = None
        timeout = None
        if remote and self._transport is not None:
            command += self._transport.config_args()
            env = self._transport.environment()
            timeout = self._transport.command_timeout or None
        command += list(args)
        try:
            result = subprocess.run(
                command,
                cwd=cwd or self._repo_path,
                capture_output=True,
                text=True,
                env=env,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            raise GitCommandError(args, None, stderr or "", timed_out=True) from e
        except FileNotFoundError as e:
            raise GitCommandError(args, None, str(e)) from e
        if check and result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr)
        # Leading whitespace is significant in porcelain output.
        return result.stdout.rstrip()

    def is_git_repo(self) -> bool:
        """Check if the path is a valid git repository."""
        if not self._repo_path.is_dir():
            return False
        try:
            self._run_git("rev-parse", "--git-dir")
            return True
        except GitCommandError:
            return False

    def clone(self, uri: str) -> None:
        """Clone ``uri`` into the (empty) repository path."""
        self._run_git("clone", "--", uri, str(self._repo_path), cwd=self._repo_path.parent, remote=True)

    def head_revision(self) -> str:
        return self._run_git("rev-parse", "HEAD")

    def current_branch(self) -> str | None:
        """Name of the checked-out branch, or None when HEAD is detached."""
        try:
            return self._run_git("symbolic-ref", "--quiet", "--short", "HEAD")
        except GitCommandError:
            return None

    def remote_url(self) -> str | None:
        """Get the remote origin URL, if available."""
        try:
            url = self._run_git("config", "--get", f"remote.{REMOTE}.url")
            return url if url else None
        except GitCommandError:
            return None

    def status(self) -> list[str]:
        """Paths that are modified, staged, missing or untracked."""
        output = self._run_git("status", "--porcelain", "--untracked-files=all")
        return [line[3:] for line in output.splitlines() if line.strip()]

    def refs(self, *prefixes: str) -> list[str]:
        output = self._run_git("for-each-ref", "--format=%(refname)", *prefixes)
        return output.splitlines() if output else []

    def remote_branches(self) -> set[str]:
        return {
            ref[len(REMOTE_REF_PREFIX):]
            for ref in self.refs(REMOTE_REF_PREFIX)
            if ref != f"{REMOTE_REF_PREFIX}HEAD"
        }

    def local_branches(self) -> set[str]:
        return {ref[len(LOCAL_REF_PREFIX):] for ref in self.refs(LOCAL_REF_PREFIX)}

    def resolves(self, label: str) -> bool:
        """True when ``label`` names something that can be checked out."""
        try:
            self._run_git("rev-parse", "--verify", "--quiet", f"{label}^{{commit}}")
            return True
        except GitCommandError:
            return False

    def fetch(self, prune: bool = False) -> None:
        args = ["fetch", "--tags", "--force"]
        if prune:
            args.append("--prune")
        self._run_git(*args, REMOTE, remote=True)

    def checkout(self, label: str, force: bool = False) -> None:
        args = ["checkout", "--quiet"]
        if force:
            args.append("--force")
        self._run_git(*args, label, "--")

    def checkout_tracking(self, label: str, force: bool = False) -> None:
        """Create a local branch tracking the remote branch of the same name."""
        args = ["checkout", "--quiet"]
        if force:
            args.append("--force")
        self._run_git(*args, "-b", label, "--track", f"{REMOTE}/{label}", "--")

    def merge_fast_forward(self, label: str) -> None:
        self._run_git("merge", "--ff-only", "--quiet", f"{REMOTE}/{label}")

    def ahead_count(self, label: str) -> int:
        """Commits on the local branch that the remote branch does not have."""
        if f"{REMOTE_REF_PREFIX}{label}" not in self.refs(f"{REMOTE_REF_PREFIX}{label}"):
            return 0
        output = self._run_git("rev-list", "--count", f"{REMOTE}/{label}..{LOCAL_REF_PREFIX}{label}")
        return int(output or 0)

    def reset_hard(self, label: str) -> str:
        """Force the current branch onto the remote branch, dropping local changes."""
        self._run_git("reset", "--hard", "--quiet", f"{REMOTE}/{label}")
        self._run_git("clean", "-d", "--force", "--quiet")
        return self.head_revision()

    def delete_branches(self, branches: list[str]) -> list[str]:
        # Force delete: the local copy is read-only, unmerged work is discardable.
        self._run_git("branch", "-D", *branches)
        return branches
