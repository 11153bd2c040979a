"""Keeps one local working copy in line with one remote git repository."""

import re
import shutil
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import unquote, urlsplit

import structlog

from config_server.core.exceptions import (
    ConfigServerError,
    GitCommandError,
    NoSuchLabelError,
    NoSuchRepositoryError,
    SyncError,
)
from config_server.core.models.environment import SyncResult
from config_server.core.models.repository import GitRepositoryProperties
from config_server.git.client import GitClient
from config_server.git.credentials import resolve_credentials
from config_server.git.transport import TransportConfig
from config_server.utils.search_paths import resolve_search_paths

logger = structlog.get_logger(__name__)

_SCP_LIKE = re.compile(r"^[^/]+:")


def local_path_for(uri: str) -> Path | None:
    """Filesystem path for a local repository URI, None for remote URIs."""
    if uri.startswith("file:"):
        return Path(unquote(urlsplit(uri).path))
    if "://" in uri or _SCP_LIKE.match(uri):
        return None
    return Path(uri).expanduser().resolve()


class WorkingCopySynchronizer:
    """Owns one local directory mirroring one remote repository.

    ``sync`` is serialized per instance: at most one git operation runs
    against the working copy at a time. A caller that waited while another
    thread synced the same label gets that sync's revision instead of
    repeating the work.
    """

    def __init__(
        self,
        properties: GitRepositoryProperties,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.properties = properties
        credentials = resolve_credentials(
            properties.uri, properties.username, properties.password
        )
        self._uri = credentials.uri
        self._transport = TransportConfig(
            credentials,
            passphrase=properties.passphrase,
            strict_host_key_checking=properties.strict_host_key_checking,
            skip_ssl_validation=properties.skip_ssl_validation,
            timeout=properties.timeout,
            command_timeout=properties.command_timeout,
        )
        self._local_source = local_path_for(self._uri)
        self._basedir = Path(properties.basedir).resolve()
        self._git = GitClient(self._basedir, self._transport)
        self._clock = clock
        self._lock = threading.RLock()
        self._last_refresh: float | None = None
        self._completed = 0
        self._last: tuple[str, str] | None = None

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def working_directory(self) -> Path:
        return self._basedir

    @property
    def default_label(self) -> str:
        return self.properties.default_label

    @property
    def last_refresh(self) -> float | None:
        return self._last_refresh

    @property
    def initialized(self) -> bool:
        return self._transport.initialized

    def initialize(self) -> None:
        """Prepare the transport and, if configured, clone eagerly."""
        self._transport.prepare()
        if (
            self.properties.clone_on_start
            and self._local_source is None
            and not self.properties.is_template
        ):
            with self._lock:
                self._copy_repository()

    # --- Public contract ---

    def sync(
        self,
        label: str | None = None,
        application: str | None = None,
        profile: str | None = None,
    ) -> SyncResult:
        """Bring the working copy to ``label`` and report what is on disk."""
        with self.checked_out(label, application, profile) as result:
            return result

    @contextmanager
    def checked_out(
        self,
        label: str | None = None,
        application: str | None = None,
        profile: str | None = None,
    ) -> Iterator[SyncResult]:
        """Sync, then hold the working copy on ``label`` for the block."""
        label = label or self.default_label
        ticket = self._completed
        with self._lock:
            revision = self._reuse(label, ticket)
            if revision is None:
                revision = self._refresh_locked(label)
            yield SyncResult(
                revision=revision,
                label=label,
                search_paths=resolve_search_paths(
                    self._basedir, self.properties.search_paths, application, profile, label
                ),
            )

    def current_revision(self) -> str | None:
        """HEAD of the working copy, or None before the first clone."""
        with self._lock:
            if not (self._basedir / ".git").exists():
                return None
            try:
                return self._git.head_revision()
            except GitCommandError:
                return None

    # --- Refresh state machine ---

    def _reuse(self, label: str, ticket: int) -> str | None:
        if ticket != self._completed and self._last is not None and self._last[0] == label:
            logger.debug("Reusing concurrent sync", uri=self._uri, label=label)
            return self._last[1]
        return None

    def _refresh_locked(self, label: str) -> str:
        self._last = None
        try:
            revision = self._refresh(label)
            self._last = (label, revision)
            return revision
        finally:
            self._completed += 1

    def _refresh(self, label: str) -> str:
        if label.startswith("-"):
            raise NoSuchLabelError(f"No such label: {label}", details={"label": label})
        try:
            self._transport.prepare()
            self._open()
            if self._should_pull():
                self._fetch(label)
                # Checkout after fetch so new branches and tags are visible.
                self._checkout(label, force=self.properties.force_pull)
                if self._is_branch(label):
                    self._merge(label)
                    if not self._is_clean(label):
                        logger.warning(
                            "Local repository is dirty or ahead of origin, resetting",
                            uri=self._uri,
                            label=label,
                        )
                        self._reset_hard(label)
            else:
                self._checkout(label)
            # Always report what is actually checked out.
            return self._git.head_revision()
        except ConfigServerError:
            raise
        except OSError as e:
            raise SyncError(
                f"Cannot load environment from {self._uri}", details={"error": str(e)}
            ) from e

    def _open(self) -> None:
        lock = self._basedir / ".git" / "index.lock"
        if lock.exists():
            # Left behind by a process that died mid-operation.
            logger.info("Deleting stale git lock file", path=str(lock))
            lock.unlink(missing_ok=True)
        if not (self._basedir / ".git").exists():
            self._copy_repository()

    def _copy_repository(self) -> None:
        self._delete_basedir_contents()
        self._basedir.mkdir(parents=True, exist_ok=True)
        source = self._uri
        if self._local_source is not None:
            if not GitClient(self._local_source).is_git_repo():
                self._delete_basedir_contents()
                raise NoSuchRepositoryError(
                    f"No git repository at {self._uri}", details={"uri": self._uri}
                )
            source = str(self._local_source)
        try:
            self._git.clone(source)
        except GitCommandError as e:
            self._delete_basedir_contents()
            if e.timed_out:
                raise SyncError(f"Timed out cloning {self._uri}", details=e.details) from e
            raise NoSuchRepositoryError(
                f"Cannot clone repository: {self._uri}", details=e.details
            ) from e
        logger.info("Cloned repository", uri=self._uri, basedir=str(self._basedir))

    def _delete_basedir_contents(self) -> None:
        if not self._basedir.exists():
            return
        for child in self._basedir.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as e:
                raise SyncError(
                    f"Failed to initialize base directory {self._basedir}",
                    details={"error": str(e)},
                ) from e

    def _should_pull(self) -> bool:
        refresh_rate = self.properties.refresh_rate
        if (
            refresh_rate > 0
            and self._last_refresh is not None
            and self._clock() - self._last_refresh < refresh_rate
        ):
            return False

        dirty = self._git.status()
        origin = self._git.remote_url()
        if dirty and self.properties.force_pull:
            logger.warning("Dirty files found", uri=self._uri, files=dirty[:50])
            return True
        if dirty:
            logger.info(
                "Cannot pull from remote, the working tree is not clean", remote=origin
            )
            return False
        return origin is not None

    def _fetch(self, label: str) -> None:
        prune = self.properties.delete_untracked_branches
        self._last_refresh = self._clock()
        before = self._git.remote_branches() if prune else set()
        try:
            self._git.fetch(prune=prune)
        except GitCommandError as e:
            self._warn(f"Could not fetch remote for {label}", e)
            return
        if prune:
            deleted = before - self._git.remote_branches()
            if deleted:
                logger.info("Fetched remote and found deleted branches", label=label, deleted=sorted(deleted))
                self._delete_untracked_local_branches(deleted)

    def _delete_untracked_local_branches(self, deleted: set[str]) -> list[str]:
        to_delete = sorted(deleted & self._git.local_branches())
        if not to_delete:
            return []
        try:
            if self._git.current_branch() in to_delete:
                self._checkout(self.default_label)
            removed = self._git.delete_branches(to_delete)
        except ConfigServerError as e:
            self._warn(f"Failed to delete {to_delete} branches", e)
            return []
        logger.info("Deleted untracked local branches", branches=removed)
        return removed

    def _is_branch(self, label: str) -> bool:
        return label in self._git.remote_branches() or label in self._git.local_branches()

    def _checkout(self, label: str, force: bool = False) -> None:
        try:
            if label in self._git.remote_branches() and label not in self._git.local_branches():
                self._git.checkout_tracking(label, force=force)
                return
            if not self._git.resolves(label):
                raise NoSuchLabelError(
                    f"No such label: {label}", details={"label": label, "uri": self._uri}
                )
            # Works for tags, local branches and commit ids.
            self._git.checkout(label, force=force)
        except GitCommandError as e:
            raise SyncError(f"Cannot checkout {label} from {self._uri}", details=e.details) from e

    def _merge(self, label: str) -> None:
        if label not in self._git.remote_branches():
            return
        try:
            self._git.merge_fast_forward(label)
        except GitCommandError as e:
            self._warn(f"Could not merge remote for {label}", e)

    def _is_clean(self, label: str) -> bool:
        try:
            return not self._git.status() and self._git.ahead_count(label) == 0
        except GitCommandError as e:
            self._warn("Could not execute status command on local repository", e)
            return False

    def _reset_hard(self, label: str) -> None:
        try:
            revision = self._git.reset_hard(label)
        except GitCommandError as e:
            self._warn(f"Could not reset to remote for {label}", e)
            return
        logger.info("Reset label to remote version", label=label, revision=revision)

    def _warn(self, message: str, error: ConfigServerError) -> None:
        logger.warning(message, uri=self._uri, error=str(error), details=error.details)
        logger.debug("Stacktrace for: " + message, exc_info=error)

    def __repr__(self) -> str:
        return f"WorkingCopySynchronizer(uri={self._uri!r}, basedir={str(self._basedir)!r})"
