"""Per-repository transport configuration for git subprocesses.

Every synchronizer owns its own TransportConfig, so repositories with
different host-key policies or credentials never share process-wide state.
"""

import atexit
import os
import shutil
import stat
import tempfile
import threading
from pathlib import Path

import structlog

from config_server.git.credentials import GitCredentials

logger = structlog.get_logger(__name__)

USERNAME_VAR = "CONFIG_SERVER_GIT_USERNAME"
PASSWORD_VAR = "CONFIG_SERVER_GIT_PASSWORD"
PASSPHRASE_VAR = "CONFIG_SERVER_GIT_PASSPHRASE"

ASKPASS_SCRIPT = f"""#!/bin/sh
case "$1" in
  *assphrase*) printf '%s\\n' "${PASSPHRASE_VAR}" ;;
  Username*) printf '%s\\n' "${USERNAME_VAR}" ;;
  *) printf '%s\\n' "${PASSWORD_VAR}" ;;
esac
"""

_askpass_lock = threading.Lock()
_askpass: Path | None = None


def askpass_script() -> Path:
    """The askpass helper shared by every transport, written on first use.

    The script only echoes environment variables, so one copy serves all
    repositories. Its directory is removed when the process exits.
    """
    global _askpass
    with _askpass_lock:
        if _askpass is None or not _askpass.exists():
            directory = Path(tempfile.mkdtemp(prefix="config-server-askpass-"))
            atexit.register(shutil.rmtree, directory, True)
            script = directory / "askpass.sh"
            script.write_text(ASKPASS_SCRIPT, encoding="utf-8")
            script.chmod(stat.S_IRWXU)
            _askpass = script
            logger.debug("Transport askpass helper written", path=str(script))
        return _askpass


class TransportConfig:
    """How git reaches one remote: credentials, SSH policy and timeouts."""

    def __init__(
        self,
        credentials: GitCredentials,
        passphrase: str | None = None,
        strict_host_key_checking: bool = True,
        skip_ssl_validation: bool = False,
        timeout: int = 5,
        command_timeout: int = 300,
    ) -> None:
        self.credentials = credentials
        self.passphrase = passphrase
        self.strict_host_key_checking = strict_host_key_checking
        self.skip_ssl_validation = skip_ssl_validation
        self.timeout = timeout
        self.command_timeout = command_timeout
        self._askpass: Path | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._askpass is not None or not self._needs_askpass

    @property
    def _needs_askpass(self) -> bool:
        return self.credentials.has_secret or bool(self.passphrase)

    def prepare(self) -> None:
        """Attach the shared askpass helper once; later calls are no-ops."""
        with self._lock:
            if self.initialized:
                return
            self._askpass = askpass_script()

    def ssh_command(self) -> str:
        checking = "yes" if self.strict_host_key_checking else "no"
        command = f"ssh -o StrictHostKeyChecking={checking}"
        if self.timeout > 0:
            command += f" -o ConnectTimeout={self.timeout}"
        return command

    def environment(self) -> dict[str, str]:
        """Environment for a git subprocess talking to this remote."""
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GIT_SSH_COMMAND"] = self.ssh_command()
        if self._askpass is not None:
            env["GIT_ASKPASS"] = str(self._askpass)
            env["SSH_ASKPASS"] = str(self._askpass)
            env["SSH_ASKPASS_REQUIRE"] = "force"
            env[USERNAME_VAR] = self.credentials.username or ""
            env[PASSWORD_VAR] = self.credentials.password or ""
            env[PASSPHRASE_VAR] = self.passphrase or ""
        return env

    def config_args(self) -> list[str]:
        """``-c`` options placed before the git subcommand."""
        args: list[str] = []
        if self.skip_ssl_validation:
            args += ["-c", "http.sslVerify=false"]
        if self.timeout > 0:
            args += ["-c", "http.lowSpeedLimit=1", "-c", f"http.lowSpeedTime={self.timeout}"]
        if self.credentials.has_secret:
            # Only the askpass helper may answer credential prompts.
            args += ["-c", "credential.helper="]
        return args
