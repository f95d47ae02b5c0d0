"""Shell command execution at the three privilege tiers.

Every tier wraps the same contract: run a ``sh`` command line and hand
back its stdout. Commands are subprocess calls bounded by a timeout; on
expiry the child is killed and the result is reported as timed out with
empty output.
"""

from __future__ import annotations

import abc
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from enum import StrEnum

from flashwear.exceptions import FailureKind
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Only these environment variables are forwarded to subprocess calls.
_SAFE_ENV_KEYS = frozenset({
    "ANDROID_DATA",
    "ANDROID_ROOT",
    "HOME",
    "LANG",
    "PATH",
    "TERM",
    "TMPDIR",
    "USER",
})


class ExecutorTier(StrEnum):
    """Privilege level a command runs with."""
    ROOT = "root"
    BROKER = "broker"
    UNPRIVILEGED = "unprivileged"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one shell command."""

    command: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    @property
    def failure_kind(self) -> FailureKind | None:
        if self.timed_out:
            return FailureKind.TIMEOUT
        if self.exit_code != 0:
            return FailureKind.COMMAND_FAILED
        return None


class PrivilegedExecutor(abc.ABC):
    """Runs shell commands at a fixed privilege tier."""

    @property
    @abc.abstractmethod
    def tier(self) -> ExecutorTier:
        """Privilege tier of this executor."""

    @abc.abstractmethod
    def run(self, command: str) -> CommandResult:
        """Run *command* through ``sh -c`` semantics and return its result.

        Must not raise for command-level failures; those are reported
        through the returned CommandResult.
        """

    def is_available(self) -> bool:
        """Return True if commands can actually be executed at this tier."""
        return self.run("id").ok

    # ------------------------------------------------------------------
    # Convenience probes built on run()
    # ------------------------------------------------------------------

    def output(self, command: str) -> str:
        """Return stripped stdout, or an empty string if the command failed."""
        result = self.run(command)
        if not result.ok:
            return ""
        return result.stdout.strip()

    def read_file(self, path: str) -> str:
        return self.output(f"cat {shlex.quote(path)} 2>/dev/null")

    def exists(self, path: str) -> bool:
        return self.output(f"[ -e {shlex.quote(path)} ] && echo yes || echo no") == "yes"

    def list_dir(self, path: str) -> list[str]:
        text = self.output(f"ls -1 {shlex.quote(path)} 2>/dev/null")
        return [line.strip() for line in text.splitlines() if line.strip()]

    def getprop(self, key: str) -> str:
        return self.output(f"getprop {shlex.quote(key)} 2>/dev/null")


class SubprocessExecutor(PrivilegedExecutor):
    """Executor backed by ``subprocess.run`` with a per-command timeout."""

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    @abc.abstractmethod
    def build_argv(self, command: str) -> list[str]:
        """Wrap *command* in the launcher for this tier."""

    def run(self, command: str) -> CommandResult:
        argv = self.build_argv(command)
        try:
            proc = subprocess.run(
                argv,
                env=_build_safe_env(),
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(
                "command_timed_out",
                tier=self.tier.value,
                command=command,
                timeout=self._timeout,
            )
            return CommandResult(command=command, exit_code=-1, timed_out=True)
        except OSError as exc:
            logger.debug("command_launch_failed", tier=self.tier.value, command=command, error=str(exc))
            return CommandResult(command=command, stderr=str(exc), exit_code=127)

        logger.debug(
            "command_finished",
            tier=self.tier.value,
            command=command,
            exit_code=proc.returncode,
            stdout_len=len(proc.stdout),
        )
        return CommandResult(
            command=command,
            stdout=proc.stdout,
            stderr=proc.stderr,
            exit_code=proc.returncode,
        )


class RootExecutor(SubprocessExecutor):
    """Full root through ``su -c``."""

    def __init__(self, su_command: str = "su", timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        super().__init__(timeout_seconds)
        self._su = su_command

    @property
    def tier(self) -> ExecutorTier:
        return ExecutorTier.ROOT

    def build_argv(self, command: str) -> list[str]:
        return [self._su, "-c", command]


class BrokerExecutor(SubprocessExecutor):
    """Shell-level privilege granted by a broker helper (``rish -c``)."""

    def __init__(
        self, broker_command: str = "rish", timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(timeout_seconds)
        self._broker = broker_command

    @property
    def tier(self) -> ExecutorTier:
        return ExecutorTier.BROKER

    def build_argv(self, command: str) -> list[str]:
        return [self._broker, "-c", command]

    def is_available(self) -> bool:
        if shutil.which(self._broker) is None:
            logger.debug("broker_not_found", broker=self._broker)
            return False
        return super().is_available()


class UnprivilegedExecutor(SubprocessExecutor):
    """Plain ``sh -c`` with the caller's own permissions."""

    @property
    def tier(self) -> ExecutorTier:
        return ExecutorTier.UNPRIVILEGED

    def build_argv(self, command: str) -> list[str]:
        return ["sh", "-c", command]


def _build_safe_env() -> dict[str, str]:
    """Build a minimal environment for subprocess calls."""
    env: dict[str, str] = {}
    for key in _SAFE_ENV_KEYS:
        value = os.environ.get(key)
        if value is not None:
            env[key] = value
    return env
