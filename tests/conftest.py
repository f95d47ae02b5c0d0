"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import re
from collections.abc import Callable

import pytest

from flashwear.shell.executor import CommandResult, ExecutorTier, PrivilegedExecutor

_CAT_RE = re.compile(r"^cat (\S+) 2>/dev/null$")
_LS_RE = re.compile(r"^ls (?:-1 )?(\S+?)/?(?: 2>/dev/null)?$")
_GETPROP_RE = re.compile(r"^getprop (\S+) 2>/dev/null$")
_EXISTS_RE = re.compile(r"^\[ -e (\S+) \] && echo yes \|\| echo no$")


class FakeExecutor(PrivilegedExecutor):
    """In-memory device: sysfs files, directory listings, properties, commands.

    Anything not described is treated like a failing command (exit 1,
    empty output). Every command is recorded in ``calls``.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        dirs: dict[str, list[str]] | None = None,
        props: dict[str, str] | None = None,
        commands: dict[str, str] | None = None,
        available: bool = True,
        tier: ExecutorTier = ExecutorTier.UNPRIVILEGED,
        timed_out: bool = False,
    ) -> None:
        self.files = dict(files or {})
        self.dirs = dict(dirs or {})
        self.props = dict(props or {})
        self.commands = dict(commands or {})
        self.available = available
        self.timed_out = timed_out
        self.calls: list[str] = []
        self._tier = tier

    @property
    def tier(self) -> ExecutorTier:
        return self._tier

    def _lookup(self, command: str) -> str | None:
        if command in self.commands:
            return self.commands[command]
        if command == "id":
            return "uid=0(root) gid=0(root)" if self.available else None
        if command == "getprop 2>/dev/null":
            if not self.props:
                return None
            return "\n".join(f"[{k}]: [{v}]" for k, v in self.props.items())
        m = _CAT_RE.match(command)
        if m:
            return self.files.get(m.group(1))
        m = _LS_RE.match(command)
        if m:
            entries = self.dirs.get(m.group(1))
            return "\n".join(entries) if entries is not None else None
        m = _GETPROP_RE.match(command)
        if m:
            return self.props.get(m.group(1))
        m = _EXISTS_RE.match(command)
        if m:
            path = m.group(1)
            return "yes" if path in self.files or path in self.dirs else "no"
        return None

    def run(self, command: str) -> CommandResult:
        self.calls.append(command)
        if self.timed_out:
            return CommandResult(command=command, exit_code=-1, timed_out=True)
        stdout = self._lookup(command)
        if stdout is None:
            return CommandResult(command=command, exit_code=1)
        return CommandResult(command=command, stdout=stdout + "\n")


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    """Factory for FakeExecutor instances."""
    return FakeExecutor


@pytest.fixture
def empty_executor() -> FakeExecutor:
    """A shell where every command fails and every file is unreadable."""
    return FakeExecutor(available=False)


DISKSTATS = """\
 179       0 mmcblk0 1000 0 80000 500 2000 0 160000 900 0 1200 1400 0 0 0 0
   8       0 sda 12345 10 987654 4321 23456 20 2000000 8765 0 9000 13000 0 0 0 0
   8       1 sda1 10 0 80 1 20 0 160 2 0 3 3 0 0 0 0
   7       0 loop0 1 0 8 0 0 0 0 0 0 0 0 0 0 0 0
 253       0 dm-0 5 0 40 1 6 0 48 2 0 3 3 0 0 0 0
 short line
"""

PARTITIONS = """\
major minor  #blocks  name

   8        0  125034840 sda
   8        1       8192 sda1
 179        0   61071360 mmcblk0
   7        0      65536 loop0
"""


@pytest.fixture
def ufs_device_files() -> dict[str, str]:
    """sysfs view of a UFS phone whose main device is sda."""
    return {
        "/proc/diskstats": DISKSTATS,
        "/proc/partitions": PARTITIONS,
        "/sys/block/sda/size": "250069680",
        "/sys/block/sda/queue/logical_block_size": "4096",
        "/sys/block/sda/removable": "0",
        "/sys/block/sda/device/vendor": "SAMSUNG",
        "/sys/block/sda/device/model": "KLUDG4UHDB-B2D1",
        "/sys/block/sda/device/life_time": "0x02 0x01",
        "/sys/block/sda/device/pre_eol_info": "0x01",
        "/sys/block/sda/device/serial": "SN123456",
        "/sys/block/sda/device/fwrev": "0300",
        "/sys/block/sda/device": "",
    }
