"""Transient evidence records produced by the collectors.

All records live for a single inference run and are never shared.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SECTOR_SIZE = 512


@dataclass(frozen=True)
class DiskStat:
    """One physical-device line of /proc/diskstats."""

    device: str
    reads_completed: int = 0
    sectors_read: int = 0
    writes_completed: int = 0
    sectors_written: int = 0

    @property
    def bytes_read(self) -> int:
        return self.sectors_read * SECTOR_SIZE

    @property
    def bytes_written(self) -> int:
        return self.sectors_written * SECTOR_SIZE


@dataclass(frozen=True)
class PartitionInfo:
    """One line of /proc/partitions."""

    major: int
    minor: int
    blocks: int
    name: str


@dataclass(frozen=True)
class SysBlockInfo:
    """Attributes read from /sys/block/<dev>."""

    name: str
    size: int = 0
    model: str = "Unknown"
    is_removable: bool = False


@dataclass(frozen=True)
class DumpsysDiskInfo:
    """Totals scraped from ``dumpsys diskstats``."""

    total_writes: int = 0
    fs_type: str = "unknown"


@dataclass(frozen=True)
class StoragedStats:
    """Totals scraped from ``dumpsys storaged``."""

    write_bytes: int = 0
    read_bytes: int = 0
    fsync_calls: int = 0


@dataclass(frozen=True)
class DfEntry:
    """One row of ``df`` output, columns kept as printed."""

    filesystem: str
    size: str
    used: str
    available: str
    use_percent: str
    mounted_on: str


@dataclass(frozen=True)
class CapacityInfo:
    """Filesystem statistics for the data partition."""

    total_bytes: int = 0
    available_bytes: int = -1
    used_bytes: int = 0
    block_size: int = 0
    block_count: int = 0


@dataclass(frozen=True)
class SmartAttributes:
    """Values scraped from ``smartctl -a``; 0 / -1 mean not reported."""

    power_on_hours: int = 0
    power_cycle_count: int = 0
    temperature: int = -1


@dataclass(frozen=True)
class PlatformHealthInfo:
    """Storage block of the health HAL dump (lifetime bands and EOL)."""

    lifetime_a: int = 0
    lifetime_b: int = 0
    eol: int = 0
    version: str = ""


@dataclass(frozen=True)
class BuildProps:
    """Build and hardware identification strings."""

    hardware: str = ""
    board: str = ""
    device: str = ""
    product: str = ""
    manufacturer: str = ""
    brand: str = ""
    model: str = ""
    release: str = ""
    sdk_int: int = 0
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def identity_string(self) -> str:
        """Lower-cased hardware/board/device/product joined for substring matching."""
        return " ".join((self.hardware, self.board, self.device, self.product)).lower()
