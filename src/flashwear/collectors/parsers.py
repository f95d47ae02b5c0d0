"""Pure parsers for procfs, sysfs, dumpsys and tool output.

None of these raise on malformed input: an unparsable line or field is
skipped (or defaulted), and input with no usable line yields an empty
list or None.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import datetime

from flashwear.models.evidence import (
    SECTOR_SIZE,
    DfEntry,
    DiskStat,
    DumpsysDiskInfo,
    PartitionInfo,
    PlatformHealthInfo,
    SmartAttributes,
    StoragedStats,
    SysBlockInfo,
)

PHYSICAL_DEVICE_PREFIXES = ("mmcblk", "sd", "nvme")
VIRTUAL_DEVICE_PREFIXES = ("loop", "ram", "dm-", "zram")
PREFERRED_MAIN_DEVICES = ("sda", "mmcblk0", "nvme0n1")

_DISKSTATS_MIN_FIELDS = 14

_DUMPSYS_WRITES_RE = re.compile(r"writes:\s*(\d+)", re.IGNORECASE)
_STORAGED_WRITE_RE = re.compile(r"Write bytes:\s*(\d+)", re.IGNORECASE)
_STORAGED_READ_RE = re.compile(r"Read bytes:\s*(\d+)", re.IGNORECASE)
_STORAGED_FSYNC_RE = re.compile(r"Fsync calls:\s*(\d+)", re.IGNORECASE)
_GETPROP_RE = re.compile(r"^\[([^\]]+)\]:\s*\[([^\]]*)\]")
_INSTALL_TIME_RE = re.compile(r"firstInstallTime=(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})")
_HAL_LIFETIME_A_RE = re.compile(r"lifetime_?a\s*[:=]\s*(\d+)", re.IGNORECASE)
_HAL_LIFETIME_B_RE = re.compile(r"lifetime_?b\s*[:=]\s*(\d+)", re.IGNORECASE)
_HAL_EOL_RE = re.compile(r"\beol\s*[:=]\s*(\d+)", re.IGNORECASE)
_HAL_VERSION_RE = re.compile(r"version\s*[:=]\s*([\w.]+)", re.IGNORECASE)

_PRE_EOL_LABELS = {
    0x01: "normal",
    0x02: "warning",
    0x03: "urgent",
}


def _to_int(text: str, default: int = 0) -> int:
    try:
        return int(text)
    except ValueError:
        return default


def is_physical_device(name: str) -> bool:
    """True for mmcblk*, sd* and nvme* block devices (partitions included)."""
    return name.startswith(PHYSICAL_DEVICE_PREFIXES) and "/" not in name


def filter_block_listing(names: Iterable[str]) -> list[str]:
    """Drop virtual entries (loop, ram, dm, zram) from a /sys/block listing."""
    return [
        n.strip() for n in names
        if n.strip() and not n.strip().startswith(VIRTUAL_DEVICE_PREFIXES)
    ]


def select_main_device(names: Iterable[str]) -> str | None:
    """Pick the primary internal device: sda, mmcblk0, nvme0n1, else the first."""
    candidates = list(names)
    for preferred in PREFERRED_MAIN_DEVICES:
        if preferred in candidates:
            return preferred
    return candidates[0] if candidates else None


def parse_diskstats(text: str) -> list[DiskStat]:
    """Parse /proc/diskstats, keeping physical devices only.

    Fields (0-based): 2 name, 3 reads completed, 5 sectors read,
    7 writes completed, 9 sectors written. Lines with fewer than 14
    fields are skipped.
    """
    stats: list[DiskStat] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < _DISKSTATS_MIN_FIELDS:
            continue
        device = parts[2]
        if not is_physical_device(device):
            continue
        stats.append(DiskStat(
            device=device,
            reads_completed=_to_int(parts[3]),
            sectors_read=_to_int(parts[5]),
            writes_completed=_to_int(parts[7]),
            sectors_written=_to_int(parts[9]),
        ))
    return stats


def find_disk_stat(stats: list[DiskStat], device: str | None = None) -> DiskStat | None:
    """Return the entry for *device*, else the preferred main device, else the first."""
    by_name = {s.device: s for s in stats}
    if device is not None:
        return by_name.get(device)
    main = select_main_device(by_name)
    return by_name.get(main) if main is not None else None


def parse_partitions(text: str) -> list[PartitionInfo]:
    """Parse /proc/partitions after its two header lines."""
    partitions: list[PartitionInfo] = []
    for line in text.splitlines()[2:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        name = parts[3]
        if not is_physical_device(name):
            continue
        partitions.append(PartitionInfo(
            major=_to_int(parts[0]),
            minor=_to_int(parts[1]),
            blocks=_to_int(parts[2]),
            name=name,
        ))
    return partitions


def parse_sys_block(names: Iterable[str], read: Callable[[str], str]) -> list[SysBlockInfo]:
    """Build SysBlockInfo for each physical device using *read(path) -> text*.

    ``size`` is in 512-byte sectors; unreadable attributes fall back to
    their defaults.
    """
    infos: list[SysBlockInfo] = []
    for name in names:
        if not is_physical_device(name):
            continue
        base = f"/sys/block/{name}"
        size = _to_int(read(f"{base}/size").strip())
        model = read(f"{base}/device/model").strip()
        removable = read(f"{base}/removable").strip()
        infos.append(SysBlockInfo(
            name=name,
            size=size * SECTOR_SIZE,
            model=model or "Unknown",
            is_removable=removable == "1",
        ))
    return infos


def parse_dumpsys_diskstats(text: str) -> DumpsysDiskInfo | None:
    """Scan ``dumpsys diskstats`` for a writes total and filesystem type."""
    total_writes: int | None = None
    fs_type: str | None = None

    for line in text.splitlines():
        lowered = line.lower()
        if "writes:" in lowered:
            m = _DUMPSYS_WRITES_RE.search(line)
            if m:
                total_writes = int(m.group(1))
        elif "f2fs" in lowered:
            fs_type = "F2FS"
        elif "ext4" in lowered:
            fs_type = "ext4"

    if total_writes is None and fs_type is None:
        return None
    return DumpsysDiskInfo(total_writes=total_writes or 0, fs_type=fs_type or "unknown")


def parse_storaged(text: str) -> StoragedStats | None:
    """Scan ``dumpsys storaged`` for write/read byte and fsync totals."""
    write_bytes: int | None = None
    read_bytes: int | None = None
    fsync_calls: int | None = None

    for line in text.splitlines():
        m = _STORAGED_WRITE_RE.search(line)
        if m:
            write_bytes = int(m.group(1))
            continue
        m = _STORAGED_READ_RE.search(line)
        if m:
            read_bytes = int(m.group(1))
            continue
        m = _STORAGED_FSYNC_RE.search(line)
        if m:
            fsync_calls = int(m.group(1))

    if write_bytes is None and read_bytes is None:
        return None
    return StoragedStats(
        write_bytes=write_bytes or 0,
        read_bytes=read_bytes or 0,
        fsync_calls=fsync_calls or 0,
    )


def parse_df(text: str) -> list[DfEntry]:
    """Parse ``df`` output after the header line (six columns)."""
    entries: list[DfEntry] = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 6:
            continue
        entries.append(DfEntry(
            filesystem=parts[0],
            size=parts[1],
            used=parts[2],
            available=parts[3],
            use_percent=parts[4],
            mounted_on=parts[5],
        ))
    return entries


def parse_getprop(text: str) -> dict[str, str]:
    """Parse a full ``getprop`` dump of ``[key]: [value]`` lines."""
    props: dict[str, str] = {}
    for line in text.splitlines():
        m = _GETPROP_RE.match(line.strip())
        if m:
            props[m.group(1)] = m.group(2)
    return props


def _smart_raw_value(line: str) -> int:
    # e.g. "  9 Power_On_Hours 0x0032 100 100 000 Old_age Always - 12345"
    parts = line.split()
    return _to_int(parts[-1]) if parts else 0


def parse_smartctl_attributes(text: str) -> SmartAttributes:
    """Pick power-on hours, power cycles and temperature out of ``smartctl -a``."""
    power_on_hours = 0
    power_cycle_count = 0
    temperature = -1

    for line in text.splitlines():
        if "Power_On_Hours" in line:
            power_on_hours = _smart_raw_value(line)
        elif "Power_Cycle_Count" in line:
            power_cycle_count = _smart_raw_value(line)
        elif "Temperature" in line and temperature < 0:
            value = _smart_raw_value(line)
            if value > 0:
                temperature = value

    return SmartAttributes(
        power_on_hours=max(power_on_hours, 0),
        power_cycle_count=max(power_cycle_count, 0),
        temperature=temperature,
    )


def parse_thermal_millidegrees(text: str) -> int:
    """Convert a thermal zone reading (millidegrees) to whole Celsius, -1 if unusable."""
    value = _to_int(text.strip(), default=0)
    if value <= 0:
        return -1
    return value // 1000


def parse_first_install_time(text: str) -> datetime | None:
    """Extract ``firstInstallTime`` from ``dumpsys package <pkg>``."""
    m = _INSTALL_TIME_RE.search(text)
    if not m:
        return None
    try:
        return datetime.strptime(m.group(1), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def parse_pre_eol_info(raw: str) -> str:
    """Decode the PRE_EOL_INFO register (0x01 normal, 0x02 warning, 0x03 urgent)."""
    token = raw.strip().split()[0] if raw.strip() else ""
    if not token:
        return ""
    try:
        value = int(token.removeprefix("0x").removeprefix("0X"), 16)
    except ValueError:
        return ""
    return _PRE_EOL_LABELS.get(value, "undefined")


def parse_health_hal_storage(text: str) -> PlatformHealthInfo | None:
    """Parse the storage block of the health HAL dump.

    Returns None unless at least one lifetime band is present.
    """
    a = _HAL_LIFETIME_A_RE.search(text)
    b = _HAL_LIFETIME_B_RE.search(text)
    if a is None and b is None:
        return None
    eol = _HAL_EOL_RE.search(text)
    version = _HAL_VERSION_RE.search(text)
    return PlatformHealthInfo(
        lifetime_a=int(a.group(1)) if a else 0,
        lifetime_b=int(b.group(1)) if b else 0,
        eol=int(eol.group(1)) if eol else 0,
        version=version.group(1) if version else "",
    )
