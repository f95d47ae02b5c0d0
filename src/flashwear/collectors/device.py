"""Evidence readers that need an executor or the local filesystem."""

from __future__ import annotations

import os
import re

from flashwear.collectors.parsers import filter_block_listing, parse_df, parse_getprop
from flashwear.models.evidence import BuildProps, CapacityInfo, DfEntry
from flashwear.shell.executor import PrivilegedExecutor
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

_DF_SIZE_RE = re.compile(r"^(?P<num>\d+(?:\.\d+)?)(?P<unit>[KMGTP]?)$", re.IGNORECASE)
_DF_UNITS = {"": 1024, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3, "T": 1024 ** 4, "P": 1024 ** 5}

_BUILD_PROP_KEYS = {
    "hardware": "ro.hardware",
    "board": "ro.product.board",
    "device": "ro.product.device",
    "product": "ro.product.name",
    "manufacturer": "ro.product.manufacturer",
    "brand": "ro.product.brand",
    "model": "ro.product.model",
    "release": "ro.build.version.release",
}
_SDK_PROP = "ro.build.version.sdk"


def list_block_devices(executor: PrivilegedExecutor) -> list[str]:
    """List non-virtual entries of /sys/block."""
    return filter_block_listing(executor.list_dir("/sys/block"))


def read_build_props(executor: PrivilegedExecutor) -> BuildProps:
    """Read build/hardware identification from a full ``getprop`` dump."""
    props = parse_getprop(executor.output("getprop 2>/dev/null"))
    if not props:
        logger.debug("build_props_unavailable")
        return BuildProps()

    values = {field: props.get(key, "") for field, key in _BUILD_PROP_KEYS.items()}
    try:
        sdk_int = int(props.get(_SDK_PROP, "0"))
    except ValueError:
        sdk_int = 0
    return BuildProps(**values, sdk_int=sdk_int, extra=props)


def read_capacity(path: str) -> CapacityInfo | None:
    """Filesystem statistics for *path*, or None when it cannot be stat'ed."""
    try:
        st = os.statvfs(path)
    except OSError as exc:
        logger.debug("statvfs_failed", path=path, error=str(exc))
        return None
    total = st.f_blocks * st.f_frsize
    available = st.f_bavail * st.f_frsize
    return CapacityInfo(
        total_bytes=total,
        available_bytes=available,
        used_bytes=total - st.f_bfree * st.f_frsize,
        block_size=st.f_frsize,
        block_count=st.f_blocks,
    )


def _parse_df_size(text: str) -> int | None:
    m = _DF_SIZE_RE.match(text.strip())
    if not m:
        return None
    return int(float(m.group("num")) * _DF_UNITS[m.group("unit").upper()])


def capacity_from_df(entries: list[DfEntry], mount_point: str = "/data") -> CapacityInfo | None:
    """Capacity of *mount_point* from ``df`` rows (1K blocks or suffixed sizes)."""
    for entry in entries:
        if entry.mounted_on != mount_point:
            continue
        total = _parse_df_size(entry.size)
        available = _parse_df_size(entry.available)
        used = _parse_df_size(entry.used)
        if total is None:
            return None
        return CapacityInfo(
            total_bytes=total,
            available_bytes=available if available is not None else -1,
            used_bytes=used or 0,
        )
    return None


def read_capacity_with_fallback(executor: PrivilegedExecutor, path: str) -> CapacityInfo:
    """Filesystem statistics, then ``df``, then an empty CapacityInfo."""
    capacity = read_capacity(path)
    if capacity is not None and capacity.total_bytes > 0:
        return capacity
    from_df = capacity_from_df(parse_df(executor.output("df 2>/dev/null")), path)
    if from_df is not None:
        return from_df
    logger.debug("capacity_unavailable", path=path)
    return CapacityInfo()
