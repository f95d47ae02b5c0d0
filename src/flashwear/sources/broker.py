"""Broker source -- shell-level privilege through a helper such as ``rish``."""

from __future__ import annotations

from flashwear.collectors.device import read_build_props, read_capacity_with_fallback
from flashwear.collectors.parsers import (
    filter_block_listing,
    find_disk_stat,
    parse_diskstats,
    parse_dumpsys_diskstats,
    parse_storaged,
    select_main_device,
)
from flashwear.exceptions import CommandFailedError
from flashwear.models.evidence import SECTOR_SIZE, DumpsysDiskInfo
from flashwear.models.storage import DataSourceType, StorageInfo, StorageType
from flashwear.sources.base import (
    BLOCK_DIR,
    DEFAULT_BLOCK_DEVICE,
    ROOT_REQUIRED,
    StorageSource,
    describe_platform,
    first_positive,
    health_fields,
    known_fs_type,
    type_label,
)
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

TAG = "Broker"


def _describe_model(
    storage_type: StorageType, model: str, name: str, dumpsys: DumpsysDiskInfo | None,
) -> str:
    parts = [type_label(storage_type)]
    if model and model != "Unknown":
        parts.append(model)
    elif name:
        parts.append(name)
    fs_type = known_fs_type(dumpsys)
    if fs_type:
        parts.append(f"({fs_type})")
    parts.append(f"[{TAG}]")
    return " ".join(parts)


class BrokerSource(StorageSource):
    """ADB-level shell: dumpsys, procfs and most of sysfs, no serial or SMART."""

    @property
    def source_type(self) -> DataSourceType:
        return DataSourceType.BROKER

    @property
    def description(self) -> str:
        return "Requires a privileged shell broker; reads dumpsys and sysfs"

    def is_available(self) -> bool:
        return self._executor.is_available()

    def _cat(self, path: str) -> str:
        return self._executor.output(f"cat {path} 2>/dev/null")

    def _collect(self) -> StorageInfo:
        devices = filter_block_listing(self._executor.output(f"ls {BLOCK_DIR}").splitlines())
        if not devices:
            raise CommandFailedError(f"broker shell could not list {BLOCK_DIR}")
        device = select_main_device(devices) or DEFAULT_BLOCK_DEVICE
        logger.debug("broker_main_device", device=device, devices=devices)

        props = read_build_props(self._executor)
        detection = self._detector.detect(device, self._executor, build_props=props)

        dumpsys = parse_dumpsys_diskstats(self._executor.output("dumpsys diskstats"))
        storaged = parse_storaged(self._executor.output("dumpsys storaged"))
        disk_stat = find_disk_stat(parse_diskstats(self._cat("/proc/diskstats")), device)

        base = f"{BLOCK_DIR}/{device}"
        model = self._cat(f"{base}/device/model")
        name = self._cat(f"{base}/device/name")
        try:
            sectors = int(self._cat(f"{base}/size"))
        except ValueError:
            sectors = 0
        life_time = self._cat(f"{base}/device/life_time")
        logger.debug("broker_life_time", raw=life_time)

        fs_capacity = read_capacity_with_fallback(self._executor, self._settings.data_path)
        total_capacity = sectors * SECTOR_SIZE if sectors > 0 else fs_capacity.total_bytes

        bytes_written = first_positive(
            disk_stat.bytes_written if disk_stat else 0,
            storaged.write_bytes if storaged else 0,
            dumpsys.total_writes if dumpsys else 0,
        )
        estimate = self._estimator.estimate(
            detection.type,
            fs_capacity.total_bytes or total_capacity,
            life_time_raw=life_time,
            write_candidates=(bytes_written,),
        )

        trail = "\n".join((
            detection.trail(),
            f"Main device: {device}",
            f"Block devices: {', '.join(devices)}",
        ))
        return StorageInfo(
            name=f"/dev/block/{device}",
            type=detection.type,
            model=_describe_model(detection.type, model, name, dumpsys),
            firmware_version=describe_platform(props, dumpsys, TAG),
            serial_number=ROOT_REQUIRED,
            total_capacity=total_capacity,
            available_bytes=fs_capacity.available_bytes,
            total_bytes_written=bytes_written,
            detection_method=trail,
            source=self.source_type,
            **health_fields(estimate),
        )
