"""Root source -- reads sysfs registers and counters through ``su``."""

from __future__ import annotations

from collections.abc import Iterator

from flashwear.collectors.device import list_block_devices, read_build_props, read_capacity_with_fallback
from flashwear.collectors.parsers import (
    find_disk_stat,
    parse_diskstats,
    parse_dumpsys_diskstats,
    parse_pre_eol_info,
    parse_smartctl_attributes,
    parse_storaged,
    parse_thermal_millidegrees,
    select_main_device,
)
from flashwear.exceptions import CommandFailedError
from flashwear.models.evidence import SECTOR_SIZE, SmartAttributes
from flashwear.models.storage import DataSourceType, RootStatus, StorageInfo
from flashwear.sources.base import BLOCK_DIR, DEFAULT_BLOCK_DEVICE, StorageSource, health_fields
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

THERMAL_ZONE_GLOB = "/sys/class/thermal/thermal_zone*/temp"


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


class RootSource(StorageSource):
    """Highest-confidence source: full sysfs, life_time and SMART access."""

    @property
    def source_type(self) -> DataSourceType:
        return DataSourceType.ROOT

    @property
    def description(self) -> str:
        return "Requires root; reads life_time registers and full device attributes"

    def check_root_status(self) -> RootStatus:
        result = self._executor.run("id")
        if result.timed_out:
            return RootStatus.UNKNOWN
        return RootStatus.GRANTED if result.ok else RootStatus.DENIED

    def is_available(self) -> bool:
        return self.check_root_status() == RootStatus.GRANTED

    # ------------------------------------------------------------------
    # Attribute readers
    # ------------------------------------------------------------------

    def _attr(self, device: str, name: str) -> str:
        return self._executor.read_file(f"{BLOCK_DIR}/{device}/{name}")

    def _block_devices(self) -> list[str]:
        return [
            name for name in list_block_devices(self._executor)
            if self._executor.exists(f"{BLOCK_DIR}/{name}/device")
        ]

    def _device_capacity(self, device: str) -> int:
        # size is always in 512-byte sectors, whatever the logical block size
        sectors = _to_int(self._attr(device, "size"))
        return sectors * SECTOR_SIZE if sectors > 0 else 0

    def _model(self, device: str) -> str:
        for attr in ("device/name", "device/model"):
            value = self._attr(device, attr)
            if value:
                return value
        manfid = self._attr(device, "device/manfid")
        oemid = self._attr(device, "device/oemid")
        if manfid or oemid:
            return f"MMC {manfid} {oemid}".strip()
        return "Unknown Device"

    def _firmware(self, device: str) -> str:
        fwrev = self._attr(device, "device/fwrev")
        hwrev = self._attr(device, "device/hwrev")
        if not fwrev:
            return "Unknown"
        return f"FW:{fwrev} HW:{hwrev}" if hwrev else fwrev

    def _smart(self, device: str) -> SmartAttributes:
        return parse_smartctl_attributes(
            self._executor.output(f"smartctl -a /dev/block/{device} 2>/dev/null")
        )

    def _thermal_temperature(self) -> int:
        readings = self._executor.output(f"cat {THERMAL_ZONE_GLOB} 2>/dev/null")
        for line in readings.splitlines():
            celsius = parse_thermal_millidegrees(line)
            if celsius > 0:
                return celsius
        return -1

    def _write_candidates(self, disk_bytes: int) -> Iterator[int]:
        # dumpsys is only consulted when the cheaper counters are empty
        yield disk_bytes
        storaged = parse_storaged(self._executor.output("dumpsys storaged"))
        yield storaged.write_bytes if storaged else 0
        dumpsys = parse_dumpsys_diskstats(self._executor.output("dumpsys diskstats"))
        yield dumpsys.total_writes if dumpsys else 0

    # ------------------------------------------------------------------

    def _collect(self) -> StorageInfo:
        devices = self._block_devices()
        if not devices:
            raise CommandFailedError(f"no block devices with a device node under {BLOCK_DIR}")
        device = select_main_device(devices) or DEFAULT_BLOCK_DEVICE
        logger.debug("root_main_device", device=device, devices=devices)

        detection = self._detector.detect(
            device, self._executor, build_props=lambda: read_build_props(self._executor),
        )
        fs_capacity = read_capacity_with_fallback(self._executor, self._settings.data_path)
        capacity = self._device_capacity(device) or fs_capacity.total_bytes

        disk_stat = find_disk_stat(parse_diskstats(self._executor.read_file("/proc/diskstats")), device)
        disk_bytes = disk_stat.bytes_written if disk_stat else 0

        estimate = self._estimator.estimate(
            detection.type,
            capacity,
            life_time_raw=self._attr(device, "device/life_time"),
            write_candidates=self._write_candidates(disk_bytes),
        )

        smart = self._smart(device)
        temperature = smart.temperature if smart.temperature > 0 else self._thermal_temperature()

        return StorageInfo(
            name=f"/dev/block/{device}",
            type=detection.type,
            model=self._model(device),
            firmware_version=self._firmware(device),
            serial_number=self._attr(device, "device/serial") or "Unknown",
            total_capacity=capacity,
            available_bytes=fs_capacity.available_bytes,
            pre_eol_info=parse_pre_eol_info(self._attr(device, "device/pre_eol_info")),
            temperature=temperature,
            total_bytes_written=estimate.bytes_written or disk_bytes,
            power_on_hours=smart.power_on_hours,
            power_cycle_count=smart.power_cycle_count,
            detection_method=detection.trail(),
            source=self.source_type,
            **health_fields(estimate),
        )
