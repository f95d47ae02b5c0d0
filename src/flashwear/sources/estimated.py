"""Estimated source -- unprivileged statistics and heuristics, always available."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from flashwear.collectors.device import list_block_devices, read_build_props, read_capacity_with_fallback
from flashwear.collectors.parsers import (
    find_disk_stat,
    parse_diskstats,
    parse_dumpsys_diskstats,
    parse_first_install_time,
    parse_partitions,
    parse_storaged,
    parse_sys_block,
    select_main_device,
)
from flashwear.config import EngineSettings
from flashwear.detection.detector import StorageTypeDetector
from flashwear.health.estimator import HealthEstimator
from flashwear.models.evidence import DumpsysDiskInfo, PartitionInfo, SysBlockInfo
from flashwear.models.storage import (
    UNKNOWN_PERCENT,
    DataSourceType,
    HealthStatus,
    StorageInfo,
    StorageType,
)
from flashwear.shell.executor import PrivilegedExecutor
from flashwear.sources.base import (
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


def _describe_model(
    storage_type: StorageType,
    block: SysBlockInfo | None,
    partitions: list[PartitionInfo],
    dumpsys: DumpsysDiskInfo | None,
) -> str:
    parts = [type_label(storage_type)]
    fs_type = known_fs_type(dumpsys)
    if fs_type:
        parts.append(f"{fs_type} filesystem")
    if block is not None and block.model != "Unknown":
        parts.append(block.model)
    if partitions:
        main = select_main_device(p.name for p in partitions)
        parts.append(f"({main})")
    return " ".join(parts)


class EstimatedSource(StorageSource):
    """Lowest-confidence fallback that works with no privilege at all.

    Never reports "no result": if gathering fails part-way it still
    returns a basic record with the capacity and an unknown health.
    """

    def __init__(
        self,
        executor: PrivilegedExecutor,
        detector: StorageTypeDetector | None = None,
        estimator: HealthEstimator | None = None,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(executor, detector, estimator, settings)
        self._clock = clock

    @property
    def source_type(self) -> DataSourceType:
        return DataSourceType.ESTIMATED

    @property
    def description(self) -> str:
        return "Estimated from system statistics (no root required)"

    def is_available(self) -> bool:
        return True

    def _days_in_use(self) -> int | None:
        package = self._settings.package_name
        if not package:
            return None
        installed = parse_first_install_time(self._executor.output(f"dumpsys package {package}"))
        if installed is None:
            logger.debug("first_install_time_unavailable", package=package)
            return None
        return max((self._clock() - installed).days, 0)

    def _collect(self) -> StorageInfo:
        try:
            return self._collect_estimate()
        except Exception as exc:
            logger.warning("estimate_failed_using_basic_record", error=str(exc), exc_info=True)
            return self._basic_record()

    def _collect_estimate(self) -> StorageInfo:
        executor = self._executor
        props = read_build_props(executor)
        capacity = read_capacity_with_fallback(executor, self._settings.data_path)

        disk_stats = parse_diskstats(executor.read_file("/proc/diskstats"))
        partitions = parse_partitions(executor.read_file("/proc/partitions"))
        blocks = parse_sys_block(list_block_devices(executor), executor.read_file)
        dumpsys = parse_dumpsys_diskstats(executor.output("dumpsys diskstats"))
        storaged = parse_storaged(executor.output("dumpsys storaged"))
        logger.debug(
            "estimated_evidence",
            disk_stats=len(disk_stats),
            partitions=len(partitions),
            blocks=len(blocks),
            dumpsys=dumpsys is not None,
            storaged=storaged is not None,
        )

        by_name = {b.name: b for b in blocks}
        main_name = select_main_device(by_name)
        main_block = by_name.get(main_name) if main_name is not None else None
        detection = self._detector.detect(main_name or "", executor, build_props=props)

        disk_stat = find_disk_stat(disk_stats)
        bytes_written = first_positive(
            disk_stat.bytes_written if disk_stat else 0,
            dumpsys.total_writes if dumpsys else 0,
            storaged.write_bytes if storaged else 0,
        )
        estimate = self._estimator.estimate(
            detection.type,
            capacity.total_bytes,
            write_candidates=(bytes_written,),
            days_in_use=self._days_in_use(),
        )

        return StorageInfo(
            name=f"/dev/block/{main_name}" if main_name else self._settings.data_path,
            type=detection.type,
            model=_describe_model(detection.type, main_block, partitions, dumpsys),
            firmware_version=describe_platform(props, dumpsys, props.board),
            serial_number=ROOT_REQUIRED,
            total_capacity=capacity.total_bytes,
            available_bytes=capacity.available_bytes,
            total_bytes_written=bytes_written,
            detection_method=f"{detection.trail()}\nHealth: {estimate.method} ({estimate.reliability})",
            source=self.source_type,
            **health_fields(estimate),
        )

    def _basic_record(self) -> StorageInfo:
        capacity = read_capacity_with_fallback(self._executor, self._settings.data_path)
        return StorageInfo(
            name=self._settings.data_path,
            type=StorageType.UNKNOWN,
            model=f"{StorageType.UNKNOWN.name} Device (Estimated)",
            serial_number=ROOT_REQUIRED,
            total_capacity=capacity.total_bytes,
            available_bytes=capacity.available_bytes,
            health_status=HealthStatus.UNKNOWN,
            health_percentage=UNKNOWN_PERCENT,
            source=self.source_type,
        )
