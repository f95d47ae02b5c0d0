"""Unit tests for the storage source variants."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from flashwear.config import GIB, EngineSettings
from flashwear.exceptions import FailureKind
from flashwear.models.storage import DataSourceType, HealthStatus, RootStatus, StorageType
from flashwear.shell.executor import ExecutorTier
from flashwear.sources import BrokerSource, EstimatedSource, PlatformApiSource, RootSource

FS_BLOCKS = 128 * GIB // 4096
FS_AVAILABLE = 40 * GIB // 4096

BUILD_PROPS = {
    "ro.hardware": "qcom",
    "ro.product.board": "taro",
    "ro.product.manufacturer": "Google",
    "ro.product.model": "Pixel 8",
    "ro.build.version.release": "14",
    "ro.build.version.sdk": "34",
}

DUMPSYS_DISKSTATS = "Latency: 1ms\nwrites: 4096\nData-Free: f2fs /data\n"
DUMPSYS_STORAGED = "Write bytes: 5000\nRead bytes: 9000\n"


@pytest.fixture(autouse=True)
def fake_statvfs():
    st = MagicMock()
    st.f_blocks = FS_BLOCKS
    st.f_bfree = FS_AVAILABLE
    st.f_bavail = FS_AVAILABLE
    st.f_frsize = 4096
    with patch("flashwear.collectors.device.os.statvfs", return_value=st) as statvfs:
        yield statvfs


@pytest.fixture
def ufs_shell(make_executor, ufs_device_files):
    files = dict(ufs_device_files)
    files["/sys/class/thermal/thermal_zone*/temp"] = "0\n38000\n"

    def factory(tier=ExecutorTier.ROOT, **overrides):
        kwargs = {
            "files": files,
            "dirs": {"/sys/block": ["loop0", "sda", "sdb", "dm-0"]},
            "props": BUILD_PROPS,
            "commands": {
                "dumpsys diskstats": DUMPSYS_DISKSTATS,
                "dumpsys storaged": DUMPSYS_STORAGED,
            },
            "tier": tier,
        }
        kwargs.update(overrides)
        return make_executor(**kwargs)

    return factory


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

class TestRootSource:
    def test_full_record(self, ufs_shell):
        ex = ufs_shell()
        outcome = RootSource(ex).attempt()
        assert outcome.succeeded
        info = outcome.info
        assert info.name == "/dev/block/sda"
        assert info.type == StorageType.UFS
        assert info.model == "KLUDG4UHDB-B2D1"
        assert info.firmware_version == "0300"
        assert info.serial_number == "SN123456"
        assert info.total_capacity == 250069680 * 512
        assert info.available_bytes == FS_AVAILABLE * 4096
        assert info.health_percentage == 85
        assert info.health_percentage_exact == 85.0
        assert info.health_status == HealthStatus.GOOD
        assert info.wear_level == info.estimated_life_percent == 85
        assert info.pre_eol_info == "normal"
        assert info.temperature == 38
        assert info.total_bytes_written == 2000000 * 512
        assert info.source == DataSourceType.ROOT
        assert info.detection_method.startswith("Detection method: SCSI vendor")

    def test_capacity_in_sectors_regardless_of_block_size(self, ufs_shell):
        root = RootSource(ufs_shell()).get_storage_info()
        broker = BrokerSource(ufs_shell(tier=ExecutorTier.BROKER)).get_storage_info()
        assert root.total_capacity == broker.total_capacity == 250069680 * 512

    def test_register_read_skips_dumpsys(self, ufs_shell):
        ex = ufs_shell()
        RootSource(ex).attempt()
        assert "dumpsys storaged" not in ex.calls
        assert "dumpsys diskstats" not in ex.calls

    def test_writes_tier_without_register(self, ufs_shell, ufs_device_files):
        files = {k: v for k, v in ufs_device_files.items() if not k.endswith("life_time")}
        info = RootSource(ufs_shell(files=files)).get_storage_info()
        assert info is not None
        assert 99 <= info.health_percentage <= 100
        assert info.health_percentage_exact is not None

    def test_model_from_mmc_ids(self, ufs_shell):
        files = {
            "/sys/block/mmcblk0/device": "",
            "/sys/block/mmcblk0/device/manfid": "0x000015",
            "/sys/block/mmcblk0/device/oemid": "0x0100",
            "/sys/block/mmcblk0/device/fwrev": "0x7",
            "/sys/block/mmcblk0/device/hwrev": "0x0",
        }
        info = RootSource(ufs_shell(files=files, dirs={"/sys/block": ["mmcblk0"]})).get_storage_info()
        assert info.type == StorageType.EMMC
        assert info.model == "MMC 0x000015 0x0100"
        assert info.firmware_version == "FW:0x7 HW:0x0"
        assert info.total_capacity == FS_BLOCKS * 4096

    def test_smart_values(self, ufs_shell):
        smart = (
            "  9 Power_On_Hours 0x0032 100 100 000 Old_age Always - 4321\n"
            " 12 Power_Cycle_Count 0x0032 100 100 000 Old_age Always - 77\n"
            "194 Temperature_Celsius 0x0022 064 050 000 Old_age Always - 41\n"
        )
        ex = ufs_shell(commands={"smartctl -a /dev/block/sda 2>/dev/null": smart})
        info = RootSource(ex).get_storage_info()
        assert info.power_on_hours == 4321
        assert info.power_cycle_count == 77
        assert info.temperature == 41

    def test_root_status(self, make_executor):
        assert RootSource(make_executor(available=True)).check_root_status() == RootStatus.GRANTED
        assert RootSource(make_executor(available=False)).check_root_status() == RootStatus.DENIED
        assert RootSource(make_executor(timed_out=True)).check_root_status() == RootStatus.UNKNOWN

    def test_denied_is_unavailable(self, empty_executor):
        outcome = RootSource(empty_executor).attempt()
        assert not outcome.succeeded
        assert outcome.failure == FailureKind.SOURCE_UNAVAILABLE
        assert RootSource(empty_executor).get_storage_info() is None

    def test_no_block_devices(self, make_executor):
        outcome = RootSource(make_executor()).attempt()
        assert outcome.failure == FailureKind.COMMAND_FAILED

    def test_unexpected_error_captured(self, ufs_shell):
        detector = MagicMock()
        detector.detect.side_effect = RuntimeError("boom")
        outcome = RootSource(ufs_shell(), detector=detector).attempt()
        assert outcome.failure == FailureKind.UNEXPECTED_ERROR
        assert "boom" in outcome.detail


# ---------------------------------------------------------------------------
# Broker
# ---------------------------------------------------------------------------

class TestBrokerSource:
    def test_record(self, ufs_shell):
        info = BrokerSource(ufs_shell(tier=ExecutorTier.BROKER)).get_storage_info()
        assert info is not None
        assert info.type == StorageType.UFS
        assert info.model == "UFS KLUDG4UHDB-B2D1 (F2FS) [Broker]"
        assert info.firmware_version == "Android 14 | API 34 | F2FS | Broker"
        assert info.serial_number == "Requires root"
        assert info.total_capacity == 250069680 * 512
        assert info.health_percentage == 85
        assert info.total_bytes_written == 2000000 * 512
        assert info.source == DataSourceType.BROKER

    def test_trail_lists_devices(self, ufs_shell):
        info = BrokerSource(ufs_shell(tier=ExecutorTier.BROKER)).get_storage_info()
        lines = info.detection_method.splitlines()
        assert lines[0] == "Detection method: SCSI vendor"
        assert "Main device: sda" in lines
        assert "Block devices: sda, sdb" in lines

    def test_write_preference_storaged_before_dumpsys(self, ufs_shell):
        files = {"/sys/block/sda/size": "1000"}
        info = BrokerSource(ufs_shell(tier=ExecutorTier.BROKER, files=files)).get_storage_info()
        assert info.total_bytes_written == 5000

    def test_unavailable(self, empty_executor):
        assert BrokerSource(empty_executor).attempt().failure == FailureKind.SOURCE_UNAVAILABLE

    def test_empty_listing(self, make_executor):
        outcome = BrokerSource(make_executor(dirs={"/sys/block": ["loop0"]})).attempt()
        assert outcome.failure == FailureKind.COMMAND_FAILED


# ---------------------------------------------------------------------------
# Platform API
# ---------------------------------------------------------------------------

HAL_DUMP = "StorageInfo{ eol: 1, lifetimeA: 2, lifetimeB: 3, version: ufs3.1 }\n"


class TestPlatformApiSource:
    def _shell(self, make_executor, sdk="35", dump=HAL_DUMP):
        props = dict(BUILD_PROPS, **{"ro.build.version.sdk": sdk})
        commands = {"dumpsys android.hardware.health.IHealth/default": dump} if dump else {}
        return make_executor(props=props, commands=commands)

    def test_availability_by_sdk(self, make_executor):
        assert PlatformApiSource(self._shell(make_executor, sdk="35")).is_available()
        assert not PlatformApiSource(self._shell(make_executor, sdk="34")).is_available()
        assert not PlatformApiSource(self._shell(make_executor, sdk="")).is_available()

    def test_min_sdk_configurable(self, make_executor):
        settings = EngineSettings(platform_api_min_sdk=30)
        assert PlatformApiSource(self._shell(make_executor, sdk="34"), settings=settings).is_available()

    def test_record_uses_worst_band(self, make_executor):
        info = PlatformApiSource(self._shell(make_executor)).get_storage_info()
        assert info is not None
        assert info.health_percentage == 75
        assert info.health_status == HealthStatus.CAUTION
        assert info.pre_eol_info == "normal"
        assert info.total_capacity == FS_BLOCKS * 4096
        assert info.name == "/data"
        assert info.model == "Google Pixel 8 (HAL ufs3.1)"
        assert info.source == DataSourceType.SYSTEM_API

    def test_undefined_band(self, make_executor):
        dump = "lifetimeA: 0, lifetimeB: 0\n"
        outcome = PlatformApiSource(self._shell(make_executor, dump=dump)).attempt()
        assert outcome.failure == FailureKind.PARSE_FAILURE

    def test_no_storage_block(self, make_executor):
        outcome = PlatformApiSource(self._shell(make_executor, dump="batteryLevel: 50\n")).attempt()
        assert outcome.failure == FailureKind.PARSE_FAILURE

    def test_no_dump(self, make_executor):
        outcome = PlatformApiSource(self._shell(make_executor, dump="")).attempt()
        assert outcome.failure == FailureKind.COMMAND_FAILED


# ---------------------------------------------------------------------------
# Estimated
# ---------------------------------------------------------------------------

class TestEstimatedSource:
    def test_always_available(self, empty_executor):
        assert EstimatedSource(empty_executor).is_available()

    def test_empty_shell_still_returns_record(self, empty_executor):
        info = EstimatedSource(empty_executor).get_storage_info()
        assert info is not None
        assert info.name == "/data"
        assert info.total_capacity == FS_BLOCKS * 4096
        assert info.health_percentage == -1
        assert info.health_status == HealthStatus.UNKNOWN
        assert info.source == DataSourceType.ESTIMATED

    def test_diskstats_preferred(self, ufs_shell):
        ex = ufs_shell(tier=ExecutorTier.UNPRIVILEGED)
        info = EstimatedSource(ex).get_storage_info()
        assert info.name == "/dev/block/sda"
        assert info.total_bytes_written == 2000000 * 512
        assert info.model == "UFS F2FS filesystem KLUDG4UHDB-B2D1 (sda)"
        assert info.firmware_version == "Android 14 | API 34 | F2FS | taro"

    def test_dumpsys_before_storaged(self, make_executor):
        ex = make_executor(commands={
            "dumpsys diskstats": DUMPSYS_DISKSTATS,
            "dumpsys storaged": DUMPSYS_STORAGED,
        })
        info = EstimatedSource(ex).get_storage_info()
        assert info.total_bytes_written == 4096

    def test_usage_tier_from_install_time(self, make_executor):
        ex = make_executor(commands={
            "dumpsys package com.example.flashwear": "  firstInstallTime=2024-01-01 00:00:00\n",
        })
        settings = EngineSettings(package_name="com.example.flashwear")
        source = EstimatedSource(ex, settings=settings, clock=lambda: datetime(2025, 1, 1))
        info = source.get_storage_info()
        # 366 days at 10 GiB/day against 128 GiB * 1000 / 2
        assert info.health_percentage == 94
        assert "low" in info.detection_method

    def test_internal_failure_returns_basic_record(self, empty_executor):
        detector = MagicMock()
        detector.detect.side_effect = RuntimeError("boom")
        outcome = EstimatedSource(empty_executor, detector=detector).attempt()
        assert outcome.succeeded
        assert outcome.info.model == "UNKNOWN Device (Estimated)"
        assert outcome.info.health_percentage == -1
        assert outcome.info.total_capacity == FS_BLOCKS * 4096
