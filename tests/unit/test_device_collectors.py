"""Unit tests for flashwear.collectors.device."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from flashwear.collectors.device import (
    capacity_from_df,
    list_block_devices,
    read_build_props,
    read_capacity,
    read_capacity_with_fallback,
)
from flashwear.models.evidence import CapacityInfo, DfEntry

DF_OUTPUT = (
    "Filesystem      1K-blocks     Used Available Use% Mounted on\n"
    "/dev/root         5000000  4000000   1000000  80% /\n"
    "/dev/block/dm-45 115000000 60000000  55000000  53% /data\n"
)


def _statvfs(blocks: int, bfree: int, bavail: int, frsize: int = 4096) -> MagicMock:
    st = MagicMock()
    st.f_blocks = blocks
    st.f_bfree = bfree
    st.f_bavail = bavail
    st.f_frsize = frsize
    return st


class TestListBlockDevices:
    def test_filters_virtual(self, make_executor):
        ex = make_executor(dirs={"/sys/block": ["dm-0", "loop1", "sda", "sdb", "zram0"]})
        assert list_block_devices(ex) == ["sda", "sdb"]

    def test_unreadable(self, empty_executor):
        assert list_block_devices(empty_executor) == []


class TestReadBuildProps:
    def test_maps_keys(self, make_executor):
        ex = make_executor(props={
            "ro.hardware": "qcom",
            "ro.product.board": "taro",
            "ro.product.device": "cupid",
            "ro.product.name": "cupid_global",
            "ro.product.manufacturer": "Xiaomi",
            "ro.build.version.release": "14",
            "ro.build.version.sdk": "34",
        })
        props = read_build_props(ex)
        assert props.hardware == "qcom"
        assert props.board == "taro"
        assert props.manufacturer == "Xiaomi"
        assert props.release == "14"
        assert props.sdk_int == 34
        assert props.extra["ro.product.device"] == "cupid"
        assert props.identity_string == "qcom taro cupid cupid_global"

    def test_bad_sdk(self, make_executor):
        ex = make_executor(props={"ro.build.version.sdk": "Baklava"})
        assert read_build_props(ex).sdk_int == 0

    def test_no_getprop(self, empty_executor):
        props = read_build_props(empty_executor)
        assert props.hardware == ""
        assert props.sdk_int == 0


class TestReadCapacity:
    def test_statvfs(self):
        with patch("flashwear.collectors.device.os.statvfs", return_value=_statvfs(1000, 400, 300)):
            cap = read_capacity("/data")
        assert cap == CapacityInfo(
            total_bytes=1000 * 4096,
            available_bytes=300 * 4096,
            used_bytes=600 * 4096,
            block_size=4096,
            block_count=1000,
        )

    def test_statvfs_error(self):
        with patch("flashwear.collectors.device.os.statvfs", side_effect=OSError("denied")):
            assert read_capacity("/data") is None


class TestCapacityFromDf:
    def test_kilobyte_blocks(self):
        entries = [DfEntry("/dev/block/dm-45", "115000000", "60000000", "55000000", "53%", "/data")]
        cap = capacity_from_df(entries)
        assert cap is not None
        assert cap.total_bytes == 115000000 * 1024
        assert cap.available_bytes == 55000000 * 1024
        assert cap.used_bytes == 60000000 * 1024

    def test_suffixed_sizes(self):
        entries = [DfEntry("/dev/block/dm-45", "110G", "58G", "52G", "53%", "/data")]
        cap = capacity_from_df(entries)
        assert cap is not None
        assert cap.total_bytes == 110 * 1024 ** 3
        assert cap.available_bytes == 52 * 1024 ** 3

    def test_other_mount_ignored(self):
        entries = [DfEntry("/dev/root", "5000", "4000", "1000", "80%", "/")]
        assert capacity_from_df(entries) is None

    def test_unparseable_size(self):
        entries = [DfEntry("/dev/x", "lots", "-", "-", "-", "/data")]
        assert capacity_from_df(entries) is None


class TestReadCapacityWithFallback:
    def test_prefers_statvfs(self, make_executor):
        ex = make_executor(commands={"df 2>/dev/null": DF_OUTPUT})
        with patch("flashwear.collectors.device.os.statvfs", return_value=_statvfs(10, 5, 5)):
            cap = read_capacity_with_fallback(ex, "/data")
        assert cap.total_bytes == 10 * 4096
        assert ex.calls == []

    def test_falls_back_to_df(self, make_executor):
        ex = make_executor(commands={"df 2>/dev/null": DF_OUTPUT})
        with patch("flashwear.collectors.device.os.statvfs", side_effect=OSError):
            cap = read_capacity_with_fallback(ex, "/data")
        assert cap.total_bytes == 115000000 * 1024
        assert cap.available_bytes == 55000000 * 1024

    def test_nothing_readable(self, empty_executor):
        with patch("flashwear.collectors.device.os.statvfs", side_effect=OSError):
            cap = read_capacity_with_fallback(empty_executor, "/data")
        assert cap == CapacityInfo()
