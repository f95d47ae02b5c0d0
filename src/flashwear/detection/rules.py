"""Ordered storage-type detection rules, strongest signal first.

Each rule pairs a cheap ``applies`` predicate with a ``classify`` step
that may probe the device. ``classify`` returns None when its signal is
inconclusive so the detector moves on to the next rule.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from flashwear.detection.build_inference import infer_from_build_props
from flashwear.models.evidence import BuildProps
from flashwear.models.storage import DetectionResult, StorageType
from flashwear.shell.executor import PrivilegedExecutor

BOOT_DEVICE_PROP = "ro.boot.bootdevice"
BOOT_DEVICE_LINK = "/dev/block/bootdevice"
UFS_TRACE_EVENTS_DIR = "/sys/kernel/tracing/events/ufs"
UFS_CLASS_DIR = "/sys/class/ufs"
UFS_BUS_DEVICES_DIR = "/sys/bus/ufs/devices"
UFS_DRIVER_TAG = "ufshcd"
UFS_HOST_TAG = "ufshc"

# NAND/UFS fabrication vendors, compared against the upper-cased SCSI vendor
UFS_VENDORS = ("SAMSUNG", "SKHYNIX", "HYNIX", "KIOXIA", "WDC", "TOSHIBA", "MICRON", "SANDISK")

_KERNEL_LOG_DETAIL_LIMIT = 80


@dataclass
class ProbeContext:
    """Inputs shared by every rule during one detection run."""

    device: str
    executor: PrivilegedExecutor | None = None
    build_props_loader: Callable[[], BuildProps] | None = None
    preset_build_props: BuildProps | None = None

    @property
    def has_shell(self) -> bool:
        return self.executor is not None

    def shell(self, command: str) -> str:
        if self.executor is None:
            return ""
        return self.executor.output(command)

    def build_props(self) -> BuildProps:
        if self.preset_build_props is None:
            loader = self.build_props_loader
            self.preset_build_props = loader() if loader is not None else BuildProps()
        return self.preset_build_props


@dataclass(frozen=True)
class DetectionRule:
    """One step of the detection cascade."""

    name: str
    applies: Callable[[ProbeContext], bool]
    classify: Callable[[ProbeContext], DetectionResult | None]


def _has_shell(ctx: ProbeContext) -> bool:
    return ctx.has_shell


def _always(ctx: ProbeContext) -> bool:
    return True


def _is_scsi(ctx: ProbeContext) -> bool:
    return ctx.device.startswith("sd")


def _classify_host_string(value: str, method: str) -> DetectionResult | None:
    lowered = value.lower()
    if UFS_HOST_TAG in lowered:
        return DetectionResult(type=StorageType.UFS, method=method, details=value)
    if "mmc" in lowered:
        return DetectionResult(type=StorageType.EMMC, method=method, details=value)
    return None


# ----------------------------------------------------------------------
# Rules
# ----------------------------------------------------------------------

def _by_device_name(ctx: ProbeContext) -> DetectionResult | None:
    if ctx.device.startswith("nvme"):
        return DetectionResult(type=StorageType.NVME, method="Device name", details="nvme* -> NVMe")
    if ctx.device.startswith("mmcblk"):
        return DetectionResult(type=StorageType.EMMC, method="Device name", details="mmcblk* -> eMMC")
    return None


def _by_boot_device_prop(ctx: ProbeContext) -> DetectionResult | None:
    value = ctx.shell(f"getprop {BOOT_DEVICE_PROP} 2>/dev/null")
    return _classify_host_string(value, BOOT_DEVICE_PROP)


def _by_boot_device_link(ctx: ProbeContext) -> DetectionResult | None:
    target = ctx.shell(f"readlink -f {BOOT_DEVICE_LINK} 2>/dev/null")
    return _classify_host_string(target, BOOT_DEVICE_LINK)


def _by_trace_events(ctx: ProbeContext) -> DetectionResult | None:
    listing = ctx.shell(f"ls {UFS_TRACE_EVENTS_DIR} 2>/dev/null | head -3")
    if listing and UFS_DRIVER_TAG in listing:
        return DetectionResult(
            type=StorageType.UFS,
            method=UFS_TRACE_EVENTS_DIR,
            details=f"{UFS_DRIVER_TAG} tracing events exist",
        )
    return None


def _by_kernel_log(ctx: ProbeContext) -> DetectionResult | None:
    lines = ctx.shell(f"dmesg 2>/dev/null | grep -i {UFS_DRIVER_TAG} | head -3")
    if lines and UFS_DRIVER_TAG in lines.lower():
        first = lines.splitlines()[0][:_KERNEL_LOG_DETAIL_LIMIT]
        return DetectionResult(type=StorageType.UFS, method=f"dmesg {UFS_DRIVER_TAG}", details=first)
    return None


def _by_ufs_sysfs(ctx: ProbeContext) -> DetectionResult | None:
    for path, method in ((UFS_CLASS_DIR, UFS_CLASS_DIR), (UFS_BUS_DEVICES_DIR, "/sys/bus/ufs")):
        listing = ctx.shell(f"ls {path} 2>/dev/null")
        if listing and "No such file" not in listing and "missing" not in listing:
            return DetectionResult(type=StorageType.UFS, method=method, details=listing.splitlines()[0])
    return None


def _by_scsi_vendor(ctx: ProbeContext) -> DetectionResult | None:
    if not ctx.has_shell:
        return None
    base = f"/sys/block/{ctx.device}"
    # Removable sd* is external USB storage, whatever its vendor says
    if ctx.shell(f"cat {base}/removable 2>/dev/null") == "1":
        return DetectionResult(type=StorageType.UNKNOWN, method="SCSI (removable)", details="removable=1")

    vendor = ctx.shell(f"cat {base}/device/vendor 2>/dev/null")
    model = ctx.shell(f"cat {base}/device/model 2>/dev/null")
    vendor_upper = vendor.upper()
    if vendor_upper and any(v in vendor_upper for v in UFS_VENDORS):
        return DetectionResult(
            type=StorageType.UFS,
            method="SCSI vendor",
            details=f"vendor={vendor}, model={model}",
        )
    return None


def _unconfirmed_scsi(ctx: ProbeContext) -> DetectionResult:
    return DetectionResult(
        type=StorageType.UNKNOWN,
        method="SCSI (unconfirmed)",
        details="sd* device, cannot distinguish UFS vs USB storage",
    )


def _by_build_props(ctx: ProbeContext) -> DetectionResult:
    return infer_from_build_props(ctx.build_props())


DEFAULT_RULES: tuple[DetectionRule, ...] = (
    DetectionRule("device_name", _always, _by_device_name),
    DetectionRule("boot_device_property", _has_shell, _by_boot_device_prop),
    DetectionRule("boot_device_link", _has_shell, _by_boot_device_link),
    DetectionRule("ufs_trace_events", _has_shell, _by_trace_events),
    DetectionRule("kernel_log", _has_shell, _by_kernel_log),
    DetectionRule("ufs_sysfs", _has_shell, _by_ufs_sysfs),
    DetectionRule("scsi_vendor", _is_scsi, _by_scsi_vendor),
    DetectionRule("unconfirmed_scsi", _is_scsi, _unconfirmed_scsi),
    DetectionRule("build_properties", _always, _by_build_props),
)
