"""Platform API source -- storage health reported by the health HAL."""

from __future__ import annotations

from flashwear.collectors.device import list_block_devices, read_build_props, read_capacity_with_fallback
from flashwear.collectors.parsers import parse_health_hal_storage, parse_pre_eol_info, select_main_device
from flashwear.exceptions import CommandFailedError, ParseFailureError
from flashwear.health.estimator import EstimateTier, HealthEstimate, decode_life_time_band
from flashwear.models.evidence import BuildProps
from flashwear.models.storage import DataSourceType, StorageInfo
from flashwear.sources.base import ROOT_REQUIRED, StorageSource, describe_platform, health_fields
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

HEALTH_HAL_SERVICE = "android.hardware.health.IHealth/default"
TAG = "Health HAL"


class PlatformApiSource(StorageSource):
    """Lifetime bands from the platform health service on recent OS versions."""

    @property
    def source_type(self) -> DataSourceType:
        return DataSourceType.SYSTEM_API

    @property
    def description(self) -> str:
        return f"Platform storage health API (API level {self._settings.platform_api_min_sdk}+)"

    def _sdk_level(self) -> int:
        try:
            return int(self._executor.getprop("ro.build.version.sdk"))
        except ValueError:
            return 0

    def is_available(self) -> bool:
        sdk = self._sdk_level()
        logger.debug("platform_api_sdk", sdk=sdk, required=self._settings.platform_api_min_sdk)
        return sdk >= self._settings.platform_api_min_sdk

    def _collect(self) -> StorageInfo:
        dump = self._executor.output(f"dumpsys {HEALTH_HAL_SERVICE}")
        if not dump:
            raise CommandFailedError(f"dumpsys {HEALTH_HAL_SERVICE} produced no output")
        hal = parse_health_hal_storage(dump)
        if hal is None:
            raise ParseFailureError("health HAL dump has no storage lifetime fields")

        band = max(hal.lifetime_a, hal.lifetime_b)
        percent = decode_life_time_band(band)
        if percent < 0:
            raise ParseFailureError(f"health HAL lifetime band {band:#04x} is undefined")
        estimate = HealthEstimate(
            tier=EstimateTier.REGISTER,
            percent_exact=float(percent),
            reliability="high",
            method=f"{TAG} lifetimeA={hal.lifetime_a} lifetimeB={hal.lifetime_b}",
        )

        props = read_build_props(self._executor)
        device = select_main_device(list_block_devices(self._executor)) or ""
        detection = self._detector.detect(device, self._executor, build_props=props)
        capacity = read_capacity_with_fallback(self._executor, self._settings.data_path)

        return StorageInfo(
            name=f"/dev/block/{device}" if device else self._settings.data_path,
            type=detection.type,
            model=_describe_model(props, hal.version),
            firmware_version=describe_platform(props, None, TAG),
            serial_number=ROOT_REQUIRED,
            total_capacity=capacity.total_bytes,
            available_bytes=capacity.available_bytes,
            pre_eol_info=parse_pre_eol_info(f"{hal.eol:#04x}") if hal.eol else "",
            detection_method=detection.trail(),
            source=self.source_type,
            **health_fields(estimate),
        )


def _describe_model(props: BuildProps, version: str) -> str:
    label = f"{props.manufacturer} {props.model}".strip() or "Internal storage"
    return f"{label} (HAL {version})" if version else label
