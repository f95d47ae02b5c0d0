"""Abstract interface for storage evidence sources."""

from __future__ import annotations

import abc
from typing import Any

from flashwear.config import EngineSettings
from flashwear.detection.detector import StorageTypeDetector
from flashwear.exceptions import FailureKind, FlashwearError, SourceUnavailableError
from flashwear.health.estimator import HealthEstimate, HealthEstimator
from flashwear.models.evidence import BuildProps, DumpsysDiskInfo
from flashwear.models.storage import (
    DataSourceType,
    RootStatus,
    SourceOutcome,
    StorageInfo,
    StorageType,
)
from flashwear.shell.executor import PrivilegedExecutor
from flashwear.utils.logging import get_logger

logger = get_logger(__name__)

BLOCK_DIR = "/sys/block"
DEFAULT_BLOCK_DEVICE = "mmcblk0"
ROOT_REQUIRED = "Requires root"

_TYPE_LABELS = {
    StorageType.EMMC: "eMMC",
    StorageType.UFS: "UFS",
    StorageType.NVME: "NVMe",
    StorageType.UNKNOWN: "Flash Storage",
}


class StorageSource(abc.ABC):
    """One strategy for turning device evidence into a StorageInfo.

    Subclasses implement :meth:`is_available` and :meth:`_collect`.
    ``_collect`` reports failures by raising FlashwearError subclasses;
    :meth:`collect` converts those into a SourceOutcome so callers never
    see an exception.
    """

    def __init__(
        self,
        executor: PrivilegedExecutor,
        detector: StorageTypeDetector | None = None,
        estimator: HealthEstimator | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._executor = executor
        self._detector = detector or StorageTypeDetector()
        self._estimator = estimator or HealthEstimator(self._settings)

    @property
    @abc.abstractmethod
    def source_type(self) -> DataSourceType:
        """Evidence channel this source reads through."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Human-readable summary of what this source can read."""

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return True if this source can run on the current device."""

    @abc.abstractmethod
    def _collect(self) -> StorageInfo:
        """Gather evidence and build the record.

        Raises:
            FlashwearError: When the evidence is missing or unusable.
        """

    @property
    def executor(self) -> PrivilegedExecutor:
        return self._executor

    def check_root_status(self) -> RootStatus:
        return RootStatus.UNKNOWN

    def collect(self) -> SourceOutcome:
        """Run :meth:`_collect` and capture the result or failure reason."""
        try:
            info = self._collect()
        except FlashwearError as exc:
            logger.warning(
                "source_failed",
                source=self.source_type.value,
                kind=exc.kind.value,
                error=str(exc),
            )
            return SourceOutcome(source=self.source_type, failure=exc.kind, detail=str(exc))
        except Exception as exc:
            logger.warning(
                "source_failed",
                source=self.source_type.value,
                kind=FailureKind.UNEXPECTED_ERROR.value,
                error=str(exc),
                exc_info=True,
            )
            return SourceOutcome(
                source=self.source_type,
                failure=FailureKind.UNEXPECTED_ERROR,
                detail=f"{type(exc).__name__}: {exc}",
            )

        logger.info(
            "source_succeeded",
            source=self.source_type.value,
            type=info.type.value,
            health=info.health_percentage,
        )
        return SourceOutcome(source=self.source_type, info=info)

    def attempt(self) -> SourceOutcome:
        """Check availability, then collect."""
        if not self.is_available():
            exc = SourceUnavailableError(f"{self.source_type.value} source is not available")
            logger.debug("source_unavailable", source=self.source_type.value)
            return SourceOutcome(source=self.source_type, failure=exc.kind, detail=str(exc))
        return self.collect()

    def get_storage_info(self) -> StorageInfo | None:
        return self.attempt().info


# ----------------------------------------------------------------------
# Record helpers shared by the variants
# ----------------------------------------------------------------------

def health_fields(estimate: HealthEstimate) -> dict[str, Any]:
    """StorageInfo health fields; every percentage mirrors the same estimate."""
    percent = estimate.percent
    return {
        "health_status": estimate.status,
        "health_percentage": percent,
        "health_percentage_exact": estimate.percent_exact if estimate.is_known else None,
        "wear_level": percent,
        "estimated_life_percent": percent,
    }


def type_label(storage_type: StorageType) -> str:
    return _TYPE_LABELS[storage_type]


def known_fs_type(dumpsys: DumpsysDiskInfo | None) -> str | None:
    if dumpsys is None or dumpsys.fs_type == "unknown":
        return None
    return dumpsys.fs_type


def describe_platform(props: BuildProps, dumpsys: DumpsysDiskInfo | None, suffix: str) -> str:
    """Firmware column for sources that cannot read the device firmware."""
    parts = [f"Android {props.release or 'Unknown'}", f"API {props.sdk_int}"]
    fs_type = known_fs_type(dumpsys)
    if fs_type:
        parts.append(fs_type.upper())
    if suffix:
        parts.append(suffix)
    return " | ".join(parts)


def first_positive(*values: int) -> int:
    return next((v for v in values if v > 0), 0)
