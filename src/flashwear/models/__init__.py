"""Data models for Flashwear."""

from flashwear.models.evidence import (
    BuildProps,
    CapacityInfo,
    DfEntry,
    DiskStat,
    DumpsysDiskInfo,
    PartitionInfo,
    PlatformHealthInfo,
    SmartAttributes,
    StoragedStats,
    SysBlockInfo,
)
from flashwear.models.storage import (
    UNKNOWN_PERCENT,
    DataSourceInfo,
    DataSourceType,
    DetectionResult,
    HealthStatus,
    RootStatus,
    SourceOutcome,
    StorageInfo,
    StorageType,
)

__all__ = [
    "UNKNOWN_PERCENT",
    "BuildProps",
    "CapacityInfo",
    "DataSourceInfo",
    "DataSourceType",
    "DetectionResult",
    "DfEntry",
    "DiskStat",
    "DumpsysDiskInfo",
    "HealthStatus",
    "PartitionInfo",
    "PlatformHealthInfo",
    "RootStatus",
    "SmartAttributes",
    "SourceOutcome",
    "StorageInfo",
    "StorageType",
    "StoragedStats",
    "SysBlockInfo",
]
